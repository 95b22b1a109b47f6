from __future__ import annotations

import re
from dataclasses import dataclass

from shellgate.security.heredoc import CheckedCommand

DANGEROUS_PATTERN_REASON = "Command matches dangerous pattern and is not allowed for security reasons"

# Bare program names refused outright. `rm` is absent: rm targets are checked
# against the workspace by the rm guard instead.
DANGEROUS_COMMANDS = (
    "dd",
    "mkfs",
    "fdisk",
    "parted",
    "gparted",
    "shutdown",
    "reboot",
    "halt",
    "poweroff",
    "su",
    "sudo su",
    "unlink",
    "shred",
    "truncate",
)

_DANGEROUS_PATTERN_SOURCES = (
    # rm of the current directory
    r"\brm\b.*\s\.(?:/)?(?:\s|$)",
    r"rmdir\s+.*-.*r",
    r"\bunlink\s+",
    r"\bshred\s+",
    r"\btruncate\s+.*-s\s*0",
    r"\bfind\s+.*-delete",
    r"\bfind\s+.*-exec\s+rm",
    r"\bfind\s+.*\|\s*xargs\s+rm",
    # `> file` truncates the file
    r"^>\s*\S+",
    r"cat\s+/dev/null\s*>",
    r"\bgit\s+clean\s+-[fd]",
    r"\bgit\s+reset\s+--hard",
    r"\bmv\s+.*/dev/null",
    # disk formatting, not code formatters
    r"mkfs\.",
    r"\bformat\s+[a-z]:",
    r"fdisk",
    r"parted",
    r"gparted",
    r"shutdown",
    r"reboot",
    r"halt",
    r"poweroff",
    r"init\s+[016]",
    r"dd\s+.*of=/dev",
    r"chmod\s+.*777\s+/",
    r"chmod\s+.*-r.*777",
    r"chown\s+.*-r.*root",
    r"iptables",
    r"ufw\s+.*disable",
    r"systemctl\s+.*stop",
    r"service\s+.*stop",
    r"apt\s+.*purge",
    r"yum\s+.*remove",
    r"brew\s+.*uninstall.*--force",
    r"mount\s+.*/dev",
    r"umount\s+.*-f",
    r"fsck\s+.*-y",
    r"killall\s+.*-9",
    r"pkill\s+.*-9.*init",
    r"crontab\s+.*-r",
    r"history\s+.*-c",
    r">\s*~/\.bash_history",
    r">\s*/dev/sd[a-z]",
    r">\s*/dev/nvme",
    r">\s*/etc/",
    r"modprobe\s+.*-r",
    r"insmod",
    r"rmmod",
    r"curl\s+.*\|\s*(sh|bash|zsh)",
    r"wget\s+.*-o.*\|\s*(sh|bash|zsh)",
)

DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(re.compile(source) for source in _DANGEROUS_PATTERN_SOURCES)


@dataclass(frozen=True, slots=True)
class DangerVerdict:
    dangerous: bool
    reason: str | None = None


SAFE = DangerVerdict(dangerous=False)


def _check_text(text: str) -> DangerVerdict:
    lowered = text.strip().lower()

    for name in DANGEROUS_COMMANDS:
        if lowered == name or lowered.startswith(f"{name} "):
            return DangerVerdict(dangerous=True, reason=f'Command "{name}" is not allowed for security reasons')

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(lowered):
            return DangerVerdict(dangerous=True, reason=DANGEROUS_PATTERN_REASON)

    return SAFE


def detect_danger(command: CheckedCommand | str) -> DangerVerdict:
    """Check the heredoc-filtered text, then each chained segment on its own."""
    if isinstance(command, str):
        command = CheckedCommand.parse(command)

    candidates = [command.checked]
    if command.is_chained:
        candidates.extend(command.segments)

    for candidate in candidates:
        verdict = _check_text(candidate)
        if verdict.dangerous:
            return verdict
    return SAFE
