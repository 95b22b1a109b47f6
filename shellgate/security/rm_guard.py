"""
rm_guard.py: workspace containment for `rm` invocations

`rm` is allowed only when:
- a workspace root is configured for the task
- the root is inside a git work tree (checked on every call, never cached)
- every explicit target and every wildcard expansion canonicalizes inside the root

One unsafe target blocks the whole command, chained siblings included.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Protocol

from shellgate.security.heredoc import CheckedCommand
from shellgate.security.path_guard import PathContainmentValidator
from shellgate.security.wildcard import WildcardExpander, is_wildcard

RM_PRESENT = re.compile(r"(?<![\w-])rm\b")
RM_ARGUMENTS = re.compile(r"(?<![\w-])rm[ \t]+(.+)")
_ARGUMENT_TOKEN = re.compile(r"""(?:[^\s"']+|"[^"]*"|'[^']*')+""")
_SURROUNDING_QUOTES = re.compile(r"""^["']|["']$""")
# Command and process substitution produce paths only the shell can know.
_SUBSTITUTION = re.compile(r"\$\(|`|<\(")


class RepositoryCheckError(Exception):
    pass


class RepositoryCheck(Protocol):
    async def is_inside_work_tree(self, path: str) -> bool:
        ...


@dataclass(slots=True)
class RmTargets:
    flags: list[str] = field(default_factory=list)
    explicit: list[str] = field(default_factory=list)
    wildcards: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RmVerdict:
    allowed: bool
    reason: str | None = None
    kind: str | None = None


ALLOWED = RmVerdict(allowed=True)


def has_rm(text: str) -> bool:
    return RM_PRESENT.search(text) is not None


def extract_rm_targets(segment: str) -> RmTargets:
    """Split the arguments following `rm` into flags, literal paths and glob patterns."""
    targets = RmTargets()
    arguments = " ".join(match.group(1) for match in RM_ARGUMENTS.finditer(segment))
    for token in _ARGUMENT_TOKEN.findall(arguments):
        if token.startswith("-"):
            targets.flags.append(token)
            continue
        path = _SURROUNDING_QUOTES.sub("", token)
        if not path:
            continue
        if is_wildcard(path):
            targets.wildcards.append(path)
        else:
            targets.explicit.append(path)
    return targets


class RmGuard:
    def __init__(
        self,
        repository_check: RepositoryCheck,
        validator: PathContainmentValidator,
        expander: WildcardExpander,
    ) -> None:
        self.repository_check = repository_check
        self.validator = validator
        self.expander = expander

    async def check(self, command: CheckedCommand, workspace_root: str | None) -> RmVerdict:
        if not has_rm(command.checked):
            return ALLOWED

        if not workspace_root:
            return RmVerdict(
                allowed=False,
                reason="rm command is not allowed: no workspace root is set",
                kind="no_workspace",
            )

        try:
            inside = await self.repository_check.is_inside_work_tree(workspace_root)
        except RepositoryCheckError:
            return RmVerdict(
                allowed=False,
                reason="rm command is only allowed in git repositories (git check failed)",
                kind="not_repository",
            )
        if not inside:
            return RmVerdict(
                allowed=False,
                reason="rm command is only allowed in git repositories",
                kind="not_repository",
            )

        for segment in command.segments:
            if not has_rm(segment):
                continue
            verdict = await self._check_segment(segment, workspace_root)
            if not verdict.allowed:
                return verdict
        return ALLOWED

    async def _check_segment(self, segment: str, workspace_root: str) -> RmVerdict:
        targets = extract_rm_targets(segment)

        for token in (*targets.explicit, *targets.wildcards):
            if _SUBSTITUTION.search(token):
                return RmVerdict(
                    allowed=False,
                    reason=f'rm command blocked: path "{token}" uses command substitution and cannot be verified',
                    kind="path_escape",
                )

        for pattern in targets.wildcards:
            verdict = await self.expander.check_prefix(pattern, workspace_root)
            if not verdict.allowed:
                return RmVerdict(allowed=False, reason=verdict.reason, kind="path_escape")

        for pattern in targets.wildcards:
            verdict = await self.expander.check_matches(pattern, workspace_root)
            if not verdict.allowed:
                return RmVerdict(allowed=False, reason=verdict.reason, kind="path_escape")

        for path in targets.explicit:
            if not await self.validator.is_within(path, workspace_root):
                return RmVerdict(
                    allowed=False,
                    reason=f'rm command blocked: path "{path}" is outside the workspace directory',
                    kind="path_escape",
                )
        return ALLOWED
