from __future__ import annotations

import re

_BEARER_PATTERN = re.compile(r"(?i)(bearer\s+)[a-z0-9_\-\.=]+")
_SECRET_ASSIGNMENT = re.compile(
    r"(?i)\b([a-z0-9_]*(?:token|secret|password|passwd|api_key|apikey|access_key)[a-z0-9_]*)=(\"[^\"]*\"|'[^']*'|\S+)"
)
_SECRET_FLAG = re.compile(r"(?i)(--(?:password|token|api-key|secret)[ =])(\"[^\"]*\"|'[^']*'|\S+)")
_URL_CREDENTIALS = re.compile(r"(?i)([a-z][a-z0-9+.-]*://[^/\s:@]+:)[^@\s/]+@")


def redact_command(command: str) -> str:
    """Mask credentials in a command line before it is logged."""
    redacted = _BEARER_PATTERN.sub(r"\1<redacted>", command)
    redacted = _SECRET_ASSIGNMENT.sub(r"\1=<redacted>", redacted)
    redacted = _SECRET_FLAG.sub(r"\1<redacted>", redacted)
    return _URL_CREDENTIALS.sub(r"\1<redacted>@", redacted)
