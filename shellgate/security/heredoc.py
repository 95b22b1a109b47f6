from __future__ import annotations

import re
from dataclasses import dataclass

# `<<<` is a here-string, not a heredoc opener.
_HEREDOC_OPENER = re.compile(r"(?<!<)<<(?!<)(-?)\s*['\"]?(\w+)['\"]?")
_CHAIN_SPLIT = re.compile(r"\s*(?:&&|\|\||;)\s*")
_CHAIN_OPERATORS = ("&&", "||", ";")


def strip_heredoc_bodies(command: str) -> str:
    """Return the parts of ``command`` that are shell text, dropping heredoc bodies.

    Text before an opener is kept, the body up to the closing delimiter line is
    dropped and the remainder is scanned again for further heredocs. An opener
    without a closing line swallows the rest of the command.
    """
    kept: list[str] = []
    remaining = command
    while True:
        opener = _HEREDOC_OPENER.search(remaining)
        if opener is None:
            kept.append(remaining)
            break

        kept.append(remaining[: opener.start()])
        body = remaining[opener.end() :]
        # `<<-` lets the closing line start with tabs.
        indent = r"\t*" if opener.group(1) else ""
        closing = re.search(rf"\n{indent}{re.escape(opener.group(2))}\s*(?:\n|$)", body)
        if closing is None:
            break
        remaining = body[closing.end() :]

    return " ".join(kept)


def split_chain(text: str) -> list[str]:
    """Split on ``&&``, ``||`` and ``;``. A bare pipe is not a separator."""
    if not any(operator in text for operator in _CHAIN_OPERATORS):
        return [text.strip()] if text.strip() else []
    return [part.strip() for part in _CHAIN_SPLIT.split(text) if part.strip()]


@dataclass(frozen=True, slots=True)
class CheckedCommand:
    raw: str
    checked: str
    segments: tuple[str, ...]

    @classmethod
    def parse(cls, raw: str) -> "CheckedCommand":
        checked = strip_heredoc_bodies(raw)
        return cls(raw=raw, checked=checked, segments=tuple(split_chain(checked)))

    @property
    def is_chained(self) -> bool:
        return any(operator in self.checked for operator in _CHAIN_OPERATORS)
