from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Protocol

from shellgate.security.path_guard import PathContainmentValidator, expand_shell_path, is_contained

logger = logging.getLogger("shellgate.runtime")

WILDCARD_CHARS = re.compile(r"[*?\[{]")
DEFAULT_MAX_RESULTS = 10000


@dataclass(frozen=True, slots=True)
class GlobMatch:
    path: str
    canonical_path: str
    is_directory: bool


class GlobSearch(Protocol):
    async def search(self, pattern: str, base_path: str, max_results: int) -> list[GlobMatch]:
        ...


@dataclass(frozen=True, slots=True)
class WildcardVerdict:
    allowed: bool
    reason: str | None = None
    matched: int = 0


def is_wildcard(token: str) -> bool:
    return WILDCARD_CHARS.search(token) is not None


def pattern_base_path(pattern: str) -> str | None:
    """Literal directory prefix of a glob pattern.

    ``"../src/*.ts"`` -> ``"../src"``, ``"*.ts"`` -> ``None``, ``"/*"`` -> ``"/"``.
    """
    match = WILDCARD_CHARS.search(pattern)
    if match is None:
        return pattern
    if match.start() == 0:
        return None

    before = pattern[: match.start()]
    last_sep = max(before.rfind("/"), before.rfind("\\"))
    if last_sep == 0 and pattern.startswith("/"):
        return "/"
    return before[:last_sep] if last_sep > 0 else None


class WildcardExpander:
    def __init__(
        self,
        glob_search: GlobSearch,
        validator: PathContainmentValidator,
        *,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self.glob_search = glob_search
        self.validator = validator
        self.max_results = max_results

    async def check_prefix(self, pattern: str, workspace_root: str) -> WildcardVerdict:
        base = pattern_base_path(pattern)
        if base and not await self.validator.is_within(base, workspace_root):
            return WildcardVerdict(
                allowed=False,
                reason=f'rm command blocked: wildcard pattern "{pattern}" references path outside workspace',
            )
        return WildcardVerdict(allowed=True)

    async def expand(self, pattern: str, workspace_root: str) -> list[GlobMatch]:
        expanded = expand_shell_path(pattern)
        full_pattern = expanded if os.path.isabs(expanded) else os.path.join(workspace_root, expanded)
        try:
            return await self.glob_search.search(full_pattern, workspace_root, self.max_results)
        except Exception as exc:  # noqa: BLE001
            # A failed expansion counts as no matches; the shell reports its own error.
            logger.warning(
                "glob_expansion_failed",
                extra={"path": full_pattern, "reason": str(exc)},
            )
            return []

    async def check_matches(self, pattern: str, workspace_root: str) -> WildcardVerdict:
        """Expand the pattern and reject it if any canonical match leaves the workspace."""
        matches = await self.expand(pattern, workspace_root)
        canonical_root = await self.validator.resolver.canonicalize(workspace_root)
        for match in matches:
            # Match paths are already literal; only symlinks may still move them.
            canonical = await self.validator.resolver.canonicalize(match.canonical_path)
            if not is_contained(canonical, canonical_root):
                return WildcardVerdict(
                    allowed=False,
                    reason=(
                        f'rm command blocked: wildcard "{pattern}" would match '
                        f'"{match.canonical_path}" which is outside workspace'
                    ),
                    matched=len(matches),
                )
        return WildcardVerdict(allowed=True, matched=len(matches))

    async def validate(self, pattern: str, workspace_root: str) -> WildcardVerdict:
        prefix = await self.check_prefix(pattern, workspace_root)
        if not prefix.allowed:
            return prefix
        return await self.check_matches(pattern, workspace_root)
