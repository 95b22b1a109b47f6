from __future__ import annotations

import asyncio
import glob
import os

from shellgate.security.wildcard import GlobMatch


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups the way the shell does; nested groups are expanded recursively."""
    depth = 0
    start = -1
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth == 0:
                options = _split_top_level(pattern[start + 1 : index])
                if len(options) < 2:
                    continue
                prefix, suffix = pattern[:start], pattern[index + 1 :]
                expanded: list[str] = []
                for option in options:
                    expanded.extend(expand_braces(f"{prefix}{option}{suffix}"))
                return expanded
    return [pattern]


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    parts.append(current)
    return parts


class LocalGlobSearch:
    async def search(self, pattern: str, base_path: str, max_results: int) -> list[GlobMatch]:
        return await asyncio.to_thread(self._search, pattern, base_path, max_results)

    def _search(self, pattern: str, base_path: str, max_results: int) -> list[GlobMatch]:
        if not pattern.strip():
            raise ValueError("glob pattern is empty")

        results: list[GlobMatch] = []
        seen: set[str] = set()
        for candidate in expand_braces(pattern):
            full = candidate if os.path.isabs(candidate) else os.path.join(base_path, candidate)
            for path in glob.iglob(full, recursive=True):
                if path in seen:
                    continue
                seen.add(path)
                results.append(
                    GlobMatch(
                        path=path,
                        canonical_path=os.path.realpath(path),
                        is_directory=os.path.isdir(path),
                    )
                )
                if len(results) >= max_results:
                    return results
        return results
