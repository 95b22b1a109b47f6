from __future__ import annotations

import asyncio
import os
from pathlib import PurePath
from typing import Protocol


class FilesystemResolver(Protocol):
    async def canonicalize(self, path: str) -> str:
        """Return ``path`` with every symlink resolved. Missing tails are kept as written."""
        ...


class OsFilesystemResolver:
    async def canonicalize(self, path: str) -> str:
        return await asyncio.to_thread(os.path.realpath, path)


def expand_shell_path(token: str) -> str:
    """Apply the expansions the shell performs on an unquoted path word."""
    return os.path.expandvars(os.path.expanduser(token))


class PathContainmentValidator:
    """Decides whether a path token stays inside a workspace root.

    The decision is made on canonical paths only: a workspace-internal symlink
    that points elsewhere is outside the workspace.
    """

    def __init__(self, resolver: FilesystemResolver) -> None:
        self.resolver = resolver

    async def resolve(self, token: str, workspace_root: str) -> str:
        expanded = expand_shell_path(token)
        if not os.path.isabs(expanded):
            expanded = os.path.join(workspace_root, expanded)
        return await self.resolver.canonicalize(expanded)

    async def is_within(self, token: str, workspace_root: str, *, canonical_root: str | None = None) -> bool:
        canonical = await self.resolve(token, workspace_root)
        if canonical_root is None:
            canonical_root = await self.resolver.canonicalize(workspace_root)
        return is_contained(canonical, canonical_root)


def is_contained(path: str, root: str) -> bool:
    return PurePath(path).is_relative_to(PurePath(root))
