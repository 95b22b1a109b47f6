from __future__ import annotations

from pathlib import Path
from typing import Protocol


class WorkspaceRootError(ValueError):
    pass


class WorkspaceRootResolver(Protocol):
    async def get_effective_root(self, task_id: str) -> str | None:
        ...


class TaskWorkspaceResolver:
    """Workspace root per task: a task-specific root (its worktree) wins over the default."""

    def __init__(self, default_root: str | None = None) -> None:
        self.default_root = default_root
        self._task_roots: dict[str, str] = {}

    async def get_effective_root(self, task_id: str) -> str | None:
        return self._task_roots.get(task_id, self.default_root)

    def set_task_root(self, task_id: str, workspace_root: str) -> str:
        root = Path(workspace_root).expanduser()
        if not root.is_absolute():
            raise WorkspaceRootError(f"workspace root must be absolute: {workspace_root}")
        if not root.is_dir():
            raise WorkspaceRootError(f"workspace root is not a directory: {workspace_root}")
        self._task_roots[task_id] = str(root)
        return str(root)

    def clear_task_root(self, task_id: str) -> bool:
        return self._task_roots.pop(task_id, None) is not None
