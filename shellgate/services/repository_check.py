from __future__ import annotations

import asyncio
import logging

from shellgate.security.rm_guard import RepositoryCheckError

logger = logging.getLogger("shellgate.runtime")


class GitRepositoryCheck:
    """Asks git whether a directory is inside a work tree. Never cached."""

    def __init__(self, timeout_ms: int = 5000) -> None:
        self.timeout_ms = timeout_ms

    async def is_inside_work_tree(self, path: str) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                "git",
                "rev-parse",
                "--is-inside-work-tree",
                cwd=path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise RepositoryCheckError(f"git rev-parse could not start in {path}: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise RepositoryCheckError(f"git rev-parse timed out after {self.timeout_ms}ms") from exc

        inside = proc.returncode == 0 and stdout.decode().strip() == "true"
        logger.debug("repository_check path=%s inside=%s", path, inside)
        return inside
