"""
background_supervisor.py: long-running commands detached from the caller

spawn() registers a record and returns its id at once; the process is started
and watched by an asyncio task, so the pid is only known once the caller polls.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

logger = logging.getLogger("shellgate.runtime")

DEFAULT_MAX_TIMEOUT_MS = 2 * 60 * 60 * 1000
OUTPUT_TAIL_CHARS = 10000

RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"
KILLED = "killed"
TIMEOUT = "timeout"


class BackgroundTaskNotFoundError(Exception):
    pass


class BackgroundTaskSupervisor(Protocol):
    async def spawn(
        self,
        command: str,
        task_id: str,
        tool_id: str,
        cwd: str | None = None,
        max_timeout_ms: int | None = None,
    ) -> str:
        ...


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


@dataclass(slots=True)
class BackgroundTask:
    background_id: str
    task_id: str
    tool_id: str
    command: str
    cwd: str | None
    max_timeout_ms: int
    started_at: str
    status: str = RUNNING
    pid: int | None = None
    exit_code: int | None = None
    stdout_tail: str = ""
    stderr_tail: str = ""
    finished_at: str | None = None

    def snapshot(self) -> dict[str, Any]:
        return asdict(self)


class LocalBackgroundSupervisor:
    def __init__(self, default_max_timeout_ms: int = DEFAULT_MAX_TIMEOUT_MS) -> None:
        self.default_max_timeout_ms = default_max_timeout_ms
        self._tasks: dict[str, BackgroundTask] = {}
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._watchers: dict[str, asyncio.Task] = {}
        self._kill_requested: set[str] = set()

    async def spawn(
        self,
        command: str,
        task_id: str,
        tool_id: str,
        cwd: str | None = None,
        max_timeout_ms: int | None = None,
    ) -> str:
        background_id = f"bg_{uuid.uuid4().hex[:12]}"
        record = BackgroundTask(
            background_id=background_id,
            task_id=task_id,
            tool_id=tool_id,
            command=command,
            cwd=cwd,
            max_timeout_ms=max_timeout_ms or self.default_max_timeout_ms,
            started_at=_now_iso(),
        )
        self._tasks[background_id] = record
        watcher = asyncio.create_task(self._watch(record))
        self._watchers[background_id] = watcher
        watcher.add_done_callback(lambda _task: self._forget(background_id))
        return background_id

    def _forget(self, background_id: str) -> None:
        # Finished records stay listable; only the bookkeeping goes.
        self._watchers.pop(background_id, None)
        self._processes.pop(background_id, None)
        self._kill_requested.discard(background_id)

    def get_task(self, background_id: str) -> BackgroundTask:
        record = self._tasks.get(background_id)
        if record is None:
            raise BackgroundTaskNotFoundError(background_id)
        return record

    def list_tasks(self, *, task_id: str | None = None, running_only: bool = False) -> list[BackgroundTask]:
        records = list(self._tasks.values())
        if task_id is not None:
            records = [record for record in records if record.task_id == task_id]
        if running_only:
            records = [record for record in records if record.status == RUNNING]
        return records

    async def kill(self, background_id: str) -> BackgroundTask:
        record = self.get_task(background_id)
        if record.status != RUNNING:
            return record

        self._kill_requested.add(background_id)
        proc = self._processes.get(background_id)
        if proc is not None:
            _kill_group(proc)
        watcher = self._watchers.get(background_id)
        if watcher is not None:
            await asyncio.wait({watcher}, timeout=5)
        return record

    async def wait(self, background_id: str, timeout: float | None = None) -> BackgroundTask:
        record = self.get_task(background_id)
        watcher = self._watchers.get(background_id)
        if watcher is not None:
            await asyncio.wait({watcher}, timeout=timeout)
        return record

    async def _watch(self, record: BackgroundTask) -> None:
        key = record.background_id
        try:
            proc = await asyncio.create_subprocess_shell(
                record.command,
                cwd=record.cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            record.status = FAILED
            record.stderr_tail = str(exc)
            record.finished_at = _now_iso()
            logger.warning("background_spawn_failed", extra={"task_id": record.task_id, "reason": str(exc)})
            return

        self._processes[key] = proc
        record.pid = proc.pid
        if key in self._kill_requested:
            _kill_group(proc)

        readers = [
            asyncio.create_task(self._collect(proc.stdout, record, "stdout_tail")),
            asyncio.create_task(self._collect(proc.stderr, record, "stderr_tail")),
        ]
        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout=record.max_timeout_ms / 1000)
        except asyncio.TimeoutError:
            timed_out = True
            _kill_group(proc)
            await proc.wait()
        await asyncio.wait(readers, timeout=1)
        for reader in readers:
            reader.cancel()

        record.exit_code = proc.returncode
        record.finished_at = _now_iso()
        if key in self._kill_requested:
            record.status = KILLED
        elif timed_out:
            record.status = TIMEOUT
        else:
            record.status = COMPLETED if proc.returncode == 0 else FAILED
        self._processes.pop(key, None)
        self._kill_requested.discard(key)
        logger.info(
            "background_finished",
            extra={"task_id": record.task_id, "tool_id": record.tool_id, "pid": record.pid, "outcome": record.status},
        )

    @staticmethod
    async def _collect(stream: asyncio.StreamReader | None, record: BackgroundTask, attribute: str) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                return
            text = getattr(record, attribute) + chunk.decode("utf-8", errors="replace")
            setattr(record, attribute, text[-OUTPUT_TAIL_CHARS:])


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
