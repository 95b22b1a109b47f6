"""
process_runner.py: runs one shell command in the foreground

The foreground wait ends when the process exits, when the hard timeout elapses,
or when neither stream has produced output for the idle timeout. A process that
outlives the wait keeps running; its streams keep draining so it never blocks on
a full pipe, but later output is discarded. The caller gets what was captured
so far plus the pid.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from shellgate.services.result_formatter import RawExecutionResult

logger = logging.getLogger("shellgate.runtime")


class ProcessRunner(Protocol):
    async def run(
        self,
        command: str,
        cwd: str | None,
        timeout_ms: int,
        idle_timeout_ms: int | None = None,
    ) -> RawExecutionResult:
        ...


class _StreamCollector:
    def __init__(self, stream: asyncio.StreamReader | None, loop: asyncio.AbstractEventLoop) -> None:
        self._stream = stream
        self._loop = loop
        self._chunks: list[bytes] = []
        self.last_activity = loop.time()
        self.detached = False

    async def drain(self) -> None:
        if self._stream is None:
            return
        while True:
            chunk = await self._stream.read(4096)
            if not chunk:
                return
            # Detached output is still read so the pipe never fills, then dropped.
            if not self.detached:
                self._chunks.append(chunk)
            self.last_activity = self._loop.time()

    def text(self) -> str:
        return b"".join(self._chunks).decode("utf-8", errors="replace")

    def detach(self) -> str:
        """Return the text captured so far and stop keeping output."""
        captured = self.text()
        self.detached = True
        self._chunks.clear()
        return captured


class LocalProcessRunner:
    def __init__(self) -> None:
        # Readers of processes that outlived their foreground wait.
        self._detached: set[asyncio.Task] = set()

    async def run(
        self,
        command: str,
        cwd: str | None,
        timeout_ms: int,
        idle_timeout_ms: int | None = None,
    ) -> RawExecutionResult:
        loop = asyncio.get_running_loop()
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        stdout = _StreamCollector(proc.stdout, loop)
        stderr = _StreamCollector(proc.stderr, loop)
        readers = [asyncio.create_task(stdout.drain()), asyncio.create_task(stderr.drain())]
        waiter = asyncio.create_task(proc.wait())

        deadline = loop.time() + timeout_ms / 1000
        idle_seconds = idle_timeout_ms / 1000 if idle_timeout_ms else None
        timed_out = False
        idle_timed_out = False

        while True:
            now = loop.time()
            remaining = deadline - now
            if idle_seconds is not None:
                idle_deadline = max(stdout.last_activity, stderr.last_activity) + idle_seconds
                remaining = min(remaining, idle_deadline - now)

            done, _ = await asyncio.wait({waiter}, timeout=max(remaining, 0))
            if waiter in done:
                break

            now = loop.time()
            if now >= deadline:
                timed_out = True
                break
            if idle_seconds is not None and now - max(stdout.last_activity, stderr.last_activity) >= idle_seconds:
                idle_timed_out = True
                break

        if waiter.done():
            # A backgrounded grandchild can hold the pipes open after the shell exits.
            grace = max(deadline - loop.time(), 0)
            if idle_seconds is not None:
                grace = min(grace, idle_seconds)
            _, pending = await asyncio.wait(readers, timeout=grace)
            self._detach(pending)
            return RawExecutionResult(
                stdout=stdout.detach(),
                stderr=stderr.detach(),
                exit_code=proc.returncode,
                pid=proc.pid,
            )

        captured_stdout, captured_stderr = stdout.detach(), stderr.detach()
        self._detach([*readers, waiter])
        logger.info(
            "command_detached",
            extra={"pid": proc.pid, "outcome": "timeout" if timed_out else "idle_timeout"},
        )
        return RawExecutionResult(
            stdout=captured_stdout,
            stderr=captured_stderr,
            exit_code=None,
            timed_out=timed_out,
            idle_timed_out=idle_timed_out,
            pid=proc.pid,
        )

    def _detach(self, tasks) -> None:
        for task in tasks:
            self._detached.add(task)
            task.add_done_callback(self._detached.discard)
