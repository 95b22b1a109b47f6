"""
gateway.py: the command execution safety gateway

Every command passes the same validation prefix before anything is spawned:
heredoc filtering, the danger blocklists, then the rm workspace guard. Only the
raw, unfiltered text is ever handed to the process runner or the
background supervisor.
"""
from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field

from shellgate.observability.logging import get_runtime_logger
from shellgate.observability.metrics import GatewayMetrics
from shellgate.observability.redaction import redact_command
from shellgate.observability.trace import current_trace_id
from shellgate.security.command_guard import detect_danger
from shellgate.security.heredoc import CheckedCommand
from shellgate.security.path_guard import FilesystemResolver, OsFilesystemResolver, PathContainmentValidator
from shellgate.security.rm_guard import RepositoryCheck, RmGuard
from shellgate.security.wildcard import DEFAULT_MAX_RESULTS, GlobSearch, WildcardExpander
from shellgate.services.background_supervisor import BackgroundTaskSupervisor
from shellgate.services.process_runner import ProcessRunner
from shellgate.services.result_formatter import CommandOutcome, blocked_outcome, format_result
from shellgate.services.workspace_resolver import WorkspaceRootResolver

logger = get_runtime_logger()

DEFAULT_COMMAND_TIMEOUT_MS = 300000
DEFAULT_IDLE_TIMEOUT_MS = 60000


@dataclass(slots=True)
class GatewayContext:
    """Collaborators shared by every call. Each must tolerate concurrent use."""

    process_runner: ProcessRunner
    glob_search: GlobSearch
    workspace_resolver: WorkspaceRootResolver
    repository_check: RepositoryCheck
    background_supervisor: BackgroundTaskSupervisor
    filesystem: FilesystemResolver = field(default_factory=OsFilesystemResolver)
    command_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS
    idle_timeout_ms: int = DEFAULT_IDLE_TIMEOUT_MS
    glob_max_results: int = DEFAULT_MAX_RESULTS
    metrics: GatewayMetrics = field(default_factory=GatewayMetrics)


@dataclass(frozen=True, slots=True)
class _Admission:
    checked: CheckedCommand
    workspace_root: str | None
    blocked: CommandOutcome | None = None


def effective_tool_id(tool_id: str | None) -> str:
    stripped = (tool_id or "").strip()
    if stripped:
        return stripped
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"bash_{int(time.time() * 1000)}_{suffix}"


class CommandGateway:
    def __init__(self, context: GatewayContext) -> None:
        self.context = context
        validator = PathContainmentValidator(context.filesystem)
        expander = WildcardExpander(context.glob_search, validator, max_results=context.glob_max_results)
        self.rm_guard = RmGuard(context.repository_check, validator, expander)

    @property
    def metrics(self) -> GatewayMetrics:
        return self.context.metrics

    async def _admit(self, command: str, task_id: str, tool_id: str, *, background: bool) -> _Admission:
        checked = CheckedCommand.parse(command)
        is_background = True if background else None

        danger = detect_danger(checked)
        if danger.dangerous:
            return _Admission(
                checked=checked,
                workspace_root=None,
                blocked=self._block(command, danger.reason or "", "dangerous", task_id, tool_id, is_background),
            )

        workspace_root = await self.context.workspace_resolver.get_effective_root(task_id)
        verdict = await self.rm_guard.check(checked, workspace_root)
        if not verdict.allowed:
            return _Admission(
                checked=checked,
                workspace_root=workspace_root,
                blocked=self._block(
                    command, verdict.reason or "", verdict.kind or "path_escape", task_id, tool_id, is_background
                ),
            )
        return _Admission(checked=checked, workspace_root=workspace_root)

    def _block(
        self,
        command: str,
        reason: str,
        kind: str,
        task_id: str,
        tool_id: str,
        is_background: bool | None,
    ) -> CommandOutcome:
        self.metrics.increment_blocked(kind)
        logger.warning(
            "command_blocked",
            extra={
                "trace_id": current_trace_id(),
                "task_id": task_id,
                "tool_id": tool_id,
                "command": redact_command(command),
                "reason": reason,
                "outcome": kind,
            },
        )
        return blocked_outcome(command, reason, is_background=is_background)

    async def execute(
        self,
        command: str,
        task_id: str,
        tool_id: str,
        *,
        timeout_ms: int | None = None,
        idle_timeout_ms: int | None = None,
    ) -> CommandOutcome:
        self.metrics.commands_total += 1
        try:
            admission = await self._admit(command, task_id, tool_id, background=False)
            if admission.blocked is not None:
                return admission.blocked

            effective_timeout = timeout_ms or self.context.command_timeout_ms
            effective_idle = idle_timeout_ms or self.context.idle_timeout_ms
            logger.info(
                "command_started",
                extra={
                    "trace_id": current_trace_id(),
                    "task_id": task_id,
                    "tool_id": tool_id,
                    "command": redact_command(command),
                    "path": admission.workspace_root,
                },
            )
            started = time.monotonic()
            result = await self.context.process_runner.run(
                command,
                admission.workspace_root,
                effective_timeout,
                effective_idle,
            )
            outcome = format_result(result, command, idle_timeout_ms=effective_idle)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "command_error",
                exc_info=True,
                extra={"trace_id": current_trace_id(), "task_id": task_id, "tool_id": tool_id, "reason": str(exc)},
            )
            self.metrics.commands_failed_total += 1
            return CommandOutcome(
                success=False,
                command=command,
                message="Error executing bash command",
                error=str(exc),
            )

        if result.timed_out or result.idle_timed_out:
            self.metrics.commands_timed_out_total += 1
        elif not outcome.success:
            self.metrics.commands_failed_total += 1
        logger.info(
            "command_finished",
            extra={
                "trace_id": current_trace_id(),
                "task_id": task_id,
                "tool_id": tool_id,
                "pid": result.pid,
                "status": result.exit_code,
                "outcome": "ok" if outcome.success else "error",
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return outcome

    async def execute_in_background(
        self,
        command: str,
        task_id: str,
        tool_id: str | None = None,
        max_timeout_ms: int | None = None,
    ) -> CommandOutcome:
        self.metrics.commands_total += 1
        try:
            admission = await self._admit(command, task_id, tool_id or "", background=True)
            if admission.blocked is not None:
                return admission.blocked

            resolved_tool_id = effective_tool_id(tool_id)
            background_id = await self.context.background_supervisor.spawn(
                command,
                task_id,
                resolved_tool_id,
                admission.workspace_root,
                max_timeout_ms,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "background_error",
                exc_info=True,
                extra={"trace_id": current_trace_id(), "task_id": task_id, "reason": str(exc)},
            )
            self.metrics.commands_failed_total += 1
            return CommandOutcome(
                success=False,
                command=command,
                message="Error executing background bash command",
                error=str(exc),
                is_background=True,
            )

        self.metrics.background_spawned_total += 1
        logger.info(
            "background_spawned",
            extra={
                "trace_id": current_trace_id(),
                "task_id": task_id,
                "tool_id": resolved_tool_id,
                "command": redact_command(command),
                "path": admission.workspace_root,
            },
        )
        return CommandOutcome(
            success=True,
            command=command,
            message=f"Command started in background (Task ID: {background_id})",
            task_id=background_id,
            is_background=True,
        )
