from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from shellgate.tools.output_policy import classify_output

MAX_OUTPUT_CHARS = 10000
MAX_FAILURE_STDOUT_CHARS = 5000
SUCCESS_PLACEHOLDER = "(output truncated on success)"


@dataclass(frozen=True, slots=True)
class RawExecutionResult:
    stdout: str
    stderr: str
    exit_code: int | None
    timed_out: bool = False
    idle_timed_out: bool = False
    pid: int | None = None


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    success: bool
    message: str
    command: str
    output: str | None = None
    error: str | None = None
    exit_code: int | None = None
    timed_out: bool | None = None
    idle_timed_out: bool | None = None
    pid: int | None = None
    task_id: str | None = None
    is_background: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


def truncate_tail(text: str | None, max_chars: int) -> str | None:
    """Keep the last ``max_chars`` characters; blank text becomes ``None``."""
    if not text or not text.strip():
        return None
    if len(text) > max_chars:
        return f"... ({len(text) - max_chars} chars truncated)\n{text[-max_chars:]}"
    return text


def blocked_outcome(command: str, reason: str, *, is_background: bool | None = None) -> CommandOutcome:
    return CommandOutcome(
        success=False,
        command=command,
        message=f"Command blocked: {reason}",
        error=reason,
        is_background=is_background,
    )


def format_result(result: RawExecutionResult, command: str, *, idle_timeout_ms: int) -> CommandOutcome:
    pid = "unknown" if result.pid is None else result.pid
    output: str | None
    error: str | None

    if result.idle_timed_out:
        message = f"Command running in background (idle timeout after {idle_timeout_ms // 1000}s). PID: {pid}"
        output = truncate_tail(result.stdout, MAX_OUTPUT_CHARS)
        error = truncate_tail(result.stderr, MAX_OUTPUT_CHARS)
    elif result.timed_out:
        message = f"Command timed out after max timeout. PID: {pid}"
        output = truncate_tail(result.stdout, MAX_OUTPUT_CHARS)
        error = truncate_tail(result.stderr, MAX_OUTPUT_CHARS)
    elif result.exit_code == 0:
        message = "Command executed successfully"
        if classify_output(command) == "minimal":
            output = SUCCESS_PLACEHOLDER if result.stdout.strip() else None
        else:
            output = truncate_tail(result.stdout, MAX_OUTPUT_CHARS)
        error = truncate_tail(result.stderr, MAX_OUTPUT_CHARS)
    else:
        message = f"Command failed with exit code {result.exit_code}"
        error = truncate_tail(result.stderr, MAX_OUTPUT_CHARS)
        if error is not None:
            output = truncate_tail(result.stdout, MAX_FAILURE_STDOUT_CHARS)
        else:
            output = truncate_tail(result.stdout, MAX_OUTPUT_CHARS)

    return CommandOutcome(
        success=result.idle_timed_out or result.timed_out or result.exit_code == 0,
        command=command,
        message=message,
        output=output,
        error=error,
        exit_code=result.exit_code,
        timed_out=result.timed_out,
        idle_timed_out=result.idle_timed_out,
        pid=result.pid,
    )
