from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from shellgate.services.background_supervisor import BackgroundTaskNotFoundError
from shellgate.services.workspace_resolver import WorkspaceRootError

DEFAULT_INTERNAL_MESSAGE = "Internal server error"


@dataclass(slots=True)
class GatewayApiError(Exception):
    code: str
    message: str
    retryable: bool
    status_code: int
    details: dict[str, Any] | None = None
    cause: str | None = None


@dataclass(frozen=True, slots=True)
class _ErrorRule:
    status_code: int
    code: str
    retryable: bool
    message: str | None = None
    cause: str | None = None
    detail_key: str | None = None


# First match wins: WorkspaceRootError is a ValueError.
_ERROR_RULES: tuple[tuple[type[BaseException] | tuple[type[BaseException], ...], _ErrorRule], ...] = (
    (
        BackgroundTaskNotFoundError,
        _ErrorRule(404, "E_NOT_FOUND", False, "Background task not found.", "background_task_not_found", "background_id"),
    ),
    (WorkspaceRootError, _ErrorRule(400, "E_SCHEMA_INVALID", False, cause="workspace_root")),
    (asyncio.TimeoutError, _ErrorRule(504, "E_TOOL_TIMEOUT", True, "Operation timed out.", "timeout")),
    ((KeyError, ValueError, TypeError), _ErrorRule(400, "E_SCHEMA_INVALID", False, "Invalid request or payload shape.")),
)


def build_gateway_error(
    *,
    code: str,
    message: str,
    trace_id: str,
    retryable: bool,
    details: dict[str, Any] | None = None,
    cause: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": code,
        "message": message,
        "trace_id": trace_id,
        "retryable": retryable,
        "ts": datetime.now(tz=timezone.utc).isoformat(),
    }
    if details:
        payload["details"] = details
    if cause:
        payload["cause"] = cause
    return payload


def error_response(*, trace_id: str, **fields: Any) -> dict[str, Any]:
    return {"error": build_gateway_error(trace_id=trace_id, **fields)}


def _http_error_code(status_code: int) -> str:
    if status_code == 404:
        return "E_NOT_FOUND"
    return "E_INTERNAL" if status_code >= 500 else "E_SCHEMA_INVALID"


def error_from_exception(exc: Exception, trace_id: str) -> tuple[int, dict[str, Any]]:
    """Map an exception raised behind the API to a status code and error envelope."""
    if isinstance(exc, GatewayApiError):
        return exc.status_code, error_response(
            trace_id=trace_id,
            code=exc.code,
            message=exc.message,
            retryable=exc.retryable,
            details=exc.details,
            cause=exc.cause,
        )

    if isinstance(exc, RequestValidationError):
        return 422, error_response(
            trace_id=trace_id,
            code="E_SCHEMA_INVALID",
            message="Request validation failed.",
            retryable=False,
            details={"errors": exc.errors()},
            cause="request_validation_error",
        )

    if isinstance(exc, HTTPException):
        return exc.status_code, error_response(
            trace_id=trace_id,
            code=_http_error_code(exc.status_code),
            message=str(exc.detail),
            retryable=exc.status_code >= 500,
            cause="http_exception",
        )

    for exc_type, rule in _ERROR_RULES:
        if isinstance(exc, exc_type):
            return rule.status_code, error_response(
                trace_id=trace_id,
                code=rule.code,
                message=rule.message or str(exc),
                retryable=rule.retryable,
                details={rule.detail_key: str(exc)} if rule.detail_key else None,
                cause=rule.cause or exc.__class__.__name__,
            )

    return 500, error_response(
        trace_id=trace_id,
        code="E_INTERNAL",
        message=DEFAULT_INTERNAL_MESSAGE,
        retryable=False,
        cause=exc.__class__.__name__,
    )
