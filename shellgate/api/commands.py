from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from shellgate.deps import get_gateway
from shellgate.errors import GatewayApiError

router = APIRouter(prefix="/v1", tags=["commands"])


def _required_text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise GatewayApiError(
            code="E_SCHEMA_INVALID",
            message=f"{key} is required",
            retryable=False,
            status_code=400,
            cause="command_payload",
        )
    return value


def _optional_timeout(payload: dict, key: str) -> int | None:
    value: Any = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise GatewayApiError(
            code="E_SCHEMA_INVALID",
            message=f"{key} must be a positive integer",
            retryable=False,
            status_code=400,
            cause="command_payload",
        )
    return value


@router.post("/commands")
async def run_command(payload: dict, gateway=Depends(get_gateway)):
    command = _required_text(payload, "command")
    task_id = _required_text(payload, "task_id").strip()
    tool_id = str(payload.get("tool_id") or "")

    if payload.get("run_in_background"):
        outcome = await gateway.execute_in_background(
            command,
            task_id,
            tool_id,
            _optional_timeout(payload, "max_timeout_ms"),
        )
    else:
        outcome = await gateway.execute(
            command,
            task_id,
            tool_id,
            timeout_ms=_optional_timeout(payload, "timeout_ms"),
            idle_timeout_ms=_optional_timeout(payload, "idle_timeout_ms"),
        )
    return outcome.to_dict()
