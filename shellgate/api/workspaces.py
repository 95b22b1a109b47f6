from __future__ import annotations

from fastapi import APIRouter, Depends

from shellgate.deps import get_workspace_resolver
from shellgate.errors import GatewayApiError

router = APIRouter(prefix="/v1", tags=["workspaces"])


@router.get("/tasks/{task_id}/workspace")
async def get_task_workspace(task_id: str, resolver=Depends(get_workspace_resolver)):
    return {"task_id": task_id, "workspace_root": await resolver.get_effective_root(task_id)}


@router.put("/tasks/{task_id}/workspace")
async def set_task_workspace(task_id: str, payload: dict, resolver=Depends(get_workspace_resolver)):
    workspace_root = str(payload.get("workspace_root") or "").strip()
    if not workspace_root:
        raise GatewayApiError(
            code="E_SCHEMA_INVALID",
            message="workspace_root is required",
            retryable=False,
            status_code=400,
            cause="workspace_payload",
        )
    return {"task_id": task_id, "workspace_root": resolver.set_task_root(task_id, workspace_root)}


@router.delete("/tasks/{task_id}/workspace")
async def clear_task_workspace(task_id: str, resolver=Depends(get_workspace_resolver)):
    return {"ok": resolver.clear_task_root(task_id)}
