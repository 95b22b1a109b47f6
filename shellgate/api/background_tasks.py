from __future__ import annotations

from fastapi import APIRouter, Depends

from shellgate.deps import get_background_supervisor

router = APIRouter(prefix="/v1", tags=["background-tasks"])


@router.get("/background-tasks")
async def list_background_tasks(
    task_id: str | None = None,
    running: bool = False,
    supervisor=Depends(get_background_supervisor),
):
    records = supervisor.list_tasks(task_id=task_id, running_only=running)
    return {"tasks": [record.snapshot() for record in records]}


@router.get("/background-tasks/{background_id}")
async def get_background_task(background_id: str, supervisor=Depends(get_background_supervisor)):
    return {"task": supervisor.get_task(background_id).snapshot()}


@router.post("/background-tasks/{background_id}/kill")
async def kill_background_task(background_id: str, supervisor=Depends(get_background_supervisor)):
    record = await supervisor.kill(background_id)
    return {"task": record.snapshot()}
