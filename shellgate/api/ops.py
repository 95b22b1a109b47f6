from __future__ import annotations

from fastapi import APIRouter, Depends

from shellgate.deps import get_gateway

router = APIRouter(tags=["ops"])


@router.get("/health")
async def health():
    return {"ok": True}


@router.get("/v1/ops/metrics")
async def metrics(gateway=Depends(get_gateway)):
    return gateway.metrics.snapshot()
