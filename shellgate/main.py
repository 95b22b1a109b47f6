from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shellgate.api import background_tasks, commands, ops, workspaces
from shellgate.config import Settings, load_settings
from shellgate.errors import GatewayApiError, error_from_exception
from shellgate.observability.logging import get_runtime_logger
from shellgate.observability.trace import TRACE_HEADER, bind_trace_id, current_trace_id
from shellgate.security.path_guard import OsFilesystemResolver
from shellgate.services.background_supervisor import LocalBackgroundSupervisor
from shellgate.services.gateway import CommandGateway, GatewayContext
from shellgate.services.glob_search import LocalGlobSearch
from shellgate.services.process_runner import LocalProcessRunner
from shellgate.services.repository_check import GitRepositoryCheck
from shellgate.services.workspace_resolver import TaskWorkspaceResolver

settings = load_settings()
logger = get_runtime_logger(settings.log_level)


def build_gateway(config: Settings) -> tuple[CommandGateway, LocalBackgroundSupervisor, TaskWorkspaceResolver]:
    supervisor = LocalBackgroundSupervisor(default_max_timeout_ms=config.background_max_timeout_ms)
    resolver = TaskWorkspaceResolver(default_root=config.workspace_root)
    context = GatewayContext(
        process_runner=LocalProcessRunner(),
        glob_search=LocalGlobSearch(),
        workspace_resolver=resolver,
        repository_check=GitRepositoryCheck(timeout_ms=config.git_check_timeout_ms),
        background_supervisor=supervisor,
        filesystem=OsFilesystemResolver(),
        command_timeout_ms=config.command_timeout_ms,
        idle_timeout_ms=config.idle_timeout_ms,
        glob_max_results=config.glob_max_results,
    )
    return CommandGateway(context), supervisor, resolver


@asynccontextmanager
async def lifespan(app: FastAPI):
    gateway, supervisor, resolver = build_gateway(settings)
    app.state.gateway = gateway
    app.state.background_supervisor = supervisor
    app.state.workspace_resolver = resolver
    logger.info("gateway_started", extra={"path": settings.workspace_root})

    yield

    for record in supervisor.list_tasks(running_only=True):
        await supervisor.kill(record.background_id)


app = FastAPI(title="Shellgate Command Gateway", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def trace_middleware(request: Request, call_next):
    trace_id = bind_trace_id(request.headers.get(TRACE_HEADER))
    request.state.trace_id = trace_id
    started = datetime.now(tz=timezone.utc)
    try:
        response = await call_next(request)
    except Exception as exc:  # noqa: BLE001
        status_code, payload = error_from_exception(exc, trace_id)
        response = JSONResponse(status_code=status_code, content=payload)
    duration_ms = int((datetime.now(tz=timezone.utc) - started).total_seconds() * 1000)
    logger.info(
        "http_request",
        extra={
            "trace_id": trace_id,
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "outcome": "ok" if response.status_code < 400 else "error",
        },
    )
    response.headers[TRACE_HEADER] = trace_id
    return response


@app.exception_handler(Exception)
async def exception_handler(request: Request, exc: Exception):
    trace_id = str(getattr(request.state, "trace_id", None) or current_trace_id() or bind_trace_id(None))
    status_code, payload = error_from_exception(exc, trace_id)
    response = JSONResponse(status_code=status_code, content=payload)
    response.headers[TRACE_HEADER] = trace_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return await exception_handler(request, exc)


@app.exception_handler(GatewayApiError)
async def gateway_error_handler(request: Request, exc: GatewayApiError):
    return await exception_handler(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return await exception_handler(request, exc)


app.include_router(commands.router)
app.include_router(background_tasks.router)
app.include_router(workspaces.router)
app.include_router(ops.router)


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
