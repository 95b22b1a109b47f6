from __future__ import annotations

from fastapi import Request

from shellgate.services.background_supervisor import LocalBackgroundSupervisor
from shellgate.services.gateway import CommandGateway
from shellgate.services.workspace_resolver import TaskWorkspaceResolver


def get_gateway(request: Request) -> CommandGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise RuntimeError("CommandGateway not initialized")
    return gateway


def get_background_supervisor(request: Request) -> LocalBackgroundSupervisor:
    supervisor = getattr(request.app.state, "background_supervisor", None)
    if supervisor is None:
        raise RuntimeError("Background supervisor not initialized")
    return supervisor


def get_workspace_resolver(request: Request) -> TaskWorkspaceResolver:
    resolver = getattr(request.app.state, "workspace_resolver", None)
    if resolver is None:
        raise RuntimeError("Workspace resolver not initialized")
    return resolver
