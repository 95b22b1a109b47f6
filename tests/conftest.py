from __future__ import annotations

import importlib
import os
from dataclasses import dataclass, field
from typing import Any

import pytest
from fastapi.testclient import TestClient

import shellgate.main as main_module
from shellgate.security.wildcard import GlobMatch
from shellgate.services.gateway import CommandGateway, GatewayContext
from shellgate.services.result_formatter import RawExecutionResult

WORKSPACE = "/ws"


class FakeProcessRunner:
    def __init__(self, result: RawExecutionResult | Exception | None = None) -> None:
        self.result = result or RawExecutionResult(stdout="ok", stderr="", exit_code=0, pid=4242)
        self.calls: list[dict[str, Any]] = []

    async def run(self, command: str, cwd: str | None, timeout_ms: int, idle_timeout_ms: int | None = None):
        self.calls.append(
            {"command": command, "cwd": cwd, "timeout_ms": timeout_ms, "idle_timeout_ms": idle_timeout_ms}
        )
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeGlobSearch:
    def __init__(self, matches: dict[str, list[GlobMatch]] | None = None, error: Exception | None = None) -> None:
        self.matches = matches or {}
        self.error = error
        self.calls: list[tuple[str, str, int]] = []

    async def search(self, pattern: str, base_path: str, max_results: int) -> list[GlobMatch]:
        self.calls.append((pattern, base_path, max_results))
        if self.error is not None:
            raise self.error
        return list(self.matches.get(pattern, []))


class FakeRepositoryCheck:
    def __init__(self, inside: bool = True, error: Exception | None = None) -> None:
        self.inside = inside
        self.error = error
        self.calls: list[str] = []

    async def is_inside_work_tree(self, path: str) -> bool:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.inside


class FakeWorkspaceResolver:
    def __init__(self, root: str | None = WORKSPACE) -> None:
        self.root = root

    async def get_effective_root(self, task_id: str) -> str | None:
        del task_id
        return self.root


class FakeSupervisor:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def spawn(self, command, task_id, tool_id, cwd=None, max_timeout_ms=None) -> str:
        self.calls.append(
            {"command": command, "task_id": task_id, "tool_id": tool_id, "cwd": cwd, "max_timeout_ms": max_timeout_ms}
        )
        if self.error is not None:
            raise self.error
        return "bg_123"


class MappingResolver:
    """Canonicalizes with an in-memory symlink table instead of the filesystem."""

    def __init__(self, links: dict[str, str] | None = None) -> None:
        self.links = links or {}

    async def canonicalize(self, path: str) -> str:
        current = os.path.normpath(path)
        for _ in range(40):
            for link, target in self.links.items():
                if current == link or current.startswith(link.rstrip("/") + "/"):
                    current = os.path.normpath(target + current[len(link) :])
                    break
            else:
                return current
        return current


def glob_match(path: str, canonical_path: str | None = None, is_directory: bool = False) -> GlobMatch:
    return GlobMatch(path=path, canonical_path=canonical_path or path, is_directory=is_directory)


@dataclass
class GatewayHarness:
    gateway: CommandGateway
    runner: FakeProcessRunner
    glob: FakeGlobSearch
    repository: FakeRepositoryCheck
    resolver: FakeWorkspaceResolver
    supervisor: FakeSupervisor
    filesystem: MappingResolver = field(default_factory=MappingResolver)


@pytest.fixture
def make_gateway():
    def _make(
        *,
        root: str | None = WORKSPACE,
        result: RawExecutionResult | Exception | None = None,
        inside_repo: bool = True,
        repo_error: Exception | None = None,
        glob_matches: dict[str, list[GlobMatch]] | None = None,
        glob_error: Exception | None = None,
        links: dict[str, str] | None = None,
        supervisor_error: Exception | None = None,
    ) -> GatewayHarness:
        runner = FakeProcessRunner(result)
        glob = FakeGlobSearch(glob_matches, glob_error)
        repository = FakeRepositoryCheck(inside_repo, repo_error)
        resolver = FakeWorkspaceResolver(root)
        supervisor = FakeSupervisor(supervisor_error)
        filesystem = MappingResolver(links)
        gateway = CommandGateway(
            GatewayContext(
                process_runner=runner,
                glob_search=glob,
                workspace_resolver=resolver,
                repository_check=repository,
                background_supervisor=supervisor,
                filesystem=filesystem,
            )
        )
        return GatewayHarness(gateway, runner, glob, repository, resolver, supervisor, filesystem)

    return _make


@pytest.fixture
def isolated_client(tmp_path, monkeypatch: pytest.MonkeyPatch):
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    monkeypatch.setenv("SHELLGATE_WORKSPACE_ROOT", str(workspace))
    monkeypatch.setenv("SHELLGATE_IDLE_TIMEOUT_MS", "5000")
    module = importlib.reload(main_module)
    with TestClient(module.app) as client:
        yield client


@pytest.fixture
def resolver_with_links():
    return MappingResolver


@pytest.fixture
def make_match():
    return glob_match
