import asyncio

import pytest

import shellgate.services.repository_check as repository_check
from shellgate.security.rm_guard import RepositoryCheckError
from shellgate.services.repository_check import GitRepositoryCheck


class _FakeProcess:
    def __init__(self, returncode, stdout=b"", delay=0.0):
        self.returncode = returncode
        self._stdout = stdout
        self._delay = delay
        self.killed = False

    async def communicate(self):
        await asyncio.sleep(self._delay)
        return self._stdout, b""

    def kill(self):
        self.killed = True

    async def wait(self):
        return self.returncode


def _patch_exec(monkeypatch, process=None, error=None):
    calls = []

    async def fake_exec(*args, **kwargs):
        calls.append((args, kwargs))
        if error is not None:
            raise error
        return process

    monkeypatch.setattr(repository_check.asyncio, "create_subprocess_exec", fake_exec)
    return calls


def test_inside_work_tree(monkeypatch):
    calls = _patch_exec(monkeypatch, _FakeProcess(0, b"true\n"))

    assert asyncio.run(GitRepositoryCheck().is_inside_work_tree("/ws"))
    assert calls[0][0] == ("git", "rev-parse", "--is-inside-work-tree")
    assert calls[0][1]["cwd"] == "/ws"


def test_outside_work_tree(monkeypatch):
    _patch_exec(monkeypatch, _FakeProcess(128, b""))

    assert not asyncio.run(GitRepositoryCheck().is_inside_work_tree("/tmp"))


def test_bare_repository_is_not_a_work_tree(monkeypatch):
    _patch_exec(monkeypatch, _FakeProcess(0, b"false\n"))

    assert not asyncio.run(GitRepositoryCheck().is_inside_work_tree("/srv/repo.git"))


def test_missing_git_raises(monkeypatch):
    _patch_exec(monkeypatch, error=FileNotFoundError("git"))

    with pytest.raises(RepositoryCheckError):
        asyncio.run(GitRepositoryCheck().is_inside_work_tree("/ws"))


def test_slow_git_times_out(monkeypatch):
    process = _FakeProcess(0, b"true\n", delay=1.0)
    _patch_exec(monkeypatch, process)

    with pytest.raises(RepositoryCheckError):
        asyncio.run(GitRepositoryCheck(timeout_ms=50).is_inside_work_tree("/ws"))
    assert process.killed
