import pytest

from shellgate.config import load_settings

_VARS = (
    "SHELLGATE_HOST",
    "SHELLGATE_PORT",
    "SHELLGATE_WORKSPACE_ROOT",
    "SHELLGATE_COMMAND_TIMEOUT_MS",
    "SHELLGATE_IDLE_TIMEOUT_MS",
    "SHELLGATE_GIT_CHECK_TIMEOUT_MS",
    "SHELLGATE_GLOB_MAX_RESULTS",
    "SHELLGATE_BACKGROUND_MAX_TIMEOUT_MS",
    "SHELLGATE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.host == "127.0.0.1"
    assert settings.port == 8050
    assert settings.workspace_root is None
    assert settings.command_timeout_ms == 300000
    assert settings.idle_timeout_ms == 60000
    assert settings.git_check_timeout_ms == 5000
    assert settings.glob_max_results == 10000
    assert settings.background_max_timeout_ms == 7200000
    assert settings.log_level == "INFO"


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("SHELLGATE_WORKSPACE_ROOT", str(tmp_path))
    monkeypatch.setenv("SHELLGATE_IDLE_TIMEOUT_MS", " 1500 ")
    monkeypatch.setenv("SHELLGATE_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.workspace_root == str(tmp_path.resolve())
    assert settings.idle_timeout_ms == 1500
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["0", "-5", "soon"])
def test_invalid_numbers_are_rejected(monkeypatch, value):
    monkeypatch.setenv("SHELLGATE_COMMAND_TIMEOUT_MS", value)

    with pytest.raises(RuntimeError):
        load_settings()
