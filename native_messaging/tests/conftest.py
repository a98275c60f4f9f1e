"""Shared test fixtures for the native_messaging test suite."""
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from returns.result import Success

from native_messaging.install.config import BrowsersConfig, load_config

if TYPE_CHECKING:
    from pathlib import Path
    from unittest.mock import MagicMock


@pytest.fixture
def sandbox_env(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Path:
    """Point HOME and the Windows profile dirs into tmp_path."""
    for var, sub in (
        ("HOME", "home"),
        ("APPDATA", "appdata_roaming"),
        ("LOCALAPPDATA", "appdata_local"),
        ("PROGRAMDATA", "programdata"),
    ):
        target = tmp_path / sub
        target.mkdir()
        monkeypatch.setenv(var, str(target))
    monkeypatch.delenv("NATIVE_MESSAGING_BROWSERS_CONFIG", raising=False)
    return tmp_path


@pytest.fixture
def browsers_config(monkeypatch: pytest.MonkeyPatch) -> BrowsersConfig:
    """The browsers.toml shipped with the package."""
    monkeypatch.delenv("NATIVE_MESSAGING_BROWSERS_CONFIG", raising=False)
    result = load_config()
    assert isinstance(result, Success)
    return result.unwrap()


@pytest.fixture
def mock_install_io_ops(mocker: MagicMock) -> MagicMock:
    """Return a mocked installer io_ops module for boundary testing."""
    return mocker.patch("native_messaging.install.store.io_ops")  # type: ignore[no-any-return]
