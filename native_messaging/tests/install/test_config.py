"""Tests for browsers.toml loading."""
from __future__ import annotations

from typing import TYPE_CHECKING

from returns.io import IOFailure
from returns.result import Failure, Success

from native_messaging.install.config import (
    CONFIG_ENV,
    KNOWN_BROWSERS,
    BrowsersConfig,
    load_config,
    parse_config,
)
from native_messaging.install.errors import InstallError

if TYPE_CHECKING:
    from pathlib import Path

    import pytest
    from pytest_mock import MockerFixture

_CUSTOM = """
schema_version = 1

[browsers.thorium]
family = "chromium"
paths.linux.user.dir = "{HOME}/.config/thorium/NativeMessagingHosts"
"""


class TestDefaultConfig:
    """Tests for the browsers.toml shipped in the package."""

    def test_has_every_known_browser(
        self, browsers_config: BrowsersConfig,
    ) -> None:
        """All seven well-known browsers are configured."""
        assert set(KNOWN_BROWSERS) <= set(browsers_config.browsers)
        assert len(KNOWN_BROWSERS) == 7

    def test_families(self, browsers_config: BrowsersConfig) -> None:
        """Firefox and LibreWolf are firefox family, the rest chromium."""
        families = {
            key: cfg.family for key, cfg in browsers_config.browsers.items()
        }
        assert families["firefox"] == "firefox"
        assert families["librewolf"] == "firefox"
        for key in ("chrome", "edge", "chromium", "brave", "vivaldi"):
            assert families[key] == "chromium"

    def test_every_browser_has_linux_user_dir(
        self, browsers_config: BrowsersConfig,
    ) -> None:
        """Every browser can be installed per-user on Linux."""
        for cfg in browsers_config.browsers.values():
            assert cfg.paths.linux is not None
            assert cfg.paths.linux.user is not None

    def test_registry_templates_use_name(
        self, browsers_config: BrowsersConfig,
    ) -> None:
        """Registry templates substitute the host name."""
        chrome = browsers_config.browsers["chrome"]
        assert chrome.windows_registry is True
        assert chrome.windows is not None
        assert chrome.windows.registry is not None
        assert chrome.windows.registry.hkcu_key_template == (
            "Software\\Google\\Chrome\\NativeMessagingHosts\\{name}"
        )

    def test_unknown_browser_lookup(
        self, browsers_config: BrowsersConfig,
    ) -> None:
        """Looking up an unconfigured key is a Failure."""
        result = browsers_config.browser("netscape")
        assert isinstance(result, Failure)
        assert result.failure().error_type == "UnknownBrowser"
        assert result.failure().message == "unknown browser: netscape"


class TestParseConfig:
    """Tests for parse_config."""

    def test_custom_browser_accepted(self) -> None:
        """Keys outside the known set are allowed."""
        result = parse_config(_CUSTOM)
        assert isinstance(result, Success)
        thorium = result.unwrap().browsers["thorium"]
        assert thorium.windows_registry is False
        assert thorium.paths.macos is None

    def test_wrong_schema_version(self) -> None:
        """Only schema_version 1 is supported."""
        result = parse_config("schema_version = 2\n[browsers]\n")
        assert isinstance(result, Failure)
        err = result.failure()
        assert err.error_type == "ValidationError"
        assert "unsupported schema_version 2" in err.message

    def test_unknown_family(self) -> None:
        """Families other than chromium/firefox are rejected at load."""
        raw = _CUSTOM.replace('"chromium"', '"safari"')
        result = parse_config(raw)
        assert isinstance(result, Failure)
        assert result.failure().error_type == "ValidationError"

    def test_invalid_toml(self) -> None:
        """Broken TOML is a TOMLDecodeError failure."""
        result = parse_config("schema_version = [", source="broken.toml")
        assert isinstance(result, Failure)
        assert result.failure().error_type == "TOMLDecodeError"
        assert "broken.toml" in result.failure().message


class TestLoadConfig:
    """Tests for load_config resolution order."""

    def test_explicit_path(self, tmp_path: Path) -> None:
        """An explicit path is used as-is."""
        path = tmp_path / "browsers.toml"
        path.write_text(_CUSTOM, encoding="utf-8")
        result = load_config(path)
        assert list(result.unwrap().browsers) == ["thorium"]

    def test_env_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """NATIVE_MESSAGING_BROWSERS_CONFIG replaces the default."""
        path = tmp_path / "custom.toml"
        path.write_text(_CUSTOM, encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV, str(path))
        result = load_config()
        assert list(result.unwrap().browsers) == ["thorium"]

    def test_missing_env_file_is_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A named file that does not exist is an error, not the default."""
        monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "nope.toml"))
        result = load_config()
        assert isinstance(result, Failure)
        assert result.failure().error_type == "FileNotFoundError"

    def test_default_read_failure(
        self, mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failing package-data read surfaces as a Failure."""
        monkeypatch.delenv(CONFIG_ENV, raising=False)
        err = InstallError(
            operation="io_ops.read_default_config",
            error_type="OSError",
            message="gone",
        )
        mocker.patch(
            "native_messaging.install.config.io_ops.read_default_config",
            return_value=IOFailure(err),
        )
        result = load_config()
        assert isinstance(result, Failure)
        assert result.failure() is err
