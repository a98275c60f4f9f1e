"""Browser configuration for the manifest installer.

Where each browser looks for native messaging host manifests is
data, not code: it lives in browsers.toml. The copy shipped in the
package covers the well-known browsers; NATIVE_MESSAGING_BROWSERS_CONFIG
points at a replacement file that may add or redefine browsers.
"""
from __future__ import annotations

import logging
import os
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from returns.io import IOFailure
from returns.result import Failure, Result, Success
from returns.unsafe import unsafe_perform_io

from native_messaging.install import io_ops
from native_messaging.install.errors import InstallError

CONFIG_ENV = "NATIVE_MESSAGING_BROWSERS_CONFIG"
SCHEMA_VERSION = 1

Family = Literal["chromium", "firefox"]

_logger = logging.getLogger(__name__)


class KnownBrowser(StrEnum):
    """Browsers configured by the shipped browsers.toml."""

    CHROME = "chrome"
    EDGE = "edge"
    CHROMIUM = "chromium"
    BRAVE = "brave"
    VIVALDI = "vivaldi"
    FIREFOX = "firefox"
    LIBREWOLF = "librewolf"


KNOWN_BROWSERS: tuple[str, ...] = tuple(b.value for b in KnownBrowser)


class PathEntry(BaseModel):
    """Directory template holding manifests for one OS and scope."""

    model_config = ConfigDict(frozen=True)

    dir: str


class Scopes(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: PathEntry | None = None
    system: PathEntry | None = None


class PathsByOs(BaseModel):
    model_config = ConfigDict(frozen=True)

    macos: Scopes | None = None
    linux: Scopes | None = None
    windows: Scopes | None = None


class RegistryCfg(BaseModel):
    """Registry key templates; {name} is the host name."""

    model_config = ConfigDict(frozen=True)

    hkcu_key_template: str | None = None
    hklm_key_template: str | None = None


class WindowsCfg(BaseModel):
    model_config = ConfigDict(frozen=True)

    registry: RegistryCfg | None = None


class BrowserCfg(BaseModel):
    """Manifest placement for one browser."""

    model_config = ConfigDict(frozen=True)

    family: Family
    windows_registry: bool = False
    paths: PathsByOs
    windows: WindowsCfg | None = None


class BrowsersConfig(BaseModel):
    """Root of browsers.toml."""

    model_config = ConfigDict(frozen=True)

    schema_version: int
    browsers: dict[str, BrowserCfg] = Field(default_factory=dict)

    @field_validator("schema_version")
    @classmethod
    def _supported_schema(cls, value: int) -> int:
        if value != SCHEMA_VERSION:
            msg = (
                f"unsupported schema_version {value}"
                f" (expected {SCHEMA_VERSION})"
            )
            raise ValueError(msg)
        return value

    def browser(self, key: str) -> Result[BrowserCfg, InstallError]:
        """Look up one browser by key."""
        cfg = self.browsers.get(key)
        if cfg is None:
            return Failure(
                InstallError(
                    operation="config.browser",
                    error_type="UnknownBrowser",
                    message=f"unknown browser: {key}",
                    context={
                        "browser": key,
                        "configured": sorted(self.browsers),
                    },
                ),
            )
        return Success(cfg)


def parse_config(
    raw: str,
    source: str = "<string>",
) -> Result[BrowsersConfig, InstallError]:
    """Parse and validate TOML text into a BrowsersConfig."""
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        return Failure(
            InstallError(
                operation="config.parse_config",
                error_type="TOMLDecodeError",
                message=f"invalid TOML in {source}: {exc}",
                context={"source": source},
            ),
        )
    try:
        return Success(BrowsersConfig.model_validate(data))
    except ValidationError as exc:
        return Failure(
            InstallError(
                operation="config.parse_config",
                error_type="ValidationError",
                message=f"invalid browsers config in {source}: {exc}",
                context={"source": source, "errors": exc.error_count()},
            ),
        )


def load_config(
    path: Path | None = None,
) -> Result[BrowsersConfig, InstallError]:
    """Load the browsers config.

    Resolution order: explicit path, then the file named by
    NATIVE_MESSAGING_BROWSERS_CONFIG, then the shipped default.
    A named file that cannot be read is an error, never a silent
    fallback to the default.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV)
        if env_path:
            path = Path(env_path)
    if path is None:
        raw_result = io_ops.read_default_config()
        source = "<default browsers.toml>"
    else:
        raw_result = io_ops.read_text(path)
        source = str(path)
    if isinstance(raw_result, IOFailure):
        return Failure(unsafe_perform_io(raw_result.failure()))
    _logger.debug("loading browsers config from %s", source)
    return parse_config(unsafe_perform_io(raw_result.unwrap()), source)
