"""Install, verify and remove native messaging host manifests.

A manifest tells a browser which executable implements a host
name and which extensions may talk to it. Chromium-family browsers
allow-list extensions by origin (chrome-extension://<id>/); the
Firefox family allow-lists add-on IDs.
"""
from __future__ import annotations

import json
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure
from returns.unsafe import unsafe_perform_io

from native_messaging.install import io_ops
from native_messaging.install.errors import InstallError
from native_messaging.install.paths import current_os

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from native_messaging.install.config import BrowsersConfig, Family
    from native_messaging.install.paths import OsName, Scope
    from native_messaging.install.store import DescriptorStore

_logger = logging.getLogger(__name__)

_ALLOW_LIST_KEYS: dict[str, str] = {
    "chromium": "allowed_origins",
    "firefox": "allowed_extensions",
}

_NOT_CONFIGURED = frozenset(
    {"OsNotConfigured", "ScopeNotConfigured", "RegistryNotConfigured"},
)


class ChromiumHostManifest(BaseModel):
    """Manifest read by Chrome, Edge, Chromium, Brave and Vivaldi."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    path: str
    type: Literal["stdio"] = "stdio"
    allowed_origins: list[str] = Field(default_factory=list)


class FirefoxHostManifest(BaseModel):
    """Manifest read by Firefox and LibreWolf."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    path: str
    type: Literal["stdio"] = "stdio"
    allowed_extensions: list[str] = Field(default_factory=list)


HostManifest = ChromiumHostManifest | FirefoxHostManifest


def build_manifest(
    family: Family,
    *,
    host_name: str,
    description: str,
    exe_path: str,
    allowed_origins: Sequence[str] = (),
    allowed_extensions: Sequence[str] = (),
) -> HostManifest:
    """Manifest for a browser family; only that family's allow-list is kept."""
    match family:
        case "chromium":
            return ChromiumHostManifest(
                name=host_name,
                description=description,
                path=exe_path,
                allowed_origins=list(allowed_origins),
            )
        case "firefox":
            return FirefoxHostManifest(
                name=host_name,
                description=description,
                path=exe_path,
                allowed_extensions=list(allowed_extensions),
            )


def render_manifest(manifest: HostManifest) -> str:
    """Pretty-printed manifest JSON."""
    return json.dumps(manifest.model_dump(), indent=2) + "\n"


def _is_absolute(exe_path: str, os_name: OsName | None) -> bool:
    if os_name == "windows":
        return True
    return PurePosixPath(exe_path).is_absolute()


def install(
    config: BrowsersConfig,
    store: DescriptorStore,
    *,
    host_name: str,
    description: str,
    exe_path: Path | str,
    browsers: Iterable[str],
    scope: Scope,
    allowed_origins: Sequence[str] = (),
    allowed_extensions: Sequence[str] = (),
    os_name: OsName | None = None,
) -> IOResult[list[Path], InstallError]:
    """Write one manifest per browser; stops at the first failure.

    Returns the manifest paths written. On macOS and Linux the
    executable path must be absolute.
    """
    if os_name is None:
        os_name = current_os()
    exe = str(exe_path)
    if not _is_absolute(exe, os_name):
        return IOFailure(
            InstallError(
                operation="manifest.install",
                error_type="RelativeExePath",
                message="Manifest `path` must be absolute on macOS/Linux",
                context={"path": exe},
            ),
        )
    written: list[Path] = []
    for browser_key in browsers:
        browser = config.browser(browser_key)
        if isinstance(browser, Failure):
            return IOFailure(browser.failure())
        manifest = build_manifest(
            browser.unwrap().family,
            host_name=host_name,
            description=description,
            exe_path=exe,
            allowed_origins=allowed_origins,
            allowed_extensions=allowed_extensions,
        )
        result = store.write(
            browser_key, scope, host_name, render_manifest(manifest),
        )
        if isinstance(result, IOFailure):
            _logger.error("install for %s failed", browser_key)
            return result
        written.append(unsafe_perform_io(result.unwrap()))
    return IOSuccess(written)


def remove(
    config: BrowsersConfig,
    store: DescriptorStore,
    *,
    host_name: str,
    browsers: Iterable[str],
    scope: Scope,
) -> IOResult[None, InstallError]:
    """Delete manifests and registry pointers. Absent ones are fine."""
    for browser_key in browsers:
        browser = config.browser(browser_key)
        if isinstance(browser, Failure):
            return IOFailure(browser.failure())
        result = store.delete(browser_key, scope, host_name)
        if isinstance(result, IOFailure):
            return result
    return IOSuccess(None)


def validate_manifest_json(
    value: Any,
    family: Family,
    expected_name: str,
    *,
    os_name: OsName | None = None,
) -> bool:
    """Check a parsed manifest has the shape family expects."""
    if not isinstance(value, dict):
        return False
    if value.get("name") != expected_name:
        return False
    if value.get("type") != "stdio":
        return False
    exe = value.get("path")
    if not isinstance(exe, str):
        return False
    own_key = _ALLOW_LIST_KEYS.get(family)
    if own_key is None:
        return False
    if not isinstance(value.get(own_key), list):
        return False
    for other_family, other_key in _ALLOW_LIST_KEYS.items():
        if other_family != family and other_key in value:
            return False
    if os_name is None:
        os_name = current_os()
    return _is_absolute(exe, os_name)


def _verify_one(
    config: BrowsersConfig,
    store: DescriptorStore,
    browser_key: str,
    host_name: str,
    scope: Scope,
    os_name: OsName | None,
) -> IOResult[bool, InstallError]:
    browser = config.browser(browser_key)
    if isinstance(browser, Failure):
        return IOFailure(browser.failure())
    located = store.locate(browser_key, scope, host_name)
    if isinstance(located, IOFailure):
        return located
    path = unsafe_perform_io(located.unwrap())
    if path is None:
        return IOSuccess(False)  # noqa: FBT003
    raw = io_ops.read_text(path)
    if isinstance(raw, IOFailure):
        return raw
    try:
        value = json.loads(unsafe_perform_io(raw.unwrap()))
    except json.JSONDecodeError as exc:
        return IOFailure(
            InstallError(
                operation="manifest.verify_installed",
                error_type="JSONDecodeError",
                message=f"invalid JSON manifest: {exc}",
                context={"path": str(path), "browser": browser_key},
            ),
        )
    return IOSuccess(
        validate_manifest_json(
            value,
            browser.unwrap().family,
            host_name,
            os_name=os_name,
        ),
    )


def verify_installed(
    config: BrowsersConfig,
    store: DescriptorStore,
    *,
    host_name: str,
    scope: Scope,
    browsers: Iterable[str] | None = None,
    os_name: OsName | None = None,
) -> IOResult[bool, InstallError]:
    """True when any of browsers has a valid manifest.

    With browsers=None every configured browser is checked, and
    browsers that have no location for this OS and scope are
    skipped instead of failing the whole check.
    """
    keys = list(config.browsers) if browsers is None else list(browsers)
    for browser_key in keys:
        result = _verify_one(
            config, store, browser_key, host_name, scope, os_name,
        )
        if isinstance(result, IOFailure):
            err = unsafe_perform_io(result.failure())
            if browsers is None and err.error_type in _NOT_CONFIGURED:
                _logger.debug("skipping %s: %s", browser_key, err.message)
                continue
            return result
        if unsafe_perform_io(result.unwrap()):
            _logger.debug(
                "%s manifest for %s is valid", browser_key, host_name,
            )
            return IOSuccess(True)  # noqa: FBT003
    return IOSuccess(False)  # noqa: FBT003
