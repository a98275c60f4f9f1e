"""Manifest and registry locations.

Turns the directory and key templates from browsers.toml into
concrete locations for one browser, scope and host name.
"""
from __future__ import annotations

import os
import platform
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from returns.result import Failure, Result, Success

from native_messaging.install.errors import InstallError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from native_messaging.install.config import BrowsersConfig, Scopes

OsName = Literal["macos", "linux", "windows"]

_OS_MAP: dict[str, OsName] = {
    "Linux": "linux",
    "Darwin": "macos",
    "Windows": "windows",
}

TEMPLATE_VARS: tuple[str, ...] = (
    "HOME",
    "LOCALAPPDATA",
    "APPDATA",
    "PROGRAMDATA",
)


class Scope(StrEnum):
    """Install for the current user or for every user on the machine."""

    USER = "user"
    SYSTEM = "system"


def current_os() -> OsName | None:
    """Name of the running OS as used in browsers.toml, None if unsupported."""
    return _OS_MAP.get(platform.system())


def resolve_dir_template(
    template: str,
    env: Mapping[str, str] | None = None,
) -> Result[Path, InstallError]:
    """Substitute {HOME}, {LOCALAPPDATA}, {APPDATA} and {PROGRAMDATA}.

    A variable is only required when the template references it.
    """
    environ = os.environ if env is None else env
    resolved = template
    for var in TEMPLATE_VARS:
        token = "{" + var + "}"
        if token not in resolved:
            continue
        value = environ.get(var)
        if not value:
            return Failure(
                InstallError(
                    operation="paths.resolve_dir_template",
                    error_type="EnvVarMissing",
                    message=f"env var {var} not set (needed for {token})",
                    context={"template": template, "var": var},
                ),
            )
        resolved = resolved.replace(token, value)
    return Success(Path(resolved))


def _scopes_for(
    config: BrowsersConfig,
    browser_key: str,
    os_name: OsName | None,
) -> Result[Scopes, InstallError]:
    browser = config.browser(browser_key)
    if isinstance(browser, Failure):
        return Failure(browser.failure())
    if os_name is None:
        return Failure(
            InstallError(
                operation="paths.manifest_path",
                error_type="UnsupportedOs",
                message=f"unsupported OS: {platform.system()}",
            ),
        )
    scopes = getattr(browser.unwrap().paths, os_name)
    if scopes is None:
        return Failure(
            InstallError(
                operation="paths.manifest_path",
                error_type="OsNotConfigured",
                message=f"browser {browser_key} not configured for {os_name}",
                context={"browser": browser_key, "os": os_name},
            ),
        )
    return Success(scopes)


def manifest_dir(
    config: BrowsersConfig,
    browser_key: str,
    scope: Scope,
    *,
    os_name: OsName | None = None,
    env: Mapping[str, str] | None = None,
) -> Result[Path, InstallError]:
    """Directory where browser_key looks for manifests in scope."""
    if os_name is None:
        os_name = current_os()
    scopes = _scopes_for(config, browser_key, os_name)
    if isinstance(scopes, Failure):
        return Failure(scopes.failure())
    entry = getattr(scopes.unwrap(), Scope(scope).value)
    if entry is None:
        return Failure(
            InstallError(
                operation="paths.manifest_path",
                error_type="ScopeNotConfigured",
                message=(
                    f"scope {Scope(scope).value} not configured"
                    f" for {browser_key} on {os_name}"
                ),
                context={
                    "browser": browser_key,
                    "os": os_name,
                    "scope": str(scope),
                },
            ),
        )
    return resolve_dir_template(entry.dir, env)


def manifest_path(
    config: BrowsersConfig,
    browser_key: str,
    scope: Scope,
    host_name: str,
    *,
    os_name: OsName | None = None,
    env: Mapping[str, str] | None = None,
) -> Result[Path, InstallError]:
    """Full path of the <host_name>.json manifest for one browser."""
    directory = manifest_dir(
        config, browser_key, scope, os_name=os_name, env=env,
    )
    if isinstance(directory, Failure):
        return directory
    return Success(directory.unwrap() / f"{host_name}.json")


def winreg_key_path(
    config: BrowsersConfig,
    browser_key: str,
    scope: Scope,
    host_name: str,
) -> Result[str, InstallError]:
    """Registry key (under HKCU or HKLM) pointing at the manifest."""
    browser = config.browser(browser_key)
    if isinstance(browser, Failure):
        return Failure(browser.failure())
    cfg = browser.unwrap()
    if not cfg.windows_registry:
        return Failure(
            InstallError(
                operation="paths.winreg_key_path",
                error_type="RegistryDisabled",
                message=f"registry not enabled for {browser_key}",
                context={"browser": browser_key},
            ),
        )
    registry = cfg.windows.registry if cfg.windows else None
    if registry is None:
        return Failure(
            InstallError(
                operation="paths.winreg_key_path",
                error_type="RegistryNotConfigured",
                message=(
                    f"missing [browsers.{browser_key}.windows.registry]"
                    " config"
                ),
                context={"browser": browser_key},
            ),
        )
    if Scope(scope) is Scope.SYSTEM:
        template = registry.hklm_key_template
    else:
        template = registry.hkcu_key_template
    if template is None:
        return Failure(
            InstallError(
                operation="paths.winreg_key_path",
                error_type="RegistryNotConfigured",
                message=(
                    f"missing registry template for scope"
                    f" {Scope(scope).value} of {browser_key}"
                ),
                context={"browser": browser_key, "scope": str(scope)},
            ),
        )
    return Success(template.replace("{name}", host_name))
