"""Descriptor stores: where manifests are written and found.

macOS and Linux browsers find a manifest by its file location
alone. Chromium browsers and Firefox on Windows look the manifest
up through a registry key whose default value is the manifest
path. Both are exposed through the same DescriptorStore interface;
default_store() picks one for the running OS.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from returns.io import IOFailure, IOResult, IOSuccess
from returns.result import Failure
from returns.unsafe import unsafe_perform_io

from native_messaging.install import io_ops
from native_messaging.install.paths import (
    current_os,
    manifest_path,
    winreg_key_path,
)

if TYPE_CHECKING:
    from pathlib import Path

    from native_messaging.install.config import BrowsersConfig
    from native_messaging.install.errors import InstallError
    from native_messaging.install.paths import OsName, Scope

_logger = logging.getLogger(__name__)


class DescriptorStore(Protocol):
    """Place, find and delete host manifests for one browser."""

    def write(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
        content: str,
    ) -> IOResult[Path, InstallError]: ...

    def locate(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[Path | None, InstallError]: ...

    def delete(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[None, InstallError]: ...


@dataclass(frozen=True)
class FileDescriptorStore:
    """Manifests discovered by file location only."""

    config: BrowsersConfig
    os_name: OsName | None = None

    def path_for(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[Path, InstallError]:
        result = manifest_path(
            self.config,
            browser_key,
            scope,
            host_name,
            os_name=self.os_name,
        )
        if isinstance(result, Failure):
            return IOFailure(result.failure())
        return IOSuccess(result.unwrap())

    def write(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
        content: str,
    ) -> IOResult[Path, InstallError]:
        path_result = self.path_for(browser_key, scope, host_name)
        if isinstance(path_result, IOFailure):
            return path_result
        path = unsafe_perform_io(path_result.unwrap())
        _logger.info("writing %s manifest to %s", browser_key, path)
        return io_ops.write_text(path, content)

    def locate(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[Path | None, InstallError]:
        path_result = self.path_for(browser_key, scope, host_name)
        if isinstance(path_result, IOFailure):
            return path_result
        path = unsafe_perform_io(path_result.unwrap())
        return IOSuccess(path if io_ops.path_exists(path) else None)

    def delete(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[None, InstallError]:
        path_result = self.path_for(browser_key, scope, host_name)
        if isinstance(path_result, IOFailure):
            return path_result
        path = unsafe_perform_io(path_result.unwrap())
        removed = io_ops.remove_file(path)
        if isinstance(removed, IOFailure):
            return removed
        if unsafe_perform_io(removed.unwrap()):
            _logger.info("removed %s manifest %s", browser_key, path)
        return IOSuccess(None)


@dataclass(frozen=True)
class RegistryDescriptorStore(FileDescriptorStore):
    """Windows: manifest file plus a registry pointer to it.

    Browsers with windows_registry = false fall back to plain
    file lookup.
    """

    os_name: OsName | None = "windows"

    def _key_for(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[str | None, InstallError]:
        browser = self.config.browser(browser_key)
        if isinstance(browser, Failure):
            return IOFailure(browser.failure())
        if not browser.unwrap().windows_registry:
            return IOSuccess(None)
        key = winreg_key_path(self.config, browser_key, scope, host_name)
        if isinstance(key, Failure):
            return IOFailure(key.failure())
        return IOSuccess(key.unwrap())

    def write(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
        content: str,
    ) -> IOResult[Path, InstallError]:
        key_result = self._key_for(browser_key, scope, host_name)
        if isinstance(key_result, IOFailure):
            return key_result
        written = super().write(browser_key, scope, host_name, content)
        if isinstance(written, IOFailure):
            return written
        key = unsafe_perform_io(key_result.unwrap())
        path = unsafe_perform_io(written.unwrap())
        if key is None:
            return written
        _logger.info("pointing registry key %s at %s", key, path)
        pointer = io_ops.write_registry_pointer(scope, key, path)
        if isinstance(pointer, IOFailure):
            return pointer
        return written

    def locate(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[Path | None, InstallError]:
        key_result = self._key_for(browser_key, scope, host_name)
        if isinstance(key_result, IOFailure):
            return key_result
        key = unsafe_perform_io(key_result.unwrap())
        if key is None:
            return super().locate(browser_key, scope, host_name)
        pointer = io_ops.read_registry_pointer(scope, key)
        if isinstance(pointer, IOFailure):
            return pointer
        path = unsafe_perform_io(pointer.unwrap())
        if path is None or not io_ops.path_exists(path):
            return IOSuccess(None)
        return IOSuccess(path)

    def delete(
        self,
        browser_key: str,
        scope: Scope,
        host_name: str,
    ) -> IOResult[None, InstallError]:
        key_result = self._key_for(browser_key, scope, host_name)
        if isinstance(key_result, IOFailure):
            return key_result
        removed = super().delete(browser_key, scope, host_name)
        if isinstance(removed, IOFailure):
            return removed
        key = unsafe_perform_io(key_result.unwrap())
        if key is None:
            return removed
        deleted = io_ops.delete_registry_key(scope, key)
        if isinstance(deleted, IOFailure):
            return deleted
        return IOSuccess(None)


def default_store(config: BrowsersConfig) -> DescriptorStore:
    """Store for the running OS."""
    if current_os() == "windows":
        return RegistryDescriptorStore(config)
    return FileDescriptorStore(config)
