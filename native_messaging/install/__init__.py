"""Manifest installer -- registers a host so browsers can launch it.

Public API: browser config loading, manifest locations, the
descriptor stores, and install/remove/verify.
"""
from native_messaging.install.config import (
    KNOWN_BROWSERS,
    BrowserCfg,
    BrowsersConfig,
    KnownBrowser,
    load_config,
    parse_config,
)
from native_messaging.install.errors import InstallError
from native_messaging.install.manifest import (
    ChromiumHostManifest,
    FirefoxHostManifest,
    build_manifest,
    install,
    remove,
    validate_manifest_json,
    verify_installed,
)
from native_messaging.install.paths import (
    Scope,
    current_os,
    manifest_path,
    resolve_dir_template,
    winreg_key_path,
)
from native_messaging.install.store import (
    DescriptorStore,
    FileDescriptorStore,
    RegistryDescriptorStore,
    default_store,
)

__all__ = [
    "KNOWN_BROWSERS",
    "BrowserCfg",
    "BrowsersConfig",
    "ChromiumHostManifest",
    "DescriptorStore",
    "FileDescriptorStore",
    "FirefoxHostManifest",
    "InstallError",
    "KnownBrowser",
    "RegistryDescriptorStore",
    "Scope",
    "build_manifest",
    "current_os",
    "default_store",
    "install",
    "load_config",
    "manifest_path",
    "parse_config",
    "remove",
    "resolve_dir_template",
    "validate_manifest_json",
    "verify_installed",
    "winreg_key_path",
]
