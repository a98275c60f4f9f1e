"""I/O boundary for the installer -- filesystem and registry access.

This is the single mock point for installer tests. The registry
functions import the stdlib winreg module lazily, so this module
imports cleanly on every OS.
"""
from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

from returns.io import IOFailure, IOResult, IOSuccess

from native_messaging.install.errors import InstallError

if TYPE_CHECKING:
    from native_messaging.install.paths import Scope

_DEFAULT_CONFIG_RESOURCE = "browsers.toml"


def _os_error(
    operation: str,
    exc: OSError,
    path: Path | str,
) -> InstallError:
    return InstallError(
        operation=f"io_ops.{operation}",
        error_type=type(exc).__name__,
        message=f"{operation} failed for {path}: {exc}",
        context={"path": str(path)},
    )


def read_text(path: Path) -> IOResult[str, InstallError]:
    """Read a UTF-8 text file. Returns IOResult, never raises."""
    try:
        return IOSuccess(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return IOFailure(
            InstallError(
                operation="io_ops.read_text",
                error_type="FileNotFoundError",
                message=f"File not found: {path}",
                context={"path": str(path)},
            ),
        )
    except (OSError, UnicodeDecodeError) as exc:
        return IOFailure(
            InstallError(
                operation="io_ops.read_text",
                error_type=type(exc).__name__,
                message=f"Cannot read {path}: {exc}",
                context={"path": str(path)},
            ),
        )


def read_default_config() -> IOResult[str, InstallError]:
    """Read the browsers.toml shipped inside the package."""
    resource = resources.files("native_messaging.install").joinpath(
        _DEFAULT_CONFIG_RESOURCE,
    )
    try:
        return IOSuccess(resource.read_text(encoding="utf-8"))
    except OSError as exc:
        return IOFailure(
            _os_error("read_default_config", exc, _DEFAULT_CONFIG_RESOURCE),
        )


def path_exists(path: Path) -> bool:
    """Check whether a file exists at path."""
    return path.is_file()


def write_text(path: Path, content: str) -> IOResult[Path, InstallError]:
    """Write content to path, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        return IOFailure(_os_error("write_text", exc, path))
    return IOSuccess(path)


def remove_file(path: Path) -> IOResult[bool, InstallError]:
    """Delete path. Success(False) when there was nothing to delete."""
    try:
        path.unlink()
    except FileNotFoundError:
        return IOSuccess(False)  # noqa: FBT003
    except OSError as exc:
        return IOFailure(_os_error("remove_file", exc, path))
    return IOSuccess(True)  # noqa: FBT003


def _hive(scope: Scope) -> int:
    import winreg  # noqa: PLC0415

    if scope == "system":
        return winreg.HKEY_LOCAL_MACHINE
    return winreg.HKEY_CURRENT_USER


def write_registry_pointer(
    scope: Scope,
    key_path: str,
    manifest_path: Path,
) -> IOResult[None, InstallError]:
    """Set the default value of key_path to the manifest location."""
    try:
        import winreg  # noqa: PLC0415

        with winreg.CreateKeyEx(
            _hive(scope), key_path, 0, winreg.KEY_WRITE,
        ) as key:
            winreg.SetValueEx(
                key, "", 0, winreg.REG_SZ, str(manifest_path),
            )
    except (ImportError, OSError) as exc:
        return IOFailure(
            InstallError(
                operation="io_ops.write_registry_pointer",
                error_type=type(exc).__name__,
                message=f"Cannot write registry key {key_path}: {exc}",
                context={"key": key_path, "scope": str(scope)},
            ),
        )
    return IOSuccess(None)


def read_registry_pointer(
    scope: Scope,
    key_path: str,
) -> IOResult[Path | None, InstallError]:
    """Read the manifest location stored at key_path, None if absent."""
    try:
        import winreg  # noqa: PLC0415

        with winreg.OpenKey(_hive(scope), key_path) as key:
            value, _ = winreg.QueryValueEx(key, "")
    except FileNotFoundError:
        return IOSuccess(None)
    except (ImportError, OSError) as exc:
        return IOFailure(
            InstallError(
                operation="io_ops.read_registry_pointer",
                error_type=type(exc).__name__,
                message=f"Cannot read registry key {key_path}: {exc}",
                context={"key": key_path, "scope": str(scope)},
            ),
        )
    if not isinstance(value, str) or not value:
        return IOSuccess(None)
    return IOSuccess(Path(value))


def delete_registry_key(
    scope: Scope,
    key_path: str,
) -> IOResult[bool, InstallError]:
    """Delete key_path. Success(False) when the key did not exist."""
    try:
        import winreg  # noqa: PLC0415

        winreg.DeleteKey(_hive(scope), key_path)
    except FileNotFoundError:
        return IOSuccess(False)  # noqa: FBT003
    except (ImportError, OSError) as exc:
        return IOFailure(
            InstallError(
                operation="io_ops.delete_registry_key",
                error_type=type(exc).__name__,
                message=f"Cannot delete registry key {key_path}: {exc}",
                context={"key": key_path, "scope": str(scope)},
            ),
        )
    return IOSuccess(True)  # noqa: FBT003
