"""Command line for registering a native messaging host.

    native-messaging install --name com.example.host \\
        --description "Example host" --path /opt/example/host \\
        --origin chrome-extension://<id>/ --browser chrome
    native-messaging verify --name com.example.host
    native-messaging remove --name com.example.host --browser chrome
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click
from returns.io import IOFailure
from returns.result import Failure
from returns.unsafe import unsafe_perform_io

from native_messaging.host.log import setup_logging
from native_messaging.install import manifest
from native_messaging.install.config import load_config
from native_messaging.install.paths import Scope, manifest_path
from native_messaging.install.store import default_store

if TYPE_CHECKING:
    from native_messaging.install.config import BrowsersConfig
    from native_messaging.install.errors import InstallError

_SCOPE_CHOICE = click.Choice([s.value for s in Scope])


def _fail(err: InstallError) -> NoReturn:
    click.echo(f"error: {err.message}", err=True)
    sys.exit(1)


def _config(ctx: click.Context) -> BrowsersConfig:
    return ctx.obj["config"]


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=(
        "browsers.toml to use instead of the built-in one"
        " (or set NATIVE_MESSAGING_BROWSERS_CONFIG)"
    ),
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None) -> None:
    """Install, verify and remove native messaging host manifests."""
    setup_logging()
    result = load_config(config_path)
    if isinstance(result, Failure):
        _fail(result.failure())
    ctx.obj = {"config": result.unwrap()}


@main.command()
@click.option(
    "--name",
    "host_name",
    required=True,
    help="Host name, e.g. com.example.host",
)
@click.option("--description", default="", help="Human-readable description")
@click.option(
    "--path",
    "exe_path",
    required=True,
    help="Absolute path to the host executable",
)
@click.option(
    "--origin",
    "origins",
    multiple=True,
    help="Allowed origin for Chromium browsers (repeatable)",
)
@click.option(
    "--extension",
    "extensions",
    multiple=True,
    help="Allowed add-on ID for Firefox browsers (repeatable)",
)
@click.option(
    "--browser",
    "browsers",
    multiple=True,
    required=True,
    help="Browser key from browsers.toml (repeatable)",
)
@click.option("--scope", type=_SCOPE_CHOICE, default="user", show_default=True)
@click.pass_context
def install(  # noqa: PLR0913
    ctx: click.Context,
    host_name: str,
    description: str,
    exe_path: str,
    origins: tuple[str, ...],
    extensions: tuple[str, ...],
    browsers: tuple[str, ...],
    scope: str,
) -> None:
    """Write a manifest for each browser."""
    config = _config(ctx)
    result = manifest.install(
        config,
        default_store(config),
        host_name=host_name,
        description=description,
        exe_path=exe_path,
        browsers=browsers,
        scope=Scope(scope),
        allowed_origins=origins,
        allowed_extensions=extensions,
    )
    if isinstance(result, IOFailure):
        _fail(unsafe_perform_io(result.failure()))
    for path in unsafe_perform_io(result.unwrap()):
        click.echo(f"installed {path}")


@main.command()
@click.option("--name", "host_name", required=True)
@click.option("--browser", "browsers", multiple=True, required=True)
@click.option("--scope", type=_SCOPE_CHOICE, default="user", show_default=True)
@click.pass_context
def remove(
    ctx: click.Context,
    host_name: str,
    browsers: tuple[str, ...],
    scope: str,
) -> None:
    """Delete the manifest (and registry pointer) for each browser."""
    config = _config(ctx)
    result = manifest.remove(
        config,
        default_store(config),
        host_name=host_name,
        browsers=browsers,
        scope=Scope(scope),
    )
    if isinstance(result, IOFailure):
        _fail(unsafe_perform_io(result.failure()))
    click.echo(f"removed {host_name} from {', '.join(browsers)}")


@main.command()
@click.option("--name", "host_name", required=True)
@click.option(
    "--browser",
    "browsers",
    multiple=True,
    help="Browser keys to check (default: every configured browser)",
)
@click.option("--scope", type=_SCOPE_CHOICE, default="user", show_default=True)
@click.pass_context
def verify(
    ctx: click.Context,
    host_name: str,
    browsers: tuple[str, ...],
    scope: str,
) -> None:
    """Exit 0 when some browser can find a valid manifest, else 1."""
    config = _config(ctx)
    result = manifest.verify_installed(
        config,
        default_store(config),
        host_name=host_name,
        scope=Scope(scope),
        browsers=browsers or None,
    )
    if isinstance(result, IOFailure):
        _fail(unsafe_perform_io(result.failure()))
    if not unsafe_perform_io(result.unwrap()):
        click.echo(f"{host_name} is not installed", err=True)
        sys.exit(1)
    click.echo(f"{host_name} is installed")


@main.command("path")
@click.option("--name", "host_name", required=True)
@click.option("--browser", "browser", required=True)
@click.option("--scope", type=_SCOPE_CHOICE, default="user", show_default=True)
@click.pass_context
def show_path(
    ctx: click.Context,
    host_name: str,
    browser: str,
    scope: str,
) -> None:
    """Print where the manifest for one browser belongs."""
    result = manifest_path(_config(ctx), browser, Scope(scope), host_name)
    if isinstance(result, Failure):
        _fail(result.failure())
    click.echo(str(result.unwrap()))


if __name__ == "__main__":
    main()
