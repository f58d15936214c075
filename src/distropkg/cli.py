import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from distropkg import __version__, app_config
from distropkg.config import Configuration
from distropkg.context import InstallerContext
from distropkg.errors import PackagingError
from distropkg.installer import PackageInstaller
from distropkg.setup import detect

app = typer.Typer(
    help="Distro-agnostic package installation",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _get_installer(ctx: typer.Context) -> PackageInstaller:
    """
    Get the installer set up by the root callback.
    """
    if ctx.obj is None:
        typer.echo("Installer is not initialized.", err=True)
        raise typer.Exit(code=1)

    return ctx.obj


def _fail(operation: str, error: Exception) -> None:
    """
    Report a fatal error for an operation and exit with non-zero status.
    """
    logger.error("%s failed: %s", operation, error)

    details = str(error)
    stderr = getattr(error, "stderr", "")
    if stderr:
        details += f"\n\n{stderr.strip()}"

    err_console.print(
        Panel.fit(
            details,
            title=f"Error while {operation}",
            style="red",
        )
    )
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"distropkg version {__version__}")
        raise typer.Exit()


@app.callback()
def cli(
    ctx: typer.Context,
    host: Annotated[
        Optional[str],
        typer.Option(
            "--host",
            "-H",
            help="Run on a remote host over SSH instead of locally",
        ),
    ] = None,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Disable all network repository operations"),
    ] = False,
    no_update_repos: Annotated[
        bool,
        typer.Option(
            "--no-update-repos",
            help="Skip repository refreshes unless forced",
        ),
    ] = False,
    no_sudo: Annotated[
        bool,
        typer.Option("--no-sudo", help="Do not run package managers through sudo"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """
    distropkg CLI
    """
    config = Configuration()
    config.update_from_mapping(app_config)

    if offline:
        config["options"]["offline"] = True
    if no_update_repos:
        config["options"]["no_update_repos"] = True
    if no_sudo:
        config["options"]["sudo"] = False

    ctx.obj = PackageInstaller(InstallerContext.from_config(config, host=host))


@app.command("detect")
def detect_os(ctx: typer.Context) -> None:
    """
    Show the detected platform.
    """
    installer = _get_installer(ctx)

    try:
        info = installer.detect_os()
        family, distro = detect.classify(info)
    except PackagingError as e:
        _fail("detecting platform", e)
        return

    console.print(
        Panel.fit(
            f"[bold]Host:[/bold] {installer.context.target}\n"
            f"[bold]Vendor:[/bold] {info.vendor}\n"
            f"[bold]Release:[/bold] {info.release}\n"
            f"[bold]Codename:[/bold] {info.codename}\n"
            "\n"
            f"[bold]Package Format:[/bold] {info.package_format.value}\n"
            f"[bold]Family:[/bold] {family.value}\n"
            f"[bold]Distro:[/bold] {distro}",
            title="Platform",
        )
    )


@app.command()
def install(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Packages to install")],
) -> None:
    """
    Install packages, refreshing repositories if needed.
    """
    installer = _get_installer(ctx)

    try:
        outcome = installer.install(names)
    except PackagingError as e:
        _fail("installing packages", e)
        return

    suffix = " (after retry)" if outcome.retried_after_failure else ""
    console.print(f"[green]Installed[/green] {', '.join(names)}{suffix}")


@app.command()
def uninstall(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Packages to remove")],
) -> None:
    """
    Remove packages. Failures are reported but never fatal.
    """
    installer = _get_installer(ctx)

    try:
        outcome = installer.uninstall(names)
    except PackagingError as e:
        _fail("uninstalling packages", e)
        return

    if outcome.succeeded:
        console.print(f"[green]Removed[/green] {', '.join(names)}")
    else:
        err_console.print(f"[yellow]Could not remove[/yellow] {', '.join(names)}")


@app.command()
def installed(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Packages to query")],
) -> None:
    """
    Check whether packages are installed.
    Exits with status 0 if all of them are, 1 otherwise.
    """
    installer = _get_installer(ctx)

    try:
        result = installer.is_installed(names)
    except PackagingError as e:
        _fail("finding if a package is installed", e)
        return

    if result:
        console.print(f"{', '.join(names)}: [green]installed[/green]")
        raise typer.Exit(code=0)

    console.print(f"{', '.join(names)}: [red]not installed[/red]")
    raise typer.Exit(code=1)


@app.command()
def update_repos(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Refresh even if disabled or done"),
    ] = False,
) -> None:
    """
    Refresh package repository metadata.
    """
    installer = _get_installer(ctx)

    try:
        installer.update_repos(force=force)
    except PackagingError as e:
        _fail("updating package repositories", e)
        return

    console.print("[green]Repositories are up to date[/green]")
