"""project-selfupdate command line interface.

Both commands share one SelfUpdater; errors from resolution, fetching or
extraction are reported as a single error line with exit status 1.
"""

import asyncio
import logging
import warnings
from pathlib import Path

import click

from . import __version__
from .exceptions import MultipleMatchesAdvisory
from .exceptions import SelfUpdateError
from .project import PyProjectContext
from .resolver import PackageResolver
from .updater import SelfUpdater


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s" if not verbose else "%(levelname)s %(name)s: %(message)s",
    )
    # The resolver logs the advisory already
    warnings.simplefilter("ignore", MultipleMatchesAdvisory)


def _updater(working_dir: Path) -> SelfUpdater:
    try:
        project = PyProjectContext.discover(working_dir)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not read {working_dir / 'pyproject.toml'}: {e}") from e
    return SelfUpdater(PackageResolver(project), target_dir=working_dir.resolve())


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-d",
    "--working-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project directory (holds pyproject.toml and the lock file).",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.pass_context
def main(ctx: click.Context, working_dir: Path, verbose: bool) -> None:
    """Update a project from a packaged distribution."""
    _setup_logging(verbose)
    ctx.obj = working_dir


@main.command(name="check-update")
@click.argument("version", required=False)
@click.option("--package", "package_name", default=None, help="Package name (owner/name).")
@click.pass_obj
def check_update(working_dir: Path, version: str | None, package_name: str | None) -> None:
    """Check whether an update is available for the project."""
    updater = _updater(working_dir)
    try:
        status = updater.check(package_name, version)
    except SelfUpdateError as e:
        raise click.ClickException(e.message) from e

    package = status.package
    if status.is_current:
        click.echo(
            f"No new version is available. The project is already updated to version "
            f"{package.pretty_version} for {package.name}"
        )
    else:
        click.echo(f"A new version {package.pretty_version} of {package.name} is now available")


@main.command(name="self-update")
@click.argument("version", required=False)
@click.option("--package", "package_name", default=None, help="Package name (owner/name).")
@click.pass_obj
def self_update(working_dir: Path, version: str | None, package_name: str | None) -> None:
    """Update the project to the resolved version."""
    updater = _updater(working_dir)
    try:
        result = asyncio.run(updater.update(package_name, version))
    except SelfUpdateError as e:
        raise click.ClickException(e.message) from e

    package = result.package
    if result.applied:
        click.echo(f"Project has been patched with version {package.pretty_version} for {package.name}")
    else:
        click.echo(f"Project is already patched with version {package.pretty_version} for {package.name}")


if __name__ == "__main__":
    main()
