# cli.py
from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Callable

import click

from treebuild.config import Options, get_options, set_options
from treebuild.model import DiscoveryError
from treebuild.registry import Units
from treebuild.ui.console import Console, get_console, set_console


def load_units(roots: tuple[str, ...]) -> Units:
    """
    Discover units under every root.

    Raises:
        SystemExit: discovery failed (missing root, malformed manifest)
    """
    console = get_console()
    try:
        return Units.load(roots)
    except DiscoveryError as e:
        console.print_error(
            "Discovery failed",
            e.message,
            path=e.path,
            hint="fix the manifest or point at another tree with `treebuild --root <dir> list`",
        )
        sys.exit(1)


def run_batch(title: str, units: Units, batch: Callable[[], bool]) -> None:
    """Run one batch, print the verdict, exit 1 on failure."""
    console = get_console()
    console.print_run_started(title, len(units), get_options().concurrency)
    start = time.monotonic()
    try:
        ok = batch()
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    console.print_results(title, ok, time.monotonic() - start)
    if not ok:
        sys.exit(1)


@click.group()
@click.option(
    "-j",
    "--concurrency",
    default=None,
    type=click.IntRange(min=1),
    envvar="TREEBUILD_CONCURRENCY",
    help="Number of units processed at the same time (defaults to CPU count)",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show verbose output and stack traces")
@click.option(
    "--root",
    "roots",
    multiple=True,
    default=(".",),
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory to search for packages (repeatable)",
)
@click.pass_context
def cli(ctx, concurrency, verbose, roots):
    """treebuild: run scripts across every package in a source tree."""
    options = Options(concurrency=concurrency or 0, verbose=verbose)
    set_options(options)
    set_console(Console(verbose=options.verbose))
    ctx.ensure_object(dict)
    ctx.obj["roots"] = tuple(roots)


@cli.command(name="list")
@click.option("--match", "patterns", multiple=True, help="Glob on package names (repeatable)")
@click.pass_context
def list_units(ctx, patterns):
    """List discovered packages. `*` matched, `+` needed by a matched package."""
    console = get_console()
    units = load_units(ctx.obj["roots"])
    if patterns:
        units.select(patterns)
    for unit in units:
        console.print_unit(
            unit.name_colored,
            unit.version,
            str(unit.directory),
            matched=units.selection.is_matched(unit),
            marked=units.selection.is_marked_for_build(unit),
        )
    console.print_info(f"\n{len(units)} package(s)")


@cli.command()
@click.argument("script")
@click.option("--match", "patterns", multiple=True, help="Glob on package names (repeatable)")
@click.option("--sequential", is_flag=True, default=False, help="Run one package at a time, in discovery order")
@click.option("--status/--no-status", default=True, show_default=True, help="Print a line per finished package")
@click.pass_context
def run(ctx, script, patterns, sequential, status):
    """Run SCRIPT in every selected package that declares it."""
    units = load_units(ctx.obj["roots"])
    units.select(patterns)
    run_batch(
        f"run {script}",
        units,
        lambda: units.run_script(script, parallel=not sequential, status=status),
    )


@cli.command()
@click.option("--status/--no-status", default=True, show_default=True, help="Print a line per finished package")
@click.pass_context
def clean(ctx, status):
    """Run the clean script of every package that has one."""
    units = load_units(ctx.obj["roots"])
    run_batch("clean", units, lambda: units.clean(status=status))


@cli.command()
@click.option(
    "--repo-root",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False, exists=True),
    help="Directory holding the shared .npmrc",
)
@click.pass_context
def install(ctx, repo_root):
    """Install every package's dependencies in place (no hoisting)."""
    units = load_units(ctx.obj["roots"])
    run_batch("install", units, lambda: units.no_hoist_install(Path(repo_root).resolve()))


@cli.command()
@click.pass_context
def nuke(ctx):
    """Delete node_modules in every package."""
    units = load_units(ctx.obj["roots"])
    run_batch("nuke", units, units.clean_node_modules)


@cli.command(name="fix-manifests")
@click.pass_context
def fix_manifests(ctx):
    """Rewrite every manifest with keys in conventional order."""
    units = load_units(ctx.obj["roots"])
    run_batch("fix-manifests", units, units.save_manifests)


if __name__ == "__main__":
    cli()
