"""Invoke tasks for EspressoBox development and data management."""

import shutil
from pathlib import Path

from invoke import task
from invoke.context import Context


@task
def test(ctx: Context, verbose: bool = False, keyword: str = "") -> None:
    """Run the test suite.

    Args:
        ctx: Invoke context
        verbose: Enable verbose output
        keyword: Only run tests matching this pytest -k expression
    """
    cmd = "pytest"
    if verbose:
        cmd += " -v"
    if keyword:
        cmd += f" -k '{keyword}'"
    ctx.run(cmd, pty=True)


@task
def seed(ctx: Context) -> None:
    """Add the built-in brew method profiles to the database."""
    ctx.run("espressobox methods seed")


@task
def export(ctx: Context, format: str = "json", output_dir: str = "") -> None:
    """Export the diary (json, yaml, csv or xlsx)."""
    cmd = f"espressobox export --format {format}"
    if output_dir:
        cmd += f" --output-dir {output_dir}"
    ctx.run(cmd)


@task(name="import")
def import_file(ctx: Context, file: str, mode: str = "insert") -> None:
    """Import a JSON or YAML export; mode is insert or merge."""
    ctx.run(f"espressobox import {file} --mode {mode}")


@task
def backup(ctx: Context) -> None:
    """Write JSON and XLSX exports side by side."""
    export(ctx, format="json")
    export(ctx, format="xlsx")


@task
def clean(ctx: Context, data: bool = False) -> None:
    """Remove caches and build output.

    Args:
        ctx: Invoke context
        data: Also remove exports and stored images under data/
    """
    ctx.run("find . -name '__pycache__' -prune -exec rm -rf {} +", warn=True)
    for path in (".pytest_cache", "build", "dist"):
        shutil.rmtree(path, ignore_errors=True)

    if data:
        for directory in (Path("data/exports"), Path("data/images")):
            shutil.rmtree(directory, ignore_errors=True)
        print("Removed exports and images")
