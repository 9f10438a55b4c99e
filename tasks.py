"""Invoke tasks for developing fsmeta.

Every task shells out to `uv` so the virtual environment, test run, and lint
checks all use the same resolved dependencies.
"""

from __future__ import annotations

import shlex
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"


def _uv(ctx: Context, args: Sequence[str], *, dry_run: bool = False, **run_kwargs) -> None:
    """Run a uv subcommand from the project root.

    Args:
        ctx: Invoke execution context.
        args: Arguments placed after the `uv` executable.
        dry_run: Print the command instead of running it.
        **run_kwargs: Extra keyword arguments for ``ctx.run``.
    """
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    with ctx.cd(str(PROJECT_ROOT)):
        ctx.run(command, echo=True, pty=True, **run_kwargs)


@task(help={"dev": "Install the dev extra (pytest, ruff, mypy, invoke)."})
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment with pyproject.toml."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _uv(ctx, args)


@task(help={"clean": "Remove existing artifacts from dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into `dist/`."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional CLI flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    Args:
        ctx: Invoke execution context.
        k: `pytest -k` expression to select tests.
        path: Test path or module.
        options: Raw pytest flags appended at the end.
    """
    args = ["run", "pytest", path]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    _uv(ctx, args)


@task(help={"fix": "Let ruff rewrite fixable problems."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Run ruff and mypy over the package and tests."""
    ruff = ["run", "ruff", "check", "src", "tests", "tasks.py"]
    if fix:
        ruff.append("--fix")
    _uv(ctx, ruff)
    _uv(ctx, ["run", "ruff", "format", "--check", "src", "tests", "tasks.py"])
    _uv(ctx, ["run", "mypy", "src/fsmeta"])


@task(help={"fmt": "Store format to exercise (json-pretty, json, binary)."})
def smoke(ctx: Context, fmt: str = "json") -> None:
    """Drive the installed `fsm` command through a throwaway store."""
    with tempfile.TemporaryDirectory(prefix="fsmeta-smoke-") as workdir:
        steps = [
            ["db", "init", "--format", fmt],
            ["set", "-t", "color:red", "-c", "smoke test", "a.txt"],
            ["coll", "create", "favs"],
            ["coll", "push", "favs", "a.txt"],
            ["get", "--all"],
            ["coll", "view", "-f"],
            ["db", "drop"],
        ]
        for step in steps:
            command = shlex.join(("uv", "run", "--project", str(PROJECT_ROOT), "fsm", *step))
            with ctx.cd(workdir):
                ctx.run(command, echo=True, pty=True)


namespace = Collection(sync, build, tests, lint, smoke)
