"""Invoke tasks for sqlmigrate development."""

from pathlib import Path

from invoke import task
from invoke.context import Context


@task
def test(ctx: Context, verbose: bool = False, coverage: bool = False) -> None:
    """Run the test suite.

    Args:
        ctx: Invoke context
        verbose: Enable verbose output
        coverage: Run with coverage report
    """
    cmd = "uv run pytest"
    if verbose:
        cmd += " -v"
    if coverage:
        cmd += " --cov=sqlmigrate --cov-report=term-missing"
    ctx.run(cmd, pty=True)


@task
def migrate(
    ctx: Context,
    path: str = "migrations",
    database_url: str = "",
    check_hash: bool = False,
    force_last: bool = False,
    dry_run: bool = False,
) -> None:
    """Reconcile a database with a migrations directory.

    Args:
        ctx: Invoke context
        path: Directory holding the migration files
        database_url: SQLAlchemy URL (default: from sqlmigrate.toml)
        check_hash: Roll back from the first edited migration
        force_last: Roll back and reapply the newest migration
        dry_run: Only show what would be done
    """
    cmd = f"uv run sqlmigrate -p {path}"
    if database_url:
        cmd += f" -d {database_url}"
    cmd += " up"
    if check_hash:
        cmd += " --check-hash"
    if force_last:
        cmd += " --force-last"
    if dry_run:
        cmd += " --dry-run"
    ctx.run(cmd, pty=True)


@task
def history(ctx: Context, database_url: str = "") -> None:
    """Show the applied migrations."""
    cmd = "uv run sqlmigrate"
    if database_url:
        cmd += f" -d {database_url}"
    ctx.run(f"{cmd} history", pty=True)


@task
def clean(ctx: Context, all: bool = False) -> None:
    """Clean up temporary files.

    Args:
        ctx: Invoke context
        all: Also remove the default SQLite database
    """
    # Clean Python cache
    for pattern in ["__pycache__", "*.pyc", "*.pyo", ".pytest_cache"]:
        ctx.run(f"find . -name '{pattern}' -exec rm -rf {{}} + 2>/dev/null || true", warn=True)

    # Clean build artifacts
    for path in ["build", "dist", "*.egg-info", ".eggs", "docs/_build"]:
        ctx.run(f"rm -rf {path} 2>/dev/null || true", warn=True)

    if all:
        print("Removing database...")
        database = Path("data/app.db")
        if database.exists():
            database.unlink()

    print("Cleanup complete")


@task(name="docs-build")
def docs_build(ctx: Context) -> None:
    """Build the Sphinx documentation."""
    ctx.run("uv run sphinx-build -b html docs docs/_build/html", pty=True)
    print("Documentation built at docs/_build/html/index.html")
