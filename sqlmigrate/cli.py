"""Command-line entry point for sqlmigrate.

Usage:
    sqlmigrate up [--force-last] [--check-hash] [--validate-down] [--dry-run]
    sqlmigrate plan [--force-last] [--check-hash]
    sqlmigrate history
"""

import argparse
import asyncio
import logging
import sys
import tomllib
from pathlib import Path

from pydantic import ValidationError

from sqlmigrate.config import SqlMigrateConfig, load_config
from sqlmigrate.engine import create_engine
from sqlmigrate.errors import MigrationError
from sqlmigrate.models import MigrationRecord, ReconciliationPlan
from sqlmigrate.runner import list_history, migrate, plan_migrations

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> SqlMigrateConfig:
    """Load the config file and apply command-line overrides."""
    config = load_config(Path(args.config) if args.config else None)

    if args.database_url:
        config.database.url = args.database_url
    if args.path:
        config.migrations.path = Path(args.path)
    if args.table:
        config.migrations.table = args.table
    if getattr(args, "check_hash", None):
        config.migrations.check_hash = True
    if getattr(args, "validate_down", None):
        config.migrations.validate_down = True
    if getattr(args, "force_last", None):
        config.migrations.force = "last"
    if args.verbose:
        config.logging.level = "DEBUG"

    return config


def configure_logging(config: SqlMigrateConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
    )


def print_plan(plan: ReconciliationPlan) -> None:
    """Print the rollbacks and applies of a plan."""
    if plan.is_empty:
        print("Database is up to date.")
        return

    if plan.rollbacks:
        print("Rollbacks:")
        for record in plan.rollbacks:
            print(f"  {record.id:03d}.{record.name}")
    if plan.applies:
        print("Applies:")
        for definition in plan.applies:
            print(f"  {definition.display_name}")


def print_history(records: list[MigrationRecord]) -> None:
    """Print the ledger rows as a table."""
    if not records:
        print("No migrations have been applied.")
        return

    print("Migration history:")
    print()
    print(f"{'Id':<8} {'Name':<40} {'Hash'}")
    print("-" * 80)
    for record in records:
        print(f"{record.id:<8} {record.name:<40} {record.hash[:16]}")


async def run_up(config: SqlMigrateConfig, dry_run: bool = False) -> None:
    engine = create_engine(config.database.url, echo=config.database.echo)
    try:
        if dry_run:
            plan = await plan_migrations(
                pool=engine,
                force=config.migrations.force,
                table=config.migrations.table,
                migrations_path=config.migrations.path,
                check_hash=config.migrations.check_hash,
            )
            print("[DRY RUN] Would perform:")
            print_plan(plan)
            return

        result = await migrate(
            pool=engine,
            force=config.migrations.force,
            table=config.migrations.table,
            migrations_path=config.migrations.path,
            check_hash=config.migrations.check_hash,
            validate_down=config.migrations.validate_down,
        )
    finally:
        await engine.dispose()

    for mismatch in result.mismatches:
        print(f"Migration {mismatch.id} changed since it was applied.")
    if result.changed:
        print(
            f"Rolled back: {result.rolled_back or 'none'}; "
            f"applied: {result.applied or 'none'}"
        )
    else:
        print("Database is up to date.")


async def run_plan(config: SqlMigrateConfig) -> None:
    engine = create_engine(config.database.url, echo=config.database.echo)
    try:
        plan = await plan_migrations(
            pool=engine,
            force=config.migrations.force,
            table=config.migrations.table,
            migrations_path=config.migrations.path,
            check_hash=config.migrations.check_hash,
        )
    finally:
        await engine.dispose()
    print_plan(plan)


async def run_history(config: SqlMigrateConfig) -> None:
    engine = create_engine(config.database.url, echo=config.database.echo)
    try:
        records = await list_history(pool=engine, table=config.migrations.table)
    finally:
        await engine.dispose()
    print_history(records)


def cmd_up(args: argparse.Namespace) -> int:
    """Reconcile the database with the migrations directory."""
    config = build_config(args)
    configure_logging(config)
    asyncio.run(run_up(config, dry_run=args.dry_run))
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Show what 'up' would roll back and apply."""
    config = build_config(args)
    configure_logging(config)
    asyncio.run(run_plan(config))
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Show the applied migrations."""
    config = build_config(args)
    configure_logging(config)
    asyncio.run(run_history(config))
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlmigrate",
        description="Reconcile numbered SQL migrations with a database ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s up                          Apply new migrations, roll back deleted ones
  %(prog)s up --check-hash             Also roll back from the first edited migration
  %(prog)s up --force-last             Roll back and reapply the newest migration
  %(prog)s plan                        Show what 'up' would do
  %(prog)s history                     Show applied migrations
        """,
    )
    parser.add_argument("-c", "--config", help="Path to a sqlmigrate.toml file")
    parser.add_argument("-d", "--database-url", help="SQLAlchemy database URL")
    parser.add_argument("-p", "--path", help="Directory holding the migration files")
    parser.add_argument("-t", "--table", help="Name of the ledger table")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    up_parser = subparsers.add_parser("up", help="Reconcile the database")
    up_parser.add_argument(
        "--force-last",
        action="store_true",
        help="Roll back and reapply the newest migration",
    )
    up_parser.add_argument(
        "--check-hash",
        action="store_true",
        help="Roll back from the first migration whose file changed",
    )
    up_parser.add_argument(
        "--validate-down",
        action="store_true",
        help="Run up, down and up again when applying each migration",
    )
    up_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without applying changes",
    )
    up_parser.set_defaults(func=cmd_up)

    plan_parser = subparsers.add_parser("plan", help="Show pending rollbacks and applies")
    plan_parser.add_argument("--force-last", action="store_true", help="Plan as with up --force-last")
    plan_parser.add_argument("--check-hash", action="store_true", help="Plan as with up --check-hash")
    plan_parser.set_defaults(func=cmd_plan)

    history_parser = subparsers.add_parser("history", help="Show applied migrations")
    history_parser.set_defaults(func=cmd_history)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except MigrationError as e:
        logger.debug("Migration run failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (ValidationError, tomllib.TOMLDecodeError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
