"""Loading of migration definitions from a directory of SQL files.

Migration files are named ``<id>.<name>.sql`` and contain an up script and a
down script separated by a ``-- down`` line:

    CREATE TABLE users (id INTEGER PRIMARY KEY);

    -- Down
    DROP TABLE users;

Files are read concurrently; the result is re-ordered by id.
"""

import asyncio
import hashlib
import logging
import re
from pathlib import Path

import aiofiles

from sqlmigrate.errors import (
    DiscoveryError,
    InvalidMigrationId,
    MalformedMigrationFile,
    MigrationReadError,
    NoMigrationsFound,
)
from sqlmigrate.models import MigrationDefinition

logger = logging.getLogger(__name__)

FILENAME_PATTERN = re.compile(r"^(\d+)\.(.+)\.sql$")
DOWN_MARKER = re.compile(r"^[ \t]*--[ \t]*down.*$", re.IGNORECASE | re.MULTILINE)


def parse_migration_filename(filename: str) -> tuple[int, str] | None:
    """Extract (id, name) from a migration filename.

    Returns None for files that are not migrations.
    """
    match = FILENAME_PATTERN.match(filename)
    if not match:
        return None
    return int(match.group(1)), match.group(2)


def normalize_newlines(content: str) -> str:
    return content.replace("\r\n", "\n").replace("\r", "\n")


def compute_hash(content: str) -> str:
    """Compute the integrity hash of a migration file.

    Line endings are normalized first so the same file hashes identically on
    every platform.
    """
    return hashlib.sha512(normalize_newlines(content).encode("utf-8")).hexdigest()


def strip_comments(segment: str) -> str:
    """Remove comment-only lines and surrounding whitespace from a script."""
    lines = [line for line in segment.split("\n") if not line.lstrip().startswith("--")]
    return "\n".join(lines).strip()


def parse_migration(filename: str, content: str) -> MigrationDefinition:
    """Parse a migration file's content into a MigrationDefinition.

    Args:
        filename: The file name, e.g. ``001.create_users.sql``.
        content: The raw file content.

    Raises:
        MalformedMigrationFile: If the file has no ``-- down`` line.
        InvalidMigrationId: If the file is numbered below 1.
    """
    parsed = parse_migration_filename(filename)
    if parsed is None:
        raise ValueError(f"Not a migration filename: {filename}")
    migration_id, name = parsed
    if migration_id < 1:
        raise InvalidMigrationId(filename, migration_id)

    text = normalize_newlines(content)
    marker = DOWN_MARKER.search(text)
    if marker is None:
        raise MalformedMigrationFile(filename)

    return MigrationDefinition(
        id=migration_id,
        name=name,
        up=strip_comments(text[: marker.start()]),
        down=strip_comments(text[marker.end() :]),
        hash=compute_hash(content),
        filename=filename,
    )


def discover_migration_files(location: Path) -> list[Path]:
    """List the migration files in a directory, ignoring everything else."""
    try:
        entries = list(location.iterdir())
    except OSError as e:
        raise DiscoveryError(location, e.strerror or str(e)) from e

    return [
        entry
        for entry in entries
        if FILENAME_PATTERN.match(entry.name) and entry.is_file()
    ]


async def read_migration(path: Path) -> MigrationDefinition:
    """Read and parse a single migration file."""
    try:
        # newline="" keeps the raw line endings for hashing
        async with aiofiles.open(path, "r", encoding="utf-8", newline="") as f:
            content = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise MigrationReadError(path, str(e)) from e

    return parse_migration(path.name, content)


async def load_migrations(migrations_path: str | Path) -> list[MigrationDefinition]:
    """Load every migration definition from a directory.

    Args:
        migrations_path: Directory holding the ``<id>.<name>.sql`` files.

    Returns:
        Definitions sorted ascending by id.

    Raises:
        DiscoveryError: If the directory cannot be read or two files share an id.
        NoMigrationsFound: If the directory has no migration files.
        MigrationReadError: If a file cannot be read.
        MalformedMigrationFile: If a file lacks the ``-- down`` separator.
        InvalidMigrationId: If a file is numbered below 1.
    """
    location = Path(migrations_path).resolve()
    files = discover_migration_files(location)
    if not files:
        raise NoMigrationsFound(location)

    definitions = list(await asyncio.gather(*(read_migration(path) for path in files)))
    definitions.sort(key=lambda d: d.id)

    for previous, current in zip(definitions, definitions[1:]):
        if previous.id == current.id:
            raise DiscoveryError(
                location,
                f"{previous.filename} and {current.filename} share migration id {current.id}",
            )

    logger.debug(f"Loaded {len(definitions)} migrations from {location}")
    return definitions
