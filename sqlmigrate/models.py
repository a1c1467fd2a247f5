"""Pydantic models for migrations loaded from disk and rows in the ledger."""

from pydantic import BaseModel, ConfigDict, Field

# Hash value carried by ledger rows written before the hash column existed
SENTINEL_HASH = "nil"


class MigrationDefinition(BaseModel):
    """A migration parsed from a ``<id>.<name>.sql`` file."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    name: str
    up: str
    down: str
    hash: str
    filename: str = ""

    @property
    def display_name(self) -> str:
        """Human-readable name for logs."""
        return f"{self.id:03d}.{self.name}"


class MigrationRecord(BaseModel):
    """A row of the ledger table."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    up: str
    down: str
    hash: str

    @property
    def has_sentinel_hash(self) -> bool:
        """Whether the row predates hash tracking and awaits a backfill."""
        return self.hash == SENTINEL_HASH


class IntegrityMismatch(BaseModel):
    """An applied migration whose source file changed after it was applied.

    This is reported, not raised: it forces a rollback from this id onwards.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    stored_hash: str
    source_hash: str


class AuditResult(BaseModel):
    """Outcome of comparing ledger hashes against source hashes."""

    model_config = ConfigDict(frozen=True)

    first_mismatch: int | None = None
    mismatches: tuple[IntegrityMismatch, ...] = ()
    # (record id, freshly computed hash) for rows still holding the sentinel
    backfills: tuple[tuple[int, str], ...] = ()


class ReconciliationPlan(BaseModel):
    """Ordered rollbacks (descending id) followed by ordered applies (ascending id)."""

    model_config = ConfigDict(frozen=True)

    rollbacks: tuple[MigrationRecord, ...] = ()
    applies: tuple[MigrationDefinition, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Whether the plan neither rolls back nor applies anything."""
        return not self.rollbacks and not self.applies


class MigrationResult(BaseModel):
    """Summary of a completed run."""

    rolled_back: list[int] = Field(default_factory=list)
    applied: list[int] = Field(default_factory=list)
    backfilled: list[int] = Field(default_factory=list)
    mismatches: list[IntegrityMismatch] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether the run rolled back or applied any migration."""
        return bool(self.rolled_back or self.applied)
