"""Reconciliation of source migrations against the ledger.

Decides which applied migrations are rolled back and which definitions are
then applied. Nothing here touches the database: the runner executes the
decisions one committed transaction at a time.

Rules:
  - Rollbacks scan the ledger newest first and stop at the first row that
    must be kept, so only a contiguous suffix of applied ids is ever undone.
  - A row is rolled back when its source file is gone, when hash checking is
    on and its id is at or past the first hash mismatch, or when forcing the
    last migration and it is the newest row and the newest definition.
  - Every definition newer than the newest remaining row is then applied in
    ascending id order. Gaps in numbering are allowed.
"""

import logging
from typing import Literal, Sequence

from sqlmigrate.models import (
    AuditResult,
    IntegrityMismatch,
    MigrationDefinition,
    MigrationRecord,
    ReconciliationPlan,
)

logger = logging.getLogger(__name__)

ForceMode = Literal[False, "last"]


class Reconciler:
    """Computes rollback and apply sequences for one run."""

    def __init__(
        self,
        definitions: Sequence[MigrationDefinition],
        check_hash: bool = False,
        force: ForceMode = False,
    ) -> None:
        """Initialize the reconciler.

        Args:
            definitions: Source migrations, ascending by id.
            check_hash: Roll back everything from the first tampered migration.
            force: ``"last"`` to always reapply the newest migration.
        """
        self.definitions = sorted(definitions, key=lambda d: d.id)
        self.by_id = {definition.id: definition for definition in self.definitions}
        self.check_hash = check_hash
        self.force = force

    @property
    def last_definition_id(self) -> int:
        return self.definitions[-1].id if self.definitions else 0

    def audit(self, records: Sequence[MigrationRecord]) -> AuditResult:
        """Compare ledger hashes with source hashes.

        Rows holding the sentinel hash are scheduled for backfill rather than
        treated as mismatches.
        """
        if not self.check_hash:
            return AuditResult()

        first_mismatch: int | None = None
        mismatches: list[IntegrityMismatch] = []
        backfills: list[tuple[int, str]] = []

        for record in records:
            definition = self.by_id.get(record.id)
            if definition is None:
                continue

            if record.has_sentinel_hash:
                backfills.append((record.id, definition.hash))
            elif record.hash != definition.hash:
                mismatches.append(
                    IntegrityMismatch(
                        id=record.id,
                        stored_hash=record.hash,
                        source_hash=definition.hash,
                    )
                )
                if first_mismatch is None or record.id < first_mismatch:
                    first_mismatch = record.id

        for mismatch in mismatches:
            logger.warning(
                f"Migration {mismatch.id} was modified after it was applied; "
                "it and every later migration will be rolled back"
            )

        return AuditResult(
            first_mismatch=first_mismatch,
            mismatches=tuple(mismatches),
            backfills=tuple(backfills),
        )

    def must_roll_back(
        self,
        record: MigrationRecord,
        newest_applied_id: int,
        first_mismatch: int | None,
    ) -> bool:
        """Decide whether a ledger row is rolled back.

        Args:
            record: The row under consideration.
            newest_applied_id: Highest id still in the ledger view.
            first_mismatch: Smallest id whose hash differs, if any.
        """
        if record.id not in self.by_id:
            return True

        if self.check_hash and first_mismatch is not None and record.id >= first_mismatch:
            return True

        if (
            self.force == "last"
            and record.id == newest_applied_id
            and record.id == self.last_definition_id
        ):
            return True

        return False

    def select_rollbacks(
        self,
        records: Sequence[MigrationRecord],
        first_mismatch: int | None = None,
    ) -> list[MigrationRecord]:
        """Select the rows to roll back, newest first."""
        rollbacks: list[MigrationRecord] = []

        for record in sorted(records, key=lambda r: r.id, reverse=True):
            # Every newer row is already selected, so this one is the newest left
            if not self.must_roll_back(record, record.id, first_mismatch):
                break
            rollbacks.append(record)

        return rollbacks

    def select_applies(self, records: Sequence[MigrationRecord]) -> list[MigrationDefinition]:
        """Select the definitions to apply given the rows left after rollbacks."""
        last_applied_id = max((record.id for record in records), default=0)
        return [definition for definition in self.definitions if definition.id > last_applied_id]

    def plan(self, records: Sequence[MigrationRecord]) -> ReconciliationPlan:
        """Compute the full rollback and apply sequence without side effects."""
        audit = self.audit(records)
        rollbacks = self.select_rollbacks(records, audit.first_mismatch)
        rolled_back_ids = {record.id for record in rollbacks}
        remaining = [record for record in records if record.id not in rolled_back_ids]
        return ReconciliationPlan(
            rollbacks=tuple(rollbacks),
            applies=tuple(self.select_applies(remaining)),
        )
