"""
One-shot migration of profile data out of life event records.

Earlier onboarding versions stored influences, role models and values as life
events ("Influences: Goethe, Schiller und Rilke"). This migration finds those
records, extracts the entries into the user's profile aggregate and deletes
the records.

For each user the aggregate is written before any record is deleted, and a
user's records are kept when the write fails. Running the migration again is
safe: migrated records are gone, and merging is deduplicated by name.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from memoir_intake.exceptions import MigrationFatalError, MigrationRecordError
from memoir_intake.migrate.extract import ExtractedProfileData, extract_profile_data
from memoir_intake.migrate.merge import merge_into_aggregate
from memoir_intake.migrate.patterns import RecordType, detect_record_type
from memoir_intake.migrate.settings import MigrationSettings
from memoir_intake.migrate.store import LifeEventRecord, RecordStore
from memoir_intake.util.files import write_text
from memoir_intake.util.retry import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    """
    Outcome of a migration run.

    Attributes:
        analyzed: Records loaded from the store
        deleted: Matched records that were deleted
        updated: Profile aggregates that were created or changed
        errors: One message per user whose records could not be migrated
    """

    analyzed: int = 0
    deleted: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyzed": self.analyzed,
            "deleted": self.deleted,
            "updated": self.updated,
            "errors": list(self.errors),
        }


def group_matched_records(
    records: Iterable[LifeEventRecord],
) -> dict[str, list[tuple[LifeEventRecord, RecordType]]]:
    """
    Group records whose title announces profile data by user.

    Users appear in the order their first matching record was seen; records
    that match no pattern are left out.
    """
    grouped: dict[str, list[tuple[LifeEventRecord, RecordType]]] = {}
    for record in records:
        record_type = detect_record_type(record.title)
        if record_type is None:
            continue
        grouped.setdefault(record.user_id, []).append((record, record_type))
    return grouped


def run_migration(
    store: RecordStore,
    settings: MigrationSettings | None = None,
    now: str | None = None,
) -> MigrationResult:
    """
    Move profile data from life event records into profile aggregates.

    Args:
        store: Record store to migrate
        settings: Extraction heuristics (defaults if None)
        now: Timestamp written to changed aggregates (current UTC time if None)

    Returns:
        MigrationResult with counters and per-user error messages

    Raises:
        MigrationFatalError: If the records cannot be loaded
    """
    settings = settings or MigrationSettings()
    result = MigrationResult()

    try:
        records = store.list_records()
    except Exception as e:
        raise MigrationFatalError(str(e)) from e

    result.analyzed = len(records)
    grouped = group_matched_records(records)
    matched = sum(len(items) for items in grouped.values())
    logger.info(
        f"Analyzed {result.analyzed} records: {matched} hold profile data "
        f"for {len(grouped)} users"
    )

    timestamp = now or _utc_now()
    for user_id, items in grouped.items():
        try:
            updated, deleted = _migrate_user(store, user_id, items, settings, timestamp)
        except Exception as e:
            error = MigrationRecordError(user_id, str(e))
            logger.warning(f"Skipping user: {error}")
            result.errors.append(str(error))
            continue

        result.deleted += deleted
        if updated:
            result.updated += 1

    logger.info(
        f"Migration finished: {result.updated} profiles updated, "
        f"{result.deleted} records deleted, {len(result.errors)} errors"
    )
    return result


def save_report(result: MigrationResult, path: Path) -> Path:
    """Write a migration result as YAML and return the file path."""
    write_text(
        path,
        yaml.dump(result.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True),
    )
    return Path(path)


def _migrate_user(
    store: RecordStore,
    user_id: str,
    items: list[tuple[LifeEventRecord, RecordType]],
    settings: MigrationSettings,
    timestamp: str,
) -> tuple[bool, int]:
    """Migrate one user's records; returns (aggregate changed, records deleted)."""
    extracted = ExtractedProfileData()
    for record, record_type in items:
        found = extract_profile_data(record_type, record.description, settings)
        logger.debug(
            f"Record {record.id} ({record_type}): {len(found.influences)} influences, "
            f"{len(found.role_models)} role models, {len(found.values)} values"
        )
        extracted.extend(found)

    changed = False
    if not extracted.is_empty():
        existing = store.get_profile(user_id)
        aggregate, changed = merge_into_aggregate(existing, user_id, extracted, timestamp)
        if changed:
            call_with_retry(
                store.upsert_profile,
                aggregate,
                max_attempts=settings.retry_attempts,
                initial_delay=settings.retry_delay,
            )
            logger.debug(f"Updated profile of user {user_id}")

    record_ids = [record.id for record, _ in items]
    deleted = call_with_retry(
        store.delete_records,
        record_ids,
        max_attempts=settings.retry_attempts,
        initial_delay=settings.retry_delay,
    )
    logger.debug(f"Deleted {deleted} records of user {user_id}")
    return changed, deleted


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
