"""
Profile extraction migration.

Moves influences, role models and values that older onboarding versions filed
as life events into per-user profile aggregates.
"""

from memoir_intake.migrate.migrator import MigrationResult, run_migration
from memoir_intake.migrate.settings import MigrationSettings
from memoir_intake.migrate.store import (
    InMemoryRecordStore,
    LifeEventRecord,
    RecordStore,
    YamlRecordStore,
)

__all__ = [
    "InMemoryRecordStore",
    "LifeEventRecord",
    "MigrationResult",
    "MigrationSettings",
    "RecordStore",
    "YamlRecordStore",
    "run_migration",
]
