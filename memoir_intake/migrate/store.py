"""
Record stores the profile extraction migration reads from and writes to.

A store holds two collections: life event records, and one profile
aggregate per user. The migration only needs four operations, described by
RecordStore. InMemoryRecordStore backs tests; YamlRecordStore keeps both
collections in YAML files inside the workspace.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from memoir_intake.exceptions import RecordStoreError
from memoir_intake.migrate.merge import ProfileAggregate
from memoir_intake.util.files import write_text

logger = logging.getLogger(__name__)


@dataclass
class LifeEventRecord:
    """A life event as stored by the memoir service."""

    id: str
    user_id: str
    title: str
    description: str | None = None
    category: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LifeEventRecord":
        if not isinstance(data, dict):
            raise ValueError(f"Invalid record: expected dict, got {type(data).__name__}")
        missing = [key for key in ("id", "user_id", "title") if data.get(key) is None]
        if missing:
            raise ValueError(f"Invalid record: missing {', '.join(missing)}")
        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            title=str(data["title"]),
            description=data.get("description"),
            category=data.get("category"),
            metadata=dict(data.get("metadata") or {}),
        )


class RecordStore(ABC):
    """Storage operations the migration depends on."""

    @abstractmethod
    def list_records(self) -> list[LifeEventRecord]:
        """Return all life event records in storage order."""

    @abstractmethod
    def get_profile(self, user_id: str) -> ProfileAggregate | None:
        """Return the profile aggregate of a user, or None if there is none."""

    @abstractmethod
    def upsert_profile(self, aggregate: ProfileAggregate) -> None:
        """Insert or replace the aggregate of ``aggregate.user_id``."""

    @abstractmethod
    def delete_records(self, record_ids: Iterable[str]) -> int:
        """Delete records by id and return how many were removed."""


class InMemoryRecordStore(RecordStore):
    """Record store held in memory."""

    def __init__(
        self,
        records: Iterable[LifeEventRecord] = (),
        profiles: Iterable[ProfileAggregate] = (),
    ):
        self.records: list[LifeEventRecord] = list(records)
        self.profiles: dict[str, ProfileAggregate] = {p.user_id: p for p in profiles}

    def list_records(self) -> list[LifeEventRecord]:
        return list(self.records)

    def get_profile(self, user_id: str) -> ProfileAggregate | None:
        return self.profiles.get(user_id)

    def upsert_profile(self, aggregate: ProfileAggregate) -> None:
        self.profiles[aggregate.user_id] = aggregate

    def delete_records(self, record_ids: Iterable[str]) -> int:
        doomed = set(record_ids)
        kept = [record for record in self.records if record.id not in doomed]
        deleted = len(self.records) - len(kept)
        self.records = kept
        return deleted


class YamlRecordStore(RecordStore):
    """
    Record store backed by two YAML files.

    records_file holds ``records: [...]`` and profiles_file holds
    ``profiles: [...]``. Missing files read as empty collections. Every write
    rewrites the whole file.
    """

    def __init__(self, records_file: Path, profiles_file: Path):
        self.records_file = Path(records_file)
        self.profiles_file = Path(profiles_file)

    def list_records(self) -> list[LifeEventRecord]:
        records = []
        for index, entry in enumerate(self._read_list(self.records_file, "records")):
            try:
                records.append(LifeEventRecord.from_dict(entry))
            except ValueError as e:
                raise RecordStoreError(
                    f"Invalid record #{index} in {self.records_file}: {e}"
                ) from e
        return records

    def get_profile(self, user_id: str) -> ProfileAggregate | None:
        for entry in self._read_list(self.profiles_file, "profiles"):
            if isinstance(entry, dict) and entry.get("user_id") == user_id:
                return ProfileAggregate.from_dict(entry)
        return None

    def upsert_profile(self, aggregate: ProfileAggregate) -> None:
        """Write the aggregate fields, leaving other keys of a stored profile untouched."""
        profiles = self._read_list(self.profiles_file, "profiles")
        fields = aggregate.to_dict()
        for entry in profiles:
            if isinstance(entry, dict) and entry.get("user_id") == aggregate.user_id:
                entry.update(fields)
                break
        else:
            profiles.append(fields)
        self._write_list(self.profiles_file, "profiles", profiles)
        logger.debug(f"Stored profile of user {aggregate.user_id}")

    def delete_records(self, record_ids: Iterable[str]) -> int:
        doomed = set(record_ids)
        entries = self._read_list(self.records_file, "records")
        kept = [
            entry
            for entry in entries
            if not (isinstance(entry, dict) and str(entry.get("id")) in doomed)
        ]
        deleted = len(entries) - len(kept)
        if deleted:
            self._write_list(self.records_file, "records", kept)
        return deleted

    def _read_list(self, path: Path, key: str) -> list[Any]:
        if not path.exists():
            return []

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise RecordStoreError(f"Failed to read {path}: {e}") from e
        except yaml.YAMLError as e:
            raise RecordStoreError(f"Failed to parse {path}: {e}") from e

        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(data.get(key, []), list):
            raise RecordStoreError(f"Invalid {path}: expected a '{key}' list")
        return list(data.get(key) or [])

    def _write_list(self, path: Path, key: str, entries: list[Any]) -> None:
        try:
            write_text(
                path,
                yaml.dump(
                    {key: entries},
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                ),
            )
        except OSError as e:
            raise RecordStoreError(f"Failed to write {path}: {e}") from e
