"""
Per-user profile aggregate and the deduplicating merge into it.

Entries are deduplicated by their lower-cased name (values by their
lower-cased text). Existing entries keep their position and spelling; new
entries are appended. Because dedup depends only on names, merging the same
data twice leaves the aggregate unchanged.
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from memoir_intake.migrate.extract import ExtractedProfileData


@dataclass
class ProfileAggregate:
    """
    Structured profile of one user.

    Attributes:
        user_id: Owning user, unique per aggregate
        influences: [{"name": ..., "type": ...}]
        role_models: [{"name": ...}]
        values: Value names
        updated_at: ISO-8601 timestamp of the last write
    """

    user_id: str
    influences: list[dict[str, Any]] = field(default_factory=list)
    role_models: list[dict[str, Any]] = field(default_factory=list)
    values: list[str] = field(default_factory=list)
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "influences": copy.deepcopy(self.influences),
            "role_models": copy.deepcopy(self.role_models),
            "values": list(self.values),
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfileAggregate":
        if not isinstance(data, dict) or not data.get("user_id"):
            raise ValueError("Invalid profile aggregate: user_id is required")
        return cls(
            user_id=str(data["user_id"]),
            influences=copy.deepcopy(data.get("influences") or []),
            role_models=copy.deepcopy(data.get("role_models") or []),
            values=list(data.get("values") or []),
            updated_at=data.get("updated_at"),
        )


def merge_named(
    existing: list[dict[str, Any]], incoming: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """
    Merge named entries, skipping incoming names that already exist.

    Example:
        >>> merge_named([{"name": "Goethe"}], [{"name": "goethe"}, {"name": "Rilke"}])
        [{'name': 'Goethe'}, {'name': 'Rilke'}]
    """
    merged = copy.deepcopy(existing)
    seen = {_name_key(entry) for entry in existing}

    for entry in incoming:
        key = _name_key(entry)
        if not key or key in seen:
            continue
        merged.append(dict(entry))
        seen.add(key)

    return merged


def merge_values(existing: list[str], incoming: list[str]) -> list[str]:
    """Merge value names case-insensitively, keeping the existing spelling."""
    merged = list(existing)
    seen = {value.strip().lower() for value in existing if isinstance(value, str)}

    for value in incoming:
        key = value.strip().lower()
        if not key or key in seen:
            continue
        merged.append(value)
        seen.add(key)

    return merged


def merge_into_aggregate(
    aggregate: ProfileAggregate | None,
    user_id: str,
    extracted: ExtractedProfileData,
    updated_at: str,
) -> tuple[ProfileAggregate, bool]:
    """
    Merge extracted entries into a user's aggregate.

    Args:
        aggregate: Stored aggregate, or None if the user has none yet
        user_id: Owning user
        extracted: Entries extracted from the user's records
        updated_at: Timestamp written when something changed

    Returns:
        (aggregate, changed). The input aggregate is not modified. When no new
        entry was added, the stored aggregate is returned as it was, including
        its timestamp.
    """
    base = aggregate if aggregate is not None else ProfileAggregate(user_id=user_id)

    influences = merge_named(base.influences, extracted.influences)
    role_models = merge_named(base.role_models, extracted.role_models)
    values = merge_values(base.values, extracted.values)

    changed = (
        aggregate is None
        or len(influences) != len(base.influences)
        or len(role_models) != len(base.role_models)
        or len(values) != len(base.values)
    )
    if not changed:
        return base, False

    return (
        ProfileAggregate(
            user_id=user_id,
            influences=influences,
            role_models=role_models,
            values=values,
            updated_at=updated_at,
        ),
        True,
    )


def _name_key(entry: Any) -> str:
    if isinstance(entry, dict):
        name = entry.get("name")
    else:
        name = entry
    if not isinstance(name, str):
        return ""
    return name.strip().lower()
