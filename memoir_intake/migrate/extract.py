"""
Extraction of names and values from legacy record descriptions.

Descriptions are short free-text lists such as
"Einflüsse: Goethe, Schiller und Rilke" or "Werte: Ehrlichkeit; Mut".
"""

import re
from dataclasses import dataclass, field

from memoir_intake.migrate.patterns import RecordType
from memoir_intake.migrate.settings import MigrationSettings

NAME_PREFIX = re.compile(r"^(influences:|einflüsse:|vorbilder:|vorbild:|role models?:)", re.I)
VALUE_PREFIX = re.compile(r"^(values:|werte:)", re.I)
LIST_SEPARATOR = re.compile(r"[,;]|\s+und\s+|\s+and\s+")


@dataclass
class ExtractedProfileData:
    """Profile entries extracted from one or more records."""

    influences: list[dict[str, str]] = field(default_factory=list)
    role_models: list[dict[str, str]] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.influences or self.role_models or self.values)

    def extend(self, other: "ExtractedProfileData") -> None:
        self.influences.extend(other.influences)
        self.role_models.extend(other.role_models)
        self.values.extend(other.values)


def split_candidates(
    description: str | None,
    prefix: re.Pattern,
    max_length: int,
    settings: MigrationSettings,
) -> list[str]:
    """
    Split a description into trimmed list items.

    The leading label is removed, the rest is split on commas, semicolons and
    the conjunctions "und"/"and". Items shorter than settings.min_token_length,
    longer than max_length, or listed as stop words are dropped.
    """
    if not description:
        return []

    text = prefix.sub("", description.strip(), count=1).strip()

    candidates = []
    for token in LIST_SEPARATOR.split(text):
        token = token.strip()
        if len(token) < settings.min_token_length or len(token) > max_length:
            continue
        if token.lower() in settings.stop_words:
            continue
        candidates.append(token)
    return candidates


def extract_names(description: str | None, settings: MigrationSettings) -> list[str]:
    """
    Extract person names from an influences or role model description.

    Example:
        >>> extract_names("Influences: Goethe, Schiller und Rilke", MigrationSettings())
        ['Goethe', 'Schiller', 'Rilke']
    """
    return split_candidates(description, NAME_PREFIX, settings.max_name_length, settings)


def extract_values(description: str | None, settings: MigrationSettings) -> list[str]:
    """Extract values from a values description."""
    return split_candidates(description, VALUE_PREFIX, settings.max_value_length, settings)


def extract_profile_data(
    record_type: RecordType, description: str | None, settings: MigrationSettings
) -> ExtractedProfileData:
    """
    Extract profile entries from one record according to its detected type.

    Profile records hold identity data that belongs to the user record; they
    contribute nothing here.
    """
    extracted = ExtractedProfileData()

    if record_type is RecordType.INFLUENCES:
        extracted.influences = [
            {"name": name, "type": "other"} for name in extract_names(description, settings)
        ]
    elif record_type is RecordType.ROLE_MODELS:
        extracted.role_models = [{"name": name} for name in extract_names(description, settings)]
    elif record_type is RecordType.VALUES:
        extracted.values = extract_values(description, settings)

    return extracted
