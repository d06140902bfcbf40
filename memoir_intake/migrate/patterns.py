"""
Detection of life event records that hold profile data.

Earlier versions of the onboarding stored influences, role models and values
as life events with a label prefix in the title ("Influences: ...",
"Werte: ..."). These records are recognised by their title.
"""

import re
from enum import Enum
from typing import NamedTuple


class RecordType(Enum):
    """Kind of profile data a mis-filed life event holds."""

    PROFILE = "profile"
    INFLUENCES = "influences"
    VALUES = "values"
    ROLE_MODELS = "role_models"

    def __str__(self) -> str:
        """Return the string value for display."""
        return self.value


class RecordPattern(NamedTuple):
    pattern: re.Pattern
    record_type: RecordType


# Checked in order, first match wins
RECORD_PATTERNS: tuple[RecordPattern, ...] = (
    RecordPattern(re.compile(r"^Profile:", re.IGNORECASE), RecordType.PROFILE),
    RecordPattern(re.compile(r"^Influences:", re.IGNORECASE), RecordType.INFLUENCES),
    RecordPattern(re.compile(r"^Einflüsse:", re.IGNORECASE), RecordType.INFLUENCES),
    RecordPattern(re.compile(r"^Values:", re.IGNORECASE), RecordType.VALUES),
    RecordPattern(re.compile(r"^Werte:", re.IGNORECASE), RecordType.VALUES),
    RecordPattern(re.compile(r"^Role Model:", re.IGNORECASE), RecordType.ROLE_MODELS),
    RecordPattern(re.compile(r"^Vorbild:", re.IGNORECASE), RecordType.ROLE_MODELS),
)


def detect_record_type(title: str | None) -> RecordType | None:
    """
    Return the profile data type a record title announces, or None.

    Example:
        >>> detect_record_type("Influences: Goethe, Schiller und Rilke")
        <RecordType.INFLUENCES: 'influences'>
        >>> detect_record_type("Abitur in Hamburg") is None
        True
    """
    if not title:
        return None
    for record_pattern in RECORD_PATTERNS:
        if record_pattern.pattern.search(title):
            return record_pattern.record_type
    return None
