"""Tunable heuristics of the profile extraction migration."""

from dataclasses import dataclass, field
from typing import Any

# Articles, conjunctions and pronouns that show up as list items in legacy data
# fmt: off
DEFAULT_STOP_WORDS = (
    "der", "die", "das", "ein", "eine", "und", "oder", "von", "zu", "mit",
    "the", "a", "an", "and", "or", "of", "to", "with", "by",
    "mich", "mir", "mein", "meine", "ich", "hat", "haben", "ist", "sind",
)
# fmt: on


@dataclass(frozen=True)
class MigrationSettings:
    """
    Heuristics for extracting names and values from legacy record descriptions.

    Attributes:
        min_token_length: Shortest extracted token that is kept
        max_name_length: Longest influence/role model name that is kept
        max_value_length: Longest value that is kept
        stop_words: Lower-case tokens that are never extracted
        retry_attempts: Attempts for each store write before giving up on a user
        retry_delay: Initial delay in seconds between write attempts
    """

    min_token_length: int = 2
    max_name_length: int = 100
    max_value_length: int = 50
    stop_words: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_STOP_WORDS))
    retry_attempts: int = 3
    retry_delay: float = 0.5

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> "MigrationSettings":
        """Build settings from the ``migration`` section of the workspace config."""
        section = (config or {}).get("migration") or {}
        defaults = cls()
        stop_words = section.get("stop_words")
        return cls(
            min_token_length=int(section.get("min_token_length", defaults.min_token_length)),
            max_name_length=int(section.get("max_name_length", defaults.max_name_length)),
            max_value_length=int(section.get("max_value_length", defaults.max_value_length)),
            stop_words=(
                frozenset(word.lower() for word in stop_words)
                if stop_words is not None
                else defaults.stop_words
            ),
            retry_attempts=int(section.get("retry_attempts", defaults.retry_attempts)),
            retry_delay=float(section.get("retry_delay", defaults.retry_delay)),
        )
