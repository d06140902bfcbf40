"""
Onboarding draft: the in-progress record of one user's onboarding session.

A draft is an immutable value. State machine operations return a new draft
instead of changing the one they were given; a restart produces a brand new
empty draft.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, NamedTuple, Union

from memoir_intake.onboarding.registration import RegistrationDraft

DRAFT_VERSION = "alt-onboarding-v1"

# str for single/decision, list[str] for multi, dict for demographics
AnswerValue = Union[str, list[str], dict[str, Union[str, list[str]]]]


class Stage(Enum):
    """
    Stage of an onboarding draft.

    Stages advance in order ENTRY -> PATH -> [NEUTRAL] -> REGISTRATION -> COMPLETED.
    Only back-navigation moves a draft to an earlier stage, and COMPLETED is terminal.
    """

    ENTRY = "entry"
    PATH = "path"
    NEUTRAL = "neutral"
    REGISTRATION = "registration"
    COMPLETED = "completed"

    def __str__(self) -> str:
        """Return the string value for display."""
        return self.value


class EntrySelection(NamedTuple):
    """The answer given to the entry question and the path it resolved to."""

    answer_id: str
    path: str

    def to_dict(self) -> dict[str, str]:
        return {"answer_id": self.answer_id, "path": self.path}


@dataclass(frozen=True)
class OnboardingDraft:
    """
    Snapshot of one onboarding session.

    Attributes:
        version: Draft format version, DRAFT_VERSION
        stage: Current stage
        entry: Entry selection, None until the entry question is answered
        path: Active path ("A", "B" or "C"), fixed once set
        current_step_id: Current step of the active path
        responses: Answers keyed by step id
        neutral_visited: True once the neutral storytelling excursion was opened
        route_to_registration_source: "path" or "neutral", how registration was reached
        registration: Registration payload, set on completion
        address_preference: "du" or "sie", set on completion when known
        completed_at: ISO-8601 timestamp of completion
    """

    version: str = DRAFT_VERSION
    stage: Stage = Stage.ENTRY
    entry: EntrySelection | None = None
    path: str | None = None
    current_step_id: str | None = None
    responses: dict[str, AnswerValue] = field(default_factory=dict)
    neutral_visited: bool = False
    route_to_registration_source: str | None = None
    registration: RegistrationDraft | None = None
    address_preference: str | None = None
    completed_at: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.stage is Stage.COMPLETED

    def with_changes(self, **changes: Any) -> "OnboardingDraft":
        """Return a copy with the given fields replaced; responses are never shared."""
        if "responses" not in changes:
            changes["responses"] = copy.deepcopy(self.responses)
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible data."""
        return {
            "version": self.version,
            "stage": self.stage.value,
            "entry": self.entry.to_dict() if self.entry else None,
            "path": self.path,
            "current_step_id": self.current_step_id,
            "responses": copy.deepcopy(self.responses),
            "neutral_visited": self.neutral_visited,
            "route_to_registration_source": self.route_to_registration_source,
            "registration": self.registration.to_dict() if self.registration else None,
            "address_preference": self.address_preference,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OnboardingDraft":
        """
        Deserialize a draft written by to_dict().

        Raises:
            ValueError: If the data is not a mapping or holds an unknown stage
        """
        if not isinstance(data, dict):
            raise ValueError(f"Invalid draft: expected dict, got {type(data).__name__}")

        entry_data = data.get("entry")
        entry = None
        if entry_data:
            if not isinstance(entry_data, dict):
                raise ValueError("Invalid draft: entry must be a mapping")
            entry = EntrySelection(entry_data.get("answer_id"), entry_data.get("path"))

        registration_data = data.get("registration")
        registration = None
        if registration_data:
            registration = RegistrationDraft.from_dict(registration_data)

        responses = data.get("responses") or {}
        if not isinstance(responses, dict):
            raise ValueError("Invalid draft: responses must be a mapping")

        return cls(
            version=data.get("version", DRAFT_VERSION),
            stage=Stage(data.get("stage", Stage.ENTRY.value)),
            entry=entry,
            path=data.get("path"),
            current_step_id=data.get("current_step_id"),
            responses=copy.deepcopy(responses),
            neutral_visited=bool(data.get("neutral_visited", False)),
            route_to_registration_source=data.get("route_to_registration_source"),
            registration=registration,
            address_preference=data.get("address_preference"),
            completed_at=data.get("completed_at"),
        )


def create_empty_draft() -> OnboardingDraft:
    """Return a fresh draft in the entry stage."""
    return OnboardingDraft()
