"""
Registration payload collected at the end of onboarding.

The wizard only validates and stores the payload; account creation and
authentication happen outside of this package.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from memoir_intake.exceptions import RegistrationValidationError

if TYPE_CHECKING:
    from memoir_intake.onboarding.draft import OnboardingDraft

REGISTRATION_METHODS = ("password", "google")
ADDRESS_PREFERENCES = ("du", "sie")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class RegistrationDraft:
    """Identity details entered on the registration screen."""

    first_name_or_nickname: str
    email: str
    method: str = "password"
    last_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_name_or_nickname": self.first_name_or_nickname,
            "last_name": self.last_name,
            "email": self.email,
            "method": self.method,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistrationDraft":
        if not isinstance(data, dict):
            raise RegistrationValidationError("registration", "expected a mapping")
        return cls(
            first_name_or_nickname=data.get("first_name_or_nickname", ""),
            last_name=data.get("last_name") or "",
            email=data.get("email", ""),
            method=data.get("method", "password"),
        )


def validate_registration(registration: RegistrationDraft) -> RegistrationDraft:
    """
    Check a registration payload and return it with surrounding whitespace removed.

    Raises:
        RegistrationValidationError: Naming the first offending field
    """
    if not isinstance(registration.first_name_or_nickname, str):
        raise RegistrationValidationError("first_name_or_nickname", "expected a string")
    first = registration.first_name_or_nickname.strip()
    if not first:
        raise RegistrationValidationError("first_name_or_nickname", "must not be empty")

    if not isinstance(registration.last_name, str):
        raise RegistrationValidationError("last_name", "expected a string")

    email = registration.email.strip() if isinstance(registration.email, str) else ""
    if not EMAIL_PATTERN.match(email):
        raise RegistrationValidationError("email", f"not a valid address: {registration.email!r}")

    if registration.method not in REGISTRATION_METHODS:
        raise RegistrationValidationError(
            "method", f"must be one of {', '.join(REGISTRATION_METHODS)}"
        )

    return RegistrationDraft(
        first_name_or_nickname=first,
        last_name=registration.last_name.strip(),
        email=email,
        method=registration.method,
    )


def build_full_name(first_name_or_nickname: str, last_name: str) -> str:
    """Join first name and last name, omitting an empty last name."""
    first = first_name_or_nickname.strip()
    last = last_name.strip()
    if not last:
        return first
    return f"{first} {last}"


def build_private_payload(draft: "OnboardingDraft") -> dict[str, Any]:
    """
    Build the record of a completed onboarding that is stored with the user.

    The payload holds the raw step answers; it must stay private to the user
    record and never be exposed through profile-facing views.

    Raises:
        ValueError: If the draft has not been completed yet
    """
    if draft.completed_at is None or draft.registration is None:
        raise ValueError("Onboarding draft is not completed")

    return {
        "version": draft.version,
        "entry": draft.entry.to_dict() if draft.entry else None,
        "path": draft.path,
        "steps": dict(draft.responses),
        "neutral_visited": draft.neutral_visited,
        "registration": draft.registration.to_dict(),
        "full_name": build_full_name(
            draft.registration.first_name_or_nickname, draft.registration.last_name
        ),
        "address_preference": draft.address_preference,
        "completed_at": draft.completed_at,
    }
