"""
Onboarding state machine.

Guarded transitions over an OnboardingDraft:

    entry -> path -> [neutral] -> registration -> completed

Every operation takes a draft and returns a TransitionResult. On success the
result carries a new draft; on failure it carries the unchanged input draft
and the error. Calling an operation in the wrong stage is reported as a
StageViolation, a malformed answer as a ShapeValidationError. Neither is
raised: callers (the UI layer) re-fetch the draft and decide what to show.

A caller drives the wizard like this:

    >>> draft = restart()
    >>> result = submit_entry_answer(draft, "entry_5")
    >>> result.draft.current_step_id
    'C1'
    >>> result = advance(result.draft)
    >>> result.draft.current_step_id
    'C2'
"""

import logging
from datetime import datetime, timezone
from typing import Any, NamedTuple

from memoir_intake.exceptions import (
    MemoirIntakeError,
    RegistrationValidationError,
    ShapeValidationError,
    StageViolation,
    UnknownEntryAnswerError,
)
from memoir_intake.onboarding import answers
from memoir_intake.onboarding.draft import (
    EntrySelection,
    OnboardingDraft,
    Stage,
    create_empty_draft,
)
from memoir_intake.onboarding.registration import (
    ADDRESS_PREFERENCES,
    RegistrationDraft,
    validate_registration,
)
from memoir_intake.onboarding.steps import (
    Step,
    StepKind,
    get_first_step,
    get_neutral_option,
    get_next_step,
    get_path_from_entry_answer,
    get_previous_step,
    get_registration_anchor_step_id,
    get_step_by_id,
    get_step_index,
    get_steps,
)

logger = logging.getLogger(__name__)


class TransitionResult(NamedTuple):
    """
    Outcome of a state machine operation.

    Attributes:
        draft: The new draft on success, the unchanged input draft on failure
        error: None on success, otherwise the StageViolation,
            ShapeValidationError or RegistrationValidationError that stopped it
    """

    draft: OnboardingDraft
    error: MemoirIntakeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> OnboardingDraft:
        """Return the draft, raising the error if the transition failed."""
        if self.error is not None:
            raise self.error
        return self.draft


def restart() -> OnboardingDraft:
    """Start over with a new empty draft; the old draft is left as it was."""
    return create_empty_draft()


def submit_entry_answer(draft: OnboardingDraft, answer_id: str) -> TransitionResult:
    """Answer the entry question, fixing the path and moving to its first step."""
    violation = _check_stage(draft, "submit_entry_answer", Stage.ENTRY)
    if violation:
        return _fail(draft, violation)

    try:
        path = get_path_from_entry_answer(answer_id)
    except UnknownEntryAnswerError as e:
        return _fail(draft, ShapeValidationError("entry", e.message))

    first_step = get_first_step(path)
    logger.debug(f"Entry answer {answer_id} resolved to path {path}")
    return TransitionResult(
        draft.with_changes(
            stage=Stage.PATH,
            entry=EntrySelection(answer_id, path),
            path=path,
            current_step_id=first_step.id,
        )
    )


def submit_step_answer(draft: OnboardingDraft, step_id: str, value: Any) -> TransitionResult:
    """
    Record the answer of the current step after checking its shape.

    The step must be the draft's current step. Info steps take ``None``.
    """
    violation = _check_stage(draft, "submit_step_answer", Stage.PATH)
    if violation:
        return _fail(draft, violation)

    step_or_error = _current_step_for(draft, step_id)
    if isinstance(step_or_error, ShapeValidationError):
        return _fail(draft, step_or_error)
    step = step_or_error

    try:
        validated = answers.validate_answer(step, value)
    except ShapeValidationError as e:
        return _fail(draft, e)

    return _store_answer(draft, step, validated)


def toggle_option(draft: OnboardingDraft, step_id: str, option_id: str) -> TransitionResult:
    """Select or deselect one option of the current multi step."""
    violation = _check_stage(draft, "toggle_option", Stage.PATH)
    if violation:
        return _fail(draft, violation)

    step_or_error = _current_step_for(draft, step_id)
    if isinstance(step_or_error, ShapeValidationError):
        return _fail(draft, step_or_error)
    step = step_or_error

    if step.kind is not StepKind.MULTI:
        return _fail(draft, ShapeValidationError(step.id, f"{step.kind} steps cannot be toggled"))

    value = answers.toggle(draft.responses.get(step.id), option_id)
    try:
        validated = answers.validate_answer(step, value)
    except ShapeValidationError as e:
        return _fail(draft, e)
    return _store_answer(draft, step, validated)


def set_field_value(
    draft: OnboardingDraft, step_id: str, field_id: str, value: str | list[str]
) -> TransitionResult:
    """Set one field of the current demographics step, keeping the other fields."""
    violation = _check_stage(draft, "set_field_value", Stage.PATH)
    if violation:
        return _fail(draft, violation)

    field_or_error = _demographic_field(draft, step_id, field_id)
    if isinstance(field_or_error, ShapeValidationError):
        return _fail(draft, field_or_error)
    step, field = field_or_error

    try:
        field_value = answers.validate_field_value(field, value)
    except ShapeValidationError as e:
        return _fail(draft, e)

    return _store_answer(
        draft, step, answers.set_by_key(draft.responses.get(step.id), field.id, field_value)
    )


def toggle_field_option(
    draft: OnboardingDraft, step_id: str, field_id: str, option_id: str
) -> TransitionResult:
    """Select or deselect one option of a demographics field declared as multiple."""
    violation = _check_stage(draft, "toggle_field_option", Stage.PATH)
    if violation:
        return _fail(draft, violation)

    field_or_error = _demographic_field(draft, step_id, field_id)
    if isinstance(field_or_error, ShapeValidationError):
        return _fail(draft, field_or_error)
    step, field = field_or_error

    if not field.multiple:
        return _fail(draft, ShapeValidationError(field.id, "field takes a single option"))

    existing = draft.responses.get(step.id)
    current = existing.get(field.id) if isinstance(existing, dict) else None
    try:
        field_value = answers.validate_field_value(field, answers.toggle(current, option_id))
    except ShapeValidationError as e:
        return _fail(draft, e)

    return _store_answer(draft, step, answers.set_by_key(existing, field.id, field_value))


def advance(draft: OnboardingDraft) -> TransitionResult:
    """
    Move to the next step of the path.

    From the path's registration anchor (its last step) the draft moves to the
    registration stage instead, remembering that it came from the path.

    Only the step graph is followed. A neutral option recorded on a decision
    step (A4, B4) does not open the neutral excursion here; call
    enter_neutral_excursion for that, otherwise the choice has no effect.
    """
    violation = _check_stage(draft, "advance", Stage.PATH)
    if violation:
        return _fail(draft, violation)

    next_step = get_next_step(draft.path, draft.current_step_id)
    if next_step is not None:
        return TransitionResult(draft.with_changes(current_step_id=next_step.id))

    logger.debug(f"Path {draft.path} finished at {draft.current_step_id}, moving to registration")
    return TransitionResult(
        draft.with_changes(stage=Stage.REGISTRATION, route_to_registration_source="path")
    )


def retreat(draft: OnboardingDraft) -> TransitionResult:
    """
    Go back one step.

    On the path this moves to the previous step and stays on the first step
    when already there. From registration it returns to where registration
    was entered: the anchor step, or the neutral excursion. Recorded answers
    are kept so advancing again restores them.
    """
    violation = _check_stage(draft, "retreat", Stage.PATH, Stage.REGISTRATION)
    if violation:
        return _fail(draft, violation)

    if draft.stage is Stage.REGISTRATION:
        if draft.route_to_registration_source == "neutral":
            return TransitionResult(
                draft.with_changes(stage=Stage.NEUTRAL, route_to_registration_source=None)
            )
        return TransitionResult(
            draft.with_changes(
                stage=Stage.PATH,
                current_step_id=get_registration_anchor_step_id(draft.path),
                route_to_registration_source=None,
            )
        )

    previous = get_previous_step(draft.path, draft.current_step_id)
    if previous is None:
        return TransitionResult(draft.with_changes())
    return TransitionResult(draft.with_changes(current_step_id=previous.id))


def enter_neutral_excursion(draft: OnboardingDraft) -> TransitionResult:
    """
    Open the neutral storytelling excursion.

    Only possible from a decision step whose recorded answer is the option that
    leads there. The current step is kept, so leaving the excursion resumes at
    the same step.
    """
    violation = _check_stage(draft, "enter_neutral_excursion", Stage.PATH)
    if violation:
        return _fail(draft, violation)

    step = get_step_by_id(draft.path, draft.current_step_id)
    neutral_option = get_neutral_option(step.id)
    if step.kind is not StepKind.DECISION or neutral_option is None:
        return _fail(
            draft, ShapeValidationError(step.id, "step does not offer the neutral excursion")
        )
    if draft.responses.get(step.id) != neutral_option:
        return _fail(
            draft,
            ShapeValidationError(step.id, f"select '{neutral_option}' to open the excursion"),
        )

    return TransitionResult(draft.with_changes(stage=Stage.NEUTRAL, neutral_visited=True))


def exit_neutral_excursion(
    draft: OnboardingDraft, to_registration: bool = False
) -> TransitionResult:
    """Leave the neutral excursion, back to the same step or on to registration."""
    violation = _check_stage(draft, "exit_neutral_excursion", Stage.NEUTRAL)
    if violation:
        return _fail(draft, violation)

    if to_registration:
        return TransitionResult(
            draft.with_changes(stage=Stage.REGISTRATION, route_to_registration_source="neutral")
        )
    return TransitionResult(draft.with_changes(stage=Stage.PATH))


def complete_registration(
    draft: OnboardingDraft,
    registration: RegistrationDraft | dict[str, Any],
    address_preference: str | None = None,
    completed_at: str | None = None,
) -> TransitionResult:
    """
    Store the registration payload and finish onboarding.

    Args:
        draft: Draft in the registration stage
        registration: RegistrationDraft or its dict form
        address_preference: Optional "du" or "sie"
        completed_at: Completion timestamp, defaults to now (UTC)
    """
    violation = _check_stage(draft, "complete_registration", Stage.REGISTRATION)
    if violation:
        return _fail(draft, violation)

    try:
        if isinstance(registration, dict):
            registration = RegistrationDraft.from_dict(registration)
        registration = validate_registration(registration)
    except RegistrationValidationError as e:
        return _fail(draft, e)

    if address_preference is not None and address_preference not in ADDRESS_PREFERENCES:
        return _fail(
            draft,
            RegistrationValidationError(
                "address_preference", f"must be one of {', '.join(ADDRESS_PREFERENCES)}"
            ),
        )

    if completed_at is None:
        completed_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    logger.info(f"Onboarding completed on path {draft.path}")
    return TransitionResult(
        draft.with_changes(
            stage=Stage.COMPLETED,
            registration=registration,
            address_preference=address_preference,
            completed_at=completed_at,
        )
    )


def current_step(draft: OnboardingDraft) -> Step | None:
    """Return the draft's current step, or None before the entry answer."""
    if draft.path is None or draft.current_step_id is None:
        return None
    return get_step_by_id(draft.path, draft.current_step_id)


def is_step_complete(step: Step, value: Any) -> bool:
    """Return True if value answers step fully enough to continue."""
    return answers.is_step_complete(step, value)


def progress(draft: OnboardingDraft) -> tuple[int, int]:
    """
    Return (position, total) of the current step within the path.

    Position is 1-based; (0, 0) before a path is chosen.
    """
    if draft.path is None or draft.current_step_id is None:
        return (0, 0)
    return (get_step_index(draft.path, draft.current_step_id) + 1, len(get_steps(draft.path)))


def _check_stage(draft: OnboardingDraft, operation: str, *allowed: Stage) -> StageViolation | None:
    if draft.stage in allowed:
        return None
    return StageViolation(operation, draft.stage.value, tuple(stage.value for stage in allowed))


def _fail(draft: OnboardingDraft, error: MemoirIntakeError) -> TransitionResult:
    logger.debug(f"Transition rejected: {error.message}")
    return TransitionResult(draft, error)


def _current_step_for(draft: OnboardingDraft, step_id: str) -> Step | ShapeValidationError:
    if step_id != draft.current_step_id:
        return ShapeValidationError(
            step_id, f"answers can only be given to the current step {draft.current_step_id}"
        )
    return get_step_by_id(draft.path, step_id)


def _demographic_field(draft: OnboardingDraft, step_id: str, field_id: str):
    step_or_error = _current_step_for(draft, step_id)
    if isinstance(step_or_error, ShapeValidationError):
        return step_or_error
    step = step_or_error

    if step.kind is not StepKind.DEMOGRAPHICS:
        return ShapeValidationError(step.id, f"{step.kind} steps have no fields")
    field = step.field_by_id(field_id)
    if field is None:
        return ShapeValidationError(field_id, f"not a field of step {step.id}")
    return step, field


def _store_answer(draft: OnboardingDraft, step: Step, value: Any) -> TransitionResult:
    updated = draft.with_changes()
    if step.kind is StepKind.INFO:
        return TransitionResult(updated)
    updated.responses[step.id] = value
    return TransitionResult(updated)
