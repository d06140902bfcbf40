"""
Answer shape handling for onboarding steps.

Each step kind declares the shape of its answer:

- single / decision: one option id (str)
- multi: list of option ids
- demographics: mapping of field id to an option id, or to a list of option
  ids for fields declared with ``multiple=True``
- info: no answer

The primitives here build and check those shapes. Nothing is coerced: a value
of the wrong shape is rejected with a ShapeValidationError that names the
offending step or field.
"""

from typing import Any

from memoir_intake.exceptions import ShapeValidationError
from memoir_intake.onboarding.draft import AnswerValue
from memoir_intake.onboarding.steps import DemographicField, Step, StepKind


def toggle(existing: Any, option_id: str) -> list[str]:
    """
    Toggle membership of option_id in an array-valued answer.

    Removes the option if present, otherwise appends it. The order of the
    remaining elements is preserved. A missing or non-list prior value starts
    from an empty list.

    Example:
        >>> toggle(["a", "b"], "c")
        ['a', 'b', 'c']
        >>> toggle(["a", "b", "c"], "b")
        ['a', 'c']
        >>> toggle(None, "a")
        ['a']
    """
    current = list(existing) if isinstance(existing, list) else []
    if option_id in current:
        return [value for value in current if value != option_id]
    return current + [option_id]


def set_by_key(existing: Any, key: str, value: str | list[str]) -> dict[str, Any]:
    """
    Write one key of a map-valued answer without touching its siblings.

    A missing or non-dict prior value starts from an empty mapping.

    Example:
        >>> set_by_key({"ageRange": "30_39"}, "languagePreference", "de")
        {'ageRange': '30_39', 'languagePreference': 'de'}
    """
    current = dict(existing) if isinstance(existing, dict) else {}
    current[key] = list(value) if isinstance(value, list) else value
    return current


def validate_answer(step: Step, value: Any) -> AnswerValue | None:
    """
    Check that value has the shape step.kind declares.

    Args:
        step: Step the answer belongs to
        value: Candidate answer

    Returns:
        The value, unchanged except that lists and mappings are copied

    Raises:
        ShapeValidationError: Naming the step id, or the field id for
            demographics answers
    """
    kind = step.kind

    if kind is StepKind.INFO:
        if value is not None:
            raise ShapeValidationError(step.id, "info steps take no answer")
        return None

    if kind in (StepKind.SINGLE, StepKind.DECISION):
        _check_choice(step.id, value, step.option_ids())
        return value

    if kind is StepKind.MULTI:
        _check_choice_list(step.id, value, step.option_ids())
        return list(value)

    if kind is StepKind.DEMOGRAPHICS:
        if not isinstance(value, dict):
            raise ShapeValidationError(
                step.id, f"expected a mapping of field ids, got {type(value).__name__}"
            )
        validated: dict[str, Any] = {}
        for field_id, field_value in value.items():
            field = step.field_by_id(field_id)
            if field is None:
                raise ShapeValidationError(field_id, f"not a field of step {step.id}")
            validated[field_id] = validate_field_value(field, field_value)
        return validated

    raise ShapeValidationError(step.id, f"unsupported step kind {kind!r}")


def validate_field_value(field: DemographicField, value: Any) -> str | list[str]:
    """Check one demographics field value against the field's multiple flag and options."""
    if field.multiple:
        _check_choice_list(field.id, value, field.option_ids())
        return list(value)
    _check_choice(field.id, value, field.option_ids())
    return value


def is_step_complete(step: Step, value: Any) -> bool:
    """
    Return True if value is enough to leave the step.

    Info steps are always complete; single and decision steps need a non-blank
    string; multi steps need at least one option; demographics steps need every
    declared field answered.
    """
    kind = step.kind

    if kind is StepKind.INFO:
        return True

    if kind in (StepKind.SINGLE, StepKind.DECISION):
        return isinstance(value, str) and bool(value.strip())

    if kind is StepKind.MULTI:
        return isinstance(value, list) and len(value) > 0

    if kind is StepKind.DEMOGRAPHICS:
        if not isinstance(value, dict):
            return False
        for field in step.fields:
            field_value = value.get(field.id)
            if field.multiple:
                if not (isinstance(field_value, list) and field_value):
                    return False
            elif not (isinstance(field_value, str) and field_value.strip()):
                return False
        return True

    return False


def has_answered_selection(value: Any) -> bool:
    """Return True if value holds at least one selection of any shape."""
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list):
        return len(value) > 0
    if isinstance(value, dict):
        return any(has_answered_selection(entry) for entry in value.values())
    return False


def _check_choice(field_id: str, value: Any, option_ids: list[str]) -> None:
    if not isinstance(value, str):
        raise ShapeValidationError(field_id, f"expected an option id, got {type(value).__name__}")
    if value not in option_ids:
        raise ShapeValidationError(
            field_id, f"unknown option {value!r} (expected one of {', '.join(option_ids)})"
        )


def _check_choice_list(field_id: str, value: Any, option_ids: list[str]) -> None:
    if not isinstance(value, list):
        raise ShapeValidationError(
            field_id, f"expected a list of option ids, got {type(value).__name__}"
        )
    seen = set()
    for item in value:
        _check_choice(field_id, item, option_ids)
        if item in seen:
            raise ShapeValidationError(field_id, f"duplicate option {item!r}")
        seen.add(item)
