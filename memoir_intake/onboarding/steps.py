"""
Static onboarding tables: the entry question, its routing to paths, and the
ordered step list of each path.

Everything in this module is immutable data plus pure lookups over it. The
state machine in ``memoir_intake.onboarding.machine`` is the only consumer that
combines these lookups with a draft.

Paths:
    A: Extrovert start - the user wants to start telling right away
    B: Guided start - the user wants orientation and leading questions
    C: Third person - the space is set up for somebody else
"""

from enum import Enum
from typing import NamedTuple

from memoir_intake.exceptions import UnknownEntryAnswerError, UnknownStepError

PATHS = ("A", "B", "C")


class StepKind(Enum):
    """
    Interaction type of a step; decides the shape of its answer.

    Kinds:
        SINGLE: one option id (str)
        MULTI: a list of option ids
        DECISION: one option id that may branch the flow
        DEMOGRAPHICS: a map of field id to option id(s)
        INFO: no answer, read-only step
    """

    SINGLE = "single"
    MULTI = "multi"
    DECISION = "decision"
    DEMOGRAPHICS = "demographics"
    INFO = "info"

    def __str__(self) -> str:
        """Return the string value for display."""
        return self.value


class Option(NamedTuple):
    """A selectable answer option."""

    id: str
    label: str
    description: str | None = None
    cta_label: str | None = None
    cta_url: str | None = None


class DemographicField(NamedTuple):
    """One field of a demographics step."""

    id: str
    label: str
    options: tuple[Option, ...]
    multiple: bool = False

    def option_ids(self) -> list[str]:
        return [option.id for option in self.options]


class Step(NamedTuple):
    """
    A single interaction unit within a path.

    Attributes:
        id: Step identifier, unique across all paths (e.g. "A1")
        path: Owning path ("A", "B" or "C")
        kind: Interaction type, see StepKind
        title: Short title for progress display
        prompt: Question text shown to the user
        options: Declared options for single/multi/decision steps
        fields: Declared fields for demographics steps
    """

    id: str
    path: str
    kind: StepKind
    title: str
    prompt: str
    options: tuple[Option, ...] = ()
    fields: tuple[DemographicField, ...] = ()

    def option_ids(self) -> list[str]:
        return [option.id for option in self.options]

    def field_by_id(self, field_id: str) -> DemographicField | None:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None


ENTRY_QUESTION = "Wie teilst du deine Gedanken und Erlebnisse am liebsten mit anderen?"

ENTRY_OPTIONS: tuple[Option, ...] = (
    Option("entry_1", "Ich erzähle einfach drauflos", "Schneller Einstieg mit klaren Schritten."),
    Option("entry_2", "Ich brauche Leitfragen", "Geführter Einstieg mit mehr Orientierung."),
    Option("entry_3", "Ich bin noch unsicher", "Behutsam starten und Tempo selbst festlegen."),
    Option("entry_4", "Ich möchte es strukturiert", "Klare Anleitung in kleinen Schritten."),
    Option("entry_5", "Für eine andere Person", "Einrichtung für einen dritten Menschen."),
)

ENTRY_ROUTING: dict[str, str] = {
    "entry_1": "A",
    "entry_2": "B",
    "entry_3": "B",
    "entry_4": "B",
    "entry_5": "C",
}

PATH_LABELS: dict[str, str] = {
    "A": "Pfad A - Extrovertiert",
    "B": "Pfad B - Geführter Einstieg",
    "C": "Pfad C - Für Dritte",
}

DEMOGRAPHIC_FIELDS_STANDARD: tuple[DemographicField, ...] = (
    DemographicField(
        "ageRange",
        "Welche Altersgruppe trifft am ehesten zu?",
        (
            Option("18_29", "18-29"),
            Option("30_39", "30-39"),
            Option("40_49", "40-49"),
            Option("50_64", "50-64"),
            Option("65_plus", "65+"),
            Option("prefer_not_say", "Keine Angabe"),
        ),
    ),
    DemographicField(
        "addressingContext",
        "Wie mögen wir Fragen für dich formulieren?",
        (
            Option("very_gentle", "Sehr behutsam"),
            Option("balanced", "Ausgewogen"),
            Option("direct", "Direkt und klar"),
        ),
    ),
    DemographicField(
        "languagePreference",
        "In welcher Sprache möchtest du vorwiegend schreiben?",
        (
            Option("de", "Deutsch"),
            Option("en", "Englisch"),
            Option("mixed", "Gemischt"),
        ),
    ),
)

DEMOGRAPHIC_FIELDS_THIRD_PERSON: tuple[DemographicField, ...] = (
    DemographicField(
        "relationshipToPerson",
        "In welcher Beziehung stehen Sie zur Person?",
        (
            Option("family", "Familie"),
            Option("friend", "Freundin/Freund"),
            Option("caregiver", "Pflege/Betreuung"),
            Option("other", "Andere"),
        ),
    ),
    DemographicField(
        "thirdPersonAgeRange",
        "Welche Altersgruppe trifft auf die Person zu?",
        (
            Option("under_40", "Unter 40"),
            Option("40_64", "40-64"),
            Option("65_79", "65-79"),
            Option("80_plus", "80+"),
            Option("unknown", "Unbekannt"),
        ),
    ),
    DemographicField(
        "thirdPersonLanguagePreference",
        "Welche Sprache passt für die Fragen am besten?",
        (
            Option("de", "Deutsch"),
            Option("en", "Englisch"),
            Option("both", "Beides"),
        ),
    ),
)

PATH_STEPS: dict[str, tuple[Step, ...]] = {
    "A": (
        Step(
            "A1",
            "A",
            StepKind.MULTI,
            "Step A1",
            "Worüber würdest du als Erstes gern erzählen - eher über dein Leben allgemein, "
            "bestimmte Erlebnisse oder Menschen, die dir wichtig sind?",
            options=(
                Option("general_life", "Mein Leben allgemein"),
                Option("specific_experiences", "Bestimmte Erlebnisse"),
                Option("important_people", "Wichtige Menschen"),
            ),
        ),
        Step(
            "A2",
            "A",
            StepKind.SINGLE,
            "Step A2",
            "Für wen möchtest du das vor allem festhalten?",
            options=(
                Option("for_myself", "Für mich selbst"),
                Option("for_family", "Für Familie"),
                Option("for_children", "Für Kinder/Enkel"),
                Option("for_public_archive", "Für ein offenes Vermächtnis"),
            ),
        ),
        Step(
            "A3",
            "A",
            StepKind.DEMOGRAPHICS,
            "Step A3",
            "Wir möchten dir möglichst passende Fragen stellen. "
            "Bitte ordne dich deshalb im Folgenden zu:",
            fields=DEMOGRAPHIC_FIELDS_STANDARD,
        ),
        Step(
            "A4",
            "A",
            StepKind.DECISION,
            "Step A4",
            "Alles klar, möchtest du jetzt direkt mit deiner ersten Erzählung starten?",
            options=(
                Option("start_storytelling", "Ja, zuerst Storytelling starten"),
                Option("go_registration", "Nein, direkt Registrierung"),
            ),
        ),
    ),
    "B": (
        Step(
            "B1",
            "B",
            StepKind.SINGLE,
            "Step B1",
            "Wie möchtest du deine Erlebnisse, Erfahrungen, Gedanken am liebsten festhalten?",
            options=(
                Option("guided_questions", "Mit geführten Fragen"),
                Option("free_talk", "Erst frei erzählen, dann strukturieren"),
                Option(
                    "book_call",
                    "Mit professioneller Begleitung",
                    description="Du kannst direkt einen Termin buchen.",
                    cta_label="Termin buchen",
                    cta_url="https://calendar.app.google/hTLQhe9koce2qVXp9",
                ),
            ),
        ),
        Step(
            "B2",
            "B",
            StepKind.SINGLE,
            "Step B2",
            "Wie persönlich dürfen die Fragen für dich am Anfang sein?",
            options=(
                Option("light", "Eher leicht und vorsichtig"),
                Option("medium", "Ausgewogen"),
                Option("deep", "Ich bin offen für tiefere Fragen"),
            ),
        ),
        Step(
            "B3",
            "B",
            StepKind.MULTI,
            "Step B3",
            "Was ist dir beim Festhalten deiner Geschichte am wichtigsten?",
            options=(
                Option("clarity", "Klare Struktur"),
                Option("privacy", "Datenschutz"),
                Option("pace", "Eigenes Tempo"),
                Option("family_legacy", "Etwas für Familie hinterlassen"),
            ),
        ),
        Step(
            "B4",
            "B",
            StepKind.DECISION,
            "Step B4",
            "Damit wir dir passende Fragen in deinem Tempo anbieten können, richten wir dir "
            "jetzt deinen persönlichen Bereich ein. Du bestimmst jederzeit, was du teilen möchtest.",
            options=(
                Option("continue_guided", "Weiter zur Zuordnung"),
                Option("jump_to_neutral", "Vorher neutral Storytelling ansehen"),
            ),
        ),
        Step(
            "B5",
            "B",
            StepKind.DEMOGRAPHICS,
            "Step B5",
            "Im ersten Schritt hast du die Möglichkeit dich zuzuordnen. "
            "Das hilft uns, dir möglichst passende Fragen zu stellen.",
            fields=DEMOGRAPHIC_FIELDS_STANDARD,
        ),
    ),
    "C": (
        Step(
            "C1",
            "C",
            StepKind.INFO,
            "Step C1",
            "Super, dann richten wir in weniger als 1 Minute einen persönlichen "
            "Erinnerungsraum ein.",
        ),
        Step(
            "C2",
            "C",
            StepKind.DEMOGRAPHICS,
            "Step C2",
            "Um den persönlichen Erinnerungsraum bestmöglich nutzen zu können, "
            "teilen Sie uns bitte mit:",
            fields=DEMOGRAPHIC_FIELDS_THIRD_PERSON,
        ),
    ),
}

REGISTRATION_ANCHORS: dict[str, str] = {"A": "A4", "B": "B5", "C": "C2"}

# Decision options that open the neutral storytelling excursion
NEUTRAL_OPTIONS: dict[str, str] = {"A4": "start_storytelling", "B4": "jump_to_neutral"}


def get_path_from_entry_answer(answer_id: str) -> str:
    """
    Resolve the onboarding path for an entry answer.

    Args:
        answer_id: One of "entry_1" .. "entry_5"

    Returns:
        Path identifier "A", "B" or "C"

    Raises:
        UnknownEntryAnswerError: If answer_id is not a known entry option

    Example:
        >>> get_path_from_entry_answer("entry_3")
        'B'
    """
    try:
        return ENTRY_ROUTING[answer_id]
    except (KeyError, TypeError):
        raise UnknownEntryAnswerError(str(answer_id), list(ENTRY_ROUTING)) from None


def get_path_label(path: str) -> str:
    """Return the human-readable label of a path."""
    return PATH_LABELS[_require_path(path)]


def get_steps(path: str) -> tuple[Step, ...]:
    """Return the ordered steps of a path."""
    return PATH_STEPS[_require_path(path)]


def get_first_step(path: str) -> Step:
    return get_steps(path)[0]


def get_step_by_id(path: str, step_id: str) -> Step | None:
    """Return the step with this id on the path, or None if it is not part of it."""
    for step in get_steps(path):
        if step.id == step_id:
            return step
    return None


def require_step(path: str, step_id: str) -> Step:
    """Like get_step_by_id but raises UnknownStepError when the step is missing."""
    step = get_step_by_id(path, step_id)
    if step is None:
        raise UnknownStepError(path, step_id)
    return step


def get_step_index(path: str, step_id: str) -> int:
    """Return the position of a step within its path, or -1 if absent."""
    for index, step in enumerate(get_steps(path)):
        if step.id == step_id:
            return index
    return -1


def get_next_step(path: str, step_id: str) -> Step | None:
    """Return the step after step_id, or None at the end of the path."""
    index = get_step_index(path, step_id)
    steps = get_steps(path)
    if index < 0 or index + 1 >= len(steps):
        return None
    return steps[index + 1]


def get_previous_step(path: str, step_id: str) -> Step | None:
    """Return the step before step_id, or None at the start of the path."""
    index = get_step_index(path, step_id)
    if index <= 0:
        return None
    return get_steps(path)[index - 1]


def get_registration_anchor_step_id(path: str) -> str:
    """Return the step after which the path hands over to registration."""
    return REGISTRATION_ANCHORS[_require_path(path)]


def get_neutral_option(step_id: str) -> str | None:
    """Return the decision option of step_id that opens the neutral excursion, if any."""
    return NEUTRAL_OPTIONS.get(step_id)


def _require_path(path: str) -> str:
    if path not in PATH_STEPS:
        raise ValueError(f"Unknown onboarding path: {path!r} (expected one of {', '.join(PATHS)})")
    return path
