"""
Keyword classification of conversational prompts into topics.

The chat layer tags every stored question/answer exchange with the topic of
the question so the answer can be routed to the right store (see
``memoir_intake.topics.routing``).

Classification is a priority-ordered list of keyword rules evaluated on the
lower-cased prompt; the first matching rule decides. Keyword sets overlap on
purpose. "Zum Abschluss: Welche drei Werte ..." contains the education keyword
"abschluss" and must still be classified as values, so the values rules run
before the education rules. Do not reorder the rules or remove overlapping
keywords.

Evaluation order:
    values -> origins -> family -> education -> career -> influences -> identity
"""

import re
from enum import Enum
from typing import NamedTuple


class Topic(Enum):
    """
    Semantic topic of an onboarding prompt.

    Topics:
        IDENTITY: name, form of address, writing style (default)
        ORIGINS: birth date and place
        FAMILY: parents, siblings, partner, children
        EDUCATION: schools, studies, degrees
        CAREER: jobs, roles, companies
        INFLUENCES: authors, thinkers, role models
        VALUES: core values, motto
    """

    IDENTITY = "identity"
    ORIGINS = "origins"
    FAMILY = "family"
    EDUCATION = "education"
    CAREER = "career"
    INFLUENCES = "influences"
    VALUES = "values"

    def __str__(self) -> str:
        """Return the string value for display."""
        return self.value


DEFAULT_TOPIC = Topic.IDENTITY


class KeywordRule(NamedTuple):
    """
    One classification rule.

    The rule matches when the text contains any keyword of ``any_of``, and, if
    given, also any keyword of ``and_any_of``, and none of ``none_of``.
    Keywords are matched as lower-case substrings.
    """

    topic: Topic
    any_of: tuple[str, ...]
    and_any_of: tuple[str, ...] = ()
    none_of: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not any(keyword in text for keyword in self.any_of):
            return False
        if self.and_any_of and not any(keyword in text for keyword in self.and_any_of):
            return False
        if any(keyword in text for keyword in self.none_of):
            return False
        return True


TOPIC_RULES: tuple[KeywordRule, ...] = (
    # Values come first: their prompts also mention "Abschluss"
    KeywordRule(Topic.VALUES, ("werte", "values")),
    KeywordRule(Topic.VALUES, ("motto",), and_any_of=("abschluss",)),
    KeywordRule(Topic.VALUES, ("drei werte", "three values")),
    # Origins before the identity default: "Dein Name und wann bist du geboren?"
    KeywordRule(Topic.ORIGINS, ("geburt", "geboren")),
    KeywordRule(Topic.ORIGINS, ("anfang",), and_any_of=("wann", "wo")),
    KeywordRule(Topic.ORIGINS, ("birth",), and_any_of=("year", "place")),
    KeywordRule(Topic.FAMILY, ("geschwister", "bruder", "schwester")),
    KeywordRule(Topic.FAMILY, ("kinder", "children")),
    KeywordRule(Topic.FAMILY, ("eltern", "mutter", "vater", "parents")),
    KeywordRule(Topic.FAMILY, ("partner", "verheiratet", "ehe", "marriage")),
    KeywordRule(Topic.FAMILY, ("familie",), none_of=("ursprünglichen",)),
    KeywordRule(Topic.FAMILY, ("ursprünglichen familie",)),
    KeywordRule(Topic.EDUCATION, ("schule", "grundschule", "gymnasium")),
    KeywordRule(Topic.EDUCATION, ("studium", "universität", "university")),
    KeywordRule(Topic.EDUCATION, ("abschluss", "abitur")),
    KeywordRule(Topic.EDUCATION, ("bildung",), and_any_of=("weg",)),
    KeywordRule(Topic.CAREER, ("beruf", "arbeit", "job", "career")),
    KeywordRule(Topic.CAREER, ("rolle", "position", "firma", "unternehmen")),
    KeywordRule(Topic.INFLUENCES, ("autor", "buch", "einfluss")),
    KeywordRule(Topic.INFLUENCES, ("stimmen",), and_any_of=("weiter",)),
    KeywordRule(Topic.INFLUENCES, ("denker", "geprägt")),
    KeywordRule(Topic.INFLUENCES, ("bewunder", "admire", "vorbild")),
)

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Lower-case text and collapse runs of whitespace to single spaces."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip().lower()


def classify_topic(text: str | None) -> Topic:
    """
    Classify a prompt into one of the seven topics.

    Args:
        text: Prompt text, may be None or empty

    Returns:
        The topic of the first matching rule, IDENTITY if none matches

    Example:
        >>> classify_topic("Wer gehört zu deiner Familie? Geschwister? Kinder?")
        <Topic.FAMILY: 'family'>
        >>> classify_topic("Zum Abschluss: Welche drei Werte sind dir wichtig?")
        <Topic.VALUES: 'values'>
        >>> classify_topic(None)
        <Topic.IDENTITY: 'identity'>
    """
    normalized = normalize_text(text)
    if not normalized:
        return DEFAULT_TOPIC

    for rule in TOPIC_RULES:
        if rule.matches(normalized):
            return rule.topic

    return DEFAULT_TOPIC
