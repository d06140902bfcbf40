"""
Routing of classified topics to storage destinations.

Destinations:
    users: user metadata (name, form of address, birth data)
    life_event: timeline events (family, education, career)
    user_profile: atemporal profile data (influences, values)

Every topic has exactly one destination.
"""

import logging
from enum import Enum

from memoir_intake.exceptions import UnknownTopicError
from memoir_intake.topics.classify import Topic

logger = logging.getLogger(__name__)


class Destination(Enum):
    """Store an answer is written to after its prompt was classified."""

    USERS = "users"
    LIFE_EVENT = "life_event"
    USER_PROFILE = "user_profile"

    def __str__(self) -> str:
        """Return the string value for display."""
        return self.value


TOPIC_ROUTING: dict[Topic, Destination] = {
    Topic.IDENTITY: Destination.USERS,
    Topic.ORIGINS: Destination.USERS,
    Topic.FAMILY: Destination.LIFE_EVENT,
    Topic.EDUCATION: Destination.LIFE_EVENT,
    Topic.CAREER: Destination.LIFE_EVENT,
    Topic.INFLUENCES: Destination.USER_PROFILE,
    Topic.VALUES: Destination.USER_PROFILE,
}

# Composite answers ("first A, then B, now C") that are split into several events
NEEDS_SPLITTING = (Topic.EDUCATION, Topic.CAREER, Topic.FAMILY)

# Chat chapters and the life event category their answers are filed under
CHAPTER_TO_CATEGORY: dict[str, str] = {
    "roots": "family",
    "growing_up": "personal",
    "learning": "education",
    "work": "career",
    "love": "relationship",
    "moments": "travel",
}


def parse_topic(topic: Topic | str) -> Topic:
    """
    Resolve a Topic from an enum member or a case-insensitive topic name.

    Raises:
        UnknownTopicError: If the name is not one of the seven topics
    """
    if isinstance(topic, Topic):
        return topic
    try:
        return Topic(str(topic).strip().lower())
    except ValueError:
        raise UnknownTopicError(str(topic), [t.value for t in Topic]) from None


def topic_destination(topic: Topic | str) -> Destination:
    """
    Return the destination an answer on this topic is routed to.

    Example:
        >>> topic_destination("family")
        <Destination.LIFE_EVENT: 'life_event'>
    """
    return TOPIC_ROUTING[parse_topic(topic)]


def needs_splitting(topic: Topic | str) -> bool:
    """Return True if answers on this topic usually describe several events."""
    return parse_topic(topic) in NEEDS_SPLITTING


def is_profile_topic(topic: Topic | str) -> bool:
    return topic_destination(topic) is Destination.USER_PROFILE


def is_user_topic(topic: Topic | str) -> bool:
    return topic_destination(topic) is Destination.USERS


def is_life_event_topic(topic: Topic | str) -> bool:
    return topic_destination(topic) is Destination.LIFE_EVENT


def category_for_topic(topic: Topic | str) -> str:
    """Return the life event category for a topic; non-event topics map to 'personal'."""
    resolved = parse_topic(topic)
    if resolved in (Topic.FAMILY, Topic.EDUCATION, Topic.CAREER):
        return resolved.value
    return "personal"


def category_for_chapter(chapter_id: str) -> str:
    """Return the life event category for a chat chapter, 'other' if unknown."""
    category = CHAPTER_TO_CATEGORY.get(chapter_id.strip().lower())
    if category is None:
        logger.warning(f"Unknown chapter {chapter_id!r}, filing under 'other'")
        return "other"
    return category
