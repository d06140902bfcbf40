"""
Topic classification of conversational prompts and routing of the answers to
their storage destination.
"""

from memoir_intake.topics.classify import Topic, classify_topic
from memoir_intake.topics.routing import Destination, topic_destination

__all__ = ["Destination", "Topic", "classify_topic", "topic_destination"]
