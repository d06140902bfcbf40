"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from memoir_intake.migrate.merge import ProfileAggregate
from memoir_intake.migrate.store import InMemoryRecordStore, LifeEventRecord
from memoir_intake.workspace import Workspace


@pytest.fixture
def temp_workspace():
    """Create a temporary workspace for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        workspace = Workspace(Path(tmpdir))
        workspace.initialize()
        yield workspace


@pytest.fixture
def legacy_records():
    """Life events as written by older onboarding versions, mixed with real events."""
    return [
        LifeEventRecord(
            "r1", "u1", "Influences: Literatur", "Influences: Goethe, Schiller und Rilke"
        ),
        LifeEventRecord("r2", "u1", "Abitur in Hamburg", "Abitur 1985", category="education"),
        LifeEventRecord("r3", "u1", "Werte: Kernwerte", "Werte: Ehrlichkeit; Mut und Neugier"),
        LifeEventRecord("r4", "u2", "Vorbild: Großmutter", "Vorbild: Marie Curie"),
        LifeEventRecord("r5", "u2", "Profile: Basisdaten", "Geboren 1950 in Köln"),
    ]


@pytest.fixture
def record_store(legacy_records):
    """In-memory store holding the legacy records and one existing profile."""
    return InMemoryRecordStore(
        legacy_records,
        [
            ProfileAggregate(
                user_id="u1",
                influences=[{"name": "goethe", "type": "author"}],
                updated_at="2024-01-01T00:00:00Z",
            )
        ],
    )
