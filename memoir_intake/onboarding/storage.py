"""
Draft persistence in the workspace.

Drafts are stored as JSON files under ``drafts/`` in the workspace, one file
per draft id (typically a user or session id). Loading never fails on bad
content: a draft with another version or an inconsistent stage/path/step shape
is discarded and a fresh draft is returned, so a user can always start over.
"""

import json
import logging
import re
from pathlib import Path

from memoir_intake.exceptions import DraftStorageError, MemoirIntakeError
from memoir_intake.onboarding.draft import (
    DRAFT_VERSION,
    OnboardingDraft,
    Stage,
    create_empty_draft,
)
from memoir_intake.onboarding.steps import PATHS, get_step_by_id
from memoir_intake.util.files import write_text

logger = logging.getLogger(__name__)

DRAFT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class DraftStore:
    """
    Loads and saves onboarding drafts for a workspace.

    Attributes:
        drafts_dir: Directory holding one ``<draft_id>.json`` per draft
    """

    def __init__(self, drafts_dir: Path):
        self.drafts_dir = Path(drafts_dir)

    def draft_file(self, draft_id: str) -> Path:
        if not DRAFT_ID_PATTERN.match(draft_id or ""):
            raise DraftStorageError(
                f"Invalid draft id: {draft_id!r}",
                "Use letters, digits, '.', '_' or '-' only.",
            )
        return self.drafts_dir / f"{draft_id}.json"

    def load(self, draft_id: str) -> OnboardingDraft:
        """
        Load a draft, or return an empty one if none is stored or it is unusable.

        Raises:
            DraftStorageError: If the draft file exists but cannot be read
        """
        draft_file = self.draft_file(draft_id)
        if not draft_file.exists():
            logger.debug(f"No draft stored for {draft_id}")
            return create_empty_draft()

        try:
            raw = draft_file.read_text(encoding="utf-8")
        except OSError as e:
            raise DraftStorageError(f"Failed to read draft {draft_file}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable draft {draft_file.name}: {e}")
            return create_empty_draft()

        return sanitize_draft(data)

    def save(self, draft_id: str, draft: OnboardingDraft) -> Path:
        """Write a draft and return the file it was written to."""
        draft_file = self.draft_file(draft_id)
        try:
            write_text(draft_file, json.dumps(draft.to_dict(), indent=2, ensure_ascii=False))
        except OSError as e:
            raise DraftStorageError(f"Failed to write draft {draft_file}: {e}") from e
        logger.debug(f"Saved draft {draft_id} in stage {draft.stage}")
        return draft_file

    def clear(self, draft_id: str) -> None:
        """Remove a stored draft; a missing draft is not an error."""
        draft_file = self.draft_file(draft_id)
        try:
            draft_file.unlink(missing_ok=True)
        except OSError as e:
            raise DraftStorageError(f"Failed to remove draft {draft_file}: {e}") from e


def sanitize_draft(data: object) -> OnboardingDraft:
    """
    Turn persisted data back into a draft, falling back to an empty draft.

    A draft is discarded when its version differs from DRAFT_VERSION, when it
    cannot be parsed, when a non-entry draft has no valid path, when the entry
    selection disagrees with the path, or when the current step is not part of
    the path.
    """
    if not isinstance(data, dict) or data.get("version") != DRAFT_VERSION:
        logger.warning("Discarding draft with unknown version")
        return create_empty_draft()

    try:
        draft = OnboardingDraft.from_dict(data)
    except (ValueError, MemoirIntakeError) as e:
        logger.warning(f"Discarding malformed draft: {e}")
        return create_empty_draft()

    if draft.stage is Stage.ENTRY and draft.path is None:
        return draft

    if draft.path not in PATHS:
        logger.warning(f"Discarding draft with invalid path {draft.path!r}")
        return create_empty_draft()

    if draft.entry is None or draft.entry.path != draft.path:
        logger.warning("Discarding draft whose entry selection does not match its path")
        return create_empty_draft()

    if draft.current_step_id is None:
        if draft.stage is Stage.PATH:
            logger.warning("Discarding draft on a path without a current step")
            return create_empty_draft()
        return draft

    if get_step_by_id(draft.path, draft.current_step_id) is None:
        logger.warning(
            f"Discarding draft: step {draft.current_step_id} is not on path {draft.path}"
        )
        return create_empty_draft()

    return draft
