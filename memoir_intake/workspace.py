"""
Workspace management for memoir-intake.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validate

from memoir_intake.exceptions import InvalidConfigError, WorkspaceNotFoundError
from memoir_intake.migrate.settings import DEFAULT_STOP_WORDS, MigrationSettings
from memoir_intake.migrate.store import YamlRecordStore
from memoir_intake.onboarding.storage import DraftStore
from memoir_intake.util.files import ensure_dir

SCHEMA_DIR = Path(__file__).parent / "schema"


class Workspace:
    """Manages the memoir-intake workspace structure and configuration."""

    REQUIRED_DIRS = [
        "drafts",
        "data",
        "runs",
    ]

    DEFAULT_CONFIG = {
        "migration": {
            "min_token_length": 2,
            "max_name_length": 100,
            "max_value_length": 50,
            "stop_words": list(DEFAULT_STOP_WORDS),
            "retry_attempts": 3,
        },
        "storage": {
            "drafts_dir": "drafts",
            "records_file": "data/records.yaml",
            "profiles_file": "data/profiles.yaml",
        },
    }

    def __init__(self, root: Path):
        self.root = Path(root)
        self.config_file = self.root / "memoir-intake.yaml"
        self._config_cache: dict[str, Any] | None = None

    def initialize(self) -> None:
        """Initialize workspace directory structure and config."""
        for dir_path in self.REQUIRED_DIRS:
            ensure_dir(self.root / dir_path)

        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.dump(
                self.DEFAULT_CONFIG,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
        self._config_cache = None

    def exists(self) -> bool:
        return self.config_file.exists()

    def require(self) -> "Workspace":
        """Return self, or raise WorkspaceNotFoundError if not initialized."""
        if not self.exists():
            raise WorkspaceNotFoundError(str(self.root))
        return self

    def load_config(self) -> dict[str, Any]:
        """Load and validate workspace configuration (cached after the first call)."""
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_file.exists():
            raise WorkspaceNotFoundError(str(self.root))

        try:
            with open(self.config_file, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"Failed to parse YAML: {e}") from e

        if config is None:
            raise InvalidConfigError(f"Config file is empty: {self.config_file}")

        if not isinstance(config, dict):
            raise InvalidConfigError(f"expected mapping, got {type(config).__name__}")

        self._validate_config_schema(config)

        self._config_cache = config
        return config

    def _validate_config_schema(self, config: dict) -> None:
        """Validate config against the JSON schema shipped with the package."""
        schema_file = SCHEMA_DIR / "config.schema.json"
        if not schema_file.exists():
            raise FileNotFoundError(
                f"Configuration schema file not found: {schema_file}\n"
                f"This indicates an incomplete installation. Please reinstall memoir-intake:\n"
                f"  pip install --force-reinstall memoir-intake"
            )

        schema = json.loads(schema_file.read_text(encoding="utf-8"))
        try:
            validate(instance=config, schema=schema)
        except ValidationError as e:
            raise InvalidConfigError(
                f"{e.message} (at {'.'.join(str(p) for p in e.path) or '<root>'})"
            ) from e

    def storage_path(self, key: str) -> Path:
        """Resolve a ``storage`` entry relative to the workspace root."""
        storage = self.load_config().get("storage") or {}
        return self.root / storage.get(key, self.DEFAULT_CONFIG["storage"][key])

    def migration_settings(self) -> MigrationSettings:
        return MigrationSettings.from_config(self.load_config())

    def draft_store(self) -> DraftStore:
        return DraftStore(self.storage_path("drafts_dir"))

    def record_store(self) -> YamlRecordStore:
        return YamlRecordStore(
            self.storage_path("records_file"),
            self.storage_path("profiles_file"),
        )
