"""Registry file schema definitions using Pydantic.

``registry.yaml`` in BotSkill Home holds the configuration section and
every published skill with its version history.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from botskill.archive import DEFAULT_SEARCH_DEPTH
from botskill.errors import format_validation_errors
from botskill.scratch import DEFAULT_MAX_AGE_SECONDS
from botskill.skill_schema import Skill

# Schema version - update when the registry file schema changes
REGISTRY_SCHEMA_VERSION = "2026-10-01"

REGISTRY_FILENAME = "registry.yaml"

DEFAULT_CATEGORIES = ["ai", "data", "web", "devops", "security", "tools"]
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class ConfigSection(BaseModel):
    """Configuration section of the registry file."""

    max_upload_bytes: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES,
        gt=0,
        description="Largest accepted upload or fetched payload",
    )
    search_depth: int = Field(
        default=DEFAULT_SEARCH_DEPTH,
        ge=0,
        description="How many directories below the archive root SKILL.md may sit",
    )
    scratch_max_age_seconds: int = Field(
        default=DEFAULT_MAX_AGE_SECONDS,
        ge=0,
        description="Age after which leftover scratch directories are swept",
    )
    categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES),
        description="Accepted skill categories",
    )


class RegistrySchema(BaseModel):
    """Root schema for registry.yaml files."""

    schema_version: str = Field(description="Schema version in YYYY-MM-DD format")
    config: ConfigSection = Field(
        default_factory=ConfigSection,
        description="Configuration settings",
    )
    skills: list[Skill] = Field(
        default_factory=list,
        description="Published skills",
    )


def load_registry(home: Path) -> RegistrySchema:
    """Load and validate registry.yaml from BotSkill Home.

    Args:
        home: Path to BotSkill Home directory.

    Returns:
        Validated RegistrySchema instance.

    Raises:
        FileNotFoundError: If registry.yaml does not exist.
        ValueError: If YAML is invalid or schema validation fails.
    """
    registry_path = home / REGISTRY_FILENAME
    if not registry_path.exists():
        msg = f"{REGISTRY_FILENAME} not found at {registry_path}"
        raise FileNotFoundError(msg)

    try:
        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in '{registry_path}': {e}"
        raise ValueError(msg) from e

    try:
        return RegistrySchema.model_validate(data)
    except ValidationError as e:
        clean_errors = format_validation_errors(e)
        msg = f"Invalid registry '{registry_path}': {clean_errors}"
        raise ValueError(msg) from e


def save_registry(registry: RegistrySchema, home: Path) -> None:
    """Write RegistrySchema to registry.yaml in BotSkill Home.

    The file is written to a sibling temp file and renamed into place so a
    crash never leaves a half-written registry.
    """
    registry_path = home / REGISTRY_FILENAME
    tmp_path = registry_path.with_suffix(".yaml.tmp")
    # mode="json" serializes enums and datetimes as plain strings
    tmp_path.write_text(
        yaml.dump(
            registry.model_dump(mode="json"),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        ),
        encoding="utf-8",
    )
    tmp_path.replace(registry_path)
