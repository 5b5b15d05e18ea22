"""BotSkill Home initialization.

Creates a BotSkill Home directory with an empty registry and the archive
and scratch directories.
"""

from pathlib import Path

from botskill.home import ValidationResult, archives_dir, scratch_root, validate_botskill_home
from botskill.registry_schema import REGISTRY_SCHEMA_VERSION, ConfigSection, RegistrySchema, save_registry


def _create_initial_registry() -> RegistrySchema:
    """Create the initial registry from the Pydantic model, so it always validates."""
    return RegistrySchema(
        schema_version=REGISTRY_SCHEMA_VERSION,
        config=ConfigSection(),
        skills=[],
    )


def init_botskill_home(path: Path) -> ValidationResult:
    """Initialize a BotSkill Home directory.

    If the path already exists and is a valid BotSkill Home, this is a no-op.
    If the path exists but is not valid (has other content), returns error.

    Args:
        path: Target directory to initialize.

    Returns:
        ValidationResult indicating success or failure with error messages.
    """
    if path.exists():
        validation = validate_botskill_home(path)
        if validation.is_valid:
            return ValidationResult(is_valid=True, errors=[])

        if path.is_file():
            return ValidationResult(
                is_valid=False,
                errors=[f"Path exists but is a file, not a directory: {path}"],
            )

        if any(path.iterdir()):
            return ValidationResult(
                is_valid=False,
                errors=[
                    f"Directory exists but is not a valid BotSkill Home: {path}",
                    *validation.errors,
                ],
            )

    try:
        path.mkdir(parents=True, exist_ok=True)
        archives_dir(path).mkdir(exist_ok=True)
        scratch_root(path).mkdir(exist_ok=True)
        save_registry(_create_initial_registry(), path)
    except OSError as e:
        return ValidationResult(
            is_valid=False,
            errors=[f"Failed to create directory structure: {e}"],
        )

    return ValidationResult(is_valid=True, errors=[])
