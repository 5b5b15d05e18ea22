"""BotSkill Home resolution and validation.

BotSkill Home is the local directory that holds the skill registry, the
stored original archives and the scratch area used during uploads.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from botskill.registry_schema import REGISTRY_FILENAME

# Default BotSkill Home location
DEFAULT_BOTSKILL_HOME = Path.home() / ".botskill"

# Environment variable for custom BotSkill Home location
BOTSKILL_HOME_ENV_VAR = "BOTSKILL_HOME"

ARCHIVES_DIRNAME = "archives"
SCRATCH_DIRNAME = "scratch"


@dataclass
class ValidationResult:
    """Outcome of a home check: ``errors`` lists every problem found."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


class BotSkillHomeNotInitializedError(Exception):
    """Raised when BotSkill Home is not initialized."""

    def __init__(self, path: Path, errors: list[str] | None = None) -> None:
        """Initialize with the path that was checked."""
        self.path = path
        self.errors = errors or []
        error_details = "\n  - ".join(self.errors) if self.errors else ""
        message = f"BotSkill Home not initialized at {path}. Run 'botskill init' first."
        if error_details:
            message += f"\nIssues found:\n  - {error_details}"
        super().__init__(message)


def get_botskill_home() -> Path:
    """Get the BotSkill Home directory path.

    Resolution order:
    1. BOTSKILL_HOME environment variable (if set)
    2. Default: ~/.botskill/

    Returns:
        Path to BotSkill Home directory.
    """
    env_value = os.environ.get(BOTSKILL_HOME_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return DEFAULT_BOTSKILL_HOME


def archives_dir(home: Path) -> Path:
    return home / ARCHIVES_DIRNAME


def scratch_root(home: Path) -> Path:
    return home / SCRATCH_DIRNAME


def validate_botskill_home(path: Path) -> ValidationResult:
    """Validate a directory as a BotSkill Home.

    A valid BotSkill Home has:
    - The directory exists and is a directory
    - registry.yaml file
    - archives/ directory
    - scratch/ directory

    Args:
        path: Path to check.

    Returns:
        ValidationResult with is_valid=True if valid, otherwise is_valid=False
        with a list of specific error messages.
    """
    errors: list[str] = []

    if not path.exists():
        errors.append(f"Path does not exist: {path}")
        return ValidationResult(is_valid=False, errors=errors)

    if not path.is_dir():
        errors.append(f"Path is not a directory: {path}")
        return ValidationResult(is_valid=False, errors=errors)

    if not (path / REGISTRY_FILENAME).exists():
        errors.append(f"Missing {REGISTRY_FILENAME} file")

    if not archives_dir(path).is_dir():
        errors.append(f"Missing {ARCHIVES_DIRNAME}/ directory")

    if not scratch_root(path).is_dir():
        errors.append(f"Missing {SCRATCH_DIRNAME}/ directory")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def require_botskill_home(path: Path) -> None:
    """Raise BotSkillHomeNotInitializedError unless path is a valid home."""
    validation = validate_botskill_home(path)
    if not validation.is_valid:
        raise BotSkillHomeNotInitializedError(path, validation.errors)
