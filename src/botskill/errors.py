"""Error formatting utilities for BotSkill.

Turns Pydantic validation errors and unexpected exceptions into clean,
user-facing messages.
"""

import httpx
import yaml
from pydantic import ValidationError

from botskill import cli_logger, exit_codes
from botskill.archive import ArchiveError


def validation_error_messages(error: ValidationError) -> list[str]:
    """Flatten a Pydantic ValidationError into one message per problem.

    Pydantic URLs and error-type jargon are dropped.

    Args:
        error: The Pydantic ValidationError to format.

    Returns:
        Messages like ``"'tags.0': tag 'x' exceeds 30 characters"``.
    """
    messages = []

    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"])
        error_type = err["type"]
        msg = err["msg"]

        if error_type == "missing":
            messages.append(f"'{loc}': field is required")
        elif error_type == "string_type":
            messages.append(f"'{loc}': expected string")
        elif error_type == "list_type":
            messages.append(f"'{loc}': expected list")
        elif error_type == "int_type":
            messages.append(f"'{loc}': expected integer")
        elif error_type == "string_too_long":
            limit = err.get("ctx", {}).get("max_length")
            messages.append(f"'{loc}': must be at most {limit} characters")
        else:
            # Custom validators surface as "Value error, <our message>"
            clean_msg = msg.removeprefix("Value error, ")
            messages.append(f"'{loc}': {clean_msg[:1].lower()}{clean_msg[1:]}")

    return messages


def format_validation_errors(error: ValidationError) -> str:
    """Format a ValidationError as a single line, problems joined by '; '."""
    return "; ".join(validation_error_messages(error))


def handle_cli_error(error: Exception) -> int:
    """Handle an unhandled exception at the CLI boundary.

    Prints a one-line message instead of a traceback and picks an exit code.

    Args:
        error: The exception to handle.

    Returns:
        An exit code from exit_codes.
    """
    if isinstance(error, ValidationError):
        cli_logger.error(f"Invalid data: {format_validation_errors(error)}")
        return exit_codes.SKILL_INVALID

    if isinstance(error, ArchiveError):
        cli_logger.error(str(error))
        return exit_codes.UNSUPPORTED_FORMAT

    if isinstance(error, httpx.HTTPError):
        cli_logger.error(f"HTTP error: {error}")
        return exit_codes.FETCH_FAILED

    if isinstance(error, OSError):
        if error.filename:
            cli_logger.error(f"{error.strerror}: {error.filename}")
        else:
            cli_logger.error(str(error))
        return exit_codes.GENERAL_ERROR

    if isinstance(error, yaml.YAMLError):
        cli_logger.error(f"Invalid YAML: {error}")
        return exit_codes.GENERAL_ERROR

    cli_logger.error(f"Unexpected error: {error}")
    return exit_codes.GENERAL_ERROR
