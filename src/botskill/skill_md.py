"""SKILL.md manifest parsing.

A SKILL.md file is a YAML front matter block delimited by ``---`` lines,
followed by a Markdown body:

    ---
    name: pdf-parser
    description: Extract text and tables from PDF files
    metadata:
      version: 1.2.0
    ---
    # PDF parser
    ...

``parse_skill_md`` never raises for bad input. Every field rule is checked
and all violations are reported together in ``ParseResult.errors``.
"""

import re
from dataclasses import dataclass, field
from typing import Any

import yaml
from pydantic import BaseModel, Field

SKILL_MD_FILENAME = "SKILL.md"
FRONT_MATTER_DELIMITER = "---"

DEFAULT_VERSION = "1.0.0"
DEFAULT_LICENSE = "MIT"
DEFAULT_CATEGORY = "tools"

NAME_MAX_LENGTH = 64
DESCRIPTION_MAX_LENGTH = 1024
COMPATIBILITY_MAX_LENGTH = 500

# Lowercase alphanumerics plus @ and /, joined by single -, @ or / separators
NAME_PATTERN = re.compile(r"[a-z0-9@/]+(?:[-@/][a-z0-9@/]+)*")

# Manifests must carry a numeric X.Y.Z version; "latest" is not accepted here
VERSION_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")

# Tag strings may be separated by ASCII or full-width commas
_TAG_SEPARATOR = re.compile(r"[,，]")


class MalformedFrontMatterError(ValueError):
    """Raised by split_front_matter when the header block cannot be read."""


class SkillMetadata(BaseModel):
    """Normalized metadata parsed from a SKILL.md front matter block."""

    name: str = Field(description="Skill name, lowercase, 1-64 characters")
    description: str = Field(description="What the skill does, at most 1024 characters")
    version: str = Field(default=DEFAULT_VERSION, description="X.Y.Z version")
    license: str = Field(default=DEFAULT_LICENSE, description="License identifier")
    compatibility: str | None = Field(
        default=None,
        description="Environment requirements, at most 500 characters",
    )
    allowed_tools: list[str] | None = Field(
        default=None,
        description="Tools the skill may use, from the space-delimited allowed-tools field",
    )
    category: str = Field(default=DEFAULT_CATEGORY, description="Lowercased category name")
    tags: list[str] = Field(default_factory=list, description="Trimmed, non-empty tags")
    repository_url: str | None = None
    documentation_url: str | None = None
    demo_url: str | None = None
    metadata_author: str | None = Field(
        default=None,
        description="metadata.author, informational only",
    )


@dataclass
class ParseResult:
    """Outcome of parsing a SKILL.md document.

    ``data`` is only set when ``errors`` is empty. Callers must treat a
    non-empty error list as a rejection.
    """

    data: SkillMetadata | None
    content: str
    errors: list[str] = field(default_factory=list)
    malformed: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


def split_front_matter(raw: str) -> tuple[dict[str, Any], str]:
    """Split a document into its front matter mapping and body text.

    A document that does not open with a ``---`` line has no front matter;
    the whole text is the body.

    Raises:
        MalformedFrontMatterError: If the header is never closed, is not
            valid YAML, or is not a mapping.
    """
    text = raw.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)

    if not lines or lines[0].rstrip() != FRONT_MATTER_DELIMITER:
        return {}, text

    for index, line in enumerate(lines[1:], start=1):
        if line.rstrip() == FRONT_MATTER_DELIMITER:
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        msg = "front matter is not closed with '---'"
        raise MalformedFrontMatterError(msg)

    try:
        data = yaml.safe_load(header)
    except yaml.YAMLError as e:
        msg = f"invalid YAML in front matter: {e}"
        raise MalformedFrontMatterError(msg) from e

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        msg = "front matter must be a mapping of fields"
        raise MalformedFrontMatterError(msg)
    return data, body


def _text(value: Any) -> str:
    """Coerce a front matter scalar to stripped text; missing becomes ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def _tokens(value: Any) -> list[str] | None:
    """allowed-tools: whitespace separated, empty tokens dropped."""
    if value is None:
        return None
    if isinstance(value, list):
        return [token for item in value for token in _text(item).split()]
    return _text(value).split()


def _tags(value: Any) -> list[str]:
    if isinstance(value, list):
        candidates = [_text(item) for item in value]
    elif isinstance(value, str):
        candidates = [part.strip() for part in _TAG_SEPARATOR.split(value)]
    else:
        return []
    return [tag for tag in candidates if tag]


def _validate_name(name: str) -> list[str]:
    if not name:
        return ["name is required"]
    errors = []
    if len(name) > NAME_MAX_LENGTH:
        errors.append(f"name must be at most {NAME_MAX_LENGTH} characters")
    if not NAME_PATTERN.fullmatch(name):
        errors.append(
            "name must contain only lowercase letters, numbers, hyphens, @, and /; "
            "must not start or end with hyphen; no consecutive hyphens"
        )
    return errors


def _validate_description(description: str) -> list[str]:
    if not description:
        return ["description is required"]
    if len(description) > DESCRIPTION_MAX_LENGTH:
        return [f"description must be at most {DESCRIPTION_MAX_LENGTH} characters"]
    return []


def to_metadata(front_matter: dict[str, Any]) -> tuple[SkillMetadata, list[str]]:
    """Map an untyped front matter mapping onto SkillMetadata.

    Every field goes through a default-applying accessor. The returned
    metadata is only trustworthy when the error list is empty.
    """
    errors: list[str] = []

    name = _text(front_matter.get("name"))
    errors.extend(_validate_name(name))

    description = _text(front_matter.get("description"))
    errors.extend(_validate_description(description))

    license_ = _optional_text(front_matter.get("license"))
    compatibility = _optional_text(front_matter.get("compatibility"))
    if compatibility and len(compatibility) > COMPATIBILITY_MAX_LENGTH:
        errors.append(f"compatibility must be at most {COMPATIBILITY_MAX_LENGTH} characters")

    # version and author usually live under metadata:
    nested = front_matter.get("metadata")
    nested = nested if isinstance(nested, dict) else {}
    raw_version = nested.get("version")
    if raw_version is None:
        raw_version = front_matter.get("version")
    version = _text(raw_version) if raw_version is not None else DEFAULT_VERSION
    if not VERSION_PATTERN.fullmatch(version):
        errors.append("version (in metadata or top-level) must be X.Y.Z format")

    author = nested.get("author")

    metadata = SkillMetadata(
        name=name,
        description=description,
        version=version,
        license=license_ or DEFAULT_LICENSE,
        compatibility=compatibility,
        allowed_tools=_tokens(front_matter.get("allowed-tools")),
        category=(_text(front_matter.get("category")) or DEFAULT_CATEGORY).lower(),
        tags=_tags(front_matter.get("tags")),
        repository_url=_optional_text(front_matter.get("repositoryUrl")),
        documentation_url=_optional_text(front_matter.get("documentationUrl")),
        demo_url=_optional_text(front_matter.get("demoUrl")),
        metadata_author=str(author) if author is not None else None,
    )
    return metadata, errors


def parse_skill_md(raw: str) -> ParseResult:
    """Parse and validate a SKILL.md document.

    Args:
        raw: Full document text.

    Returns:
        ParseResult with normalized metadata and the trimmed body on success,
        or ``data=None`` and every violated rule in ``errors``. A header that
        cannot be split from the body yields a single error and
        ``malformed=True``.
    """
    try:
        front_matter, body = split_front_matter(raw)
    except MalformedFrontMatterError as e:
        return ParseResult(
            data=None,
            content="",
            errors=[f"Failed to parse SKILL.md: {e}"],
            malformed=True,
        )

    metadata, errors = to_metadata(front_matter)
    content = body.strip()
    if errors:
        return ParseResult(data=None, content=content, errors=errors)
    return ParseResult(data=metadata, content=content)
