"""Skill and skill version records using Pydantic.

A Skill owns an ordered version history. Its top-level description, tags
and version mirror the most recently added or updated version.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from botskill.skill_md import DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH
from botskill.version import ARTIFACT_VERSION_PATTERN, select_version

TAG_MAX_LENGTH = 30
COMPATIBILITY_MAX_LENGTH = 500

URL_PATTERN = re.compile(r"https?://.*")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _check_version(v: str) -> str:
    if not ARTIFACT_VERSION_PATTERN.fullmatch(v):
        msg = "version must be X.Y.Z or latest"
        raise ValueError(msg)
    return v


def _check_tags(tags: list[str]) -> list[str]:
    cleaned = [tag.strip() for tag in tags if tag.strip()]
    for tag in cleaned:
        if len(tag) > TAG_MAX_LENGTH:
            msg = f"tag '{tag}' exceeds {TAG_MAX_LENGTH} characters"
            raise ValueError(msg)
    return cleaned


class SkillStatus(str, Enum):
    """Publication state of a skill."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    PENDING_REVIEW = "pending_review"


class SkillVersion(BaseModel):
    """One entry in a skill's version history."""

    version: str = Field(description="X.Y.Z, or the literal 'latest'")
    description: str = Field(max_length=DESCRIPTION_MAX_LENGTH)
    content: str = Field(default="", description="SKILL.md body, stored verbatim")
    tags: list[str] = Field(default_factory=list)
    file_path: str | None = Field(
        default=None,
        description="Stored original archive, if the version was uploaded as one",
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Empty or malformed versions are not representable."""
        return _check_version(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _check_tags(v)


class Skill(BaseModel):
    """A named skill with its version history."""

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    slug: str
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    version: str = "1.0.0"
    author: str = Field(description="Actor id of the owner")
    category: str = "tools"
    tags: list[str] = Field(default_factory=list)
    license: str = "MIT"
    compatibility: str | None = Field(default=None, max_length=COMPATIBILITY_MAX_LENGTH)
    allowed_tools: list[str] | None = None
    repository_url: str | None = None
    documentation_url: str | None = None
    demo_url: str | None = None
    status: SkillStatus = SkillStatus.DRAFT
    downloads: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    last_updated: datetime = Field(default_factory=_utcnow)
    versions: list[SkillVersion] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        return _check_version(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _check_tags(v)

    @field_validator("repository_url", "documentation_url", "demo_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Links must be http(s) URLs; empty strings mean no link."""
        if not v:
            return None
        if not URL_PATTERN.fullmatch(v):
            msg = "must be an http(s) URL"
            raise ValueError(msg)
        return v

    def version_index(self, version: str) -> int | None:
        """Position of an exact version string in the history, or None."""
        return next((i for i, v in enumerate(self.versions) if v.version == version), None)

    def find_version(self, version: str) -> SkillVersion | None:
        index = self.version_index(version)
        return None if index is None else self.versions[index]

    def current_version(self, requested: str | None = None) -> SkillVersion | None:
        """The requested version, or the highest one when none is requested."""
        return select_version(self.versions, requested, key=lambda v: v.version)
