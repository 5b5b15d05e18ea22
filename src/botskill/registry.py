"""Skill registry storage.

The ingest pipeline only needs read access (``SkillLookup``). Writes go
through ``SkillRegistry.commit``, which re-reads the registry file and
re-checks name and version uniqueness under a lock, so two uploads of the
same version cannot both land even if both passed the ingest-time check.
"""

import threading
from pathlib import Path
from typing import Protocol

from botskill.registry_schema import ConfigSection, RegistrySchema, load_registry, save_registry
from botskill.skill_schema import Skill, SkillVersion


class SkillLookup(Protocol):
    """Read-only access to existing skills."""

    def find_skill_by_name(self, name: str) -> Skill | None:
        """Find a skill by case-insensitive exact name, or None."""
        ...


class SkillNotFoundError(Exception):
    """Raised when a skill name is not in the registry."""

    def __init__(self, name: str) -> None:
        """Initialize with the name that was not found."""
        self.name = name
        super().__init__(f"Skill '{name}' not found in registry")


class DuplicateSkillError(Exception):
    """Raised when committing a new skill whose name is already taken."""

    def __init__(self, name: str) -> None:
        """Initialize with the conflicting name."""
        self.name = name
        super().__init__(f"Skill name '{name}' already exists")


class DuplicateVersionError(Exception):
    """Raised when committing a version that already exists without overwrite."""

    def __init__(self, name: str, version: str) -> None:
        """Initialize with the skill name and conflicting version."""
        self.name = name
        self.version = version
        super().__init__(f"Version {version} already exists for skill '{name}'")


def _find(skills: list[Skill], name: str) -> int | None:
    wanted = name.strip().casefold()
    return next((i for i, s in enumerate(skills) if s.name.casefold() == wanted), None)


class SkillRegistry:
    """registry.yaml-backed skill store living in BotSkill Home."""

    # One lock per process; registry.yaml is the only shared state
    _lock = threading.Lock()

    def __init__(self, home: Path) -> None:
        self.home = home

    def _load(self) -> RegistrySchema:
        return load_registry(self.home)

    @property
    def config(self) -> ConfigSection:
        return self._load().config

    def list_skills(self) -> list[Skill]:
        return self._load().skills

    def find_skill_by_name(self, name: str) -> Skill | None:
        skills = self._load().skills
        index = _find(skills, name)
        return None if index is None else skills[index]

    def get_skill(self, name: str) -> Skill:
        """Like find_skill_by_name, but raises SkillNotFoundError."""
        skill = self.find_skill_by_name(name)
        if skill is None:
            raise SkillNotFoundError(name)
        return skill

    def commit(
        self, skill: Skill, version: SkillVersion, created: bool, overwrite: bool
    ) -> tuple[Skill, SkillVersion | None]:
        """Persist an ingested skill version.

        The stored record is re-read first. For an existing skill, ``version``
        is appended to (or, with overwrite, replaced in) the stored history,
        so versions committed by someone else in the meantime are kept. The
        other fields of ``skill`` replace the stored ones; the download
        counter is left untouched.

        Args:
            skill: Skill record as produced by ingest.
            version: The version entry being published.
            created: The skill is new; its name must still be free.
            overwrite: An existing entry with the same version may be replaced.

        Returns:
            The record as stored and the version entry it replaced, if any.

        Raises:
            DuplicateSkillError: A skill with this name appeared meanwhile.
            DuplicateVersionError: The version appeared meanwhile and
                overwrite was not confirmed.
        """
        with self._lock:
            registry = self._load()
            index = _find(registry.skills, skill.name)

            previous = None
            if created:
                if index is not None:
                    raise DuplicateSkillError(skill.name)
                registry.skills.append(skill)
                stored = skill
            else:
                if index is None:
                    raise SkillNotFoundError(skill.name)
                current = registry.skills[index]
                versions = list(current.versions)
                position = current.version_index(version.version)
                if position is None:
                    versions.append(version)
                elif overwrite:
                    previous = versions[position]
                    versions[position] = version
                else:
                    raise DuplicateVersionError(skill.name, version.version)
                stored = skill.model_copy(update={"versions": versions, "downloads": current.downloads})
                registry.skills[index] = stored

            save_registry(registry, self.home)
            return stored, previous

    def record_download(self, name: str) -> Skill:
        """Increment the download counter of a skill and return the updated record."""
        with self._lock:
            registry = self._load()
            index = _find(registry.skills, name)
            if index is None:
                raise SkillNotFoundError(name)
            skill = registry.skills[index]
            skill.downloads += 1
            save_registry(registry, self.home)
            return skill
