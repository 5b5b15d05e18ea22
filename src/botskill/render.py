"""Download packaging for stored skill versions."""

import io
import zipfile
from pathlib import Path

import yaml

from botskill.skill_md import FRONT_MATTER_DELIMITER, SKILL_MD_FILENAME
from botskill.skill_schema import Skill, SkillVersion


def build_skill_md(skill: Skill, version: SkillVersion) -> str:
    """Regenerate a SKILL.md document for one version of a skill.

    The stored body is appended verbatim after the front matter.
    """
    front_matter: dict[str, object] = {
        "name": skill.name,
        "description": version.description or skill.description,
        "license": skill.license,
        "metadata": {"version": version.version, "author": skill.author},
    }
    if skill.compatibility:
        front_matter["compatibility"] = skill.compatibility
    if skill.allowed_tools:
        front_matter["allowed-tools"] = " ".join(skill.allowed_tools)
    front_matter["category"] = skill.category
    tags = version.tags or skill.tags
    if tags:
        front_matter["tags"] = tags

    header = yaml.dump(front_matter, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return f"{FRONT_MATTER_DELIMITER}\n{header}{FRONT_MATTER_DELIMITER}\n\n{version.content}\n"


def download_file_name(skill: Skill, version: SkillVersion, suffix: str = ".zip") -> str:
    return f"{skill.name}-{version.version}{suffix}".replace("/", "-")


def build_download_archive(
    skill: Skill,
    version: SkillVersion,
    archive_store: Path | None = None,
) -> tuple[str, bytes]:
    """Package a skill version for download.

    The originally uploaded archive is returned when it is still in the
    archive store, named after its own format. Otherwise a zip holding
    ``<name>/SKILL.md`` is built.

    Returns:
        Tuple of (download file name, archive bytes).
    """
    if archive_store is not None and version.file_path:
        stored = archive_store / version.file_path
        if stored.is_file():
            suffix = ".tar.gz" if stored.name.endswith(".tar.gz") else ".zip"
            return download_file_name(skill, version, suffix), stored.read_bytes()

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"{skill.name}/{SKILL_MD_FILENAME}", build_skill_md(skill, version))
    return download_file_name(skill, version), buffer.getvalue()
