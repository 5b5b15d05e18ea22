"""Archive extraction and SKILL.md discovery.

Uploaded skill packages are untrusted. Extraction writes only inside the
caller's directory: entries that would resolve outside it (``../``,
absolute paths, links) are skipped.
"""

import gzip
import json
import logging
import shutil
import stat
import tarfile
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from botskill.skill_md import SKILL_MD_FILENAME, ParseResult, parse_skill_md

log = logging.getLogger(__name__)

SIDECAR_CONFIG_FILENAME = "skill.config.json"

# Root is depth 0; SKILL.md may sit at most two directories down by default
DEFAULT_SEARCH_DEPTH = 2


class ArchiveFormat(str, Enum):
    """Supported archive formats."""

    ZIP = "zip"
    TAR_GZ = "tar.gz"


class ArchiveError(Exception):
    """Raised when an archive is corrupt beyond reading."""


@dataclass(frozen=True)
class ExtractionResult:
    """Location of the manifest inside an extracted archive.

    Only valid while the extraction directory exists.
    """

    skill_md_path: Path
    root_dir: Path

    @property
    def skill_dir(self) -> Path:
        """Directory holding SKILL.md (where a sidecar config would live)."""
        return self.skill_md_path.parent


class SidecarConfig(BaseModel):
    """Packaging-tool settings shipped next to SKILL.md as skill.config.json."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    version: str | None = None
    category: str | None = None
    license: str | None = None
    repository_url: str | None = Field(default=None, alias="repositoryUrl")
    documentation_url: str | None = Field(default=None, alias="documentationUrl")
    demo_url: str | None = Field(default=None, alias="demoUrl")
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def drop_non_list_tags(cls, v: object) -> object:
        """Only a JSON array counts as a tag list."""
        return v if isinstance(v, list) else None


def detect_archive_format(file_name: str) -> ArchiveFormat | None:
    """Detect the archive format from a file name.

    ``.zip`` wins first; ``.tar.gz``, ``.tgz`` and ``<name>.tar`` + ``.gz``
    are tar+gzip. Anything else is unsupported.
    """
    lowered = file_name.strip().lower()
    if lowered.endswith(".zip"):
        return ArchiveFormat.ZIP

    path = PurePosixPath(lowered)
    if lowered.endswith((".tar.gz", ".tgz")):
        return ArchiveFormat.TAR_GZ
    if path.suffix == ".gz" and path.stem.endswith(".tar"):
        return ArchiveFormat.TAR_GZ
    return None


def _safe_target(root: Path, member_name: str) -> Path | None:
    """Resolve an archive member name inside root, or None if it escapes."""
    target = (root / member_name).resolve()
    if not target.is_relative_to(root.resolve()):
        return None
    return target


def _extract_zip(archive_path: Path, extract_to: Path) -> None:
    with zipfile.ZipFile(archive_path) as zf:
        for info in zf.infolist():
            mode = info.external_attr >> 16
            if stat.S_ISLNK(mode):
                log.warning("Skipping symlink entry '%s' in %s", info.filename, archive_path.name)
                continue

            target = _safe_target(extract_to, info.filename)
            if target is None:
                log.warning("Skipping unsafe entry '%s' in %s", info.filename, archive_path.name)
                continue

            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)


def _extract_tar_gz(archive_path: Path, extract_to: Path) -> None:
    with tarfile.open(archive_path, mode="r:gz") as tf:
        for member in tf.getmembers():
            try:
                safe_member = tarfile.data_filter(member, str(extract_to))
            except tarfile.FilterError as e:
                log.warning("Skipping unsafe entry '%s' in %s: %s", member.name, archive_path.name, e)
                continue
            if safe_member is None:
                continue
            if safe_member.issym() or safe_member.islnk():
                log.warning("Skipping link entry '%s' in %s", member.name, archive_path.name)
                continue
            tf.extract(safe_member, extract_to, filter="data")


def find_skill_md(directory: Path, max_depth: int = DEFAULT_SEARCH_DEPTH) -> Path | None:
    """Find SKILL.md (case-insensitive) under directory.

    Files at the current level are checked before descending, so a root
    SKILL.md always beats a nested one. Subdirectories are visited in name
    order and no deeper than max_depth levels below directory.

    Returns:
        Path to the manifest, or None if none was found within the depth limit.
    """
    return _find_skill_md(directory, max_depth, depth=0)


def _find_skill_md(directory: Path, max_depth: int, depth: int) -> Path | None:
    entries = sorted(directory.iterdir(), key=lambda p: p.name)

    for entry in entries:
        if entry.is_file() and not entry.is_symlink() and entry.name.lower() == SKILL_MD_FILENAME.lower():
            return entry

    if depth >= max_depth:
        return None

    for entry in entries:
        if entry.is_dir() and not entry.is_symlink():
            found = _find_skill_md(entry, max_depth, depth + 1)
            if found is not None:
                return found
    return None


def extract_and_find_skill_md(
    archive_path: Path,
    extract_to: Path,
    original_name: str = "",
    max_depth: int = DEFAULT_SEARCH_DEPTH,
) -> ExtractionResult | None:
    """Extract an uploaded archive and locate its SKILL.md.

    Args:
        archive_path: Staged archive file.
        extract_to: Existing, empty directory to extract into.
        original_name: Upload file name used for format detection;
            defaults to archive_path's own name.
        max_depth: Ceiling for the manifest search.

    Returns:
        ExtractionResult, or None when the format is unsupported or the
        archive holds no SKILL.md within max_depth.

    Raises:
        ArchiveError: If the archive is corrupt.
    """
    archive_format = detect_archive_format(original_name or archive_path.name)
    if archive_format is None:
        return None

    try:
        if archive_format == ArchiveFormat.ZIP:
            _extract_zip(archive_path, extract_to)
        else:
            _extract_tar_gz(archive_path, extract_to)
    except (zipfile.BadZipFile, tarfile.TarError, gzip.BadGzipFile, EOFError, zlib.error) as e:
        msg = f"Corrupt {archive_format.value} archive '{original_name or archive_path.name}': {e}"
        raise ArchiveError(msg) from e

    skill_md_path = find_skill_md(extract_to, max_depth)
    if skill_md_path is None:
        return None
    return ExtractionResult(skill_md_path=skill_md_path, root_dir=extract_to)


def read_and_parse_skill_md(source: Path | bytes) -> ParseResult:
    """Read a SKILL.md from disk or raw bytes and parse it.

    Invalid UTF-8 sequences are replaced rather than rejected.
    """
    raw = source if isinstance(source, bytes) else source.read_bytes()
    return parse_skill_md(raw.decode("utf-8", errors="replace"))


def load_sidecar_config(skill_dir: Path) -> SidecarConfig | None:
    """Load skill.config.json from the manifest's directory.

    A missing, unreadable or invalid file means "no sidecar", never an error.
    """
    config_path = skill_dir / SIDECAR_CONFIG_FILENAME
    if not config_path.is_file():
        return None

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        log.warning("Ignoring unreadable %s: %s", SIDECAR_CONFIG_FILENAME, e)
        return None

    if not isinstance(data, dict):
        log.warning("Ignoring %s: expected a JSON object", SIDECAR_CONFIG_FILENAME)
        return None

    try:
        return SidecarConfig.model_validate(data)
    except ValidationError as e:
        log.warning("Ignoring invalid %s: %s", SIDECAR_CONFIG_FILENAME, e)
        return None
