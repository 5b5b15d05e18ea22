"""Skill upload pipeline.

Turns a raw upload (bare SKILL.md, zip or tar.gz, local or fetched) into a
validated skill record:

1. Detect the input kind
2. Stage and extract archives in a scratch directory, locate SKILL.md
3. Parse and validate the manifest
4. Merge metadata: overrides > skill.config.json > SKILL.md
5. Check ownership and version conflicts against the registry

Expected failures come back as tagged ``Rejection`` values; only corrupt
archives and I/O failures raise. The scratch directory is removed on every
exit path.
"""

import json
import logging
import secrets
import shutil
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from botskill.archive import (
    DEFAULT_SEARCH_DEPTH,
    SidecarConfig,
    extract_and_find_skill_md,
    load_sidecar_config,
    read_and_parse_skill_md,
)
from botskill.errors import validation_error_messages
from botskill.fetch import DEFAULT_MAX_BYTES, FetchError, fetch_upload
from botskill.registry import DuplicateSkillError, DuplicateVersionError, SkillLookup, SkillRegistry
from botskill.sanitize import slugify
from botskill.scratch import scratch_dir
from botskill.skill_md import DEFAULT_VERSION, ParseResult, SkillMetadata
from botskill.skill_schema import Skill, SkillStatus, SkillVersion
from botskill.source import InputKind, UploadInput, detect_input_kind
from botskill.version import LATEST_TAG

log = logging.getLogger(__name__)

# Scalar fields an override or sidecar may set, lowest layer first
MERGE_FIELDS = ("version", "category", "license", "repository_url", "documentation_url", "demo_url")


class RejectionKind(str, Enum):
    """Why an upload was refused."""

    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    PAYLOAD_TOO_LARGE = "PayloadTooLarge"
    FETCH_FAILED = "FetchFailed"
    MANIFEST_NOT_FOUND = "ManifestNotFound"
    MALFORMED_DOCUMENT = "MalformedDocument"
    VALIDATION_FAILED = "ValidationFailed"
    UNKNOWN_CATEGORY = "UnknownCategory"
    NAME_COLLISION = "NameCollision"
    VERSION_CONFLICT = "VersionConflict"
    NOT_AUTHORIZED = "NotAuthorized"


@dataclass(frozen=True)
class Rejection:
    """Base for all rejection values. ``message`` is user-facing."""

    kind: ClassVar[RejectionKind]
    message: str


@dataclass(frozen=True)
class UnsupportedFormat(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.UNSUPPORTED_FORMAT


@dataclass(frozen=True)
class PayloadTooLarge(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.PAYLOAD_TOO_LARGE
    size: int = 0
    limit: int = 0


@dataclass(frozen=True)
class FetchFailed(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.FETCH_FAILED
    url: str = ""


@dataclass(frozen=True)
class ManifestNotFound(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.MANIFEST_NOT_FOUND


@dataclass(frozen=True)
class MalformedDocument(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.MALFORMED_DOCUMENT
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationFailed(Rejection):
    """One message per violated rule, all reported together."""

    kind: ClassVar[RejectionKind] = RejectionKind.VALIDATION_FAILED
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UnknownCategory(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.UNKNOWN_CATEGORY
    category: str = ""
    allowed: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class NameCollision(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.NAME_COLLISION
    name: str = ""
    owner: str = ""


@dataclass(frozen=True)
class VersionConflict(Rejection):
    """The version exists already; retrying with overwrite replaces it."""

    kind: ClassVar[RejectionKind] = RejectionKind.VERSION_CONFLICT
    name: str = ""
    version: str = ""


@dataclass(frozen=True)
class NotAuthorized(Rejection):
    kind: ClassVar[RejectionKind] = RejectionKind.NOT_AUTHORIZED


@dataclass(frozen=True)
class Actor:
    """Who is uploading.

    Attributes:
        actor_id: Owner id recorded as the skill author.
        is_administrator: May publish versions of skills owned by others.
        can_publish: False for actors without upload rights at all.
    """

    actor_id: str
    is_administrator: bool = False
    can_publish: bool = True


def _parse_tag_input(value: object) -> object:
    """Accept tags as a list, a JSON list string, or a comma-separated string."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        decoded = None
    if isinstance(decoded, list):
        return [str(item) for item in decoded]
    return [part.strip() for part in text.split(",")]


class Overrides(BaseModel):
    """Caller-supplied fields that win over sidecar and manifest values.

    An absent (None) field falls through to the lower layers. Empty strings
    count as absent, as they do for form fields.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    version: str | None = None
    category: str | None = None
    license: str | None = None
    repository_url: str | None = Field(default=None, alias="repositoryUrl")
    documentation_url: str | None = Field(default=None, alias="documentationUrl")
    demo_url: str | None = Field(default=None, alias="demoUrl")
    tags: list[str] | None = None

    @field_validator(*MERGE_FIELDS, mode="before")
    @classmethod
    def blank_is_absent(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: object) -> object:
        return _parse_tag_input(v)


@dataclass
class PreviewResult:
    """Merged metadata and body of an upload, without touching the registry."""

    metadata: SkillMetadata
    content: str
    kind: InputKind


@dataclass
class IngestSuccess:
    """Outcome of a successful ingest.

    Attributes:
        skill: Full skill record to persist.
        version: The version entry created or replaced.
        created: The skill did not exist before.
        replaced: An existing version entry was overwritten.
        stored_archive: Where the original archive was kept, if stored.
    """

    skill: Skill
    version: SkillVersion
    created: bool
    replaced: bool
    stored_archive: Path | None = None


@dataclass
class _LoadedManifest:
    metadata: SkillMetadata
    content: str
    sidecar: SidecarConfig | None
    kind: InputKind
    staged_archive: Path | None = None


def check_upload_size(upload: UploadInput, max_bytes: int) -> PayloadTooLarge | None:
    """Refuse payloads above max_bytes."""
    size = len(upload.content)
    if size > max_bytes:
        return PayloadTooLarge(
            message=f"Upload is {size} bytes, larger than the {max_bytes} byte limit",
            size=size,
            limit=max_bytes,
        )
    return None


def fetch_or_reject(
    url: str,
    client: httpx.Client | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> UploadInput | FetchFailed:
    """Fetch a URL upload, turning fetch failures into a FetchFailed rejection."""
    try:
        return fetch_upload(url, client=client, max_bytes=max_bytes)
    except FetchError as e:
        return FetchFailed(message=str(e), url=url)


def _load_manifest(upload: UploadInput, scratch: Path, search_depth: int) -> _LoadedManifest | Rejection:
    """Detect the input kind and parse the manifest it carries.

    Archives are staged and extracted inside scratch; the returned paths are
    only valid while scratch exists.
    """
    kind = detect_input_kind(upload)
    log.debug("Upload '%s' detected as %s", upload.file_name or upload.source_url, kind.value)

    if kind == InputKind.UNSUPPORTED:
        return UnsupportedFormat(
            message="Unsupported upload: expected SKILL.md, .zip, .tar.gz or .tgz",
        )

    if kind == InputKind.MANIFEST:
        parsed = read_and_parse_skill_md(upload.content)
        metadata = _checked_metadata(parsed)
        if isinstance(metadata, Rejection):
            return metadata
        return _LoadedManifest(metadata=metadata, content=parsed.content, sidecar=None, kind=kind)

    staged = scratch / kind.staging_name
    staged.write_bytes(upload.content)
    extract_to = scratch / "extracted"
    extract_to.mkdir()

    extraction = extract_and_find_skill_md(staged, extract_to, kind.staging_name, search_depth)
    if extraction is None:
        return ManifestNotFound(message="No SKILL.md found in archive")

    parsed = read_and_parse_skill_md(extraction.skill_md_path)
    metadata = _checked_metadata(parsed)
    if isinstance(metadata, Rejection):
        return metadata
    return _LoadedManifest(
        metadata=metadata,
        content=parsed.content,
        sidecar=load_sidecar_config(extraction.skill_dir),
        kind=kind,
        staged_archive=staged,
    )


def _checked_metadata(parsed: ParseResult) -> SkillMetadata | Rejection:
    if parsed.malformed:
        return MalformedDocument(message="SKILL.md could not be parsed", errors=list(parsed.errors))
    if parsed.errors or parsed.data is None:
        return ValidationFailed(message="Invalid SKILL.md", errors=list(parsed.errors))
    return parsed.data


def merge_metadata(
    manifest: SkillMetadata,
    sidecar: SidecarConfig | None,
    overrides: Overrides,
) -> SkillMetadata:
    """Layer sidecar config and overrides on top of manifest metadata.

    A higher layer only replaces a field it actually sets. Tag lists are
    replaced whole, never combined.
    """
    merged = manifest.model_copy(deep=True)
    for layer in (sidecar, overrides):
        if layer is None:
            continue
        for name in MERGE_FIELDS:
            value = getattr(layer, name)
            if value:
                setattr(merged, name, value)
        if layer.tags is not None:
            merged.tags = [tag.strip() for tag in layer.tags if tag.strip()]

    merged.category = merged.category.strip().lower()
    return merged


def _apply_source_rules(merged: SkillMetadata, upload: UploadInput, overrides: Overrides) -> None:
    """URL uploads without an explicit version are published as ``latest``."""
    if not upload.from_url:
        return
    if overrides.version is None and merged.version == DEFAULT_VERSION:
        merged.version = LATEST_TAG
    if not merged.repository_url:
        merged.repository_url = upload.source_url


def _resolve(
    upload: UploadInput,
    overrides: Overrides,
    scratch: Path,
    search_depth: int,
) -> tuple[_LoadedManifest, SkillMetadata] | Rejection:
    loaded = _load_manifest(upload, scratch, search_depth)
    if isinstance(loaded, Rejection):
        return loaded
    merged = merge_metadata(loaded.metadata, loaded.sidecar, overrides)
    _apply_source_rules(merged, upload, overrides)
    return loaded, merged


def preview(
    upload: UploadInput,
    scratch_root: Path,
    overrides: Overrides | None = None,
    search_depth: int = DEFAULT_SEARCH_DEPTH,
) -> PreviewResult | Rejection:
    """Parse an upload and show the merged metadata without storing anything."""
    with scratch_dir(scratch_root) as scratch:
        resolved = _resolve(upload, overrides or Overrides(), scratch, search_depth)
        if isinstance(resolved, Rejection):
            return resolved
        loaded, merged = resolved
        return PreviewResult(metadata=merged, content=loaded.content, kind=loaded.kind)


def _archive_file_name(kind: InputKind) -> str:
    suffix = ".zip" if kind == InputKind.ZIP else ".tar.gz"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{suffix}"


def _next_status(existing: Skill | None) -> SkillStatus:
    if existing is not None and existing.status == SkillStatus.PUBLISHED:
        return SkillStatus.PUBLISHED
    return SkillStatus.PENDING_REVIEW


def _build_records(
    merged: SkillMetadata,
    content: str,
    existing: Skill | None,
    actor: Actor,
    file_path: str | None,
) -> tuple[Skill, SkillVersion, bool] | ValidationFailed:
    """Validate the merged metadata into a version entry and a skill record."""
    now = datetime.now(UTC)
    replaced_index = existing.version_index(merged.version) if existing is not None else None

    try:
        version = SkillVersion(
            version=merged.version,
            description=merged.description,
            content=content,
            tags=merged.tags,
            file_path=file_path,
            created_at=existing.versions[replaced_index].created_at if replaced_index is not None else now,
        )

        versions = list(existing.versions) if existing is not None else []
        if replaced_index is not None:
            versions[replaced_index] = version
        else:
            versions.append(version)

        fields = {
            "name": existing.name if existing is not None else merged.name,
            "slug": existing.slug if existing is not None else slugify(merged.name),
            "description": merged.description,
            "version": merged.version,
            "author": existing.author if existing is not None else actor.actor_id,
            "category": merged.category,
            "tags": merged.tags,
            "license": merged.license,
            "compatibility": merged.compatibility,
            "allowed_tools": merged.allowed_tools,
            "repository_url": merged.repository_url,
            "documentation_url": merged.documentation_url,
            "demo_url": merged.demo_url,
            "status": _next_status(existing),
            "downloads": existing.downloads if existing is not None else 0,
            "created_at": existing.created_at if existing is not None else now,
            "last_updated": now,
            "versions": versions,
        }
        skill = Skill.model_validate(fields)
    except ValidationError as e:
        return ValidationFailed(message="Invalid skill metadata", errors=validation_error_messages(e))
    except ValueError as e:
        return ValidationFailed(message="Invalid skill metadata", errors=[str(e)])

    return skill, version, replaced_index is not None


def ingest(
    upload: UploadInput,
    registry: SkillLookup,
    actor: Actor,
    scratch_root: Path,
    overrides: Overrides | None = None,
    *,
    overwrite: bool = False,
    archive_store: Path | None = None,
    categories: list[str] | None = None,
    search_depth: int = DEFAULT_SEARCH_DEPTH,
    max_upload_bytes: int | None = None,
) -> IngestSuccess | Rejection:
    """Validate an upload and produce the skill record to persist.

    The registry is only read. Persisting the returned record is the
    caller's job (see ``publish``).

    Args:
        upload: Raw upload.
        registry: Lookup of existing skills by name.
        actor: Uploader identity, used for the ownership check.
        scratch_root: Parent of the per-call scratch directory.
        overrides: Caller-supplied field overrides.
        overwrite: Replace an existing entry with the same version.
        archive_store: Directory to keep the original archive in; archives
            are not kept when omitted.
        categories: Accepted categories; any category passes when omitted.
        search_depth: Ceiling for the SKILL.md search inside archives.
        max_upload_bytes: Refuse larger payloads; no limit when omitted.

    Returns:
        IngestSuccess, or the Rejection explaining why the upload was refused.

    Raises:
        ArchiveError: If an archive is corrupt.
        OSError: On filesystem failures.
    """
    if not actor.can_publish:
        return NotAuthorized(message=f"'{actor.actor_id}' is not allowed to publish skills")

    if max_upload_bytes is not None:
        too_large = check_upload_size(upload, max_upload_bytes)
        if too_large is not None:
            return too_large

    overrides = overrides or Overrides()

    with scratch_dir(scratch_root) as scratch:
        resolved = _resolve(upload, overrides, scratch, search_depth)
        if isinstance(resolved, Rejection):
            return resolved
        loaded, merged = resolved

        if categories is not None and merged.category not in categories:
            return UnknownCategory(
                message=f"Unknown category '{merged.category}'. Valid categories: {', '.join(categories)}",
                category=merged.category,
                allowed=list(categories),
            )

        existing = registry.find_skill_by_name(merged.name)
        if existing is not None:
            if existing.author != actor.actor_id and not actor.is_administrator:
                return NameCollision(
                    message=f"Skill name '{existing.name}' is already taken by another author",
                    name=existing.name,
                    owner=existing.author,
                )
            if existing.find_version(merged.version) is not None and not overwrite:
                return VersionConflict(
                    message=f"Version {merged.version} already exists for skill '{existing.name}'",
                    name=existing.name,
                    version=merged.version,
                )

        keep_archive = archive_store is not None and loaded.staged_archive is not None
        file_path = _archive_file_name(loaded.kind) if keep_archive else None

        built = _build_records(merged, loaded.content, existing, actor, file_path)
        if isinstance(built, Rejection):
            return built
        skill, version, replaced = built

        stored_archive = None
        if keep_archive and file_path is not None:
            archive_store.mkdir(parents=True, exist_ok=True)
            stored_archive = archive_store / file_path
            shutil.copyfile(loaded.staged_archive, stored_archive)

    log.info(
        "Ingested %s@%s (%s)",
        skill.name,
        version.version,
        "new skill" if existing is None else ("replaced version" if replaced else "new version"),
    )
    return IngestSuccess(
        skill=skill,
        version=version,
        created=existing is None,
        replaced=replaced,
        stored_archive=stored_archive,
    )


def publish(
    upload: UploadInput,
    registry: SkillRegistry,
    actor: Actor,
    scratch_root: Path,
    overrides: Overrides | None = None,
    *,
    overwrite: bool = False,
    archive_store: Path | None = None,
    categories: list[str] | None = None,
    search_depth: int = DEFAULT_SEARCH_DEPTH,
    max_upload_bytes: int | None = None,
) -> IngestSuccess | Rejection:
    """Ingest an upload and commit it to the registry.

    Uniqueness is re-checked at commit time; a skill or version that
    appeared between ingest and commit is reported like an ingest-time
    conflict.
    """
    result = ingest(
        upload,
        registry,
        actor,
        scratch_root,
        overrides,
        overwrite=overwrite,
        archive_store=archive_store,
        categories=categories,
        search_depth=search_depth,
        max_upload_bytes=max_upload_bytes,
    )
    if isinstance(result, Rejection):
        log.info("Upload rejected (%s): %s", result.kind.value, result.message)
        return result

    try:
        stored, previous = registry.commit(
            result.skill, result.version, created=result.created, overwrite=overwrite
        )
    except DuplicateSkillError as e:
        _discard(result.stored_archive)
        return NameCollision(message=f"Skill name '{e.name}' is already taken", name=e.name)
    except DuplicateVersionError as e:
        _discard(result.stored_archive)
        return VersionConflict(
            message=f"Version {e.version} already exists for skill '{e.name}'",
            name=e.name,
            version=e.version,
        )

    # The replaced entry's archive is no longer referenced by any version
    if archive_store is not None and previous is not None and previous.file_path is not None:
        if previous.file_path != result.version.file_path:
            log.debug("Removing replaced archive %s", previous.file_path)
            _discard(archive_store / previous.file_path)

    result.skill = stored
    return result


def _discard(path: Path | None) -> None:
    if path is not None:
        path.unlink(missing_ok=True)
