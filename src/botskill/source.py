"""Upload input classification.

Decides whether an upload is a bare SKILL.md, a zip, or a tar.gz.

Detection order:
1. Magic bytes (``PK\\x03\\x04`` zip, ``\\x1f\\x8b`` gzip) - always win
2. A ``.md`` file name -> bare manifest
3. URL-sourced text whose first non-blank characters are ``---`` -> bare manifest
4. Otherwise -> unsupported

File name, Content-Type and Content-Disposition are only corroborating
signals: they come from the client or a remote server and are not trusted
over the bytes themselves.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

from botskill.archive import ArchiveFormat, detect_archive_format

log = logging.getLogger(__name__)

ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")
GZIP_MAGIC = b"\x1f\x8b"

_GITHUB_BLOB = re.compile(r"github\.com/([^/]+)/([^/]+)/blob/([^/]+)/(.+)")
_GITHUB_REPO = re.compile(r"github\.com/([^/]+)/([^/]+?)/?$")
_DISPOSITION_FILENAME = re.compile(
    r"""filename\*=(?:UTF-8'')?([^;]+)|filename="?([^";]+)"?""",
    re.IGNORECASE,
)


class InputKind(str, Enum):
    """What an upload turned out to be."""

    MANIFEST = "manifest"
    ZIP = "zip"
    TAR_GZ = "tar.gz"
    UNSUPPORTED = "unsupported"

    @property
    def is_archive(self) -> bool:
        return self in (InputKind.ZIP, InputKind.TAR_GZ)

    @property
    def staging_name(self) -> str:
        """File name to stage an archive of this kind under."""
        return "upload.zip" if self == InputKind.ZIP else "upload.tar.gz"


@dataclass(frozen=True)
class UploadInput:
    """Raw upload handed to the ingest pipeline.

    Attributes:
        content: Uploaded or fetched bytes.
        file_name: Client file name hint (multipart upload) or a name
            derived from the fetched URL / Content-Disposition.
        headers: Response headers for URL-sourced input, lowercased keys.
        source_url: The URL the payload was fetched from, if any.
    """

    content: bytes
    file_name: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    source_url: str | None = None

    @property
    def from_url(self) -> bool:
        return self.source_url is not None


def is_url(source: str) -> bool:
    """Check if a CLI source argument is an http(s) URL rather than a path."""
    return source.strip().lower().startswith(("https://", "http://"))


def to_fetchable_url(url: str) -> str:
    """Rewrite GitHub page URLs into raw-content URLs.

    - ``github.com/u/r/blob/<branch>/<path>`` -> raw file
    - ``github.com/u/r`` -> ``SKILL.md`` on the ``main`` branch
    - anything else is returned unchanged
    """
    stripped = url.strip()
    if "raw.githubusercontent.com" in stripped:
        return stripped

    blob = _GITHUB_BLOB.search(stripped)
    if blob:
        user, repo, branch, path = blob.groups()
        return f"https://raw.githubusercontent.com/{user}/{repo}/{branch}/{path}"

    repo_match = _GITHUB_REPO.search(stripped)
    if repo_match:
        user, repo = repo_match.groups()
        return f"https://raw.githubusercontent.com/{user}/{repo}/main/SKILL.md"

    return stripped


def filename_from_disposition(header: str) -> str:
    """Extract the file name from a Content-Disposition header, or ''."""
    match = _DISPOSITION_FILENAME.search(header or "")
    if not match:
        return ""
    return unquote((match.group(1) or match.group(2) or "").strip())


def filename_from_url(url: str) -> str:
    return PurePosixPath(unquote(urlparse(url).path)).name


def _sniff(content: bytes) -> InputKind | None:
    if content.startswith(ZIP_MAGIC):
        return InputKind.ZIP
    if content.startswith(GZIP_MAGIC):
        return InputKind.TAR_GZ
    return None


def _declared_kind(upload: UploadInput) -> InputKind | None:
    """What the file name and headers claim the payload is."""
    content_type = upload.headers.get("content-type", "").lower()
    disposition_name = filename_from_disposition(upload.headers.get("content-disposition", ""))

    for name in (disposition_name, upload.file_name):
        archive_format = detect_archive_format(name) if name else None
        if archive_format == ArchiveFormat.ZIP:
            return InputKind.ZIP
        if archive_format == ArchiveFormat.TAR_GZ:
            return InputKind.TAR_GZ

    if "zip" in content_type:
        return InputKind.ZIP
    if "gzip" in content_type:
        return InputKind.TAR_GZ
    if upload.file_name.lower().endswith(".md") or "markdown" in content_type:
        return InputKind.MANIFEST
    return None


def _looks_like_manifest(content: bytes) -> bool:
    text = content.decode("utf-8", errors="replace").lstrip("\ufeff").strip()
    return text.startswith("---")


def detect_input_kind(upload: UploadInput) -> InputKind:
    """Classify an upload, trusting magic bytes over names and headers.

    Args:
        upload: The raw upload.

    Returns:
        The detected InputKind.
    """
    sniffed = _sniff(upload.content)
    declared = _declared_kind(upload)

    if sniffed is not None:
        if declared is not None and declared != sniffed:
            log.info(
                "Upload '%s' declares %s but its bytes are %s; using %s",
                upload.file_name or upload.source_url,
                declared.value,
                sniffed.value,
                sniffed.value,
            )
        return sniffed

    if declared is not None and declared.is_archive:
        log.info(
            "Upload '%s' declares %s but has no archive signature",
            upload.file_name or upload.source_url,
            declared.value,
        )
        return InputKind.UNSUPPORTED

    # Fetched text must at least open like a SKILL.md; the URL name proves nothing
    if upload.from_url:
        return InputKind.MANIFEST if _looks_like_manifest(upload.content) else InputKind.UNSUPPORTED

    if upload.file_name.lower().endswith(".md"):
        return InputKind.MANIFEST

    return InputKind.UNSUPPORTED
