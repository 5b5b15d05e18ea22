"""Remote fetch for URL-sourced skill uploads."""

import logging

import httpx

from botskill import __version__
from botskill.source import UploadInput, filename_from_disposition, filename_from_url, to_fetchable_url

log = logging.getLogger(__name__)

USER_AGENT = f"botskill/{__version__}"
FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_BYTES = 50 * 1024 * 1024


class FetchError(Exception):
    """Raised when a skill payload cannot be fetched from a URL."""


def fetch_upload(
    url: str,
    client: httpx.Client | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> UploadInput:
    """Download a skill payload (SKILL.md, zip or tar.gz) from a URL.

    GitHub page URLs are rewritten to raw-content URLs first. Redirects
    are followed; the final URL and the response headers are kept as hints
    for input-kind detection.

    Args:
        url: URL as given by the user.
        client: HTTP client to use; a short-lived one is created if omitted.
        max_bytes: Abort once the body grows beyond this many bytes.

    Returns:
        UploadInput with ``source_url`` set to the original URL.

    Raises:
        FetchError: On transport errors, non-2xx responses or oversized bodies.
    """
    fetch_url = to_fetchable_url(url)
    log.debug("Fetching %s (from %s)", fetch_url, url)

    owns_client = client is None
    http = client or httpx.Client(headers={"user-agent": USER_AGENT})
    try:
        with http.stream("GET", fetch_url, timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as response:
            if not response.is_success:
                msg = f"Failed to fetch {fetch_url}: {response.status_code} {response.reason_phrase}"
                raise FetchError(msg)

            chunks: list[bytes] = []
            size = 0
            for chunk in response.iter_bytes():
                size += len(chunk)
                if size > max_bytes:
                    msg = f"Response from {fetch_url} exceeds the {max_bytes} byte upload limit"
                    raise FetchError(msg)
                chunks.append(chunk)

            headers = {key.lower(): value for key, value in response.headers.items()}
            final_url = str(response.url)
    except httpx.HTTPError as e:
        msg = f"Failed to fetch {fetch_url}: {e}"
        raise FetchError(msg) from e
    finally:
        if owns_client:
            http.close()

    disposition = headers.get("content-disposition", "")
    file_name = filename_from_disposition(disposition) or filename_from_url(final_url)
    return UploadInput(
        content=b"".join(chunks),
        file_name=file_name,
        headers=headers,
        source_url=url,
    )
