"""Per-invocation scratch directories for archive extraction.

Every ingest gets its own ``extract-<millis>-<random>`` directory under the
scratch root, removed when the ``with`` block exits however it exits. An
aborted process can still leave directories behind; ``sweep_scratch``
clears those once they are old enough.
"""

import logging
import shutil
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

log = logging.getLogger(__name__)

SCRATCH_PREFIX = "extract-"
DEFAULT_MAX_AGE_SECONDS = 60 * 60


@contextmanager
def scratch_dir(root: Path) -> Iterator[Path]:
    """Create a uniquely named scratch directory and remove it on exit.

    Args:
        root: Parent directory for scratch directories (created if missing).

    Yields:
        Path of the new, empty directory.
    """
    root.mkdir(parents=True, exist_ok=True)
    prefix = f"{SCRATCH_PREFIX}{int(time.time() * 1000)}-"
    with tempfile.TemporaryDirectory(prefix=prefix, dir=root) as tmp:
        log.debug("Created scratch directory %s", tmp)
        yield Path(tmp)


def sweep_scratch(
    root: Path,
    max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> list[Path]:
    """Delete leftover scratch directories older than max_age_seconds.

    Args:
        root: Scratch root to sweep.
        max_age_seconds: Minimum age (by modification time) before removal.
        now: Current time as a Unix timestamp; defaults to ``time.time()``.

    Returns:
        The removed paths, in name order.
    """
    if not root.is_dir():
        return []

    current = time.time() if now is None else now
    removed: list[Path] = []
    for entry in sorted(root.iterdir()):
        if not entry.name.startswith(SCRATCH_PREFIX):
            continue
        age = current - entry.stat().st_mtime
        if age < max_age_seconds:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        log.info("Removed stale scratch entry %s (%.0fs old)", entry.name, age)
        removed.append(entry)
    return removed
