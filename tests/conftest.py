"""Shared test fixtures for BotSkill tests."""

import io
import tarfile
import zipfile
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest
from typer.testing import CliRunner

from botskill import cli, cli_logger
from botskill.init import init_botskill_home
from botskill.registry import SkillRegistry

DEFAULT_BODY = "# My skill\n\nUse it well.\n"


def skill_md(
    name: str | None = "my-skill",
    description: str | None = "does things",
    version: str | None = "1.2.0",
    extra: str = "",
    body: str = DEFAULT_BODY,
) -> str:
    """Build a SKILL.md document.

    Fields passed as None are left out of the front matter. ``extra`` is
    appended verbatim to the front matter block.
    """
    lines = ["---"]
    if name is not None:
        lines.append(f"name: {name}")
    if description is not None:
        lines.append(f'description: "{description}"')
    if version is not None:
        lines.extend(["metadata:", f"  version: {version}"])
    if extra:
        lines.append(extra.rstrip("\n"))
    lines.append("---")
    return "\n".join(lines) + "\n" + body


def write_skill_md(directory: Path, content: str | None = None, **fields: str | None) -> Path:
    """Write a SKILL.md into directory and return its path.

    Args:
        directory: Target directory (created if missing).
        content: Full document text; built with skill_md(**fields) when omitted.
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "SKILL.md"
    path.write_text(content if content is not None else skill_md(**fields), encoding="utf-8")
    return path


def zip_bytes(files: Mapping[str, str | bytes]) -> bytes:
    """Build a zip archive in memory from {member name: content}."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for member, data in files.items():
            zf.writestr(member, data)
    return buffer.getvalue()


def tar_gz_bytes(files: Mapping[str, str | bytes]) -> bytes:
    """Build a tar.gz archive in memory from {member name: content}."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        for member, data in files.items():
            raw = data.encode("utf-8") if isinstance(data, str) else data
            info = tarfile.TarInfo(member)
            info.size = len(raw)
            tf.addfile(info, io.BytesIO(raw))
    return buffer.getvalue()


# Type alias for the archive factory functions
ArchiveFactory = Callable[..., Path]


@pytest.fixture
def make_zip(tmp_path: Path) -> ArchiveFactory:
    """Factory fixture writing a zip archive under tmp_path.

    Usage:
        archive = make_zip({"my-skill/SKILL.md": skill_md()})
    """

    def _make(files: Mapping[str, str | bytes], name: str = "skill.zip") -> Path:
        path = tmp_path / name
        path.write_bytes(zip_bytes(files))
        return path

    return _make


@pytest.fixture
def make_tar_gz(tmp_path: Path) -> ArchiveFactory:
    """Factory fixture writing a tar.gz archive under tmp_path."""

    def _make(files: Mapping[str, str | bytes], name: str = "skill.tar.gz") -> Path:
        path = tmp_path / name
        path.write_bytes(tar_gz_bytes(files))
        return path

    return _make


@pytest.fixture(autouse=True)
def wide_consoles(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin console width so output lines never wrap with the terminal size."""
    for target in (cli.console, cli_logger.console, cli_logger._err_console):
        monkeypatch.setattr(target, "width", 200)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def botskill_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create and initialize a BotSkill Home directory.

    Sets the BOTSKILL_HOME environment variable and returns the home path.
    """
    home = tmp_path / "home"
    monkeypatch.setenv("BOTSKILL_HOME", str(home))
    init_botskill_home(home)
    return home


@pytest.fixture
def registry(botskill_home: Path) -> SkillRegistry:
    """Registry backed by the test BotSkill Home."""
    return SkillRegistry(botskill_home)
