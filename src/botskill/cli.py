"""BotSkill CLI entry point."""

import getpass
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from botskill import __version__, cli_logger, exit_codes
from botskill.errors import handle_cli_error
from botskill.home import archives_dir, get_botskill_home, scratch_root, validate_botskill_home
from botskill.ingest import (
    Actor,
    FetchFailed,
    IngestSuccess,
    MalformedDocument,
    ManifestNotFound,
    NameCollision,
    NotAuthorized,
    Overrides,
    PayloadTooLarge,
    PreviewResult,
    Rejection,
    UnknownCategory,
    UnsupportedFormat,
    ValidationFailed,
    VersionConflict,
    check_upload_size,
    fetch_or_reject,
    preview,
    publish,
)
from botskill.init import init_botskill_home
from botskill.logging import configure_logging
from botskill.registry import SkillRegistry
from botskill.registry_schema import DEFAULT_MAX_UPLOAD_BYTES
from botskill.render import build_download_archive
from botskill.scratch import sweep_scratch
from botskill.source import UploadInput, is_url
from botskill.version import parse_specifier

app = typer.Typer(
    name="botskill",
    help="BotSkill - Parse, validate and publish SKILL.md skill packages.",
    no_args_is_help=True,
)

console = Console()

ACTOR_ENV_VAR = "BOTSKILL_ACTOR"


def require_initialized_home() -> Path:
    """Get BotSkill Home and verify it is initialized.

    Returns:
        Path to the initialized BotSkill Home directory.

    Raises:
        typer.Exit: With HOME_NOT_INITIALIZED if BotSkill Home is not initialized.
    """
    home = get_botskill_home()
    validation = validate_botskill_home(home)

    if not validation.is_valid:
        cli_logger.error(f"BotSkill Home not initialized at {home}")
        cli_logger.info("  Run [bold]botskill init[/bold] first.")
        raise typer.Exit(exit_codes.HOME_NOT_INITIALIZED)

    return home


def _resolve_actor(actor: str | None) -> str:
    """Actor id from --actor, then BOTSKILL_ACTOR, then the login name."""
    if actor:
        return actor
    env_value = os.environ.get(ACTOR_ENV_VAR)
    if env_value:
        return env_value
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return "unknown"


def _load_upload(source: str, max_bytes: int) -> UploadInput:
    """Read a local file or fetch a URL into an UploadInput.

    Raises:
        typer.Exit: If the file does not exist or the fetch fails.
    """
    if is_url(source):
        fetched = fetch_or_reject(source, max_bytes=max_bytes)
        if isinstance(fetched, FetchFailed):
            _exit_rejected(fetched)
        return fetched

    path = Path(source).expanduser()
    if not path.is_file():
        cli_logger.error(f"Source file '{source}' does not exist")
        raise typer.Exit(exit_codes.INVALID_ARGS)
    return UploadInput(content=path.read_bytes(), file_name=path.name)


def _exit_rejected(rejection: Rejection) -> NoReturn:
    """Print a rejection and exit with its exit code.

    Raises:
        typer.Exit: Always.
    """
    cli_logger.error(rejection.message)

    match rejection:
        case ValidationFailed(errors=errors):
            cli_logger.details(errors)
            raise typer.Exit(exit_codes.SKILL_INVALID)

        case MalformedDocument(errors=errors):
            cli_logger.details(errors)
            raise typer.Exit(exit_codes.MALFORMED_DOCUMENT)

        case UnsupportedFormat():
            raise typer.Exit(exit_codes.UNSUPPORTED_FORMAT)

        case PayloadTooLarge():
            raise typer.Exit(exit_codes.PAYLOAD_TOO_LARGE)

        case FetchFailed():
            raise typer.Exit(exit_codes.FETCH_FAILED)

        case ManifestNotFound():
            raise typer.Exit(exit_codes.MANIFEST_NOT_FOUND)

        case UnknownCategory():
            raise typer.Exit(exit_codes.UNKNOWN_CATEGORY)

        case NameCollision():
            raise typer.Exit(exit_codes.NAME_COLLISION)

        case VersionConflict():
            cli_logger.info("  Re-run with [bold]--overwrite[/bold] to replace it.")
            raise typer.Exit(exit_codes.VERSION_CONFLICT)

        case NotAuthorized():
            raise typer.Exit(exit_codes.NOT_AUTHORIZED)

        case _:
            raise typer.Exit(exit_codes.GENERAL_ERROR)


def _print_preview(result: PreviewResult) -> None:
    metadata = result.metadata
    table = Table(show_header=False, box=None)
    table.add_column("FIELD", style="cyan")
    table.add_column("VALUE")

    table.add_row("name", metadata.name)
    table.add_row("version", metadata.version)
    table.add_row("description", metadata.description)
    table.add_row("category", metadata.category)
    table.add_row("license", metadata.license)
    table.add_row("tags", ", ".join(metadata.tags) or "-")
    if metadata.allowed_tools:
        table.add_row("allowed-tools", " ".join(metadata.allowed_tools))
    if metadata.compatibility:
        table.add_row("compatibility", metadata.compatibility)
    if metadata.repository_url:
        table.add_row("repository", metadata.repository_url)
    table.add_row("format", result.kind.value)

    console.print(table)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"botskill {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show BotSkill version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """BotSkill - Parse, validate and publish SKILL.md skill packages."""
    configure_logging(verbose=verbose)


@app.command()
def init(
    directory: Annotated[
        Path | None,
        typer.Argument(
            help="Target directory to initialize. Defaults to BOTSKILL_HOME or ~/.botskill/",
        ),
    ] = None,
) -> None:
    """Initialize BotSkill Home directory.

    Creates the registry file and the archive and scratch directories.
    If already initialized, this is a no-op.
    """
    target = directory if directory else get_botskill_home()

    result = init_botskill_home(target)

    if result.is_valid:
        cli_logger.success(f"BotSkill Home initialized at {target}")
        raise typer.Exit(exit_codes.SUCCESS)

    cli_logger.error(f"Failed to initialize BotSkill Home at {target}")
    cli_logger.details(result.errors)
    raise typer.Exit(exit_codes.GENERAL_ERROR)


@app.command()
def parse(
    source: Annotated[
        str,
        typer.Argument(help="SKILL.md, .zip, .tar.gz file or URL to parse."),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the parsed metadata as JSON."),
    ] = False,
) -> None:
    """Parse and validate a skill package without publishing it."""
    home = get_botskill_home()
    if validate_botskill_home(home).is_valid:
        scratch = scratch_root(home)
        max_bytes = SkillRegistry(home).config.max_upload_bytes
    else:
        scratch = Path(tempfile.gettempdir()) / "botskill"
        max_bytes = DEFAULT_MAX_UPLOAD_BYTES

    upload = _load_upload(source, max_bytes)
    too_large = check_upload_size(upload, max_bytes)
    if too_large is not None:
        _exit_rejected(too_large)

    result = preview(upload, scratch)
    if isinstance(result, Rejection):
        _exit_rejected(result)

    if as_json:
        payload = {
            "kind": result.kind.value,
            "metadata": result.metadata.model_dump(mode="json"),
            "content": result.content,
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        _print_preview(result)
    raise typer.Exit(exit_codes.SUCCESS)


@app.command(name="publish")
def publish_command(
    source: Annotated[
        str,
        typer.Argument(help="SKILL.md, .zip, .tar.gz file or URL to publish."),
    ],
    version: Annotated[str | None, typer.Option("--set-version", help="Override the version.")] = None,
    category: Annotated[str | None, typer.Option("--category", help="Override the category.")] = None,
    license_: Annotated[str | None, typer.Option("--license", help="Override the license.")] = None,
    tags: Annotated[
        str | None,
        typer.Option("--tags", help="Override tags: comma-separated or a JSON list."),
    ] = None,
    repository_url: Annotated[str | None, typer.Option("--repository-url")] = None,
    documentation_url: Annotated[str | None, typer.Option("--documentation-url")] = None,
    demo_url: Annotated[str | None, typer.Option("--demo-url")] = None,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", "-f", help="Replace an existing version without asking."),
    ] = False,
    actor: Annotated[
        str | None,
        typer.Option("--actor", help=f"Publishing identity. Defaults to ${ACTOR_ENV_VAR} or the login name."),
    ] = None,
    admin: Annotated[bool, typer.Option("--admin", help="Publish as an administrator.")] = False,
) -> None:
    """Publish a skill package to the registry.

    When the version already exists you are asked whether to overwrite it.
    """
    home = require_initialized_home()
    registry = SkillRegistry(home)
    config = registry.config

    upload = _load_upload(source, config.max_upload_bytes)
    overrides = Overrides(
        version=version,
        category=category,
        license=license_,
        tags=tags,
        repository_url=repository_url,
        documentation_url=documentation_url,
        demo_url=demo_url,
    )
    uploader = Actor(actor_id=_resolve_actor(actor), is_administrator=admin)

    def attempt(confirmed: bool) -> IngestSuccess | Rejection:
        return publish(
            upload,
            registry,
            uploader,
            scratch_root(home),
            overrides,
            overwrite=confirmed,
            archive_store=archives_dir(home),
            categories=config.categories,
            search_depth=config.search_depth,
            max_upload_bytes=config.max_upload_bytes,
        )

    try:
        result = attempt(overwrite)
        if isinstance(result, VersionConflict) and not overwrite:
            if typer.confirm(f"Version {result.version} of '{result.name}' already exists. Overwrite?"):
                result = attempt(True)
    finally:
        sweep_scratch(scratch_root(home), config.scratch_max_age_seconds)

    if isinstance(result, Rejection):
        _exit_rejected(result)

    if result.created:
        action = "Published new skill"
    elif result.replaced:
        action = "Replaced version of"
    else:
        action = "Published new version of"
    cli_logger.success(f"{action} '{result.skill.name}' ({result.version.version})")
    cli_logger.dim(f"  status: {result.skill.status.value}")
    raise typer.Exit(exit_codes.SUCCESS)


@app.command()
def versions(
    name: Annotated[str, typer.Argument(help="Skill name.")],
) -> None:
    """List the versions of a skill, newest marked with *."""
    home = require_initialized_home()
    skill = SkillRegistry(home).find_skill_by_name(name)
    if skill is None:
        cli_logger.error(f"Skill '{name}' not found in registry")
        raise typer.Exit(exit_codes.SKILL_NOT_FOUND)

    current = skill.current_version()

    table = Table(show_header=True, header_style="bold")
    table.add_column("VERSION", style="cyan")
    table.add_column("CREATED")
    table.add_column("TAGS")
    table.add_column("ARCHIVE")

    for entry in skill.versions:
        marker = " *" if entry is current else ""
        table.add_row(
            f"{entry.version}{marker}",
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            ", ".join(entry.tags) or "-",
            "yes" if entry.file_path else "-",
        )

    console.print(table)
    raise typer.Exit(exit_codes.SUCCESS)


@app.command()
def download(
    specifier: Annotated[
        str,
        typer.Argument(help="Skill to download: name, name@X.Y.Z or name@latest."),
    ],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory to write the archive to."),
    ] = Path("."),
) -> None:
    """Download a skill version as an archive."""
    home = require_initialized_home()
    registry = SkillRegistry(home)

    name, requested = parse_specifier(specifier)
    skill = registry.find_skill_by_name(name)
    if skill is None:
        cli_logger.error(f"Skill '{name}' not found in registry")
        raise typer.Exit(exit_codes.SKILL_NOT_FOUND)

    entry = skill.current_version(requested)
    if entry is None:
        cli_logger.error(f"Version {requested} of skill '{skill.name}' not found")
        raise typer.Exit(exit_codes.SKILL_NOT_FOUND)

    file_name, data = build_download_archive(skill, entry, archives_dir(home))
    output.mkdir(parents=True, exist_ok=True)
    target = output / file_name
    target.write_bytes(data)
    registry.record_download(skill.name)

    cli_logger.success(f"Downloaded '{skill.name}' ({entry.version}) to {target}")
    raise typer.Exit(exit_codes.SUCCESS)


@app.command()
def sweep(
    max_age: Annotated[
        int | None,
        typer.Option("--max-age", help="Minimum age in seconds. Defaults to the registry config."),
    ] = None,
) -> None:
    """Remove leftover scratch directories from interrupted uploads."""
    home = require_initialized_home()
    age = max_age if max_age is not None else SkillRegistry(home).config.scratch_max_age_seconds

    removed = sweep_scratch(scratch_root(home), age)
    if not removed:
        cli_logger.dim("No stale scratch directories.")
    else:
        noun = "directory" if len(removed) == 1 else "directories"
        cli_logger.success(f"Removed {len(removed)} stale scratch {noun}")
    raise typer.Exit(exit_codes.SUCCESS)


def main_cli() -> None:
    """CLI entry point with top-level exception handling.

    Wraps the Typer app to catch any unhandled exceptions and format them
    as clean error messages instead of raw tracebacks.
    """
    try:
        app()
    except Exception as e:
        sys.exit(handle_cli_error(e))


if __name__ == "__main__":
    main_cli()
