"""Tests for the skill upload pipeline."""

import json
from pathlib import Path

import httpx
import pytest

from botskill.archive import ArchiveError, SidecarConfig
from botskill.home import archives_dir, scratch_root
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
    RejectionKind,
    UnknownCategory,
    UnsupportedFormat,
    ValidationFailed,
    VersionConflict,
    fetch_or_reject,
    ingest,
    merge_metadata,
    preview,
    publish,
)
from botskill.registry import SkillRegistry
from botskill.registry_schema import DEFAULT_CATEGORIES
from botskill.skill_md import SkillMetadata
from botskill.skill_schema import Skill, SkillStatus
from botskill.source import UploadInput
from tests.conftest import skill_md, tar_gz_bytes, zip_bytes

ALICE = Actor(actor_id="alice")
BOB = Actor(actor_id="bob")


class FakeLookup:
    """In-memory SkillLookup."""

    def __init__(self, *skills: Skill) -> None:
        self.skills = {skill.name.casefold(): skill for skill in skills}

    def find_skill_by_name(self, name: str) -> Skill | None:
        return self.skills.get(name.strip().casefold())


def zip_upload(files: dict[str, str | bytes], name: str = "myskill.zip") -> UploadInput:
    return UploadInput(content=zip_bytes(files), file_name=name)


def manifest_upload(text: str | None = None, **fields: str | None) -> UploadInput:
    content = text if text is not None else skill_md(**fields)
    return UploadInput(content=content.encode(), file_name="SKILL.md")


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


def assert_success(result: object) -> IngestSuccess:
    assert isinstance(result, IngestSuccess), result
    return result


class TestScenarios:
    """End-to-end upload scenarios against a real registry."""

    def test_new_skill_from_zip(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify a zip with a nested manifest creates a new skill with one version."""
        # Given
        upload = zip_upload({"myskill/SKILL.md": skill_md(name="my-skill", description="does things")})

        # When
        result = publish(upload, registry, ALICE, scratch_root(botskill_home))

        # Then
        success = assert_success(result)
        assert success.created
        assert not success.replaced
        stored = registry.find_skill_by_name("my-skill")
        assert stored is not None
        assert stored.author == "alice"
        assert stored.slug == "my-skill"
        assert stored.status == SkillStatus.PENDING_REVIEW
        assert [v.version for v in stored.versions] == ["1.2.0"]
        assert stored.versions[0].content == "# My skill\n\nUse it well."

    def test_same_version_conflicts_then_overwrites(
        self, registry: SkillRegistry, botskill_home: Path
    ) -> None:
        """Verify a repeated version is a conflict until overwrite is confirmed."""
        # Given
        first = zip_upload({"myskill/SKILL.md": skill_md()})
        publish(first, registry, ALICE, scratch_root(botskill_home))
        original = registry.find_skill_by_name("my-skill")
        assert original is not None

        # When - same version again
        second = zip_upload({"myskill/SKILL.md": skill_md(body="# Fixed\n")})
        conflict = publish(second, registry, ALICE, scratch_root(botskill_home))

        # Then
        assert isinstance(conflict, VersionConflict)
        assert conflict.kind == RejectionKind.VERSION_CONFLICT
        assert conflict.version == "1.2.0"
        assert conflict.name == "my-skill"

        # When - retried with overwrite
        replaced = publish(second, registry, ALICE, scratch_root(botskill_home), overwrite=True)

        # Then
        success = assert_success(replaced)
        assert success.replaced
        stored = registry.find_skill_by_name("my-skill")
        assert stored is not None
        assert len(stored.versions) == 1
        assert stored.versions[0].content == "# Fixed"
        assert stored.versions[0].created_at == original.versions[0].created_at
        assert stored.created_at == original.created_at

    def test_override_tags_replace_manifest_tags(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify override tags fully replace the manifest's tags."""
        upload = zip_upload({"myskill/SKILL.md": skill_md(extra="tags: [a, b, c]")})

        result = publish(upload, registry, ALICE, scratch_root(botskill_home), Overrides(tags=["x", "y"]))

        success = assert_success(result)
        assert success.version.tags == ["x", "y"]
        stored = registry.find_skill_by_name("my-skill")
        assert stored is not None
        assert stored.tags == ["x", "y"]
        assert stored.versions[0].tags == ["x", "y"]

    def test_new_version_appended(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify a higher version is appended and becomes current."""
        publish(manifest_upload(version="1.0.0"), registry, ALICE, scratch_root(botskill_home))

        result = publish(
            manifest_upload(version="1.1.0", description="better"),
            registry,
            ALICE,
            scratch_root(botskill_home),
        )

        success = assert_success(result)
        assert not success.created
        assert not success.replaced
        stored = registry.find_skill_by_name("my-skill")
        assert stored is not None
        assert [v.version for v in stored.versions] == ["1.0.0", "1.1.0"]
        assert stored.version == "1.1.0"
        assert stored.description == "better"


class TestKindHandling:
    """Tests for the different upload kinds."""

    def test_bare_manifest(self, scratch: Path) -> None:
        """Verify a plain SKILL.md upload is ingested without an archive."""
        store = scratch.parent / "archives"
        result = ingest(manifest_upload(), FakeLookup(), ALICE, scratch, archive_store=store)

        success = assert_success(result)
        assert success.stored_archive is None
        assert success.version.file_path is None

    def test_tar_gz(self, scratch: Path) -> None:
        """Verify tar.gz uploads are extracted and parsed."""
        upload = UploadInput(content=tar_gz_bytes({"pkg/SKILL.md": skill_md()}), file_name="pkg.tgz")

        result = ingest(upload, FakeLookup(), ALICE, scratch)

        assert assert_success(result).skill.name == "my-skill"

    def test_zip_misnamed_as_markdown(self, scratch: Path) -> None:
        """Verify archive bytes win over a misleading file name."""
        upload = UploadInput(content=zip_bytes({"SKILL.md": skill_md()}), file_name="SKILL.md")

        result = ingest(upload, FakeLookup(), ALICE, scratch)

        assert_success(result)

    def test_unsupported_format(self, scratch: Path) -> None:
        """Verify unknown uploads are rejected as unsupported."""
        upload = UploadInput(content=b"hello", file_name="notes.txt")

        result = ingest(upload, FakeLookup(), ALICE, scratch)

        assert isinstance(result, UnsupportedFormat)
        assert result.kind == RejectionKind.UNSUPPORTED_FORMAT

    def test_manifest_not_found(self, scratch: Path) -> None:
        """Verify an archive without SKILL.md is rejected."""
        result = ingest(zip_upload({"README.md": "# hi"}), FakeLookup(), ALICE, scratch)

        assert isinstance(result, ManifestNotFound)
        assert "No SKILL.md" in result.message

    def test_manifest_below_search_depth(self, scratch: Path) -> None:
        """Verify the search depth ceiling is honored."""
        upload = zip_upload({"a/b/c/SKILL.md": skill_md()})

        result = ingest(upload, FakeLookup(), ALICE, scratch, search_depth=2)

        assert isinstance(result, ManifestNotFound)

    def test_root_manifest_preferred(self, scratch: Path) -> None:
        """Verify the root SKILL.md is used when a nested one also exists."""
        upload = zip_upload({
            "nested/SKILL.md": skill_md(name="nested-skill"),
            "SKILL.md": skill_md(name="root-skill"),
        })

        result = ingest(upload, FakeLookup(), ALICE, scratch)

        assert assert_success(result).skill.name == "root-skill"

    def test_path_traversal_entries_never_escape(self, tmp_path: Path, scratch: Path) -> None:
        """Verify a ../ entry in an uploaded archive is not written outside scratch."""
        upload = zip_upload({"../../../evil.txt": "pwned", "SKILL.md": skill_md()})

        result = ingest(upload, FakeLookup(), ALICE, scratch)

        assert_success(result)
        assert not (tmp_path / "evil.txt").exists()
        assert not (scratch / "evil.txt").exists()


class TestManifestRejections:
    """Tests for manifest-level rejections."""

    def test_malformed_document(self, scratch: Path) -> None:
        """Verify an unclosed header is a malformed document."""
        result = ingest(manifest_upload("---\nname: x\n"), FakeLookup(), ALICE, scratch)

        assert isinstance(result, MalformedDocument)
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to parse SKILL.md")

    def test_validation_errors_reported_together(self, scratch: Path) -> None:
        """Verify every manifest violation is carried in the rejection."""
        result = ingest(manifest_upload(name=None, description=None), FakeLookup(), ALICE, scratch)

        assert isinstance(result, ValidationFailed)
        assert "name is required" in result.errors
        assert "description is required" in result.errors

    def test_invalid_override_version(self, scratch: Path) -> None:
        """Verify an override version that is not X.Y.Z or latest is rejected."""
        result = ingest(manifest_upload(), FakeLookup(), ALICE, scratch, Overrides(version="1.0"))

        assert isinstance(result, ValidationFailed)
        assert any("version" in error for error in result.errors)

    def test_invalid_override_url(self, scratch: Path) -> None:
        """Verify non-http override links are rejected."""
        result = ingest(
            manifest_upload(),
            FakeLookup(),
            ALICE,
            scratch,
            Overrides(repository_url="javascript:alert(1)"),
        )

        assert isinstance(result, ValidationFailed)
        assert any("repository_url" in error for error in result.errors)

    def test_override_latest_version_accepted(self, scratch: Path) -> None:
        """Verify 'latest' is a valid version at the artifact level."""
        result = ingest(manifest_upload(), FakeLookup(), ALICE, scratch, Overrides(version="latest"))

        assert assert_success(result).version.version == "latest"

    def test_unknown_category(self, scratch: Path) -> None:
        """Verify categories outside the registry are rejected after merge."""
        result = ingest(
            manifest_upload(),
            FakeLookup(),
            ALICE,
            scratch,
            Overrides(category="Games"),
            categories=DEFAULT_CATEGORIES,
        )

        assert isinstance(result, UnknownCategory)
        assert result.category == "games"
        assert result.allowed == DEFAULT_CATEGORIES

    def test_payload_too_large(self, scratch: Path) -> None:
        """Verify uploads above the size limit are refused before parsing."""
        result = ingest(manifest_upload(), FakeLookup(), ALICE, scratch, max_upload_bytes=10)

        assert isinstance(result, PayloadTooLarge)
        assert result.limit == 10
        assert not scratch.exists()


class TestOwnership:
    """Tests for ownership and authorization checks."""

    def _existing(self, scratch: Path, **skill_fields: object) -> Skill:
        success = assert_success(ingest(manifest_upload(), FakeLookup(), ALICE, scratch))
        return success.skill.model_copy(update=skill_fields)

    def test_other_owner_is_name_collision(self, scratch: Path) -> None:
        """Verify another author's skill name cannot be reused."""
        lookup = FakeLookup(self._existing(scratch))

        result = ingest(manifest_upload(version="9.0.0"), lookup, BOB, scratch)

        assert isinstance(result, NameCollision)
        assert result.owner == "alice"

    def test_administrator_may_publish_for_owner(self, scratch: Path) -> None:
        """Verify an administrator can add versions to someone else's skill."""
        lookup = FakeLookup(self._existing(scratch))
        admin = Actor(actor_id="root", is_administrator=True)

        result = ingest(manifest_upload(version="2.0.0"), lookup, admin, scratch)

        success = assert_success(result)
        assert success.skill.author == "alice"
        assert [v.version for v in success.skill.versions] == ["1.2.0", "2.0.0"]

    def test_actor_without_publish_rights(self, scratch: Path) -> None:
        """Verify actors without upload rights are refused."""
        result = ingest(manifest_upload(), FakeLookup(), Actor("guest", can_publish=False), scratch)

        assert isinstance(result, NotAuthorized)

    def test_published_status_kept(self, scratch: Path) -> None:
        """Verify a published skill stays published on re-upload."""
        lookup = FakeLookup(self._existing(scratch, status=SkillStatus.PUBLISHED))

        result = ingest(manifest_upload(version="2.0.0"), lookup, ALICE, scratch)

        assert assert_success(result).skill.status == SkillStatus.PUBLISHED

    def test_archived_status_goes_to_review(self, scratch: Path) -> None:
        """Verify other statuses move back to pending review."""
        lookup = FakeLookup(self._existing(scratch, status=SkillStatus.ARCHIVED))

        result = ingest(manifest_upload(version="2.0.0"), lookup, ALICE, scratch)

        assert assert_success(result).skill.status == SkillStatus.PENDING_REVIEW


class TestMerge:
    """Tests for metadata merge precedence."""

    def test_sidecar_fills_fields(self, scratch: Path) -> None:
        """Verify skill.config.json next to SKILL.md overrides manifest values."""
        # Given
        sidecar = {"version": "2.0.0", "category": "Web", "license": "Apache-2.0", "tags": ["s1"]}
        upload = zip_upload({
            "pkg/SKILL.md": skill_md(extra="category: ai\ntags: [a]"),
            "pkg/skill.config.json": json.dumps(sidecar),
        })

        # When
        result = ingest(upload, FakeLookup(), ALICE, scratch, Overrides(category="data"))

        # Then - overrides beat sidecar, sidecar beats manifest
        success = assert_success(result)
        assert success.version.version == "2.0.0"
        assert success.skill.category == "data"
        assert success.skill.license == "Apache-2.0"
        assert success.version.tags == ["s1"]

    def test_sidecar_outside_manifest_directory_ignored(self, scratch: Path) -> None:
        """Verify a sidecar elsewhere in the archive is not used."""
        upload = zip_upload({
            "pkg/SKILL.md": skill_md(),
            "skill.config.json": json.dumps({"version": "9.9.9"}),
        })

        result = ingest(upload, FakeLookup(), ALICE, scratch)

        assert assert_success(result).version.version == "1.2.0"

    def test_merge_metadata_skips_empty_values(self) -> None:
        """Verify empty sidecar values do not blank out manifest values."""
        manifest = SkillMetadata(name="x", description="y", license="BSD", tags=["m"])
        sidecar = SidecarConfig(license="", version=None)

        merged = merge_metadata(manifest, sidecar, Overrides())

        assert merged.license == "BSD"
        assert merged.tags == ["m"]

    def test_empty_override_tag_list_clears_tags(self) -> None:
        """Verify an explicit empty tag list replaces manifest tags."""
        manifest = SkillMetadata(name="x", description="y", tags=["m"])

        merged = merge_metadata(manifest, None, Overrides(tags=[]))

        assert merged.tags == []


class TestOverrides:
    """Tests for the Overrides model."""

    @pytest.mark.parametrize(
        ("tags", "expected"),
        [
            pytest.param(["a", "b"], ["a", "b"], id="list"),
            pytest.param('["a", "b"]', ["a", "b"], id="json-string"),
            pytest.param("a, b", ["a", "b"], id="comma-string"),
            pytest.param("", None, id="empty-string"),
            pytest.param(None, None, id="absent"),
        ],
    )
    def test_tag_input_forms(self, tags: object, expected: list[str] | None) -> None:
        """Verify tags accept a list, a JSON list or a comma-separated string."""
        assert Overrides(tags=tags).tags == expected

    def test_blank_fields_are_absent(self) -> None:
        """Verify blank form fields fall through to lower layers."""
        overrides = Overrides(version="  ", category="", license=" MIT ")

        assert overrides.version is None
        assert overrides.category is None
        assert overrides.license == "MIT"

    def test_camel_case_aliases(self) -> None:
        """Verify form field names in camelCase are accepted."""
        overrides = Overrides.model_validate({"repositoryUrl": "https://r", "demoUrl": "https://d"})

        assert overrides.repository_url == "https://r"
        assert overrides.demo_url == "https://d"


class TestUrlSource:
    """Tests for URL-sourced uploads."""

    def _url_upload(self, text: str) -> UploadInput:
        return UploadInput(
            content=text.encode(),
            file_name="SKILL.md",
            headers={"content-type": "text/plain"},
            source_url="https://github.com/acme/my-skill",
        )

    def test_default_version_becomes_latest(self, scratch: Path) -> None:
        """Verify URL uploads without a version are stored as latest."""
        result = ingest(self._url_upload(skill_md(version=None)), FakeLookup(), ALICE, scratch)

        success = assert_success(result)
        assert success.version.version == "latest"
        assert success.skill.repository_url == "https://github.com/acme/my-skill"

    def test_explicit_version_kept(self, scratch: Path) -> None:
        """Verify a real manifest version is kept for URL uploads."""
        text = skill_md(extra="repositoryUrl: https://example.com/repo")

        result = ingest(self._url_upload(text), FakeLookup(), ALICE, scratch)

        success = assert_success(result)
        assert success.version.version == "1.2.0"
        assert success.skill.repository_url == "https://example.com/repo"

    def test_override_version_wins(self, scratch: Path) -> None:
        """Verify an override version is never turned into latest."""
        result = ingest(
            self._url_upload(skill_md(version=None)),
            FakeLookup(),
            ALICE,
            scratch,
            Overrides(version="1.0.0"),
        )

        assert assert_success(result).version.version == "1.0.0"

    def test_non_manifest_text_unsupported(self, scratch: Path) -> None:
        """Verify fetched pages without front matter are rejected."""
        result = ingest(self._url_upload("<html></html>"), FakeLookup(), ALICE, scratch)

        assert isinstance(result, UnsupportedFormat)

    def test_fetch_failure_is_rejection(self) -> None:
        """Verify fetch errors become a FetchFailed rejection."""
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))

        with client:
            result = fetch_or_reject("https://example.com/SKILL.md", client=client)

        assert isinstance(result, FetchFailed)
        assert result.url == "https://example.com/SKILL.md"
        assert "404" in result.message


class TestArchiveStorage:
    """Tests for keeping the original archive."""

    def test_archive_copied_to_store(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify the uploaded archive is kept and referenced by the version."""
        upload = zip_upload({"myskill/SKILL.md": skill_md()})

        result = publish(
            upload,
            registry,
            ALICE,
            scratch_root(botskill_home),
            archive_store=archives_dir(botskill_home),
        )

        success = assert_success(result)
        assert success.stored_archive is not None
        assert success.stored_archive.read_bytes() == upload.content
        assert success.stored_archive.name.endswith(".zip")
        assert success.version.file_path == success.stored_archive.name

    def test_archive_not_stored_on_rejection(self, scratch: Path, tmp_path: Path) -> None:
        """Verify rejected uploads leave nothing in the archive store."""
        store = tmp_path / "archives"
        lookup = FakeLookup(assert_success(ingest(manifest_upload(), FakeLookup(), ALICE, scratch)).skill)

        result = ingest(zip_upload({"SKILL.md": skill_md()}), lookup, ALICE, scratch, archive_store=store)

        assert isinstance(result, VersionConflict)
        assert not store.exists() or list(store.iterdir()) == []

    def test_overwrite_removes_replaced_archive(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify overwriting a version leaves only the new archive in the store."""
        # Given
        store = archives_dir(botskill_home)
        first = assert_success(
            publish(
                zip_upload({"SKILL.md": skill_md(description="First cut")}),
                registry,
                ALICE,
                scratch_root(botskill_home),
                archive_store=store,
            )
        )
        assert first.stored_archive is not None

        # When
        second = assert_success(
            publish(
                zip_upload({"SKILL.md": skill_md(description="Second cut")}),
                registry,
                ALICE,
                scratch_root(botskill_home),
                overwrite=True,
                archive_store=store,
            )
        )

        # Then
        assert second.replaced
        assert not first.stored_archive.exists()
        assert list(store.iterdir()) == [second.stored_archive]
        stored = registry.get_skill("my-skill")
        assert stored.versions[0].file_path == second.stored_archive.name

    def test_new_version_keeps_earlier_archive(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify archives of other versions are untouched by a new version."""
        store = archives_dir(botskill_home)
        first = assert_success(
            publish(
                zip_upload({"SKILL.md": skill_md()}),
                registry,
                ALICE,
                scratch_root(botskill_home),
                archive_store=store,
            )
        )
        second = assert_success(
            publish(
                zip_upload({"SKILL.md": skill_md(version="2.0.0")}),
                registry,
                ALICE,
                scratch_root(botskill_home),
                archive_store=store,
            )
        )

        assert first.stored_archive is not None
        assert first.stored_archive.exists()
        assert sorted(store.iterdir()) == sorted([first.stored_archive, second.stored_archive])


class TestCleanup:
    """Tests that scratch directories never outlive an ingest call."""

    @pytest.mark.parametrize(
        "upload",
        [
            pytest.param(zip_upload({"SKILL.md": skill_md()}), id="success"),
            pytest.param(zip_upload({"README.md": "x"}), id="manifest-not-found"),
            pytest.param(zip_upload({"SKILL.md": skill_md(name="Bad")}), id="validation-failed"),
            pytest.param(manifest_upload("---\n"), id="malformed"),
            pytest.param(UploadInput(content=b"?", file_name="x.bin"), id="unsupported"),
        ],
    )
    def test_scratch_empty_after_ingest(self, scratch: Path, upload: UploadInput) -> None:
        """Verify the scratch root is empty after success and rejection alike."""
        ingest(upload, FakeLookup(), ALICE, scratch)

        assert list(scratch.iterdir()) == []

    def test_scratch_empty_after_corrupt_archive(self, scratch: Path) -> None:
        """Verify cleanup also runs when extraction raises."""
        upload = UploadInput(content=b"PK\x03\x04 definitely not a zip", file_name="broken.zip")

        with pytest.raises(ArchiveError):
            ingest(upload, FakeLookup(), ALICE, scratch)

        assert list(scratch.iterdir()) == []


class TestPublishRaces:
    """Tests for conflicts detected only at commit time."""

    def test_skill_created_meanwhile_is_name_collision(
        self, registry: SkillRegistry, botskill_home: Path
    ) -> None:
        """Verify a commit-time duplicate name is reported as NameCollision."""

        class StaleRegistry(SkillRegistry):
            def find_skill_by_name(self, name: str) -> Skill | None:
                return None

        publish(manifest_upload(), registry, ALICE, scratch_root(botskill_home))
        stale = StaleRegistry(botskill_home)
        upload = zip_upload({"SKILL.md": skill_md(version="2.0.0")})

        result = publish(
            upload,
            stale,
            ALICE,
            scratch_root(botskill_home),
            archive_store=archives_dir(botskill_home),
        )

        assert isinstance(result, NameCollision)
        assert list(archives_dir(botskill_home).iterdir()) == []

    def test_version_added_meanwhile_is_version_conflict(
        self, registry: SkillRegistry, botskill_home: Path
    ) -> None:
        """Verify a commit-time duplicate version is reported as VersionConflict."""
        publish(manifest_upload(version="1.0.0"), registry, ALICE, scratch_root(botskill_home))
        snapshot = registry.find_skill_by_name("my-skill")

        class StaleRegistry(SkillRegistry):
            def find_skill_by_name(self, name: str) -> Skill | None:
                return snapshot

        publish(manifest_upload(version="2.0.0"), registry, ALICE, scratch_root(botskill_home))

        result = publish(
            manifest_upload(version="2.0.0"),
            StaleRegistry(botskill_home),
            ALICE,
            scratch_root(botskill_home),
        )

        assert isinstance(result, VersionConflict)
        assert result.version == "2.0.0"


class TestPreview:
    """Tests for preview function."""

    def test_preview_does_not_store(self, registry: SkillRegistry, botskill_home: Path) -> None:
        """Verify preview returns merged metadata and leaves the registry untouched."""
        upload = zip_upload({"pkg/SKILL.md": skill_md(extra="tags: [a]")})

        result = preview(upload, scratch_root(botskill_home), Overrides(tags="x,y"))

        assert isinstance(result, PreviewResult)
        assert result.metadata.name == "my-skill"
        assert result.metadata.tags == ["x", "y"]
        assert result.content == "# My skill\n\nUse it well."
        assert registry.list_skills() == []
        assert list(scratch_root(botskill_home).iterdir()) == []

    def test_preview_rejection(self, scratch: Path) -> None:
        """Verify preview reports the same rejections as ingest."""
        result = preview(zip_upload({"README.md": "x"}), scratch)

        assert isinstance(result, ManifestNotFound)
