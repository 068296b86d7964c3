"""Tests for package.json operations.

These verify that dependency and script operations are idempotent, that
dry-run leaves the manifest byte-for-byte unchanged, and that a failed write
never leaves a half-written package.json behind.
"""

import json
import os

import pytest

from bootstrap_kit.errors import BootstrapError, ManifestNotFoundError, PackageInstallError, VerificationError
from bootstrap_kit.logger import RunLogger
from bootstrap_kit.manifest import ManifestAccessor, ProjectManifest, load_manifest, save_manifest
from bootstrap_kit.package_manager import CommandPackageManager

from conftest import FakePackageManager, make_ctx, read_manifest, write_manifest


@pytest.fixture
def accessor(ctx, log, fake_pm):
    return ManifestAccessor(ctx, log, fake_pm)


@pytest.fixture
def dry_accessor(dry_ctx, fake_pm):
    return ManifestAccessor(dry_ctx, RunLogger(dry_ctx), fake_pm)


class TestHasDependency:
    """Tests for has_dependency."""

    def test_runtime_dependency(self, accessor):
        assert accessor.has_dependency("next") is True

    def test_dev_dependency(self, accessor):
        assert accessor.has_dependency("typescript") is True

    def test_absent_dependency(self, accessor):
        assert accessor.has_dependency("drizzle-orm") is False

    def test_name_in_scripts_is_not_a_dependency(self, accessor, project):
        """Only dependency sections count, not any occurrence of the name."""
        data = read_manifest(project)
        data["scripts"]["drizzle-orm"] = "echo drizzle-orm"
        write_manifest(project, data)

        assert accessor.has_dependency("drizzle-orm") is False

    def test_missing_manifest_raises(self, accessor, project):
        (project / "package.json").unlink()

        with pytest.raises(ManifestNotFoundError):
            accessor.has_dependency("next")


class TestAddDependency:
    """Tests for add_dependency."""

    def test_fresh_install_then_has_dependency(self, accessor, fake_pm, project):
        result = accessor.add_dependency("drizzle-orm", dev=False)

        assert result.action == "added"
        assert fake_pm.calls == [("drizzle-orm", False)]
        assert accessor.has_dependency("drizzle-orm") is True
        assert "drizzle-orm" in read_manifest(project)["dependencies"]

    def test_dev_dependency_goes_to_dev_section(self, accessor, project):
        accessor.add_dependency("drizzle-kit", dev=True)

        data = read_manifest(project)
        assert "drizzle-kit" in data["devDependencies"]
        assert "drizzle-kit" not in data["dependencies"]

    def test_already_present_is_noop(self, accessor, fake_pm, project):
        """Any version spec already listed counts as installed."""
        before = (project / "package.json").read_bytes()

        result = accessor.add_dependency("next")

        assert result.action == "unchanged"
        assert fake_pm.calls == []
        assert (project / "package.json").read_bytes() == before

    def test_twice_installs_once(self, accessor, fake_pm, project):
        accessor.add_dependency("postgres")
        after_first = (project / "package.json").read_bytes()
        accessor.add_dependency("postgres")

        assert fake_pm.calls == [("postgres", False)]
        assert (project / "package.json").read_bytes() == after_first
        assert list(read_manifest(project)["dependencies"]).count("postgres") == 1

    def test_moving_between_sections_drops_stale_entry(self, accessor, fake_pm, project):
        """A name lives in one dependency section only."""
        result = accessor.add_dependency("typescript", dev=False)

        data = read_manifest(project)
        assert result.action == "added"
        assert "typescript" in data["dependencies"]
        assert "typescript" not in data["devDependencies"]

    def test_dry_run_leaves_manifest_unchanged(self, dry_accessor, fake_pm, project):
        before = (project / "package.json").read_bytes()

        result = dry_accessor.add_dependency("drizzle-orm")

        assert result.action == "would-add"
        assert result.planned
        assert fake_pm.calls == []
        assert (project / "package.json").read_bytes() == before

    def test_install_failure(self, ctx, log, project):
        pm = FakePackageManager(project, returncode=1)
        accessor = ManifestAccessor(ctx, log, pm)

        with pytest.raises(PackageInstallError) as exc_info:
            accessor.add_dependency("drizzle-orm")

        assert exc_info.value.returncode == 1
        assert "pnpm add drizzle-orm" in exc_info.value.format_message()

    def test_install_not_registered_fails_verification(self, ctx, log, project):
        """Exit code 0 but package.json unchanged is still a failure."""
        pm = FakePackageManager(project, register=False)
        accessor = ManifestAccessor(ctx, log, pm)

        with pytest.raises(VerificationError, match="drizzle-orm"):
            accessor.add_dependency("drizzle-orm")

    def test_package_manager_not_on_path(self, ctx, log, project, monkeypatch):
        """A binary that cannot start is an install error, not a crash."""
        monkeypatch.setenv("PATH", "")
        accessor = ManifestAccessor(ctx, log, CommandPackageManager("pnpm", project))
        before = (project / "package.json").read_bytes()

        with pytest.raises(PackageInstallError) as exc_info:
            accessor.add_dependency("tsx", dev=True)

        assert exc_info.value.returncode is None
        assert "could not be started" in exc_info.value.format_message()
        assert (project / "package.json").read_bytes() == before


class TestAddScript:
    """Tests for add_script."""

    def test_adds_new_script(self, accessor, project):
        result = accessor.add_script("db:migrate", "drizzle-kit migrate")

        assert result.action == "added"
        assert read_manifest(project)["scripts"]["db:migrate"] == "drizzle-kit migrate"

    def test_second_write_wins(self, accessor, project):
        """Re-running with different text overwrites, it does not merge or fail."""
        accessor.add_script("db:migrate", "drizzle-kit migrate")
        result = accessor.add_script("db:migrate", "drizzle-kit migrate --config drizzle.config.ts")

        assert result.action == "updated"
        scripts = read_manifest(project)["scripts"]
        assert scripts["db:migrate"] == "drizzle-kit migrate --config drizzle.config.ts"

    def test_restores_hand_edited_script(self, accessor, project):
        data = read_manifest(project)
        data["scripts"]["dev"] = "next dev --turbo --port 4000"
        write_manifest(project, data)

        accessor.add_script("dev", "next dev")

        assert read_manifest(project)["scripts"]["dev"] == "next dev"

    def test_identical_script_is_unchanged(self, accessor, project):
        before = (project / "package.json").read_bytes()

        result = accessor.add_script("dev", "next dev")

        assert result.action == "unchanged"
        assert (project / "package.json").read_bytes() == before

    def test_creates_scripts_section(self, accessor, project):
        write_manifest(project, {"name": "bare"})

        accessor.add_script("db:push", "drizzle-kit push")

        assert read_manifest(project)["scripts"] == {"db:push": "drizzle-kit push"}

    def test_null_scripts_section(self, accessor, project):
        write_manifest(project, {"name": "a", "scripts": None})

        result = accessor.add_script("db:seed", "tsx src/db/seed.ts")

        assert result.action == "added"
        assert read_manifest(project)["scripts"] == {"db:seed": "tsx src/db/seed.ts"}

    def test_non_object_scripts_section_is_rejected(self, accessor, project):
        write_manifest(project, {"name": "a", "scripts": ["next dev"]})
        before = (project / "package.json").read_bytes()

        with pytest.raises(BootstrapError, match="'scripts' must be an object"):
            accessor.add_script("db:seed", "tsx src/db/seed.ts")

        assert (project / "package.json").read_bytes() == before

    def test_preserves_other_keys_and_order(self, accessor, project):
        before_keys = list(read_manifest(project))

        accessor.add_script("db:studio", "drizzle-kit studio")

        data = read_manifest(project)
        assert list(data) == before_keys
        assert data["private"] is True
        assert list(data["scripts"]) == ["dev", "build", "db:studio"]

    def test_dry_run(self, dry_accessor, project):
        before = (project / "package.json").read_bytes()

        result = dry_accessor.add_script("db:migrate", "drizzle-kit migrate")

        assert result.action == "would-add"
        assert (project / "package.json").read_bytes() == before

    def test_missing_manifest_raises(self, accessor, project):
        (project / "package.json").unlink()

        with pytest.raises(ManifestNotFoundError):
            accessor.add_script("db:migrate", "drizzle-kit migrate")


class TestUpdateField:
    """Tests for update_field."""

    def test_sets_nested_field(self, accessor, project):
        accessor.update_field("engines.node", ">=20")

        assert read_manifest(project)["engines"] == {"node": ">=20"}

    def test_same_value_is_unchanged(self, accessor, project):
        accessor.update_field("engines.node", ">=20")
        result = accessor.update_field("engines.node", ">=20")

        assert result.action == "unchanged"

    def test_dry_run(self, dry_accessor, project):
        before = (project / "package.json").read_bytes()

        result = dry_accessor.update_field("packageManager", "pnpm@9.0.0")

        assert result.action == "would-update"
        assert (project / "package.json").read_bytes() == before


class TestAtomicReplace:
    """A crash between temp write and rename must not corrupt package.json."""

    def test_crash_before_rename_keeps_old_manifest(self, accessor, project, monkeypatch):
        before = (project / "package.json").read_bytes()

        def crash(src, dst):
            raise OSError("killed before rename")

        monkeypatch.setattr(os, "replace", crash)

        with pytest.raises(OSError, match="killed before rename"):
            accessor.add_script("db:migrate", "drizzle-kit migrate")

        assert (project / "package.json").read_bytes() == before
        json.loads(before)
        assert sorted(p.name for p in project.iterdir()) == ["package.json"]

    def test_keeps_file_mode(self, project):
        path = project / "package.json"
        path.chmod(0o640)

        manifest = load_manifest(path)
        manifest.set_script("lint", "next lint")
        save_manifest(path, manifest)

        assert path.stat().st_mode & 0o777 == 0o640


class TestProjectManifest:
    """Tests for the in-memory manifest model."""

    def test_serializes_like_node(self):
        manifest = ProjectManifest({"name": "app", "description": "데이터"})

        assert manifest.to_json() == '{\n  "name": "app",\n  "description": "데이터"\n}\n'

    def test_bucket_of(self):
        manifest = ProjectManifest({"dependencies": {"a": "1"}, "devDependencies": {"b": "2"}})

        assert manifest.bucket_of("a") == "dependencies"
        assert manifest.bucket_of("b") == "devDependencies"
        assert manifest.bucket_of("c") is None

    def test_invalid_json_is_reported(self, project):
        (project / "package.json").write_text("{ not json", encoding="utf-8")

        with pytest.raises(BootstrapError, match="Invalid package.json"):
            load_manifest(project / "package.json")

    def test_fake_manager_matches_accessor_context(self, project):
        """Sanity check on the fixture: installs land in the project root."""
        pm = FakePackageManager(project)
        accessor = ManifestAccessor(make_ctx(project), RunLogger(make_ctx(project)), pm)
        accessor.add_dependency("zod")

        assert read_manifest(project)["dependencies"]["zod"] == "^1.0.0"
