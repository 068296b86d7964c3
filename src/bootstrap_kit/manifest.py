"""package.json access: dependency checks, installs and script registration.

Every mutating call reads the whole manifest, changes it in memory and
writes it back with an atomic replace.
"""

import json
from pathlib import Path
from typing import Any

from .config import MANIFEST_FILENAME
from .context import RunContext
from .errors import BootstrapError, ManifestNotFoundError, PackageInstallError, VerificationError
from .files import atomic_write_text
from .logger import RunLogger
from .package_manager import CommandPackageManager, PackageManager
from .results import StepResult

DEPENDENCIES = "dependencies"
DEV_DEPENDENCIES = "devDependencies"
SCRIPTS = "scripts"


class ProjectManifest:
    """In-memory package.json. Unknown keys and key order are preserved."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    @classmethod
    def from_json(cls, text: str) -> "ProjectManifest":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("top-level value must be an object")
        return cls(data)

    def to_json(self) -> str:
        """Serialize the way node's JSON.stringify(pkg, null, 2) does."""
        return json.dumps(self.data, indent=2, ensure_ascii=False) + "\n"

    def section(self, key: str) -> dict[str, str]:
        """A top-level object such as ``scripts``; missing or null reads as empty.

        Raises:
            BootstrapError: The key holds something other than an object.
        """
        value = self.data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise BootstrapError(
                f"Invalid package.json: '{key}' must be an object, not {type(value).__name__}"
            )
        return value

    @property
    def dependencies(self) -> dict[str, str]:
        return self.section(DEPENDENCIES)

    @property
    def dev_dependencies(self) -> dict[str, str]:
        return self.section(DEV_DEPENDENCIES)

    @property
    def scripts(self) -> dict[str, str]:
        return self.section(SCRIPTS)

    def bucket_of(self, name: str) -> str | None:
        """Which dependency section lists ``name``, if any."""
        for key in (DEPENDENCIES, DEV_DEPENDENCIES):
            if name in self.section(key):
                return key
        return None

    def remove_dependency(self, name: str, key: str) -> bool:
        section = self.section(key)
        if name not in section:
            return False
        del section[name]
        return True

    def set_script(self, name: str, command: str) -> None:
        if self.data.get(SCRIPTS) is None:
            self.data[SCRIPTS] = {}
        self.section(SCRIPTS)[name] = command

    def get_field(self, dotted: str) -> Any:
        obj: Any = self.data
        for part in dotted.split("."):
            if not isinstance(obj, dict) or part not in obj:
                return None
            obj = obj[part]
        return obj

    def set_field(self, dotted: str, value: Any) -> None:
        """Set a dotted-path field, creating intermediate objects."""
        *parents, last = dotted.split(".")
        obj = self.data
        for part in parents:
            if not isinstance(obj.get(part), dict):
                obj[part] = {}
            obj = obj[part]
        obj[last] = value


def load_manifest(path: Path) -> ProjectManifest:
    """Read package.json from disk.

    Raises:
        ManifestNotFoundError: If the file does not exist.
        BootstrapError: If it is not a JSON object.
    """
    if not path.is_file():
        raise ManifestNotFoundError(path)
    try:
        return ProjectManifest.from_json(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise BootstrapError(f"Invalid package.json at {path}: {e}") from e


def save_manifest(path: Path, manifest: ProjectManifest) -> None:
    atomic_write_text(path, manifest.to_json())


class ManifestAccessor:
    """Idempotent operations over the project's package.json."""

    def __init__(
        self,
        ctx: RunContext,
        log: RunLogger,
        package_manager: PackageManager | None = None,
    ):
        self.ctx = ctx
        self.log = log
        self.path = ctx.resolve(MANIFEST_FILENAME)
        self.package_manager = package_manager or CommandPackageManager(
            ctx.config.package_manager, ctx.project_root
        )

    def load(self) -> ProjectManifest:
        return load_manifest(self.path)

    def save(self, manifest: ProjectManifest) -> None:
        save_manifest(self.path, manifest)

    def has_dependency(self, name: str) -> bool:
        """True if ``name`` is a runtime or dev dependency."""
        return self.load().bucket_of(name) is not None

    def add_dependency(self, name: str, dev: bool = False) -> StepResult:
        """Make sure ``name`` is listed in the right dependency section.

        Already listed there (any version) is a no-op. Otherwise the package
        manager installs it and the manifest is re-read to confirm. A stale
        entry in the other section is dropped so each name lives in one
        section only.

        Raises:
            PackageInstallError: The package manager exited non-zero.
            VerificationError: Install succeeded but the manifest does not
                list the package in the expected section.
        """
        key = DEV_DEPENDENCIES if dev else DEPENDENCIES
        other = DEPENDENCIES if dev else DEV_DEPENDENCIES
        manifest = self.load()
        current = manifest.bucket_of(name)

        if current == key:
            self.log.skip(f"Dependency {name}")
            return StepResult("unchanged", name, key)

        command = self.package_manager.command(name, dev)
        if self.ctx.dry_run:
            self.log.dry(" ".join(command))
            return StepResult("would-add", name, key)

        if current is not None:
            self.log.info(f"Moving {name} from {current} to {key}")
        self.log.info(f"Installing {name}...")
        self.log.debug(f"Executing: {' '.join(command)}")

        returncode = self.package_manager.install(name, dev)
        if returncode != 0:
            raise PackageInstallError(command, returncode)

        manifest = self.load()
        if name not in manifest.section(key):
            raise VerificationError(
                f"{name} was installed but is not listed in {key} of {self.path}"
            )
        if manifest.remove_dependency(name, other):
            self.save(manifest)
            self.log.debug(f"Removed stale {name} entry from {other}")

        self.log.success(f"Installed: {name}")
        return StepResult("added", name, key)

    def add_script(self, name: str, command: str) -> StepResult:
        """Set ``scripts[name]`` to ``command``.

        An existing entry with different text is overwritten, so a re-run
        restores the canonical command even after a hand edit.
        """
        manifest = self.load()
        existing = manifest.scripts.get(name)

        if existing == command:
            self.log.skip(f"Script {name}")
            return StepResult("unchanged", name, command)

        if self.ctx.dry_run:
            verb = "Add" if existing is None else "Overwrite"
            self.log.dry(f"{verb} script '{name}': '{command}'")
            return StepResult("would-add" if existing is None else "would-update", name, command)

        manifest.set_script(name, command)
        self.save(manifest)
        if existing is None:
            self.log.success(f"Added script: {name}")
            return StepResult("added", name, command)
        self.log.success(f"Updated script: {name} (was '{existing}')")
        return StepResult("updated", name, command)

    def update_field(self, dotted: str, value: Any) -> StepResult:
        """Set a package.json field by dotted path, e.g. ``engines.node``."""
        manifest = self.load()
        if manifest.get_field(dotted) == value:
            self.log.skip(f"package.json {dotted}")
            return StepResult("unchanged", dotted)

        if self.ctx.dry_run:
            self.log.dry(f"Set package.json {dotted} = {json.dumps(value)}")
            return StepResult("would-update", dotted, json.dumps(value))

        manifest.set_field(dotted, value)
        self.save(manifest)
        self.log.success(f"Updated package.json: {dotted}")
        return StepResult("updated", dotted, json.dumps(value))
