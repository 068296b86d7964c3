"""Phase base class, registry and the run contract every phase follows.

A phase is one numbered scaffolding step. ``run_phase`` drives it:

1. initialize logging,
2. evaluate every precondition, aborting on the first failure before any
   mutation,
3. apply the phase's mutations (each idempotent on its own),
4. verify the end state (skipped under dry-run),
5. return 0 only if everything verified, 1 otherwise.

Typed errors from the library are caught here and nowhere else.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Iterable, Sequence

from . import preconditions
from .context import RunContext, parse_args
from .errors import BootstrapError, UsageError
from .files import FileWriter
from .logger import RunLogger
from .manifest import ManifestAccessor
from .package_manager import PackageManager
from .preconditions import PreconditionResult

# Registered phases: id -> phase class
PHASES: dict[str, type["Phase"]] = {}


def register_phase(cls: type["Phase"]) -> type["Phase"]:
    """Class decorator to register a phase under its numeric id."""
    # Same name under the same id is a re-import (python -m runs a module twice)
    if cls.id in PHASES and PHASES[cls.id].name != cls.name:
        raise ValueError(f"Duplicate phase id {cls.id}: {PHASES[cls.id].name} and {cls.name}")
    PHASES[cls.id] = cls
    return cls


def ordered_phases() -> list[type["Phase"]]:
    """Registered phases in ascending numeric order."""
    return [PHASES[key] for key in sorted(PHASES, key=int)]


def find_phase(key: str) -> type["Phase"] | None:
    """Look a phase up by id ('08', '8') or name ('drizzle-setup')."""
    for cls in PHASES.values():
        if key == cls.name or (key.isdigit() and int(key) == int(cls.id)):
            return cls
    return None


@dataclass(frozen=True)
class Verification:
    """One post-condition a phase checks after applying its changes."""

    ok: bool
    description: str


class Kit:
    """The library primitives a phase works with, bound to one RunContext."""

    def __init__(self, ctx: RunContext, log: RunLogger, package_manager: PackageManager | None = None):
        self.ctx = ctx
        self.log = log
        self.manifest = ManifestAccessor(ctx, log, package_manager)
        self.files = FileWriter(ctx, log)
        self.current_step: str | None = None

    def step(self, title: str) -> None:
        """Name the step that is about to run, for progress and failure reports."""
        self.current_step = title
        self.log.step(title)

    def require_file(self, path: str | Path, hint: str) -> PreconditionResult:
        return preconditions.require_file(path, hint, root=self.ctx.project_root)

    def require_tool(self, name: str, install_hint: str | None = None) -> PreconditionResult:
        return preconditions.require_tool(name, install_hint)

    def require_package_manager(self) -> PreconditionResult:
        name = self.ctx.config.package_manager
        return preconditions.require_tool(name, f"npm install -g {name}")

    def require_project_root(self) -> PreconditionResult:
        return preconditions.require_project_root(self.ctx.project_root)

    def file_exists(self, path: str | Path) -> bool:
        return self.ctx.resolve(path).is_file()

    def is_executable(self, path: str | Path) -> bool:
        target = self.ctx.resolve(path)
        return target.is_file() and bool(target.stat().st_mode & 0o111)


class Phase:
    """Base class for a scaffolding phase.

    Subclasses set ``id``, ``name`` and ``description``, list what they do in
    ``actions`` (shown in --help) and implement the three hooks.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str]
    actions: ClassVar[tuple[str, ...]] = ()

    def preconditions(self, kit: Kit) -> Iterable[PreconditionResult]:
        return ()

    def apply(self, kit: Kit) -> None:
        raise NotImplementedError

    def verify(self, kit: Kit) -> Iterable[Verification]:
        return ()

    @classmethod
    def help_text(cls) -> str:
        lines = [cls.description]
        if cls.actions:
            lines += ["", "\b", "What this does:"]
            lines += [f"  {i}. {action}" for i, action in enumerate(cls.actions, 1)]
        return "\n".join(lines)


def run_phase(phase: Phase, ctx: RunContext, package_manager: PackageManager | None = None) -> int:
    """Run one phase under the contract above and return its exit code."""
    log = RunLogger(ctx)
    kit = Kit(ctx, log, package_manager)
    try:
        code = _drive(phase, kit)
        if code == 0:
            log.success(f"Script {phase.id} completed")
        log.summary()
        return code
    finally:
        log.close()


def _drive(phase: Phase, kit: Kit) -> int:
    log = kit.log
    try:
        log.init()
        log.step(f"Starting {phase.id}-{phase.name}: {phase.description}")

        kit.step("Checking prerequisites")
        try:
            for result in phase.preconditions(kit):
                result.raise_for_failure()
                log.debug(result.message)
        except BootstrapError as e:
            for line in e.format_message().splitlines():
                log.error(line)
            log.error(f"Script {phase.id} aborted before making changes")
            return 1

        phase.apply(kit)

        kit.step(f"Verifying {phase.name}")
        if kit.ctx.dry_run:
            log.info("Verification skipped (dry run)")
            return 0
        for check in phase.verify(kit):
            if check.ok:
                log.success(check.description)
            else:
                log.error(f"Verification failed: {check.description}")
    except BootstrapError as e:
        log.error(f"Step failed: {kit.current_step or 'startup'}")
        for line in e.format_message().splitlines():
            log.error(line)
        return 1

    if log.failed:
        log.error(f"Script {phase.id} finished with failures")
        return 1
    return 0


def check_phase(phase: Phase, ctx: RunContext) -> list[Verification]:
    """Evaluate a phase's verifications without applying it (read-only)."""
    kit = Kit(ctx, RunLogger(ctx))
    try:
        return list(phase.verify(kit))
    except BootstrapError as e:
        return [Verification(False, e.format_message())]


def phase_main(phase_cls: type[Phase], argv: Sequence[str] | None = None) -> None:
    """Entry point for running a single phase as its own program."""
    try:
        ctx = parse_args(
            sys.argv[1:] if argv is None else argv,
            script_id=phase_cls.id,
            script_name=phase_cls.name,
            description=phase_cls.help_text(),
        )
    except UsageError as e:
        e.show()
        sys.exit(e.exit_code)
    except BootstrapError as e:
        e.show()
        sys.exit(e.exit_code)
    sys.exit(run_phase(phase_cls(), ctx))
