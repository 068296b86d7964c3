"""Per-invocation run context and the command-line flags every phase shares."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

import click

from .config import BootstrapConfig, find_project_root, load_config
from .errors import UsageError

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@dataclass(frozen=True)
class RunContext:
    """State for one phase invocation. Passed explicitly, never stored globally."""

    project_root: Path
    dry_run: bool = False
    verbose: bool = False
    script_id: str = ""
    script_name: str = "bootstrap"
    log_file: Path | None = None
    config: BootstrapConfig = field(default_factory=BootstrapConfig)

    def resolve(self, path: str | Path) -> Path:
        """Resolve a phase-relative path against the project root."""
        return self.project_root / path

    def for_phase(self, script_id: str, script_name: str) -> "RunContext":
        """Copy of this context labelled for another phase (used by `run`)."""
        return replace(self, script_id=script_id, script_name=script_name)


def default_log_file(log_dir: Path, now: datetime | None = None) -> Path:
    """Timestamped log file name, e.g. logs/bootstrap-20250101-120000.log."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return log_dir / f"bootstrap-{stamp}.log"


def build_context(
    *,
    script_id: str = "",
    script_name: str = "bootstrap",
    dry_run: bool = False,
    verbose: bool = False,
    log_file: Path | None = None,
    project_root: Path | None = None,
) -> RunContext:
    """Create a RunContext from parsed flag values.

    A dry run only writes a log file when one was requested explicitly, so
    it leaves the project tree untouched.
    """
    root = project_root.resolve() if project_root else find_project_root()
    config = load_config(root)

    if log_file is None and not dry_run:
        log_file = default_log_file(config.log_dir)

    return RunContext(
        project_root=root,
        dry_run=dry_run,
        verbose=verbose,
        script_id=script_id,
        script_name=script_name,
        log_file=log_file,
        config=config,
    )


def common_options(f: Callable) -> Callable:
    """Decorator adding -n/--dry-run, -v/--verbose and the path overrides."""
    f = click.option(
        "--project-root",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Project directory (default: nearest parent with package.json).",
    )(f)
    f = click.option(
        "--log-file",
        type=click.Path(path_type=Path, dir_okay=False),
        envvar="LOG_FILE",
        default=None,
        help="Write the run log here instead of logs/bootstrap-<timestamp>.log.",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        envvar="VERBOSE",
        help="Enable verbose output.",
    )(f)
    f = click.option(
        "--dry-run",
        "-n",
        is_flag=True,
        envvar="DRY_RUN",
        help="Show what would be done without making changes.",
    )(f)
    return f


def parse_args(
    argv: Sequence[str],
    *,
    script_id: str = "",
    script_name: str = "bootstrap",
    description: str | None = None,
) -> RunContext:
    """Parse a phase's argv into a RunContext.

    Exits with status 0 after printing help for -h/--help. Unknown flags
    raise UsageError before anything else happens.
    """

    @click.command(name=script_name, help=description, context_settings=CONTEXT_SETTINGS)
    @common_options
    def command(**options) -> RunContext:
        return build_context(script_id=script_id, script_name=script_name, **options)

    try:
        result = command.main(args=list(argv), prog_name=script_name, standalone_mode=False)
    except click.UsageError as e:
        raise UsageError(e.message, ctx=e.ctx) from e

    # Help was printed; click returns the exit code instead of a context
    if not isinstance(result, RunContext):
        raise SystemExit(result or 0)
    return result
