"""Command-line interface for the bootstrap phases."""

from pathlib import Path

import click

from . import phases as _phases  # noqa: F401  (registers built-in phases)
from .config import PACKAGE_MANAGER_COMMANDS, find_project_root, load_config, save_package_manager
from .context import CONTEXT_SETTINGS, build_context, common_options
from .phase import Phase, check_phase, find_phase, ordered_phases, run_phase


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="bootstrap-kit")
def cli() -> None:
    """Scaffold a Next.js project in numbered, idempotent phases.

    Every phase can be re-run safely and previewed with --dry-run.
    Phases are meant to run in ascending order; each one checks that the
    phases it depends on have already run.
    """
    pass


def _phase_command(phase_cls: type[Phase]) -> click.Command:
    """Build the click command that runs a single phase."""

    @click.command(
        name=phase_cls.name,
        help=phase_cls.help_text(),
        short_help=f"[{phase_cls.id}] {phase_cls.description}",
        context_settings=CONTEXT_SETTINGS,
    )
    @common_options
    @click.pass_context
    def command(click_ctx: click.Context, **options) -> None:
        ctx = build_context(script_id=phase_cls.id, script_name=phase_cls.name, **options)
        click_ctx.exit(run_phase(phase_cls(), ctx))

    return command


for _phase_cls in ordered_phases():
    cli.add_command(_phase_command(_phase_cls))


@cli.command("list")
def list_phases() -> None:
    """List all phases in the order they run."""
    click.echo(click.style("=== Phases ===", bold=True))
    click.echo()
    for phase_cls in ordered_phases():
        click.echo(f"  {phase_cls.id}  {phase_cls.name:22} {phase_cls.description}")


@cli.command("run")
@click.option(
    "--from",
    "start",
    type=str,
    default=None,
    help="Start from this phase id or name (e.g. 10).",
)
@common_options
@click.pass_context
def run_all(click_ctx: click.Context, start: str | None, **options) -> None:
    """Run every phase in ascending order, stopping at the first failure.

    Examples:

        bootstrap-kit run              # Run all phases
        bootstrap-kit run --dry-run    # Preview all
        bootstrap-kit run --from 10    # Resume from phase 10
    """
    selected = ordered_phases()
    if start is not None:
        first = find_phase(start)
        if first is None:
            raise click.ClickException(
                f"Unknown phase: {start}\n"
                f"Run 'bootstrap-kit list' to see available phases."
            )
        selected = [p for p in selected if int(p.id) >= int(first.id)]

    base = build_context(script_name="run", **options)
    for phase_cls in selected:
        code = run_phase(phase_cls(), base.for_phase(phase_cls.id, phase_cls.name))
        if code != 0:
            click.echo(click.style(f"Failed at phase: {phase_cls.id}-{phase_cls.name}", fg="red"), err=True)
            click.echo(f"Resume with: bootstrap-kit run --from {phase_cls.id}", err=True)
            click_ctx.exit(code)
        click.echo()

    click.echo(click.style(f"=== Bootstrap complete: {len(selected)} phases ===", fg="green"))


@cli.command()
@click.option(
    "--project-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Project directory (default: nearest parent with package.json).",
)
def status(project_root: Path | None) -> None:
    """Show which phases are complete in the current project.

    Re-checks each phase's end state; nothing is modified.
    """
    root = project_root.resolve() if project_root else find_project_root()
    base = build_context(dry_run=True, project_root=root)

    click.echo(click.style(f"Project: {root}", bold=True))
    click.echo()
    complete = 0
    for phase_cls in ordered_phases():
        checks = check_phase(phase_cls(), base.for_phase(phase_cls.id, phase_cls.name))
        failing = [c for c in checks if not c.ok]
        if failing:
            label = click.style("incomplete", fg="yellow")
        else:
            label = click.style("complete", fg="green")
            complete += 1
        click.echo(f"  {phase_cls.id}  {phase_cls.name:22} {label}")
        for check in failing:
            click.echo(f"        - {check.description}")

    click.echo()
    click.echo(f"{complete}/{len(ordered_phases())} phases complete")


@cli.command()
@click.option(
    "--package-manager",
    type=click.Choice(sorted(PACKAGE_MANAGER_COMMANDS)),
    default=None,
    help="Save the package manager used to install dependencies.",
)
@click.option(
    "--project-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Project directory (default: nearest parent with package.json).",
)
def config(package_manager: str | None, project_root: Path | None) -> None:
    """Show or update bootstrap.toml settings."""
    root = project_root.resolve() if project_root else find_project_root()

    if package_manager:
        path = save_package_manager(root, package_manager)
        click.echo(click.style(f"Package manager set to {package_manager}", fg="green"))
        click.echo(f"Saved: {path}")
        return

    settings = load_config(root)
    click.echo(f"package_manager: {settings.package_manager}")
    click.echo(f"log_dir: {settings.log_dir}")
