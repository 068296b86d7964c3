"""Idempotent, dry-run aware scaffolding phases for Next.js projects."""

from .cli import cli

__all__ = ["cli", "main"]


def main() -> None:
    """Entry point for the bootstrap-kit CLI."""
    cli()
