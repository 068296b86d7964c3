"""Leveled console + file logging for a phase run.

Console lines are colored with click; the log file gets the same lines,
timestamped and uncolored, through a stdlib logging FileHandler.
"""

import getpass
import logging
import os
from collections import Counter
from datetime import datetime
from pathlib import Path

import click

from .context import RunContext

FILE_FORMAT = "[%(asctime)s] [%(label)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# level -> (console label, click color, stdlib level)
LEVELS: dict[str, tuple[str, str, int]] = {
    "info": ("INFO", "green", logging.INFO),
    "warn": ("WARN", "yellow", logging.WARNING),
    "error": ("ERROR", "red", logging.ERROR),
    "debug": ("DEBUG", "cyan", logging.DEBUG),
    "step": ("STEP", "blue", logging.INFO),
    "skip": ("SKIP", "yellow", logging.INFO),
    "success": ("OK", "green", logging.INFO),
    "dry": ("DRY RUN", "cyan", logging.INFO),
}


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # No login name in env and no passwd entry (minimal containers)
        return "unknown"


class RunLogger:
    """Logger for one phase invocation.

    Tracks how many lines were logged per level so the phase can print a
    pass/fail summary at the end. Logging never changes control flow.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx
        self.counts: Counter[str] = Counter()
        self._file_logger: logging.Logger | None = None
        if ctx.log_file is not None:
            self._file_logger = self._open_file_logger(ctx.log_file)

    def _open_file_logger(self, log_file: Path) -> logging.Logger:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger = logging.getLogger(f"bootstrap_kit.{self.ctx.script_name}")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        return logger

    def init(self) -> None:
        """Write the run header (first thing every phase does)."""
        if self.ctx.log_file is not None:
            self.info(f"=== Logging initialized: {self.ctx.log_file} ===")
        self.info(f"Script: {self.ctx.script_name}")
        self.info(f"Date: {datetime.now():%Y-%m-%d %H:%M:%S}")
        self.info(f"User: {_current_user()}")
        self.info(f"PWD: {os.getcwd()}")
        self.info(f"Project: {self.ctx.project_root}")
        self.info(f"DRY_RUN: {str(self.ctx.dry_run).lower()}")

    def log(self, level: str, message: str) -> None:
        if level == "debug" and not self.ctx.verbose:
            return
        label, color, stdlib_level = LEVELS[level]
        self.counts[level] += 1

        click.echo(f"{click.style(f'[{label}]', fg=color)} {message}", err=level == "error")

        if self._file_logger is not None:
            self._file_logger.log(stdlib_level, message, extra={"label": label})

    def info(self, message: str) -> None:
        self.log("info", message)

    def warn(self, message: str) -> None:
        self.log("warn", message)

    def error(self, message: str) -> None:
        self.log("error", message)

    def debug(self, message: str) -> None:
        self.log("debug", message)

    def step(self, message: str) -> None:
        self.log("step", f">>> {message}")

    def skip(self, message: str) -> None:
        self.log("skip", f"{message} (already exists)")

    def success(self, message: str) -> None:
        self.log("success", f"✓ {message}")

    def dry(self, message: str) -> None:
        self.log("dry", f"Would execute: {message}")

    @property
    def failed(self) -> bool:
        return self.counts["error"] > 0

    def summary(self) -> None:
        """Print the pass/fail tally for the run."""
        parts = [
            f"{self.counts['success']} ok",
            f"{self.counts['skip']} skipped",
            f"{self.counts['warn']} warnings",
            f"{self.counts['error']} errors",
        ]
        if self.ctx.dry_run:
            parts.append(f"{self.counts['dry']} planned")
        level = "error" if self.failed else "info"
        self.log(level, "Summary: " + ", ".join(parts))

    def close(self) -> None:
        if self._file_logger is None:
            return
        for handler in list(self._file_logger.handlers):
            handler.close()
            self._file_logger.removeHandler(handler)
        self._file_logger = None
