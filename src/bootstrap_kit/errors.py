"""Error types raised by bootstrap phases.

Every failure a phase can hit is a ``BootstrapError``. They are click
exceptions so a command that lets one escape still prints the message and
exits with status 1, but phases normally catch them in ``run_phase`` to log
the failing step and print the run summary first.
"""

import click


class BootstrapError(click.ClickException):
    """Base class for all phase failures (exit code 1)."""

    exit_code = 1


class UsageError(click.UsageError):
    """Bad command-line input. Click prints usage and exits with status 2."""


class MissingToolError(BootstrapError):
    """A required executable is not on PATH."""

    def __init__(self, tool: str, install_hint: str | None = None):
        self.tool = tool
        self.install_hint = install_hint
        message = f"Required command not found: {tool}"
        if install_hint:
            message += f"\nInstall with: {install_hint}"
        super().__init__(message)


class MissingPrerequisiteError(BootstrapError):
    """An artifact from an earlier phase is missing."""

    def __init__(self, path: str, hint: str):
        self.path = path
        self.hint = hint
        super().__init__(f"Required file not found: {path}\nHint: {hint}")


class ManifestNotFoundError(BootstrapError):
    """The project has no package.json."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"package.json not found: {path}")


class VerificationError(BootstrapError):
    """A mutation reported success but the end state does not hold."""


class PackageInstallError(BootstrapError):
    """The package manager exited non-zero or could not be started."""

    def __init__(self, command: list[str], returncode: int | None = None, reason: str | None = None):
        self.command = command
        self.returncode = returncode
        if returncode is None:
            message = f"'{' '.join(command)}' could not be started: {reason}"
        else:
            message = f"'{' '.join(command)}' failed with exit code {returncode}"
        super().__init__(message)


class FileOperationError(BootstrapError, OSError):
    """A filesystem call failed, e.g. a file sits where a directory belongs."""

    def __init__(self, path, reason: str):
        self.path = path
        BootstrapError.__init__(self, f"Cannot write {path}: {reason}")


class FilePermissionError(BootstrapError, PermissionError):
    """The filesystem refused a write or directory creation."""

    def __init__(self, path, reason: str):
        self.path = path
        BootstrapError.__init__(self, f"Permission denied: {path} ({reason})")


class ConfigError(BootstrapError):
    """bootstrap.toml or an environment override is invalid."""
