"""Package manager invocation (pnpm by default, npm and yarn supported)."""

import subprocess
from pathlib import Path
from typing import Protocol

from .config import PACKAGE_MANAGER_COMMANDS
from .errors import PackageInstallError


class PackageManager(Protocol):
    """Anything that can install one npm package into a project."""

    name: str

    def command(self, package: str, dev: bool) -> list[str]: ...

    def install(self, package: str, dev: bool) -> int: ...


class CommandPackageManager:
    """Runs the real package manager binary in the project directory."""

    def __init__(self, name: str, project_root: Path):
        self.name = name
        self.project_root = project_root

    def command(self, package: str, dev: bool) -> list[str]:
        """Build the install command line, e.g. ['pnpm', 'add', '-D', 'drizzle-kit']."""
        runtime_args, dev_args = PACKAGE_MANAGER_COMMANDS[self.name]
        return [self.name, *(dev_args if dev else runtime_args), package]

    def install(self, package: str, dev: bool) -> int:
        """Install a package and return the process exit code.

        Output streams straight to the terminal so install progress stays
        visible. No timeout and no retry.

        Raises:
            PackageInstallError: The binary could not be executed.
        """
        command = self.command(package, dev)
        try:
            result = subprocess.run(command, cwd=self.project_root)
        except OSError as e:
            raise PackageInstallError(command, reason=e.strerror or str(e)) from e
        return result.returncode
