"""Environment checks a phase runs before it mutates anything.

Checks are stateless and side-effect free. Phase ordering is enforced here:
a phase that needs an earlier phase's output asks for that file with a hint
telling the user which phase to run.
"""

import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .config import MANIFEST_FILENAME
from .errors import BootstrapError, MissingPrerequisiteError, MissingToolError


@dataclass(frozen=True)
class PreconditionResult:
    """Outcome of a check, with the error to raise if it failed."""

    ok: bool
    name: str
    message: str = ""
    hint: str = ""
    error: Callable[[], BootstrapError] | None = field(default=None, repr=False, compare=False)

    def raise_for_failure(self) -> None:
        """Raise the check's typed error if it failed."""
        if self.ok:
            return
        if self.error is not None:
            raise self.error()
        message = f"{self.message}\nHint: {self.hint}" if self.hint else self.message
        raise BootstrapError(message)


def require_tool(name: str, install_hint: str | None = None) -> PreconditionResult:
    """Check an executable is on PATH."""
    if shutil.which(name) is None:
        return PreconditionResult(
            ok=False,
            name=name,
            message=f"Required command not found: {name}",
            hint=install_hint or "",
            error=lambda: MissingToolError(name, install_hint),
        )
    return PreconditionResult(ok=True, name=name, message=f"Found command: {name}")


def require_file(path: str | Path, hint: str, root: Path | None = None) -> PreconditionResult:
    """Check a file left by an earlier phase exists.

    Args:
        path: File path, relative to ``root`` when given.
        hint: What the user should do, e.g. "Run phase 08 first".
        root: Project root to resolve ``path`` against.
    """
    target = root / path if root is not None else Path(path)
    if not target.is_file():
        return PreconditionResult(
            ok=False,
            name=str(path),
            message=f"Required file not found: {path}",
            hint=hint,
            error=lambda: MissingPrerequisiteError(str(path), hint),
        )
    return PreconditionResult(ok=True, name=str(path), message=f"Found file: {path}")


def require_project_root(root: Path) -> PreconditionResult:
    """Check we are in a project (package.json exists)."""
    return require_file(
        MANIFEST_FILENAME,
        "Run this from the project root, or initialize the project first",
        root=root,
    )


def parse_node_major(version: str) -> int | None:
    """'v20.11.1' -> 20."""
    match = re.match(r"v?(\d+)", version.strip())
    return int(match.group(1)) if match else None


def require_node_version(minimum: int = 20) -> PreconditionResult:
    """Check node is installed and at least ``minimum`` major version."""
    found = require_tool("node", "Install Node.js from https://nodejs.org")
    if not found.ok:
        return found

    output = subprocess.run(["node", "-v"], capture_output=True, text=True).stdout
    major = parse_node_major(output)
    if major is None or major < minimum:
        message = f"Node.js version {minimum}+ required, found: {output.strip() or 'unknown'}"
        return PreconditionResult(
            ok=False,
            name="node",
            message=message,
            hint=f"Install Node.js {minimum} or newer",
            error=lambda: BootstrapError(message),
        )
    return PreconditionResult(ok=True, name="node", message=f"Node.js version OK: {output.strip()}")
