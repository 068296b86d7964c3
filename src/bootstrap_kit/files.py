"""Idempotent, dry-run aware directory and file creation."""

import os
import stat
import tempfile
from pathlib import Path

from .context import RunContext
from .errors import BootstrapError, FileOperationError, FilePermissionError
from .logger import RunLogger
from .results import StepResult

EXECUTABLE_MODE = 0o755
GITKEEP = ".gitkeep"


def filesystem_error(path: Path, e: OSError) -> BootstrapError:
    """Wrap an OSError in the matching typed error for ``path``."""
    reason = e.strerror or str(e)
    if isinstance(e, PermissionError):
        return FilePermissionError(path, reason)
    return FileOperationError(path, reason)


def default_file_mode() -> int:
    """Mode a plain new file gets under the current umask (0644 for umask 022)."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def atomic_write_text(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` so readers see old or new, never half.

    Writes a temp file in the same directory, fsyncs it, then renames it over
    the target. The target's permission bits are carried over. On any error
    the temp file is removed and the target is left as it was.

    Raises:
        FilePermissionError: The directory or target is not writable.
        FileOperationError: Any other filesystem failure.
    """
    try:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as e:
        raise filesystem_error(path, e) from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            os.chmod(tmp_path, stat.S_IMODE(path.stat().st_mode))
        else:
            os.chmod(tmp_path, default_file_mode())
        os.replace(tmp_path, path)
    except BaseException as e:
        tmp_path.unlink(missing_ok=True)
        if isinstance(e, OSError) and not isinstance(e, BootstrapError):
            raise filesystem_error(path, e) from e
        raise


class FileWriter:
    """Materializes directories and template files under the project root.

    Re-running a phase re-asserts canonical content: existing files are
    overwritten, identical files are left alone. Nothing is ever deleted.
    """

    def __init__(self, ctx: RunContext, log: RunLogger):
        self.ctx = ctx
        self.log = log

    def ensure_dir(self, path: str | Path) -> StepResult:
        """Create a directory and its parents (mkdir -p)."""
        target = self.ctx.resolve(path)
        if target.is_dir():
            self.log.skip(f"Directory {path}")
            return StepResult("unchanged", str(path))

        if self.ctx.dry_run:
            self.log.dry(f"mkdir -p {path}")
            return StepResult("would-create", str(path))

        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise filesystem_error(target, e) from e
        self.log.success(f"Created directory: {path}")
        return StepResult("created", str(path))

    def write_file(self, path: str | Path, content: str, executable: bool = False) -> StepResult:
        """Create or overwrite a file with exactly ``content``.

        The comparison is on bytes, so an existing file in any encoding is
        simply replaced.

        Args:
            path: File path relative to the project root.
            content: Full file contents (UTF-8).
            executable: Set mode 0755 after writing.

        Returns:
            StepResult; under dry-run the detail carries the content length.
        """
        target = self.ctx.resolve(path)
        data = content.encode("utf-8")
        try:
            existing = target.read_bytes() if target.is_file() else None
        except OSError as e:
            raise filesystem_error(target, e) from e
        mode_ok = not executable or (
            target.exists() and stat.S_IMODE(target.stat().st_mode) == EXECUTABLE_MODE
        )

        if existing == data and mode_ok:
            self.log.skip(f"File {path}")
            return StepResult("unchanged", str(path))

        action = "created" if existing is None else "updated"
        detail = f"{len(data)} bytes"

        if self.ctx.dry_run:
            extra = " (executable)" if executable else ""
            verb = "Create" if existing is None else "Overwrite"
            self.log.dry(f"{verb} file: {path} [{detail}]{extra}")
            planned = "would-create" if existing is None else "would-update"
            return StepResult(planned, str(path), detail)

        try:
            if existing != data:
                target.parent.mkdir(parents=True, exist_ok=True)
                atomic_write_text(target, content)
            if executable:
                os.chmod(target, EXECUTABLE_MODE)
        except BootstrapError:
            raise
        except OSError as e:
            raise filesystem_error(target, e) from e

        if existing == data:
            self.log.success(f"Made {path} executable")
            return StepResult("updated", str(path), "mode 755")

        self.log.success(f"{action.capitalize()} file: {path}")
        if executable:
            self.log.debug(f"chmod 755 {path}")
        return StepResult(action, str(path), detail)

    def add_gitkeep(self, directory: str | Path) -> StepResult:
        """Make sure an empty directory is tracked by git."""
        self.ensure_dir(directory)
        gitkeep = Path(directory) / GITKEEP
        target = self.ctx.resolve(gitkeep)
        if target.exists():
            self.log.debug(f"Found {gitkeep}")
            return StepResult("unchanged", str(gitkeep))

        if self.ctx.dry_run:
            self.log.dry(f"touch {gitkeep}")
            return StepResult("would-create", str(gitkeep))

        try:
            target.touch()
        except OSError as e:
            raise filesystem_error(target, e) from e
        self.log.debug(f"Created {gitkeep}")
        return StepResult("created", str(gitkeep))

    def append_file(self, path: str | Path, content: str) -> StepResult:
        """Append a block to a file unless the block is already there."""
        target = self.ctx.resolve(path)
        try:
            existing = target.read_text(encoding="utf-8") if target.is_file() else ""
        except UnicodeDecodeError as e:
            raise FileOperationError(target, "existing content is not UTF-8 text") from e
        except OSError as e:
            raise filesystem_error(target, e) from e
        if content in existing:
            self.log.skip(f"Block in {path}")
            return StepResult("unchanged", str(path))

        if self.ctx.dry_run:
            self.log.dry(f"Append to file: {path}")
            return StepResult("would-update", str(path), f"{len(content.encode('utf-8'))} bytes")

        separator = "" if not existing or existing.endswith("\n") else "\n"
        block = content if content.endswith("\n") else content + "\n"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise filesystem_error(target.parent, e) from e
        atomic_write_text(target, existing + separator + block)
        self.log.success(f"Appended to: {path}")
        return StepResult("updated", str(path))
