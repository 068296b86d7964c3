"""Shared fixtures: a throwaway Next.js project and a fake package manager."""

import json
import os
import stat
from pathlib import Path

import pytest

from bootstrap_kit.context import RunContext
from bootstrap_kit.logger import RunLogger

BASE_MANIFEST = {
    "name": "app",
    "version": "0.1.0",
    "private": True,
    "scripts": {"dev": "next dev", "build": "next build"},
    "dependencies": {"next": "15.0.0", "react": "19.0.0"},
    "devDependencies": {"typescript": "^5"},
}


class FakePackageManager:
    """Stands in for pnpm: records installs and edits package.json like pnpm would.

    ``register=False`` simulates an install that exits 0 without touching
    the manifest; ``returncode`` simulates a failing install.
    """

    __test__ = False

    def __init__(self, project_root: Path, returncode: int = 0, register: bool = True):
        self.name = "pnpm"
        self.project_root = project_root
        self.returncode = returncode
        self.register = register
        self.calls: list[tuple[str, bool]] = []

    def command(self, package: str, dev: bool) -> list[str]:
        return ["pnpm", "add", *(["-D"] if dev else []), package]

    def install(self, package: str, dev: bool) -> int:
        self.calls.append((package, dev))
        if self.returncode != 0 or not self.register:
            return self.returncode
        path = self.project_root / "package.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        key = "devDependencies" if dev else "dependencies"
        data.setdefault(key, {})[package] = "^1.0.0"
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return 0


def write_manifest(root: Path, data: dict) -> Path:
    path = root / "package.json"
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def read_manifest(root: Path) -> dict:
    return json.loads((root / "package.json").read_text(encoding="utf-8"))


def snapshot(root: Path) -> dict[str, tuple[bytes, int]]:
    """Every file under root with its bytes and permission bits."""
    return {
        str(p.relative_to(root)): (p.read_bytes(), stat.S_IMODE(p.stat().st_mode))
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def make_ctx(root: Path, dry_run: bool = False, verbose: bool = False, log_file: Path | None = None) -> RunContext:
    return RunContext(
        project_root=root,
        dry_run=dry_run,
        verbose=verbose,
        script_id="99",
        script_name="test",
        log_file=log_file,
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory containing only package.json."""
    root = tmp_path / "app"
    root.mkdir()
    write_manifest(root, BASE_MANIFEST)
    return root


@pytest.fixture
def ctx(project: Path) -> RunContext:
    return make_ctx(project)


@pytest.fixture
def dry_ctx(project: Path) -> RunContext:
    return make_ctx(project, dry_run=True)


@pytest.fixture
def log(ctx: RunContext) -> RunLogger:
    return RunLogger(ctx)


@pytest.fixture
def fake_pm(project: Path) -> FakePackageManager:
    return FakePackageManager(project)


@pytest.fixture
def fake_bin(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A directory on PATH holding a no-op `pnpm` executable."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    pnpm = bin_dir / "pnpm"
    pnpm.write_text("#!/bin/sh\nexit 0\n")
    pnpm.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return bin_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's DRY_RUN/VERBOSE/LOG_* settings out of the tests."""
    for name in ("DRY_RUN", "VERBOSE", "LOG_FILE", "LOG_DIR", "BOOTSTRAP_PACKAGE_MANAGER"):
        monkeypatch.delenv(name, raising=False)
