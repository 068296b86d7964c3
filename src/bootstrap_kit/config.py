"""Project configuration: bootstrap.toml plus environment overrides."""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

import pyrootutils

from .errors import ConfigError

CONFIG_FILENAME = "bootstrap.toml"
MANIFEST_FILENAME = "package.json"

# Supported package managers: name -> (runtime add args, dev add args)
PACKAGE_MANAGER_COMMANDS: dict[str, tuple[list[str], list[str]]] = {
    "pnpm": (["add"], ["add", "-D"]),
    "npm": (["install"], ["install", "--save-dev"]),
    "yarn": (["add"], ["add", "--dev"]),
}


@dataclass
class BootstrapConfig:
    """Settings shared by every phase run in a project."""

    package_manager: str = "pnpm"
    log_dir: Path = Path("logs")


def find_project_root(start: Path | None = None) -> Path:
    """Find the project root by looking for package.json.

    Falls back to the starting directory so the first phase can run in an
    empty directory and fail on its own precondition checks.
    """
    search_from = (start or Path.cwd()).resolve()
    try:
        return pyrootutils.find_root(search_from=search_from, indicator=MANIFEST_FILENAME)
    except FileNotFoundError:
        return search_from


def load_config(project_root: Path) -> BootstrapConfig:
    """Load bootstrap.toml from the project root, then apply env overrides.

    Priority: environment > bootstrap.toml > defaults.
    """
    config = BootstrapConfig()

    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        with open(config_path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid {CONFIG_FILENAME}: {e}") from e

        section = data.get("bootstrap", {})
        if pm := section.get("package_manager"):
            config.package_manager = pm
        if log_dir := section.get("log_dir"):
            config.log_dir = Path(log_dir)

    if pm := os.environ.get("BOOTSTRAP_PACKAGE_MANAGER"):
        config.package_manager = pm
    if log_dir := os.environ.get("LOG_DIR"):
        config.log_dir = Path(log_dir)

    if config.package_manager not in PACKAGE_MANAGER_COMMANDS:
        supported = ", ".join(PACKAGE_MANAGER_COMMANDS)
        raise ConfigError(
            f"Unknown package manager: {config.package_manager}\n"
            f"Supported: {supported}"
        )

    if not config.log_dir.is_absolute():
        config.log_dir = project_root / config.log_dir

    return config


def save_package_manager(project_root: Path, package_manager: str) -> Path:
    """Persist the package manager choice in bootstrap.toml.

    Uses tomlkit so comments and formatting in an existing file survive.
    """
    import tomlkit

    if package_manager not in PACKAGE_MANAGER_COMMANDS:
        raise ConfigError(f"Unknown package manager: {package_manager}")

    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            document = tomlkit.load(f)
    else:
        document = tomlkit.document()

    if "bootstrap" not in document:
        document["bootstrap"] = tomlkit.table()
    document["bootstrap"]["package_manager"] = package_manager

    with open(config_path, "w", encoding="utf-8") as f:
        tomlkit.dump(document, f)
    return config_path
