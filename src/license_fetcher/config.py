"""Configuration of a license resolution run.

A Config is either built directly, from the environment variables cargo sets
for build scripts, or from a path to a ``Cargo.toml`` manifest.
"""

import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from license_fetcher.errors import ConfigError

MANIFEST_FILE_NAME = "Cargo.toml"
DIRECTIVES_ENV_VAR = "LICENSE_FETCHER_DIRECTIVES"


class CargoDirective(Enum):
    """Mode in which cargo resolves dependencies.

    The value is the command line flag appended to the cargo command, or an
    empty string for the default (networked, unlocked) mode.
    """

    DEFAULT = ""
    LOCKED = "--locked"
    OFFLINE = "--offline"
    FROZEN = "--frozen"

    @property
    def flag(self) -> Optional[str]:
        return self.value or None

    @classmethod
    def parse(cls, name: str) -> "CargoDirective":
        """Look up a directive by its case-insensitive name.

        Args:
            name: Directive name such as "locked" or "FROZEN".

        Returns:
            The matching directive.

        Raises:
            ConfigError: If the name does not match any directive.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(d.name.lower() for d in cls)
            raise ConfigError(
                f"Unknown cargo directive '{name}'. Valid directives: {valid}"
            ) from None


DEFAULT_DIRECTIVES = [CargoDirective.DEFAULT]
PREFER_LOCKED = [CargoDirective.LOCKED, CargoDirective.DEFAULT]


class CacheBehavior(Enum):
    """Which caches are consulted before scanning the registry."""

    # Repository, then OUT_DIR, then the global cache; first usable one wins.
    CHECK_ALL_TAKE_FIRST = "check-all-take-first"
    GLOBAL = "global"
    DISABLED = "disabled"


class CacheSaveLocation(Enum):
    """Where write_cache() persists resolved license texts."""

    GLOBAL = "global"
    LOCAL = "local"
    REPOSITORY = "repository"
    NONE = "none"


def default_global_cache_path() -> Path:
    return Path.home() / ".cache" / "license_fetcher" / "cache.db"


@dataclass
class Config:
    """Settings for a single resolution run.

    Attributes:
        package_name: Name of the package being built.
        manifest_dir: Directory holding the package's Cargo.toml.
        cargo_path: cargo executable. Defaults to "cargo" looked up on PATH.
        cargo_home: Optional override of the cargo home folder; if None,
            CARGO_HOME or ~/.cargo is used.
        out_dir: Optional build output directory (cargo's OUT_DIR).
        cargo_directives: Directives tried in order for every cargo call.
        cache_behavior: Which caches are read.
        cache_save_location: Where write_cache() persists licenses.
        global_cache_path: Optional override of the global SQLite cache file.
    """

    package_name: str
    manifest_dir: Path
    cargo_path: Path = Path("cargo")
    cargo_home: Optional[Path] = None
    out_dir: Optional[Path] = None
    cargo_directives: list[CargoDirective] = field(
        default_factory=lambda: list(DEFAULT_DIRECTIVES)
    )
    cache_behavior: CacheBehavior = CacheBehavior.CHECK_ALL_TAKE_FIRST
    cache_save_location: CacheSaveLocation = CacheSaveLocation.GLOBAL
    global_cache_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not self.cargo_directives:
            raise ConfigError("At least one cargo directive is required")
        self.manifest_dir = Path(self.manifest_dir)
        self.cargo_path = Path(self.cargo_path)

    @property
    def resolved_global_cache_path(self) -> Path:
        return self.global_cache_path or default_global_cache_path()

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a Config from the environment of a cargo build script.

        Reads CARGO_PKG_NAME, CARGO_MANIFEST_DIR and CARGO (required), OUT_DIR
        (optional) and LICENSE_FETCHER_DIRECTIVES, a comma-separated list of
        directive names (optional).

        Args:
            **overrides: Field values that take precedence over the environment.

        Returns:
            The populated Config.

        Raises:
            ConfigError: If a required variable is missing or a directive name
                is invalid.
        """
        values: dict[str, Any] = {
            "package_name": _required_env("CARGO_PKG_NAME"),
            "manifest_dir": Path(_required_env("CARGO_MANIFEST_DIR")),
            "cargo_path": Path(_required_env("CARGO")),
        }

        out_dir = os.environ.get("OUT_DIR")
        if out_dir:
            values["out_dir"] = Path(out_dir)

        directives = os.environ.get(DIRECTIVES_ENV_VAR)
        if directives:
            values["cargo_directives"] = parse_directives(directives)

        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_manifest(cls, path: Path, **overrides: Any) -> "Config":
        """Build a Config from a Cargo.toml or a directory containing one.

        Args:
            path: Path to the manifest or to its parent directory.
            **overrides: Additional Config fields.

        Returns:
            Config with package_name and manifest_dir taken from the manifest.

        Raises:
            ConfigError: If the path does not exist, holds no manifest, or the
                manifest is not valid TOML with a [package] name.
        """
        manifest_path = find_manifest(Path(path))

        try:
            with open(manifest_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {manifest_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed reading {manifest_path}: {e}") from e

        package = data.get("package")
        name = package.get("name") if isinstance(package, dict) else None
        if not isinstance(name, str) or not name:
            raise ConfigError(f"No [package] name found in {manifest_path}")

        values: dict[str, Any] = {
            "package_name": name,
            "manifest_dir": manifest_path.parent.resolve(),
        }
        values.update(overrides)
        return cls(**values)


def find_manifest(path: Path) -> Path:
    """Locate Cargo.toml from a file or directory path.

    Raises:
        ConfigError: If the path does not exist or no manifest is found.
    """
    if not path.exists():
        raise ConfigError(f"Path does not exist: {path}")

    if path.is_file():
        if path.name != MANIFEST_FILE_NAME:
            raise ConfigError(f"'{path}' is not a {MANIFEST_FILE_NAME} file")
        return path

    manifest_path = path / MANIFEST_FILE_NAME
    if not manifest_path.is_file():
        raise ConfigError(f"No {MANIFEST_FILE_NAME} found in {path}")
    return manifest_path


def parse_directives(value: str) -> list[CargoDirective]:
    """Parse a comma-separated list such as "frozen,locked,default"."""
    directives = [CargoDirective.parse(part) for part in value.split(",") if part.strip()]
    if not directives:
        raise ConfigError(f"No cargo directives found in '{value}'")
    return directives


def _required_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ConfigError(
            f"Environment variable '{name}' is not set. "
            "Was from_env() not called from a build script (build.rs)?"
        )
    return value
