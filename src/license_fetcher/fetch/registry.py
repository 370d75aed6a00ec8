"""Discovery of the cargo home and its source registry folders."""

import os
from pathlib import Path
from typing import Optional

from license_fetcher.errors import CargoFolderError, SourceRegistryError

REGISTRY_SRC_SUBFOLDER = Path("registry") / "src"


def cargo_folder(cargo_home: Optional[Path] = None) -> Path:
    """Return the cargo home folder.

    Args:
        cargo_home: Explicit location. If None, CARGO_HOME is used, falling
            back to ``~/.cargo``.

    Returns:
        Path to the existing cargo home directory.

    Raises:
        CargoFolderError: If the folder does not exist or is not a directory.
    """
    if cargo_home is None:
        env_home = os.environ.get("CARGO_HOME")
        cargo_home = Path(env_home) if env_home else Path.home() / ".cargo"

    if not cargo_home.exists():
        raise CargoFolderError(f"Cargo home folder does not exist: {cargo_home}")
    if not cargo_home.is_dir():
        raise CargoFolderError(f"Cargo home path is not a folder: {cargo_home}")

    return cargo_home


def src_registry_folders(cargo_home: Path) -> list[Path]:
    """List the registry source roots, e.g. ``registry/src/index.crates.io-*``.

    Args:
        cargo_home: The cargo home folder.

    Returns:
        Registry root directories, sorted by name.

    Raises:
        SourceRegistryError: If ``registry/src`` is missing, not a directory,
            or cannot be read.
    """
    src_dir = cargo_home / REGISTRY_SRC_SUBFOLDER

    if not src_dir.exists():
        raise SourceRegistryError(f"Source registry folder does not exist: {src_dir}")
    if not src_dir.is_dir():
        raise SourceRegistryError(f"Source registry path is not a folder: {src_dir}")

    try:
        return sorted(entry for entry in src_dir.iterdir() if entry.is_dir())
    except OSError as e:
        raise SourceRegistryError(f"Failed to read source registry {src_dir}: {e}") from e
