"""License text lookup in extracted package sources.

Crates downloaded by cargo are extracted to
``$CARGO_HOME/registry/src/<registry>/<name>-<version>``. License files are
found there by file name and concatenated.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Union

from license_fetcher.errors import SourceRegistryError
from license_fetcher.fetch.registry import src_registry_folders
from license_fetcher.models import Package, PackageList

logger = logging.getLogger(__name__)

LICENSE_FILE_NAME_REGEX = re.compile(r"license|copying|authors|notice|eula", re.IGNORECASE)

LICENSE_SEPARATOR = "\n\n"


def license_text_from_folder(path: Path) -> Optional[str]:
    """Concatenate all license-like files in a folder.

    Files are matched when their name contains "license", "copying",
    "authors", "notice" or "eula" (case-insensitive). Matches are read in
    file name order and joined with a blank line.

    Args:
        path: Folder to search (not recursive).

    Returns:
        The concatenated text, or None if the folder cannot be read or no
        readable license file exists.
    """
    logger.debug("Fetching license in folder: %s", path)

    try:
        candidates = sorted(
            entry
            for entry in path.iterdir()
            if LICENSE_FILE_NAME_REGEX.search(entry.name) and entry.is_file()
        )
    except OSError as e:
        logger.warning("Failed reading folder %s: %s", path, e)
        return None

    texts = []
    for candidate in candidates:
        try:
            texts.append(candidate.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping unreadable license file %s: %s", candidate, e)

    if not texts:
        logger.warning("Found no licenses in folder: %s", path)
        return None

    return LICENSE_SEPARATOR.join(texts)


def _find_package_folders(
    registry_root: Path, wanted: set[str]
) -> dict[str, Path]:
    """Map wanted name_version identities to their folders in one registry root.

    Raises:
        OSError: If the registry root cannot be listed.
    """
    found = {}
    for entry in registry_root.iterdir():
        if entry.name in wanted and entry.is_dir():
            found[entry.name] = entry
    return found


async def licenses_text_from_cargo_src_folder(
    package_list: PackageList, cargo_home: Path
) -> int:
    """Fill in license texts of packages from the cargo source registry.

    Only non-root packages whose license_text is still None are considered.
    All registry roots are listed concurrently; if a package appears in
    several roots, the first root in sorted order wins. A root that cannot be
    listed is logged and skipped.

    Args:
        package_list: Packages to update in place.
        cargo_home: The cargo home folder.

    Returns:
        Number of packages whose license_text was populated.

    Raises:
        SourceRegistryError: If the registry folder is unusable or every
            registry root failed to be read.
    """
    pending: dict[str, Package] = {
        package.name_version: package
        for package in package_list
        if package.license_text is None and not package.is_root_pkg
    }
    if not pending:
        logger.debug("All licenses already resolved, skipping registry scan")
        return 0

    registry_roots = src_registry_folders(cargo_home)
    if not registry_roots:
        logger.warning("No registry sources found in %s", cargo_home)
        return 0

    wanted = set(pending)
    results: list[Union[dict[str, Path], BaseException]] = await asyncio.gather(
        *(asyncio.to_thread(_find_package_folders, root, wanted) for root in registry_roots),
        return_exceptions=True,
    )

    folders: dict[str, Path] = {}
    failures: list[str] = []
    for root, result in zip(registry_roots, results):
        if isinstance(result, OSError):
            logger.error("Failed reading registry source %s: %s", root, result)
            failures.append(f"{root}: {result}")
            continue
        if isinstance(result, BaseException):
            raise result
        logger.info("src folder: %s", root)
        for name_version, folder in result.items():
            folders.setdefault(name_version, folder)

    if len(failures) == len(registry_roots):
        raise SourceRegistryError(
            "Failed reading every registry source:\n" + "\n".join(failures)
        )

    populated = 0
    for name_version, package in pending.items():
        folder = folders.get(name_version)
        if folder is None:
            logger.warning("No sources found for %s", name_version)
            continue

        logger.info("Fetching license for: %s", package.name)
        package.license_text = license_text_from_folder(folder)
        if package.license_text is not None:
            populated += 1

    return populated
