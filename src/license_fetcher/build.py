"""Resolution of the final package list with license texts.

This module orchestrates a full run:

1. ``cargo metadata`` and ``cargo tree`` are executed concurrently.
2. The metadata closure is reconciled with the compiled package names.
3. License texts are restored from a previous run's cache.
4. Remaining licenses are read from the cargo source registry.
5. The root package is moved to the front and its license is read from the
   manifest directory; all other packages are sorted by name and version.
"""

import asyncio
import logging
from typing import Optional

from license_fetcher.cache import apply_cache
from license_fetcher.config import Config
from license_fetcher.errors import (
    LicenseFetcherError,
    ResolutionError,
    RootPackageMissingError,
)
from license_fetcher.fetch import (
    cargo_folder,
    license_text_from_folder,
    licenses_text_from_cargo_src_folder,
)
from license_fetcher.metadata import (
    filter_package_list,
    package_list_from_cargo_metadata,
    used_package_names_from_cargo_tree,
)
from license_fetcher.models import PackageList

logger = logging.getLogger(__name__)


def _normalize_name(name: str) -> str:
    return name.replace("-", "_")


def _pin_root_package(package_list: PackageList, config: Config) -> None:
    """Move the root package to index 0 and read its license from the project.

    Raises:
        RootPackageMissingError: If the package being built is not in the list.
    """
    packages = package_list.packages

    index = next((i for i, p in enumerate(packages) if p.is_root_pkg), None)
    if index is None:
        wanted = _normalize_name(config.package_name)
        index = next(
            (i for i, p in enumerate(packages) if _normalize_name(p.name) == wanted),
            None,
        )
    if index is None:
        raise RootPackageMissingError(
            f"Package '{config.package_name}' is missing from its own resolved dependencies"
        )

    packages[0], packages[index] = packages[index], packages[0]

    root = packages[0]
    root.is_root_pkg = True
    # The root package is not installed in the registry, so its license
    # always comes from the project itself.
    root.license_text = license_text_from_folder(config.manifest_dir)
    root.restored_from_cache = False

    for package in packages[1:]:
        package.is_root_pkg = False


async def generate_package_list(config: Config) -> PackageList:
    """Resolve the compiled dependencies of a package and their licenses.

    Args:
        config: Run configuration.

    Returns:
        PackageList with the root package at index 0 and all other packages
        sorted by (name, version).

    Raises:
        ResolutionError: If both cargo commands failed.
        ExecCargoError: If ``cargo metadata`` failed with every directive.
        ParseError: If the ``cargo metadata`` output was invalid.
        CacheReadError: If an existing cache could not be read.
        SourceRegistryError: If the cargo source registry is unusable.
        RootPackageMissingError: If the package being built was not resolved.
    """
    logger.info("Resolving licenses for %s in %s", config.package_name, config.manifest_dir)

    metadata_result, tree_result = await asyncio.gather(
        package_list_from_cargo_metadata(config),
        used_package_names_from_cargo_tree(config),
        return_exceptions=True,
    )

    if isinstance(metadata_result, BaseException) and isinstance(tree_result, BaseException):
        raise ResolutionError(
            "Both cargo metadata and cargo tree failed", [metadata_result, tree_result]
        )
    if isinstance(metadata_result, BaseException):
        raise metadata_result

    package_list = metadata_result

    if isinstance(tree_result, LicenseFetcherError):
        logger.warning(
            "cargo tree failed, using unreconciled cargo metadata result: %s", tree_result
        )
    elif isinstance(tree_result, BaseException):
        raise tree_result
    else:
        package_list = filter_package_list(package_list, tree_result)

    cache_result = apply_cache(package_list, config)
    logger.debug("Cache result: %s", cache_result)

    if any(p.license_text is None and not p.is_root_pkg for p in package_list):
        cargo_home = cargo_folder(config.cargo_home)
        populated = await licenses_text_from_cargo_src_folder(package_list, cargo_home)
        logger.info("Read %d license(s) from the cargo registry", populated)

    _pin_root_package(package_list, config)
    package_list.packages[1:] = sorted(package_list.packages[1:], key=lambda p: p.sort_key)

    missing = [p.name_version for p in package_list if p.license_text is None]
    if missing:
        logger.warning("No license text found for: %s", ", ".join(missing))

    return package_list


def generate_package_list_with_licenses(config: Optional[Config] = None) -> PackageList:
    """Synchronous entry point for build scripts.

    Args:
        config: Run configuration. Defaults to Config.from_env(), which reads
            the environment variables cargo sets for build scripts.

    Returns:
        The resolved PackageList.
    """
    if config is None:
        config = Config.from_env()
    return asyncio.run(generate_package_list(config))
