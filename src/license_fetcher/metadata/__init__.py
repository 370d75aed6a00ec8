"""Dependency metadata fetched from cargo.

This module provides the two independent views of a build's dependencies:
the production closure of the ``cargo metadata`` resolve graph and the set
of package names ``cargo tree`` reports as compiled.
"""

import logging

from license_fetcher.config import Config
from license_fetcher.errors import ParseError
from license_fetcher.metadata.command import exec_cargo
from license_fetcher.metadata.parser import (
    Metadata,
    package_name_from_id,
    parse_metadata,
    parse_tree_output,
)
from license_fetcher.metadata.reconcile import filter_package_list
from license_fetcher.metadata.walker import walk_dependencies
from license_fetcher.models import Package, PackageList

__all__ = [
    "METADATA_ARGUMENTS",
    "TREE_ARGUMENTS",
    "filter_package_list",
    "package_list_from_cargo_metadata",
    "package_list_from_metadata",
    "used_package_names_from_cargo_tree",
    "walk_dependencies",
]

logger = logging.getLogger(__name__)

METADATA_ARGUMENTS = ("metadata", "--format-version", "1", "--color", "never")

TREE_ARGUMENTS = (
    "tree",
    "-e",
    "normal",
    "-f",
    "{p}",
    "--prefix",
    "none",
    "--color",
    "never",
    "--no-dedupe",
)


def package_list_from_metadata(metadata: Metadata) -> PackageList:
    """Build the unreconciled package list from parsed metadata.

    Packages are kept in the order of the ``packages`` array. The package
    whose id is the resolve root is flagged as root package, and duplicate
    ``name-version`` identities keep their first occurrence.

    Args:
        metadata: Parsed cargo metadata.

    Returns:
        Packages reachable from the root over normal dependency edges.
    """
    used_ids = walk_dependencies(metadata.resolve.nodes, metadata.resolve.root)

    known_ids = {package.id for package in metadata.packages}
    for package_id in sorted(used_ids - known_ids):
        logger.warning(
            "Resolve node %s (%s) has no package record, skipping",
            package_id,
            package_name_from_id(package_id) or "unknown name",
        )

    packages: list[Package] = []
    seen: set[str] = set()

    for record in metadata.packages:
        if record.id not in used_ids:
            continue

        package = Package(
            name=record.name,
            version=record.version,
            authors=list(record.authors),
            description=record.description,
            homepage=record.homepage,
            repository=record.repository,
            license_identifier=record.license,
            is_root_pkg=record.id == metadata.resolve.root,
        )

        if package.name_version in seen:
            logger.debug("Duplicate package %s, keeping first", package.name_version)
            continue
        seen.add(package.name_version)
        packages.append(package)

    return PackageList(packages)


async def package_list_from_cargo_metadata(config: Config) -> PackageList:
    """Run ``cargo metadata`` and return the production dependency closure.

    Raises:
        ExecCargoError: If cargo failed with every directive.
        ParseError: If the output could not be decoded.
    """
    output = await exec_cargo(
        config.cargo_path, config.cargo_directives, config.manifest_dir, METADATA_ARGUMENTS
    )
    package_list = package_list_from_metadata(parse_metadata(output))
    logger.info("cargo metadata reported %d production packages", len(package_list))
    return package_list


async def used_package_names_from_cargo_tree(config: Config) -> set[str]:
    """Run ``cargo tree -e normal`` and return the compiled package names.

    Raises:
        ExecCargoError: If cargo failed with every directive.
        ParseError: If the output is not valid UTF-8.
    """
    output = await exec_cargo(
        config.cargo_path, config.cargo_directives, config.manifest_dir, TREE_ARGUMENTS
    )
    try:
        text = output.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"Failed to parse cargo tree output as UTF-8: {e}") from e

    names = parse_tree_output(text)
    logger.info("cargo tree reported %d compiled packages", len(names))
    return names
