"""Cross-check of the metadata walk against the compiled package names.

``cargo metadata`` cannot tell apart dependencies that are only used by build
scripts or only enabled on other platforms. ``cargo tree -e normal`` lists
what is actually compiled, so packages missing from it are dropped.
"""

import logging

from license_fetcher.models import PackageList

logger = logging.getLogger(__name__)


def filter_package_list(package_list: PackageList, compiled_names: set[str]) -> PackageList:
    """Keep only packages whose name appears in the compiled set.

    Args:
        package_list: Packages found by walking the metadata graph.
        compiled_names: Package names reported by cargo tree.

    Returns:
        A new PackageList with the same order, restricted to compiled packages.
    """
    kept = []
    for package in package_list:
        if package.name in compiled_names:
            kept.append(package)
        else:
            logger.debug("Dropping %s: not compiled according to cargo tree", package.name_version)

    logger.info("Reconciled %d of %d packages with cargo tree", len(kept), len(package_list))
    return PackageList(kept)
