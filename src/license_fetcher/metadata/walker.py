"""Transitive closure of production dependencies."""

import logging
from collections.abc import Iterable

from license_fetcher.metadata.parser import ResolveNode

logger = logging.getLogger(__name__)


def walk_dependencies(nodes: Iterable[ResolveNode], root: str) -> set[str]:
    """Collect the ids reachable from root over normal dependency edges.

    Build and dev edges are not followed, so packages only reachable through
    them are excluded. Each id is marked visited before its dependencies are
    expanded, which keeps malformed cyclic graphs from looping.

    Args:
        nodes: Resolve nodes from cargo metadata.
        root: Package id to start from.

    Returns:
        The reachable ids including root itself, or an empty set if root is
        not one of the nodes.
    """
    nodes_by_id = {node.id: node for node in nodes}

    if root not in nodes_by_id:
        logger.warning("Root package %s not found in resolve graph", root)
        return set()

    visited: set[str] = set()
    stack = [root]

    while stack:
        package_id = stack.pop()
        if package_id in visited:
            continue

        node = nodes_by_id.get(package_id)
        if node is None:
            logger.debug("Dependency %s has no resolve node, skipping", package_id)
            continue

        visited.add(package_id)
        stack.extend(
            dep.target_id
            for dep in node.deps
            if dep.is_normal and dep.target_id not in visited
        )

    return visited
