"""Decoding of ``cargo metadata`` and ``cargo tree`` output.

Only the subset of ``cargo metadata --format-version 1`` needed for license
resolution is decoded. See
https://doc.rust-lang.org/cargo/commands/cargo-metadata.html for the format.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from license_fetcher.errors import ParseError

# "name version (source)" as emitted by cargo before 1.77
_LEGACY_ID_PATTERN = re.compile(r"^(?P<name>[^\s#@]+) (?P<version>\S+) \(.+\)$")


@dataclass
class MetadataPackage:
    """A package record from the ``packages`` array."""

    id: str
    name: str
    version: str
    authors: list[str] = field(default_factory=list)
    license: Optional[str] = None
    description: Optional[str] = None
    repository: Optional[str] = None
    homepage: Optional[str] = None


@dataclass
class NodeDep:
    """A dependency edge of a resolve node.

    Attributes:
        target_id: Package id of the dependency.
        kinds: Edge kinds. None marks a normal (production) dependency,
            otherwise "build" or "dev".
    """

    target_id: str
    kinds: list[Optional[str]] = field(default_factory=list)

    @property
    def is_normal(self) -> bool:
        return any(kind is None for kind in self.kinds)


@dataclass
class ResolveNode:
    id: str
    deps: list[NodeDep] = field(default_factory=list)


@dataclass
class Resolve:
    root: str
    nodes: list[ResolveNode] = field(default_factory=list)


@dataclass
class Metadata:
    packages: list[MetadataPackage]
    resolve: Resolve


def package_name_from_id(package_id: str) -> Optional[str]:
    """Extract the package name from a cargo package id.

    Supported formats:

    - ``"serde 1.0.210 (registry+https://...)"`` (cargo < 1.77) -> ``serde``
    - ``"registry+https://...#serde@1.0.210"`` -> ``serde``
    - ``"path+file:///work/my-app#0.1.0"`` -> ``my-app`` (last path segment)

    The rule is heuristic: package ids are opaque to cargo consumers and this
    only covers the formats cargo has emitted so far.

    Args:
        package_id: Package id string.

    Returns:
        The package name, or None if the id matches no known format.
    """
    match = _LEGACY_ID_PATTERN.match(package_id)
    if match:
        return match.group("name")

    source, sep, fragment = package_id.rpartition("#")
    if not sep or not fragment:
        return None

    if "@" in fragment:
        name = fragment.split("@", 1)[0]
        return name or None

    # Only a version in the fragment; the name is the last path segment.
    path = source.split("?", 1)[0].rstrip("/")
    name = path.rsplit("/", 1)[-1]
    if not name or name.endswith(":"):
        return None
    return name


def parse_metadata(raw: Union[bytes, str]) -> Metadata:
    """Decode the JSON document produced by ``cargo metadata``.

    Args:
        raw: Standard output of the metadata command.

    Returns:
        Typed metadata with packages and the resolve graph.

    Raises:
        ParseError: If the document is not valid JSON, lacks required fields,
            has no resolve root, or the root is not among the resolve nodes.
    """
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to parse output of cargo metadata: {e}") from e

    if not isinstance(document, dict):
        raise ParseError("cargo metadata output is not a JSON object")

    packages = [_parse_package(item) for item in _require_list(document, "packages")]

    resolve_data = document.get("resolve")
    if not isinstance(resolve_data, dict):
        raise ParseError(
            "cargo metadata output has no 'resolve' graph (was --no-deps used?)"
        )

    root = resolve_data.get("root")
    if not isinstance(root, str):
        raise ParseError(
            "Failed to resolve root package id from cargo metadata "
            "(virtual workspace manifests are not supported)"
        )

    nodes = [_parse_node(item) for item in _require_list(resolve_data, "nodes")]

    if not any(node.id == root for node in nodes):
        raise ParseError(f"Root package '{root}' is missing from the resolve nodes")

    return Metadata(packages=packages, resolve=Resolve(root=root, nodes=nodes))


def parse_tree_output(output: str) -> set[str]:
    """Collect package names from ``cargo tree -f {p} --prefix none`` output.

    The first whitespace-delimited field of each non-blank line is the
    package name; the rest (version, source, "(*)" markers) is ignored.
    """
    names = set()
    for line in output.splitlines():
        fields = line.split()
        if fields:
            names.add(fields[0])
    return names


def _parse_package(item: Any) -> MetadataPackage:
    if not isinstance(item, dict):
        raise ParseError("Package entry in cargo metadata is not an object")

    authors = item.get("authors") or []
    if not isinstance(authors, list) or not all(isinstance(a, str) for a in authors):
        raise ParseError(f"Invalid authors for package {item.get('id')!r}")

    return MetadataPackage(
        id=_require_str(item, "id"),
        name=_require_str(item, "name"),
        version=_require_str(item, "version"),
        authors=authors,
        license=_optional_str(item, "license"),
        description=_optional_str(item, "description"),
        repository=_optional_str(item, "repository"),
        homepage=_optional_str(item, "homepage"),
    )


def _parse_node(item: Any) -> ResolveNode:
    if not isinstance(item, dict):
        raise ParseError("Resolve node in cargo metadata is not an object")

    deps = []
    for dep in item.get("deps") or []:
        if not isinstance(dep, dict):
            raise ParseError(f"Invalid dependency entry in node {item.get('id')!r}")

        # cargo calls the target "pkg"
        target = dep.get("pkg", dep.get("target_id"))
        if not isinstance(target, str):
            raise ParseError(f"Dependency without target in node {item.get('id')!r}")

        kinds = []
        for dep_kind in dep.get("dep_kinds") or []:
            if not isinstance(dep_kind, dict):
                raise ParseError(f"Invalid dep_kinds entry for {target!r}")
            kind = dep_kind.get("kind")
            if kind is not None and not isinstance(kind, str):
                raise ParseError(f"Invalid dependency kind for {target!r}")
            kinds.append(kind)

        deps.append(NodeDep(target_id=target, kinds=kinds))

    return ResolveNode(id=_require_str(item, "id"), deps=deps)


def _require_list(data: dict, key: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise ParseError(f"Missing or invalid '{key}' array in cargo metadata")
    return value


def _require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ParseError(f"Missing or invalid '{key}' in cargo metadata entry")
    return value


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ParseError(f"Invalid '{key}' in cargo metadata entry")
    return value
