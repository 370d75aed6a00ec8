"""Core data models for license_fetcher.

This module defines the package records produced by a resolution run and the
ordered list that is embedded into the compiled program.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Iterator, Optional

SEPARATOR_WIDTH = 80

_OPTIONAL_STR_FIELDS = (
    "description",
    "homepage",
    "repository",
    "license_identifier",
    "license_text",
)


@dataclass
class Package:
    """A single resolved dependency together with its license text.

    Attributes:
        name: Package name (e.g., "serde").
        version: Exact version string as reported by cargo (e.g., "1.0.210").
        authors: Ordered list of authors, may be empty.
        description: Optional package description.
        homepage: Optional homepage URL.
        repository: Optional source repository URL.
        license_identifier: Optional SPDX-like license expression taken
            verbatim from the package metadata.
        license_text: Concatenated license files, or None when no license
            could be found.
        is_root_pkg: True for the package currently being built.
        restored_from_cache: True if license_text was taken from a previously
            persisted cache instead of a fresh scan.
    """

    name: str
    version: str
    authors: list[str] = field(default_factory=list)
    description: Optional[str] = None
    homepage: Optional[str] = None
    repository: Optional[str] = None
    license_identifier: Optional[str] = None
    license_text: Optional[str] = None
    is_root_pkg: bool = False
    restored_from_cache: bool = False

    @property
    def name_version(self) -> str:
        """Return the ``name-version`` identity used for caching and matching."""
        return f"{self.name}-{self.version}"

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.name, self.version)

    def __str__(self) -> str:
        separator = "=" * SEPARATOR_WIDTH
        separator_light = "-" * SEPARATOR_WIDTH

        lines = [f"Package:     {self.name} {self.version}"]
        if self.description:
            lines.append(f"Description: {self.description}")
        if self.authors:
            lines.append(f"Authors:     - {self.authors[0]}")
            lines.extend(f"             - {author}" for author in self.authors[1:])
        if self.homepage:
            lines.append(f"Homepage:    {self.homepage}")
        if self.repository:
            lines.append(f"Repository:  {self.repository}")
        if self.license_identifier:
            lines.append(f"SPDX Ident:  {self.license_identifier}")
        if self.license_text:
            lines.append(f"\n{separator_light}\n{self.license_text}")
        lines.append(f"\n{separator}\n")

        return "\n".join(lines)


@dataclass
class PackageList:
    """Ordered collection of resolved packages.

    Index 0 holds the root package, the remaining entries are sorted by
    ``(name, version)``. The list is built fresh for every resolution run and
    must not be modified once it has been handed off for serialization.

    Attributes:
        packages: The packages in presentation order.
    """

    packages: list[Package] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages)

    def __getitem__(self, index):
        return self.packages[index]

    def append(self, package: Package) -> None:
        """Append a package that was resolved outside of cargo.

        Useful for attributing vendored code or system libraries before the
        list is serialized.

        Args:
            package: Package to append.
        """
        self.packages.append(package)

    @property
    def root(self) -> Optional[Package]:
        """Return the root package if the list has been pinned."""
        if self.packages and self.packages[0].is_root_pkg:
            return self.packages[0]
        return None

    def to_dicts(self) -> list[dict[str, Any]]:
        """Convert the list to plain dictionaries (JSON compatible).

        Returns:
            One dictionary per package, in list order.
        """
        return [asdict(package) for package in self.packages]

    @classmethod
    def from_dicts(cls, items: list[dict[str, Any]]) -> "PackageList":
        """Build a PackageList from dictionaries produced by to_dicts().

        Args:
            items: Package dictionaries.

        Returns:
            The reconstructed PackageList.

        Raises:
            TypeError: If an item is not a mapping, has unexpected keys, or a
                field holds a value of the wrong type.
        """
        packages = []
        for item in items:
            if not isinstance(item, dict):
                raise TypeError(f"Expected a package mapping, got {type(item).__name__}")
            package = Package(**item)
            _check_field_types(package)
            packages.append(package)
        return cls(packages)

    def __str__(self) -> str:
        separator = "=" * SEPARATOR_WIDTH
        return f"{separator}\n\n" + "\n".join(str(package) for package in self.packages)


def _check_field_types(package: Package) -> None:
    """Validate a package built from untrusted data.

    Raises:
        TypeError: If a field holds a value of the wrong type.
    """
    for name in ("name", "version"):
        if not isinstance(getattr(package, name), str):
            raise TypeError(f"Field '{name}' must be a string")

    if not isinstance(package.authors, list) or not all(
        isinstance(author, str) for author in package.authors
    ):
        raise TypeError(f"Field 'authors' of {package.name} must be a list of strings")

    for name in _OPTIONAL_STR_FIELDS:
        value = getattr(package, name)
        if value is not None and not isinstance(value, str):
            raise TypeError(f"Field '{name}' of {package.name} must be a string or null")

    for name in ("is_root_pkg", "restored_from_cache"):
        if not isinstance(getattr(package, name), bool):
            raise TypeError(f"Field '{name}' of {package.name} must be a boolean")
