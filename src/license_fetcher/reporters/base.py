"""Base interface for output reporters.

Reporters render a resolved PackageList as text, Markdown or JSON.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path

from license_fetcher.models import PackageList


class BaseReporter(ABC):
    """Abstract base class for output reporters."""

    @abstractmethod
    def render(self, package_list: PackageList) -> str:
        """Render a package list to formatted output.

        Args:
            package_list: Resolved packages, root package first.

        Returns:
            Rendered output as a string.
        """
        ...

    def write(self, package_list: PackageList, output_path: Path) -> None:
        """Render and write output to a file.

        Args:
            package_list: Resolved packages, root package first.
            output_path: Path to write the output file.
        """
        content = self.render(package_list)
        output_path.write_text(content, encoding="utf-8")

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the output format name.

        Returns:
            Format name like "text", "markdown" or "json".
        """
        ...

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Return the default file extension for this format."""
        ...


def summarize_licenses(package_list: PackageList) -> dict[str, list[str]]:
    """Group package names by license identifier.

    Packages without an identifier are grouped under "UNKNOWN".

    Returns:
        Mapping of license identifier to package names, both sorted.
    """
    summary: dict[str, list[str]] = defaultdict(list)
    for package in package_list:
        summary[package.license_identifier or "UNKNOWN"].append(package.name)
    return {license_id: sorted(names) for license_id, names in sorted(summary.items())}
