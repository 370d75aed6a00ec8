"""Plain text reporter matching the embedded attribution format."""

from license_fetcher.models import PackageList
from license_fetcher.reporters.base import BaseReporter


class TextReporter(BaseReporter):
    """Reporter that renders every package as a separated text block."""

    def render(self, package_list: PackageList) -> str:
        return str(package_list)

    @property
    def format_name(self) -> str:
        return "text"

    @property
    def default_extension(self) -> str:
        return ".txt"
