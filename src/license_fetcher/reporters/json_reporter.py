"""JSON reporter for machine-readable output."""

import json
from typing import Optional

from license_fetcher.models import PackageList
from license_fetcher.reporters.base import BaseReporter


class JsonReporter(BaseReporter):
    """Reporter that renders the package list as a JSON array.

    Attributes:
        indent: Indentation passed to json.dumps, None for compact output.
    """

    def __init__(self, indent: Optional[int] = 2) -> None:
        self.indent = indent

    def render(self, package_list: PackageList) -> str:
        return json.dumps(package_list.to_dicts(), indent=self.indent, ensure_ascii=False)

    @property
    def format_name(self) -> str:
        return "json"

    @property
    def default_extension(self) -> str:
        return ".json"
