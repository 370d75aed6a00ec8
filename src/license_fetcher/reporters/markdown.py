"""Markdown reporter for generating third-party license documents.

This module provides a reporter that renders a PackageList with a Jinja2
template, suitable for shipping as ``THIRD-PARTY-LICENSES.md``.
"""

from datetime import datetime
from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, Template

from license_fetcher.models import PackageList
from license_fetcher.reporters.base import BaseReporter, summarize_licenses


class MarkdownReporter(BaseReporter):
    """Reporter that generates Markdown license attribution files.

    Package metadata and license texts are HTML-escaped; license texts are
    rendered inside ``<pre>`` blocks so they keep their formatting.

    Attributes:
        template: The Jinja2 template to use for rendering.
    """

    def __init__(self, template_path: Optional[Path] = None) -> None:
        """Initialize the Markdown reporter.

        Args:
            template_path: Optional path to a custom Jinja2 template.
                If not provided, uses the default bundled template.
        """
        if template_path:
            env = Environment(
                loader=FileSystemLoader(template_path.parent),
                autoescape=True,
            )
            self.template = env.get_template(template_path.name)
        else:
            self.template = self._load_default_template()

    def _load_default_template(self) -> Template:
        """Load the default bundled Jinja2 template."""
        template_content = (
            files("license_fetcher.templates")
            .joinpath("licenses.md.j2")
            .read_text(encoding="utf-8")
        )
        env = Environment(autoescape=True, keep_trailing_newline=True)
        return env.from_string(template_content)

    def render(self, package_list: PackageList) -> str:
        """Render a package list to Markdown.

        Args:
            package_list: Resolved packages, root package first.

        Returns:
            Rendered Markdown document as a string.
        """
        return self.template.render(
            root_package=package_list.root,
            packages=[p for p in package_list if not p.is_root_pkg],
            summary=summarize_licenses(package_list),
            generated_at=datetime.now(),
        )

    @property
    def format_name(self) -> str:
        return "markdown"

    @property
    def default_extension(self) -> str:
        return ".md"
