"""Output reporters for resolved package lists."""

from license_fetcher.reporters.base import BaseReporter, summarize_licenses
from license_fetcher.reporters.json_reporter import JsonReporter
from license_fetcher.reporters.markdown import MarkdownReporter
from license_fetcher.reporters.text import TextReporter

__all__ = [
    "BaseReporter",
    "JsonReporter",
    "MarkdownReporter",
    "TextReporter",
    "get_reporter",
    "summarize_licenses",
]

_REPORTERS: dict[str, type[BaseReporter]] = {
    "text": TextReporter,
    "markdown": MarkdownReporter,
    "json": JsonReporter,
}


def get_reporter(format_name: str) -> BaseReporter:
    """Get a reporter instance by format name.

    Args:
        format_name: One of "text", "markdown" or "json".

    Returns:
        Reporter with default settings.

    Raises:
        ValueError: If the format is not supported.
    """
    try:
        reporter_cls = _REPORTERS[format_name]
    except KeyError:
        raise ValueError(
            f"Unknown format '{format_name}'. "
            f"Supported formats: {', '.join(sorted(_REPORTERS))}"
        ) from None
    return reporter_cls()
