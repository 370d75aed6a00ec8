"""License text lookup in the local cargo source registry."""

from license_fetcher.fetch.locator import (
    LICENSE_FILE_NAME_REGEX,
    license_text_from_folder,
    licenses_text_from_cargo_src_folder,
)
from license_fetcher.fetch.registry import cargo_folder, src_registry_folders

__all__ = [
    "LICENSE_FILE_NAME_REGEX",
    "cargo_folder",
    "license_text_from_folder",
    "licenses_text_from_cargo_src_folder",
    "src_registry_folders",
]
