"""License Fetcher - Collect the licenses of compiled cargo dependencies.

This package resolves which packages a cargo build actually compiles, reads
their license texts from the local cargo source registry, and encodes the
result into a compact file that can be embedded into a binary.
"""

__version__ = "0.1.0"
__author__ = "License Fetcher Contributors"

from license_fetcher.build import (
    generate_package_list,
    generate_package_list_with_licenses,
)
from license_fetcher.codec import (
    PACKAGE_LIST_FILE_NAME,
    decode_package_list,
    encode_package_list,
    read_package_list,
    write_package_list,
)
from license_fetcher.config import (
    CacheBehavior,
    CacheSaveLocation,
    CargoDirective,
    Config,
)
from license_fetcher.errors import LicenseFetcherError
from license_fetcher.models import Package, PackageList

__all__ = [
    "__version__",
    "CacheBehavior",
    "CacheSaveLocation",
    "CargoDirective",
    "Config",
    "LicenseFetcherError",
    "PACKAGE_LIST_FILE_NAME",
    "Package",
    "PackageList",
    "decode_package_list",
    "encode_package_list",
    "generate_package_list",
    "generate_package_list_with_licenses",
    "read_package_list",
    "write_package_list",
]
