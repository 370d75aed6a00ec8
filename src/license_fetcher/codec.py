"""Serialization of package lists for embedding into a program.

A PackageList is encoded as compact JSON and compressed with zlib. The
resulting buffer is written next to the build output and decoded again at
runtime.
"""

import json
import logging
import os
import time
import zlib
from pathlib import Path
from typing import Optional

from license_fetcher.errors import (
    ConfigError,
    DecodeError,
    DecompressError,
    EmptyInputError,
)
from license_fetcher.models import PackageList

logger = logging.getLogger(__name__)

PACKAGE_LIST_FILE_NAME = "LICENSE-3RD-PARTY.bin"
COMPRESSION_LEVEL = 9


def encode_package_list(package_list: PackageList) -> bytes:
    """Serialize and compress a package list.

    Args:
        package_list: The list to encode.

    Returns:
        Compressed bytes suitable for decode_package_list().
    """
    data = json.dumps(
        package_list.to_dicts(), ensure_ascii=False, separators=(",", ":")
    ).encode("utf-8")
    logger.info("License data size: %d bytes", len(data))

    started = time.perf_counter()
    compressed = zlib.compress(data, COMPRESSION_LEVEL)
    logger.info(
        "Compressed data size: %d bytes in %.1fms",
        len(compressed),
        (time.perf_counter() - started) * 1000,
    )
    return compressed


def decode_package_list(data: bytes) -> PackageList:
    """Decompress and deserialize a package list.

    Args:
        data: Bytes produced by encode_package_list().

    Returns:
        The decoded PackageList.

    Raises:
        EmptyInputError: If data is empty.
        DecompressError: If data is not valid zlib data.
        DecodeError: If the decompressed data is not a package list.
    """
    if not data:
        raise EmptyInputError("Cannot decode a package list from an empty buffer")

    try:
        raw = zlib.decompress(data)
    except zlib.error as e:
        raise DecompressError(f"Failed decompressing license data: {e}") from e

    try:
        items = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Failed decoding license data: {e}") from e

    if not isinstance(items, list):
        raise DecodeError(f"Expected a list of packages, got {type(items).__name__}")

    try:
        return PackageList.from_dicts(items)
    except TypeError as e:
        raise DecodeError(f"Invalid package entry: {e}") from e


def write_package_list(
    package_list: PackageList, out_dir: Optional[Path] = None
) -> Path:
    """Encode a package list and write it into the build output directory.

    Args:
        package_list: The finalized package list.
        out_dir: Target directory. Defaults to the ``OUT_DIR`` environment
            variable that cargo sets for build scripts.

    Returns:
        Path of the written file.

    Raises:
        ConfigError: If no directory was given and OUT_DIR is not set.
    """
    if out_dir is None:
        env_out_dir = os.environ.get("OUT_DIR")
        if not env_out_dir:
            raise ConfigError(
                "Environment variable 'OUT_DIR' is not set. "
                "Pass out_dir explicitly when not running inside a build script."
            )
        out_dir = Path(env_out_dir)

    path = out_dir / PACKAGE_LIST_FILE_NAME
    logger.info("Writing to file: %s", path)
    path.write_bytes(encode_package_list(package_list))
    return path


def read_package_list(path: Path) -> PackageList:
    """Read and decode a package list file written by write_package_list()."""
    return decode_package_list(path.read_bytes())
