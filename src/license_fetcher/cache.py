"""Cache layer for license texts resolved by previous runs.

License texts are keyed by a package's ``name-version`` identity. Three
locations are supported:

- the repository cache, an encoded package list committed alongside the
  sources (``<manifest_dir>/.license-fetcher/``),
- the local cache, the package list a previous build wrote into ``OUT_DIR``,
- the global cache, an SQLite database shared by all projects of a user.

A missing or corrupt cache is never fatal: resolution falls back to scanning
the cargo registry. Only an I/O error on an existing cache is escalated.
"""

import contextlib
import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from license_fetcher.codec import (
    PACKAGE_LIST_FILE_NAME,
    decode_package_list,
    encode_package_list,
)
from license_fetcher.config import CacheBehavior, CacheSaveLocation, Config
from license_fetcher.errors import (
    CacheError,
    CacheInvalidError,
    CacheNotApplicableError,
    CacheReadError,
    CacheUnavailableError,
    UnpackError,
)
from license_fetcher.models import PackageList

logger = logging.getLogger(__name__)

REPOSITORY_CACHE_DIR = ".license-fetcher"


class BaseCache(ABC):
    """Abstract base class for license text caches."""

    @abstractmethod
    def load(self) -> dict[str, str]:
        """Load all cached license texts.

        Returns:
            Mapping of name_version to license text.

        Raises:
            CacheNotApplicableError: If the cache location does not exist in
                this execution context.
            CacheInvalidError: If the cache is missing or corrupt.
            CacheReadError: If reading an existing cache failed.
        """
        ...

    @abstractmethod
    def save(self, package_list: PackageList) -> None:
        """Persist the license texts of a finalized package list."""
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return a human-readable name for log messages."""
        ...


class FileCache(BaseCache):
    """Cache stored as an encoded package list.

    Attributes:
        path: Location of the encoded package list, or None when the location
            does not apply to the current execution context.
    """

    def __init__(self, path: Optional[Path], name: str = "file") -> None:
        self.path = path
        self._name = name

    @property
    def source_name(self) -> str:
        return self._name

    def load(self) -> dict[str, str]:
        if self.path is None:
            raise CacheNotApplicableError(
                f"The {self._name} cache is not available in this execution context"
            )

        if not self.path.is_file():
            raise CacheInvalidError(f"No {self._name} cache found at {self.path}")

        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise CacheReadError(f"Failed to read cache {self.path}: {e}") from e

        try:
            cached = decode_package_list(data)
        except UnpackError as e:
            raise CacheInvalidError(f"Cache at {self.path} is invalid: {e}") from e

        return {
            package.name_version: package.license_text
            for package in cached
            if package.license_text is not None
        }

    def save(self, package_list: PackageList) -> None:
        if self.path is None:
            raise CacheNotApplicableError(
                f"The {self._name} cache is not available in this execution context"
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(encode_package_list(package_list))
        logger.info("Wrote %s cache to %s", self._name, self.path)


class OutDirCache(FileCache):
    """Package list written by a previous build into cargo's OUT_DIR."""

    def __init__(self, out_dir: Optional[Path]) -> None:
        path = out_dir / PACKAGE_LIST_FILE_NAME if out_dir is not None else None
        super().__init__(path, name="local")


class RepositoryCache(FileCache):
    """Package list kept in the repository next to Cargo.toml."""

    def __init__(self, manifest_dir: Path) -> None:
        super().__init__(
            manifest_dir / REPOSITORY_CACHE_DIR / PACKAGE_LIST_FILE_NAME,
            name="repository",
        )


class LicenseCache(BaseCache):
    """SQLite cache shared between projects.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    CHUNK_SIZE = 900

    def __init__(self, db_path: Path) -> None:
        """Initialize the license cache.

        The database is created lazily on the first write, so reading a cache
        that was never written reports it as invalid instead of creating it.

        Args:
            db_path: Path to the SQLite database.
        """
        self.db_path = db_path

    @property
    def source_name(self) -> str:
        return "global"

    @contextlib.contextmanager
    def _connect(self):
        """Open a database connection that is closed after use."""
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Create the database file and schema if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS license_cache (
                    name_version TEXT PRIMARY KEY,
                    package_name TEXT NOT NULL,
                    package_version TEXT NOT NULL,
                    license_text TEXT NOT NULL,
                    resolved_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_package_name
                ON license_cache(package_name)
                """
            )
            conn.commit()

    def _ensure_exists(self) -> None:
        if not self.db_path.is_file():
            raise CacheInvalidError(f"No global cache found at {self.db_path}")

    def _translate_error(self, error: sqlite3.DatabaseError) -> CacheError:
        """Map an sqlite3 error on an existing database to a cache error.

        Operational errors (I/O failures, a locked or unopenable file) are
        read errors. A missing table or a file that is not a database makes
        the cache invalid.
        """
        if isinstance(error, sqlite3.OperationalError) and "no such table" not in str(error):
            return CacheReadError(f"Failed to read global cache {self.db_path}: {error}")
        return CacheInvalidError(f"Global cache {self.db_path} is invalid: {error}")

    def get(self, name_version: str) -> Optional[str]:
        """Retrieve the cached license text of one package.

        Args:
            name_version: Package identity, e.g. "serde-1.0.210".

        Returns:
            The license text, or None on a cache miss.
        """
        return self.get_batch([name_version]).get(name_version)

    def get_batch(self, name_versions: list[str]) -> dict[str, str]:
        """Retrieve cached license texts for multiple packages.

        Args:
            name_versions: Package identities to look up.

        Returns:
            Mapping of name_version to license text. Only hits are included.

        Raises:
            CacheInvalidError: If the database is missing or corrupt.
            CacheReadError: If the database file cannot be read.
        """
        self._ensure_exists()

        keys = list(set(name_versions))
        results: dict[str, str] = {}

        try:
            with self._connect() as conn:
                for i in range(0, len(keys), self.CHUNK_SIZE):
                    chunk = keys[i : i + self.CHUNK_SIZE]
                    placeholders = ",".join(["?"] * len(chunk))
                    rows = conn.execute(
                        f"""
                        SELECT name_version, license_text
                        FROM license_cache
                        WHERE name_version IN ({placeholders})
                        """,
                        chunk,
                    ).fetchall()
                    results.update(rows)
        except sqlite3.DatabaseError as e:
            raise self._translate_error(e) from e

        return results

    def load(self) -> dict[str, str]:
        self._ensure_exists()
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT name_version, license_text FROM license_cache"
                ).fetchall()
        except sqlite3.DatabaseError as e:
            raise self._translate_error(e) from e
        return dict(rows)

    def set_batch(self, package_list: PackageList) -> int:
        """Store the license texts of all packages that have one.

        Args:
            package_list: Packages to store.

        Returns:
            Number of entries written.
        """
        resolved_at = datetime.now(UTC).isoformat()
        data_to_insert = [
            (
                package.name_version,
                package.name,
                package.version,
                package.license_text,
                resolved_at,
            )
            for package in package_list
            if package.license_text is not None
        ]
        if not data_to_insert:
            return 0

        self._init_database()
        with self._connect() as conn:
            # REPLACE handles both insert and update
            conn.executemany(
                """
                REPLACE INTO license_cache
                (name_version, package_name, package_version, license_text, resolved_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                data_to_insert,
            )
            conn.commit()

        return len(data_to_insert)

    def save(self, package_list: PackageList) -> None:
        count = self.set_batch(package_list)
        logger.info("Stored %d license texts in global cache %s", count, self.db_path)

    def clear(
        self,
        package: Optional[str] = None,
        version: Optional[str] = None,
    ) -> None:
        """Clear cache entries.

        Args:
            package: If specified, clear only this package.
                If None, clear all entries.
            version: If specified (with package), clear only this
                specific version. Ignored if package is None.
        """
        if not self.db_path.is_file():
            return

        with self._connect() as conn:
            if package is None:
                conn.execute("DELETE FROM license_cache")
            elif version is None:
                conn.execute(
                    "DELETE FROM license_cache WHERE package_name = ?",
                    (package,),
                )
            else:
                conn.execute(
                    """
                    DELETE FROM license_cache
                    WHERE package_name = ? AND package_version = ?
                    """,
                    (package, version),
                )
            conn.commit()

    def info(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with cache information:
                - path: Path to cache database file
                - count: Number of cached entries
                - size_bytes: Database file size in bytes
        """
        if not self.db_path.is_file():
            return {"path": str(self.db_path), "count": 0, "size_bytes": 0}

        with self._connect() as conn:
            count = conn.execute("SELECT COUNT(*) FROM license_cache").fetchone()[0]

        return {
            "path": str(self.db_path),
            "count": count,
            "size_bytes": self.db_path.stat().st_size,
        }


class CacheStatus(Enum):
    """Outcome of applying a cache to a package list."""

    APPLIED = "applied"
    NOT_APPLICABLE = "not-applicable"
    INVALID = "invalid"
    DISABLED = "disabled"


@dataclass
class CacheResult:
    """Result of apply_cache().

    Attributes:
        status: Whether a cache was used, and if not, why.
        hits: Number of packages populated from the cache.
        source: Name of the cache that was used (or last tried).
    """

    status: CacheStatus
    hits: int = 0
    source: Optional[str] = None


def populate_with_cache(package_list: PackageList, cache_map: dict[str, str]) -> int:
    """Fill unresolved packages from a name_version -> license text mapping.

    Args:
        package_list: Packages to update in place.
        cache_map: Cached license texts.

    Returns:
        Number of cache hits.
    """
    hits = 0
    for package in package_list:
        if package.license_text is not None:
            continue
        cached = cache_map.get(package.name_version)
        if cached is not None:
            package.license_text = cached
            package.restored_from_cache = True
            hits += 1
    return hits


def caches_for(config: Config) -> list[BaseCache]:
    """Return the caches to consult for a configuration, in priority order."""
    global_cache = LicenseCache(config.resolved_global_cache_path)

    if config.cache_behavior is CacheBehavior.DISABLED:
        return []
    if config.cache_behavior is CacheBehavior.GLOBAL:
        return [global_cache]
    return [
        RepositoryCache(config.manifest_dir),
        OutDirCache(config.out_dir),
        global_cache,
    ]


def apply_cache(package_list: PackageList, config: Config) -> CacheResult:
    """Populate license texts from the first usable cache.

    Args:
        package_list: Packages to update in place.
        config: Run configuration selecting the caches.

    Returns:
        CacheResult describing which cache was used.

    Raises:
        CacheReadError: If an existing cache could not be read.
    """
    caches = caches_for(config)
    if not caches:
        logger.debug("Cache disabled")
        return CacheResult(CacheStatus.DISABLED)

    result = CacheResult(CacheStatus.NOT_APPLICABLE)
    for cache in caches:
        try:
            cache_map = cache.load()
        except CacheUnavailableError as e:
            status = (
                CacheStatus.NOT_APPLICABLE
                if isinstance(e, CacheNotApplicableError)
                else CacheStatus.INVALID
            )
            logger.debug("Skipping %s cache: %s", cache.source_name, e)
            result = CacheResult(status, source=cache.source_name)
            continue

        hits = populate_with_cache(package_list, cache_map)
        logger.info("Restored %d license(s) from %s cache", hits, cache.source_name)
        return CacheResult(CacheStatus.APPLIED, hits=hits, source=cache.source_name)

    return result


def write_cache(package_list: PackageList, config: Config) -> Optional[Path]:
    """Persist a finalized package list for the next run.

    Called by the caller after resolution has finished, never during it.

    Args:
        package_list: The finalized package list.
        config: Run configuration selecting the save location.

    Returns:
        Path that was written, or None if saving is disabled.

    Raises:
        CacheNotApplicableError: If the local location was selected but no
            OUT_DIR is configured.
    """
    location = config.cache_save_location
    if location is CacheSaveLocation.NONE:
        return None

    cache: BaseCache
    if location is CacheSaveLocation.GLOBAL:
        cache = LicenseCache(config.resolved_global_cache_path)
        cache.save(package_list)
        return cache.db_path

    if location is CacheSaveLocation.LOCAL:
        cache = OutDirCache(config.out_dir)
    else:
        cache = RepositoryCache(config.manifest_dir)
    cache.save(package_list)
    return cache.path
