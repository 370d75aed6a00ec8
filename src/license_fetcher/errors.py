"""Exception hierarchy for license_fetcher.

Every error raised by the library derives from LicenseFetcherError so callers
(a build script or the CLI) can abort the resolution step with a single
handler, while still inspecting the structured details of each failure.
"""

from dataclasses import dataclass
from typing import Optional


class LicenseFetcherError(Exception):
    """Base class for all license_fetcher errors."""


class ConfigError(LicenseFetcherError):
    """The run configuration could not be built."""


@dataclass
class DirectiveFailure:
    """Outcome of a single failed cargo invocation.

    Attributes:
        directive: Name of the directive that was tried (e.g., "frozen").
        returncode: Exit status, or None if the process could not be started.
        stderr: Captured standard error, or the OS error message.
    """

    directive: str
    returncode: Optional[int]
    stderr: str

    def __str__(self) -> str:
        if self.returncode is None:
            return f"[{self.directive}] failed to execute cargo: {self.stderr}"
        return f"[{self.directive}] cargo exited with {self.returncode}: {self.stderr.strip()}"


class ExecCargoError(LicenseFetcherError):
    """Every directive in the list failed.

    Attributes:
        failures: One entry per attempted directive, in attempt order.
    """

    def __init__(self, failures: list[DirectiveFailure]) -> None:
        self.failures = failures
        details = "\n".join(f"  {failure}" for failure in failures)
        super().__init__(f"cargo did not execute successfully:\n{details}")


class ParseError(LicenseFetcherError):
    """Output of a cargo command was structurally invalid."""


class ResolutionError(LicenseFetcherError):
    """Several sibling operations failed together.

    Attributes:
        errors: The individual errors, in the order the operations were started.
    """

    def __init__(self, message: str, errors: list[BaseException]) -> None:
        self.errors = errors
        details = "\n".join(f"  - {type(e).__name__}: {e}" for e in errors)
        super().__init__(f"{message}\n{details}")


class SourceRegistryError(LicenseFetcherError):
    """The cargo source registry could not be read."""


class CargoFolderError(SourceRegistryError):
    """The cargo home folder does not exist or is not a directory."""


class RootPackageMissingError(LicenseFetcherError):
    """The package being built is absent from the resolved package set."""


class CacheError(LicenseFetcherError):
    """Base class for cache errors."""


class CacheUnavailableError(CacheError):
    """The cache cannot be used; resolution continues without it."""


class CacheNotApplicableError(CacheUnavailableError):
    """The cache location does not exist in this execution context."""


class CacheInvalidError(CacheUnavailableError):
    """The cache was not found at its location or is corrupt."""


class CacheReadError(CacheError):
    """Reading an otherwise valid cache location failed."""


class UnpackError(LicenseFetcherError):
    """An embedded package list could not be decoded."""


class EmptyInputError(UnpackError):
    """The buffer to decode was empty."""


class DecompressError(UnpackError):
    """The buffer is not valid compressed data."""


class DecodeError(UnpackError):
    """The decompressed data is not a valid package list."""
