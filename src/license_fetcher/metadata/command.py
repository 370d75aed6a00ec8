"""Execution of cargo with a prioritized list of directives.

Every directive is one attempt: cargo is run with the directive's flag and the
output of the first successful attempt is returned. Failures are collected so
that the caller sees why every mode failed, not just the last one.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Union

from license_fetcher.config import CargoDirective
from license_fetcher.errors import DirectiveFailure, ExecCargoError

logger = logging.getLogger(__name__)


async def _exec_cargo_single(
    cargo: Path,
    directive: CargoDirective,
    manifest_dir: Path,
    arguments: Sequence[str],
) -> Union[bytes, DirectiveFailure]:
    """Run cargo once with the given directive.

    Returns:
        Captured standard output on success, otherwise a DirectiveFailure
        describing why the attempt failed.
    """
    command = [str(cargo), *arguments]
    if directive.flag:
        command.append(directive.flag)

    logger.debug("Executing %s in %s", " ".join(command), manifest_dir)

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=manifest_dir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return DirectiveFailure(directive.name.lower(), None, str(e))

    stdout, stderr = await process.communicate()

    if process.returncode != 0:
        return DirectiveFailure(
            directive.name.lower(),
            process.returncode,
            stderr.decode("utf-8", errors="replace"),
        )

    return stdout


async def exec_cargo(
    cargo: Path,
    directives: Sequence[CargoDirective],
    manifest_dir: Path,
    arguments: Sequence[str],
) -> bytes:
    """Run cargo with each directive in order until one succeeds.

    Args:
        cargo: Path to the cargo executable.
        directives: Directives to try, most preferred first.
        manifest_dir: Working directory (the directory holding Cargo.toml).
        arguments: cargo arguments without the directive flag.

    Returns:
        Standard output of the first successful invocation.

    Raises:
        ValueError: If directives is empty.
        ExecCargoError: If every directive failed. Carries one
            DirectiveFailure per attempt.
    """
    if not directives:
        raise ValueError("At least one cargo directive is required")

    failures: list[DirectiveFailure] = []

    for directive in directives:
        result = await _exec_cargo_single(cargo, directive, manifest_dir, arguments)

        if isinstance(result, DirectiveFailure):
            logger.debug("Directive failed: %s", result)
            failures.append(result)
            continue

        if failures:
            logger.info(
                "cargo %s succeeded with directive '%s' after %d failed attempt(s)",
                arguments[0] if arguments else "",
                directive.name.lower(),
                len(failures),
            )
        return result

    raise ExecCargoError(failures)
