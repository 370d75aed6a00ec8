"""Command-line interface for license_fetcher.

Provides the main entry point and subcommands for resolving the licenses of
a cargo package's compiled dependencies, inspecting the result, and managing
the global license cache.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from license_fetcher.build import generate_package_list
from license_fetcher.cache import LicenseCache, write_cache
from license_fetcher.codec import read_package_list, write_package_list
from license_fetcher.config import (
    DEFAULT_DIRECTIVES,
    CacheBehavior,
    CacheSaveLocation,
    CargoDirective,
    Config,
    default_global_cache_path,
)
from license_fetcher.errors import LicenseFetcherError
from license_fetcher.models import PackageList
from license_fetcher.reporters import get_reporter, summarize_licenses

app = typer.Typer(
    name="license-fetcher",
    help="Collect the licenses of all compiled dependencies of a cargo package.",
    no_args_is_help=True,
)

cache_app = typer.Typer(help="Manage the global license cache.")
app.add_typer(cache_app, name="cache")

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("license_fetcher")

SHOW_FORMATS = ("text", "json", "markdown", "short")


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("license_fetcher").setLevel(level)


def _directives(locked: bool, frozen: bool, offline: bool) -> list[CargoDirective]:
    """Build the directive list from command line flags, strictest first."""
    selected = [
        directive
        for directive, enabled in (
            (CargoDirective.FROZEN, frozen),
            (CargoDirective.LOCKED, locked),
            (CargoDirective.OFFLINE, offline),
        )
        if enabled
    ]
    return selected or list(DEFAULT_DIRECTIVES)


def _build_config(
    manifest_path: Path,
    cargo: Path,
    locked: bool,
    frozen: bool,
    offline: bool,
    out_dir: Optional[Path],
    use_cache: bool,
) -> Config:
    return Config.from_manifest(
        manifest_path,
        cargo_path=cargo,
        cargo_directives=_directives(locked, frozen, offline),
        out_dir=out_dir,
        cache_behavior=CacheBehavior.CHECK_ALL_TAKE_FIRST if use_cache else CacheBehavior.DISABLED,
        cache_save_location=CacheSaveLocation.GLOBAL if use_cache else CacheSaveLocation.NONE,
    )


def _resolve(config: Config) -> PackageList:
    """Run a resolution with a progress spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task("Resolving dependency licenses...", total=None)
        package_list = asyncio.run(generate_package_list(config))
        progress.update(task, completed=True)
    return package_list


def _print_summary(package_list: PackageList) -> None:
    table = Table(title="License summary")
    table.add_column("License")
    table.add_column("Count", justify="right")
    table.add_column("Packages")

    for license_id, names in summarize_licenses(package_list).items():
        table.add_row(license_id, str(len(names)), ", ".join(names))

    console.print(table)


ManifestOption = Annotated[
    Path,
    typer.Option(
        "--manifest-path",
        "-m",
        help="Path to Cargo.toml or the directory containing it",
    ),
]
CargoOption = Annotated[
    Path,
    typer.Option("--cargo", envvar="CARGO", help="cargo executable to run"),
]
LockedOption = Annotated[
    bool, typer.Option("--locked", help="Require Cargo.lock to be up to date")
]
FrozenOption = Annotated[
    bool, typer.Option("--frozen", help="Require Cargo.lock and cache to be up to date")
]
OfflineOption = Annotated[
    bool, typer.Option("--offline", help="Run cargo without accessing the network")
]
NoCacheOption = Annotated[
    bool, typer.Option("--no-cache", help="Neither read nor update license caches")
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose output")
]


@app.command()
def gen(
    manifest_path: ManifestOption = Path("."),
    cargo: CargoOption = Path("cargo"),
    locked: LockedOption = False,
    frozen: FrozenOption = False,
    offline: OfflineOption = False,
    out_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--out-dir",
            "-o",
            envvar="OUT_DIR",
            help="Directory to write the encoded license file to",
        ),
    ] = None,
    no_cache: NoCacheOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Resolve dependency licenses and write the encoded license file.

    The written file can be embedded into a binary and decoded at runtime.
    """
    _setup_logging(verbose)

    try:
        config = _build_config(
            manifest_path, cargo, locked, frozen, offline, out_dir, not no_cache
        )
        package_list = _resolve(config)
        target_dir = config.out_dir or Path.cwd()
        target_dir.mkdir(parents=True, exist_ok=True)
        path = write_package_list(package_list, target_dir)
        cache_path = write_cache(package_list, config)
    except LicenseFetcherError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    except OSError as e:
        err_console.print(f"[red]Error writing output:[/red] {e}")
        raise typer.Exit(code=1)

    resolved = sum(1 for p in package_list if p.license_text is not None)
    console.print(f"Found [bold]{len(package_list)}[/bold] packages")
    console.print(
        f"Resolved licenses for [bold]{resolved}[/bold]/{len(package_list)} packages"
    )
    console.print(f"[green]Generated:[/green] {path}")
    if cache_path and verbose:
        console.print(f"[dim]Updated cache: {cache_path}[/dim]")


@app.command()
def show(
    manifest_path: ManifestOption = Path("."),
    from_file: Annotated[
        Optional[Path],
        typer.Option(
            "--from",
            help="Read an encoded license file instead of resolving",
            exists=True,
            readable=True,
            dir_okay=False,
        ),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help=f"Output format: {', '.join(SHOW_FORMATS)}",
        ),
    ] = "text",
    cargo: CargoOption = Path("cargo"),
    locked: LockedOption = False,
    frozen: FrozenOption = False,
    offline: OfflineOption = False,
    no_cache: NoCacheOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Print resolved licenses in a human or machine readable format."""
    _setup_logging(verbose)

    if output_format not in SHOW_FORMATS:
        err_console.print(f"[red]Unknown format:[/red] {output_format}")
        err_console.print(f"Valid formats: {', '.join(SHOW_FORMATS)}")
        raise typer.Exit(code=1)

    try:
        if from_file is not None:
            package_list = read_package_list(from_file)
        else:
            config = _build_config(
                manifest_path, cargo, locked, frozen, offline, None, not no_cache
            )
            package_list = _resolve(config)
    except LicenseFetcherError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if output_format == "short":
        _print_summary(package_list)
        return

    # Plain print so license texts are not interpreted as rich markup.
    print(get_reporter(output_format).render(package_list))


@cache_app.command("show")
def cache_show() -> None:
    """Display cache location, entry count, and size."""
    info = LicenseCache(default_global_cache_path()).info()
    console.print(f"[bold]Cache Location:[/bold] {info['path']}")
    console.print(f"[bold]Entries:[/bold] {info['count']}")
    console.print(f"[bold]Size:[/bold] {info['size_bytes'] / 1024:.1f} KB")


@cache_app.command("clear")
def cache_clear(
    package: Annotated[
        Optional[str],
        typer.Argument(help="Specific package to clear (optional)"),
    ] = None,
    version: Annotated[
        Optional[str],
        typer.Option("--version", help="Only clear this version of the package"),
    ] = None,
) -> None:
    """Clear all cached entries, or those of a single package."""
    cache_instance = LicenseCache(default_global_cache_path())

    if package:
        cache_instance.clear(package=package, version=version)
        console.print(f"[green]Cleared cache for:[/green] {package}")
    else:
        cache_instance.clear()
        console.print("[green]Cache cleared[/green]")


if __name__ == "__main__":
    app()
