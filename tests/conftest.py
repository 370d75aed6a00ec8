"""Shared fixtures for license_fetcher tests."""

import stat
import sys
from pathlib import Path

import pytest

from license_fetcher.config import CacheSaveLocation, Config

FIXTURES_DIR = Path(__file__).parent / "fixtures"

REGISTRY_NAME = "index.crates.io-6f17d22bba15001f"

FAKE_CARGO_TEMPLATE = """#!{python}
import sys
from pathlib import Path

args = sys.argv[1:]
required_flag = {required_flag!r}
if required_flag and required_flag not in args:
    sys.stderr.write("error: the lock file needs to be updated but " + required_flag + " was not passed\\n")
    sys.exit(101)

if args and args[0] == "metadata":
    if {metadata_fails!r}:
        sys.stderr.write("error: failed to load manifest\\n")
        sys.exit(101)
    sys.stdout.write(Path({metadata!r}).read_text(encoding="utf-8"))
elif args and args[0] == "tree":
    if {tree_fails!r}:
        sys.stderr.write("error: cargo tree is not available\\n")
        sys.exit(101)
    sys.stdout.write(Path({tree!r}).read_text(encoding="utf-8"))
else:
    sys.stderr.write("error: unexpected arguments\\n")
    sys.exit(1)
"""


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the directory holding recorded cargo output."""
    return FIXTURES_DIR


@pytest.fixture
def metadata_json(fixtures_dir) -> bytes:
    """Recorded output of ``cargo metadata --format-version 1``."""
    return (fixtures_dir / "metadata.json").read_bytes()


@pytest.fixture
def make_fake_cargo(tmp_path, fixtures_dir):
    """Factory creating an executable that imitates cargo.

    The fake prints the recorded metadata or tree output depending on its
    first argument, and can be told to fail either command or to require a
    directive flag.
    """

    def _make(
        metadata_fails: bool = False,
        tree_fails: bool = False,
        required_flag: str = "",
        name: str = "cargo",
    ) -> Path:
        script = tmp_path / "bin" / name
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text(
            FAKE_CARGO_TEMPLATE.format(
                python=sys.executable,
                required_flag=required_flag,
                metadata_fails=metadata_fails,
                tree_fails=tree_fails,
                metadata=str(fixtures_dir / "metadata.json"),
                tree=str(fixtures_dir / "cargo_tree.txt"),
            ),
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def fake_cargo(make_fake_cargo) -> Path:
    """A fake cargo executable that succeeds for both commands."""
    return make_fake_cargo()


@pytest.fixture
def cargo_home(tmp_path) -> Path:
    """Create a cargo home with an extracted source registry.

    Layout::

        registry/src/index.crates.io-.../
            liba-1.0.0/   LICENSE-APACHE, LICENSE-MIT, README.md
            libc-0.2.150/ LICENSE
            libd-0.5.0/   COPYING
    """
    home = tmp_path / "cargo-home"
    registry = home / "registry" / "src" / REGISTRY_NAME

    liba = registry / "liba-1.0.0"
    liba.mkdir(parents=True)
    (liba / "LICENSE-MIT").write_text("liba MIT license")
    (liba / "LICENSE-APACHE").write_text("liba Apache license")
    (liba / "README.md").write_text("# liba")
    (liba / "src").mkdir()

    libc = registry / "libc-0.2.150"
    libc.mkdir()
    (libc / "LICENSE").write_text("libc license")

    libd = registry / "libd-0.5.0"
    libd.mkdir()
    (libd / "COPYING").write_text("libd copying")

    return home


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """Create the root package's project folder."""
    project = tmp_path / "my-app"
    project.mkdir()
    (project / "Cargo.toml").write_text(
        '[package]\nname = "my-app"\nversion = "0.1.0"\nedition = "2021"\n'
    )
    (project / "LICENSE").write_text("my-app license")
    return project


@pytest.fixture
def global_cache_path(tmp_path) -> Path:
    return tmp_path / "cache" / "cache.db"


@pytest.fixture
def config(project_dir, fake_cargo, cargo_home, global_cache_path) -> Config:
    """Config for a run against the fake cargo and registry."""
    return Config(
        package_name="my-app",
        manifest_dir=project_dir,
        cargo_path=fake_cargo,
        cargo_home=cargo_home,
        global_cache_path=global_cache_path,
        cache_save_location=CacheSaveLocation.NONE,
    )
