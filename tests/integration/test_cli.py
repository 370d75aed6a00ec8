import json

import pytest
from typer.testing import CliRunner

from license_fetcher.cache import LicenseCache
from license_fetcher.cli import app
from license_fetcher.codec import (
    PACKAGE_LIST_FILE_NAME,
    read_package_list,
    write_package_list,
)
from license_fetcher.models import Package, PackageList

runner = CliRunner()


@pytest.fixture
def env(cargo_home):
    return {"CARGO_HOME": str(cargo_home), "OUT_DIR": None}


@pytest.fixture
def global_cache(monkeypatch, global_cache_path):
    """Point every global cache lookup at a temporary database."""
    monkeypatch.setattr(
        "license_fetcher.config.default_global_cache_path", lambda: global_cache_path
    )
    monkeypatch.setattr(
        "license_fetcher.cli.default_global_cache_path", lambda: global_cache_path
    )
    return LicenseCache(global_cache_path)


@pytest.fixture
def artifact(tmp_path):
    """An encoded package list written by a previous build."""
    package_list = PackageList(
        [
            Package(
                name="my-app",
                version="0.1.0",
                license_identifier="MIT",
                license_text="my-app license",
                is_root_pkg=True,
            ),
            Package(
                name="liba",
                version="1.0.0",
                license_identifier="MIT OR Apache-2.0",
                license_text="liba license",
            ),
        ]
    )
    out_dir = tmp_path / "artifact"
    out_dir.mkdir()
    return write_package_list(package_list, out_dir)


def test_gen_command(tmp_path, project_dir, fake_cargo, env, global_cache):
    """Test the gen command against a fake cargo."""
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    result = runner.invoke(
        app,
        [
            "gen",
            "--manifest-path",
            str(project_dir),
            "--cargo",
            str(fake_cargo),
            "--out-dir",
            str(out_dir),
        ],
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert "Generated:" in result.output
    assert "Resolved licenses for 3/3 packages" in result.output

    package_list = read_package_list(out_dir / PACKAGE_LIST_FILE_NAME)
    assert [p.name for p in package_list] == ["my-app", "liba", "libc"]
    assert global_cache.get("libc-0.2.150") == "libc license"


def test_gen_command_no_cache(tmp_path, project_dir, fake_cargo, env, global_cache):
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    result = runner.invoke(
        app,
        [
            "gen",
            "-m",
            str(project_dir / "Cargo.toml"),
            "--cargo",
            str(fake_cargo),
            "-o",
            str(out_dir),
            "--no-cache",
        ],
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert (out_dir / PACKAGE_LIST_FILE_NAME).is_file()
    assert not global_cache.db_path.exists()


def test_gen_command_locked(tmp_path, project_dir, make_fake_cargo, env, global_cache):
    cargo = make_fake_cargo(required_flag="--locked", name="cargo-locked")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    args = ["gen", "-m", str(project_dir), "--cargo", str(cargo), "-o", str(out_dir)]

    assert runner.invoke(app, args, env=env).exit_code == 1
    assert runner.invoke(app, [*args, "--locked"], env=env).exit_code == 0


def test_gen_command_cargo_failure(tmp_path, project_dir, make_fake_cargo, env, global_cache):
    cargo = make_fake_cargo(metadata_fails=True, name="cargo-broken")

    result = runner.invoke(
        app,
        ["gen", "-m", str(project_dir), "--cargo", str(cargo), "-o", str(tmp_path)],
        env=env,
    )

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_gen_command_without_manifest(tmp_path, fake_cargo, env, global_cache):
    result = runner.invoke(
        app,
        ["gen", "-m", str(tmp_path), "--cargo", str(fake_cargo), "-o", str(tmp_path)],
        env=env,
    )

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_show_json_from_file(artifact):
    result = runner.invoke(app, ["show", "--from", str(artifact), "--format", "json"])

    assert result.exit_code == 0, result.output
    items = json.loads(result.stdout)
    assert [item["name"] for item in items] == ["my-app", "liba"]


def test_show_text_from_file(artifact):
    result = runner.invoke(app, ["show", "--from", str(artifact)])

    assert result.exit_code == 0, result.output
    assert "Package:     liba 1.0.0" in result.stdout
    assert "liba license" in result.stdout


def test_show_short_from_file(artifact):
    result = runner.invoke(app, ["show", "--from", str(artifact), "-f", "short"])

    assert result.exit_code == 0, result.output
    assert "License summary" in result.output
    assert "MIT OR Apache-2.0" in result.output


def test_show_markdown_resolves(project_dir, fake_cargo, env, global_cache):
    result = runner.invoke(
        app,
        [
            "show",
            "-m",
            str(project_dir),
            "--cargo",
            str(fake_cargo),
            "--format",
            "markdown",
        ],
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert "### liba 1.0.0" in result.output


def test_show_corrupt_file(tmp_path):
    corrupt = tmp_path / PACKAGE_LIST_FILE_NAME
    corrupt.write_bytes(b"not compressed")

    result = runner.invoke(app, ["show", "--from", str(corrupt)])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_show_unknown_format(artifact):
    result = runner.invoke(app, ["show", "--from", str(artifact), "--format", "html"])
    assert result.exit_code == 1
    assert "Unknown format" in result.output


def test_cache_show_empty(global_cache):
    result = runner.invoke(app, ["cache", "show"])

    assert result.exit_code == 0
    assert "Entries:" in result.output
    assert "0" in result.output


def test_cache_clear(global_cache):
    global_cache.save(
        PackageList(
            [
                Package(name="liba", version="1.0.0", license_text="a"),
                Package(name="libc", version="0.2.150", license_text="c"),
            ]
        )
    )

    result = runner.invoke(app, ["cache", "clear", "liba"])
    assert result.exit_code == 0
    assert "Cleared cache for:" in result.output
    assert global_cache.load() == {"libc-0.2.150": "c"}

    result = runner.invoke(app, ["cache", "clear"])
    assert result.exit_code == 0
    assert "Cache cleared" in result.output
    assert global_cache.load() == {}


def test_gen_command_creates_out_dir(tmp_path, project_dir, fake_cargo, env, global_cache):
    out_dir = tmp_path / "target" / "licenses"

    result = runner.invoke(
        app,
        ["gen", "-m", str(project_dir), "--cargo", str(fake_cargo), "-o", str(out_dir)],
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert (out_dir / PACKAGE_LIST_FILE_NAME).is_file()


def test_gen_command_unwritable_out_dir(tmp_path, project_dir, fake_cargo, env, global_cache):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    result = runner.invoke(
        app,
        ["gen", "-m", str(project_dir), "--cargo", str(fake_cargo), "-o", str(blocker / "out")],
        env=env,
    )

    assert result.exit_code == 1
    assert "Error writing output:" in result.output
    assert not isinstance(result.exception, OSError)
