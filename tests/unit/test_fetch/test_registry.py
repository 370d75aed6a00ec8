"""Unit tests for cargo home and registry discovery."""

import pytest

from license_fetcher.errors import CargoFolderError, SourceRegistryError
from license_fetcher.fetch.registry import cargo_folder, src_registry_folders


def test_cargo_folder_explicit(cargo_home):
    assert cargo_folder(cargo_home) == cargo_home


def test_cargo_folder_from_env(cargo_home, monkeypatch):
    monkeypatch.setenv("CARGO_HOME", str(cargo_home))
    assert cargo_folder() == cargo_home


def test_cargo_folder_defaults_to_home(tmp_path, monkeypatch):
    monkeypatch.delenv("CARGO_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".cargo").mkdir()
    assert cargo_folder() == tmp_path / ".cargo"


def test_cargo_folder_missing(tmp_path):
    with pytest.raises(CargoFolderError, match="does not exist"):
        cargo_folder(tmp_path / "missing")


def test_cargo_folder_is_file(tmp_path):
    path = tmp_path / "cargo-home"
    path.write_text("")
    with pytest.raises(CargoFolderError, match="not a folder"):
        cargo_folder(path)


def test_cargo_folder_error_is_registry_error(tmp_path):
    with pytest.raises(SourceRegistryError):
        cargo_folder(tmp_path / "missing")


def test_src_registry_folders_sorted(cargo_home):
    src = cargo_home / "registry" / "src"
    (src / "aaa-mirror").mkdir()
    (src / "stray-file").write_text("")

    folders = src_registry_folders(cargo_home)

    assert [f.name for f in folders] == ["aaa-mirror", "index.crates.io-6f17d22bba15001f"]


def test_src_registry_folders_missing(tmp_path):
    with pytest.raises(SourceRegistryError, match="does not exist"):
        src_registry_folders(tmp_path)
