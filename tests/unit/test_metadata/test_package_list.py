"""Unit tests for building package lists from cargo output."""

import json

import pytest

from license_fetcher.errors import ExecCargoError, ParseError
from license_fetcher.metadata import (
    package_list_from_cargo_metadata,
    package_list_from_metadata,
    used_package_names_from_cargo_tree,
)
from license_fetcher.metadata.parser import parse_metadata


def test_package_list_from_metadata(metadata_json):
    package_list = package_list_from_metadata(parse_metadata(metadata_json))

    assert [p.name_version for p in package_list] == [
        "my-app-0.1.0",
        "liba-1.0.0",
        "libc-0.2.150",
        "libd-0.5.0",
    ]
    assert [p.is_root_pkg for p in package_list] == [True, False, False, False]

    liba = package_list[1]
    assert liba.license_identifier == "MIT OR Apache-2.0"
    assert liba.authors == ["A Author", "B Author"]
    assert liba.repository == "https://github.com/example/liba"
    assert liba.license_text is None


def test_duplicate_identities_keep_first(metadata_json):
    document = json.loads(metadata_json)
    duplicate = dict(document["packages"][1], description="duplicate")
    duplicate["id"] = "sparse+https://index.crates.io/#liba@1.0.0"
    document["packages"].append(duplicate)
    document["resolve"]["nodes"][1]["deps"].append(
        {"pkg": duplicate["id"], "dep_kinds": [{"kind": None}]}
    )
    document["resolve"]["nodes"].append({"id": duplicate["id"], "deps": []})

    package_list = package_list_from_metadata(parse_metadata(json.dumps(document)))

    libas = [p for p in package_list if p.name == "liba"]
    assert len(libas) == 1
    assert libas[0].description == "A library"


def test_node_without_package_record_is_skipped(metadata_json):
    document = json.loads(metadata_json)
    document["packages"] = [p for p in document["packages"] if p["name"] != "libc"]

    package_list = package_list_from_metadata(parse_metadata(json.dumps(document)))

    assert "libc" not in {p.name for p in package_list}


@pytest.mark.asyncio
async def test_package_list_from_cargo_metadata(config):
    package_list = await package_list_from_cargo_metadata(config)
    assert [p.name for p in package_list] == ["my-app", "liba", "libc", "libd"]


@pytest.mark.asyncio
async def test_used_package_names_from_cargo_tree(config):
    assert await used_package_names_from_cargo_tree(config) == {"my-app", "liba", "libc"}


@pytest.mark.asyncio
async def test_cargo_metadata_failure(config, make_fake_cargo):
    config.cargo_path = make_fake_cargo(metadata_fails=True, name="failing-cargo")
    with pytest.raises(ExecCargoError, match="failed to load manifest"):
        await package_list_from_cargo_metadata(config)


@pytest.mark.asyncio
async def test_cargo_tree_invalid_utf8(config, mocker):
    mocker.patch(
        "license_fetcher.metadata.exec_cargo",
        new=mocker.AsyncMock(return_value=b"liba v1.0.0\n\xff\xfe"),
    )
    with pytest.raises(ParseError, match="UTF-8"):
        await used_package_names_from_cargo_tree(config)
