"""
Tests for the kernel branch registry.
"""

from __future__ import annotations

import json

import pytest

from fedoraforge import config
from fedoraforge.kernel import branches
from fedoraforge.system.errors import NotFoundError, ParseError


def write_branch(directory, filename, **fields):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / filename).write_text(json.dumps(fields), encoding="utf-8")


def test_parse_branch_strips_fields():
    branch = branches.parse_branch(
        '{"name": " Cachyos ", "db_url": "https://x/db.json", "init_script": "true"}')

    assert branch.name == "Cachyos"
    assert branch.db_url == "https://x/db.json"
    assert not branch.needs_init


@pytest.mark.parametrize("missing", ["name", "db_url", "init_script"])
def test_parse_branch_rejects_missing_field(missing):
    data = {"name": "a", "db_url": "b", "init_script": "true"}
    data[missing] = "  "

    with pytest.raises(ParseError, match=missing):
        branches.parse_branch(json.dumps(data))


def test_parse_branch_rejects_bad_json():
    with pytest.raises(ParseError):
        branches.parse_branch("{not json")


def test_load_branches_from_primary_sorted_by_file(tmp_path):
    primary = tmp_path / "primary"
    write_branch(primary, "b.json", name="Second", db_url="u2", init_script="true")
    write_branch(primary, "a.json", name="First", db_url="u1", init_script="echo hi")

    found = branches.load_branches(primary, tmp_path / "fallback")

    assert [b.name for b in found] == ["First", "Second"]
    assert found[0].needs_init


def test_load_branches_uses_fallback(tmp_path):
    fallback = tmp_path / "fallback"
    write_branch(fallback, "x.json", name="Only", db_url="u", init_script="true")

    found = branches.load_branches(tmp_path / "missing", fallback)

    assert [b.name for b in found] == ["Only"]


def test_load_branches_default_when_nothing_on_disk(tmp_path):
    found = branches.load_branches(tmp_path / "a", tmp_path / "b")

    assert len(found) == 1
    assert found[0].name == config.DEFAULT_BRANCH_NAME
    assert found[0].db_url == config.DEFAULT_DB_URL


def test_one_broken_manifest_fails_the_load(tmp_path):
    primary = tmp_path / "primary"
    write_branch(primary, "a.json", name="ok", db_url="u", init_script="true")
    (primary / "b.json").write_text('{"name": "broken"}', encoding="utf-8")

    with pytest.raises(ParseError):
        branches.load_branches(primary, tmp_path / "fallback")


def test_bundled_branches_are_complete(tmp_path):
    found = branches.load_branches(tmp_path / "missing", config.BRANCHES_FALLBACK_DIR)

    assert len(found) >= 2
    for branch in found:
        assert branch.name and branch.db_url and branch.init_script


def test_find_branch():
    found = [branches.default_branch()]

    assert branches.find_branch(found, config.DEFAULT_BRANCH_NAME) is found[0]
    with pytest.raises(NotFoundError):
        branches.find_branch(found, "nope")


def test_cache_db_keeps_first_body():
    branch = branches.default_branch()
    branch.cache_db("first")
    branch.cache_db("second")

    assert branch.db_text == "first"
