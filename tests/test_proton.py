"""
Tests for the GE-Proton release lookup and install chain.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fedoraforge import config
from fedoraforge.system import proton
from fedoraforge.system.errors import NotFoundError, ParseError
from fedoraforge.system.runner import Outcome

FEED = config.PROTON_META["feed"]
TAG = "GE-Proton9-20"
TAR_URL = f"https://github.com/GloriousEggroll/proton-ge-custom/releases/download/{TAG}/{TAG}.tar.gz"

RELEASE = {
    "tag_name": TAG,
    "assets": [
        {"name": f"{TAG}.sha512sum", "browser_download_url": "https://x/sum"},
        {"name": f"{TAG}.tar.gz", "browser_download_url": TAR_URL},
    ],
}


@pytest.fixture
def feed(fake_urlopen):
    fake_urlopen.pages[FEED] = json.dumps(RELEASE).encode()
    fake_urlopen.pages[TAR_URL] = b"TAR-BYTES"
    return fake_urlopen


@pytest.fixture
def unpacking(fake_run):
    """Runs commands through fake_run; a successful tar creates the build directory."""
    fake_run.on(["mkdir"])
    fake_run.on(["rm"])
    fake_run.on(["tar"])

    def execute(cmd):
        result = fake_run(cmd)
        if cmd[0] == "tar" and result.ok:
            (Path(cmd[-1]) / TAG).mkdir(parents=True)
        return result

    execute.fake = fake_run
    return execute


# ----------------------------------------------------------------
# Release feed
# ----------------------------------------------------------------


def test_pick_asset_takes_tarball():
    assert proton.pick_asset(RELEASE) == (f"{TAG}.tar.gz", TAR_URL)


def test_pick_asset_without_tarball():
    with pytest.raises(NotFoundError):
        proton.pick_asset({"assets": [{"name": "x.sha512sum", "browser_download_url": "u"}]})


@pytest.mark.parametrize("tag", [None, "", "../evil", "a/b", ".hidden"])
def test_release_tag_must_be_a_plain_name(tag):
    with pytest.raises(ParseError):
        proton.release_tag({"tag_name": tag})


# ----------------------------------------------------------------
# Steam directory
# ----------------------------------------------------------------


def test_compat_dir_prefers_existing(tmp_path):
    existing = tmp_path / ".steam/steam/compatibilitytools.d"
    existing.mkdir(parents=True)

    assert proton.compat_dir(tmp_path) == existing


def test_compat_dir_fallback(tmp_path):
    assert proton.compat_dir(tmp_path) == tmp_path / ".local/share/Steam/compatibilitytools.d"


def test_installed_builds(tmp_path):
    target = tmp_path / ".steam/root/compatibilitytools.d"
    for name in ("GE-Proton9-20", "GE-Proton8-32", "Luxtorpeda"):
        (target / name).mkdir(parents=True)

    assert proton.installed_builds(tmp_path) == ["GE-Proton8-32", "GE-Proton9-20"]
    assert proton.installed_builds(tmp_path / "nowhere") == []


# ----------------------------------------------------------------
# Chain
# ----------------------------------------------------------------


def test_install_unpacks_as_user(feed, unpacking, tmp_path):
    log = []

    outcome, message = proton.install(unpacking, log.append, home=tmp_path)

    assert outcome is Outcome.SUCCESS
    assert message == ""
    target = tmp_path / config.PROTON_META["fallback"]
    assert (target / TAG).is_dir()
    calls = unpacking.fake.calls
    assert calls[0] == ("mkdir", "-p", str(target))
    assert calls[-1][:2] == ("tar", "-xzf")
    assert calls[-1][-2:] == ("-C", str(target))
    assert not any(c[0] == "pkexec" for c in calls)


def test_reinstall_removes_previous_copy(feed, unpacking, tmp_path):
    target = tmp_path / ".steam/root/compatibilitytools.d"
    (target / TAG).mkdir(parents=True)

    def execute(cmd):
        if cmd[0] == "rm":
            (target / TAG).rmdir()
        return unpacking(cmd)

    outcome, _ = proton.install(execute, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.SUCCESS
    assert ("rm", "-rf", str(target / TAG)) in unpacking.fake.calls


def test_archive_without_build_directory_fails(feed, fake_run, tmp_path):
    fake_run.on(["mkdir"])
    fake_run.on(["tar"])

    outcome, message = proton.install(fake_run, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED
    assert TAG in message


def test_tar_failure_stops_chain(feed, fake_run, tmp_path):
    fake_run.on(["mkdir"])
    fake_run.on(["tar"], rc=2, stderr="gzip: stdin: not in gzip format\n")

    outcome, _ = proton.install(fake_run, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED


def test_feed_unreachable(fake_run, fake_urlopen, tmp_path):
    outcome, message = proton.install(fake_run, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED
    assert "Failed to fetch releases" in message
    assert fake_run.calls == []


def test_download_failure(fake_run, fake_urlopen, tmp_path):
    fake_urlopen.pages[FEED] = json.dumps(RELEASE).encode()

    outcome, message = proton.install(fake_run, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED
    assert f"Failed to download {TAG}.tar.gz" in message
