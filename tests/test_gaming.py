"""
Tests for the gaming bundle chain and Heroic release lookup.
"""

from __future__ import annotations

import json

import pytest

from fedoraforge import config
from fedoraforge.system import gaming
from fedoraforge.system.errors import NetworkError, NotFoundError
from fedoraforge.system.runner import Outcome

FEED = config.GAMING_META["heroic_feed"]
RPM_URL = "https://github.com/Heroic/releases/download/v2.15.2/heroic-2.15.2.x86_64.rpm"

RELEASE = {
    "tag_name": "v2.15.2",
    "assets": [
        {"name": "heroic-2.15.2.AppImage", "browser_download_url": "https://x/AppImage"},
        {"name": "heroic-2.15.2.aarch64.rpm", "browser_download_url": "https://x/arm"},
        {"name": "heroic-2.15.2.x86_64.rpm", "browser_download_url": RPM_URL},
    ],
}


@pytest.fixture
def with_flatpak(monkeypatch):
    monkeypatch.setattr(gaming, "flatpak_available", lambda: True)


@pytest.fixture
def feed(fake_urlopen):
    fake_urlopen.pages[FEED] = json.dumps(RELEASE).encode()
    fake_urlopen.pages[RPM_URL] = b"RPM-BYTES"
    return fake_urlopen


# ----------------------------------------------------------------
# Release feed
# ----------------------------------------------------------------


def test_pick_asset_matches_suffix_and_arch():
    assert gaming.pick_asset(RELEASE) == ("heroic-2.15.2.x86_64.rpm", RPM_URL)


def test_pick_asset_without_rpm():
    with pytest.raises(NotFoundError):
        gaming.pick_asset({"assets": [{"name": "heroic.AppImage", "browser_download_url": "u"}]})


def test_fetch_release_sends_user_agent(feed):
    assert gaming.fetch_release()["tag_name"] == "v2.15.2"
    assert feed.requests[0].get_header("User-agent") == config.USER_AGENT


def test_fetch_release_network_error(fake_urlopen):
    with pytest.raises(NetworkError):
        gaming.fetch_release()


def test_fetch_release_bad_json(fake_urlopen):
    fake_urlopen.pages[FEED] = b"<html>rate limited</html>"

    with pytest.raises(NetworkError, match="parse"):
        gaming.fetch_release()


def test_download_writes_file(feed, tmp_path):
    path = gaming.download(RPM_URL, tmp_path / "heroic.rpm")

    assert path.read_bytes() == b"RPM-BYTES"


# ----------------------------------------------------------------
# Chain
# ----------------------------------------------------------------


def test_core_steps_without_flatpak():
    steps = gaming.core_steps(False)

    assert len(steps) == 1
    assert steps[0].command() == ["pkexec", "dnf", "install", "-y", "steam", "lutris", "mangohud", "gamescope"]


def test_flatpak_steps_run_unprivileged():
    flatpak_steps = gaming.core_steps(True)[1:]

    assert [s.cmd[-1] for s in flatpak_steps] == config.GAMING_META["flatpaks"]
    assert all(s.command()[0] == "flatpak" for s in flatpak_steps)


def test_full_install(fake_run, feed, with_flatpak):
    fake_run.on(["pkexec", "dnf", "install"])
    fake_run.on(["flatpak", "install"])
    log = []

    outcome, message = gaming.install(fake_run, log.append)

    assert outcome is Outcome.SUCCESS
    assert message == ""
    heroic = fake_run.calls[-1]
    assert heroic[:4] == ("pkexec", "dnf", "install", "-y")
    assert heroic[-1].endswith("heroic-2.15.2.x86_64.rpm")
    assert len(fake_run.called("flatpak", "install")) == 2


def test_failure_stops_chain(fake_run, feed, with_flatpak):
    fake_run.on(["pkexec", "dnf", "install"], rc=1, stderr="Error: nothing provides steam\n")

    outcome, _ = gaming.install(fake_run, lambda _m: None)

    assert outcome is Outcome.FAILED
    assert len(fake_run.calls) == 1
    assert feed.requests == []


def test_auth_cancel_stops_chain(fake_run, feed, with_flatpak):
    fake_run.on(["pkexec"], rc=126)

    outcome, message = gaming.install(fake_run, lambda _m: None)

    assert outcome is Outcome.AUTH_CANCELLED
    assert "Authentication cancelled" in message


def test_missing_flatpak_skips_flatpak_steps(fake_run, feed, monkeypatch):
    monkeypatch.setattr(gaming, "flatpak_available", lambda: False)
    fake_run.on(["pkexec", "dnf", "install"])
    log = []

    outcome, _ = gaming.install(fake_run, log.append)

    assert outcome is Outcome.SUCCESS
    assert not fake_run.called("flatpak")
    assert any(line.startswith("⚠") for line in log)


def test_heroic_feed_unreachable(fake_run, fake_urlopen, with_flatpak):
    fake_run.on(["pkexec", "dnf", "install"])
    fake_run.on(["flatpak", "install"])

    outcome, message = gaming.install(fake_run, lambda _m: None)

    assert outcome is Outcome.FAILED
    assert "Failed to fetch releases" in message
