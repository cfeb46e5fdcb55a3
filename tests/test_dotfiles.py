"""
Tests for the Hyprland dotfiles fetch: shallow clone and copy into ~/.config.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fedoraforge import config
from fedoraforge.system import dotfiles
from fedoraforge.system.runner import Outcome

REPO = config.DOTFILES_META["repo"]


@pytest.fixture(autouse=True)
def with_git(monkeypatch):
    monkeypatch.setattr(dotfiles, "git_available", lambda: True)


def cloning(fake_run, dirs=("hypr", "quickshell")):
    """execute() whose successful `git clone` leaves a checkout with `dirs`."""
    fake_run.on(["git", "clone"])

    def execute(cmd):
        result = fake_run(cmd)
        if cmd[:2] == ["git", "clone"] and result.ok:
            for name in dirs:
                (Path(cmd[-1]) / name).mkdir(parents=True)
                (Path(cmd[-1]) / name / f"{name}.conf").write_text(f"# {name}\n")
        return result

    return execute


def test_clone_is_shallow_and_unprivileged(tmp_path):
    step = dotfiles.clone_step(REPO, tmp_path / "repo")

    assert step.command() == ["git", "clone", "--depth", "1", REPO, str(tmp_path / "repo")]


def test_install_copies_config(fake_run, tmp_path):
    log = []

    outcome, message = dotfiles.install(cloning(fake_run), log.append, home=tmp_path)

    assert outcome is Outcome.SUCCESS
    assert message == ""
    assert (tmp_path / ".config/hypr/hypr.conf").read_text() == "# hypr\n"
    assert (tmp_path / ".config/quickshell/quickshell.conf").exists()
    assert fake_run.calls[0][:5] == ("git", "clone", "--depth", "1", REPO)


def test_existing_config_is_backed_up(fake_run, tmp_path):
    old = tmp_path / ".config/hypr"
    old.mkdir(parents=True)
    (old / "mine.conf").write_text("keep me\n")
    stale = tmp_path / ".config/hypr.bak"
    stale.mkdir()
    (stale / "older.conf").write_text("")

    outcome, _ = dotfiles.install(cloning(fake_run), lambda _m: None, home=tmp_path)

    assert outcome is Outcome.SUCCESS
    assert (stale / "mine.conf").read_text() == "keep me\n"
    assert not (stale / "older.conf").exists()
    assert not (old / "mine.conf").exists()


def test_missing_directory_in_repository(fake_run, tmp_path):
    outcome, message = dotfiles.install(cloning(fake_run, dirs=("hypr",)), lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED
    assert "quickshell" in message
    assert not (tmp_path / ".config/hypr").exists()


def test_clone_failure_stops(fake_run, tmp_path):
    fake_run.on(["git", "clone"], rc=128, stderr="fatal: unable to access\n")

    outcome, _ = dotfiles.install(fake_run, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED
    assert not (tmp_path / ".config").exists()


def test_without_git(fake_run, monkeypatch, tmp_path):
    monkeypatch.setattr(dotfiles, "git_available", lambda: False)

    outcome, message = dotfiles.install(fake_run, lambda _m: None, home=tmp_path)

    assert outcome is Outcome.FAILED
    assert "git" in message
    assert fake_run.calls == []
