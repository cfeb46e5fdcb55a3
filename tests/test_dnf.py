"""
Tests for dnf search, installed list and update checks.
"""

from __future__ import annotations

import pytest

from fedoraforge.system import dnf
from fedoraforge.system.errors import AuthCancelled, CommandFailed

REPOQUERY = """\
htop|3.3.0|2.fc41|x86_64|Interactive process viewer
htop|3.3.0|2.fc41|i686|Interactive process viewer
btop|1.4.0|1.fc41|x86_64|Modern resource monitor | with pipes
broken line
"""

INSTALLED = """\
Installed packages
htop.x86_64                3.3.0-1.fc41          @fedora
kernel-core.x86_64         6.11.3-300.fc41       @updates
"""

CHECK_UPDATE = """\
Last metadata expiration check: 0:10:00 ago.
htop.x86_64                3.3.0-2.fc41          updates
Obsoleting packages
firefox.x86_64             131.0-1.fc41          updates
"""


def test_parse_repoquery_dedups_and_keeps_pipes_in_summary():
    found = dnf.parse_repoquery(REPOQUERY)

    assert [p.name for p in found] == ["htop", "btop"]
    assert found[0].evr == "3.3.0-2.fc41"
    assert found[1].summary == "Modern resource monitor|with pipes"


def test_search_prefers_cache(fake_run):
    fake_run.on(["dnf", "repoquery", "--quiet", "--cacheonly"], stdout=REPOQUERY)

    assert len(dnf.search(" htop ")) == 2
    assert fake_run.calls[0][-1] == "*htop*"
    assert len(fake_run.calls) == 1


def test_search_falls_back_to_network(fake_run):
    fake_run.on(["dnf", "repoquery", "--quiet", "--cacheonly"], rc=1, stderr="Cache-only enabled but no cache\n")
    fake_run.on(["dnf", "repoquery", "--quiet", "--qf"], stdout=REPOQUERY)

    assert [p.name for p in dnf.search("top")] == ["htop", "btop"]
    assert len(fake_run.calls) == 2


def test_search_failure_raises(fake_run):
    with pytest.raises(CommandFailed):
        dnf.search("htop")


def test_empty_search_runs_nothing(fake_run):
    assert dnf.search("   ") == []
    assert fake_run.calls == []


def test_parse_installed_strips_arch():
    assert dnf.parse_installed(INSTALLED) == {"htop": "3.3.0-1.fc41", "kernel-core": "6.11.3-300.fc41"}


def test_check_updates_joins_installed_versions(fake_run):
    fake_run.on(["dnf", "check-update"], rc=100, stdout=CHECK_UPDATE)
    fake_run.on(["dnf", "list", "--installed"], stdout=INSTALLED)

    updates = dnf.check_updates()

    assert [(u.name, u.current_version, u.available_version, u.repository) for u in updates] == [
        ("htop", "3.3.0-1.fc41", "3.3.0-2.fc41", "updates"),
        ("firefox", "Unknown", "131.0-1.fc41", "updates"),
    ]


def test_check_updates_nothing_pending(fake_run):
    fake_run.on(["dnf", "check-update"], rc=0, stdout="")

    assert dnf.check_updates() == []


def test_check_updates_error(fake_run):
    fake_run.on(["dnf", "check-update"], rc=1, stderr="Error: Failed to download metadata\n")

    with pytest.raises(CommandFailed):
        dnf.check_updates()


def test_orphaned_packages(fake_run):
    fake_run.on(["dnf", "repoquery", "--unneeded"], stdout="libfoo-1.0-1.fc41.x86_64\n\n")

    assert dnf.orphaned_packages() == ["libfoo-1.0-1.fc41.x86_64"]


def test_commands():
    assert dnf.install_command(["htop"]) == ["dnf", "install", "-y", "--allowerasing", "htop"]
    assert dnf.remove_command(["htop"]) == ["dnf", "remove", "-y", "htop"]
    assert dnf.upgrade_command() == ["dnf", "upgrade", "-y"]


def test_copr_enable(fake_run):
    fake_run.on(["pkexec", "dnf", "copr"], rc=126)

    with pytest.raises(AuthCancelled):
        dnf.copr_enable("bieszczaders/kernel-cachyos")
    assert fake_run.calls == [("pkexec", "dnf", "copr", "enable", "-y", "bieszczaders/kernel-cachyos")]
