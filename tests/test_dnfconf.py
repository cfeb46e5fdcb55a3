"""
Tests for dnf.conf parsing and rewriting of the [main] section.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fedoraforge.system import dnfconf, runner
from fedoraforge.system.dnfconf import DnfSettings
from fedoraforge.system.errors import AuthCancelled, CommandFailed

ORIGINAL = "[main]\n# keep me\ngpgcheck=1\n"


# ----------------------------------------------------------------
# Parse / render
# ----------------------------------------------------------------


def test_save_keeps_comment_and_adds_keys_once():
    text = dnfconf.render(ORIGINAL, DnfSettings(20, True))

    assert text == "[main]\n# keep me\ngpgcheck=1\nmax_parallel_downloads=20\nfastestmirror=true\n"
    assert dnfconf.parse(text) == DnfSettings(20, True)


def test_existing_keys_are_replaced_not_duplicated():
    text = "[main]\nmax_parallel_downloads=5\ngpgcheck=1\nfastestmirror=True\n\n[other]\nkey=v\n"

    new = dnfconf.render(text, DnfSettings(10, False))

    assert new.count("max_parallel_downloads") == 1
    assert new.count("fastestmirror") == 1
    assert new == ("[main]\ngpgcheck=1\nmax_parallel_downloads=10\nfastestmirror=false\n"
                   "\n[other]\nkey=v\n")


def test_keys_in_other_sections_are_untouched():
    text = "[main]\ngpgcheck=1\n[extra]\nmax_parallel_downloads=2\n"

    new = dnfconf.render(text, DnfSettings(4, True))

    assert new.endswith("[extra]\nmax_parallel_downloads=2\n")
    assert dnfconf.parse(new) == DnfSettings(4, True)


def test_missing_main_section_is_created_first():
    new = dnfconf.render("# header\n", DnfSettings(3, False))

    assert new.startswith("[main]\nmax_parallel_downloads=3\nfastestmirror=false\n")
    assert new.endswith("# header\n")


@pytest.mark.parametrize("value", [0, 26, -1])
def test_parallel_out_of_range_rejected(value):
    with pytest.raises(ValueError):
        dnfconf.render(ORIGINAL, DnfSettings(value, False))


def test_parse_defaults_and_garbage():
    assert dnfconf.parse("") == DnfSettings()
    assert dnfconf.parse("[main]\nmax_parallel_downloads=lots\nfastestmirror=1\n") == DnfSettings(3, True)
    assert dnfconf.parse("[main]\n# max_parallel_downloads=9\n").max_parallel_downloads == 3


# ----------------------------------------------------------------
# Read / save
# ----------------------------------------------------------------


def test_read_falls_back_to_pkexec(fake_run):
    fake_run.on(["cat"], rc=1, stderr="Permission denied\n")
    fake_run.on(["pkexec", "cat"], stdout=ORIGINAL)

    assert dnfconf.load() == DnfSettings()
    assert len(fake_run.calls) == 2


def test_read_failure_raises(fake_run):
    with pytest.raises(CommandFailed):
        dnfconf.read()


def test_save_copies_temp_file_through_pkexec(fake_run, monkeypatch):
    fake_run.on(["cat"], stdout=ORIGINAL)
    fake_run.on(["pkexec", "cp"])
    written = {}

    def capture(cmd, env=None, input=None):
        if cmd[:2] == ["pkexec", "cp"]:
            written["tmp"] = cmd[2]
            written["text"] = Path(cmd[2]).read_text(encoding="utf-8")
        return fake_run(cmd, env, input)

    monkeypatch.setattr(runner, "run", capture)

    dnfconf.save(DnfSettings(20, True))

    assert "max_parallel_downloads=20" in written["text"]
    assert "# keep me" in written["text"]
    assert fake_run.called("pkexec", "cp")[0][-1] == "/etc/dnf/dnf.conf"
    assert not Path(written["tmp"]).exists()


def test_save_auth_cancel_raises_and_cleans_up(fake_run):
    fake_run.on(["cat"], stdout=ORIGINAL)
    fake_run.on(["pkexec", "cp"], rc=126)

    with pytest.raises(AuthCancelled):
        dnfconf.save(DnfSettings(5, False))

    tmp = fake_run.called("pkexec", "cp")[0][2]
    assert not Path(tmp).exists()
