"""
Tests for sched_ext: registry, current scheduler reading and the apply
state machine.
"""

from __future__ import annotations

import json

import pytest

from fedoraforge import config
from fedoraforge.kernel import scx
from fedoraforge.kernel.scx import ApplyState, SchedulerController
from fedoraforge.system.errors import AUTH_CANCELLED_MESSAGE, BusyError, ParseError


@pytest.fixture
def controller():
    return SchedulerController(verify_delay=0, retry_delay=0, retries=3, sleep=lambda _s: None)


# ----------------------------------------------------------------
# Registry
# ----------------------------------------------------------------


def test_bundled_registry_starts_with_disabled():
    schedulers = scx.load_schedulers(config.SCX_SCHEDS_FALLBACK_FILE)

    assert schedulers[0].name == scx.DISABLED
    bpfland = next(s for s in schedulers if s.name == "scx_bpfland")
    assert bpfland.mode("Auto").flags == ""


def test_parse_schedulers_inserts_disabled():
    text = json.dumps({"scx_schedulers": [{"name": "scx_lavd", "modes": [{"name": "Gaming", "flags": "--performance"}]}]})

    schedulers = scx.parse_schedulers(text)

    assert [s.name for s in schedulers] == ["scx_disabled", "scx_lavd"]
    assert schedulers[1].mode("Gaming").flags == "--performance"
    assert schedulers[1].mode("Missing") is None


@pytest.mark.parametrize("text", ["{", "[]", '{"scx_schedulers": [{"modes": []}]}'])
def test_parse_schedulers_rejects_malformed(text):
    with pytest.raises(ParseError):
        scx.parse_schedulers(text)


def test_missing_registry_file_yields_disabled_only(tmp_path):
    assert [s.name for s in scx.load_schedulers(tmp_path / "none.json")] == [scx.DISABLED]


# ----------------------------------------------------------------
# Reading
# ----------------------------------------------------------------


@pytest.mark.parametrize("name, expected", [
    ("sched_ext: scx_bpfland", "bpfland"),
    ("scx_bpfland", "bpfland"),
    ("Bpfland", "bpfland"),
])
def test_base_name(name, expected):
    assert scx.base_name(name) == expected
    assert scx.full_name(name) == "scx_" + expected


def test_parse_scxctl_get_running_with_arguments():
    reading = scx.parse_scxctl_get('running Rustland with arguments "-s 5000"\n')

    assert reading.name == "scx_rustland"
    assert reading.flags == "-s 5000"
    assert reading.display() == 'sched_ext: scx_rustland with arguments "-s 5000"'


@pytest.mark.parametrize("text", ["", "no scx scheduler running\n"])
def test_parse_scxctl_get_none(text):
    assert not scx.parse_scxctl_get(text).active


def test_read_active_falls_back_to_sysfs(fake_run):
    config.SCHED_EXT_OPS.write_text("lavd\n")

    reading = scx.read_active()

    assert reading.name == "scx_lavd"
    assert reading.flags is None
    assert reading.source == "sysfs"
    assert reading.display() == "sched_ext: scx_lavd"


def test_scxctl_answer_is_final_even_with_sysfs(fake_run):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    config.SCHED_EXT_OPS.write_text("lavd\n")

    assert not scx.read_active().active


def test_parse_scxctl_get_rejects_unknown_output():
    with pytest.raises(ParseError):
        scx.parse_scxctl_get("Error: daemon not reachable\n")


def test_unknown_scxctl_output_falls_back_to_sysfs(fake_run):
    fake_run.on(["scxctl", "get"], stdout="Error: daemon not reachable\n")

    assert not scx.read_active().active

    config.SCHED_EXT_OPS.write_text("lavd\n")
    reading = scx.read_active()

    assert reading.name == "scx_lavd"
    assert reading.source == "sysfs"


@pytest.mark.parametrize("bore, version, label", [
    ("1\n", "6.1.0", "BORE"),
    ("0\n", "6.6.0", "EEVDF?"),
    ("0\n", "6.11.3", "EEVDF?"),
    ("0\n", "6.5.13", "CFS?"),
])
def test_heuristic_label(fake_run, bore, version, label):
    fake_run.on(["sysctl", "-n", "kernel.sched_bore"], stdout=bore)

    assert scx.current_label(version) == label


# ----------------------------------------------------------------
# Apply
# ----------------------------------------------------------------


def test_switch_from_running_scheduler(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout='running Rustland with arguments "-s 5000"\n')
    fake_run.on(["scxctl", "get"], stdout='running Bpfland with arguments "-k"\n')
    fake_run.on(["pkexec"])
    states = []

    result = controller.apply("scx_bpfland", "-k", states.append)

    assert result.ok
    assert ("pkexec", "scxctl", "switch", "--sched", "bpfland", "--args=-k") in fake_run.calls
    persist = fake_run.called("pkexec", "sh", "-c")[0][-1]
    assert "SCX_SCHEDULER=scx_bpfland" in persist
    assert "SCX_FLAGS=-k" in persist
    assert str(config.SCX_DEFAULTS) in persist
    assert result.reading.display() == 'sched_ext: scx_bpfland with arguments "-k"'
    assert states == [ApplyState.IDLE, ApplyState.SWITCHING, ApplyState.PERSISTING,
                      ApplyState.VERIFYING, ApplyState.DONE]


def test_start_when_nothing_running(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["scxctl", "get"], stdout="running Lavd\n")
    fake_run.on(["pkexec"])

    result = controller.apply("lavd")

    assert result.ok
    assert ("pkexec", "scxctl", "start", "--sched", "lavd") in fake_run.calls



def test_verification_fails_when_flags_differ(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout='running Rustland with arguments "-s 5000"\n')
    fake_run.on(["scxctl", "get"], stdout='running Bpfland with arguments "-s 9999"\n')
    fake_run.on(["pkexec"])

    result = controller.apply("scx_bpfland", "-k")

    assert result.state is ApplyState.FAILED
    assert result.reading.flags == "-s 9999"
    assert len(fake_run.called("scxctl", "get")) == 2 + controller.retries


def test_sysfs_reading_matches_on_name_only(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["scxctl", "get"], rc=1)
    fake_run.on(["pkexec"])
    config.SCHED_EXT_OPS.write_text("bpfland\n")

    assert controller.apply("scx_bpfland", "-k").ok


def test_disable_stops_and_persists(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["pkexec"])
    states = []

    result = controller.apply("scx_disabled", "", states.append)

    assert result.ok
    assert ("pkexec", "scxctl", "stop") in fake_run.calls
    persist = fake_run.called("pkexec", "sh", "-c")[0][-1]
    assert "SCX_SCHEDULER=scx_disabled" in persist
    assert "SCX_FLAGS" not in persist
    assert ApplyState.STOPPING in states
    assert scx.current_label("6.11.3") in ("BORE", "EEVDF?", "CFS?")


def test_verification_retries_then_succeeds(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["scxctl", "get"], stdout="running Bpfland\n")
    fake_run.on(["pkexec"])

    assert controller.apply("bpfland").ok


def test_verification_gives_up_deterministically(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["pkexec"])

    result = controller.apply("bpfland")

    assert result.state is ApplyState.FAILED
    assert "not confirmed" in result.error
    # one read to pick the action, one after the delay, then the retries
    assert len(fake_run.called("scxctl", "get")) == 2 + controller.retries


def test_cli_failure_reports_stdout(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["pkexec", "scxctl"], rc=1, stdout="scheduler bogus not found\n", stderr="ignored\n")

    result = controller.apply("bogus")

    assert result.state is ApplyState.FAILED
    assert "scheduler bogus not found" in result.error
    assert not fake_run.called("pkexec", "sh")


def test_auth_cancel_fails_without_retry_or_persist(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["pkexec"], rc=126)

    result = controller.apply("bpfland", "-k")

    assert result.state is ApplyState.FAILED
    assert result.auth_cancelled
    assert result.error == AUTH_CANCELLED_MESSAGE
    assert len(fake_run.called("pkexec")) == 1


def test_second_apply_is_rejected_while_busy(fake_run, controller):
    fake_run.on(["scxctl", "get"], stdout="no scx scheduler running\n")
    fake_run.on(["pkexec"])
    rejected = []

    def on_state(state):
        if state is ApplyState.PERSISTING:
            assert controller.busy
            with pytest.raises(BusyError):
                controller.apply("lavd")
            rejected.append(state)

    controller.apply("scx_disabled", "", on_state)

    assert rejected == [ApplyState.PERSISTING]
    assert not controller.busy
