"""
Shared fixtures: a table-driven fake for runner.run and an isolated
config directory. No test in this suite imports gi.
"""

from __future__ import annotations

import io
import urllib.error
import urllib.request

import pytest

from fedoraforge import config
from fedoraforge.system import probe, runner
from fedoraforge.system.runner import CommandResult


class FakeRunner:
    """Answers commands by the longest matching prefix.

    Each prefix holds a queue of responses; the last one is repeated once
    the queue is drained. Unmatched commands fail with exit code 1 (not 127,
    which would look like a cancelled pkexec).
    """

    def __init__(self):
        self.calls: list[tuple] = []
        self._rules: dict[tuple, list[tuple[int, str, str]]] = {}

    def on(self, prefix, rc: int = 0, stdout: str = "", stderr: str = "") -> "FakeRunner":
        self._rules.setdefault(tuple(prefix), []).append((rc, stdout, stderr))
        return self

    def __call__(self, cmd, env=None, input=None) -> CommandResult:
        cmd = tuple(cmd)
        self.calls.append(cmd)
        best = None
        for prefix in self._rules:
            if cmd[:len(prefix)] == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(cmd, 1, "", "fake: no rule\n")
        queue = self._rules[best]
        rc, out, err = queue.pop(0) if len(queue) > 1 else queue[0]
        return CommandResult(cmd, rc, out, err)

    def called(self, *prefix) -> list[tuple]:
        return [c for c in self.calls if c[:len(prefix)] == prefix]


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    fake = FakeRunner()
    monkeypatch.setattr(runner, "run", fake)
    return fake


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Session state and sysfs paths point into tmp_path; the CPU level cache is reset."""
    monkeypatch.setattr(config, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(config, "STATE_FILE", tmp_path / "config" / "state.json")
    monkeypatch.setattr(config, "_state", {})
    monkeypatch.setattr(config, "SCHED_EXT_OPS", tmp_path / "sched_ext_ops")
    probe.reset_cpu_level()
    yield
    probe.reset_cpu_level()


@pytest.fixture
def fake_urlopen(monkeypatch):
    """Serves bodies by URL; unknown URLs raise URLError."""
    pages: dict[str, bytes] = {}
    requests: list = []

    def _urlopen(req, timeout=None):
        url = req.full_url if isinstance(req, urllib.request.Request) else req
        requests.append(req)
        if url not in pages:
            raise urllib.error.URLError(f"unreachable: {url}")
        return io.BytesIO(pages[url])

    monkeypatch.setattr(urllib.request, "urlopen", _urlopen)
    _urlopen.pages = pages
    _urlopen.requests = requests
    return _urlopen
