"""
scx.py — планировщики sched_ext: реестр, чтение текущего и применение.

Применение планировщика — явный конечный автомат (ApplyState).
Одновременно выполняется не больше одного применения: второй запрос
отклоняется с BusyError, а не ставится в очередь.
"""

from __future__ import annotations

import enum
import json
import re
import shlex
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from fedoraforge import config
from fedoraforge.system import probe, runner
from fedoraforge.system.errors import AUTH_CANCELLED_MESSAGE, BusyError, ParseError

DISABLED = "scx_disabled"
PREFIX = "scx_"
DISPLAY_PREFIX = "sched_ext: "
NO_SCX = "no scx scheduler running"

_RUNNING_RE = re.compile(r'^running\s+(\S+)(?:\s+with arguments\s+"(.*)")?\s*$', re.DOTALL)


# ── Реестр ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Mode:
    name: str
    flags: str


@dataclass(frozen=True)
class Scheduler:
    name: str
    modes: tuple[Mode, ...] = ()

    def mode(self, name: str) -> Mode | None:
        for mode in self.modes:
            if mode.name == name:
                return mode
        return None


def disabled_scheduler() -> Scheduler:
    return Scheduler(DISABLED, ())


def parse_schedulers(text: str) -> list[Scheduler]:
    """Разбирает scx_scheds.json. scx_disabled всегда стоит первым."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse SCX schedulers: {e}") from e
    items = data.get("scx_schedulers") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ParseError("Failed to parse SCX schedulers: missing 'scx_schedulers'")

    schedulers = []
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            raise ParseError("Failed to parse SCX schedulers: scheduler without a name")
        modes = []
        for mode in item.get("modes") or []:
            if not isinstance(mode, dict) or not isinstance(mode.get("name"), str):
                raise ParseError(f"Failed to parse SCX schedulers: bad mode in {item['name']}")
            modes.append(Mode(mode["name"], str(mode.get("flags") or "")))
        schedulers.append(Scheduler(item["name"], tuple(modes)))

    if not any(s.name == DISABLED for s in schedulers):
        schedulers.insert(0, disabled_scheduler())
    return schedulers


def load_schedulers(path: Path | None = None) -> list[Scheduler]:
    """Список планировщиков. Без файла — только scx_disabled."""
    path = path or config.first_existing(config.SCX_SCHEDS_FILE, config.SCX_SCHEDS_FALLBACK_FILE)
    if path is None or not path.exists():
        return [disabled_scheduler()]
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"Failed to read SCX schedulers: {e}") from e
    return parse_schedulers(text)


# ── Чтение текущего планировщика ──────────────────────────────────────────────

def base_name(name: str) -> str:
    """'sched_ext: scx_bpfland' / 'scx_bpfland' / 'Bpfland' -> 'bpfland'."""
    name = name.strip()
    if name.startswith(DISPLAY_PREFIX):
        name = name[len(DISPLAY_PREFIX):]
    name = name.strip().lower()
    if name.startswith(PREFIX):
        name = name[len(PREFIX):]
    return name


def full_name(name: str) -> str:
    return PREFIX + base_name(name)


@dataclass(frozen=True)
class ScxReading:
    """Результат чтения. name=None — SCX не запущен (штатный планировщик)."""
    name: str | None = None
    flags: str | None = None
    source: str = "none"

    @property
    def active(self) -> bool:
        return self.name is not None

    def display(self) -> str:
        if self.name is None:
            return ""
        if self.flags is None:
            return f"{DISPLAY_PREFIX}{self.name}"
        return f'{DISPLAY_PREFIX}{self.name} with arguments "{self.flags}"'


NOT_RUNNING = ScxReading()


def parse_scxctl_get(text: str) -> ScxReading:
    """Разбирает вывод `scxctl get`."""
    text = text.strip()
    if not text or text.lower() == NO_SCX:
        return ScxReading(source="scxctl")
    match = _RUNNING_RE.match(text)
    if not match:
        raise ParseError(f"Unrecognised scxctl output: {text.splitlines()[0]!r}")
    return ScxReading(full_name(match.group(1)), match.group(2), "scxctl")


def read_active(ops_path: Path | None = None) -> ScxReading:
    """Текущий SCX-планировщик.

    1. `scxctl get` (без привилегий) — если команда отработала и ответ
       распознан, он окончательный, включая «ничего не запущено».
    2. Иначе /sys/kernel/sched_ext/root/ops — имя без аргументов.
    """
    result = runner.run(["scxctl", "get"], env=runner.c_locale_env())
    if result.ok:
        try:
            return parse_scxctl_get(result.stdout)
        except ParseError as e:
            print(f"{e}, reading sysfs")

    ops_path = ops_path or config.SCHED_EXT_OPS
    try:
        ops = ops_path.read_text(encoding="utf-8").strip()
    except OSError:
        ops = ""
    if ops:
        return ScxReading(full_name(ops), None, "sysfs")
    return NOT_RUNNING


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for piece in version.split(".")[:2]:
        digits = re.match(r"\d+", piece)
        if not digits:
            break
        parts.append(int(digits.group()))
    return tuple(parts)


def heuristic_label(version: str) -> str:
    """BORE / EEVDF? / CFS? — когда SCX не запущен."""
    if probe.sched_bore_enabled():
        return "BORE"
    if _version_tuple(version) >= (6, 6):
        return "EEVDF?"
    return "CFS?"


def current_label(version: str) -> str:
    """Самое конкретное из удавшихся чтений; эвристики не смешиваются."""
    reading = read_active()
    if reading.active:
        return reading.display()
    return heuristic_label(version)


# ── Применение ────────────────────────────────────────────────────────────────

class ApplyState(enum.Enum):
    IDLE = "idle"
    STOPPING = "stopping"
    STARTING = "starting"
    SWITCHING = "switching"
    PERSISTING = "persisting"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ApplyResult:
    state: ApplyState
    reading: ScxReading | None = None
    error: str | None = None
    auth_cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.state is ApplyState.DONE


def scxctl_command(action: str, target: str, flags: str = "") -> list[str]:
    cmd = ["scxctl", action, "--sched", base_name(target)]
    flags = flags.strip()
    if flags:
        cmd.append(f"--args={flags}")
    return cmd


def persist_lines(target: str, flags: str = "") -> list[str]:
    """Строки /etc/default/scx для выбранного планировщика."""
    if is_disabled(target):
        return [f"SCX_SCHEDULER={DISABLED}"]
    return [f"SCX_SCHEDULER={full_name(target)}", f"SCX_FLAGS={flags.strip()}"]


def persist_command(lines: list[str], path: Path | None = None) -> list[str]:
    path = path or config.SCX_DEFAULTS
    quoted = " ".join(shlex.quote(line) for line in lines)
    return ["sh", "-c", f"printf '%s\\n' {quoted} > {shlex.quote(str(path))}"]


def is_disabled(target: str) -> bool:
    return base_name(target) == "disabled"


def _error_text(result: runner.CommandResult) -> str:
    # scxctl пишет ошибки в stdout чаще, чем в stderr
    return result.stdout.strip() or result.stderr.strip() or f"exit code {result.returncode}"


class SchedulerController:
    """Применяет планировщик: stop | start | switch -> запись -> проверка.

    Проверка: пауза verify_delay, затем чтение; если планировщик ещё не
    появился — до retries повторов через retry_delay.
    """

    def __init__(self, verify_delay: float = 1.5, retry_delay: float = 0.5,
                 retries: int = 3, sleep: Callable[[float], None] = time.sleep):
        self.verify_delay = verify_delay
        self.retry_delay = retry_delay
        self.retries = retries
        self._sleep = sleep
        self._lock = threading.Lock()
        self._state = ApplyState.IDLE
        self._on_state: Callable[[ApplyState], None] | None = None

    @property
    def state(self) -> ApplyState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _enter(self, state: ApplyState) -> None:
        self._state = state
        if self._on_state:
            self._on_state(state)

    def _fail(self, error: str, auth: bool = False) -> ApplyResult:
        self._enter(ApplyState.FAILED)
        return ApplyResult(ApplyState.FAILED, None, error, auth)

    def _privileged(self, cmd: list[str]) -> tuple[runner.Outcome, runner.CommandResult]:
        result = runner.pkexec(cmd)
        return runner.classify(result), result

    def apply(self, target: str, flags: str = "",
              on_state: Callable[[ApplyState], None] | None = None) -> ApplyResult:
        """Блокирующее применение. Вызывать из рабочего потока."""
        if not self._lock.acquire(blocking=False):
            raise BusyError("Scheduler change already in progress")
        try:
            self._on_state = on_state
            self._enter(ApplyState.IDLE)
            return self._run(target, flags)
        finally:
            self._on_state = None
            self._lock.release()

    def _run(self, target: str, flags: str) -> ApplyResult:
        disabled = is_disabled(target)
        if disabled:
            self._enter(ApplyState.STOPPING)
            cmd = ["scxctl", "stop"]
        else:
            action = "switch" if read_active().active else "start"
            self._enter(ApplyState.SWITCHING if action == "switch" else ApplyState.STARTING)
            cmd = scxctl_command(action, target, flags)

        outcome, result = self._privileged(cmd)
        if outcome is runner.Outcome.AUTH_CANCELLED:
            return self._fail(AUTH_CANCELLED_MESSAGE, auth=True)
        if outcome is runner.Outcome.FAILED:
            return self._fail(f"SCX scheduler change failed: {_error_text(result)}")

        self._enter(ApplyState.PERSISTING)
        outcome, result = self._privileged(persist_command(persist_lines(target, flags)))
        if outcome is runner.Outcome.AUTH_CANCELLED:
            return self._fail(AUTH_CANCELLED_MESSAGE, auth=True)
        if outcome is runner.Outcome.FAILED:
            return self._fail(f"Failed to write {config.SCX_DEFAULTS}: {_error_text(result)}")

        self._enter(ApplyState.VERIFYING)
        expected = None if disabled else full_name(target)
        self._sleep(self.verify_delay)
        reading = read_active()
        for _ in range(self.retries):
            if self._matches(reading, expected, flags):
                break
            self._sleep(self.retry_delay)
            reading = read_active()

        if not self._matches(reading, expected, flags):
            seen = reading.display() or NO_SCX
            self._enter(ApplyState.FAILED)
            return ApplyResult(ApplyState.FAILED, reading, f"Scheduler not confirmed after apply (now: {seen})")
        self._enter(ApplyState.DONE)
        return ApplyResult(ApplyState.DONE, reading)

    @staticmethod
    def _matches(reading: ScxReading, expected: str | None, flags: str) -> bool:
        if expected is None:
            return not reading.active
        if reading.name != expected:
            return False
        # sysfs не знает аргументов, там сверяется только имя
        return reading.flags is None or reading.flags.strip() == flags.strip()
