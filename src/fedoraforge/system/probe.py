"""
probe.py — сведения о железе и запущенном ядре.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from fedoraforge import config
from . import runner

UNKNOWN = "unknown"

_LEVEL_MARKER = "(supported, searched)"
_LEVELS = {"x86-64-v4": 4, "x86-64-v3": 3, "x86-64-v2": 2}

_cpu_level: int | None = None
_cpu_lock = threading.Lock()


@dataclass(frozen=True)
class RunningKernel:
    release: str
    version: str


def parse_cpu_level(help_text: str) -> int:
    """Разбирает вывод `ld-linux --help`: строку с пометкой (supported, searched)."""
    for line in help_text.splitlines():
        if _LEVEL_MARKER in line:
            level = line.replace(_LEVEL_MARKER, "").strip()
            return _LEVELS.get(level, 1)
    return 1


def cpu_level() -> int:
    """Уровень микроархитектуры x86-64 (1–4). Считается один раз за сессию.

    Любая ошибка (нет загрузчика, ненулевой код, нет нужной строки) даёт 1.
    """
    global _cpu_level
    with _cpu_lock:
        if _cpu_level is None:
            result = runner.run(
                [config.LD_LOADER, "--help"],
                env=runner.c_locale_env({"LANG": "en_US"}),
            )
            _cpu_level = parse_cpu_level(result.stdout) if result.ok else 1
        return _cpu_level


def reset_cpu_level() -> None:
    global _cpu_level
    with _cpu_lock:
        _cpu_level = None


def running_kernel() -> RunningKernel:
    """Релиз из `uname -r`; версия — всё до первого дефиса."""
    result = runner.run(["uname", "-r"])
    release = result.stdout.strip() if result.ok else ""
    if not release:
        return RunningKernel(UNKNOWN, UNKNOWN)
    return RunningKernel(release, release.split("-", 1)[0])


def gpu_vendor() -> str:
    """NVIDIA, AMD, Intel или Unknown по выводу `lspci -k`."""
    result = runner.run(["lspci", "-k"], env=runner.c_locale_env())
    if not result.ok:
        return "Unknown"
    low = result.stdout.lower()
    if "nvidia" in low:
        return "NVIDIA"
    if "amd" in low or "radeon" in low:
        return "AMD"
    if "intel" in low:
        return "Intel"
    return "Unknown"


def package_owning(path: str) -> str | None:
    """Имя пакета, которому принадлежит файл (`rpm -qf`)."""
    result = runner.run(["rpm", "-qf", path], env=runner.c_locale_env())
    owner = result.stdout.strip()
    if not result.ok or not owner:
        return None
    return owner


def sched_bore_enabled() -> bool:
    result = runner.run(["sysctl", "-n", "kernel.sched_bore"])
    return result.ok and result.stdout.strip() == "1"


def fedora_release(default: str = "40") -> str:
    """Номер релиза Fedora (`rpm -E %fedora`)."""
    result = runner.run(["rpm", "-E", "%fedora"])
    value = result.stdout.strip()
    if result.ok and value.isdigit():
        return value
    return default
