"""
driver.py — установка и удаление ядер через отдельное окно-диалог.

Главное окно не ждёт dnf: оно запускает дочерний процесс
`fedoraforge kernel-install-dialog <пакеты>`, а тот показывает
потоковый вывод. Когда окно диалога закрыто, вызывается on_closed и
вкладка пересобирает каталог.
"""

from __future__ import annotations

import subprocess
import sys
import threading
from typing import Callable, Sequence

from fedoraforge import config
from fedoraforge.system.errors import BusyError
from fedoraforge.system.runner import Step

INSTALL_VERB = "kernel-install-dialog"
REMOVE_VERB = "kernel-remove-dialog"


def grub_step() -> Step:
    # Ошибка пересборки меню загрузчика не отменяет установку
    return Step("Обновление меню GRUB", ("grub2-mkconfig", "-o", config.GRUB_CFG), True, False)


def install_steps(packages: Sequence[str]) -> list[Step]:
    return [
        Step("Установка пакетов", ("dnf", "install", "-y", "--allowerasing", *packages)),
        grub_step(),
    ]


def remove_steps(packages: Sequence[str]) -> list[Step]:
    return [
        Step("Удаление пакетов", ("dnf", "remove", "-y", *packages)),
        grub_step(),
    ]


def dialog_command(verb: str, packages: Sequence[str]) -> list[str]:
    return [sys.executable, "-m", "fedoraforge", verb, *packages]


class JobDriver:
    """Не больше одного открытого диалога на набор пакетов.

    on_closed вызывается из фонового потока, ожидающего дочерний процесс.
    """

    def __init__(self, spawn: Callable[[list[str]], subprocess.Popen] | None = None):
        self._spawn = spawn or (lambda cmd: subprocess.Popen(cmd))
        self._open: set[frozenset] = set()
        self._lock = threading.Lock()

    def is_open(self, packages: Sequence[str]) -> bool:
        with self._lock:
            return frozenset(packages) in self._open

    def install(self, packages: Sequence[str], on_closed: Callable[[bool], None]) -> None:
        self.start(INSTALL_VERB, packages, on_closed)

    def remove(self, packages: Sequence[str], on_closed: Callable[[bool], None]) -> None:
        self.start(REMOVE_VERB, packages, on_closed)

    def start(self, verb: str, packages: Sequence[str], on_closed: Callable[[bool], None],
              allow_empty: bool = False) -> None:
        """Открывает диалог `verb` для набора аргументов (пакеты, id задачи и т.п.)."""
        packages = list(packages)
        if not packages and not allow_empty:
            raise ValueError("empty package set")
        key = frozenset(packages) or frozenset((verb,))
        with self._lock:
            if key in self._open:
                raise BusyError(f"Dialog already open for {' '.join(packages)}")
            self._open.add(key)
        try:
            proc = self._spawn(dialog_command(verb, packages))
        except OSError:
            with self._lock:
                self._open.discard(key)
            raise

        def _wait() -> None:
            code = proc.wait()
            with self._lock:
                self._open.discard(key)
            on_closed(code == 0)

        threading.Thread(target=_wait, daemon=True).start()
