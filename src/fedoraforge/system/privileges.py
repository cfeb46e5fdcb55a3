"""
privileges.py — потоковый запуск команд через pkexec.

Вывод команды построчно передаётся в главный поток через GLib.idle_add,
по завершении вызывается on_done(outcome, message). Синхронные запросы
без стриминга живут в runner.py.
"""

from __future__ import annotations

import subprocess
import threading
from typing import Callable, Sequence

from gi.repository import GLib

from .runner import ELEVATOR, CommandResult, Outcome, c_locale_env, describe, execute_steps

# ── Типы ──────────────────────────────────────────────────────────────────────

OnLine = Callable[[str], None]
OnDone = Callable[[Outcome, str], None]


# ── Стриминг ─────────────────────────────────────────────────────────────────

def stream(cmd: Sequence[str], on_line: OnLine) -> CommandResult:
    """Блокирующий запуск с построчной отдачей вывода. Вызывать не из UI-потока.

    stdout и stderr читаются параллельно, чтобы ни один из пайпов не
    переполнился; в логе строки идут в порядке поступления.
    """
    cmd = tuple(cmd)
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
            env=c_locale_env(),
        )
    except OSError as e:
        GLib.idle_add(on_line, f"✘  {e}\n")
        return CommandResult(cmd, 127, "", f"{e}\n")

    out_lines: list[str] = []
    err_lines: list[str] = []

    def _drain_stderr() -> None:
        if not proc.stderr:
            return
        for line in proc.stderr:
            err_lines.append(line)
            GLib.idle_add(on_line, line)

    stderr_thread = threading.Thread(target=_drain_stderr, daemon=True)
    stderr_thread.start()

    if proc.stdout:
        for line in proc.stdout:
            out_lines.append(line)
            GLib.idle_add(on_line, line)

    stderr_thread.join()
    proc.wait()
    return CommandResult(cmd, proc.returncode, "".join(out_lines), "".join(err_lines))


def log_in_ui(on_line: OnLine) -> OnLine:
    """Обёртка для сообщений рабочего потока: вызов уходит в главный поток."""
    return lambda text: GLib.idle_add(on_line, text)


def _run_async(cmd: Sequence[str], on_line: OnLine, on_done: OnDone) -> None:
    def _worker() -> None:
        outcome, message = describe(stream(cmd, on_line))
        GLib.idle_add(on_done, outcome, message)

    threading.Thread(target=_worker, daemon=True).start()


def run_privileged(cmd: Sequence[str], on_line: OnLine, on_done: OnDone) -> None:
    """Запускает команду от root через pkexec (polkit спросит пароль сам)."""
    _run_async([ELEVATOR, *cmd], on_line, on_done)


def run_steps(steps, on_line: OnLine, on_done: OnDone) -> None:
    """Выполняет шаги (runner.Step) по очереди в одном рабочем потоке."""
    def _worker() -> None:
        outcome, message = execute_steps(
            steps, lambda cmd: stream(cmd, on_line), log_in_ui(on_line))
        GLib.idle_add(on_done, outcome, message)

    threading.Thread(target=_worker, daemon=True).start()


def run_in_thread(job: Callable[[Callable[[list[str]], CommandResult], OnLine], tuple[Outcome, str]],
                  on_line: OnLine, on_done: OnDone) -> None:
    """Запускает job(execute, log) в рабочем потоке — для цепочек, где
    следующий шаг зависит от предыдущего (загрузка файла и т.п.)."""
    def _worker() -> None:
        outcome, message = job(lambda cmd: stream(cmd, on_line), log_in_ui(on_line))
        GLib.idle_add(on_done, outcome, message)

    threading.Thread(target=_worker, daemon=True).start()
