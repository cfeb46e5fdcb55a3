"""
runner.py — синхронный запуск внешних команд и классификация результата.

Вся остальная логика (system/, kernel/) вызывает команды только через
run() и pkexec(), поэтому в тестах достаточно подменить runner.run.
"""

from __future__ import annotations

import enum
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Callable, Sequence

from .errors import AUTH_CANCELLED_MESSAGE, AuthCancelled, CommandFailed

ELEVATOR = "pkexec"

# Код выхода pkexec, когда диалог polkit закрыт или агента нет
AUTH_CANCEL_CODES = (126, 127)

IDEMPOTENT_MARKERS = ("already installed", "nothing to do")
ERROR_KEYWORD = "error:"


class Outcome(enum.Enum):
    SUCCESS = "success"
    AUTH_CANCELLED = "auth_cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class CommandResult:
    cmd: tuple
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout, затем stderr — так же, как их видит пользователь в логе."""
        if self.stdout and self.stderr:
            sep = "" if self.stdout.endswith("\n") else "\n"
            return self.stdout + sep + self.stderr
        return self.stdout or self.stderr

    @property
    def display(self) -> str:
        return shlex.join(self.cmd)


def c_locale_env(extra: dict | None = None) -> dict:
    """Окружение с LC_ALL=C, чтобы вывод утилит не зависел от локали."""
    env = os.environ.copy()
    env["LC_ALL"] = "C"
    if extra:
        env.update(extra)
    return env


def run(cmd: Sequence[str], env: dict | None = None, input: str | None = None) -> CommandResult:
    """Запускает команду и ждёт завершения.

    Ненулевой код возврата исключением не считается. Отсутствующий
    исполняемый файл превращается в код 127 с текстом ошибки в stderr.
    """
    cmd = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            env=env,
            input=input,
        )
    except OSError as e:
        return CommandResult(cmd, 127, "", f"{e}\n")
    return CommandResult(cmd, proc.returncode, proc.stdout or "", proc.stderr or "")


def pkexec(cmd: Sequence[str], env: dict | None = None) -> CommandResult:
    """Запускает команду через единственный повыситель привилегий."""
    return run([ELEVATOR, *cmd], env=env)


def is_elevated(cmd: Sequence[str]) -> bool:
    return bool(cmd) and os.path.basename(cmd[0]) == ELEVATOR


def classify(result: CommandResult) -> Outcome:
    """Сводит результат команды к одному из трёх исходов.

    Порядок важен: код 0 — успех; 126/127 у pkexec — отмена
    авторизации; маркеры «already installed» / «nothing to do» без
    явного «error:» в выводе — тоже успех, даже при ненулевом коде.
    """
    if result.returncode == 0:
        return Outcome.SUCCESS
    if result.returncode in AUTH_CANCEL_CODES and is_elevated(result.cmd):
        return Outcome.AUTH_CANCELLED
    low = result.output.lower()
    if any(marker in low for marker in IDEMPOTENT_MARKERS) and ERROR_KEYWORD not in low:
        return Outcome.SUCCESS
    return Outcome.FAILED


def check(result: CommandResult) -> CommandResult:
    """Возвращает результат или бросает AuthCancelled / CommandFailed."""
    outcome = classify(result)
    if outcome is Outcome.AUTH_CANCELLED:
        raise AuthCancelled(result)
    if outcome is Outcome.FAILED:
        raise CommandFailed(result)
    return result


# ── Цепочки шагов ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Step:
    """Шаг задания: команда и поведение при ошибке."""
    title: str
    cmd: tuple
    privileged: bool = True
    fatal: bool = True

    def command(self) -> list[str]:
        return [ELEVATOR, *self.cmd] if self.privileged else list(self.cmd)


def describe(result: CommandResult) -> tuple[Outcome, str]:
    outcome = classify(result)
    if outcome is Outcome.AUTH_CANCELLED:
        return outcome, AUTH_CANCELLED_MESSAGE
    if outcome is Outcome.FAILED:
        return outcome, f"Код возврата {result.returncode}"
    return outcome, ""


def execute_steps(steps, execute: Callable[[list[str]], CommandResult],
                  log: Callable[[str], None]) -> tuple[Outcome, str]:
    """Выполняет шаги по очереди через execute(cmd).

    Ошибка фатального шага останавливает цепочку, нефатального выводится
    как предупреждение. Отмена авторизации останавливает цепочку всегда.
    """
    for step in steps:
        log(f"\n▶  {step.title}...\n")
        outcome, message = describe(execute(step.command()))
        if outcome is Outcome.SUCCESS:
            log(f"✔  {step.title}\n")
            continue
        if outcome is Outcome.AUTH_CANCELLED or step.fatal:
            log(f"✘  {step.title}: {message}\n")
            return outcome, message
        log(f"⚠  {step.title}: {message}\n")
    return Outcome.SUCCESS, ""
