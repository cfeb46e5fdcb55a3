"""
dnfconf.py — чтение и запись двух параметров [main] в /etc/dnf/dnf.conf.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from fedoraforge import config

from . import runner
from .errors import CommandFailed

KEY_PARALLEL = "max_parallel_downloads"
KEY_FASTEST = "fastestmirror"
MIN_PARALLEL = 1
MAX_PARALLEL = 25
DEFAULT_PARALLEL = 3


@dataclass(frozen=True)
class DnfSettings:
    max_parallel_downloads: int = DEFAULT_PARALLEL
    fastestmirror: bool = False


def _is_section(line: str) -> bool:
    s = line.strip()
    return s.startswith("[") and s.endswith("]")


def _key(line: str) -> str:
    return line.split("=", 1)[0].strip().lower() if "=" in line else ""


def parse(text: str) -> DnfSettings:
    parallel, fastest = DEFAULT_PARALLEL, False
    in_main = False
    for line in text.splitlines():
        if _is_section(line):
            in_main = line.strip().lower() == "[main]"
            continue
        if not in_main or line.lstrip().startswith(("#", ";")):
            continue
        key, value = _key(line), line.split("=", 1)[-1].strip()
        if key == KEY_PARALLEL:
            try:
                parallel = int(value)
            except ValueError:
                parallel = DEFAULT_PARALLEL
        elif key == KEY_FASTEST:
            fastest = value.lower() in ("true", "1")
    return DnfSettings(parallel, fastest)


def render(text: str, settings: DnfSettings) -> str:
    """Новый текст файла: строки вне двух ключей сохраняются как есть.

    Старые значения ключей в [main] удаляются, новые дописываются в конец
    секции. Если [main] нет, она создаётся первой строкой.
    """
    if not MIN_PARALLEL <= settings.max_parallel_downloads <= MAX_PARALLEL:
        raise ValueError(
            f"max_parallel_downloads must be within {MIN_PARALLEL}..{MAX_PARALLEL}")
    ours = [
        f"{KEY_PARALLEL}={settings.max_parallel_downloads}",
        f"{KEY_FASTEST}={'true' if settings.fastestmirror else 'false'}",
    ]
    lines = text.splitlines()
    if not any(l.strip().lower() == "[main]" for l in lines):
        return "\n".join(["[main]", *ours, *lines]) + "\n"

    out: list[str] = []
    main_body: list[str] | None = None

    def _flush() -> None:
        # Пустые строки в конце секции остаются после новых ключей
        blanks = []
        while main_body and not main_body[-1].strip():
            blanks.append(main_body.pop())
        out.extend(main_body)
        out.extend(ours)
        out.extend(blanks)

    for line in lines:
        if _is_section(line):
            if main_body is not None:
                _flush()
            main_body = [] if line.strip().lower() == "[main]" else None
            out.append(line)
        elif main_body is None:
            out.append(line)
        elif _key(line) not in (KEY_PARALLEL, KEY_FASTEST):
            main_body.append(line)
    if main_body is not None:
        _flush()
    return "\n".join(out) + "\n"


def read() -> str:
    """Текст dnf.conf; если обычного чтения не хватает прав — через pkexec."""
    path = str(config.DNF_CONF)
    result = runner.run(["cat", path])
    if not result.ok:
        result = runner.pkexec(["cat", path])
    if not result.ok:
        raise CommandFailed(result, f"Failed to read {path}")
    return result.stdout


def load() -> DnfSettings:
    return parse(read())


def save(settings: DnfSettings) -> None:
    text = render(read(), settings)
    fd, tmp = tempfile.mkstemp(prefix="fedoraforge-dnf-", suffix=".conf")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        runner.check(runner.pkexec(["cp", tmp, str(config.DNF_CONF)]))
    finally:
        Path(tmp).unlink(missing_ok=True)
