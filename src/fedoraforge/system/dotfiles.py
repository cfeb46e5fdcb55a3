"""
dotfiles.py — загрузка конфигурации Hyprland (hypr и quickshell).

Репозиторий клонируется `git clone --depth 1` во временный каталог,
нужные каталоги копируются в ~/.config. Прежние копии сохраняются
рядом с суффиксом backup_suffix.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from fedoraforge import config

from .gaming import Execute, Log
from .runner import Outcome, Step, execute_steps


def git_available() -> bool:
    return shutil.which("git") is not None


def clone_step(url: str, dest: Path) -> Step:
    return Step("Клонирование репозитория", ("git", "clone", "--depth", "1", url, str(dest)),
                privileged=False)


def missing_dirs(repo: Path, names: list[str]) -> list[str]:
    return [n for n in names if not (repo / n).is_dir()]


def replace_dir(src: Path, dest: Path) -> Path | None:
    """Копирует src в dest. Возвращает путь резервной копии, если она сделана."""
    backup = None
    if dest.exists():
        backup = dest.with_name(dest.name + config.DOTFILES_META["backup_suffix"])
        if backup.exists():
            shutil.rmtree(backup)
        dest.rename(backup)
    shutil.copytree(src, dest, symlinks=True)
    return backup


def install(execute: Execute, log: Log, home: Path | None = None) -> tuple[Outcome, str]:
    meta = config.DOTFILES_META
    if not git_available():
        message = "git not found, install it with: dnf install git"
        log(f"✘  {message}\n")
        return Outcome.FAILED, message

    config_dir = (home or Path.home()) / ".config"
    with tempfile.TemporaryDirectory(prefix="fedoraforge-dotfiles-") as tmp:
        repo = Path(tmp) / "repo"
        outcome, message = execute_steps([clone_step(meta["repo"], repo)], execute, log)
        if outcome is not Outcome.SUCCESS:
            return outcome, message

        missing = missing_dirs(repo, meta["dirs"])
        if missing:
            message = f"{', '.join(missing)} not found in repository"
            log(f"✘  {message}\n")
            return Outcome.FAILED, message

        log("\n▶  Копирование конфигурации...\n")
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
            for name in meta["dirs"]:
                backup = replace_dir(repo / name, config_dir / name)
                if backup is not None:
                    log(f"ℹ  Прежняя копия: {backup}\n")
                log(f"✔  {name} → {config_dir / name}\n")
        except OSError as e:
            message = f"Failed to copy configuration: {e}"
            log(f"✘  {message}\n")
            return Outcome.FAILED, message
    return Outcome.SUCCESS, ""
