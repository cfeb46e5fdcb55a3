"""
cli.py — команды-диалоги `fedoraforge <verb> ...`.

Главное окно запускает их дочерним процессом (см. kernel/driver.py).
Здесь только разбор аргументов и список шагов; окно и стриминг —
в ui/dialogs.py и main.py.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass

from fedoraforge import config
from fedoraforge.kernel import driver
from fedoraforge.system import dnf, dotfiles, flatpak, gaming, proton
from fedoraforge.system.runner import Step


@dataclass(frozen=True)
class Verb:
    name: str
    title: str
    nargs: str
    help: str


VERBS = [
    Verb(driver.INSTALL_VERB, "Установка ядра", "+", "установить пакеты ядра и обновить GRUB"),
    Verb(driver.REMOVE_VERB, "Удаление ядра", "+", "удалить пакеты ядра и обновить GRUB"),
    Verb("install-dialog", "Установка пакетов", "+", "dnf install"),
    Verb("remove-dialog", "Удаление пакетов", "+", "dnf remove"),
    Verb("update-dialog", "Обновление системы", "*", "dnf upgrade (все пакеты, если не указаны)"),
    Verb("flatpak-install-dialog", "Установка Flatpak", "+", "REMOTE APP_ID..."),
    Verb("flatpak-remove-dialog", "Удаление Flatpak", "+", "flatpak uninstall"),
    Verb("flatpak-update-dialog", "Обновление Flatpak", "*", "flatpak update"),
    Verb("maintenance-dialog", "Обслуживание", "1", "одна задача из списка обслуживания"),
    Verb("gaming-meta-dialog", "Игровой набор", "0", "Steam, Lutris, MangoHud, Gamescope, Heroic"),
    Verb("proton-ge-dialog", "Установка GE-Proton", "0", "последний GE-Proton в compatibilitytools.d Steam"),
    Verb("dotfiles-dialog", "Конфигурация Hyprland", "0", "git clone --depth 1 и копирование в ~/.config"),
]

GAMING_VERB = "gaming-meta-dialog"
PROTON_VERB = "proton-ge-dialog"
DOTFILES_VERB = "dotfiles-dialog"

# Цепочки, где следующий шаг зависит от результата предыдущего
_THREADED = {
    GAMING_VERB: gaming.install,
    PROTON_VERB: proton.install,
    DOTFILES_VERB: dotfiles.install,
}


def get_verb(name: str) -> Verb | None:
    for verb in VERBS:
        if verb.name == name:
            return verb
    return None


def threaded_job(name: str):
    """job(execute, log) для команды или None, если она сводится к шагам."""
    return _THREADED.get(name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fedoraforge", description=f"{config.APP_NAME} {config.VERSION}")
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.VERSION}")
    sub = parser.add_subparsers(dest="verb")
    for verb in VERBS:
        p = sub.add_parser(verb.name, help=verb.help)
        if verb.nargs == "1":
            p.add_argument("args", nargs=1, metavar="TASK",
                           choices=[t["id"] for t in config.TASKS])
        elif verb.nargs != "0":
            p.add_argument("args", nargs=verb.nargs, metavar="ARG")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if not hasattr(args, "args"):
        args.args = []
    return args


def job_steps(verb: str, args: list[str]) -> list[Step]:
    """Шаги для команды. Команды из threaded_job() сюда не попадают."""
    if verb == driver.INSTALL_VERB:
        return driver.install_steps(args)
    if verb == driver.REMOVE_VERB:
        return driver.remove_steps(args)
    if verb == "install-dialog":
        return [Step("Установка пакетов", tuple(dnf.install_command(args)))]
    if verb == "remove-dialog":
        return [Step("Удаление пакетов", tuple(dnf.remove_command(args)))]
    if verb == "update-dialog":
        return [Step("Обновление пакетов", tuple(dnf.upgrade_command(args)))]
    if verb == "flatpak-install-dialog":
        if len(args) < 2:
            raise ValueError("flatpak-install-dialog needs REMOTE and at least one APP_ID")
        remote, *apps = args
        return [Step("Установка Flatpak", tuple(flatpak.install_command(apps, remote)), privileged=False)]
    if verb == "flatpak-remove-dialog":
        return [Step("Удаление Flatpak", tuple(flatpak.uninstall_command(args)), privileged=False)]
    if verb == "flatpak-update-dialog":
        return [Step("Обновление Flatpak", tuple(flatpak.update_command(args)), privileged=False)]
    if verb == "maintenance-dialog":
        task = config.get_task(args[0]) if args else None
        if task is None:
            raise ValueError(f"Unknown maintenance task: {' '.join(args)}")
        return [Step(task["label"], tuple(task["cmd"]))]
    raise ValueError(f"Unknown verb: {verb}")
