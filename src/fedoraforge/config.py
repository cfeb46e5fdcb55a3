"""
config.py — пути, состояние сессии и декларативные данные FedoraForge.

Состояние хранится в ~/.config/fedoraforge/state.json и загружается
один раз при старте через load_state(). Все изменения сохраняются
немедленно через state_set().
"""

import json
from pathlib import Path


VERSION = "1.0.0"
APP_ID = "io.github.fedoraforge"
APP_NAME = "FedoraForge"
USER_AGENT = f"{APP_NAME}/{VERSION}"


# ── Пути к файлам конфигурации ────────────────────────────────────────────────

CONFIG_DIR  = Path.home() / ".config" / "fedoraforge"
CONFIG_FILE = CONFIG_DIR / "window.json"
STATE_FILE  = CONFIG_DIR / "state.json"
LOG_FILE    = CONFIG_DIR / "fedoraforge.log"


# ── Данные менеджера ядер ─────────────────────────────────────────────────────
# Системная установка кладёт данные в /usr/lib/fedora-kernel-manager,
# запасной вариант: каталог data/ внутри пакета.

DATA_DIR = Path(__file__).resolve().parent / "data"
SYSTEM_DATA_DIR = Path("/usr/lib/fedora-kernel-manager")

BRANCHES_DIR          = SYSTEM_DATA_DIR / "kernel_branches"
BRANCHES_FALLBACK_DIR = DATA_DIR / "kernel_branches"

SCX_SCHEDS_FILE          = SYSTEM_DATA_DIR / "scx_scheds.json"
SCX_SCHEDS_FALLBACK_FILE = DATA_DIR / "scx_scheds.json"

PACKAGE_INFO_SCRIPT          = SYSTEM_DATA_DIR / "scripts" / "generate_package_info.sh"
PACKAGE_INFO_FALLBACK_SCRIPT = DATA_DIR / "scripts" / "generate_package_info.sh"

DEFAULT_BRANCH_NAME = "kernel (RPM Default)"
DEFAULT_DB_URL = (
    "https://raw.githubusercontent.com/CosmicFusion/"
    "fedora-kernel-manager/main/data/db_kernel.json"
)

LD_LOADER = "/lib64/ld-linux-x86-64.so.2"
SCHED_EXT_OPS = Path("/sys/kernel/sched_ext/root/ops")


# ── Системные файлы ───────────────────────────────────────────────────────────

DNF_CONF     = Path("/etc/dnf/dnf.conf")
SCX_DEFAULTS = Path("/etc/default/scx")
REPOS_DIR    = Path("/etc/yum.repos.d")
GRUB_CFG     = "/boot/grub2/grub.cfg"


# ── Состояние сессии ──────────────────────────────────────────────────────────

_state: dict = {}


def load_state() -> None:
    """Загружает сохранённое состояние из файла. Вызывается один раз при старте."""
    global _state
    try:
        with open(STATE_FILE) as f:
            _state = json.load(f)
    except (OSError, json.JSONDecodeError):
        _state = {}


def save_state() -> None:
    """Записывает текущее состояние на диск."""
    try:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(STATE_FILE, "w") as f:
            json.dump(_state, f, indent=2)
    except OSError:
        pass


def state_get(key: str, default=None):
    """Читает значение из состояния сессии."""
    return _state.get(key, default)


def state_set(key: str, value) -> None:
    """Записывает значение в состояние и сохраняет на диск."""
    _state[key] = value
    save_state()


def reset_state() -> None:
    """Полностью сбрасывает сохранённое состояние."""
    _state.clear()
    save_state()


def first_existing(*paths: Path) -> Path | None:
    """Первый существующий путь из списка или None."""
    for path in paths:
        if path.exists():
            return path
    return None


# ── Задачи обслуживания ───────────────────────────────────────────────────────
# Все задачи выполняются через pkexec.

TASKS: list[dict] = [
    {
        "id": "akmods",
        "icon": "application-x-firmware-symbolic",
        "label": "Пересборка модулей ядра",
        "desc": "akmods --force --rebuild — NVIDIA, VirtualBox и другие akmod",
        "cmd": ["akmods", "--force", "--rebuild"],
    },
    {
        "id": "initramfs",
        "icon": "drive-harddisk-system-symbolic",
        "label": "Пересоздание initramfs",
        "desc": "dracut -f --regenerate-all",
        "cmd": ["dracut", "-f", "--regenerate-all"],
    },
    {
        "id": "autoremove",
        "icon": "edit-clear-all-symbolic",
        "label": "Удаление сирот",
        "desc": "dnf autoremove -y — пакеты, которые больше никому не нужны",
        "cmd": ["dnf", "autoremove", "-y"],
    },
    {
        "id": "clean",
        "icon": "user-trash-symbolic",
        "label": "Очистка кэша DNF",
        "desc": "dnf clean all",
        "cmd": ["dnf", "clean", "all"],
    },
]


def get_task(task_id: str) -> dict | None:
    for task in TASKS:
        if task["id"] == task_id:
            return task
    return None


# ── Игровой набор ─────────────────────────────────────────────────────────────

GAMING_META: dict = {
    "packages": ["steam", "lutris", "mangohud", "gamescope"],
    "flatpaks": ["io.github.radiolamp.mangojuice", "com.vysp3r.ProtonPlus"],
    "flatpak_remote": "flathub",
    "heroic_feed": (
        "https://api.github.com/repos/Heroic-Games-Launcher/"
        "HeroicGamesLauncher/releases/latest"
    ),
    "heroic_suffix": ".rpm",
    "heroic_arch": "x86_64",
}


# ── Proton-GE ─────────────────────────────────────────────────────────────────
# Каталоги Steam перебираются по порядку, при отсутствии всех
# создаётся "fallback".

PROTON_META: dict = {
    "feed": "https://api.github.com/repos/GloriousEggroll/proton-ge-custom/releases/latest",
    "suffix": ".tar.gz",
    "compat_dirs": [
        ".steam/root/compatibilitytools.d",
        ".local/share/Steam/compatibilitytools.d",
        ".steam/steam/compatibilitytools.d",
    ],
    "fallback": ".local/share/Steam/compatibilitytools.d",
}


# ── Dotfiles Hyprland ─────────────────────────────────────────────────────────

DOTFILES_META: dict = {
    "repo": "https://github.com/ryzendew/Dark-Material-shell.git",
    "dirs": ["hypr", "quickshell"],
    "backup_suffix": ".bak",
}
