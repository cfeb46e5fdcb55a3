"""
dnf.py — поиск пакетов, проверка обновлений и списки DNF.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import runner
from .errors import CommandFailed

_QUERYFORMAT = "%{name}|%{version}|%{release}|%{arch}|%{summary}\n"

# Строки-заголовки `dnf check-update`, которые не являются пакетами
_UPDATE_NOISE = ("Last metadata", "Dependencies", "Upgrade", "Obsoleting", "Security:")

# `dnf check-update` возвращает 100, когда обновления есть
UPDATES_AVAILABLE = 100


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    release: str
    arch: str
    summary: str

    @property
    def evr(self) -> str:
        return f"{self.version}-{self.release}" if self.release else self.version


@dataclass(frozen=True)
class UpdateInfo:
    name: str
    current_version: str
    available_version: str
    repository: str


def parse_repoquery(text: str) -> list[PackageInfo]:
    packages: list[PackageInfo] = []
    seen: set[str] = set()
    for line in text.splitlines():
        parts = [p.strip() for p in line.strip().split("|")]
        if len(parts) < 4 or not parts[0]:
            continue
        if parts[0] in seen:
            continue
        seen.add(parts[0])
        summary = "|".join(parts[4:]) if len(parts) > 4 else ""
        packages.append(PackageInfo(parts[0], parts[1], parts[2], parts[3], summary))
    return packages


def search(query: str) -> list[PackageInfo]:
    """repoquery по маске *query*; сначала из кэша метаданных, потом с сетью."""
    query = query.strip()
    if not query:
        return []
    pattern = f"*{query}*"
    base = ["dnf", "repoquery", "--quiet"]
    result = runner.run([*base, "--cacheonly", "--qf", _QUERYFORMAT, pattern], env=runner.c_locale_env())
    if not result.ok:
        result = runner.run([*base, "--qf", _QUERYFORMAT, pattern], env=runner.c_locale_env())
    if not result.ok:
        raise CommandFailed(result, f"DNF repoquery failed: {result.stderr.strip()}")
    return parse_repoquery(result.stdout)


def _base_name(full_name: str) -> str:
    """'kernel-core.x86_64' -> 'kernel-core'."""
    return full_name.rsplit(".", 1)[0] if "." in full_name else full_name


def parse_installed(text: str) -> dict[str, str]:
    versions: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2 or parts[0].endswith(":") or "." not in parts[0]:
            continue
        versions[_base_name(parts[0])] = parts[1]
    return versions


def installed_packages() -> dict[str, str]:
    """Имя -> версия установленных пакетов."""
    result = runner.run(["dnf", "list", "--installed", "--quiet"], env=runner.c_locale_env())
    if not result.ok:
        return {}
    return parse_installed(result.stdout)


def parse_check_update(text: str, installed: dict[str, str]) -> list[UpdateInfo]:
    updates: list[UpdateInfo] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(_UPDATE_NOISE) or "Matched fields:" in line:
            continue
        parts = line.split()
        if len(parts) < 3:
            continue
        name = _base_name(parts[0])
        updates.append(UpdateInfo(name, installed.get(name, "Unknown"), parts[1], parts[2]))
    return updates


def check_updates() -> list[UpdateInfo]:
    result = runner.run(["dnf", "check-update", "--quiet"], env=runner.c_locale_env())
    if result.returncode not in (0, UPDATES_AVAILABLE):
        raise CommandFailed(result)
    if not result.stdout.strip():
        return []
    return parse_check_update(result.stdout, installed_packages())


def orphaned_packages() -> list[str]:
    result = runner.run(["dnf", "repoquery", "--unneeded", "-q"], env=runner.c_locale_env())
    if not result.ok:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def install_command(packages: list[str]) -> list[str]:
    return ["dnf", "install", "-y", "--allowerasing", *packages]


def remove_command(packages: list[str]) -> list[str]:
    return ["dnf", "remove", "-y", *packages]


def upgrade_command(packages: list[str] | None = None) -> list[str]:
    return ["dnf", "upgrade", "-y", *(packages or [])]


def copr_enable(project: str) -> runner.CommandResult:
    """Подключает COPR-репозиторий (`owner/project`)."""
    return runner.check(runner.pkexec(["dnf", "copr", "enable", "-y", project]))
