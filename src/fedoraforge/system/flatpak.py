"""
flatpak.py — поиск, список установленных, обновления и сведения о Flatpak.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import runner
from .errors import CommandFailed

NA = "N/A"
DEFAULT_BRANCH = "stable"
NO_SUMMARY = "No summary available"
NO_DESCRIPTION = "No description available"
UNKNOWN = "Unknown"
DEFAULT_REMOTE = "flathub"


@dataclass(frozen=True)
class FlatpakApp:
    name: str
    app_id: str
    version: str = ""
    remote: str = ""
    description: str = ""


@dataclass(frozen=True)
class FlatpakUpdate:
    name: str
    app_id: str
    version: str
    remote: str


@dataclass(frozen=True)
class FlatpakDetails:
    app_id: str
    name: str = NA
    version: str = NA
    branch: str = DEFAULT_BRANCH
    summary: str = NO_SUMMARY
    description: str = NO_DESCRIPTION
    download_size: str = UNKNOWN
    installed_size: str = UNKNOWN
    commit: str = ""
    remote: str = ""


def _columns(line: str) -> list[str]:
    return [c.strip() for c in line.split("\t")]


def _run(args: list[str]) -> runner.CommandResult:
    return runner.run(["flatpak", *args], env=runner.c_locale_env())


# ── Поиск и списки ────────────────────────────────────────────────────────────

def parse_search(text: str) -> list[FlatpakApp]:
    apps = []
    for line in text.splitlines():
        cols = _columns(line)
        if len(cols) < 2 or not cols[1]:
            continue
        name, app_id = cols[0], cols[1]
        description = cols[2] if len(cols) > 2 else ""
        version = cols[3] if len(cols) > 3 else ""
        remotes = cols[4] if len(cols) > 4 else ""
        remote = remotes.split(",")[0].strip() if remotes else DEFAULT_REMOTE
        apps.append(FlatpakApp(name, app_id, version, remote, description))
    return apps


def search(query: str) -> list[FlatpakApp]:
    query = query.strip()
    if not query:
        return []
    result = _run(["search", "--columns=name,application,description,version,remotes", query])
    if not result.ok:
        raise CommandFailed(result, f"Flatpak search failed: {result.stderr.strip()}")
    return parse_search(result.stdout)


def parse_list(text: str) -> list[FlatpakApp]:
    """Колонки name, application, version, origin."""
    apps = []
    for line in text.splitlines():
        cols = _columns(line)
        if len(cols) < 2 or not cols[1]:
            continue
        version = cols[2] if len(cols) > 2 else ""
        remote = cols[3] if len(cols) > 3 else ""
        apps.append(FlatpakApp(cols[0], cols[1], version, remote))
    return apps


def installed() -> list[FlatpakApp]:
    result = _run(["list", "--app", "--columns=name,application,version,origin"])
    if not result.ok:
        raise CommandFailed(result, f"Flatpak list failed: {result.stderr.strip()}")
    return parse_list(result.stdout)


def is_installed(app_id: str) -> bool:
    return _run(["info", app_id]).ok


# ── Обновления ────────────────────────────────────────────────────────────────

def updates_bulk() -> list[FlatpakUpdate]:
    """Быстрый способ: одним запросом remote-ls --updates."""
    # Обновление appstream нужно только для свежих метаданных
    _run(["update", "--appstream", "-y"])
    result = _run(["remote-ls", "--updates", "--app", "--columns=name,application,version,origin"])
    if not result.ok:
        if not result.stdout.strip() or "No updates" in result.stderr:
            return []
        raise CommandFailed(result, f"Flatpak update check failed: {result.stderr.strip()}")
    return [FlatpakUpdate(a.name, a.app_id, a.version, a.remote) for a in parse_list(result.stdout)]


def parse_info(text: str) -> dict[str, str]:
    """`Key: value` из вывода flatpak info / remote-info."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition(":")
        if sep and key and key not in fields:
            fields[key.strip()] = value.strip()
    return fields


def updates_per_app(apps: list[FlatpakApp] | None = None) -> list[FlatpakUpdate]:
    """Медленный способ: remote-info для каждого приложения с origin."""
    if apps is None:
        apps = installed()
    updates = []
    for app in apps:
        if not app.remote:
            continue
        remote = _run(["remote-info", app.remote, app.app_id])
        if not remote.ok:
            continue
        local = parse_info(_run(["info", app.app_id]).stdout)
        info = parse_info(remote.stdout)
        new_version = info.get("Version", "")
        new_commit = info.get("Commit", "")
        if new_version and new_version != local.get("Version", app.version):
            updates.append(FlatpakUpdate(app.name, app.app_id, new_version, app.remote))
        elif new_commit and local.get("Commit") and new_commit != local["Commit"]:
            updates.append(FlatpakUpdate(app.name, app.app_id, new_version or app.version, app.remote))
    return updates


def merge_updates(bulk: list[FlatpakUpdate], per_app: list[FlatpakUpdate]) -> list[FlatpakUpdate]:
    merged = {u.app_id: u for u in per_app}
    merged.update({u.app_id: u for u in bulk})
    return sorted(merged.values(), key=lambda u: u.name.lower())


def check_updates() -> list[FlatpakUpdate]:
    return merge_updates(updates_bulk(), updates_per_app())


# ── Сведения ──────────────────────────────────────────────────────────────────

def details(app_id: str, remote: str = DEFAULT_REMOTE) -> FlatpakDetails:
    result = _run(["remote-info", remote, app_id]) if remote else None
    if result is None or not result.ok:
        result = _run(["info", app_id])
    if not result.ok:
        return FlatpakDetails(app_id, remote=remote)

    fields = parse_info(result.stdout)
    lines = [l for l in result.stdout.splitlines() if l.strip()]
    # Первая строка: «Name - summary»
    name, summary = NA, NO_SUMMARY
    if lines and ":" not in lines[0]:
        head, sep, tail = lines[0].partition(" - ")
        name = head.strip() or NA
        if sep and tail.strip():
            summary = tail.strip()
    return FlatpakDetails(
        app_id=app_id,
        name=name,
        version=fields.get("Version") or NA,
        branch=fields.get("Branch") or DEFAULT_BRANCH,
        summary=summary,
        description=fields.get("Description") or NO_DESCRIPTION,
        download_size=fields.get("Download") or UNKNOWN,
        installed_size=fields.get("Installed") or UNKNOWN,
        commit=fields.get("Commit", ""),
        remote=fields.get("Origin") or remote,
    )


# ── Команды ───────────────────────────────────────────────────────────────────

def install_command(app_ids: list[str], remote: str = DEFAULT_REMOTE) -> list[str]:
    return ["flatpak", "install", "--app", "-y", "--noninteractive", remote, *app_ids]


def uninstall_command(app_ids: list[str]) -> list[str]:
    return ["flatpak", "uninstall", "--app", "-y", "--noninteractive", *app_ids]


def update_command(app_ids: list[str] | None = None) -> list[str]:
    return ["flatpak", "update", "-y", "--noninteractive", *(app_ids or [])]
