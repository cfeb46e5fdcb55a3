"""
repos.py — список репозиториев DNF из /etc/yum.repos.d и их включение.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fedoraforge import config

from . import probe, runner

BASEARCH = "x86_64"
MAX_ID_LEN = 40


@dataclass(frozen=True)
class RepoInfo:
    id: str
    name: str
    baseurl: str | None
    metalink: str | None
    enabled: bool
    file_path: str
    gpgcheck: bool | None = None
    repo_gpgcheck: bool | None = None
    gpgkey: str | None = None

    @property
    def short_id(self) -> str:
        return shorten_repo_id(self.id)

    @property
    def url(self) -> str:
        return self.baseurl or self.metalink or ""


def _flag(value: str | None) -> bool | None:
    if value is None:
        return None
    value = value.strip()
    return value == "1" or value.lower() == "true"


def _expand(value: str | None, release: str) -> str | None:
    # Закомментированные и пустые адреса не показываются
    if not value or not value.strip() or value.startswith("#"):
        return None
    return value.replace("$releasever", release).replace("$basearch", BASEARCH)


def _build(section: str, data: dict[str, str], path: str, release: str) -> RepoInfo:
    enabled = _flag(data.get("enabled"))
    return RepoInfo(
        id=section,
        name=data.get("name", section),
        baseurl=_expand(data.get("baseurl"), release),
        metalink=_expand(data.get("metalink"), release),
        enabled=True if enabled is None else enabled,
        file_path=path,
        gpgcheck=_flag(data.get("gpgcheck")),
        repo_gpgcheck=_flag(data.get("repo_gpgcheck")),
        gpgkey=data.get("gpgkey"),
    )


def parse_repo_file(text: str, path: str, release: str | None = None) -> list[RepoInfo]:
    """Секции .repo-файла -> RepoInfo в порядке появления."""
    if release is None:
        release = probe.fedora_release()
    repos: list[RepoInfo] = []
    section: str | None = None
    data: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("[") and line.endswith("]"):
            if section is not None:
                repos.append(_build(section, data, path, release))
            section, data = line[1:-1], {}
        elif section is not None and "=" in line:
            key, value = line.split("=", 1)
            data[key.strip().lower()] = value.strip()
    if section is not None:
        repos.append(_build(section, data, path, release))
    return repos


def load_repositories(repos_dir: Path | None = None) -> list[RepoInfo]:
    repos_dir = repos_dir or config.REPOS_DIR
    release = probe.fedora_release()
    repos: list[RepoInfo] = []
    if not repos_dir.is_dir():
        return repos
    for path in sorted(repos_dir.glob("*.repo")):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        repos.extend(parse_repo_file(text, str(path), release))
    repos.sort(key=lambda r: r.id)
    return repos


def shorten_repo_id(repo_id: str) -> str:
    """'copr:copr.fedorainfracloud.org:bieszcachyos' -> 'bieszcachyos'."""
    if repo_id.startswith("copr:"):
        tail = repo_id.rsplit(":", 1)[1]
        if tail:
            return tail
    if len(repo_id) > MAX_ID_LEN:
        return repo_id[:37] + "..."
    return repo_id


def set_enabled_command(repo_id: str, enabled: bool) -> list[str]:
    flag = "--set-enabled" if enabled else "--set-disabled"
    return ["dnf", "config-manager", flag, repo_id]


def set_enabled(repo_id: str, enabled: bool) -> runner.CommandResult:
    return runner.check(runner.pkexec(set_enabled_command(repo_id, enabled)))
