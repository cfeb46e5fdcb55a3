"""
gaming.py — установка игрового набора: пакеты DNF, Flatpak и Heroic.

Цепочка выполняется через execute(cmd) -> CommandResult, поэтому её
можно гонять как со стримингом в диалоге, так и в тестах.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable

from fedoraforge import config

from .errors import NetworkError, NotFoundError
from .runner import CommandResult, Outcome, Step, execute_steps

Execute = Callable[[list[str]], CommandResult]
Log = Callable[[str], None]

_TIMEOUT = 30


def flatpak_available() -> bool:
    return shutil.which("flatpak") is not None


def core_steps(with_flatpak: bool) -> list[Step]:
    meta = config.GAMING_META
    steps = [Step("Установка " + ", ".join(meta["packages"]),
                  ("dnf", "install", "-y", *meta["packages"]))]
    if with_flatpak:
        for app_id in meta["flatpaks"]:
            steps.append(Step(f"Установка {app_id}",
                              ("flatpak", "install", "-y", meta["flatpak_remote"], app_id),
                              privileged=False))
    return steps


# ── Heroic Games Launcher ────────────────────────────────────────────────────

def _request(url: str) -> urllib.request.Request:
    return urllib.request.Request(url, headers={"User-Agent": config.USER_AGENT})


def fetch_release(url: str | None = None) -> dict:
    url = url or config.GAMING_META["heroic_feed"]
    try:
        with urllib.request.urlopen(_request(url), timeout=_TIMEOUT) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except (urllib.error.URLError, OSError) as e:
        raise NetworkError(f"Failed to fetch releases: {e}") from e
    except ValueError as e:
        raise NetworkError(f"Failed to parse release JSON: {e}") from e


def pick_asset(release: dict) -> tuple[str, str]:
    """(имя, url) первого x86_64 RPM среди файлов релиза."""
    suffix = config.GAMING_META["heroic_suffix"]
    arch = config.GAMING_META["heroic_arch"]
    for asset in release.get("assets") or []:
        name = asset.get("name") or ""
        url = asset.get("browser_download_url")
        if name.endswith(suffix) and arch in name and url:
            return name, url
    raise NotFoundError(f"No {arch} RPM file found in release")


def download(url: str, dest: Path) -> Path:
    try:
        with urllib.request.urlopen(_request(url), timeout=_TIMEOUT) as resp, \
                open(dest, "wb") as f:
            shutil.copyfileobj(resp, f)
    except (urllib.error.URLError, OSError) as e:
        raise NetworkError(f"Failed to download {dest.name}: {e}") from e
    return dest


def install_heroic(execute: Execute, log: Log) -> tuple[Outcome, str]:
    log("\n▶  Получение сведений о релизе Heroic...\n")
    try:
        name, url = pick_asset(fetch_release())
    except (NetworkError, NotFoundError) as e:
        log(f"✘  {e}\n")
        return Outcome.FAILED, str(e)
    log(f"ℹ  {name}\n")

    with tempfile.TemporaryDirectory(prefix="fedoraforge-heroic-") as tmp:
        try:
            path = download(url, Path(tmp) / name)
        except NetworkError as e:
            log(f"✘  {e}\n")
            return Outcome.FAILED, str(e)
        step = Step("Установка Heroic Games Launcher", ("dnf", "install", "-y", str(path)))
        return execute_steps([step], execute, log)


def install(execute: Execute, log: Log) -> tuple[Outcome, str]:
    """Полная цепочка. Любая ошибка останавливает установку."""
    with_flatpak = flatpak_available()
    if not with_flatpak:
        log("⚠  Flatpak не найден, MangoJuice и ProtonPlus пропущены\n")
    outcome, message = execute_steps(core_steps(with_flatpak), execute, log)
    if outcome is not Outcome.SUCCESS:
        return outcome, message
    return install_heroic(execute, log)
