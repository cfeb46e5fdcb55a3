"""
proton.py — установка свежего GE-Proton в compatibilitytools.d Steam.

Релиз берётся из ленты GitHub так же, как Heroic в gaming.py. Архив
распаковывается от имени пользователя: каталог Steam лежит в $HOME.
"""

from __future__ import annotations

import re
import tempfile
from pathlib import Path

from fedoraforge import config

from .errors import NetworkError, NotFoundError, ParseError
from .gaming import Execute, Log, download, fetch_release
from .runner import Outcome, Step, execute_steps

_TAG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def compat_dir(home: Path | None = None) -> Path:
    """Первый существующий compatibilitytools.d или каталог по умолчанию."""
    home = home or Path.home()
    for rel in config.PROTON_META["compat_dirs"]:
        path = home / rel
        if path.is_dir():
            return path
    return home / config.PROTON_META["fallback"]


def installed_builds(home: Path | None = None) -> list[str]:
    path = compat_dir(home)
    if not path.is_dir():
        return []
    return sorted(p.name for p in path.iterdir() if p.is_dir() and "Proton" in p.name)


def release_tag(release: dict) -> str:
    # Тег становится именем каталога, поэтому без "/" и ".."
    tag = release.get("tag_name")
    if not isinstance(tag, str) or not _TAG_RE.match(tag):
        raise ParseError(f"Unexpected release tag: {tag!r}")
    return tag


def pick_asset(release: dict) -> tuple[str, str]:
    """(имя, url) архива .tar.gz среди файлов релиза."""
    suffix = config.PROTON_META["suffix"]
    for asset in release.get("assets") or []:
        name = asset.get("name") or ""
        url = asset.get("browser_download_url")
        if name.endswith(suffix) and url:
            return name, url
    raise NotFoundError(f"No {suffix} archive found in release")


def install_steps(archive: Path, target: Path, tag: str) -> list[Step]:
    steps = [Step("Подготовка каталога Steam", ("mkdir", "-p", str(target)), privileged=False)]
    if (target / tag).exists():
        steps.append(Step(f"Удаление прежней копии {tag}", ("rm", "-rf", str(target / tag)),
                          privileged=False))
    steps.append(Step(f"Распаковка {tag}", ("tar", "-xzf", str(archive), "-C", str(target)),
                      privileged=False))
    return steps


def install(execute: Execute, log: Log, home: Path | None = None) -> tuple[Outcome, str]:
    log("\n▶  Получение сведений о релизе GE-Proton...\n")
    try:
        release = fetch_release(config.PROTON_META["feed"])
        tag = release_tag(release)
        name, url = pick_asset(release)
    except (NetworkError, NotFoundError, ParseError) as e:
        log(f"✘  {e}\n")
        return Outcome.FAILED, str(e)
    target = compat_dir(home)
    log(f"ℹ  {tag} → {target}\n")

    with tempfile.TemporaryDirectory(prefix="fedoraforge-proton-") as tmp:
        try:
            archive = download(url, Path(tmp) / name)
        except NetworkError as e:
            log(f"✘  {e}\n")
            return Outcome.FAILED, str(e)
        outcome, message = execute_steps(install_steps(archive, target, tag), execute, log)
    if outcome is not Outcome.SUCCESS:
        return outcome, message

    if not (target / tag).is_dir():
        message = f"Archive does not contain {tag}"
        log(f"✘  {message}\n")
        return Outcome.FAILED, message
    log(f"✔  {tag} установлен. Перезапустите Steam и выберите его в свойствах игры\n")
    return Outcome.SUCCESS, ""
