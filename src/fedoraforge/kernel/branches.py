"""
branches.py — реестр веток ядра.

Ветка описывается JSON-файлом {"name", "db_url", "init_script"} в
системном каталоге. Если его нет — берём каталог data/ пакета, а если
нет и его, создаём одну ветку по умолчанию.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path

from fedoraforge import config
from fedoraforge.system.errors import NotFoundError, ParseError

NOOP_INIT = "true"
_REQUIRED = ("name", "db_url", "init_script")


@dataclass(eq=False)
class Branch:
    name: str
    db_url: str
    init_script: str = NOOP_INIT
    # Тело каталога кэшируется после первой загрузки
    db_text: str | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def needs_init(self) -> bool:
        return self.init_script.strip() != NOOP_INIT

    def cache_db(self, text: str) -> None:
        with self._lock:
            if self.db_text is None:
                self.db_text = text


def default_branch() -> Branch:
    return Branch(config.DEFAULT_BRANCH_NAME, config.DEFAULT_DB_URL, NOOP_INIT)


def parse_branch(text: str, source: str = "<branch>") -> Branch:
    """Разбирает один манифест ветки. Пустое или отсутствующее поле — ошибка."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse {source}: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"Failed to parse {source}: expected an object")
    values = {}
    for key in _REQUIRED:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ParseError(f"Missing '{key}' in {source}")
        values[key] = value.strip()
    return Branch(values["name"], values["db_url"], values["init_script"])


def _scan(directory: Path) -> list[Branch]:
    branches: list[Branch] = []
    # Сортировка по имени файла: порядок стабилен между запусками
    for path in sorted(directory.glob("*.json")):
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(f"Failed to read {path}: {e}") from e
        branches.append(parse_branch(text, str(path)))
    return branches


def load_branches(primary: Path | None = None, fallback: Path | None = None) -> list[Branch]:
    """Загружает все ветки. Любой битый манифест проваливает загрузку целиком."""
    primary = primary or config.BRANCHES_DIR
    fallback = fallback or config.BRANCHES_FALLBACK_DIR
    if primary.is_dir():
        return _scan(primary)
    if fallback.is_dir():
        return _scan(fallback)
    return [default_branch()]


def find_branch(branches: list[Branch], name: str) -> Branch:
    for branch in branches:
        if branch.name == name:
            return branch
    raise NotFoundError(f"Branch not found: {name}")
