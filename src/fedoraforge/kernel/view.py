"""
view.py — состояние вкладки «Ядра» без привязки к GTK.

Все методы KernelTab вызываются только из главного потока (через
GLib.idle_add со стороны страницы). Результаты сборки, пришедшие для
ветки, которая уже не выбрана, отбрасываются по branch_name.
"""

from __future__ import annotations

import enum

from .branches import Branch
from .composer import Composition, KernelRecord


class TabState(enum.Enum):
    LOADING_BRANCHES = "loading_branches"
    BRANCHES_LOADED = "branches_loaded"
    LOADING_CATALOG = "loading_catalog"
    CATALOG_READY = "catalog_ready"


def matches(record: KernelRecord, query: str) -> bool:
    query = query.strip().lower()
    if not query:
        return True
    fields = (record.display_name, record.main_package, record.version, record.description)
    return any(query in field.lower() for field in fields)


def filter_records(records, query: str) -> list[KernelRecord]:
    """Регистронезависимый поиск подстроки; порядок сохраняется."""
    return [r for r in records if matches(r, query)]


class KernelTab:
    def __init__(self):
        self.state = TabState.LOADING_BRANCHES
        self.branches: list[Branch] = []
        self.owning_branch: str | None = None
        self.selected: str | None = None
        self.composition: Composition | None = None
        self.query = ""
        self.error: str | None = None

    # ── Ветки ────────────────────────────────────────────────────────────────

    def start_loading(self) -> None:
        self.state = TabState.LOADING_BRANCHES
        self.error = None

    def branches_loaded(self, branches: list[Branch], owning: Branch | None,
                        preferred: str | None = None) -> str | None:
        """Сохраняет ветки и возвращает имя ветки для автоматического выбора.

        Приоритет: ветка запущенного ядра, затем сохранённый выбор, затем
        первая ветка.
        """
        self.branches = list(branches)
        self.owning_branch = owning.name if owning else None
        self.state = TabState.BRANCHES_LOADED
        names = [b.name for b in self.branches]
        for candidate in (self.owning_branch, preferred):
            if candidate in names:
                return candidate
        return names[0] if names else None

    def branches_failed(self, error: str) -> None:
        self.branches = []
        self.composition = None
        self.error = error
        self.state = TabState.CATALOG_READY

    def branch(self, name: str) -> Branch | None:
        for branch in self.branches:
            if branch.name == name:
                return branch
        return None

    # ── Каталог ──────────────────────────────────────────────────────────────

    def select_branch(self, name: str) -> None:
        """Новый выбор заменяет незавершённую сборку предыдущей ветки."""
        self.selected = name
        self.error = None
        if self.composition and self.composition.branch_name != name:
            self.composition = None
        self.state = TabState.LOADING_CATALOG

    def catalog_loaded(self, composition: Composition) -> bool:
        """False — результат устарел (выбрана другая ветка) и отброшен."""
        if composition.branch_name != self.selected:
            return False
        self.composition = composition
        self.error = None
        self.state = TabState.CATALOG_READY
        return True

    def catalog_failed(self, branch_name: str, error: str) -> bool:
        if branch_name != self.selected:
            return False
        # Предыдущий каталог той же ветки остаётся на экране
        if self.composition and self.composition.branch_name != branch_name:
            self.composition = None
        self.error = error
        self.state = TabState.CATALOG_READY
        return True

    @property
    def records(self) -> list[KernelRecord]:
        if self.composition is None:
            return []
        return list(self.composition.records)

    def set_query(self, query: str) -> None:
        self.query = query

    def visible(self) -> list[KernelRecord]:
        return filter_records(self.records, self.query)

    def record(self, main_package: str) -> KernelRecord | None:
        for record in self.records:
            if record.main_package == main_package:
                return record
        return None

