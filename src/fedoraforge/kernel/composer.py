"""
composer.py — сборка отображаемого каталога ядер для выбранной ветки.

Порядок работы:
  1. init_script ветки (если это не "true"); ошибка прерывает сборку.
  2. Загрузка базы (с кэшем на ветке) и её разбор.
  3. Отбор записей по уровню x86-64 процессора.
  4. Параллельно для каждой записи: installed / version / описание.
     Параллельно с этим — версия пакета-индикатора и состояние
     запущенного ядра.
  5. Результаты собираются по main_package, порядок — как в базе.

Ошибки обогащения отдельной записи не прерывают сборку: вместо них
подставляются заглушки.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable

from fedoraforge.system import packages, probe, runner
from fedoraforge.system.errors import CommandFailed
from . import scx
from .branches import Branch
from .catalog import BranchCatalog, KernelEntry, fetch_db, parse_catalog

UNKNOWN_VERSION = "Unknown"
NO_DESCRIPTION = "No description"

MAX_WORKERS = 8


@dataclass(frozen=True)
class KernelRecord:
    display_name: str
    main_package: str
    package_set: str
    min_x86_level: int
    installed: bool
    version: str
    description: str
    branch_name: str

    @property
    def packages(self) -> list[str]:
        return self.package_set.split()


@dataclass(frozen=True)
class RunningState:
    release: str
    version: str
    scheduler: str
    owning_branch_name: str | None = None


@dataclass(frozen=True)
class Composition:
    branch_name: str
    records: tuple[KernelRecord, ...]
    running: RunningState
    latest_version: str | None
    host_level: int


def run_init_script(branch: Branch) -> None:
    if not branch.needs_init:
        return
    result = runner.run(["bash", "-c", branch.init_script])
    if not result.ok:
        raise CommandFailed(result, f"Init script failed: {result.stderr.strip() or result.stdout.strip()}")


def load_catalog(branch: Branch) -> BranchCatalog:
    """База ветки; тело скачивается один раз и кэшируется на ветке."""
    if branch.db_text is not None:
        return parse_catalog(branch.db_text)
    text = fetch_db(branch.db_url)
    # В кэш попадает только разобранное тело
    catalog = parse_catalog(text)
    branch.cache_db(text)
    return catalog


def compatible_entries(catalog: BranchCatalog, host_level: int) -> list[KernelEntry]:
    return [e for e in catalog.entries if e.min_x86_level <= host_level]


def running_state() -> RunningState:
    kernel = probe.running_kernel()
    return RunningState(kernel.release, kernel.version, scx.current_label(kernel.version))


def _degrade(future: Future, fallback):
    # Любая ошибка обогащения превращается в заглушку
    try:
        return future.result()
    except Exception:
        return fallback


def _latest_version(package: str | None) -> str | None:
    if not package:
        return None
    try:
        return packages.version(package)
    except Exception:
        return None


def enrich(entries: list[KernelEntry], branch_name: str,
           executor: ThreadPoolExecutor) -> list[KernelRecord]:
    """Три независимых запроса на запись; ключ результатов — main_package."""
    pending: dict[str, tuple[Future, Future, Future]] = {}
    for entry in entries:
        pkg = entry.main_package
        if pkg in pending:
            continue
        pending[pkg] = (
            executor.submit(packages.installed, pkg),
            executor.submit(packages.version, pkg),
            executor.submit(packages.summary_and_description, pkg),
        )

    enriched: dict[str, tuple[bool, str, str]] = {}
    for pkg, (f_installed, f_version, f_description) in pending.items():
        summary = _degrade(f_description, (NO_DESCRIPTION, NO_DESCRIPTION))[0]
        enriched[pkg] = (
            bool(_degrade(f_installed, False)),
            _degrade(f_version, UNKNOWN_VERSION) or UNKNOWN_VERSION,
            summary or NO_DESCRIPTION,
        )

    records = []
    for entry in entries:
        installed, version, description = enriched[entry.main_package]
        records.append(KernelRecord(
            display_name=entry.display_name,
            main_package=entry.main_package,
            package_set=entry.package_set,
            min_x86_level=entry.min_x86_level,
            installed=installed,
            version=version,
            description=description,
            branch_name=branch_name,
        ))
    return records


def compose(branch: Branch, level_fn: Callable[[], int] | None = None,
            owning_branch: str | None = None) -> Composition:
    """Полная сборка каталога ветки. Бросает ForgeError на шагах 1–2."""
    run_init_script(branch)
    catalog = load_catalog(branch)
    host_level = (level_fn or probe.cpu_level)()
    entries = compatible_entries(catalog, host_level)

    with ThreadPoolExecutor(max_workers=MAX_WORKERS) as executor:
        f_latest = executor.submit(_latest_version, catalog.latest_version_probe_package)
        f_running = executor.submit(running_state)
        records = enrich(entries, branch.name, executor)
        latest = f_latest.result()
        running = f_running.result()

    if owning_branch is not None:
        running = replace(running, owning_branch_name=owning_branch)
    return Composition(branch.name, tuple(records), running, latest, host_level)

