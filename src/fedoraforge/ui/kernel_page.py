"""Вкладка «Ядра» — ветки, каталог ядер, установка и удаление."""

import threading

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge import config
from fedoraforge.kernel import branches, composer, inference
from fedoraforge.kernel.view import KernelTab, TabState
from fedoraforge.system import probe
from fedoraforge.system.errors import BusyError, ForgeError
from fedoraforge.ui.common import report_error
from fedoraforge.ui.rows import KernelRow
from fedoraforge.widgets import (
    make_icon_button, make_placeholder, make_scrolled_page, clear_group,
)


class KernelPage(Gtk.Box):
    def __init__(self, log_fn, jobs):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._jobs = jobs
        self._tab = KernelTab()
        self._rows = []
        self._running_version = None
        self._syncing_dropdown = False

        scroll, body = make_scrolled_page()
        self.append(scroll)

        self._build_system_group(body)
        self._build_branch_group(body)
        self._build_catalog_group(body)

        self._load_branches()

    # ── Построение ───────────────────────────────────────────────────────────

    def _build_system_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("Система")
        body.append(group)

        self._kernel_row = Adw.ActionRow(title="Запущенное ядро", subtitle="…")
        self._sched_row = Adw.ActionRow(title="Планировщик", subtitle="…")
        self._cpu_row = Adw.ActionRow(title="Уровень CPU", subtitle="…")
        self._owner_row = Adw.ActionRow(title="Ветка запущенного ядра", subtitle="…")
        for row in (self._kernel_row, self._sched_row, self._cpu_row, self._owner_row):
            row.set_subtitle_selectable(True)
            group.add(row)

    def _build_branch_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("Ветка ядер")
        body.append(group)

        self._branch_model = Gtk.StringList()
        self._branch_row = Adw.ComboRow(title="Источник")
        self._branch_row.set_model(self._branch_model)
        self._branch_row.set_sensitive(False)
        self._branch_row.connect("notify::selected", self._on_branch_selected)
        group.add(self._branch_row)

        self._latest_row = Adw.ActionRow(title="Последняя версия ветки", subtitle="—")
        group.add(self._latest_row)

        self._refresh_btn = make_icon_button("view-refresh-symbolic", "Обновить каталог")
        self._refresh_btn.connect("clicked", lambda _: self._reload_catalog())
        group.set_header_suffix(self._refresh_btn)

    def _build_catalog_group(self, body):
        self._search = Gtk.SearchEntry()
        self._search.set_placeholder_text("Поиск по названию, пакету, версии или описанию")
        self._search.connect("search-changed", self._on_search)
        body.append(self._search)

        self._banner = Adw.Banner()
        self._banner.set_revealed(False)
        body.append(self._banner)

        self._spinner = Gtk.Spinner()
        self._spinner.set_size_request(32, 32)
        self._spinner.set_halign(Gtk.Align.CENTER)
        body.append(self._spinner)

        self._catalog = Adw.PreferencesGroup()
        self._catalog.set_title("Ядра")
        body.append(self._catalog)

        self._empty = make_placeholder("Нет подходящих ядер", "computer-chip-symbolic")
        self._empty.set_visible(False)
        body.append(self._empty)

    # ── Ветки ────────────────────────────────────────────────────────────────

    def _load_branches(self):
        self._tab.start_loading()
        self._set_loading(True)

        def _worker():
            try:
                found = branches.load_branches()
            except ForgeError as e:
                GLib.idle_add(self._branches_failed, e)
                return
            owning = inference.detect_owning_branch(found)
            level = probe.cpu_level()
            GLib.idle_add(self._branches_loaded, found, owning, level)

        threading.Thread(target=_worker, daemon=True).start()

    def _branches_loaded(self, found, owning, level):
        selected = self._tab.branches_loaded(found, owning, config.state_get("kernel_branch"))
        self._cpu_row.set_subtitle(f"x86-64-v{level}")
        self._owner_row.set_subtitle(owning.name if owning else "не определена")
        self._log(f"ℹ  Веток ядер: {len(found)}, уровень CPU x86-64-v{level}\n")

        self._syncing_dropdown = True
        self._branch_model.splice(0, self._branch_model.get_n_items(), [b.name for b in found])
        self._syncing_dropdown = False
        self._branch_row.set_sensitive(bool(found))
        if selected is None:
            self._set_loading(False)
            return
        names = [b.name for b in found]
        index = names.index(selected)
        if self._branch_row.get_selected() == index:
            self._select(selected)
        else:
            self._branch_row.set_selected(index)

    def _branches_failed(self, error):
        self._tab.branches_failed(str(error))
        self._set_loading(False)
        self._show_error(f"Не удалось загрузить ветки: {error}")
        self._render()

    def _on_branch_selected(self, row, _pspec):
        if self._syncing_dropdown:
            return
        item = row.get_selected_item()
        if item is not None:
            self._select(item.get_string())

    # ── Каталог ──────────────────────────────────────────────────────────────

    def _select(self, name):
        config.state_set("kernel_branch", name)
        self._tab.select_branch(name)
        self._compose(name)

    def _reload_catalog(self):
        if self._tab.selected:
            self._tab.select_branch(self._tab.selected)
            self._compose(self._tab.selected)

    def _compose(self, name):
        branch = self._tab.branch(name)
        if branch is None:
            return
        self._set_loading(True)
        self._banner.set_revealed(False)
        self._log(f"\n▶  Загрузка каталога: {name}...\n")
        owning = self._tab.owning_branch

        def _worker():
            try:
                comp = composer.compose(branch, owning_branch=owning)
            except ForgeError as e:
                GLib.idle_add(self._catalog_failed, name, e)
                return
            GLib.idle_add(self._catalog_loaded, comp)

        threading.Thread(target=_worker, daemon=True).start()

    def _catalog_loaded(self, comp):
        if not self._tab.catalog_loaded(comp):
            # Пока собирался каталог, выбрали другую ветку
            return
        self._set_loading(False)
        running = comp.running
        self._running_version = running.version
        self._kernel_row.set_subtitle(running.release)
        self._sched_row.set_subtitle(running.scheduler)
        self._latest_row.set_subtitle(comp.latest_version or "—")
        self._log(f"✔  {comp.branch_name}: ядер {len(comp.records)}\n")
        self._render()

    def _catalog_failed(self, name, error):
        if not self._tab.catalog_failed(name, str(error)):
            return
        self._set_loading(False)
        self._show_error(f"{name}: {error}")
        report_error(self, self._log, error, prefix=f"{name}: ")
        self._render()

    def _on_search(self, entry):
        self._tab.set_query(entry.get_text())
        self._render()

    def _render(self):
        clear_group(self._catalog, self._rows)
        for record in self._tab.visible():
            row = KernelRow(record, self._on_install, self._on_remove, self._running_version)
            self._rows.append(row)
            self._catalog.add(row)
        ready = self._tab.state is TabState.CATALOG_READY
        self._empty.set_visible(ready and not self._rows and self._tab.error is None)

    def _set_loading(self, loading):
        self._spinner.set_visible(loading)
        if loading:
            self._spinner.start()
        else:
            self._spinner.stop()
        self._refresh_btn.set_sensitive(not loading)

    def _show_error(self, text):
        self._banner.set_title(GLib.markup_escape_text(text))
        self._banner.set_revealed(True)

    # ── Установка и удаление ─────────────────────────────────────────────────

    def _on_install(self, record, row):
        self._start_job("install", record, row)

    def _on_remove(self, record, row):
        self._start_job("remove", record, row)

    def _start_job(self, action, record, row):
        pkgs = record.packages
        verb = "Установка" if action == "install" else "Удаление"
        self._log(f"\n▶  {verb}: {' '.join(pkgs)}\n")

        def _closed(ok):
            GLib.idle_add(self._job_closed, record, row, ok)

        try:
            if action == "install":
                self._jobs.install(pkgs, _closed)
            else:
                self._jobs.remove(pkgs, _closed)
        except BusyError as e:
            self._log(f"⚠  {e}\n")
            return
        except OSError as e:
            report_error(self, self._log, e)
            return
        row.set_busy(True)

    def _job_closed(self, record, row, ok):
        self._log(f"{'✔' if ok else '✘'}  Диалог закрыт: {record.display_name}\n")
        row.set_busy(False)
        # Состояние пакетов могло измениться в любом случае
        if record.branch_name == self._tab.selected:
            self._reload_catalog()
