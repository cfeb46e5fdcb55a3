"""Вкладка «Пакеты» — поиск DNF, установленные пакеты, обновления и COPR."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge.system import dnf, packages
from fedoraforge.system.errors import BusyError
from fedoraforge.ui.common import report_error, run_async
from fedoraforge.ui.rows import PackageRow
from fedoraforge.widgets import (
    clear_group, make_button, make_icon_button, make_scrolled_page,
)

MAX_RESULTS = 200
MAX_INSTALLED = 100


class PackagesPage(Gtk.Box):
    def __init__(self, log_fn, jobs):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._jobs = jobs
        self._installed = {}
        self._result_rows = []
        self._update_rows = []
        self._installed_rows = []
        self._query_seq = 0

        scroll, body = make_scrolled_page()
        self.append(scroll)

        self._build_search(body)
        self._build_installed(body)
        self._build_updates(body)
        self._build_copr(body)

        self._load_installed()

    # ── Поиск ────────────────────────────────────────────────────────────────

    def _build_search(self, body):
        self._entry = Gtk.SearchEntry()
        self._entry.set_placeholder_text("Имя пакета, например htop")
        self._entry.connect("activate", self._on_search)
        body.append(self._entry)

        self._results = Adw.PreferencesGroup()
        self._results.set_title("Результаты поиска")
        self._results.set_visible(False)
        body.append(self._results)

    def _load_installed(self):
        run_async(dnf.installed_packages, self._installed_loaded)

    def _installed_loaded(self, versions):
        self._installed = versions
        self._show_installed()

    def _on_search(self, entry):
        query = entry.get_text().strip()
        if not query:
            return
        self._query_seq += 1
        seq = self._query_seq
        self._log(f"\n▶  Поиск DNF: {query}\n")
        self._results.set_description("Поиск...")
        self._results.set_visible(True)
        run_async(lambda: dnf.search(query),
                  lambda found: self._show_results(seq, found),
                  lambda e: self._search_failed(seq, e))

    def _show_results(self, seq, found):
        if seq != self._query_seq:
            return
        clear_group(self._results, self._result_rows)
        shown = found[:MAX_RESULTS]
        self._results.set_description(
            f"Найдено: {len(found)}" + (f", показаны первые {MAX_RESULTS}" if len(found) > MAX_RESULTS else ""))
        for pkg in shown:
            installed = pkg.name in self._installed
            row = PackageRow(
                pkg.name, f"{pkg.evr} · {pkg.arch} — {pkg.summary}",
                "Удалить" if installed else "Установить",
                lambda r, p=pkg.name, i=installed: self._on_package(r, p, i),
                installed=installed,
            )
            self._result_rows.append(row)
            self._results.add(row)
        self._log(f"✔  Найдено пакетов: {len(found)}\n")

    def _search_failed(self, seq, error):
        if seq != self._query_seq:
            return
        self._results.set_description("")
        report_error(self, self._log, error)

    def _on_package(self, row, name, installed):
        verb = "remove-dialog" if installed else "install-dialog"
        self._start(verb, [name], row)

    # ── Установленные ────────────────────────────────────────────────────────

    def _build_installed(self, body):
        self._installed_group = Adw.PreferencesGroup()
        self._installed_group.set_title("Установленные пакеты")
        self._installed_group.set_description("Загрузка списка...")
        body.append(self._installed_group)

        self._filter = Gtk.SearchEntry()
        self._filter.set_placeholder_text("Фильтр по имени")
        self._filter.connect("search-changed", lambda _e: self._show_installed())
        self._installed_group.set_header_suffix(self._filter)

    def _show_installed(self):
        clear_group(self._installed_group, self._installed_rows)
        needle = self._filter.get_text().strip().lower()
        names = sorted(n for n in self._installed if needle in n.lower())
        self._installed_group.set_description(
            f"Всего: {len(self._installed)}, подходит: {len(names)}"
            + (f", показаны первые {MAX_INSTALLED}" if len(names) > MAX_INSTALLED else ""))
        for name in names[:MAX_INSTALLED]:
            row = Adw.ActionRow()
            row.set_title(GLib.markup_escape_text(name))
            row.set_subtitle(GLib.markup_escape_text(self._installed[name]))
            btn = make_icon_button("dialog-information-symbolic", "Сведения и файлы")
            btn.connect("clicked", lambda _b, n=name: self._on_installed_info(n))
            row.add_suffix(btn)
            self._installed_rows.append(row)
            self._installed_group.add(row)

    def _on_installed_info(self, name):
        def _load():
            return packages.installed_details(name), packages.installed_files(name)

        run_async(_load, lambda res: self._show_installed_info(*res),
                  lambda e: report_error(self, self._log, e))

    def _show_installed_info(self, info, files):
        body = "\n".join([
            info.summary,
            "",
            f"Версия: {info.version}-{info.release} · {info.arch}",
            f"Размер: {info.size}",
            f"Сборка: {info.build_date or '—'}",
            "",
            info.description,
        ])
        view = Gtk.TextView(editable=False, monospace=True, cursor_visible=False)
        view.get_buffer().set_text("\n".join(files) or "Пакет не содержит файлов")
        scroll = Gtk.ScrolledWindow(child=view)
        scroll.set_size_request(560, 260)
        expander = Gtk.Expander(label=f"Файлы ({len(files)})", child=scroll)

        d = Adw.AlertDialog(heading=info.name, body=body)
        d.set_extra_child(expander)
        d.add_response("close", "Закрыть")
        d.set_close_response("close")
        d.present(self.get_root())

    # ── Обновления ───────────────────────────────────────────────────────────

    def _build_updates(self, body):
        self._updates = Adw.PreferencesGroup()
        self._updates.set_title("Обновления")
        self._updates.set_description("Нажмите «Проверить», чтобы получить список")
        body.append(self._updates)

        box = Gtk.Box(spacing=6)
        self._check_btn = make_icon_button("view-refresh-symbolic", "Проверить обновления")
        self._check_btn.connect("clicked", self._on_check)
        self._upgrade_btn = make_button("Обновить всё", width=140)
        self._upgrade_btn.set_sensitive(False)
        self._upgrade_btn.connect("clicked", self._on_upgrade_all)
        box.append(self._check_btn)
        box.append(self._upgrade_btn)
        self._updates.set_header_suffix(box)

    def _on_check(self, _):
        self._check_btn.set_sensitive(False)
        self._updates.set_description("Проверка...")
        self._log("\n▶  Проверка обновлений DNF...\n")
        run_async(dnf.check_updates, self._show_updates, self._check_failed)

    def _show_updates(self, updates):
        self._check_btn.set_sensitive(True)
        clear_group(self._updates, self._update_rows)
        self._updates.set_description(f"Доступно обновлений: {len(updates)}")
        self._upgrade_btn.set_sensitive(bool(updates))
        for upd in updates:
            row = Adw.ActionRow()
            row.set_title(GLib.markup_escape_text(upd.name))
            row.set_subtitle(GLib.markup_escape_text(
                f"{upd.current_version} → {upd.available_version} · {upd.repository}"))
            self._update_rows.append(row)
            self._updates.add(row)
        self._log(f"✔  Обновлений: {len(updates)}\n")

    def _check_failed(self, error):
        self._check_btn.set_sensitive(True)
        self._updates.set_description("")
        report_error(self, self._log, error)

    def _on_upgrade_all(self, btn):
        self._start("update-dialog", [], btn, allow_empty=True)

    # ── COPR ─────────────────────────────────────────────────────────────────

    def _build_copr(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("COPR")
        group.set_description("Подключение репозитория вида владелец/проект")
        body.append(group)

        self._copr_row = Adw.EntryRow(title="Проект COPR")
        self._copr_btn = make_button("Подключить", width=120)
        self._copr_btn.connect("clicked", self._on_copr)
        self._copr_row.add_suffix(self._copr_btn)
        group.add(self._copr_row)

    def _on_copr(self, _):
        project = self._copr_row.get_text().strip()
        if "/" not in project:
            self._log("⚠  Укажите проект в виде владелец/проект\n")
            return
        self._copr_btn.set_sensitive(False)
        self._log(f"\n▶  Подключение COPR {project}...\n")
        run_async(lambda: dnf.copr_enable(project),
                  lambda _r: self._copr_done(project),
                  self._copr_failed)

    def _copr_done(self, project):
        self._copr_btn.set_sensitive(True)
        self._log(f"✔  COPR подключён: {project}\n")

    def _copr_failed(self, error):
        self._copr_btn.set_sensitive(True)
        report_error(self, self._log, error)

    # ── Диалоги ──────────────────────────────────────────────────────────────

    def _start(self, verb, packages, widget, allow_empty=False):
        def _closed(ok):
            GLib.idle_add(self._job_closed, verb, widget, ok)

        try:
            self._jobs.start(verb, packages, _closed, allow_empty=allow_empty)
        except BusyError as e:
            self._log(f"⚠  {e}\n")
            return
        except OSError as e:
            report_error(self, self._log, e)
            return
        self._log(f"▶  Открыт диалог: {' '.join([verb, *packages])}\n")
        if hasattr(widget, "set_busy"):
            widget.set_busy(True)
        else:
            widget.set_sensitive(False)

    def _job_closed(self, verb, widget, ok):
        if hasattr(widget, "set_busy"):
            widget.set_busy(False)
        else:
            widget.set_sensitive(True)
        self._log(f"{'✔' if ok else '✘'}  Диалог закрыт: {verb}\n")
        self._load_installed()
