"""Вкладка «Flatpak» — поиск, установленные приложения и обновления."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge.system import flatpak, gaming
from fedoraforge.system.errors import BusyError
from fedoraforge.ui.common import report_error, run_async
from fedoraforge.ui.rows import PackageRow
from fedoraforge.widgets import (
    clear_group, make_button, make_icon_button, make_placeholder, make_scrolled_page,
)


class FlatpakPage(Gtk.Box):
    def __init__(self, log_fn, jobs):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._jobs = jobs
        self._installed_ids = set()
        self._search_rows = []
        self._installed_rows = []
        self._update_rows = []

        if not gaming.flatpak_available():
            self.append(make_placeholder("Flatpak не установлен", "application-x-addon-symbolic"))
            return

        scroll, body = make_scrolled_page()
        self.append(scroll)

        self._build_search(body)
        self._build_updates(body)
        self._build_installed(body)

        self._load_installed()

    # ── Построение ───────────────────────────────────────────────────────────

    def _build_search(self, body):
        self._entry = Gtk.SearchEntry()
        self._entry.set_placeholder_text("Поиск в Flathub")
        self._entry.connect("activate", self._on_search)
        body.append(self._entry)

        self._results = Adw.PreferencesGroup()
        self._results.set_title("Результаты поиска")
        self._results.set_visible(False)
        body.append(self._results)

    def _build_updates(self, body):
        self._updates = Adw.PreferencesGroup()
        self._updates.set_title("Обновления")
        body.append(self._updates)

        box = Gtk.Box(spacing=6)
        self._check_btn = make_icon_button("view-refresh-symbolic", "Проверить обновления")
        self._check_btn.connect("clicked", self._on_check)
        self._update_btn = make_button("Обновить всё", width=140)
        self._update_btn.set_sensitive(False)
        self._update_btn.connect("clicked", self._on_update_all)
        box.append(self._check_btn)
        box.append(self._update_btn)
        self._updates.set_header_suffix(box)

    def _build_installed(self, body):
        self._installed = Adw.PreferencesGroup()
        self._installed.set_title("Установленные приложения")
        body.append(self._installed)

    # ── Установленные ────────────────────────────────────────────────────────

    def _load_installed(self):
        self._installed.set_description("Загрузка...")
        run_async(flatpak.installed, self._show_installed, self._installed_failed)

    def _show_installed(self, apps):
        self._installed_ids = {a.app_id for a in apps}
        clear_group(self._installed, self._installed_rows)
        self._installed.set_description(f"Всего: {len(apps)}")
        for app in sorted(apps, key=lambda a: a.name.lower()):
            subtitle = " · ".join(p for p in (app.app_id, app.version, app.remote) if p)
            row = PackageRow(app.name, subtitle, "Удалить",
                             lambda r, a=app: self._start("flatpak-remove-dialog", [a.app_id], r),
                             installed=True)
            row.add_prefix(self._info_button(app))
            self._installed_rows.append(row)
            self._installed.add(row)

    def _installed_failed(self, error):
        self._installed.set_description("")
        report_error(self, self._log, error)

    # ── Поиск ────────────────────────────────────────────────────────────────

    def _on_search(self, entry):
        query = entry.get_text().strip()
        if not query:
            return
        self._log(f"\n▶  Поиск Flatpak: {query}\n")
        self._results.set_visible(True)
        self._results.set_description("Поиск...")
        run_async(lambda: flatpak.search(query), self._show_results, self._search_failed)

    def _show_results(self, apps):
        clear_group(self._results, self._search_rows)
        self._results.set_description(f"Найдено: {len(apps)}")
        for app in apps:
            installed = app.app_id in self._installed_ids
            subtitle = " · ".join(p for p in (app.app_id, app.version, app.description) if p)
            if installed:
                handler = lambda r, a=app: self._start("flatpak-remove-dialog", [a.app_id], r)
            else:
                handler = lambda r, a=app: self._start(
                    "flatpak-install-dialog", [a.remote or flatpak.DEFAULT_REMOTE, a.app_id], r)
            row = PackageRow(app.name, subtitle, "Удалить" if installed else "Установить",
                             handler, installed=installed)
            row.add_prefix(self._info_button(app))
            self._search_rows.append(row)
            self._results.add(row)
        self._log(f"✔  Найдено приложений: {len(apps)}\n")

    def _search_failed(self, error):
        self._results.set_description("")
        report_error(self, self._log, error)

    # ── Подробности ──────────────────────────────────────────────────────────

    def _info_button(self, app):
        btn = make_icon_button("dialog-information-symbolic", "Подробнее")
        btn.connect("clicked", lambda _: run_async(
            lambda: flatpak.details(app.app_id, app.remote or flatpak.DEFAULT_REMOTE),
            self._show_details))
        return btn

    def _show_details(self, info):
        body = "\n".join([
            info.summary,
            "",
            f"ID: {info.app_id}",
            f"Версия: {info.version} ({info.branch})",
            f"Источник: {info.remote or '—'}",
            f"Загрузка: {info.download_size}",
            f"На диске: {info.installed_size}",
            "",
            info.description,
        ])
        d = Adw.AlertDialog(heading=info.name, body=body)
        d.add_response("close", "Закрыть")
        d.set_close_response("close")
        d.present(self.get_root())

    # ── Обновления ───────────────────────────────────────────────────────────

    def _on_check(self, _):
        self._check_btn.set_sensitive(False)
        self._updates.set_description("Проверка...")
        self._log("\n▶  Проверка обновлений Flatpak...\n")
        run_async(flatpak.check_updates, self._show_updates, self._check_failed)

    def _show_updates(self, updates):
        self._check_btn.set_sensitive(True)
        clear_group(self._updates, self._update_rows)
        self._updates.set_description(f"Доступно обновлений: {len(updates)}")
        self._update_btn.set_sensitive(bool(updates))
        for upd in updates:
            row = Adw.ActionRow()
            row.set_title(GLib.markup_escape_text(upd.name))
            row.set_subtitle(GLib.markup_escape_text(
                " · ".join(p for p in (upd.app_id, upd.version, upd.remote) if p)))
            self._update_rows.append(row)
            self._updates.add(row)
        self._log(f"✔  Обновлений Flatpak: {len(updates)}\n")

    def _check_failed(self, error):
        self._check_btn.set_sensitive(True)
        self._updates.set_description("")
        report_error(self, self._log, error)

    def _on_update_all(self, btn):
        self._start("flatpak-update-dialog", [], btn, allow_empty=True)

    # ── Диалоги ──────────────────────────────────────────────────────────────

    def _start(self, verb, args, widget, allow_empty=False):
        def _closed(ok):
            GLib.idle_add(self._job_closed, verb, widget, ok)

        try:
            self._jobs.start(verb, args, _closed, allow_empty=allow_empty)
        except BusyError as e:
            self._log(f"⚠  {e}\n")
            return
        except OSError as e:
            report_error(self, self._log, e)
            return
        self._log(f"▶  Открыт диалог: {' '.join([verb, *args])}\n")
        _set_busy(widget, True)

    def _job_closed(self, verb, widget, ok):
        _set_busy(widget, False)
        self._log(f"{'✔' if ok else '✘'}  Диалог закрыт: {verb}\n")
        self._load_installed()


def _set_busy(widget, busy):
    if hasattr(widget, "set_busy"):
        widget.set_busy(busy)
    else:
        widget.set_sensitive(not busy)
