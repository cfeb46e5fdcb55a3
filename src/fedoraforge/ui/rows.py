"""Строки виджетов: KernelRow, PackageRow, TaskRow."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge.system import dnf, packages, privileges
from fedoraforge.system.errors import BusyError
from fedoraforge.system.runner import Outcome
from fedoraforge.ui.common import run_async
from fedoraforge.widgets import (
    make_badge, make_button, make_icon, make_icon_button, make_status_icon,
    set_status_ok, set_status_error, clear_status, make_suffix_box,
)


class KernelRow(Adw.ExpanderRow):
    """Ядро из каталога ветки: состояние, установка/удаление, подробности."""

    def __init__(self, record, on_install, on_remove, running_version=None):
        super().__init__()
        self._record = record
        self._details_loaded = False

        self.set_title(GLib.markup_escape_text(record.display_name))
        self.set_subtitle(GLib.markup_escape_text(f"{record.main_package} · {record.version}"))
        self.add_prefix(make_icon("computer-chip-symbolic"))

        badges = []
        if record.installed:
            badges.append(make_badge("Установлено", "success"))
        if running_version and record.installed and record.version.startswith(running_version):
            badges.append(make_badge("Запущено", "accent"))
        if record.min_x86_level > 1:
            badges.append(make_badge(f"x86-64-v{record.min_x86_level}", "dim-label"))

        self._btn = make_button("Удалить" if record.installed else "Установить", width=120,
                                style="destructive-action" if record.installed else "suggested-action")
        handler = on_remove if record.installed else on_install
        self._btn.connect("clicked", lambda _: handler(self._record, self))
        self.add_suffix(make_suffix_box(*badges, self._btn))

        self._desc = Gtk.Label(label=record.description)
        self._desc.set_wrap(True)
        self._desc.set_xalign(0)
        self._desc.set_selectable(True)
        self._desc.set_margin_start(12)
        self._desc.set_margin_end(12)
        self._desc.set_margin_top(8)
        self._desc.set_margin_bottom(8)
        desc_row = Adw.PreferencesRow()
        desc_row.set_activatable(False)
        desc_row.set_child(self._desc)
        self.add_row(desc_row)

        self._pkgs_row = Adw.ActionRow()
        self._pkgs_row.set_title("Пакеты")
        self._pkgs_row.set_subtitle(" ".join(record.packages))
        self._pkgs_row.set_subtitle_selectable(True)
        self.add_row(self._pkgs_row)

        self.connect("notify::expanded", self._on_expanded)

    @property
    def record(self):
        return self._record

    def set_busy(self, busy: bool):
        self._btn.set_sensitive(not busy)
        if busy:
            self._btn.set_label("…")

    def _on_expanded(self, row, _pspec):
        if not row.get_expanded() or self._details_loaded:
            return
        self._details_loaded = True
        run_async(lambda: packages.details(self._record.main_package), self._show_details)

    def _show_details(self, info):
        lines = [info.summary]
        if info.version:
            lines.append(f"Версия: {info.version}-{info.release} ({info.arch})")
        if info.repository:
            lines.append(f"Репозиторий: {info.repository}")
        lines.append(f"Размер: {info.size}")
        if info.build_date:
            lines.append(f"Собран: {info.build_date}")
        lines.append("")
        lines.append(info.description)
        self._desc.set_label("\n".join(lines))


class PackageRow(Adw.ActionRow):
    """Результат поиска DNF или Flatpak с одной кнопкой действия."""

    def __init__(self, title, subtitle, btn_label, on_click, installed=False):
        super().__init__()
        self.set_title(GLib.markup_escape_text(title))
        self.set_subtitle(GLib.markup_escape_text(subtitle))
        self._status = make_status_icon()
        if installed:
            set_status_ok(self._status)
        self._btn = make_button(btn_label, width=110,
                                style="destructive-action" if installed else "suggested-action")
        self._btn.connect("clicked", lambda _: on_click(self))
        self.add_suffix(make_suffix_box(self._status, self._btn))

    def set_busy(self, busy: bool):
        self._btn.set_sensitive(not busy)


class TaskRow(Adw.ActionRow):
    """Строка задачи обслуживания с прогрессом."""

    def __init__(self, task, on_log, on_progress, btn_label="Запустить"):
        super().__init__()
        self._task = task
        self._on_log = on_log
        self._on_progress = on_progress
        self._running = False
        self._locked = False
        self.result = None

        self.set_title(task["label"])
        self.set_subtitle(task["desc"])
        self.add_prefix(make_icon(task["icon"]))

        self._prog = Gtk.ProgressBar()
        self._prog.set_size_request(150, -1)
        self._prog.set_valign(Gtk.Align.CENTER)
        self._status = make_status_icon()
        self._status.set_size_request(22, -1)
        self._btn = make_button(btn_label, width=110)
        self._btn.connect("clicked", lambda _: self.start())
        self._dialog_btn = make_icon_button("window-new-symbolic", "Выполнить в отдельном окне")
        self._dialog_btn.connect("clicked", self._on_dialog)
        self.add_suffix(make_suffix_box(self._prog, self._status, self._btn, self._dialog_btn))

    @property
    def running(self):
        return self._running

    def set_sensitive_all(self, sensitive):
        self._locked = not sensitive
        self._btn.set_sensitive(sensitive)
        self._dialog_btn.set_sensitive(sensitive)

    def start(self):
        if self._running:
            return
        self._running = True
        self.result = None
        self._btn.set_sensitive(False)
        self._btn.set_label("…")
        clear_status(self._status)
        self._prog.set_fraction(0.0)

        if self._task["id"] == "autoremove":
            run_async(dnf.orphaned_packages, self._log_orphans)

        self._on_log(f"\n▶  {self._task['label']}...\n")
        win = self.get_root()
        if hasattr(win, "start_progress"):
            win.start_progress(f"Выполнение: {self._task['label']}...")
        GLib.timeout_add(110, self._pulse)
        privileges.run_privileged(self._task["cmd"], self._on_log, self._finish)

    def _log_orphans(self, orphans):
        self._on_log(f"ℹ  Пакетов-сирот: {len(orphans)}\n")

    def _on_dialog(self, _):
        win = self.get_root()
        if not hasattr(win, "jobs"):
            return
        self._dialog_btn.set_sensitive(False)

        def _closed(ok):
            GLib.idle_add(self._dialog_closed, ok)

        try:
            win.jobs.start("maintenance-dialog", [self._task["id"]], _closed)
        except (BusyError, OSError) as e:
            self._dialog_btn.set_sensitive(True)
            self._on_log(f"✘  {e}\n")

    def _dialog_closed(self, ok):
        self._dialog_btn.set_sensitive(True)
        if ok:
            set_status_ok(self._status)

    def _pulse(self):
        if self._running:
            self._prog.pulse()
            return True
        return False

    def _finish(self, outcome, message):
        ok = outcome is Outcome.SUCCESS
        self._running = False
        self.result = ok
        self._prog.set_fraction(1.0 if ok else 0.0)
        if ok:
            set_status_ok(self._status)
            self._btn.remove_css_class("suggested-action")
            self._btn.add_css_class("flat")
            self._on_log(f"✔  Готово: {self._task['label']}\n")
        else:
            set_status_error(self._status)
            self._on_log(f"✘  Ошибка: {self._task['label']}: {message}\n")
        self._btn.set_label("Повтор")
        self._btn.set_sensitive(not self._locked)
        win = self.get_root()
        if hasattr(win, "stop_progress"):
            win.stop_progress(ok)
        self._on_progress()
