"""Вкладка «Планировщик» — выбор и применение планировщика sched_ext."""

import threading

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge import config
from fedoraforge.kernel import scx
from fedoraforge.kernel.scx import ApplyState, SchedulerController
from fedoraforge.system import probe
from fedoraforge.system.errors import BusyError, ForgeError
from fedoraforge.ui.common import report_error, run_async
from fedoraforge.widgets import make_button, make_icon_button, make_scrolled_page

CUSTOM_MODE = "Свои флаги"

_STATE_LABELS = {
    ApplyState.IDLE: "Подготовка...",
    ApplyState.STOPPING: "Остановка планировщика...",
    ApplyState.STARTING: "Запуск планировщика...",
    ApplyState.SWITCHING: "Переключение планировщика...",
    ApplyState.PERSISTING: f"Запись {config.SCX_DEFAULTS}...",
    ApplyState.VERIFYING: "Проверка...",
    ApplyState.DONE: "Готово",
    ApplyState.FAILED: "Ошибка",
}


class SchedulerPage(Gtk.Box):
    def __init__(self, log_fn):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._controller = SchedulerController()
        self._schedulers = []

        scroll, body = make_scrolled_page()
        self.append(scroll)

        self._build_current_group(body)
        self._build_apply_group(body)

        self._load_schedulers()
        self._refresh_current()

    def _build_current_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("Текущий планировщик")
        group.set_description("sched_ext позволяет менять планировщик CPU без перезагрузки")
        body.append(group)

        self._current_row = Adw.ActionRow(title="Активен", subtitle="…")
        self._current_row.set_subtitle_selectable(True)
        group.add(self._current_row)

        refresh = make_icon_button("view-refresh-symbolic", "Обновить")
        refresh.connect("clicked", lambda _: self._refresh_current())
        group.set_header_suffix(refresh)

    def _build_apply_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("Сменить планировщик")
        body.append(group)

        self._sched_model = Gtk.StringList()
        self._sched_row = Adw.ComboRow(title="Планировщик")
        self._sched_row.set_model(self._sched_model)
        self._sched_row.connect("notify::selected", self._on_scheduler_changed)
        group.add(self._sched_row)

        self._mode_model = Gtk.StringList()
        self._mode_row = Adw.ComboRow(title="Режим")
        self._mode_row.set_model(self._mode_model)
        self._mode_row.connect("notify::selected", self._on_mode_changed)
        group.add(self._mode_row)

        self._flags_row = Adw.EntryRow(title="Флаги")
        group.add(self._flags_row)

        self._state_label = Gtk.Label(label="")
        self._state_label.add_css_class("dim-label")
        self._state_label.set_margin_top(8)
        body.append(self._state_label)

        self._apply_btn = make_button("Применить", width=160)
        self._apply_btn.set_halign(Gtk.Align.CENTER)
        self._apply_btn.connect("clicked", self._on_apply)
        body.append(self._apply_btn)

    # ── Реестр ───────────────────────────────────────────────────────────────

    def _load_schedulers(self):
        try:
            self._schedulers = scx.load_schedulers()
        except ForgeError as e:
            report_error(self, self._log, e)
            self._schedulers = [scx.disabled_scheduler()]

        self._sched_model.splice(0, self._sched_model.get_n_items(),
                                 [s.name for s in self._schedulers])
        saved = config.state_get("scx_scheduler")
        names = [s.name for s in self._schedulers]
        if saved in names:
            self._sched_row.set_selected(names.index(saved))
        self._fill_modes(config.state_get("scx_mode"))

    def _selected_scheduler(self):
        index = self._sched_row.get_selected()
        if 0 <= index < len(self._schedulers):
            return self._schedulers[index]
        return None

    def _fill_modes(self, preferred=None):
        sched = self._selected_scheduler()
        modes = [m.name for m in sched.modes] if sched else []
        self._mode_model.splice(0, self._mode_model.get_n_items(), modes + [CUSTOM_MODE])
        disabled = sched is None or scx.is_disabled(sched.name)
        self._mode_row.set_sensitive(not disabled)
        self._flags_row.set_sensitive(not disabled)
        choice = preferred if preferred in modes else (modes[0] if modes else CUSTOM_MODE)
        self._mode_row.set_selected((modes + [CUSTOM_MODE]).index(choice))
        self._apply_mode_flags()

    def _apply_mode_flags(self):
        sched = self._selected_scheduler()
        item = self._mode_row.get_selected_item()
        if sched is None or item is None:
            return
        mode = sched.mode(item.get_string())
        if mode is not None:
            self._flags_row.set_text(mode.flags)
        elif scx.is_disabled(sched.name):
            self._flags_row.set_text("")

    def _on_scheduler_changed(self, *_):
        self._fill_modes()

    def _on_mode_changed(self, *_):
        self._apply_mode_flags()

    # ── Чтение текущего ──────────────────────────────────────────────────────

    def _refresh_current(self):
        def _read():
            return scx.current_label(probe.running_kernel().version)

        run_async(_read, self._current_row.set_subtitle)

    # ── Применение ───────────────────────────────────────────────────────────

    def _on_apply(self, _):
        sched = self._selected_scheduler()
        if sched is None:
            return
        item = self._mode_row.get_selected_item()
        mode = item.get_string() if item else CUSTOM_MODE
        flags = "" if scx.is_disabled(sched.name) else self._flags_row.get_text().strip()

        config.state_set("scx_scheduler", sched.name)
        config.state_set("scx_mode", mode)

        self._apply_btn.set_sensitive(False)
        self._log(f"\n▶  Применение {sched.name} {flags}\n".rstrip() + "\n")
        win = self.get_root()
        if hasattr(win, "start_progress"):
            win.start_progress(f"Применение планировщика {sched.name}...")

        def _worker():
            try:
                result = self._controller.apply(
                    sched.name, flags, lambda st: GLib.idle_add(self._on_state, st))
            except BusyError as e:
                GLib.idle_add(self._on_busy, e)
                return
            GLib.idle_add(self._on_done, sched.name, result)

        threading.Thread(target=_worker, daemon=True).start()

    def _on_state(self, state):
        self._state_label.set_label(_STATE_LABELS[state])

    def _on_busy(self, error):
        self._log(f"⚠  {error}\n")

    def _on_done(self, name, result):
        self._apply_btn.set_sensitive(True)
        if result.ok:
            shown = result.reading.display() if result.reading and result.reading.active else scx.NO_SCX
            self._log(f"✔  Планировщик применён: {shown}\n")
        else:
            report_error(self, self._log, result.error, prefix=f"{name}: ")
        win = self.get_root()
        if hasattr(win, "stop_progress"):
            win.stop_progress(result.ok)
        self._refresh_current()
