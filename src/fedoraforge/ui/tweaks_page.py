"""Вкладка «Настройки» — параметры DNF, игры, конфигурация Hyprland и сведения о системе."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge import cli, config
from fedoraforge.system import dnfconf, probe, proton
from fedoraforge.system.dnfconf import DnfSettings
from fedoraforge.system.errors import BusyError
from fedoraforge.ui.common import report_error, run_async
from fedoraforge.widgets import make_button, make_icon, make_scrolled_page


class TweaksPage(Gtk.Box):
    def __init__(self, log_fn, jobs):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._jobs = jobs

        scroll, body = make_scrolled_page()
        self.append(scroll)

        self._build_dnf_group(body)
        self._build_gaming_group(body)
        self._build_info_group(body)

        self._load_dnf()
        self._load_info()

    # ── DNF ──────────────────────────────────────────────────────────────────

    def _build_dnf_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("DNF")
        group.set_description(str(config.DNF_CONF))
        body.append(group)

        adj = Gtk.Adjustment(value=dnfconf.DEFAULT_PARALLEL, lower=dnfconf.MIN_PARALLEL,
                             upper=dnfconf.MAX_PARALLEL, step_increment=1, page_increment=5)
        self._parallel_row = Adw.SpinRow(title="Параллельные загрузки", adjustment=adj)
        self._parallel_row.set_subtitle("max_parallel_downloads")
        group.add(self._parallel_row)

        self._fastest_row = Adw.SwitchRow(title="Быстрейшее зеркало")
        self._fastest_row.set_subtitle("fastestmirror")
        group.add(self._fastest_row)

        self._save_btn = make_button("Сохранить", width=140)
        self._save_btn.set_sensitive(False)
        self._save_btn.connect("clicked", self._on_save)
        group.set_header_suffix(self._save_btn)

    def _load_dnf(self):
        run_async(dnfconf.load, self._dnf_loaded, self._dnf_failed)

    def _dnf_loaded(self, settings):
        self._parallel_row.set_value(settings.max_parallel_downloads)
        self._fastest_row.set_active(settings.fastestmirror)
        self._save_btn.set_sensitive(True)

    def _dnf_failed(self, error):
        report_error(self, self._log, error)
        self._save_btn.set_sensitive(True)

    def _on_save(self, _):
        settings = DnfSettings(int(self._parallel_row.get_value()), self._fastest_row.get_active())
        self._save_btn.set_sensitive(False)
        self._log(f"\n▶  Запись {config.DNF_CONF}: max_parallel_downloads="
                  f"{settings.max_parallel_downloads}, fastestmirror={settings.fastestmirror}\n")
        run_async(lambda: dnfconf.save(settings), self._saved, self._save_failed)

    def _saved(self, _result):
        self._save_btn.set_sensitive(True)
        self._log("✔  Настройки DNF сохранены\n")

    def _save_failed(self, error):
        self._save_btn.set_sensitive(True)
        report_error(self, self._log, error)

    # ── Игры и окружение ─────────────────────────────────────────────────────

    def _build_gaming_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("Игры и окружение")
        body.append(group)

        meta = config.GAMING_META
        self._dialog_buttons = {}
        for verb, title, subtitle, icon in (
            (cli.GAMING_VERB, "Игровой набор",
             ", ".join(meta["packages"]) + ", MangoJuice, ProtonPlus, Heroic", "input-gaming-symbolic"),
            (cli.PROTON_VERB, "GE-Proton", "Последний релиз в compatibilitytools.d Steam",
             "applications-games-symbolic"),
            (cli.DOTFILES_VERB, "Конфигурация Hyprland",
             "hypr и quickshell в ~/.config, прежние копии сохраняются", "preferences-desktop-symbolic"),
        ):
            row = Adw.ActionRow()
            row.set_title(title)
            row.set_subtitle(subtitle)
            row.add_prefix(make_icon(icon))
            btn = make_button("Установить", width=120)
            btn.connect("clicked", lambda b, v=verb: self._on_dialog(v, b))
            row.add_suffix(btn)
            self._dialog_buttons[verb] = btn
            if verb == cli.PROTON_VERB:
                self._proton_row = row
            group.add(row)
        self._load_proton_builds()

    def _load_proton_builds(self):
        run_async(proton.installed_builds, self._proton_builds_loaded)

    def _proton_builds_loaded(self, builds):
        if builds:
            self._proton_row.set_subtitle(f"Установлено: {', '.join(builds[-3:])}")

    def _on_dialog(self, verb, btn):
        def _closed(ok):
            GLib.idle_add(self._dialog_closed, verb, ok)

        try:
            self._jobs.start(verb, [], _closed, allow_empty=True)
        except BusyError as e:
            self._log(f"⚠  {e}\n")
            return
        except OSError as e:
            report_error(self, self._log, e)
            return
        btn.set_sensitive(False)
        self._log(f"\n▶  Открыт диалог: {cli.get_verb(verb).title}\n")

    def _dialog_closed(self, verb, ok):
        self._dialog_buttons[verb].set_sensitive(True)
        self._log(f"{'✔' if ok else '✘'}  {cli.get_verb(verb).title}: диалог закрыт\n")
        if verb == cli.PROTON_VERB:
            self._load_proton_builds()

    # ── Система ──────────────────────────────────────────────────────────────

    def _build_info_group(self, body):
        group = Adw.PreferencesGroup()
        group.set_title("Система")
        body.append(group)

        self._info_rows = {}
        for key, title in (("release", "Fedora"), ("gpu", "Видеокарта"), ("cpu", "Уровень CPU")):
            row = Adw.ActionRow(title=title, subtitle="…")
            row.set_subtitle_selectable(True)
            self._info_rows[key] = row
            group.add(row)

    def _load_info(self):
        def _probe():
            return {
                "release": probe.fedora_release(),
                "gpu": probe.gpu_vendor(),
                "cpu": f"x86-64-v{probe.cpu_level()}",
            }

        run_async(_probe, self._info_loaded)

    def _info_loaded(self, info):
        for key, value in info.items():
            self._info_rows[key].set_subtitle(value)
