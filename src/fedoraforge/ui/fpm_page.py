"""Вкладка «Конвертер» — сборка пакетов через fpm."""

import shutil
import tempfile

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, Gtk

from fedoraforge.system import fpm, privileges
from fedoraforge.system.runner import Outcome
from fedoraforge.ui.common import run_async
from fedoraforge.widgets import make_button, make_scrolled_page


class FpmPage(Gtk.Box):
    def __init__(self, log_fn):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._input = None
        self._output_dir = None
        self._extract_dir = None

        scroll, body = make_scrolled_page()
        self.append(scroll)

        group = Adw.PreferencesGroup()
        group.set_title("Конвертация пакетов")
        group.set_description("fpm собирает RPM из DEB, архивов, gem, python, npm и cpan")
        body.append(group)

        if shutil.which("fpm") is None:
            warn = Adw.ActionRow()
            warn.set_title("fpm не найден")
            warn.set_subtitle("Установите rubygem-fpm или gem install fpm")
            warn.add_css_class("error")
            group.add(warn)

        model = Gtk.StringList()
        for conv in fpm.CONVERSIONS:
            model.append(conv.label)
        self._conv_row = Adw.ComboRow(title="Преобразование")
        self._conv_row.set_model(model)
        self._conv_row.connect("notify::selected", self._on_conversion_changed)
        group.add(self._conv_row)

        self._input_row = Adw.ActionRow(title="Источник", subtitle="не выбран")
        self._input_btn = make_button("Выбрать", width=110, style="")
        self._input_btn.connect("clicked", self._on_pick_input)
        self._input_row.add_suffix(self._input_btn)
        group.add(self._input_row)

        self._output_row = Adw.ActionRow(title="Каталог результата",
                                         subtitle="текущий каталог fpm")
        self._output_btn = make_button("Выбрать", width=110, style="")
        self._output_btn.connect("clicked", self._on_pick_output)
        self._output_row.add_suffix(self._output_btn)
        group.add(self._output_row)

        self._run_btn = make_button("Конвертировать", width=180)
        self._run_btn.set_halign(Gtk.Align.CENTER)
        self._run_btn.set_sensitive(False)
        self._run_btn.connect("clicked", self._on_convert)
        body.append(self._run_btn)

    def _conversion(self):
        return fpm.CONVERSIONS[self._conv_row.get_selected()]

    def _on_conversion_changed(self, *_):
        # Каталог и файл не взаимозаменяемы
        self._input = None
        self._input_row.set_subtitle("не выбран")
        self._run_btn.set_sensitive(False)

    # ── Выбор файлов ─────────────────────────────────────────────────────────

    def _on_pick_input(self, _):
        conv = self._conversion()
        title = "Выберите каталог" if conv.directory else f"Выберите файл ({conv.label})"
        self._input_btn.set_sensitive(False)
        run_async(lambda: fpm.pick_file(title, conv.directory, conv.file_filter),
                  self._input_picked)

    def _input_picked(self, path):
        self._input_btn.set_sensitive(True)
        if not path:
            return
        conv = self._conversion()
        detected = fpm.detect_source_type(path)
        if detected and detected != conv.source and conv.source not in ("python", "npm", "cpan"):
            for index, candidate in enumerate(fpm.CONVERSIONS):
                if candidate.source == detected and candidate.target == conv.target:
                    self._log(f"ℹ  Тип источника определён как {detected}\n")
                    self._conv_row.set_selected(index)
                    break
        self._input = path
        self._input_row.set_subtitle(path)
        self._run_btn.set_sensitive(True)

    def _on_pick_output(self, _):
        self._output_btn.set_sensitive(False)
        run_async(lambda: fpm.pick_file("Каталог для результата", directory=True),
                  self._output_picked)

    def _output_picked(self, path):
        self._output_btn.set_sensitive(True)
        if path:
            self._output_dir = path
            self._output_row.set_subtitle(path)

    # ── Сборка ───────────────────────────────────────────────────────────────

    def _on_convert(self, _):
        conv = self._conversion()
        if not self._input:
            return
        if conv.source in fpm.ARCHIVES:
            self._extract_dir = tempfile.mkdtemp(prefix="fedoraforge-fpm-")
        try:
            steps = fpm.conversion_steps(conv, self._input, self._output_dir, self._extract_dir)
        except ValueError as e:
            self._cleanup()
            self._log(f"✘  {e}\n")
            return

        self._run_btn.set_sensitive(False)
        self._log(f"\n▶  Конвертация {conv.label}: {self._input}\n")
        win = self.get_root()
        if hasattr(win, "start_progress"):
            win.start_progress(f"Конвертация {conv.label}...")
        privileges.run_steps(steps, self._log, self._done)

    def _done(self, outcome, message):
        self._cleanup()
        self._run_btn.set_sensitive(True)
        ok = outcome is Outcome.SUCCESS
        if ok:
            self._log(f"✔  Готово: {self._output_dir or 'пакет в текущем каталоге'}\n")
        else:
            self._log(f"✘  Конвертация не удалась: {message}\n")
        win = self.get_root()
        if hasattr(win, "stop_progress"):
            win.stop_progress(ok)

    def _cleanup(self):
        if self._extract_dir:
            shutil.rmtree(self._extract_dir, ignore_errors=True)
            self._extract_dir = None
