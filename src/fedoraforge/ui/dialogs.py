"""Окно CommandDialog — потоковый вывод одной операции."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge.system.runner import Outcome


class CommandDialog(Adw.ApplicationWindow):
    """Заголовок, статус, пульсирующий прогресс, лог и кнопка «Закрыть».

    start(on_line, on_done) запускает работу в фоне; on_line и on_done
    должны вызываться в главном потоке (privileges.run_steps так и делает).
    После завершения exit_code = 0 при успехе, иначе 1.
    """

    def __init__(self, title, subtitle, start, **kwargs):
        super().__init__(**kwargs)
        self._start = start
        self._running = False
        self._pulse_id = None
        self.exit_code = 1

        self.set_title(title)
        self.set_default_size(720, 520)
        self.connect("close-request", self._on_close_request)

        toolbar = Adw.ToolbarView()
        header = Adw.HeaderBar()
        header.set_title_widget(Adw.WindowTitle(title=title, subtitle=subtitle))
        toolbar.add_top_bar(header)

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=10)
        box.set_margin_start(16)
        box.set_margin_end(16)
        box.set_margin_top(12)
        box.set_margin_bottom(16)
        toolbar.set_content(box)
        self.set_content(toolbar)

        self._status = Gtk.Label(label="Подготовка...")
        self._status.set_halign(Gtk.Align.START)
        self._status.set_wrap(True)
        self._status.add_css_class("heading")
        box.append(self._status)

        self._progress = Gtk.ProgressBar()
        box.append(self._progress)

        scroll = Gtk.ScrolledWindow()
        scroll.set_vexpand(True)
        scroll.add_css_class("card")
        self._tv = Gtk.TextView()
        self._tv.set_editable(False)
        self._tv.set_cursor_visible(False)
        self._tv.set_monospace(True)
        self._tv.set_wrap_mode(Gtk.WrapMode.WORD_CHAR)
        for side in ("left", "right", "top", "bottom"):
            getattr(self._tv, f"set_{side}_margin")(8)
        self._buf = self._tv.get_buffer()
        scroll.set_child(self._tv)
        box.append(scroll)

        self._close_btn = Gtk.Button(label="Закрыть")
        self._close_btn.add_css_class("pill")
        self._close_btn.set_halign(Gtk.Align.END)
        self._close_btn.set_sensitive(False)
        self._close_btn.connect("clicked", lambda _: self.close())
        box.append(self._close_btn)

    def run(self):
        self._running = True
        self._status.set_label("Выполняется...")
        self._pulse_id = GLib.timeout_add(100, self._pulse)
        self._start(self._append, self._finish)

    def _pulse(self):
        self._progress.pulse()
        return True

    def _append(self, text):
        end = self._buf.get_end_iter()
        self._buf.insert(end, text)
        mark = self._buf.get_mark("end")
        if mark is None:
            mark = self._buf.create_mark("end", self._buf.get_end_iter(), False)
        else:
            self._buf.move_mark(mark, self._buf.get_end_iter())
        self._tv.scroll_mark_onscreen(mark)

    def _finish(self, outcome, message):
        self._running = False
        if self._pulse_id:
            GLib.source_remove(self._pulse_id)
            self._pulse_id = None
        ok = outcome is Outcome.SUCCESS
        self.exit_code = 0 if ok else 1
        self._progress.set_fraction(1.0 if ok else 0.0)
        if ok:
            self._status.set_label("✔  Готово")
            self._status.add_css_class("success")
        else:
            self._status.set_label(f"✘  Ошибка: {message}")
            self._status.add_css_class("error")
        self._close_btn.set_sensitive(True)
        self._close_btn.add_css_class("suggested-action")
        self._close_btn.grab_focus()

    def _on_close_request(self, _):
        # Пока работает dnf, окно не закрывается
        return self._running
