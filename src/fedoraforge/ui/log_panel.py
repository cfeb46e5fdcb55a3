"""
log_panel.py — нижняя панель окна: статус, общий прогресс и журнал.

LogPanel живёт в главном потоке. Запись на диск ведёт SessionLog в
собственном потоке, чтобы медленная ФС не тормозила интерфейс.
"""

import datetime
import os
import platform
import queue
import shutil
import threading

import gi
gi.require_version("Gtk", "4.0")
from gi.repository import GLib, Gtk, Pango

from fedoraforge import config

# Файл журнала ротируется при превышении 2 МБ
ROTATE_BYTES = 2 * 1024 * 1024
PULSE_MS = 100


class SessionLog:
    """Дописывает строки журнала в config.LOG_FILE из фонового потока."""

    def __init__(self, path=None):
        self.path = path or config.LOG_FILE
        self._pending = queue.SimpleQueue()
        threading.Thread(target=self._loop, daemon=True).start()

    def write(self, text: str) -> None:
        self._pending.put(text)

    def _open_session(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.path.exists() and self.path.stat().st_size > ROTATE_BYTES:
                shutil.move(self.path, self.path.with_suffix(".log.old"))
            host = " | ".join([
                f"v{config.VERSION}",
                f"Kernel: {platform.release()}",
                f"DE: {os.environ.get('XDG_CURRENT_DESKTOP', 'Unknown')}",
            ])
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(f"\n=== Session started {datetime.datetime.now()} [{host}] ===\n")
        except OSError as e:
            print(f"Session log unavailable: {e}")

    def _loop(self):
        self._open_session()
        while True:
            chunk = self._pending.get()
            try:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(chunk)
            except OSError:
                continue


class LogPanel(Gtk.Box):
    def __init__(self, session: SessionLog):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._session = session
        self._last_line = ""
        self._depth = 0
        self._pulse_id = None

        self.append(Gtk.Separator(orientation=Gtk.Orientation.HORIZONTAL))

        self._status = Gtk.Label(label="Загрузка...", xalign=0)
        self._status.set_ellipsize(Pango.EllipsizeMode.END)
        self._status.add_css_class("heading")
        for side, px in (("start", 12), ("end", 12), ("top", 12), ("bottom", 6)):
            getattr(self._status, f"set_margin_{side}")(px)
        self.append(self._status)

        self._bar = Gtk.ProgressBar()
        for side in ("start", "end", "bottom"):
            getattr(self._bar, f"set_margin_{side}")(12)
        self.append(self._bar)

        self._view = Gtk.TextView(editable=False, monospace=True, cursor_visible=False)
        self._view.set_wrap_mode(Gtk.WrapMode.WORD_CHAR)
        for side in ("left", "right", "top", "bottom"):
            getattr(self._view, f"set_{side}_margin")(10)
        self._buffer = self._view.get_buffer()
        self._tail = self._buffer.create_mark("tail", self._buffer.get_end_iter(), False)

        scroll = Gtk.ScrolledWindow(child=self._view)
        scroll.set_size_request(-1, 220)

        expander = Gtk.Expander(label="Журнал операций", child=scroll)
        for side in ("start", "end", "bottom"):
            getattr(expander, f"set_margin_{side}")(12)
        self.append(expander)

    def set_status(self, text: str):
        self._status.set_label(text)

    def append_text(self, text: str):
        """Добавляет текст в журнал. Только из главного потока."""
        line = text.strip()
        if line:
            self._last_line = line.splitlines()[-1]
        self._session.write(text)
        self._buffer.insert(self._buffer.get_end_iter(), text)
        self._buffer.move_mark(self._tail, self._buffer.get_end_iter())
        self._view.scroll_mark_onscreen(self._tail)

    def clear(self):
        self._buffer.set_text("")
        self._last_line = ""

    # Вложенные операции делят одну полосу прогресса
    def begin(self, message: str):
        self._depth += 1
        self._status.set_label(message)
        self._bar.set_fraction(0.0)
        if self._pulse_id is None:
            self._pulse_id = GLib.timeout_add(PULSE_MS, self._pulse)

    def end(self, success: bool):
        self._depth = max(0, self._depth - 1)
        if self._depth == 0 and self._pulse_id is not None:
            GLib.source_remove(self._pulse_id)
            self._pulse_id = None
            self._bar.set_fraction(1.0 if success else 0.0)
        self._status.set_label(self._last_line or ("✔ Готово" if success else "✘ Ошибка"))

    def _pulse(self):
        self._bar.pulse()
        return True
