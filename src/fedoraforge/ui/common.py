"""Общие утилиты UI-модулей: фоновые задачи и сообщения об ошибках."""

import threading

import gi
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib

from fedoraforge.system.errors import ForgeError


def run_async(job, on_ok, on_error=None):
    """Выполняет job() в рабочем потоке.

    Результат уходит в on_ok, ForgeError — в on_error; оба вызова
    происходят в главном потоке через GLib.idle_add.
    """
    def _worker():
        try:
            result = job()
        except ForgeError as e:
            if on_error is not None:
                GLib.idle_add(on_error, e)
            return
        GLib.idle_add(on_ok, result)

    threading.Thread(target=_worker, daemon=True).start()


def report_error(widget, log_fn, error, prefix=""):
    """Пишет ошибку в лог и показывает тост в окне виджета."""
    text = f"{prefix}{error}" if prefix else str(error)
    log_fn(f"✘  {text}\n")
    win = widget.get_root()
    if hasattr(win, "add_toast"):
        win.add_toast(Adw.Toast(title=text.splitlines()[0][:120]))
