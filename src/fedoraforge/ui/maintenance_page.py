"""Вкладка «Обслуживание»: задачи config.TASKS по одной или все подряд."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, Gtk

from fedoraforge import config
from fedoraforge.ui.rows import TaskRow
from fedoraforge.widgets import make_button, make_scrolled_page

RUN_ALL_LABEL = "Запустить все задачи"


class MaintenancePage(Gtk.Box):
    def __init__(self, log_fn):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._rows: list[TaskRow] = []
        # Очередь «запустить все»; None, когда пакетный запуск не идёт
        self._queue: list[TaskRow] | None = None

        scroll, body = make_scrolled_page()
        self.append(scroll)

        body.append(self._build_summary())
        body.append(self._build_tasks())

    def _build_summary(self):
        group = Adw.PreferencesGroup()
        group.set_title("Общий прогресс")

        self._summary = Adw.ActionRow()
        self._summary.set_title(f"0 из {len(config.TASKS)}")
        self._summary.set_subtitle("Задачи выполняются по очереди, ошибка одной не останавливает остальные")

        self._bar = Gtk.ProgressBar()
        self._bar.set_valign(Gtk.Align.CENTER)
        self._bar.set_size_request(180, -1)
        self._summary.add_suffix(self._bar)

        self._btn_all = make_button(RUN_ALL_LABEL, width=200)
        self._btn_all.connect("clicked", self._on_run_all)
        self._summary.add_suffix(self._btn_all)

        group.add(self._summary)
        return group

    def _build_tasks(self):
        group = Adw.PreferencesGroup()
        group.set_title("Задачи")
        group.set_description("Каждая команда запускается через pkexec")
        for task in config.TASKS:
            row = TaskRow(task, self._log, self._on_task_done)
            self._rows.append(row)
            group.add(row)
        return group

    # ── Пакетный запуск ──────────────────────────────────────────────────────

    def _on_run_all(self, _btn):
        if self._queue is not None or any(r.running for r in self._rows):
            return
        for row in self._rows:
            row.result = None
            row.set_sensitive_all(False)
        self._queue = list(self._rows)
        self._btn_all.set_sensitive(False)
        self._btn_all.set_label("Выполняется…")
        self._refresh()
        self._next()

    def _next(self):
        if self._queue:
            self._queue.pop(0).start()
            return
        self._queue = None
        self._btn_all.set_label(RUN_ALL_LABEL)
        self._btn_all.set_sensitive(True)
        for row in self._rows:
            row.set_sensitive_all(True)
        failed = [r for r in self._rows if r.result is False]
        if failed:
            self._log(f"\n⚠  Задач с ошибками: {len(failed)}\n")
        else:
            self._log("\n✔  Все задачи выполнены\n")

    def _on_task_done(self):
        self._refresh()
        if self._queue is not None:
            self._next()

    def _refresh(self):
        total = len(self._rows)
        done = sum(1 for r in self._rows if r.result is not None)
        self._bar.set_fraction(done / total if total else 0.0)
        self._summary.set_title(f"{done} из {total}")
