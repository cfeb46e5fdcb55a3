#!/usr/bin/env python3

import os
import sys

import gi
gi.require_version("Gio", "2.0")
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Gio, Adw, GLib

from fedoraforge import cli, config
from fedoraforge.system import privileges
from fedoraforge.ui import FedoraForgeWindow
from fedoraforge.ui.dialogs import CommandDialog


class FedoraForgeApp(Adw.Application):
    def __init__(self):
        super().__init__(
            application_id=config.APP_ID,
            flags=Gio.ApplicationFlags.FLAGS_NONE,
        )
        self.connect("activate", self._on_activate)

    def _on_activate(self, app):
        config.load_state()
        win = FedoraForgeWindow(application=app)
        win.present()


class DialogApp(Adw.Application):
    """Отдельный процесс с одним окном CommandDialog."""

    def __init__(self, verb, args, steps=None):
        # NON_UNIQUE: иначе активация уйдёт в уже запущенное главное окно
        super().__init__(
            application_id=f"{config.APP_ID}.Dialog",
            flags=Gio.ApplicationFlags.NON_UNIQUE,
        )
        self._verb = verb
        self._args = args
        self._steps = steps
        self._dialog = None
        self.connect("activate", self._on_activate)

    @property
    def exit_code(self):
        return self._dialog.exit_code if self._dialog else 1

    def _on_activate(self, app):
        verb = cli.get_verb(self._verb)
        self._dialog = CommandDialog(verb.title, " ".join(self._args), self._starter(),
                                     application=app)
        self._dialog.present()
        GLib.idle_add(self._dialog.run)

    def _starter(self):
        job = cli.threaded_job(self._verb)
        if job is not None:
            return lambda on_line, on_done: privileges.run_in_thread(job, on_line, on_done)
        return lambda on_line, on_done: privileges.run_steps(self._steps, on_line, on_done)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    args = cli.parse_args(argv)

    if os.geteuid() == 0:
        print("⚠  Не запускайте GUI от root. Используйте обычного пользователя.")
        return 1

    if args.verb is None:
        try:
            return FedoraForgeApp().run([sys.argv[0]])
        except KeyboardInterrupt:
            return 0

    steps = None
    if cli.threaded_job(args.verb) is None:
        try:
            steps = cli.job_steps(args.verb, args.args)
        except ValueError as e:
            print(f"✘  {e}", file=sys.stderr)
            return 2
    app = DialogApp(args.verb, args.args, steps)
    try:
        app.run([sys.argv[0]])
    except KeyboardInterrupt:
        return 1
    return app.exit_code


if __name__ == "__main__":
    sys.exit(main())
