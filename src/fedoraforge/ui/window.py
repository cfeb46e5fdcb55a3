"""Главное окно FedoraForge: вкладки, меню и панель журнала."""

import json
import shutil
import subprocess
import time

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, Gio, GLib, Gtk

from fedoraforge import config
from fedoraforge.kernel.driver import JobDriver
from fedoraforge.ui.flatpak_page import FlatpakPage
from fedoraforge.ui.fpm_page import FpmPage
from fedoraforge.ui.kernel_page import KernelPage
from fedoraforge.ui.log_panel import LogPanel, SessionLog
from fedoraforge.ui.maintenance_page import MaintenancePage
from fedoraforge.ui.packages_page import PackagesPage
from fedoraforge.ui.repos_page import ReposPage
from fedoraforge.ui.scheduler_page import SchedulerPage
from fedoraforge.ui.tweaks_page import TweaksPage

DEFAULT_SIZE = (960, 880)
LOG_VIEWERS = ("gnome-text-editor", "gedit", "kwrite")


class FedoraForgeWindow(Adw.ApplicationWindow):
    def __init__(self, **kwargs):
        started = time.monotonic()
        super().__init__(**kwargs)
        self.set_title(config.APP_NAME)
        width, height = self._saved_size()
        self.set_default_size(width, height)
        self.connect("close-request", self._on_close_request)

        # Панель журнала нужна раньше вкладок: они пишут в лог при создании
        self._session = SessionLog()
        self._panel = LogPanel(self._session)
        self.jobs = JobDriver()

        self._stack = Adw.ViewStack(vexpand=True)
        self._add_pages()

        layout = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        layout.append(self._build_header())
        layout.append(self._stack)
        layout.append(self._panel)
        self._toasts = Adw.ToastOverlay(child=layout)
        self.set_content(self._toasts)

        self._panel.set_status("Готов к работе")
        self._log(f"ℹ  Окно готово за {(time.monotonic() - started) * 1000:.0f} мс\n")

    def _add_pages(self):
        pages = [
            ("kernel", "Ядра", "computer-chip-symbolic", KernelPage(self._log, self.jobs)),
            ("scheduler", "Планировщик", "speedometer-symbolic", SchedulerPage(self._log)),
            ("packages", "Пакеты", "package-x-generic-symbolic", PackagesPage(self._log, self.jobs)),
            ("flatpak", "Flatpak", "application-x-addon-symbolic", FlatpakPage(self._log, self.jobs)),
            ("repos", "Репозитории", "network-server-symbolic", ReposPage(self._log)),
            ("tweaks", "Настройки", "preferences-system-symbolic", TweaksPage(self._log, self.jobs)),
            ("maintenance", "Обслуживание", "emblem-system-symbolic", MaintenancePage(self._log)),
            ("fpm", "Конвертер", "document-send-symbolic", FpmPage(self._log)),
        ]
        for name, title, icon, page in pages:
            self._stack.add_titled(page, name, title).set_icon_name(icon)

        remembered = config.state_get("last_page")
        if remembered and self._stack.get_child_by_name(remembered):
            self._stack.set_visible_child_name(remembered)
        self._stack.connect("notify::visible-child-name", self._remember_page)

    def _build_header(self):
        header = Adw.HeaderBar()
        switcher = Adw.ViewSwitcher(stack=self._stack, policy=Adw.ViewSwitcherPolicy.WIDE)
        header.set_title_widget(switcher)

        log_section = Gio.Menu()
        log_section.append("Открыть файл журнала", "win.open-log")
        log_section.append("Очистить журнал", "win.clear-log")
        log_section.append("Сбросить сохранённый выбор", "win.reset-state")
        menu = Gio.Menu()
        menu.append_section(None, log_section)
        menu.append("О программе", "win.about")

        button = Gtk.MenuButton(icon_name="open-menu-symbolic", menu_model=menu)
        header.pack_end(button)

        for name, handler in (
            ("open-log", self._open_log),
            ("clear-log", lambda *_: self._panel.clear()),
            ("reset-state", self._confirm_reset),
            ("about", self._about),
        ):
            action = Gio.SimpleAction.new(name, None)
            action.connect("activate", handler)
            self.add_action(action)
        return header

    # ── Размер окна и последняя вкладка ──────────────────────────────────────

    def _saved_size(self):
        try:
            with open(config.CONFIG_FILE) as f:
                data = json.load(f)
            return int(data["width"]), int(data["height"])
        except (OSError, ValueError, KeyError, TypeError):
            return DEFAULT_SIZE

    def _on_close_request(self, _win):
        try:
            config.CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            with open(config.CONFIG_FILE, "w") as f:
                json.dump({"width": self.get_width(), "height": self.get_height()}, f)
        except OSError as e:
            print(f"Window size not saved: {e}")
        return False

    def _remember_page(self, stack, _pspec):
        name = stack.get_visible_child_name()
        if name:
            config.state_set("last_page", name)

    # ── Меню ─────────────────────────────────────────────────────────────────

    def _about(self, *_):
        about = Adw.AboutDialog(
            application_name=config.APP_NAME,
            application_icon=config.APP_ID,
            version=config.VERSION,
            comments="Ядра, планировщики sched_ext, DNF и Flatpak для Fedora",
            license_type=Gtk.License.GPL_3_0,
        )
        about.present(self)

    def _confirm_reset(self, *_):
        dialog = Adw.AlertDialog(
            heading="Сбросить сохранённый выбор?",
            body="Будут забыты ветка ядер, планировщик, режим и последняя вкладка.",
        )
        dialog.add_response("cancel", "Отмена")
        dialog.add_response("reset", "Сбросить")
        dialog.set_response_appearance("reset", Adw.ResponseAppearance.DESTRUCTIVE)
        dialog.set_default_response("cancel")
        dialog.set_close_response("cancel")

        def _on_response(_dialog, response):
            if response == "reset":
                config.reset_state()
                self._log("ℹ  Сохранённый выбор сброшен\n")

        dialog.connect("response", _on_response)
        dialog.present(self)

    def _open_log(self, *_):
        path = self._session.path
        if not path.exists():
            self.add_toast(Adw.Toast(title="Журнал ещё пуст"))
            return
        viewer = next((v for v in LOG_VIEWERS if shutil.which(v)), None)
        if viewer:
            try:
                subprocess.Popen([viewer, str(path)])
                return
            except OSError as e:
                self._log(f"⚠  {viewer}: {e}\n")
        Gio.AppInfo.launch_default_for_uri(path.as_uri(), None)

    # ── Интерфейс для вкладок ────────────────────────────────────────────────
    # Методы можно вызывать из любого потока.

    def add_toast(self, toast):
        self._toasts.add_toast(toast)

    def start_progress(self, message: str):
        GLib.idle_add(self._panel.begin, message)

    def stop_progress(self, success: bool = True):
        GLib.idle_add(self._panel.end, success)

    def _log(self, text):
        GLib.idle_add(self._panel.append_text, text)
