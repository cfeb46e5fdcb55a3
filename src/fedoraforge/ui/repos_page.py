"""Вкладка «Репозитории» — список /etc/yum.repos.d и включение/отключение."""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, GLib, Gtk

from fedoraforge.system import repos
from fedoraforge.ui.common import report_error, run_async
from fedoraforge.widgets import clear_group, make_icon_button, make_scrolled_page


class RepoRow(Adw.ActionRow):
    def __init__(self, repo, on_toggle):
        super().__init__()
        self.repo = repo
        self._syncing = False

        self.set_title(GLib.markup_escape_text(repo.short_id))
        self.set_tooltip_text(repo.id)
        subtitle = repo.name
        if repo.url:
            subtitle += f"\n{repo.url}"
        self.set_subtitle(GLib.markup_escape_text(subtitle))
        self.set_subtitle_lines(2)

        if repo.gpgcheck is False:
            warn = Gtk.Image.new_from_icon_name("dialog-warning-symbolic")
            warn.set_tooltip_text("Проверка подписи GPG отключена")
            warn.add_css_class("warning")
            self.add_suffix(warn)

        self._switch = Gtk.Switch()
        self._switch.set_valign(Gtk.Align.CENTER)
        self._switch.set_active(repo.enabled)
        self._switch.connect("notify::active", self._on_active)
        self.add_suffix(self._switch)
        self.set_activatable_widget(self._switch)
        self._on_toggle = on_toggle

    def _on_active(self, switch, _pspec):
        if self._syncing:
            return
        switch.set_sensitive(False)
        self._on_toggle(self, switch.get_active())

    def finish(self, enabled):
        """Ставит переключатель в итоговое положение без повторного запроса."""
        self._syncing = True
        self._switch.set_active(enabled)
        self._syncing = False
        self._switch.set_sensitive(True)


class ReposPage(Gtk.Box):
    def __init__(self, log_fn):
        super().__init__(orientation=Gtk.Orientation.VERTICAL)
        self._log = log_fn
        self._rows = []

        scroll, body = make_scrolled_page()
        self.append(scroll)

        self._group = Adw.PreferencesGroup()
        self._group.set_title("Репозитории DNF")
        body.append(self._group)

        refresh = make_icon_button("view-refresh-symbolic", "Перечитать")
        refresh.connect("clicked", lambda _: self._load())
        self._group.set_header_suffix(refresh)

        self._load()

    def _load(self):
        self._group.set_description("Загрузка...")
        run_async(repos.load_repositories, self._show)

    def _show(self, found):
        clear_group(self._group, self._rows)
        enabled = sum(1 for r in found if r.enabled)
        self._group.set_description(f"Всего: {len(found)}, включено: {enabled}")
        for repo in found:
            row = RepoRow(repo, self._on_toggle)
            self._rows.append(row)
            self._group.add(row)

    def _on_toggle(self, row, enabled):
        repo_id = row.repo.id
        action = "Включение" if enabled else "Отключение"
        self._log(f"\n▶  {action} репозитория {repo_id}...\n")
        run_async(lambda: repos.set_enabled(repo_id, enabled),
                  lambda _r: self._toggled(row, enabled),
                  lambda e: self._toggle_failed(row, enabled, e))

    def _toggled(self, row, enabled):
        row.finish(enabled)
        self._log(f"✔  {row.repo.id}: {'включён' if enabled else 'отключён'}\n")

    def _toggle_failed(self, row, enabled, error):
        row.finish(not enabled)
        report_error(self, self._log, error, prefix=f"{row.repo.id}: ")
