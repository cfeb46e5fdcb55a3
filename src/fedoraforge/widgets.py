"""
widgets.py — общие фабрики виджетов GTK4 / Adwaita для всех вкладок.
"""

import gi
gi.require_version("Gtk", "4.0")
gi.require_version("Adw", "1")
from gi.repository import Adw, Gtk


def make_icon(name: str, size: int = 22) -> Gtk.Image:
    icon = Gtk.Image.new_from_icon_name(name)
    icon.set_pixel_size(size)
    return icon


def make_button(label: str, width: int = 130, style: str = "suggested-action") -> Gtk.Button:
    btn = Gtk.Button(label=label)
    btn.set_size_request(width, -1)
    btn.set_valign(Gtk.Align.CENTER)
    if style:
        btn.add_css_class(style)
    btn.add_css_class("pill")
    return btn


def make_icon_button(icon: str, tooltip: str, style: str = "flat") -> Gtk.Button:
    btn = Gtk.Button(icon_name=icon)
    btn.set_tooltip_text(tooltip)
    btn.set_valign(Gtk.Align.CENTER)
    btn.add_css_class(style)
    btn.add_css_class("circular")
    return btn


def make_badge(label: str, style: str = "accent") -> Gtk.Label:
    """Небольшая подпись-метка: «Установлено», «Текущее», уровень x86-64."""
    badge = Gtk.Label(label=label)
    badge.set_valign(Gtk.Align.CENTER)
    badge.add_css_class("caption")
    badge.add_css_class(style)
    return badge


def make_status_icon() -> Gtk.Image:
    icon = Gtk.Image()
    icon.set_pixel_size(18)
    return icon


def set_status_ok(icon: Gtk.Image) -> None:
    icon.set_from_icon_name("object-select-symbolic")
    icon.remove_css_class("error")
    icon.add_css_class("success")


def set_status_error(icon: Gtk.Image) -> None:
    icon.set_from_icon_name("dialog-error-symbolic")
    icon.remove_css_class("success")
    icon.add_css_class("error")


def clear_status(icon: Gtk.Image) -> None:
    icon.clear()
    icon.remove_css_class("success")
    icon.remove_css_class("error")


def make_suffix_box(*widgets) -> Gtk.Box:
    box = Gtk.Box(spacing=10)
    box.set_valign(Gtk.Align.CENTER)
    for w in widgets:
        if w is not None:
            box.append(w)
    return box


def make_scrolled_page() -> tuple[Gtk.ScrolledWindow, Gtk.Box]:
    scroll = Gtk.ScrolledWindow()
    scroll.set_policy(Gtk.PolicyType.NEVER, Gtk.PolicyType.AUTOMATIC)
    scroll.set_hexpand(True)
    scroll.set_vexpand(True)
    body = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=18)
    for side in ("top", "bottom", "start", "end"):
        getattr(body, f"set_margin_{side}")(20)
    clamp = Adw.Clamp()
    clamp.set_maximum_size(900)
    clamp.set_child(body)
    scroll.set_child(clamp)
    return scroll, body


def make_placeholder(title: str, icon: str = "system-search-symbolic",
                     description: str = "") -> Adw.StatusPage:
    page = Adw.StatusPage()
    page.set_icon_name(icon)
    page.set_title(title)
    if description:
        page.set_description(description)
    page.add_css_class("compact")
    return page


def clear_group(group: Adw.PreferencesGroup, rows: list) -> None:
    """Убирает из группы ранее добавленные строки."""
    for row in rows:
        group.remove(row)
    rows.clear()
