"""
ui — интерфейс GTK4 / Adwaita для FedoraForge.

Разбит на модули:
  ui.common           — run_async, report_error
  ui.dialogs          — CommandDialog (окно отдельной операции)
  ui.rows             — KernelRow, PackageRow, TaskRow
  ui.kernel_page      — KernelPage
  ui.scheduler_page   — SchedulerPage
  ui.packages_page    — PackagesPage
  ui.flatpak_page     — FlatpakPage
  ui.repos_page       — ReposPage
  ui.tweaks_page      — TweaksPage
  ui.maintenance_page — MaintenancePage
  ui.fpm_page         — FpmPage
  ui.log_panel        — LogPanel, SessionLog (журнал)
  ui.window           — FedoraForgeWindow (главное окно)
"""

from fedoraforge.ui.window import FedoraForgeWindow
