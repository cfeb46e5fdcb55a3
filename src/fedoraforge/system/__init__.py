"""
system — обращения к ОС без привязки к GTK.

  system.runner     — запуск команд, классификация результата, цепочки шагов
  system.errors     — иерархия исключений
  system.probe      — CPU, GPU, запущенное ядро, релиз Fedora
  system.packages   — запросы к RPM и сведения о пакетах
  system.dnf        — поиск, обновления, сироты
  system.flatpak    — поиск, обновления и сведения Flatpak
  system.repos      — репозитории /etc/yum.repos.d
  system.dnfconf    — параметры /etc/dnf/dnf.conf
  system.gaming     — игровой набор
  system.fpm        — конвертация пакетов
  system.privileges — потоковый запуск через pkexec (GLib)
"""
