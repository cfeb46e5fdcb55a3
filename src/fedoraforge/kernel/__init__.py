"""
kernel — менеджер ядер и планировщиков sched_ext.

Разбит на модули:
  kernel.branches  — реестр веток (Branch, load_branches)
  kernel.catalog   — загрузка и разбор базы ветки
  kernel.composer  — сборка каталога с параллельным обогащением
  kernel.inference — ветка запущенного ядра
  kernel.scx       — планировщики: реестр, чтение, применение
  kernel.driver    — запуск диалогов установки/удаления
  kernel.view      — состояние вкладки и фильтр

Модули пакета не импортируют gi и работают в тестах без GTK.
"""
