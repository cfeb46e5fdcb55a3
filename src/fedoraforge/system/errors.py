"""
errors.py — типы ошибок ядра FedoraForge.

Страницы UI ловят ForgeError на границе и показывают сообщение в логе
и тосте. Ошибки обогащения каталога сюда не доходят: композер заменяет
их заглушками.
"""

from __future__ import annotations

AUTH_CANCELLED_MESSAGE = "Authentication cancelled or polkit not available"


class ForgeError(Exception):
    """Базовая ошибка приложения."""


class NotFoundError(ForgeError):
    """Ветка, пакет, планировщик или файл не найдены."""


class ParseError(ForgeError):
    """Некорректный JSON или вывод dnf/rpm."""


class NetworkError(ForgeError):
    """Не удалось скачать удалённый документ."""


class BusyError(ForgeError):
    """Повторный запуск операции, которая уже выполняется."""


class CommandFailed(ForgeError):
    """Внешняя команда завершилась с ошибкой. Хранит полный результат."""

    def __init__(self, result, message: str | None = None):
        self.result = result
        if message is None:
            message = f"{result.display} завершилась с кодом {result.returncode}"
            output = result.output.strip()
            if output:
                message += f"\n{output}"
        super().__init__(message)


class AuthCancelled(CommandFailed):
    """Пользователь закрыл диалог polkit (коды 126/127). Повтор не делается."""

    def __init__(self, result):
        super().__init__(result, AUTH_CANCELLED_MESSAGE)
