"""
catalog.py — загрузка и разбор удалённой базы ветки ядра.

Формат базы:
    {
      "latest_kernel_version_deter_pkg": "kernel",
      "kernels": [
        {"name": ..., "main_package": ..., "packages": ..., "min_x86_march": 1}
      ]
    }

Поле min_x86_march встречается и числом, и строкой ("3") — обе формы
приводятся к целому, допустимы только уровни 1..4.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass

from fedoraforge import config
from fedoraforge.system.errors import NetworkError, ParseError

FETCH_TIMEOUT = 20
X86_LEVELS = range(1, 5)


@dataclass(frozen=True)
class KernelEntry:
    display_name: str
    main_package: str
    package_set: str
    min_x86_level: int

    @property
    def packages(self) -> list[str]:
        return self.package_set.split()


@dataclass(frozen=True)
class BranchCatalog:
    latest_version_probe_package: str | None
    entries: tuple[KernelEntry, ...]


def parse_min_level(value) -> int:
    """Приводит min_x86_march (число или числовая строка) к уровню 1..4."""
    if isinstance(value, bool):
        raise ParseError(f"Invalid min_x86_march: {value!r}")
    if isinstance(value, int):
        level = value
    elif isinstance(value, float) and value.is_integer():
        level = int(value)
    elif isinstance(value, str):
        try:
            level = int(value.strip())
        except ValueError as e:
            raise ParseError(f"Invalid min_x86_march: {value!r}") from e
    else:
        raise ParseError(f"Invalid min_x86_march: {value!r}")
    if level not in X86_LEVELS:
        raise ParseError(f"min_x86_march out of range 1..4: {value!r}")
    return level


def _required_str(item: dict, key: str, index: int) -> str:
    value = item.get(key)
    if not isinstance(value, str):
        raise ParseError(f"kernels[{index}]: missing '{key}'")
    return value


def parse_catalog(text: str) -> BranchCatalog:
    """Разбирает тело базы. Любая ошибка формата прерывает загрузку каталога."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse branch database: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("Failed to parse branch database: expected an object")

    probe = data.get("latest_kernel_version_deter_pkg")
    if probe is not None and not isinstance(probe, str):
        raise ParseError("latest_kernel_version_deter_pkg must be a string")

    kernels = data.get("kernels")
    if not isinstance(kernels, list):
        raise ParseError("Failed to parse branch database: missing 'kernels'")

    entries = []
    for index, item in enumerate(kernels):
        if not isinstance(item, dict):
            raise ParseError(f"kernels[{index}]: expected an object")
        if "min_x86_march" not in item:
            raise ParseError(f"kernels[{index}]: missing 'min_x86_march'")
        entries.append(KernelEntry(
            display_name=_required_str(item, "name", index),
            main_package=_required_str(item, "main_package", index),
            package_set=_required_str(item, "packages", index),
            min_x86_level=parse_min_level(item["min_x86_march"]),
        ))
    return BranchCatalog(probe or None, tuple(entries))


def fetch_db(url: str) -> str:
    """HTTP GET базы ветки. Не-2xx и сетевые ошибки — NetworkError."""
    req = urllib.request.Request(url, headers={"User-Agent": config.USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=FETCH_TIMEOUT) as response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise NetworkError(f"HTTP error downloading database: {status}")
            body = response.read()
    except urllib.error.HTTPError as e:
        raise NetworkError(f"HTTP error downloading database: {e.code}") from e
    except (urllib.error.URLError, OSError) as e:
        raise NetworkError(f"Failed to download branch database: {e}") from e
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise NetworkError(f"Failed to read branch database: {e}") from e
