"""
packages.py — запросы к базе RPM и Flatpak.

Каждая функция запускает отдельный дочерний процесс, поэтому их можно
вызывать параллельно из разных потоков.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fedoraforge import config
from . import runner
from .errors import NotFoundError

NO_DESCRIPTION = "No description available"
NO_SUMMARY = "No summary available"
UNKNOWN_SIZE = "Unknown"

# dnf info выравнивает ключи по ширине 12 символов, продолжение описания
# начинается с такого же отступа
_CONTINUATION = " " * 12


@dataclass(frozen=True)
class PackageDetails:
    name: str
    version: str = ""
    release: str = ""
    arch: str = ""
    repository: str = ""
    installed: bool = False
    summary: str = NO_SUMMARY
    description: str = NO_DESCRIPTION
    size: str = UNKNOWN_SIZE
    build_date: str | None = None


def helper_script() -> Path | None:
    """Скрипт generate_package_info.sh: системный или из каталога data/."""
    return config.first_existing(config.PACKAGE_INFO_SCRIPT, config.PACKAGE_INFO_FALLBACK_SCRIPT)


def installed(name: str) -> bool:
    return runner.run(["rpm", "-q", name]).ok


def version(name: str) -> str:
    """Версия пакета в виде VERSION-RELEASE.

    Сначала спрашиваем вспомогательный скрипт (он умеет узнавать версию
    из репозиториев), иначе — локальный rpm. NotFoundError, если пакет
    не установлен и узнать версию неоткуда.
    """
    script = helper_script()
    if script is not None:
        result = runner.run(["bash", str(script), "version", name], env=runner.c_locale_env())
    else:
        result = runner.run(
            ["rpm", "-q", "--queryformat", "%{VERSION}-%{RELEASE}", name],
            env=runner.c_locale_env(),
        )
    text = result.stdout.strip()
    if not result.ok or not text:
        raise NotFoundError(f"Package {name} not found")
    return text


def _value(line: str) -> str:
    return line.split(":", 1)[1].strip() if ":" in line else ""


def parse_dnf_info(text: str, name: str) -> PackageDetails:
    """Разбирает первый блок вывода `dnf info`.

    Пустые поля заменяются заглушками, многострочное описание
    склеивается через перевод строки.
    """
    fields: dict = {"name": name}
    description: list[str] = []
    in_description = False

    for line in text.splitlines():
        if in_description and line.startswith(_CONTINUATION):
            description.append(line.strip().lstrip(":").strip())
            continue
        if not line.strip():
            if fields.get("version"):
                break
            continue
        in_description = False
        key = line.split(":", 1)[0].strip()
        if key == "Name":
            fields["name"] = _value(line) or name
        elif key == "Version":
            fields["version"] = _value(line)
        elif key == "Release":
            fields["release"] = _value(line)
        elif key == "Architecture":
            fields["arch"] = _value(line)
        elif key in ("Repository", "From repo"):
            repo = _value(line)
            fields["repository"] = repo
            fields["installed"] = repo == "@System"
        elif key == "Summary":
            fields["summary"] = _value(line) or NO_SUMMARY
        elif key == "Size":
            fields["size"] = _value(line) or UNKNOWN_SIZE
        elif key == "Build Date":
            fields["build_date"] = _value(line) or None
        elif key == "Description":
            in_description = True
            first = _value(line)
            if first:
                description.append(first)

    text_description = "\n".join(part for part in description if part)
    fields["description"] = text_description or NO_DESCRIPTION
    return PackageDetails(**fields)


def _dnf_info(name: str) -> runner.CommandResult:
    return runner.run(["dnf", "info", "--quiet", name], env=runner.c_locale_env())


def summary_and_description(name: str) -> tuple[str, str]:
    """Краткое и полное описание пакета. Никогда не бросает исключений."""
    script = helper_script()
    if script is not None:
        result = runner.run(["bash", str(script), "description", name], env=runner.c_locale_env())
        text = result.stdout.strip() if result.ok else ""
        if not text:
            return NO_DESCRIPTION, NO_DESCRIPTION
        return text.splitlines()[0], text

    result = _dnf_info(name)
    if not result.ok:
        return NO_DESCRIPTION, NO_DESCRIPTION
    info = parse_dnf_info(result.stdout, name)
    summary = info.summary if info.summary != NO_SUMMARY else NO_DESCRIPTION
    return summary, info.description


def details(name: str) -> PackageDetails:
    """Карточка пакета для боковой панели. При ошибке dnf — только заглушки."""
    result = _dnf_info(name)
    if not result.ok:
        return PackageDetails(name=name)
    return parse_dnf_info(result.stdout, name)


# ── Установленные пакеты: rpm -qi / rpm -ql ─────────────────────────────────

_RPM_KEYS = {
    "Name": "name",
    "Version": "version",
    "Release": "release",
    "Architecture": "arch",
    "Summary": "summary",
    "Build Date": "build_date",
}


def format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return UNKNOWN_SIZE


def parse_rpm_info(text: str, name: str) -> PackageDetails:
    """Разбирает `rpm -qi` для одного пакета.

    Описание у rpm идёт последним полем без отступа и тянется до конца
    вывода, поэтому после "Description :" все строки относятся к нему.
    """
    fields: dict = {"name": name, "installed": True, "repository": "@System"}
    description: list[str] = []
    in_description = False

    for line in text.splitlines():
        if in_description:
            # Следующий пакет при нескольких установленных версиях
            if line.startswith("Name ") and ":" in line:
                break
            description.append(line.rstrip())
            continue
        key = line.split(":", 1)[0].strip()
        if key == "Description":
            in_description = True
        elif key == "Size":
            try:
                fields["size"] = format_size(int(_value(line)))
            except ValueError:
                fields["size"] = UNKNOWN_SIZE
        elif key in _RPM_KEYS:
            value = _value(line)
            if value:
                fields[_RPM_KEYS[key]] = value

    text_description = "\n".join(description).strip()
    fields["description"] = text_description or fields.get("summary", NO_DESCRIPTION)
    return PackageDetails(**fields)


def installed_details(name: str) -> PackageDetails:
    result = runner.run(["rpm", "-qi", name], env=runner.c_locale_env())
    if not result.ok:
        raise NotFoundError(f"Package {name} is not installed")
    return parse_rpm_info(result.stdout, name)


def installed_files(name: str) -> list[str]:
    """Файлы пакета из `rpm -ql`; пустой список для мета-пакетов."""
    result = runner.run(["rpm", "-ql", name], env=runner.c_locale_env())
    if not result.ok:
        raise NotFoundError(f"Package {name} is not installed")
    return [line.strip() for line in result.stdout.splitlines()
            if line.strip().startswith("/")]
