"""
fpm.py — конвертация пакетов через fpm (Effing Package Management).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from . import runner
from .runner import Step

# Пары (источник, цель), которые fpm собирает напрямую
SUPPORTED_PAIRS = frozenset({
    ("deb", "rpm"), ("rpm", "rpm"), ("dir", "rpm"),
    ("gem", "rpm"), ("python", "rpm"), ("npm", "rpm"), ("cpan", "rpm"),
    ("rpm", "deb"), ("rpm", "tar"), ("rpm", "dir"), ("rpm", "zip"),
})

# Архивы сначала распаковываются во временный каталог
ARCHIVES = ("tar", "tgz", "zip")


@dataclass(frozen=True)
class Conversion:
    key: str
    label: str
    source: str
    target: str
    file_filter: str = ""

    @property
    def directory(self) -> bool:
        return self.source == "dir"


CONVERSIONS = [
    Conversion("deb-rpm", "DEB → RPM", "deb", "rpm", "*.deb"),
    Conversion("rpm-rpm", "RPM → RPM", "rpm", "rpm", "*.rpm"),
    Conversion("dir-rpm", "Каталог → RPM", "dir", "rpm"),
    Conversion("tar-rpm", "TAR → RPM", "tar", "rpm", "*.tar"),
    Conversion("tgz-rpm", "TGZ → RPM", "tgz", "rpm", "*.tgz *.tar.gz"),
    Conversion("zip-rpm", "ZIP → RPM", "zip", "rpm", "*.zip"),
    Conversion("gem-rpm", "Ruby Gem → RPM", "gem", "rpm", "*.gem"),
    Conversion("python-rpm", "Python → RPM", "python", "rpm", "*.whl *.tar.gz *.zip"),
    Conversion("npm-rpm", "NPM → RPM", "npm", "rpm", "*.tgz"),
    Conversion("cpan-rpm", "CPAN → RPM", "cpan", "rpm", "*.tar.gz"),
    Conversion("rpm-deb", "RPM → DEB", "rpm", "deb", "*.rpm"),
    Conversion("rpm-tar", "RPM → TAR", "rpm", "tar", "*.rpm"),
    Conversion("rpm-dir", "RPM → каталог", "rpm", "dir", "*.rpm"),
    Conversion("rpm-zip", "RPM → ZIP", "rpm", "zip", "*.rpm"),
]


def get_conversion(key: str) -> Conversion:
    for conv in CONVERSIONS:
        if conv.key == key:
            return conv
    raise ValueError(f"Unknown conversion: {key}")


def build_command(source: str, target: str, input_path: str,
                  output_dir: str | None = None) -> list[str]:
    if (source, target) not in SUPPORTED_PAIRS:
        raise ValueError(f"Unsupported conversion: {source} -> {target}")
    cmd = ["fpm", "-s", source, "-t", target, "-f", "--verbose"]
    if (source, target) == ("deb", "rpm"):
        # Имена зависимостей Debian в Fedora не существуют
        cmd.append("--no-auto-depends")
    if output_dir:
        cmd += ["-p", output_dir]
    cmd.append(input_path)
    return cmd


def extract_command(kind: str, archive: str, dest: str) -> list[str]:
    if kind == "tar":
        return ["tar", "-xf", archive, "-C", dest]
    if kind == "tgz":
        return ["tar", "-xzf", archive, "-C", dest]
    if kind == "zip":
        return ["unzip", "-q", archive, "-d", dest]
    raise ValueError(f"Unknown archive type: {kind}")


def conversion_steps(conv: Conversion, input_path: str, output_dir: str | None,
                     extract_dir: str | None = None) -> list[Step]:
    """Шаги без повышения прав: распаковка (для архивов) и сборка fpm."""
    if conv.source in ARCHIVES:
        if not extract_dir:
            raise ValueError("extract_dir is required for archives")
        return [
            Step(f"Распаковка {conv.source.upper()}",
                 tuple(extract_command(conv.source, input_path, extract_dir)), privileged=False),
            Step(f"Сборка {conv.target.upper()}",
                 tuple(build_command("dir", conv.target, extract_dir, output_dir)), privileged=False),
        ]
    return [Step(f"Сборка {conv.target.upper()}",
                 tuple(build_command(conv.source, conv.target, input_path, output_dir)),
                 privileged=False)]


def detect_source_type(path: str) -> str | None:
    p = Path(path)
    if p.is_dir():
        return "dir"
    name = p.name.lower()
    if name.endswith((".tar.gz", ".tgz")):
        return "tgz"
    suffixes = {".deb": "deb", ".rpm": "rpm", ".tar": "tar", ".zip": "zip",
                ".gem": "gem", ".whl": "python"}
    return suffixes.get(p.suffix.lower())


def _first_line(text: str) -> str | None:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return None


def pick_file(title: str, directory: bool = False, file_filter: str = "") -> str | None:
    """Системный диалог выбора: zenity, затем kdialog. None — отмена."""
    zenity = ["zenity", "--file-selection", "--title", title]
    if directory:
        zenity.append("--directory")
        kdialog = ["kdialog", "--getexistingdirectory", "."]
    else:
        if file_filter:
            zenity += ["--file-filter", file_filter]
        kdialog = ["kdialog", "--getopenfilename", ".", file_filter]
    for cmd in (zenity, kdialog):
        result = runner.run(cmd)
        if result.ok:
            path = _first_line(result.stdout)
            if path:
                return path
    return None
