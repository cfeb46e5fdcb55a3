"""
inference.py — к какой ветке относится запущенное ядро.

Эвристика носит рекомендательный характер: пользователь всегда может
выбрать другую ветку вручную.
"""

from __future__ import annotations

import re

from fedoraforge.system import probe
from .branches import Branch

# Слова, которые встречаются в имени любой ветки и ничего не различают
_GENERIC_WORDS = {"kernel", "rpm", "default", "linux", "fedora", "stock"}
DEFAULT_MARKER = "RPM Default"


def branch_hint(name: str) -> str | None:
    """Отличительная подстрока ветки: первое неслужебное слово имени.

    "Cachyos (LTO)" -> "cachyos", "kernel (RPM Default)" -> None.
    """
    for word in re.findall(r"[a-z0-9]+", name.lower()):
        if word not in _GENERIC_WORDS and not word.isdigit():
            return word
    return None


def is_default_branch(branch: Branch) -> bool:
    if DEFAULT_MARKER in branch.name:
        return True
    return branch.name.lower().startswith("kernel") and branch_hint(branch.name) is None


def infer_owning_branch(branches: list[Branch], release: str, owner: str | None) -> Branch | None:
    """Чистая часть эвристики, без вызова внешних команд."""
    if not branches:
        return None
    haystacks = [release.lower()]
    if owner:
        haystacks.append(owner.lower())

    for branch in branches:
        hint = branch_hint(branch.name)
        if hint and any(hint in text for text in haystacks):
            return branch

    hints = [h for h in (branch_hint(b.name) for b in branches) if h]
    special = any(h in text for h in hints for text in haystacks)
    if not special:
        for branch in branches:
            if is_default_branch(branch):
                return branch

    return branches[0]


def detect_owning_branch(branches: list[Branch]) -> Branch | None:
    """uname -r + владелец /boot/vmlinuz-<release> -> ветка."""
    release = probe.running_kernel().release
    if release == probe.UNKNOWN:
        return branches[0] if branches else None
    owner = probe.package_owning(f"/boot/vmlinuz-{release}")
    return infer_owning_branch(branches, release, owner)
