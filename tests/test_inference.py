"""
Tests for running-kernel to branch inference.
"""

from __future__ import annotations

from fedoraforge.kernel import inference
from fedoraforge.kernel.branches import Branch


def make(*names):
    return [Branch(name, f"https://example.org/{i}.json") for i, name in enumerate(names)]


def test_branch_hint():
    assert inference.branch_hint("Cachyos") == "cachyos"
    assert inference.branch_hint("kernel-cachyos (COPR bieszczaders)") == "cachyos"
    assert inference.branch_hint("kernel (RPM Default)") is None


def test_cachyos_release_selects_cachyos():
    found = make("kernel (RPM Default)", "Cachyos")

    owner = inference.infer_owning_branch(found, "6.11.3-301.cachyos.fc40.x86_64", None)

    assert owner.name == "Cachyos"


def test_owner_package_is_also_searched():
    found = make("kernel (RPM Default)", "Xanmod")

    owner = inference.infer_owning_branch(found, "6.11.3-1.fc40.x86_64", "kernel-xanmod-core-6.11.3-1")

    assert owner.name == "Xanmod"


def test_stock_kernel_selects_default_branch():
    found = make("Cachyos", "kernel (RPM Default)")

    owner = inference.infer_owning_branch(found, "6.11.3-300.fc41.x86_64", "kernel-core-6.11.3-300.fc41.x86_64")

    assert owner.name == "kernel (RPM Default)"


def test_no_match_falls_back_to_first_branch():
    found = make("Cachyos", "Xanmod")

    owner = inference.infer_owning_branch(found, "6.11.3-300.fc41.x86_64", None)

    assert owner is found[0]


def test_empty_registry():
    assert inference.infer_owning_branch([], "6.11.3", None) is None


def test_detect_owning_branch_uses_uname_and_rpm(fake_run):
    fake_run.on(["uname", "-r"], stdout="6.11.3-301.cachyos.fc40.x86_64\n")
    fake_run.on(["rpm", "-qf", "/boot/vmlinuz-6.11.3-301.cachyos.fc40.x86_64"],
                stdout="kernel-cachyos-core-6.11.3-301.fc40.x86_64\n")
    found = make("kernel (RPM Default)", "Cachyos")

    assert inference.detect_owning_branch(found).name == "Cachyos"
    assert fake_run.called("rpm", "-qf")


def test_detect_owning_branch_unknown_release(fake_run):
    found = make("kernel (RPM Default)", "Cachyos")

    assert inference.detect_owning_branch(found) is found[0]
