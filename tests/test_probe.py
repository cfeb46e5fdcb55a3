"""
Tests for host probes: CPU level, running kernel, GPU, package owner.
"""

from __future__ import annotations

from fedoraforge import config
from fedoraforge.system import probe

LD_HELP = """\
Usage: ld.so [OPTION]... EXECUTABLE-FILE [ARGS-FOR-PROGRAM...]

Subdirectories of glibc-hwcaps directories, in priority order:
  x86-64-v4
  x86-64-v3 (supported, searched)
  x86-64-v2 (supported, searched)
"""


def test_parse_cpu_level_takes_first_supported_line():
    assert probe.parse_cpu_level(LD_HELP) == 3


def test_parse_cpu_level_without_marker_is_one():
    assert probe.parse_cpu_level("Subdirectories of glibc-hwcaps directories:\n  x86-64-v4\n") == 1
    assert probe.parse_cpu_level("") == 1


def test_cpu_level_is_cached(fake_run):
    fake_run.on([config.LD_LOADER, "--help"], stdout=LD_HELP)

    assert probe.cpu_level() == 3
    assert probe.cpu_level() == 3
    assert len(fake_run.called(config.LD_LOADER)) == 1


def test_cpu_level_missing_loader_is_one(fake_run):
    fake_run.on([config.LD_LOADER], rc=127, stderr="No such file or directory\n")

    assert probe.cpu_level() == 1


def test_running_kernel_splits_version(fake_run):
    fake_run.on(["uname", "-r"], stdout="6.11.3-301.cachyos.fc40.x86_64\n")

    kernel = probe.running_kernel()

    assert kernel.release == "6.11.3-301.cachyos.fc40.x86_64"
    assert kernel.version == "6.11.3"


def test_running_kernel_unknown_on_failure(fake_run):
    kernel = probe.running_kernel()

    assert kernel.release == probe.UNKNOWN
    assert kernel.version == probe.UNKNOWN


def test_gpu_vendor(fake_run):
    fake_run.on(["lspci", "-k"], stdout="01:00.0 VGA compatible controller: NVIDIA Corporation AD104\n")
    assert probe.gpu_vendor() == "NVIDIA"


def test_gpu_vendor_unknown_when_lspci_fails(fake_run):
    assert probe.gpu_vendor() == "Unknown"


def test_package_owning(fake_run):
    fake_run.on(["rpm", "-qf"], stdout="kernel-core-6.11.3-300.fc41.x86_64\n")

    assert probe.package_owning("/boot/vmlinuz-6.11.3-300.fc41.x86_64") == "kernel-core-6.11.3-300.fc41.x86_64"


def test_package_owning_none_when_not_owned(fake_run):
    fake_run.on(["rpm", "-qf"], rc=1, stdout="file /x is not owned by any package\n")

    assert probe.package_owning("/x") is None


def test_sched_bore(fake_run):
    fake_run.on(["sysctl", "-n", "kernel.sched_bore"], stdout="1\n")
    assert probe.sched_bore_enabled()


def test_fedora_release_default(fake_run):
    fake_run.on(["rpm", "-E", "%fedora"], stdout="%fedora\n")
    assert probe.fedora_release() == "40"
