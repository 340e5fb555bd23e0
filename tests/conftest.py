import subprocess
from pathlib import Path

import pytest

from computer_vm import boot
from computer_vm.main import build_parser


class FakeProcess:
    """Stand-in for subprocess.Popen that records how it was driven."""

    _next_pid = 4000

    def __init__(self, args):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.args = list(args)
        self.returncode = None
        self.terminated = False
        self.killed = False
        self.wait_calls = []

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        self.wait_calls.append(timeout)
        return self.returncode


class PopenRecorder:
    """Replaces subprocess.Popen; can fail or run a hook for a given executable."""

    def __init__(self):
        self.spawned = []
        self.fail_for = set()
        self.on_spawn = None

    def __call__(self, args, **kwargs):
        if args[0] in self.fail_for:
            raise FileNotFoundError(2, "No such file or directory", args[0])
        proc = FakeProcess(args)
        self.spawned.append(proc)
        if self.on_spawn:
            self.on_spawn(proc)
        return proc

    def by_executable(self, name):
        return [p for p in self.spawned if p.args[0] == name]


@pytest.fixture
def machine_config(tmp_path):
    """Default CLI configuration with the machine layout rooted in tmp_path and no delays."""
    config = vars(build_parser().parse_args([]))
    config.pop("debug_file")
    config.pop("verbose")
    config.update(
        disk_image=str(tmp_path / "devices" / "disk" / "disk.qcow2"),
        rom_dir=str(tmp_path / "devices" / "rom"),
        uefi_code_path=str(tmp_path / "boot" / "firmware" / "OVMF_CODE.fd"),
        uefi_vars_path=str(tmp_path / "boot" / "firmware" / "OVMF_VARS.fd"),
        novnc_dir=str(tmp_path / "libraries" / "noVNC"),
        qemu_settle_delay=0,
        bridge_settle_delay=0,
        poll_interval=0.01,
        terminate_timeout=1,
    )
    return config


@pytest.fixture
def layout(machine_config):
    """Populates the machine layout; returns a function taking what should exist."""
    def _make(disk=True, isos=(), firmware=False, novnc=True):
        boot.prepare_environment(machine_config)
        if disk:
            Path(machine_config["disk_image"]).write_bytes(b"QFI\xfb")
        for name in isos:
            (Path(machine_config["rom_dir"]) / name).write_bytes(b"")
        if firmware:
            Path(machine_config["uefi_code_path"]).write_bytes(b"\xff" * 128)
        if novnc:
            Path(machine_config["novnc_dir"]).mkdir(parents=True, exist_ok=True)
        return machine_config
    return _make


@pytest.fixture
def fake_popen(monkeypatch):
    """Replaces process spawning; qemu-img runs always fail unless a test overrides them."""
    recorder = PopenRecorder()
    monkeypatch.setattr(subprocess, "Popen", recorder)
    monkeypatch.setattr(
        subprocess, "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, "", "qemu-img: unavailable in tests"),
    )
    return recorder


@pytest.fixture
def websockify_installed(monkeypatch):
    """Pretends websockify is on PATH."""
    monkeypatch.setattr(boot.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def websockify_missing(monkeypatch):
    """Pretends websockify is not installed."""
    monkeypatch.setattr(boot.shutil, "which", lambda name: None)


@pytest.fixture
def fake_process():
    """The FakeProcess class, for tests that drive handles directly."""
    return FakeProcess
