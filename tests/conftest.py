from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from autowinapps.context import Backend, HostProfile, InstallChoice, InstallContext, SetupMethod
from autowinapps.lib.env import Paths
from autowinapps.lib.hwdetect import HostFacts
from autowinapps.lib.osdetect import OsId
from autowinapps.logging_utils import reset_logging


class FakeRunner:
    """Stands in for subprocess.run; records argv and replays canned results."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[object] = []
        self.rules: List[tuple] = []

    def on(self, prefix: List[str], returncode: int = 0, stdout: str = "") -> None:
        self.rules.insert(0, (list(prefix), returncode, stdout))

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(kwargs.get("input"))
        for prefix, rc, out in self.rules:
            if argv[: len(prefix)] == prefix:
                return subprocess.CompletedProcess(argv, rc, out, "")
        return subprocess.CompletedProcess(argv, 0, "", "")

    def ran(self, *prefix: str) -> bool:
        return any(c[: len(prefix)] == list(prefix) for c in self.calls)


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()


@pytest.fixture
def commands(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr("autowinapps.lib.command.subprocess.run", runner)
    return runner


@pytest.fixture
def paths(tmp_path) -> Paths:
    p = Paths(home=tmp_path / "home", system_root=tmp_path / "root")
    p.home.mkdir(parents=True)
    p.system_root.mkdir(parents=True)
    return p


@pytest.fixture
def write_os_release(paths) -> Callable[..., Path]:
    def _write(os_id: str = "ubuntu", version: str = "24.04", name: str = "Ubuntu", codename: str = "noble") -> Path:
        target = paths.os_release
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            f'NAME="{name}"\nID={os_id}\nVERSION_ID="{version}"\nVERSION_CODENAME={codename}\n',
            encoding="utf-8",
        )
        return target

    return _write


def make_profile(os_id: OsId = OsId.UBUNTU, version: str = "24.04", **overrides) -> HostProfile:
    values: Dict[str, object] = dict(
        os_id=os_id,
        os_version=version,
        os_name=os_id.value.title(),
        os_codename="noble",
        architecture="amd64",
        kernel_version="6.8.0-generic",
        desktop_environment="gnome",
        root_filesystem_type="ext4",
    )
    values.update(overrides)
    return HostProfile(**values)


def make_context(
    paths: Paths,
    *,
    os_id: OsId = OsId.UBUNTU,
    version: str = "24.04",
    method: SetupMethod = SetupMethod.DOCKUR,
    backend: Backend = Backend.DOCKER,
    dry_run: bool = False,
    **profile_overrides,
) -> InstallContext:
    ctx = InstallContext(
        profile=make_profile(os_id, version, **profile_overrides),
        paths=paths,
        user="tester",
        dry_run=dry_run,
    )
    return ctx.with_choice(InstallChoice(setup_method=method, backend=backend))


@pytest.fixture
def make_ctx(paths) -> Callable[..., InstallContext]:
    def _make(**kwargs) -> InstallContext:
        return make_context(paths, **kwargs)

    return _make


@pytest.fixture
def host_facts() -> HostFacts:
    gb = 1024 ** 3
    return HostFacts(
        machine="x86_64",
        kernel_release="6.8.0-45-generic",
        cpu_model="Test CPU",
        cpu_cores=8,
        cpu_flags=frozenset({"vmx"}),
        mem_total_kb=16 * 1024 * 1024,
        mem_available_kb=12 * 1024 * 1024,
        home_free_bytes=200 * gb,
        root_free_bytes=40 * gb,
        kvm_present=True,
        kvm_accessible=True,
        modules_loaded=frozenset({"kvm", "tun", "bridge"}),
        modules_available=frozenset({"kvm", "tun", "bridge"}),
        internet=True,
        reachable={"github.com:443": True},
        sudo_installed=True,
        sudo_passwordless=True,
    )
