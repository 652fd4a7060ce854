from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Optional

from .lib.env import Paths, current_user
from .lib.hwdetect import normalize_arch
from .lib.osdetect import OsId, OsRelease, detect_os


class Backend(str, Enum):
    LIBVIRT = "libvirt"
    DOCKER = "docker"
    PODMAN = "podman"


class SetupMethod(str, Enum):
    DOCKUR = "dockur"
    MANUAL = "manual"

    @property
    def label(self) -> str:
        return "Automated (dockur/windows)" if self is SetupMethod.DOCKUR else "Manual VM setup"


# Backends offered per setup method, default first.
BACKENDS_FOR_METHOD = {
    SetupMethod.DOCKUR: (Backend.DOCKER, Backend.PODMAN),
    SetupMethod.MANUAL: (Backend.LIBVIRT, Backend.DOCKER, Backend.PODMAN),
}


@dataclass(frozen=True)
class HostProfile:
    os_id: OsId
    os_version: str
    os_name: str
    os_codename: str
    architecture: str
    kernel_version: str
    desktop_environment: str
    root_filesystem_type: str


@dataclass(frozen=True)
class InstallChoice:
    setup_method: SetupMethod
    backend: Backend

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS_FOR_METHOD[self.setup_method]:
            raise ValueError(f"{self.backend.value} is not available for {self.setup_method.value} setup")


@dataclass(frozen=True)
class InstallContext:
    """Everything a step or OS module needs to know about this run.

    Built once; ``with_choice`` derives the copy used after the user picked
    a setup method and backend.
    """

    profile: HostProfile
    paths: Paths
    user: str = ""
    dry_run: bool = False
    skip_updates: bool = False
    force: bool = False
    choice: Optional[InstallChoice] = field(default=None)

    def with_choice(self, choice: InstallChoice) -> "InstallContext":
        return replace(self, choice=choice)

    @property
    def backend(self) -> Backend:
        if self.choice is None:
            raise RuntimeError("backend requested before an install choice was made")
        return self.choice.backend

    @property
    def setup_method(self) -> SetupMethod:
        if self.choice is None:
            raise RuntimeError("setup method requested before an install choice was made")
        return self.choice.setup_method


def detect_host_profile(
    paths: Paths,
    environ: Optional[Mapping[str, str]] = None,
    *,
    release: Optional[OsRelease] = None,
) -> HostProfile:
    """Snapshot the host (OS, architecture, kernel, desktop, root fs)."""

    from .containers import detect_root_filesystem
    from .desktop import detect_desktop_environment

    env = os.environ if environ is None else environ
    rel = release or detect_os(paths.os_release)
    return HostProfile(
        os_id=rel.os_id,
        os_version=rel.version,
        os_name=rel.name,
        os_codename=rel.codename,
        architecture=normalize_arch(platform.machine()),
        kernel_version=platform.release(),
        desktop_environment=detect_desktop_environment(env).value,
        root_filesystem_type=detect_root_filesystem(),
    )


def build_context(
    paths: Paths,
    profile: HostProfile,
    *,
    environ: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
    skip_updates: bool = False,
    force: bool = False,
) -> InstallContext:
    return InstallContext(
        profile=profile,
        paths=paths,
        user=current_user(environ),
        dry_run=dry_run,
        skip_updates=skip_updates,
        force=force,
    )
