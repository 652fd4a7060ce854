from __future__ import annotations

import getpass
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class Paths:
    """Fixed locations used by the installer and uninstaller.

    User-level paths hang off ``home``; system-level paths hang off
    ``system_root`` (``/`` outside of tests).
    """

    home: Path
    system_root: Path = field(default=Path("/"))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Paths":
        env = os.environ if environ is None else environ
        home = env.get("HOME") or str(Path.home())
        return cls(home=Path(home))

    def system(self, rel: str) -> Path:
        return self.system_root / rel.lstrip("/")

    # ~/.cache
    @property
    def log_file(self) -> Path:
        return self.home / ".cache/winapps-install.log"

    @property
    def checkpoint_file(self) -> Path:
        return self.home / ".cache/winapps-install.conf"

    @property
    def system_report(self) -> Path:
        return self.home / ".cache/winapps-system-report.txt"

    # ~/.config
    @property
    def winapps_config_dir(self) -> Path:
        return self.home / ".config/winapps"

    @property
    def containers_config_dir(self) -> Path:
        return self.home / ".config/containers"

    @property
    def dockur_config_dir(self) -> Path:
        return self.home / ".config/dockur-windows"

    @property
    def systemd_user_dir(self) -> Path:
        return self.home / ".config/systemd/user"

    # ~/.local
    @property
    def local_bin(self) -> Path:
        return self.home / ".local/bin"

    @property
    def applications_dir(self) -> Path:
        return self.home / ".local/share/applications"

    @property
    def icons_dir(self) -> Path:
        return self.home / ".local/share/icons"

    # system
    @property
    def os_release(self) -> Path:
        return self.system("/etc/os-release")

    @property
    def docker_daemon_json(self) -> Path:
        return self.system("/etc/docker/daemon.json")

    @property
    def sysctl_dir(self) -> Path:
        return self.system("/etc/sysctl.d")


def force_install_requested(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return str(env.get("FORCE_INSTALL", "false")).strip().lower() == "true"


def current_user(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return env.get("USER") or getpass.getuser()
