from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .context import Backend, InstallContext, SetupMethod
from .lib.command import command_exists, run_cmd
from .lib.files import write_file
from .lib.manifests import render_asset
from .logging_utils import log_success
from .state_store import format_shell_vars

logger = logging.getLogger(__name__)

WINAPPS_REPO = "https://github.com/winapps-org/winapps.git"
DOCKUR_IMAGE = "dockurr/windows"

RDP_USER = "MyWindowsUser"
RDP_PASS = "MyWindowsPassword"


def dockur_compose(*, storage_dir: str) -> Dict[str, Any]:
    return {
        "name": "winapps",
        "services": {
            "windows": {
                "image": DOCKUR_IMAGE,
                "container_name": "WinApps",
                "environment": {
                    "VERSION": "11",
                    "RAM_SIZE": "4G",
                    "CPU_CORES": "4",
                    "DISK_SIZE": "64G",
                    "USERNAME": RDP_USER,
                    "PASSWORD": RDP_PASS,
                    "HOME": "${HOME}",
                },
                "privileged": True,
                "ports": ["8006:8006", "3389:3389/tcp", "3389:3389/udp"],
                "cap_add": ["NET_ADMIN"],
                "stop_grace_period": "120s",
                "restart": "on-failure",
                "volumes": [f"{storage_dir}:/storage", "${HOME}:/shared"],
                "devices": ["/dev/kvm", "/dev/net/tun"],
            }
        },
    }


def create_dockur_config(ctx: InstallContext) -> Optional[Path]:
    if ctx.setup_method is not SetupMethod.DOCKUR:
        logger.info("Manual setup selected; skipping dockur configuration")
        return None

    cfg_dir = ctx.paths.dockur_config_dir
    compose_file = cfg_dir / "docker-compose.yml"
    storage = cfg_dir / "storage"
    if ctx.dry_run:
        logger.info("DRY RUN: would create %s", str(storage))
    else:
        storage.mkdir(parents=True, exist_ok=True)
    doc = dockur_compose(storage_dir=str(storage))
    write_file(compose_file, yaml.safe_dump(doc, sort_keys=False), dry_run=ctx.dry_run)
    log_success(logger, "dockur configuration written to %s", str(compose_file))
    return compose_file


def winapps_conf_values(backend: Backend) -> Dict[str, str]:
    return {
        "RDP_USER": RDP_USER,
        "RDP_PASS": RDP_PASS,
        "RDP_DOMAIN": "",
        # libvirt guests get their address from the default network.
        "RDP_IP": "" if backend is Backend.LIBVIRT else "127.0.0.1",
        "VM_NAME": "RDPWindows",
        "WAFLAVOR": backend.value,
        "RDP_SCALE": "100",
        "REMOVABLE_MEDIA": "/run/media",
        "RDP_FLAGS": "/cert:tofu /sound /microphone +home-drive",
        "DEBUG": "true",
        "AUTOPAUSE": "off",
        "AUTOPAUSE_TIME": "300",
        "FREERDP_COMMAND": "",
    }


def create_winapps_config(ctx: InstallContext) -> Path:
    conf = ctx.paths.winapps_config_dir / "winapps.conf"
    header = "# WinApps configuration\n# Generated by AutoWinApps installer\n\n"
    write_file(conf, header + format_shell_vars(winapps_conf_values(ctx.backend)), dry_run=ctx.dry_run, mode=0o600)
    log_success(logger, "WinApps configuration written to %s", str(conf))
    return conf


def _link(target: Path, link: Path, *, dry_run: bool) -> None:
    if dry_run:
        logger.info("DRY RUN: would link %s -> %s", str(link), str(target))
        return
    link.parent.mkdir(parents=True, exist_ok=True)
    if link.is_symlink() or link.exists():
        link.unlink()
    link.symlink_to(target)


def setup_winapps(ctx: InstallContext) -> Path:
    """Clone or update the WinApps checkout and link its entry points."""

    src = ctx.paths.local_bin / "winapps-src"
    if (src / ".git").is_dir():
        logger.info("Updating WinApps checkout in %s...", str(src))
        run_cmd(["git", "-C", str(src), "pull", "--ff-only"], dry_run=ctx.dry_run)
    else:
        logger.info("Cloning WinApps into %s...", str(src))
        run_cmd(["git", "clone", "--depth", "1", WINAPPS_REPO, str(src)], dry_run=ctx.dry_run)

    _link(src / "bin" / "winapps", ctx.paths.local_bin / "winapps", dry_run=ctx.dry_run)
    _link(src / "setup.sh", ctx.paths.local_bin / "winapps-setup", dry_run=ctx.dry_run)
    log_success(logger, "WinApps installed to %s", str(ctx.paths.local_bin))
    return src


def compose_command(backend: Backend) -> str:
    if backend is Backend.PODMAN:
        return "podman-compose"
    return "docker compose" if not command_exists("docker-compose") else "docker-compose"


def create_management_scripts(ctx: InstallContext) -> Path:
    if ctx.setup_method is SetupMethod.DOCKUR:
        script = ctx.paths.home / "manage-windows.sh"
        contents = render_asset(
            "manage-windows.sh",
            compose_dir=str(ctx.paths.dockur_config_dir),
            compose_cmd=compose_command(ctx.backend),
        )
    else:
        script = ctx.paths.home / "create-windows-vm.sh"
        contents = render_asset(
            "create-windows-vm.sh",
            backend=ctx.backend.value,
            config_dir=str(ctx.paths.dockur_config_dir),
        )
    write_file(script, contents, dry_run=ctx.dry_run, mode=0o755)
    log_success(logger, "Created %s", str(script))
    return script
