from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .context import Backend
from .lib.command import run_cmd
from .lib.env import Paths
from .lib.files import write_file
from .logging_utils import log_success

if TYPE_CHECKING:
    from .context import InstallContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    path: Path
    contents: str
    # System files need sudo and are backed up before overwrite.
    system: bool


def detect_root_filesystem() -> str:
    r = run_cmd(["findmnt", "-n", "-o", "FSTYPE", "/"], check=False)
    fs = r.stdout.strip() if r.ok else ""
    return fs or "unknown"


DOCKER_LOG_SETTINGS: Dict[str, Any] = {
    "log-driver": "json-file",
    "log-opts": {"max-size": "10m", "max-file": "3"},
}


def _docker_daemon(driver: str, opts: Optional[List[str]] = None) -> str:
    cfg: Dict[str, Any] = {"storage-driver": driver}
    if opts:
        cfg["storage-opts"] = opts
    cfg.update(DOCKER_LOG_SETTINGS)
    return json.dumps(cfg, indent=4) + "\n"


def _podman_storage(driver: str, paths: Paths, mountopt: Optional[str] = None) -> str:
    lines = [
        "[storage]",
        f'driver = "{driver}"',
        'runroot = "/run/containers/storage"',
        f'graphroot = "{paths.home}/.local/share/containers/storage"',
        "",
        "[storage.options]",
        "additionalimagestores = []",
    ]
    if mountopt:
        lines += ["", "[storage.options.overlay]", f'mountopt = "{mountopt}"']
    return "\n".join(lines) + "\n"


def storage_config_for(fs_type: str, backend: Backend, paths: Paths) -> Optional[StorageConfig]:
    """Container storage settings for the root filesystem, or None."""

    fs = (fs_type or "").lower()
    if backend is Backend.LIBVIRT or fs not in ("zfs", "btrfs"):
        return None

    if backend is Backend.DOCKER:
        if fs == "zfs":
            contents = _docker_daemon("overlay2", ["overlay2.override_kernel_check=true"])
        else:
            contents = _docker_daemon("btrfs")
        return StorageConfig(path=paths.docker_daemon_json, contents=contents, system=True)

    if fs == "zfs":
        contents = _podman_storage("overlay", paths, mountopt="nodev,metacopy=on")
    else:
        contents = _podman_storage("btrfs", paths)
    return StorageConfig(path=paths.containers_config_dir / "storage.conf", contents=contents, system=False)


def configure_filesystem_for_containers(ctx: "InstallContext") -> Optional[StorageConfig]:
    fs = ctx.profile.root_filesystem_type
    backend = ctx.backend
    logger.info("Root filesystem: %s", fs)

    cfg = storage_config_for(fs, backend, ctx.paths)
    if cfg is None:
        logger.info("No container storage changes needed for %s on %s", backend.value, fs)
        return None

    logger.info("Configuring %s storage for %s...", backend.value, fs)
    write_file(cfg.path, cfg.contents, dry_run=ctx.dry_run, privileged=cfg.system, backup=cfg.system)
    if cfg.system:
        logger.warning("Restart %s for the new storage driver to take effect", backend.value)
    log_success(logger, "%s storage configured for %s", backend.value, fs)
    return cfg
