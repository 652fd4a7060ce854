"""
AutoWinApps uninstaller.

Removes what the installer put in place. Every category except the WinApps
binaries and helper scripts is guarded by its own prompt, and declining one
never affects the others.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Iterable, List, MutableMapping, Optional

from . import ui
from .context import Backend, build_context, detect_host_profile
from .desktop import DesktopEnv, detect_desktop_environment, refresh_desktop_database, refresh_kde_menus
from .errors import InstallerError
from .lib.command import command_exists, run_cmd, sudo
from .lib.env import Paths, current_user
from .lib.files import remove_path
from .logging_utils import configure_logging, console, log_success
from .osmodules import load_os_module
from .state_store import load_checkpoint

logger = logging.getLogger(__name__)

DESKTOP_FILE_PATTERNS = ("*winapps*", "windows.desktop", "ms-office-protocol-handler.desktop")
SYSTEM_PREFIX = "/usr/local"


def _desktop_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    found: List[Path] = []
    for pattern in DESKTOP_FILE_PATTERNS:
        found += [p for p in directory.glob(pattern) if p not in found]
    return found


def _remove_all(paths: Iterable[Path], *, privileged: bool = False) -> int:
    return sum(1 for p in paths if remove_path(p, dry_run=False, privileged=privileged))


def remove_winapps(paths: Paths) -> None:
    ui.header("Removing WinApps Installation")
    if command_exists("winapps-setup"):
        logger.info("Removing user WinApps installation...")
        run_cmd(["winapps-setup", "--user", "--uninstall"], check=False)
        logger.info("Removing system WinApps installation...")
        run_cmd(sudo(["winapps-setup", "--system", "--uninstall"]), check=False)
    else:
        logger.warning("winapps-setup not found, manual cleanup will be performed")

    logger.info("Performing manual cleanup...")
    names = ("winapps", "winapps-setup", "winapps-src", "windows", "winapps-kde-integration")
    _remove_all(paths.local_bin / n for n in names)
    _remove_all([paths.home / ".local/share/winapps"])
    _remove_all(_desktop_files(paths.applications_dir))

    sys_bin = paths.system(f"{SYSTEM_PREFIX}/bin")
    _remove_all((sys_bin / n for n in ("winapps", "winapps-setup", "winapps-src", "windows")), privileged=True)
    _remove_all([paths.system(f"{SYSTEM_PREFIX}/share/winapps")], privileged=True)
    _remove_all(_desktop_files(paths.system("/usr/share/applications")), privileged=True)
    log_success(logger, "WinApps installation removed")


def remove_configurations(paths: Paths) -> None:
    ui.header("Removing Configuration Files")
    if ui.confirm("Remove WinApps configuration files?"):
        remove_path(paths.winapps_config_dir, dry_run=False)
        # The dockur storage directory holds the Windows disk and is kept.
        remove_path(paths.dockur_config_dir / "docker-compose.yml", dry_run=False)
        log_success(logger, "Configuration files removed")
    else:
        logger.info("Configuration files preserved")


def remove_helper_scripts(paths: Paths) -> None:
    ui.header("Removing Helper Scripts")
    _remove_all(
        [
            paths.home / "create-windows-vm.sh",
            paths.home / "manage-windows.sh",
            paths.local_bin / "winapps-refresh-desktop",
        ]
    )
    log_success(logger, "Helper scripts removed")


def latest_docker_backup(paths: Paths) -> Optional[Path]:
    daemon = paths.docker_daemon_json
    if not daemon.parent.is_dir():
        return None
    backups = sorted(daemon.parent.glob(f"{daemon.name}.backup-*"))
    return backups[-1] if backups else None


def remove_container_configs(paths: Paths) -> None:
    ui.header("Removing Container Configurations")
    if not ui.confirm("Remove Docker/Podman configuration changes made by AutoWinApps?"):
        logger.info("Container configurations preserved")
        return

    if paths.docker_daemon_json.parent.is_dir():
        logger.info("Checking for Docker configuration backups...")
        backup = latest_docker_backup(paths)
        if backup is None:
            logger.warning("No Docker configuration backup found")
        else:
            logger.info("Restoring Docker configuration from %s...", str(backup))
            run_cmd(sudo(["cp", str(backup), str(paths.docker_daemon_json)]), check=False)
            log_success(logger, "Docker configuration restored")

    if remove_path(paths.containers_config_dir / "storage.conf", dry_run=False):
        log_success(logger, "Podman configuration removed")


def stop_services() -> None:
    ui.header("Stopping Virtualization Services")
    if ui.confirm("Stop and disable libvirt services?"):
        run_cmd(sudo(["systemctl", "stop", "libvirtd"]), check=False)
        run_cmd(sudo(["systemctl", "disable", "libvirtd"]), check=False)
        log_success(logger, "Services stopped and disabled")
    else:
        logger.info("Services left running")


def remove_user_from_groups(user: str) -> None:
    ui.header("Removing User from Virtualization Groups")
    if not ui.confirm("Remove user from libvirt and kvm groups?"):
        logger.info("Group membership preserved")
        return
    for group in ("libvirt", "kvm"):
        if not run_cmd(sudo(["gpasswd", "-d", user, group]), check=False).ok:
            logger.warning("User not in %s group", group)
    log_success(logger, "User removed from groups")
    logger.warning("You need to log out and log back in for group changes to take effect")


def remove_packages(paths: Paths, environ: MutableMapping[str, str]) -> None:
    ui.header("Package Removal Options")
    try:
        profile = detect_host_profile(paths, environ)
    except InstallerError as e:
        logger.warning("Automatic package removal not supported for this distribution (%s)", e)
        return

    backend = Backend.LIBVIRT
    try:
        cp = load_checkpoint(paths.checkpoint_file)
    except InstallerError as e:
        logger.debug("Ignoring unreadable checkpoint: %s", e)
        cp = None
    if cp is not None:
        backend = cp.choice.backend

    module = load_os_module(profile.os_id, build_context(paths, profile, environ=environ))
    console.print("The following packages were installed for WinApps:")
    for pkg in module.removable_packages(backend):
        console.print(f"   • {pkg}")
    console.print()

    if ui.confirm("Do you want to remove these packages?"):
        module.remove_packages(backend)
        log_success(logger, "Package removal completed")
    else:
        logger.info("Packages preserved")


def cleanup_desktop_integration(paths: Paths, environ: MutableMapping[str, str]) -> None:
    ui.header("Cleaning Up Desktop Integration")
    refresh_desktop_database(str(paths.applications_dir), str(paths.icons_dir))
    if detect_desktop_environment(environ) is DesktopEnv.KDE:
        logger.info("Refreshing KDE menus...")
        refresh_kde_menus()
    log_success(logger, "Desktop integration cleaned up")


def show_summary() -> None:
    ui.header("Uninstallation Summary")
    console.print("[green]AutoWinApps uninstallation completed![/green]")
    console.print()
    console.print("What was removed:")
    console.print("- WinApps binaries and scripts")
    console.print("- Desktop application entries")
    console.print("- Helper scripts")
    console.print()
    console.print("What you may need to do manually:")
    console.print("- Remove any Windows VMs you created")
    console.print("- Clean up VM disk images in /var/lib/libvirt/images/")
    console.print("- Remove any custom ZFS datasets or Btrfs subvolumes created for containers")
    console.print()
    console.print("Configuration files and packages were only removed if you chose to remove them.")


def run(*, paths: Optional[Paths] = None, environ: Optional[MutableMapping[str, str]] = None) -> int:
    env = os.environ if environ is None else environ
    paths = paths or Paths.from_env(env)
    configure_logging(str(paths.log_file))

    ui.header("AutoWinApps Uninstallation")
    console.print("This will help you remove AutoWinApps and its components.")
    console.print("You will be prompted before removing each component.")
    console.print()
    if not ui.confirm("Continue with uninstallation?"):
        console.print("Uninstallation cancelled.")
        return 0

    remove_winapps(paths)
    remove_configurations(paths)
    remove_helper_scripts(paths)
    remove_container_configs(paths)
    stop_services()
    remove_user_from_groups(current_user(env))
    remove_packages(paths, env)
    cleanup_desktop_integration(paths, env)
    show_summary()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="autowinapps-uninstall",
        description="Remove AutoWinApps and the components it installed.",
    )
    p.parse_args(argv)
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
