"""
Desktop environment detection and menu integration.

Detection is a pure function of the session environment. Integration writes
the refresh helper, an optional per-desktop settings stub, and refreshes the
application database.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Tuple

from .lib.command import command_exists, run_cmd
from .lib.files import write_file
from .lib.manifests import read_asset
from .logging_utils import log_success

if TYPE_CHECKING:
    from .context import InstallContext

logger = logging.getLogger(__name__)


class DesktopEnv(str, Enum):
    KDE = "kde"
    GNOME = "gnome"
    XFCE = "xfce"
    CINNAMON = "cinnamon"
    MATE = "mate"
    BUDGIE = "budgie"
    LXQT = "lxqt"
    LXDE = "lxde"
    UNITY = "unity"
    PANTHEON = "pantheon"
    WAYLAND_GENERIC = "wayland-generic"
    X11_GENERIC = "x11-generic"
    GENERIC = "generic"


Env = Mapping[str, str]

# (desktop, XDG_CURRENT_DESKTOP token, DESKTOP_SESSION token) in priority order.
_SESSION_RULES: List[Tuple[DesktopEnv, str, Optional[str]]] = [
    (DesktopEnv.GNOME, "GNOME", "gnome"),
    (DesktopEnv.XFCE, "XFCE", "xfce"),
    (DesktopEnv.CINNAMON, "Cinnamon", "cinnamon"),
    (DesktopEnv.MATE, "MATE", "mate"),
    (DesktopEnv.BUDGIE, "Budgie", None),
    (DesktopEnv.LXQT, "LXQt", "lxqt"),
    (DesktopEnv.LXDE, "LXDE", "lxde"),
    (DesktopEnv.UNITY, "Unity", None),
    (DesktopEnv.PANTHEON, "Pantheon", None),
]


def _is_kde(env: Env) -> bool:
    return (
        "KDE" in env.get("XDG_CURRENT_DESKTOP", "")
        or "plasma" in env.get("DESKTOP_SESSION", "")
        or bool(env.get("KDE_FULL_SESSION"))
    )


def detect_desktop_environment(environ: Optional[Env] = None) -> DesktopEnv:
    env = os.environ if environ is None else environ
    if _is_kde(env):
        return DesktopEnv.KDE

    current = env.get("XDG_CURRENT_DESKTOP", "")
    session = env.get("DESKTOP_SESSION", "")
    for desktop, xdg_token, session_token in _SESSION_RULES:
        if xdg_token in current or (session_token is not None and session_token in session):
            return desktop

    if env.get("WAYLAND_DISPLAY"):
        return DesktopEnv.WAYLAND_GENERIC
    if env.get("DISPLAY"):
        return DesktopEnv.X11_GENERIC
    return DesktopEnv.GENERIC


INTEGRATION_STUBS: Dict[DesktopEnv, str] = {
    DesktopEnv.KDE: (
        "# KDE Plasma integration settings\n"
        "ENABLE_TASKBAR_INTEGRATION=true\n"
        "ENABLE_KRUNNER_SEARCH=true\n"
        "ENABLE_ACTIVITY_INTEGRATION=true\n"
    ),
    DesktopEnv.GNOME: (
        "# GNOME integration settings\n"
        "ENABLE_ACTIVITIES_OVERVIEW=true\n"
        "ENABLE_SEARCH_INTEGRATION=true\n"
        "ENABLE_DOCK_INTEGRATION=true\n"
    ),
    DesktopEnv.XFCE: (
        "# XFCE integration settings\n"
        "ENABLE_WHISKER_MENU=true\n"
        "ENABLE_PANEL_LAUNCHER=true\n"
    ),
    DesktopEnv.CINNAMON: (
        "# Cinnamon integration settings\n"
        "ENABLE_MENU_INTEGRATION=true\n"
        "ENABLE_PANEL_INTEGRATION=true\n"
    ),
    DesktopEnv.MATE: (
        "# MATE integration settings\n"
        "ENABLE_PANEL_INTEGRATION=true\n"
        "ENABLE_MENU_INTEGRATION=true\n"
    ),
}


def refresh_desktop_database(home_applications: str, icons: str, *, dry_run: bool = False) -> None:
    """Best-effort refresh of the menu database and icon cache."""

    if command_exists("update-desktop-database"):
        run_cmd(["update-desktop-database", home_applications], check=False, dry_run=dry_run)
    if command_exists("gtk-update-icon-cache"):
        run_cmd(["gtk-update-icon-cache", "-f", "-t", icons], check=False, dry_run=dry_run)
    logger.debug("Desktop database updated")


def refresh_kde_menus(*, dry_run: bool = False) -> None:
    run_cmd(
        ["qdbus", "org.kde.plasmashell", "/PlasmaShell", "org.kde.PlasmaShell.refreshCurrentShell"],
        check=False,
        dry_run=dry_run,
    )
    for tool in ("kbuildsycoca5", "kbuildsycoca6"):
        if command_exists(tool):
            run_cmd([tool], check=False, dry_run=dry_run)
            break


def configure_desktop_integration(ctx: "InstallContext") -> DesktopEnv:
    desktop = DesktopEnv(ctx.profile.desktop_environment)
    logger.info("Detected desktop environment: %s", desktop.value)
    paths = ctx.paths

    script = paths.local_bin / "winapps-refresh-desktop"
    write_file(script, read_asset("winapps-refresh-desktop"), dry_run=ctx.dry_run, mode=0o755)
    logger.debug("Created universal refresh script: %s", str(script))

    stub = INTEGRATION_STUBS.get(desktop)
    if stub is not None:
        write_file(paths.winapps_config_dir / f"{desktop.value}-integration.conf", stub, dry_run=ctx.dry_run)
        logger.debug("%s integration configured", desktop.value)

    refresh_desktop_database(str(paths.applications_dir), str(paths.icons_dir), dry_run=ctx.dry_run)
    log_success(logger, "Desktop integration configured for %s", desktop.value)
    return desktop

