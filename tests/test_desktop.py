from __future__ import annotations

import pytest

from autowinapps.desktop import DesktopEnv, configure_desktop_integration, detect_desktop_environment


@pytest.mark.parametrize(
    "env,expected",
    [
        ({"XDG_CURRENT_DESKTOP": "KDE"}, DesktopEnv.KDE),
        ({"XDG_CURRENT_DESKTOP": "KDE", "WAYLAND_DISPLAY": "wayland-0"}, DesktopEnv.KDE),
        ({"DESKTOP_SESSION": "plasmawayland"}, DesktopEnv.KDE),
        ({"KDE_FULL_SESSION": "true", "XDG_CURRENT_DESKTOP": "GNOME"}, DesktopEnv.KDE),
        ({"XDG_CURRENT_DESKTOP": "ubuntu:GNOME"}, DesktopEnv.GNOME),
        ({"XDG_CURRENT_DESKTOP": "XFCE"}, DesktopEnv.XFCE),
        ({"XDG_CURRENT_DESKTOP": "X-Cinnamon"}, DesktopEnv.CINNAMON),
        ({"DESKTOP_SESSION": "mate"}, DesktopEnv.MATE),
        ({"XDG_CURRENT_DESKTOP": "Budgie:GNOME"}, DesktopEnv.GNOME),
        ({"XDG_CURRENT_DESKTOP": "Budgie"}, DesktopEnv.BUDGIE),
        ({"XDG_CURRENT_DESKTOP": "LXQt"}, DesktopEnv.LXQT),
        ({"DESKTOP_SESSION": "LXDE", "XDG_CURRENT_DESKTOP": "LXDE"}, DesktopEnv.LXDE),
        ({"XDG_CURRENT_DESKTOP": "Unity"}, DesktopEnv.UNITY),
        ({"XDG_CURRENT_DESKTOP": "Pantheon"}, DesktopEnv.PANTHEON),
        ({"WAYLAND_DISPLAY": "wayland-0", "DISPLAY": ":0"}, DesktopEnv.WAYLAND_GENERIC),
        ({"DISPLAY": ":0"}, DesktopEnv.X11_GENERIC),
        ({}, DesktopEnv.GENERIC),
    ],
)
def test_detect_desktop_environment(env, expected):
    assert detect_desktop_environment(env) is expected


def test_integration_writes_refresh_script_and_stub(make_ctx, commands):
    ctx = make_ctx(desktop_environment="kde")
    assert configure_desktop_integration(ctx) is DesktopEnv.KDE

    script = ctx.paths.local_bin / "winapps-refresh-desktop"
    assert script.read_text(encoding="utf-8").startswith("#!")
    assert script.stat().st_mode & 0o111
    stub = ctx.paths.winapps_config_dir / "kde-integration.conf"
    assert "ENABLE_KRUNNER_SEARCH=true" in stub.read_text(encoding="utf-8")


def test_integration_without_stub(make_ctx, commands):
    ctx = make_ctx(desktop_environment="budgie")
    configure_desktop_integration(ctx)
    assert not ctx.paths.winapps_config_dir.exists()


def test_integration_dry_run_writes_nothing(make_ctx, commands):
    ctx = make_ctx(desktop_environment="gnome", dry_run=True)
    configure_desktop_integration(ctx)
    assert not (ctx.paths.local_bin / "winapps-refresh-desktop").exists()
    assert commands.calls == []
