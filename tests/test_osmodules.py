from __future__ import annotations

from dataclasses import replace

import pytest

from autowinapps.context import Backend, SetupMethod
from autowinapps.errors import InstallerError
from autowinapps.lib.osdetect import OsId
from autowinapps.lib.pkg import InstallOutcome
from autowinapps.osmodules import OS_MODULES, CachyOSModule, DebianModule, UbuntuModule, load_os_module


@pytest.fixture(autouse=True)
def _not_root(monkeypatch):
    monkeypatch.setattr("autowinapps.lib.command.os.geteuid", lambda: 1000)


def test_one_module_per_supported_os():
    assert set(OS_MODULES) == set(OsId)


@pytest.mark.parametrize("os_id", list(OsId))
def test_manifests_load(make_ctx, os_id):
    module = load_os_module(os_id, make_ctx(os_id=os_id))
    assert module.os_id is os_id
    assert module.backend_packages(Backend.LIBVIRT)
    assert module.manifest["packages"]["rdp_client"]


def test_required_packages_uses_first_known_rdp_client(make_ctx, commands):
    commands.on(["apt-cache", "show", "freerdp3-x11"], returncode=100)
    module = UbuntuModule(make_ctx(version="22.04"))
    pkgs = module.required_packages(Backend.DOCKER)
    assert "freerdp2-x11" in pkgs and "freerdp3-x11" not in pkgs
    assert pkgs[-2:] == ["docker.io", "docker-compose"]


def test_check_requirements_needs_package_manager(make_ctx, monkeypatch):
    monkeypatch.setattr("autowinapps.osmodules.base.command_exists", lambda name: False)
    assert UbuntuModule(make_ctx()).check_requirements() is False


def test_update_failure_is_fatal(make_ctx, commands):
    commands.on(["sudo", "env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "update"], returncode=1)
    with pytest.raises(InstallerError):
        UbuntuModule(make_ctx()).update_system()


def test_skip_updates(make_ctx, commands):
    ctx = replace(make_ctx(), skip_updates=True)
    UbuntuModule(ctx).update_system()
    assert commands.calls == []


def test_ubuntu_dependencies_dry_run(make_ctx, commands):
    module = UbuntuModule(make_ctx(dry_run=True))
    assert module.install_dependencies(Backend.DOCKER) is InstallOutcome.OK
    assert module.last_report.installed[-1] == "docker-compose"
    assert commands.calls == []


def test_ubuntu_kubic_only_for_old_releases(make_ctx):
    assert UbuntuModule(make_ctx(version="20.04")).kubic_slug() == "xUbuntu_20.04"
    assert UbuntuModule(make_ctx(version="24.04")).kubic_slug() is None


def test_debian_enables_components_and_backports(make_ctx, commands):
    ctx = make_ctx(os_id=OsId.DEBIAN, version="12", os_codename="bookworm")
    sources = ctx.paths.system("/etc/apt/sources.list")
    sources.parent.mkdir(parents=True)
    sources.write_text("deb http://deb.debian.org/debian bookworm main\n", encoding="utf-8")

    DebianModule(ctx).enable_repositories()

    seds = [c for c in commands.calls if c[1:3] == ["sed", "-i"]]
    assert [c[3] for c in seds] == ["s/main$/main contrib/", "s/contrib$/contrib non-free-firmware/"]
    backports = ctx.paths.system("/etc/apt/sources.list.d/debian-backports.list")
    assert "bookworm-backports" in backports.read_text(encoding="utf-8")
    assert commands.ran("sudo", "env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "update")


def test_kubic_fallback_pipes_key(make_ctx, commands):
    ctx = make_ctx(os_id=OsId.DEBIAN, version="11", method=SetupMethod.DOCKUR, backend=Backend.PODMAN)
    commands.on(["curl"], stdout="-----BEGIN PGP PUBLIC KEY BLOCK-----\n")
    module = DebianModule(ctx)
    assert module.install_from_kubic("podman")

    gpg = commands.calls.index(["sudo", "gpg", "--dearmor", "--yes", "-o", "/etc/apt/keyrings/devel_kubic_libcontainers_stable.gpg"])
    assert commands.inputs[gpg].startswith("-----BEGIN PGP")
    listing = ctx.paths.system("/etc/apt/sources.list.d/devel:kubic:libcontainers:stable.list")
    assert "Debian_11" in listing.read_text(encoding="utf-8")


def test_libvirt_services_skip_network_when_active(make_ctx, commands):
    commands.on(["virsh", "net-list"], stdout=" Name      State    Autostart\n default   active   yes\n")
    module = UbuntuModule(make_ctx(method=SetupMethod.MANUAL, backend=Backend.LIBVIRT))
    module.configure_services(Backend.LIBVIRT)
    assert commands.ran("sudo", "usermod", "-aG", "libvirt,kvm", "tester")
    assert not commands.ran("virsh", "net-start")


def test_sysctl_written_once(make_ctx, commands):
    ctx = make_ctx()
    module = UbuntuModule(ctx)
    module.write_sysctl()
    conf = ctx.paths.sysctl_dir / "99-winapps-ubuntu.conf"
    text = conf.read_text(encoding="utf-8")
    assert text.startswith("# Ubuntu WinApps optimizations\n")
    assert "vm.swappiness = 10" in text

    commands.calls.clear()
    module.write_sysctl()
    assert commands.calls == []


def test_cachyos_aur_fallback(make_ctx, commands, monkeypatch):
    monkeypatch.setattr("autowinapps.osmodules.cachyos.command_exists", lambda name: name == "paru")
    module = CachyOSModule(make_ctx(os_id=OsId.CACHYOS, version="rolling"))
    assert module.install_from_aur("freerdp")
    assert ["paru", "-S", "--needed", "--noconfirm", "freerdp"] in commands.calls


def test_remove_packages_tries_each_rdp_client(make_ctx, commands):
    commands.on(["sudo", "env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "remove"], returncode=100)
    module = UbuntuModule(make_ctx())
    assert module.remove_packages(Backend.DOCKER) is False
    removes = [c for c in commands.calls if "remove" in c]
    assert [c[-1] for c in removes] == ["freerdp3-x11", "freerdp2-x11"]
    assert commands.ran("sudo", "env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "autoremove", "-y")


def test_remove_packages_removes_every_rdp_client(make_ctx, commands):
    module = UbuntuModule(make_ctx())
    assert module.remove_packages(Backend.DOCKER) is True
    removes = [c for c in commands.calls if "remove" in c]
    assert [c[-1] for c in removes] == ["freerdp3-x11", "freerdp2-x11"]
