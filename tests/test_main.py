from __future__ import annotations

from dataclasses import replace

import pytest

from autowinapps import main as cli
from autowinapps.context import Backend, InstallChoice, SetupMethod
from autowinapps.state_store import InstallCheckpoint, load_checkpoint, save_checkpoint


def _no_prompt(*args, **kwargs):
    raise AssertionError("unexpected prompt")


@pytest.fixture
def env(paths):
    return {"HOME": str(paths.home), "USER": "tester", "XDG_CURRENT_DESKTOP": "GNOME"}


@pytest.fixture
def host(monkeypatch, commands, host_facts, write_os_release):
    """A non-root Ubuntu 24.04 host with apt available."""

    write_os_release("ubuntu", "24.04", "Ubuntu", "noble")
    monkeypatch.setattr("autowinapps.main.os.geteuid", lambda: 1000)
    monkeypatch.setattr("autowinapps.osmodules.base.command_exists", lambda name: True)
    monkeypatch.setattr(cli, "gather_host_facts", lambda home: host_facts)
    monkeypatch.setattr("autowinapps.ui.choose_setup_method", lambda: SetupMethod.DOCKUR)
    monkeypatch.setattr("autowinapps.ui.choose_backend", lambda method: Backend.DOCKER)
    monkeypatch.setattr("autowinapps.ui.confirm", _no_prompt)
    return commands


def test_dry_run_changes_nothing(host, paths, env):
    assert cli.run(dry_run=True, paths=paths, environ=env) == 0

    # Only read-only probes may actually execute.
    assert all(argv[0] == "findmnt" for argv in host.calls)
    assert not (paths.home / ".config").exists()
    assert not (paths.home / ".local").exists()
    assert not (paths.home / "manage-windows.sh").exists()
    assert set(paths.system_root.rglob("*")) == {paths.os_release.parent, paths.os_release}

    cp = load_checkpoint(paths.checkpoint_file)
    assert cp.os_id == "ubuntu"
    assert cp.choice == InstallChoice(SetupMethod.DOCKUR, Backend.DOCKER)


def test_declining_confirmation_installs_nothing(host, paths, env, monkeypatch):
    monkeypatch.setattr("autowinapps.ui.confirm", lambda *a, **k: False)
    assert cli.run(paths=paths, environ=env) == 0
    assert not any(argv[0] == "sudo" for argv in host.calls)
    assert not paths.checkpoint_file.exists()


def test_resume_skips_prompts(host, paths, env, monkeypatch):
    save_checkpoint(
        paths.checkpoint_file,
        InstallCheckpoint("ubuntu", "24.04", InstallChoice(SetupMethod.MANUAL, Backend.LIBVIRT), "earlier"),
    )
    monkeypatch.setattr("autowinapps.ui.choose_setup_method", _no_prompt)
    monkeypatch.setattr("autowinapps.ui.choose_backend", _no_prompt)

    assert cli.run(dry_run=True, resume=True, paths=paths, environ=env) == 0
    assert load_checkpoint(paths.checkpoint_file).choice.backend is Backend.LIBVIRT


def test_resume_without_checkpoint(host, paths, env):
    assert cli.run(resume=True, paths=paths, environ=env) == 1


def test_unsupported_os(host, paths, env, write_os_release):
    write_os_release("fedora", "40", "Fedora Linux")
    assert cli.run(dry_run=True, paths=paths, environ=env) == 1


def test_refuses_root(host, paths, env, monkeypatch):
    monkeypatch.setattr("autowinapps.main.os.geteuid", lambda: 0)
    assert cli.run(dry_run=True, paths=paths, environ=env) == 1
    assert host.calls == []


def test_blocked_validation(host, paths, env, monkeypatch, host_facts):
    monkeypatch.setattr(cli, "gather_host_facts", lambda home: replace(host_facts, internet=False))
    assert cli.run(dry_run=True, paths=paths, environ=env) == 1


def test_force_overrides_blocked_validation(host, paths, env, monkeypatch, host_facts):
    monkeypatch.setattr(cli, "gather_host_facts", lambda home: replace(host_facts, internet=False))
    assert cli.run(dry_run=True, force=True, paths=paths, environ=env) == 0
    assert env["FORCE_INSTALL"] == "true"


def test_force_from_environment_overrides_blocked_validation(host, paths, env, monkeypatch, host_facts):
    monkeypatch.setattr(cli, "gather_host_facts", lambda home: replace(host_facts, internet=False))
    env["FORCE_INSTALL"] = "true"
    assert cli.run(dry_run=True, paths=paths, environ=env) == 0


def test_failed_step_exits_nonzero(host, paths, env, monkeypatch):
    def broken(self):
        raise RuntimeError("apt is locked")

    monkeypatch.setattr("autowinapps.osmodules.base.OsModule.update_system", broken)
    assert cli.run(dry_run=True, paths=paths, environ=env) == 1
    assert not paths.checkpoint_file.exists()


def test_system_tests_mode(host, paths, env):
    assert cli.run(test=True, paths=paths, environ=env) == 0
    report = paths.system_report.read_text(encoding="utf-8")
    assert "- OS: Ubuntu 24.04" in report


def test_system_tests_unsupported_os(host, paths, env, write_os_release):
    write_os_release("fedora", "40", "Fedora Linux")
    assert cli.run(test=True, paths=paths, environ=env) == 1


def test_uninstall_flag_delegates(monkeypatch):
    monkeypatch.setattr("autowinapps.uninstall.run", lambda **kwargs: 7)
    assert cli.main(["--uninstall"]) == 7
