from __future__ import annotations

import pytest

from autowinapps.errors import InstallerError, StepFailedError, StepNotFoundError
from autowinapps.pipeline import Phase, PhaseTracker, run_pipeline
from autowinapps.steps import INSTALL_SEQUENCE, resolve_steps


class Recorder:
    def __init__(self, step_id, log, fail=False):
        self.step_id = step_id
        self.title = step_id
        self.log = log
        self.fail = fail

    def run(self, ctx, os_module):
        self.log.append(self.step_id)
        if self.fail:
            raise RuntimeError("boom")


def test_install_sequence_order():
    assert INSTALL_SEQUENCE == (
        "update_system",
        "install_dependencies",
        "configure_services",
        "configure_filesystem",
        "apply_optimizations",
        "create_dockur_config",
        "create_winapps_config",
        "setup_winapps",
        "create_management_scripts",
        "configure_desktop_integration",
    )
    assert [s.step_id for s in resolve_steps()] == list(INSTALL_SEQUENCE)


def test_unknown_step_fails_before_running():
    with pytest.raises(StepNotFoundError, match="install_drivers"):
        resolve_steps(["update_system", "install_drivers"])


def test_first_failure_aborts_the_rest():
    log = []
    steps = [Recorder("a", log), Recorder("b", log, fail=True), Recorder("c", log)]
    with pytest.raises(StepFailedError) as exc:
        run_pipeline(ctx=None, os_module=None, steps=steps)
    assert exc.value.step_id == "b"
    assert isinstance(exc.value.cause, RuntimeError)
    assert log == ["a", "b"]


def test_progress_callback():
    seen = []
    log = []
    result = run_pipeline(
        ctx=None,
        os_module=None,
        steps=[Recorder("a", log), Recorder("b", log)],
        on_step=lambda i, n, s: seen.append((i, n, s.step_id)),
    )
    assert seen == [(1, 2, "a"), (2, 2, "b")]
    assert result.ran_steps == ["a", "b"]


def test_phase_happy_path():
    t = PhaseTracker()
    for phase in (Phase.DETECTING, Phase.VALIDATING, Phase.AWAITING_CHOICE, Phase.CONFIRMED, Phase.INSTALLING, Phase.COMPLETE):
        t.advance(phase)
    assert t.phase is Phase.COMPLETE


def test_resume_skips_choice():
    t = PhaseTracker()
    t.advance(Phase.DETECTING)
    t.advance(Phase.VALIDATING)
    t.advance(Phase.CONFIRMED)
    assert Phase.AWAITING_CHOICE not in t.history


def test_invalid_transitions():
    t = PhaseTracker()
    with pytest.raises(InstallerError):
        t.advance(Phase.INSTALLING)
    t.advance(Phase.DETECTING)
    t.advance(Phase.FAILED)
    with pytest.raises(InstallerError):
        t.advance(Phase.FAILED)
