from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Protocol, Sequence

from .context import InstallContext
from .errors import InstallerError, StepFailedError
from .osmodules import OsModule

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    NOT_STARTED = "not_started"
    DETECTING = "detecting"
    VALIDATING = "validating"
    AWAITING_CHOICE = "awaiting_choice"
    CONFIRMED = "confirmed"
    INSTALLING = "installing"
    COMPLETE = "complete"
    FAILED = "failed"


_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.NOT_STARTED: frozenset({Phase.DETECTING}),
    Phase.DETECTING: frozenset({Phase.VALIDATING}),
    Phase.VALIDATING: frozenset({Phase.AWAITING_CHOICE, Phase.CONFIRMED}),
    Phase.AWAITING_CHOICE: frozenset({Phase.CONFIRMED}),
    Phase.CONFIRMED: frozenset({Phase.INSTALLING}),
    Phase.INSTALLING: frozenset({Phase.COMPLETE}),
    Phase.COMPLETE: frozenset(),
    Phase.FAILED: frozenset(),
}


@dataclass
class PhaseTracker:
    phase: Phase = Phase.NOT_STARTED
    history: List[Phase] = field(default_factory=lambda: [Phase.NOT_STARTED])

    def advance(self, to: Phase) -> None:
        allowed = _TRANSITIONS[self.phase]
        # Any phase may fail, except the terminal ones.
        if to is Phase.FAILED and self.phase not in (Phase.COMPLETE, Phase.FAILED):
            allowed = allowed | {Phase.FAILED}
        if to not in allowed:
            raise InstallerError(f"Invalid phase transition {self.phase.value} -> {to.value}")
        logger.debug("Phase %s -> %s", self.phase.value, to.value)
        self.phase = to
        self.history.append(to)


class Step(Protocol):
    """A single named install step."""

    step_id: str
    title: str

    def run(self, ctx: InstallContext, os_module: OsModule) -> None:
        ...


StepCallback = Callable[[int, int, Step], None]


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]


def run_pipeline(
    *,
    ctx: InstallContext,
    os_module: OsModule,
    steps: Sequence[Step],
    on_step: Optional[StepCallback] = None,
) -> PipelineResult:
    """Run steps in order; the first failure aborts the rest.

    Raises StepFailedError naming the step that failed.
    """

    ran: List[str] = []
    total = len(steps)

    for index, step in enumerate(steps, start=1):
        if on_step is not None:
            on_step(index, total, step)
        logger.info("Executing: %s", step.step_id)
        try:
            step.run(ctx, os_module)
        except Exception as e:
            logger.error("Failed during: %s", step.step_id)
            raise StepFailedError(step.step_id, e) from e
        ran.append(step.step_id)

    return PipelineResult(ran_steps=ran)
