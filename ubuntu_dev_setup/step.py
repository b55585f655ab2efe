"""
The Step record and the types the orchestrator produces while running it.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ubuntu_dev_setup.commands import CommandRunner
from ubuntu_dev_setup.config import Config
from ubuntu_dev_setup.probe import HostFacts
from ubuntu_dev_setup.profile import ProfileMutator
from ubuntu_dev_setup.toggles import FLAGS, ToggleSet


class Outcome(enum.Enum):
    SUCCESS = "success"
    SKIPPED_BY_TOGGLE = "skipped_by_toggle"
    SKIPPED_BY_PRECONDITION = "skipped_by_precondition"
    FAILED_RECOVERABLE = "failed_recoverable"
    FAILED_FATAL = "failed_fatal"

    @property
    def failed(self) -> bool:
        return self in (Outcome.FAILED_RECOVERABLE, Outcome.FAILED_FATAL)


class StepState(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    SKIPPED_BY_TOGGLE = "skipped_by_toggle"
    SKIPPED_BY_PRECONDITION = "skipped_by_precondition"
    FAILED_RECOVERABLE = "failed_recoverable"
    FAILED_FATAL = "failed_fatal"

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "StepState":
        return cls(outcome.value)


@dataclass
class StepContext:
    """Everything a step body may consult or use. Shared by all steps of a run."""

    runner: CommandRunner
    facts: HostFacts
    toggles: ToggleSet
    profile: ProfileMutator
    config: Config
    logger: logging.Logger


@dataclass(frozen=True)
class Step:
    """
    One provisioning step.

    precondition(ctx) returns True when the target state already holds and
    must not change anything. action(ctx) performs the install and signals
    failure by raising.
    """

    id: str
    display_name: str
    precondition: Callable[[StepContext], bool]
    action: Callable[[StepContext], None]
    toggle: Optional[str] = None
    default_enabled: Optional[bool] = None
    graphical: bool = False
    # Needs a native Linux kernel (systemd, snapd); skipped under WSL.
    native_only: bool = False
    fatal: bool = False
    follow_up: Optional[str] = None
    # Flags of the steps this one builds on; each must resolve to enabled.
    requires: Tuple[str, ...] = ()

    def __post_init__(self):
        for flag in ((self.toggle,) if self.toggle else ()) + tuple(self.requires):
            if flag not in FLAGS:
                raise ValueError(f"Step {self.id} is gated by unknown flag {flag}")

    @property
    def default(self) -> bool:
        if self.default_enabled is not None:
            return self.default_enabled
        if self.toggle is not None:
            return FLAGS[self.toggle].default
        return True


def effective_enablement(
    step: Step, toggles: ToggleSet, facts: HostFacts
) -> Tuple[bool, str]:
    """
    Decide whether step runs, with a reason for the skip line.

    Graphical suppression (WSL or HEADLESS=1) dominates explicit toggles.
    """
    if step.native_only and facts.is_virtualized_shell:
        return False, "WSL detected; requires a native Linux host"
    if step.graphical and facts.graphical_suppressed:
        if facts.is_virtualized_shell:
            return False, "WSL detected; graphical steps are skipped"
        return False, "HEADLESS=1; graphical steps are skipped"
    if step.toggle is None:
        if not step.default:
            return False, "disabled by default"
    elif not toggles.enabled(step.toggle, step.default):
        return False, f"disabled ({step.toggle} is not 1)"
    for flag in step.requires:
        if not toggles.enabled(flag):
            return False, f"requires {flag}, which is disabled"
    return True, ""


@dataclass(frozen=True)
class StepResult:
    step_id: str
    outcome: Outcome
    message: str = ""
    elapsed: float = 0.0
