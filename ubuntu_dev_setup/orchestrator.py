"""
Sequential orchestrator.

Runs the declared steps in their fixed order. For each step:

    disabled            -> SKIPPED_BY_TOGGLE
    precondition holds  -> SKIPPED_BY_PRECONDITION
    action returns      -> SUCCESS
    action raises       -> FAILED_FATAL if the step (or the error) is fatal,
                           FAILED_RECOVERABLE otherwise

A fatal failure aborts the run; steps after it stay PENDING. There is no
retry inside a run: re-running the program is the retry, relying on every
step's precondition.
"""

import enum
import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ubuntu_dev_setup.errors import (
    EXIT_FATAL,
    EXIT_OK,
    FatalStepFailure,
    ProfileWriteError,
    RecoverableStepFailure,
)
from ubuntu_dev_setup.step import (
    Outcome,
    Step,
    StepContext,
    StepResult,
    StepState,
    effective_enablement,
)
from ubuntu_dev_setup.ui import print_error, print_step, print_success, print_warning


class RunState(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class RunReport:
    state: RunState = RunState.NOT_STARTED
    states: Dict[str, StepState] = field(default_factory=dict)
    results: List[StepResult] = field(default_factory=list)
    follow_ups: List[str] = field(default_factory=list)
    started: float = 0.0
    finished: float = 0.0

    @property
    def exit_code(self) -> int:
        return EXIT_FATAL if self.state is RunState.ABORTED else EXIT_OK

    @property
    def elapsed(self) -> float:
        return max(self.finished - self.started, 0.0)

    def outcome_of(self, step_id: str) -> Outcome:
        for result in self.results:
            if result.step_id == step_id:
                return result.outcome
        raise KeyError(step_id)

    def failures(self) -> List[StepResult]:
        return [result for result in self.results if result.outcome.failed]


def is_fatal_error(step: Step, error: BaseException) -> bool:
    if isinstance(error, FatalStepFailure):
        return True
    if isinstance(error, RecoverableStepFailure):
        return False
    if isinstance(error, ProfileWriteError) and error.first_write:
        return True
    return step.fatal


class Orchestrator:
    def __init__(self, steps: Sequence[Step], context: StepContext):
        ids = [step.id for step in steps]
        if len(set(ids)) != len(ids):
            raise ValueError("Step identifiers must be unique")
        self.steps = tuple(steps)
        self.context = context
        self.logger = context.logger

    def run(self) -> RunReport:
        report = RunReport(
            state=RunState.IN_PROGRESS,
            states={step.id: StepState.PENDING for step in self.steps},
            started=time.time(),
        )
        self.logger.debug(f"Run started with {len(self.steps)} steps")
        for step in self.steps:
            report.states[step.id] = StepState.RUNNING
            result = self.run_step(step)
            report.results.append(result)
            report.states[step.id] = StepState.from_outcome(result.outcome)
            if result.outcome is Outcome.SUCCESS and step.follow_up:
                report.follow_ups.append(step.follow_up)
            if result.outcome is Outcome.FAILED_FATAL:
                report.state = RunState.ABORTED
                self.logger.debug(f"Run aborted at step {step.id}")
                break
        else:
            report.state = RunState.COMPLETED
        report.finished = time.time()
        return report

    def run_step(self, step: Step) -> StepResult:
        ctx = self.context
        enabled, reason = effective_enablement(step, ctx.toggles, ctx.facts)
        if not enabled:
            print_warning(f"Skipping {step.display_name} ({reason}).")
            self.logger.debug(f"{step.id}: skipped by toggle: {reason}")
            return StepResult(step.id, Outcome.SKIPPED_BY_TOGGLE, reason)

        start = time.time()
        try:
            if step.precondition(ctx):
                print_success(f"{step.display_name} already in place.")
                self.logger.debug(f"{step.id}: precondition satisfied")
                return StepResult(
                    step.id, Outcome.SKIPPED_BY_PRECONDITION, "already satisfied"
                )
            print_step(f"{step.display_name}...")
            step.action(ctx)
        except Exception as e:
            elapsed = time.time() - start
            message = f"{type(e).__name__}: {e}"
            if is_fatal_error(step, e):
                print_error(f"{step.display_name} failed in {elapsed:.2f}s: {e}")
                self.logger.debug(f"{step.id}: fatal failure", exc_info=True)
                return StepResult(step.id, Outcome.FAILED_FATAL, message, elapsed)
            print_warning(
                f"{step.display_name} failed in {elapsed:.2f}s (continuing): {e}"
            )
            self.logger.debug(f"{step.id}: recoverable failure", exc_info=True)
            return StepResult(step.id, Outcome.FAILED_RECOVERABLE, message, elapsed)

        elapsed = time.time() - start
        print_success(f"{step.display_name} completed in {elapsed:.2f}s")
        self.logger.debug(f"{step.id}: success in {elapsed:.2f}s")
        return StepResult(
            step.id, Outcome.SUCCESS, f"Completed in {elapsed:.2f}s", elapsed
        )
