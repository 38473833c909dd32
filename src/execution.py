"""Step execution.

The controller turns a RunRequest into a step sequence and runs it one
step at a time:

    idle -> running -> completed | halted | blocked

A blocked precondition stops the run before the step acts. A failed step
stops the run; later steps are not executed.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from common import FAILURE, SKIPPED, StepError, StepOutcome
from environments import EnvironmentRecord
from steps import Precondition, Step

logger = logging.getLogger(__name__)

IDLE = 'idle'
RUNNING = 'running'
COMPLETED = 'completed'
HALTED = 'halted'
BLOCKED = 'blocked'


@dataclass(frozen=True)
class SingleStep:
    """Run exactly one step, selected by id."""
    step_id: str


@dataclass(frozen=True)
class FullBatch:
    """Run the whole catalog in ordinal order."""


RunRequest = Union[SingleStep, FullBatch]
OutcomeCallback = Callable[[StepOutcome], None]


@dataclass
class RunResult:
    """Terminal state and outcomes of one run."""
    state: str
    outcomes: list[StepOutcome] = field(default_factory=list)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.state == COMPLETED


class ExecutionController:
    """Runs steps from a catalog, strictly sequentially.

    Args:
        catalog: Steps; ordered by ordinal when resolving a FullBatch
        environments: Records for environment-scoped steps. Empty means the
            single-environment path (scoped steps run once with env=None).
        on_outcome: Called with every outcome as soon as it is produced
    """

    def __init__(
        self,
        catalog: list[Step],
        environments: Optional[list[EnvironmentRecord]] = None,
        on_outcome: Optional[OutcomeCallback] = None
    ):
        self.catalog = sorted(catalog, key=lambda step: step.ordinal)
        self.environments = list(environments or [])
        self.on_outcome = on_outcome
        self.state = IDLE

    def get_step(self, step_id: str) -> Step:
        for step in self.catalog:
            if step.id == step_id:
                return step
        available = [step.id for step in self.catalog]
        raise ValueError(f"Unknown step: {step_id}. Available: {available}")

    def resolve(self, request: RunRequest) -> list[Step]:
        """Return the steps a request runs, in execution order."""
        if isinstance(request, SingleStep):
            return [self.get_step(request.step_id)]
        if isinstance(request, FullBatch):
            return list(self.catalog)
        raise TypeError(f"Unsupported run request: {request!r}")

    def run(self, request: RunRequest) -> RunResult:
        """Execute a request and return its result."""
        steps = self.resolve(request)
        self.state = RUNNING
        outcomes: list[StepOutcome] = []
        start_time = time.time()
        logger.debug(f"Running {[step.id for step in steps]}")

        for step in steps:
            precondition = self._check(step)
            if not precondition.ready:
                logger.error(f"Step {step.id} blocked: {precondition.reason}")
                self._emit(outcomes, StepOutcome(
                    step_id=step.id,
                    status=SKIPPED,
                    message=precondition.reason,
                    reason=precondition.kind or 'Blocked',
                ))
                self.state = BLOCKED
                break

            targets = self.environments if step.scoped and self.environments else [None]
            for env in targets:
                outcome = self._execute(step, env)
                self._emit(outcomes, outcome)
                if outcome.failed:
                    self.state = HALTED
                    break
            if self.state == HALTED:
                break
        else:
            self.state = COMPLETED

        duration = time.time() - start_time
        logger.debug(f"Run finished in {duration:.1f}s: {self.state}")
        return RunResult(state=self.state, outcomes=outcomes, duration=duration)

    def _check(self, step: Step) -> Precondition:
        try:
            return step.check_precondition()
        except StepError as e:
            return Precondition.blocked(str(e), e.kind)
        except Exception as e:
            logger.exception(f"Precondition for {step.id} raised exception")
            return Precondition.blocked(str(e), type(e).__name__)

    def _execute(self, step: Step, env: Optional[EnvironmentRecord]) -> StepOutcome:
        """Run one step, converting any exception into a failure outcome."""
        label = f"{step.id}[{env.name}]" if env else step.id
        logger.info(f"Running step {step.ordinal}: {label} - {step.description}")
        start = time.time()
        env_name = env.name if env else None

        try:
            outcome = step.execute(env) if step.scoped else step.execute()
        except StepError as e:
            logger.error(f"Step {label} failed: {e}")
            return StepOutcome(step_id=step.id, status=FAILURE, message=str(e), reason=e.kind,
                               env=env_name, duration=time.time() - start)
        except Exception as e:
            logger.exception(f"Step {label} raised exception")
            return StepOutcome(step_id=step.id, status=FAILURE, message=str(e),
                               reason=type(e).__name__, env=env_name,
                               duration=time.time() - start)

        if outcome.failed:
            logger.error(f"Step {label} failed: {outcome.message}")
        elif outcome.status == SKIPPED:
            logger.warning(f"Step {label} skipped: {outcome.message}")
        else:
            logger.info(f"Step {label} passed")
        return outcome

    def _emit(self, outcomes: list[StepOutcome], outcome: StepOutcome) -> None:
        outcomes.append(outcome)
        if self.on_outcome:
            self.on_outcome(outcome)
