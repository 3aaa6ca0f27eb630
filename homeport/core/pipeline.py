"""Linear pipeline of fallible steps.

Each step receives the current immutable state and returns a StepResult.
The driver stops at the first failed or stopped step; raised HomeportError
instances are converted into failed results carrying their FailureKind.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from homeport.core.errors import FailureKind, HomeportError
from homeport.core.logger import get_logger

logger = get_logger(__name__)

S = TypeVar("S")


class StepStatus(Enum):
    OK = "ok"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class StepResult(Generic[S]):
    status: StepStatus
    state: Optional[S] = None
    message: str = ""
    kind: Optional[FailureKind] = None

    @classmethod
    def ok(cls, state: S) -> "StepResult[S]":
        return cls(StepStatus.OK, state)

    @classmethod
    def failed(cls, kind: FailureKind, message: str) -> "StepResult[S]":
        return cls(StepStatus.FAILED, message=message, kind=kind)

    @classmethod
    def stop(cls, message: str) -> "StepResult[S]":
        """Finish early without an error (e.g. operator chose nothing)."""
        return cls(StepStatus.STOPPED, message=message)


@dataclass(frozen=True)
class Step(Generic[S]):
    name: str
    run: Callable[[S], StepResult[S]]


@dataclass(frozen=True)
class PipelineOutcome(Generic[S]):
    status: StepStatus
    state: S
    completed: List[str]
    failed_step: Optional[str] = None
    message: str = ""
    kind: Optional[FailureKind] = None

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.OK

    @property
    def exit_code(self) -> int:
        if self.status == StepStatus.FAILED and self.kind is not None:
            return self.kind.exit_code
        return 0


class Pipeline(Generic[S]):
    """Run steps in order, short-circuiting on the first failure."""

    def __init__(self, steps: Sequence[Step[S]]):
        self.steps = list(steps)

    def run(self, state: S) -> PipelineOutcome[S]:
        completed: List[str] = []

        for step in self.steps:
            logger.debug(f"step: {step.name}")
            try:
                result = step.run(state)
            except HomeportError as e:
                result = StepResult.failed(e.kind, str(e))

            if result.status == StepStatus.FAILED:
                return PipelineOutcome(
                    StepStatus.FAILED, state, completed,
                    failed_step=step.name, message=result.message, kind=result.kind,
                )
            if result.status == StepStatus.STOPPED:
                return PipelineOutcome(StepStatus.STOPPED, state, completed, message=result.message)

            state = result.state
            completed.append(step.name)

        return PipelineOutcome(StepStatus.OK, state, completed)
