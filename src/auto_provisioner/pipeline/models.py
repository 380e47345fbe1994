"""Data models for the provisioning pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..actions import ActionContext, ProvisioningAction
from ..errors import PipelineAborted


class StepOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class StepEventKind(str, Enum):
    """Step transitions reported to listeners."""
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


StepCondition = Callable[[ActionContext], bool]


@dataclass(frozen=True)
class ProvisioningStep:
    """One entry of the step list; never changed once built."""

    name: str
    action: ProvisioningAction
    required: bool = True
    # Evaluated just before the step runs; False records the step as skipped.
    condition: Optional[StepCondition] = None

    @classmethod
    def of(
        cls,
        action: ProvisioningAction,
        *,
        required: bool = True,
        condition: Optional[StepCondition] = None,
        name: Optional[str] = None,
    ) -> "ProvisioningStep":
        return cls(
            name=name or action.description or action.__class__.__name__,
            action=action,
            required=required,
            condition=condition,
        )


@dataclass(frozen=True)
class StepResult:
    """Outcome of one step; ``error`` is set iff the step failed."""

    step_name: str
    outcome: StepOutcome
    started_at: datetime
    ended_at: datetime
    required: bool = True
    error: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def duration(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_name": self.step_name,
            "outcome": self.outcome.value,
            "required": self.required,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_seconds": self.duration,
        }


@dataclass(frozen=True)
class StepEvent:
    kind: StepEventKind
    step_name: str
    index: int
    total: int
    error: Optional[str] = None


@dataclass
class PipelineRun:
    """
    One execution of a step list.

    ``results`` grows in step order and never outgrows ``steps``. The run is
    aborted iff its last result is a failed required step, and nothing runs
    after that.
    """

    steps: Tuple[ProvisioningStep, ...]
    results: List[StepResult] = field(default_factory=list)
    status: RunStatus = RunStatus.RUNNING

    @classmethod
    def start(cls, steps: Sequence[ProvisioningStep]) -> "PipelineRun":
        return cls(steps=tuple(steps))

    def record(self, result: StepResult) -> None:
        if self.status is not RunStatus.RUNNING:
            raise RuntimeError(f"Cannot record results on a {self.status.value} run")
        if len(self.results) >= len(self.steps):
            raise RuntimeError("More results than steps")
        self.results.append(result)

    @property
    def failed_result(self) -> Optional[StepResult]:
        """The result that aborted the run, if it was aborted."""
        if self.status is RunStatus.ABORTED and self.results:
            return self.results[-1]
        return None

    @property
    def failures(self) -> List[StepResult]:
        return [r for r in self.results if r.outcome is StepOutcome.FAILED]

    def raise_for_status(self) -> None:
        failed = self.failed_result
        if failed is None:
            return
        raise PipelineAborted(failed.step_name, failed.error or "unknown error") from failed.exception

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "steps": [{"name": s.name, "required": s.required} for s in self.steps],
            "results": [r.to_dict() for r in self.results],
        }
