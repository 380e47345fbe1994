"""Ordered execution of provisioning steps."""

from .models import (
    PipelineRun,
    ProvisioningStep,
    RunStatus,
    StepCondition,
    StepEvent,
    StepEventKind,
    StepOutcome,
    StepResult,
)
from .run_log import RunLog
from .runner import PipelineRunner, StepListener

__all__ = [
    "PipelineRun",
    "PipelineRunner",
    "ProvisioningStep",
    "RunLog",
    "RunStatus",
    "StepCondition",
    "StepEvent",
    "StepEventKind",
    "StepListener",
    "StepOutcome",
    "StepResult",
]
