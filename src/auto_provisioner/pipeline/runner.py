"""Sequential step runner."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from ..actions import ActionContext
from .models import (
    PipelineRun,
    ProvisioningStep,
    RunStatus,
    StepEvent,
    StepEventKind,
    StepOutcome,
    StepResult,
)
from .run_log import RunLog

logger = logging.getLogger(__name__)

StepListener = Callable[[StepEvent], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineRunner:
    """
    Runs provisioning steps in order.

    A failing optional step is recorded and the run goes on. A failing
    required step aborts the run; later steps never start. ``Exception``
    raised by an action is caught and recorded, while ``KeyboardInterrupt``
    and ``SystemExit`` propagate untouched.
    """

    def __init__(
        self,
        context: ActionContext,
        listeners: Optional[Iterable[StepListener]] = None,
        run_log: Optional[RunLog] = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.context = context
        self.listeners: List[StepListener] = list(listeners or [])
        self.run_log = run_log
        self.clock = clock

    def add_listener(self, listener: StepListener) -> None:
        self.listeners.append(listener)

    def run(self, steps: Iterable[ProvisioningStep]) -> PipelineRun:
        run = PipelineRun.start(list(steps))
        total = len(run.steps)
        self._print_header(run)
        if self.run_log:
            self.run_log.start(run)

        for index, step in enumerate(run.steps, 1):
            logger.info(f"📍 Step {index}/{total}: {step.name}")
            result = self._execute(step, index, total)
            run.record(result)
            if self.run_log:
                self.run_log.update(run)
            if result.outcome is StepOutcome.FAILED and step.required:
                run.status = RunStatus.ABORTED
                logger.error("   ❌ Required step failed, aborting")
                break
            logger.info("")

        if run.status is RunStatus.RUNNING:
            run.status = RunStatus.COMPLETED

        if self.run_log:
            self.run_log.finish(run)
        self._print_footer(run)
        return run

    def _execute(self, step: ProvisioningStep, index: int, total: int) -> StepResult:
        started_at = self.clock()
        self._emit(StepEvent(StepEventKind.STARTED, step.name, index, total))
        try:
            if step.condition is not None and not step.condition(self.context):
                logger.info("   ⏭️ Skipping: condition not met")
                self._emit(StepEvent(StepEventKind.SKIPPED, step.name, index, total))
                return StepResult(
                    step_name=step.name,
                    outcome=StepOutcome.SKIPPED,
                    started_at=started_at,
                    ended_at=self.clock(),
                    required=step.required,
                )
            step.action.execute(self.context)
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
            if step.required:
                logger.error(f"   ❌ {step.name} failed: {error}")
            else:
                logger.warning(f"   ⚠️ {step.name} failed (optional): {error}")
            logger.debug("Step failure details", exc_info=True)
            self._emit(StepEvent(StepEventKind.FAILED, step.name, index, total, error=error))
            return StepResult(
                step_name=step.name,
                outcome=StepOutcome.FAILED,
                started_at=started_at,
                ended_at=self.clock(),
                required=step.required,
                error=error,
                exception=exc,
            )

        logger.info(f"   ✅ {step.name} completed")
        self._emit(StepEvent(StepEventKind.SUCCEEDED, step.name, index, total))
        return StepResult(
            step_name=step.name,
            outcome=StepOutcome.SUCCEEDED,
            started_at=started_at,
            ended_at=self.clock(),
            required=step.required,
        )

    def _emit(self, event: StepEvent) -> None:
        # Listeners observe the run; a broken one must not change its outcome.
        for listener in self.listeners:
            try:
                listener(event)
            except Exception:
                logger.warning(
                    f"   ⚠️ Listener failed on {event.kind.value} of {event.step_name}",
                    exc_info=True,
                )

    def _print_header(self, run: PipelineRun) -> None:
        logger.info("")
        logger.info("=" * 60)
        logger.info("🚀 PROVISIONING")
        logger.info("=" * 60)
        logger.info(f"Total Steps: {len(run.steps)}")
        for i, step in enumerate(run.steps, 1):
            marker = "" if step.required else " (optional)"
            logger.info(f"  {i}. {step.name}{marker}")
        logger.info("=" * 60)
        logger.info("")

    def _print_footer(self, run: PipelineRun) -> None:
        logger.info("=" * 60)
        if run.status is RunStatus.COMPLETED:
            logger.info("🎉 Provisioning completed successfully!")
        else:
            failed = run.failed_result
            logger.error(f"❌ Provisioning aborted at: {failed.step_name if failed else '?'}")
        logger.info("=" * 60)
