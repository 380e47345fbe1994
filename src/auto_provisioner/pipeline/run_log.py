"""JSON log of a pipeline run, rewritten after every step."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .models import PipelineRun, StepOutcome

logger = logging.getLogger(__name__)


class RunLog:

    def __init__(self, log_dir: Union[str, Path], name: str) -> None:
        self.log_dir = Path(log_dir)
        self.name = name
        self.path: Optional[Path] = None
        self.data: Dict[str, Any] = {}

    def start(self, run: PipelineRun) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.path = self.log_dir / f"{self.name}_{timestamp}.json"
        self.data = {
            "version": "1.0",
            "name": self.name,
            "start_time": datetime.now().isoformat(),
            "end_time": None,
            **run.to_dict(),
        }
        self._save()
        logger.info("📝 Logging to: %s", self.path)

    def update(self, run: PipelineRun) -> None:
        self.data.update(run.to_dict())
        self._save()

    def finish(self, run: PipelineRun) -> None:
        self.data.update(run.to_dict())
        self.data["end_time"] = datetime.now().isoformat()
        self.data["summary"] = {
            "total_steps": len(run.steps),
            "executed_steps": len(run.results),
            "succeeded": sum(1 for r in run.results if r.outcome is StepOutcome.SUCCEEDED),
            "failed": sum(1 for r in run.results if r.outcome is StepOutcome.FAILED),
            "skipped": sum(1 for r in run.results if r.outcome is StepOutcome.SKIPPED),
            "duration_seconds": self._duration(),
        }
        self._save()
        logger.info("📄 Log saved to: %s", self.path)

    def _duration(self) -> float:
        try:
            start = datetime.fromisoformat(self.data["start_time"])
            end = datetime.fromisoformat(self.data["end_time"])
            return (end - start).total_seconds()
        except (KeyError, TypeError, ValueError):
            return 0.0

    def _save(self) -> None:
        if self.path:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
