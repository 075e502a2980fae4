"""
Linear stage runner for the submission pipeline.

Each stage receives the shared context dict and returns a dict merged back
into it. Stages run in the order they were added. When a required stage
fails, every later stage is skipped; an optional stage's failure is logged
and the run continues.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class Stage:
    """A single step of a pipeline."""

    name: str
    execute_fn: Callable[[dict[str, Any]], dict[str, Any] | None]
    required: bool = True
    status: StageStatus = StageStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    exception: BaseException | None = None
    duration_ms: float = 0.0


@dataclass
class PipelineRun:
    pipeline: str
    context: dict[str, Any]
    stages: dict[str, Stage]

    @property
    def failed_stage(self) -> Stage | None:
        """The required stage that stopped the run, if any."""
        for stage in self.stages.values():
            if stage.status == StageStatus.FAILED and stage.required:
                return stage
        return None

    @property
    def status(self) -> str:
        return "failed" if self.failed_stage else "completed"

    def summary(self) -> dict[str, Any]:
        return {
            "pipeline": self.pipeline,
            "status": self.status,
            "stages": {
                name: {
                    "status": stage.status.value,
                    "duration_ms": round(stage.duration_ms, 2),
                    "error": stage.error,
                }
                for name, stage in self.stages.items()
            },
        }


class Pipeline:
    """
    An ordered list of stages.

    Usage:
        pipeline = Pipeline("submission")
        pipeline.add_stage("validate", validate_fn)
        pipeline.add_stage("render_pdf", render_fn)
        pipeline.add_stage("seal", seal_fn, required=False)
        run = pipeline.run({"form_data": payload})
    """

    def __init__(self, name: str):
        self.name = name
        self._stages: list[tuple[str, Callable, bool]] = []

    @property
    def stage_names(self) -> list[str]:
        return [name for name, _, _ in self._stages]

    def add_stage(
        self,
        name: str,
        execute_fn: Callable[[dict[str, Any]], dict[str, Any] | None],
        required: bool = True,
    ) -> Pipeline:
        if name in self.stage_names:
            raise ValueError(f"Duplicate stage name: {name}")
        self._stages.append((name, execute_fn, required))
        return self  # allow chaining

    def run(self, initial_context: dict[str, Any] | None = None) -> PipelineRun:
        """Execute every stage in order; the returned run is fresh on each call."""
        context = dict(initial_context or {})
        stages = {
            name: Stage(name=name, execute_fn=fn, required=required)
            for name, fn, required in self._stages
        }
        logger.info("Starting pipeline '%s' with %d stages", self.name, len(stages))

        halted = False
        for stage in stages.values():
            if halted:
                stage.status = StageStatus.SKIPPED
                logger.warning("Skipping '%s' – an earlier stage failed", stage.name)
                continue

            stage.status = StageStatus.RUNNING
            logger.debug("Running stage '%s'", stage.name)
            start = time.perf_counter()
            try:
                stage.result = stage.execute_fn(context) or {}
                stage.status = StageStatus.SUCCESS
                context.update(stage.result)
            except Exception as exc:
                stage.status = StageStatus.FAILED
                stage.error = str(exc)
                stage.exception = exc
                if stage.required:
                    halted = True
                    logger.error("Stage '%s' failed: %s", stage.name, exc)
                else:
                    logger.warning("Optional stage '%s' failed: %s", stage.name, exc)
            finally:
                stage.duration_ms = (time.perf_counter() - start) * 1000

        run = PipelineRun(pipeline=self.name, context=context, stages=stages)
        logger.info("Pipeline '%s' finished – %s", self.name, run.status)
        return run
