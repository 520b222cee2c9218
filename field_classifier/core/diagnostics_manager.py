"""Diagnostics manager for field classification runs."""

import json
import logging
import os
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional

from field_classifier.core.signals import OutcomeStatus, SourceOutcome

logger = logging.getLogger(__name__)


@dataclass
class StageInfo:
    """Information about a stage of page or element evaluation."""
    name: str
    start_time: float
    end_time: Optional[float] = None
    success: Optional[bool] = None
    duration: Optional[float] = None
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class DiagnosticsManager:
    """Tracks stage timings and per-source outcomes.

    Failures are kept apart from plain "no evidence" results so a report can
    tell a quiet source from a broken one.
    """

    def __init__(self, enabled: bool = True, output_dir: Optional[str] = None, max_failures: int = 500):
        """Initialize the diagnostics manager.

        Args:
            enabled: Whether diagnostics are recorded.
            output_dir: Directory for JSON reports; None keeps everything in memory.
            max_failures: How many recent failures to keep; older ones are dropped.
        """
        self.enabled = enabled
        self.output_dir = output_dir
        self.stages: Dict[str, StageInfo] = {}
        self.current_stage: Optional[str] = None
        self.start_time = time.time()
        self.outcome_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.failures: Deque[Dict[str, Any]] = deque(maxlen=max_failures)

        if self.enabled and self.output_dir:
            try:
                os.makedirs(self.output_dir, exist_ok=True)
                logger.info(f"Diagnostics reports will be saved to {self.output_dir}")
            except OSError as e:
                logger.error(f"Failed to create diagnostics directory {self.output_dir}: {e}")
                self.output_dir = None

    def start_stage(self, stage_name: str) -> None:
        """Start tracking a stage.

        Args:
            stage_name: Name of the stage
        """
        if not self.enabled:
            return
        logger.debug(f"Starting stage: {stage_name}")
        self.current_stage = stage_name
        self.stages[stage_name] = StageInfo(name=stage_name, start_time=time.time())

    def end_stage(self, success: bool, error: Optional[str] = None,
                  details: Optional[Dict[str, Any]] = None) -> None:
        """End tracking the current stage.

        Args:
            success: Whether the stage was successful
            error: Optional error message if the stage failed
            details: Optional details about the stage
        """
        if not self.enabled:
            return
        if self.current_stage is None:
            logger.warning("No current stage to end")
            return

        stage = self.stages.get(self.current_stage)
        if not stage:
            logger.warning(f"Stage {self.current_stage} not found")
            return

        stage.end_time = time.time()
        stage.success = success
        stage.error = error
        stage.duration = stage.end_time - stage.start_time
        if details:
            stage.details.update(details)

        msg = f"Stage {self.current_stage} {'succeeded' if success else 'failed'}"
        if error:
            msg += f": {error}"
        msg += f" (took {stage.duration:.3f}s)"
        (logger.debug if success else logger.warning)(msg)

        self.current_stage = None

    @contextmanager
    def track_stage(self, stage_name: str):
        """Context manager for tracking a stage.

        Args:
            stage_name: Name of the stage
        """
        self.start_stage(stage_name)
        try:
            yield
            self.end_stage(True)
        except Exception as e:
            self.end_stage(False, error=str(e))
            raise

    def record_outcome(self, outcome: SourceOutcome, category: str = "source") -> None:
        """Count one source outcome; failures are also kept with their message.

        Args:
            outcome: What the source returned for one element
            category: Failure category for the report (e.g. 'source', 'page_context')
        """
        if not self.enabled:
            return
        self.outcome_counts[outcome.source][outcome.status.value] += 1
        if outcome.status is OutcomeStatus.FAILED:
            self.failures.append({
                "category": category,
                "source": outcome.source,
                "message": outcome.error,
                "time": time.time(),
            })

    def record_failure(self, category: str, source: str, message: str) -> None:
        """Record a failure that happened outside a single source call."""
        if not self.enabled:
            return
        self.failures.append({
            "category": category,
            "source": source,
            "message": message,
            "time": time.time(),
        })

    def get_summary(self) -> Dict[str, Any]:
        """Get diagnostics information.

        Returns:
            Dict with stage timings, per-source outcome counts and failures
        """
        stages_info = {
            name: {
                "success": stage.success,
                "duration": stage.duration,
                "error": stage.error,
                "details": stage.details,
            }
            for name, stage in self.stages.items()
        }
        return {
            "duration": time.time() - self.start_time,
            "stages": stages_info,
            "sources": {source: dict(counts) for source, counts in self.outcome_counts.items()},
            "failures": list(self.failures),
        }

    def save_report(self, filename: str = "diagnostics.json") -> Optional[str]:
        """Save the summary as JSON in the output directory.

        Returns:
            The written path, or None when no output directory is configured
        """
        if not self.enabled or not self.output_dir:
            logger.debug(f"Skipping diagnostics report '{filename}'")
            return None
        if not filename.endswith(".json"):
            filename += ".json"
        filepath = os.path.join(self.output_dir, filename)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(self.get_summary(), f, indent=4, ensure_ascii=False, default=str)
            logger.info(f"Saved diagnostics report to '{filepath}'")
            return filepath
        except OSError as e:
            logger.error(f"Failed to write diagnostics report to '{filepath}': {e}")
            return None

    def reset(self) -> None:
        self.stages.clear()
        self.current_stage = None
        self.outcome_counts.clear()
        self.failures.clear()
        self.start_time = time.time()
