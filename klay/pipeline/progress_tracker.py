"""Pipeline progress tracking with callback-based listener notification.

Tracks the current step and progress percentage of each pipeline run and
broadcasts updates to registered listener callbacks.  Listeners are keyed
by run id so concurrent runs (e.g. inside a batch) never see each other's
updates.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from klay.models.pipeline import PipelineStep

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class _RunStatus:
    step: PipelineStep = PipelineStep.INGESTION
    progress: float = 0.0
    message: str = ""


class ProgressTracker:
    """Tracks and broadcasts pipeline progress via callbacks.

    A callback receives ``(run_id, step, progress, message)`` and may be a
    plain function or a coroutine function.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, _RunStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}

    async def update(
        self,
        run_id: str,
        step: PipelineStep,
        progress: float,
        message: str,
    ) -> None:
        """Record a progress update (clamped to 0-100) and notify listeners."""
        progress = max(0.0, min(100.0, progress))
        self._statuses[run_id] = _RunStatus(step=step, progress=progress, message=message)

        logger.debug(
            "progress_update",
            run_id=run_id,
            step=step.value,
            progress=round(progress, 1),
            message=message,
        )
        await self._notify_listeners(run_id, step, progress, message)

    def register_listener(self, run_id: str, callback: Callable) -> None:
        listeners = self._listeners.setdefault(run_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, run_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(run_id, [])
        if callback in listeners:
            listeners.remove(callback)
        if not listeners:
            self._listeners.pop(run_id, None)

    def get_status(self, run_id: str) -> dict:
        """Return ``{"step", "progress", "message"}`` for a run.

        Unknown runs report the first step at 0%.
        """
        status = self._statuses.get(run_id) or _RunStatus()
        return {
            "step": status.step.value,
            "progress": status.progress,
            "message": status.message,
        }

    def clear(self, run_id: str) -> None:
        """Forget a finished run's status and listeners."""
        self._statuses.pop(run_id, None)
        self._listeners.pop(run_id, None)

    async def _notify_listeners(
        self,
        run_id: str,
        step: PipelineStep,
        progress: float,
        message: str,
    ) -> None:
        # A failing listener is logged and skipped; it never fails the run.
        for callback in list(self._listeners.get(run_id, [])):
            try:
                result = callback(run_id, step, progress, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "progress_listener_error",
                    run_id=run_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
