"""Background consumer of the retry/schedule queue."""

from __future__ import annotations

import logging
import threading

from app.application.use_cases.notifications import DeliveryOrchestrator

logger = logging.getLogger(__name__)


class ScheduleWorker:
    """Poll :meth:`DeliveryOrchestrator.process_due` on a daemon thread.

    Workers share nothing but the database, so several of them (in one or
    more processes) can consume the same queue.
    """

    def __init__(
        self,
        orchestrator: DeliveryOrchestrator,
        *,
        poll_interval: float | None = None,
        batch_size: int | None = None,
    ) -> None:
        settings = orchestrator.settings
        self._orchestrator = orchestrator
        self._poll_interval = poll_interval or settings.worker_poll_interval_seconds
        self._batch_size = batch_size or settings.worker_batch_size
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="schedule-worker", daemon=True
        )
        self._thread.start()
        logger.info("Schedule worker %s started", self._orchestrator.worker_id)

    def stop(self, timeout: float | None = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Schedule worker %s stopped", self._orchestrator.worker_id)

    def run_once(self) -> int:
        """Process one batch of due entries and return how many were handled."""

        results = self._orchestrator.process_due(limit=self._batch_size)
        if results:
            logger.debug("Schedule worker processed %s queued deliveries", len(results))
        return len(results)

    def run_forever(self) -> None:
        while not self._stop_event.is_set():
            try:
                handled = self.run_once()
            except Exception:
                logger.exception("Schedule worker iteration failed")
                handled = 0
            # A full batch means more entries may already be due.
            if handled < self._batch_size:
                self._stop_event.wait(self._poll_interval)


__all__ = ["ScheduleWorker"]
