"""Cadence driver for the due-reminder batch job.

The reminder core never schedules itself. Something outside decides when a
batch runs:
- run_worker_once(): one batch, for cron or a one-off CLI call
- run_worker_loop(): a foreground loop for hosts without a scheduler
"""

import logging
import signal
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlmodel import Session

from idmonitor.config import get_settings
from idmonitor.db.session import engine
from idmonitor.services.notifications import NotificationDispatcher
from idmonitor.workers.base import WorkerResult
from idmonitor.workers.reminder_worker import DueReminderWorker

logger = logging.getLogger(__name__)


@dataclass
class RunnerResult:
    """One batch as seen by the runner.

    batch is None when the batch could not start (e.g. the due-reminder
    query failed); error then carries the reason.
    """

    now: datetime
    started_at: datetime
    completed_at: datetime | None = None
    batch: WorkerResult | None = None
    error: str | None = None

    @property
    def processed(self) -> int:
        return self.batch.processed_count if self.batch else 0

    @property
    def failed(self) -> int:
        return self.batch.failed_count if self.batch else 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "now": self.now.isoformat(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "batch": self.batch.to_dict() if self.batch else None,
            "error": self.error,
        }


class WorkerRunner:
    """Runs DueReminderWorker batches once or on a fixed interval.

    Usage:
        runner = WorkerRunner(batch_size=50)
        result = runner.run_once(now=datetime(2026, 1, 31, 9, 0))
    """

    def __init__(
        self,
        batch_size: int | None = None,
        dispatcher: NotificationDispatcher | None = None,
        session_factory: Callable[[], Session] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            batch_size: Reminders per batch (default from config)
            dispatcher: Notification dispatcher (default: LoggingDispatcher)
            session_factory: Builds the session for batches run without one
        """
        self.batch_size = batch_size or get_settings().WORKER_BATCH_SIZE
        self.worker = DueReminderWorker(batch_size=self.batch_size, dispatcher=dispatcher)
        self._session_factory = session_factory or (lambda: Session(engine))
        self._stop = threading.Event()

    def run_once(
        self,
        session: Session | None = None,
        now: datetime | None = None,
    ) -> RunnerResult:
        """Run a single batch and never raise.

        Args:
            session: Session to use (a fresh one is opened and closed if omitted)
            now: Reminders scheduled at or before this time are due (default: utcnow)
        """
        started_at = datetime.utcnow()
        result = RunnerResult(now=now or started_at, started_at=started_at)

        try:
            if session is not None:
                result.batch = self.worker.run(session, now=result.now)
            else:
                with self._session_factory() as own_session:
                    result.batch = self.worker.run(own_session, now=result.now)
        except Exception as e:
            result.error = f"{self.worker.worker_name} failed: {e}"
            logger.error(
                "Due reminder batch could not run",
                extra={"error": str(e)},
                exc_info=True,
            )

        result.completed_at = datetime.utcnow()
        logger.info("Due reminder batch finished", extra=result.to_dict())
        return result

    def run_loop(
        self,
        interval_seconds: int | None = None,
        max_iterations: int | None = None,
    ) -> int:
        """Run batches until shutdown is requested or max_iterations is hit.

        Each batch uses the wall clock as "now". The wait between batches is
        cut short by request_shutdown() or SIGINT/SIGTERM.

        Returns:
            int: Number of batches run
        """
        interval = interval_seconds or get_settings().WORKER_POLL_INTERVAL_SECONDS
        self.install_signal_handlers()
        logger.info(
            "Reminder loop started",
            extra={"interval_seconds": interval, "max_iterations": max_iterations},
        )

        iterations = 0
        while not self._stop.is_set():
            if max_iterations is not None and iterations >= max_iterations:
                break
            result = self.run_once()
            iterations += 1
            logger.debug(
                f"Batch {iterations}: {result.processed} processed, {result.failed} failed"
            )
            self._stop.wait(interval)

        logger.info("Reminder loop stopped", extra={"total_iterations": iterations})
        return iterations

    def install_signal_handlers(self) -> None:
        """Stop the loop on SIGINT/SIGTERM; only possible from the main thread."""
        if threading.current_thread() is not threading.main_thread():
            return

        def handle_signal(signum, frame):
            logger.info(f"Received signal {signum}, stopping after current batch")
            self.request_shutdown()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    def request_shutdown(self) -> None:
        self._stop.set()


def run_worker_once(
    batch_size: int | None = None,
    now: datetime | None = None,
) -> RunnerResult:
    """Run one batch of due reminders in a fresh session.

    Example:
        >>> from idmonitor.workers import run_worker_once
        >>> result = run_worker_once(now=datetime(2026, 1, 31, 9, 0))
        >>> result.processed
    """
    return WorkerRunner(batch_size=batch_size).run_once(now=now)


def run_worker_loop(
    interval_seconds: int | None = None,
    max_iterations: int | None = None,
    batch_size: int | None = None,
) -> int:
    """Run batches until interrupted or max_iterations is reached."""
    return WorkerRunner(batch_size=batch_size).run_loop(
        interval_seconds=interval_seconds,
        max_iterations=max_iterations,
    )


def configure_worker_logging(level: int = logging.INFO) -> None:
    """Set up console logging for a worker process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
