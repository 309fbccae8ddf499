"""Batch workers for the reminder scheduling core.

Workers can be started via:
- run_worker_once(): Single processing cycle
- run_worker_loop(): Continuous processing with interval
"""

from idmonitor.workers.base import (
    WorkerBase,
    WorkerResult,
    WorkerStatus,
)
from idmonitor.workers.reminder_worker import (
    DueReminder,
    DueReminderWorker,
    process_due_reminders,
)
from idmonitor.workers.runner import (
    WorkerRunner,
    RunnerResult,
    run_worker_once,
    run_worker_loop,
    configure_worker_logging,
)

__all__ = [
    # Base classes
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    # Workers
    "DueReminder",
    "DueReminderWorker",
    "process_due_reminders",
    # Runner
    "WorkerRunner",
    "RunnerResult",
    "run_worker_once",
    "run_worker_loop",
    "configure_worker_logging",
]
