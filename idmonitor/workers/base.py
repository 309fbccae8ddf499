"""Batch worker abstraction.

A worker handles one bounded batch per call to run():
1. fetch_pending() selects up to batch_size items due as of "now"
2. process_item() claims and handles one item in its own transaction
3. A failing item is rolled back, recorded and the batch moves on

Workers never sleep or schedule themselves; the runner, a cron job or the
HTTP trigger decides when a batch runs and which "now" it sees.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlmodel import Session

MAX_ERROR_LENGTH = 500


class WorkerStatus(str, Enum):
    """Outcome of one batch."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some items handled, some raised
    FAILED = "failed"
    NO_WORK = "no_work"


@dataclass
class WorkerResult:
    """Statistics for one batch.

    Attributes:
        status: Overall outcome
        processed_count: Items claimed and handled
        failed_count: Items that raised and were rolled back
        skipped_count: Items another run had already claimed
        duration_ms: Wall time of the batch
        errors: item_id/error pairs for failed items
        metadata: Worker-specific extras
    """

    status: WorkerStatus
    processed_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_counts(
        cls,
        processed: int,
        failed: int,
        skipped: int,
        errors: list[dict[str, Any]],
        duration_ms: float,
    ) -> "WorkerResult":
        if processed and failed:
            status = WorkerStatus.PARTIAL
        elif failed:
            status = WorkerStatus.FAILED
        elif processed:
            status = WorkerStatus.SUCCESS
        else:
            status = WorkerStatus.NO_WORK
        return cls(
            status=status,
            processed_count=processed,
            failed_count=failed,
            skipped_count=skipped,
            duration_ms=duration_ms,
            errors=errors,
        )

    @property
    def examined_count(self) -> int:
        """Items this run handled, successfully or not."""
        return self.processed_count + self.failed_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "status": self.status.value,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "skipped_count": self.skipped_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
            "metadata": self.metadata,
        }


T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Base class for batch workers over items of type T."""

    def __init__(self, batch_size: int = 100) -> None:
        self.batch_size = batch_size
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        """Name used in log lines and runner results."""

    @abstractmethod
    def fetch_pending(self, session: Session, now: datetime) -> list[T]:
        """Return up to batch_size items that are ready as of now.

        Every item commits or rolls back the session, which expires loaded ORM
        rows, so items should be plain values read before the first commit.
        """

    @abstractmethod
    def process_item(self, session: Session, item: T, now: datetime) -> bool:
        """Claim and handle one item.

        Returns:
            False if another run already claimed the item

        Raises:
            Exception: Any failure; the caller rolls back and records it
        """

    @abstractmethod
    def get_item_id(self, item: T) -> UUID:
        pass

    def run(self, session: Session, now: datetime | None = None) -> WorkerResult:
        """Process one batch.

        Args:
            session: Database session
            now: Reference time for the batch (default: utcnow)

        Returns:
            WorkerResult for the batch

        Raises:
            Exception: Whatever fetch_pending raises; nothing has been
                claimed at that point
        """
        started = time.monotonic()
        now = now or datetime.utcnow()
        name = self.worker_name

        items = self.fetch_pending(session, now)
        if not items:
            self._logger.debug(f"[{name}] Nothing due", extra={"now": now.isoformat()})
            return WorkerResult.from_counts(0, 0, 0, [], self._ms_since(started))

        self._logger.info(
            f"[{name}] Processing {len(items)} items",
            extra={"batch_size": self.batch_size, "now": now.isoformat()},
        )

        processed = failed = skipped = 0
        errors: list[dict[str, Any]] = []

        for item in items:
            item_id = None
            try:
                item_id = self.get_item_id(item)
                handled = self.process_item(session, item, now)
            except Exception as e:
                session.rollback()
                failed += 1
                error = str(e)[:MAX_ERROR_LENGTH]
                errors.append({"item_id": str(item_id), "error": error})
                self._logger.error(
                    f"[{name}] Item {item_id} failed",
                    extra={"item_id": str(item_id), "error": error},
                    exc_info=True,
                )
                continue

            if handled:
                processed += 1
            else:
                skipped += 1
                self._logger.debug(f"[{name}] Item {item_id} claimed elsewhere")

        result = WorkerResult.from_counts(
            processed, failed, skipped, errors, self._ms_since(started)
        )
        self._logger.info(f"[{name}] Batch complete", extra=result.to_dict())
        return result

    @staticmethod
    def _ms_since(started: float) -> float:
        return (time.monotonic() - started) * 1000
