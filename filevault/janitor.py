"""Background sweeper that reclaims stale PENDING and FAILED uploads."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Set

from common.logging_config import get_logger
from filevault.config import (
    JANITOR_BATCH_SIZE,
    JANITOR_INTERVAL_SECONDS,
    JANITOR_MAX_BATCHES,
    JANITOR_RETENTION_HOURS,
)
from filevault.domain import FileState
from filevault.repositories.file_repository import FileRepository
from filevault.utils import utcnow
from objectstore.base import ObjectStoreClient

logger = get_logger(__name__)

STALE_STATES = (FileState.PENDING, FileState.FAILED)


@dataclass
class SweepResult:
    batches: int = 0
    claimed: int = 0
    deleted: int = 0
    failed: int = 0


class JanitorSweeper:
    """
    Periodically removes records stuck in PENDING or FAILED past the
    retention window, together with any blob they may have left behind.

    Each record is claimed (moved to JANITOR) before teardown so that
    concurrent sweepers never process the same record twice.
    """

    def __init__(
        self,
        object_store: ObjectStoreClient,
        retention: timedelta = timedelta(hours=JANITOR_RETENTION_HOURS),
        batch_size: int = JANITOR_BATCH_SIZE,
        max_batches: int = JANITOR_MAX_BATCHES,
        interval_seconds: float = JANITOR_INTERVAL_SECONDS,
    ):
        """
        Initialize the sweeper.

        Args:
            object_store: Blob store holding the content of the swept records
            retention: Minimum age of a record before it is reclaimed
            batch_size: Records fetched per batch
            max_batches: Upper bound on batches in a single sweep
            interval_seconds: Time between sweeps when run in the background
        """
        self.object_store = object_store
        self.retention = retention
        self.batch_size = batch_size
        self.max_batches = max_batches
        self.interval_seconds = interval_seconds
        self.file_repo = FileRepository()
        self._running = False
        self._task = None

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one cleanup pass.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            Counters for the pass
        """
        cutoff = (now or utcnow()) - self.retention
        result = SweepResult()
        failed_ids: Set[str] = set()

        logger.info(f"Starting janitor cleanup for files older than: {cutoff.isoformat()}")

        while True:
            stale = self.file_repo.find_stale(
                STALE_STATES, cutoff, self.batch_size, exclude_ids=failed_ids
            )
            if not stale:
                break

            if result.batches >= self.max_batches:
                logger.warning(
                    f"Janitor processed maximum number of batches ({result.batches}), stopping current run"
                )
                break

            result.batches += 1
            claimed_ids = set(self.file_repo.claim(
                [record.file_id for record in stale], STALE_STATES, FileState.JANITOR
            ))
            result.claimed += len(claimed_ids)

            if not claimed_ids:
                continue

            logger.debug(f"Janitor batch {result.batches}: claimed {len(claimed_ids)} files for cleanup")

            for record in stale:
                if record.file_id not in claimed_ids:
                    continue
                try:
                    self.object_store.delete(record.object_store_key)
                    self.file_repo.delete_file(record.file_id)
                    result.deleted += 1
                except Exception as e:
                    logger.warning(
                        f"Janitor failed to clean up file: {record.file_id} ({record.state.value}): {e}",
                        exc_info=True
                    )
                    result.failed += 1
                    failed_ids.add(record.file_id)
                    self._release(record.file_id)

        logger.info(
            f"Janitor cleanup completed: {result.deleted} files removed, {result.failed} failed "
            f"in {result.batches} batches"
        )
        return result

    def _release(self, file_id: str) -> None:
        try:
            self.file_repo.transition_state(file_id, (FileState.JANITOR,), FileState.FAILED)
        except Exception as e:
            logger.error(f"Failed to return file {file_id} to FAILED: {e}", exc_info=True)

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._running:
            logger.warning("Janitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started janitor task (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped janitor task")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await asyncio.to_thread(self.sweep)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in janitor task: {e}", exc_info=True)
