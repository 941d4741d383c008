"""
Round-Robin Scheduler

One task per tick, rotating over all listing tracks then all sales tracks.
With N tasks and no backoff, N consecutive ticks visit each task exactly once.

A paused tick does nothing and does not advance the rotation, so the task
that hit the rate limit is not skipped over when polling resumes.
"""

import asyncio
from typing import Callable, Optional

from core.backoff_controller import BackoffController
from core.models import TrackedCollection, TrackedCollections
from core.notifier import Notifier
from core.pipeline import IngestionPipeline
from utils.logger import get_logger
from utils.exceptions import RateLimitError, PersistenceError


logger = get_logger(__name__)


class RoundRobinScheduler:

    def __init__(
        self,
        load_tracks: Callable[[], TrackedCollections],
        pipeline: IngestionPipeline,
        backoff: BackoffController,
        notifier: Optional[Notifier] = None
    ):
        """
        Args:
            load_tracks: Returns the current track list; called every tick
            pipeline: Runs one task
            backoff: Shared pause / tick-interval state
            notifier: Receives the backoff notice, if given
        """
        self._load_tracks = load_tracks
        self._pipeline = pipeline
        self._backoff = backoff
        self._notifier = notifier
        self.rotation_index = 0
        self.is_running = False
        self._stop_event = asyncio.Event()

    async def tick(self) -> Optional[TrackedCollection]:
        """
        Run at most one task.

        Returns:
            The task that was selected, or None for a paused or idle tick
        """
        if self._backoff.is_paused():
            return None

        try:
            tasks = self._load_tracks().tasks()
        except PersistenceError as e:
            logger.warning(f"Track list unreadable, idling: {e}")
            return None

        if not tasks:
            return None

        index = self.rotation_index % len(tasks)
        task = tasks[index]
        self.rotation_index = (index + 1) % len(tasks)

        try:
            await self._pipeline.process(task)
        except RateLimitError as e:
            logger.warning(f"Rate limited while polling {task.symbol} ({task.kind.label}): {e}")
            self._backoff.on_rate_limited()
            if self._notifier is not None:
                await self._notifier.notice(
                    f"[BACKOFF] Rate limited by Magic Eden. Pausing for "
                    f"{self._backoff.remaining_pause_sec():g}s, tick now {self._backoff.tick_interval_ms} ms."
                )
        return task

    async def run(self) -> None:
        """Tick until stop() is called, re-reading the interval every time"""
        if self.is_running:
            logger.warning("Scheduler is already running")
            return

        self.is_running = True
        self._stop_event.clear()
        logger.info(f"Scheduler started - tick {self._backoff.tick_interval_ms} ms")

        try:
            while self.is_running and not self._stop_event.is_set():
                try:
                    await self.tick()
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=self._backoff.interval_seconds
                    )
                except asyncio.TimeoutError:
                    continue
                except Exception as e:
                    logger.error(f"Error in scheduler tick: {e}", exc_info=True)
                    await asyncio.sleep(self._backoff.interval_seconds)
        finally:
            self.is_running = False
            logger.info("Scheduler stopped")

    async def stop(self) -> None:
        self.is_running = False
        self._stop_event.set()
