"""In-flight workflow run tracking for graceful shutdown."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from src.analytics_agent.core.logging import get_logger

logger = get_logger(__name__)


class ShuttingDownError(RuntimeError):
    """Raised when a run is started after shutdown began."""


class RunTracker:
    """Tracks running workflow executions so shutdown can wait for them."""

    def __init__(self) -> None:
        self._runs: set[str] = set()
        self._shutting_down = False
        self._lock = asyncio.Lock()
        self._drain_event = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return len(self._runs)

    @property
    def in_flight_runs(self) -> list[str]:
        return sorted(self._runs)

    @asynccontextmanager
    async def track_run(self, run_key: str) -> AsyncGenerator[None]:
        """Context manager registering a run for the duration of the block."""
        async with self._lock:
            if self._shutting_down:
                raise ShuttingDownError("Server is shutting down, not accepting new runs")
            self._runs.add(run_key)
            logger.debug("Run started", run_key=run_key, in_flight=len(self._runs))
        try:
            yield
        finally:
            async with self._lock:
                self._runs.discard(run_key)
                logger.debug("Run finished", run_key=run_key, in_flight=len(self._runs))
                if not self._runs and self._shutting_down:
                    logger.info("All workflow runs drained, setting drain event")
                    self._drain_event.set()

    async def start_shutdown(self) -> None:
        """Stop accepting runs and arm the drain event."""
        logger.info("Run tracker entering shutdown mode")
        async with self._lock:
            self._shutting_down = True
            if not self._runs:
                self._drain_event.set()
            else:
                logger.info("Waiting for workflow runs to complete", in_flight=len(self._runs))

    async def wait_for_drain(self, timeout: float) -> bool:
        """
        Wait for all in-flight runs to complete.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if all runs completed within timeout, False otherwise
        """
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            logger.warning(
                f"Shutdown timeout after {timeout}s - {len(self._runs)} runs still in-flight",
                runs=self.in_flight_runs,
            )
            return False

    def reset(self) -> None:
        """Reset tracker state. For testing only."""
        self._runs.clear()
        self._shutting_down = False
        self._drain_event = asyncio.Event()


run_tracker = RunTracker()
