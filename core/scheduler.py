import asyncio
import contextlib
from enum import Enum
from typing import Awaitable, Optional, Set, TypeVar

from loguru import logger

from .config import GATEWAY_TIMEOUT_SECONDS, REFRESH_INTERVAL_SECONDS
from .errors import GatewayError
from .gateway import Gateway
from .models import Region
from .store import FireStore

T = TypeVar("T")


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"


class RefreshScheduler:
    """
    Drives fetch cycles against the gateway and is the only writer of fires
    and weather in the store.

    A cycle fetches fires, then weather when a region is selected, and applies
    both in one store update. Cycles may overlap; each gets an increasing id
    when triggered and its outcome is applied only if that id is newer than
    the last applied one, so a slow older cycle never overwrites a newer result.
    """

    def __init__(
        self,
        store: FireStore,
        gateway: Gateway,
        interval: float = REFRESH_INTERVAL_SECONDS,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
    ):
        self._store = store
        self._gateway = gateway
        self.interval = interval
        self.timeout = timeout

        self._running = False
        self._last_cycle_id = 0
        self._applied_cycle_id = 0
        self._in_flight = 0
        self._tasks: Set[asyncio.Task] = set()
        self._timer_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        if self._in_flight:
            return SchedulerState.FETCHING
        if self._store.error is not None:
            return SchedulerState.ERROR
        return SchedulerState.IDLE

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Kick off the first cycle and the polling timer. Needs a running loop."""
        if self._running:
            return
        self._running = True
        logger.info("Refresh scheduler started", interval=self.interval)
        self.trigger("startup")
        self.restart_timer()

    async def stop(self) -> None:
        """
        Stop polling. In-flight cycles are not cancelled; whatever they
        produce after this point is dropped without touching the store.
        """
        if not self._running:
            return
        self._running = False
        # Cycles triggered before this point can never be applied, even after a restart.
        self._applied_cycle_id = self._last_cycle_id
        await self._cancel_timer()
        logger.info("Refresh scheduler stopped", in_flight=self._in_flight)

    def restart_timer(self) -> None:
        """Begin a fresh polling period from now."""
        if not self._running:
            return
        if self._timer_task is not None:
            self._timer_task.cancel()
        self._timer_task = asyncio.create_task(self._tick())

    async def _cancel_timer(self) -> None:
        if self._timer_task is None:
            return
        self._timer_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._timer_task
        self._timer_task = None

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.trigger("timer")

    # -------------------------------------------------------------------------
    # Cycles
    # -------------------------------------------------------------------------
    def trigger(self, reason: str = "manual") -> Optional[asyncio.Task]:
        """Schedule a new cycle without waiting for it; nothing happens once stopped."""
        if not self._running:
            logger.debug("Ignoring {reason} refresh, scheduler not running", reason=reason)
            return None

        self._last_cycle_id += 1
        task = asyncio.create_task(
            self._run_cycle(self._last_cycle_id, reason, self._store.selected_region)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every cycle currently in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _run_cycle(self, cycle_id: int, reason: str, region: Optional[Region]) -> None:
        self._in_flight += 1
        self._store.begin_cycle()
        logger.debug("Cycle {cycle_id} started ({reason})", cycle_id=cycle_id, reason=reason)

        fires = weather = None
        error: Optional[str] = None
        try:
            fires = await self._call(self._gateway.fetch_fires())
            if region is not None:
                weather = await self._call(
                    self._gateway.fetch_weather(region.latitude, region.longitude)
                )
        except GatewayError as e:
            error = str(e)
            logger.warning("Cycle {cycle_id} failed: {error}", cycle_id=cycle_id, error=error)
        except Exception as e:
            error = str(e) or "An unknown error occurred"
            logger.exception("Cycle {cycle_id} failed unexpectedly", cycle_id=cycle_id)
        finally:
            self._in_flight -= 1

        if not self._running:
            logger.debug("Cycle {cycle_id} finished after stop, result dropped", cycle_id=cycle_id)
            return

        still_loading = self._in_flight > 0
        if cycle_id <= self._applied_cycle_id:
            logger.debug(
                "Cycle {cycle_id} superseded by {applied}, result dropped",
                cycle_id=cycle_id,
                applied=self._applied_cycle_id,
            )
            self._store.set_loading(still_loading)
            return

        self._applied_cycle_id = cycle_id
        if error is not None:
            self._store.record_error(error, is_loading=still_loading)
            return

        self._store.apply_cycle(fires, weather, is_loading=still_loading)
        logger.info(
            "Cycle {cycle_id} applied: {count} detections, weather={has_weather}",
            cycle_id=cycle_id,
            count=len(fires),
            has_weather=weather is not None,
        )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise GatewayError(f"Request timed out after {self.timeout:g}s", source="gateway") from e
