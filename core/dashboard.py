from typing import Callable, List, Optional

from loguru import logger

from .config import GATEWAY_TIMEOUT_SECONDS, REFRESH_INTERVAL_SECONDS
from .gateway import Gateway
from .models import FilterSpecification, FireDetection, FireStats, Region, ViewState, WeatherSnapshot
from .scheduler import RefreshScheduler
from .statistics import FireStatistics
from .store import FireStore, Listener


class WildfireDashboard:
    """
    Read/write surface shared by every display surface (dashboard, map,
    historical page).

    Writes never raise; fetch failures only show up in ``error``. Region
    changes and refreshes complete asynchronously, so readers see the previous
    values until the triggered cycle lands.
    """

    def __init__(
        self,
        gateway: Gateway,
        interval: float = REFRESH_INTERVAL_SECONDS,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        filters: Optional[FilterSpecification] = None,
    ):
        self.store = FireStore(filters)
        self.scheduler = RefreshScheduler(self.store, gateway, interval=interval, timeout=timeout)

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    def start(self) -> None:
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    # -------------------------------------------------------------------------
    # Read surface
    # -------------------------------------------------------------------------
    @property
    def fires(self) -> List[FireDetection]:
        return self.store.fires

    @property
    def weather(self) -> Optional[WeatherSnapshot]:
        return self.store.weather

    @property
    def selected_region(self) -> Optional[Region]:
        return self.store.selected_region

    @property
    def filters(self) -> FilterSpecification:
        return self.store.filters

    @property
    def is_loading(self) -> bool:
        return self.store.is_loading

    @property
    def error(self) -> Optional[str]:
        return self.store.error

    @property
    def stats(self) -> FireStats:
        return FireStatistics.compute(self.store.fires)

    def state(self) -> ViewState:
        return self.store.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # -------------------------------------------------------------------------
    # Write surface
    # -------------------------------------------------------------------------
    def select_region(self, region: Optional[Region]) -> None:
        """Set (or clear) the weather reference point and start a new cycle."""
        logger.info("Region selected: {name}", name=region.name if region else None)
        self.store.set_selected_region(region)
        self.scheduler.trigger("region")
        self.scheduler.restart_timer()

    def apply_filters(self, filters: FilterSpecification) -> None:
        self.store.replace_filters(filters)

    def refresh(self) -> None:
        self.scheduler.trigger("refresh")
