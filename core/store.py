from typing import Callable, List, Optional

from loguru import logger

from .derivation import FireFilter
from .models import FilterSpecification, FireDetection, Region, ViewState, WeatherSnapshot

Listener = Callable[[ViewState], None]


class FireStore:
    """
    Single state container behind every display surface.

    Holds the last successfully fetched detection set and weather snapshot,
    the active filter, the selected region and the loading / error status.
    The filtered view is recomputed synchronously inside every mutation that
    touches its inputs, then listeners are notified once with a fresh snapshot.
    """

    def __init__(self, filters: Optional[FilterSpecification] = None):
        self._raw_fires: List[FireDetection] = []
        self._fires: List[FireDetection] = []
        self._weather: Optional[WeatherSnapshot] = None
        self._filters = filters or FilterSpecification.default()
        self._selected_region: Optional[Region] = None
        self._is_loading = False
        self._error: Optional[str] = None
        self._listeners: List[Listener] = []

    # -------------------------------------------------------------------------
    # Read surface
    # -------------------------------------------------------------------------
    @property
    def raw_fires(self) -> List[FireDetection]:
        return list(self._raw_fires)

    @property
    def fires(self) -> List[FireDetection]:
        return list(self._fires)

    @property
    def weather(self) -> Optional[WeatherSnapshot]:
        return self._weather

    @property
    def filters(self) -> FilterSpecification:
        return self._filters

    @property
    def selected_region(self) -> Optional[Region]:
        return self._selected_region

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    def snapshot(self) -> ViewState:
        return ViewState(
            fires=list(self._fires),
            weather=self._weather,
            selected_region=self._selected_region,
            filters=self._filters,
            is_loading=self._is_loading,
            error=self._error,
        )

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                # A faulty display surface must not break the writer
                logger.exception("Store listener {listener!r} raised", listener=listener)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------
    def replace_filters(self, filters: FilterSpecification) -> None:
        self._filters = filters
        self._rederive()
        self._notify()

    def set_selected_region(self, region: Optional[Region]) -> None:
        self._selected_region = region
        self._notify()

    def set_loading(self, is_loading: bool) -> None:
        if is_loading == self._is_loading:
            return
        self._is_loading = is_loading
        self._notify()

    def begin_cycle(self) -> None:
        """A fetch cycle started: loading on, previous error cleared."""
        self._is_loading = True
        self._error = None
        self._notify()

    def apply_cycle(self, fires: List[FireDetection], weather: Optional[WeatherSnapshot], is_loading: bool) -> None:
        """Replace fires and weather together, then re-derive. Whole-set, never merged."""
        self._raw_fires = list(fires)
        self._weather = weather
        self._error = None
        self._is_loading = is_loading
        self._rederive()
        self._notify()

    def record_error(self, message: str, is_loading: bool) -> None:
        """Failed cycle: previous fires and weather stay as they were."""
        self._error = message
        self._is_loading = is_loading
        self._notify()

    def _rederive(self) -> None:
        self._fires = FireFilter.derive(self._raw_fires, self._filters)
