import asyncio
import calendar
from datetime import date, timedelta
from typing import Callable, Optional, Tuple

from loguru import logger

from .config import ALL, DEFAULT_HISTORICAL_TIME_RANGE, GATEWAY_TIMEOUT_SECONDS, HISTORICAL_TIME_RANGES
from .errors import GatewayError
from .gateway import Gateway
from .models import HistoricalReport
from .statistics import HistoricalAggregator


def _subtract_months(day: date, months: int) -> date:
    """Same day of month ``months`` earlier, clamped to the month's last day."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_time_range(time_range: str, today: date) -> Tuple[date, date]:
    """Map a time range key (30d, 90d, 6m, 1y) to an inclusive (start, end) pair."""
    if time_range == "30d":
        start = today - timedelta(days=30)
    elif time_range == "90d":
        start = today - timedelta(days=90)
    elif time_range == "6m":
        start = _subtract_months(today, 6)
    elif time_range == "1y":
        start = _subtract_months(today, 12)
    else:
        raise ValueError(f"Invalid time range: {time_range}. Valid: {HISTORICAL_TIME_RANGES}")
    return start, today


class HistoricalService:
    """Loads historical series for trend charts; keeps the last good report on failure."""

    def __init__(
        self,
        gateway: Gateway,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        clock: Callable[[], date] = date.today,
    ):
        self._gateway = gateway
        self._timeout = timeout
        self._clock = clock
        self._last_request_id = 0

        self.report: Optional[HistoricalReport] = None
        self.is_loading = False
        self.error: Optional[str] = None

    async def load(self, region: str = ALL, time_range: str = DEFAULT_HISTORICAL_TIME_RANGE) -> HistoricalReport:
        """
        Fetch and aggregate the series for ``region`` over ``time_range``.

        Raises:
            ValueError: unknown time range
            GatewayError: the fetch failed; ``error`` is set and ``report`` keeps its previous value
        """
        start_date, end_date = resolve_time_range(time_range, self._clock())

        self._last_request_id += 1
        request_id = self._last_request_id
        self.is_loading = True
        self.error = None

        try:
            records = await asyncio.wait_for(
                self._gateway.fetch_historical(region, start_date, end_date),
                timeout=self._timeout,
            )
            daily = HistoricalAggregator.aggregate_by_date(records)
            report = HistoricalReport(
                region=region,
                time_range=time_range,
                start_date=start_date,
                end_date=end_date,
                daily=daily,
                trend=HistoricalAggregator.trend(daily),
                summary=HistoricalAggregator.summarize(records),
            )
        except asyncio.TimeoutError as e:
            self._fail(request_id, "Historical request timed out")
            raise GatewayError("Historical request timed out", source="gateway") from e
        except GatewayError as e:
            self._fail(request_id, str(e))
            raise
        except Exception as e:
            message = str(e) or "Failed to load historical data"
            logger.exception("Historical load failed unexpectedly")
            self._fail(request_id, message)
            raise GatewayError(message) from e

        if request_id == self._last_request_id:
            self.report = report
            self.is_loading = False
        logger.info(
            "Historical report for {region} ({time_range}): {days} days",
            region=region,
            time_range=time_range,
            days=len(daily),
        )
        return report

    def _fail(self, request_id: int, message: str) -> None:
        logger.warning("Historical load failed: {error}", error=message)
        if request_id == self._last_request_id:
            self.error = message
            self.is_loading = False
