"""
Remote data gateway: the boundary between the data layer and whatever serves
fire detections, weather and historical series.

Gateways are stateless per call and make a single attempt; retries and caching
are not their concern. Every failure surfaces as ``GatewayError``.
"""

import asyncio
import csv
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime, timedelta
from io import StringIO
from math import atan2, cos, radians, sin, sqrt
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import aiohttp
import numpy as np
from loguru import logger
from pydantic import ValidationError

from .config import (
    ALL,
    CONFIDENCE_LEVELS,
    DEFAULT_FILTER_WINDOW_DAYS,
    FIRMS_API_URL,
    FIRMS_MAX_DAYS,
    FIRMS_SOURCE,
    GATEWAY_TIMEOUT_SECONDS,
    HTTP_CONNECT_TIMEOUT_SECONDS,
    TERRITORY_BBOX,
    TERRITORY_REGIONS,
    WEATHER_API_URL,
)
from .errors import GatewayError
from .models import (
    CurrentConditions,
    FireDetection,
    ForecastDay,
    HistoricalRecord,
    Location,
    TemperatureRange,
    WeatherSnapshot,
)

EARTH_RADIUS_KM = 6371.0
FORECAST_DAYS = 3


class Gateway(ABC):
    """Capability injected into the scheduler and the historical service."""

    @abstractmethod
    async def fetch_fires(self) -> List[FireDetection]:
        """Current fire detections over the territory."""

    @abstractmethod
    async def fetch_weather(self, latitude: float, longitude: float) -> WeatherSnapshot:
        """Current conditions plus a short daily forecast for a coordinate."""

    @abstractmethod
    async def fetch_historical(
        self, region: str, start_date: date, end_date: date
    ) -> List[HistoricalRecord]:
        """One record per (date, region); ``region`` may be the ``"all"`` sentinel."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers."""
    lat1_rad, lon1_rad = radians(lat1), radians(lon1)
    lat2_rad, lon2_rad = radians(lat2), radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = sin(dlat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(a), sqrt(1 - a))


def nearest_region(latitude: float, longitude: float) -> str:
    """Label of the territory region whose centre is closest to the point."""
    _, name, _, _ = min(
        TERRITORY_REGIONS,
        key=lambda r: haversine_distance(latitude, longitude, r[2], r[3]),
    )
    return name


def _firms_confidence(raw: str) -> str:
    """VIIRS reports l/n/h; MODIS reports a 0-100 percentage."""
    value = raw.strip().lower()
    mapping = {"l": "low", "n": "nominal", "h": "high"}
    if value in mapping:
        return mapping[value]
    if value in CONFIDENCE_LEVELS:
        return value

    percent = int(value)
    if percent < 30:
        return "low"
    if percent < 80:
        return "nominal"
    return "high"


def _iter_firms_rows(csv_text: str) -> Iterator[Tuple[FireDetection, float]]:
    """Yield (detection, pixel footprint in km²) for every parseable CSV row."""
    if not csv_text.strip():
        return
    if not csv_text.startswith("latitude"):
        raise GatewayError(f"Unexpected response format: {csv_text[:100]}", source="NASA FIRMS")

    for row in csv.DictReader(StringIO(csv_text)):
        try:
            latitude = float(row["latitude"])
            longitude = float(row["longitude"])
            brightness = row.get("bright_ti4") or row["brightness"]

            fire = FireDetection(
                latitude=latitude,
                longitude=longitude,
                brightness=float(brightness),
                acq_date=date.fromisoformat(row["acq_date"]),
                acq_time=int(row["acq_time"]),
                confidence=_firms_confidence(row["confidence"]),
                region=nearest_region(latitude, longitude),
                frp=float(row.get("frp") or 0.0),
                daynight=row.get("daynight", "D"),
                satellite=row.get("instrument") or row.get("satellite", ""),
            )
            footprint = float(row.get("scan") or 0.0) * float(row.get("track") or 0.0)
        except (KeyError, ValueError, ValidationError) as e:
            logger.warning("Skipping unparseable FIRMS row: {error}", error=str(e))
            continue

        yield fire, footprint


def parse_firms_csv(csv_text: str) -> List[FireDetection]:
    """Parse a NASA FIRMS area CSV payload into detections."""
    return [fire for fire, _ in _iter_firms_rows(csv_text)]


def aggregate_firms_history(csv_texts: List[str], region: str) -> List[HistoricalRecord]:
    """
    Fold raw FIRMS rows into one record per (date, region).

    Area is the summed pixel footprint (scan x track); the risk index is the
    mean FRP scaled down by ten and capped at 10.
    """
    buckets: Dict[Tuple[date, str], List[float]] = defaultdict(lambda: [0, 0.0, 0.0])
    for text in csv_texts:
        for fire, footprint in _iter_firms_rows(text):
            if region != ALL and fire.region != region:
                continue
            bucket = buckets[(fire.acq_date, fire.region)]
            bucket[0] += 1
            bucket[1] += footprint
            bucket[2] += fire.frp

    return [
        HistoricalRecord(
            date=day,
            region=name,
            fire_count=count,
            area=round(area, 4),
            risk_index=round(min(10.0, total_frp / count / 10.0), 2),
        )
        for (day, name), (count, area, total_frp) in sorted(buckets.items())
    ]


def parse_weather(current: dict, forecast: dict, latitude: float, longitude: float) -> WeatherSnapshot:
    """
    Build a snapshot from OpenWeatherMap ``/weather`` and ``/forecast`` payloads
    (metric units). Wind arrives in m/s and is reported in km/h; the 3-hourly
    forecast is folded into daily entries, skipping the first day listed.
    """
    try:
        main = current["main"]
        conditions = CurrentConditions(
            temperature=float(main["temp"]),
            humidity=float(main["humidity"]),
            wind_speed=round(float(current["wind"]["speed"]) * 3.6, 2),
            wind_direction=int(current["wind"].get("deg", 0)) % 360,
            pressure=float(main["pressure"]),
            description=current["weather"][0]["description"].capitalize(),
        )

        by_day: Dict[date, List[dict]] = defaultdict(list)
        for entry in forecast["list"]:
            day = datetime.strptime(entry["dt_txt"], "%Y-%m-%d %H:%M:%S").date()
            by_day[day].append(entry)

        days = sorted(by_day)[1:FORECAST_DAYS + 1]
        daily = []
        for day in days:
            entries = by_day[day]
            daily.append(
                ForecastDay(
                    date=day,
                    temperature=TemperatureRange(
                        min=min(float(e["main"]["temp_min"]) for e in entries),
                        max=max(float(e["main"]["temp_max"]) for e in entries),
                    ),
                    humidity=round(float(np.mean([e["main"]["humidity"] for e in entries])), 1),
                    wind_speed=round(float(np.mean([e["wind"]["speed"] for e in entries])) * 3.6, 2),
                )
            )

        return WeatherSnapshot(
            location=Location(
                latitude=latitude,
                longitude=longitude,
                name=current.get("name") or nearest_region(latitude, longitude),
            ),
            current=conditions,
            forecast=daily,
        )
    except (AttributeError, KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
        raise GatewayError(f"Malformed weather response: {e}", source="OpenWeatherMap") from e


# -----------------------------------------------------------------------------
# Implementations
# -----------------------------------------------------------------------------
class MockGateway(Gateway):
    """
    Demo data source standing in for the satellite and weather feeds.

    Generates clusters of 3-18 detections around each territory region centre,
    dated within the last week. Pass ``seed`` for reproducible output.
    """

    SATELLITE = "VIIRS"

    def __init__(self, seed: Optional[int] = None, clock: Callable[[], date] = date.today):
        self._rng = np.random.default_rng(seed)
        self._clock = clock

    async def fetch_fires(self) -> List[FireDetection]:
        rng = self._rng
        today = self._clock()
        fires = []

        for _, name, lat, lon in TERRITORY_REGIONS:
            for _ in range(int(rng.integers(3, 19))):
                fires.append(
                    FireDetection(
                        latitude=lat + (rng.random() - 0.5) * 3,
                        longitude=lon + (rng.random() - 0.5) * 3,
                        brightness=300 + rng.random() * 50,
                        acq_date=today - timedelta(days=int(rng.integers(0, 7))),
                        acq_time=int(rng.integers(0, 24)) * 100,
                        confidence=str(rng.choice(CONFIDENCE_LEVELS)),
                        region=name,
                        frp=rng.random() * 50,
                        daynight="night" if rng.random() > 0.7 else "day",
                        satellite=self.SATELLITE,
                    )
                )

        logger.debug("Generated {count} mock detections", count=len(fires))
        return fires

    async def fetch_weather(self, latitude: float, longitude: float) -> WeatherSnapshot:
        rng = self._rng
        today = self._clock()

        forecast = [
            ForecastDay(
                date=today + timedelta(days=offset),
                temperature=TemperatureRange(
                    min=20 + rng.random() * 5,
                    max=30 + rng.random() * 8,
                ),
                humidity=40 + rng.random() * 30,
                wind_speed=3 + rng.random() * 10,
            )
            for offset in range(1, FORECAST_DAYS + 1)
        ]

        return WeatherSnapshot(
            location=Location(
                latitude=latitude,
                longitude=longitude,
                name=nearest_region(latitude, longitude),
            ),
            current=CurrentConditions(
                temperature=25 + rng.random() * 10,
                humidity=30 + rng.random() * 40,
                wind_speed=5 + rng.random() * 15,
                wind_direction=int(rng.integers(0, 360)),
                pressure=1000 + rng.random() * 15,
                description="Partly Cloudy",
            ),
            forecast=forecast,
        )

    async def fetch_historical(
        self, region: str, start_date: date, end_date: date
    ) -> List[HistoricalRecord]:
        rng = self._rng
        regions = [name for _, name, _, _ in TERRITORY_REGIONS] if region == ALL else [region]

        records = []
        for offset in range((end_date - start_date).days + 1):
            day = start_date + timedelta(days=offset)
            for name in regions:
                records.append(
                    HistoricalRecord(
                        date=day,
                        region=name,
                        fire_count=int(rng.integers(1, 21)),
                        area=rng.random() * 50,
                        risk_index=rng.random() * 10,
                    )
                )
        return records


class HttpGateway(Gateway):
    """
    NASA FIRMS + OpenWeatherMap client.

    Use as an async context manager, or call ``close()`` when done; a session
    is opened lazily on first use otherwise.
    """

    def __init__(
        self,
        firms_api_key: str,
        weather_api_key: str,
        source: str = FIRMS_SOURCE,
        bbox: str = TERRITORY_BBOX,
        clock: Callable[[], date] = date.today,
    ):
        self.firms_api_key = firms_api_key
        self.weather_api_key = weather_api_key
        self.source = source
        self.bbox = bbox
        self._clock = clock
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(
                total=GATEWAY_TIMEOUT_SECONDS, connect=HTTP_CONNECT_TIMEOUT_SECONDS
            )
            self.session = aiohttp.ClientSession(timeout=timeout)
            logger.info("HTTP session created for HttpGateway")
        return self.session

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    async def _get(self, url: str, source: str, params: Optional[dict] = None, as_json: bool = False):
        session = self._ensure_session()
        try:
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise GatewayError(
                        f"API returned status {response.status}: {error_text[:200]}",
                        source=source,
                    )
                if as_json:
                    return await response.json(content_type=None)
                return await response.text()
        except aiohttp.ClientError as e:
            raise GatewayError(f"HTTP request failed: {e}", source=source) from e
        except asyncio.TimeoutError as e:
            raise GatewayError("Request timed out", source=source) from e
        except ValueError as e:
            raise GatewayError(f"Unparseable response body: {e}", source=source) from e

    def _firms_url(self, days: int, start: Optional[date] = None) -> str:
        url = f"{FIRMS_API_URL}/{self.firms_api_key}/{self.source}/{self.bbox}/{days}"
        if start is not None:
            url = f"{url}/{start.isoformat()}"
        return url

    async def fetch_fires(self) -> List[FireDetection]:
        csv_text = await self._get(self._firms_url(DEFAULT_FILTER_WINDOW_DAYS), source="NASA FIRMS")
        fires = parse_firms_csv(csv_text)
        logger.info("Retrieved {count} fire detections", count=len(fires))
        return fires

    async def fetch_weather(self, latitude: float, longitude: float) -> WeatherSnapshot:
        params = {
            "lat": latitude,
            "lon": longitude,
            "units": "metric",
            "appid": self.weather_api_key,
        }
        current = await self._get(
            f"{WEATHER_API_URL}/weather", source="OpenWeatherMap", params=params, as_json=True
        )
        forecast = await self._get(
            f"{WEATHER_API_URL}/forecast", source="OpenWeatherMap", params=params, as_json=True
        )
        return parse_weather(current, forecast, latitude, longitude)

    async def fetch_historical(
        self, region: str, start_date: date, end_date: date
    ) -> List[HistoricalRecord]:
        """FIRMS caps a request at ten days, so the range is fetched window by window."""
        texts = []
        window_start = start_date
        while window_start <= end_date:
            days = min(FIRMS_MAX_DAYS, (end_date - window_start).days + 1)
            texts.append(
                await self._get(self._firms_url(days, window_start), source="NASA FIRMS")
            )
            window_start += timedelta(days=days)

        records = aggregate_firms_history(texts, region)
        logger.info(
            "Built {count} historical records for {region} ({start} to {end})",
            count=len(records),
            region=region,
            start=start_date,
            end=end_date,
        )
        return records
