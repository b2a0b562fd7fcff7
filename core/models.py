import datetime
from datetime import date, timedelta
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import ALL, DEFAULT_FILTER_WINDOW_DAYS

Confidence = Literal["low", "nominal", "high"]
ConfidenceConstraint = Literal["low", "nominal", "high", "all"]


class FireDetection(BaseModel):
    """One satellite-observed thermal anomaly. Never mutated after fetch."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    brightness: float = Field(..., gt=0)
    acq_date: date
    acq_time: int = Field(..., ge=0, le=2359)
    confidence: Confidence
    region: str
    frp: float = Field(..., ge=0)
    daynight: Literal["day", "night"]
    satellite: str

    @field_validator("daynight", mode="before")
    @classmethod
    def normalize_daynight(cls, v):
        """Accept the FIRMS single-letter flags ('D' / 'N')."""
        if v == "D":
            return "day"
        if v == "N":
            return "night"
        return v


class FilterSpecification(BaseModel):
    """User-controlled view constraint, replaced wholesale on every apply."""

    model_config = ConfigDict(frozen=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    confidence: ConfidenceConstraint = ALL
    region: str = ALL

    @classmethod
    def default(cls, today: Optional[date] = None) -> "FilterSpecification":
        """Last seven days, no confidence constraint, no region constraint."""
        today = today or date.today()
        return cls(
            start_date=today - timedelta(days=DEFAULT_FILTER_WINDOW_DAYS),
            end_date=today,
        )


class Region(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    boundaries: Optional[List[Tuple[float, float]]] = None


class Location(BaseModel):
    latitude: float
    longitude: float
    name: str


class CurrentConditions(BaseModel):
    temperature: float
    humidity: float = Field(..., ge=0, le=100)
    wind_speed: float = Field(..., ge=0)
    wind_direction: int = Field(..., ge=0, le=359)
    pressure: float
    description: str


class TemperatureRange(BaseModel):
    min: float
    max: float


class ForecastDay(BaseModel):
    date: datetime.date
    temperature: TemperatureRange
    humidity: float = Field(..., ge=0, le=100)
    wind_speed: float = Field(..., ge=0)


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: Location
    current: CurrentConditions
    forecast: List[ForecastDay]


class HistoricalRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime.date
    region: str
    fire_count: int = Field(..., ge=0)
    area: float = Field(..., ge=0)
    risk_index: float = Field(..., ge=0, le=10)


class DailyAggregate(BaseModel):
    date: datetime.date
    fire_count: int
    area: float
    risk_index: float


class HistoricalSummary(BaseModel):
    total_fires: int
    total_area: float
    average_risk_index: float


class HistoricalReport(BaseModel):
    region: str
    time_range: str
    start_date: date
    end_date: date
    daily: List[DailyAggregate]
    trend: List[float]
    summary: HistoricalSummary


class RegionCount(BaseModel):
    region: str
    count: int


class ConfidenceBreakdown(BaseModel):
    high: int = 0
    nominal: int = 0
    low: int = 0


class FireStats(BaseModel):
    total_fires: int
    high_confidence_fires: int
    active_regions: int
    confidence: ConfidenceBreakdown
    top_regions: List[RegionCount]


class ViewState(BaseModel):
    """Read-only snapshot handed to display surfaces."""

    model_config = ConfigDict(frozen=True)

    fires: List[FireDetection]
    weather: Optional[WeatherSnapshot] = None
    selected_region: Optional[Region] = None
    filters: FilterSpecification
    is_loading: bool = False
    error: Optional[str] = None
