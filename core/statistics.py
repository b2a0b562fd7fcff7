from collections import Counter
from typing import List

import numpy as np
from scipy.signal import savgol_filter

from .config import TOP_REGION_LIMIT, TREND_POLYORDER, TREND_WINDOW
from .models import (
    ConfidenceBreakdown,
    DailyAggregate,
    FireDetection,
    FireStats,
    HistoricalRecord,
    HistoricalSummary,
    RegionCount,
)


class FireStatistics:
    """Summary figures shown on the dashboard, computed from the filtered view."""

    @classmethod
    def compute(cls, fires: List[FireDetection]) -> FireStats:
        confidence = Counter(fire.confidence for fire in fires)
        regions = Counter(fire.region for fire in fires)

        return FireStats(
            total_fires=len(fires),
            high_confidence_fires=confidence["high"],
            active_regions=len(regions),
            confidence=ConfidenceBreakdown(
                high=confidence["high"],
                nominal=confidence["nominal"],
                low=confidence["low"],
            ),
            top_regions=cls._top_regions(regions),
        )

    @staticmethod
    def _top_regions(regions: Counter) -> List[RegionCount]:
        """Highest counts first; ties keep first-seen order (Counter is insertion ordered)."""
        return [
            RegionCount(region=name, count=count)
            for name, count in regions.most_common(TOP_REGION_LIMIT)
        ]


class HistoricalAggregator:
    """
    Collapses a (date, region) series into one row per date and derives the
    trend and summary figures for the historical page.
    """

    @classmethod
    def aggregate_by_date(cls, records: List[HistoricalRecord]) -> List[DailyAggregate]:
        """Sum counts and area across regions; risk index is the daily maximum."""

        if not records:
            return []

        grouped = {}
        for record in records:
            day = grouped.setdefault(record.date, [0, 0.0, 0.0])
            day[0] += record.fire_count
            day[1] += record.area
            day[2] = max(day[2], record.risk_index)

        return [
            DailyAggregate(
                date=day,
                fire_count=values[0],
                area=round(values[1], 4),
                risk_index=values[2],
            )
            for day, values in sorted(grouped.items())
        ]

    @staticmethod
    def summarize(records: List[HistoricalRecord]) -> HistoricalSummary:
        """Totals over the raw series; the average risk index is per record."""
        if not records:
            return HistoricalSummary(total_fires=0, total_area=0.0, average_risk_index=0.0)

        counts = np.array([r.fire_count for r in records], dtype=int)
        areas = np.array([r.area for r in records], dtype=float)
        risks = np.array([r.risk_index for r in records], dtype=float)

        return HistoricalSummary(
            total_fires=int(counts.sum()),
            total_area=round(float(areas.sum()), 2),
            average_risk_index=round(float(risks.mean()), 1),
        )

    @staticmethod
    def trend(daily: List[DailyAggregate]) -> List[float]:
        """Savitzky-Golay smoothed daily fire counts; ignore if data too short."""
        counts = np.array([d.fire_count for d in daily], dtype=float)
        if len(counts) < TREND_WINDOW:
            return [round(float(c), 2) for c in counts]

        smoothed = savgol_filter(counts, window_length=TREND_WINDOW, polyorder=TREND_POLYORDER)
        # Counts cannot go negative; smoothing may undershoot near sharp drops
        smoothed = np.clip(smoothed, 0.0, None)
        return [round(float(c), 2) for c in smoothed]
