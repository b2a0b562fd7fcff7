# tests/core/test_historical.py

import asyncio
from datetime import date

import pytest

from core.errors import GatewayError
from core.historical import HistoricalService, resolve_time_range
from fakes import FakeGateway, failing, historical_record

TODAY = date(2024, 8, 31)


def test_time_ranges_resolve_relative_to_today():
    assert resolve_time_range("30d", TODAY) == (date(2024, 8, 1), TODAY)
    assert resolve_time_range("90d", TODAY) == (date(2024, 6, 2), TODAY)
    assert resolve_time_range("1y", TODAY) == (date(2023, 8, 31), TODAY)


def test_month_ranges_clamp_to_month_end():
    """31 August minus six months has no 31st; use the last day of February."""
    assert resolve_time_range("6m", TODAY) == (date(2024, 2, 29), TODAY)


def test_unknown_time_range_rejected():
    with pytest.raises(ValueError):
        resolve_time_range("2w", TODAY)


def test_load_builds_aggregated_report():
    records = [
        historical_record(date(2024, 8, 1), "Assam", 2, 1.0, 3.0),
        historical_record(date(2024, 8, 1), "Odisha", 4, 2.0, 6.0),
        historical_record(date(2024, 8, 2), "Assam", 1, 0.5, 1.0),
    ]
    gateway = FakeGateway(historical=records)
    service = HistoricalService(gateway, clock=lambda: TODAY)

    report = asyncio.run(service.load("all", "30d"))

    assert gateway.historical_calls == [("all", date(2024, 8, 1), TODAY)]
    assert [d.fire_count for d in report.daily] == [6, 1]
    assert report.daily[0].risk_index == 6.0
    assert report.summary.total_fires == 7
    assert len(report.trend) == 2
    assert service.report == report
    assert service.is_loading is False


def test_failed_load_keeps_previous_report():
    gateway = FakeGateway(historical=[historical_record(date(2024, 8, 5), "Assam", 3, 1.0, 2.0)])
    service = HistoricalService(gateway, clock=lambda: TODAY)
    first = asyncio.run(service.load("Assam", "30d"))

    gateway.historical = failing("archive offline")
    with pytest.raises(GatewayError):
        asyncio.run(service.load("Assam", "90d"))

    assert service.report == first
    assert service.error == "fake: archive offline"
    assert service.is_loading is False


def test_unexpected_failure_clears_loading_and_sets_error():
    gateway = FakeGateway(historical=RuntimeError("bad payload"))
    service = HistoricalService(gateway, clock=lambda: TODAY)

    with pytest.raises(GatewayError) as excinfo:
        asyncio.run(service.load("all", "30d"))

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert service.is_loading is False
    assert service.error == "bad payload"
    assert service.report is None


def test_unexpected_failure_without_message_uses_fallback():
    service = HistoricalService(FakeGateway(historical=RuntimeError()), clock=lambda: TODAY)

    with pytest.raises(GatewayError):
        asyncio.run(service.load("all", "30d"))

    assert service.error == "Failed to load historical data"
