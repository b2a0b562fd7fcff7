# tests/core/test_derivation.py

from datetime import date

from core.derivation import FireFilter
from core.models import FilterSpecification, FireDetection


def make_fire(region="Maharashtra", confidence="high", acq_date=date(2024, 3, 1), **overrides):
    fields = dict(
        latitude=19.75,
        longitude=75.71,
        brightness=320.0,
        acq_date=acq_date,
        acq_time=1200,
        confidence=confidence,
        region=region,
        frp=12.5,
        daynight="day",
        satellite="VIIRS",
    )
    fields.update(overrides)
    return FireDetection(**fields)


def sample_fires():
    return [
        make_fire("Maharashtra", "high", date(2024, 3, 1)),
        make_fire("Assam", "low", date(2024, 3, 5)),
        make_fire("Odisha", "nominal", date(2024, 3, 3)),
        make_fire("Assam", "high", date(2024, 3, 2)),
    ]


def test_date_window_keeps_only_inside_records():
    """Only the Maharashtra detection falls inside 1-3 March."""
    raw = [
        make_fire("Maharashtra", "high", date(2024, 3, 1)),
        make_fire("Assam", "low", date(2024, 3, 5)),
    ]
    spec = FilterSpecification(start_date=date(2024, 3, 1), end_date=date(2024, 3, 3))

    result = FireFilter.derive(raw, spec)

    assert result == [raw[0]]


def test_region_constraint_alone_selects_region():
    """A region constraint with no other constraints keeps that region only."""
    raw = [
        make_fire("Maharashtra", "high", date(2024, 3, 1)),
        make_fire("Assam", "low", date(2024, 3, 5)),
    ]
    spec = FilterSpecification(region="Assam")

    result = FireFilter.derive(raw, spec)

    assert result == [raw[1]]


def test_derive_is_deterministic():
    raw = sample_fires()
    spec = FilterSpecification(start_date=date(2024, 3, 1), end_date=date(2024, 3, 4), confidence="high")

    assert FireFilter.derive(raw, spec) == FireFilter.derive(raw, spec)


def test_every_output_satisfies_all_predicates():
    raw = sample_fires()
    spec = FilterSpecification(
        start_date=date(2024, 3, 1), end_date=date(2024, 3, 3), confidence="high", region="Assam"
    )

    result = FireFilter.derive(raw, spec)

    assert result == [raw[3]]
    for fire in result:
        assert spec.start_date <= fire.acq_date <= spec.end_date
        assert fire.confidence == "high"
        assert fire.region == "Assam"


def test_no_constraints_returns_everything_in_order():
    raw = sample_fires()

    assert FireFilter.derive(raw, FilterSpecification()) == raw


def test_date_filter_skipped_when_a_bound_is_missing():
    raw = sample_fires()
    spec = FilterSpecification(start_date=date(2024, 3, 4))

    assert FireFilter.derive(raw, spec) == raw


def test_bounds_are_inclusive():
    raw = sample_fires()
    spec = FilterSpecification(start_date=date(2024, 3, 2), end_date=date(2024, 3, 3))

    result = FireFilter.derive(raw, spec)

    assert [f.acq_date for f in result] == [date(2024, 3, 3), date(2024, 3, 2)]


def test_inverted_date_range_yields_nothing():
    raw = sample_fires()
    spec = FilterSpecification(start_date=date(2024, 3, 5), end_date=date(2024, 3, 1))

    assert FireFilter.derive(raw, spec) == []


def test_region_match_is_exact():
    """No prefix or case-insensitive matching."""
    raw = [make_fire("Madhya Pradesh"), make_fire("Andhra Pradesh")]

    assert FireFilter.derive(raw, FilterSpecification(region="Pradesh")) == []
    assert FireFilter.derive(raw, FilterSpecification(region="madhya pradesh")) == []


def test_input_is_not_mutated():
    raw = sample_fires()
    before = list(raw)

    FireFilter.derive(raw, FilterSpecification(confidence="low"))

    assert raw == before


def test_empty_input_returns_empty_list():
    assert FireFilter.derive([], FilterSpecification()) == []
