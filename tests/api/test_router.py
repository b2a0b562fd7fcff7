# tests/api/test_router.py
import time
from datetime import date

from fastapi.testclient import TestClient
from loguru import logger

from main import create_app
from fakes import FakeGateway, failing, historical_record, make_fire

FIRES = [make_fire("Assam", "high"), make_fire("Odisha", "low"), make_fire("Assam", "nominal")]


def make_client(gateway=None):
    gateway = gateway or FakeGateway([FIRES])
    return TestClient(create_app(gateway=gateway, interval=3600)), gateway


def wait_for_state(client, predicate, attempts=100):
    """The view updates asynchronously; poll until the expected state lands."""
    for _ in range(attempts):
        state = client.get("/state").json()
        if predicate(state):
            return state
        time.sleep(0.01)
    raise AssertionError(f"state never matched: {state}")


def test_health_endpoint():
    client, _ = make_client()
    with client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_startup_logs_territory_and_gateway():
    messages = []
    sink_id = logger.add(messages.append, format="{message}")
    try:
        client, _ = make_client()
        with client:
            client.get("/health")
    finally:
        logger.remove(sink_id)

    assert any("India" in m and "FakeGateway" in m for m in messages)


def test_state_exposes_fetched_fires():
    client, _ = make_client()
    with client:
        state = wait_for_state(client, lambda s: len(s["fires"]) == 3)

    assert state["is_loading"] is False
    assert state["error"] is None
    assert state["weather"] is None
    assert state["filters"]["confidence"] == "all"


def test_stats_endpoint():
    client, _ = make_client()
    with client:
        wait_for_state(client, lambda s: len(s["fires"]) == 3)
        data = client.get("/stats").json()

    assert data["total_fires"] == 3
    assert data["high_confidence_fires"] == 1
    assert data["active_regions"] == 2
    assert data["top_regions"][0] == {"region": "Assam", "count": 2}


def test_regions_endpoint_lists_territory():
    client, _ = make_client()
    with client:
        regions = client.get("/regions").json()

    assert len(regions) == 8
    assert {"id", "name", "latitude", "longitude"} <= set(regions[0])


def test_apply_filters_returns_filtered_view():
    client, _ = make_client()
    with client:
        wait_for_state(client, lambda s: len(s["fires"]) == 3)
        response = client.post("/filters", json={"confidence": "all", "region": "Assam"})

    assert response.status_code == 200
    assert [f["region"] for f in response.json()["fires"]] == ["Assam", "Assam"]


def test_inverted_date_range_is_accepted_and_derives_empty_view():
    client, _ = make_client()
    with client:
        wait_for_state(client, lambda s: len(s["fires"]) == 3)
        response = client.post(
            "/filters", json={"start_date": "2024-03-05", "end_date": "2024-03-01"}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["fires"] == []
    assert data["filters"]["start_date"] == "2024-03-05"


def test_unknown_confidence_rejected():
    client, _ = make_client()
    with client:
        response = client.post("/filters", json={"confidence": "medium"})
    assert response.status_code == 422
    assert "confidence" in str(response.json())


def test_select_region_fetches_weather():
    client, gateway = make_client()
    region = {"id": "od", "name": "Odisha", "latitude": 20.9517, "longitude": 85.0985}
    with client:
        response = client.post("/region", json=region)
        state = wait_for_state(client, lambda s: s["weather"] is not None)

    assert response.status_code == 202
    assert state["selected_region"]["name"] == "Odisha"
    assert gateway.weather_calls == [(20.9517, 85.0985)]


def test_clear_region():
    client, _ = make_client()
    with client:
        response = client.post("/region")
        state = wait_for_state(client, lambda s: not s["is_loading"])

    assert response.status_code == 202
    assert state["selected_region"] is None


def test_refresh_triggers_a_new_cycle():
    client, gateway = make_client()
    with client:
        wait_for_state(client, lambda s: len(s["fires"]) == 3)
        response = client.post("/refresh")
        wait_for_state(client, lambda s: gateway.fire_calls == 2 and not s["is_loading"])

    assert response.status_code == 202


def test_fetch_failure_surfaces_in_error_field():
    client, _ = make_client(FakeGateway([failing("FIRMS down")]))
    with client:
        state = wait_for_state(client, lambda s: s["error"] is not None)

    assert state["error"] == "fake: FIRMS down"
    assert state["fires"] == []
    assert state["is_loading"] is False


def test_historical_report():
    records = [
        historical_record(date.today(), "Assam", 4, 2.0, 5.0),
        historical_record(date.today(), "Odisha", 1, 0.5, 8.0),
    ]
    client, gateway = make_client(FakeGateway([FIRES], historical=records))
    with client:
        response = client.get("/historical", params={"region": "all", "time_range": "90d"})

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["total_fires"] == 5
    assert data["daily"][0]["risk_index"] == 8.0
    assert gateway.historical_calls[0][0] == "all"


def test_historical_invalid_time_range():
    client, _ = make_client()
    with client:
        response = client.get("/historical", params={"time_range": "2w"})
    assert response.status_code == 422


def test_historical_gateway_failure():
    client, _ = make_client(FakeGateway([FIRES], historical=failing("archive offline")))
    with client:
        response = client.get("/historical")
    assert response.status_code == 502
    assert "archive offline" in response.json()["detail"]


def test_historical_unexpected_failure_is_a_gateway_error():
    client, _ = make_client(FakeGateway([FIRES], historical=RuntimeError("bad payload")))
    with client:
        response = client.get("/historical")
    assert response.status_code == 502
    assert response.json()["detail"] == "bad payload"
