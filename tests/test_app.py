from pathlib import Path
from typing import Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from services.query import SpeedQueryService, build_default_query_service
from settings import get_settings

HEADER = "tile,avg_d_kbps,avg_u_kbps,avg_lat_ms,tests,devices,year,quarter\n"
SCENARIO_SPEEDS = [5, 120, 80, 120, 30, 60, 15, 45, 70, 25, 10, 55, 35, 20, 65]


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)

    def shutdown(self) -> None:
        pass


def _write_dataset(path: Path, speeds_mbps: List[int]) -> Path:
    rows = [
        f"t{index:02d},{speed * 1000},{speed * 250},{10 + index},{index * 7},{index * 2},2023,{index % 4 + 1}\n"
        for index, speed in enumerate(speeds_mbps, start=1)
    ]
    path.write_text(HEADER + "".join(rows), encoding="utf-8")
    return path


def _client_for(dataset: Path, monkeypatch, notifier=None) -> Iterator[TestClient]:
    services: Dict[str, SpeedQueryService] = {}

    def build_test_service(dataset_path: str | None = None) -> SpeedQueryService:
        service = services.get("default")
        if service is None:
            service = SpeedQueryService(dataset_path=dataset, notifier=notifier)
            services["default"] = service
        return service

    def cache_clear() -> None:
        while services:
            _, service = services.popitem()
            service.shutdown()

    build_test_service.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_query_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_query_service", build_test_service)
    monkeypatch.setattr("app.web.build_default_query_service", build_test_service)

    app = create_app()
    with TestClient(app) as client:
        client.query_service = build_test_service()  # type: ignore[attr-defined]
        yield client

    cache_clear()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def api_client(tmp_path, monkeypatch, notifier) -> Iterator[TestClient]:
    dataset = _write_dataset(tmp_path / "speeds.csv", SCENARIO_SPEEDS)
    yield from _client_for(dataset, monkeypatch, notifier)


@pytest.fixture
def empty_client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    yield from _client_for(tmp_path / "does-not-exist.csv", monkeypatch)


def test_lifespan_shuts_down_service_and_clears_cache(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("SPEED_DATASET_PATH", str(_write_dataset(tmp_path / "d.csv", [1, 2])))
    get_settings.cache_clear()
    build_default_query_service.cache_clear()
    app = create_app()

    try:
        with TestClient(app):
            service_during = build_default_query_service()
            assert len(service_during.get_ranked()) == 2

        service_after = build_default_query_service()
        try:
            assert service_after is not service_during
            assert service_during.notifier.executor._shutdown is True
            assert service_after.get_ranked() == ()
        finally:
            service_after.shutdown()
    finally:
        build_default_query_service.cache_clear()
        get_settings.cache_clear()


def test_list_internet_speeds_returns_ranked_records(api_client: TestClient) -> None:
    response = api_client.get("/api/internet-speeds")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    payload = response.json()
    assert len(payload) == 10
    assert [item["tile"] for item in payload[:3]] == ["t02", "t04", "t03"]
    assert [item["avgDownloadSpeed"] for item in payload] == [
        120.0, 120.0, 80.0, 70.0, 65.0, 60.0, 55.0, 45.0, 35.0, 30.0
    ]
    assert set(payload[0]) == {
        "tile",
        "avgDownloadSpeed",
        "avgUploadSpeed",
        "avgLatency",
        "tests",
        "devices",
        "year",
        "quarter",
    }
    assert payload[0]["avgUploadSpeed"] == 30.0


def test_list_tiles_returns_distinct_tiles(api_client: TestClient) -> None:
    response = api_client.get("/api/tiles")

    assert response.status_code == 200
    tiles = response.json()
    ranked = [item["tile"] for item in api_client.get("/api/internet-speeds").json()]
    assert tiles == ranked
    assert len(set(tiles)) == len(tiles)


def test_get_internet_speed_for_tile(api_client: TestClient) -> None:
    response = api_client.get("/api/internet-speeds/t09")

    assert response.status_code == 200
    body = response.json()
    assert body["tile"] == "t09"
    assert body["avgDownloadSpeed"] == 70.0
    assert body["avgLatency"] == 19.0
    assert body["tests"] == 63


def test_get_missing_tile_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/api/internet-speeds/XX99")

    assert response.status_code == 404
    assert response.json() == {"message": "Tile not found"}


def test_queries_send_notifications(api_client: TestClient, notifier: RecordingNotifier) -> None:
    api_client.get("/api/internet-speeds")
    api_client.get("/api/tiles")
    api_client.get("/api/internet-speeds/t02")

    assert notifier.messages == [
        "Website requested internet speeds data",
        "Website requested tiles data",
        "Website requested data for tile: t02",
    ]


def test_unexpected_error_returns_generic_500(api_client: TestClient, monkeypatch, caplog) -> None:
    def explode(*_args, **_kwargs):
        raise RuntimeError("secret internal detail")

    service = api_client.query_service  # type: ignore[attr-defined]
    monkeypatch.setattr(service, "get_ranked", explode)
    monkeypatch.setattr(service, "get_distinct_tiles", explode)
    monkeypatch.setattr(service, "get_by_tile", explode)

    for path in ("/api/internet-speeds", "/api/tiles", "/api/internet-speeds/t02"):
        response = api_client.get(path)
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "secret" not in response.text

    assert "secret internal detail" in caplog.text


def test_missing_dataset_serves_empty_results(empty_client: TestClient) -> None:
    speeds = empty_client.get("/api/internet-speeds")
    tiles = empty_client.get("/api/tiles")
    missing = empty_client.get("/api/internet-speeds/t01")

    assert speeds.status_code == 200
    assert speeds.json() == []
    assert tiles.json() == []
    assert missing.status_code == 404


def test_status_reports_loaded_snapshot(api_client: TestClient) -> None:
    loaded = api_client.get("/api/status").json()

    assert loaded["state"] == "loaded"
    assert loaded["recordCount"] == 10
    assert loaded["source"].endswith("speeds.csv")
    assert loaded["loadedAt"] is not None


def test_status_reports_empty_snapshot(empty_client: TestClient) -> None:
    empty = empty_client.get("/api/status").json()

    assert empty == {"state": "empty", "recordCount": 0, "source": None, "loadedAt": None}


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_cors_headers_present(api_client: TestClient) -> None:
    response = api_client.get(
        "/api/tiles", headers={"Origin": "http://dashboard.example.test"}
    )

    assert response.headers["access-control-allow-origin"] == "*"


def test_dashboard_renders_chart_and_table(api_client: TestClient) -> None:
    response = api_client.get("/ui")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    html = response.text
    assert "Internet Speed Rankings" in html
    assert html.count('class="bar-row"') == 10
    assert "120.00 Mbps" in html
    assert "<td>t02</td>" in html
    assert 'http-equiv="refresh"' in html


def test_dashboard_latency_metric(api_client: TestClient) -> None:
    response = api_client.get("/ui", params={"metric": "latency"})

    assert response.status_code == 200
    assert "12.00 ms" in response.text


def test_dashboard_empty_snapshot(empty_client: TestClient) -> None:
    response = empty_client.get("/ui")

    assert response.status_code == 200
    assert "No speed data available." in response.text
    assert "No data loaded yet" in response.text


def test_fault_outside_route_returns_json_500(api_client: TestClient, monkeypatch, caplog) -> None:
    def broken_factory(dataset_path: str | None = None) -> SpeedQueryService:
        raise RuntimeError("factory exploded")

    monkeypatch.setattr("app.api.build_default_query_service", broken_factory)
    client = TestClient(api_client.app, raise_server_exceptions=False)

    response = client.get("/api/internet-speeds")

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"error": "Internal server error"}
    assert "factory exploded" in caplog.text
