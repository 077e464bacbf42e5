"""
Tests for the FastAPI level query surface.
"""

import threading
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from sr_levels.api.levels_api import create_levels_app
from sr_levels.engine import SupportResistanceEngine


@pytest.fixture
def engine(daily_provider, engine_config, newest_bar):
    return SupportResistanceEngine(daily_provider, engine_config, clock=lambda: newest_bar)


@pytest.fixture
def client(engine):
    engine.scan_symbol("EURUSD")
    return TestClient(create_levels_app(engine))


class TestLevelsAPI:
    """Tests for the HTTP endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == "healthy"
        assert data['symbols'] == ["EURUSD"]

    def test_list_levels(self, client):
        response = client.get("/levels/eurusd")

        assert response.status_code == 200
        levels = response.json()
        assert len(levels) == 1
        assert levels[0]['price'] == pytest.approx(1.1)
        assert levels[0]['tier'] == "D1"
        assert levels[0]['strength'] == 12

    def test_list_levels_by_tier(self, client):
        response = client.get("/levels/EURUSD", params={"tier": "H4"})

        assert response.status_code == 200
        assert response.json() == []

    def test_strongest_support(self, client):
        response = client.get(
            "/levels/EURUSD/strongest",
            params={"price": 1.105, "side": "support", "max_distance": 0.005}
        )

        assert response.status_code == 200
        assert response.json()['touches'] == 2

    def test_strongest_not_found(self, client):
        response = client.get(
            "/levels/EURUSD/strongest",
            params={"price": 1.105, "side": "support", "max_distance": 0.0049}
        )

        assert response.status_code == 404

    def test_strongest_requires_price(self, client):
        response = client.get("/levels/EURUSD/strongest")

        assert response.status_code == 422

    def test_nearest_pair(self, client):
        response = client.get("/levels/EURUSD/nearest", params={"price": 1.105})

        assert response.status_code == 200
        data = response.json()
        assert data['symbol'] == "EURUSD"
        assert data['support']['price'] == pytest.approx(1.1)
        assert data['resistance'] is None

    def test_stats(self, client):
        response = client.get("/levels/EURUSD/stats")

        assert response.status_code == 200
        data = response.json()
        assert data['total_levels'] == 1
        assert data['tiers']['D1']['average_strength'] == 12.0

    def test_scan(self, client):
        response = client.post("/scan/EURUSD")

        assert response.status_code == 200
        report = response.json()
        assert report['tiers_scanned'] == ["D1"]
        assert report['merged'] == 2

    def test_invalid_symbol(self, client):
        response = client.get("/levels/X")

        assert response.status_code == 400
        body = response.json()
        assert body['success'] is False
        assert body['error']['code'] == "INVALID_DATA"


class TestEngineExecutor:
    """Tests for running engine calls off the event loop"""

    def test_scan_runs_on_engine_thread(self, engine_config, newest_bar, daily_provider):
        threads = []

        def fetch_bars(symbol, tier, count):
            threads.append(threading.current_thread().name)
            return daily_provider.fetch_bars(symbol, tier, count)

        provider = Mock()
        provider.fetch_bars.side_effect = fetch_bars
        engine = SupportResistanceEngine(provider, engine_config, clock=lambda: newest_bar)

        with TestClient(create_levels_app(engine)) as client:
            response = client.post("/scan/EURUSD")

        assert response.status_code == 200
        assert len(threads) == 3
        assert len(set(threads)) == 1
        assert threads[0].startswith("sr-engine")
        assert threads[0] != threading.main_thread().name

    def test_engine_errors_cross_executor(self, engine):
        with TestClient(create_levels_app(engine)) as client:
            response = client.post("/scan/%3F")

        assert response.status_code == 400
        assert response.json()['error']['code'] == "INVALID_DATA"

    def test_executor_shut_down_with_app(self, engine):
        app = create_levels_app(engine)

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

        with pytest.raises(RuntimeError):
            app.state.executor.submit(lambda: None)
