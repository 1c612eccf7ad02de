#!/usr/bin/env python3
"""
Basic tests for the FastAPI forecast service.
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from fastapi.testclient import TestClient

# Add src to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from forecasting.api import app, get_store
from forecasting.engine import IdealRange, Reading, SensorKind
from forecasting.store import ReadingStore


def hourly_readings(value, hours=48):
    now = datetime.now(timezone.utc)
    return [Reading(now - timedelta(hours=h), value) for h in range(hours)]


@pytest.fixture
def store(tmp_path):
    store = ReadingStore.from_url(f"sqlite:///{tmp_path / 'api.db'}")
    store.create_schema()
    return store


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def plant(store):
    species_id = store.add_species(
        "Monstera",
        {
            SensorKind.TEMPERATURE: IdealRange(18, 27),
            SensorKind.GROUND_MOISTURE: IdealRange(30, 60),
        },
    )
    plant_id = store.add_plant("Living room monstera", species_id, owner_id="alice")
    soil_id = store.add_sensor(plant_id, "SOIL-001", "groundMoisture", "Soil probe")
    temp_id = store.add_sensor(plant_id, "TEMP-001", "temperature", "Thermometer")
    store.add_sensor(plant_id, "AIR-001", "airMoisture", "Hygrometer")
    store.add_sensor(plant_id, "LUX-001", "light", "Light meter")

    store.add_readings(soil_id, hourly_readings(20.0))
    store.add_readings(temp_id, hourly_readings(22.0))
    return plant_id


class TestAPI:
    """Test suite for FastAPI endpoints."""

    def test_app_creation(self):
        """Test that the FastAPI app is created successfully."""
        assert app is not None
        assert app.title == "Plant Forecast API"

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Plant Forecast API"

    def test_health_endpoint(self, client, plant):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database_connected"] is True
        assert data["sensors_available"] == 4

    def test_health_endpoint_database_down(self):
        broken = Mock()
        broken.ping.return_value = False
        app.dependency_overrides[get_store] = lambda: broken
        try:
            response = TestClient(app).get("/health")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["sensors_available"] == 0


class TestPlantEndpoints:
    """Predictions and status for stored plants."""

    def test_predictions(self, client, plant):
        response = client.get(f"/plants/{plant}/predictions")

        assert response.status_code == 200
        data = response.json()
        assert data["plant_name"] == "Living room monstera"

        predictions = data["predictions"]
        assert set(predictions) == {"groundMoisture", "temperature"}

        soil = predictions["groundMoisture"]
        assert soil["status"] == "immediate"
        assert soil["action"] == "watering"
        assert soil["sensorName"] == "Soil probe"
        assert soil["readableText"].startswith("Soil probe:")

        assert predictions["temperature"]["status"] == "no_trend"

    def test_sensor_without_logs_reports_no_data(self, client, store, plant):
        # the later sensor of a type replaces the earlier one in the response
        store.add_sensor(plant, "SOIL-002", "groundMoisture", "Spare probe")
        response = client.get(f"/plants/{plant}/predictions")

        soil = response.json()["predictions"]["groundMoisture"]
        assert soil["status"] == "no_data"
        assert "No sensor data available" in soil["message"]

    def test_predictions_owner_mismatch(self, client, plant):
        response = client.get(f"/plants/{plant}/predictions", params={"owner_id": "bob"})
        assert response.status_code == 404

    def test_predictions_unknown_plant(self, client):
        response = client.get("/plants/999/predictions")
        assert response.status_code == 404

    def test_status(self, client, plant):
        response = client.get(f"/plants/{plant}/status")

        assert response.status_code == 200
        data = response.json()
        assert set(data["status"]) == {"groundMoisture", "temperature"}
        assert data["status"]["groundMoisture"]["value"] == 20.0
        assert data["timestamp"] is not None

    def test_status_unknown_plant(self, client):
        assert client.get("/plants/999/status").status_code == 404


class TestForecastEndpoint:
    """Forecasts for submitted readings."""

    def payload(self, **overrides):
        now = datetime.now(timezone.utc)
        body = {
            "values": [50.0] * 6,
            "timestamps": [(now - timedelta(hours=h)).isoformat() for h in range(6)],
            "ideal_min": 30,
            "ideal_max": 60,
            "sensor_type": "groundMoisture",
            "sensor_name": "Balcony probe",
        }
        body.update(overrides)
        return body

    def test_forecast(self, client):
        response = client.post("/forecast", json=self.payload())

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "no_trend"
        assert data["action"] == "none"
        assert data["current_value"] == 50.0
        assert data["ideal_range"] == {"min": 30.0, "max": 60.0}
        assert "Limited historical data" in data["readable_text"]

    def test_forecast_out_of_range(self, client):
        response = client.post("/forecast", json=self.payload(values=[10.0] * 6))

        data = response.json()
        assert data["status"] == "immediate"
        assert data["action"] == "watering"
        assert data["action_in_hours"] == 0

    def test_inverted_range_rejected(self, client):
        response = client.post("/forecast", json=self.payload(ideal_min=70))
        assert response.status_code == 400

    def test_length_mismatch_rejected(self, client):
        response = client.post("/forecast", json=self.payload(values=[50.0]))
        assert response.status_code == 400

    def test_unsupported_sensor_type(self, client):
        response = client.post("/forecast", json=self.payload(sensor_type="light"))
        assert response.status_code == 422

    def test_null_sensor_name_rejected(self, client):
        response = client.post("/forecast", json=self.payload(sensor_name=None))
        assert response.status_code == 422

    def test_default_sensor_name(self, client):
        body = self.payload()
        del body["sensor_name"]
        response = client.post("/forecast", json=body)

        assert response.status_code == 200
        assert response.json()["sensor_name"] == "external-sensor"

    def test_empty_readings(self, client):
        response = client.post("/forecast", json=self.payload(values=[], timestamps=[]))

        assert response.status_code == 200
        assert response.json()["status"] == "no_data"


if __name__ == "__main__":
    pytest.main([__file__])
