#!/usr/bin/env python3
"""
Tests for the shared sensor simulation helpers.
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add src to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from common.sensor_simulation import (
    generate_air_moisture,
    generate_ground_moisture,
    generate_readings,
    generate_sensor_value,
    generate_temperature,
)
from forecasting.engine import PredictionStatus, SensorKind, forecast

END = datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc)


class TestGenerators:
    """Per-kind value generators."""

    def test_temperature_daily_cycle(self):
        assert generate_temperature(12) == pytest.approx(27.0)
        assert generate_temperature(0) == pytest.approx(17.0)

    def test_air_moisture_is_clamped(self):
        assert generate_air_moisture(0, base=85.0) == 90.0
        assert generate_air_moisture(12, base=25.0) == 20.0

    def test_ground_moisture_is_clamped(self):
        assert generate_ground_moisture(23, base=10.0) == 15.0
        assert generate_ground_moisture(0, base=95.0) == 85.0

    def test_value_without_noise(self):
        assert generate_sensor_value("groundMoisture", 10, add_noise=False) == 44.0

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            generate_sensor_value("ph", 10)


class TestGenerateReadings:
    """Reading series used by the populate script."""

    def test_series_shape(self):
        readings = generate_readings(SensorKind.TEMPERATURE, END, hours=72)

        assert len(readings) == 72
        assert readings[-1].timestamp == END
        assert readings[0].timestamp == END - timedelta(hours=71)

    def test_seed_is_reproducible(self):
        first = generate_readings(SensorKind.AIR_MOISTURE, END, hours=24, seed=7)
        second = generate_readings(SensorKind.AIR_MOISTURE, END, hours=24, seed=7)
        assert first == second

    def test_drying_soil_triggers_watering(self):
        readings = generate_readings(
            SensorKind.GROUND_MOISTURE, END, hours=72, base=25.0, drift_per_day=-3.0, add_noise=False
        )
        result = forecast(readings, 30, 60, SensorKind.GROUND_MOISTURE, "Soil", now=END)

        assert result.status is PredictionStatus.IMMEDIATE
        assert result.trend.avg_day_change < 0


if __name__ == "__main__":
    pytest.main([__file__])
