#!/usr/bin/env python3
"""
Seed the database with a demo plant, its sensors and three days of hourly
readings, then print the forecast for each sensor.

Usage: python scripts/populate-logs.py [--database-url sqlite:///plants.db]
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timedelta, timezone

# Add src to path for imports
sys.path.append(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "src"))

from common.sensor_simulation import generate_readings
from forecasting.config import get_database_url, get_window_days
from forecasting.data_adapter import SensorDataAdapter
from forecasting.engine import IdealRange, SensorKind, forecast
from forecasting.store import ReadingStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_SPECIES = {
    SensorKind.TEMPERATURE: IdealRange(18.0, 27.0),
    SensorKind.AIR_MOISTURE: IdealRange(40.0, 70.0),
    SensorKind.GROUND_MOISTURE: IdealRange(30.0, 60.0),
}

# (device, name, kind, base, drift per day)
DEMO_SENSORS = [
    ("TEMP-DEMO-001", "Temperature Sensor", SensorKind.TEMPERATURE, 23.0, 0.5),
    ("AIR-DEMO-001", "Air Moisture Sensor", SensorKind.AIR_MOISTURE, 55.0, 0.0),
    ("SOIL-DEMO-001", "Soil Moisture Sensor", SensorKind.GROUND_MOISTURE, 34.0, -3.0),
]


def seed(store, hours):
    """Create species, plant, sensors and readings. Returns the plant id."""
    now = datetime.now(timezone.utc)
    species_id = store.add_species(
        f"Demo species {now:%Y%m%d%H%M%S}", DEMO_SPECIES, "Created by populate-logs"
    )
    plant_id = store.add_plant("Demo Flower", species_id, owner_id="demo")
    print(f"✅ Created plant Demo Flower ({plant_id})")

    for device_id, name, kind, base, drift in DEMO_SENSORS:
        sensor_id = store.add_sensor(
            plant_id, f"{device_id}-{plant_id}", kind.value, name, location="Near plant"
        )
        readings = generate_readings(kind, now, hours=hours, base=base, drift_per_day=drift)
        count = store.add_readings(sensor_id, readings)
        print(f"  Created {count} logs for {name}")

    return plant_id


def report(store, plant_id):
    now = datetime.now(timezone.utc)
    since = now - timedelta(days=get_window_days())
    plant = store.get_plant(plant_id)
    adapter = SensorDataAdapter()

    for sensor in store.get_sensors(plant_id):
        kind = SensorKind(sensor["type"])
        ideal = store.get_ideal_range(plant["species_id"], kind)
        logs = store.load_sensor_logs(sensor["id"], since=since)
        result = forecast(
            adapter.to_readings(logs), ideal.min, ideal.max, kind, sensor["name"], now=now
        )
        print(f"\n{result.readable_text}")


def main():
    parser = argparse.ArgumentParser(description="Populate demo sensor logs")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy database URL")
    parser.add_argument("--hours", type=int, default=72, help="Hours of history to create")
    args = parser.parse_args()

    url = args.database_url or get_database_url()
    print("🚀 Populating demo plant with sensor logs...")

    try:
        store = ReadingStore.from_url(url)
        store.create_schema()
        plant_id = seed(store, args.hours)
        report(store, plant_id)
    except Exception as e:
        logger.error(f"Error populating logs: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
