"""
Shared sensor value simulation for demo data and tests.

Values follow a daily cycle per sensor kind plus an optional linear drift,
so that seeded plants show the different forecast outcomes.
"""

import math
import random
from datetime import timedelta

from forecasting.engine import Reading, SensorKind

DEFAULT_BASES = {
    SensorKind.TEMPERATURE: 22.0,
    SensorKind.AIR_MOISTURE: 50.0,
    SensorKind.GROUND_MOISTURE: 45.0,
}


def jitter(value, noise_level=0.05, rng=random):
    """Add realistic noise to sensor readings"""
    return value + rng.gauss(0, noise_level * abs(value))


def generate_temperature(hour_of_day, base=22.0):
    """Cooler at night, warmer during the day (about +/-5 C)"""
    return base + 5 * math.sin((hour_of_day - 6) * math.pi / 12)


def generate_air_moisture(hour_of_day, base=50.0):
    """Inverse of the temperature cycle, clamped to 20-90 %"""
    value = base - 10 * math.sin((hour_of_day - 6) * math.pi / 12)
    return max(20.0, min(90.0, value))


def generate_ground_moisture(hour_of_day, base=45.0):
    """Soil slowly dries through the day, clamped to 15-85 %"""
    value = base - 0.1 * hour_of_day
    return max(15.0, min(85.0, value))


GENERATORS = {
    SensorKind.TEMPERATURE: generate_temperature,
    SensorKind.AIR_MOISTURE: generate_air_moisture,
    SensorKind.GROUND_MOISTURE: generate_ground_moisture,
}


def generate_sensor_value(kind, hour_of_day, base=None, add_noise=True, rng=random):
    """Generate one value for a sensor kind with optional noise"""
    kind = SensorKind(kind)
    base = DEFAULT_BASES[kind] if base is None else base
    value = GENERATORS[kind](hour_of_day, base)
    if add_noise:
        value = jitter(value, 0.02, rng)
    return round(value, 1)


def generate_readings(
    kind, end, hours=72, interval_hours=1, base=None, drift_per_day=0.0, add_noise=True, seed=None
):
    """
    Generate hourly readings ending at `end`.

    drift_per_day shifts the base linearly over time (negative for drying
    soil, positive for a warming room). seed makes the noise reproducible.
    """
    rng = random.Random(seed)
    kind = SensorKind(kind)
    base = DEFAULT_BASES[kind] if base is None else base
    readings = []
    for offset in range(hours - 1, -1, -interval_hours):
        timestamp = end - timedelta(hours=offset)
        drifted = base - drift_per_day * offset / 24
        value = generate_sensor_value(kind, timestamp.hour, drifted, add_noise, rng)
        readings.append(Reading(timestamp=timestamp, value=value))
    return readings
