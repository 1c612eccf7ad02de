"""
Common utilities shared by the forecasting service, scripts and tests.
"""

from .sensor_simulation import (
    jitter,
    generate_temperature,
    generate_air_moisture,
    generate_ground_moisture,
    generate_sensor_value,
    generate_readings
)

__all__ = [
    'jitter',
    'generate_temperature',
    'generate_air_moisture',
    'generate_ground_moisture',
    'generate_sensor_value',
    'generate_readings'
]
