#!/usr/bin/env python3
"""
Data adapter to convert stored sensor logs into engine readings.

This module bridges the gap between the tabular log format returned by the
reading store (or submitted over HTTP) and the Reading sequence expected by
the forecast engine.
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from .engine import Reading

logger = logging.getLogger(__name__)


class SensorDataAdapter:
    """Converts sensor log frames and payloads to Reading lists."""

    def to_readings(
        self, log_data: pd.DataFrame, sensor_id: Optional[int] = None
    ) -> List[Reading]:
        """
        Convert a log DataFrame to readings.

        Args:
            log_data: DataFrame with columns [sensor_id, event_time, value, ...]
            sensor_id: Keep only rows of this sensor (all rows when None)

        Returns:
            Readings sorted by timestamp, timestamps in UTC
        """
        if log_data.empty:
            logger.warning(f"No log data supplied for sensor {sensor_id}")
            return []

        sensor_df = log_data
        if sensor_id is not None:
            sensor_df = log_data[log_data["sensor_id"] == sensor_id]

        sensor_df = sensor_df.dropna(subset=["event_time", "value"])
        if sensor_df.empty:
            logger.warning(f"No data found for sensor {sensor_id}")
            return []

        converted = pd.DataFrame(
            {
                "timestamp": pd.to_datetime(sensor_df["event_time"], utc=True),
                "value": sensor_df["value"].astype(float),
            }
        )
        converted = converted.sort_values("timestamp", kind="stable")

        logger.info(f"Converted {len(converted)} records for sensor {sensor_id}")
        logger.info(
            f"Date range: {converted['timestamp'].min()} to {converted['timestamp'].max()}"
        )

        return [
            Reading(timestamp=row.timestamp.to_pydatetime(), value=float(row.value))
            for row in converted.itertuples(index=False)
        ]

    def from_payload(
        self, timestamps: Sequence[str], values: Sequence[float]
    ) -> List[Reading]:
        """
        Build readings from parallel timestamp and value lists.

        Raises:
            ValueError: if the lists differ in length or a timestamp is invalid
        """
        if len(timestamps) != len(values):
            raise ValueError("Number of values must match number of timestamps")

        try:
            parsed = pd.to_datetime(list(timestamps), utc=True, format="ISO8601")
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid timestamp format: {e}") from e

        return [
            Reading(timestamp=ts.to_pydatetime(), value=float(value))
            for ts, value in zip(parsed, values)
        ]

    def get_available_sensors(self, log_data: pd.DataFrame) -> list:
        """
        Get list of sensor IDs present in the log data.

        Args:
            log_data: DataFrame with sensor log data

        Returns:
            List of unique sensor IDs
        """
        if log_data.empty:
            return []
        sensors = log_data["sensor_id"].unique().tolist()
        logger.info(f"Found {len(sensors)} sensors: {sensors}")
        return sensors
