#!/usr/bin/env python3
"""
Reading store backed by SQLAlchemy.

Holds plant species (ideal ranges), plants, sensors and the append-only
sensor log. Works against PostgreSQL in deployment and SQLite in tests.
Event times are stored as naive UTC.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import pandas as pd
from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    insert,
    select,
)

from .config import get_database_url
from .engine import IdealRange, Reading, SensorKind

logger = logging.getLogger(__name__)

metadata = MetaData()

plant_species = Table(
    "plant_species",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(120), nullable=False, unique=True),
    Column("description", String(500)),
    Column("temperature_min", Float),
    Column("temperature_max", Float),
    Column("air_moisture_min", Float),
    Column("air_moisture_max", Float),
    Column("ground_moisture_min", Float),
    Column("ground_moisture_max", Float),
)

plants = Table(
    "plants",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("nickname", String(120), nullable=False),
    Column("species_id", Integer, ForeignKey("plant_species.id"), nullable=False),
    Column("owner_id", String(64), index=True),
)

sensors = Table(
    "sensors",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("device_id", String(64), nullable=False, unique=True),
    Column("name", String(120), nullable=False),
    Column("plant_id", Integer, ForeignKey("plants.id"), nullable=False, index=True),
    Column("type", String(32), nullable=False),
    Column("location", String(120)),
)

sensor_logs = Table(
    "sensor_logs",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("sensor_id", Integer, ForeignKey("sensors.id"), nullable=False, index=True),
    Column("event_time", DateTime, nullable=False, index=True),
    Column("value", Float, nullable=False),
    Column("unit", String(16)),
)

RANGE_COLUMNS = {
    SensorKind.TEMPERATURE: ("temperature_min", "temperature_max"),
    SensorKind.AIR_MOISTURE: ("air_moisture_min", "air_moisture_max"),
    SensorKind.GROUND_MOISTURE: ("ground_moisture_min", "ground_moisture_max"),
}


def _to_db_time(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    return timestamp


class ReadingStore:
    """Plant, sensor and sensor log persistence."""

    def __init__(self, engine=None):
        self.engine = engine if engine is not None else create_engine(get_database_url())

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "ReadingStore":
        return cls(create_engine(url, **kwargs))

    def create_schema(self) -> None:
        metadata.create_all(self.engine)
        logger.info("Database schema ready")

    def add_species(
        self, name: str, ideal_conditions: Dict[str, IdealRange], description: str = ""
    ) -> int:
        """
        Register a species with its ideal ranges.

        Args:
            name: Unique species name
            ideal_conditions: Mapping of sensor kind to IdealRange
            description: Free text

        Returns:
            New species id
        """
        row = {"name": name, "description": description}
        for kind, ideal in ideal_conditions.items():
            low, high = RANGE_COLUMNS[SensorKind(kind)]
            row[low] = ideal.min
            row[high] = ideal.max
        with self.engine.begin() as conn:
            result = conn.execute(insert(plant_species).values(**row))
            return result.inserted_primary_key[0]

    def add_plant(self, nickname: str, species_id: int, owner_id: Optional[str] = None) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(plants).values(
                    nickname=nickname, species_id=species_id, owner_id=owner_id
                )
            )
            return result.inserted_primary_key[0]

    def add_sensor(
        self,
        plant_id: int,
        device_id: str,
        sensor_type: str,
        name: str,
        location: Optional[str] = None,
    ) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(sensors).values(
                    plant_id=plant_id,
                    device_id=device_id,
                    type=sensor_type,
                    name=name,
                    location=location,
                )
            )
            return result.inserted_primary_key[0]

    def add_readings(self, sensor_id: int, readings: Iterable[Reading], unit: str = "") -> int:
        """Append readings to the sensor log. Returns the number inserted."""
        rows = [
            {
                "sensor_id": sensor_id,
                "event_time": _to_db_time(reading.timestamp),
                "value": float(reading.value),
                "unit": unit,
            }
            for reading in readings
        ]
        if not rows:
            return 0
        with self.engine.begin() as conn:
            conn.execute(insert(sensor_logs), rows)
        logger.info(f"Inserted {len(rows)} readings for sensor {sensor_id}")
        return len(rows)

    def get_plant(self, plant_id: int, owner_id: Optional[str] = None) -> Optional[dict]:
        """Plant row, or None if missing or owned by someone else."""
        query = select(plants).where(plants.c.id == plant_id)
        if owner_id is not None:
            query = query.where(plants.c.owner_id == owner_id)
        with self.engine.connect() as conn:
            row = conn.execute(query).mappings().first()
        return dict(row) if row else None

    def get_sensors(self, plant_id: int) -> List[dict]:
        query = select(sensors).where(sensors.c.plant_id == plant_id).order_by(sensors.c.id)
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(query).mappings()]

    def get_ideal_range(self, species_id: int, kind: SensorKind) -> Optional[IdealRange]:
        """Ideal range of a species for one sensor kind, None if undefined."""
        low, high = RANGE_COLUMNS[SensorKind(kind)]
        query = select(plant_species.c[low], plant_species.c[high]).where(
            plant_species.c.id == species_id
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).first()
        if row is None or row[0] is None or row[1] is None:
            return None
        return IdealRange(float(row[0]), float(row[1]))

    def load_sensor_logs(self, sensor_id: int, since: Optional[datetime] = None) -> pd.DataFrame:
        """Log rows of one sensor in chronological order."""
        query = select(
            sensor_logs.c.sensor_id,
            sensor_logs.c.event_time,
            sensor_logs.c.value,
            sensor_logs.c.unit,
        ).where(sensor_logs.c.sensor_id == sensor_id)
        if since is not None:
            query = query.where(sensor_logs.c.event_time >= _to_db_time(since))
        query = query.order_by(sensor_logs.c.event_time, sensor_logs.c.id)

        with self.engine.connect() as conn:
            frame = pd.read_sql(query, conn)
        if not frame.empty:
            frame["event_time"] = pd.to_datetime(frame["event_time"], utc=True)
        return frame

    def latest_status(self, plant_id: int) -> Dict[str, dict]:
        """Latest reading of every sensor of a plant, keyed by sensor type."""
        status: Dict[str, dict] = {}
        plant_sensors = self.get_sensors(plant_id)
        with self.engine.connect() as conn:
            for sensor in plant_sensors:
                row = conn.execute(
                    select(sensor_logs.c.event_time, sensor_logs.c.value, sensor_logs.c.unit)
                    .where(sensor_logs.c.sensor_id == sensor["id"])
                    .order_by(sensor_logs.c.event_time.desc(), sensor_logs.c.id.desc())
                    .limit(1)
                ).first()
                if row is None:
                    continue
                status[sensor["type"]] = {
                    "value": row.value,
                    "unit": row.unit or "",
                    "timestamp": row.event_time.replace(tzinfo=timezone.utc),
                }
        return status

    def count_sensors(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(sensors)).scalar_one()

    def ping(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except Exception as e:
            logger.error(f"Database ping failed: {e}")
            return False
