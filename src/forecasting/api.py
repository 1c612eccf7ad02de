#!/usr/bin/env python3
"""
FastAPI service for plant sensor forecasts.
Exposes the forecast engine and the reading store as a REST API.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import get_log_level, get_port, get_prevent_margin_hours, get_window_days
from .data_adapter import SensorDataAdapter
from .engine import (
    PredictionResult,
    SensorKind,
    forecast,
    is_forecastable,
)
from .store import ReadingStore

# Configure logging
logging.basicConfig(level=get_log_level())
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Plant Forecast API",
    description="Trend forecasts and care recommendations for plant sensors",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware for dashboard integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic models for API requests and responses
class ForecastRequest(BaseModel):
    """Request model for forecasting arbitrary readings."""

    values: List[float]
    timestamps: List[str]
    ideal_min: float
    ideal_max: float
    sensor_type: SensorKind
    sensor_name: str = "external-sensor"


class IdealRangeModel(BaseModel):
    min: float
    max: float


class TrendModel(BaseModel):
    avg_day_change: float
    hour_change: float
    values: List[float]


class ForecastResponse(BaseModel):
    sensor_name: str
    status: str
    action: str
    action_in_hours: float
    action_time: Optional[datetime]
    hours_to_threshold: Optional[float]
    current_value: float
    ideal_range: IdealRangeModel
    trend: TrendModel
    readable_text: str
    analysis_timestamp: datetime


class PlantPredictions(BaseModel):
    plant_id: int
    plant_name: str
    predictions: Dict[str, Dict[str, Any]]
    generated_at: datetime


class PlantStatus(BaseModel):
    status: Dict[str, Dict[str, Any]]
    timestamp: Optional[datetime]


class HealthCheck(BaseModel):
    status: str
    timestamp: datetime
    database_connected: bool
    sensors_available: int


_store: Optional[ReadingStore] = None


def get_store() -> ReadingStore:
    """Reading store shared by all requests."""
    global _store
    if _store is None:
        _store = ReadingStore()
    return _store


def to_response(name: str, result: PredictionResult, now: datetime) -> ForecastResponse:
    return ForecastResponse(
        sensor_name=name,
        status=result.status.value,
        action=result.action.value,
        action_in_hours=result.action_in_hours,
        action_time=result.action_time,
        hours_to_threshold=result.hours_to_threshold,
        current_value=result.current_value,
        ideal_range=IdealRangeModel(min=result.ideal_range.min, max=result.ideal_range.max),
        trend=TrendModel(
            avg_day_change=result.trend.avg_day_change,
            hour_change=result.trend.hour_change,
            values=list(result.trend.values),
        ),
        readable_text=result.readable_text,
        analysis_timestamp=now,
    )


# API Endpoints


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Plant Forecast API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthCheck)
async def health_check(store: ReadingStore = Depends(get_store)):
    """Health check endpoint."""
    try:
        database_connected = store.ping()
        sensors_available = store.count_sensors() if database_connected else 0

        return HealthCheck(
            status="healthy" if database_connected else "degraded",
            timestamp=datetime.now(timezone.utc),
            database_connected=database_connected,
            sensors_available=sensors_available,
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return HealthCheck(
            status="unhealthy",
            timestamp=datetime.now(timezone.utc),
            database_connected=False,
            sensors_available=0,
        )


@app.post("/forecast", response_model=ForecastResponse)
async def forecast_readings(request: ForecastRequest):
    """
    Forecast arbitrary sensor readings against an ideal range.

    Example request:
    ```json
    {
       "values": [31.0, 30.2, 28.4, 27.9, 26.1, 25.5],
       "timestamps": [
         "2026-10-16T08:00:00Z",
         "2026-10-16T20:00:00Z",
         "2026-10-17T08:00:00Z",
         "2026-10-17T20:00:00Z",
         "2026-10-18T08:00:00Z",
         "2026-10-18T12:00:00Z"
       ],
       "ideal_min": 25,
       "ideal_max": 60,
       "sensor_type": "groundMoisture",
       "sensor_name": "Balcony soil probe"
    }
    ```
    """
    try:
        if request.ideal_min > request.ideal_max:
            raise HTTPException(
                status_code=400, detail="ideal_min must not exceed ideal_max"
            )

        try:
            readings = SensorDataAdapter().from_payload(request.timestamps, request.values)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        now = datetime.now(timezone.utc)
        result = forecast(
            readings,
            request.ideal_min,
            request.ideal_max,
            request.sensor_type,
            request.sensor_name,
            now=now,
            prevent_margin_hours=get_prevent_margin_hours(),
        )
        return to_response(request.sensor_name, result, now)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error forecasting submitted readings: {e}")
        raise HTTPException(status_code=500, detail=f"Forecast failed: {str(e)}")


@app.get("/plants/{plant_id}/predictions", response_model=PlantPredictions)
async def plant_predictions(
    plant_id: int,
    owner_id: Optional[str] = None,
    store: ReadingStore = Depends(get_store),
):
    """Get predictions and recommendations for every forecastable sensor of a plant."""
    try:
        plant = store.get_plant(plant_id, owner_id=owner_id)
        if plant is None:
            raise HTTPException(status_code=404, detail="Plant not found")

        now = datetime.now(timezone.utc)
        window_days = get_window_days()
        since = now - timedelta(days=window_days)
        adapter = SensorDataAdapter()
        predictions: Dict[str, Dict[str, Any]] = {}

        for sensor in store.get_sensors(plant_id):
            sensor_type = sensor["type"]
            if not is_forecastable(sensor_type):
                continue

            ideal_range = store.get_ideal_range(plant["species_id"], SensorKind(sensor_type))
            if ideal_range is None:
                continue

            logs = store.load_sensor_logs(sensor["id"], since=since)
            if logs.empty:
                predictions[sensor_type] = {
                    "status": "no_data",
                    "message": f"No sensor data available for {sensor_type} "
                    f"in the last {window_days} days",
                }
                continue

            sensor_name = sensor["name"] or f"{sensor_type} sensor"
            result = forecast(
                adapter.to_readings(logs),
                ideal_range.min,
                ideal_range.max,
                SensorKind(sensor_type),
                sensor_name,
                now=now,
                prevent_margin_hours=get_prevent_margin_hours(),
            )
            predictions[sensor_type] = {
                **result.to_dict(),
                "sensorId": sensor["id"],
                "sensorName": sensor["name"],
            }

        return PlantPredictions(
            plant_id=plant["id"],
            plant_name=plant["nickname"],
            predictions=predictions,
            generated_at=now,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating predictions: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/plants/{plant_id}/status", response_model=PlantStatus)
async def plant_status(
    plant_id: int,
    owner_id: Optional[str] = None,
    store: ReadingStore = Depends(get_store),
):
    """Get the latest reading of each sensor type of a plant."""
    try:
        if store.get_plant(plant_id, owner_id=owner_id) is None:
            raise HTTPException(status_code=404, detail="Plant not found")

        latest = store.latest_status(plant_id)
        timestamps = [entry["timestamp"] for entry in latest.values()]

        return PlantStatus(
            status=latest,
            timestamp=max(timestamps) if timestamps else None,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching plant status: {e}")
        raise HTTPException(status_code=500, detail="Error fetching plant status")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("forecasting.api:app", host="0.0.0.0", port=get_port(), log_level="info")
