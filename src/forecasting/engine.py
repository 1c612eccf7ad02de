#!/usr/bin/env python3
"""
Forecast-and-action engine for plant sensors.

Aggregates the last three calendar days of readings into daily means,
estimates a linear trend from them and decides whether (and when) a
corrective action such as watering or cooling should be taken to keep the
monitored value inside the species' ideal range.

The engine is a pure computation: no I/O, no shared state. The wall-clock
"now" is read once per call (or supplied by the caller) and used both for
calendar-day bucketing and for the absolute action time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

PREVENT_MARGIN_HOURS = 1.0  # act this long before the bound is crossed
OVERSHOOT_MARGIN_HOURS = 1.0  # keep acting this long after the bound is crossed
FORECAST_HORIZON_HOURS = 24
TREND_EPSILON = 1e-9
DAYS_BACK = 3
MIN_READINGS_SINGLE_DAY = 5


class SensorKind(str, Enum):
    GROUND_MOISTURE = "groundMoisture"
    TEMPERATURE = "temperature"
    AIR_MOISTURE = "airMoisture"


class Bound(str, Enum):
    MIN = "min"
    MAX = "max"
    NONE = "none"


class Action(str, Enum):
    WATERING = "watering"
    HEATING = "heating"
    COOLING = "cooling"
    REDUCE_WATERING = "reduceWatering"
    NONE = "none"


class PredictionStatus(str, Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    NO_DATA = "no_data"
    NO_TREND = "no_trend"
    NO_REACH = "no_reach"


class DataQuality(str, Enum):
    GOOD = "good"
    PARTIAL = "partial"
    INSUFFICIENT = "insufficient"


ACTION_TABLE: Dict[Tuple[SensorKind, Bound], Action] = {
    (SensorKind.GROUND_MOISTURE, Bound.MIN): Action.WATERING,
    (SensorKind.GROUND_MOISTURE, Bound.MAX): Action.REDUCE_WATERING,
    (SensorKind.TEMPERATURE, Bound.MIN): Action.HEATING,
    (SensorKind.TEMPERATURE, Bound.MAX): Action.COOLING,
    (SensorKind.AIR_MOISTURE, Bound.MIN): Action.WATERING,
    (SensorKind.AIR_MOISTURE, Bound.MAX): Action.COOLING,
}

ACTION_LABELS = {
    Action.WATERING: "watering",
    Action.HEATING: "heating",
    Action.COOLING: "cooling",
    Action.REDUCE_WATERING: "reduce watering",
    Action.NONE: "action",
}


@dataclass(frozen=True)
class Reading:
    timestamp: datetime
    value: float


@dataclass(frozen=True)
class IdealRange:
    min: float
    max: float


@dataclass(frozen=True)
class DailyAggregate:
    """Daily means for the trailing window, oldest first."""

    values: Tuple[float, ...]
    days_with_data: int
    total_readings: int
    quality: DataQuality


@dataclass(frozen=True)
class Trend:
    avg_day_change: float
    hour_change: float
    values: Tuple[float, ...]


@dataclass(frozen=True)
class PredictionResult:
    status: PredictionStatus
    action: Action
    action_in_hours: float
    action_time: Optional[datetime]
    hours_to_threshold: Optional[float]
    current_value: float
    ideal_range: IdealRange
    trend: Trend
    readable_text: str

    def to_dict(self) -> dict:
        """JSON-ready representation used by the HTTP layer."""
        return {
            "status": self.status.value,
            "action": self.action.value,
            "actionInHours": self.action_in_hours,
            "actionTime": self.action_time.isoformat() if self.action_time else None,
            "hoursToThreshold": self.hours_to_threshold,
            "currentValue": self.current_value,
            "idealRange": {"min": self.ideal_range.min, "max": self.ideal_range.max},
            "trend": {
                "avgDayChange": self.trend.avg_day_change,
                "hourChange": self.trend.hour_change,
                "values": list(self.trend.values),
            },
            "readableText": self.readable_text,
        }


def is_within_range(value: float, ideal_min: float, ideal_max: float) -> bool:
    return ideal_min <= value <= ideal_max


def is_forecastable(sensor_type: str) -> bool:
    """True for the sensor kinds the engine can forecast."""
    return sensor_type in {kind.value for kind in SensorKind}


def map_action(kind: SensorKind, bound: Bound) -> Action:
    return ACTION_TABLE.get((SensorKind(kind), bound), Action.NONE)


def select_target(
    current_value: float, ideal_min: float, ideal_max: float, hour_change: float
) -> Bound:
    """
    Pick the bound that is violated now or will be within the horizon.

    An out-of-range value targets the bound it violates. An in-range value
    targets a bound only if the linear projection crosses it within
    FORECAST_HORIZON_HOURS.
    """
    if not is_within_range(current_value, ideal_min, ideal_max):
        return Bound.MIN if current_value < ideal_min else Bound.MAX

    projected = current_value + hour_change * FORECAST_HORIZON_HOURS
    if hour_change < 0 and projected < ideal_min:
        return Bound.MIN
    if hour_change > 0 and projected > ideal_max:
        return Bound.MAX
    return Bound.NONE


def aggregate_daily(
    readings: Sequence[Reading], now: datetime, days_back: int = DAYS_BACK
) -> DailyAggregate:
    """Bucket readings by UTC calendar day and estimate the missing days."""
    return _aggregate_frame(_readings_frame(readings), _as_utc(now), days_back)


def forecast(
    readings: Sequence[Reading],
    ideal_min: float,
    ideal_max: float,
    kind: SensorKind,
    display_name: str,
    now: Optional[datetime] = None,
    prevent_margin_hours: float = PREVENT_MARGIN_HOURS,
) -> PredictionResult:
    """
    Compute the prediction and recommended action for one sensor.

    Parameters:
    -----------
    readings : sequence of Reading
        Readings of a single sensor, in any order.
    ideal_min, ideal_max : float
        Ideal range for this sensor kind (inclusive).
    kind : SensorKind or str
        One of groundMoisture, temperature, airMoisture.
    display_name : str
        Sensor name used in the explanation text.
    now : datetime, optional
        Reference time; defaults to the current UTC time.

    Returns:
    --------
    PredictionResult
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    kind = SensorKind(kind)
    ideal_range = IdealRange(float(ideal_min), float(ideal_max))

    frame = _readings_frame(readings)
    daily = _aggregate_frame(frame, now, DAYS_BACK)
    current_value = _most_recent_value(frame)

    if daily.quality is DataQuality.INSUFFICIENT:
        logger.debug(f"{display_name}: insufficient data ({daily.total_readings} readings)")
        text = (
            f"Insufficient data for analysis of {display_name}. "
            f"Need at least some sensor readings from the last {DAYS_BACK} days."
        )
        return PredictionResult(
            status=PredictionStatus.NO_DATA,
            action=Action.NONE,
            action_in_hours=0.0,
            action_time=None,
            hours_to_threshold=None,
            current_value=current_value,
            ideal_range=ideal_range,
            trend=Trend(0.0, 0.0, ()),
            readable_text=text,
        )

    oldest, previous, latest = daily.values
    avg_day_change = ((previous - oldest) + (latest - previous)) / 2.0
    hour_change = avg_day_change / 24.0
    trend = Trend(avg_day_change, hour_change, daily.values)

    in_range = is_within_range(current_value, ideal_range.min, ideal_range.max)
    target = select_target(current_value, ideal_range.min, ideal_range.max, hour_change)
    action = map_action(kind, target)
    stable = abs(hour_change) < TREND_EPSILON

    action_in_hours = 0.0
    action_time = None
    hours_to_threshold = None
    hours_left = 0.0

    if stable and in_range:
        status, action = PredictionStatus.NO_TREND, Action.NONE
    elif not in_range and action is not Action.NONE:
        # Out of range is always immediate, whatever the trend direction.
        status, action_time = PredictionStatus.IMMEDIATE, now
    elif target is Bound.NONE:
        status, action = PredictionStatus.NO_REACH, Action.NONE
    else:
        bound_value = ideal_range.min if target is Bound.MIN else ideal_range.max
        delta = abs(bound_value - current_value)
        if delta > TREND_EPSILON and abs(hour_change) > TREND_EPSILON:
            hours_left = abs(delta / hour_change)
        margin = _margin_hours(target, hour_change, prevent_margin_hours)
        action_in_hours = max(0.0, hours_left - margin)
        hours_to_threshold = hours_left
        if action_in_hours <= 0:
            status, action_time = PredictionStatus.IMMEDIATE, now
        else:
            status = PredictionStatus.SCHEDULED
            action_time = now + timedelta(hours=action_in_hours)

    text = render_explanation(
        display_name,
        daily.quality,
        trend,
        current_value,
        ideal_range,
        target,
        hours_left,
        status,
        action,
        action_in_hours,
    )
    logger.debug(f"{display_name}: status={status.value} action={action.value}")

    return PredictionResult(
        status=status,
        action=action,
        action_in_hours=action_in_hours,
        action_time=action_time,
        hours_to_threshold=hours_to_threshold,
        current_value=current_value,
        ideal_range=ideal_range,
        trend=trend,
        readable_text=text,
    )


def render_explanation(
    display_name: str,
    quality: DataQuality,
    trend: Trend,
    current_value: float,
    ideal_range: IdealRange,
    target: Bound,
    hours_left: float,
    status: PredictionStatus,
    action: Action,
    action_in_hours: float,
) -> str:
    oldest, previous, latest = trend.values
    lines = [f"{display_name}:"]
    if quality is DataQuality.PARTIAL:
        lines.append("Note: Limited historical data available. Some daily values were estimated.")
    lines.append(
        f"Daily averages (2 days ago, yesterday, today): "
        f"{oldest:.2f}, {previous:.2f}, {latest:.2f}"
    )
    lines.append(f"Current reading: {current_value:.2f}")
    lines.append(f"Ideal range: {ideal_range.min:.2f} - {ideal_range.max:.2f}")
    lines.append(f"Average daily change: {trend.avg_day_change:.3f}")
    lines.append(f"Average hourly rate: {trend.hour_change:.4f}")
    lines.append("")
    lines.append(_situation_line(trend.hour_change, current_value, ideal_range, status))

    if target is not Bound.NONE and hours_left > TREND_EPSILON:
        if target is Bound.MIN:
            label = f"minimum ({ideal_range.min:.2f})"
        else:
            label = f"maximum ({ideal_range.max:.2f})"
        lines.append(f"Expected to reach {label} in {hours_left:.2f} hours.")

    action_name = ACTION_LABELS[action]
    if status is PredictionStatus.IMMEDIATE:
        lines.append(f"RECOMMENDATION: Perform '{action_name}' action NOW.")
    elif status is PredictionStatus.SCHEDULED:
        lines.append(
            f"RECOMMENDATION: Schedule '{action_name}' action in {action_in_hours:.2f} hours."
        )
    else:
        lines.append("Current value is in ideal range, trend is favorable/stable.")

    return "\n".join(lines)


def _situation_line(hour_change, current_value, ideal_range, status):
    stable = abs(hour_change) < TREND_EPSILON
    if current_value < ideal_range.min:
        improving = hour_change > 0
        position = "below"
    elif current_value > ideal_range.max:
        improving = hour_change < 0
        position = "above"
    elif stable:
        return "No trend detected (stable), no predicted changes."
    elif status is PredictionStatus.NO_REACH:
        return (
            f"Trend keeps the value in the ideal range for the next "
            f"{FORECAST_HORIZON_HOURS} hours."
        )
    else:
        return "Trend is moving the value towards the edge of the ideal range."

    if stable:
        return f"No trend detected (stable), but value is {position} ideal range."
    if improving:
        return (
            f"Value is {position} ideal range. Trend is improving, but immediate "
            f"action is still required to bring value into range faster."
        )
    return f"Value is {position} ideal range. Trend is moving away from ideal range."


def _margin_hours(target: Bound, hour_change: float, prevent_margin_hours: float) -> float:
    # Overshoot means moving back towards the range from outside it. Out-of-range
    # values are resolved as immediate before timing runs, so with valid input
    # only the prevent margin is ever used here.
    if target is Bound.MAX and hour_change < 0:
        return -OVERSHOOT_MARGIN_HOURS
    if target is Bound.MIN and hour_change > 0:
        return -OVERSHOOT_MARGIN_HOURS
    return prevent_margin_hours


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def _readings_frame(readings: Sequence[Reading]) -> pd.DataFrame:
    """
    Readings as a DataFrame in input order.

    Timestamps stay Python datetimes in UTC so any representable date works;
    the calendar day is computed per row for bucketing.
    """
    timestamps = [_as_utc(reading.timestamp) for reading in readings]
    values = [reading.value for reading in readings]
    frame = pd.DataFrame(
        {
            "timestamp": pd.Series(timestamps, dtype=object),
            "day": pd.Series([ts.date() for ts in timestamps], dtype=object),
            "value": pd.Series(values, dtype=float),
        }
    )
    return frame


def _most_recent_value(frame: pd.DataFrame) -> float:
    # Stable ascending sort: among equal timestamps the reading given last wins.
    if frame.empty:
        return 0.0
    ordered = frame.sort_values("timestamp", kind="stable")
    return float(ordered["value"].iloc[-1])


def _aggregate_frame(frame: pd.DataFrame, now: datetime, days_back: int) -> DailyAggregate:
    total = len(frame)
    if total == 0:
        return DailyAggregate((), 0, 0, DataQuality.INSUFFICIENT)

    today = now.date()
    days = [today - timedelta(days=offset) for offset in range(days_back - 1, -1, -1)]
    means = frame.groupby("day")["value"].mean()
    observed: List[Optional[float]] = [
        float(means[day]) if day in means.index else None for day in days
    ]

    values: List[float] = []
    for position, mean in enumerate(observed):
        if mean is None:
            mean = _estimate_missing_day(observed, position, values, frame)
        values.append(mean)

    days_with_data = sum(1 for mean in observed if mean is not None)
    return DailyAggregate(
        tuple(values), days_with_data, total, _classify_quality(days_with_data, total)
    )


def _estimate_missing_day(observed, position, estimated, frame) -> float:
    before = next((m for m in reversed(observed[:position]) if m is not None), None)
    after = next((m for m in observed[position + 1 :] if m is not None), None)

    if before is not None and after is not None:
        return (before + after) / 2
    if before is not None:
        return before
    if after is not None:
        return after
    if estimated:
        return estimated[-1]
    # Nothing inside the window: fall back to every reading supplied.
    return float(np.mean(frame["value"].to_numpy()))


def _classify_quality(days_with_data: int, total_readings: int) -> DataQuality:
    if days_with_data >= 3:
        return DataQuality.GOOD
    if days_with_data >= 2 or (
        days_with_data >= 1 and total_readings >= MIN_READINGS_SINGLE_DAY
    ):
        return DataQuality.PARTIAL
    return DataQuality.INSUFFICIENT
