"""
Plant sensor forecasting: trend analysis and corrective action recommendations.
"""

from .engine import (
    Action,
    IdealRange,
    PredictionResult,
    PredictionStatus,
    Reading,
    SensorKind,
    forecast,
    is_forecastable,
    is_within_range,
)

__all__ = [
    'Action',
    'IdealRange',
    'PredictionResult',
    'PredictionStatus',
    'Reading',
    'SensorKind',
    'forecast',
    'is_forecastable',
    'is_within_range',
]
