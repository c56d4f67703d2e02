"""Metrics exports."""

from .base import IMetric
from .core import ExchangeMetrics

__all__ = ["ExchangeMetrics", "IMetric"]
