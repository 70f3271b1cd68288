"""Metrics aggregation"""

from .aggregator import ViolationAggregator

__all__ = ["ViolationAggregator"]
