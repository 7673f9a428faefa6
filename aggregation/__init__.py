"""
Aggregation package — run all data sources for a query and collect a partial result.
"""
from aggregation.coordinator import AggregationCoordinator, PartialResult, SourceTask

__all__ = [
    "AggregationCoordinator",
    "PartialResult",
    "SourceTask",
]
