"""Collection and item statistics."""

from quizit.analytics.stats import (
    CollectionStats,
    ItemPerformance,
    ItemStats,
    PerformanceFilter,
    PerformanceSort,
    accuracy_by_mode,
    collection_stats,
    item_performance,
    item_stats,
    session_history,
)

__all__ = [
    "CollectionStats",
    "ItemStats",
    "ItemPerformance",
    "PerformanceFilter",
    "PerformanceSort",
    "collection_stats",
    "item_stats",
    "item_performance",
    "accuracy_by_mode",
    "session_history",
]
