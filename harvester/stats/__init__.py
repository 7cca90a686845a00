"""Statistics aggregator and its persistence ports."""

from harvester.stats.aggregator import AIFilterStats, ScraperStats, StatsAggregator
from harvester.stats.store import JsonFileStatsStore, MemoryStatsStore, StatsStore

__all__ = [
    "AIFilterStats",
    "ScraperStats",
    "StatsAggregator",
    "JsonFileStatsStore",
    "MemoryStatsStore",
    "StatsStore",
]
