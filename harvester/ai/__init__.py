"""Model-backed decisions: link relevance and grade/subject classification."""

from harvester.ai.client import (
    ClassificationClient,
    ClassificationRequest,
    LLMClassificationClient,
    QuotaExceededError,
)
from harvester.ai.rate_limit import DecisionCache, RateLimiter
from harvester.ai.relevance import FilterConfig, RelevanceFilter
from harvester.ai.sorter import ClassificationSorter

__all__ = [
    "ClassificationClient",
    "ClassificationRequest",
    "LLMClassificationClient",
    "QuotaExceededError",
    "DecisionCache",
    "RateLimiter",
    "FilterConfig",
    "RelevanceFilter",
    "ClassificationSorter",
]
