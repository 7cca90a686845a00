"""AI relevance filter — decides, per candidate link, whether to download it.

``RelevanceFilter.decide`` never raises.  It always returns a usable
:class:`~harvester.models.FilterDecision`:

1. Cache hit → return immediately, no network call.
2. Take a rate-limiter slot (blocks when the window is full).
3. Ask the classification model, with the target filters and vocabularies
   embedded in the prompt.
4. Clamp the confidence and force ``should_download=False`` below
   ``min_confidence``; cache the final decision.
5. Quota errors are retried with a linear backoff of
   ``(attempt + 1) * backoff_step`` seconds.
6. Anything else (or exhausted retries) falls back to a local keyword
   heuristic so the crawl never stalls on a degraded model service.
"""

from __future__ import annotations

import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlparse

from harvester.ai import taxonomy
from harvester.ai.client import (
    ClassificationClient,
    ClassificationRequest,
    coerce_confidence,
    is_quota_error,
)
from harvester.ai.prompts import build_filter_prompt
from harvester.ai.rate_limit import DecisionCache, RateLimiter
from harvester.config import settings
from harvester.models import FilterDecision, LinkContext

FALLBACK_REASONING = "Fallback heuristic (AI unavailable)"
_NO_REASONING = "No reasoning provided"


@dataclass
class FilterConfig:
    """The filter's slice of the configuration surface."""

    target_subjects: list[str] = field(default_factory=list)
    target_grades: list[str] = field(default_factory=list)
    min_confidence: float = 0.6
    enable_caching: bool = True

    @classmethod
    def from_settings(cls) -> FilterConfig:
        return cls(
            target_subjects=list(settings.target_subjects),
            target_grades=list(settings.target_grades),
            min_confidence=settings.min_confidence,
            enable_caching=settings.enable_caching,
        )


def _optional_label(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in {"null", "none", "n/a"}:
        return None
    return text


class RelevanceFilter:
    """Gate between link discovery and download."""

    def __init__(
        self,
        client: ClassificationClient,
        config: FilterConfig | None = None,
        limiter: RateLimiter | None = None,
        cache: DecisionCache | None = None,
        retries: int | None = None,
        backoff_step: float | None = None,
        batch_size: int | None = None,
        batch_pause: float | None = None,
        known_extensions: Sequence[str] | None = None,
        stop_event: threading.Event | None = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self._client = client
        self.config = config or FilterConfig.from_settings()
        self._stop = stop_event or threading.Event()
        self._sleep = sleep or self._stop.wait
        self._limiter = limiter or RateLimiter(
            max_requests=settings.ai_max_requests,
            window=settings.ai_rate_window,
            stop_event=self._stop,
        )
        self._cache = cache or DecisionCache()
        self.retries = max(1, retries if retries is not None else settings.ai_retries)
        self.backoff_step = backoff_step if backoff_step is not None else settings.ai_backoff_step
        self.batch_size = batch_size or settings.filter_batch_size
        self.batch_pause = batch_pause if batch_pause is not None else settings.filter_batch_pause
        extensions = known_extensions or settings.file_extensions
        self._extension_re = re.compile(
            r"\.(" + "|".join(re.escape(e.lstrip(".")) for e in extensions) + r")$",
            re.IGNORECASE,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def decide(self, context: LinkContext) -> FilterDecision:
        """Return a download decision for *context*.  Never raises."""
        if self.config.enable_caching:
            cached = self._cache.get(context)
            if cached is not None:
                print(f"[AI FILTER] Cache hit for: {context.url}")
                return cached

        if not self._limiter.acquire():
            return self.fallback(context)

        request = ClassificationRequest(
            task="filter",
            prompt=build_filter_prompt(
                context, self.config.target_subjects, self.config.target_grades
            ),
            payload={
                "url": context.url,
                "link_text": context.link_text,
                "surrounding_text": context.surrounding_text,
                "page_title": context.page_title,
                "target_subjects": list(self.config.target_subjects),
                "target_grades": list(self.config.target_grades),
            },
        )

        for attempt in range(self.retries):
            try:
                data = self._client.classify(request)
            except Exception as exc:
                if not is_quota_error(exc):
                    print(f"[AI FILTER] Error analyzing {context.url}: {exc}")
                    break
                if attempt == self.retries - 1:
                    print(f"[AI FILTER] Rate-limited; exhausted {self.retries} attempt(s).")
                    break
                wait_time = (attempt + 1) * self.backoff_step
                print(
                    f"[AI FILTER] Rate limit hit. Retrying in {wait_time:.0f}s "
                    f"(attempt {attempt + 1}/{self.retries}) …"
                )
                self._sleep(wait_time)
                if self._stop.is_set():
                    break
                continue

            decision = self._to_decision(data)
            if self.config.enable_caching:
                self._cache.put(context, decision)
            return decision

        return self.fallback(context)

    def decide_batch(self, contexts: Sequence[LinkContext]) -> list[FilterDecision]:
        """Decide *contexts* in fixed-size parallel batches, preserving order."""
        results: list[FilterDecision] = []
        for start in range(0, len(contexts), self.batch_size):
            batch = contexts[start:start + self.batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                results.extend(pool.map(self.decide, batch))
            if start + self.batch_size < len(contexts):
                self._sleep(self.batch_pause)
        return results

    def fallback(self, context: LinkContext) -> FilterDecision:
        """Deterministic keyword heuristic used when the model is unavailable."""
        combined = " ".join(
            (context.url, context.link_text or "", context.surrounding_text or "")
        ).lower()

        try:
            path = urlparse(context.url).path or context.url
        except ValueError:
            path = context.url
        is_downloadable = bool(self._extension_re.search(path))

        subjects = self.config.target_subjects or taxonomy.FILTER_SUBJECTS
        grades = self.config.target_grades or taxonomy.FILTER_GRADES
        subject_match = any(s.lower() in combined for s in subjects)
        grade_match = any(g.lower() in combined for g in grades)

        should_download = is_downloadable and (subject_match or grade_match)
        return FilterDecision(
            should_download=should_download,
            confidence=0.5 if should_download else 0.3,
            reasoning=FALLBACK_REASONING,
        )

    def stop(self) -> None:
        """Cut short rate-limit and backoff waits; pending calls fall back."""
        self._stop.set()
        self._limiter.stop()

    def update_config(self, **changes: Any) -> FilterConfig:
        self.config = replace(self.config, **changes)
        print(f"[AI FILTER] Configuration updated: {self.config}")
        return self.config

    def cache_stats(self) -> dict[str, Any]:
        return {
            "cache_size": len(self._cache),
            "request_count": self._limiter.request_count,
            "cache_enabled": self.config.enable_caching,
        }

    def clear_cache(self) -> None:
        self._cache.clear()
        print("[AI FILTER] Cache cleared")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _to_decision(self, data: dict[str, Any]) -> FilterDecision:
        decision = FilterDecision(
            should_download=data.get("shouldDownload") is True,
            confidence=coerce_confidence(data.get("confidence")),
            reasoning=str(data.get("reasoning") or _NO_REASONING),
            detected_subject=_optional_label(data.get("detectedSubject")),
            detected_grade=_optional_label(data.get("detectedGrade")),
        )

        min_conf = self.config.min_confidence
        if decision.confidence < min_conf:
            decision.should_download = False
            decision.reasoning += (
                f" (Confidence {decision.confidence:.2f} below threshold {min_conf})"
            )
        return decision
