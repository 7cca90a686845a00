"""Grade / subject classification for downloaded or queued files.

The model's answer is never trusted past the taxonomy check: a grade outside
the six canonical buckets becomes ``Uncategorized``, and a subject outside the
whitelist for the grade's level (JHS vs SHS) is reset to ``Uncategorized``
with a warning.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from harvester.ai import taxonomy
from harvester.ai.client import (
    ClassificationClient,
    ClassificationRequest,
    coerce_confidence,
    is_quota_error,
)
from harvester.ai.prompts import build_sort_prompt
from harvester.config import settings
from harvester.models import ClassificationResult

_CONTEXT_CHARS = 2000


def unclassified() -> ClassificationResult:
    return ClassificationResult(
        grade=taxonomy.UNCATEGORIZED,
        subject=taxonomy.UNCATEGORIZED,
        confidence=0.0,
    )


class ClassificationSorter:
    def __init__(
        self,
        client: ClassificationClient,
        retries: int | None = None,
        backoff_step: float | None = None,
        stop_event: threading.Event | None = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self._client = client
        self.retries = max(1, retries if retries is not None else settings.ai_retries)
        self.backoff_step = backoff_step if backoff_step is not None else settings.ai_backoff_step
        self._stop = stop_event or threading.Event()
        self._sleep = sleep or self._stop.wait
        self._warnings_lock = threading.Lock()
        self.taxonomy_warnings: list[str] = []

    def classify(self, filename: str, context: str | None = None) -> ClassificationResult:
        """Classify *filename* (plus optional extracted text) into grade/subject.

        Quota errors are retried with backoff; any other failure, or running
        out of attempts, yields an ``Uncategorized`` result with zero
        confidence so the file is routed to review.
        """
        snippet = context[:_CONTEXT_CHARS] if context else None
        request = ClassificationRequest(
            task="sort",
            prompt=build_sort_prompt(filename, snippet),
            payload={"filename": filename, "context": snippet},
        )

        for attempt in range(self.retries):
            try:
                data = self._client.classify(request)
            except Exception as exc:
                if not is_quota_error(exc) or attempt == self.retries - 1:
                    print(f"[SORTER] Categorization failed for {filename}: {exc}")
                    break
                wait_time = (attempt + 1) * self.backoff_step
                print(f"[SORTER] Rate limit hit. Retrying in {wait_time:.0f}s …")
                self._sleep(wait_time)
                if self._stop.is_set():
                    break
                continue
            return self._validate(filename, data)

        return unclassified()

    def _validate(self, filename: str, data: dict[str, Any]) -> ClassificationResult:
        raw_grade = str(data.get("grade") or "")
        grade = raw_grade if taxonomy.is_canonical_grade(raw_grade) else taxonomy.UNCATEGORIZED
        subject = str(data.get("subject") or taxonomy.UNCATEGORIZED)
        confidence = coerce_confidence(data.get("confidence"))

        if subject != taxonomy.UNCATEGORIZED and not taxonomy.is_valid_subject(grade, subject):
            level = taxonomy.level_for_grade(grade) or "any"
            message = (
                f"Hallucinated subject {subject!r} for {filename!r} "
                f"(grade {grade}, level {level}). Reverting to {taxonomy.UNCATEGORIZED}."
            )
            print(f"[SORTER] ⚠ {message}")
            with self._warnings_lock:
                self.taxonomy_warnings.append(message)
            subject = taxonomy.UNCATEGORIZED

        return ClassificationResult(grade=grade, subject=subject, confidence=confidence)
