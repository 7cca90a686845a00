"""Narrow interface to the remote classification model.

Pipeline components never talk to a model SDK directly.  They build a
:class:`ClassificationRequest` and hand it to anything implementing the
:class:`ClassificationClient` protocol, which returns the parsed JSON object
the model replied with.

Providers
---------
``ollama`` (default)
    Local Ollama chat model via ``langchain-ollama``.
    Configure via ``OLLAMA_BASE_URL`` and ``OLLAMA_CHAT_MODEL``.

``openai``
    OpenAI chat model via ``langchain-openai``.
    Requires ``OPENAI_API_KEY``; configure via ``OPENAI_CHAT_MODEL``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from harvester.config import settings


class QuotaExceededError(RuntimeError):
    """The model service signalled a transient quota / rate-limit condition."""


_QUOTA_MARKERS = ("429", "resource_exhausted", "quota", "rate limit", "ratelimit")


def is_quota_error(exc: BaseException) -> bool:
    """Return ``True`` if *exc* looks like a retryable quota signal."""
    if isinstance(exc, QuotaExceededError):
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in _QUOTA_MARKERS)


@dataclass
class ClassificationRequest:
    """A single prompt sent to the model.

    ``task`` is ``"filter"`` or ``"sort"``; ``payload`` carries the structured
    inputs the prompt was built from so fakes can answer without parsing text.
    """

    task: str
    prompt: str
    payload: dict[str, Any] = field(default_factory=dict)


class ClassificationClient(Protocol):
    def classify(self, request: ClassificationRequest) -> dict[str, Any]:
        """Return the model's JSON answer as a dict (``{}`` when unusable)."""
        ...


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_response(text: str) -> dict[str, Any]:
    """Parse a model reply into a dict.

    Markdown code fences are stripped.  Anything that is not a JSON object
    yields ``{}`` so callers fall back to their field defaults.
    """
    cleaned = _FENCE.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            return {}
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return {}
    return data if isinstance(data, dict) else {}


def coerce_confidence(value: Any, default: float = 0.5) -> float:
    """Return *value* as a float clamped to ``[0, 1]``; *default* if unusable."""
    if isinstance(value, bool):
        return default
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return default
    if conf != conf:  # NaN
        return default
    return max(0.0, min(1.0, conf))


# ---------------------------------------------------------------------------
# LangChain-backed implementation
# ---------------------------------------------------------------------------

def _get_llm() -> Any:
    """Return a JSON-mode LangChain chat model from ``settings``."""
    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=settings.openai_chat_model,
            temperature=settings.llm_temperature,
            model_kwargs={"response_format": {"type": "json_object"}},
        )

    from langchain_ollama import ChatOllama

    return ChatOllama(
        model=settings.ollama_chat_model,
        base_url=settings.ollama_base_url,
        temperature=settings.llm_temperature,
        format="json",
    )


class LLMClassificationClient:
    """Production :class:`ClassificationClient` backed by a chat model."""

    def __init__(self, llm: Any | None = None) -> None:
        self._llm = llm

    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = _get_llm()
        return self._llm

    def classify(self, request: ClassificationRequest) -> dict[str, Any]:
        try:
            response = self.llm.invoke(request.prompt)
        except Exception as exc:
            if is_quota_error(exc):
                raise QuotaExceededError(str(exc)) from exc
            raise
        text = response.content if hasattr(response, "content") else str(response)
        return parse_json_response(text)
