"""Centralised settings for the Edu Harvester pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_list(name: str, default: str = "") -> list[str]:
    """Split a comma-separated environment variable into trimmed items."""
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Local archive
    # ------------------------------------------------------------------
    downloads_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("HARVEST_DOWNLOADS_DIR", "downloads"))
    )
    data_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("HARVEST_DATA_DIR", "data"))
    )

    @property
    def staging_dir(self) -> Path:
        """Transient write location for in-flight downloads."""
        return self.downloads_dir / "incoming"

    @property
    def finished_dir(self) -> Path:
        """Where completed downloads land before sorting."""
        return self.downloads_dir / "finished"

    @property
    def stats_path(self) -> Path:
        return self.data_dir / "stats.json"

    @property
    def mappings_path(self) -> Path:
        return self.data_dir / "file_mappings.json"

    # ------------------------------------------------------------------
    # Classification model
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "ollama")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )
    llm_temperature: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.3"))
    )

    # ------------------------------------------------------------------
    # Relevance filter
    # ------------------------------------------------------------------
    target_subjects: list[str] = field(
        default_factory=lambda: _env_list("TARGET_SUBJECTS")
    )
    target_grades: list[str] = field(
        default_factory=lambda: _env_list("TARGET_GRADES")
    )
    min_confidence: float = field(
        default_factory=lambda: float(os.environ.get("MIN_CONFIDENCE", "0.6"))
    )
    enable_caching: bool = field(
        default_factory=lambda: _env_bool("ENABLE_CACHING", "true")
    )
    ai_max_requests: int = field(
        default_factory=lambda: int(os.environ.get("AI_MAX_REQUESTS_PER_WINDOW", "15"))
    )
    ai_rate_window: float = field(
        default_factory=lambda: float(os.environ.get("AI_RATE_WINDOW", "60.0"))
    )
    ai_retries: int = field(
        default_factory=lambda: int(os.environ.get("AI_RETRIES", "3"))
    )
    ai_backoff_step: float = field(
        default_factory=lambda: float(os.environ.get("AI_BACKOFF_STEP", "10.0"))
    )
    filter_batch_size: int = field(
        default_factory=lambda: int(os.environ.get("FILTER_BATCH_SIZE", "5"))
    )
    filter_batch_pause: float = field(
        default_factory=lambda: float(os.environ.get("FILTER_BATCH_PAUSE", "1.0"))
    )
    file_extensions: list[str] = field(
        default_factory=lambda: _env_list("FILE_EXTENSIONS", "pdf,doc,docx,ppt,pptx,xls,xlsx,zip")
    )

    # ------------------------------------------------------------------
    # Crawl / download
    # ------------------------------------------------------------------
    max_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENCY", "5"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    auto_cleanup: bool = field(
        default_factory=lambda: _env_bool("AUTO_CLEANUP", "false")
    )

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------
    sort_confidence_threshold: float = field(
        default_factory=lambda: float(os.environ.get("SORT_CONFIDENCE_THRESHOLD", "0.8"))
    )
    sort_throttle: float = field(
        default_factory=lambda: float(os.environ.get("SORT_THROTTLE", "2.0"))
    )
    sort_use_pdf_context: bool = field(
        default_factory=lambda: _env_bool("SORT_USE_PDF_CONTEXT", "false")
    )

    # ------------------------------------------------------------------
    # Google Drive archive
    # ------------------------------------------------------------------
    drive_token_path: Path = field(
        default_factory=lambda: Path(os.environ.get("DRIVE_TOKEN_PATH", "tokens.json"))
    )
    drive_folder_id: str = field(
        default_factory=lambda: os.environ.get("DRIVE_FOLDER_ID", "")
    )

    def ensure_dirs(self) -> None:
        """Create the archive and data directories if they do not exist."""
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from harvester.config import settings
settings = Settings()
