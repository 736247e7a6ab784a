"""Configuration module for the docmapper pipeline.

This module contains all configuration parameters including model
settings, rate limiting and retry constants, worker pool sizing,
prompt truncation limits and database configuration.
"""

import os
from typing import FrozenSet

__all__ = ["Config"]


class Config:
    """Configuration class containing pipeline settings and constants.

    Durations are expressed in seconds. Secrets are read from the
    environment; everything else is a class-level constant that tests and
    callers may override on instances of the consuming classes.
    """

    # OpenAI model configuration
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_VISION_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 2048
    OPENAI_VISION_MAX_TOKENS: int = 4096

    # Rate-limited request client
    MIN_REQUEST_INTERVAL: float = 0.5
    MAX_RETRIES: int = 5
    BASE_DELAY: float = 1.0
    MAX_JITTER: float = 1.0
    MAX_DELAY: float = 60.0
    RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429})

    # Prior conversation kept when building text requests
    MAX_CONVERSATION_HISTORY: int = 10

    # Worker pool
    MAX_CONCURRENT: int = 4
    DEFAULT_PROCESSING_TIME: float = 30.0
    PROGRESS_TICK: float = 0.2
    COMPLETED_DISPLAY_DELAY: float = 1.5
    AVERAGE_DECAY: float = 0.7
    AVERAGE_WEIGHT: float = 0.3

    # Prompt construction
    TEXT_PROMPT_FIELD_LIMIT: int = 10
    VISION_PROMPT_FIELD_LIMIT: int = 15
    ANALYSIS_CONTENT_LIMIT: int = 5000
    MAPPING_CONTENT_LIMIT: int = 6000
    MAPPING_ANALYSIS_LIMIT: int = 3000

    # PDF rendering for the vision path
    MAX_PDF_PAGES: int = 5
    PDF_RENDER_RESOLUTION: int = 144

    # Container formats are never sent for extraction
    CONTAINER_MEDIA_TYPES: FrozenSet[str] = frozenset({
        "application/zip",
        "application/x-zip-compressed",
    })
    CONTAINER_EXTENSIONS: FrozenSet[str] = frozenset({".zip"})

    # Database configuration
    DATABASE_URL: str = os.getenv("DOCMAPPER_DATABASE_URL", "sqlite:///docmapper.db")
    FAILED_FILES_KEY: str = "failed_files"
    SESSION_SNAPSHOT_KEY: str = "session_files"

    @staticmethod
    def is_server_error(status_code: int) -> bool:
        """Return True for 5xx status codes."""
        return 500 <= status_code < 600

    @classmethod
    def is_retryable_status(cls, status_code: int) -> bool:
        """Return True for throttling (429) and server failure (5xx) codes."""
        return status_code in cls.RETRYABLE_STATUS_CODES or cls.is_server_error(status_code)
