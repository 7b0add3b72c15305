"""
Extraction configuration.

All tunables come from environment variables (a local .env is honoured).
Components take an explicit ExtractionConfig; get_extraction_config() returns
the process-wide default built from the environment.
"""

import os
import logging
from typing import Optional

from dotenv import load_dotenv

from core.net import RetryPolicy

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; JobBot/1.0;)"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[config] Ignoring non-integer {name}={raw!r}, using {default}")
        return default


class ExtractionConfig:
    """Thresholds, deadlines and fetch settings for both pipelines."""

    def __init__(
        self,
        max_html_length: Optional[int] = None,
        min_description_length: Optional[int] = None,
        page_timeout: Optional[float] = None,
        min_pdf_text_length: Optional[int] = None,
        max_pdf_bytes: Optional[int] = None,
        proxy_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
        max_delay_ms: Optional[int] = None,
        fetch_timeout_ms: Optional[int] = None,
    ):
        # HTML gates
        self.max_html_length = max_html_length if max_html_length is not None \
            else _env_int('EXTRACTION_MAX_HTML_LENGTH', 500000)
        self.min_description_length = min_description_length if min_description_length is not None \
            else _env_int('EXTRACTION_MIN_DESCRIPTION_LENGTH', 500)
        self.page_timeout = page_timeout if page_timeout is not None \
            else float(_env_int('EXTRACTION_PAGE_TIMEOUT', 15))

        # PDF gates
        self.min_pdf_text_length = min_pdf_text_length if min_pdf_text_length is not None \
            else _env_int('EXTRACTION_MIN_PDF_TEXT_LENGTH', 10)
        self.max_pdf_bytes = max_pdf_bytes if max_pdf_bytes is not None \
            else _env_int('EXTRACTION_MAX_PDF_BYTES', 5 * 1024 * 1024)

        # Fetching
        self.proxy_url = proxy_url or os.getenv('EXTRACTION_PROXY_URL') or None
        self.user_agent = user_agent or os.getenv('EXTRACTION_USER_AGENT', DEFAULT_USER_AGENT)
        self.accept = DEFAULT_ACCEPT
        self.max_retries = max_retries if max_retries is not None \
            else _env_int('FETCH_MAX_RETRIES', 3)
        self.initial_delay_ms = initial_delay_ms if initial_delay_ms is not None \
            else _env_int('FETCH_INITIAL_DELAY_MS', 1000)
        self.max_delay_ms = max_delay_ms if max_delay_ms is not None \
            else _env_int('FETCH_MAX_DELAY_MS', 10000)
        self.fetch_timeout_ms = fetch_timeout_ms if fetch_timeout_ms is not None \
            else _env_int('FETCH_TIMEOUT_MS', 30000)

        logger.debug(
            f"ExtractionConfig: max_html={self.max_html_length}, "
            f"min_description={self.min_description_length}, page_timeout={self.page_timeout}s, "
            f"retries={self.max_retries}, proxy={'set' if self.proxy_url else 'unset'}"
        )

    def retry_policy(self) -> RetryPolicy:
        """Build the Backoff Fetch policy from the millisecond settings."""
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay_ms / 1000.0,
            max_delay=self.max_delay_ms / 1000.0,
            timeout=self.fetch_timeout_ms / 1000.0,
        )


# Singleton instance
_extraction_config: Optional[ExtractionConfig] = None


def get_extraction_config() -> ExtractionConfig:
    """Get singleton extraction config instance."""
    global _extraction_config
    if _extraction_config is None:
        _extraction_config = ExtractionConfig()
    return _extraction_config
