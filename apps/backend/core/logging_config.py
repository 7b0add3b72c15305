"""
Logging setup for scripts and embedding applications.
"""

import os
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging; level defaults to EXTRACTION_LOG_LEVEL or INFO."""
    level_name = (level or os.getenv('EXTRACTION_LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # httpx logs every request at INFO; our own [net] lines already cover that
    logging.getLogger('httpx').setLevel(logging.WARNING)
