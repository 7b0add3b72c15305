"""
Job page classifier.

Keyword heuristics deciding whether fetched HTML is worth extracting: pages
that only render with JavaScript, and pages that are not job listings at all.
Biased towards recall; a false positive only costs one extraction.
"""

import logging
from typing import Iterable, Optional, Tuple

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

JOB_INDICATORS = (
    'job description',
    'job details',
    'career',
    'position',
    'employment',
    'apply now',
    'qualifications',
    'responsibilities',
    'about the job',
)

JAVASCRIPT_REQUIRED_PHRASES = (
    'enable javascript',
    'javascript is required',
    'javascript is disabled',
    'requires javascript',
    'turn on javascript',
    'noscript',
    'script disabled',
)


def find_phrase(text: str, phrases: Iterable[str]) -> Optional[str]:
    """Return the first phrase contained in text (case-insensitive), or None."""
    lowered = text.lower()
    for phrase in phrases:
        if phrase in lowered:
            return phrase
    return None


def requires_javascript(html: str) -> Optional[str]:
    """Phrase showing the page is a client-rendered shell, or None."""
    phrase = find_phrase(html, JAVASCRIPT_REQUIRED_PHRASES)
    if phrase:
        logger.debug(f"[classifier] JavaScript required (matched '{phrase}')")
    return phrase


def body_text(soup: BeautifulSoup) -> str:
    root = soup.body or soup
    return root.get_text(' ')


class JobPageClassifier:
    """Classifies pages as job listings or not."""

    def __init__(self, indicators: Tuple[str, ...] = JOB_INDICATORS):
        self.indicators = indicators

    def classify(self, soup: BeautifulSoup) -> Tuple[bool, Optional[str]]:
        """
        Classify page as job listing.

        Returns:
            (is_job, indicator phrase that matched or None)
        """
        indicator = find_phrase(body_text(soup), self.indicators)
        if indicator is None:
            logger.debug("[classifier] No job indicator found in body text")
            return False, None
        logger.debug(f"[classifier] Job indicator matched: '{indicator}'")
        return True, indicator
