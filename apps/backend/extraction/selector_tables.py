"""
CSS selector tables for job-page extraction.

Each table is ordered: the first selector that yields non-empty text wins and
later (possibly richer) matches are not considered.
"""

import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

# (category, selector) pairs, grouped by category in priority order
SECTION_SELECTORS: Tuple[Tuple[str, str], ...] = (
    ('Job Description', '[data-testid="job-description"]'),
    ('Job Description', '.job-description'),
    ('Job Description', '.description'),
    ('Job Description', 'article'),
    ('Job Description', '#job-description'),
    ('Job Description', '[class*="job-description"]'),
    ('Job Description', '[class*="description"]'),

    ('Requirements', '[data-testid="requirements"]'),
    ('Requirements', '.requirements'),
    ('Requirements', '.qualifications'),
    ('Requirements', '#requirements'),
    ('Requirements', '[class*="requirements"]'),
    ('Requirements', '[class*="qualifications"]'),

    ('Responsibilities', '[data-testid="responsibilities"]'),
    ('Responsibilities', '.responsibilities'),
    ('Responsibilities', '#responsibilities'),
    ('Responsibilities', '[class*="responsibilities"]'),

    ('Benefits', '[data-testid="benefits"]'),
    ('Benefits', '.benefits'),
    ('Benefits', '.perks'),
    ('Benefits', '#benefits'),
    ('Benefits', '[class*="benefits"]'),
    ('Benefits', '[class*="perks"]'),

    ('About the Company', '[data-testid="about-company"]'),
    ('About the Company', '.about-company'),
    ('About the Company', '.company-description'),
    ('About the Company', '#about-company'),
    ('About the Company', '[class*="about-company"]'),
    ('About the Company', '[class*="company-description"]'),
)

TITLE_SELECTORS: Tuple[str, ...] = (
    'h1',
    '[data-testid="job-title"]',
    '.job-title',
    '.position-title',
    'title',
    '[class*="job-title"]',
    '[class*="position-title"]',
)

COMPANY_SELECTORS: Tuple[str, ...] = (
    '[data-testid="company-name"]',
    '.company-name',
    '.organization',
    'meta[property="og:site_name"]',
    '[class*="company-name"]',
    '[class*="organization"]',
)

LOCATION_SELECTORS: Tuple[str, ...] = (
    '[data-testid="location"]',
    '.job-location',
    '.location',
    '[class*="location"]',
    '[class*="job-location"]',
)

HEADING_SELECTOR = 'h1, h2, h3, h4, h5, h6, [role="heading"]'
HEADING_TAGS = frozenset({'h1', 'h2', 'h3', 'h4', 'h5', 'h6'})

WHITESPACE = re.compile(r'\s+')

Reader = Callable[[List[Tag]], str]


def collapse_whitespace(text: str) -> str:
    return WHITESPACE.sub(' ', text).strip()


def element_text(element: Tag) -> str:
    """Visible text of an element; <meta> tags yield their content attribute."""
    if element.name == 'meta':
        return (element.get('content') or '').strip()
    return element.get_text(' ').strip()


def read_first(elements: List[Tag]) -> str:
    """Text of the first matched element."""
    return collapse_whitespace(element_text(elements[0]))


def read_all(elements: List[Tag]) -> str:
    """Text of every matched element, whitespace collapsed."""
    return collapse_whitespace(' '.join(element_text(el) for el in elements))


def first_match(soup: BeautifulSoup, selectors: Iterable[str],
                reader: Reader = read_first) -> Optional[Tuple[str, str]]:
    """
    Try selectors in order and return (selector, text) for the first non-empty match.
    """
    for selector in selectors:
        elements = soup.select(selector)
        if not elements:
            continue
        text = reader(elements)
        if text:
            return selector, text
    return None


def group_by_category(pairs: Sequence[Tuple[str, str]]) -> List[Tuple[str, List[str]]]:
    """Turn (category, selector) pairs into [(category, [selectors...])], keeping first-seen order."""
    grouped: List[Tuple[str, List[str]]] = []
    index = {}
    for category, selector in pairs:
        if category not in index:
            index[category] = len(grouped)
            grouped.append((category, []))
        grouped[index[category]][1].append(selector)
    return grouped


def is_heading(element: Tag) -> bool:
    return element.name in HEADING_TAGS or element.get('role') == 'heading'
