"""
Job page extractor.

Fetches a job posting URL and turns its HTML into JobData. Runs as a chain of
gates, stopping at the first one that fails:

1. URL validation
2. Fetch (through a PageFetcher, under an overall deadline)
3. Body length limit
4. JavaScript-only page detection
5. Job page classification
6. Section and field extraction
7. Description quality gate

extract() never raises: every failure is reported in JobData.error.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from core.config import ExtractionConfig, get_extraction_config
from core.page_fetch import FetchedPage, PageFetcher, get_default_fetcher

from .classifier import JobPageClassifier, requires_javascript
from .models import JobData, Section, SectionType
from .selector_tables import (
    COMPANY_SELECTORS,
    HEADING_SELECTOR,
    LOCATION_SELECTORS,
    SECTION_SELECTORS,
    TITLE_SELECTORS,
    collapse_whitespace,
    first_match,
    group_by_category,
    is_heading,
    read_all,
)

logger = logging.getLogger(__name__)

INVALID_URL = 'Invalid URL format'
HTML_TOO_LONG = 'HTML is too long'
NOT_A_JOB_PAGE = 'This does not appear to be a job listing page'
JAVASCRIPT_REQUIRED = (
    'This page requires JavaScript to display the job details. '
    'Please copy and paste the job description manually.'
)
DESCRIPTION_TOO_SHORT = (
    'Could not extract enough of the job description from this page. '
    'Please copy and paste the job description manually.'
)
FETCH_FAILED_PREFIX = 'Failed to extract job data. Check the URL and try again. '

STATUS_MESSAGES = {
    404: 'Job page not found (404)',
    403: 'Access to job page forbidden (403)',
    401: 'Unauthorized access to job page (401)',
    500: 'Server error while fetching job page (500)',
}


def is_valid_url(url: str) -> bool:
    """Absolute URL with a scheme and a host."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def fetch_error_message(page: FetchedPage) -> str:
    if page.status in STATUS_MESSAGES:
        return FETCH_FAILED_PREFIX + STATUS_MESSAGES[page.status]
    return page.message or f'Failed to fetch job data ({page.status})'


def _find_section(sections, *keywords: str) -> Optional[str]:
    for section in sections:
        title = section.title.lower()
        if any(keyword in title for keyword in keywords):
            return section.content
    return None


class JobPageExtractor:
    """Extracts JobData from job posting URLs."""

    def __init__(self, fetcher: Optional[PageFetcher] = None,
                 config: Optional[ExtractionConfig] = None,
                 classifier: Optional[JobPageClassifier] = None):
        self.config = config or get_extraction_config()
        self.fetcher = fetcher or get_default_fetcher(self.config)
        self.classifier = classifier or JobPageClassifier()

    async def extract(self, url: str) -> JobData:
        """
        Fetch and extract a job page.

        Args:
            url: Job posting URL

        Returns:
            JobData; on failure is_job_page is False and error says why
        """
        if not is_valid_url(url):
            return JobData.failure(url, INVALID_URL)

        timeout = self.config.page_timeout
        try:
            return await asyncio.wait_for(self._fetch_and_extract(url), timeout=timeout)
        except (asyncio.TimeoutError, TimeoutError):
            logger.warning(f"[job_page] Timed out after {timeout:g}s: {url}")
            return JobData.failure(url, f'Request timed out after {timeout:g} seconds')
        except Exception as e:
            logger.error(f"[job_page] Failed to extract job data from {url}: {e}", exc_info=True)
            return JobData.failure(url, f'Failed to extract job data: {str(e) or e.__class__.__name__}')

    async def _fetch_and_extract(self, url: str) -> JobData:
        page = await self.fetcher(url)
        if not page.ok:
            logger.info(f"[job_page] Fetch failed with status {page.status}: {url}")
            return JobData.failure(url, fetch_error_message(page))
        return self.extract_from_html(page.html, url)

    def extract_from_html(self, html: str, url: str) -> JobData:
        """Run the length, JavaScript, classification and quality gates on fetched HTML."""
        soup = BeautifulSoup(html, 'lxml')
        for tag in soup('script'):
            tag.decompose()

        body_html = soup.body.decode_contents() if soup.body else ''
        if len(body_html) > self.config.max_html_length:
            logger.info(f"[job_page] HTML is too long ({len(body_html)} chars): {url}")
            return JobData.failure(url, HTML_TOO_LONG)

        # Inline CSS counts towards the length limit but not towards page text
        for tag in soup('style'):
            tag.decompose()

        if requires_javascript(html):
            logger.info(f"[job_page] Page needs JavaScript to render: {url}")
            return JobData.failure(url, JAVASCRIPT_REQUIRED)

        is_job, _ = self.classifier.classify(soup)
        if not is_job:
            logger.info(f"[job_page] Not a job listing: {url}")
            return JobData.failure(url, NOT_A_JOB_PAGE)

        result = self._extract_content(soup, url)

        description = result.description or ''
        if len(description) < self.config.min_description_length:
            logger.info(
                f"[job_page] Description too short ({len(description)} < "
                f"{self.config.min_description_length} chars): {url}"
            )
            result.is_job_page = False
            result.error = DESCRIPTION_TOO_SHORT

        return result

    def _extract_content(self, soup: BeautifulSoup, url: str) -> JobData:
        sections = []

        for category, selectors in group_by_category(SECTION_SELECTORS):
            hit = first_match(soup, selectors, reader=read_all)
            if hit:
                selector, content = hit
                logger.debug(f"[job_page] {category} matched '{selector}' ({len(content)} chars)")
                sections.append(Section(title=category, content=content, type=SectionType.PARAGRAPH))

        seen_titles = {section.title for section in sections}
        for heading in soup.select(HEADING_SELECTOR):
            title = collapse_whitespace(heading.get_text(' '))
            if title in seen_titles:
                continue
            content = self._content_after_heading(heading)
            if content:
                sections.append(Section(title=title, content=content, type=SectionType.HEADING))
                seen_titles.add(title)

        title = first_match(soup, TITLE_SELECTORS)
        company = first_match(soup, COMPANY_SELECTORS)
        location = first_match(soup, LOCATION_SELECTORS)

        logger.info(f"[job_page] Extracted {len(sections)} sections from {url}")
        return JobData(
            url=url,
            title=title[1] if title else None,
            company=company[1] if company else None,
            location=location[1] if location else None,
            description=_find_section(sections, 'description'),
            requirements=_find_section(sections, 'requirement', 'qualification'),
            responsibilities=_find_section(sections, 'responsibilit'),
            sections=sections,
            is_job_page=True,
        )

    @staticmethod
    def _content_after_heading(heading: Tag) -> str:
        """Text of the heading's following siblings, up to the next heading."""
        parts = []
        for sibling in heading.find_next_siblings():
            if not isinstance(sibling, Tag):
                continue
            if is_heading(sibling):
                break
            text = sibling.get_text(' ').strip()
            if text:
                parts.append(text)
        return collapse_whitespace(' '.join(parts))


async def extract_job_data(url: str, fetcher: Optional[PageFetcher] = None,
                           config: Optional[ExtractionConfig] = None) -> JobData:
    """Extract a job page. See JobPageExtractor.extract."""
    return await JobPageExtractor(fetcher=fetcher, config=config).extract(url)
