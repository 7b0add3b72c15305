"""
Shared fixtures: tiny hand-built PDFs, page fetch stubs and retry sleep recorders.
"""

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import ExtractionConfig
from core.page_fetch import FetchedPage

# (text, bold, font size, x, y) with y in PDF user space (origin bottom-left)
PDFLine = Tuple[str, bool, float, float, float]


def _escape(text: str) -> bytes:
    escaped = text.replace('\\', '\\\\').replace('(', '\\(').replace(')', '\\)')
    return escaped.encode('cp1252')


def build_pdf(pages: Sequence[Sequence[PDFLine]]) -> bytes:
    """Build a minimal PDF using the standard Helvetica / Helvetica-Bold fonts."""
    objects: List[bytes] = []

    def add(body: bytes) -> int:
        objects.append(body)
        return len(objects)

    catalog = add(b'')  # filled in once the page tree exists
    pages_id = add(b'')
    regular = add(b'<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>')
    bold = add(b'<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica-Bold /Encoding /WinAnsiEncoding >>')

    page_ids = []
    for lines in pages:
        stream = b''.join(
            b'BT /%s %s Tf %s %s Td (%s) Tj ET\n' % (
                b'F2' if is_bold else b'F1',
                str(size).encode(), str(x).encode(), str(y).encode(),
                _escape(text),
            )
            for text, is_bold, size, x, y in lines
        )
        contents = add(b'<< /Length %d >>\nstream\n%s\nendstream' % (len(stream), stream))
        page_ids.append(add(
            b'<< /Type /Page /Parent %d 0 R /MediaBox [0 0 612 792] '
            b'/Resources << /Font << /F1 %d 0 R /F2 %d 0 R >> >> /Contents %d 0 R >>'
            % (pages_id, regular, bold, contents)
        ))

    kids = b' '.join(b'%d 0 R' % page_id for page_id in page_ids)
    objects[catalog - 1] = b'<< /Type /Catalog /Pages %d 0 R >>' % pages_id
    objects[pages_id - 1] = b'<< /Type /Pages /Kids [%s] /Count %d >>' % (kids, len(page_ids))

    out = bytearray(b'%PDF-1.4\n')
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b'%d 0 obj\n%s\nendobj\n' % (number, body)

    xref_offset = len(out)
    out += b'xref\n0 %d\n' % (len(objects) + 1)
    out += b'0000000000 65535 f \n'
    for offset in offsets:
        out += b'%010d 00000 n \n' % offset
    out += b'trailer\n<< /Size %d /Root %d 0 R >>\nstartxref\n%d\n%%%%EOF\n' % (
        len(objects) + 1, catalog, xref_offset)
    return bytes(out)


class StaticFetcher:
    """PageFetcher stub returning a fixed page and recording requested URLs."""

    def __init__(self, html: str = '', status: int = 200, message: Optional[str] = None):
        self.page = FetchedPage(status=status, html=html, message=message)
        self.calls: List[str] = []

    async def __call__(self, url: str) -> FetchedPage:
        self.calls.append(url)
        return self.page


class SleepRecorder:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def pdf_builder():
    return build_pdf


@pytest.fixture
def config():
    return ExtractionConfig(
        max_html_length=500000,
        min_description_length=500,
        page_timeout=15,
        min_pdf_text_length=10,
        max_pdf_bytes=5 * 1024 * 1024,
        proxy_url=None,
        max_retries=3,
        initial_delay_ms=1000,
        max_delay_ms=10000,
        fetch_timeout_ms=30000,
    )


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_fetcher():
    return StaticFetcher
