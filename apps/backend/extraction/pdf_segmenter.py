"""
PDF layout segmenter.

Turns a résumé PDF into reading-order sections using only layout signals:
glyph positions, font size and bold/italic font names.

1. Decode pages into glyph runs (pdfminer.six layout analysis)
2. Normalize the raw text and drop page-break filler
3. Group runs into lines by exact y
4. Per page font-size statistics
5. Classify each line (see line_rules)
6. Fold lines into sections
"""

import re
import asyncio
import logging
from enum import Enum
from io import BytesIO
from typing import Iterator, List, Optional, Sequence, Tuple

from pdfminer.high_level import extract_pages
from pdfminer.layout import LAParams, LTAnno, LTChar, LTContainer, LTPage, LTTextLine

from core.config import ExtractionConfig, get_extraction_config
from core.errors import CorruptPDFError, EmptyPDFError, PDFValidationError

from .line_rules import LineKind, classify_line, clean_line_text, strip_bullet_marker
from .models import GlyphRun, LineRecord, PageStats, Section, SectionType, SegmentedDocument

logger = logging.getLogger(__name__)

# Filler lines PDF-to-text converters put between pages
PAGE_BREAK_PATTERNS = [
    re.compile(r'^-+Page\s*\(\d+\)\s*Break-+$', re.MULTILINE),
    re.compile(r'^-+Page\s*Break-+$', re.MULTILINE),
    re.compile(r'^-+Page\s*\d+-+$', re.MULTILINE),
    re.compile(r'^Page\s*\d+$', re.MULTILINE),
    re.compile(r'^-+$', re.MULTILINE),
    re.compile(r'^Page\s*Break$', re.MULTILINE),
]

BOLD_FONT_MARKERS = ('bold', 'black', 'heavy', 'semibold', 'demi')
ITALIC_FONT_MARKERS = ('italic', 'oblique')

PARAGRAPH_TITLE_LENGTH = 50
PDF_MIME_TYPE = 'application/pdf'


def validate_pdf_upload(size: int, content_type: str, max_bytes: Optional[int] = None) -> None:
    """
    Check an uploaded file before it reaches the segmenter.

    Raises:
        PDFValidationError: file too large or not a PDF
    """
    if max_bytes is None:
        max_bytes = get_extraction_config().max_pdf_bytes
    if size > max_bytes:
        logger.debug(f"[pdf] Rejected upload of {size} bytes (limit {max_bytes})")
        raise PDFValidationError(
            f"File size must be less than {max_bytes // (1024 * 1024)}MB Actual size: {size}"
        )
    if content_type != PDF_MIME_TYPE:
        raise PDFValidationError("File must be a PDF")


def is_page_break(text: str) -> bool:
    stripped = text.strip()
    return any(pattern.fullmatch(stripped) for pattern in PAGE_BREAK_PATTERNS)


def normalize_text(text: str) -> str:
    """Normalize newlines, drop underscores and page-break filler lines."""
    text = text.replace('\r\n', '\n').replace('\r', '')
    text = re.sub(r'\n{3,}', '\n\n', text)
    text = text.replace('_', '').strip()

    for pattern in PAGE_BREAK_PATTERNS:
        text = pattern.sub('', text)

    return re.sub(r'\n\s*\n\s*\n', '\n\n', text).strip()


def _font_style(font_name: str) -> Tuple[bool, bool]:
    # Subset fonts look like "ABCDEE+Helvetica-Bold"
    family = font_name.split('+', 1)[-1].lower()
    is_bold = any(marker in family for marker in BOLD_FONT_MARKERS)
    is_italic = any(marker in family for marker in ITALIC_FONT_MARKERS)
    return is_bold, is_italic


def _iter_text_lines(container: LTContainer) -> Iterator[LTTextLine]:
    for element in container:
        if isinstance(element, LTTextLine):
            yield element
        elif isinstance(element, LTContainer):
            yield from _iter_text_lines(element)


def _runs_from_line(line: LTTextLine, page_height: float) -> List[GlyphRun]:
    """Split a pdfminer text line wherever the font or size changes."""
    y = round(page_height - line.y1, 2)
    runs: List[GlyphRun] = []
    chars: List[str] = []
    first: Optional[LTChar] = None

    def close_run():
        if first is not None and chars:
            is_bold, is_italic = _font_style(first.fontname)
            runs.append(GlyphRun(
                text=''.join(chars),
                font_size=abs(round(first.size, 2)),
                x=round(first.x0, 2),
                y=y,
                is_bold=is_bold,
                is_italic=is_italic,
                font_name=first.fontname,
            ))

    for obj in line:
        if isinstance(obj, LTChar):
            if first is not None and (obj.fontname, round(obj.size, 2)) != (first.fontname, round(first.size, 2)):
                close_run()
                chars = []
                first = None
            if first is None:
                first = obj
            chars.append(obj.get_text())
        elif isinstance(obj, LTAnno) and first is not None:
            text = obj.get_text()
            if text != '\n':
                chars.append(text)
    close_run()
    return runs


def decode_pdf(buffer: bytes) -> Tuple[List[List[GlyphRun]], str]:
    """
    Decode a PDF into per-page glyph runs plus the raw page text.

    Raises:
        CorruptPDFError: pdfminer could not read the buffer
    """
    pages: List[List[GlyphRun]] = []
    page_texts: List[str] = []
    try:
        for page in extract_pages(BytesIO(buffer), laparams=LAParams(all_texts=True)):
            runs: List[GlyphRun] = []
            text_parts: List[str] = []
            for line in _iter_text_lines(page):
                runs.extend(_runs_from_line(line, page.height))
                text_parts.append(line.get_text())
            pages.append(runs)
            page_texts.append(''.join(text_parts))
    except Exception as e:
        logger.error(f"[pdf] Error parsing PDF: {e!r}")
        raise CorruptPDFError(str(e) or e.__class__.__name__) from e

    logger.debug(f"[pdf] Decoded {len(pages)} pages, {sum(len(p) for p in pages)} glyph runs")
    return pages, '\n'.join(page_texts)


def group_lines(runs: Sequence[GlyphRun]) -> List[LineRecord]:
    """
    Group glyph runs into lines keyed by exact y, top to bottom.

    Runs on a line are joined in x order. The line takes the largest font size
    of its runs and is bold/italic if any run is. Empty lines and page-break
    filler are dropped.
    """
    by_y = {}
    for run in runs:
        by_y.setdefault(run.y, []).append(run)

    lines = []
    for y in sorted(by_y):
        line_runs = sorted(by_y[y], key=lambda r: r.x)
        text = ''.join(r.text for r in line_runs).strip()
        if not text or is_page_break(text):
            continue
        lines.append(LineRecord(
            text=text,
            font_size=max(r.font_size for r in line_runs),
            x=line_runs[0].x,
            y=y,
            is_bold=any(r.is_bold for r in line_runs),
            is_italic=any(r.is_italic for r in line_runs),
        ))
    return lines


def page_stats(lines: Sequence[LineRecord]) -> PageStats:
    sizes = [line.font_size for line in lines]
    return PageStats(avg=sum(sizes) / len(sizes), max=max(sizes), min=min(sizes))


class BuilderState(str, Enum):
    IDLE = "idle"
    IN_HEADING = "in_heading"
    IN_BULLET = "in_bullet"
    IN_PARAGRAPH = "in_paragraph"


class SectionBuilder:
    """
    Folds classified lines into sections.

    A heading always closes the open section. A bullet closes a heading or
    paragraph section but joins an open bullet section, so a run of list items
    becomes one bullet section. Plain text continues an open bullet section;
    otherwise it is appended to the open section, which becomes a paragraph.
    """

    def __init__(self):
        self.sections: List[Section] = []
        self.state = BuilderState.IDLE
        self._title = ''
        self._content = ''
        self._type = SectionType.PARAGRAPH
        self._bullet_lines: List[str] = []

    def add(self, kind: LineKind, text: str, is_bold: bool = False) -> None:
        if kind is LineKind.HEADING:
            self.start_heading(text)
        elif kind is LineKind.BULLET:
            self.add_bullet(strip_bullet_marker(text))
        elif self.state is BuilderState.IN_BULLET and not is_bold:
            self._bullet_lines.append(text)
        else:
            self.add_paragraph_text(text)

    def start_heading(self, text: str) -> None:
        self.flush()
        self._open(text, text, SectionType.HEADING, BuilderState.IN_HEADING)

    def add_bullet(self, content: str) -> None:
        if self.state is BuilderState.IN_BULLET:
            self._bullet_lines.append(content)
            return
        self.flush()
        self._open(content, content, SectionType.BULLET, BuilderState.IN_BULLET)
        self._bullet_lines = [content]

    def add_paragraph_text(self, text: str) -> None:
        if self.state is BuilderState.IDLE:
            title = text[:PARAGRAPH_TITLE_LENGTH] + ('...' if len(text) > PARAGRAPH_TITLE_LENGTH else '')
            self._open(title, text, SectionType.PARAGRAPH, BuilderState.IN_PARAGRAPH)
            return
        if self.state is BuilderState.IN_BULLET:
            self._content = ' '.join(self._bullet_lines)
            self._bullet_lines = []
        self._content += ' ' + text
        self._type = SectionType.PARAGRAPH
        self.state = BuilderState.IN_PARAGRAPH

    def flush(self) -> None:
        """Emit the open section, if any, and return to IDLE."""
        if self.state is BuilderState.IDLE:
            return
        content = ' '.join(self._bullet_lines) if self.state is BuilderState.IN_BULLET else self._content
        self.sections.append(Section(title=self._title, content=content.strip(), type=self._type))
        self.state = BuilderState.IDLE
        self._title = ''
        self._content = ''
        self._bullet_lines = []

    def _open(self, title: str, content: str, section_type: SectionType, state: BuilderState) -> None:
        self._title = title
        self._content = content
        self._type = section_type
        self.state = state


class PDFSegmenter:
    """Segments PDF bytes into a SegmentedDocument."""

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or get_extraction_config()

    def segment(self, buffer: bytes) -> SegmentedDocument:
        """
        Decode and segment a PDF.

        Raises:
            CorruptPDFError: the buffer could not be decoded
            EmptyPDFError: the PDF has no usable text
        """
        pages, raw_text = decode_pdf(buffer)
        return self.segment_pages(pages, raw_text)

    def segment_pages(self, pages: Sequence[Sequence[GlyphRun]],
                      raw_text: Optional[str] = None) -> SegmentedDocument:
        """Segment already-decoded pages. raw_text defaults to the runs' text, line by line."""
        page_lines = [group_lines(runs) for runs in pages]
        if raw_text is None:
            raw_text = '\n'.join(line.text for lines in page_lines for line in lines)

        text = normalize_text(raw_text)
        logger.debug(f"[pdf] Text extracted ({len(text)} chars)")
        if len(text) < self.config.min_pdf_text_length:
            logger.error("[pdf] PDF appears to be empty or contains no readable text")
            raise EmptyPDFError()

        builder = SectionBuilder()
        for page_number, lines in enumerate(page_lines, start=1):
            if not lines:
                continue
            stats = page_stats(lines)
            logger.debug(
                f"[pdf] Page {page_number} font sizes: avg={stats.avg:.2f} max={stats.max:.2f} "
                f"min={stats.min:.2f} heading>={stats.heading_threshold:.2f} "
                f"large>={stats.large_heading_threshold:.2f}"
            )
            for line in lines:
                text_line = clean_line_text(line.text)
                if not text_line:
                    continue
                kind, rule = classify_line(line, stats)
                logger.debug(f"[pdf] {kind.value:<7} ({rule or 'none'}): {text_line[:60]}")
                builder.add(kind, text_line, line.is_bold)
            builder.flush()

        logger.info(f"[pdf] Segmented {len(pages)} pages into {len(builder.sections)} sections")
        return SegmentedDocument(text=text, sections=builder.sections, page_count=len(pages))


def segment(buffer: bytes, config: Optional[ExtractionConfig] = None) -> SegmentedDocument:
    """Segment a PDF buffer. See PDFSegmenter.segment."""
    return PDFSegmenter(config).segment(buffer)


async def segment_async(buffer: bytes, config: Optional[ExtractionConfig] = None) -> SegmentedDocument:
    """Run segment() on a worker thread so it does not block the event loop."""
    return await asyncio.to_thread(segment, buffer, config)
