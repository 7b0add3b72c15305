"""
Line classification rules for the PDF segmenter.

Rules are evaluated top to bottom and the first one that applies decides the
line's kind. Anything no rule claims is plain TEXT; whether TEXT continues a
bullet or becomes paragraph content is up to the section builder.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from .models import LineRecord, PageStats


class LineKind(str, Enum):
    HEADING = "heading"
    BULLET = "bullet"
    TEXT = "text"


# Leading glyphs that open a list item: dots, dashes, "a)", "1.", "a.", arrows
BULLET_PATTERN = re.compile(
    r'^(?:[•·▪▫◦‣⁃]|[-–—]|[a-zA-Z]\)|[0-9]+\.|[a-zA-Z]\.|[→▶▸])'
)
BULLET_MARKER = re.compile(
    r'^(?:[•·▪▫◦‣⁃\-–—→▶▸]|[a-zA-Z]\)|[0-9]+\.|[a-zA-Z]\.)\s*'
)
LINE_NOISE = re.compile(r'[\r\n_]')

ALL_CAPS_MAX_LENGTH = 100
SHORT_EMPHASIS_MAX_LENGTH = 50
SHORT_EMPHASIS_RATIO = 1.1


@dataclass(frozen=True)
class LineRule:
    name: str
    kind: LineKind
    applies: Callable[[LineRecord, str, PageStats], bool]


def clean_line_text(text: str) -> str:
    return LINE_NOISE.sub('', text)


def strip_bullet_marker(text: str) -> str:
    """Remove one leading bullet marker (and the whitespace after it)."""
    return BULLET_MARKER.sub('', text.strip(), count=1)


def _is_bold(line: LineRecord, text: str, stats: PageStats) -> bool:
    return line.is_bold


def _is_large_font(line: LineRecord, text: str, stats: PageStats) -> bool:
    return line.font_size >= stats.heading_threshold


def _is_all_caps(line: LineRecord, text: str, stats: PageStats) -> bool:
    return (
        len(text) < ALL_CAPS_MAX_LENGTH
        and text.upper() == text
        and line.font_size >= stats.avg
    )


def _is_short_emphasis(line: LineRecord, text: str, stats: PageStats) -> bool:
    return (
        len(text) < SHORT_EMPHASIS_MAX_LENGTH
        and line.font_size >= stats.avg * SHORT_EMPHASIS_RATIO
    )


def _has_bullet_marker(line: LineRecord, text: str, stats: PageStats) -> bool:
    # Bold lines never start a bullet
    return not line.is_bold and bool(BULLET_PATTERN.match(text.strip()))


LINE_RULES: Tuple[LineRule, ...] = (
    LineRule('bold', LineKind.HEADING, _is_bold),
    LineRule('large_font', LineKind.HEADING, _is_large_font),
    LineRule('all_caps', LineKind.HEADING, _is_all_caps),
    LineRule('short_emphasis', LineKind.HEADING, _is_short_emphasis),
    LineRule('bullet_marker', LineKind.BULLET, _has_bullet_marker),
)


def classify_line(
    line: LineRecord,
    stats: PageStats,
    rules: Sequence[LineRule] = LINE_RULES,
) -> Tuple[LineKind, Optional[str]]:
    """
    Classify a line against the rule table.

    Returns:
        (kind, name of the rule that matched, or None for plain text)
    """
    text = clean_line_text(line.text)
    for rule in rules:
        if rule.applies(line, text, stats):
            return rule.kind, rule.name
    return LineKind.TEXT, None
