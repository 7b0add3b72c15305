"""
Data model shared by the PDF and job-page pipelines.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class SectionType(str, Enum):
    HEADING = "heading"
    BULLET = "bullet"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Section:
    """A unit of extracted content, in reading order."""
    title: str
    content: str
    type: SectionType

    def to_dict(self) -> Dict:
        return {
            "title": self.title,
            "content": self.content,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class GlyphRun:
    """Text drawn with one font at one position. y grows downwards from the top of the page."""
    text: str
    font_size: float
    x: float
    y: float
    is_bold: bool = False
    is_italic: bool = False
    font_name: str = ""


@dataclass(frozen=True)
class LineRecord:
    """All glyph runs sharing a y coordinate, joined left to right."""
    text: str
    font_size: float
    x: float
    y: float
    is_bold: bool = False
    is_italic: bool = False


@dataclass(frozen=True)
class PageStats:
    """Font-size statistics of one page's lines."""
    avg: float
    max: float
    min: float

    @property
    def heading_threshold(self) -> float:
        return self.avg * 1.2

    @property
    def large_heading_threshold(self) -> float:
        return self.avg * 1.5


@dataclass(frozen=True)
class SegmentedDocument:
    """Result of segmenting a PDF."""
    text: str
    sections: List[Section]
    page_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "sections": [section.to_dict() for section in self.sections],
        }


@dataclass
class JobData:
    """Result of extracting a job page. Failures are reported in `error`, never raised."""
    url: Optional[str]
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    responsibilities: Optional[str] = None
    sections: List[Section] = field(default_factory=list)
    is_job_page: bool = False
    error: Optional[str] = None

    @classmethod
    def failure(cls, url: Optional[str], error: str) -> "JobData":
        """Result for a page rejected before extraction: only url and error are set."""
        return cls(url=url, error=error)

    @property
    def ok(self) -> bool:
        return self.is_job_page and self.error is None

    def to_dict(self) -> Dict:
        return {
            "url": self.url,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "description": self.description,
            "requirements": self.requirements,
            "responsibilities": self.responsibilities,
            "sections": [section.to_dict() for section in self.sections],
            "is_job_page": self.is_job_page,
            "error": self.error,
        }
