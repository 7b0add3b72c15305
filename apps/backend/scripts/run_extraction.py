#!/usr/bin/env python3
"""
Run one of the extraction pipelines from the command line.

Usage:
    python scripts/run_extraction.py pdf path/to/resume.pdf
    python scripts/run_extraction.py url https://example.com/jobs/123

Prints the result as JSON. Exits with 1 when extraction failed.
"""

import os
import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path

# Add parent directory to path (apps/backend)
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from core.config import get_extraction_config
from core.errors import PDFParseError, ValidationError
from core.logging_config import configure_logging
from extraction.job_page import JobPageExtractor
from extraction.pdf_segmenter import PDFSegmenter, validate_pdf_upload

logger = logging.getLogger(__name__)


def run_pdf(path: Path) -> int:
    config = get_extraction_config()
    try:
        buffer = path.read_bytes()
        validate_pdf_upload(len(buffer), 'application/pdf' if path.suffix.lower() == '.pdf' else '',
                            max_bytes=config.max_pdf_bytes)
        document = PDFSegmenter(config).segment(buffer)
    except (ValidationError, PDFParseError) as e:
        print(json.dumps({"error": str(e)}, indent=2))
        return 1
    print(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))
    return 0


def run_url(url: str) -> int:
    result = asyncio.run(JobPageExtractor().extract(url))
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.ok else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Extract sections from a résumé PDF or a job page")
    parser.add_argument('--log-level', default=None, help="Logging level (default: EXTRACTION_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest='command', required=True)

    pdf_parser = subparsers.add_parser('pdf', help="Segment a PDF file")
    pdf_parser.add_argument('path', type=Path)

    url_parser = subparsers.add_parser('url', help="Extract a job posting page")
    url_parser.add_argument('url')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == 'pdf':
        if not args.path.exists():
            logger.error(f"File not found: {args.path}")
            return 1
        return run_pdf(args.path)
    return run_url(args.url)


if __name__ == "__main__":
    sys.exit(main())
