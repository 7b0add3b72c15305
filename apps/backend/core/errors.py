"""
Error taxonomy shared by the PDF and job-page pipelines.

ValidationError       - bad input (URL, file type/size); never retried
FetchError            - network layer failures (transient, status, timeout)
ContentQualityError   - parse succeeded structurally but the content is unusable
CorruptInputError     - the decoder could not read the input at all
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for every error raised by the extraction core."""


class ValidationError(ExtractionError):
    """Input rejected before any work was done."""


class PDFValidationError(ValidationError):
    """Uploaded file is too large or is not a PDF."""


class FetchValidationError(ValidationError):
    """Fetch request is missing or has a malformed URL."""


class FetchError(ExtractionError):
    """A fetch attempt failed. Carries the HTTP status and/or transport code when known."""

    def __init__(self, message: str, url: Optional[str] = None,
                 status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.status = status
        self.code = code


class TransientNetworkError(FetchError):
    """No response was received (connection reset/refused, DNS, protocol error)."""


class HTTPStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, reason: str = "", url: Optional[str] = None):
        message = f"HTTP error! Try again later. status: {status} {reason}".rstrip()
        super().__init__(message, url=url, status=status)
        self.reason = reason


class FetchTimeoutError(FetchError, TimeoutError):
    """A single attempt exceeded its deadline and was aborted."""


class ContentQualityError(ExtractionError):
    """Extraction produced too little usable content."""


class CorruptInputError(ExtractionError):
    """The input could not be decoded."""


class PDFParseError(ExtractionError):
    """Marker base for failures raised by the PDF segmenter."""


class EmptyPDFError(PDFParseError, ContentQualityError):
    """PDF decoded but contains no (or almost no) readable text."""

    def __init__(self, message: str = "PDF appears to be empty or contains no readable text"):
        super().__init__(message)


class CorruptPDFError(PDFParseError, CorruptInputError):
    """pdfminer raised while decoding the buffer."""

    def __init__(self, message: str):
        super().__init__(f"Failed to parse PDF. {message}")
        self.detail = message
