"""
Unstructured-content extraction.

Turns résumé PDFs and job posting pages into ordered Section lists for
downstream prompting.
"""

__version__ = "1.0.0"
