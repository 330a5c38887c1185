"""Text extraction for uploaded submissions and context documents."""

from .extractor import TextExtractor, extract_text
from .models import ExtractionError, FileKind, Submission
from .plugins import infer_kind

__all__ = [
    "TextExtractor",
    "extract_text",
    "infer_kind",
    "ExtractionError",
    "FileKind",
    "Submission",
]
