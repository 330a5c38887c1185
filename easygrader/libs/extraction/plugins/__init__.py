"""Plugin registry for text extraction."""

from __future__ import annotations

from typing import List

from ..models import PDF_MEDIA_TYPE, FileKind, Submission
from .base import ExtractionPlugin
from .notebook import NotebookPlugin
from .pdf import PdfFilePlugin
from .text import PlainTextPlugin

NOTEBOOK_EXTENSIONS = (".ipynb",)


def default_plugins() -> List[ExtractionPlugin]:
    return [
        PdfFilePlugin(),
        NotebookPlugin(),
        PlainTextPlugin(),
    ]


def infer_kind(submission: Submission) -> FileKind:
    """Media type is checked first for PDF, then the filename suffix for notebooks."""
    if submission.media_type == PDF_MEDIA_TYPE:
        return FileKind.PDF
    if submission.filename.endswith(NOTEBOOK_EXTENSIONS):
        return FileKind.NOTEBOOK
    return FileKind.PLAIN_TEXT
