"""Plain text extraction plugin."""

from __future__ import annotations

from ..models import FileKind, Submission
from .base import ExtractionPlugin


class PlainTextPlugin(ExtractionPlugin):
    kind = FileKind.PLAIN_TEXT

    def extract(self, submission: Submission) -> str:
        return submission.decode()
