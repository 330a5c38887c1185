"""Plugin base class for text extraction."""

from __future__ import annotations

from ..models import FileKind, Submission


class ExtractionPlugin:
    """Extension point for per-kind extraction strategies."""

    kind: FileKind

    def matches(self, kind: FileKind) -> bool:
        return kind is self.kind

    def extract(self, submission: Submission) -> str:
        raise NotImplementedError
