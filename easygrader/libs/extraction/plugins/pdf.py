"""PDF extraction plugin."""

from __future__ import annotations

from ..models import ExtractionError, FileKind, Submission
from .base import ExtractionPlugin

PAGE_SEPARATOR = "\n\n"


class PdfFilePlugin(ExtractionPlugin):
    kind = FileKind.PDF

    def extract(self, submission: Submission) -> str:
        import fitz  # type: ignore

        try:
            doc = fitz.open(stream=submission.content, filetype="pdf")
        except Exception as exc:  # pylint: disable=broad-except
            raise ExtractionError(submission.filename, str(exc)) from exc

        with doc:
            page_texts = []
            for page_idx in range(doc.page_count):
                page = doc.load_page(page_idx)
                page_texts.append(page.get_text("text") + PAGE_SEPARATOR)
        return "".join(page_texts)
