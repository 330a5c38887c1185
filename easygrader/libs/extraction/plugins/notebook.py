"""Jupyter notebook extraction plugin."""

from __future__ import annotations

from typing import Any, List

import nbformat

from ..models import ExtractionError, FileKind, Submission
from .base import ExtractionPlugin

CELL_SEPARATOR = "\n\n"


def _cell_source(cell: Any, index: int) -> str:
    if not isinstance(cell, dict) or "source" not in cell:
        raise ValueError(f"cell {index} has no source")
    source = cell["source"]
    # nbformat writes either a list of lines or a single string
    if isinstance(source, str):
        return source
    if isinstance(source, list) and all(isinstance(fragment, str) for fragment in source):
        return "".join(source)
    raise ValueError(f"cell {index} source must be a list of strings")


class NotebookPlugin(ExtractionPlugin):
    kind = FileKind.NOTEBOOK

    def extract(self, submission: Submission) -> str:
        try:
            # NO_CONVERT keeps cell sources exactly as stored on disk
            notebook = nbformat.reads(submission.decode(), as_version=nbformat.NO_CONVERT)
            cells = notebook.get("cells")
            if not isinstance(cells, list):
                raise ValueError("notebook has no cells list")
            sources: List[str] = [_cell_source(cell, idx) for idx, cell in enumerate(cells)]
        except Exception as exc:  # pylint: disable=broad-except
            raise ExtractionError(submission.filename, str(exc)) from exc
        return CELL_SEPARATOR.join(sources)
