"""Coordinator that picks an extraction plugin for each file."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .models import ExtractionError, Submission
from .plugins import default_plugins, infer_kind
from .plugins.base import ExtractionPlugin

LOG = logging.getLogger(__name__)


class TextExtractor:
    """Turn a Submission into plain text. Nothing is cached between calls."""

    def __init__(self, plugins: Optional[Sequence[ExtractionPlugin]] = None) -> None:
        self.plugins: List[ExtractionPlugin] = list(plugins or default_plugins())

    def extract(self, submission: Submission) -> str:
        kind = infer_kind(submission)
        for plugin in self.plugins:
            if plugin.matches(kind):
                LOG.debug("Extracting %s as %s (%d bytes)", submission.filename, kind.value, submission.size)
                return plugin.extract(submission)
        raise ExtractionError(submission.filename, f"no extractor registered for {kind.value}")


_DEFAULT_EXTRACTOR = TextExtractor()


def extract_text(submission: Submission) -> str:
    """Extract plain text using the default plugins."""
    return _DEFAULT_EXTRACTOR.extract(submission)
