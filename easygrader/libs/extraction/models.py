"""Data models for submissions handed to the text extractor."""

from __future__ import annotations

import enum
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

PDF_MEDIA_TYPE = "application/pdf"


class FileKind(enum.Enum):
    """Extraction strategy selected for a file."""

    PDF = "pdf"
    NOTEBOOK = "notebook"
    PLAIN_TEXT = "text"


class ExtractionError(Exception):
    """File content could not be decoded into text."""

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"Failed to parse file {filename}: {reason}")
        self.filename = filename
        self.reason = reason


@dataclass(frozen=True)
class Submission:
    """
    A named, typed blob of bytes.

    Used for student work as well as the assignment spec and rubric. The
    filename is the key of the submission within a grading run.
    """

    filename: str
    content: bytes
    media_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], media_type: Optional[str] = None) -> "Submission":
        path = Path(path)
        if media_type is None:
            media_type, _ = mimetypes.guess_type(str(path))
        return cls(filename=path.name, content=path.read_bytes(), media_type=media_type)

    @classmethod
    def from_text(cls, filename: str, text: str, media_type: Optional[str] = "text/plain") -> "Submission":
        return cls(filename=filename, content=text.encode("utf-8"), media_type=media_type)

    @property
    def size(self) -> int:
        return len(self.content)

    def decode(self) -> str:
        return self.content.decode("utf-8", errors="replace")
