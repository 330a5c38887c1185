"""Pydantic models for grading feedback structure."""

from dataclasses import dataclass, field
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field


class FeedbackItem(BaseModel):
    """Feedback for a single rubric criterion."""
    feedback: str = Field(description="Specific feedback for this rubric criterion")


class GradingResponse(BaseModel):
    """Structured output the model must return for one submission."""
    total_score: str = Field(description="Total score, e.g. '8/10'")
    breakdown: List[FeedbackItem] = Field(
        description="Feedback per rubric criterion, in rubric order"
    )


class GradingResult(BaseModel):
    """Successful grading of one submission."""
    model_config = ConfigDict(frozen=True)

    filename: str = Field(description="Submission filename")
    total_score: str = Field(description="Free-form total score reported by the model")
    breakdown: List[FeedbackItem] = Field(description="Ordered per-criterion feedback")

    @property
    def feedback_items(self) -> List[str]:
        return [item.feedback for item in self.breakdown]


class GradingError(BaseModel):
    """Terminal failure for one submission."""
    model_config = ConfigDict(frozen=True)

    filename: str = Field(description="Submission filename")
    error: str = Field(description="Descriptive error message")


GradingOutcome = Union[GradingResult, GradingError]


@dataclass
class BatchProgress:
    """Incremental outcomes of one finished batch."""
    batch_index: int
    results: List[GradingResult]
    errors: List[GradingError]
    processed: int
    total: int


@dataclass
class GradingRun:
    """All outcomes accumulated for one grading invocation."""
    total: int
    results: List[GradingResult] = field(default_factory=list)
    errors: List[GradingError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def outcome_count(self) -> int:
        return len(self.results) + len(self.errors)

    @property
    def has_failures(self) -> bool:
        return bool(self.errors)

    def add(self, progress: BatchProgress) -> None:
        self.results.extend(progress.results)
        self.errors.extend(progress.errors)

    def failure_summary(self) -> str:
        """One line per failed file, or an empty string if nothing failed."""
        if not self.errors:
            return ""
        lines = "\n".join(f"- {e.filename}: {e.error}" for e in self.errors)
        return f"Grading completed, but some files failed:\n{lines}"
