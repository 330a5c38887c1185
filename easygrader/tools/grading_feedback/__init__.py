"""Grading feedback tool for batch evaluation of submissions using LLMs."""

from .grader import SubmissionGrader
from .batch_grader import BatchGrader
from .errors import FatalRunError, PermanentApiError, SchemaViolationError, TransientApiError
from .models import (
    BatchProgress,
    FeedbackItem,
    GradingError,
    GradingResponse,
    GradingResult,
    GradingRun,
)
from .prompts import build_prompt
from .report import results_to_csv

__all__ = [
    'SubmissionGrader',
    'BatchGrader',
    'FatalRunError',
    'PermanentApiError',
    'SchemaViolationError',
    'TransientApiError',
    'BatchProgress',
    'FeedbackItem',
    'GradingError',
    'GradingResponse',
    'GradingResult',
    'GradingRun',
    'build_prompt',
    'results_to_csv',
]
