"""Grading client: one structured model call per submission, with retry."""

import asyncio
import json
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError
from pydantic_ai import NativeOutput
from pydantic_ai.exceptions import UnexpectedModelBehavior

from easygrader.libs.config_loader import ConfigType, get_config
from easygrader.libs.extraction import ExtractionError, Submission, TextExtractor
from easygrader.libs.llm import create_agent
from .errors import SchemaViolationError, TransientApiError, classify
from .models import GradingError, GradingOutcome, GradingResponse, GradingResult
from .prompts import SYSTEM_INSTRUCTION, build_prompt, response_json_schema

LOG = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5

SleepFunc = Callable[[float], Awaitable[Any]]


def create_grading_agent(configs: ConfigType,
                         api_key: Optional[str] = None,
                         model: Optional[str] = None,
                         settings_dict: Optional[Dict[str, Any]] = None) -> Any:
    """
    Create a pydantic-ai Agent configured for grading.

    This is a wrapper around the general create_agent function that requests
    JSON output matching GradingResponse from the provider.
    """
    return create_agent(
        configs=configs,
        api_key=api_key,
        model=model,
        settings_dict=settings_dict,
        system_prompt=SYSTEM_INSTRUCTION,
        output_type=NativeOutput(GradingResponse),
    )


def backoff_delay(attempt: int, rng: Optional[random.Random] = None) -> float:
    """Seconds to wait before retry number ``attempt`` (1-based): 2**attempt s plus up to 1 s of jitter."""
    jitter_ms = (rng or random).random() * 1000
    return (2 ** attempt * 1000 + jitter_ms) / 1000


def parse_response(output: Any) -> GradingResponse:
    """Validate an untrusted model payload against the response schema."""
    try:
        if isinstance(output, GradingResponse):
            return output
        if isinstance(output, (str, bytes)):
            return GradingResponse.model_validate_json(output)
        if isinstance(output, dict):
            return GradingResponse.model_validate(output)
        # Another pydantic model with the same shape
        if hasattr(output, "model_dump"):
            return GradingResponse.model_validate(output.model_dump())
    except ValidationError as exc:
        raise SchemaViolationError(f"Model response did not match the grading schema: {exc}") from exc
    raise SchemaViolationError(f"Unexpected model response type: {type(output).__name__}")


class SubmissionGrader:
    """Grade submissions one at a time using a structured-output agent."""

    def __init__(self, configs: ConfigType,
                 api_key: Optional[str] = None,
                 model: Optional[str] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 extractor: Optional[TextExtractor] = None,
                 sleep: Optional[SleepFunc] = None,
                 rng: Optional[random.Random] = None):
        """
        Initialize the grader.

        Args:
            configs: Configuration dictionary (required)
            api_key: Provider API key supplied by the user
            model: Model to use (overrides config value)
            settings: Pydantic AI settings dict (overrides config values)
            extractor: Text extractor (defaults to PDF/notebook/text plugins)
            sleep: Awaitable sleep used for backoff, in seconds
            rng: Random source for backoff jitter
        """
        self.configs = configs
        self.max_retries = get_config("grading.max_retries", configs, default=DEFAULT_MAX_RETRIES)
        self.retry_schema_violations = get_config(
            "grading.retry_schema_violations", configs, default=False
        )
        self.extractor = extractor or TextExtractor()
        self.sleep = sleep or asyncio.sleep
        self.rng = rng or random.Random()

        self.agent = create_grading_agent(
            configs=configs,
            api_key=api_key,
            model=model,
            settings_dict=settings,
        )
        LOG.debug("Grading output schema: %s", json.dumps(response_json_schema()))

    async def _attempt(self, submission: Submission, policy: str,
                       spec_text: str, rubric_text: str) -> GradingResult:
        # PDF parsing is blocking; keep the event loop free for the rest of the batch
        submission_text = await asyncio.to_thread(self.extractor.extract, submission)
        prompt = build_prompt(policy, spec_text, rubric_text, submission_text, submission.filename)
        try:
            result = await self.agent.run(prompt)
        except UnexpectedModelBehavior as exc:
            raise SchemaViolationError(f"Model response did not match the grading schema: {exc}") from exc
        response = parse_response(getattr(result, "output", result))
        return GradingResult(
            filename=submission.filename,
            total_score=response.total_score,
            breakdown=response.breakdown,
        )

    async def grade_async(self, submission: Submission, policy: str,
                          spec_text: str, rubric_text: str,
                          max_retries: Optional[int] = None) -> GradingOutcome:
        """
        Grade one submission, retrying rate-limit and unavailability errors.

        Never raises for per-submission problems: extraction failures, provider
        errors and schema violations all end as a GradingError.

        Returns:
            GradingResult on success, GradingError once retries are exhausted
            or a non-retryable error occurs
        """
        if max_retries is None:
            max_retries = self.max_retries

        attempt = 0
        last_error: Optional[BaseException] = None
        while attempt < max_retries:
            try:
                result = await self._attempt(submission, policy, spec_text, rubric_text)
                LOG.debug("Graded %s: %s", submission.filename, result.total_score)
                return result
            except Exception as exc:  # pylint: disable=broad-except
                attempt += 1
                last_error = exc
                if isinstance(exc, ExtractionError):
                    break
                error = classify(exc, self.retry_schema_violations)
                if isinstance(error, TransientApiError) and attempt < max_retries:
                    delay = backoff_delay(attempt, self.rng)
                    LOG.warning(
                        "Retryable error grading %s (attempt %d/%d, status %s); retrying in %.1fs",
                        submission.filename, attempt, max_retries, error.status_code, delay,
                    )
                    await self.sleep(delay)
                    continue
                break

        if last_error is None:
            return GradingError(
                filename=submission.filename,
                error=f"Failed after {max_retries} attempts.",
            )
        LOG.error("Failed to grade %s after %d attempts: %s", submission.filename, attempt, last_error)
        return GradingError(
            filename=submission.filename,
            error=f"Failed after {attempt} attempts. Last error: {last_error}",
        )

    def grade(self, submission: Submission, policy: str, spec_text: str,
              rubric_text: str, max_retries: Optional[int] = None) -> GradingOutcome:
        """Synchronous wrapper for grade_async."""
        return asyncio.run(self.grade_async(submission, policy, spec_text, rubric_text, max_retries))
