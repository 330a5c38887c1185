"""Batch grader for processing many submissions in fixed-size concurrent batches."""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from tqdm import tqdm

from easygrader.libs.config_loader import ConfigType, get_config
from easygrader.libs.extraction import ExtractionError, Submission
from .errors import FatalRunError
from .grader import SleepFunc, SubmissionGrader
from .models import BatchProgress, GradingError, GradingOutcome, GradingResult, GradingRun

LOG = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_MS = 2000


def partition(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    """Split items into consecutive chunks of at most ``size``."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchGrader:
    """Grade many submissions, N at a time, with a cooldown between batches."""

    def __init__(self, configs: ConfigType, api_key: Optional[str] = None,
                 model: Optional[str] = None, settings: Optional[Dict[str, Any]] = None,
                 batch_size: Optional[int] = None, batch_delay_ms: Optional[int] = None,
                 sleep: Optional[SleepFunc] = None,
                 grader: Optional[SubmissionGrader] = None):
        """
        Initialize the batch grader.

        Args:
            configs: Configuration dictionary
            api_key: Provider API key supplied by the user
            model: Optional model override
            settings: Optional settings override
            batch_size: Submissions graded concurrently per batch (overrides config)
            batch_delay_ms: Cooldown between batches in milliseconds (overrides config)
            sleep: Awaitable sleep (seconds) for cooldowns and retry backoff
            grader: Pre-built grading client (mostly for tests)
        """
        self.configs = configs
        self.sleep = sleep or asyncio.sleep

        if batch_size is not None:
            self.batch_size = batch_size
        else:
            self.batch_size = get_config("grading.batch_size", configs, default=DEFAULT_BATCH_SIZE)
        if batch_delay_ms is not None:
            self.batch_delay_ms = batch_delay_ms
        else:
            self.batch_delay_ms = get_config("grading.batch_delay_ms", configs, default=DEFAULT_BATCH_DELAY_MS)

        self.grader = grader or SubmissionGrader(
            configs=configs,
            api_key=api_key,
            model=model,
            settings=settings,
            sleep=self.sleep,
        )
        self._cancel_requested = False

        LOG.info(f"BatchGrader initialized with batch_size={self.batch_size}, "
                 f"batch_delay_ms={self.batch_delay_ms}")

    def cancel(self) -> None:
        """Stop the current run at the next batch boundary."""
        self._cancel_requested = True

    def extract_context(self, spec_doc: Submission, rubric_doc: Submission) -> Tuple[str, str]:
        """
        Extract the assignment spec and rubric once for the whole run.

        Raises:
            FatalRunError: If either document cannot be read
        """
        try:
            spec_text = self.grader.extractor.extract(spec_doc)
            rubric_text = self.grader.extractor.extract(rubric_doc)
        except ExtractionError as e:
            raise FatalRunError(str(e)) from e
        return spec_text, rubric_text

    async def _grade_one(self, submission: Submission, policy: str,
                         spec_text: str, rubric_text: str) -> GradingOutcome:
        try:
            return await self.grader.grade_async(submission, policy, spec_text, rubric_text)
        except Exception as e:  # pylint: disable=broad-except
            LOG.exception(f"Unexpected error grading {submission.filename}")
            return GradingError(filename=submission.filename, error=f"Unexpected error: {e}")

    async def run(self, submissions: Sequence[Submission], policy: str,
                  spec_doc: Submission, rubric_doc: Submission) -> AsyncIterator[BatchProgress]:
        """
        Grade all submissions, yielding the outcomes of each batch as it finishes.

        Context documents are extracted before any batch starts; a failure
        there raises FatalRunError and nothing is graded. Individual
        submission failures are reported as GradingError entries. A cancel
        request, including one made before the run starts, stops the run
        at the next batch boundary and is consumed when the run ends.
        """
        try:
            spec_text, rubric_text = self.extract_context(spec_doc, rubric_doc)

            batches = partition(list(submissions), self.batch_size)
            total = len(submissions)
            processed = 0
            LOG.info(f"Grading {total} submissions in {len(batches)} batches")

            for index, batch in enumerate(batches):
                if self._cancel_requested:
                    LOG.warning(f"Grading cancelled after {processed} of {total} submissions")
                    return
                if index > 0:
                    await self.sleep(self.batch_delay_ms / 1000)

                outcomes = await asyncio.gather(*[
                    self._grade_one(submission, policy, spec_text, rubric_text)
                    for submission in batch
                ])
                results = [o for o in outcomes if isinstance(o, GradingResult)]
                errors = [o for o in outcomes if isinstance(o, GradingError)]
                processed += len(batch)

                LOG.info(f"Batch {index + 1}/{len(batches)}: {len(results)} graded, "
                         f"{len(errors)} failed ({processed}/{total})")
                yield BatchProgress(
                    batch_index=index,
                    results=results,
                    errors=errors,
                    processed=processed,
                    total=total,
                )
        finally:
            self._cancel_requested = False

    async def grade_all_async(self, submissions: Sequence[Submission], policy: str,
                              spec_doc: Submission, rubric_doc: Submission,
                              show_progress: bool = False) -> GradingRun:
        """
        Grade all submissions and collect the outcomes into a GradingRun.

        Raises:
            FatalRunError: If the assignment spec or rubric cannot be read
        """
        grading_run = GradingRun(total=len(submissions))
        with tqdm(total=len(submissions), desc="Grading submissions", disable=not show_progress) as pbar:
            async for progress in self.run(submissions, policy, spec_doc, rubric_doc):
                grading_run.add(progress)
                pbar.update(len(progress.results) + len(progress.errors))
                for error in progress.errors:
                    LOG.warning(f"Failed: {error.filename} - {error.error}")
        # Only a cancelled run ends with submissions left ungraded
        grading_run.cancelled = grading_run.outcome_count < len(submissions)

        if grading_run.has_failures:
            LOG.warning(grading_run.failure_summary())
        return grading_run

    def grade_all(self, submissions: Sequence[Submission], policy: str,
                  spec_doc: Submission, rubric_doc: Submission,
                  show_progress: bool = False) -> GradingRun:
        """Synchronous wrapper for grade_all_async."""
        return asyncio.run(self.grade_all_async(
            submissions, policy, spec_doc, rubric_doc, show_progress
        ))
