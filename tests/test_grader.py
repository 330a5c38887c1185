"""Tests for the single-submission grading client."""

import json
import random
from unittest.mock import AsyncMock, Mock, patch

import pytest
from pydantic_ai.exceptions import UnexpectedModelBehavior

from easygrader.libs.extraction import Submission
from easygrader.tools.grading_feedback.errors import (
    PermanentApiError,
    SchemaViolationError,
    TransientApiError,
    classify,
    is_retryable,
    status_code_of,
)
from easygrader.tools.grading_feedback.grader import (
    SubmissionGrader,
    backoff_delay,
    parse_response,
)
from easygrader.tools.grading_feedback.models import (
    FeedbackItem,
    GradingError,
    GradingResponse,
    GradingResult,
)


class FakeHTTPError(Exception):
    """Stand-in for a provider HTTP error carrying a status code."""

    def __init__(self, status_code: int):
        super().__init__(f"status_code: {status_code}, model_name: test-model")
        self.status_code = status_code


@pytest.fixture
def sample_config():
    """Create sample configuration."""
    return {
        'llm': {
            'provider': 'google',
            'model': 'gemini-2.5-flash',
        },
        'grading': {
            'max_retries': 5,
        },
    }


@pytest.fixture
def sample_response():
    return GradingResponse(
        total_score="8/10",
        breakdown=[FeedbackItem(feedback="Loads data correctly"), FeedbackItem(feedback="Median misuse")],
    )


@pytest.fixture
def submission():
    return Submission.from_text("alice.txt", "print('hello')")


def make_grader(configs, run_side_effect=None, run_return=None, sleep=None):
    agent = Mock()
    agent.run = AsyncMock(side_effect=run_side_effect, return_value=run_return)
    with patch('easygrader.tools.grading_feedback.grader.create_grading_agent', return_value=agent):
        grader = SubmissionGrader(
            configs=configs,
            api_key='test-key-123456',
            sleep=sleep or AsyncMock(),
            rng=random.Random(42),
        )
    return grader, agent


@pytest.mark.asyncio
async def test_grade_success(sample_config, sample_response, submission):
    """A valid structured response becomes a GradingResult keyed by filename."""
    grader, agent = make_grader(sample_config, run_return=Mock(output=sample_response))

    result = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(result, GradingResult)
    assert result.filename == "alice.txt"
    assert result.total_score == "8/10"
    assert result.feedback_items == ["Loads data correctly", "Median misuse"]
    assert agent.run.await_count == 1

    prompt = agent.run.await_args.args[0]
    assert '### STUDENT SUBMISSION: "alice.txt" ###' in prompt
    assert "print('hello')" in prompt


@pytest.mark.asyncio
async def test_grade_accepts_json_text(sample_config, submission):
    payload = json.dumps({"total_score": "7", "breakdown": [{"feedback": "ok"}]})
    grader, _ = make_grader(sample_config, run_return=Mock(output=payload))

    result = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(result, GradingResult)
    assert result.total_score == "7"


@pytest.mark.asyncio
async def test_all_503_exhausts_retries(sample_config, submission):
    """Every attempt failing with 503 uses exactly max_retries attempts."""
    sleep = AsyncMock()
    grader, agent = make_grader(sample_config, run_side_effect=FakeHTTPError(503), sleep=sleep)

    outcome = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(outcome, GradingError)
    assert outcome.filename == "alice.txt"
    assert outcome.error.startswith("Failed after 5 attempts. Last error:")
    assert "503" in outcome.error
    assert agent.run.await_count == 5
    # No sleep after the final attempt
    assert sleep.await_count == 4

    delays = [call.args[0] for call in sleep.await_args_list]
    for k, delay in enumerate(delays, start=1):
        assert 2 ** k <= delay < 2 ** k + 1


@pytest.mark.asyncio
async def test_max_retries_argument_overrides_config(sample_config, submission):
    grader, agent = make_grader(sample_config, run_side_effect=FakeHTTPError(429))

    outcome = await grader.grade_async(submission, "policy", "spec", "rubric", max_retries=2)

    assert outcome.error.startswith("Failed after 2 attempts.")
    assert agent.run.await_count == 2


@pytest.mark.asyncio
async def test_rate_limit_then_success(sample_config, sample_response, submission):
    sleep = AsyncMock()
    grader, agent = make_grader(
        sample_config,
        run_side_effect=[FakeHTTPError(429), Mock(output=sample_response)],
        sleep=sleep,
    )

    result = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(result, GradingResult)
    assert agent.run.await_count == 2
    assert sleep.await_count == 1
    assert 2 <= sleep.await_args.args[0] < 3


@pytest.mark.asyncio
async def test_non_retryable_error_fails_fast(sample_config, submission):
    sleep = AsyncMock()
    grader, agent = make_grader(sample_config, run_side_effect=FakeHTTPError(400), sleep=sleep)

    outcome = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(outcome, GradingError)
    assert outcome.error.startswith("Failed after 1 attempts. Last error:")
    assert agent.run.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_status_in_message_is_retryable(sample_config, sample_response, submission):
    """Errors without a status_code attribute are classified from their message."""
    grader, agent = make_grader(
        sample_config,
        run_side_effect=[RuntimeError("got 503 Service Unavailable"), Mock(output=sample_response)],
    )

    result = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(result, GradingResult)
    assert agent.run.await_count == 2


@pytest.mark.asyncio
async def test_schema_violation_fails_fast_by_default(sample_config, submission):
    grader, agent = make_grader(sample_config, run_return=Mock(output='{"total_score": "5"}'))

    outcome = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(outcome, GradingError)
    assert "did not match the grading schema" in outcome.error
    assert agent.run.await_count == 1


@pytest.mark.asyncio
async def test_schema_violation_retried_when_configured(sample_config, submission):
    sample_config['grading']['retry_schema_violations'] = True
    sleep = AsyncMock()
    grader, agent = make_grader(sample_config, run_return=Mock(output="not json at all"), sleep=sleep)

    outcome = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(outcome, GradingError)
    assert outcome.error.startswith("Failed after 5 attempts.")
    assert agent.run.await_count == 5


@pytest.mark.asyncio
async def test_agent_output_validation_failure(sample_config, submission):
    grader, agent = make_grader(
        sample_config,
        run_side_effect=UnexpectedModelBehavior("Exceeded maximum retries (0) for output validation"),
    )

    outcome = await grader.grade_async(submission, "policy", "spec", "rubric")

    assert isinstance(outcome, GradingError)
    assert "grading schema" in outcome.error
    assert agent.run.await_count == 1


@pytest.mark.asyncio
async def test_extraction_failure_becomes_grading_error(sample_config):
    grader, agent = make_grader(sample_config)
    broken = Submission(filename="broken.ipynb", content=b"{oops")

    outcome = await grader.grade_async(broken, "policy", "spec", "rubric")

    assert isinstance(outcome, GradingError)
    assert outcome.filename == "broken.ipynb"
    assert "Failed to parse file broken.ipynb" in outcome.error
    agent.run.assert_not_awaited()


def test_grade_sync_wrapper(sample_config, sample_response, submission):
    grader, _ = make_grader(sample_config, run_return=Mock(output=sample_response))

    result = grader.grade(submission, "policy", "spec", "rubric")

    assert isinstance(result, GradingResult)


def test_backoff_delay_bounds():
    rng = random.Random(7)
    for attempt in range(1, 6):
        for _ in range(50):
            delay_ms = backoff_delay(attempt, rng) * 1000
            assert 2 ** attempt * 1000 <= delay_ms < 2 ** attempt * 1000 + 1000


def test_parse_response_variants(sample_response):
    assert parse_response(sample_response) is sample_response
    assert parse_response({"total_score": "1", "breakdown": []}).total_score == "1"
    with pytest.raises(SchemaViolationError):
        parse_response({"breakdown": [{"feedback": "x"}]})
    with pytest.raises(SchemaViolationError):
        parse_response('{"total_score": "1", "breakdown": [{"note": "x"}]}')
    with pytest.raises(SchemaViolationError):
        parse_response(42)


def test_error_classification():
    assert status_code_of(FakeHTTPError(429)) == 429
    assert status_code_of(ValueError("plain failure")) is None
    assert is_retryable(FakeHTTPError(429))
    assert is_retryable(FakeHTTPError(503))
    assert not is_retryable(FakeHTTPError(500))
    assert not is_retryable(SchemaViolationError("bad"))
    assert is_retryable(SchemaViolationError("bad"), retry_schema_violations=True)

    assert isinstance(classify(FakeHTTPError(503)), TransientApiError)
    permanent = classify(FakeHTTPError(401))
    assert isinstance(permanent, PermanentApiError)
    assert permanent.status_code == 401
