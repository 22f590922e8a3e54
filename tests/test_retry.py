import pytest

from translation_machine.ai.exceptions import ChunkTooLargeError, QuotaError, RemoteError, TransientRemoteError
from translation_machine.translation.retry import FinalFailure, RetryController, RetryPolicy


class Flaky:
    """Raises the given errors in order, then returns "done"."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "done"


def test_success_on_first_attempt_does_not_sleep(retry, sleeps):
    operation = Flaky()
    assert retry.run(operation, "texto") == "done"
    assert operation.calls == 1
    assert sleeps == []


def test_rate_limit_backs_off_exponentially(retry, sleeps):
    operation = Flaky(QuotaError("slow down"), QuotaError("slow down"))

    assert retry.run(operation, "texto") == "done"
    assert operation.calls == 3
    assert sleeps == [5.0, 10.0]


def test_rate_limit_delay_is_capped():
    controller = RetryController(RetryPolicy(max_attempts=6))
    delays = [controller.categorize(QuotaError("x"), attempt)[1] for attempt in range(1, 6)]
    assert delays == [5.0, 10.0, 20.0, 30.0, 30.0]


def test_transient_errors_use_linear_backoff(retry, sleeps):
    operation = Flaky(TransientRemoteError("timeout"), RemoteError("boom", status=500))

    assert retry.run(operation, "texto") == "done"
    assert sleeps == [1.0, 2.0]


def test_exhausted_retries_return_final_failure(retry, sleeps):
    operation = Flaky(*[RemoteError("boom", status=500) for _ in range(5)])

    outcome = retry.run(operation, "texto original")

    assert isinstance(outcome, FinalFailure)
    assert outcome.original_text == "texto original"
    assert outcome.attempts == 3
    assert "boom" in outcome.reason
    assert not outcome.too_large
    assert operation.calls == 3
    # No wait after the final attempt
    assert len(sleeps) == 2


def test_chunk_too_large_is_never_retried(retry, sleeps):
    operation = Flaky(ChunkTooLargeError("context_length_exceeded", status=400))

    outcome = retry.run(operation, "texto")

    assert isinstance(outcome, FinalFailure)
    assert outcome.too_large
    assert outcome.attempts == 1
    assert operation.calls == 1
    assert sleeps == []


@pytest.mark.parametrize("max_attempts, expected_calls", [(1, 1), (2, 2), (4, 4)])
def test_attempt_budget_is_configurable(max_attempts, expected_calls, sleeps):
    controller = RetryController(RetryPolicy(max_attempts=max_attempts), sleep=sleeps.append)
    operation = Flaky(*[TransientRemoteError("down") for _ in range(10)])

    assert isinstance(controller.run(operation, "x"), FinalFailure)
    assert operation.calls == expected_calls
