"""Tests for retry, pacing, parallel execution and text helpers."""

import pytest

from scriptboard.core.errors import InputValidationError, RetryExhausted
from scriptboard.core.logging_config import console_format
from scriptboard.utils.parallel_executor import ParallelExecutor
from scriptboard.utils.rate_limiter import PacingPolicy
from scriptboard.utils.retry import RetryPolicy, call_with_retry
from scriptboard.utils.text_utils import (
    count_words,
    estimate_spoken_duration,
    first_words,
    format_duration,
    is_hex_color,
)


class TestRetry:
    def test_delay_schedule_is_capped(self):
        policy = RetryPolicy(max_attempts=5, initial_delay=1.0, multiplier=2.0, max_delay=5.0)
        assert [policy.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]

    def test_succeeds_after_failures(self, logger):
        sleeps = []
        attempts = iter([RuntimeError("a"), RuntimeError("b"), "ok"])

        def flaky():
            outcome = next(attempts)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        result = call_with_retry(flaky, RetryPolicy(max_attempts=3, initial_delay=0.5), logger, "flaky", sleep=sleeps.append)

        assert result == "ok"
        assert sleeps == [0.5, 1.0]

    def test_exhausted_carries_last_error(self, logger):
        def always_fails():
            raise RuntimeError("nope")

        with pytest.raises(RetryExhausted) as exc_info:
            call_with_retry(always_fails, RetryPolicy(max_attempts=2), logger, "op", sleep=lambda _: None)

        assert exc_info.value.attempts == 2
        assert str(exc_info.value.last_error) == "nope"

    def test_validation_errors_not_retried(self, logger):
        calls = []

        def invalid():
            calls.append(1)
            raise InputValidationError("bad input")

        with pytest.raises(InputValidationError):
            call_with_retry(invalid, RetryPolicy(max_attempts=3), logger, "op", sleep=lambda _: None)
        assert len(calls) == 1


class TestPacingPolicy:
    def test_sequential_waits_out_the_interval(self):
        now = [100.0]
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            now[0] += seconds

        policy = PacingPolicy(min_interval=2.0, max_concurrent=1, sleep=sleep, clock=lambda: now[0])

        with policy.slot():
            pass
        now[0] += 0.5
        with policy.slot():
            pass

        assert sleeps == [pytest.approx(1.5)]

    def test_reset_skips_first_wait(self):
        sleeps = []
        policy = PacingPolicy(min_interval=10.0, sleep=sleeps.append, clock=lambda: 0.0)

        policy.wait_turn()
        policy.reset()
        policy.wait_turn()

        assert sleeps == []

    @pytest.mark.parametrize("kwargs", [{"min_interval": -1}, {"max_concurrent": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            PacingPolicy(**kwargs)


class TestParallelExecutor:
    def test_results_keep_input_order_and_isolate_failures(self, logger):
        def boom():
            raise RuntimeError("boom")

        executor = ParallelExecutor(logger, max_workers=3)

        results = executor.execute_batch([lambda: 1, boom, lambda: 3])

        assert [r for r, _ in results] == [1, None, 3]
        assert isinstance(results[1][1], RuntimeError)

    def test_empty_batch(self, logger):
        assert ParallelExecutor(logger).execute_batch([]) == []


def test_text_helpers():
    assert count_words("  one two\nthree ") == 3
    assert estimate_spoken_duration(" ".join(["w"] * 150)) == 60
    assert first_words("a b c d e f", 3) == "a b c"
    assert format_duration(125.4) == "2:05"
    assert is_hex_color("#1a1A1a")
    assert not is_hex_color("#123")


def test_console_format_echoes_bound_context():
    plain = console_format({"extra": {"name": "scriptboard.main"}})
    bound = console_format({"extra": {"name": "orchestrator", "project_id": "p{1}", "command": "run"}})

    assert "project_id" not in plain
    assert "[project_id={extra[project_id]}]" in bound
    assert "[command={extra[command]}]" in bound
    assert "p{1}" not in bound
    assert bound.endswith("{exception}")
