"""Unit tests for bounded outbound retries."""

import time

from rentwise.payments import retry
from rentwise.payments.retry import call_with_retries


class Flaky:
    """Callable failing a fixed number of times before succeeding."""

    def __init__(self, failures: int, exc: Exception | None = None):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        if self.calls <= self.failures:
            if self.exc is not None:
                raise self.exc
            return False
        return True


class RecordingLogger:
    def __init__(self):
        self.entries: list[dict] = []

    def warning(self, event: str, **fields):
        self.entries.append({"event": event, **fields})

    error = warning


async def test_first_attempt_succeeds():
    call = Flaky(failures=0)

    assert await call_with_retries(call, operation="capture", max_retries=3, backoff_seconds=0)
    assert call.calls == 1


async def test_retries_declined_calls():
    call = Flaky(failures=2)

    assert await call_with_retries(call, operation="capture", max_retries=3, backoff_seconds=0)
    assert call.calls == 3


async def test_exceptions_count_as_attempts():
    call = Flaky(failures=1, exc=RuntimeError("connection reset"))

    assert await call_with_retries(call, operation="refund", max_retries=1, backoff_seconds=0)
    assert call.calls == 2


async def test_gives_up_after_max_retries():
    call = Flaky(failures=10)

    result = await call_with_retries(call, operation="capture", max_retries=2, backoff_seconds=0)

    assert result is False
    assert call.calls == 3


async def test_zero_retries_means_single_attempt():
    call = Flaky(failures=1)

    assert not await call_with_retries(
        call, operation="capture", max_retries=0, backoff_seconds=0
    )
    assert call.calls == 1


async def test_each_failed_attempt_is_logged(monkeypatch):
    logs = RecordingLogger()
    monkeypatch.setattr(retry, "logger", logs)
    call = Flaky(failures=10, exc=RuntimeError("connection reset"))

    await call_with_retries(call, operation="capture", max_retries=1, backoff_seconds=0)

    events = [(entry["event"], entry.get("attempt")) for entry in logs.entries]
    assert events == [
        ("outbound_call_failed", 1),
        ("outbound_call_failed", 2),
        ("outbound_call_exhausted", None),
    ]
    assert logs.entries[-1]["attempts"] == 2
    assert logs.entries[0]["error_type"] == "RuntimeError"


async def test_backoff_separates_attempts():
    call = Flaky(failures=2)
    started = time.monotonic()

    assert await call_with_retries(call, operation="send", max_retries=2, backoff_seconds=0.05)
    assert time.monotonic() - started >= 0.1
