import asyncio

import pytest

from clusterfeatures.modules.feature import DependencyNotReadyError, PollTimeoutError, poll_until_ready


class CountingCheck:
    """Readiness check reporting ready after a number of calls."""

    def __init__(self, ready_after=1, error=None):
        self.ready_after = ready_after
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.calls >= self.ready_after


@pytest.mark.asyncio
async def test_returns_once_check_reports_ready():
    check = CountingCheck(ready_after=3)
    loop = asyncio.get_running_loop()

    started = loop.time()
    await poll_until_ready(check, interval=0.02, timeout=1)
    elapsed = loop.time() - started

    assert check.calls == 3
    # Ready on the third check, each preceded by one interval
    assert 2 * 0.02 <= elapsed < 1


@pytest.mark.asyncio
async def test_first_check_waits_one_interval():
    check = CountingCheck(ready_after=1)
    loop = asyncio.get_running_loop()

    started = loop.time()
    await poll_until_ready(check, interval=0.05, timeout=1)

    assert loop.time() - started >= 0.04
    assert check.calls == 1


@pytest.mark.asyncio
async def test_times_out_when_never_ready():
    check = CountingCheck(ready_after=1000)

    with pytest.raises(PollTimeoutError) as exc_info:
        await poll_until_ready(check, interval=0.01, timeout=0.05, what="pods")

    assert isinstance(exc_info.value, DependencyNotReadyError)
    assert "pods" in str(exc_info.value)
    assert 1 <= check.calls <= 6


@pytest.mark.asyncio
async def test_timeout_is_not_early_nor_much_late():
    check = CountingCheck(ready_after=1000)
    loop = asyncio.get_running_loop()

    started = loop.time()
    with pytest.raises(PollTimeoutError):
        await poll_until_ready(check, interval=0.02, timeout=0.1)
    elapsed = loop.time() - started

    assert 0.09 <= elapsed < 0.5


@pytest.mark.asyncio
async def test_check_errors_propagate_unchanged():
    error = RuntimeError("api down")
    check = CountingCheck(error=error)

    with pytest.raises(RuntimeError) as exc_info:
        await poll_until_ready(check, interval=0.01, timeout=1)

    assert exc_info.value is error
    assert check.calls == 1


@pytest.mark.asyncio
async def test_cancellation_interrupts_wait():
    check = CountingCheck(ready_after=1000)
    task = asyncio.create_task(poll_until_ready(check, interval=0.01, timeout=60))

    await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
