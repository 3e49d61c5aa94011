import asyncio

import pytest

from app.core.deadline import Deadline
from app.core.exceptions import DeadlineExceededError, ErrorKind


@pytest.mark.asyncio
async def test_run_returns_result_within_deadline():
    async def work():
        return 42

    assert await Deadline(1.0).run(work()) == 42


@pytest.mark.asyncio
async def test_run_raises_timeout_when_exceeded():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(DeadlineExceededError) as ei:
        await Deadline(0.01, operation="find_all").run(slow())
    assert ei.value.kind is ErrorKind.TIMEOUT
    assert ei.value.operation == "find_all"


@pytest.mark.asyncio
async def test_expired_deadline_does_not_start_work():
    started = False

    async def work():
        nonlocal started
        started = True

    deadline = Deadline(0.0)
    assert deadline.expired
    with pytest.raises(DeadlineExceededError):
        await deadline.run(work())
    assert started is False


def test_never_does_not_expire():
    deadline = Deadline.never()
    assert not deadline.expired
    assert deadline.remaining() == float("inf")
