import pytest

from blockhost.infra.http import HttpError
from blockhost.infra.retry import RATE_LIMITED, READ_RETRYABLE, on_status_code, retry

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def flaky(failures: list[Exception]):
    calls = {"n": 0}

    async def fn() -> str:
        calls["n"] += 1
        if failures:
            raise failures.pop(0)
        return "ok"

    return fn, calls


@pytest.mark.asyncio
async def test_retries_matching_status():
    fn, calls = flaky([HttpError(429, "slow down"), HttpError(503, "busy")])
    wrapped = retry(on=on_status_code(429, 503), max_attempts=3, base_delay=0, jitter=False)(fn)
    assert await wrapped() == "ok"
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_other_status_not_retried():
    fn, calls = flaky([HttpError(422, "invalid")])
    wrapped = retry(on=on_status_code(429, 503), max_attempts=3, base_delay=0, jitter=False)(fn)
    with pytest.raises(HttpError):
        await wrapped()
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts():
    fn, calls = flaky([HttpError(503, "busy") for _ in range(5)])
    wrapped = retry(on=on_status_code(503), max_attempts=2, base_delay=0, jitter=False)(fn)
    with pytest.raises(HttpError):
        await wrapped()
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_exception_type_filter():
    fn, calls = flaky([OSError("reset"), ValueError("bad")])
    wrapped = retry(on=OSError, max_attempts=5, base_delay=0, jitter=False)(fn)
    with pytest.raises(ValueError):
        await wrapped()
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_retry_after_hint_overrides_backoff(monkeypatch: pytest.MonkeyPatch):
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr("blockhost.infra.retry.asyncio.sleep", fake_sleep)
    fn, _ = flaky([HttpError(429, "slow down", retry_after=7.0)])
    wrapped = retry(on=RATE_LIMITED, max_attempts=2, base_delay=0.5, jitter=False)(fn)
    assert await wrapped() == "ok"
    assert sleeps == [7.0]


@pytest.mark.asyncio
async def test_retry_after_capped_by_max_delay(monkeypatch: pytest.MonkeyPatch):
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr("blockhost.infra.retry.asyncio.sleep", fake_sleep)
    fn, _ = flaky([HttpError(503, "maintenance", retry_after=3600.0)])
    wrapped = retry(on=RATE_LIMITED, max_attempts=2, max_delay=10.0)(fn)
    await wrapped()
    assert sleeps == [10.0]


def test_read_predicate_includes_transport_failures():
    assert READ_RETRYABLE(HttpError(0, "connection reset"))
    assert READ_RETRYABLE(HttpError(503, "busy"))
    assert not READ_RETRYABLE(HttpError(404, "missing"))


def test_create_predicate_excludes_transport_failures():
    assert RATE_LIMITED(HttpError(429, "slow down"))
    assert not RATE_LIMITED(HttpError(0, "connection reset"))
