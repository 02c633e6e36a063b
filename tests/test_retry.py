import pytest

import musical_eras.core.retry as retry_module
from musical_eras.core.errors import RateLimited, UpstreamFetchFailure
from musical_eras.core.retry import retry_with_backoff


@pytest.fixture()
def sleeps(monkeypatch):
    waits = []
    monkeypatch.setattr(retry_module.time, "sleep", waits.append)
    return waits


def _flaky(failures):
    calls = []

    @retry_with_backoff(max_attempts=5, initial_delay=0.5, max_delay=3.0)
    def fetch():
        calls.append(1)
        if failures:
            raise failures.pop(0)
        return "ok"

    return fetch, calls


def test_returns_after_transient_failures(sleeps):
    fetch, calls = _flaky([RateLimited(), RateLimited()])
    assert fetch() == "ok"
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


def test_delay_is_capped_and_server_hint_wins(sleeps):
    fetch, _ = _flaky([RateLimited(), RateLimited(retry_after=2.5), RateLimited(), RateLimited()])
    assert fetch() == "ok"
    assert sleeps == [0.5, 2.5, 2.0, 3.0]


def test_exhausted_retries_become_upstream_failure(sleeps):
    fetch, calls = _flaky([RateLimited()] * 5)
    with pytest.raises(UpstreamFetchFailure) as exc:
        fetch()
    assert isinstance(exc.value.__cause__, RateLimited)
    assert len(calls) == 5


def test_other_errors_are_not_retried(sleeps):
    fetch, calls = _flaky([ValueError("bad")])
    with pytest.raises(ValueError):
        fetch()
    assert len(calls) == 1
    assert sleeps == []
