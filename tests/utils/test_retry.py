import pytest

from nodeplan.utils.retry import RetryError, retry


class Transient(Exception):
    pass


def test_retry_succeeds_after_transient_failures():
    calls = []
    seen = []

    @retry(retries=3, delay=0, retry_on=(Transient,), on_retry=lambda n, e: seen.append(n))
    def op():
        calls.append(1)
        if len(calls) < 3:
            raise Transient("not yet")
        return "ok"

    assert op() == "ok"
    assert len(calls) == 3
    assert seen == [1, 2]


def test_retry_gives_up_with_cause():
    @retry(retries=2, delay=0, retry_on=(Transient,))
    def op():
        raise Transient("down")

    with pytest.raises(RetryError) as exc:
        op()
    assert isinstance(exc.value.__cause__, Transient)


def test_other_exceptions_propagate_immediately():
    calls = []

    @retry(retries=5, delay=0, retry_on=(Transient,))
    def op():
        calls.append(1)
        raise KeyError("x")

    with pytest.raises(KeyError):
        op()
    assert len(calls) == 1


def test_zero_retries_still_calls_once():
    calls = []

    @retry(retries=0, delay=0)
    def op():
        calls.append(1)
        return 1

    assert op() == 1
    assert calls == [1]
