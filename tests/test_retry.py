import os, sys, pathlib
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.utils.retry import retry


def test_retries_until_success():
    calls, waits = [], []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise RuntimeError("not yet")
        return "done"

    assert retry(flaky, attempts=3, delay=5, backoff=2, sleep=waits.append) == "done"
    assert waits == [5, 10]


def test_reraises_last_error():
    waits = []

    def broken():
        raise OSError("network down")

    with pytest.raises(OSError, match="network down"):
        retry(broken, attempts=2, delay=1, sleep=waits.append)
    assert waits == [1]


def test_at_least_one_attempt():
    assert retry(lambda: 42, attempts=0, sleep=lambda s: None) == 42
