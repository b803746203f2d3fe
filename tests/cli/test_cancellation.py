import threading
import time

import pytest

from sowhat_scan.cli.services.cancellation import CancellationToken
from sowhat_scan.cli.services.errors import ScanCancelledError


def test_sleep_completes_when_not_cancelled():
    token = CancellationToken()
    started = time.monotonic()
    token.sleep(0.01)
    assert time.monotonic() - started >= 0.005
    assert not token.cancelled


def test_sleep_raises_immediately_when_already_cancelled():
    token = CancellationToken()
    token.cancel()
    started = time.monotonic()
    with pytest.raises(ScanCancelledError):
        token.sleep(5.0)
    assert time.monotonic() - started < 1.0


def test_sleep_wakes_as_soon_as_cancelled():
    token = CancellationToken()
    timer = threading.Timer(0.05, token.cancel)
    started = time.monotonic()
    timer.start()
    try:
        with pytest.raises(ScanCancelledError):
            token.sleep(5.0)
    finally:
        timer.cancel()
    assert time.monotonic() - started < 2.0


def test_negative_sleep_does_not_block():
    token = CancellationToken()
    token.sleep(-1)


def test_oversized_sleep_still_wakes_on_cancel():
    token = CancellationToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    try:
        with pytest.raises(ScanCancelledError):
            token.sleep(1e12)
    finally:
        timer.cancel()


def test_callbacks_run_once():
    token = CancellationToken()
    calls = []
    token.add_callback(lambda: calls.append("first"))

    token.cancel()
    token.cancel()

    assert calls == ["first"]
    assert token.cancelled


def test_callback_added_after_cancel_runs_immediately():
    token = CancellationToken()
    token.cancel()
    calls = []

    token.add_callback(lambda: calls.append("late"))

    assert calls == ["late"]


def test_raise_if_cancelled_message():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    with pytest.raises(ScanCancelledError, match="aborted"):
        token.raise_if_cancelled()
