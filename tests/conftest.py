"""
Brief: Global pytest configuration and shared fixtures.

Inputs:
  - None

Outputs:
  - None
"""

import os
import signal
import sys

import pytest

# Ensure 'src' is on sys.path so 'pajatso' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from pajatso.store import RecordStore  # noqa: E402
from pajatso.zone import ZoneConfig  # noqa: E402

# base64 of b"pajatso-test-secret-0123456789ab"
SECRET_B64 = "cGFqYXRzby10ZXN0LXNlY3JldC0wMTIzNDU2Nzg5YWI="
KEY_NAME = "acme-update."
APEX = "example.com."
CHALLENGE = "_acme-challenge.example.com."


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


# Install handler if supported on this platform
if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return RecordStore(clock=clock)


@pytest.fixture
def zone():
    """
    Brief: ZoneConfig for example.com with the shared test key.

    Inputs:
      - None

    Outputs:
      - ZoneConfig
    """
    return ZoneConfig(
        zone="Example.COM",
        nameserver="ns1.example.com",
        key_name="acme-update",
        key_secret=SECRET_B64,
    )
