"""
Pytest fixtures for provider HTTP client tests.

Sections:
    - Sleep Recorder
    - Mock Session Fixtures
"""

from unittest.mock import MagicMock

import pytest
import requests


# =============================================================================
# Sleep Recorder
# =============================================================================


class SleepRecorder:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeper():
    return SleepRecorder()


# =============================================================================
# Mock Session Fixtures
# =============================================================================


def make_response(status_code=200, payload=None, json_error=None):
    """Build a mock requests.Response with a canned JSON body."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def mock_session():
    """A requests.Session whose request() is a MagicMock."""
    return MagicMock(spec=requests.Session)
