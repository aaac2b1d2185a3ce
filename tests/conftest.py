"""
tests/conftest.py

Shared fixtures for harvest tests.
"""

from __future__ import annotations

import pytest

from tests.fakes import RecordingProgressSink, RecordingSleeper


@pytest.fixture()
def progress() -> RecordingProgressSink:
    return RecordingProgressSink()


@pytest.fixture()
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()
