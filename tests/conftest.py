"""Root test fixtures shared across all test types."""

import os

# Set APP_ENV to testing before any app imports to disable rate limiting
os.environ.setdefault("APP_ENV", "testing")
# Keep real credentials from a local .env out of the test run
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import Generator

import pytest

from src.analytics_agent.core.config import get_settings
from src.analytics_agent.core.shutdown import run_tracker
from tests.helpers import FakeActionSink, FakeDataSource, FakeLanguageModel

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_run_tracker() -> Generator[None]:
    """The run tracker is a process-wide singleton; reset it around each test."""
    run_tracker.reset()
    yield
    run_tracker.reset()


# --- Collaborator fakes ---


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def language_model() -> FakeLanguageModel:
    return FakeLanguageModel()


@pytest.fixture
def action_sink() -> FakeActionSink:
    return FakeActionSink()
