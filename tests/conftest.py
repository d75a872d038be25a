"""Pytest configuration and shared fixtures."""

import os
from collections.abc import Generator

import pytest
from loguru import logger

# Set test environment
os.environ.setdefault("AGENCY_LOG_MODE", "quiet")
os.environ.setdefault("AGENCY_LOG_LEVEL", "DEBUG")


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator:
    """Clear cached settings around every test."""
    from agency.core.config import clear_settings_cache

    clear_settings_cache()

    yield

    clear_settings_cache()


@pytest.fixture
def agency():
    """Provide a scheduler that drops journal events."""
    from agency.scheduling import Agency

    return Agency(mode="quiet")


@pytest.fixture
def log_agency(tmp_path):
    """Provide a scheduler buffering journal events into a report."""
    from agency.core.config import Settings
    from agency.scheduling import Agency

    settings = Settings(log_mode="log", report_dir=str(tmp_path))
    return Agency(report_target=tmp_path / "report.json", settings=settings)


@pytest.fixture
def log_messages() -> Generator[list[str], None, None]:
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG", format="{level} {message}")

    yield messages

    logger.remove(handler_id)


@pytest.fixture
def execution_messages():
    """Messages of journaled execution events for a task (log mode only)."""

    def collect(agency, task_id: str) -> list[str]:
        return [e.event for e in agency.journal.record.execution_events.get(task_id, [])]

    return collect


# Markers
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
