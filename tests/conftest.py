"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from quizit.core.models import LearningItem  # noqa: E402
from quizit.delivery.state_store import StateStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed point in time so scheduling is deterministic."""
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_item(now):
    """Factory for learning items; defaults to a brand-new item due now."""
    def _make(item_id: int = 1, **fields) -> LearningItem:
        fields.setdefault("next_review_at", now)
        return LearningItem(
            id=item_id,
            front=fields.pop("front", f"Question {item_id}"),
            back=fields.pop("back", f"Answer {item_id}"),
            **fields,
        )
    return _make


@pytest.fixture
def store(tmp_path):
    """A state store backed by a throwaway database."""
    state_store = StateStore(tmp_path / "quizit.db")
    yield state_store
    state_store.close()
