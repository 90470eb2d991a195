"""
Root pytest fixtures for StreamPulse tests.

Provides isolated data directories, a deterministic clock and fake platform sources.
"""

from __future__ import annotations

import os
import sys
import tempfile

# Keep logs and default paths away from the real application data directory.
os.environ.setdefault("STREAMPULSE_DATA_DIR", tempfile.mkdtemp(prefix="streampulse-tests-"))

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from core.follow_store import FollowStore
from tests.helpers import FakeChzzkSource, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def follows_path(tmp_path):
    return tmp_path / "follows.json"


@pytest.fixture
def store(follows_path, clock):
    store = FollowStore(follows_path, save_retry_delay_seconds=0, clock=clock)
    store.load()
    return store


@pytest.fixture
def chzzk_source():
    return FakeChzzkSource()
