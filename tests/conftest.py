import os
import sys
from datetime import datetime

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from wellbeing.kv_store import KeyValueStore
from wellbeing.tracker import Tracker
from wellbeing.utils.clock import FixedClock

# Local noon, far from any DST switch
NOON = datetime(2026, 6, 15, 12, 0, 0)


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(str(tmp_path / "wellbeing_test.db"))


@pytest.fixture
def clock():
    return FixedClock(NOON)


@pytest.fixture
def tracker(store, clock):
    return Tracker(store, clock)
