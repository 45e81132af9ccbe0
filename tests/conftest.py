"""
Pytest configuration and fixtures.

Ensures the repo root is importable and provides the fake panel backend,
shared storage and a controller factory with a fixed clock.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to Python path so `app` and `main` import without install
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from app.panel import PanelController, PanelPersistence, MemoryStorage
from tests._helpers import FIXED_NOW, SHOP_TZ, FakeBackend


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_controller(backend, storage):
    """Factory for controllers sharing the fake backend and storage"""
    def _make(**kwargs):
        kwargs.setdefault("tz", SHOP_TZ)
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return PanelController(backend, PanelPersistence(storage), **kwargs)
    return _make
