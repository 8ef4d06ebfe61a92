"""Pytest configuration - add project root to path, shared fixtures."""
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from src.exp_run.errors import TransientIOError  # noqa: E402
from src.exp_run.state import ExperimentSession  # noqa: E402
from src.exp_run.store import AppDataStore  # noqa: E402


class FakeRedirectClient:
    """Records redirect calls instead of making HTTP requests."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on  # slot value whose request should fail

    def apply(self, url, slot):
        if self.fail_on is not None and slot == self.fail_on:
            raise TransientIOError(f"GET {url}/setredirect/{slot} failed: connection refused")
        self.calls.append((url, slot))
        return "Redirect cleared" if slot is None else f"Redirect set to {slot}"

    def check(self, url):
        self.calls.append((url, "HEAD"))
        return "200 OK"

    def close(self):
        pass


@pytest.fixture
def store(tmp_path):
    return AppDataStore(tmp_path / "appdata")


@pytest.fixture
def session(store):
    return ExperimentSession(store)


@pytest.fixture
def fake_client():
    return FakeRedirectClient()


@pytest.fixture
def make_client():
    return FakeRedirectClient
