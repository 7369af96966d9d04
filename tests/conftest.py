"""
Pytest configuration and fixtures for the spendwise test suite
"""

import os
import sys
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

# Add project root to Python path to allow imports from 'spendwise'
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("AUTOMATION_DISABLED", "1")

from spendwise.config.environment import Environment
from spendwise.config.settings import (
    AppConfig,
    AutomationConfig,
    DatabaseConfig,
    RateLimitConfig,
    SecurityConfig,
    Settings,
)
from spendwise.container import Container
from spendwise.models.user import User
from spendwise.security.encryption import generate_encryption_key

TEST_SECRET_KEY = "test_secret_key_for_testing_only_32_chars"
FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable UTC clock"""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def today(self) -> date:
        return self.now.date()


class FakeMillisClock:
    """Millisecond clock for the rate limiter"""

    def __init__(self, start: float = 1_000_000.0):
        self.ms = start

    def __call__(self) -> float:
        return self.ms

    def advance(self, ms: float) -> None:
        self.ms += ms


def make_request(path="/api/expenses", api_key=None, cookies=None):
    """Minimal stand-in for a framework request: headers, url.path, cookies"""
    headers = {}
    if api_key is not None:
        headers["x-api-key"] = api_key
    return SimpleNamespace(
        headers=headers,
        url=SimpleNamespace(path=path),
        cookies=cookies or {},
    )


@pytest.fixture(autouse=True)
def _no_parent_pid(monkeypatch):
    monkeypatch.delenv("AUTOMATION_PARENT_PID", raising=False)


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a temporary database with fast bcrypt"""
    return Settings(
        database=DatabaseConfig(path=str(tmp_path / "spendwise-test.db"), connection_timeout=5.0),
        security=SecurityConfig(
            secret_key=TEST_SECRET_KEY,
            encryption_key=generate_encryption_key(),
            bcrypt_rounds=4,  # Faster for tests
        ),
        rate_limit=RateLimitConfig(window_ms=60_000, max_requests=120),
        automation=AutomationConfig(interval_ms=60_000, restart_delay_ms=50, disabled=True),
        app=AppConfig(environment=Environment.TESTING, log_level="WARNING"),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ms_clock():
    return FakeMillisClock()


@pytest.fixture
def container(test_settings, clock, ms_clock):
    """Fully wired container on a migrated temporary database"""
    container = Container(test_settings, clock=clock, rate_limit_clock=ms_clock)
    yield container
    container.cleanup()


@pytest.fixture
def user(container):
    return container.users.create(
        User(email="alex@example.com", name="Alex", default_currency="EUR")
    )


@pytest.fixture
def other_user(container):
    return container.users.create(User(email="sam@example.com", name="Sam"))


@pytest.fixture
def session_cookies(container, user):
    """Cookie jar for a signed-in ``user``"""
    return {
        container.settings.security.session_cookie_name: container.sessions.issue_session_cookie(
            user.id
        )
    }
