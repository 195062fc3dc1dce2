"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - component/  : Component tests (in-memory store and event bus)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
from typing import Any, Dict, List

import pytest

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("NATS_ENABLED", "false")

from core.auth_dependencies import Principal
from tests.fixtures import SteppingClock, make_user_id


# =============================================================================
# Test Configuration
# =============================================================================

class TestConfig:
    """Centralized test configuration"""

    # Service port registry, mirrors core.config.collab_config.DEFAULT_SERVICE_PORTS
    SERVICES = {
        "access_service": 8261,
        "invitation_service": 8262,
        "deliverable_service": 8263,
        "realtime_service": 8264,
    }

    @classmethod
    def get_service_url(cls, service_name: str) -> str:
        port = cls.SERVICES.get(service_name)
        if not port:
            raise ValueError(f"Unknown service: {service_name}")
        return f"http://localhost:{port}"


@pytest.fixture(scope="session")
def test_config() -> TestConfig:
    """Provide test configuration"""
    return TestConfig()


# =============================================================================
# Principals & Clock
# =============================================================================

@pytest.fixture
def system_principal() -> Principal:
    return Principal.system()


@pytest.fixture
def make_principal():
    """Build a user principal, optionally for a known user id"""
    def _make(user_id: str = None) -> Principal:
        return Principal(user_id=user_id or make_user_id())
    return _make


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


# =============================================================================
# Assertion Helpers
# =============================================================================

class AssertionHelpers:
    """Custom assertion helpers for tests"""

    @staticmethod
    def assert_ok(result):
        assert result.success, f"Expected success, got {result.error}: {result.message}"
        return result.value

    @staticmethod
    def assert_fails(result, error):
        assert not result.success, f"Expected {error.value}, got success: {result.value}"
        assert result.error == error, f"Expected {error.value}, got {result.error}: {result.message}"

    @staticmethod
    def assert_has_fields(data: Dict[str, Any], fields: List[str]):
        """Assert dict has required fields"""
        missing = [f for f in fields if f not in data]
        assert not missing, f"Missing fields: {missing}"


@pytest.fixture
def assertions() -> AssertionHelpers:
    """Provide assertion helpers"""
    return AssertionHelpers()


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")
