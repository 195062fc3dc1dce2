"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── access/        Access evaluator
    ├── invitation/    Invitation state machine and tracking links
    ├── deliverable/   Submission and review workflow
    ├── realtime/      Change feed router and projections
    └── mocks/         In-memory store and event bus

Services are wired against one MockStore and one MockEventBus, so events
published by the invitation and deliverable services reach the change feed
router the same way they would through NATS.

Usage:
    pytest tests/component -v
    pytest tests/component/invitation -v
"""
import pytest
import pytest_asyncio

from microservices.access_service.access_repository import AccessRepository
from microservices.access_service.factory import AccessServiceFactory
from microservices.deliverable_service.deliverable_repository import DeliverableRepository
from microservices.deliverable_service.factory import DeliverableServiceFactory
from microservices.invitation_service.factory import InvitationServiceFactory
from microservices.invitation_service.invitation_repository import InvitationRepository
from microservices.invitation_service.tracking_links import TrackingLinkGenerator
from microservices.realtime_service.router import ChangeFeedRouter
from tests.component.mocks import MockEventBus, MockStore
from tests.fixtures import CollabWorld

TRACKING_BASE_URL = "https://go.example/t"


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "component: marks tests as component tests"
    )


# =============================================================================
# Infrastructure Mocks
# =============================================================================

@pytest.fixture
def store() -> MockStore:
    """In-memory store shared by every repository in a test"""
    return MockStore()


@pytest.fixture
def event_bus() -> MockEventBus:
    return MockEventBus()


@pytest.fixture
def world(store) -> CollabWorld:
    return CollabWorld(store)


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def access_service(store, event_bus):
    return AccessServiceFactory.create_for_testing(AccessRepository(db=store), event_bus)


@pytest.fixture
def link_generator() -> TrackingLinkGenerator:
    return TrackingLinkGenerator(base_url=TRACKING_BASE_URL, code_length=8, max_attempts=5)


@pytest.fixture
def invitation_repository(store, link_generator) -> InvitationRepository:
    return InvitationRepository(db=store, link_generator=link_generator)


@pytest.fixture
def invitation_service(invitation_repository, access_service, event_bus, clock):
    return InvitationServiceFactory.create_for_testing(
        invitation_repository, access_service, event_bus, expiry_days=7, clock=clock
    )


@pytest.fixture
def deliverable_service(store, access_service, event_bus, clock):
    return DeliverableServiceFactory.create_for_testing(
        DeliverableRepository(db=store), access_service, event_bus, clock=clock
    )


@pytest_asyncio.fixture
async def router(event_bus):
    """Change feed router listening on the shared mock bus"""
    feed = ChangeFeedRouter(event_bus)
    await feed.start()
    yield feed
    await feed.stop()
