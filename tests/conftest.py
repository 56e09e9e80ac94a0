"""Shared test fixtures for the attribute catalog test suite."""

import pytest
from uuid import UUID
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.event_bus import EventBus
from core.models import AttributeDefinitionCreate, AttributeKind, AttributeValueCreate, InputKind
from core.services.binding_service import BindingReconciler
from core.services.catalog_service import AttributeCatalog
from tests.helpers.fake_uow import FakeCatalogState, FakeUnitOfWork
from utils.request_context import RequestContext

SCHEMA_PATH = Path(__file__).parent.parent / "schema" / "catalog.sql"


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for attribution tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")


# =============================================================================
# REQUEST CONTEXT FIXTURES
# =============================================================================


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def ctx() -> RequestContext:
    """Request context for the primary test user."""
    return RequestContext(user_id=TEST_USER_ID)


@pytest.fixture
def ctx_b() -> RequestContext:
    """Request context for the secondary test user."""
    return RequestContext(user_id=TEST_USER_B_ID)


# =============================================================================
# IN-MEMORY SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def state() -> FakeCatalogState:
    """Empty in-memory catalog database."""
    return FakeCatalogState()


@pytest.fixture
def uow_factory(state):
    """Unit of work factory over the in-memory state."""
    return lambda ctx: FakeUnitOfWork(state, ctx)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(event_bus) -> list:
    """Every event published on event_bus, in order."""
    events = []
    for name in ("AttributeDefined", "AttributeUpdated", "AttributeDeleted", "BindingsReconciled"):
        event_bus.subscribe(name, events.append)
    return events


@pytest.fixture
def catalog(uow_factory, event_bus) -> AttributeCatalog:
    return AttributeCatalog(uow_factory, event_bus)


@pytest.fixture
def reconciler(uow_factory, event_bus) -> BindingReconciler:
    return BindingReconciler(uow_factory, event_bus)


@pytest.fixture
def color(catalog, ctx):
    """MULTI_SELECT SKU attribute with values red, green, blue."""
    return catalog.define_attribute(ctx, AttributeDefinitionCreate(
        name="Color",
        attribute_kind=AttributeKind.SKU,
        input_kind=InputKind.MULTI_SELECT,
        values=[
            AttributeValueCreate(value="red", sort_score=30),
            AttributeValueCreate(value="green", sort_score=20),
            AttributeValueCreate(value="blue", sort_score=10),
        ],
    ))


@pytest.fixture
def size(catalog, ctx):
    """Required SINGLE_SELECT SKU attribute with values S, M, L."""
    return catalog.define_attribute(ctx, AttributeDefinitionCreate(
        name="Size",
        attribute_kind=AttributeKind.SKU,
        input_kind=InputKind.SINGLE_SELECT,
        required=True,
        values=[
            AttributeValueCreate(value="S"),
            AttributeValueCreate(value="M"),
            AttributeValueCreate(value="L"),
        ],
    ))


@pytest.fixture
def material(catalog, ctx):
    """Optional FREE_TEXT OTHER attribute."""
    return catalog.define_attribute(ctx, AttributeDefinitionCreate(
        name="Material",
        attribute_kind=AttributeKind.OTHER,
        input_kind=InputKind.FREE_TEXT,
    ))


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db_admin():
    """Session-scoped owner PostgresClient; applies the schema once."""
    if not vault_module.is_configured():
        pytest.skip("Vault is not configured; PostgreSQL tests need VAULT_* variables")

    from clients.postgres_client import PostgresClient

    client = PostgresClient(vault_module.get_admin_database_url())
    client.execute(SCHEMA_PATH.read_text())
    yield client
    client.close()


@pytest.fixture(scope="session")
def db(db_admin):
    """Session-scoped application PostgresClient."""
    from clients.postgres_client import PostgresClient

    client = PostgresClient(vault_module.get_database_url())
    yield client
    client.close()


@pytest.fixture
def clean_db(db_admin, db):
    """Empty catalog tables before the test."""
    db_admin.execute(
        "TRUNCATE attribute_bindings, attribute_values, attribute_definitions, audit_log "
        "RESTART IDENTITY CASCADE"
    )
    yield db
