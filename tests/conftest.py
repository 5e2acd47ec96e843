"""
Shared test fixtures and configuration for entire test suite.

Provides: SQLite async databases, tenant/integration seeding, a mocked SGP
upstream and fast settings
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite, httpx
System role: Test infrastructure and fixture management
"""

import json
import uuid
from typing import Any, Callable

import httpx
import pytest


@pytest.fixture
async def test_async_db():
    """
    Create in-memory SQLite async database for testing.

    Single shared connection, so use it only for sequential operations.

    Yields:
        AsyncSession: Test database session with cleanup (lazy imported to avoid settings issues)
    """
    from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
    from sqlalchemy.pool import StaticPool
    from customer_sync.boundary.db.base import Base
    import customer_sync.boundary.db.models  # noqa: F401

    # Use SQLite in-memory database for tests
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session factory
    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Create session for test
    async with async_session() as session:
        yield session
        await session.rollback()

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def session_factory(tmp_path):
    """
    Create a file-backed SQLite database for tests that open several sessions.

    Every session gets its own connection, so concurrent record processing,
    the tracker and the dispatcher behave like they do against PostgreSQL.

    Yields:
        async_sessionmaker: Factory bound to the temporary database
    """
    from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
    from sqlalchemy.pool import NullPool
    from customer_sync.boundary.db.base import Base
    import customer_sync.boundary.db.models  # noqa: F401

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'customer_sync_test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def make_tenant():
    """
    Seed a tenant with an SGP integration.

    Returns:
        Callable: async (db, **options) -> TenantModel
    """
    from customer_sync.boundary.db.models import ActivationMode, IntegrationModel, TenantModel

    async def _make(
        db,
        name: str = "Acme Telecom",
        customer_limit: int | None = None,
        configured: bool = True,
        activation_mode: ActivationMode = ActivationMode.MANUAL,
        with_integration: bool = True,
        active: bool = True,
    ) -> TenantModel:
        tenant = TenantModel(name=name, customer_limit=customer_limit, active=active)
        db.add(tenant)
        await db.flush()
        if with_integration:
            db.add(
                IntegrationModel(
                    tenant_id=tenant.id,
                    subdomain="acme" if configured else None,
                    token="secret-token" if configured else None,
                    app_name="portal" if configured else None,
                    activation_mode=activation_mode,
                )
            )
        await db.commit()
        return tenant

    return _make


@pytest.fixture
def make_customer():
    """
    Seed a customer row.

    Returns:
        Callable: async (db, tenant_id, email, **fields) -> CustomerModel
    """
    from customer_sync.boundary.db.models import CustomerModel, CustomerType

    async def _make(
        db,
        tenant_id: uuid.UUID,
        email: str,
        customer_type: CustomerType = CustomerType.CLIENT,
        **fields: Any,
    ) -> CustomerModel:
        customer = CustomerModel(
            tenant_id=tenant_id,
            email=email,
            first_name=fields.pop("first_name", "Existing"),
            last_name=fields.pop("last_name", "Customer"),
            password_hash=fields.pop("password_hash", "not-a-real-hash"),
            card_id=fields.pop("card_id", "ABC123"),
            customer_type=customer_type,
            **fields,
        )
        db.add(customer)
        await db.commit()
        return customer

    return _make


def sgp_record(index: int, **overrides: Any) -> dict[str, Any]:
    """Build one upstream customer record."""
    record = {
        "id": 1000 + index,
        "nome": f"Cliente Numero {index}",
        "cpfcnpj": f"{index:011d}",
        "email": f"cliente{index}@example.com",
        "dataCadastro": "2024-01-10 08:00:00",
        "contratos": [
            {"contrato": 5000 + index, "status": "ATIVO", "dataCadastro": "2024-01-10 08:00:00"},
        ],
    }
    record.update(overrides)
    return record


@pytest.fixture
def records_factory() -> Callable[..., list[dict[str, Any]]]:
    """Build n upstream records numbered from start."""

    def _records(count: int, start: int = 1) -> list[dict[str, Any]]:
        return [sgp_record(i) for i in range(start, start + count)]

    return _records


class FakeSgpApi:
    """
    In-memory stand-in for the SGP customer endpoint.

    Serves ``records`` by the limit/offset found in each request body and
    remembers every body it received.
    """

    def __init__(self, records: list[dict[str, Any]] | None = None) -> None:
        self.records = records or []
        self.bodies: list[dict[str, Any]] = []
        self.failures: list[Exception] = []
        self.response_override: httpx.Response | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.bodies.append(body)
        if self.failures:
            raise self.failures.pop(0)
        if self.response_override is not None:
            return self.response_override
        offset = body.get("offset", 0)
        limit = body.get("limit", 50)
        return httpx.Response(200, json={"clientes": self.records[offset:offset + limit]})

    @property
    def offsets(self) -> list[int]:
        return [body["offset"] for body in self.bodies]


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_sgp() -> FakeSgpApi:
    return FakeSgpApi()


@pytest.fixture
async def sgp_client(fake_sgp, recording_sleep):
    """
    SgpClient wired to the fake upstream through httpx.MockTransport.

    Yields:
        SgpClient: Client with no page delay and instant retries
    """
    from customer_sync.boundary.upstream.sgp_client import SgpClient
    from customer_sync.configs.upstream import UpstreamSettings

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_sgp))
    client = SgpClient(
        UpstreamSettings(page_delay_seconds=0, page_size=50, max_attempts=3),
        http_client=http_client,
        sleep=recording_sleep,
    )
    yield client
    await http_client.aclose()


@pytest.fixture
def import_settings():
    """Import settings with the cheapest bcrypt cost and no chunk pause."""
    from customer_sync.configs.queue import ImportSettings

    return ImportSettings(bcrypt_rounds=4, chunk_pause_seconds=0, chunk_size=10)
