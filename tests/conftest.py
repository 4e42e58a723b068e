"""
Pytest configuration and fixtures.
"""

from datetime import date
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.auth.jwt import create_access_token
from src.models import (
    Agent,
    Base,
    Customer,
    Staff,
    Trip,
    TripStatus,
    User,
    UserRole,
)
from src.services import consistency, ledger


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


class LedgerFactory:
    """
    Builds reference entities and drives ledger writes through the same
    service calls and hooks the API uses.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._staff = None

    async def agent(self, name: str = "Agent", commission_rate="40") -> Agent:
        agent = Agent(name=name, commission_rate=Decimal(str(commission_rate)))
        self.db.add(agent)
        await self.db.flush()
        return agent

    async def customer(self, name: str = "Customer", agent: Agent = None) -> Customer:
        customer = Customer(name=name, agent_id=agent.id if agent else None)
        self.db.add(customer)
        await self.db.flush()
        return customer

    async def staff(self) -> Staff:
        if self._staff is None:
            self._staff = Staff(name="Floor Staff", position="host")
            self.db.add(self._staff)
            await self.db.flush()
        return self._staff

    async def trip(self, name: str = "Macau Spring") -> Trip:
        trip = Trip(
            trip_name=name,
            destination="Macau",
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 5),
            status=TripStatus.ACTIVE,
        )
        self.db.add(trip)
        await self.db.flush()
        return trip

    async def join(self, trip: Trip, customer: Customer):
        await ledger.add_customer_to_trip(self.db, trip.id, customer.id)
        return await consistency.on_customer_joins_trip(self.db, trip.id, customer.id)

    async def buy_in(self, trip: Trip, customer: Customer, amount):
        await ledger.record_transaction(self.db, trip.id, customer.id, Decimal(str(amount)), "buy-in")
        return await consistency.on_transaction_changed(self.db, trip.id, customer.id)

    async def cash_out(self, trip: Trip, customer: Customer, amount):
        await ledger.record_transaction(self.db, trip.id, customer.id, Decimal(str(amount)), "cash-out")
        return await consistency.on_transaction_changed(self.db, trip.id, customer.id)

    async def rolling(self, trip: Trip, customer: Customer, amount, commission_rate=None):
        staff = await self.staff()
        entry = await ledger.record_rolling_entry(
            self.db,
            trip.id,
            customer.id,
            staff.id,
            "baccarat",
            Decimal(str(amount)),
            commission_rate=commission_rate,
        )
        result = await consistency.on_rolling_changed(self.db, trip.id, customer.id)
        return entry, result

    async def expense(self, trip: Trip, amount, expense_type: str = "hotel"):
        await ledger.add_expense(self.db, trip.id, expense_type, Decimal(str(amount)), date(2026, 3, 2))
        return await consistency.on_expense_changed(self.db, trip.id)


@pytest_asyncio.fixture
async def factory(db_session):
    """Ledger factory bound to the test session."""
    return LedgerFactory(db_session)


@pytest_asyncio.fixture
async def client(db_session):
    """HTTP client for the app, bound to the test session."""
    from src.db import get_db
    from src.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def login_as(client, db_session):
    """Create a user with the given role and put its token cookie on the client."""

    async def _login(role: UserRole) -> User:
        user = User(
            username=f"{role.value}-user",
            password_hash="not-used",
            role=role,
            display_name=role.value.title(),
            is_active=True,
        )
        db_session.add(user)
        await db_session.flush()
        client.cookies.set("access_token", create_access_token(user.id, role.value))
        return user

    return _login
