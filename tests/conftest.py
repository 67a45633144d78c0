"""Test configuration and fixtures.

Every test gets a fresh service container on in-memory repositories, a
deterministic clock and a scripted payment processor, so no database or
network is needed.
"""

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest

from insurance_core.core.config import Settings
from insurance_core.core.logging_utils import reset_logging
from insurance_core.models.payment import PaymentMethod, ProcessorResult
from insurance_core.models.policy import PolicyProduct, UserPolicy
from insurance_core.models.principal import Principal, Role
from insurance_core.models.user import User
from insurance_core.repositories import memory_repositories
from insurance_core.services.container import ServiceContainer, build_services

START = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to.

    ``now()`` advances by ``step`` on every call so records created in one
    test still get distinct, ordered timestamps.
    """

    def __init__(
        self, start: datetime = START, step: timedelta = timedelta(seconds=1)
    ) -> None:
        self._current = start
        self._step = step

    def now(self) -> datetime:
        value = self._current
        self._current += self._step
        return value

    def today(self) -> date:
        return self._current.date()

    def advance(self, delta: timedelta) -> None:
        self._current += delta


class ScriptedProcessor:
    """Payment processor returning a configured outcome."""

    def __init__(self) -> None:
        self.result = ProcessorResult(success=True, transaction_id="TXN_1718452800000_abc123xyz")
        self.error: BaseException | None = None
        self.calls: list[tuple[Decimal, PaymentMethod, str]] = []

    async def process(
        self, amount: Decimal, method: PaymentMethod, reference: str
    ) -> ProcessorResult:
        self.calls.append((amount, method, reference))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def _logging_state() -> Iterator[None]:
    """Keep logging configuration isolated between tests."""
    yield
    reset_logging()


@pytest.fixture
def settings() -> Settings:
    """Settings without artificial payment delay."""
    return Settings(
        payment_processing_delay_seconds=0.0,
        payment_timeout_seconds=0.5,
        default_page_size=10,
        max_page_size=50,
    )


@pytest.fixture
def clock() -> FrozenClock:
    """Deterministic clock starting at 2024-06-15 12:00 UTC."""
    return FrozenClock()


@pytest.fixture
def processor() -> ScriptedProcessor:
    """Processor approving every payment unless reconfigured."""
    return ScriptedProcessor()


@pytest.fixture
def services(
    settings: Settings, clock: FrozenClock, processor: ScriptedProcessor
) -> ServiceContainer:
    """Fresh service graph on in-memory repositories."""
    return build_services(
        settings,
        repositories=memory_repositories(),
        clock=clock,
        processor=processor,
    )


async def _add_user(
    services: ServiceContainer, clock: FrozenClock, name: str, role: Role
) -> Principal:
    user = User(
        id=uuid4(),
        created_at=clock.now(),
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role,
    )
    await services.repositories.users.insert(user)
    return Principal(id=user.id, role=role)


@pytest.fixture
async def admin(services: ServiceContainer, clock: FrozenClock) -> Principal:
    """Stored administrator."""
    return await _add_user(services, clock, "Ada Admin", Role.ADMIN)


@pytest.fixture
async def customer(services: ServiceContainer, clock: FrozenClock) -> Principal:
    """Stored customer A."""
    return await _add_user(services, clock, "Carol Customer", Role.CUSTOMER)


@pytest.fixture
async def other_customer(services: ServiceContainer, clock: FrozenClock) -> Principal:
    """Stored customer B."""
    return await _add_user(services, clock, "Dave Customer", Role.CUSTOMER)


@pytest.fixture
async def agent(services: ServiceContainer, clock: FrozenClock) -> Principal:
    """Stored agent."""
    return await _add_user(services, clock, "Alice Agent", Role.AGENT)


@pytest.fixture
async def other_agent(services: ServiceContainer, clock: FrozenClock) -> Principal:
    """Second stored agent."""
    return await _add_user(services, clock, "Bob Agent", Role.AGENT)


@pytest.fixture
def product_data() -> dict[str, Any]:
    """Catalog input for HEALTH-001."""
    return {
        "code": "HEALTH-001",
        "title": "Health Basic",
        "description": "Basic hospitalisation cover",
        "premium": Decimal("5000.00"),
        "term_months": 12,
        "min_sum_insured": Decimal("100000.00"),
    }


@pytest.fixture
async def product(
    services: ServiceContainer, admin: Principal, product_data: dict[str, Any]
) -> PolicyProduct:
    """HEALTH-001 stored in the catalog."""
    return (await services.catalog.create(admin, product_data)).unwrap()


@pytest.fixture
def purchase_data() -> dict[str, Any]:
    """Purchase input starting 2024-06-01."""
    return {
        "start_date": date(2024, 6, 1),
        "nominee": {"name": "Jane Doe", "relation": "Spouse"},
    }


@pytest.fixture
async def active_policy(
    services: ServiceContainer,
    customer: Principal,
    product: PolicyProduct,
    purchase_data: dict[str, Any],
) -> UserPolicy:
    """Customer A's ACTIVE policy on HEALTH-001 (2024-06-01 to 2025-06-01)."""
    return (await services.policies.purchase(customer, product.id, purchase_data)).unwrap()
