"""Unit tests for the payment ledger and the simulated processor."""

import asyncio
import random
import re
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest

from insurance_core.core.config import Settings
from insurance_core.core.errors import ErrorCode, ErrorKind
from insurance_core.models.audit import AuditAction
from insurance_core.models.payment import PaymentMethod, ProcessorResult
from insurance_core.models.policy import PolicyProduct, UserPolicy
from insurance_core.models.principal import Principal
from insurance_core.repositories import eq
from insurance_core.services.container import ServiceContainer
from insurance_core.services.payment_ledger import (
    PaymentProcessor,
    SimulatedPaymentProcessor,
)

from conftest import FrozenClock, ScriptedProcessor


class FixedRandom(random.Random):
    """``random()`` always returns the same draw."""

    def __init__(self, draw: float) -> None:
        super().__init__(42)
        self._draw = draw

    def random(self) -> float:
        return self._draw


@pytest.fixture
def payment_data(active_policy: UserPolicy) -> dict[str, Any]:
    """Card payment against the active policy."""
    return {
        "user_policy_id": str(active_policy.id),
        "amount": "5000.00",
        "method": "CARD",
        "reference": "INV-2024-001",
    }


class TestSimulatedProcessor:
    """Per-method success rates and transaction ids."""

    async def test_success_below_rate(
        self, settings: Settings, clock: FrozenClock
    ) -> None:
        """A draw under the method's rate succeeds with a transaction id."""
        processor = SimulatedPaymentProcessor(settings, clock, rng=FixedRandom(0.5))

        result = await processor.process(Decimal("10.00"), PaymentMethod.CARD, "ref")

        assert result.success
        assert result.reason is None
        assert re.fullmatch(r"TXN_\d+_[a-z0-9]{9}", result.transaction_id or "")

    async def test_failure_above_rate(
        self, settings: Settings, clock: FrozenClock
    ) -> None:
        """A draw at or over the rate fails with the gateway reason."""
        processor = SimulatedPaymentProcessor(settings, clock, rng=FixedRandom(0.95))

        result = await processor.process(Decimal("10.00"), PaymentMethod.CARD, "ref")

        assert not result.success
        assert result.transaction_id is None
        assert result.reason == "Payment gateway timeout or insufficient funds"

    async def test_simulated_method_always_succeeds(
        self, settings: Settings, clock: FrozenClock
    ) -> None:
        """SIMULATED has a rate of one."""
        processor = SimulatedPaymentProcessor(settings, clock, rng=FixedRandom(0.999))

        result = await processor.process(Decimal("1.00"), PaymentMethod.SIMULATED, "ref")

        assert result.success

    async def test_configured_delay_is_awaited(self, clock: FrozenClock) -> None:
        """The artificial delay goes through the injected sleep."""
        slept: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        processor = SimulatedPaymentProcessor(
            Settings(payment_processing_delay_seconds=1.5),
            clock,
            rng=FixedRandom(0.0),
            sleep=fake_sleep,
        )

        await processor.process(Decimal("1.00"), PaymentMethod.OFFLINE, "ref")

        assert slept == [1.5]

    def test_satisfies_processor_protocol(
        self, settings: Settings, clock: FrozenClock, processor: ScriptedProcessor
    ) -> None:
        """Both processors plug into the ledger."""
        assert isinstance(SimulatedPaymentProcessor(settings, clock), PaymentProcessor)
        assert isinstance(processor, PaymentProcessor)


class TestRecord:
    """Recording payments."""

    async def test_successful_payment_is_recorded(
        self,
        services: ServiceContainer,
        customer: Principal,
        processor: ScriptedProcessor,
        payment_data: dict[str, Any],
    ) -> None:
        """The processor's transaction id lands on the ledger entry."""
        payment = (await services.payments.record(customer, payment_data)).unwrap()

        assert payment.user_id == customer.id
        assert payment.amount == Decimal("5000.00")
        assert payment.method == PaymentMethod.CARD
        assert payment.transaction_id == "TXN_1718452800000_abc123xyz"
        assert processor.calls == [
            (Decimal("5000.00"), PaymentMethod.CARD, "INV-2024-001")
        ]
        entries = await services.repositories.audit_logs.find(
            [eq("action", AuditAction.PAYMENT_RECORDED)]
        )
        assert entries[0].details.payment_id == payment.id

    async def test_declined_payment_persists_nothing(
        self,
        services: ServiceContainer,
        customer: Principal,
        processor: ScriptedProcessor,
        payment_data: dict[str, Any],
    ) -> None:
        """A decline is PAYMENT_FAILED with no ledger entry and no audit."""
        processor.result = ProcessorResult(success=False, reason="Card declined")

        result = await services.payments.record(customer, payment_data)

        error = result.unwrap_err()
        assert error.code == ErrorCode.PAYMENT_FAILED
        assert error.kind == ErrorKind.UPSTREAM_FAILURE
        assert error.message == "Card declined"
        assert await services.repositories.payments.count() == 0
        assert (
            await services.repositories.audit_logs.count(
                [eq("action", AuditAction.PAYMENT_RECORDED)]
            )
            == 0
        )

    async def test_processor_exception_is_payment_failed(
        self,
        services: ServiceContainer,
        customer: Principal,
        processor: ScriptedProcessor,
        payment_data: dict[str, Any],
    ) -> None:
        """Gateway errors do not escape the ledger."""
        processor.error = ConnectionError("gateway down")

        result = await services.payments.record(customer, payment_data)

        assert result.unwrap_err().message == "Payment processor unavailable"
        assert await services.repositories.payments.count() == 0

    async def test_processor_timeout_is_payment_failed(
        self,
        services: ServiceContainer,
        customer: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """A hung gateway is cut off by the configured timeout."""

        class HangingProcessor:
            async def process(
                self, amount: Decimal, method: PaymentMethod, reference: str
            ) -> ProcessorResult:
                await asyncio.sleep(10)
                return ProcessorResult(success=True, transaction_id="late")

        services.payments._processor = HangingProcessor()

        result = await services.payments.record(customer, payment_data)

        assert result.unwrap_err().message == "Payment processor timed out"
        assert await services.repositories.payments.count() == 0

    async def test_foreign_policy_is_forbidden(
        self,
        services: ServiceContainer,
        other_customer: Principal,
        processor: ScriptedProcessor,
        payment_data: dict[str, Any],
    ) -> None:
        """Customers pay only for their own policies; the gateway is not called."""
        result = await services.payments.record(other_customer, payment_data)

        assert result.unwrap_err().code == ErrorCode.FORBIDDEN
        assert processor.calls == []

    async def test_missing_policy(
        self,
        services: ServiceContainer,
        customer: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """Unknown policies are NOT_FOUND, even with other invalid fields."""
        result = await services.payments.record(
            customer, {**payment_data, "user_policy_id": str(uuid4()), "amount": "-1"}
        )

        assert result.unwrap_err().message == "Policy not found"

    async def test_invalid_amount(
        self,
        services: ServiceContainer,
        customer: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """Non-positive amounts are INVALID_INPUT."""
        result = await services.payments.record(customer, {**payment_data, "amount": "0"})
        assert result.unwrap_err().code == ErrorCode.INVALID_INPUT

    async def test_unknown_method(
        self,
        services: ServiceContainer,
        customer: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """Methods come from a closed set."""
        result = await services.payments.record(
            customer, {**payment_data, "method": "BITCOIN"}
        )
        assert result.unwrap_err().code == ErrorCode.INVALID_INPUT

    async def test_admin_cannot_record(
        self,
        services: ServiceContainer,
        admin: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """Recording is a customer capability."""
        result = await services.payments.record(admin, payment_data)
        assert result.unwrap_err().code == ErrorCode.UNAUTHORIZED


class TestReads:
    """Listing, single reads and stats."""

    async def test_list_and_stats(
        self,
        services: ServiceContainer,
        customer: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """Average is rounded half-up to cents."""
        for amount in ("10.00", "10.00", "10.01"):
            (
                await services.payments.record(customer, {**payment_data, "amount": amount})
            ).unwrap()

        payments = (await services.payments.list_for_user(customer)).unwrap()
        stats = (await services.payments.stats_for_user(customer)).unwrap()

        assert [p.amount for p in payments] == [
            Decimal("10.01"),
            Decimal("10.00"),
            Decimal("10.00"),
        ]
        assert stats.total_payments == 3
        assert stats.total_amount == Decimal("30.01")
        assert stats.average_amount == Decimal("10.00")

    async def test_stats_without_payments(
        self, services: ServiceContainer, customer: Principal
    ) -> None:
        """No payments means zero totals."""
        stats = (await services.payments.stats_for_user(customer)).unwrap()

        assert stats.total_payments == 0
        assert stats.total_amount == Decimal("0")
        assert stats.average_amount == Decimal("0")

    async def test_get_by_id_scoping(
        self,
        services: ServiceContainer,
        admin: Principal,
        customer: Principal,
        other_customer: Principal,
        payment_data: dict[str, Any],
    ) -> None:
        """Owners and admins read a payment; other customers do not."""
        payment = (await services.payments.record(customer, payment_data)).unwrap()

        assert (await services.payments.get_by_id(customer, payment.id)).is_ok()
        assert (await services.payments.get_by_id(admin, payment.id)).is_ok()
        assert (
            await services.payments.get_by_id(other_customer, payment.id)
        ).unwrap_err().code == ErrorCode.FORBIDDEN
        assert (
            await services.payments.get_by_id(customer, uuid4())
        ).unwrap_err().code == ErrorCode.NOT_FOUND

    async def test_customer_cannot_read_other_users_stats(
        self,
        services: ServiceContainer,
        customer: Principal,
        other_customer: Principal,
    ) -> None:
        """Stats follow the same ownership rule as listings."""
        result = await services.payments.stats_for_user(customer, other_customer.id)
        assert result.unwrap_err().code == ErrorCode.FORBIDDEN

    async def test_admin_without_user_reads_everyone(
        self,
        services: ServiceContainer,
        admin: Principal,
        customer: Principal,
        other_customer: Principal,
        product: PolicyProduct,
        purchase_data: dict[str, Any],
        payment_data: dict[str, Any],
    ) -> None:
        """Admins omitting the user see every payment; customers stay scoped."""
        other_policy = (
            await services.policies.purchase(other_customer, product.id, purchase_data)
        ).unwrap()
        own = (await services.payments.record(customer, payment_data)).unwrap()
        foreign = (
            await services.payments.record(
                other_customer,
                {
                    **payment_data,
                    "user_policy_id": str(other_policy.id),
                    "amount": "100.00",
                },
            )
        ).unwrap()

        everyone = (await services.payments.list_for_user(admin)).unwrap()
        stats = (await services.payments.stats_for_user(admin)).unwrap()
        scoped = (await services.payments.list_for_user(customer)).unwrap()

        assert {p.id for p in everyone} == {own.id, foreign.id}
        assert stats.total_payments == 2
        assert stats.total_amount == Decimal("5100.00")
        assert [p.id for p in scoped] == [own.id]
