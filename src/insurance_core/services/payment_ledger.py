# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Payment ledger and payment processors.

A payment is only written to the ledger after the processor confirms it.
A failed or timed-out processor call leaves no trace besides a log line.
"""

import asyncio
import random
import string
from collections.abc import Awaitable, Callable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol, runtime_checkable
from uuid import UUID, uuid4

from beartype import beartype

from ..core.clock import Clock
from ..core.config import Settings
from ..core.errors import DomainError, ErrorCode, fail, not_found
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.audit import PaymentRecordedDetails
from ..models.payment import (
    Payment,
    PaymentCreate,
    PaymentMethod,
    PaymentStats,
    ProcessorResult,
)
from ..models.policy import UserPolicy
from ..models.principal import Principal
from ..repositories import Filter, Repository, eq
from .audit_recorder import AuditRecorder
from .authorization import Action, AuthorizationGuard
from .common import coerce

logger = get_logger(__name__)

_TXN_ALPHABET = string.ascii_lowercase + string.digits
_CENT = Decimal("0.01")


@runtime_checkable
class PaymentProcessor(Protocol):
    """Gateway that decides whether a payment went through."""

    async def process(
        self, amount: Decimal, method: PaymentMethod, reference: str
    ) -> ProcessorResult:
        """Attempt the payment."""
        ...


class SimulatedPaymentProcessor:
    """Processor with per-method success rates and an artificial delay."""

    FAILURE_REASON = "Payment gateway timeout or insufficient funds"

    def __init__(
        self,
        settings: Settings,
        clock: Clock,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize simulator; ``rng`` and ``sleep`` are injectable for tests."""
        self._delay = settings.payment_processing_delay_seconds
        self._success_rates = dict(settings.payment_success_rates)
        self._clock = clock
        self._rng = rng or random.Random()  # nosec B311 - simulation only
        self._sleep = sleep

    def _transaction_id(self) -> str:
        millis = int(self._clock.now().timestamp() * 1000)
        suffix = "".join(self._rng.choice(_TXN_ALPHABET) for _ in range(9))
        return f"TXN_{millis}_{suffix}"

    @beartype
    async def process(
        self, amount: Decimal, method: PaymentMethod, reference: str
    ) -> ProcessorResult:
        """Simulate the gateway round trip."""
        if self._delay:
            await self._sleep(self._delay)

        rate = self._success_rates.get(method.value, Decimal("0"))
        if Decimal(str(self._rng.random())) < rate:
            return ProcessorResult(success=True, transaction_id=self._transaction_id())
        return ProcessorResult(success=False, reason=self.FAILURE_REASON)


class PaymentLedger:
    """Records confirmed payments against user policies."""

    def __init__(
        self,
        payments: Repository[Payment],
        user_policies: Repository[UserPolicy],
        processor: PaymentProcessor,
        audit: AuditRecorder,
        guard: AuthorizationGuard,
        clock: Clock,
        settings: Settings,
    ) -> None:
        """Initialize ledger with dependency validation."""
        if payments is None or user_policies is None:
            raise ValueError("Payment and user policy repositories required")
        if processor is None or not hasattr(processor, "process"):
            raise ValueError("Payment processor required")

        self._payments = payments
        self._user_policies = user_policies
        self._processor = processor
        self._audit = audit
        self._guard = guard
        self._clock = clock
        self._timeout = settings.payment_timeout_seconds

    async def _owned_policy(
        self, principal: Principal, user_policy_id: UUID
    ) -> Result[UserPolicy, DomainError]:
        policy = await self._user_policies.find_by_id(user_policy_id)
        if policy is None:
            return not_found("Policy")
        owned = self._guard.require(
            principal, Action.PAYMENT_CREATE, owner_id=policy.user_id
        )
        if isinstance(owned, Err):
            return owned
        return Ok(policy)

    async def _charge(self, data: PaymentCreate) -> Result[ProcessorResult, DomainError]:
        try:
            outcome = await asyncio.wait_for(
                self._processor.process(data.amount, data.method, data.reference),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Payment processor timed out for %s", data.reference)
            return fail(ErrorCode.PAYMENT_FAILED, "Payment processor timed out")
        except Exception:
            logger.exception("Payment processor error for %s", data.reference)
            return fail(ErrorCode.PAYMENT_FAILED, "Payment processor unavailable")

        if not outcome.success:
            logger.info("Payment declined for %s: %s", data.reference, outcome.reason)
            return fail(ErrorCode.PAYMENT_FAILED, outcome.reason or "Payment failed")
        return Ok(outcome)

    @beartype
    async def record(
        self,
        principal: Principal,
        data: PaymentCreate | Mapping[str, Any],
        ip: str | None = None,
    ) -> Result[Payment, DomainError]:
        """Charge through the processor and, on success, write the ledger entry.

        Args:
            principal: Paying customer
            data: Payment input (validated model or raw mapping)
            ip: Client address for the audit trail

        Returns:
            Result containing the stored payment or a domain error
        """
        allowed = self._guard.require_role(principal, Action.PAYMENT_CREATE)
        if isinstance(allowed, Err):
            return allowed

        parsed = coerce(PaymentCreate, data)
        if isinstance(parsed, Err):
            # Missing or foreign policies are reported before field errors
            raw_policy_id = data.get("user_policy_id") if isinstance(data, Mapping) else None
            try:
                policy_id = UUID(str(raw_policy_id))
            except ValueError:
                return parsed
            policy_check = await self._owned_policy(principal, policy_id)
            if isinstance(policy_check, Err):
                return policy_check
            return parsed
        payment_data = parsed.value

        policy_check = await self._owned_policy(principal, payment_data.user_policy_id)
        if isinstance(policy_check, Err):
            return policy_check

        charged = await self._charge(payment_data)
        if isinstance(charged, Err):
            return charged

        payment = Payment(
            id=uuid4(),
            created_at=self._clock.now(),
            user_id=principal.id,
            user_policy_id=payment_data.user_policy_id,
            amount=payment_data.amount,
            method=payment_data.method,
            reference=payment_data.reference,
            transaction_id=charged.value.transaction_id,
        )
        payment = await self._payments.insert(payment)

        logger.info(
            "Payment %s recorded for policy %s (%s)",
            payment.id,
            payment.user_policy_id,
            payment.transaction_id,
        )
        await self._audit.record(
            PaymentRecordedDetails(
                payment_id=payment.id,
                user_policy_id=payment.user_policy_id,
                amount=payment.amount,
                method=payment.method,
                transaction_id=payment.transaction_id,
            ),
            principal.id,
            ip,
        )
        return Ok(payment)

    def _owner_conditions(
        self, principal: Principal, user_id: UUID | None
    ) -> Result[list[Filter], DomainError]:
        scope = self._guard.owner_scope(principal, Action.PAYMENT_READ, user_id)
        if isinstance(scope, Err):
            return scope
        owner = scope.value
        return Ok([] if owner is None else [eq("user_id", owner)])

    @beartype
    async def list_for_user(
        self, principal: Principal, user_id: UUID | None = None
    ) -> Result[list[Payment], DomainError]:
        """A user's payments, newest first; admins omitting ``user_id`` get all."""
        conditions = self._owner_conditions(principal, user_id)
        if isinstance(conditions, Err):
            return conditions

        return Ok(await self._payments.find(conditions.value))

    @beartype
    async def get_by_id(
        self, principal: Principal, payment_id: UUID
    ) -> Result[Payment, DomainError]:
        """One payment; existence is checked before ownership."""
        allowed = self._guard.require_role(principal, Action.PAYMENT_READ)
        if isinstance(allowed, Err):
            return allowed

        payment = await self._payments.find_by_id(payment_id)
        if payment is None:
            return not_found("Payment")

        owned = self._guard.require(
            principal, Action.PAYMENT_READ, owner_id=payment.user_id
        )
        if isinstance(owned, Err):
            return owned
        return Ok(payment)

    @beartype
    async def stats_for_user(
        self, principal: Principal, user_id: UUID | None = None
    ) -> Result[PaymentStats, DomainError]:
        """Count, total and average of a user's (or, for admins, all) payments."""
        scoped = self._owner_conditions(principal, user_id)
        if isinstance(scoped, Err):
            return scoped

        conditions = scoped.value
        count = await self._payments.count(conditions)
        total = await self._payments.sum("amount", conditions)
        average = (
            (total / count).quantize(_CENT, rounding=ROUND_HALF_UP)
            if count
            else Decimal("0")
        )
        return Ok(
            PaymentStats(total_payments=count, total_amount=total, average_amount=average)
        )
