"""Unit tests for user policy purchase, cancellation and expiry."""

import asyncio
from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import uuid4

from insurance_core.core.errors import ErrorCode, ErrorKind
from insurance_core.models.audit import AuditAction
from insurance_core.models.policy import PolicyProduct, UserPolicy, UserPolicyStatus
from insurance_core.models.principal import Principal
from insurance_core.repositories import eq
from insurance_core.services.container import ServiceContainer

from conftest import FrozenClock


class TestPurchase:
    """Binding a catalog product to a customer."""

    async def test_end_date_is_start_plus_term(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
    ) -> None:
        """HEALTH-001 (12 months) bought from 2024-01-01 ends 2025-01-01."""
        policy = (
            await services.policies.purchase(
                customer,
                product.id,
                {
                    "start_date": "2024-01-01",
                    "nominee": {"name": "Jane Doe", "relation": "Spouse"},
                },
            )
        ).unwrap()

        assert policy.end_date == date(2025, 1, 1)
        assert policy.status == UserPolicyStatus.ACTIVE
        assert policy.user_id == customer.id
        assert policy.premium_paid == Decimal("5000.00")

    async def test_term_override_and_month_end_clamping(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
    ) -> None:
        """Calendar months clamp to the last valid day."""
        policy = (
            await services.policies.purchase(
                customer,
                product.id,
                {
                    "start_date": date(2024, 1, 31),
                    "term_months": 1,
                    "nominee": {"name": "Jane Doe", "relation": "Spouse"},
                },
            )
        ).unwrap()

        assert policy.end_date == date(2024, 2, 29)

    async def test_premium_is_copied_at_purchase(
        self,
        services: ServiceContainer,
        admin: Principal,
        customer: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
    ) -> None:
        """Later catalog price changes do not touch bound policies."""
        await services.catalog.update(admin, product.id, {"premium": "9999.00"})

        stored = (await services.policies.get(customer, active_policy.id)).unwrap()

        assert stored.premium_paid == Decimal("5000.00")

    async def test_duplicate_active_purchase_is_conflict(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
        purchase_data: dict[str, Any],
    ) -> None:
        """One ACTIVE policy per (user, product)."""
        result = await services.policies.purchase(customer, product.id, purchase_data)

        assert result.unwrap_err().code == ErrorCode.DUPLICATE_ACTIVE_POLICY
        assert await services.repositories.user_policies.count() == 1

    async def test_concurrent_purchases_yield_one_policy(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
        purchase_data: dict[str, Any],
    ) -> None:
        """Racing purchases cannot both succeed."""
        results = await asyncio.gather(
            *(
                services.policies.purchase(customer, product.id, purchase_data)
                for _ in range(5)
            )
        )

        assert sum(r.is_ok() for r in results) == 1
        assert {r.unwrap_err().code for r in results if r.is_err()} == {
            ErrorCode.DUPLICATE_ACTIVE_POLICY
        }

    async def test_repurchase_after_cancellation(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
        purchase_data: dict[str, Any],
    ) -> None:
        """Cancelled policies do not block a new purchase."""
        await services.policies.cancel(customer, active_policy.id)

        again = await services.policies.purchase(customer, product.id, purchase_data)

        assert again.is_ok()
        assert again.unwrap().id != active_policy.id

    async def test_repurchase_after_lapse_expires_old_policy(
        self,
        services: ServiceContainer,
        clock: FrozenClock,
        customer: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
    ) -> None:
        """A lapsed policy still stored as ACTIVE is expired, then replaced."""
        clock.advance(timedelta(days=400))

        renewed = await services.policies.purchase(
            customer,
            product.id,
            {
                "start_date": clock.today(),
                "nominee": {"name": "Jane Doe", "relation": "Spouse"},
            },
        )

        assert renewed.is_ok()
        old = await services.repositories.user_policies.find_by_id(active_policy.id)
        assert old is not None
        assert old.status == UserPolicyStatus.EXPIRED

    async def test_missing_product(
        self,
        services: ServiceContainer,
        customer: Principal,
        purchase_data: dict[str, Any],
    ) -> None:
        """Unknown product ids are NOT_FOUND."""
        result = await services.policies.purchase(customer, uuid4(), purchase_data)
        assert result.unwrap_err().kind == ErrorKind.NOT_FOUND

    async def test_term_past_calendar_limit_is_invalid(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
        purchase_data: dict[str, Any],
    ) -> None:
        """A term that would end after 9999-12-31 is rejected, not raised."""
        result = await services.policies.purchase(
            customer, product.id, {**purchase_data, "start_date": "9999-06-01"}
        )

        assert result.unwrap_err().kind == ErrorKind.INVALID_INPUT
        assert await services.repositories.user_policies.count() == 0

    async def test_empty_nominee_is_rejected(
        self,
        services: ServiceContainer,
        customer: Principal,
        product: PolicyProduct,
        purchase_data: dict[str, Any],
    ) -> None:
        """Nominee name and relation are required."""
        result = await services.policies.purchase(
            customer,
            product.id,
            {**purchase_data, "nominee": {"name": "Jane Doe", "relation": "  "}},
        )

        error = result.unwrap_err()
        assert error.code == ErrorCode.INVALID_NOMINEE
        assert error.kind == ErrorKind.INVALID_INPUT

    async def test_agent_cannot_purchase(
        self,
        services: ServiceContainer,
        agent: Principal,
        product: PolicyProduct,
        purchase_data: dict[str, Any],
    ) -> None:
        """Purchasing is a customer capability."""
        result = await services.policies.purchase(agent, product.id, purchase_data)
        assert result.unwrap_err().code == ErrorCode.UNAUTHORIZED

    async def test_purchase_is_audited(
        self,
        services: ServiceContainer,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """The audit payload carries the purchase terms."""
        entries = await services.repositories.audit_logs.find(
            [eq("action", AuditAction.POLICY_PURCHASE)]
        )

        assert len(entries) == 1
        details = entries[0].details
        assert entries[0].actor_id == customer.id
        assert details.user_policy_id == active_policy.id
        assert details.term_months == 12
        assert details.nominee.name == "Jane Doe"


class TestCancel:
    """Customer-initiated cancellation."""

    async def test_owner_cancels_active_policy(
        self,
        services: ServiceContainer,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """ACTIVE -> CANCELLED with an audit entry."""
        cancelled = (await services.policies.cancel(customer, active_policy.id)).unwrap()

        assert cancelled.status == UserPolicyStatus.CANCELLED
        entries = await services.repositories.audit_logs.find(
            [eq("action", AuditAction.POLICY_CANCELLATION)]
        )
        assert entries[0].details.cancellation_reason == "User requested cancellation"

    async def test_second_cancel_is_already_cancelled(
        self,
        services: ServiceContainer,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Cancelling twice fails without a second audit entry."""
        await services.policies.cancel(customer, active_policy.id)

        result = await services.policies.cancel(customer, active_policy.id)

        assert result.unwrap_err().code == ErrorCode.ALREADY_CANCELLED
        assert (
            await services.repositories.audit_logs.count(
                [eq("action", AuditAction.POLICY_CANCELLATION)]
            )
            == 1
        )

    async def test_lapsed_policy_cannot_be_cancelled(
        self,
        services: ServiceContainer,
        clock: FrozenClock,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Expiry is derived even if not yet persisted."""
        clock.advance(timedelta(days=400))

        result = await services.policies.cancel(customer, active_policy.id)

        assert result.unwrap_err().code == ErrorCode.CANNOT_CANCEL_EXPIRED

    async def test_other_customer_is_forbidden(
        self,
        services: ServiceContainer,
        other_customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Only the owner may cancel."""
        result = await services.policies.cancel(other_customer, active_policy.id)

        assert result.unwrap_err().code == ErrorCode.FORBIDDEN
        stored = await services.repositories.user_policies.find_by_id(active_policy.id)
        assert stored is not None
        assert stored.status == UserPolicyStatus.ACTIVE

    async def test_missing_policy_before_ownership(
        self, services: ServiceContainer, customer: Principal
    ) -> None:
        """Existence is checked before ownership."""
        result = await services.policies.cancel(customer, uuid4())
        assert result.unwrap_err().code == ErrorCode.NOT_FOUND


class TestReads:
    """Listing and single reads."""

    async def test_list_reports_derived_expiry(
        self,
        services: ServiceContainer,
        clock: FrozenClock,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Lapsed policies read as EXPIRED."""
        clock.advance(timedelta(days=400))

        policies = (await services.policies.list_for_user(customer)).unwrap()

        assert [p.status for p in policies] == [UserPolicyStatus.EXPIRED]

    async def test_customer_cannot_list_other_users(
        self,
        services: ServiceContainer,
        customer: Principal,
        other_customer: Principal,
    ) -> None:
        """Customers list their own policies only."""
        result = await services.policies.list_for_user(customer, other_customer.id)
        assert result.unwrap_err().code == ErrorCode.FORBIDDEN

    async def test_admin_lists_any_user(
        self,
        services: ServiceContainer,
        admin: Principal,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Admins read every user's policies."""
        policies = (await services.policies.list_for_user(admin, customer.id)).unwrap()
        assert [p.id for p in policies] == [active_policy.id]

    async def test_admin_without_user_lists_everyone(
        self,
        services: ServiceContainer,
        admin: Principal,
        customer: Principal,
        other_customer: Principal,
        product: PolicyProduct,
        purchase_data: dict[str, Any],
        active_policy: UserPolicy,
    ) -> None:
        """Omitting the user gives admins the whole book; customers stay scoped."""
        other = (
            await services.policies.purchase(other_customer, product.id, purchase_data)
        ).unwrap()

        everyone = (await services.policies.list_for_user(admin)).unwrap()
        own = (await services.policies.list_for_user(customer)).unwrap()

        assert {p.id for p in everyone} == {active_policy.id, other.id}
        assert [p.id for p in own] == [active_policy.id]

    async def test_get_other_customers_policy(
        self,
        services: ServiceContainer,
        other_customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Foreign policies are FORBIDDEN."""
        result = await services.policies.get(other_customer, active_policy.id)
        assert result.unwrap_err().code == ErrorCode.FORBIDDEN


class TestAgentAndExpiry:
    """Agent binding and the expiry sweep."""

    async def test_admin_assigns_agent(
        self,
        services: ServiceContainer,
        admin: Principal,
        agent: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """The servicing agent is recorded."""
        updated = (
            await services.policies.assign_agent(admin, active_policy.id, agent.id)
        ).unwrap()
        assert updated.assigned_agent_id == agent.id

    async def test_assignee_must_be_agent(
        self,
        services: ServiceContainer,
        admin: Principal,
        other_customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Customers cannot service policies."""
        result = await services.policies.assign_agent(
            admin, active_policy.id, other_customer.id
        )
        assert result.unwrap_err().code == ErrorCode.INVALID_INPUT

    async def test_unknown_agent(
        self, services: ServiceContainer, admin: Principal, active_policy: UserPolicy
    ) -> None:
        """Unknown assignees are NOT_FOUND."""
        result = await services.policies.assign_agent(admin, active_policy.id, uuid4())
        assert result.unwrap_err().message == "Agent not found"

    async def test_expire_lapsed_persists_status(
        self,
        services: ServiceContainer,
        clock: FrozenClock,
        admin: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """The sweep flips stored status once."""
        assert (await services.policies.expire_lapsed(admin)).unwrap() == 0

        clock.advance(timedelta(days=400))

        assert (await services.policies.expire_lapsed(admin)).unwrap() == 1
        assert (await services.policies.expire_lapsed(admin)).unwrap() == 0
        stored = await services.repositories.user_policies.find_by_id(active_policy.id)
        assert stored is not None
        assert stored.status == UserPolicyStatus.EXPIRED

    async def test_expire_lapsed_requires_admin(
        self,
        services: ServiceContainer,
        clock: FrozenClock,
        customer: Principal,
        active_policy: UserPolicy,
    ) -> None:
        """Non-admins cannot run the sweep and nothing is persisted."""
        clock.advance(timedelta(days=400))

        result = await services.policies.expire_lapsed(customer)

        assert result.unwrap_err().code == ErrorCode.UNAUTHORIZED
        stored = await services.repositories.user_policies.find_by_id(active_policy.id)
        assert stored is not None
        assert stored.status == UserPolicyStatus.ACTIVE
