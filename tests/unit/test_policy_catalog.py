"""Unit tests for the policy product catalog."""

from datetime import timedelta
from decimal import Decimal
from typing import Any
from uuid import uuid4

from insurance_core.core.errors import ErrorCode, ErrorKind
from insurance_core.models.audit import AuditAction
from insurance_core.models.policy import PolicyProduct, UserPolicy
from insurance_core.models.principal import Principal
from insurance_core.repositories import eq
from insurance_core.services.container import ServiceContainer

from conftest import FrozenClock


class TestCreate:
    """Product creation."""

    async def test_admin_creates_product(
        self,
        services: ServiceContainer,
        admin: Principal,
        product_data: dict[str, Any],
    ) -> None:
        """A new product is stored and audited."""
        product = (await services.catalog.create(admin, product_data, "10.0.0.1")).unwrap()

        assert product.code == "HEALTH-001"
        assert product.premium == Decimal("5000.00")
        assert (await services.catalog.get(product.id)).unwrap() == product

        entries = await services.repositories.audit_logs.find(
            [eq("action", AuditAction.POLICY_CREATION)]
        )
        assert len(entries) == 1
        assert entries[0].actor_id == admin.id
        assert entries[0].ip == "10.0.0.1"
        assert entries[0].details.policy_id == product.id

    async def test_duplicate_code_is_conflict(
        self,
        services: ServiceContainer,
        admin: Principal,
        product: PolicyProduct,
        product_data: dict[str, Any],
    ) -> None:
        """Codes are globally unique."""
        result = await services.catalog.create(admin, {**product_data, "title": "Other"})

        error = result.unwrap_err()
        assert error.code == ErrorCode.DUPLICATE_CODE
        assert error.kind == ErrorKind.CONFLICT
        assert await services.repositories.products.count() == 1

    async def test_invalid_input(
        self,
        services: ServiceContainer,
        admin: Principal,
        product_data: dict[str, Any],
    ) -> None:
        """Field validation failures are INVALID_INPUT."""
        result = await services.catalog.create(admin, {**product_data, "premium": "-1"})

        error = result.unwrap_err()
        assert error.code == ErrorCode.INVALID_INPUT
        assert "premium" in error.message

    async def test_customer_cannot_manage_catalog(
        self,
        services: ServiceContainer,
        customer: Principal,
        product_data: dict[str, Any],
    ) -> None:
        """Catalog management is admin-only."""
        result = await services.catalog.create(customer, product_data)

        assert result.unwrap_err().code == ErrorCode.UNAUTHORIZED
        assert await services.repositories.products.count() == 0


class TestUpdate:
    """Partial updates."""

    async def test_update_changes_given_fields_only(
        self, services: ServiceContainer, admin: Principal, product: PolicyProduct
    ) -> None:
        """Unspecified fields are untouched; the audit lists changed fields."""
        updated = (
            await services.catalog.update(
                admin, product.id, {"title": "Health Plus", "premium": "5500.00"}
            )
        ).unwrap()

        assert updated.title == "Health Plus"
        assert updated.premium == Decimal("5500.00")
        assert updated.code == product.code
        assert updated.created_at == product.created_at

        entries = await services.repositories.audit_logs.find(
            [eq("action", AuditAction.POLICY_UPDATE)]
        )
        assert entries[0].details.changed_fields == ["premium", "title"]

    async def test_update_to_taken_code_is_conflict(
        self,
        services: ServiceContainer,
        admin: Principal,
        product: PolicyProduct,
        product_data: dict[str, Any],
    ) -> None:
        """A changed code must stay unique."""
        other = (
            await services.catalog.create(admin, {**product_data, "code": "LIFE-001"})
        ).unwrap()

        result = await services.catalog.update(admin, other.id, {"code": "HEALTH-001"})

        assert result.unwrap_err().code == ErrorCode.DUPLICATE_CODE
        assert (await services.catalog.get(other.id)).unwrap().code == "LIFE-001"

    async def test_update_missing_product(
        self, services: ServiceContainer, admin: Principal
    ) -> None:
        """Unknown ids are NOT_FOUND."""
        result = await services.catalog.update(admin, uuid4(), {"title": "X"})

        error = result.unwrap_err()
        assert error.kind == ErrorKind.NOT_FOUND
        assert error.message == "Policy not found"


class TestDelete:
    """Deletion guarded by active bindings."""

    async def test_delete_with_active_binding_is_refused(
        self,
        services: ServiceContainer,
        admin: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
    ) -> None:
        """A product with an ACTIVE user policy stays in the catalog."""
        result = await services.catalog.delete(admin, product.id)

        assert result.unwrap_err().code == ErrorCode.HAS_ACTIVE_BINDINGS
        assert (await services.catalog.get(product.id)).is_ok()

    async def test_delete_after_cancellation(
        self,
        services: ServiceContainer,
        admin: Principal,
        customer: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
    ) -> None:
        """Cancelled bindings do not block deletion."""
        (await services.policies.cancel(customer, active_policy.id)).unwrap()

        assert (await services.catalog.delete(admin, product.id)).is_ok()
        assert (await services.catalog.get(product.id)).unwrap_err().kind == (
            ErrorKind.NOT_FOUND
        )

    async def test_delete_after_lapse(
        self,
        services: ServiceContainer,
        clock: FrozenClock,
        admin: Principal,
        product: PolicyProduct,
        active_policy: UserPolicy,
    ) -> None:
        """A binding past its end date no longer blocks deletion."""
        clock.advance(timedelta(days=800))

        assert (await services.catalog.delete(admin, product.id)).is_ok()

    async def test_delete_missing_product(
        self, services: ServiceContainer, admin: Principal
    ) -> None:
        """Unknown ids are NOT_FOUND."""
        result = await services.catalog.delete(admin, uuid4())
        assert result.unwrap_err().code == ErrorCode.NOT_FOUND


class TestList:
    """Search and pagination."""

    async def _seed(
        self, services: ServiceContainer, admin: Principal, base: dict[str, Any]
    ) -> None:
        for index in range(12):
            await services.catalog.create(
                admin,
                {
                    **base,
                    "code": f"MOTOR-{index:03d}",
                    "title": f"Motor cover {index}",
                    "description": "Vehicle damage",
                },
            )
        await services.catalog.create(
            admin, {**base, "code": "TRAVEL-001", "title": "Travel", "description": "Trips"}
        )

    async def test_newest_first_with_default_page_size(
        self, services: ServiceContainer, admin: Principal, product_data: dict[str, Any]
    ) -> None:
        """Default page size applies and pages are counted."""
        await self._seed(services, admin, product_data)

        page = (await services.catalog.list()).unwrap()

        assert page.total == 13
        assert page.limit == 10
        assert page.pages == 2
        assert len(page.items) == 10
        assert page.items[0].code == "TRAVEL-001"

        second = (await services.catalog.list(page=2)).unwrap()
        assert [p.code for p in second.items] == ["MOTOR-002", "MOTOR-001", "MOTOR-000"]

    async def test_search_is_case_insensitive_across_fields(
        self, services: ServiceContainer, admin: Principal, product_data: dict[str, Any]
    ) -> None:
        """Search matches code, title or description."""
        await self._seed(services, admin, product_data)

        by_description = (await services.catalog.list(search="VEHICLE")).unwrap()
        by_code = (await services.catalog.list(search="travel-0")).unwrap()

        assert by_description.total == 12
        assert [p.code for p in by_code.items] == ["TRAVEL-001"]

    async def test_limit_is_capped(
        self, services: ServiceContainer, admin: Principal, product_data: dict[str, Any]
    ) -> None:
        """Requested page sizes above the cap are clamped."""
        await self._seed(services, admin, product_data)

        page = (await services.catalog.list(limit=1000)).unwrap()

        assert page.limit == 50
        assert len(page.items) == 13
