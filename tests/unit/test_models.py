"""Unit tests for domain models.

Tests verify:
- Immutability and strict validation inherited from BaseModelConfig
- Cross-field validators (coverage window, decision fields, ranges)
- Derived expiry on user policies
- The audit details tagged union
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import TypeAdapter, ValidationError

from insurance_core.models import (
    AuditLogEntry,
    Claim,
    ClaimFilters,
    ClaimStatus,
    Nominee,
    Page,
    PolicyProductCreate,
    PolicyProductUpdate,
    UserCreate,
    UserPolicy,
    UserPolicyStatus,
    UserUpdate,
)
from insurance_core.models.audit import (
    AuditAction,
    AuditDetails,
    ClaimAssignmentDetails,
    PolicyCancellationDetails,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_policy(**overrides: object) -> UserPolicy:
    data: dict[str, object] = {
        "id": uuid4(),
        "created_at": NOW,
        "user_id": uuid4(),
        "policy_product_id": uuid4(),
        "start_date": date(2024, 1, 1),
        "end_date": date(2025, 1, 1),
        "premium_paid": Decimal("5000.00"),
        "status": UserPolicyStatus.ACTIVE,
        "nominee": Nominee(name="Jane Doe", relation="Spouse"),
    }
    data.update(overrides)
    return UserPolicy(**data)


class TestBaseModelBehaviour:
    """Configuration shared by every domain model."""

    def test_models_are_frozen(self) -> None:
        """Stored entities cannot be mutated in place."""
        policy = make_policy()

        with pytest.raises(ValidationError) as exc_info:
            policy.status = UserPolicyStatus.CANCELLED  # type: ignore[misc]

        assert "frozen" in str(exc_info.value).lower()

    def test_extra_fields_rejected(self) -> None:
        """Unknown input keys are errors, not silently dropped."""
        with pytest.raises(ValidationError) as exc_info:
            PolicyProductCreate(
                code="HEALTH-001",
                title="Health",
                description="Cover",
                premium=Decimal("10.00"),
                term_months=12,
                min_sum_insured=Decimal("1000.00"),
                colour="blue",  # type: ignore[call-arg]
            )

        assert "Extra inputs are not permitted" in str(exc_info.value)

    def test_whitespace_is_stripped(self) -> None:
        """String inputs are trimmed."""
        nominee = Nominee(name="  Jane  ", relation=" Spouse ")
        assert nominee.name == "Jane"
        assert nominee.relation == "Spouse"


class TestPolicyProduct:
    """Catalog product validation."""

    def test_non_positive_premium_rejected(self) -> None:
        """Premium must be positive."""
        with pytest.raises(ValidationError):
            PolicyProductCreate(
                code="X-1",
                title="T",
                description="D",
                premium=Decimal("0"),
                term_months=12,
                min_sum_insured=Decimal("1.00"),
            )

    def test_code_with_whitespace_rejected(self) -> None:
        """Codes are single tokens."""
        with pytest.raises(ValidationError) as exc_info:
            PolicyProductCreate(
                code="HEALTH 001",
                title="T",
                description="D",
                premium=Decimal("1.00"),
                term_months=12,
                min_sum_insured=Decimal("1.00"),
            )

        assert "whitespace" in str(exc_info.value)

    def test_update_code_with_whitespace_rejected(self) -> None:
        """Patches follow the same code rule as creation."""
        with pytest.raises(ValidationError) as exc_info:
            PolicyProductUpdate(code="HEALTH 001")

        assert "whitespace" in str(exc_info.value)
        assert PolicyProductUpdate(code="HEALTH-002").code == "HEALTH-002"

    def test_empty_update_rejected(self) -> None:
        """A patch must change something."""
        with pytest.raises(ValidationError) as exc_info:
            PolicyProductUpdate()

        assert "At least one field" in str(exc_info.value)


class TestUserPolicy:
    """Coverage window and derived expiry."""

    def test_end_date_must_follow_start_date(self) -> None:
        """A zero-length window is invalid."""
        with pytest.raises(ValidationError) as exc_info:
            make_policy(end_date=date(2024, 1, 1))

        assert "End date must be after start date" in str(exc_info.value)

    def test_active_policy_past_end_date_reads_as_expired(self) -> None:
        """Expiry is derived from the date, not only from stored status."""
        policy = make_policy()

        assert policy.effective_status(date(2024, 12, 31)) == UserPolicyStatus.ACTIVE
        assert policy.effective_status(date(2025, 1, 1)) == UserPolicyStatus.ACTIVE
        assert policy.effective_status(date(2025, 1, 2)) == UserPolicyStatus.EXPIRED

    def test_as_of_returns_copy_with_derived_status(self) -> None:
        """The stored object keeps its status; the copy reflects expiry."""
        policy = make_policy()

        expired = policy.as_of(date(2025, 2, 1))

        assert expired.status == UserPolicyStatus.EXPIRED
        assert policy.status == UserPolicyStatus.ACTIVE
        assert policy.as_of(date(2024, 6, 1)) is policy

    def test_cancelled_policy_never_reads_as_expired(self) -> None:
        """Only ACTIVE policies lapse."""
        policy = make_policy(status=UserPolicyStatus.CANCELLED)
        assert policy.effective_status(date(2030, 1, 1)) == UserPolicyStatus.CANCELLED

    def test_covers_is_inclusive(self) -> None:
        """Both ends of the coverage window are covered."""
        policy = make_policy()

        assert policy.covers(date(2024, 1, 1))
        assert policy.covers(date(2025, 1, 1))
        assert not policy.covers(date(2023, 12, 31))
        assert not policy.covers(date(2025, 1, 2))


class TestClaim:
    """Claim decision invariants."""

    def _claim(self, **overrides: object) -> Claim:
        data: dict[str, object] = {
            "id": uuid4(),
            "created_at": NOW,
            "user_id": uuid4(),
            "user_policy_id": uuid4(),
            "incident_date": date(2024, 6, 1),
            "description": "Hospital stay",
            "amount_claimed": Decimal("100.00"),
            "status": ClaimStatus.PENDING,
        }
        data.update(overrides)
        return Claim(**data)

    def test_decided_claim_requires_decider(self) -> None:
        """APPROVED without a deciding agent is inconsistent."""
        with pytest.raises(ValidationError) as exc_info:
            self._claim(status=ClaimStatus.APPROVED)

        assert "deciding agent" in str(exc_info.value)

    def test_pending_claim_cannot_carry_decider(self) -> None:
        """PENDING claims have no decision maker yet."""
        with pytest.raises(ValidationError):
            self._claim(decided_by_agent_id=uuid4())

    def test_decided_claim_is_valid_with_decider(self) -> None:
        """A decision records who made it."""
        decider = uuid4()
        claim = self._claim(
            status=ClaimStatus.REJECTED, decided_by_agent_id=decider, decided_at=NOW
        )
        assert claim.decided_by_agent_id == decider

    def test_status_decision_flag(self) -> None:
        """Only APPROVED and REJECTED are decisions."""
        assert not ClaimStatus.PENDING.is_decision
        assert ClaimStatus.APPROVED.is_decision
        assert ClaimStatus.REJECTED.is_decision


class TestClaimFilters:
    """Listing filter validation."""

    def test_inverted_date_range_rejected(self) -> None:
        """date_from after date_to is a caller error."""
        with pytest.raises(ValidationError):
            ClaimFilters(date_from=date(2024, 6, 2), date_to=date(2024, 6, 1))

    def test_inverted_amount_range_rejected(self) -> None:
        """amount_min above amount_max is a caller error."""
        with pytest.raises(ValidationError):
            ClaimFilters(amount_min=Decimal("10"), amount_max=Decimal("5"))

    def test_strings_are_coerced(self) -> None:
        """Query-string values parse into typed filters."""
        filters = ClaimFilters.model_validate(
            {"status": "PENDING", "amount_min": "10.5", "date_to": "2024-06-30"}
        )
        assert filters.status == ClaimStatus.PENDING
        assert filters.amount_min == Decimal("10.5")
        assert filters.date_to == date(2024, 6, 30)


class TestUserCreate:
    """User input normalisation."""

    def test_email_is_lowercased(self) -> None:
        """E-mail uniqueness is case-insensitive."""
        user = UserCreate(name="Carol", email="Carol@Example.COM")
        assert user.email == "carol@example.com"

    @pytest.mark.parametrize(
        "email", ["not-an-email", "a@b..c", "x@-.-", "carol@", "@example.com"]
    )
    def test_malformed_email_rejected(self, email: str) -> None:
        """Addresses must be syntactically valid e-mail."""
        with pytest.raises(ValidationError):
            UserCreate(name="Carol", email=email)

    def test_update_email_is_validated(self) -> None:
        """Partial updates apply the same e-mail rules."""
        assert UserUpdate(email="Dave@Example.com").email == "dave@example.com"
        with pytest.raises(ValidationError):
            UserUpdate(email="a@b..c")


class TestAuditDetails:
    """Tagged union keyed by action."""

    def test_union_dispatches_on_action(self) -> None:
        """The action tag selects the payload type."""
        adapter = TypeAdapter(AuditDetails)
        claim_id, agent_id = uuid4(), uuid4()

        details = adapter.validate_python(
            {
                "action": "claim assignment",
                "claim_id": str(claim_id),
                "agent_id": str(agent_id),
            }
        )

        assert isinstance(details, ClaimAssignmentDetails)
        assert details.claim_id == claim_id

    def test_cancellation_reason_default(self) -> None:
        """Customer cancellations carry the standard reason."""
        details = PolicyCancellationDetails(user_policy_id=uuid4())
        assert details.cancellation_reason == "User requested cancellation"

    def test_entry_action_must_match_details(self) -> None:
        """The entry tag and the payload tag cannot disagree."""
        with pytest.raises(ValidationError) as exc_info:
            AuditLogEntry(
                id=uuid4(),
                action=AuditAction.POLICY_PURCHASE,
                actor_id=uuid4(),
                details=PolicyCancellationDetails(user_policy_id=uuid4()),
                ip="127.0.0.1",
                timestamp=NOW,
            )

        assert "does not match" in str(exc_info.value)


class TestPage:
    """Pagination envelope."""

    @pytest.mark.parametrize(
        ("total", "limit", "pages"),
        [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 5, 5)],
    )
    def test_pages_is_ceiling_of_total_over_limit(
        self, total: int, limit: int, pages: int
    ) -> None:
        """pages = ceil(total / limit)."""
        page = Page[int].build([], page=1, limit=limit, total=total)
        assert page.pages == pages
