"""
折扣数据模型测试
"""

import pytest
from datetime import datetime
from decimal import Decimal
from pydantic import ValidationError

from barbershop.models.discount import (
    AppliesTo,
    DiscountStatus,
    DiscountType,
    DiscountUpdate,
    DiscountUsage,
    DiscountEligibility,
    EligibilityFailure,
)

from factories import NOW, make_discount, make_discount_create, service_applicable


class TestDiscountCreate:
    """创建折扣模型校验"""

    def test_code_is_normalized(self):
        data = make_discount_create(code="  save10 ")
        assert data.code == "SAVE10"

    def test_blank_code_means_generate(self):
        data = make_discount_create(code="   ")
        assert data.code is None

    def test_code_must_be_alphanumeric(self):
        with pytest.raises(ValidationError):
            make_discount_create(code="SAVE-10")

    def test_percentage_over_100_rejected(self):
        with pytest.raises(ValidationError):
            make_discount_create(discount_value=Decimal("100.01"))

    def test_percentage_of_100_allowed(self):
        data = make_discount_create(discount_value=Decimal("100"))
        assert data.discount_value == Decimal("100")

    def test_fixed_amount_may_exceed_100(self):
        data = make_discount_create(discount_type=DiscountType.FIXED_AMOUNT, discount_value=Decimal("20000"))
        assert data.discount_value == Decimal("20000")

    def test_non_positive_value_rejected(self):
        with pytest.raises(ValidationError):
            make_discount_create(discount_value=Decimal("0"))

    def test_end_must_be_after_start(self):
        with pytest.raises(ValidationError):
            make_discount_create(start_date=datetime(2025, 6, 30), end_date=datetime(2025, 6, 1))

    def test_specific_requires_applicables(self):
        with pytest.raises(ValidationError):
            make_discount_create(applies_to=AppliesTo.SPECIFIC, applicables=[])

    def test_specific_without_applicables_field_rejected(self):
        """未传 applicables 字段时同样校验"""
        with pytest.raises(ValidationError):
            make_discount_create(applies_to=AppliesTo.SPECIFIC)

    def test_update_specific_without_applicables_rejected(self):
        data = make_discount_create().model_dump(exclude={"applicables", "applies_to"})
        with pytest.raises(ValidationError):
            DiscountUpdate(applies_to=AppliesTo.SPECIFIC, **data)

    def test_all_drops_applicables(self):
        data = make_discount_create(applies_to=AppliesTo.ALL, applicables=[service_applicable()])
        assert data.applicables == []


class TestDiscount:
    """折扣完整模型"""

    def test_used_count_cannot_exceed_limit(self):
        with pytest.raises(ValidationError):
            make_discount(usage_limit=1, used_count=2)

    def test_remaining_quota(self):
        assert make_discount(usage_limit=5, used_count=2).remaining_quota == 3
        assert make_discount(usage_limit=None).remaining_quota is None

    def test_status_at(self):
        discount = make_discount()
        assert discount.status_at(NOW) == DiscountStatus.ACTIVE
        assert discount.status_at(datetime(2025, 5, 1)) == DiscountStatus.UPCOMING
        assert discount.status_at(datetime(2025, 7, 1)) == DiscountStatus.EXPIRED
        assert make_discount(is_active=False).status_at(NOW) == DiscountStatus.INACTIVE


class TestDiscountUsage:
    """折扣使用记录"""

    def test_final_amount_must_match(self):
        with pytest.raises(ValidationError):
            DiscountUsage(
                discount_id=1,
                customer_id=100,
                booking_id=1,
                original_amount=Decimal("100.00"),
                discount_amount=Decimal("10.00"),
                final_amount=Decimal("80.00"),
                used_at=NOW
            )

    def test_discount_cannot_exceed_original(self):
        with pytest.raises(ValidationError):
            DiscountUsage(
                discount_id=1,
                customer_id=100,
                booking_id=1,
                original_amount=Decimal("100.00"),
                discount_amount=Decimal("150.00"),
                final_amount=Decimal("0.00"),
                used_at=NOW
            )

    def test_valid_usage(self):
        usage = DiscountUsage(
            discount_id=1,
            customer_id=100,
            booking_id=1,
            original_amount=Decimal("200000"),
            discount_amount=Decimal("5000.00"),
            final_amount=Decimal("195000.00"),
            used_at=NOW
        )
        assert usage.final_amount == Decimal("195000")


def test_quota_failures_flag():
    eligibility = DiscountEligibility(
        is_eligible=False,
        failure_reason=EligibilityFailure.CUSTOMER_LIMIT_REACHED,
        original_amount=Decimal("100"),
        final_amount=Decimal("100")
    )
    assert eligibility.is_quota_failure

    eligibility = eligibility.model_copy(update={"failure_reason": EligibilityFailure.EXPIRED})
    assert not eligibility.is_quota_failure
