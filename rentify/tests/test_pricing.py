from datetime import date
from decimal import Decimal

import pytest

from rentify.services import pricing


def test_breakdown_pickup_three_days():
	b = pricing.compute_breakdown("100", date(2026, 3, 11), date(2026, 3, 14))
	assert b.total_days == 3
	assert b.subtotal == Decimal("300.00")
	assert b.service_fee == Decimal("30.00")
	assert b.insurance_fee == Decimal("15.00")
	assert b.delivery_fee == Decimal("0.00")
	assert b.total_amount == Decimal("345.00")


def test_breakdown_with_delivery_adds_flat_fee():
	b = pricing.compute_breakdown("100", date(2026, 3, 11), date(2026, 3, 14), delivery_method="delivery")
	assert b.delivery_fee == Decimal("25.00")
	assert b.total_amount == Decimal("370.00")


def test_breakdown_rounds_half_up_to_cents():
	b = pricing.compute_breakdown("33.35", date(2026, 3, 11), date(2026, 3, 12))
	# 10% of 33.35 = 3.335 -> 3.34, 5% = 1.6675 -> 1.67
	assert b.service_fee == Decimal("3.34")
	assert b.insurance_fee == Decimal("1.67")
	assert b.total_amount == Decimal("38.36")


def test_breakdown_rejects_empty_range():
	with pytest.raises(ValueError):
		pricing.compute_breakdown("100", date(2026, 3, 11), date(2026, 3, 11))


def test_breakdown_to_dict_uses_floats():
	d = pricing.compute_breakdown("80", date(2026, 3, 11), date(2026, 3, 13)).to_dict()
	assert d["subtotal"] == 160.0
	assert d["total_amount"] == 184.0


def test_late_days_zero_on_or_before_end_date():
	end = date(2026, 3, 10)
	assert pricing.compute_late_days(end, date(2026, 3, 9)) == 0
	assert pricing.compute_late_days(end, end) == 0
	assert pricing.compute_late_days(end, date(2026, 3, 11)) == 1


def test_late_fee_three_days():
	assert pricing.compute_late_fee(3, "10") == Decimal("30.00")
	assert pricing.compute_late_fee(0, "10") == Decimal("0.00")


def test_deposit_return_subtracts_manual_and_late_fee():
	deduction, returned = pricing.compute_deposit_return("200", "50", "30")
	assert deduction == Decimal("80.00")
	assert returned == Decimal("120.00")


def test_deposit_return_never_negative():
	deduction, returned = pricing.compute_deposit_return("100", "80", "50")
	assert deduction == Decimal("130.00")
	assert returned == Decimal("0.00")
