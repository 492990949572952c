"""
Fee and deposit arithmetic for rentals.

Every function here is pure: results depend only on the arguments, so any
stored breakdown can be recomputed from the persisted inputs. Amounts are
``Decimal`` rounded half-up to cents.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

SERVICE_FEE_RATE = Decimal("0.10")
INSURANCE_FEE_RATE = Decimal("0.05")
DELIVERY_FEE = Decimal("25")


def money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeBreakdown:
    price_per_day: Decimal
    total_days: int
    subtotal: Decimal
    service_fee: Decimal
    insurance_fee: Decimal
    delivery_fee: Decimal
    total_amount: Decimal

    def to_dict(self) -> dict:
        return {
            "price_per_day": float(self.price_per_day),
            "total_days": self.total_days,
            "subtotal": float(self.subtotal),
            "service_fee": float(self.service_fee),
            "insurance_fee": float(self.insurance_fee),
            "delivery_fee": float(self.delivery_fee),
            "total_amount": float(self.total_amount),
        }


def rental_days(start_date: date, end_date: date) -> int:
    """Billable days of the half-open range [start_date, end_date)."""
    return (end_date - start_date).days


def compute_breakdown(
    price_per_day,
    start_date: date,
    end_date: date,
    delivery_method: str = "pickup",
    delivery_fee=DELIVERY_FEE,
    service_rate=SERVICE_FEE_RATE,
    insurance_rate=INSURANCE_FEE_RATE,
) -> FeeBreakdown:
    days = rental_days(start_date, end_date)
    if days < 1:
        raise ValueError("end_date must be after start_date")

    price = money(price_per_day)
    subtotal = money(price * days)
    service_fee = money(subtotal * Decimal(str(service_rate)))
    insurance_fee = money(subtotal * Decimal(str(insurance_rate)))
    delivery = money(delivery_fee) if delivery_method == "delivery" else money(0)

    return FeeBreakdown(
        price_per_day=price,
        total_days=days,
        subtotal=subtotal,
        service_fee=service_fee,
        insurance_fee=insurance_fee,
        delivery_fee=delivery,
        total_amount=subtotal + service_fee + insurance_fee + delivery,
    )


def compute_late_days(end_date: date, today: date) -> int:
    """Whole days elapsed past end_date; 0 on or before it."""
    return max(0, (today - end_date).days)


def compute_late_fee(late_days: int, late_fee_per_day) -> Decimal:
    return money(money(late_fee_per_day) * max(0, int(late_days)))


def compute_deposit_return(security_deposit, manual_deduction, late_fee) -> tuple[Decimal, Decimal]:
    """
    Returns (total_deduction, deposit_returned).

    The returned amount never goes below zero even if deductions exceed the deposit.
    """
    deduction = money(manual_deduction) + money(late_fee)
    returned = money(security_deposit) - deduction
    if returned < 0:
        returned = Decimal("0.00")
    return deduction, returned
