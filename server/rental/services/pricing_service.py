"""
Rental pricing.

Pure functions with no clock, database or locale dependence, so the same
call produces the client preview and the authoritative price at commit.
All amounts are integer currency units; each derived quantity is rounded
once, half-up.
"""

import math
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..core.exceptions import ValidationError
from ..models.incident import Severity
from ..schemas.pricing import InsuranceSelection, PriceQuote

SERVICE_FEE_RATE = Decimal("0.05")
INSURANCE_RATE = Decimal("0.0015")
MIN_INSURANCE_FEE = 15000
MIN_STAY_DAYS = 3

SEVERITY_MULTIPLIERS: dict[Severity, Decimal] = {
    Severity.NONE: Decimal("0"),
    Severity.MINOR: Decimal("0.15"),
    Severity.MAJOR: Decimal("0.4"),
    Severity.CRITICAL: Decimal("1.0"),
}

# date.weekday(): Saturday=5, Sunday=6
_WEEKEND = (5, 6)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def count_chargeable_days(start_date: date, end_date: date) -> int:
    """
    Count billable days between pickup and return.

    Pickup and return days are never billed. Each interior weekday counts
    as one day, and each contiguous run of Saturday/Sunday counts as one
    day regardless of its length. The result is at least 1.
    """
    days = 0
    in_weekend = False
    current = start_date + timedelta(days=1)
    while current < end_date:
        if current.weekday() in _WEEKEND:
            if not in_weekend:
                days += 1
            in_weekend = True
        else:
            days += 1
            in_weekend = False
        current += timedelta(days=1)
    return max(1, days)


def validate_span(start_date: date, end_date: date, max_days: int | None = None) -> None:
    """
    Check the rental span against ordering and the minimum stay.

    Raises:
        ValidationError: If the span is empty, inverted, too short or too long
    """
    if end_date <= start_date:
        raise ValidationError(
            detail="End date must be after start date",
            errors={"end_date": "must be after start_date"}
        )

    span = (end_date - start_date).days
    if span < MIN_STAY_DAYS:
        raise ValidationError(
            detail=f"Rental must span at least {MIN_STAY_DAYS} calendar days",
            errors={"end_date": f"minimum stay is {MIN_STAY_DAYS} days, got {span}"}
        )

    if max_days is not None and span > max_days:
        raise ValidationError(
            detail=f"Rental may not exceed {max_days} calendar days",
            errors={"end_date": f"maximum stay is {max_days} days, got {span}"}
        )


def insurance_fee(insurance: InsuranceSelection | None, chargeable_days: int) -> int:
    """Premium for the selected package; zero when no insurance is taken."""
    if insurance is None:
        return 0
    avg_coverage = Decimal(insurance.min_coverage + insurance.max_coverage) / 2
    fee = round_half_up(avg_coverage * INSURANCE_RATE * max(1, chargeable_days))
    return max(MIN_INSURANCE_FEE, fee)


def calculate_price(
    start_date: date,
    end_date: date,
    daily_rate: int,
    insurance: InsuranceSelection | None = None,
    quantity: int = 1,
    max_days: int | None = None,
) -> PriceQuote:
    """
    Price a rental span.

    Args:
        start_date: Pickup day
        end_date: Return day
        daily_rate: Price per unit per chargeable day
        insurance: Coverage of the selected package, or None for no insurance
        quantity: Units rented; multiplies base rent only
        max_days: Optional upper bound on the calendar span

    Returns:
        PriceQuote with the full breakdown

    Raises:
        ValidationError: If the span or the inputs violate pricing rules
    """
    validate_span(start_date, end_date, max_days)
    if quantity < 1:
        raise ValidationError(detail="Quantity must be at least 1", errors={"quantity": "must be >= 1"})
    if daily_rate < 0:
        raise ValidationError(detail="Daily rate must not be negative", errors={"daily_rate": "must be >= 0"})

    chargeable_days = count_chargeable_days(start_date, end_date)
    base_price = chargeable_days * daily_rate * quantity
    service_fee = round_half_up(Decimal(base_price) * SERVICE_FEE_RATE)
    premium = insurance_fee(insurance, chargeable_days)

    return PriceQuote(
        start_date=start_date,
        end_date=end_date,
        total_days=(end_date - start_date).days,
        chargeable_days=chargeable_days,
        daily_rate=daily_rate,
        quantity=quantity,
        base_price=base_price,
        service_fee=service_fee,
        insurance_fee=premium,
        total_price=base_price + service_fee + premium,
    )


def damage_charge(replacement_price: int, severity: Severity | str) -> int:
    """round(replacement_price x severity multiplier)."""
    multiplier = SEVERITY_MULTIPLIERS[Severity(severity)]
    return round_half_up(Decimal(replacement_price) * multiplier)


def late_charge(daily_rate: int, late_minutes: int) -> int:
    """Every started hour past the deadline is billed at daily_rate / 24."""
    if late_minutes <= 0:
        return 0
    hours = math.ceil(late_minutes / 60)
    return round_half_up(Decimal(hours) * Decimal(daily_rate) / 24)
