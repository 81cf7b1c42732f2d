"""Unit tests for rental pricing."""

from datetime import date

import pytest

from rental.core.exceptions import ValidationError
from rental.models.incident import Severity
from rental.schemas.pricing import InsuranceSelection
from rental.services.pricing_service import (
    SEVERITY_MULTIPLIERS,
    calculate_price,
    count_chargeable_days,
    damage_charge,
    insurance_fee,
    late_charge,
)

MONDAY = date(2026, 11, 2)
THURSDAY = date(2026, 11, 5)
FRIDAY = date(2026, 11, 6)
SATURDAY = date(2026, 11, 7)
NEXT_MONDAY = date(2026, 11, 9)
NEXT_TUESDAY = date(2026, 11, 10)

BASIC = InsuranceSelection(min_coverage=1_000_000, max_coverage=5_000_000)
COMPREHENSIVE = InsuranceSelection(min_coverage=8_000_000, max_coverage=20_000_000)


def test_calendar_fixture_weekdays():
    assert MONDAY.weekday() == 0
    assert FRIDAY.weekday() == 4
    assert SATURDAY.weekday() == 5


def test_friday_to_tuesday_bundles_weekend():
    """Interior Sat, Sun, Mon: the weekend counts once, Monday once."""
    quote = calculate_price(FRIDAY, NEXT_TUESDAY, 800_000)

    assert quote.total_days == 4
    assert quote.chargeable_days == 2
    assert quote.base_price == 1_600_000
    assert quote.service_fee == 80_000
    assert quote.insurance_fee == 0
    assert quote.total_price == 1_680_000


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        (MONDAY, THURSDAY, 2),                  # Tue, Wed
        (FRIDAY, NEXT_MONDAY, 1),               # Sat+Sun bundled
        (SATURDAY, NEXT_TUESDAY, 2),            # Sun alone, Mon
        (THURSDAY, NEXT_MONDAY, 2),             # Fri, Sat+Sun
        (MONDAY, date(2026, 11, 16), 11),       # two weekends over two weeks
    ],
)
def test_count_chargeable_days(start, end, expected):
    assert count_chargeable_days(start, end) == expected


def test_single_and_double_weekend_day_runs_count_the_same():
    # Sat..Tue has interior Sun only; Fri..Tue has interior Sat+Sun
    sun_only = count_chargeable_days(SATURDAY, NEXT_TUESDAY) - 1
    sat_and_sun = count_chargeable_days(FRIDAY, NEXT_TUESDAY) - 1
    assert sun_only == sat_and_sun == 1


def test_two_day_span_rejected():
    with pytest.raises(ValidationError) as exc_info:
        calculate_price(MONDAY, date(2026, 11, 4), 800_000)
    assert "end_date" in exc_info.value.errors


def test_inverted_span_rejected():
    with pytest.raises(ValidationError):
        calculate_price(THURSDAY, MONDAY, 800_000)


def test_span_above_maximum_rejected():
    with pytest.raises(ValidationError):
        calculate_price(date(2026, 1, 1), date(2026, 4, 2), 100_000, max_days=90)


def test_invalid_quantity_and_rate_rejected():
    with pytest.raises(ValidationError):
        calculate_price(MONDAY, THURSDAY, 100_000, quantity=0)
    with pytest.raises(ValidationError):
        calculate_price(MONDAY, THURSDAY, -1)


def test_service_fee_rounds_half_up():
    # base 10 x 5% = 0.5 rounds to 1
    quote = calculate_price(FRIDAY, NEXT_MONDAY, 10)
    assert quote.base_price == 10
    assert quote.service_fee == 1


def test_insurance_fee_floor_applies():
    # avg 3,000,000 x 0.0015 x 2 days = 9,000 < 15,000
    assert insurance_fee(BASIC, 2) == 15_000


def test_insurance_fee_scales_with_days():
    # avg 14,000,000 x 0.0015 x 2 days = 42,000
    assert insurance_fee(COMPREHENSIVE, 2) == 42_000
    assert insurance_fee(None, 2) == 0


def test_quote_with_insurance_totals():
    quote = calculate_price(FRIDAY, NEXT_TUESDAY, 800_000, insurance=COMPREHENSIVE)
    assert quote.insurance_fee == 42_000
    assert quote.total_price == quote.base_price + quote.service_fee + quote.insurance_fee


def test_quantity_multiplies_rent_only():
    single = calculate_price(FRIDAY, NEXT_TUESDAY, 800_000, insurance=COMPREHENSIVE)
    double = calculate_price(FRIDAY, NEXT_TUESDAY, 800_000, insurance=COMPREHENSIVE, quantity=2)

    assert double.base_price == 2 * single.base_price
    assert double.service_fee == 2 * single.service_fee
    assert double.insurance_fee == single.insurance_fee


def test_severity_table():
    assert {severity.value: str(m) for severity, m in SEVERITY_MULTIPLIERS.items()} == {
        "none": "0",
        "minor": "0.15",
        "major": "0.4",
        "critical": "1.0",
    }


@pytest.mark.parametrize(
    ("severity", "expected"),
    [
        (Severity.NONE, 0),
        (Severity.MINOR, 6_750_000),
        (Severity.MAJOR, 18_000_000),
        (Severity.CRITICAL, 45_000_000),
    ],
)
def test_damage_charge(severity, expected):
    assert damage_charge(45_000_000, severity) == expected


def test_damage_charge_rounds_once():
    # 5 x 0.15 = 0.75
    assert damage_charge(5, "minor") == 1


def test_late_charge_counts_started_hours():
    # hourly rate 10,000
    assert late_charge(240_000, 0) == 0
    assert late_charge(240_000, 1) == 10_000
    assert late_charge(240_000, 60) == 10_000
    assert late_charge(240_000, 61) == 20_000


def test_late_charge_rounds_after_multiplying():
    # 2 x 800,000 / 24 = 66,666.67
    assert late_charge(800_000, 61) == 66_667
