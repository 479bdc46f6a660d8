from datetime import timedelta

import pytest

from app.models import DepositMode
from app.services.deposit_policy import (
    PolicyTerms,
    clamp_percent,
    compute_deposit,
    hours_until,
    is_enabled,
    should_forfeit,
    unconfigured_terms,
)

from factories import NOW


def test_percent_deposit_scenario():
    terms = PolicyTerms(percent=0.2, min_cents=1000)
    assert compute_deposit(terms, 10000) == 2000


def test_percent_deposit_rounds_half_up():
    terms = PolicyTerms(percent=0.125, min_cents=0)
    assert compute_deposit(terms, 100) == 13
    assert compute_deposit(terms, 99) == 12


@pytest.mark.parametrize("price", [0, 1, 999, 4999, 25000, 150000, 10_000_000])
def test_percent_deposit_stays_within_bounds(price):
    terms = PolicyTerms(percent=0.2, min_cents=5000, max_cents=30000)
    assert 5000 <= compute_deposit(terms, price) <= 30000


def test_percent_without_cap_is_unbounded():
    terms = PolicyTerms(percent=0.5, min_cents=100, max_cents=None)
    assert compute_deposit(terms, 1_000_000) == 500_000


def test_missing_price_falls_to_floor():
    assert compute_deposit(PolicyTerms(percent=0.2, min_cents=700), None) == 700


def test_flat_deposit():
    assert compute_deposit(PolicyTerms(mode=DepositMode.FLAT, amount_cents=5000), 123) == 5000
    assert compute_deposit(PolicyTerms(mode=DepositMode.FLAT, amount_cents=-10), 123) == 0


def test_unconfigured_provider_pays_twenty_percent():
    terms = unconfigured_terms()
    assert compute_deposit(terms, 10000) == 2000
    assert compute_deposit(terms, None) == 0
    assert terms.max_cents is None


def test_clamp_percent():
    assert clamp_percent(-0.5) == 0.0
    assert clamp_percent(1.7) == 1.0
    assert clamp_percent(0.3) == 0.3


def test_is_enabled():
    assert not is_enabled(None)
    assert not is_enabled(PolicyTerms(mode=DepositMode.FLAT, amount_cents=0))
    assert is_enabled(PolicyTerms(mode=DepositMode.FLAT, amount_cents=1))
    assert not is_enabled(PolicyTerms(percent=0.2, min_cents=0))
    assert not is_enabled(PolicyTerms(percent=0.0, min_cents=1000))
    assert is_enabled(PolicyTerms(percent=0.2, min_cents=1000))


def test_forfeit_boundary_is_strict():
    start = NOW + timedelta(hours=48)
    assert hours_until(start, NOW) == 48
    assert not should_forfeit(start, NOW, 48)
    assert should_forfeit(start, NOW + timedelta(seconds=1), 48)


def test_zero_cutoff_never_forfeits_future_bookings():
    assert not should_forfeit(NOW + timedelta(minutes=1), NOW, 0)
