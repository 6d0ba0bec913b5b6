"""Tests for rl_common.units."""

import pytest

from src.rl_common.units import (
    RIPLIMIT_PER_INR,
    inr_to_riplimit,
    riplimit_to_display,
    riplimit_to_inr,
)


def test_exchange_rate() -> None:
    assert RIPLIMIT_PER_INR == 20


@pytest.mark.parametrize(
    ("amount", "inr"),
    [(0, 0.0), (20, 1.0), (1000, 50.0), (1234, 61.7), (7, 0.35), (1, 0.05)],
)
def test_riplimit_to_inr(amount: int, inr: float) -> None:
    assert riplimit_to_inr(amount) == inr


def test_inr_to_riplimit() -> None:
    assert inr_to_riplimit(100) == 2000


@pytest.mark.parametrize(
    ("amount", "display"),
    [(0, "₹0.00"), (6912, "₹345.60"), (-1200, "-₹60.00"), (2_000_000, "₹100,000.00")],
)
def test_riplimit_to_display(amount: int, display: str) -> None:
    assert riplimit_to_display(amount) == display
