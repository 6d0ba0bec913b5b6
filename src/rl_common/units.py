"""Integer arithmetic utilities for RipLimit amounts.

All balances and amounts are int RipLimit units. INR values are derived
for display only and never stored.
"""

RIPLIMIT_PER_INR = 20

# Largest single movement accepted; keeps running totals far inside BIGINT.
MAX_AMOUNT = 10**12


def riplimit_to_inr(amount: int) -> float:
    """Convert RipLimit units to INR, rounded to paise: 1234 -> 61.7."""
    return round(amount / RIPLIMIT_PER_INR, 2)


def inr_to_riplimit(inr: int) -> int:
    """Convert a whole-rupee bid amount to RipLimit units: 100 -> 2000."""
    return inr * RIPLIMIT_PER_INR


def riplimit_to_display(amount: int) -> str:
    """Render an INR display string: 6912 -> '₹345.60', -1200 -> '-₹60.00'."""
    sign = "-" if amount < 0 else ""
    paise = abs(amount) * 100 // RIPLIMIT_PER_INR
    return f"{sign}₹{paise // 100:,}.{paise % 100:02d}"
