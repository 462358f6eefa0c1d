"""Amount and dosage parsing plus the attendance-consistent amount resolution.

Amounts are integer CLP. Free-text input is reduced to its digits; decimal
points and thousands separators are not interpreted.
"""

from __future__ import annotations

import math
import re

from app.classification.normalize import sanitize_text
from app.schemas.internal import EventSnapshot, OverrideEntry

_NON_DIGITS = re.compile(r"[^0-9]")
_DECIMAL = re.compile(r"\d+(?:\.\d+)?")

MAX_REASONABLE_AMOUNT = 100_000_000


def parse_amount_input(raw: str | int | None) -> int | None:
    """Parse a free-text amount by keeping only its ASCII digits.

    "$1.234,56" -> 123456. Returns None when no digits remain or the value
    is above ``MAX_REASONABLE_AMOUNT``.
    """
    if raw is None:
        return None
    digits = _NON_DIGITS.sub("", str(raw))
    if not digits:
        return None
    try:
        value = int(digits, 10)
    except ValueError:
        # More digits than the interpreter will convert.
        return None
    return value if value <= MAX_REASONABLE_AMOUNT else None


def parse_decimal_input(raw: str | None) -> float | None:
    """Parse a dosage value such as "0,5", "0.5" or "0,5 ml"."""
    text = sanitize_text(raw)
    if text is None:
        return None
    match = _DECIMAL.search(text.replace(",", "."))
    if not match:
        return None
    value = float(match.group(0))
    return value if math.isfinite(value) else None


def resolve_amounts(
    override: OverrideEntry,
    baseline: EventSnapshot,
    default_amount: int | None,
    attended: bool | None,
) -> tuple[int | None, int | None]:
    """Resolve (amount_expected, amount_paid) for one event.

    Args:
        override: Draft values; typed amounts win over the baseline.
        baseline: Stored event values.
        default_amount: Category default used when neither side has an
            expected amount (e.g. 150000 for Roxair).
        attended: Resolved attendance. False forces the paid amount to 0.

    Returns:
        Tuple of expected and paid amounts. Paid is never None when
        ``attended`` is False.
    """
    amount_expected = parse_amount_input(override.amount_expected)
    if amount_expected is None:
        amount_expected = baseline.amount_expected
    if amount_expected is None and default_amount is not None:
        amount_expected = default_amount

    amount_paid = parse_amount_input(override.amount_paid)
    if amount_paid is None:
        amount_paid = baseline.amount_paid

    if attended is False:
        amount_paid = 0

    return amount_expected, amount_paid
