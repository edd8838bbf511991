"""Conversion between human-readable and fixed-point asset amounts."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from trustbridge.domain.exceptions import InvalidAmountError

USDC_DECIMALS = 6


def to_fixed_point(human_amount: Decimal | int | float | str, decimals: int = USDC_DECIMALS) -> int:
    """Scale a human amount by 10**decimals, truncating any sub-unit remainder.

    Never rounds up: "1.0000019" becomes 1000001. Amounts that truncate to
    zero or below raise InvalidAmountError.
    """
    if isinstance(human_amount, bool):
        raise InvalidAmountError(human_amount)
    try:
        # str() first so floats convert from their shortest repr, not binary
        value = Decimal(str(human_amount).strip())
    except InvalidOperation:
        raise InvalidAmountError(human_amount) from None
    if not value.is_finite():
        raise InvalidAmountError(human_amount)

    # scaleb rounds to the context precision; keep every digit
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + decimals + 1)
        scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)
    if scaled <= 0:
        raise InvalidAmountError(human_amount)
    return int(scaled)


def from_fixed_point(raw_amount: int, decimals: int = USDC_DECIMALS) -> str:
    """Render a fixed-point amount at human scale without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(raw_amount))) + 1)
        text = format(Decimal(raw_amount).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
