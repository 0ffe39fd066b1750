"""Commission arithmetic - all amounts are integer cents, rates are basis points"""

BASIS_POINTS = 10000


def compute_commission(base_cents: int, rate_bp: int) -> int:
    """
    Commission for `base_cents` at `rate_bp`, rounded to the nearest cent.

    Halves round away from zero so a refund adjustment mirrors the original
    commission exactly.
    """
    product = abs(base_cents) * rate_bp
    quotient, remainder = divmod(product, BASIS_POINTS)
    if remainder * 2 >= BASIS_POINTS:
        quotient += 1
    return -quotient if (base_cents < 0) != (rate_bp < 0) else quotient


def coupon_percent_off(discount_rate_bp: int) -> int:
    """Whole-percent discount for a Stripe coupon"""
    return max(0, discount_rate_bp // 100)


def format_cents(amount_cents: int) -> str:
    sign = "-" if amount_cents < 0 else ""
    return f"{sign}${abs(amount_cents) / 100:,.2f}"
