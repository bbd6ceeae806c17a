"""Conversion between platform money (major units) and Stripe amounts (minor units).

Decimal places per currency follow Stripe's documentation:
https://stripe.com/docs/currencies#zero-decimal
https://stripe.com/docs/currencies#three-decimal
"""

from decimal import ROUND_HALF_UP, Decimal

ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF",
        "CLP",
        "DJF",
        "GNF",
        "JPY",
        "KMF",
        "KRW",
        "MGA",
        "PYG",
        "RWF",
        "UGX",
        "VND",
        "VUV",
        "XAF",
        "XOF",
        "XPF",
    }
)

THREE_DECIMAL_CURRENCIES = frozenset({"BHD", "JOD", "KWD", "OMR", "TND"})


def get_currency_decimals(currency: str) -> int:
    """Number of minor-unit digits Stripe uses for an ISO 4217 currency code."""
    code = currency.upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def get_stripe_amount_from_decimal(amount: Decimal | int | str, currency: str) -> int:
    """Convert a major-unit amount to Stripe's integer minor units.

    Rounds half up at the currency's precision. Three-decimal currencies are
    rounded to the nearest ten minor units, as Stripe requires.

    >>> get_stripe_amount_from_decimal(Decimal("222.99"), "USD")
    22299
    >>> get_stripe_amount_from_decimal(Decimal("222.99"), "JPY")
    223
    """
    value = Decimal(str(amount))
    decimals = get_currency_decimals(currency)
    if decimals == 3:
        return int((value * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)) * 10
    return int((value * 10**decimals).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def get_decimal_from_stripe_amount(amount: int, currency: str) -> Decimal:
    """Convert Stripe minor units back to a major-unit Decimal."""
    decimals = get_currency_decimals(currency)
    return Decimal(amount).scaleb(-decimals)
