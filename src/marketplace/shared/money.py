"""Money helpers. Amounts are integers in the currency's minor unit."""

DEFAULT_CURRENCY = "UGX"

# Currencies whose minor unit is the major unit (no decimals).
ZERO_DECIMAL_CURRENCIES = frozenset({"UGX", "KES", "RWF", "TZS", "JPY", "KRW"})


def format_amount(amount: int, currency: str = DEFAULT_CURRENCY) -> str:
    """Human-readable amount, e.g. ``UGX 12,500`` or ``USD 12.50``."""
    if currency in ZERO_DECIMAL_CURRENCIES:
        return f"{currency} {amount:,}"
    return f"{currency} {amount / 100:,.2f}"
