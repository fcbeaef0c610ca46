from __future__ import annotations

import re

TICKER_PATTERN = re.compile(r"^[A-Za-z]{3,4}$")

# Tickers of real-world assets, reserved to keep guild currencies from
# impersonating them.
RESERVED_TICKERS = frozenset(
    {
        # Fiat
        "USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "CNY", "SEK", "NZD",
        "MXN", "SGD", "HKD", "NOK", "KRW", "TRY", "RUB", "INR", "BRL", "ZAR",
        "MYR", "PHP", "IDR", "THB", "VND", "PKR", "BGN", "HRK", "CZK", "DKK",
        "HUF", "PLN", "RON", "COP", "AED", "SAR", "QAR", "KWD", "BHD", "OMR",
        "JOD", "LBP", "EGP", "ILS", "NGN", "GHS", "KES", "UGX", "ETB", "MAD",
        "TND", "ARS", "CLP", "PEN", "UYU", "BWP", "LSL", "SZL", "MUR", "SCR",
        # Crypto
        "BTC", "ETH", "XRP", "BCH", "LTC", "EOS", "XLM", "ADA", "TRX", "NEO",
        "IOTA", "XMR", "DASH", "ZEC", "BSV", "DOT", "DOGE", "VET", "LINK",
        "UNI", "AAVE", "SNX", "YFI", "BAND", "REN", "CELO", "FIL", "ALGO",
        "ATOM", "AVAX", "SOLA", "SOL", "FTT", "OKB", "BNB", "LEO", "SHIB",
        "DYDX", "ARB", "BLUR", "GMX", "JOE", "MAGI", "ILV", "ENJ", "SAND",
        "MANA", "FLOW", "GALA", "APE", "BAYC", "MINT", "LOOT",
        # Metals and commodities
        "XAU", "XAG", "XPT", "XPD", "WTI", "BREN", "GOLD", "SILV",
    }
)


def normalize_ticker(ticker: str, *, check_reserved: bool = True) -> str:
    """Validate a user-chosen ticker and return it upper-cased."""
    if not TICKER_PATTERN.match(ticker):
        raise ValueError(
            f"Currency ticker must be 3-4 letters (A-Z), got {ticker!r}"
        )
    normalized = ticker.upper()
    if check_reserved and normalized in RESERVED_TICKERS:
        raise ValueError(f"The ticker {normalized!r} is reserved")
    return normalized
