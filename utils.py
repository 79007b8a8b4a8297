import re

import base58

_SOLANA_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_solana_address(address: str) -> bool:
    """Base58 string that decodes to a 32-byte public key."""
    address = address.strip()
    if not _SOLANA_ADDRESS.match(address):
        return False
    try:
        return len(base58.b58decode(address)) == 32
    except ValueError:
        return False


def short_address(address: str, chars: int = 6) -> str:
    """Truncate: 7xKXtg...osgAsU"""
    if len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"


def parse_symbols(raw: str) -> list[str]:
    """'sol, btc,,eth' -> ['SOL', 'BTC', 'ETH'] (order kept, duplicates dropped)."""
    symbols: list[str] = []
    for part in raw.split(","):
        symbol = part.strip().upper()
        if symbol and symbol not in symbols:
            symbols.append(symbol)
    return symbols


def format_currency(amount: float, symbol: str = "$", decimals: int = 2) -> str:
    if abs(amount) >= 1_000_000_000:
        return f"{symbol}{amount / 1_000_000_000:,.{decimals}f}B"
    elif abs(amount) >= 1_000_000:
        return f"{symbol}{amount / 1_000_000:,.{decimals}f}M"
    elif abs(amount) >= 1_000:
        return f"{symbol}{amount / 1_000:,.{decimals}f}K"
    return f"{symbol}{amount:,.{decimals}f}"
