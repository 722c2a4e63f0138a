import re

_SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9.^=_-]{1,16}$")


def normalize_symbol(symbol: str) -> str:
    cleaned = symbol.strip().upper()
    if not cleaned or not _SYMBOL_PATTERN.match(cleaned):
        raise ValueError("invalid symbol")
    return cleaned


def parse_symbol_list(raw: str) -> list[str]:
    """Split a comma-separated list, normalizing and dropping duplicates in order."""
    out: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        if not part.strip():
            continue
        symbol = normalize_symbol(part)
        if symbol in seen:
            continue
        seen.add(symbol)
        out.append(symbol)
    return out
