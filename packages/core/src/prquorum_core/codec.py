"""Base-62 codec for short pull request references.

The alphabet order is a compatibility contract: short links minted by one
install must decode identically in every other one.
"""

from __future__ import annotations

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)

_INDEX = {symbol: i for i, symbol in enumerate(ALPHABET)}


class ValidationError(ValueError):
    """Malformed caller input to the codec."""


def encode(n: int) -> str:
    """Encode a non-negative integer as a base-62 string without leading zeros."""
    if n < 0:
        raise ValidationError(f"Value must be non-negative, got {n}")
    if n == 0:
        return ALPHABET[0]

    symbols = []
    while n > 0:
        n, remainder = divmod(n, BASE)
        symbols.append(ALPHABET[remainder])
    return "".join(reversed(symbols))


def decode(token: str) -> int:
    """Decode a base-62 string back to its integer value."""
    if not token:
        raise ValidationError("Base-62 token cannot be empty")

    value = 0
    for symbol in token:
        index = _INDEX.get(symbol)
        if index is None:
            raise ValidationError(f"Invalid base-62 character {symbol!r} in {token!r}")
        value = value * BASE + index
    return value


def is_valid(token: str) -> bool:
    return bool(token) and all(symbol in _INDEX for symbol in token)


def is_encoded(token: str) -> bool:
    """True for a valid token that cannot be mistaken for a decimal id."""
    return is_valid(token) and not token.isdigit()


def route_item_id(token: str) -> int:
    """Turn an inbound route segment into an item id.

    A segment with any non-digit alphabet character is a base-62 token;
    an all-digit segment is already the decimal id.
    """
    token = token.strip()
    if is_encoded(token):
        return decode(token)
    if token.isascii() and token.isdigit():
        return int(token)
    raise ValidationError(f"Not an item id or base-62 token: {token!r}")
