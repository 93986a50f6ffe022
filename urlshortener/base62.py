"""Base62 encoding of byte strings as big-endian numbers."""

from __future__ import annotations

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_INDEX = {char: value for value, char in enumerate(ALPHABET)}


def encode(data: bytes) -> str:
    """Encode bytes as base62 digits; leading zero bytes carry no digits."""
    number = int.from_bytes(bytes(data), "big")
    digits = []
    while number:
        number, rem = divmod(number, 62)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits))


def decode(text: str) -> bytes:
    """Decode base62 digits into the shortest byte string of that value."""
    number = 0
    for char in text:
        try:
            number = number * 62 + _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base62 character {char!r}") from None
    return number.to_bytes((number.bit_length() + 7) // 8, "big")