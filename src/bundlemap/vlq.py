from __future__ import annotations

"""Base64 variable-length quantities as used by Source Map v3 mappings.

Each base64 digit carries five data bits and a continuation bit (0x20). The
least significant bit of the first group holds the sign.
"""

from .errors import SourceMapFormatError

BASE64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"

_DIGIT_VALUES = {ch: i for i, ch in enumerate(BASE64_ALPHABET)}

_SHIFT = 5
_MASK = (1 << _SHIFT) - 1
_CONTINUATION = 1 << _SHIFT


def encode_vlq(value: int) -> str:
    encoded = (-value << 1) | 1 if value < 0 else value << 1
    digits: list[str] = []
    while True:
        digit = encoded & _MASK
        encoded >>= _SHIFT
        if encoded:
            digit |= _CONTINUATION
        digits.append(BASE64_ALPHABET[digit])
        if not encoded:
            return "".join(digits)


def decode_vlq(text: str, pos: int = 0) -> tuple[int, int]:
    """Decode one VLQ starting at ``pos``; return ``(value, next_pos)``."""

    result = 0
    shift = 0
    while True:
        if pos >= len(text):
            raise SourceMapFormatError(f"Truncated VLQ at offset {pos}")
        ch = text[pos]
        digit = _DIGIT_VALUES.get(ch)
        if digit is None:
            raise SourceMapFormatError(f"Invalid base64 digit {ch!r} at offset {pos}")
        pos += 1
        result |= (digit & _MASK) << shift
        shift += _SHIFT
        if not digit & _CONTINUATION:
            break

    negative = result & 1
    result >>= 1
    return (-result if negative else result), pos


def decode_vlq_segment(segment: str) -> list[int]:
    values: list[int] = []
    pos = 0
    while pos < len(segment):
        value, pos = decode_vlq(segment, pos)
        values.append(value)
    return values
