"""
Lexical primitives for the uexpr expression language.

The grammar engine never tokenizes ahead of time: every level scans the source
text directly from an integer cursor position. This module holds the pieces of
that scanning that are shared between levels and with the command-line wrapper.

Functions:
    peek(text, pos, offset=0) -> str:
        Character at `pos + offset`, or "" past either end.
    skip_whitespace(text, pos) -> int:
        First position at or after `pos` that is not C whitespace.
    scan_unsigned(text, pos) -> tuple[int, int]:
        Longest numeric literal at `pos` using C `strtoumax(..., 0)` prefix rules.
    parse_unsigned(text) -> int:
        Whole-string `strtoumax` conversion used for command-line values.

Literal rules:
    - `0x` / `0X` followed by at least one hex digit: hexadecimal.
    - A leading `0` otherwise: octal (`0` alone is zero, `08` scans only `0`).
    - Anything else: decimal.
    - Values that do not fit in 64 bits saturate to 2**64 - 1; all digits of
      the literal are still consumed.

Example:
    >>> scan_unsigned("0x1F+1", 0)
    (31, 4)
    >>> parse_unsigned("-1") == 2**64 - 1
    True
"""

from uexpr.uexpr_constants import DIGITS, HEX_DIGITS, OCTAL_DIGITS, WHITESPACE, WORD_MASK

# 2**64 - 1 has 20 decimal digits; longer runs always saturate.
MAX_DECIMAL_DIGITS = 20


def peek(text: str, pos: int, offset: int = 0) -> str:
    """Returns the character at `pos + offset` without consuming it.

    Args:
        text (str): The source text.
        pos (int): Current cursor position.
        offset (int, optional): Lookahead distance. Defaults to 0.

    Returns:
        str: The character, or an empty string if out of bounds.
    """
    index = pos + offset
    if index < 0 or index >= len(text):
        return ""
    return text[index]


def is_one_of(ch: str, alphabet: str) -> bool:
    """True if `ch` is a single character found in `alphabet` ("" never is)."""
    return ch != "" and ch in alphabet


def skip_whitespace(text: str, pos: int) -> int:
    """Advances `pos` past any whitespace characters."""
    n = len(text)
    while pos < n and text[pos] in WHITESPACE:
        pos += 1
    return pos


def _scan_digits(text: str, pos: int, alphabet: str) -> int:
    n = len(text)
    while pos < n and text[pos] in alphabet:
        pos += 1
    return pos


def scan_unsigned(text: str, pos: int) -> tuple[int, int]:
    """Scans the longest unsigned literal starting at `pos`.

    The caller guarantees `text[pos]` is a decimal digit.

    Args:
        text (str): The source text.
        pos (int): Position of the first digit.

    Returns:
        tuple[int, int]: The literal value (saturated to 64 bits) and the
        position just past the literal.
    """
    if text[pos] == "0":
        if peek(text, pos, 1) in ("x", "X") and is_one_of(peek(text, pos, 2), HEX_DIGITS):
            end = _scan_digits(text, pos + 2, HEX_DIGITS)
            value = int(text[pos + 2 : end], 16)
        else:
            end = _scan_digits(text, pos + 1, OCTAL_DIGITS)
            value = int(text[pos:end], 8)
    else:
        end = _scan_digits(text, pos, DIGITS)
        digits = text[pos:end].lstrip("0")
        if len(digits) > MAX_DECIMAL_DIGITS:
            return WORD_MASK, end
        value = int(digits or "0", 10)
    return min(value, WORD_MASK), end


def parse_unsigned(text: str) -> int:
    """Converts a command-line value the way C `strtoumax(text, NULL, 0)` does.

    Leading whitespace and one optional sign are accepted; a minus sign negates
    modulo 2**64. Out-of-range magnitudes saturate to 2**64 - 1 (and stay
    saturated when negated, as in C). Trailing junk is ignored and a string with
    no digits converts to 0.

    Args:
        text (str): The value as typed by the user.

    Returns:
        int: An unsigned 64-bit value.
    """
    pos = skip_whitespace(text, 0)
    negative = False
    if peek(text, pos) in ("+", "-"):
        negative = text[pos] == "-"
        pos += 1
    if not is_one_of(peek(text, pos), DIGITS):
        return 0
    value, _ = scan_unsigned(text, pos)
    if value == WORD_MASK:
        return value
    return (-value) & WORD_MASK if negative else value


__all__ = ["is_one_of", "parse_unsigned", "peek", "scan_unsigned", "skip_whitespace"]
