"""
uexpr Expression Parser

Recursive-descent evaluator for the uexpr integer expression language. Parsing
and evaluation happen in a single pass over the source text: each grammar level
takes a cursor position and returns the computed value together with the
position just past what it recognized. Levels only ever call the next-tighter
level, and the cursor never moves backwards.

Grammar Levels (loosest first)
------------------------------
- sequence:       a , b , ...            value of the last element
- condition:      c ? then ! else        chained left to right
- boolean:        &&  ||  ><             truthiness AND / OR / XOR
- relational:     ==  <>  <=  >=  <  >   (`==` is truthiness AND)
- bitwise:        &  |  ^                (`&&` / `||` stop this level)
- additive:       +  -
- multiplicative: *  /  \\               (`\\` is modulo)
- shift:          <<  >>                 (shifting by 64 or more gives 0)
- unary:          ?  !  ~  -  +  and the extension prefixes < > & | ^ * / \\ @ =
- primary:        literal, %register, ( sequence ), anything else is a no-op

All arithmetic is unsigned 64-bit with wraparound.

Evaluation-Active Flag
----------------------
Every level receives an `active` flag. When it is false the text is parsed
exactly as before, but register reads yield 0 and the extension hook is not
called. `verify()` parses with the flag off, and the untaken branch of a
conditional is parsed with it off. Literal values and division are computed
regardless, so `verify("1/0")` raises `ZeroDivisionError`.

Failure Model
-------------
Malformed text never raises. Unknown characters are swallowed as zero-valued
operands, and the caller learns about bad input only through the success flag:
the parse must consume the whole text without running out of input while an
operand or a closing parenthesis was still required.

Entry Points
------------
- `evaluate(text, registers=None, hook=None, active=True) -> Evaluation`
- `verify(text) -> bool`
- `ExpressionParser(text, registers, hook).parse(active) -> (value, position)`

Raises
------
ZeroDivisionError
    Division or modulo by zero, in any mode.
NestingError
    More than MAX_NESTING nested unary, primary or conditional levels.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import NamedTuple, Protocol

from uexpr.uexpr_constants import (
    DIGITS,
    EXTENSION_OPERATORS,
    LETTERS,
    MAX_NESTING,
    UNARY_OPERATORS,
    WORD_BITS,
    WORD_MASK,
)
from uexpr.uexpr_errors import NestingError
from uexpr.uexpr_lexer import is_one_of, peek, scan_unsigned, skip_whitespace
from uexpr.uexpr_registers import RegisterBank

logger = logging.getLogger(__name__)

RegisterSource = RegisterBank | Mapping[str, int] | Sequence[int] | None


class OperatorExtension(Protocol):
    """Callable that gives meaning to the extension prefix operators.

    Receives the operator character (one of `< > & | ^ * / \\ @ =`) and the
    already evaluated operand, and returns the replacement value. It is only
    called while evaluation is active.
    """

    def __call__(self, op: str, value: int) -> int: ...  # pragma: no cover


def identity_extension(op: str, value: int) -> int:
    """Default extension: every extension prefix behaves like unary `+`."""
    return value


class Evaluation(NamedTuple):
    """Outcome of `evaluate`: the value and whether the whole text parsed."""

    value: int
    success: bool


class ExpressionParser:
    """
    Evaluator state for one expression text.

    Holds the source text, the register bank and the extension hook, plus two
    pieces of per-parse state: whether the grammar ran out of input while it
    still needed something (`truncated`) and the current nesting depth.

    Attributes
    ----------
    text : str
        Source text, cut at the first NUL character.
    registers : RegisterBank | None
        Bank read by `%` operands; None makes every read yield 0.
    hook : OperatorExtension
        Extension prefix handler.
    truncated : bool
        Set when an operand, register key or `)` was required at end of input.
    depth : int
        Current number of nested unary, primary and conditional levels.
    """

    def __init__(
        self,
        text: str,
        registers: RegisterSource = None,
        hook: OperatorExtension | None = None,
    ) -> None:
        self.text: str = text.split("\0", 1)[0]
        self.registers: RegisterBank | None = RegisterBank.coerce(registers)
        self.hook: OperatorExtension = hook if hook is not None else identity_extension
        self.truncated: bool = False
        self.depth: int = 0

    def parse(self, active: bool = True) -> tuple[int, int]:
        """Parses the whole text as a sequence expression.

        Returns:
            tuple[int, int]: The value and the position where parsing stopped.
        """
        self.truncated = False
        self.depth = 0
        return self.parse_sequence(0, active)

    def complete(self, pos: int) -> bool:
        """True if a parse that stopped at `pos` consumed the whole text."""
        return pos >= len(self.text) and not self.truncated

    def residual(self, pos: int) -> str:
        """The unconsumed text after a parse that stopped at `pos`."""
        return self.text[pos:]

    @contextmanager
    def _nested(self) -> Iterator[None]:
        if self.depth >= MAX_NESTING:
            raise NestingError(f"Expression nested deeper than {MAX_NESTING} levels")
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1

    # ── primary ──────────────────────────────────────────────────────

    def parse_primary(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        pos = skip_whitespace(text, pos)
        ch = peek(text, pos)
        if ch == "":
            self.truncated = True
            return 0, pos
        if ch in DIGITS:
            return scan_unsigned(text, pos)
        if ch == "%":
            return self._read_register(pos + 1, active)
        if ch == "(":
            value, pos = self.parse_sequence(pos + 1, active)
            pos = skip_whitespace(text, pos)
            if peek(text, pos) == ")":
                return value, pos + 1
            if pos >= len(text):
                self.truncated = True
            return value, pos
        return 0, pos + 1

    def _read_register(self, pos: int, active: bool) -> tuple[int, int]:
        # `pos` is just past the `%`; the following character, if any, is consumed.
        key = peek(self.text, pos)
        if key == "":
            self.truncated = True
            return 0, pos
        if not (is_one_of(key, DIGITS) or is_one_of(key, LETTERS)):
            return 0, pos + 1
        if not active or self.registers is None:
            return 0, pos + 1
        return self.registers[key], pos + 1

    # ── unary ────────────────────────────────────────────────────────

    def parse_unary(self, pos: int, active: bool) -> tuple[int, int]:
        with self._nested():
            pos = skip_whitespace(self.text, pos)
            op = peek(self.text, pos)
            if is_one_of(op, UNARY_OPERATORS):
                value, pos = self.parse_unary(pos + 1, active)
                if op == "?":
                    value = int(value != 0)
                elif op == "!":
                    value = int(value == 0)
                elif op == "~":
                    value = ~value & WORD_MASK
                elif op == "-":
                    value = -value & WORD_MASK
                return value, pos
            if is_one_of(op, EXTENSION_OPERATORS):
                value, pos = self.parse_unary(pos + 1, active)
                if active:
                    value = int(self.hook(op, value)) & WORD_MASK
                return value, pos
            return self.parse_primary(pos, active)

    # ── binary levels ────────────────────────────────────────────────

    def parse_shift(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_unary(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            pair = text[pos : pos + 2]
            if pair == "<<":
                amount, pos = self.parse_unary(pos + 2, active)
                value = (value << amount) & WORD_MASK if amount < WORD_BITS else 0
            elif pair == ">>":
                amount, pos = self.parse_unary(pos + 2, active)
                value = value >> amount if amount < WORD_BITS else 0
            else:
                return value, pos

    def parse_multiplicative(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_shift(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            op = peek(text, pos)
            if op == "*":
                right, pos = self.parse_shift(pos + 1, active)
                value = (value * right) & WORD_MASK
            elif op == "/":
                right, pos = self.parse_shift(pos + 1, active)
                value = value // right
            elif op == "\\":
                right, pos = self.parse_shift(pos + 1, active)
                value = value % right
            else:
                return value, pos

    def parse_additive(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_multiplicative(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            op = peek(text, pos)
            if op == "+":
                right, pos = self.parse_multiplicative(pos + 1, active)
                value = (value + right) & WORD_MASK
            elif op == "-":
                right, pos = self.parse_multiplicative(pos + 1, active)
                value = (value - right) & WORD_MASK
            else:
                return value, pos

    def parse_bitwise(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_additive(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            op = peek(text, pos)
            if op in ("&", "|") and peek(text, pos, 1) == op:
                # `&&` and `||` belong to the boolean level
                return value, pos
            if op == "&":
                right, pos = self.parse_additive(pos + 1, active)
                value &= right
            elif op == "|":
                right, pos = self.parse_additive(pos + 1, active)
                value |= right
            elif op == "^":
                right, pos = self.parse_additive(pos + 1, active)
                value ^= right
            else:
                return value, pos

    def parse_relational(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_bitwise(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            pair = text[pos : pos + 2]
            if pair == "==":
                # truthiness AND, not equality
                right, pos = self.parse_bitwise(pos + 2, active)
                value = int(value != 0 and right != 0)
            elif pair == "<>":
                right, pos = self.parse_bitwise(pos + 2, active)
                value = int(value != right)
            elif pair == "<=":
                right, pos = self.parse_bitwise(pos + 2, active)
                value = int(value <= right)
            elif pair == ">=":
                right, pos = self.parse_bitwise(pos + 2, active)
                value = int(value >= right)
            elif pair == "><":
                return value, pos
            elif pair[:1] == "<":
                right, pos = self.parse_bitwise(pos + 1, active)
                value = int(value < right)
            elif pair[:1] == ">":
                right, pos = self.parse_bitwise(pos + 1, active)
                value = int(value > right)
            else:
                return value, pos

    def parse_boolean(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_relational(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            pair = text[pos : pos + 2]
            if pair == "&&":
                right, pos = self.parse_relational(pos + 2, active)
                value = int(value != 0 and right != 0)
            elif pair == "||":
                right, pos = self.parse_relational(pos + 2, active)
                value = int(value != 0 or right != 0)
            elif pair == "><":
                right, pos = self.parse_relational(pos + 2, active)
                value = int((value != 0) != (right != 0))
            else:
                return value, pos

    # ── conditional and sequence ─────────────────────────────────────

    def parse_condition(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_boolean(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            if peek(text, pos) != "?":
                return value, pos
            value, pos = self._parse_alternation(pos + 1, active, value)

    def _parse_alternation(self, pos: int, active: bool, cond: int) -> tuple[int, int]:
        with self._nested():
            then_value, pos = self.parse_condition(pos, active and cond != 0)
            pos = skip_whitespace(self.text, pos)
            if peek(self.text, pos) == "!":
                else_value, pos = self.parse_condition(pos + 1, active and cond == 0)
                return (then_value if cond else else_value), pos
            return (then_value if cond else 0), pos

    def parse_sequence(self, pos: int, active: bool) -> tuple[int, int]:
        text = self.text
        value, pos = self.parse_condition(pos, active)
        while True:
            pos = skip_whitespace(text, pos)
            if peek(text, pos) != ",":
                return value, pos
            value, pos = self.parse_condition(pos + 1, active)


def evaluate(
    text: str,
    registers: RegisterSource = None,
    hook: OperatorExtension | None = None,
    *,
    active: bool = True,
) -> Evaluation:
    """Evaluates an expression.

    Args:
        text: The expression source.
        registers: A RegisterBank, a sequence of up to 36 slot values or a
            `{key: value}` mapping. None makes every register read 0.
        hook: Extension prefix handler. Defaults to `identity_extension`.
        active: Pass False to parse without reading registers or calling
            the hook.

    Returns:
        Evaluation: The value and whether the whole text was consumed.

    Raises:
        ZeroDivisionError: On division or modulo by zero.
        NestingError: If the expression is nested too deeply.
    """
    parser = ExpressionParser(text, registers, hook)
    value, pos = parser.parse(active)
    success = parser.complete(pos)
    if not success:
        logger.debug("unconsumed input %r in %r", parser.residual(pos), text)
    logger.debug("evaluated %r -> %d (success=%s)", text, value, success)
    return Evaluation(value, success)


def verify(text: str) -> bool:
    """Checks that `text` parses completely, without reading any register.

    Raises:
        ZeroDivisionError: Literal division by zero is still computed.
        NestingError: If the expression is nested too deeply.
    """
    parser = ExpressionParser(text)
    _, pos = parser.parse(active=False)
    return parser.complete(pos)


__all__ = [
    "Evaluation",
    "ExpressionParser",
    "OperatorExtension",
    "evaluate",
    "identity_extension",
    "verify",
]
