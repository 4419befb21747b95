from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from uexpr.uexpr_constants import MAX_NESTING, WORD_MASK
from uexpr.uexpr_errors import NestingError
from uexpr.uexpr_parser import (
    Evaluation,
    ExpressionParser,
    evaluate,
    identity_extension,
    verify,
)
from uexpr.uexpr_registers import RegisterBank

Hook = Callable[[str, int], int]


def value_of(text: str, registers: object = None, hook: Hook | None = None) -> int:
    result = evaluate(text, registers, hook)  # type: ignore[arg-type]
    assert result.success, f"{text!r} did not parse"
    return result.value


# ── precedence and arithmetic ────────────────────────────────────────


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("1+2*3", 7),
        ("(1+2)*3", 9),
        ("2+3*4-1", 13),
        ("10/3", 3),
        ("10\\3", 1),
        ("7-2-1", 4),
        ("64/4/2", 8),
        ("1+1&3", 2),
        ("4|1+1", 6),
        ("6&3", 2),
        ("6|3", 7),
        ("6^3", 5),
        ("1<<2+1", 5),
        ("2*1<<3", 16),
        (" \t1\n+\v2\f ", 3),
    ],
)
def test_arithmetic_and_precedence(text: str, expected: int) -> None:
    assert value_of(text) == expected


def test_unsigned_wraparound() -> None:
    assert value_of("1-2") == WORD_MASK
    assert value_of("18446744073709551615+2") == 1
    assert value_of("0x100000000*0x100000000") == 0
    assert value_of("2*-3") == WORD_MASK - 5


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("1<<3", 8),
        ("1<<63", 1 << 63),
        ("1<<64", 0),
        ("1<<100", 0),
        ("8>>1", 4),
        ("8>>64", 0),
        ("1 << 2", 4),
        ("1<<-1", 0),
        ("3<<1<<1", 12),
    ],
)
def test_shift(text: str, expected: int) -> None:
    assert value_of(text) == expected


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("?7", 1),
        ("?0", 0),
        ("!0", 1),
        ("!5", 0),
        ("~0", WORD_MASK),
        ("-1", WORD_MASK),
        ("--1", 1),
        ("+5", 5),
        ("!!9", 1),
        ("-0", 0),
        ("~~5", 5),
    ],
)
def test_unary(text: str, expected: int) -> None:
    assert value_of(text) == expected


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("2<>3", 1),
        ("2<>2", 0),
        ("2<=2", 1),
        ("3<=2", 0),
        ("2>=3", 0),
        ("3>=3", 1),
        ("3<2", 0),
        ("2<3", 1),
        ("3>2", 1),
        ("2>3", 0),
        ("1<2<3", 1),
        ("1<-1", 1),
    ],
)
def test_relational(text: str, expected: int) -> None:
    assert value_of(text) == expected


def test_double_equals_is_truthiness_and_not_equality() -> None:
    # `==` is logical AND of both sides' truthiness; kept deliberately
    assert value_of("3==4") == 1
    assert value_of("3==3") == 1
    assert value_of("3==0") == 0
    assert value_of("0==0") == 0


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("2&&3", 1),
        ("1&&0", 0),
        ("0||0", 0),
        ("0||5", 1),
        ("1><1", 0),
        ("1><0", 1),
        ("0><7", 1),
        ("3&&2==1", 1),
        ("1<2&&2<1", 0),
        ("1|2&&0", 0),
    ],
)
def test_boolean(text: str, expected: int) -> None:
    assert value_of(text) == expected


def test_single_equals_is_not_an_operator() -> None:
    assert evaluate("1=2") == Evaluation(1, False)


# ── registers ────────────────────────────────────────────────────────


def test_positional_register_read() -> None:
    registers = [0] * 36
    registers[0] = 5
    assert evaluate("%0", registers) == Evaluation(5, True)


def test_register_bank_forms(bank: RegisterBank) -> None:
    assert value_of("%0*%1", bank) == 35
    assert value_of("%3", [0, 0, 0, 255]) == 255
    assert value_of("%a+%A", {"A": 4}) == 8


def test_builtin_registers(bank: RegisterBank) -> None:
    assert value_of("%B", bank) == 8
    assert value_of("%b", RegisterBank.from_arguments([1, 2, 3])) == 8
    assert value_of("%W", bank) == 8
    assert value_of("%T", bank) == 1_700_000_000_123456789


def test_missing_bank_reads_zero() -> None:
    assert evaluate("%B") == Evaluation(0, True)
    assert evaluate("%9+1") == Evaluation(1, True)


def test_percent_with_other_character_is_a_two_character_no_op() -> None:
    assert evaluate("%$") == Evaluation(0, True)
    assert evaluate("%$+3") == Evaluation(3, True)
    # the space after `%` is consumed, leaving `0` as residual
    assert evaluate("% 0").success is False


def test_percent_at_end_of_input_is_truncated() -> None:
    assert evaluate("%") == Evaluation(0, False)
    assert evaluate("1+%").success is False
    assert verify("%") is False


def test_inactive_evaluation_ignores_registers() -> None:
    assert evaluate("%0", [7], active=False) == Evaluation(0, True)
    assert evaluate("%0+1", RegisterBank([7]), active=False) == Evaluation(1, True)


# ── literals ─────────────────────────────────────────────────────────


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("0x1f", 31),
        ("0XFF", 255),
        ("017", 15),
        ("0", 0),
        ("18446744073709551615", WORD_MASK),
        ("18446744073709551616", WORD_MASK),
    ],
)
def test_literals(text: str, expected: int) -> None:
    assert value_of(text) == expected


@pytest.mark.parametrize("text", ["08", "0x", "1 2", "0b101"])  # type: ignore[misc]
def test_literal_leftovers_fail(text: str) -> None:
    assert evaluate(text).success is False


# ── conditional and sequence ─────────────────────────────────────────


@pytest.mark.parametrize(  # type: ignore[misc]
    "text, expected",
    [
        ("1?2!3", 2),
        ("0?2!3", 3),
        ("0?1!0?2!3", 3),
        ("1?1!0?2!3", 1),
        ("0?1!1?2!3", 2),
        ("1?2", 2),
        ("0?2", 0),
        ("2>1?10!20", 10),
        ("1?0?5!6!7", 6),
        ("(0?1!2)+1", 3),
        (" 1 ? 2 ! 3 ", 2),
    ],
)
def test_conditional(text: str, expected: int) -> None:
    assert value_of(text) == expected


def test_conditional_reads_registers_only_on_taken_branch() -> None:
    registers = [5]
    assert value_of("1?%0!7", registers) == 5
    assert value_of("0?%0!7", registers) == 7
    assert value_of("0?7!%0", registers) == 5


def test_conditional_suppresses_hook_on_untaken_branch(
    doubling_hook: Hook, calls: list[tuple[str, int]]
) -> None:
    assert value_of("0?*5!6", hook=doubling_hook) == 6
    assert calls == []
    assert value_of("1?*5!*6", hook=doubling_hook) == 10
    assert calls == [("*", 5)]


def test_sequence_returns_last_value() -> None:
    assert evaluate("1,2,3") == Evaluation(3, True)
    assert evaluate("(1,2)+1") == Evaluation(3, True)


def test_sequence_evaluates_every_element(
    doubling_hook: Hook, calls: list[tuple[str, int]]
) -> None:
    assert value_of("*1,*2", hook=doubling_hook) == 4
    assert calls == [("*", 1), ("*", 2)]


# ── extension hook ───────────────────────────────────────────────────


def test_extension_hook_applies_to_prefix(doubling_hook: Hook) -> None:
    assert evaluate("*5", hook=doubling_hook) == Evaluation(10, True)


def test_default_hook_is_identity() -> None:
    assert evaluate("*5") == Evaluation(5, True)
    assert identity_extension("@", 9) == 9


@pytest.mark.parametrize("op", list("<>&|^*/\\@="))  # type: ignore[misc]
def test_every_extension_operator_reaches_hook(op: str) -> None:
    seen: list[str] = []

    def hook(o: str, value: int) -> int:
        seen.append(o)
        return value + 100

    assert value_of(f"{op}1", hook=hook) == 101
    assert seen == [op]


def test_extension_prefix_is_distinct_from_infix(doubling_hook: Hook) -> None:
    assert value_of("3*<2", hook=doubling_hook) == 12
    assert value_of("1<<<1", hook=doubling_hook) == 4


def test_nested_extension_prefixes(doubling_hook: Hook) -> None:
    assert value_of("**3", hook=doubling_hook) == 12


def test_hook_result_is_reduced_to_64_bits() -> None:
    assert value_of("@1", hook=lambda op, v: -v) == WORD_MASK


def test_hook_not_called_when_inactive(
    doubling_hook: Hook, calls: list[tuple[str, int]]
) -> None:
    assert evaluate("*5", hook=doubling_hook, active=False) == Evaluation(5, True)
    assert calls == []


# ── failure model ────────────────────────────────────────────────────


@pytest.mark.parametrize(  # type: ignore[misc]
    "text",
    ["1+", "", "   ", "(", "(1+2", "()", "1?", "1?2!", "1,", "2><", "-", "(1]", "1)"],
)
def test_incomplete_input_fails(text: str) -> None:
    assert evaluate(text).success is False


@pytest.mark.parametrize("text, expected", [("$", 0), ("1+$", 1), (")", 0), ("a", 0)])  # type: ignore[misc]
def test_unknown_characters_are_swallowed(text: str, expected: int) -> None:
    assert evaluate(text) == Evaluation(expected, True)


def test_text_stops_at_nul() -> None:
    assert evaluate("1\0junk") == Evaluation(1, True)


def test_division_by_zero_faults() -> None:
    with pytest.raises(ZeroDivisionError):
        evaluate("1/0")
    with pytest.raises(ZeroDivisionError):
        evaluate("1\\0")


def test_verify_still_faults_on_literal_division_by_zero() -> None:
    # literals and division are computed even when evaluation is inactive
    with pytest.raises(ZeroDivisionError):
        verify("1/0")


def test_verify() -> None:
    assert verify("1+2") is True
    assert verify("%0*%1?%2!%3") is True
    assert verify("1+") is False
    assert verify("1 2") is False


def test_nesting_limit() -> None:
    assert value_of("(" * 20 + "1" + ")" * 20) == 1
    with pytest.raises(NestingError):
        evaluate("(" * (MAX_NESTING + 1) + "1" + ")" * (MAX_NESTING + 1))
    with pytest.raises(RecursionError):
        evaluate("-" * 200 + "1")


def test_conditional_chain_counts_toward_nesting_limit() -> None:
    assert value_of("1?" * 20 + "7") == 7
    assert value_of("0?1!" * 20 + "5") == 5
    with pytest.raises(NestingError):
        evaluate("1?" * 600 + "1")
    with pytest.raises(NestingError):
        verify("0?1!" * 600 + "1")


def test_very_long_decimal_literal_saturates() -> None:
    assert evaluate("9" * 5000) == Evaluation(WORD_MASK, True)
    assert evaluate("9" * 5000 + "-1") == Evaluation(WORD_MASK - 1, True)
    assert verify("9" * 5000) is True


def test_parser_reports_residual() -> None:
    parser = ExpressionParser("1+2 junk")
    value, pos = parser.parse()
    assert value == 3
    assert parser.residual(pos) == "junk"
    assert parser.complete(pos) is False


def test_parser_is_reusable() -> None:
    parser = ExpressionParser("(1", [])
    _, pos = parser.parse()
    assert parser.truncated
    _, pos = parser.parse(active=False)
    assert parser.truncated
    assert parser.depth == 0


# ── properties ───────────────────────────────────────────────────────

EXPRESSION_ALPHABET = "0123456789%ABTW()?!~-+<>&|^*@=, x$"


@composite  # type: ignore[misc]
def expressions(draw: Any) -> str:
    return draw(st.text(alphabet=EXPRESSION_ALPHABET, max_size=40))


def _increment(op: str, value: int) -> int:
    return value + 1


@settings(max_examples=300)  # type: ignore[misc]
@given(text=expressions())  # type: ignore[misc]
def test_active_flag_does_not_change_cursor(text: str) -> None:
    registers = RegisterBank(range(1, 37))
    on = ExpressionParser(text, registers, _increment)
    off = ExpressionParser(text, registers, _increment)
    _, pos_on = on.parse(active=True)
    _, pos_off = off.parse(active=False)
    assert pos_on == pos_off
    assert on.complete(pos_on) == off.complete(pos_off)


@given(text=expressions())  # type: ignore[misc]
def test_evaluation_is_deterministic(text: str) -> None:
    registers = RegisterBank(range(36))
    first = evaluate(text, registers, _increment)
    assert first == evaluate(text, registers, _increment)
    assert 0 <= first.value <= WORD_MASK
    assert verify(text) == evaluate(text, registers).success


@given(  # type: ignore[misc]
    a=st.integers(0, WORD_MASK),
    b=st.integers(0, WORD_MASK),
    c=st.integers(0, WORD_MASK),
)
def test_arithmetic_matches_modular_integers(a: int, b: int, c: int) -> None:
    assert value_of("%0+%1*%2", [a, b, c]) == (a + b * c) % (1 << 64)
    assert value_of("%0-%1^%2", [a, b, c]) == ((a - b) % (1 << 64)) ^ c
    assert value_of("%0<>%1", [a, b]) == int(a != b)
