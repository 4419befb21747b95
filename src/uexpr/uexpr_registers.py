"""
Register bank for the uexpr expression language.

Expressions read operands from 36 registers: `%0`-`%9` are positional slots
and `%A`-`%Z` are named slots (letters are case-insensitive). The evaluator
only ever reads a bank; callers build one per evaluation.

Classes:
    RegisterBank: Fixed 36-slot mapping of register keys to 64-bit unsigned values.

Functions:
    register_index(key) -> int:
        Maps `0`-`9` to 0-9 and `A`-`Z` / `a`-`z` to 10-35.

Usage:
    >>> bank = RegisterBank.from_arguments([5, 7])
    >>> bank["0"], bank["b"]
    (5, 8)
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator, Mapping, Sequence

from uexpr.uexpr_constants import (
    BITS_PER_BYTE,
    BYTE_BITS_REGISTER,
    NAMED_REGISTERS,
    POSITIONAL_REGISTERS,
    REGISTER_COUNT,
    REGISTER_KEYS,
    TIME_REGISTER,
    WORD_BYTES,
    WORD_BYTES_REGISTER,
    WORD_MASK,
)
from uexpr.uexpr_errors import RegisterError


def register_index(key: str) -> int:
    """Resolves a register key to its slot index.

    Args:
        key (str): A single digit or ASCII letter.

    Returns:
        int: Slot index in the range 0-35.

    Raises:
        RegisterError: If `key` is not a valid register key.
    """
    if isinstance(key, str) and len(key) == 1 and key.isascii():
        if key in POSITIONAL_REGISTERS:
            return POSITIONAL_REGISTERS.index(key)
        upper = key.upper()
        if upper in NAMED_REGISTERS:
            return len(POSITIONAL_REGISTERS) + NAMED_REGISTERS.index(upper)
    raise RegisterError(f"Invalid register key: {key!r}")


class RegisterBank(Mapping[str, int]):
    """A read-only bank of 36 unsigned 64-bit registers.

    Values are reduced modulo 2**64 on construction, so negative inputs wrap
    the same way a C `uintmax_t` conversion would. Iteration yields the
    canonical keys `0`-`9`, `A`-`Z` in slot order.

    Attributes:
        slots (tuple[int, ...]): The 36 register values in slot order.
    """

    def __init__(self, values: Iterable[int] = ()) -> None:
        slots = [int(v) & WORD_MASK for v in values]
        if len(slots) > REGISTER_COUNT:
            raise RegisterError(
                f"Register bank takes at most {REGISTER_COUNT} values, got {len(slots)}"
            )
        slots.extend([0] * (REGISTER_COUNT - len(slots)))
        self.slots: tuple[int, ...] = tuple(slots)

    def __getitem__(self, key: str) -> int:
        return self.slots[register_index(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(REGISTER_KEYS)

    def __len__(self) -> int:
        return REGISTER_COUNT

    def __repr__(self) -> str:
        used = ", ".join(f"{k}={v}" for k, v in self.items() if v)
        return f"RegisterBank({used})"

    def read(self, index: int) -> int:
        """Returns the value in slot `index` (0-35)."""
        if not 0 <= index < REGISTER_COUNT:
            raise RegisterError(f"Register slot out of range: {index}")
        return self.slots[index]

    def replace(self, **changes: int) -> RegisterBank:
        """Returns a copy with the given registers overwritten.

        Keyword names are register keys; digits need the `**{"0": 1}` form.
        """
        slots = list(self.slots)
        for key, value in changes.items():
            slots[register_index(key)] = int(value) & WORD_MASK
        return RegisterBank(slots)

    @classmethod
    def from_mapping(cls, values: Mapping[str, int]) -> RegisterBank:
        """Builds a bank from a `{key: value}` mapping; other slots are 0."""
        return cls().replace(**{str(k): v for k, v in values.items()})

    @classmethod
    def from_arguments(
        cls, arguments: Sequence[int] = (), now_ns: int | None = None
    ) -> RegisterBank:
        """Builds the conventional bank used by the command-line wrapper.

        Positional slots `0`-`9` are filled left to right from `arguments`
        (anything past the tenth value is ignored). `B` holds bits per byte,
        `W` the byte width of a value and `T` the current time in nanoseconds
        since the epoch; these are written last, so they cannot be overridden.

        Args:
            arguments: Numeric operand values.
            now_ns: Timestamp override for `T`. Defaults to `time.time_ns()`.

        Returns:
            RegisterBank: The populated bank.
        """
        slots = [int(v) for v in list(arguments)[: len(POSITIONAL_REGISTERS)]]
        bank = cls(slots)
        return bank.replace(
            **{
                BYTE_BITS_REGISTER: BITS_PER_BYTE,
                WORD_BYTES_REGISTER: WORD_BYTES,
                TIME_REGISTER: time.time_ns() if now_ns is None else now_ns,
            }
        )

    @classmethod
    def coerce(
        cls, registers: RegisterBank | Mapping[str, int] | Sequence[int] | None
    ) -> RegisterBank | None:
        """Normalizes the register argument accepted by `evaluate`.

        Returns None unchanged so the evaluator can treat a missing bank as
        all-zero reads.
        """
        if registers is None or isinstance(registers, RegisterBank):
            return registers
        if isinstance(registers, Mapping):
            return cls.from_mapping(registers)
        return cls(registers)


__all__ = ["RegisterBank", "register_index"]
