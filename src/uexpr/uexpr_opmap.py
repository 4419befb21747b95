"""
Provides the `OperatorTable` class, a configurable extension hook for uexpr.

The expression language reserves ten prefix operator characters
(`< > & | ^ * / \\ @ =`) whose meaning is supplied by the caller. An
`OperatorTable` assigns each of them a named transform from `TRANSFORMS`, and
is itself callable with `(op, value)`, so it can be passed straight to
`evaluate()` as the hook. Unassigned operators behave as identity.

Classes:
    - OperatorTable: Maps extension operator characters to transform names.
    - MappingError (re-exported): Raised on invalid or conflicting assignments.

Features:
    - Dict configuration with conflict detection; keys may be a single
      operator, a comma-separated string of operators, or an iterable of them
    - Loads assignments from JSON configuration files
    - Generates assignment reports for the CLI and REPL

Usage:
    >>> table = OperatorTable()
    >>> table.configure({"<": "low_byte", ">": "high_byte"})
    >>> table("<", 0x1234)
    52
"""

import json
import logging
import math
from collections.abc import Callable
from typing import Any

from uexpr.uexpr_constants import EXTENSION_OPERATORS, WORD_BITS, WORD_BYTES, WORD_MASK
from uexpr.uexpr_errors import MappingError

logger = logging.getLogger(__name__)


def _signed_abs(v: int) -> int:
    return (-v) & WORD_MASK if v >> (WORD_BITS - 1) else v


def _bit_reverse(v: int) -> int:
    return int(format(v, f"0{WORD_BITS}b")[::-1], 2)


TRANSFORMS: dict[str, Callable[[int], int]] = {
    "identity": lambda v: v,
    "low_byte": lambda v: v & 0xFF,
    "high_byte": lambda v: (v >> 8) & 0xFF,
    "low_word": lambda v: v & 0xFFFF,
    "high_word": lambda v: (v >> 16) & 0xFFFF,
    "popcount": lambda v: bin(v).count("1"),
    "parity": lambda v: bin(v).count("1") & 1,
    "bit_length": lambda v: v.bit_length(),
    "byte_swap": lambda v: int.from_bytes(v.to_bytes(WORD_BYTES, "little"), "big"),
    "bit_reverse": _bit_reverse,
    "lowest_set_bit": lambda v: v & -v,
    "isqrt": math.isqrt,
    "square": lambda v: (v * v) & WORD_MASK,
    "double": lambda v: (v << 1) & WORD_MASK,
    "half": lambda v: v >> 1,
    "signed_abs": _signed_abs,
}
"""Named unsigned 64-bit transforms that extension operators can be bound to."""


class OperatorTable:
    """Assignment of extension prefix operators to named transforms.

    Attributes:
        assignments (dict[str, str]): Operator character → transform name.
    """

    def __init__(self, assignments: dict[Any, str] | None = None) -> None:
        self.assignments: dict[str, str] = {}
        if assignments:
            self.configure(assignments)

    def __call__(self, op: str, value: int) -> int:
        name = self.assignments.get(op)
        if name is None:
            return value
        return TRANSFORMS[name](value) & WORD_MASK

    def __repr__(self) -> str:
        return f"OperatorTable({self.assignments!r})"

    def report(self) -> str:
        """Generates a formatted report of the current assignments.

        Returns:
            A newline-separated `op → transform` listing, in operator order,
            or a short notice when nothing is assigned.
        """
        if not self.assignments:
            return "(no operator extensions assigned)"
        lines = [
            f"{op:>4} → {self.assignments[op]}"
            for op in EXTENSION_OPERATORS
            if op in self.assignments
        ]
        return "\n".join(lines)

    def summary(self) -> dict[str, str]:
        """Returns a copy of the current assignments."""
        return dict(self.assignments)

    def reset(self) -> None:
        """Drops every assignment, restoring identity behaviour."""
        self.assignments.clear()

    def _extract_operators(self, entry: Any) -> list[str]:
        """Flattens a configuration key into individual operator characters.

        Strings are split on commas (so `"<,>"` names two operators) and
        stripped; iterables are flattened recursively.
        """
        if isinstance(entry, str):
            return [part.strip() for part in entry.split(",") if part.strip()]
        if isinstance(entry, (list, tuple, set, frozenset)):
            ops: list[str] = []
            for item in entry:
                ops.extend(self._extract_operators(item))
            return ops
        raise MappingError(f"Unsupported operator entry: {entry!r}")

    def load_from_json(self, path: str) -> None:
        """
        Loads operator assignments from a JSON file and applies them via `configure`.

        Example JSON structure:
            {
                "<": "low_byte",
                ">": "high_byte",
                "@,=": "popcount"
            }

        Args:
            path: Path to the JSON file.

        Raises:
            MappingError: If the file cannot be read or the configuration is invalid.
        """
        try:
            with open(path, encoding="utf-8") as f:
                raw_cfg = json.load(f)
        except (OSError, ValueError) as e:
            raise MappingError(f"Failed to load operator file: {e}") from e
        if not isinstance(raw_cfg, dict):
            raise MappingError("Operator file must contain a JSON object")
        self.configure(raw_cfg)
        logger.info("loaded %d operator assignment(s) from %s", len(raw_cfg), path)

    def configure(self, cfg: dict[Any, str]) -> None:
        """
        Applies new operator assignments on top of the current ones.

        Args:
            cfg: Maps operators (or groups of operators) to transform names.

        Raises:
            MappingError: If any of the following occur:
                - `cfg` is not a dict
                - a transform name is not in `TRANSFORMS`
                - an operator is not one of the extension operators
                - an operator is assigned two different transforms
        """
        if not isinstance(cfg, dict):
            raise MappingError("Configuration must be a dict")

        new_assignments: dict[str, str] = {}
        conflicts: list[str] = []

        for op_group, name in cfg.items():
            if not isinstance(name, str) or name not in TRANSFORMS:
                raise MappingError(f"Unknown transform name: {name}")
            for op in self._extract_operators(op_group):
                if len(op) != 1 or op not in EXTENSION_OPERATORS:
                    raise MappingError(f"Not an extension operator: {op!r}")
                previous = new_assignments.get(op)
                if previous is not None and previous != name:
                    conflicts.append(f"'{op}' → conflict between {previous} and {name}")
                else:
                    new_assignments[op] = name

        if conflicts:
            raise MappingError("Operator collision(s) detected", conflicts)

        self.assignments.update(new_assignments)
        logger.debug("operator table now %s", self.assignments)


__all__ = ["MappingError", "OperatorTable", "TRANSFORMS"]
