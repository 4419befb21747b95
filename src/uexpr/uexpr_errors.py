"""Error types for uexpr."""


class UExprError(Exception):
    """Base error for uexpr."""


class RegisterError(UExprError, KeyError):
    """A register key outside `0`-`9` / `A`-`Z`."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class NestingError(UExprError, RecursionError):
    """Expression nesting exceeds MAX_NESTING."""


class MappingError(UExprError):
    """Raised when an operator-table configuration is invalid.

    Attributes:
        conflicts (list[str]): Human-readable descriptions of conflicting
            operator assignments, e.g. "'<' → low_byte vs popcount".
    """

    def __init__(self, message: str, conflicts: list[str] | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []
