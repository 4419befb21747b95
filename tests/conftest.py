import os

import pytest

from uexpr.uexpr_registers import RegisterBank

# Subprocess CLI tests report coverage when started under `coverage run`
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()


@pytest.fixture  # type: ignore[misc]
def bank() -> RegisterBank:
    """Conventional bank with %0-%3 set and a fixed %T."""
    return RegisterBank.from_arguments([5, 7, 0, 255], now_ns=1_700_000_000_123456789)


@pytest.fixture  # type: ignore[misc]
def calls() -> list[tuple[str, int]]:
    return []


@pytest.fixture  # type: ignore[misc]
def doubling_hook(calls: list[tuple[str, int]]):  # type: ignore[no-untyped-def]
    def hook(op: str, value: int) -> int:
        calls.append((op, value))
        return value * 2

    return hook
