"""
uexpr CLI Entrypoint.

This module provides the command-line calculator built on the uexpr evaluator.

Features:
    - Evaluate one expression against up to ten numeric operands (`%0`-`%9`).
    - Pre-populate `%B` (bits per byte), `%W` (bytes per value) and `%T`
      (current time in nanoseconds).
    - Print the result in decimal or, with `-x`, in C `%#x` hexadecimal.
    - Bind the extension prefix operators from a JSON operator file
      (`--ops FILE`, or the `UEXPR_OPS` environment variable).
    - Check syntax only with `--verify`.
    - Launch an interactive REPL when no expression is given.

Exit status is 0 when the expression parsed completely and 1 otherwise
(including division by zero). Invalid operator files exit with 2.

Example usage:
    uexpr "1+2*3"
    uexpr -x "%0 << %1" 1 12
    uexpr --ops ops.json "<%0" 0x1234
    uexpr -- "-%0" 5

Functions:
    format_value(value: int, hex_output: bool = False) -> str
    run_uexpr(expression: str, values: Sequence[str] = (), hex_output: bool = False,
              table: OperatorTable | None = None, verify_only: bool = False) -> int
    main(argv: list[str] | None = None) -> int
"""

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from uexpr.uexpr_constants import OPS_ENV_VAR, POSITIONAL_REGISTERS
from uexpr.uexpr_errors import MappingError, NestingError
from uexpr.uexpr_lexer import parse_unsigned
from uexpr.uexpr_opmap import OperatorTable
from uexpr.uexpr_parser import evaluate, verify
from uexpr.uexpr_registers import RegisterBank

logger = logging.getLogger(__name__)


def format_value(value: int, hex_output: bool = False) -> str:
    """Formats a result like C `printf("%ju")` / `printf("%#jx")`."""
    if hex_output:
        return f"{value:#x}" if value else "0"
    return str(value)


def run_uexpr(
    expression: str,
    values: Sequence[str] = (),
    hex_output: bool = False,
    table: OperatorTable | None = None,
    verify_only: bool = False,
) -> int:
    """
    Evaluate one expression and print the outcome.

    Args:
        expression (str): The expression text.
        values (Sequence[str]): Operand strings for `%0`-`%9`, converted with
            `strtoumax` rules. Values past the tenth are ignored.
        hex_output (bool): Print hexadecimal instead of decimal.
        table (OperatorTable | None): Extension operator bindings.
        verify_only (bool): Only check that the expression parses.

    Returns:
        int: Process exit status.

    Side Effects:
        - Prints the value (or `ok` / `invalid` in verify mode) to stdout.
        - Prints arithmetic errors to stderr.
    """
    if len(values) > len(POSITIONAL_REGISTERS):
        logger.warning(
            "ignoring %d operand(s) past %%9", len(values) - len(POSITIONAL_REGISTERS)
        )
    try:
        if verify_only:
            ok = verify(expression)
            print("ok" if ok else "invalid")
            return 0 if ok else 1
        bank = RegisterBank.from_arguments([parse_unsigned(v) for v in values])
        result = evaluate(expression, bank, table)
    except (ZeroDivisionError, NestingError) as e:
        print(f"[error] >>> {e}", file=sys.stderr)
        return 1

    if not result.success:
        logger.info("expression did not parse completely: %r", expression)
        return 1
    print(format_value(result.value, hex_output))
    return 0


def load_table(path: str | None) -> OperatorTable:
    """Builds the operator table from `path`, or from `$UEXPR_OPS` if unset."""
    table = OperatorTable()
    path = path or os.environ.get(OPS_ENV_VAR)
    if path:
        table.load_from_json(path)
    return table


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the uexpr CLI.

    Parses command-line arguments and dispatches to the appropriate mode:
    - Launches the REPL if no expression is passed or `--repl` is specified.
    - Otherwise evaluates (or verifies) the expression.

    Supported flags:
        - `-x`, `--hex`: Output hexadecimal.
        - `-v`, `--verbose`: Enable debug logging.
        - `--ops FILE`: JSON file binding extension operators to transforms.
        - `--verify`: Syntax check only.
        - `--repl`: Launch the interactive REPL.

    Returns:
        int: Process exit status.
    """
    parser = argparse.ArgumentParser(prog="uexpr", description="Evaluate expression")
    parser.add_argument("expression", nargs="?", help="Expression to evaluate")
    parser.add_argument(
        "values", nargs="*", metavar="VALUE", help="Operands for %%0-%%9"
    )
    parser.add_argument(
        "-x", "--hex", dest="hex_output", action="store_true", help="Output hexadecimal"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--ops",
        metavar="FILE",
        help=f"Operator extension file (default: ${OPS_ENV_VAR})",
    )
    parser.add_argument(
        "--verify", action="store_true", help="Only check the expression syntax"
    )
    parser.add_argument(
        "--repl",
        action="store_true",
        help="Launch interactive REPL instead of evaluating",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        table = load_table(args.ops)
    except MappingError as e:
        print(f"[error] >>> {e}", file=sys.stderr)
        for conflict in e.conflicts:
            print(f" - {conflict}", file=sys.stderr)
        return 2

    if args.repl or args.expression is None:
        from uexpr.uexpr_repl import start_repl

        start_repl(hex_output=args.hex_output, verbose=args.verbose, table=table)
        return 0

    return run_uexpr(
        expression=args.expression,
        values=args.values,
        hex_output=args.hex_output,
        table=table,
        verify_only=args.verify,
    )


if __name__ == "__main__":
    sys.exit(main())
