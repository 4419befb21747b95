"""
Interactive calculator loop for uexpr.

Each input line is evaluated against a session register bank whose `%T`
register is refreshed before every evaluation. Lines starting with a command
word are handled by the REPL itself:

    exit / quit        leave the REPL
    hex-mode           toggle hexadecimal output
    verbose-mode       toggle residual reporting for failed parses
    REG k v            set register k (0-9, A-Z) to v
    REGS               list non-zero registers
    OPS                show the operator extension table
    OPS {json}         bind extension operators, e.g. OPS {"<": "low_byte"}
"""

import io
import json
import time
import traceback

from uexpr.uexpr_cli import format_value
from uexpr.uexpr_constants import TIME_REGISTER
from uexpr.uexpr_errors import MappingError, RegisterError
from uexpr.uexpr_lexer import parse_unsigned
from uexpr.uexpr_opmap import OperatorTable
from uexpr.uexpr_parser import ExpressionParser
from uexpr.uexpr_registers import RegisterBank


def print_traceback() -> None:
    buf = io.StringIO()
    traceback.print_exc(file=buf)
    print("[error] >>>")
    print(buf.getvalue())


def handle_ops_command(src: str, table: OperatorTable) -> bool:
    src = src.strip()
    if not src.upper().startswith("OPS"):
        return False
    command = src[3:].strip()
    if command == "":
        print(table.report())
        return True
    try:
        raw_map = json.loads(command)
        table.configure(raw_map)
        print("[ok] >>> Operator extensions updated.")
        print(table.report())
    except (ValueError, MappingError) as e:
        print("[error] >>> Failed to configure operator extensions:")
        print(e)
        for conflict in getattr(e, "conflicts", []):
            print(" -", conflict)
    return True


def handle_reg_command(src: str, bank: RegisterBank) -> RegisterBank | None:
    """Applies a `REG k v` / `REGS` command.

    Returns:
        The (possibly updated) bank if `src` was a register command, else None.
    """
    parts = src.split()
    if not parts or parts[0].upper() not in ("REG", "REGS"):
        return None
    if parts[0].upper() == "REGS":
        used = [f"%{k} = {v}" for k, v in bank.items() if v and k != TIME_REGISTER]
        print("\n".join(used) if used else "(all registers zero)")
        return bank
    if len(parts) != 3:
        print("[error] >>> usage: REG <0-9|A-Z> <value>")
        return bank
    try:
        bank = bank.replace(**{parts[1]: parse_unsigned(parts[2])})
    except RegisterError as e:
        print(f"[error] >>> {e}")
        return bank
    print(f"[reg] >>> %{parts[1].upper()} = {bank[parts[1]]}")
    return bank


def start_repl(
    hex_output: bool = False,
    verbose: bool = False,
    table: OperatorTable | None = None,
) -> None:
    print("uexpr REPL. Type 'exit' or 'quit' to leave.")
    table = table if table is not None else OperatorTable()
    bank = RegisterBank.from_arguments()

    while True:
        try:
            src = input(">>> ").strip()
            if not src:
                continue
            if src in ("exit", "quit"):
                print("Exiting uexpr REPL.")
                return
            if src.lower() == "hex-mode":
                hex_output = not hex_output
                print(f"[mode] >>> Hex output {'ON' if hex_output else 'OFF'}")
                continue
            if src.lower() == "verbose-mode":
                verbose = not verbose
                print(f"[mode] >>> Verbose mode {'ON' if verbose else 'OFF'}")
                continue
            if handle_ops_command(src, table):
                continue
            updated = handle_reg_command(src, bank)
            if updated is not None:
                bank = updated
                continue

            bank = bank.replace(**{TIME_REGISTER: time.time_ns()})
            parser = ExpressionParser(src, bank, table)
            try:
                value, pos = parser.parse()
            except (ZeroDivisionError, RecursionError):
                print_traceback()
                continue

            if not parser.complete(pos):
                print("[error] >>>")
                residual = parser.residual(pos)
                if verbose and residual:
                    print(f"Unconsumed input at column {pos + 1}: {residual!r}")
                elif verbose:
                    print("Unexpected end of expression")
                else:
                    print("Invalid expression")
                continue
            print(format_value(value, hex_output))

        except (KeyboardInterrupt, EOFError):
            print("\nExiting uexpr REPL.")
            break


def main() -> None:
    start_repl()


if __name__ == "__main__":
    main()
