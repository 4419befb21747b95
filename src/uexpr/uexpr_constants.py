"""
Shared constants for the uexpr expression evaluator.

Exports:
    - WORD_BITS, WORD_BYTES, BITS_PER_BYTE, WORD_MASK: the unsigned value model
    - REGISTER_COUNT, POSITIONAL_REGISTERS, NAMED_REGISTERS, REGISTER_KEYS
    - WHITESPACE, DIGITS, OCTAL_DIGITS, HEX_DIGITS, LETTERS
    - UNARY_OPERATORS, EXTENSION_OPERATORS
    - MAX_NESTING
    - OPS_ENV_VAR
"""

BITS_PER_BYTE = 8
WORD_BYTES = 8
WORD_BITS = WORD_BYTES * BITS_PER_BYTE
WORD_MASK = (1 << WORD_BITS) - 1

POSITIONAL_REGISTERS = "0123456789"
NAMED_REGISTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
REGISTER_KEYS = POSITIONAL_REGISTERS + NAMED_REGISTERS
REGISTER_COUNT = len(REGISTER_KEYS)

# Registers filled in by the command-line wrapper.
BYTE_BITS_REGISTER = "B"
WORD_BYTES_REGISTER = "W"
TIME_REGISTER = "T"

# C isspace() in the "C" locale.
WHITESPACE = " \t\n\v\f\r"
DIGITS = "0123456789"
OCTAL_DIGITS = "01234567"
HEX_DIGITS = "0123456789abcdefABCDEF"
LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

UNARY_OPERATORS = "?!~-+"
EXTENSION_OPERATORS = "<>&|^*/\\@="

# Unary/primary entries allowed on the stack at once.
MAX_NESTING = 64

OPS_ENV_VAR = "UEXPR_OPS"
