"""Command-line request parsing for the Modbus TCP test client.

Turns the client's flag tokens into a single immutable Request:

    -ip <addr> -s <slave> -f <func> -a [-h] <addr> -n <count> -v [-h] <v1:v2:...>

Flags may appear in any order, except that -v needs -n first. A repeated flag
silently overwrites the earlier value.
"""

import enum
import re
from dataclasses import dataclass, field

MAX_REGS = 64
DEFAULT_PORT = 502

READ_HOLDING_REGISTERS = 0x03
WRITE_MULTIPLE_REGISTERS = 0x10

SUPPORTED_FUNCTIONS = {
    READ_HOLDING_REGISTERS: "Read Holding Registers",
    WRITE_MULTIPLE_REGISTERS: "Write Multiple Registers",
}

HEX_MARKER = "-h"
VALUE_DELIMITER = ":"

NUMBER_PATTERNS = {
    10: re.compile(r"[0-9]+"),
    16: re.compile(r"(0[xX])?[0-9a-fA-F]+"),
}


class ModbusTestError(Exception):
    """Base error for the Modbus test client."""


class RequestError(ModbusTestError, ValueError):
    """The command line could not be turned into a request."""


class Encoding(enum.Enum):
    DEC = 10
    HEX = 16


@dataclass(frozen=True)
class Request:
    target: str = ""
    slave_id: int = 0
    function: int = 0
    address: int = 0
    count: int = 0
    values: tuple = field(default_factory=tuple)

    @property
    def is_write(self):
        return self.function == WRITE_MULTIPLE_REGISTERS


def parse_number(token, encoding=Encoding.DEC, bits=16, name="value"):
    """Parse one unsigned integer token and check it fits in ``bits``."""
    if not NUMBER_PATTERNS[encoding.value].fullmatch(token):
        kind = "hex" if encoding is Encoding.HEX else "decimal"
        raise RequestError(f"invalid {kind} {name}: {token!r}")
    value = int(token, encoding.value)
    if not 0 <= value < (1 << bits):
        raise RequestError(f"{name} {token!r} out of range for {bits} bits")
    return value


def parse_values(text, encoding=Encoding.DEC):
    """Split a colon-delimited register value list."""
    tokens = text.split(VALUE_DELIMITER)
    if len(tokens) > MAX_REGS:
        raise RequestError(f"too many register values: {len(tokens)} (max {MAX_REGS})")
    return tuple(parse_number(t, encoding, name="register value") for t in tokens)


class _Tokens:
    """Cursor over the argument vector."""

    def __init__(self, argv):
        self._argv = list(argv)
        self._pos = 0

    def __bool__(self):
        return self._pos < len(self._argv)

    def pop(self):
        token = self._argv[self._pos]
        self._pos += 1
        return token

    def next(self, flag):
        if self._pos >= len(self._argv):
            raise RequestError(f"missing value for {flag}")
        return self.pop()

    def encoding(self, flag):
        """Consume an optional -h marker ahead of a value."""
        if self._pos < len(self._argv) and self._argv[self._pos] == HEX_MARKER:
            self._pos += 1
            return Encoding.HEX
        if self._pos >= len(self._argv):
            raise RequestError(f"missing value for {flag}")
        return Encoding.DEC


def parse_args(argv):
    """Build a Request from command-line tokens (program name excluded).

    Raises RequestError on an unknown flag, a missing or malformed value,
    -v without a usable -n, or a write whose value list does not match
    the register count.
    """
    fields = {}
    tokens = _Tokens(argv)

    while tokens:
        flag = tokens.pop()
        if flag == "-ip":
            fields["target"] = tokens.next(flag)
        elif flag == "-s":
            fields["slave_id"] = parse_number(tokens.next(flag), bits=8, name="slave id")
        elif flag == "-f":
            fields["function"] = parse_number(tokens.next(flag), bits=8, name="function")
        elif flag == "-a":
            encoding = tokens.encoding(flag)
            fields["address"] = parse_number(tokens.next(flag), encoding, name="address")
        elif flag == "-n":
            count = parse_number(tokens.next(flag), name="register count")
            if count > MAX_REGS:
                raise RequestError(f"register count {count} exceeds maximum of {MAX_REGS}")
            fields["count"] = count
        elif flag == "-v":
            if not fields.get("count"):
                raise RequestError("-v needs a non-zero register count (-n) first")
            encoding = tokens.encoding(flag)
            fields["values"] = parse_values(tokens.next(flag), encoding)
        else:
            raise RequestError(f"bad arg {flag!r}")

    request = Request(**fields)
    if not request.target:
        raise RequestError("missing target address (-ip)")
    if request.is_write and len(request.values) != request.count:
        raise RequestError(
            f"expected {request.count} register values, got {len(request.values)}"
        )
    return request
