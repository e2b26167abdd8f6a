#!/usr/bin/env python3
"""Modbus TCP test client - one register read or write per run.

Connects to a device on the standard Modbus TCP port, performs a single
Read Holding Registers (0x03) or Write Multiple Registers (0x10) request and
prints the registers. A write is confirmed by reading the range back.

Usage:
    modbus-test -ip 192.168.122.200 -s 1 -f 3 -a 20000 -n 4
    modbus-test -ip 192.168.122.200 -s 1 -f 16 -a -h 4e20 -n 4 -v -h a:b:c:d

Defaults (port, log level) come from MODBUS_TEST_CONFIG, a JSON file.
"""

import json
import logging
import os
import sys

import pymodbus
from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException

from modbus_request import (
    DEFAULT_PORT,
    READ_HOLDING_REGISTERS,
    SUPPORTED_FUNCTIONS,
    WRITE_MULTIPLE_REGISTERS,
    RequestError,
    parse_args,
)

CONFIG_PATH = "/etc/modbus-test/modbus_test.json"

USAGE = (
    "Usage: -ip [ip] -s [slave id] -f [function] -a (-h [using hex]) [address] "
    "-n [number of registers] -v (-h [using hex]) [value]"
)

log = logging.getLogger("modbus-test")


def load_config(path=None):
    """Load client defaults.

    Reads the JSON file named by MODBUS_TEST_CONFIG (or ``path``); a missing
    or unreadable file leaves the defaults in place. LOG_LEVEL in the
    environment wins over the file.
    """
    cfg = {"port": DEFAULT_PORT, "log_level": "WARNING"}
    path = path or os.environ.get("MODBUS_TEST_CONFIG", CONFIG_PATH)
    try:
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict):
            cfg.update({k: data[k] for k in cfg if k in data})
    except (OSError, json.JSONDecodeError):
        pass

    try:
        cfg["port"] = int(cfg["port"])
    except (TypeError, ValueError):
        log.warning("Ignoring invalid port %r in %s", cfg["port"], path)
        cfg["port"] = DEFAULT_PORT

    cfg["log_level"] = os.environ.get("LOG_LEVEL", cfg["log_level"])
    return cfg


def setup_logging(level):
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # pymodbus stays at WARNING or above unless DEBUG is asked for.
    if numeric > logging.DEBUG:
        numeric = max(numeric, logging.WARNING)
    logging.getLogger("pymodbus").setLevel(numeric)


def print_banner():
    title = f"ModBUS TCP CLI test program using pymodbus {pymodbus.__version__}"
    print(title)
    print("-" * len(title))


def print_usage():
    functions = ", ".join(f"0x{code:02X}-{name}" for code, name in SUPPORTED_FUNCTIONS.items())
    print(USAGE)
    print(f"Supported functions [{len(SUPPORTED_FUNCTIONS)}]: {functions}")


def print_request(request):
    print()
    print(f"Target IP: {request.target}")
    print()
    print("Modbus PDU:")
    print(f"Slave ID: {request.slave_id}")
    print(f"Function: {request.function}")
    print(f"Address: {request.address}")
    print(f"Number of registers: {request.count}")
    if request.is_write:
        for i, value in enumerate(request.values):
            print(f"Value {i}: {value}")
    print()


def print_registers(registers):
    for i, value in enumerate(registers):
        print(f"reg[{i}]={value} (0x{value:X})")


def read_registers(client, request):
    """Read the request's register range. Returns the values, or None on error."""
    log.debug("read_holding_registers addr=%d count=%d slave=%d",
              request.address, request.count, request.slave_id)
    try:
        result = client.read_holding_registers(
            request.address, count=request.count, device_id=request.slave_id
        )
    except (ModbusException, ValueError) as e:
        print(e, file=sys.stderr)
        return None
    if result.isError():
        print(result, file=sys.stderr)
        return None
    return list(result.registers[:request.count])


def write_registers(client, request):
    """Write the request's values. Returns True if the device acknowledged."""
    log.debug("write_registers addr=%d values=%s slave=%d",
              request.address, list(request.values), request.slave_id)
    try:
        result = client.write_registers(
            request.address, list(request.values), device_id=request.slave_id
        )
    except (ModbusException, ValueError) as e:
        print(e, file=sys.stderr)
        return False
    if result.isError():
        print(result, file=sys.stderr)
        return False
    return True


def dispatch(request, port=DEFAULT_PORT):
    """Run one request against the target device and return an exit status."""
    client = ModbusTcpClient(request.target, port=port)
    log.info("Connecting to %s:%d", request.target, port)
    if not client.connect():
        print(
            f"Connection failed: unable to connect to {request.target}:{port}"
            " (pymodbus logs the socket error, set LOG_LEVEL=DEBUG to see it)",
            file=sys.stderr,
        )
        client.close()
        return 1

    try:
        if request.function == READ_HOLDING_REGISTERS:
            registers = read_registers(client, request)
            if registers is None:
                return 1
            print("Registers read:")
            print_registers(registers)
            return 0

        if request.function == WRITE_MULTIPLE_REGISTERS:
            if not write_registers(client, request):
                return 1
            print("Register write confirmation:")
            registers = read_registers(client, request)
            if registers is None:
                return 1
            print_registers(registers)
            return 0

        print("Error: function not supported")
        return 1
    finally:
        client.close()
        log.info("Closed connection to %s:%d", request.target, port)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)
    config = load_config()
    setup_logging(config["log_level"])

    print_banner()

    if len(argv) < 2:
        print_usage()
        return 0

    try:
        request = parse_args(argv)
    except RequestError as e:
        print(f"Error: {e}")
        return 1
    log.debug("Parsed request: %s", request)

    print_request(request)
    return dispatch(request, port=config["port"])


if __name__ == "__main__":
    raise SystemExit(main())
