#!/usr/bin/env python3
"""
Simulated Modbus TCP server (slave device) for testing the modbus-test client.

Exposes a zeroed holding register block covering the whole 16-bit address
space, so reads and writes at any address the client accepts will succeed.

Usage:
    modbus-sim [--port 5020] [--slave-id 1]

Then point the client at it (set "port": 5020 in MODBUS_TEST_CONFIG):
    modbus-test -ip 127.0.0.1 -s 1 -f 16 -a 20000 -n 4 -v 1:2:3:4
"""

import argparse
import logging

from pymodbus.datastore import (
    ModbusSequentialDataBlock,
    ModbusDeviceContext,
    ModbusServerContext,
)
from pymodbus.server import StartTcpServer

# The device context maps protocol address N to block address N + 1.
BLOCK_START = 1
REGISTER_SPACE = 0x10000

log = logging.getLogger("modbus-sim")


def build_datastore():
    """Create a device context with an all-zero holding register block."""
    return ModbusDeviceContext(
        hr=ModbusSequentialDataBlock(BLOCK_START, [0] * REGISTER_SPACE)
    )


def build_context(slave_id=1, store=None):
    """Map one slave id to a datastore (a fresh one unless given)."""
    if store is None:
        store = build_datastore()
    return ModbusServerContext(devices={slave_id: store}, single=False)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulated Modbus TCP server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=5020, help="TCP port (default: 5020)")
    parser.add_argument("--slave-id", type=int, default=1, help="Slave/unit ID (default: 1)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    log.info("Simulated device on %s:%d, slave %d, holding registers 0-65535",
             args.host, args.port, args.slave_id)
    StartTcpServer(context=build_context(args.slave_id), address=(args.host, args.port))


if __name__ == "__main__":
    main()
