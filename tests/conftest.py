"""Shared fixtures: an in-process device in place of ModbusTcpClient."""

import pytest
from pymodbus.exceptions import ModbusIOException

import modbus_client
from modbus_server import build_datastore


class FakeResult:
    def __init__(self, registers=None, error=None):
        self.registers = registers or []
        self.error = error

    def isError(self):
        return self.error is not None

    def __str__(self):
        return self.error or "OK"


class SimulatedDevice:
    """Holding registers from the simulator's datastore, plus call bookkeeping."""

    def __init__(self, slave_id=1):
        self.store = build_datastore()
        self.slave_id = slave_id
        self.online = True
        self.read_error = None
        self.write_error = None
        self.calls = []
        self.clients = []

    def client(self, host, port=502):
        c = FakeModbusTcpClient(self, host, port)
        self.clients.append(c)
        return c


class FakeModbusTcpClient:
    def __init__(self, device, host, port):
        self.device = device
        self.host = host
        self.port = port
        self.closed = False

    def connect(self):
        return self.device.online

    def _check_slave(self, device_id):
        if device_id != self.device.slave_id:
            raise ModbusIOException("No response received")

    def read_holding_registers(self, address, count=1, device_id=1):
        self.device.calls.append(("read", address, count, device_id))
        if not 1 <= count <= 125:
            raise ValueError(f"1 < count {count} < 125 !")
        self._check_slave(device_id)
        if self.device.read_error:
            return FakeResult(error=self.device.read_error)
        return FakeResult(registers=self.device.store.getValues(3, address, count))

    def write_registers(self, address, values, device_id=1):
        self.device.calls.append(("write", address, list(values), device_id))
        if not 1 <= len(values) <= 123:
            raise ValueError(f"1 < count {len(values)} < 123 !")
        self._check_slave(device_id)
        if self.device.write_error:
            return FakeResult(error=self.device.write_error)
        self.device.store.setValues(16, address, list(values))
        return FakeResult()

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setenv("MODBUS_TEST_CONFIG", str(tmp_path / "missing.json"))
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture
def device(monkeypatch):
    dev = SimulatedDevice()
    monkeypatch.setattr(modbus_client, "ModbusTcpClient", dev.client)
    return dev
