import modbus_server
from modbus_server import build_datastore


def test_datastore_starts_zeroed():
    store = build_datastore()
    assert store.getValues(3, 20000, 4) == [0, 0, 0, 0]


def test_datastore_write_read_back():
    store = build_datastore()
    store.setValues(16, 20000, [1, 2, 3, 4])
    assert store.getValues(3, 20000, 4) == [1, 2, 3, 4]
    assert store.getValues(3, 20004, 1) == [0]


def test_datastore_covers_address_space():
    store = build_datastore()
    assert store.validate(3, 0, 1)
    assert store.validate(3, 0xFFFF, 1)


def test_main_starts_server(monkeypatch):
    started = {}

    def fake_start(context, address):
        started["context"] = context
        started["address"] = address

    monkeypatch.setattr(modbus_server, "StartTcpServer", fake_start)

    modbus_server.main(["--host", "127.0.0.1", "--port", "5021", "--slave-id", "3"])

    assert started["address"] == ("127.0.0.1", 5021)
    assert started["context"][3].getValues(3, 0, 2) == [0, 0]


def test_build_context_maps_slave_id():
    store = build_datastore()
    store.setValues(16, 7, [42])
    context = modbus_server.build_context(5, store)
    assert context[5] is store
    assert context[5].getValues(3, 7, 1) == [42]
