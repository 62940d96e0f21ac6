import pytest

from energy_collector.errors import MalformedMessage
from energy_collector.telemetry import LogEntry, SingleEntry, Snapshot, decode_message


def test_decode_bare_array_snapshot():
    message = decode_message('[{"time": 20, "accumulatedValue": 2}, {"time": 10, "accumulatedValue": 1}]')
    assert isinstance(message, Snapshot)
    assert message.entries == (LogEntry(20, 2.0), LogEntry(10, 1.0))


def test_decode_log_wrapped_snapshot_from_bytes():
    message = decode_message(b'{"log": [{"time": 5, "accumulatedValue": 3.5}]}')
    assert isinstance(message, Snapshot)
    assert message.entries == (LogEntry(5, 3.5),)


def test_decode_empty_log_is_a_snapshot():
    assert decode_message({"log": []}) == Snapshot(entries=())
    assert decode_message([]) == Snapshot(entries=())


def test_decode_single_entry():
    message = decode_message({"time": 1700000000.0, "accumulatedValue": 12})
    assert message == SingleEntry(entry=LogEntry(1700000000, 12.0))
    assert isinstance(message.entry.time, int)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        "not json",
        b"\xff\xfe",
        "null",
        42,
        {"x": 1000, "y": 2},
        {"log": "nope"},
        {"time": 10},
        {"time": "10", "accumulatedValue": 1},
        {"time": True, "accumulatedValue": 1},
        {"time": 10.5, "accumulatedValue": 1},
        {"time": 10, "accumulatedValue": float("nan")},
        [{"time": 1, "accumulatedValue": 1}, {"time": 2}],
        [1, 2, 3],
    ],
)
def test_decode_rejects_unknown_shapes(payload):
    with pytest.raises(MalformedMessage):
        decode_message(payload)


def test_log_entry_wire_and_point_shapes():
    entry = LogEntry(time=12, accumulated_value=4.0)
    assert entry.to_wire() == {"time": 12, "accumulatedValue": 4.0}
    assert entry.to_point() == {"x": 12000, "y": 4.0}


def test_decode_rejects_deeply_nested_json():
    with pytest.raises(MalformedMessage):
        decode_message("[" * 100000 + "]" * 100000)
