import json
import random

from energy_collector.errors import NoticeKind
from energy_collector.telemetry import LogEntry, SeriesModel


def wire(time, value):
    return {"time": time, "accumulatedValue": value}


def test_snapshot_ingest_is_idempotent():
    model = SeriesModel()
    snapshot = json.dumps({"log": [wire(30, 3), wire(10, 1), wire(20, 2)]})

    assert model.ingest(snapshot)
    first = model.snapshot()
    assert model.ingest(snapshot)

    assert model.snapshot() == first
    assert [entry.time for entry in first] == [10, 20, 30]


def test_duplicate_timestamp_last_write_wins():
    model = SeriesModel()
    model.ingest(wire(10, 5))
    model.ingest(wire(10, 9))

    assert model.snapshot() == (LogEntry(10, 9.0),)


def test_duplicate_timestamps_inside_snapshot_keep_later_element():
    model = SeriesModel()
    model.ingest([wire(10, 1), wire(20, 2), wire(10, 7)])

    assert model.snapshot() == (LogEntry(10, 7.0), LogEntry(20, 2.0))


def test_series_stays_sorted_for_any_ingest_order():
    rng = random.Random(7)
    model = SeriesModel()
    for _ in range(200):
        if rng.random() < 0.1:
            model.ingest([wire(rng.randint(0, 50), rng.random()) for _ in range(rng.randint(0, 10))])
        else:
            model.ingest(wire(rng.randint(0, 50), rng.random()))
        times = [entry.time for entry in model.snapshot()]
        assert times == sorted(times)
        assert len(times) == len(set(times))


def test_snapshot_after_single_entries_replaces_everything():
    model = SeriesModel()
    for time in (5, 15, 25, 35):
        model.ingest(wire(time, time))
    model.ingest([wire(10, 1), wire(20, 2)])

    assert model.snapshot() == (LogEntry(10, 1.0), LogEntry(20, 2.0))


def test_malformed_payload_leaves_series_untouched():
    notices = []
    model = SeriesModel(notify=notices.append)
    model.ingest([wire(10, 1)])
    calls = []
    model.subscribe(calls.append)

    assert not model.ingest({})
    assert not model.ingest([wire(20, 2), {"time": 30}])

    assert model.snapshot() == (LogEntry(10, 1.0),)
    assert calls == []
    assert [notice.kind for notice in notices] == [NoticeKind.MALFORMED_MESSAGE] * 2


def test_subscribers_notified_once_per_ingest():
    model = SeriesModel()
    calls = []
    model.subscribe(calls.append)

    model.ingest([wire(t, t) for t in range(100)])
    model.ingest(wire(100, 100))
    model.ingest({"log": [wire(t, t) for t in range(5)]})
    model.clear()

    assert [len(view) for view in calls] == [100, 101, 5, 0]


def test_failing_subscriber_does_not_block_others():
    model = SeriesModel()
    calls = []

    def broken(view):
        raise ValueError("boom")

    model.subscribe(broken)
    model.subscribe(calls.append)
    assert model.ingest(wire(1, 1))
    assert len(calls) == 1

    model.unsubscribe(broken)
    model.unsubscribe(broken)
    model.ingest(wire(2, 2))
    assert len(calls) == 2


def test_snapshot_view_does_not_change_after_later_ingest():
    model = SeriesModel()
    model.ingest(wire(1, 1))
    view = model.snapshot()
    model.ingest(wire(2, 2))

    assert view == (LogEntry(1, 1.0),)
    assert len(model) == 2


def test_read_helpers():
    model = SeriesModel()
    assert model.latest() is None
    assert model.rate() == 0.0

    model.ingest([wire(0, 1), wire(1, 2)])

    assert model.latest() == LogEntry(1, 2.0)
    assert model.rate() == 2.0
    assert list(model) == [LogEntry(0, 1.0), LogEntry(1, 2.0)]
    assert model.to_points() == [{"x": 0, "y": 1.0}, {"x": 1000, "y": 2.0}]


def test_deeply_nested_payload_is_reported_as_malformed():
    notices = []
    model = SeriesModel(notify=notices.append)
    model.ingest(wire(1, 1))

    assert model.ingest("[" * 100000 + "]" * 100000) is False
    assert model.snapshot() == (LogEntry(1, 1.0),)
    assert [notice.kind for notice in notices] == [NoticeKind.MALFORMED_MESSAGE]
