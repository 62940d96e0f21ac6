import json

from energy_collector.connection import DELETE_LOG_REQUEST, WHOLE_LOG_REQUEST
from energy_collector.mock import MockImpulseSource
from energy_collector.telemetry import SeriesModel


def test_mock_source_accumulates_per_window():
    source = MockImpulseSource(start_time=1000, seed=1)
    source.backfill(5)

    times = [entry.time for entry in source.log]
    values = [entry.accumulated_value for entry in source.log]
    assert times == [1010, 1020, 1030, 1040, 1050]
    assert values == sorted(values)
    steps = [b - a for a, b in zip([0.0] + values, values)]
    assert all(0 <= step <= source.max_impulses for step in steps)


def test_mock_source_answers_requests():
    source = MockImpulseSource(start_time=0, seed=2)
    source.backfill(3)

    reply = source.handle_request(json.dumps(WHOLE_LOG_REQUEST))
    model = SeriesModel()
    assert model.ingest(reply)
    assert model.snapshot() == tuple(source.log)

    assert source.handle_request(json.dumps(DELETE_LOG_REQUEST)) is None
    assert source.log == []
    assert source.handle_request("garbage") is None


def test_mock_entry_message_is_single_entry():
    source = MockImpulseSource(start_time=0, seed=4)
    model = SeriesModel()
    model.ingest(source.entry_message())
    model.ingest(source.entry_message())

    assert [entry.time for entry in model.snapshot()] == [10, 20]
