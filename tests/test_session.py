import asyncio

from energy_collector.connection import ConnectionManager, ConnectionState
from energy_collector.errors import NoticeKind
from energy_collector.io import CollectorSettings
from energy_collector.mock import MockImpulseSource, mock_connector
from energy_collector.session import CollectorSession


class RecordingSink:
    def __init__(self):
        self.data_calls = []
        self.gauge_calls = []

    def set_data(self, points):
        self.data_calls.append(list(points))

    def set_gauge(self, value):
        self.gauge_calls.append(value)


def test_sink_redraws_once_per_ingest():
    session = CollectorSession()
    sink = RecordingSink()
    session.attach_sink(sink)
    assert sink.data_calls == [[]]
    assert sink.gauge_calls == [0.0]

    session.model.ingest([{"time": t, "accumulatedValue": t} for t in range(50)])
    session.model.ingest({"time": 50, "accumulatedValue": 50})

    assert [len(points) for points in sink.data_calls] == [0, 50, 51]
    assert sink.data_calls[-1][-1] == {"x": 50000, "y": 50.0}
    assert sink.gauge_calls[-1] == session.model.rate()


def test_refresh_without_changes_redraws_same_data():
    session = CollectorSession()
    sink = RecordingSink()
    binding = session.attach_sink(sink)
    session.model.ingest({"time": 1, "accumulatedValue": 1})

    session.refresh()
    assert sink.data_calls[-1] == sink.data_calls[-2]

    binding.detach()
    session.model.ingest({"time": 2, "accumulatedValue": 2})
    assert len(sink.data_calls) == 3


def test_session_routes_malformed_notice_and_clear():
    notices = []
    session = CollectorSession(notify=notices.append)
    session.model.ingest({"time": 1, "accumulatedValue": 1})
    session.model.ingest({"unexpected": True})

    session.commands.clear_log()

    assert [notice.kind for notice in notices] == [
        NoticeKind.MALFORMED_MESSAGE,
        NoticeKind.CONNECTION_UNAVAILABLE,
    ]
    assert session.model.snapshot() == ()


def test_dashboard_state():
    session = CollectorSession()
    session.model.ingest([{"time": 0, "accumulatedValue": 3}, {"time": 1, "accumulatedValue": 4}])

    state = session.dashboard_state()

    assert state.entry_count == 2
    assert state.latest_value == 4.0
    assert state.rate == 2.0
    assert state.connection is ConnectionState.DISCONNECTED


def test_reconnect_policy_follows_settings():
    settings = CollectorSettings(reconnect_enabled=False, reconnect_interval_s=0.5, reconnect_max_interval_s=4.0)
    session = CollectorSession(settings=settings)

    policy = session.reconnect_policy()

    assert policy.enabled is False
    assert policy.interval_s == 0.5
    assert policy.max_interval_s == 4.0
    assert session.connection.url == "ws://energy-collector.local/ws"


def test_session_tracks_mock_collector():
    source = MockImpulseSource(start_time=1_700_000_000, seed=3)
    source.backfill(20)
    connection = ConnectionManager(url="ws://mock/ws", connector=mock_connector(source, tick_s=0.01))
    session = CollectorSession(connection=connection)
    sink = RecordingSink()
    session.attach_sink(sink)

    async def scenario():
        task = asyncio.create_task(connection.run())
        await asyncio.sleep(0.1)
        await connection.close()
        await task

    asyncio.run(scenario())

    assert len(session.model) > 20
    assert session.model.snapshot() == tuple(source.log)
    assert sink.data_calls[-1] == session.model.to_points()
    assert connection.state is ConnectionState.CLOSED
