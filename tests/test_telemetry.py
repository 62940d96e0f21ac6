from pathlib import Path

from energy_collector.telemetry import LogEntry, LogEntryWriter, export_series


def test_log_entry_writer(tmp_path: Path):
    log_path = tmp_path / "log.csv"
    writer = LogEntryWriter(log_path)
    with writer:
        writer.write(LogEntry(time=1700000000, accumulated_value=12.0))
        writer.write_many([LogEntry(time=1700000010, accumulated_value=12.5)])

    with LogEntryWriter(log_path) as writer:
        writer.write(LogEntry(time=1700000020, accumulated_value=13.0))

    text = log_path.read_text().strip().splitlines()
    assert text[0] == "time,accumulatedValue"
    assert text[1] == "1700000000,12"
    assert text[2] == "1700000010,12.5"
    assert len(text) == 4


def test_export_series_replaces_file(tmp_path: Path):
    path = tmp_path / "out" / "series.csv"
    export_series([LogEntry(1, 1.0), LogEntry(2, 2.0)], path)
    export_series([LogEntry(3, 3.0)], path)

    assert path.read_text().strip().splitlines() == ["time,accumulatedValue", "3,3"]


def test_large_and_fractional_values_keep_full_precision(tmp_path: Path):
    path = tmp_path / "series.csv"
    export_series(
        [
            LogEntry(1700000000, 1234567.0),
            LogEntry(1700000010, 98765432.25),
            LogEntry(1700000020, 0.1),
        ],
        path,
    )

    lines = path.read_text().strip().splitlines()
    assert lines[1] == "1700000000,1234567"
    assert lines[2] == "1700000010,98765432.25"
    assert lines[3] == "1700000020,0.1"
