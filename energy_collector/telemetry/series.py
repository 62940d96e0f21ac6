"""In-memory model of the collector's accumulated-value log."""

from __future__ import annotations

import bisect
import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from energy_collector.errors import MalformedMessage, Notification, NoticeKind, Notifier, ignore_notification
from energy_collector.telemetry.messages import LogEntry, SingleEntry, Snapshot, decode_message
from energy_collector.telemetry.rate import compute_rate

logger = logging.getLogger(__name__)

SeriesView = Tuple[LogEntry, ...]
Subscriber = Callable[[SeriesView], None]


class SeriesModel:
    """Single owner of the time series; reconciles snapshots and incremental entries.

    Only :meth:`ingest` and :meth:`clear` mutate the series. Each call finishes
    its reconciliation before subscribers run, and subscribers are called once
    per successful call with an immutable view.
    """

    def __init__(self, notify: Optional[Notifier] = None) -> None:
        self._entries: List[LogEntry] = []
        self._times: List[int] = []
        self._view: SeriesView = ()
        self._subscribers: List[Subscriber] = []
        self._notify = notify or ignore_notification

    # ------------------------------------------------------------------
    # Subscriptions
    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        try:
            self._subscribers.remove(subscriber)
        except ValueError:
            pass

    def _publish(self) -> None:
        self._view = tuple(self._entries)
        for subscriber in list(self._subscribers):
            try:
                subscriber(self._view)
            except Exception:
                logger.exception("Series subscriber %r failed", subscriber)

    # ------------------------------------------------------------------
    # Mutation
    def ingest(self, payload: Any) -> bool:
        """Apply one inbound message. Returns False if it was rejected."""
        try:
            message = decode_message(payload)
        except MalformedMessage as exc:
            logger.warning("Dropping malformed message: %s", exc)
            self._notify(Notification(NoticeKind.MALFORMED_MESSAGE, str(exc)))
            return False

        if isinstance(message, Snapshot):
            self._replace(message.entries)
        elif isinstance(message, SingleEntry):
            self._upsert(message.entry)
        self._publish()
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._times.clear()
        self._publish()

    def _replace(self, entries: Iterable[LogEntry]) -> None:
        # Later elements win over earlier ones with the same timestamp.
        by_time: Dict[int, LogEntry] = {}
        for entry in entries:
            by_time[entry.time] = entry
        self._entries = sorted(by_time.values(), key=lambda e: e.time)
        self._times = [entry.time for entry in self._entries]

    def _upsert(self, entry: LogEntry) -> None:
        index = bisect.bisect_left(self._times, entry.time)
        if index < len(self._times) and self._times[index] == entry.time:
            self._entries[index] = entry
            return
        self._times.insert(index, entry.time)
        self._entries.insert(index, entry)

    # ------------------------------------------------------------------
    # Read model
    def snapshot(self) -> SeriesView:
        return self._view

    def __len__(self) -> int:
        return len(self._view)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._view)

    def latest(self) -> Optional[LogEntry]:
        return self._view[-1] if self._view else None

    def rate(self) -> float:
        return compute_rate(self._view)

    def to_points(self) -> List[Dict[str, Any]]:
        return [entry.to_point() for entry in self._view]
