from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Protocol

from .utils import now_ms


class Event(str, Enum):
    LOBBY_UPDATE = "lobby_update"
    STAGE_UPDATE = "stage_update"
    NEW_QUESTION = "new_question"
    ANSWER_RECEIVED = "answer_received"
    QUESTION_RESULTS = "question_results"
    GAME_OVER = "game_over"
    LOBBY_ERROR = "lobby_error"
    SESSION_ENDED = "session_ended"


class Notifier(Protocol):
    """What the game needs from a transport: room broadcast and unicast."""

    def notify(self, code: str, event: Event, payload: dict[str, Any]) -> None: ...

    def notify_one(self, connection_id: str, event: Event, payload: dict[str, Any]) -> None: ...

    def reset(self, code: str) -> None: ...

    def forget(self, connection_id: str) -> None: ...


class EventStore:
    """Keep session and connection events so clients can poll via HTTP.

    Broadcasts land on the session's channel, unicasts on the
    connection's channel. Each channel has its own sequence numbers.
    """

    def __init__(self, max_events_per_channel: int = 500):
        self._max_events = max_events_per_channel
        self._events: Dict[str, List[dict[str, Any]]] = {}
        self._seq: Dict[str, int] = {}

    def notify(self, code: str, event: Event, payload: dict[str, Any]) -> None:
        self.append(self._session_channel(code), event, payload)

    def notify_one(self, connection_id: str, event: Event, payload: dict[str, Any]) -> None:
        self.append(self._connection_channel(connection_id), event, payload)

    def append(self, channel: str, event: Event, payload: dict[str, Any]) -> int:
        """Store a new event on a channel and return its sequence number."""

        seq = self._seq.get(channel, 0) + 1
        self._seq[channel] = seq
        events = self._events.setdefault(channel, [])
        events.append(
            {
                "seq": seq,
                "timestamp": now_ms(),
                "type": event.value,
                "payload": payload,
            }
        )
        if len(events) > self._max_events:
            del events[: len(events) - self._max_events]
        return seq

    def list(self, channel: str, after: int | None = None, limit: int = 200) -> List[dict[str, Any]]:
        """Return events for a channel that occur after the given sequence."""

        events = self._events.get(channel, [])
        if after is not None:
            events = [e for e in events if e["seq"] > after]
        return events[:limit]

    def session_events(self, code: str, after: int | None = None, limit: int = 200) -> List[dict[str, Any]]:
        return self.list(self._session_channel(code), after=after, limit=limit)

    def connection_events(self, connection_id: str, after: int | None = None, limit: int = 200) -> List[dict[str, Any]]:
        return self.list(self._connection_channel(connection_id), after=after, limit=limit)

    def reset(self, code: str) -> None:
        """Clear stored events for a session.

        The counter is kept so sequence numbers keep increasing and a
        client polling with an old ``after`` never re-reads history.
        """

        self._events.pop(self._session_channel(code), None)

    def forget(self, connection_id: str) -> None:
        """Drop a connection's channel once nothing can address it again."""

        channel = self._connection_channel(connection_id)
        self._events.pop(channel, None)
        self._seq.pop(channel, None)

    def types(self, code: str) -> List[str]:
        return [e["type"] for e in self.session_events(code, limit=self._max_events)]

    @staticmethod
    def _session_channel(code: str) -> str:
        return f"session:{code}"

    @staticmethod
    def _connection_channel(connection_id: str) -> str:
        return f"connection:{connection_id}"


event_store = EventStore()
