from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, cast

import redis
from redis.client import Pipeline

from rps_escrow.core.events import GameEvent, event_from_fields


@dataclass(frozen=True, slots=True)
class Feed:
    """Per-address event stream, so a player can follow only their own games."""

    prefix: str
    address: str

    @property
    def key(self) -> str:
        return f"{self.prefix}:feed:{self.address}"


def events_key(prefix: str) -> str:
    return f"{prefix}:events"


def publish_many(*, r: redis.Redis | Pipeline, entries: Sequence[tuple[str, Mapping[str, str]]]) -> list[str]:
    """Append entries to streams.

    On a pipeline in MULTI mode the XADDs are only queued and the returned list holds
    whatever the pipeline returns for queued commands.
    """

    ids: list[str] = []
    for key, fields in entries:
        # redis-py stubs expect field/value unions; we only use string fields/values.
        stream_id = r.xadd(key, {str(k): str(v) for k, v in fields.items()})
        ids.append(cast(str, stream_id))
    return ids


def entries_for_event(*, prefix: str, event: GameEvent) -> list[tuple[str, dict[str, str]]]:
    fields = event.to_fields()
    entries = [(events_key(prefix), fields)]
    for address in dict.fromkeys(event.participants()):
        entries.append((Feed(prefix=prefix, address=address).key, fields))
    return entries


class EventLog:
    """Read side of the append-only event stream."""

    def __init__(self, *, r: redis.Redis, prefix: str) -> None:
        self._r = r
        self._prefix = prefix

    def events(self, type: str | None = None, **indexed: str) -> list[GameEvent]:
        """All events in emission order, filtered by type and indexed fields."""

        out: list[GameEvent] = []
        for _, fields in self._r.xrange(events_key(self._prefix)):
            if type is not None and fields.get("type") != type:
                continue
            if any(fields.get(k) != v for k, v in indexed.items()):
                continue
            out.append(event_from_fields(fields))
        return out

    def feed(self, address: str) -> list[GameEvent]:
        key = Feed(prefix=self._prefix, address=address).key
        return [event_from_fields(fields) for _, fields in self._r.xrange(key)]

    def last(self) -> GameEvent | None:
        entries = self._r.xrevrange(events_key(self._prefix), count=1)
        if not entries:
            return None
        _, fields = entries[0]
        return event_from_fields(fields)
