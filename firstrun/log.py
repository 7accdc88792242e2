"""Time-indexed store of entry values keyed by entity path."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from firstrun.wpistruct import StructSchema

_U64_MAX = 2**64 - 1
_I64_MAX = 2**63 - 1


@dataclass(frozen=True, order=True)
class Timestamp:
    """Timestamp of a log entry, in microseconds since the controller was enabled."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _U64_MAX:
            raise ValueError(f"timestamp out of range: {self.value}")

    def to_nanos(self) -> int:
        """The timestamp in nanoseconds; raises OverflowError if it exceeds a signed 64-bit value."""
        nanos = self.value * 1000
        if nanos > _I64_MAX:
            raise OverflowError(f"timestamp {self.value} is too large to express in nanoseconds")
        return nanos


def _parts(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _normalize(path: str) -> str:
    return "/" + "/".join(_parts(path))


def join_path(parent: str, child: str) -> str:
    """Append the '/'-separated parts of ``child`` to the entity path ``parent``."""
    return "/" + "/".join(_parts(parent) + _parts(child))


def _as_timestamp(time: Union[Timestamp, int]) -> Timestamp:
    return time if isinstance(time, Timestamp) else Timestamp(time)


class EntryLog:
    """Values of every entry over time, plus the struct schemas seen so far."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[Timestamp, Any]] = {}
        self._changed: set[tuple[str, Timestamp]] = set()
        self._structs: dict[str, StructSchema] = {}

    def add_struct(self, name: str, schema: StructSchema) -> None:
        """Register an unresolved struct schema under ``name``."""
        self._structs[str(name)] = schema

    def resolve_struct(self, name: str) -> Optional[StructSchema]:
        """The named schema with all custom types resolved, or None if impossible."""
        schema = self._structs.get(name)
        if schema is None:
            return None
        return schema.resolve(self._structs)

    def add_entry(self, key: str, timestamp: Union[Timestamp, int], value: Any) -> None:
        """Record a value; a dict is stored as one entry per key beneath ``key``."""
        timestamp = _as_timestamp(timestamp)
        if isinstance(value, dict):
            for name, inner in value.items():
                self.add_entry(join_path(key, name), timestamp, inner)
            return
        key = _normalize(key)
        self._entries.setdefault(key, {})[timestamp] = value
        self._changed.add((key, timestamp))

    def get_changed(self) -> list[tuple[str, Timestamp, Any]]:
        """Return the entries changed since the last call and forget them."""
        changed, self._changed = self._changed, set()
        result = []
        for key, time in sorted(changed):
            history = self._entries.get(key)
            if history is not None and time in history:
                result.append((key, time, history[time]))
        return result

    def get_entry(self, key: str) -> Optional[dict[Timestamp, Any]]:
        """All values of an entry ordered by timestamp, or None if unknown."""
        history = self._entries.get(_normalize(key))
        if history is None:
            return None
        return dict(sorted(history.items()))

    def get_latest_entry(self, key: str) -> Optional[tuple[Timestamp, Any]]:
        """The value with the latest timestamp, or None."""
        history = self._entries.get(_normalize(key))
        if not history:
            return None
        latest = max(history)
        return latest, history[latest]

    def get_latest_from(
        self, key: str, time: Union[Timestamp, int]
    ) -> Optional[tuple[Timestamp, Any]]:
        """The latest value at or before ``time``, or None."""
        time = _as_timestamp(time)
        history = self._entries.get(_normalize(key))
        if not history:
            return None
        earlier = [stamp for stamp in history if stamp <= time]
        if not earlier:
            return None
        latest = max(earlier)
        return latest, history[latest]