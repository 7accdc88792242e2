"""Reader for the WPILOG binary data log format."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Union

MAGIC = b"WPILOG"
SUPPORTED_VERSION = 0x0100


class WpiLogError(Exception):
    """Base class for all WPILOG parsing errors."""


class InvalidFormatError(WpiLogError):
    """The input does not have the expected structure."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Invalid format: {kind}")
        self.kind = kind


class InvalidVersionError(WpiLogError):
    """The log declares a version other than 1.0."""

    def __init__(self) -> None:
        super().__init__("Invalid version")


class InvalidStringError(WpiLogError):
    """A string field is not valid UTF-8."""

    def __init__(self) -> None:
        super().__init__("Invalid string")


class InvalidIntegerSizeError(WpiLogError):
    """A variable-length integer is wider than 8 bytes."""

    def __init__(self) -> None:
        super().__init__("Invalid integer size")


class EndOfFileError(WpiLogError):
    """No more records are available."""

    def __init__(self) -> None:
        super().__init__("EOF")


class IncompleteError(WpiLogError):
    """The input ends before a complete item could be read."""

    def __init__(self, needed: int) -> None:
        super().__init__(f"Incomplete input: {needed} more byte(s) needed")
        self.needed = needed


class _Cursor:
    """Bounded read position over a byte buffer."""

    def __init__(self, buf: memoryview, start: int = 0, end: Optional[int] = None) -> None:
        self.buf = buf
        self.pos = start
        self.end = len(buf) if end is None else end

    @property
    def remaining(self) -> int:
        return self.end - self.pos

    def take(self, count: int) -> memoryview:
        if self.remaining < count:
            raise IncompleteError(count - self.remaining)
        chunk = self.buf[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def uint(self, size: int) -> int:
        return int.from_bytes(self.take(size), "little")

    def string(self, length: int) -> str:
        raw = self.take(length)
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidStringError() from None

    def dyn_int(self, size: int) -> int:
        raw = self.take(size)
        if len(raw) > 8:
            raise InvalidIntegerSizeError()
        return int.from_bytes(raw, "little")


@dataclass(frozen=True)
class RecordHeaderLengths:
    """The bit field describing the widths of a record header's fields."""

    value: int

    def size_entry_id(self) -> int:
        """Size of the entry ID field in bytes."""
        return (self.value & 0b0000_0011) + 1

    def size_payload_len(self) -> int:
        """Size of the payload length field in bytes."""
        return ((self.value & 0b0000_1100) >> 2) + 1

    def size_timestamp(self) -> int:
        """Size of the timestamp field in bytes."""
        return ((self.value & 0b0111_0000) >> 4) + 1


@dataclass(frozen=True)
class StartPayload:
    """Start control record: introduces an entry ID."""

    entry_id: int
    entry_name: str
    entry_type: str
    entry_metadata: str


@dataclass(frozen=True)
class FinishPayload:
    """Finish control record: the entry ID is no longer valid."""

    entry_id: int


@dataclass(frozen=True)
class SetMetadataPayload:
    """Set-metadata control record: updates an entry's metadata."""

    entry_id: int
    entry_metadata: str


@dataclass(frozen=True)
class RawPayload:
    """A data record holding the raw bytes of a value."""

    entry_id: int
    data: bytes


Payload = Union[StartPayload, FinishPayload, SetMetadataPayload, RawPayload]

_START_CONTROL_RECORD = 0x00
_FINISH_CONTROL_RECORD = 0x01
_SET_METADATA_CONTROL_RECORD = 0x02


def _parse_control(cursor: _Cursor) -> Payload:
    control_type = cursor.uint(1)
    entry_id = cursor.uint(4)
    if control_type == _START_CONTROL_RECORD:
        name = cursor.string(cursor.uint(4))
        type_name = cursor.string(cursor.uint(4))
        metadata = cursor.string(cursor.uint(4))
        return StartPayload(entry_id, name, type_name, metadata)
    if control_type == _FINISH_CONTROL_RECORD:
        return FinishPayload(entry_id)
    if control_type == _SET_METADATA_CONTROL_RECORD:
        metadata = cursor.string(cursor.uint(4))
        return SetMetadataPayload(entry_id, metadata)
    raise InvalidFormatError("Tag")


@dataclass(frozen=True)
class WpiRecord:
    """One record of a log: a timestamp (microseconds) and a payload."""

    timestamp: int
    payload: Payload

    @classmethod
    def _read(cls, cursor: _Cursor) -> "WpiRecord":
        if cursor.remaining < 1:
            raise EndOfFileError()
        lengths = RecordHeaderLengths(cursor.uint(1))
        entry_id = cursor.dyn_int(lengths.size_entry_id())
        payload_len = cursor.dyn_int(lengths.size_payload_len())
        timestamp = cursor.dyn_int(lengths.size_timestamp())

        body = cursor.take(payload_len)
        if entry_id == 0:
            payload = _parse_control(_Cursor(body))
        else:
            payload = RawPayload(entry_id & 0xFFFF_FFFF, bytes(body))
        return cls(timestamp, payload)

    @classmethod
    def parse(cls, data) -> tuple["WpiRecord", bytes]:
        """Parse one record; return it with the bytes that follow it."""
        cursor = _Cursor(memoryview(bytes(data)))
        record = cls._read(cursor)
        return record, bytes(cursor.buf[cursor.pos:])


def _read_header(cursor: _Cursor) -> tuple[int, str]:
    available = bytes(cursor.buf[cursor.pos:cursor.pos + len(MAGIC)])
    if len(available) < len(MAGIC):
        if MAGIC.startswith(available):
            raise IncompleteError(len(MAGIC) - len(available))
        raise InvalidFormatError("Tag")
    if available != MAGIC:
        raise InvalidFormatError("Tag")
    cursor.pos += len(MAGIC)

    version = cursor.uint(2)
    if version != SUPPORTED_VERSION:
        raise InvalidVersionError()
    extra_header = cursor.string(cursor.uint(4))
    return version, extra_header


@dataclass
class WpiLogFile:
    """A parsed WPILOG file: version, extra header and all records."""

    version: int = 0
    extra_header: str = ""
    records: list[WpiRecord] = field(default_factory=list)

    @staticmethod
    def is_wpilog(data) -> bool:
        """Whether the data begins with the WPILOG magic."""
        return bytes(data[: len(MAGIC)]) == MAGIC

    @staticmethod
    def parse_header(data) -> tuple[int, str, bytes]:
        """Parse the file header; return version, extra header and the rest."""
        cursor = _Cursor(memoryview(bytes(data)))
        version, extra_header = _read_header(cursor)
        return version, extra_header, bytes(cursor.buf[cursor.pos:])

    @classmethod
    def parse(
        cls,
        data,
        record_cb: Optional[Callable[[WpiRecord], None]] = None,
    ) -> tuple["WpiLogFile", bytes]:
        """Parse a whole log, calling record_cb for each record as it is read."""
        cursor = _Cursor(memoryview(bytes(data)))
        version, extra_header = _read_header(cursor)

        records: list[WpiRecord] = []
        while True:
            try:
                record = WpiRecord._read(cursor)
            except EndOfFileError:
                break
            if record_cb is not None:
                record_cb(record)
            records.append(record)

        log_file = cls(version=version, extra_header=extra_header, records=records)
        return log_file, bytes(cursor.buf[cursor.pos:])