"""Parser for WPILib struct schema declarations.

A schema is a ``;``-separated list of field declarations such as
``int64 id; double values[4]; enum {a=1, b=2} int8 mode``.
"""

from __future__ import annotations

import dataclasses
import re
from enum import Enum
from typing import Optional, Union

_WHITESPACE = re.compile(rb"[ \t\r\n]*")
_IDENTIFIER = re.compile(rb"[A-Za-z_][A-Za-z0-9_]*")
_SIGNED = re.compile(rb"[+-]?[0-9]+")
_UNSIGNED = re.compile(rb"[0-9]+")

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_USIZE_MAX = 2**64 - 1


class StructParseError(ValueError):
    """A struct schema or type name could not be understood."""


class DataType(Enum):
    """Column data types that parsed values are stored as."""

    BINARY = "binary"
    BOOLEAN = "boolean"
    UTF8 = "utf8"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"


class StructPrimitive(Enum):
    """The primitive field types a struct schema may use."""

    BOOL = "bool"
    CHAR = "char"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"

    @classmethod
    def from_name(cls, name: str) -> "StructPrimitive":
        """Look up a primitive by its schema name, accepting aliases."""
        try:
            return _PRIMITIVE_NAMES[name]
        except KeyError:
            raise StructParseError(f"not a primitive type: {name!r}") from None

    def size(self) -> int:
        """Number of bytes taken for one value of this type."""
        return _PRIMITIVE_SIZES[self]

    def datatype(self) -> DataType:
        """The data type values of this primitive are stored as."""
        return _PRIMITIVE_DATATYPES[self]


_PRIMITIVE_NAMES = {p.value: p for p in StructPrimitive}
_PRIMITIVE_NAMES["float32"] = StructPrimitive.FLOAT
_PRIMITIVE_NAMES["float64"] = StructPrimitive.DOUBLE

_PRIMITIVE_SIZES = {
    StructPrimitive.BOOL: 1,
    StructPrimitive.CHAR: 1,
    StructPrimitive.INT8: 1,
    StructPrimitive.UINT8: 1,
    StructPrimitive.INT16: 2,
    StructPrimitive.UINT16: 2,
    StructPrimitive.INT32: 3,
    StructPrimitive.UINT32: 3,
    StructPrimitive.FLOAT: 3,
    StructPrimitive.INT64: 4,
    StructPrimitive.UINT64: 4,
    StructPrimitive.DOUBLE: 4,
}

_PRIMITIVE_DATATYPES = {
    StructPrimitive.BOOL: DataType.BOOLEAN,
    StructPrimitive.CHAR: DataType.UTF8,
    StructPrimitive.INT8: DataType.INT8,
    StructPrimitive.INT16: DataType.INT16,
    StructPrimitive.INT32: DataType.INT32,
    StructPrimitive.INT64: DataType.INT64,
    StructPrimitive.UINT8: DataType.UINT8,
    StructPrimitive.UINT16: DataType.UINT16,
    StructPrimitive.UINT32: DataType.UINT32,
    StructPrimitive.UINT64: DataType.UINT64,
    StructPrimitive.FLOAT: DataType.FLOAT32,
    StructPrimitive.DOUBLE: DataType.FLOAT64,
}


@dataclasses.dataclass(frozen=True)
class CustomType:
    """A reference, by name, to another struct schema."""

    name: str


FieldType = Union[StructPrimitive, CustomType, "StructSchema"]


@dataclasses.dataclass
class StructField:
    """One field of a schema.

    ``count`` is set for array fields; ``enum_values`` is set for enum fields.
    """

    ty: FieldType
    count: Optional[int] = None
    enum_values: Optional[dict[str, int]] = None

    @property
    def is_array(self) -> bool:
        return self.count is not None

    @property
    def is_enum(self) -> bool:
        return self.enum_values is not None


def unresolved_type(name: str) -> Union[StructPrimitive, CustomType]:
    """Map a type name to a primitive, or to a reference to a custom struct."""
    try:
        return StructPrimitive.from_name(name)
    except StructParseError:
        return CustomType(name)


class _NoMatch(Exception):
    """Internal signal that a grammar rule did not match."""


class _Scanner:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def skip_ws(self) -> int:
        match = _WHITESPACE.match(self.data, self.pos)
        skipped = match.end() - self.pos
        self.pos = match.end()
        return skipped

    def tag(self, token: bytes) -> bool:
        if self.data.startswith(token, self.pos):
            self.pos += len(token)
            return True
        return False

    def expect(self, token: bytes) -> None:
        if not self.tag(token):
            raise _NoMatch

    def match(self, pattern: re.Pattern) -> bytes:
        match = pattern.match(self.data, self.pos)
        if match is None:
            raise _NoMatch
        self.pos = match.end()
        return match.group()


def identifier(data) -> tuple[bytes, bytes]:
    """Split a leading identifier off ``data``; return it and the rest."""
    raw = bytes(data)
    match = _IDENTIFIER.match(raw)
    if match is None:
        raise StructParseError("expected an identifier")
    return match.group(), raw[match.end():]


def _parse_enum(scanner: _Scanner) -> dict[str, int]:
    scanner.tag(b"enum")
    scanner.skip_ws()
    scanner.expect(b"{")
    values: dict[str, int] = {}
    while True:
        scanner.skip_ws()
        if scanner.tag(b"}"):
            return values
        name = scanner.match(_IDENTIFIER).decode("ascii")
        scanner.skip_ws()
        scanner.expect(b"=")
        scanner.skip_ws()
        value = int(scanner.match(_SIGNED))
        if not _I64_MIN <= value <= _I64_MAX:
            raise _NoMatch
        scanner.skip_ws()
        values[name] = value
        if not scanner.tag(b";"):
            scanner.tag(b",")


def _parse_count(scanner: _Scanner) -> Optional[int]:
    start = scanner.pos
    try:
        scanner.expect(b"[")
        scanner.skip_ws()
        count = int(scanner.match(_UNSIGNED))
        if count > _USIZE_MAX:
            raise _NoMatch
        scanner.skip_ws()
        scanner.expect(b"]")
    except _NoMatch:
        scanner.pos = start
        return None
    # A zero-length array has nowhere else to go, so it is read as one value.
    return count or None


def _parse_field(scanner: _Scanner) -> tuple[str, StructField]:
    start = scanner.pos
    try:
        enum_values: Optional[dict[str, int]] = _parse_enum(scanner)
    except _NoMatch:
        scanner.pos = start
        enum_values = None

    scanner.skip_ws()
    typename = scanner.match(_IDENTIFIER).decode("ascii")
    if scanner.skip_ws() == 0:
        raise _NoMatch
    try:
        name = scanner.match(_IDENTIFIER).decode("ascii")
    except _NoMatch:
        raise StructParseError(
            f"expected a field name after type {typename!r} at offset {scanner.pos}"
        ) from None
    scanner.skip_ws()
    count = _parse_count(scanner)
    return name, StructField(unresolved_type(typename), count, enum_values)


@dataclasses.dataclass
class StructSchema:
    """A struct layout: field names mapped to their declarations."""

    fields: dict[str, StructField] = dataclasses.field(default_factory=dict)

    @classmethod
    def parse(cls, data) -> "StructSchema":
        """Parse a schema declaration; parsing stops at the first unreadable field."""
        scanner = _Scanner(bytes(data))
        fields: dict[str, StructField] = {}
        while True:
            scanner.skip_ws()
            try:
                name, declared = _parse_field(scanner)
            except _NoMatch:
                break
            fields[name] = declared
            if not scanner.tag(b";"):
                break
        return cls(fields)

    def resolve(self, struct_map: dict[str, "StructSchema"]) -> Optional["StructSchema"]:
        """Replace custom type references with their schemas from ``struct_map``.

        Returns None if any referenced struct is missing or refers back to itself.
        """
        return self._resolve(struct_map, frozenset())

    def _resolve(
        self, struct_map: dict[str, "StructSchema"], active: frozenset
    ) -> Optional["StructSchema"]:
        fields: dict[str, StructField] = {}
        for name, declared in self.fields.items():
            ty = declared.ty
            if isinstance(ty, CustomType):
                inner = struct_map.get(ty.name)
                if inner is None or ty.name in active:
                    return None
                ty = inner._resolve(struct_map, active | {ty.name})
                if ty is None:
                    return None
            enum_values = None if declared.enum_values is None else dict(declared.enum_values)
            fields[name] = dataclasses.replace(declared, ty=ty, enum_values=enum_values)
        return StructSchema(fields)

    def datatype(self) -> dict:
        """Map each field name to its data type, nesting dicts for inner structs."""
        result: dict = {}
        for name, declared in self.fields.items():
            ty = declared.ty
            if isinstance(ty, CustomType):
                raise StructParseError(f"field {name!r} refers to unresolved struct {ty.name!r}")
            result[name] = ty.datatype()
        return result