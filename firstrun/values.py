"""Decoding of logged entry payloads into lists of values.

A decoded value is a list (one column of values) or, for structs,
a dict mapping field names to decoded values.
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING, Any, Union

from firstrun.wpistruct import (
    DataType,
    StructField,
    StructPrimitive,
    StructSchema,
)

if TYPE_CHECKING:
    from firstrun.log import EntryLog

EntryValue = Union[list, dict]

_NUMERIC = {
    DataType.INT64: ("<q", 8, "int64"),
    DataType.FLOAT32: ("<f", 4, "float"),
    DataType.FLOAT64: ("<d", 8, "double"),
}

_SIMPLE_TYPES = {
    "raw": (False, DataType.BINARY),
    "boolean": (False, DataType.BOOLEAN),
    "int64": (False, DataType.INT64),
    "float": (False, DataType.FLOAT32),
    "double": (False, DataType.FLOAT64),
    "string": (False, DataType.UTF8),
    "boolean[]": (True, DataType.BOOLEAN),
    "int64[]": (True, DataType.INT64),
    "float[]": (True, DataType.FLOAT32),
    "double[]": (True, DataType.FLOAT64),
    "string[]": (True, DataType.UTF8),
}

_STRUCT_PREFIX = "struct:"


class ValueParseError(ValueError):
    """A payload could not be decoded."""


def _take(data: bytes, pos: int, count: int) -> tuple[bytes, int]:
    if len(data) - pos < count:
        raise ValueParseError(f"not enough data: needed {count} byte(s) at offset {pos}")
    return data[pos:pos + count], pos + count


def _parse_string_array(raw: bytes) -> list[str]:
    chunk, pos = _take(raw, 0, 4)
    count = int.from_bytes(chunk, "little")
    strings = []
    for _ in range(count):
        chunk, pos = _take(raw, pos, 4)
        text, pos = _take(raw, pos, int.from_bytes(chunk, "little"))
        strings.append(text.decode("utf-8", errors="replace"))
    return strings


def parse_datatype(data, is_array: bool, datatype: DataType) -> list:
    """Decode raw bytes of the given data type into a list of values."""
    raw = bytes(data)
    if datatype is DataType.BINARY and not is_array:
        return [raw]
    if datatype is DataType.BOOLEAN:
        if is_array:
            return [byte != 0 for byte in raw]
        return [raw[0] != 0] if raw else []
    if datatype in _NUMERIC:
        fmt, width, label = _NUMERIC[datatype]
        if is_array:
            usable = len(raw) - len(raw) % width
            return [value for (value,) in struct.iter_unpack(fmt, raw[:usable])]
        if len(raw) < width:
            raise ValueParseError(f"not enough data for {label}")
        return [struct.unpack_from(fmt, raw)[0]]
    if datatype is DataType.UTF8:
        if is_array:
            return _parse_string_array(raw)
        return [raw.decode("utf-8", errors="replace")]
    raise ValueParseError("unsupported datatype")


def parse_from_wpilog(type_name: str, data, entry_name: str, logger: "EntryLog") -> EntryValue:
    """Decode a record's payload according to its entry type string."""
    raw = bytes(data)
    simple = _SIMPLE_TYPES.get(type_name)
    if simple is not None:
        is_array, datatype = simple
        return parse_datatype(raw, is_array, datatype)
    if type_name == "json":
        raise ValueParseError("json not implemented")
    if type_name == "structschema":
        logger.add_struct(entry_name, StructSchema.parse(raw))
        return [raw.decode("utf-8", errors="replace")]
    if type_name.startswith(_STRUCT_PREFIX):
        name = type_name[len(_STRUCT_PREFIX):]
        if name.endswith("[]"):
            name = name[:-2]
        schema = logger.resolve_struct(name)
        if schema is None:
            raise ValueParseError(f"couldn't resolve struct {name}")
        return parse_from_struct(raw, schema)[1]
    raise ValueParseError(f"unknown data type {type_name} (data length: {len(raw)})")


def parse_from_struct(data, schema: StructSchema) -> tuple[bytes, dict[str, Any]]:
    """Decode a resolved struct; return the bytes left over and the field values."""
    rest = bytes(data)
    values: dict[str, Any] = {}
    for name, declared in schema.fields.items():
        ty = declared.ty
        if isinstance(ty, StructPrimitive):
            rest, value = parse_from_primitive(rest, declared, ty)
        elif isinstance(ty, StructSchema):
            rest, value = parse_from_struct(rest, ty)
        else:
            raise ValueParseError(f"field {name!r} refers to an unresolved struct")
        values[name] = value
    return rest, values


def parse_from_primitive(
    data, field: StructField, primitive: StructPrimitive
) -> tuple[bytes, list]:
    """Decode one primitive field; return the bytes left over and its values."""
    raw = bytes(data)
    chunk, pos = _take(raw, 0, primitive.size())
    value = parse_datatype(chunk, field.count is not None, primitive.datatype())
    return raw[pos:], value