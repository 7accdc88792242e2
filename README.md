# firstrun

A pure-Python library for working with WPILOG files. It reads the binary data
log format, decodes the values of its entries (WPILib struct schemas and
struct values included) and keeps them in a time-indexed entry log.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Reading a log file

```python
from firstrun.wpilog import WpiLogFile, StartPayload, RawPayload

with open("match.wpilog", "rb") as fh:
    data = fh.read()

if WpiLogFile.is_wpilog(data):
    log_file, rest = WpiLogFile.parse(data, lambda record: print(record))
    print(hex(log_file.version), log_file.extra_header)
    for record in log_file.records:
        print(record.timestamp, record.payload)
```

`WpiLogFile.parse(data, record_cb=None)` returns the parsed file together with
any bytes left after the last complete record. If `record_cb` is given, it is
called for each `WpiRecord` as the record is read. A record's `timestamp` is an
integer in microseconds. Its `payload` is one of `StartPayload`,
`FinishPayload`, `SetMetadataPayload` or `RawPayload`.

Lower-level entry points:

- `WpiLogFile.parse_header(data)` returns `(version, extra_header, rest)`.
- `WpiRecord.parse(data)` returns `(record, rest)` for a single record.
- `RecordHeaderLengths` decodes a record header's length bit field.

Any failure raises a subclass of `WpiLogError`:

- `InvalidFormatError` for a bad magic or an unknown control record type.
- `InvalidVersionError` when the version is anything other than 1.0.
- `InvalidStringError` for a string that is not UTF-8.
- `InvalidIntegerSizeError` for an integer field wider than 8 bytes.
- `IncompleteError` when the input ends too early. Its `needed` attribute gives
  how many more bytes were expected.

## Decoding values

`firstrun.values.parse_from_wpilog(type_name, data, entry_name, logger)`
decodes the bytes of a `RawPayload` using the entry type from its
`StartPayload`. Plain values come back as a list:

- `raw`, `boolean`, `int64`, `float`, `double` and `string` give a single value.
- `boolean[]`, `int64[]`, `float[]`, `double[]` and `string[]` give all of
  their elements.

For the other types:

- `structschema` parses the schema, registers it on the given `EntryLog` under
  `entry_name`, and returns the schema text.
- `struct:<name>` and `struct:<name>[]` decode the data with the registered
  schema, and return a dict of field name to decoded value.
- `json` and any unknown type raise `ValueParseError`. So does data that is too
  short for its type, and a struct name that cannot be resolved.

`parse_datatype`, `parse_from_struct` and `parse_from_primitive` give direct
access to the individual decoding steps.

## The entry log

```python
from firstrun.log import EntryLog, Timestamp
from firstrun.values import parse_from_wpilog

log = EntryLog()
value = parse_from_wpilog("double", payload_bytes, "/drive/speed", log)
log.add_entry("/drive/speed", Timestamp(1_000_000), value)

for key, timestamp, stored in log.get_changed():
    print(key, timestamp.value, stored)

print(log.get_latest_from("/drive/speed", Timestamp(2_000_000)))
```

Keys are `/`-separated entity paths, and `join_path` combines them. When a dict
(a decoded struct) is added, each of its fields is stored as a separate entry
beneath the key. The log provides these methods:

- `get_changed()` returns what changed since the previous call, and clears the
  changes.
- `get_entry(key)` returns the entry's values ordered by timestamp.
- `get_latest_entry(key)` returns the latest value of the entry.
- `get_latest_from(key, time)` returns the latest value at or before `time`.

`Timestamp.to_nanos()` converts a timestamp to nanoseconds.

## Struct schemas

```python
from firstrun.wpistruct import StructSchema

schema = StructSchema.parse(b"enum {a=1, b=2} int8 mode; double values[4]")
```

Each `StructField` carries:

- its type: a `StructPrimitive`, a `CustomType` reference, or a nested
  `StructSchema` once the schema is resolved;
- an optional array `count`;
- optional `enum_values`.

`StructSchema.resolve(struct_map)` replaces `CustomType` references with the
schemas they name. It returns `None` if a referenced schema is missing or
refers back to itself.

## What is not included

This is a library only. It has no command-line program and no viewer or plotting
of logged data. It cannot connect to a live robot to stream values. It does not
decode `json` entries.