import pytest

from firstrun.wpistruct import (
    CustomType,
    DataType,
    StructField,
    StructParseError,
    StructPrimitive,
    StructSchema,
    identifier,
    unresolved_type,
)


def test_basic_struct():
    schema = StructSchema.parse(b"  bool  value  ")
    assert schema.fields == {"value": StructField(StructPrimitive.BOOL, None, None)}


def test_array_struct():
    schema = StructSchema.parse(b"  double  arr  [  4  ]  ")
    assert schema.fields == {"arr": StructField(StructPrimitive.DOUBLE, 4, None)}
    assert schema.fields["arr"].is_array


def test_basic_enum():
    schema = StructSchema.parse(b"  enum  {  }  int8  val")
    assert schema.fields == {"val": StructField(StructPrimitive.INT8, None, {})}
    assert schema.fields["val"].is_enum


def test_multi_struct():
    schema = StructSchema.parse(
        b"  enum  {  a  =  3  ,  }  int64  something  ;  int8  other  ;  "
        b"enum  {  multi  =  64,  other=24  }  uint16  number_3[3]"
    )
    assert schema.fields == {
        "something": StructField(StructPrimitive.INT64, None, {"a": 3}),
        "other": StructField(StructPrimitive.INT8, None, None),
        "number_3": StructField(StructPrimitive.UINT16, 3, {"multi": 64, "other": 24}),
    }
    assert list(schema.fields) == ["something", "other", "number_3"]


def test_enum_with_semicolons_and_negative_values():
    schema = StructSchema.parse(b"enum {a=-5; b=+7} int8 x")
    assert schema.fields["x"].enum_values == {"a": -5, "b": 7}


def test_empty_schema():
    assert StructSchema.parse(b"").fields == {}
    assert StructSchema.parse(b"   \n\t ").fields == {}


def test_zero_length_array_is_single_value():
    schema = StructSchema.parse(b"int8 x[0]")
    assert schema.fields["x"].count is None


def test_parsing_stops_at_unreadable_field():
    schema = StructSchema.parse(b"bool a; ??? b")
    assert schema.fields == {"a": StructField(StructPrimitive.BOOL)}


def test_parsing_stops_without_separator():
    schema = StructSchema.parse(b"bool a int8 b")
    assert list(schema.fields) == ["a"]


def test_missing_field_name_raises():
    with pytest.raises(StructParseError):
        StructSchema.parse(b"bool 123")


def test_custom_field_type():
    schema = StructSchema.parse(b"Translation2d translation;Rotation2d rotation")
    assert schema.fields["translation"].ty == CustomType("Translation2d")
    assert schema.fields["rotation"].ty == CustomType("Rotation2d")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("bool", StructPrimitive.BOOL),
        ("char", StructPrimitive.CHAR),
        ("uint64", StructPrimitive.UINT64),
        ("float", StructPrimitive.FLOAT),
        ("float32", StructPrimitive.FLOAT),
        ("double", StructPrimitive.DOUBLE),
        ("float64", StructPrimitive.DOUBLE),
    ],
)
def test_from_name(name, expected):
    assert StructPrimitive.from_name(name) is expected


def test_from_name_unknown_raises():
    with pytest.raises(StructParseError):
        StructPrimitive.from_name("int128")


@pytest.mark.parametrize(
    "primitive, size",
    [
        (StructPrimitive.BOOL, 1),
        (StructPrimitive.UINT8, 1),
        (StructPrimitive.INT16, 2),
        (StructPrimitive.INT32, 3),
        (StructPrimitive.FLOAT, 3),
        (StructPrimitive.INT64, 4),
        (StructPrimitive.DOUBLE, 4),
    ],
)
def test_size(primitive, size):
    assert primitive.size() == size


@pytest.mark.parametrize(
    "primitive, datatype",
    [
        (StructPrimitive.BOOL, DataType.BOOLEAN),
        (StructPrimitive.CHAR, DataType.UTF8),
        (StructPrimitive.UINT32, DataType.UINT32),
        (StructPrimitive.FLOAT, DataType.FLOAT32),
        (StructPrimitive.DOUBLE, DataType.FLOAT64),
    ],
)
def test_primitive_datatype(primitive, datatype):
    assert primitive.datatype() is datatype


def test_unresolved_type():
    assert unresolved_type("int16") is StructPrimitive.INT16
    assert unresolved_type("Pose2d") == CustomType("Pose2d")


def test_identifier():
    assert identifier(b"_abc1 rest") == (b"_abc1", b" rest")
    assert identifier(b"int64") == (b"int64", b"")


def test_identifier_rejects_leading_digit():
    with pytest.raises(StructParseError):
        identifier(b"1abc")


def test_resolve_nested():
    inner = StructSchema.parse(b"double x;double y")
    outer = StructSchema.parse(b"Point p;int8 flag")
    resolved = outer.resolve({"Point": inner, "Outer": outer})
    assert resolved.fields["p"].ty == inner
    assert resolved.fields["flag"].ty is StructPrimitive.INT8
    assert resolved.datatype() == {
        "p": {"x": DataType.FLOAT64, "y": DataType.FLOAT64},
        "flag": DataType.INT8,
    }


def test_resolve_keeps_enum_and_count():
    schema = StructSchema.parse(b"enum {a=1} uint8 m[2]")
    resolved = schema.resolve({})
    assert resolved.fields["m"] == StructField(StructPrimitive.UINT8, 2, {"a": 1})


def test_resolve_missing_returns_none():
    schema = StructSchema.parse(b"Missing m")
    assert schema.resolve({}) is None


def test_resolve_cycle_returns_none():
    a = StructSchema.parse(b"B b")
    b = StructSchema.parse(b"A a")
    assert a.resolve({"A": a, "B": b}) is None


def test_datatype_of_unresolved_raises():
    schema = StructSchema.parse(b"Other o")
    with pytest.raises(StructParseError):
        schema.datatype()