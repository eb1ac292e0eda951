#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import pickle
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from google.protobuf import any_pb2, timestamp_pb2, wrappers_pb2

from dispatchcore.core.data.codec import Boxed, box, unbox
from dispatchcore.core.data.kinds import Float32, Int8, Uint8, Uint64
from dispatchcore.core.utils.exceptions import (
    CodecError,
    NumericOverflowError,
    TypeMismatchError,
    UnsupportedTypeError,
)


class Point:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def to_json(self):
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_json(cls, data):
        return cls(int(data["x"]), int(data["y"]))

    def __eq__(self, other):
        return isinstance(other, Point) and (self.x, self.y) == (other.x, other.y)


class Color:
    def __init__(self, name: str) -> None:
        self.name = name

    def to_text(self) -> str:
        return self.name.upper()

    @classmethod
    def from_text(cls, text: str) -> "Color":
        return cls(text.lower())


class Blob:
    def __init__(self, data: bytes) -> None:
        self.data = data

    def to_binary(self) -> bytes:
        return b"blob:" + self.data

    @classmethod
    def from_binary(cls, data: bytes) -> "Blob":
        return cls(data[len(b"blob:"):])


@pytest.mark.parametrize(
    "value",
    [
        None,
        True,
        False,
        0,
        -1,
        2**63 - 1,
        -(2**63),
        2**64 - 1,
        1.5,
        float("inf"),
        "",
        "héllo",
        b"\x00\xff",
        datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc),
        timedelta(seconds=90, microseconds=5),
    ],
)
def test_primitive_values_round_trip(value):
    assert unbox(box(value)) == value


def test_box_uses_well_known_type_urls():
    assert box(None).type_url == "type.googleapis.com/google.protobuf.Empty"
    assert box(True).type_name == "google.protobuf.BoolValue"
    assert box(1).type_name == "google.protobuf.Int64Value"
    assert box(2**63).type_name == "google.protobuf.UInt64Value"
    assert box(1.0).type_name == "google.protobuf.DoubleValue"
    assert box("x").type_name == "google.protobuf.StringValue"
    assert box(bytearray(b"x")).type_name == "google.protobuf.BytesValue"
    assert box(datetime.now(timezone.utc)).type_name == "google.protobuf.Timestamp"
    assert box(timedelta(seconds=1)).type_name == "google.protobuf.Duration"
    assert box([1, 2]).type_name == "google.protobuf.Value"


def test_box_rejects_integers_outside_64_bits():
    with pytest.raises(UnsupportedTypeError):
        box(2**64)
    with pytest.raises(UnsupportedTypeError):
        box(-(2**63) - 1)


def test_box_rejects_unsupported_values():
    with pytest.raises(UnsupportedTypeError, match="cannot box value of type object"):
        box(object())


def test_unsupported_type_error_is_a_type_error():
    with pytest.raises(TypeError):
        box(object())


def test_naive_datetime_is_taken_as_utc():
    boxed = box(datetime(2024, 1, 1, 12, 0))

    assert unbox(boxed, datetime) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [127, -128])
def test_int8_accepts_its_boundaries(value):
    assert unbox(box(value), Int8) == value


@pytest.mark.parametrize("value", [128, -129])
def test_int8_rejects_values_past_its_boundaries(value):
    with pytest.raises(NumericOverflowError):
        unbox(box(value), Int8)


def test_overflow_message_names_tag_value_and_target():
    with pytest.raises(NumericOverflowError) as info:
        unbox(box(128), Int8)

    assert str(info.value) == "cannot unbox google.protobuf.Int64Value of 128 into int8"


def test_unsigned_target_rejects_negative_values():
    with pytest.raises(NumericOverflowError):
        unbox(box(-1), Uint8)


def test_uint64_target_accepts_unsigned_wire_values():
    assert unbox(box(2**64 - 1), Uint64) == 2**64 - 1


def test_float32_target_rejects_values_out_of_range():
    with pytest.raises(NumericOverflowError):
        unbox(box(1e39), Float32)

    assert unbox(box(float("inf")), Float32) == float("inf")


def test_narrow_wire_types_are_accepted():
    boxed = box(wrappers_pb2.Int32Value(value=7))

    assert boxed.type_name == "google.protobuf.Int32Value"
    assert unbox(boxed, int) == 7
    assert unbox(boxed) == 7


def test_mismatch_message_names_tag_and_target():
    with pytest.raises(TypeMismatchError) as info:
        unbox(box("x"), int)

    assert str(info.value) == "cannot unbox google.protobuf.StringValue into int"


def test_bool_does_not_unbox_into_int():
    with pytest.raises(TypeMismatchError):
        unbox(box(True), int)


def test_null_into_optional_target_is_none():
    assert unbox(box(None), Optional[int]) is None
    assert unbox(box(None), int | None) is None
    assert unbox(box(5), Optional[int]) == 5


def test_null_into_untyped_target_is_none():
    assert unbox(box(None)) is None
    assert unbox(box(None), object) is None


def test_null_into_plain_target_is_a_mismatch():
    with pytest.raises(TypeMismatchError):
        unbox(box(None), int)


def test_structured_values_round_trip_naturally():
    tree = {"name": "a", "tags": ["x", "y"], "score": 2.5, "missing": None, "ok": True}

    assert unbox(box(tree)) == tree


def test_structured_values_unbox_into_generic_targets():
    assert unbox(box([1, 2, 3]), list[int]) == [1, 2, 3]
    assert all(type(item) is int for item in unbox(box([1, 2]), list[int]))
    assert unbox(box({"a": 1}), dict[str, int]) == {"a": 1}
    assert unbox(box((1, 2)), tuple) == (1, 2)


def test_structured_number_must_be_integral_for_integer_targets():
    with pytest.raises(NumericOverflowError):
        unbox(box([1.5]), list[int])


def test_structured_number_must_fit_64_bits_for_int_targets():
    with pytest.raises(NumericOverflowError):
        unbox(box([1e20]), list[int])
    with pytest.raises(NumericOverflowError):
        unbox(box({"n": -1e19}), dict[str, int])
    assert unbox(box([-(2.0**63)]), list[int]) == [-(2**63)]


def test_structured_integers_must_survive_double_conversion():
    with pytest.raises(UnsupportedTypeError):
        box([2**53 + 1])


def test_structured_mappings_need_string_keys():
    with pytest.raises(UnsupportedTypeError):
        box({1: "a"})


def test_json_capability_round_trip():
    boxed = box(Point(1, 2))

    assert boxed.type_name == "google.protobuf.Value"
    assert unbox(boxed, Point) == Point(1, 2)
    assert unbox(boxed) == {"x": 1, "y": 2}


def test_text_capability_round_trip():
    boxed = box(Color("red"))

    assert boxed.type_name == "google.protobuf.StringValue"
    assert unbox(boxed, str) == "RED"
    assert unbox(boxed, Color).name == "red"


def test_binary_capability_round_trip():
    boxed = box(Blob(b"abc"))

    assert boxed.type_name == "google.protobuf.BytesValue"
    assert unbox(boxed, bytes) == b"blob:abc"
    assert unbox(boxed, Blob).data == b"abc"


def test_native_message_target_returns_the_message():
    timestamp = timestamp_pb2.Timestamp(seconds=10)

    assert unbox(box(timestamp), timestamp_pb2.Timestamp) == timestamp


def test_unknown_type_url_is_a_mismatch():
    boxed = Boxed(any_pb2.Any(type_url="type.googleapis.com/example.Missing", value=b""))

    with pytest.raises(TypeMismatchError):
        unbox(boxed)


def test_codec_errors_share_a_base_class():
    with pytest.raises(CodecError):
        unbox(box("x"), float)


def test_boxed_values_compare_by_tag_and_payload():
    assert box(1) == box(1)
    assert box(1) != box(2)
    assert box(1) != box(1.0)
    assert len({box("a"), box("a")}) == 1


def test_boxed_values_pickle():
    boxed = box({"k": [1, 2]})

    assert pickle.loads(pickle.dumps(boxed)) == boxed


def test_boxed_repr_shows_type_name():
    assert repr(box(1)) == "Boxed(google.protobuf.Int64Value)"
