#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Value codec: boxes application values into self-describing wire values.

A boxed value wraps ``google.protobuf.Any``; the type URL alone decides how
the payload decodes. Only protobuf well-known types are produced:

==========================  =====================================
Python value                Wire tag
==========================  =====================================
``None``                    ``google.protobuf.Empty``
``bool``                    ``google.protobuf.BoolValue``
``int`` (signed 64-bit)     ``google.protobuf.Int64Value``
``int`` (above int64)       ``google.protobuf.UInt64Value``
``float``                   ``google.protobuf.DoubleValue``
``str``                     ``google.protobuf.StringValue``
``bytes``                   ``google.protobuf.BytesValue``
``datetime``                ``google.protobuf.Timestamp``
``timedelta``               ``google.protobuf.Duration``
list / dict / ``to_json``   ``google.protobuf.Value``
``to_text``                 ``google.protobuf.StringValue``
``to_binary``               ``google.protobuf.BytesValue``
protobuf message            the message's own type
==========================  =====================================

Narrower integer and float wrappers are never produced, but they are still
accepted when unboxing.

Usage Example:
    >>> boxed = box(128)
    >>> unbox(boxed, int)
    128
    >>> unbox(boxed, Int8)
    Traceback (most recent call last):
    ...
    NumericOverflowError: cannot unbox google.protobuf.Int64Value of 128 into int8
"""

import types
import typing
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple, Type, Union, runtime_checkable

from google.protobuf import (
    any_pb2,
    descriptor_pool,
    duration_pb2,
    empty_pb2,
    message_factory,
    struct_pb2,
    timestamp_pb2,
    wrappers_pb2,
)
from google.protobuf.message import DecodeError, Message

from ..utils.exceptions import NumericOverflowError, TypeMismatchError, UnsupportedTypeError
from .kinds import FloatKind, IntKind

TYPE_URL_PREFIX = "type.googleapis.com/"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1


@runtime_checkable
class JSONMarshaler(Protocol):
    """Value that converts itself to a JSON-shaped tree."""

    def to_json(self) -> Any:
        ...


@runtime_checkable
class JSONUnmarshaler(Protocol):
    """Type that rebuilds an instance from a JSON-shaped tree."""

    def from_json(self, data: Any) -> Any:
        ...


@runtime_checkable
class TextMarshaler(Protocol):
    def to_text(self) -> str:
        ...


@runtime_checkable
class TextUnmarshaler(Protocol):
    def from_text(self, text: str) -> Any:
        ...


@runtime_checkable
class BinaryMarshaler(Protocol):
    def to_binary(self) -> bytes:
        ...


@runtime_checkable
class BinaryUnmarshaler(Protocol):
    def from_binary(self, data: bytes) -> Any:
        ...


_KNOWN_MESSAGES: Dict[str, Type[Message]] = {
    cls.DESCRIPTOR.full_name: cls
    for cls in (
        empty_pb2.Empty,
        wrappers_pb2.BoolValue,
        wrappers_pb2.Int32Value,
        wrappers_pb2.Int64Value,
        wrappers_pb2.UInt32Value,
        wrappers_pb2.UInt64Value,
        wrappers_pb2.FloatValue,
        wrappers_pb2.DoubleValue,
        wrappers_pb2.StringValue,
        wrappers_pb2.BytesValue,
        timestamp_pb2.Timestamp,
        duration_pb2.Duration,
        struct_pb2.Value,
        struct_pb2.Struct,
        struct_pb2.ListValue,
    )
}

_SIGNED_WRAPPERS = (wrappers_pb2.Int64Value, wrappers_pb2.Int32Value)
_UNSIGNED_WRAPPERS = (wrappers_pb2.UInt64Value, wrappers_pb2.UInt32Value)
_FLOAT_WRAPPERS = (wrappers_pb2.DoubleValue, wrappers_pb2.FloatValue)
_VALUE_WRAPPERS = (
    wrappers_pb2.BoolValue,
    wrappers_pb2.StringValue,
    wrappers_pb2.BytesValue,
) + _SIGNED_WRAPPERS + _UNSIGNED_WRAPPERS + _FLOAT_WRAPPERS

_UNTYPED_TARGETS = (None, Any, object)
_PRIMITIVE_TARGETS = (bool, int, float, str, bytes, datetime, timedelta)


class Boxed:
    """
    Immutable boxed value: a type URL plus an encoded payload.

    Two boxed values are equal when both tag and payload are equal.
    """

    __slots__ = ("_proto",)

    def __init__(self, proto: any_pb2.Any) -> None:
        copy = any_pb2.Any()
        copy.CopyFrom(proto)
        self._proto = copy

    @classmethod
    def from_message(cls, message: Message) -> "Boxed":
        proto = any_pb2.Any()
        proto.Pack(message, deterministic=True)
        return cls(proto)

    @property
    def type_url(self) -> str:
        return self._proto.type_url

    @property
    def type_name(self) -> str:
        """Fully qualified message name carried by the type URL."""
        return self._proto.type_url.rsplit("/", 1)[-1]

    @property
    def value(self) -> bytes:
        return self._proto.value

    def to_proto(self) -> any_pb2.Any:
        copy = any_pb2.Any()
        copy.CopyFrom(self._proto)
        return copy

    def unpack(self) -> Message:
        """Decode the payload into its native protobuf message."""
        name = self.type_name
        message_class = _KNOWN_MESSAGES.get(name)
        if message_class is None:
            try:
                descriptor = descriptor_pool.Default().FindMessageTypeByName(name)
            except KeyError as e:
                raise TypeMismatchError(
                    f"cannot unbox unknown type {self.type_url!r}",
                    type_url=self.type_url,
                    cause=e,
                ) from e
            message_class = message_factory.GetMessageClass(descriptor)

        message = message_class()
        try:
            message.ParseFromString(self._proto.value)
        except DecodeError as e:
            raise TypeMismatchError(
                f"cannot decode {name} payload: {e}",
                type_url=self.type_url,
                cause=e,
            ) from e
        return message

    def unbox(self, target: Any = None) -> Any:
        return unbox(self, target)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Boxed):
            return NotImplemented
        return self.type_url == other.type_url and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.type_url, self.value))

    def __repr__(self) -> str:
        return f"Boxed({self.type_name})"

    def __reduce__(self) -> Tuple[Any, ...]:
        return (_boxed_from_wire, (self.type_url, self.value))


def _boxed_from_wire(type_url: str, value: bytes) -> Boxed:
    return Boxed(any_pb2.Any(type_url=type_url, value=value))


# Boxing


def _box_int(value: int) -> Message:
    if _INT64_MIN <= value <= _INT64_MAX:
        return wrappers_pb2.Int64Value(value=value)
    if 0 <= value <= _UINT64_MAX:
        return wrappers_pb2.UInt64Value(value=value)
    raise UnsupportedTypeError(
        f"cannot box integer {value}: outside the 64-bit range",
        value_type="int",
    )


def _box_datetime(value: datetime) -> timestamp_pb2.Timestamp:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    timestamp = timestamp_pb2.Timestamp()
    timestamp.FromDatetime(value)
    return timestamp


def _box_timedelta(value: timedelta) -> duration_pb2.Duration:
    duration = duration_pb2.Duration()
    duration.FromTimedelta(value)
    return duration


def _box_primitive(value: Any) -> Optional[Message]:
    # bool is an int subclass and must be matched first.
    if isinstance(value, bool):
        return wrappers_pb2.BoolValue(value=value)
    if isinstance(value, int):
        return _box_int(value)
    if isinstance(value, float):
        return wrappers_pb2.DoubleValue(value=value)
    if isinstance(value, str):
        return wrappers_pb2.StringValue(value=value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return wrappers_pb2.BytesValue(value=bytes(value))
    if isinstance(value, datetime):
        return _box_datetime(value)
    if isinstance(value, timedelta):
        return _box_timedelta(value)
    return None


def to_struct_value(tree: Any) -> struct_pb2.Value:
    """
    Convert a JSON-shaped tree into ``google.protobuf.Value``.

    Integers must survive the trip through a double unchanged.
    """
    value = struct_pb2.Value()
    if tree is None:
        value.null_value = struct_pb2.NULL_VALUE
    elif isinstance(tree, bool):
        value.bool_value = tree
    elif isinstance(tree, int):
        number = float(tree)
        if int(number) != tree:
            raise UnsupportedTypeError(
                f"cannot box {tree} as a structural number ({number!r}) without losing information",
                value_type="int",
            )
        value.number_value = number
    elif isinstance(tree, float):
        value.number_value = tree
    elif isinstance(tree, str):
        value.string_value = tree
    elif isinstance(tree, (list, tuple)):
        items = value.list_value
        items.SetInParent()
        for item in tree:
            items.values.add().CopyFrom(to_struct_value(item))
    elif isinstance(tree, dict):
        fields = value.struct_value
        fields.SetInParent()
        for key, item in tree.items():
            if not isinstance(key, str):
                raise UnsupportedTypeError(
                    f"cannot box mapping with {type(key).__name__} key",
                    value_type=type(tree).__name__,
                )
            fields.fields[key].CopyFrom(to_struct_value(item))
    elif isinstance(tree, JSONMarshaler):
        return to_struct_value(tree.to_json())
    else:
        raise UnsupportedTypeError(
            f"cannot box {type(tree).__name__} inside a structural value",
            value_type=type(tree).__name__,
        )
    return value


def box(value: Any) -> Boxed:
    """
    Box a value. Raises ``UnsupportedTypeError`` when the value's shape has no
    wire representation.
    """
    if value is None:
        return Boxed.from_message(empty_pb2.Empty())

    if isinstance(value, Message):
        return Boxed.from_message(value)

    primitive = _box_primitive(value)
    if primitive is not None:
        return Boxed.from_message(primitive)

    if isinstance(value, (list, tuple, dict)) or isinstance(value, JSONMarshaler):
        return Boxed.from_message(to_struct_value(value))

    if isinstance(value, TextMarshaler):
        return Boxed.from_message(wrappers_pb2.StringValue(value=value.to_text()))

    if isinstance(value, BinaryMarshaler):
        return Boxed.from_message(wrappers_pb2.BytesValue(value=value.to_binary()))

    raise UnsupportedTypeError(
        f"cannot box value of type {type(value).__name__}",
        value_type=type(value).__name__,
    )


# Unboxing


def _target_name(target: Any) -> str:
    if isinstance(target, (IntKind, FloatKind)):
        return target.name
    if isinstance(target, type) and typing.get_origin(target) is None:
        return target.__name__
    return repr(target).replace("typing.", "")


def _mismatch(message: Message, target: Any) -> TypeMismatchError:
    name = message.DESCRIPTOR.full_name
    return TypeMismatchError(
        f"cannot unbox {name} into {_target_name(target)}",
        type_url=TYPE_URL_PREFIX + name,
        target=_target_name(target),
    )


def _overflow(message: Message, number: Any, target: Any) -> NumericOverflowError:
    name = message.DESCRIPTOR.full_name
    return NumericOverflowError(
        f"cannot unbox {name} of {number} into {_target_name(target)}",
        type_url=TYPE_URL_PREFIX + name,
        target=_target_name(target),
        value=number,
    )


def _optional_inner(target: Any) -> Optional[Any]:
    """Inner type of ``Optional[T]``, or None when target is not optional."""
    origin = typing.get_origin(target)
    if origin not in (Union, types.UnionType):
        return None
    args = [arg for arg in typing.get_args(target) if arg is not type(None)]
    if len(args) == len(typing.get_args(target)):
        return None
    if len(args) == 1:
        return args[0]
    return Union[tuple(args)]


def struct_to_python(value: struct_pb2.Value) -> Any:
    kind = value.WhichOneof("kind")
    if kind == "null_value" or kind is None:
        return None
    if kind == "bool_value":
        return value.bool_value
    if kind == "number_value":
        return value.number_value
    if kind == "string_value":
        return value.string_value
    if kind == "list_value":
        return [struct_to_python(item) for item in value.list_value.values]
    return {key: struct_to_python(item) for key, item in value.struct_value.fields.items()}


def _natural(message: Message) -> Any:
    if isinstance(message, empty_pb2.Empty):
        return None
    if isinstance(message, _VALUE_WRAPPERS):
        return message.value
    if isinstance(message, timestamp_pb2.Timestamp):
        return message.ToDatetime(tzinfo=timezone.utc)
    if isinstance(message, duration_pb2.Duration):
        return message.ToTimedelta()
    if isinstance(message, struct_pb2.Value):
        return struct_to_python(message)
    return message


def _check_int(message: Message, number: int, target: Any) -> int:
    if isinstance(target, IntKind) and target.overflows(number):
        raise _overflow(message, number, target)
    if target is int and not _INT64_MIN <= number <= _UINT64_MAX:
        raise _overflow(message, number, target)
    return number


def _check_float(message: Message, number: float, target: Any) -> float:
    if isinstance(target, FloatKind) and target.overflows(number):
        raise _overflow(message, number, target)
    return number


def _from_struct(message: struct_pb2.Value, target: Any) -> Any:
    if target in _UNTYPED_TARGETS:
        return struct_to_python(message)

    kind = message.WhichOneof("kind")

    inner = _optional_inner(target)
    if inner is not None:
        if kind == "null_value":
            return None
        return _from_struct(message, inner)

    origin = typing.get_origin(target) or target
    args = typing.get_args(target)

    if target is bool and kind == "bool_value":
        return message.bool_value

    if (target is int or isinstance(target, IntKind)) and kind == "number_value":
        number = message.number_value
        if not number.is_integer():
            raise _overflow(message, number, target)
        return _check_int(message, int(number), target)

    if (target is float or isinstance(target, FloatKind)) and kind == "number_value":
        return _check_float(message, message.number_value, target)

    if target is str and kind == "string_value":
        return message.string_value

    if origin in (list, tuple) and kind == "list_value":
        element = args[0] if args else None
        items = [_from_struct(item, element) for item in message.list_value.values]
        return tuple(items) if origin is tuple else items

    if origin is dict and kind == "struct_value":
        element = args[1] if len(args) == 2 else None
        return {
            key: _from_struct(item, element)
            for key, item in message.struct_value.fields.items()
        }

    raise _mismatch(message, target)


def _unbox_primitive(message: Message, target: Any) -> Any:
    if target is bool:
        if isinstance(message, wrappers_pb2.BoolValue):
            return message.value
        raise _mismatch(message, target)

    if target is int or isinstance(target, IntKind):
        if isinstance(message, _SIGNED_WRAPPERS + _UNSIGNED_WRAPPERS):
            return _check_int(message, message.value, target)
        raise _mismatch(message, target)

    if target is float or isinstance(target, FloatKind):
        if isinstance(message, _FLOAT_WRAPPERS):
            return _check_float(message, message.value, target)
        raise _mismatch(message, target)

    if target is str:
        if isinstance(message, wrappers_pb2.StringValue):
            return message.value
        raise _mismatch(message, target)

    if target is bytes:
        if isinstance(message, wrappers_pb2.BytesValue):
            return message.value
        raise _mismatch(message, target)

    if target is datetime:
        if not isinstance(message, timestamp_pb2.Timestamp):
            raise _mismatch(message, target)
        try:
            return message.ToDatetime(tzinfo=timezone.utc)
        except (ValueError, OverflowError) as e:
            raise TypeMismatchError(
                f"cannot unbox {message.DESCRIPTOR.full_name} into datetime: {e}",
                type_url=TYPE_URL_PREFIX + message.DESCRIPTOR.full_name,
                target="datetime",
                cause=e,
            ) from e

    if target is timedelta:
        if not isinstance(message, duration_pb2.Duration):
            raise _mismatch(message, target)
        try:
            return message.ToTimedelta()
        except (ValueError, OverflowError) as e:
            raise TypeMismatchError(
                f"cannot unbox {message.DESCRIPTOR.full_name} into timedelta: {e}",
                type_url=TYPE_URL_PREFIX + message.DESCRIPTOR.full_name,
                target="timedelta",
                cause=e,
            ) from e

    raise _mismatch(message, target)


def unbox(boxed: Boxed, target: Any = None) -> Any:
    """
    Decode a boxed value into ``target``.

    ``target`` may be ``None``/``typing.Any`` (natural Python value), a
    primitive type, a fixed-width kind from ``kinds``, ``Optional[T]``,
    ``list[T]``/``dict[str, T]``, a protobuf message class, or a class with
    ``from_json``/``from_text``/``from_binary``.
    """
    message = boxed.unpack()

    if target in _UNTYPED_TARGETS:
        return _natural(message)

    inner = _optional_inner(target)
    if inner is not None:
        if isinstance(message, empty_pb2.Empty):
            return None
        return unbox(boxed, inner)

    if isinstance(target, type) and type(message) is target:
        return message

    capable = isinstance(target, type) and target not in _PRIMITIVE_TARGETS
    if capable:
        if isinstance(message, struct_pb2.Value) and isinstance(target, JSONUnmarshaler):
            return target.from_json(struct_to_python(message))
        if isinstance(message, wrappers_pb2.StringValue) and isinstance(target, TextUnmarshaler):
            return target.from_text(message.value)
        if isinstance(message, wrappers_pb2.BytesValue) and isinstance(target, BinaryUnmarshaler):
            return target.from_binary(message.value)

    if target in _PRIMITIVE_TARGETS or isinstance(target, (IntKind, FloatKind)):
        if isinstance(message, struct_pb2.Value):
            return _from_struct(message, target)
        return _unbox_primitive(message, target)

    if isinstance(message, struct_pb2.Value):
        return _from_struct(message, target)

    raise _mismatch(message, target)


def box_all(values: List[Any]) -> List[Boxed]:
    return [box(value) for value in values]


__all__ = [
    "BinaryMarshaler",
    "BinaryUnmarshaler",
    "Boxed",
    "JSONMarshaler",
    "JSONUnmarshaler",
    "TextMarshaler",
    "TextUnmarshaler",
    "TYPE_URL_PREFIX",
    "box",
    "box_all",
    "struct_to_python",
    "to_struct_value",
    "unbox",
]
