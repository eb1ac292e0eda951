#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Fixed-width numeric targets for unboxing.

Python numbers are unbounded, so narrow targets are expressed with these
descriptors: ``unbox(boxed, Int8)`` rejects anything outside ``[-128, 127]``
instead of wrapping.
"""

import math
from dataclasses import dataclass
from typing import Union

_MAX_FLOAT32 = 3.4028234663852886e38


@dataclass(frozen=True)
class IntKind:
    """Integer target with an inclusive range."""

    name: str
    minimum: int
    maximum: int

    @property
    def signed(self) -> bool:
        return self.minimum < 0

    def overflows(self, value: int) -> bool:
        return not self.minimum <= value <= self.maximum

    def __repr__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FloatKind:
    """Floating point target; infinities and NaN never overflow."""

    name: str
    maximum: float

    def overflows(self, value: float) -> bool:
        if math.isinf(value) or math.isnan(value):
            return False
        return abs(value) > self.maximum

    def __repr__(self) -> str:
        return self.name


Int8 = IntKind("int8", -(2**7), 2**7 - 1)
Int16 = IntKind("int16", -(2**15), 2**15 - 1)
Int32 = IntKind("int32", -(2**31), 2**31 - 1)
Int64 = IntKind("int64", -(2**63), 2**63 - 1)
Uint8 = IntKind("uint8", 0, 2**8 - 1)
Uint16 = IntKind("uint16", 0, 2**16 - 1)
Uint32 = IntKind("uint32", 0, 2**32 - 1)
Uint64 = IntKind("uint64", 0, 2**64 - 1)

Float32 = FloatKind("float32", _MAX_FLOAT32)
Float64 = FloatKind("float64", float("inf"))

NumericKind = Union[IntKind, FloatKind]

__all__ = [
    "FloatKind",
    "Float32",
    "Float64",
    "IntKind",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "NumericKind",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
]
