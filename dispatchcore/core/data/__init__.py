#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Wire data layer: value codec, status codes and call model records
(lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    # Value codec
    "Boxed": ("dispatchcore.core.data.codec", "Boxed"),
    "box": ("dispatchcore.core.data.codec", "box"),
    "unbox": ("dispatchcore.core.data.codec", "unbox"),
    "JSONMarshaler": ("dispatchcore.core.data.codec", "JSONMarshaler"),
    "JSONUnmarshaler": ("dispatchcore.core.data.codec", "JSONUnmarshaler"),
    "TextMarshaler": ("dispatchcore.core.data.codec", "TextMarshaler"),
    "TextUnmarshaler": ("dispatchcore.core.data.codec", "TextUnmarshaler"),
    "BinaryMarshaler": ("dispatchcore.core.data.codec", "BinaryMarshaler"),
    "BinaryUnmarshaler": ("dispatchcore.core.data.codec", "BinaryUnmarshaler"),
    # Fixed-width numeric targets
    "Int8": ("dispatchcore.core.data.kinds", "Int8"),
    "Int16": ("dispatchcore.core.data.kinds", "Int16"),
    "Int32": ("dispatchcore.core.data.kinds", "Int32"),
    "Int64": ("dispatchcore.core.data.kinds", "Int64"),
    "Uint8": ("dispatchcore.core.data.kinds", "Uint8"),
    "Uint16": ("dispatchcore.core.data.kinds", "Uint16"),
    "Uint32": ("dispatchcore.core.data.kinds", "Uint32"),
    "Uint64": ("dispatchcore.core.data.kinds", "Uint64"),
    "Float32": ("dispatchcore.core.data.kinds", "Float32"),
    "Float64": ("dispatchcore.core.data.kinds", "Float64"),
    # Status
    "Status": ("dispatchcore.core.data.status", "Status"),
    "classify": ("dispatchcore.core.data.status", "classify"),
    "status_of": ("dispatchcore.core.data.status", "status_of"),
    "register_error_status": ("dispatchcore.core.data.status", "register_error_status"),
    # Records
    "Call": ("dispatchcore.core.data.records", "Call"),
    "CallResult": ("dispatchcore.core.data.records", "CallResult"),
    "Error": ("dispatchcore.core.data.records", "Error"),
    "Exit": ("dispatchcore.core.data.records", "Exit"),
    "Poll": ("dispatchcore.core.data.records", "Poll"),
    "PollResult": ("dispatchcore.core.data.records", "PollResult"),
    "Request": ("dispatchcore.core.data.records", "Request"),
    "Response": ("dispatchcore.core.data.records", "Response"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError(
            "module 'dispatchcore.core.data' has no attribute '{0}'".format(name)
        )

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
