#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
dispatchcore public API with lazy imports.

Client runtime for a remote function orchestrator: a value codec for the
wire, status classification, and generator-based functions that fan out
calls, suspend while they are outstanding and resume on their results.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

from ._version import __version__

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "function": ("dispatchcore.decorators", "function"),
    "Function": ("dispatchcore.functions", "Function"),
    "FunctionMap": ("dispatchcore.registry", "FunctionMap"),
    "FunctionRegistry": ("dispatchcore.registry", "FunctionRegistry"),
    "Endpoint": ("dispatchcore.endpoint", "Endpoint"),
    "Runner": ("dispatchcore.testing", "Runner"),
    "DispatchConfig": ("dispatchcore.core.config", "DispatchConfig"),
    "get_config": ("dispatchcore.core.config", "get_config"),
    "set_config": ("dispatchcore.core.config", "set_config"),
    "configure_logging": ("dispatchcore.core.utils.logger", "configure_logging"),
    "Boxed": ("dispatchcore.core.data", "Boxed"),
    "box": ("dispatchcore.core.data", "box"),
    "unbox": ("dispatchcore.core.data", "unbox"),
    "Status": ("dispatchcore.core.data", "Status"),
    "classify": ("dispatchcore.core.data", "classify"),
    "status_of": ("dispatchcore.core.data", "status_of"),
    "register_error_status": ("dispatchcore.core.data", "register_error_status"),
    "Call": ("dispatchcore.core.data", "Call"),
    "CallResult": ("dispatchcore.core.data", "CallResult"),
    "Error": ("dispatchcore.core.data", "Error"),
    "Exit": ("dispatchcore.core.data", "Exit"),
    "Poll": ("dispatchcore.core.data", "Poll"),
    "PollResult": ("dispatchcore.core.data", "PollResult"),
    "Request": ("dispatchcore.core.data", "Request"),
    "Response": ("dispatchcore.core.data", "Response"),
    "AwaitStrategy": ("dispatchcore.core.coro", "AwaitStrategy"),
    "Correlator": ("dispatchcore.core.coro", "Correlator"),
    "IdentifierGenerator": ("dispatchcore.core.coro", "IdentifierGenerator"),
    "await_calls": ("dispatchcore.core.coro", "await_calls"),
    "await_all": ("dispatchcore.core.coro", "await_all"),
    "await_any": ("dispatchcore.core.coro", "await_any"),
    "gather": ("dispatchcore.core.coro", "gather"),
    "sleep": ("dispatchcore.core.coro", "sleep"),
}

__all__ = ["__version__", *sorted(_EXPORT_MAP.keys())]


def __getattr__(name: str) -> Any:
    """
    Resolve public API symbols lazily.
    """
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'dispatchcore' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
