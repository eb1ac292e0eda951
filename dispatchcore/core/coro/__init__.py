#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Suspendable execution: coroutine driver, await engine, volatile instance
table and sleep (lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "IdentifierGenerator": ("dispatchcore.core.coro.ids", "IdentifierGenerator"),
    "Coroutine": ("dispatchcore.core.coro.coroutine", "Coroutine"),
    "AwaitStrategy": ("dispatchcore.core.coro.awaiting", "AwaitStrategy"),
    "Correlator": ("dispatchcore.core.coro.awaiting", "Correlator"),
    "await_calls": ("dispatchcore.core.coro.awaiting", "await_calls"),
    "await_all": ("dispatchcore.core.coro.awaiting", "await_all"),
    "await_any": ("dispatchcore.core.coro.awaiting", "await_any"),
    "gather": ("dispatchcore.core.coro.awaiting", "gather"),
    "VolatileInstances": ("dispatchcore.core.coro.volatile", "VolatileInstances"),
    "sleep": ("dispatchcore.core.coro.sleep", "sleep"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'dispatchcore.core.coro' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
