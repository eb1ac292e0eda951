#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
dispatchcore core module exports (lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "DispatchConfig": ("dispatchcore.core.config", "DispatchConfig"),
    "get_config": ("dispatchcore.core.config", "get_config"),
    "set_config": ("dispatchcore.core.config", "set_config"),
    "ModernLogger": ("dispatchcore.core.utils.logger", "ModernLogger"),
    "configure_logging": ("dispatchcore.core.utils.logger", "configure_logging"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'dispatchcore.core' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
