#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Utility exports for dispatchcore core.
"""

from .logger import ModernLogger, coerce_level, configure_logging
from .exceptions import *  # noqa: F401,F403 - re-export the error taxonomy
from .exceptions import ExceptionFormatter, ExceptionTranslator

# Common formatter shortcuts
format_exception = ExceptionFormatter.format_exception
format_exception_chain = ExceptionFormatter.format_exception_chain
format_exception_summary = ExceptionFormatter.format_exception_summary

__all__ = [
    "ModernLogger",
    "coerce_level",
    "configure_logging",
    "ExceptionFormatter",
    "ExceptionTranslator",
    "format_exception",
    "format_exception_chain",
    "format_exception_summary",
]
