#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging mixin for dispatchcore components.

Components inherit from ``ModernLogger`` and log through ``self.debug``,
``self.info`` and friends. Every component logger lives under the
``dispatchcore`` namespace so a single ``configure_logging`` call controls the
whole runtime.
"""

import logging
import threading
from typing import Any, Optional, Union

ROOT_LOGGER_NAME = "dispatchcore"

_HANDLER_LOCK = threading.Lock()
_HANDLER_INSTALLED = False


def coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(level: Union[int, str] = logging.WARNING) -> logging.Logger:
    """
    Set the level of the ``dispatchcore`` logger tree.

    A stream handler is attached once per process, and only when the root
    logger has no handlers of its own.
    """
    global _HANDLER_INSTALLED

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(coerce_level(level))

    with _HANDLER_LOCK:
        if not _HANDLER_INSTALLED and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
            root.addHandler(handler)
            _HANDLER_INSTALLED = True

    return root


class ModernLogger:
    """
    Mixin giving a class its own namespaced logger.
    """

    def __init__(self, name: str = "dispatchcore", level: Optional[Union[int, str]] = None) -> None:
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
            logger_name = name
        else:
            logger_name = f"{ROOT_LOGGER_NAME}.{name}"
        self.logger = logging.getLogger(logger_name)
        if level is not None:
            self.logger.setLevel(coerce_level(level))

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.exception(msg, *args, **kwargs)
