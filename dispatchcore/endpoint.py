#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Endpoint hosting a set of functions.

The endpoint owns a function registry, stamps its configured URL on the calls
its functions build and routes incoming requests by function name. Transport
and request verification live outside this package; they hand validated
requests to ``Endpoint.run``.
"""

from typing import Any, Callable, List, Optional

from .core.config import DispatchConfig, get_config
from .core.data.records import Request, Response
from .core.utils.logger import ModernLogger, configure_logging
from .decorators import function as function_decorator
from .functions import Function
from .registry import FunctionRegistry


class Endpoint(ModernLogger):
    def __init__(self, config: Optional[DispatchConfig] = None) -> None:
        super().__init__(name="Endpoint")
        self.config = config if config is not None else get_config()
        configure_logging(self.config.log_level)
        self.registry = FunctionRegistry()
        if not self.url:
            self.warning("no endpoint URL configured; built calls carry an empty endpoint")

    @property
    def url(self) -> str:
        return self.config.endpoint_url or ""

    def register(self, *functions: Function) -> None:
        for fn in functions:
            fn.bind(self.url)
        self.registry.register(*functions)

    def function(self, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        """``@endpoint.function`` shorthand for ``@function(registry=endpoint)``."""
        return function_decorator(fn, registry=self, **options)

    def names(self) -> List[str]:
        return self.registry.names()

    def run(self, request: Request) -> Response:
        return self.registry.run(request)

    def close(self) -> None:
        self.info("closing endpoint %s", self.url or "<unbound>")
        self.registry.close()

    def __enter__(self) -> "Endpoint":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


__all__ = ["Endpoint"]
