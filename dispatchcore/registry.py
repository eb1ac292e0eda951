#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Routing of requests to functions by name.
"""

import threading
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from .core.data.records import Request, Response
from .core.utils.exceptions import FunctionNotFoundError
from .core.utils.logger import ModernLogger

Handler = Callable[[Request], Response]


@runtime_checkable
class RunnableFunction(Protocol):
    """Anything registrable: a name, ``run`` and ``close``."""

    name: str

    def run(self, request: Request) -> Response:
        ...

    def close(self) -> None:
        ...


def not_found(name: str) -> Response:
    return Response.from_error(FunctionNotFoundError(function_name=name))


class FunctionMap(Dict[str, Handler]):
    """Plain mapping of function names to request handlers."""

    def run(self, request: Request) -> Response:
        handler = self.get(request.function)
        if handler is None:
            return not_found(request.function)
        return handler(request)


class FunctionRegistry(ModernLogger):
    """
    Thread-safe collection of functions.

    Registering a function under a name that is already taken replaces the
    previous one.
    """

    def __init__(self, name: str = "FunctionRegistry") -> None:
        super().__init__(name=name)
        self._functions: Dict[str, RunnableFunction] = {}
        self._lock = threading.Lock()

    def register(self, *functions: RunnableFunction) -> None:
        with self._lock:
            for fn in functions:
                if fn.name in self._functions:
                    self.warning("replacing function %s", fn.name)
                self._functions[fn.name] = fn
        self.debug("registered %s", ", ".join(fn.name for fn in functions))

    def lookup(self, name: str) -> Optional[RunnableFunction]:
        with self._lock:
            return self._functions.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._functions)

    def primitives(self) -> FunctionMap:
        """Snapshot of the registry as a ``FunctionMap``."""
        with self._lock:
            return FunctionMap({name: fn.run for name, fn in self._functions.items()})

    def run(self, request: Request) -> Response:
        fn = self.lookup(request.function)
        if fn is None:
            self.warning("function %s not found", request.function)
            return not_found(request.function)
        return fn.run(request)

    def close(self) -> None:
        """Close every function, then forget them."""
        with self._lock:
            functions = list(self._functions.values())
            self._functions.clear()
        for fn in functions:
            fn.close()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._functions

    def __len__(self) -> int:
        with self._lock:
            return len(self._functions)


__all__ = ["FunctionMap", "FunctionRegistry", "Handler", "RunnableFunction", "not_found"]
