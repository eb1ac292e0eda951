#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Decorator turning a Python callable into a dispatchcore ``Function``.
"""

import collections.abc
import inspect
import typing
from typing import Any, Callable, Optional, Protocol, Tuple, Union

from .functions import Function


class _Registrar(Protocol):
    def register(self, *functions: Function) -> None:
        ...


def _hinted_types(fn: Callable[..., Any]) -> Tuple[Any, Any]:
    """
    Input and output targets taken from annotations.

    The input is the first parameter's annotation. The output is the return
    annotation, or for generator functions the return slot of
    ``Generator[Y, S, R]``.
    """
    try:
        hints = typing.get_type_hints(fn)
    except NameError:
        # Unresolvable forward references: fall back to untyped.
        return None, None

    input_type = None
    parameters = list(inspect.signature(fn).parameters)
    if parameters:
        input_type = hints.get(parameters[0])

    output_type = hints.get("return")
    if inspect.isgeneratorfunction(fn) and output_type is not None:
        origin = typing.get_origin(output_type)
        args = typing.get_args(output_type)
        if origin is collections.abc.Generator and len(args) == 3:
            output_type = args[2]
        else:
            output_type = None
    return input_type, output_type


def function(
    fn: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    input_type: Any = None,
    output_type: Any = None,
    registry: Optional[_Registrar] = None,
) -> Union[Function, Callable[[Callable[..., Any]], Function]]:
    """
    Public decorator supporting both ``@function`` and ``@function(...)``.

    Unset ``input_type`` and ``output_type`` are read from the annotations.
    When ``registry`` (a ``FunctionRegistry`` or ``Endpoint``) is given the
    function is registered with it.
    """

    def decorator(func: Callable[..., Any]) -> Function:
        hinted_input, hinted_output = _hinted_types(func)
        wrapped = Function(
            name or func.__name__,
            func,
            input_type=input_type if input_type is not None else hinted_input,
            output_type=output_type if output_type is not None else hinted_output,
        )
        wrapped.__doc__ = func.__doc__
        if registry is not None:
            registry.register(wrapped)
        return wrapped

    if fn is not None and callable(fn):
        return decorator(fn)
    return decorator


__all__ = ["function"]
