#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Functions invocable through the orchestrator.

A ``Function`` wraps a Python callable taking one input value. Plain
callables run to completion in a single round trip. Generator functions may
suspend by delegating to the await helpers::

    @function
    def fanout(urls: list) -> list:
        pages = yield from fetch.gather(urls)
        return [len(page) for page in pages]

Suspended executions stay resident in the function's volatile instance
table. The instance id is handed to the orchestrator as coroutine state and
comes back on the poll result that resumes the execution.
"""

import inspect
from typing import Any, Callable, Generator, Iterable, List, Optional

from .core.coro.awaiting import Correlator, default_correlator
from .core.coro.coroutine import Coroutine, CoroutineBody
from .core.coro.volatile import VolatileInstances
from .core.data.codec import Boxed, box, unbox
from .core.data.kinds import Uint64
from .core.data.records import Call, PollResult, Request, Response
from .core.utils.exceptions import (
    CodecError,
    CoroutineBusyError,
    ExceptionFormatter,
    ExceptionTranslator,
    IncompatibleStateError,
    InstanceNotFoundError,
    InvalidArgumentError,
)
from .core.utils.logger import ModernLogger


class Function(ModernLogger):
    """
    A named function with typed input and output.

    Args:
        name: Name the orchestrator invokes the function by.
        fn: Callable taking the unboxed input. Generator functions can
            suspend with ``yield from``; their return value is the output.
        input_type: Unbox target for inputs (``None`` for the natural value).
        output_type: Unbox target for outputs of calls made through
            ``await_`` and ``gather``.
        correlator: Await engine for ``await_`` and ``gather``; the
            process-wide default when omitted.
        instances: Volatile instance table; a private one when omitted.
    """

    def __init__(
        self,
        name: str,
        fn: Callable[[Any], Any],
        *,
        input_type: Any = None,
        output_type: Any = None,
        correlator: Optional[Correlator] = None,
        instances: Optional[VolatileInstances] = None,
    ) -> None:
        if not name:
            raise ValueError("function name must not be empty")
        super().__init__(name=f"Function.{name}")
        self.name = name
        self.fn = fn
        self.input_type = input_type
        self.output_type = output_type
        self.endpoint_url = ""
        self._correlator = correlator
        self.instances = instances if instances is not None else VolatileInstances(name=f"VolatileInstances.{name}")

    @property
    def correlator(self) -> Correlator:
        return self._correlator if self._correlator is not None else default_correlator()

    def bind(self, endpoint_url: Optional[str]) -> None:
        """Stamp calls built from now on with ``endpoint_url``."""
        self.endpoint_url = endpoint_url or ""

    def __call__(self, input: Any) -> Any:
        """Invoke the wrapped callable locally."""
        return self.fn(input)

    def __repr__(self) -> str:
        return f"Function({self.name!r})"

    # Building and awaiting calls

    def build_call(self, input: Any, **options: Any) -> Call:
        """
        Call of this function with ``input``.

        ``options`` are further ``Call`` fields such as ``expiration`` or
        ``version``.
        """
        boxed = input if isinstance(input, Boxed) else box(input)
        return Call(endpoint=self.endpoint_url, function=self.name, input=boxed, **options)

    def await_(self, input: Any, **options: Any) -> Generator[Response, Optional[Request], Any]:
        """Call this function from another function body and wait for the output."""
        outputs = yield from self.correlator.gather([self.build_call(input, **options)], self.output_type)
        return outputs[0]

    def gather(self, inputs: Iterable[Any], **options: Any) -> Generator[Response, Optional[Request], List[Any]]:
        """Call this function once per input and wait for all outputs, in order."""
        calls = [self.build_call(input, **options) for input in inputs]
        return (yield from self.correlator.gather(calls, self.output_type))

    # Running

    def run(self, request: Request) -> Response:
        """Start or resume an execution and return its next directive."""
        if request.function != self.name:
            return Response.from_error(
                InvalidArgumentError(
                    f"function {self.name!r} received call for function {request.function!r}",
                    function_name=self.name,
                )
            )

        try:
            instance_id, coroutine = self._set_up(request)
        except (InvalidArgumentError, IncompatibleStateError) as exc:
            self.warning("rejected request: %s", exc)
            return Response.from_error(exc)

        try:
            response = coroutine.resume(request)
        except (CoroutineBusyError, IncompatibleStateError) as exc:
            self.warning("rejected resume of coroutine %d: %s", instance_id, exc)
            return Response.from_error(exc)
        finally:
            if coroutine.done:
                self.instances.delete(instance_id)

        if coroutine.done:
            return response

        if response.exit is not None:
            coroutine.stop()
            self.instances.delete(instance_id)
            return response

        return response.with_coroutine_state(box(instance_id))

    def close(self) -> None:
        """Stop and discard suspended executions."""
        self.instances.close()

    def _set_up(self, request: Request):
        if request.poll_result is not None:
            return self._resume_target(request.poll_result)

        if request.input is None:
            raise InvalidArgumentError(f"unsupported request: {request!r}", function_name=self.name)
        try:
            value = unbox(request.input, self.input_type)
        except CodecError as exc:
            raise ExceptionTranslator.as_invalid_argument(
                exc, f"invalid input {request.input!r}: {exc}", function_name=self.name
            ) from exc

        coroutine = Coroutine(self._entrypoint(value))
        instance_id = self.instances.register(coroutine)
        self.debug("started instance %d", instance_id)
        return instance_id, coroutine

    def _resume_target(self, poll_result: PollResult):
        state = poll_result.coroutine_state
        if state is None:
            raise IncompatibleStateError("missing volatile coroutine reference", function_name=self.name)
        try:
            instance_id = unbox(state, Uint64)
        except CodecError as exc:
            raise ExceptionTranslator.as_incompatible_state(
                exc, f"invalid volatile coroutine reference: {state!r}", function_name=self.name
            ) from exc
        try:
            coroutine = self.instances.find(instance_id)
        except InstanceNotFoundError as exc:
            raise ExceptionTranslator.as_incompatible_state(exc, str(exc), function_name=self.name) from exc
        self.debug("resuming instance %d", instance_id)
        return instance_id, coroutine

    def _entrypoint(self, input: Any) -> CoroutineBody:
        try:
            if inspect.isgeneratorfunction(self.fn):
                output = yield from self.fn(input)
            else:
                output = self.fn(input)
        except Exception as exc:
            self.warning("raised %s", ExceptionFormatter.format_exception_summary(exc))
            return Response.from_error(exc)

        if isinstance(output, Response):
            return output
        try:
            return Response.from_output(output)
        except CodecError as exc:
            return Response.from_error(
                ExceptionTranslator.as_invalid_response(
                    exc, f"invalid output {output!r}: {exc}", function_name=self.name
                )
            )


__all__ = ["Function"]
