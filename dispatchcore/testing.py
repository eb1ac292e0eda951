#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
In-process orchestrator for tests.

``Runner`` plays the orchestrator's part: it runs a request, executes the
calls of every poll directive it gets back, then resumes the function with
their results until the function exits::

    runner = Runner(fanout, fetch)
    assert runner.call(fanout, ["a", "b"]) == [1, 1]
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List

from .core.data.codec import unbox
from .core.data.records import Call, CallResult, Poll, PollResult, Request, Response
from .core.utils.exceptions import STATUS_ERRORS, PermanentError
from .core.utils.logger import ModernLogger
from .functions import Function
from .registry import FunctionMap, Handler


class Runner(ModernLogger):
    """
    Drives functions to completion without an orchestrator.

    Calls of one poll run concurrently in a thread pool. Polls without calls
    are answered after their ``max_wait``, which is how ``sleep`` advances.
    Tail calls are followed.
    """

    def __init__(self, *functions: Function) -> None:
        super().__init__(name="Runner")
        self.functions = FunctionMap()
        for fn in functions:
            self.register(fn)

    def register(self, fn: Function) -> None:
        self.register_primitive(fn.name, fn.run)

    def register_primitive(self, name: str, handler: Handler) -> None:
        self.functions[name] = handler

    def round_trip(self, request: Request) -> Response:
        return self.functions.run(request)

    def run(self, request: Request) -> Response:
        """Round-trip ``request`` until the function exits without a tail call."""
        while True:
            response = self.round_trip(request)
            if response.exit is not None:
                tail_call = response.exit.tail_call
                if tail_call is None:
                    return response
                self.debug("following tail call to %s", tail_call.function)
                request = tail_call.request()
                continue
            request = request.with_(poll_result=self._poll(response.poll))

    def call(self, fn: Function, input: Any) -> Any:
        """
        Run ``fn`` with ``input`` and return its unboxed output.

        Raises the error reported by the function, or a status error when the
        response is not OK without carrying one.
        """
        response = self.run(fn.build_call(input).request())

        if response.error is not None:
            raise response.error
        if not response.ok:
            error_type = STATUS_ERRORS.get(response.status, PermanentError)
            raise error_type(f"function {fn.name} finished with status {response.status}")
        if response.output is None:
            return None
        return unbox(response.output, fn.output_type)

    def _poll(self, poll: Poll) -> PollResult:
        calls = poll.calls
        if not calls:
            time.sleep(poll.max_wait.total_seconds())
            return poll.result()

        self.debug("running %d call(s)", len(calls))
        with ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="dispatchcore-runner") as pool:
            results: List[CallResult] = list(pool.map(self._run_call, calls))
        return poll.result(results)

    def _run_call(self, call: Call) -> CallResult:
        response = self.run(call.request())
        return response.result.with_(correlation_id=call.correlation_id)


__all__ = ["Runner"]
