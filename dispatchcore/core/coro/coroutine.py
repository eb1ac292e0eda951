#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Generator-backed coroutines.

A function body suspends by yielding a ``Response`` and receives the
``Request`` that resumes it as the value of the ``yield`` expression::

    def body():
        request = yield Response.from_poll(poll)
        ...
        return Response.from_output(result)

``Coroutine`` drives such a generator one step at a time.
"""

import threading
from typing import Generator, Optional

from ..data.records import Request, Response
from ..utils.exceptions import CoroutineBusyError, IncompatibleStateError, InvalidResponseError

CoroutineBody = Generator[Response, Optional[Request], Response]


class Coroutine:
    """
    A suspendable execution.

    ``resume`` runs the body until it yields or returns and hands back the
    response produced. Once the body has returned, ``done`` is true and
    ``result`` holds the final response. One resume runs at a time; a
    concurrent one is rejected with ``CoroutineBusyError``.
    """

    def __init__(self, body: CoroutineBody) -> None:
        self._body = body
        self._running = threading.Lock()
        self._started = False
        self._done = False
        self._result: Optional[Response] = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def result(self) -> Optional[Response]:
        return self._result

    def resume(self, request: Optional[Request] = None) -> Response:
        """
        Run until the next suspension point.

        The first resume starts the body and ignores ``request``; later
        resumes deliver it as the value of the pending ``yield``.
        """
        if not self._running.acquire(blocking=False):
            raise CoroutineBusyError("coroutine is already running")
        try:
            if self._done:
                raise IncompatibleStateError("cannot resume a finished coroutine")
            return self._step(request)
        finally:
            self._running.release()

    def stop(self) -> None:
        """Terminate the body, running its cleanup code. Waits for a running step."""
        with self._running:
            self._close()

    def _step(self, request: Optional[Request]) -> Response:
        try:
            if not self._started:
                self._started = True
                yielded = next(self._body)
            else:
                yielded = self._body.send(request)
        except StopIteration as stop:
            self._done = True
            self._result = self._coerce_result(stop.value)
            return self._result
        except BaseException:
            self._done = True
            raise

        if not isinstance(yielded, Response):
            self._close()
            self._result = Response.from_error(
                InvalidResponseError(
                    f"coroutine yielded {type(yielded).__name__}, expected Response"
                )
            )
            return self._result
        return yielded

    def _close(self) -> None:
        if not self._done:
            self._done = True
            self._body.close()

    @staticmethod
    def _coerce_result(value: object) -> Response:
        if isinstance(value, Response):
            return value
        return Response.from_error(
            InvalidResponseError(
                f"coroutine returned {type(value).__name__}, expected Response"
            )
        )
