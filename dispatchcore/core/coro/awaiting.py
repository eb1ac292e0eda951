#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Await engine: fan out calls from a suspended function and collect results.

Every operation here is a generator meant for ``yield from`` inside a
function body::

    results, error = yield from await_calls(AwaitStrategy.ALL, calls)
    outputs = yield from gather(calls, int)

Each call gets a fresh correlation id. The calls go out with the first poll
only; results are matched back by correlation id, so redelivered, late or
unrelated results are harmless.
"""

import threading
from datetime import timedelta
from enum import Enum
from typing import Any, Generator, List, Optional, Sequence, Tuple

from ..config import get_config
from ..data.codec import unbox
from ..data.records import Call, CallResult, Error, Poll, Request, Response
from ..utils.exceptions import CodecError, InvalidResponseError, PollError
from ..utils.logger import ModernLogger
from .ids import IdentifierGenerator

AwaitResult = Tuple[List[Optional[CallResult]], Optional[BaseException]]
AwaitGenerator = Generator[Response, Optional[Request], AwaitResult]


class AwaitStrategy(Enum):
    ALL = "all"
    ANY = "any"


def join_errors(errors: Sequence[BaseException]) -> Optional[BaseException]:
    """Single error as is; several as an ``ExceptionGroup`` keeping each cause."""
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    return ExceptionGroup(f"{len(errors)} calls failed", list(errors))


def _failures(results: Sequence[Optional[CallResult]]) -> List[Error]:
    return [result.error for result in results if result is not None and result.error is not None]


class Correlator(ModernLogger):
    """
    Issues correlation ids and turns awaits into poll directives.

    ``max_wait`` bounds each poll so the function wakes up periodically even
    when no result arrives; it defaults to the configured poll max wait.
    """

    def __init__(
        self,
        ids: Optional[IdentifierGenerator] = None,
        max_wait: Optional[timedelta] = None,
    ) -> None:
        super().__init__(name="Correlator")
        self.ids = ids if ids is not None else IdentifierGenerator()
        self.max_wait = max_wait if max_wait is not None else get_config().poll_max_wait

    def await_calls(self, strategy: AwaitStrategy, calls: Sequence[Call]) -> AwaitGenerator:
        """
        Submit ``calls`` and suspend until they complete.

        Returns ``(results, error)``. Results are positional, with ``None`` for
        calls that produced nothing yet. With ALL the wait ends early on the
        first failed wake-up; with ANY it ends on the first success. A
        poll-level failure is reported as the error with no results.
        """
        if not calls:
            return [], None

        count = len(calls)
        pending = {}
        outbound = []
        for index, call in enumerate(calls):
            correlation_id = self.ids.next_id()
            pending[correlation_id] = index
            outbound.append(call.with_(correlation_id=correlation_id))

        results: List[Optional[CallResult]] = [None] * count
        poll = Poll(min_results=count, max_results=count, max_wait=self.max_wait, calls=outbound)

        while pending:
            request = yield Response.from_poll(poll)
            poll = poll.with_(calls=())

            poll_result = request.poll_result if request is not None else None
            if poll_result is None:
                return [], InvalidResponseError(f"expected a poll result to resume, got {request!r}")
            if poll_result.error is not None:
                return [], PollError(f"poll failed: {poll_result.error}", cause=poll_result.error)

            succeeded = failed = False
            for result in poll_result.results:
                index = pending.pop(result.correlation_id, None)
                if index is None:
                    self.debug("discarding result with unknown correlation id %d", result.correlation_id)
                    continue
                results[index] = result
                if result.error is not None:
                    failed = True
                else:
                    succeeded = True

            if strategy is AwaitStrategy.ALL and failed:
                return results, join_errors(_failures(results))
            if strategy is AwaitStrategy.ANY and succeeded:
                return results, None

        if strategy is AwaitStrategy.ANY:
            failures = _failures(results)
            if len(failures) == count:
                return results, join_errors(failures)
        return results, None

    def await_all(self, calls: Sequence[Call]) -> AwaitGenerator:
        return (yield from self.await_calls(AwaitStrategy.ALL, calls))

    def await_any(self, calls: Sequence[Call]) -> AwaitGenerator:
        return (yield from self.await_calls(AwaitStrategy.ANY, calls))

    def gather(
        self, calls: Sequence[Call], output_type: Any = None
    ) -> Generator[Response, Optional[Request], List[Any]]:
        """
        Await all calls and return their unboxed outputs in order.

        Raises the aggregated call error, or the codec error of the first
        output that cannot be unboxed into ``output_type``.
        """
        results, error = yield from self.await_calls(AwaitStrategy.ALL, calls)
        if error is not None:
            raise error

        outputs: List[Any] = []
        for index, result in enumerate(results):
            if result is None or result.output is None:
                outputs.append(None)
                continue
            try:
                outputs.append(unbox(result.output, output_type))
            except CodecError as exc:
                raise type(exc)(f"call {index}: {exc}", cause=exc, call_index=index, **exc.context) from exc
        return outputs


_default_correlator: Optional[Correlator] = None
_default_lock = threading.Lock()


def default_correlator() -> Correlator:
    global _default_correlator
    with _default_lock:
        if _default_correlator is None:
            _default_correlator = Correlator()
        return _default_correlator


def set_default_correlator(correlator: Optional[Correlator]) -> None:
    global _default_correlator
    with _default_lock:
        _default_correlator = correlator


def await_calls(strategy: AwaitStrategy, calls: Sequence[Call]) -> AwaitGenerator:
    return (yield from default_correlator().await_calls(strategy, calls))


def await_all(calls: Sequence[Call]) -> AwaitGenerator:
    return (yield from default_correlator().await_calls(AwaitStrategy.ALL, calls))


def await_any(calls: Sequence[Call]) -> AwaitGenerator:
    return (yield from default_correlator().await_calls(AwaitStrategy.ANY, calls))


def gather(calls: Sequence[Call], output_type: Any = None) -> Generator[Response, Optional[Request], List[Any]]:
    return (yield from default_correlator().gather(calls, output_type))


__all__ = [
    "AwaitStrategy",
    "Correlator",
    "await_all",
    "await_any",
    "await_calls",
    "default_correlator",
    "gather",
    "join_errors",
    "set_default_correlator",
]
