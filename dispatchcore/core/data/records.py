#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Call model records exchanged with the orchestrator.

All records are frozen value objects. Amend them with ``with_(...)``, which
returns a modified copy; a shared record is never changed in place.

- ``Call`` / ``CallResult``: one outbound invocation and its outcome.
- ``Poll`` / ``PollResult``: suspend-and-wait directive and the content
  handed back on resume.
- ``Exit``: terminate directive.
- ``Request`` / ``Response``: the envelopes for one round trip.
- ``Error``: a transportable error, raisable as an exception.
"""

import dataclasses
import pickle
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence, Tuple

from ..utils.exceptions import ExceptionFormatter
from .codec import Boxed, box
from .status import Status, classify, status_of

_UINT64_MAX = 2**64 - 1


class Error(Exception):
    """
    Error reported by (or for) a function call.

    ``value`` optionally carries a pickled form of the original exception and
    ``traceback`` its formatted traceback, so another process can rebuild or
    display it.
    """

    def __init__(self, type: str = "", message: str = "", value: bytes = b"", traceback: bytes = b"") -> None:
        super().__init__(type, message, value, traceback)
        self._type = type
        self._message = message
        self._value = bytes(value)
        self._traceback = bytes(traceback)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Error":
        if isinstance(exc, Error):
            return exc
        try:
            value = pickle.dumps(exc)
        except (pickle.PicklingError, TypeError, AttributeError):
            value = b""
        traceback = b""
        if exc.__traceback__ is not None:
            traceback = ExceptionFormatter.format_exception(exc).encode("utf-8")
        return cls(type=type(exc).__name__, message=str(exc), value=value, traceback=traceback)

    @property
    def type(self) -> str:
        return self._type

    @property
    def message(self) -> str:
        return self._message

    @property
    def value(self) -> bytes:
        return self._value

    @property
    def traceback(self) -> bytes:
        return self._traceback

    def to_exception(self) -> BaseException:
        """
        Rebuild the original exception from ``value``.

        Only call this on errors from trusted peers: the value is a pickle.
        Without a value the error itself is returned.
        """
        if not self._value:
            return self
        exc = pickle.loads(self._value)
        if not isinstance(exc, BaseException):
            return self
        return exc

    def __str__(self) -> str:
        if self._type and self._message:
            return f"{self._type}: {self._message}"
        return self._type or self._message

    def __repr__(self) -> str:
        return f"Error(type={self._type!r}, message={self._message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Error):
            return NotImplemented
        return (
            self._type == other._type
            and self._message == other._message
            and self._value == other._value
            and self._traceback == other._traceback
        )

    def __hash__(self) -> int:
        return hash((self._type, self._message, self._value, self._traceback))


def _check_uint64(name: str, value: int) -> None:
    if not 0 <= value <= _UINT64_MAX:
        raise ValueError(f"{name} must fit in an unsigned 64-bit integer, got {value}")


@dataclass(frozen=True)
class Call:
    """
    A function call to submit through a ``Poll`` directive.

    ``correlation_id`` is echoed back on the matching ``CallResult``.
    """

    endpoint: str = ""
    function: str = ""
    input: Optional[Boxed] = None
    correlation_id: int = 0
    expiration: Optional[timedelta] = None
    version: str = ""

    def __post_init__(self) -> None:
        _check_uint64("correlation_id", self.correlation_id)
        if self.expiration is not None and self.expiration < timedelta(0):
            raise ValueError("expiration must not be negative")

    def with_(self, **changes: Any) -> "Call":
        return dataclasses.replace(self, **changes)

    def request(self) -> "Request":
        """Request that starts this call's function with its input."""
        return Request(function=self.function, input=self.input if self.input is not None else box(None))


@dataclass(frozen=True)
class CallResult:
    """
    Outcome of a call. Output and error may both be present, in which case
    the output is a partial result.
    """

    correlation_id: int = 0
    output: Optional[Boxed] = None
    error: Optional[Error] = None
    dispatch_id: str = ""

    def __post_init__(self) -> None:
        _check_uint64("correlation_id", self.correlation_id)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def with_(self, **changes: Any) -> "CallResult":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Exit:
    """Directive terminating a function call, optionally with a tail call."""

    result: CallResult = field(default_factory=CallResult)
    tail_call: Optional[Call] = None

    @property
    def output(self) -> Optional[Boxed]:
        return self.result.output

    @property
    def error(self) -> Optional[Error]:
        return self.result.error

    def with_(self, **changes: Any) -> "Exit":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Poll:
    """
    Directive suspending a function until ``min_results`` call results are
    available or ``max_wait`` elapses, whichever comes first. At most
    ``max_results`` results are delivered. ``coroutine_state`` comes back
    unchanged on the matching ``PollResult``.
    """

    min_results: int = 0
    max_results: int = 0
    max_wait: timedelta = timedelta(0)
    calls: Tuple[Call, ...] = ()
    coroutine_state: Optional[Boxed] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "calls", tuple(self.calls))
        if self.min_results < 0:
            raise ValueError("min_results must not be negative")
        if self.max_results < self.min_results:
            raise ValueError("max_results must be at least min_results")
        if self.max_wait < timedelta(0):
            raise ValueError("max_wait must not be negative")

    def with_(self, **changes: Any) -> "Poll":
        return dataclasses.replace(self, **changes)

    def result(self, results: Sequence[CallResult] = (), error: Optional[Error] = None) -> "PollResult":
        """PollResult answering this directive, carrying the same state."""
        return PollResult(results=tuple(results), coroutine_state=self.coroutine_state, error=error)


@dataclass(frozen=True)
class PollResult:
    """
    Content delivered when a suspended function resumes.

    ``error`` means none of the poll's calls were dispatched; the poll as a
    whole has to be resubmitted.
    """

    results: Tuple[CallResult, ...] = ()
    coroutine_state: Optional[Boxed] = None
    error: Optional[Error] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", tuple(self.results))

    def with_(self, **changes: Any) -> "PollResult":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Request:
    """
    Request to run a function: either start it with ``input`` or resume it
    with a ``poll_result``.
    """

    function: str
    input: Optional[Boxed] = None
    poll_result: Optional[PollResult] = None
    dispatch_id: str = ""
    parent_dispatch_id: str = ""
    root_dispatch_id: str = ""
    creation_time: Optional[datetime] = None
    expiration_time: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.input is not None and self.poll_result is not None:
            raise ValueError("a request carries either input or a poll result, not both")

    def with_(self, **changes: Any) -> "Request":
        if "input" in changes and changes["input"] is not None:
            changes.setdefault("poll_result", None)
        if "poll_result" in changes and changes["poll_result"] is not None:
            changes.setdefault("input", None)
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Response:
    """
    Response from a function run: an ``Exit`` or a ``Poll`` directive.

    A response without a directive exits with an empty result. An unspecified
    status becomes OK, or PERMANENT_ERROR when the exit carries an error.
    """

    status: Status = Status.UNSPECIFIED
    exit: Optional[Exit] = None
    poll: Optional[Poll] = None

    def __post_init__(self) -> None:
        if self.exit is not None and self.poll is not None:
            raise ValueError("a response carries either an exit or a poll directive, not both")
        if self.exit is None and self.poll is None:
            object.__setattr__(self, "exit", Exit())
        if self.status is Status.UNSPECIFIED:
            failed = self.exit is not None and self.exit.error is not None
            object.__setattr__(self, "status", Status.PERMANENT_ERROR if failed else Status.OK)

    @classmethod
    def from_output(cls, output: Any = None, status: Optional[Status] = None) -> "Response":
        """Exit response for a successful run; raw values are boxed."""
        boxed = output if isinstance(output, Boxed) else box(output)
        if status is None:
            status = Status.OK if isinstance(output, Boxed) else status_of(output)
        return cls(status=status, exit=Exit(result=CallResult(output=boxed)))

    @classmethod
    def from_error(cls, exc: BaseException, output: Optional[Boxed] = None) -> "Response":
        """Exit response for a failed run, classified by the status classifier."""
        return cls(
            status=classify(exc),
            exit=Exit(result=CallResult(output=output, error=Error.from_exception(exc))),
        )

    @classmethod
    def from_poll(cls, poll: Poll) -> "Response":
        return cls(status=Status.OK, poll=poll)

    @classmethod
    def tail_call(cls, call: Call) -> "Response":
        return cls(status=Status.OK, exit=Exit(tail_call=call))

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def result(self) -> Optional[CallResult]:
        return self.exit.result if self.exit is not None else None

    @property
    def output(self) -> Optional[Boxed]:
        return self.exit.output if self.exit is not None else None

    @property
    def error(self) -> Optional[Error]:
        return self.exit.error if self.exit is not None else None

    def with_(self, **changes: Any) -> "Response":
        return dataclasses.replace(self, **changes)

    def with_coroutine_state(self, state: Boxed) -> "Response":
        """Attach coroutine state to a poll directive; exits are returned as is."""
        if self.poll is None:
            return self
        return self.with_(poll=self.poll.with_(coroutine_state=state))


__all__ = [
    "Call",
    "CallResult",
    "Error",
    "Exit",
    "Poll",
    "PollResult",
    "Request",
    "Response",
]
