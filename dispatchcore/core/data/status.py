#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Outcome status codes and the error classifier.

``classify`` maps an exception (or ``None``) to a coarse ``Status`` which the
orchestrator uses to pick a retry policy. Resolution order:

1. ``None`` is OK.
2. An explicit ``status`` attribute holding a ``Status`` wins.
3. Handlers registered with ``register_error_status``.
4. The built-in rule table (cancellation, deadlines, file system, DNS, TLS,
   TCP, malformed responses, HTTP and gRPC codes, short reads, errno).
5. Exception groups: the common status of all members, else UNSPECIFIED.
6. The explicit cause (``raise ... from cause``).
7. UNSPECIFIED.

Recursion into groups and causes stops at ``MAX_CLASSIFY_DEPTH``.
"""

import asyncio
import concurrent.futures
import errno
import http.client
import json
import socket
import ssl
import threading
import urllib.error
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

import grpc

MAX_CLASSIFY_DEPTH = 16


class Status(IntEnum):
    """
    Outcome classification attached to a response.

    Values follow the wire enumeration.
    """

    UNSPECIFIED = 0
    OK = 1
    TIMEOUT = 2
    THROTTLED = 3
    INVALID_ARGUMENT = 4
    INVALID_RESPONSE = 5
    TEMPORARY_ERROR = 6
    PERMANENT_ERROR = 7
    INCOMPATIBLE_STATE = 8
    DNS_ERROR = 9
    TCP_ERROR = 10
    TLS_ERROR = 11
    HTTP_ERROR = 12
    UNAUTHENTICATED = 13
    PERMISSION_DENIED = 14
    NOT_FOUND = 15

    def __str__(self) -> str:
        return _STATUS_NAMES[self]


_STATUS_NAMES: Dict[Status, str] = {
    Status.UNSPECIFIED: "Unspecified",
    Status.OK: "OK",
    Status.TIMEOUT: "Timeout",
    Status.THROTTLED: "Throttled",
    Status.INVALID_ARGUMENT: "InvalidArgument",
    Status.INVALID_RESPONSE: "InvalidResponse",
    Status.TEMPORARY_ERROR: "TemporaryError",
    Status.PERMANENT_ERROR: "PermanentError",
    Status.INCOMPATIBLE_STATE: "IncompatibleState",
    Status.DNS_ERROR: "DNSError",
    Status.TCP_ERROR: "TCPError",
    Status.TLS_ERROR: "TLSError",
    Status.HTTP_ERROR: "HTTPError",
    Status.UNAUTHENTICATED: "Unauthenticated",
    Status.PERMISSION_DENIED: "PermissionDenied",
    Status.NOT_FOUND: "NotFound",
}


StatusHandler = Callable[[BaseException], Status]

_HANDLERS_LOCK = threading.Lock()
_ERROR_HANDLERS: Dict[Type[BaseException], StatusHandler] = {}


def register_error_status(
    error_type: Type[BaseException],
    status: Union[Status, StatusHandler],
) -> None:
    """
    Register a fixed status, or a handler computing one, for an exception type.

    Registered handlers run before the built-in rules; the most specific
    registered base class of an exception is used.
    """
    if isinstance(status, Status):
        fixed = status
        handler: StatusHandler = lambda _exc: fixed
    elif callable(status):
        handler = status
    else:
        raise TypeError(f"status must be a Status or a callable, got {type(status).__name__}")

    with _HANDLERS_LOCK:
        _ERROR_HANDLERS[error_type] = handler


def unregister_error_status(error_type: Type[BaseException]) -> None:
    with _HANDLERS_LOCK:
        _ERROR_HANDLERS.pop(error_type, None)


def _registered_handler(exc: BaseException) -> Optional[StatusHandler]:
    with _HANDLERS_LOCK:
        if not _ERROR_HANDLERS:
            return None
        handlers = dict(_ERROR_HANDLERS)
    for klass in type(exc).__mro__:
        handler = handlers.get(klass)
        if handler is not None:
            return handler
    return None


_GRPC_CODE_STATUS: Dict[Any, Status] = {
    grpc.StatusCode.CANCELLED: Status.TIMEOUT,
    grpc.StatusCode.UNKNOWN: Status.TEMPORARY_ERROR,
    grpc.StatusCode.INVALID_ARGUMENT: Status.INVALID_ARGUMENT,
    grpc.StatusCode.DEADLINE_EXCEEDED: Status.TIMEOUT,
    grpc.StatusCode.NOT_FOUND: Status.NOT_FOUND,
    grpc.StatusCode.ALREADY_EXISTS: Status.PERMANENT_ERROR,
    grpc.StatusCode.PERMISSION_DENIED: Status.PERMISSION_DENIED,
    grpc.StatusCode.RESOURCE_EXHAUSTED: Status.THROTTLED,
    grpc.StatusCode.FAILED_PRECONDITION: Status.PERMANENT_ERROR,
    grpc.StatusCode.ABORTED: Status.PERMANENT_ERROR,
    grpc.StatusCode.OUT_OF_RANGE: Status.INVALID_ARGUMENT,
    grpc.StatusCode.UNIMPLEMENTED: Status.NOT_FOUND,
    grpc.StatusCode.INTERNAL: Status.TEMPORARY_ERROR,
    grpc.StatusCode.UNAVAILABLE: Status.TEMPORARY_ERROR,
    grpc.StatusCode.DATA_LOSS: Status.PERMANENT_ERROR,
    grpc.StatusCode.UNAUTHENTICATED: Status.UNAUTHENTICATED,
}

_TCP_ERRNOS = frozenset(
    code
    for code in (
        getattr(errno, name, None)
        for name in (
            "ECONNREFUSED",
            "ECONNRESET",
            "ECONNABORTED",
            "EPIPE",
            "ENETDOWN",
            "ENETUNREACH",
            "ENETRESET",
            "EHOSTDOWN",
            "EHOSTUNREACH",
            "EADDRNOTAVAIL",
        )
    )
    if code is not None
)

_TEMPORARY_ERRNOS = frozenset(
    code
    for code in (
        getattr(errno, name, None) for name in ("EAGAIN", "EINTR", "EMFILE", "ENFILE")
    )
    if code is not None
)


def errno_status(code: Optional[int]) -> Status:
    """Classify an OS error number."""
    if code in _TCP_ERRNOS:
        return Status.TCP_ERROR
    if code == errno.ETIMEDOUT:
        return Status.TIMEOUT
    if code == errno.EPERM:
        return Status.PERMISSION_DENIED
    if code in _TEMPORARY_ERRNOS:
        return Status.TEMPORARY_ERROR
    return Status.PERMANENT_ERROR


def http_status(code: int) -> Status:
    """Classify an HTTP response status code."""
    if code == 400:
        return Status.INVALID_ARGUMENT
    if code == 401:
        return Status.UNAUTHENTICATED
    if code == 403:
        return Status.PERMISSION_DENIED
    if code == 404:
        return Status.NOT_FOUND
    if code == 408:
        return Status.TIMEOUT
    if code == 429:
        return Status.THROTTLED
    if code == 501:
        return Status.PERMANENT_ERROR

    category = code // 100
    if category == 2:
        return Status.OK
    if category in (1, 3, 4):
        return Status.PERMANENT_ERROR
    if category == 5:
        return Status.TEMPORARY_ERROR
    return Status.HTTP_ERROR


def _grpc_status(exc: BaseException) -> Status:
    code = getattr(exc, "code", None)
    if not callable(code):
        return Status.TEMPORARY_ERROR
    return _GRPC_CODE_STATUS.get(code(), Status.PERMANENT_ERROR)


_Rule = Tuple[Tuple[Type[BaseException], ...], Callable[[BaseException, int], Status]]


def _fixed(status: Status) -> Callable[[BaseException, int], Status]:
    return lambda _exc, _depth: status


def _url_error_status(exc: BaseException, depth: int) -> Status:
    # Short reads under a URL error happen at the TCP layer.
    reason = getattr(exc, "reason", None)
    if isinstance(reason, EOFError):
        return Status.TCP_ERROR
    if isinstance(reason, BaseException):
        return _classify(reason, depth)
    return Status.PERMANENT_ERROR


# Order matters: subclasses precede their bases (HTTPError is a URLError is an
# OSError; SSL, gaierror and ConnectionError are OSErrors).
_RULES: List[_Rule] = [
    ((asyncio.CancelledError, concurrent.futures.CancelledError), _fixed(Status.TEMPORARY_ERROR)),
    ((TimeoutError, socket.timeout), _fixed(Status.TIMEOUT)),
    ((FileNotFoundError,), _fixed(Status.NOT_FOUND)),
    ((PermissionError,), _fixed(Status.PERMISSION_DENIED)),
    ((socket.gaierror, socket.herror), _fixed(Status.DNS_ERROR)),
    ((ssl.SSLCertVerificationError, ssl.SSLError), _fixed(Status.TLS_ERROR)),
    ((ConnectionError,), _fixed(Status.TCP_ERROR)),
    ((http.client.HTTPException, json.JSONDecodeError), _fixed(Status.INVALID_RESPONSE)),
    ((urllib.error.HTTPError,), lambda exc, _depth: http_status(getattr(exc, "code", 0) or 0)),
    ((urllib.error.URLError,), _url_error_status),
    ((grpc.RpcError,), lambda exc, _depth: _grpc_status(exc)),
    ((EOFError, InterruptedError, BlockingIOError), _fixed(Status.TEMPORARY_ERROR)),
    ((OSError,), lambda exc, _depth: errno_status(getattr(exc, "errno", None))),
]


def _classify(exc: BaseException, depth: int) -> Status:
    depth += 1
    if depth >= MAX_CLASSIFY_DEPTH:
        return Status.UNSPECIFIED

    explicit = getattr(exc, "status", None)
    if isinstance(explicit, Status):
        return explicit

    handler = _registered_handler(exc)
    if handler is not None:
        return handler(exc)

    for types, rule in _RULES:
        if isinstance(exc, types):
            return rule(exc, depth)

    if isinstance(exc, BaseExceptionGroup):
        status: Optional[Status] = None
        for inner in exc.exceptions:
            inner_status = _classify(inner, depth)
            if status is None:
                status = inner_status
            elif status is not inner_status:
                return Status.UNSPECIFIED
        return status if status is not None else Status.UNSPECIFIED

    if exc.__cause__ is not None:
        return _classify(exc.__cause__, depth)

    return Status.UNSPECIFIED


def classify(outcome: Optional[BaseException]) -> Status:
    """
    Classify an error outcome; ``None`` means success.
    """
    if outcome is None:
        return Status.OK
    return _classify(outcome, 0)


def status_of(value: Any) -> Status:
    """
    Status of a function output: exceptions are classified, values carrying a
    ``status`` attribute report it, anything else is OK.
    """
    if isinstance(value, BaseException):
        return classify(value)
    explicit = getattr(value, "status", None)
    if isinstance(explicit, Status):
        return explicit
    return Status.OK


__all__ = [
    "MAX_CLASSIFY_DEPTH",
    "Status",
    "classify",
    "errno_status",
    "http_status",
    "register_error_status",
    "status_of",
    "unregister_error_status",
]
