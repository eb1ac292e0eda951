#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for dispatchcore.

Every exception raised by the runtime derives from ``DispatchError``. Errors
that map to a single outcome class carry a class-level ``status`` which the
status classifier honours before any of its own rules.

Taxonomy:
- codec errors: ``UnsupportedTypeError``, ``TypeMismatchError``,
  ``NumericOverflowError``
- correlation errors: ``PollError``
- lookup errors: ``FunctionNotFoundError``, ``InstanceNotFoundError``
- status errors: one subclass per non-OK ``Status``
"""

import traceback
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

from ..data.status import Status

E = TypeVar("E", bound="DispatchError")


class DispatchError(Exception):
    """
    Base class for dispatchcore errors.

    Extra keyword arguments are kept as context for logging and ``to_dict``;
    ``None`` values are dropped.
    """

    status: ClassVar[Optional[Status]] = None

    def __init__(
        self,
        message: str = "",
        *,
        cause: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: Dict[str, Any] = {
            key: value for key, value in context.items() if value is not None
        }
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": type(self).__name__,
            "message": self.message,
        }
        if self.status is not None:
            data["status"] = str(self.status)
        if self.context:
            data["context"] = dict(self.context)
        if self.cause is not None:
            data["cause"] = ExceptionFormatter.format_exception_summary(self.cause)
        return data


# Codec errors


class CodecError(DispatchError):
    """A value could not be boxed or unboxed."""


class UnsupportedTypeError(CodecError, TypeError):
    """The value's shape has no wire representation."""

    def __init__(self, message: str = "", *, value_type: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, value_type=value_type, **kwargs)


class TypeMismatchError(CodecError, TypeError):
    """The wire tag cannot be decoded into the requested target."""

    def __init__(
        self,
        message: str = "",
        *,
        type_url: Optional[str] = None,
        target: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, type_url=type_url, target=target, **kwargs)


class NumericOverflowError(CodecError, OverflowError):
    """A decoded number does not fit the target without loss."""

    def __init__(
        self,
        message: str = "",
        *,
        type_url: Optional[str] = None,
        target: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, type_url=type_url, target=target, value=value, **kwargs)


# Status errors


class TimeoutExpiredError(DispatchError):
    status = Status.TIMEOUT


class ThrottledError(DispatchError):
    status = Status.THROTTLED


class InvalidArgumentError(DispatchError):
    status = Status.INVALID_ARGUMENT


class InvalidResponseError(DispatchError):
    status = Status.INVALID_RESPONSE


class TemporaryError(DispatchError):
    status = Status.TEMPORARY_ERROR


class PermanentError(DispatchError):
    status = Status.PERMANENT_ERROR


class IncompatibleStateError(DispatchError):
    status = Status.INCOMPATIBLE_STATE


class DNSError(DispatchError):
    status = Status.DNS_ERROR


class TCPError(DispatchError):
    status = Status.TCP_ERROR


class TLSError(DispatchError):
    status = Status.TLS_ERROR


class HTTPError(DispatchError):
    status = Status.HTTP_ERROR


class UnauthenticatedError(DispatchError):
    status = Status.UNAUTHENTICATED


class PermissionDeniedError(DispatchError):
    status = Status.PERMISSION_DENIED


class NotFoundError(DispatchError):
    status = Status.NOT_FOUND


STATUS_ERRORS: Dict[Status, Type[DispatchError]] = {
    cls.status: cls
    for cls in (
        TimeoutExpiredError,
        ThrottledError,
        InvalidArgumentError,
        InvalidResponseError,
        TemporaryError,
        PermanentError,
        IncompatibleStateError,
        DNSError,
        TCPError,
        TLSError,
        HTTPError,
        UnauthenticatedError,
        PermissionDeniedError,
        NotFoundError,
    )
}


# Correlation and lookup errors


class PollError(TemporaryError):
    """
    A poll directive was rejected as a whole.

    None of its calls were dispatched; the operation has to be retried.
    """


class CoroutineBusyError(TemporaryError):
    """
    A suspended execution was resumed while another resume of it is still
    running. The execution is left untouched; the request can be retried.
    """


class FunctionNotFoundError(NotFoundError):
    def __init__(self, message: str = "", *, function_name: Optional[str] = None, **kwargs: Any) -> None:
        if not message and function_name is not None:
            message = f"function {function_name!r} not found"
        super().__init__(message, function_name=function_name, **kwargs)


class InstanceNotFoundError(NotFoundError):
    def __init__(self, message: str = "", *, instance_id: Optional[int] = None, **kwargs: Any) -> None:
        if not message and instance_id is not None:
            message = f"volatile coroutine {instance_id} not found"
        super().__init__(message, instance_id=instance_id, **kwargs)


class ExceptionFormatter:
    """
    Helpers rendering exceptions for logs and error records.
    """

    @staticmethod
    def format_exception(exc: BaseException) -> str:
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @staticmethod
    def format_exception_chain(exc: BaseException, max_depth: int = 16) -> str:
        parts = []
        current: Optional[BaseException] = exc
        depth = 0
        while current is not None and depth < max_depth:
            parts.append(ExceptionFormatter.format_exception_summary(current))
            current = current.__cause__
            depth += 1
        return " <- ".join(parts)

    @staticmethod
    def format_exception_summary(exc: BaseException) -> str:
        message = str(exc)
        if message:
            return f"{type(exc).__name__}: {message}"
        return type(exc).__name__


class ExceptionTranslator:
    """
    Wrap arbitrary exceptions into dispatchcore errors, keeping the original
    as the cause. Errors that already have the requested type pass through.
    """

    @staticmethod
    def _translate(target: Type[E], exc: BaseException, message: Optional[str], **context: Any) -> E:
        if isinstance(exc, target):
            return exc
        summary = ExceptionFormatter.format_exception_summary(exc)
        text = f"{message}: {summary}" if message else summary
        return target(text, cause=exc, **context)

    @staticmethod
    def as_invalid_argument(exc: BaseException, message: Optional[str] = None, **context: Any) -> InvalidArgumentError:
        return ExceptionTranslator._translate(InvalidArgumentError, exc, message, **context)

    @staticmethod
    def as_invalid_response(exc: BaseException, message: Optional[str] = None, **context: Any) -> InvalidResponseError:
        return ExceptionTranslator._translate(InvalidResponseError, exc, message, **context)

    @staticmethod
    def as_incompatible_state(exc: BaseException, message: Optional[str] = None, **context: Any) -> IncompatibleStateError:
        return ExceptionTranslator._translate(IncompatibleStateError, exc, message, **context)


__all__ = [
    "DispatchError",
    "CodecError",
    "UnsupportedTypeError",
    "TypeMismatchError",
    "NumericOverflowError",
    "TimeoutExpiredError",
    "ThrottledError",
    "InvalidArgumentError",
    "InvalidResponseError",
    "TemporaryError",
    "PermanentError",
    "IncompatibleStateError",
    "DNSError",
    "TCPError",
    "TLSError",
    "HTTPError",
    "UnauthenticatedError",
    "PermissionDeniedError",
    "NotFoundError",
    "STATUS_ERRORS",
    "PollError",
    "CoroutineBusyError",
    "FunctionNotFoundError",
    "InstanceNotFoundError",
    "ExceptionFormatter",
    "ExceptionTranslator",
]
