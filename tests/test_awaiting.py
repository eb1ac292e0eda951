#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
from datetime import timedelta

import pytest

from dispatchcore.core.coro import awaiting
from dispatchcore.core.coro.awaiting import AwaitStrategy, Correlator, join_errors
from dispatchcore.core.coro.ids import IdentifierGenerator
from dispatchcore.core.data.codec import box
from dispatchcore.core.data.records import Call, CallResult, Error, PollResult, Request
from dispatchcore.core.utils.exceptions import InvalidResponseError, PollError, TypeMismatchError


def _correlator(start: int = 100) -> Correlator:
    return Correlator(ids=IdentifierGenerator(start=start), max_wait=timedelta(seconds=30))


def _calls(count: int):
    return [Call(function=f"fn{index}", input=box(index)) for index in range(count)]


def _resume(gen, results=(), error=None):
    """Send a poll result; returns (next response, None) or (None, return value)."""
    request = Request(function="parent", poll_result=PollResult(results=results, error=error))
    try:
        return gen.send(request), None
    except StopIteration as stop:
        return None, stop.value


def _ok(correlation_id: int, value=None) -> CallResult:
    return CallResult(correlation_id=correlation_id, output=box(value))


def _failed(correlation_id: int, message: str = "boom") -> CallResult:
    return CallResult(correlation_id=correlation_id, error=Error("ValueError", message))


def test_empty_calls_return_without_suspending():
    gen = _correlator().await_calls(AwaitStrategy.ALL, [])

    with pytest.raises(StopIteration) as info:
        next(gen)

    assert info.value.value == ([], None)


def test_first_poll_carries_correlated_calls():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ALL, _calls(2))

    poll = next(gen).poll

    assert [call.correlation_id for call in poll.calls] == [100, 101]
    assert [call.function for call in poll.calls] == ["fn0", "fn1"]
    assert poll.min_results == poll.max_results == 2
    assert poll.max_wait == timedelta(seconds=30)


def test_all_collects_results_across_wake_ups():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ALL, _calls(2))
    next(gen)

    response, returned = _resume(gen, [_ok(101, "b")])
    assert returned is None
    assert response.poll.calls == ()

    response, returned = _resume(gen, [_ok(100, "a")])
    results, error = returned

    assert error is None
    assert [result.output for result in results] == [box("a"), box("b")]


def test_all_returns_early_on_failure_with_same_batch_results():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ALL, _calls(3))
    next(gen)

    _, returned = _resume(gen, [_ok(100, "a"), _failed(101)])
    results, error = returned

    assert results[0].output == box("a")
    assert results[1].error == Error("ValueError", "boom")
    assert results[2] is None
    assert error == Error("ValueError", "boom")


def test_all_joins_several_failures():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ALL, _calls(2))
    next(gen)

    _, (results, error) = _resume(gen, [_failed(100, "one"), _failed(101, "two")])

    assert isinstance(error, ExceptionGroup)
    assert [str(exc) for exc in error.exceptions] == ["ValueError: one", "ValueError: two"]


def test_any_returns_on_first_success():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ANY, _calls(3))
    next(gen)

    response, returned = _resume(gen, [_failed(100)])
    assert returned is None

    _, (results, error) = _resume(gen, [_ok(102, "c")])

    assert error is None
    assert results[1] is None
    assert results[2].output == box("c")


def test_any_returns_when_the_first_call_succeeds():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ANY, _calls(3))
    next(gen)

    response, returned = _resume(gen, [_ok(100, "a")])
    results, error = returned

    assert response is None
    assert error is None
    assert results[0].output == box("a")
    assert results[1] is None and results[2] is None


def test_any_with_every_call_failed_reports_the_errors():
    gen = _correlator(start=100).await_calls(AwaitStrategy.ANY, _calls(2))
    next(gen)

    _resume(gen, [_failed(100, "one")])
    _, (results, error) = _resume(gen, [_failed(101, "two")])

    assert all(result.failed for result in results)
    assert isinstance(error, ExceptionGroup)
    assert len(error.exceptions) == 2


def test_unknown_and_duplicate_correlation_ids_are_discarded(caplog):
    caplog.set_level(logging.DEBUG, logger="dispatchcore")
    gen = _correlator(start=100).await_calls(AwaitStrategy.ALL, _calls(2))
    next(gen)

    response, returned = _resume(gen, [_ok(999), _ok(100, "a")])
    assert returned is None
    response, returned = _resume(gen, [_ok(100, "again")])
    assert returned is None

    _, (results, error) = _resume(gen, [_ok(101, "b")])

    assert error is None
    assert results[0].output == box("a")
    assert "unknown correlation id 999" in caplog.text


def test_poll_error_is_reported_without_results():
    gen = _correlator().await_calls(AwaitStrategy.ALL, _calls(1))
    next(gen)

    _, (results, error) = _resume(gen, error=Error("Unavailable", "try later"))

    assert results == []
    assert isinstance(error, PollError)
    assert error.__cause__ == Error("Unavailable", "try later")


def test_resume_without_poll_result_is_an_invalid_response():
    gen = _correlator().await_calls(AwaitStrategy.ALL, _calls(1))
    next(gen)

    with pytest.raises(StopIteration) as info:
        gen.send(Request(function="parent", input=box(1)))

    results, error = info.value.value
    assert results == []
    assert isinstance(error, InvalidResponseError)


def test_gather_unboxes_outputs_in_call_order():
    gen = _correlator(start=1).gather(_calls(2), int)
    next(gen)

    _, outputs = _resume(gen, [_ok(2, 20), _ok(1, 10)])

    assert outputs == [10, 20]


def test_gather_raises_call_errors():
    gen = _correlator(start=1).gather(_calls(1), int)
    next(gen)

    with pytest.raises(Error) as info:
        _resume(gen, [_failed(1, "bad input")])

    assert info.value.message == "bad input"


def test_gather_reports_the_index_of_undecodable_outputs():
    gen = _correlator(start=1).gather(_calls(2), int)
    next(gen)

    with pytest.raises(TypeMismatchError) as info:
        _resume(gen, [_ok(1, 1), _ok(2, "two")])

    assert str(info.value).startswith("call 1: ")
    assert info.value.context["call_index"] == 1


def test_module_helpers_use_the_default_correlator():
    awaiting.set_default_correlator(_correlator(start=500))

    gen = awaiting.await_any(_calls(1))
    poll = next(gen).poll

    assert poll.calls[0].correlation_id == 500


def test_join_errors():
    assert join_errors([]) is None
    single = ValueError("x")
    assert join_errors([single]) is single
