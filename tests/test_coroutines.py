#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import random
import threading
from datetime import timedelta

import pytest

from dispatchcore.core.coro.coroutine import Coroutine
from dispatchcore.core.coro.ids import IdentifierGenerator
from dispatchcore.core.coro.sleep import sleep
from dispatchcore.core.coro.volatile import VolatileInstances
from dispatchcore.core.data.codec import unbox
from dispatchcore.core.data.records import Poll, PollResult, Request, Response
from dispatchcore.core.data.status import Status
from dispatchcore.core.utils.exceptions import (
    CoroutineBusyError,
    IncompatibleStateError,
    InstanceNotFoundError,
    NotFoundError,
)


def _suspending_body(events=None):
    try:
        request = yield Response.from_poll(Poll(max_wait=timedelta(seconds=1)))
        return Response.from_output(request.function)
    finally:
        if events is not None:
            events.append("cleanup")


def test_identifiers_increase_from_the_start_value():
    assert IdentifierGenerator(start=5).take(3) == [5, 6, 7]


def test_identifiers_wrap_and_skip_zero():
    ids = IdentifierGenerator(start=2**64 - 1)

    assert ids.take(3) == [2**64 - 1, 1, 2]


def test_identifiers_are_reproducible_with_a_seeded_rng():
    first = IdentifierGenerator(rng=random.Random(42))
    second = IdentifierGenerator(rng=random.Random(42))

    assert first.take(4) == second.take(4)


def test_identifiers_are_unique_across_threads():
    ids = IdentifierGenerator(start=1)
    seen = []
    lock = threading.Lock()

    def worker():
        batch = ids.take(200)
        with lock:
            seen.extend(batch)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(seen)) == 1600


def test_coroutine_resumes_until_it_returns():
    coroutine = Coroutine(_suspending_body())

    first = coroutine.resume(Request(function="ignored", input=None))
    assert first.poll is not None
    assert not coroutine.done

    final = coroutine.resume(Request(function="resumed", poll_result=PollResult()))

    assert coroutine.done
    assert coroutine.result is final
    assert unbox(final.output) == "resumed"


def test_finished_coroutine_cannot_resume():
    coroutine = Coroutine(_suspending_body())
    coroutine.resume()
    coroutine.resume(Request(function="x", poll_result=PollResult()))

    with pytest.raises(IncompatibleStateError):
        coroutine.resume()


def test_concurrent_resume_is_rejected_and_leaves_the_coroutine_running():
    started, release = threading.Event(), threading.Event()

    def body():
        request = yield Response.from_poll(Poll(max_wait=timedelta(seconds=1)))
        started.set()
        release.wait(5)
        return Response.from_output(request.function)

    coroutine = Coroutine(body())
    coroutine.resume()
    outcome = []
    worker = threading.Thread(
        target=lambda: outcome.append(
            coroutine.resume(Request(function="first", poll_result=PollResult()))
        )
    )
    worker.start()
    assert started.wait(5)

    with pytest.raises(CoroutineBusyError):
        coroutine.resume(Request(function="second", poll_result=PollResult()))
    assert not coroutine.done

    release.set()
    worker.join(5)

    assert coroutine.done
    assert unbox(outcome[0].output) == "first"


def test_yielding_something_other_than_a_response_ends_the_coroutine():
    def body():
        yield 5

    coroutine = Coroutine(body())
    response = coroutine.resume()

    assert coroutine.done
    assert response.status is Status.INVALID_RESPONSE


def test_returning_something_other_than_a_response_is_invalid():
    def body():
        return 5
        yield  # pragma: no cover

    response = Coroutine(body()).resume()

    assert response.status is Status.INVALID_RESPONSE


def test_stop_runs_cleanup():
    events = []
    coroutine = Coroutine(_suspending_body(events))
    coroutine.resume()

    coroutine.stop()

    assert coroutine.done
    assert events == ["cleanup"]


def test_volatile_register_find_delete():
    instances = VolatileInstances(ids=IdentifierGenerator(start=10))
    coroutine = Coroutine(_suspending_body())

    instance_id = instances.register(coroutine)

    assert instance_id == 10
    assert instances.find(instance_id) is coroutine
    assert instance_id in instances
    assert len(instances) == 1

    instances.delete(instance_id)

    assert len(instances) == 0
    with pytest.raises(InstanceNotFoundError):
        instances.find(instance_id)


def test_missing_instance_is_not_found():
    with pytest.raises(NotFoundError, match="volatile coroutine 42 not found"):
        VolatileInstances().find(42)


def test_volatile_close_stops_every_instance():
    events = []
    instances = VolatileInstances()
    for _ in range(3):
        coroutine = Coroutine(_suspending_body(events))
        coroutine.resume()
        instances.register(coroutine)

    instances.close()

    assert len(instances) == 0
    assert events == ["cleanup"] * 3


def test_sleep_polls_without_calls():
    gen = sleep(timedelta(seconds=5))

    poll = next(gen).poll

    assert poll.calls == ()
    assert poll.min_results == poll.max_results == 0
    assert timedelta(seconds=4) < poll.max_wait <= timedelta(seconds=5)


def test_short_sleep_happens_locally():
    gen = sleep(0.01)

    with pytest.raises(StopIteration):
        next(gen)


def test_sleep_rejects_negative_durations():
    with pytest.raises(ValueError):
        next(sleep(-1))
