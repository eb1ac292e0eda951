#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Suspend a function for a duration.

The orchestrator is asked to wake the function after ``max_wait`` with a
poll that carries no calls. Wake-ups can come early, so the loop checks the
local clock and polls again for the remainder.
"""

import time
from datetime import timedelta
from typing import Generator, Optional, Union

from ..data.records import Poll, Request, Response

# Remainders shorter than this are slept in-process.
LOCAL_SLEEP_THRESHOLD = 0.1


def _seconds(duration: Union[timedelta, float, int]) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def sleep(duration: Union[timedelta, float, int]) -> Generator[Response, Optional[Request], None]:
    """Use as ``yield from sleep(timedelta(seconds=30))`` inside a function body."""
    total = _seconds(duration)
    if total < 0:
        raise ValueError("sleep duration must not be negative")

    start = time.monotonic()
    remaining = total
    while remaining > 0:
        if remaining < LOCAL_SLEEP_THRESHOLD:
            time.sleep(remaining)
            return
        yield Response.from_poll(Poll(max_wait=timedelta(seconds=remaining)))
        remaining = total - (time.monotonic() - start)
