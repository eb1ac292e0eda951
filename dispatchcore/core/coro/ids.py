#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Identifier generation for correlation ids and volatile instance ids.

Identifiers start at a random 64-bit value and increase by one. Results
redelivered from an unrelated, earlier operation then almost never collide
with identifiers handed out now, which small sequential integers would.
"""

import random
import threading
from typing import List, Optional

_MASK = 2**64 - 1


class IdentifierGenerator:
    """
    Thread-safe source of unsigned 64-bit identifiers.

    The sequence wraps around and never yields 0, the value of an unset id.
    Pass ``start`` (or a seeded ``rng``) for reproducible sequences.
    """

    def __init__(self, start: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        if start is None:
            start = (rng or random.SystemRandom()).getrandbits(64)
        self._next = start & _MASK
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            if self._next == 0:
                self._next = 1
            value = self._next
            self._next = (value + 1) & _MASK
            return value

    def take(self, count: int) -> List[int]:
        if count < 0:
            raise ValueError("count must not be negative")
        return [self.next_id() for _ in range(count)]

    def __iter__(self) -> "IdentifierGenerator":
        return self

    def __next__(self) -> int:
        return self.next_id()
