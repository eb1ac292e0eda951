#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
In-memory table of suspended coroutines.

A suspended coroutine stays resident in this process and is addressed by an
instance id, which travels through the orchestrator as the poll's coroutine
state.
"""

import threading
from typing import Dict, List, Optional

from ..utils.exceptions import InstanceNotFoundError
from ..utils.logger import ModernLogger
from .coroutine import Coroutine
from .ids import IdentifierGenerator


class VolatileInstances(ModernLogger):
    """
    Thread-safe registry of resident coroutines.

    The lock only guards the table; it is never held while a coroutine runs
    or is being stopped.
    """

    def __init__(self, ids: Optional[IdentifierGenerator] = None, name: str = "VolatileInstances") -> None:
        super().__init__(name=name)
        self._ids = ids if ids is not None else IdentifierGenerator()
        self._instances: Dict[int, Coroutine] = {}
        self._lock = threading.Lock()

    def register(self, coroutine: Coroutine) -> int:
        with self._lock:
            instance_id = self._ids.next_id()
            while instance_id in self._instances:
                instance_id = self._ids.next_id()
            self._instances[instance_id] = coroutine
        self.debug("registered coroutine %d", instance_id)
        return instance_id

    def find(self, instance_id: int) -> Coroutine:
        with self._lock:
            coroutine = self._instances.get(instance_id)
        if coroutine is None:
            raise InstanceNotFoundError(instance_id=instance_id)
        return coroutine

    def delete(self, instance_id: int) -> None:
        with self._lock:
            removed = self._instances.pop(instance_id, None)
        if removed is not None:
            self.debug("deleted coroutine %d", instance_id)

    def close(self) -> None:
        """Stop and discard every resident coroutine."""
        with self._lock:
            coroutines: List[Coroutine] = list(self._instances.values())
            self._instances.clear()
        if coroutines:
            self.info("stopping %d resident coroutine(s)", len(coroutines))
        for coroutine in coroutines:
            coroutine.stop()

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)

    def __contains__(self, instance_id: object) -> bool:
        with self._lock:
            return instance_id in self._instances
