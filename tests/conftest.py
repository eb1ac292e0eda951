#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Pytest bootstrap for local package imports.
"""

import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def _reset_process_state():
    from dispatchcore.core.config import set_config
    from dispatchcore.core.coro.awaiting import set_default_correlator

    yield
    set_default_correlator(None)
    set_config(None)
