#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
from datetime import timedelta

import pytest

from dispatchcore.core.config import DispatchConfig, get_config, set_config
from dispatchcore.core.coro.awaiting import Correlator
from dispatchcore.core.utils.logger import ModernLogger, configure_logging


def test_defaults_without_environment():
    config = DispatchConfig.from_env({})

    assert config.endpoint_url is None
    assert config.poll_max_wait == timedelta(minutes=5)
    assert config.log_level == "WARNING"


def test_values_from_environment():
    config = DispatchConfig.from_env(
        {
            "DISPATCH_ENDPOINT_URL": "https://fn.example.com/dispatch",
            "DISPATCH_POLL_MAX_WAIT": "12.5",
            "DISPATCH_LOG_LEVEL": "debug",
        }
    )

    assert config.endpoint_url == "https://fn.example.com/dispatch"
    assert config.poll_max_wait == timedelta(seconds=12.5)
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"DISPATCH_ENDPOINT_URL": "not a url"},
        {"DISPATCH_POLL_MAX_WAIT": "soon"},
        {"DISPATCH_POLL_MAX_WAIT": "0"},
        {"DISPATCH_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_environment_values_are_rejected(env):
    with pytest.raises(ValueError):
        DispatchConfig.from_env(env)


def test_log_level_is_checked_at_construction():
    assert DispatchConfig(log_level="debug").log_level == "debug"

    with pytest.raises(ValueError, match="log_level"):
        DispatchConfig(log_level="verbose")


def test_process_wide_config_reads_the_environment(monkeypatch):
    monkeypatch.setenv("DISPATCH_POLL_MAX_WAIT", "7")
    set_config(None)

    assert get_config().poll_max_wait == timedelta(seconds=7)
    assert get_config() is get_config()


def test_correlator_defaults_to_the_configured_max_wait():
    set_config(DispatchConfig(poll_max_wait=timedelta(seconds=42)))

    assert Correlator().max_wait == timedelta(seconds=42)


def test_component_loggers_live_under_the_package_namespace():
    class Component(ModernLogger):
        def __init__(self):
            super().__init__(name="Component")

    assert Component().logger.name == "dispatchcore.Component"


def test_configure_logging_sets_the_package_level():
    root = configure_logging("info")

    assert root.name == "dispatchcore"
    assert root.level == logging.INFO

    with pytest.raises(ValueError):
        configure_logging("chatty")
