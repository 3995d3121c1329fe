#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Heartbeat Monitor - UDP liveness watcher

This package tracks heartbeats from a fixed set of servers and sends
email when a server goes silent or comes back.
"""

from .config import load_config, load_registry
from .errors import (HeartbeatError, ConfigError, HeartbeatParseError,
                     SocketError, NotificationError)
from .store import LivenessStore, Transition, UP, DOWN
from .listener import HeartbeatListener, parse_heartbeat
from .sweeper import LivenessSweeper
from .notifier import EmailNotifier
from .utils import setup_logging

__version__ = '1.0.0'
