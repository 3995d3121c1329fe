#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Error types for the heartbeat monitor.

Only ConfigError and SocketError are allowed to stop the process; the
others are logged where they happen and the loops carry on.
"""


class HeartbeatError(Exception):
    """Base exception for all heartbeat monitor errors."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class ConfigError(HeartbeatError):
    """Missing or malformed roster or SMTP settings."""


class HeartbeatParseError(HeartbeatError):
    """A datagram payload that is not a canonical server UUID."""

    def __init__(self, message, payload=None):
        self.payload = payload
        super().__init__(message)


class SocketError(HeartbeatError):
    """The heartbeat socket could not be bound or stopped receiving."""

    def __init__(self, message, host=None, port=None):
        self.host = host
        self.port = port
        super().__init__(message)


class NotificationError(HeartbeatError):
    """An email could not be delivered."""

    def __init__(self, message, server_id=None):
        self.server_id = server_id
        super().__init__(message)
