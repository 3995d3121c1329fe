"""
Shared fixtures for the heartbeat monitor tests.
"""

import uuid

import pytest

ALPHA_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
BETA_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
UNKNOWN_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")


class RecordingNotifier:
    """Notifier double that records calls and can be told to fail."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def down(self, server_id, name):
        self.calls.append(("down", server_id, name))
        if self.fail_with is not None:
            raise self.fail_with

    def up(self, server_id, name):
        self.calls.append(("up", server_id, name))
        if self.fail_with is not None:
            raise self.fail_with


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def registry():
    return {ALPHA_ID: "alpha", BETA_ID: "beta"}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def smtp_config():
    return {
        "hostname": "smtp.example.com",
        "port": 587,
        "use_tls": True,
        "timeout": 30,
        "username": "monitor",
        "password": "secret",
        "from_name": "Heartbeat",
        "from_email": "heartbeat@example.com",
        "to_name": "Admin",
        "to_email": "admin@example.com",
        "down_subject": "%NAME% is down",
        "down_body": "Server %NAME% (%UUID%) stopped sending heartbeats.",
        "up_subject": "%NAME% is up",
        "up_body": "Server %NAME% (%UUID%) is back.",
    }


@pytest.fixture
def config_data(smtp_config):
    return {
        "port": 28915,
        "check_interval": 5,
        "threshold": 10,
        "servers": [
            {"name": "alpha", "uuid": str(ALPHA_ID)},
            {"name": "beta", "uuid": str(BETA_ID)},
        ],
        "smtp": dict(smtp_config),
    }
