#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Configuration management module for the heartbeat monitor.

This module loads the main configuration file, applies HEARTBEAT_*
environment overrides on top of it and builds the server registry
(server UUID -> display name) used by the listener and sweeper.
"""

import json
import os
import uuid
import logging

from .errors import ConfigError

# Configuration file
CONFIG_FILE = "config.json"

ENV_PREFIX = "HEARTBEAT_"

DEFAULT_PORT = 28915
DEFAULT_CHECK_INTERVAL = 5
DEFAULT_THRESHOLD = 10

REQUIRED_SMTP_KEYS = (
    'hostname', 'username', 'password', 'from_email', 'to_email',
    'down_subject', 'down_body', 'up_subject', 'up_body',
)
OPTIONAL_SMTP_KEYS = {
    'port': 587,
    'use_tls': True,
    'timeout': 30,
    'from_name': '',
    'to_name': '',
}

DEFAULT_CONFIG = {
    "port": DEFAULT_PORT,
    "check_interval": DEFAULT_CHECK_INTERVAL,
    "threshold": DEFAULT_THRESHOLD,
    "servers": [
        {"name": "example", "uuid": "00000000-0000-0000-0000-000000000000"}
    ],
    "smtp": {
        "hostname": "smtp.example.com",
        "port": 587,
        "use_tls": True,
        "username": "user@example.com",
        "password": "password",
        "from_name": "Heartbeat Monitor",
        "from_email": "heartbeat@example.com",
        "to_name": "Admin",
        "to_email": "admin@example.com",
        "down_subject": "%NAME% is down",
        "down_body": "Server %NAME% (%UUID%) has not sent a heartbeat recently.",
        "up_subject": "%NAME% is back up",
        "up_body": "Server %NAME% (%UUID%) is sending heartbeats again."
    }
}

logger = logging.getLogger("Heartbeat")


def load_config(path=CONFIG_FILE, environ=None):
    """Load, override and validate the main configuration file.

    A missing file is replaced by a default template and reported as a
    ConfigError so the monitor never starts on placeholder settings.
    """
    if environ is None:
        environ = os.environ

    if not os.path.exists(path):
        with open(path, 'w') as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
        logger.info(f"Created default configuration file: {path}")
        raise ConfigError(f"No configuration found; edit the template written to {path} and restart")

    try:
        with open(path, 'r') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    apply_env_overrides(config, environ)
    return validate_config(config)


def apply_env_overrides(config, environ):
    """Overlay HEARTBEAT_* environment variables onto the config in place."""
    for key in ('port', 'check_interval', 'threshold'):
        value = environ.get(ENV_PREFIX + key.upper())
        if value is not None:
            config[key] = value

    smtp_prefix = ENV_PREFIX + "SMTP_"
    known = set(REQUIRED_SMTP_KEYS) | set(OPTIONAL_SMTP_KEYS)
    for name, value in environ.items():
        if not name.startswith(smtp_prefix):
            continue
        key = name[len(smtp_prefix):].lower()
        if key not in known:
            logger.warning(f"Ignoring unknown SMTP override: {name}")
            continue
        smtp = config.setdefault('smtp', {})
        if not isinstance(smtp, dict):
            raise ConfigError(f"'smtp' must be an object, got {type(smtp).__name__}")
        smtp[key] = value
    return config


def validate_config(config):
    """Check types and fill defaults. Returns the same dict."""
    config['port'] = _as_port(config.get('port', DEFAULT_PORT), 'port')
    config['check_interval'] = _as_positive_number(
        config.get('check_interval', DEFAULT_CHECK_INTERVAL), 'check_interval')
    config['threshold'] = _as_positive_number(
        config.get('threshold', DEFAULT_THRESHOLD), 'threshold')
    config['smtp'] = validate_smtp(config.get('smtp'))
    return config


def validate_smtp(smtp):
    """Validate the smtp section and fill in optional keys."""
    if not isinstance(smtp, dict):
        raise ConfigError("Missing 'smtp' section")

    missing = [key for key in REQUIRED_SMTP_KEYS if not smtp.get(key)]
    if missing:
        raise ConfigError(f"Missing SMTP settings: {', '.join(missing)}")

    settings = dict(OPTIONAL_SMTP_KEYS)
    settings.update(smtp)
    settings['port'] = _as_port(settings['port'], 'smtp.port')
    settings['timeout'] = _as_positive_number(settings['timeout'], 'smtp.timeout')
    settings['use_tls'] = _as_bool(settings['use_tls'], 'smtp.use_tls')
    return settings


def load_registry(config):
    """Build the server registry (UUID -> name) from the 'servers' roster.

    Duplicate UUIDs are not rejected: the last entry wins.
    """
    servers = config.get('servers')
    if not isinstance(servers, list):
        raise ConfigError("Missing 'servers' list in configuration")

    registry = {}
    for index, server in enumerate(servers):
        if not isinstance(server, dict):
            raise ConfigError(f"Server entry #{index} is not an object")

        name = server.get('name')
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(f"Server entry #{index} has no name")

        raw_id = server.get('uuid')
        if not isinstance(raw_id, str):
            raise ConfigError(f"Server '{name}' has no uuid")
        try:
            server_id = uuid.UUID(raw_id)
        except ValueError as e:
            raise ConfigError(f"Server '{name}' has a malformed uuid: {raw_id}") from e
        # uuid.UUID tolerates braces, "urn:uuid:", missing hyphens and underscores
        if str(server_id) != raw_id.lower():
            raise ConfigError(f"Server '{name}' has a non-canonical uuid: {raw_id}")

        if server_id in registry:
            logger.warning(f"Duplicate uuid {server_id}: '{registry[server_id]}' replaced by '{name}'")
        registry[server_id] = name
        logger.info(f"Server: {name} ({server_id})")

    logger.info(f"Loaded {len(registry)} servers from configuration")
    return registry


def _as_port(value, key):
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if isinstance(value, bool) or not 0 < port < 65536:
        raise ConfigError(f"'{key}' must be between 1 and 65535, got {value!r}")
    return port


def _as_positive_number(value, key):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    if isinstance(value, bool) or number <= 0:
        raise ConfigError(f"'{key}' must be positive, got {value!r}")
    return number


def _as_bool(value, key):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('1', 'true', 'yes', 'y', 'on'):
        return True
    if isinstance(value, str) and value.strip().lower() in ('0', 'false', 'no', 'n', 'off'):
        return False
    raise ConfigError(f"'{key}' must be true or false, got {value!r}")
