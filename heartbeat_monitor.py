#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Heartbeat Monitor - UDP liveness watcher

Listens for heartbeat datagrams from a fixed set of servers, marks a server
down after a silence window and sends an email on every down/up change.
Run without arguments to start monitoring.
"""

import sys
import logging
import argparse
import threading

from heartbeat.config import load_config, load_registry, CONFIG_FILE
from heartbeat.errors import ConfigError, SocketError
from heartbeat.listener import HeartbeatListener
from heartbeat.notifier import EmailNotifier
from heartbeat.store import LivenessStore
from heartbeat.sweeper import LivenessSweeper
from heartbeat.utils import setup_logging

logger = logging.getLogger("Heartbeat")

# ANSI escapes for console banners
RED = '\033[91m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
BOLD = '\033[1m'
RESET = '\033[0m'


def paint(color, text):
    return f"{color}{text}{RESET}"


def list_servers(registry):
    """Print the configured server roster."""
    print(f"\n{paint(BOLD, 'Configured Servers')}")
    print("="*20)
    if not registry:
        print(paint(YELLOW, "No servers configured."))
        return
    for server_id, name in registry.items():
        print(f"  {paint(GREEN, name)}: {server_id}")


def run_monitor(config, registry, notifier=None):
    """Start the listener thread and run the sweeper until shutdown.

    Raises SocketError if the socket cannot be bound or stops receiving.
    """
    if notifier is None:
        notifier = EmailNotifier(config['smtp'])

    store = LivenessStore(registry.keys())
    listener = HeartbeatListener(store, port=config['port'])
    listener.bind()

    sweeper = LivenessSweeper(store, registry, notifier,
                              interval=config['check_interval'],
                              threshold=config['threshold'])

    stop_event = threading.Event()
    listener.start(stop_event)
    try:
        sweeper.run_forever(stop_event)
    except KeyboardInterrupt:
        print(f"\n{paint(YELLOW, 'Stopping heartbeat monitor...')}")
        stop_event.set()
    finally:
        listener.close()

    if listener.error is not None:
        raise listener.error


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Heartbeat Monitor - UDP liveness watcher',
        epilog='Servers send their UUID over UDP; silence past the threshold triggers an email.'
    )
    parser.add_argument('-c', '--config', default=CONFIG_FILE, help=f'Configuration file (default: {CONFIG_FILE})')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--list-servers', action='store_true', help='List configured servers and exit')
    group.add_argument('--check-config', action='store_true', help='Validate the configuration and exit')
    group.add_argument('--test-email', action='store_true', help='Send a test email to verify SMTP settings')

    args = parser.parse_args(argv)

    setup_logging()
    logger.info("Heartbeat monitor starting up")

    try:
        config = load_config(args.config)
        registry = load_registry(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(paint(RED, f"Configuration error: {e}"))
        return 1

    if args.list_servers:
        list_servers(registry)
        return 0

    if args.check_config:
        print(paint(GREEN, f"Configuration OK: {len(registry)} servers, SMTP via {config['smtp']['hostname']}"))
        return 0

    if args.test_email:
        if EmailNotifier(config['smtp']).send_test_email():
            print(f"{paint(GREEN, 'Test email sent successfully!')}")
            return 0
        print(f"{paint(RED, 'Failed to send test email.')}")
        return 1

    try:
        run_monitor(config, registry)
    except SocketError as e:
        logger.critical(f"Socket error: {e}")
        print(paint(RED, f"Socket error: {e}"))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
