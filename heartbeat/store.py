#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Shared liveness state for the heartbeat monitor.

The last-heartbeat map and the set of servers currently down are touched
by the listener thread and the sweeper thread. Both live behind a single
lock so a sweep pass always sees a coherent (last seen, down) pair.
"""

import time
import logging
import threading
from collections import namedtuple

logger = logging.getLogger("Heartbeat")

UP = "up"
DOWN = "down"

Transition = namedtuple('Transition', ['server_id', 'state', 'elapsed'])


class LivenessStore:
    def __init__(self, server_ids, now=None):
        if now is None:
            now = time.monotonic()
        self._lock = threading.Lock()
        # Every server starts as alive at boot.
        self._last_seen = {server_id: now for server_id in server_ids}
        self._down = set()

    def __contains__(self, server_id):
        with self._lock:
            return server_id in self._last_seen

    def __len__(self):
        with self._lock:
            return len(self._last_seen)

    def touch(self, server_id, now=None):
        """Record a heartbeat. Returns False for servers not in the registry."""
        if now is None:
            now = time.monotonic()
        with self._lock:
            if server_id not in self._last_seen:
                known = False
            else:
                self._last_seen[server_id] = now
                known = True

        if known:
            logger.debug(f"Received heartbeat from server: {server_id}")
        else:
            logger.warning(f"Received heartbeat from unknown server: {server_id}")
        return known

    def sweep(self, now=None, threshold=10.0):
        """Evaluate every server against one snapshot and flip changed states.

        A server is down when strictly more than `threshold` seconds have
        passed since its last heartbeat. Returns the transitions made in
        this pass; callers notify after the lock has been released.
        """
        if now is None:
            now = time.monotonic()

        transitions = []
        with self._lock:
            for server_id, last_seen in self._last_seen.items():
                elapsed = now - last_seen
                if elapsed > threshold:
                    if server_id not in self._down:
                        self._down.add(server_id)
                        transitions.append(Transition(server_id, DOWN, elapsed))
                elif server_id in self._down:
                    self._down.discard(server_id)
                    transitions.append(Transition(server_id, UP, elapsed))
        return transitions

    def is_down(self, server_id):
        with self._lock:
            return server_id in self._down

    def down_servers(self):
        with self._lock:
            return frozenset(self._down)

    def last_seen(self, server_id):
        """Monotonic time of the last heartbeat, or None for unknown ids."""
        with self._lock:
            return self._last_seen.get(server_id)
