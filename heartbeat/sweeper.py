#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Periodic liveness sweep.

Every `interval` seconds all registered servers are checked against the
silence threshold. A server whose state flipped since the previous pass
gets exactly one notification; steady DOWN or steady UP servers get none.
"""

import time
import logging

from .errors import NotificationError
from .store import DOWN

logger = logging.getLogger("Heartbeat")

CHECK_INTERVAL = 5.0
THRESHOLD = 10.0


class LivenessSweeper:
    def __init__(self, store, registry, notifier, interval=CHECK_INTERVAL,
                 threshold=THRESHOLD, clock=time.monotonic):
        self.store = store
        self.registry = registry
        self.notifier = notifier
        self.interval = interval
        self.threshold = threshold
        self.clock = clock

    def sweep_once(self):
        """Run one sweep pass and send notifications for its transitions.

        The state change is kept even if its notification fails; the
        failure is logged and the remaining transitions are still sent.
        """
        transitions = self.store.sweep(self.clock(), self.threshold)

        for transition in transitions:
            server_id = transition.server_id
            name = self.registry.get(server_id, str(server_id))
            try:
                if transition.state == DOWN:
                    logger.warning(f"Server {name} ({server_id}) has not sent a heartbeat "
                                   f"in {self.threshold:g} seconds!")
                    self.notifier.down(server_id, name)
                else:
                    logger.info(f"Server {name} ({server_id}) is back online!")
                    self.notifier.up(server_id, name)
            except NotificationError as e:
                logger.error(f"Failed to send {transition.state} notification for {name}: {e}")

        return transitions

    def run_forever(self, stop_event=None):
        """Sweep every `interval` seconds until `stop_event` is set."""
        logger.info(f"Checking {len(self.registry)} servers every {self.interval:g}s "
                    f"(threshold {self.threshold:g}s)")
        while True:
            self.sweep_once()
            if stop_event is None:
                time.sleep(self.interval)
            elif stop_event.wait(self.interval):
                logger.info("Liveness sweeper stopped")
                return
