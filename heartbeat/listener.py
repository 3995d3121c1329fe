#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""UDP heartbeat listener.

Each heartbeat is a datagram holding the canonical hyphenated UUID of the
sending server, optionally surrounded by whitespace. There is no reply and
no authentication: anyone who can reach the port can refresh a server.
"""

import uuid
import socket
import logging
import threading

from .errors import HeartbeatParseError, SocketError

logger = logging.getLogger("Heartbeat")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 28915

# Largest possible UDP payload. recvfrom() silently truncates anything bigger
# than the buffer, so an oversized datagram must arrive whole to fail parsing.
BUFFER_SIZE = 65535


def parse_heartbeat(text):
    """Parse a heartbeat payload into a UUID.

    Only the 36 character hyphenated form is accepted (either case).
    """
    if len(text) != 36:
        raise HeartbeatParseError(f"Invalid heartbeat length {len(text)}", payload=text)
    try:
        server_id = uuid.UUID(text)
    except ValueError as e:
        raise HeartbeatParseError(f"Invalid UUID: {text!r}", payload=text) from e
    # uuid.UUID also takes braces and "urn:uuid:" prefixes; reject them.
    if str(server_id) != text.lower():
        raise HeartbeatParseError(f"Non-canonical UUID: {text!r}", payload=text)
    return server_id


class HeartbeatListener:
    def __init__(self, store, host=DEFAULT_HOST, port=DEFAULT_PORT):
        self.store = store
        self.host = host
        self.port = port
        self.sock = None
        self.thread = None
        self.error = None
        self._closing = False

    @property
    def address(self):
        """Bound (host, port), useful when binding to port 0."""
        if self.sock is None:
            return None
        return self.sock.getsockname()

    def bind(self):
        """Create and bind the UDP socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise SocketError(f"Failed to bind {self.host}:{self.port}: {e}",
                              host=self.host, port=self.port) from e
        self.sock = sock
        logger.info(f"Listening for heartbeats on {self.host}:{self.address[1]}/udp")
        return self

    def handle_datagram(self, data, addr):
        """Process one datagram. Never raises on bad input."""
        logger.debug(f"Received {len(data)} bytes from {addr}")
        text = data.decode('utf-8', errors='replace').strip()
        try:
            server_id = parse_heartbeat(text)
        except HeartbeatParseError:
            logger.warning(f"Received invalid UUID from {addr}: {text!r}")
            return None
        self.store.touch(server_id)
        return server_id

    def serve_forever(self):
        """Receive heartbeats until the socket fails."""
        if self.sock is None:
            self.bind()
        sock = self.sock
        while True:
            try:
                data, addr = sock.recvfrom(BUFFER_SIZE)
            except OSError as e:
                if self._closing:
                    logger.info("Heartbeat listener closed")
                    return
                raise SocketError(f"Failed to receive data: {e}",
                                  host=self.host, port=self.port) from e
            self.handle_datagram(data, addr)

    def start(self, stop_event=None):
        """Run the listener in a daemon thread.

        A socket failure is kept on `self.error` and signalled through
        `stop_event` so the main thread can shut the process down.
        """
        if self.sock is None:
            self.bind()

        def run():
            try:
                self.serve_forever()
            except SocketError as e:
                self.error = e
                logger.critical(f"Heartbeat listener stopped: {e}")
                if stop_event is not None:
                    stop_event.set()

        self.thread = threading.Thread(target=run, name="listener", daemon=True)
        self.thread.start()
        logger.info("Started heartbeat listener thread")
        return self.thread

    def close(self):
        self._closing = True
        if self.sock is not None:
            self.sock.close()
            self.sock = None
