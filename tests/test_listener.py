import socket
import threading
import time

import pytest

from heartbeat.errors import HeartbeatParseError, SocketError
from heartbeat.listener import HeartbeatListener, parse_heartbeat
from heartbeat.store import LivenessStore

from conftest import ALPHA_ID, BETA_ID, UNKNOWN_ID

ADDR = ("127.0.0.1", 40000)


class TestParseHeartbeat:
    def test_canonical_uuid(self):
        assert parse_heartbeat("11111111-1111-1111-1111-111111111111") == ALPHA_ID

    def test_upper_case_is_accepted(self):
        text = "ABCDEFAB-1111-1111-1111-111111111111"
        assert str(parse_heartbeat(text)) == text.lower()

    @pytest.mark.parametrize("payload", [
        "not-a-uuid",
        "",
        "11111111111111111111111111111111",
        "{11111111-1111-1111-1111-111111111111}",
        "urn:uuid:11111111-1111-1111-1111-111111111111",
        "1111111-11111-1111-1111-111111111111",
        "zzzzzzzz-1111-1111-1111-111111111111",
    ])
    def test_rejects_malformed(self, payload):
        with pytest.raises(HeartbeatParseError):
            parse_heartbeat(payload)


class TestHandleDatagram:
    def setup_method(self):
        self.store = LivenessStore([ALPHA_ID, BETA_ID], now=0.0)
        self.listener = HeartbeatListener(self.store, host="127.0.0.1", port=0)

    def test_valid_heartbeat_touches_store(self):
        assert self.listener.handle_datagram(str(ALPHA_ID).encode(), ADDR) == ALPHA_ID
        assert self.store.last_seen(ALPHA_ID) > 0.0
        assert self.store.last_seen(BETA_ID) == 0.0

    def test_surrounding_whitespace_is_trimmed(self):
        payload = f"  {ALPHA_ID}\n".encode()
        assert self.listener.handle_datagram(payload, ADDR) == ALPHA_ID

    def test_malformed_payload_changes_nothing(self, caplog):
        assert self.listener.handle_datagram(b"not-a-uuid", ADDR) is None
        assert self.store.last_seen(ALPHA_ID) == 0.0
        assert self.store.last_seen(BETA_ID) == 0.0
        assert "invalid UUID" in caplog.text

    def test_invalid_utf8_does_not_raise(self):
        assert self.listener.handle_datagram(b"\xff\xfe\xfd" * 12, ADDR) is None

    def test_uuid_with_trailing_garbage_is_rejected(self):
        payload = f"{ALPHA_ID}{' ' * 40}GARBAGE-TRAILER".encode()
        assert self.listener.handle_datagram(payload, ADDR) is None
        assert self.store.last_seen(ALPHA_ID) == 0.0

    def test_unknown_server_is_not_added(self):
        assert self.listener.handle_datagram(str(UNKNOWN_ID).encode(), ADDR) == UNKNOWN_ID
        assert UNKNOWN_ID not in self.store

    def test_valid_heartbeat_after_malformed_one_is_processed(self):
        self.listener.handle_datagram(b"garbage", ADDR)
        self.listener.handle_datagram(str(BETA_ID).encode(), ADDR)
        assert self.store.last_seen(BETA_ID) > 0.0


class TestSocket:
    def wait_for(self, predicate, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return False

    def test_receives_heartbeats_over_udp(self):
        store = LivenessStore([ALPHA_ID], now=0.0)
        listener = HeartbeatListener(store, host="127.0.0.1", port=0)
        listener.start(threading.Event())
        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sender.sendto(b"not-a-uuid", listener.address)
            sender.sendto(f"{ALPHA_ID}\n".encode(), listener.address)

            assert self.wait_for(lambda: store.last_seen(ALPHA_ID) > 0.0)
            assert listener.thread.is_alive()
            assert listener.error is None
        finally:
            sender.close()
            listener.close()

    def test_oversized_datagram_is_not_truncated_into_a_heartbeat(self):
        store = LivenessStore([ALPHA_ID, BETA_ID], now=0.0)
        listener = HeartbeatListener(store, host="127.0.0.1", port=0)
        listener.start(threading.Event())
        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sender.sendto(f"{ALPHA_ID}{' ' * 40}GARBAGE-TRAILER".encode(), listener.address)
            sender.sendto(str(BETA_ID).encode(), listener.address)

            # datagrams from one sender arrive in order on loopback
            assert self.wait_for(lambda: store.last_seen(BETA_ID) > 0.0)
            assert store.last_seen(ALPHA_ID) == 0.0
        finally:
            sender.close()
            listener.close()

    def test_bind_failure_raises_socket_error(self):
        store = LivenessStore([ALPHA_ID], now=0.0)
        first = HeartbeatListener(store, host="127.0.0.1", port=0).bind()
        try:
            second = HeartbeatListener(store, host="127.0.0.1", port=first.address[1])
            with pytest.raises(SocketError):
                second.bind()
        finally:
            first.close()

    def test_receive_failure_sets_error_and_stop_event(self):
        store = LivenessStore([ALPHA_ID], now=0.0)
        listener = HeartbeatListener(store, host="127.0.0.1", port=0)

        class BrokenSocket:
            def recvfrom(self, size):
                raise OSError("network is down")

            def getsockname(self):
                return ("127.0.0.1", 0)

            def close(self):
                pass

        listener.sock = BrokenSocket()
        stop_event = threading.Event()
        listener.start(stop_event)

        assert stop_event.wait(2.0)
        assert isinstance(listener.error, SocketError)
