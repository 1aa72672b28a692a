"""
Integration tests for PulseChain.

Tests end-to-end workflows combining the core with its front ends:
- The genesis -> 64 -> stale 70 scenario
- HTTP API through Flask's test client
- TCP socket server over loopback
"""

import json
import socket
import time

import pytest
from pulsechain.blockchain.errors import ChainNotExtended, ValidationFailed
from pulsechain.blockchain.ledger import chain_from_json, chain_to_json, create_genesis_block
from pulsechain.blockchain.validation import is_chain_valid
from pulsechain.config import Settings
from pulsechain.integration.arbitrator import create_arbitrator
from pulsechain.main import build_node
from pulsechain.transport.http_api import create_app
from pulsechain.transport.socket_server import MAX_LINE, PROMPT, SocketServer


GENESIS_TIME = "2024-01-01T00:00:00+00:00"


@pytest.fixture
def arbitrator():
    return create_arbitrator(create_genesis_block(GENESIS_TIME))


class TestScenario:
    """The reference end-to-end scenario."""

    def test_genesis_then_stale_submission(self, arbitrator):
        """64 is accepted; 70 built on the same old tip is rejected."""
        store = arbitrator.store
        genesis = store.tip()
        assert (genesis.index, genesis.prev_hash, genesis.payload) == (0, "", 0)

        late = arbitrator.begin()
        block = arbitrator.submit(64)
        assert block.index == 1
        assert block.prev_hash == genesis.hash
        assert block.hash == block.compute_hash()
        assert store.length == 2

        late.build(70)
        with pytest.raises(ChainNotExtended):
            arbitrator.commit(late)
        assert store.length == 2
        assert store.tip().payload == 64

    def test_round_trip_of_live_chain(self, arbitrator):
        """A served chain parses back into a valid chain."""
        for bpm in (64, 70, 72):
            arbitrator.submit(bpm)
        loaded = chain_from_json(chain_to_json(arbitrator.store.snapshot()))
        assert loaded == arbitrator.store.snapshot()
        assert is_chain_valid(loaded, arbitrator.store.genesis)


class TestHttpApi:
    """HTTP routes."""

    @pytest.fixture
    def client(self, arbitrator):
        app = create_app(arbitrator)
        app.config['TESTING'] = True
        return app.test_client()

    def test_get_chain(self, client, arbitrator):
        """GET / returns the chain as a JSON list."""
        response = client.get('/')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert len(data) == 1
        assert data[0]['index'] == 0
        assert data[0]['prevHash'] == ""

    def test_post_block(self, client, arbitrator):
        """POST / appends and returns the new block."""
        response = client.post('/', json={'BPM': 64})
        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['index'] == 1
        assert data['payload'] == 64
        assert data['prevHash'] == arbitrator.store.genesis.hash
        assert arbitrator.store.length == 2

    def test_post_payload_key(self, client, arbitrator):
        """The generic 'payload' key is accepted too."""
        response = client.post('/', json={'payload': 70})
        assert response.status_code == 201
        assert arbitrator.store.tip().payload == 70

    def test_post_then_get(self, client):
        """Appended blocks show up in GET /."""
        client.post('/', json={'BPM': 64})
        client.post('/', json={'BPM': 70})
        data = json.loads(client.get('/').data)
        assert [b['payload'] for b in data] == [0, 64, 70]

    @pytest.mark.parametrize("body", [
        "not json", json.dumps([64]), json.dumps({'other': 1}),
        json.dumps({'BPM': "abc"}), json.dumps({'BPM': 6.5}), json.dumps({'BPM': "9" * 5000}),
    ])
    def test_bad_requests(self, client, arbitrator, body):
        """Malformed bodies return 400 and leave the chain alone."""
        response = client.post('/', data=body, content_type='application/json')
        assert response.status_code == 400
        assert 'error' in json.loads(response.data)
        assert arbitrator.store.length == 1

    def test_rejected_submission_conflict(self, client, arbitrator, monkeypatch):
        """ChainNotExtended maps to 409."""
        def refuse(payload):
            raise ChainNotExtended(2, 2)

        monkeypatch.setattr(arbitrator, 'submit', refuse)
        response = client.post('/', json={'BPM': 64})
        assert response.status_code == 409

    def test_invalid_candidate_unprocessable(self, client, arbitrator, monkeypatch):
        """ValidationFailed maps to 422."""
        def invalid(payload):
            raise ValidationFailed("block hash mismatch")

        monkeypatch.setattr(arbitrator, 'submit', invalid)
        response = client.post('/', json={'BPM': 64})
        assert response.status_code == 422
        assert "block hash mismatch" in json.loads(response.data)['error']

    def test_echo(self, client):
        """GET /test echoes the name parameter."""
        response = client.get('/test?name=pulse')
        assert response.status_code == 200
        assert json.loads(response.data) == {'name': 'pulse'}


def _read_until(sock, marker, timeout=5.0):
    """Read from sock until marker has been received."""
    sock.settimeout(timeout)
    data = b""
    while marker.encode() not in data:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data.decode()


def _wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestSocketServer:
    """TCP server over loopback."""

    @pytest.fixture
    def server(self, arbitrator):
        server = SocketServer(arbitrator, host="127.0.0.1", port=0, broadcast_interval=60)
        server.start()
        yield server
        server.shutdown()

    def test_prompt_and_submit(self, server, arbitrator):
        """A line becomes a block and the client is prompted again."""
        with socket.create_connection(server.address) as sock:
            assert PROMPT in _read_until(sock, PROMPT)
            sock.sendall(b"64\n")
            _read_until(sock, "\n" + PROMPT)
        assert arbitrator.store.length == 2
        assert arbitrator.store.tip().payload == 64

    def test_bad_line_skipped(self, server, arbitrator):
        """A malformed line is skipped and the connection keeps working."""
        with socket.create_connection(server.address) as sock:
            _read_until(sock, PROMPT)
            sock.sendall(b"abc\n70\n")
            _read_until(sock, "\n" + PROMPT)
        assert arbitrator.store.length == 2
        assert arbitrator.store.tip().payload == 70

    def test_oversized_number_skipped(self, server, arbitrator):
        """A digit string too large to parse is skipped like any bad line."""
        with socket.create_connection(server.address) as sock:
            _read_until(sock, PROMPT)
            sock.sendall(b"9" * 5000 + b"\n64\n")
            _read_until(sock, "\n" + PROMPT)
        assert arbitrator.store.length == 2
        assert arbitrator.store.tip().payload == 64

    def test_rejected_line_reprompts(self, server, arbitrator, monkeypatch):
        """A parsed but rejected submission leaves the chain alone and re-prompts."""
        def refuse(raw):
            raise ChainNotExtended(2, 2)

        monkeypatch.setattr(arbitrator, 'submit_text', refuse)
        with socket.create_connection(server.address) as sock:
            _read_until(sock, PROMPT)
            sock.sendall(b"64\n")
            data = _read_until(sock, "\n" + PROMPT)
        assert ("\n" + PROMPT) in data
        assert arbitrator.store.length == 1

    def test_line_over_limit_disconnects(self, server, arbitrator):
        """A client that sends a line over MAX_LINE bytes is dropped."""
        with socket.create_connection(server.address) as sock:
            _read_until(sock, PROMPT)
            assert len(arbitrator._subscribers) == 1
            sock.sendall(b"7" * (MAX_LINE + 1))
            assert _wait_for(lambda: len(arbitrator._subscribers) == 0)
        assert arbitrator.store.length == 1

    def test_bind_failure_closes_socket(self, server, arbitrator, monkeypatch):
        """A port already in use raises OSError and the new socket is closed."""
        created = []
        real_socket = socket.socket

        def tracking_socket(*args, **kwargs):
            sock = real_socket(*args, **kwargs)
            created.append(sock)
            return sock

        monkeypatch.setattr(socket, 'socket', tracking_socket)
        other = SocketServer(arbitrator, host="127.0.0.1", port=server.address[1])
        with pytest.raises(OSError):
            other.bind()
        assert other._sock is None
        assert len(created) == 1
        assert created[0].fileno() == -1

    def test_broadcast_on_append(self, server, arbitrator):
        """Clients receive the chain after an append from another producer."""
        with socket.create_connection(server.address) as sock:
            _read_until(sock, PROMPT)
            # The connection subscribes right before prompting
            arbitrator.submit(88)
            data = _read_until(sock, '"payload": 88')
        assert '"payload": 88' in data

    def test_two_clients(self, server, arbitrator):
        """Submissions from separate connections all land."""
        with socket.create_connection(server.address) as a, \
                socket.create_connection(server.address) as b:
            _read_until(a, PROMPT)
            _read_until(b, PROMPT)
            a.sendall(b"60\n")
            b.sendall(b"61\n")
            _read_until(a, "\n" + PROMPT)
            _read_until(b, "\n" + PROMPT)
        assert arbitrator.store.length == 3
        assert is_chain_valid(arbitrator.store.snapshot(), arbitrator.store.genesis)

    def test_disconnect_unsubscribes(self, server, arbitrator):
        """Closed connections stop receiving updates."""
        with socket.create_connection(server.address) as sock:
            _read_until(sock, PROMPT)
            assert len(arbitrator._subscribers) == 1
        assert _wait_for(lambda: len(arbitrator._subscribers) == 0)

    def test_address_requires_bind(self, arbitrator):
        """address is only known once bound."""
        with pytest.raises(RuntimeError):
            SocketServer(arbitrator).address


class TestBuildNode:
    """Bootstrap wiring."""

    def test_without_http(self):
        """HTTP is off unless http_addr is set."""
        settings = Settings(addr=0, http_addr=None, genesis_timestamp=GENESIS_TIME)
        arbitrator, server, app = build_node(settings)
        assert app is None
        assert server.port == 0
        assert arbitrator.store.genesis.timestamp == GENESIS_TIME

    def test_with_http(self):
        """Setting http_addr builds the Flask app."""
        settings = Settings(addr=0, http_addr=8080)
        arbitrator, server, app = build_node(settings)
        assert app is not None
        response = app.test_client().post('/', json={'BPM': 64})
        assert response.status_code == 201
        assert arbitrator.store.length == 2
