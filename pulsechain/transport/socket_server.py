"""
Socket Server

Line-oriented TCP front end. Every client gets a prompt, sends one reading
per line, and receives the full chain as JSON every broadcast interval and
after each append made by any producer.
"""

import socket
import threading
from typing import Optional, Set, Tuple

from ..blockchain.errors import ChainError, PayloadParseError
from ..blockchain.ledger import chain_to_json
from ..integration.arbitrator import SubmissionArbitrator
from ..integration.feed import DEFAULT_FEED_SIZE, ChainFeed
from ..logs import get_logger

logger = get_logger(__name__)

PROMPT = "Enter a new BPM:"
ACCEPT_POLL_SECONDS = 0.5
# Longest accepted line, newline included
MAX_LINE = 64 * 1024


class ClientConnection:
    """One connected client: a reader loop plus a broadcaster thread."""

    def __init__(self, server: "SocketServer", conn: socket.socket, addr: Tuple[str, int]):
        self.server = server
        self.conn = conn
        self.addr = addr
        self.feed = ChainFeed(server.feed_size)
        self._send_lock = threading.Lock()
        self._stopped = threading.Event()

    def send(self, text: str) -> bool:
        """Write text to the client; False once the client is gone."""
        if self._stopped.is_set():
            return False
        try:
            with self._send_lock:
                self.conn.sendall(text.encode('utf-8'))
            return True
        except OSError as e:
            logger.debug("Send to %s failed: %s", self.addr, e)
            self._stopped.set()
            return False

    def run(self) -> None:
        arbitrator = self.server.arbitrator
        arbitrator.subscribe(self.feed)
        broadcaster = threading.Thread(
            target=self._broadcast_loop, name=f"broadcast-{self.addr[1]}", daemon=True
        )
        broadcaster.start()
        try:
            self.send(PROMPT)
            with self.conn.makefile('rb') as reader:
                while not self._stopped.is_set():
                    raw = reader.readline(MAX_LINE + 1)
                    if not raw:
                        break
                    if len(raw) > MAX_LINE:
                        logger.warning("%s sent a line over %d bytes, disconnecting", self.addr, MAX_LINE)
                        break
                    self._handle_line(raw)
        except OSError as e:
            logger.debug("Connection %s closed: %s", self.addr, e)
        finally:
            arbitrator.unsubscribe(self.feed)
            self.close()
            broadcaster.join(timeout=1.0)

    def _handle_line(self, raw: bytes) -> None:
        try:
            block = self.server.arbitrator.submit_text(raw)
        except PayloadParseError as e:
            logger.warning("%s sent bad reading: %s", self.addr, e)
            return
        except ChainError as e:
            logger.info("%s submission rejected: %s", self.addr, e)
        else:
            logger.info("%s appended block #%d", self.addr, block.index)
        self.send("\n" + PROMPT)

    def _broadcast_loop(self) -> None:
        while not self._stopped.is_set():
            snapshot = self.feed.get(timeout=self.server.broadcast_interval)
            if self._stopped.is_set():
                break
            if snapshot is None:
                snapshot = self.server.arbitrator.store.snapshot()
            if not self.send(chain_to_json(snapshot, indent=None)):
                break

    def close(self) -> None:
        """Stop both loops and release the socket."""
        self._stopped.set()
        self.feed.close()
        try:
            self.conn.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # already disconnected
        self.conn.close()
        self.server._forget(self)


class SocketServer:
    """
    Threaded TCP server, one thread per client connection.
    """

    def __init__(
        self,
        arbitrator: SubmissionArbitrator,
        host: str = "0.0.0.0",
        port: int = 9000,
        broadcast_interval: float = 30.0,
        feed_size: int = DEFAULT_FEED_SIZE
    ):
        self.arbitrator = arbitrator
        self.host = host
        self.port = port
        self.broadcast_interval = broadcast_interval
        self.feed_size = feed_size
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()
        self._clients: Set[ClientConnection] = set()
        self._clients_lock = threading.Lock()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the port is real even when 0 was requested."""
        if self._sock is None:
            raise RuntimeError("Server is not bound")
        return self._sock.getsockname()[:2]

    def bind(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(5)
        except OSError:
            sock.close()
            raise
        sock.settimeout(ACCEPT_POLL_SECONDS)
        self._sock = sock
        logger.info("Socket server listening on %s:%d", *self.address)

    def start(self) -> None:
        """Bind and serve in a background thread."""
        self.bind()
        self._thread = threading.Thread(target=self._accept_loop, name="socket-server", daemon=True)
        self._thread.start()

    def serve_forever(self) -> None:
        """Bind and serve in the calling thread until shutdown()."""
        self.bind()
        self._accept_loop()

    def _accept_loop(self) -> None:
        while not self._stopped.is_set():
            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._stopped.is_set():
                    break
                raise
            conn.settimeout(None)
            client = ClientConnection(self, conn, addr)
            with self._clients_lock:
                self._clients.add(client)
            logger.info("Client connected from %s:%d", *addr[:2])
            threading.Thread(target=client.run, name=f"client-{addr[1]}", daemon=True).start()

    def _forget(self, client: ClientConnection) -> None:
        with self._clients_lock:
            self._clients.discard(client)

    def shutdown(self) -> None:
        """Stop accepting, disconnect every client and close the socket."""
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=2 * ACCEPT_POLL_SECONDS + 1)
        with self._clients_lock:
            clients = list(self._clients)
        for client in clients:
            client.close()
        if self._sock is not None:
            self._sock.close()
        logger.info("Socket server stopped")
