"""
PulseChain - Main Entry Point

Starts a node: one shared chain, the TCP text server in the foreground
and, when HTTP_ADDR is set, the HTTP API in a background thread.
"""

import threading
from typing import Optional

from .blockchain.ledger import create_genesis_block
from .config import Settings, get_package_version
from .integration.arbitrator import create_arbitrator, log_chain
from .logs import configure_logging, get_logger
from .transport.http_api import create_app
from .transport.socket_server import SocketServer

logger = get_logger(__name__)


def build_node(settings: Settings):
    """Create the arbitrator and transports described by settings."""
    genesis = create_genesis_block(settings.genesis_timestamp)
    arbitrator = create_arbitrator(genesis)
    arbitrator.subscribe(log_chain)
    log_chain(arbitrator.store.snapshot())

    socket_server = SocketServer(
        arbitrator,
        host=settings.host,
        port=settings.addr,
        broadcast_interval=settings.broadcast_interval,
        feed_size=settings.feed_size,
    )
    app = create_app(arbitrator) if settings.http_addr is not None else None
    return arbitrator, socket_server, app


def main(settings: Optional[Settings] = None) -> None:
    """Main entry point for a PulseChain node."""
    settings = settings or Settings()
    configure_logging(settings.log_level)
    logger.info("PulseChain %s starting", get_package_version())

    arbitrator, socket_server, app = build_node(settings)
    logger.info("Genesis block %s...", arbitrator.store.genesis.hash[:16])

    if app is not None:
        logger.info("HTTP API listening on %s:%d", settings.host, settings.http_addr)
        threading.Thread(
            target=app.run,
            kwargs={'host': settings.host, 'port': settings.http_addr, 'threaded': True},
            name="http-api",
            daemon=True,
        ).start()

    try:
        socket_server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        socket_server.shutdown()


if __name__ == "__main__":
    main()
