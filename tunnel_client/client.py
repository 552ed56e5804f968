"""
Tunnel client implementation.
Connects to the first configured remote and drives the protocol engine over TCP.
"""
import sys
import time
import enum
import socket
import logging
import argparse
from typing import Optional, Dict, Any, Callable, List

from tunnel_client import __version__
from tunnel_common.crypto.rng import RNG
from tunnel_common.engine.base import ProtocolEngine, load_engine
from tunnel_common.errors import TunnelError, TunnelConnectionError, ProtocolError
from tunnel_common.networking.resolver import SystemResolver, resolve_remote, Endpoint
from tunnel_common.networking.stream import read_from_socket, write_multiple_to_socket
from tunnel_common.utils.config import ConfigManager, load_config
from tunnel_common.utils.logging_setup import setup_logging, hexdump

logger = logging.getLogger("tunnel.client")


class DrivePhase(enum.Enum):
    """States of the drive loop"""
    AWAITING_BYTES = "awaiting-bytes"
    ADVANCING_ENGINE = "advancing-engine"
    FLUSHING_OUTPUT = "flushing-output"
    FAILED = "failed"


def log_payload(payload: bytes) -> None:
    """Default payload handler: log a hexdump"""
    logger.info(f"received payload:\n{hexdump(payload)}")


class TunnelClient:
    """
    Owns one connection and one protocol engine state
    """
    def __init__(self, config: ConfigManager,
                 engine: Optional[ProtocolEngine] = None,
                 resolver=None,
                 socket_factory: Callable[..., socket.socket] = socket.socket,
                 clock: Callable[[], float] = time.time,
                 rng=RNG,
                 payload_handler: Optional[Callable[[bytes], None]] = None):
        """
        Initialize the tunnel client

        Args:
            config: Validated client configuration
            engine: Protocol engine (None to load the one named in the config)
            resolver: Name resolver (None for the system resolver)
            socket_factory: Called as socket_factory(family, type)
            clock: Returns the current time in seconds
            rng: Source of the engine's random seed
            payload_handler: Called with each decapsulated payload
        """
        self.config = config
        self.engine = engine or load_engine(config.get("engine", "static-key"))
        self.resolver = resolver or SystemResolver(config.get("client.resolver_family", "ipv4"))
        self.socket_factory = socket_factory
        self.clock = clock
        self.rng = rng
        self.payload_handler = payload_handler or log_payload

        self.connection: Optional[socket.socket] = None
        self.endpoint: Optional[Endpoint] = None
        self.state = None
        self.initial_output: List[bytes] = []
        self.phase: Optional[DrivePhase] = None

        self.bytes_read = 0
        self.bytes_written = 0
        self.transitions = 0

    def __enter__(self) -> 'TunnelClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def initialize_engine(self) -> None:
        """
        Create the initial engine state and its first output

        Raises:
            ProtocolError: If the engine rejects the configuration
        """
        seed = self.rng.generate_seed()
        try:
            self.state, outputs = self.engine.initialize(self.config, self.clock(), seed)
        except Exception as e:
            raise ProtocolError(f"couldn't init client: {e}") from e
        self.initial_output = list(outputs)

    def connect(self, endpoint: Endpoint) -> None:
        """
        Open a stream socket to the endpoint and send the initial output

        Args:
            endpoint: Tuple of (ip_address, port)

        Raises:
            TunnelConnectionError: If the socket cannot be opened, connected or written
        """
        address, port = endpoint
        family = socket.AF_INET6 if address.version == 6 else socket.AF_INET
        timeout = self.config.get("client.connect_timeout")

        logger.info(f"connecting to {address}")
        try:
            sock = self.socket_factory(family, socket.SOCK_STREAM)
        except OSError as e:
            raise TunnelConnectionError(f"cannot open socket: {e}") from e

        try:
            if timeout is not None:
                sock.settimeout(timeout)
            sock.connect((str(address), port))
            sock.settimeout(None)
        except (OSError, ValueError, OverflowError) as e:
            sock.close()
            raise TunnelConnectionError(f"connect to {address}:{port} failed: {e}") from e

        self.connection = sock
        self.endpoint = endpoint
        logger.info(f"connected to {address}:{port}")

        self.bytes_written += write_multiple_to_socket(sock, self.initial_output)
        self.initial_output = []

    def start(self) -> None:
        """
        Resolve the remote, initialize the engine and connect

        Raises:
            TunnelError: On any startup failure
        """
        endpoint = resolve_remote(self.config.remotes(), self.resolver)
        self.initialize_engine()
        self.connect(endpoint)

    def _advance(self, data: bytes):
        try:
            state, outputs, payloads = self.engine.advance(self.state, self.clock(), data)
            return state, list(outputs), list(payloads)
        except TunnelError:
            raise
        except Exception as e:
            raise ProtocolError(f"protocol error: {e}") from e

    def step(self) -> None:
        """
        Run one read, advance and flush cycle

        Raises:
            TunnelError: If any part of the cycle fails
        """
        if self.connection is None:
            raise TunnelConnectionError("not connected")

        try:
            self.phase = DrivePhase.AWAITING_BYTES
            data = read_from_socket(self.connection)
            self.bytes_read += len(data)

            self.phase = DrivePhase.ADVANCING_ENGINE
            self.state, outputs, payloads = self._advance(data)
            self.transitions += 1

            for payload in payloads:
                self.payload_handler(payload)

            self.phase = DrivePhase.FLUSHING_OUTPUT
            self.bytes_written += write_multiple_to_socket(self.connection, outputs)
        except Exception as e:
            self.phase = DrivePhase.FAILED
            logger.debug(f"drive loop failed: {e}")
            raise

        self.phase = DrivePhase.AWAITING_BYTES

    def run(self) -> None:
        """
        Drive the connection until a fatal error propagates
        """
        while True:
            self.step()

    def close(self) -> None:
        """Close the connection"""
        if self.connection is not None:
            try:
                self.connection.close()
            finally:
                self.connection = None
                logger.info("Tunnel disconnected")

    def get_status(self) -> Dict[str, Any]:
        """
        Get the current status of the client

        Returns:
            Dictionary with status information
        """
        server = None
        if self.endpoint:
            server = f"{self.endpoint[0]}:{self.endpoint[1]}"

        return {
            "connected": self.connection is not None,
            "phase": self.phase.value if self.phase else None,
            "server": server,
            "bytes_read": self.bytes_read,
            "bytes_written": self.bytes_written,
            "transitions": self.transitions,
            "timestamp": time.time()
        }


def _log_level(verbose: int, quiet: int) -> str:
    levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    index = min(max(1 - verbose + quiet, 0), len(levels) - 1)
    return levels[index]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tunnel-client",
                                     description="Tunnel protocol client")
    parser.add_argument('config', metavar='CONFIG', help='Configuration file to use')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log verbosity (repeatable)')
    parser.add_argument('-q', '--quiet', action='count', default=0,
                        help='Decrease log verbosity (repeatable)')
    parser.add_argument('--color', choices=['auto', 'always', 'never'], default='auto',
                        help='Colorize console output')
    parser.add_argument('--log-file', help='Also log to this file')
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the tunnel client

    Returns:
        Exit code
    """
    args = build_parser().parse_args(argv)

    setup_logging(
        app_name="tunnel",
        log_level=_log_level(args.verbose, args.quiet),
        log_file=args.log_file,
        color=args.color
    )

    client = None
    try:
        config = load_config(args.config)
        client = TunnelClient(config)
        client.start()
        client.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 0
    except TunnelError as e:
        logger.error(str(e))
        return 1
    except Exception:
        logger.exception("Unexpected error")
        return 1
    finally:
        if client:
            client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
