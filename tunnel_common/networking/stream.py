"""
Byte-stream helpers for the tunnel connection.
Writes drain a whole buffer across short sends, reads return one bounded chunk.
"""
import socket
import logging
from typing import Iterable

from tunnel_common.errors import TunnelConnectionError, PeerClosedError

# Larger protocol messages arrive over several reads
READ_BUFFER_SIZE = 2048

logger = logging.getLogger("tunnel.stream")


def write_to_socket(sock: socket.socket, data: bytes) -> int:
    """
    Transmit a buffer in full

    Args:
        sock: Connected stream socket
        data: Bytes to send

    Returns:
        Number of bytes written (always len(data))

    Raises:
        TunnelConnectionError: If the socket reports an error
    """
    view = memoryview(data)
    total = len(view)
    offset = 0

    while offset < total:
        try:
            sent = sock.send(view[offset:])
        except OSError as e:
            raise TunnelConnectionError(f"write error {e}") from e
        offset += sent

    if total:
        logger.debug(f"wrote {total} bytes")
    return total


def write_multiple_to_socket(sock: socket.socket, buffers: Iterable[bytes]) -> int:
    """
    Transmit buffers in order, stopping at the first failure

    Args:
        sock: Connected stream socket
        buffers: Ordered buffers to send

    Returns:
        Total number of bytes written
    """
    written = 0
    for buf in buffers:
        written += write_to_socket(sock, buf)
    return written


def read_from_socket(sock: socket.socket, bufsize: int = READ_BUFFER_SIZE) -> bytes:
    """
    Perform a single bounded read

    Args:
        sock: Connected stream socket
        bufsize: Maximum number of bytes to read

    Returns:
        The bytes received (never empty)

    Raises:
        PeerClosedError: If the server closed the connection
        TunnelConnectionError: If the socket reports an error
    """
    try:
        data = sock.recv(bufsize)
    except OSError as e:
        raise TunnelConnectionError(f"read error {e}") from e

    if not data:
        raise PeerClosedError("end of file from server")

    logger.debug(f"read {len(data)} bytes")
    return data
