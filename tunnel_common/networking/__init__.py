"""
Networking package for the tunnel client.
Includes socket stream helpers and remote endpoint resolution.
"""

from tunnel_common.networking.stream import (
    READ_BUFFER_SIZE, write_to_socket, write_multiple_to_socket, read_from_socket
)
from tunnel_common.networking.resolver import (
    Remote, SystemResolver, resolve_remote
)

__all__ = [
    'READ_BUFFER_SIZE',
    'write_to_socket',
    'write_multiple_to_socket',
    'read_from_socket',
    'Remote',
    'SystemResolver',
    'resolve_remote'
]
