"""
Error taxonomy for the tunnel client.
Every error is fatal for the current connection; nothing here is retried.
"""


class TunnelError(Exception):
    """Base class for all tunnel client failures"""


class ConfigError(TunnelError):
    """Malformed or invalid configuration, raised before any network activity"""


class ResolverError(TunnelError):
    """No usable remote, or the name lookup for it failed"""


class TunnelConnectionError(TunnelError):
    """Socket open, connect, write or read failure"""


class PeerClosedError(TunnelConnectionError):
    """The server closed the connection (zero-length read)"""


class ProtocolError(TunnelError):
    """The protocol engine could not initialize or rejected received bytes"""
