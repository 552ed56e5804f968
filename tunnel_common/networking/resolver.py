"""
Remote endpoint selection and name resolution for the tunnel client.
Only the first configured remote is ever considered.
"""
import socket
import ipaddress
import logging
from typing import List, Optional, Tuple, Union

from tunnel_common.errors import ResolverError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
Endpoint = Tuple[IPAddress, int]

logger = logging.getLogger("tunnel.resolver")

RESOLVER_FAMILIES = {
    "ipv4": socket.AF_INET,
    "ipv6": socket.AF_INET6,
    "any": socket.AF_UNSPEC,
}


class Remote:
    """
    A configured remote: literal address or domain name, with a port
    """
    def __init__(self, host: str, port: int):
        """
        Initialize the remote descriptor

        Args:
            host: IP address literal or domain name
            port: TCP port
        """
        self.host = host
        self.port = port

        try:
            self.address: Optional[IPAddress] = ipaddress.ip_address(host)
        except ValueError:
            self.address = None

    @property
    def is_domain(self) -> bool:
        """True if the host needs a name lookup"""
        return self.address is None

    def __eq__(self, other) -> bool:
        if not isinstance(other, Remote):
            return NotImplemented
        return (self.host, self.port) == (other.host, other.port)

    def __repr__(self) -> str:
        return f"Remote({self.host!r}, {self.port})"


class SystemResolver:
    """
    Name resolution through the operating system resolver
    """
    def __init__(self, family: str = "ipv4"):
        """
        Initialize the resolver

        Args:
            family: "ipv4", "ipv6" or "any"
        """
        if family not in RESOLVER_FAMILIES:
            raise ValueError(f"Unknown resolver family: {family}")
        self.family = RESOLVER_FAMILIES[family]

    def resolve(self, name: str) -> IPAddress:
        """
        Look up a domain name

        Args:
            name: Domain name to resolve

        Returns:
            The first address returned by the resolver

        Raises:
            ResolverError: If the lookup fails or returns nothing
        """
        try:
            answers = socket.getaddrinfo(name, None, self.family, socket.SOCK_STREAM)
        except (socket.gaierror, OSError) as e:
            raise ResolverError(str(e)) from e

        if not answers:
            raise ResolverError(f"no address found for {name}")

        # sockaddr is (host, port) or (host, port, flowinfo, scope_id)
        host = answers[0][4][0]
        return ipaddress.ip_address(host.split('%', 1)[0])


def resolve_remote(remotes: List[Remote], resolver) -> Endpoint:
    """
    Turn the first configured remote into a connectable endpoint

    Args:
        remotes: Configured remotes, in order
        resolver: Object with a resolve(name) method

    Returns:
        Tuple of (ip_address, port)

    Raises:
        ResolverError: If no remote is configured or the lookup fails
    """
    if not remotes:
        raise ResolverError("no remote configured")

    remote = remotes[0]
    if not remote.is_domain:
        return remote.address, remote.port

    try:
        address = resolver.resolve(remote.host)
    except ResolverError as e:
        logger.error(f"gethostbyname for {remote.host} returned an error: {e}")
        raise ResolverError(f"resolver error for {remote.host}: {e}") from e

    address = ipaddress.ip_address(str(address))
    logger.debug(f"{remote.host} resolved to {address}")
    return address, remote.port
