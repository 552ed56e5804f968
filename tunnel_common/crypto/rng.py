"""
Random number generation for the tunnel client.
Supplies the seed handed to the protocol engine at initialization.
"""
import os
import logging
from typing import Callable, Optional

logger = logging.getLogger("tunnel.rng")

SEED_LENGTH = 32


class RandomGenerator:
    """
    Random byte source with a replaceable backend
    """
    def __init__(self, source: Optional[Callable[[int], bytes]] = None):
        """
        Initialize the generator

        Args:
            source: Function returning n random bytes (None for os.urandom)
        """
        self._source = source or os.urandom

    def set_source(self, source: Optional[Callable[[int], bytes]]) -> None:
        """Replace the backend (None restores os.urandom)"""
        self._source = source or os.urandom

    def generate_bytes(self, length: int) -> bytes:
        """
        Generate random bytes

        Args:
            length: Number of bytes to generate

        Returns:
            Random bytes
        """
        data = self._source(length)
        if len(data) != length:
            raise ValueError(f"random source returned {len(data)} bytes, wanted {length}")
        return data

    def generate_seed(self) -> bytes:
        """Generate a seed for protocol engine initialization"""
        return self.generate_bytes(SEED_LENGTH)


# Global instance for easy access
RNG = RandomGenerator()
