"""
Protocol engine interface consumed by the tunnel client.

An engine is a pure state machine: every call takes the current state and
returns a new one together with its outputs. The client never looks inside
a state value and never mutates one.
"""
import importlib
import logging
from typing import Any, List, Tuple

from tunnel_common.errors import ConfigError

logger = logging.getLogger("tunnel.engine")

# (state, outbound buffers)
InitResult = Tuple[Any, List[bytes]]
# (state, outbound buffers, decapsulated payloads)
AdvanceResult = Tuple[Any, List[bytes], List[bytes]]


class ProtocolEngine:
    """
    Base class for protocol engines
    """

    def initialize(self, config, timestamp: float, random_seed: bytes) -> InitResult:
        """
        Build the initial state and the first buffers to send

        Args:
            config: ConfigManager for the client
            timestamp: Current time, seconds since the epoch
            random_seed: Fresh random bytes

        Returns:
            Tuple of (state, initial output buffers)

        Raises:
            ProtocolError: If the engine cannot start with this configuration
        """
        raise NotImplementedError("Subclasses must implement initialize")

    def advance(self, state: Any, timestamp: float, data: bytes) -> AdvanceResult:
        """
        Feed received bytes into the engine

        Args:
            state: State returned by the previous call
            timestamp: Current time, seconds since the epoch
            data: Bytes read from the connection

        Returns:
            Tuple of (new state, output buffers, decapsulated payloads)

        Raises:
            ProtocolError: If the bytes cannot be processed
        """
        raise NotImplementedError("Subclasses must implement advance")


def load_engine(name: str) -> ProtocolEngine:
    """
    Build the engine named in the configuration

    Args:
        name: "static-key" or an import path of the form "package.module:factory"

    Returns:
        Engine instance

    Raises:
        ConfigError: If the name cannot be turned into an engine
    """
    if name == "static-key":
        from tunnel_common.engine.static_key import StaticKeyEngine
        return StaticKeyEngine()

    module_name, sep, attr = name.partition(':')
    if not sep or not module_name or not attr:
        raise ConfigError(f"unknown engine {name!r}")

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f"cannot load engine {name!r}: {e}") from e

    logger.debug(f"Loaded engine factory {name}")
    return factory()
