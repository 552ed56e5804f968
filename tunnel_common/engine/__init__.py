"""
Protocol engines for the tunnel client.
Includes the engine interface, the engine loader and the static-key engine.
"""

from tunnel_common.engine.base import ProtocolEngine, load_engine
from tunnel_common.engine.static_key import StaticKeyEngine, StaticKeyState

__all__ = ['ProtocolEngine', 'load_engine', 'StaticKeyEngine', 'StaticKeyState']
