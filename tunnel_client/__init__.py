"""
Tunnel client: connects to a remote and drives a protocol engine over TCP.
"""

__version__ = "1.0.0"
