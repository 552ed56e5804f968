"""
Shared components for the tunnel client.
Networking helpers, protocol engines, cryptography and utilities.
"""
