"""
Utility modules for the tunnel client.
Includes configuration and logging handling.
"""

from tunnel_common.utils.config import (
    ConfigManager, parse, validate_client, load_config, read_file
)
from tunnel_common.utils.logging_setup import setup_logging, hexdump

__all__ = [
    'ConfigManager',
    'parse',
    'validate_client',
    'load_config',
    'read_file',
    'setup_logging',
    'hexdump'
]
