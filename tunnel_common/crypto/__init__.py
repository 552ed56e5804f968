"""
Cryptography package for the tunnel client.
Includes AES-GCM packet encryption and the random seed source.
"""

from tunnel_common.crypto.aes import AESCipher
from tunnel_common.crypto.rng import RNG, RandomGenerator

__all__ = ['AESCipher', 'RNG', 'RandomGenerator']
