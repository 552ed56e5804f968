"""
AES encryption module for tunnel data frames.
Uses PyCryptodome for AES-GCM.
"""
import os
from typing import Tuple
from Crypto.Cipher import AES

GCM_MODE = 0x01
NONCE_SIZE = 12
KEY_SIZE = 32


class AESCipher:
    """
    AES-GCM encryption/decryption for tunnel packets.
    """

    @staticmethod
    def encrypt_gcm(plaintext: bytes, key: bytes) -> Tuple[bytes, bytes, bytes]:
        """
        Encrypt data using AES-GCM mode with authentication.

        Args:
            plaintext: Data to encrypt
            key: AES key (should be 16, 24, or 32 bytes)

        Returns:
            Tuple of (ciphertext, nonce, tag)
        """
        nonce = os.urandom(NONCE_SIZE)
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return ciphertext, nonce, tag

    @staticmethod
    def decrypt_gcm(ciphertext: bytes, key: bytes, nonce: bytes, tag: bytes) -> bytes:
        """
        Decrypt data using AES-GCM mode with authentication verification.

        Raises:
            ValueError: If authentication fails
        """
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        return cipher.decrypt_and_verify(ciphertext, tag)

    @staticmethod
    def encrypt_packet(packet_data: bytes, key: bytes) -> bytes:
        """
        Encrypt a data packet for the tunnel.

        Args:
            packet_data: Raw packet data
            key: AES key

        Returns:
            Formatted encrypted packet with metadata
        """
        ciphertext, nonce, tag = AESCipher.encrypt_gcm(packet_data, key)
        # Format: [mode_byte (1)] [nonce_len (1)] [nonce] [tag_len (1)] [tag] [ciphertext]
        return bytes([GCM_MODE, len(nonce)]) + nonce + bytes([len(tag)]) + tag + ciphertext

    @staticmethod
    def decrypt_packet(encrypted_packet: bytes, key: bytes) -> bytes:
        """
        Decrypt a data packet from the tunnel.

        Raises:
            ValueError: If packet format is invalid or authentication fails
        """
        if len(encrypted_packet) < 2:
            raise ValueError("Packet too small")

        mode = encrypted_packet[0]
        if mode != GCM_MODE:
            raise ValueError(f"Unknown encryption mode: {mode}")

        nonce_len = encrypted_packet[1]
        nonce = encrypted_packet[2:2 + nonce_len]

        tag_pos = 2 + nonce_len
        if len(encrypted_packet) <= tag_pos:
            raise ValueError("Packet truncated")
        tag_len = encrypted_packet[tag_pos]
        tag = encrypted_packet[tag_pos + 1:tag_pos + 1 + tag_len]

        ciphertext = encrypted_packet[tag_pos + 1 + tag_len:]

        return AESCipher.decrypt_gcm(ciphertext, key, nonce, tag)
