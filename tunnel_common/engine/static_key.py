"""
Static-key tunnel engine.

Frames carry an 8 byte header, [COMMAND:1][LENGTH:3][SEQUENCE:4], followed
by LENGTH payload bytes. DATA payloads are AES-GCM packets sealed with a
pre-shared 256-bit key. The engine is pure: it never touches sockets and
every call returns a fresh state.
"""
import struct
import logging
from typing import List, Tuple

from tunnel_common.crypto.aes import AESCipher, KEY_SIZE
from tunnel_common.engine.base import ProtocolEngine, InitResult, AdvanceResult
from tunnel_common.errors import ProtocolError

HEADER_SIZE = 8
MAX_FRAME_PAYLOAD = 0xFFFFFF

# Tunnel protocol commands
CMD_DATA = 0
CMD_CONTROL = 1
CMD_KEEPALIVE = 4
CMD_DISCONNECT = 5

logger = logging.getLogger("tunnel.engine.static_key")

Frame = Tuple[int, int, bytes]


def pack_frame(command: int, payload: bytes, sequence: int) -> bytes:
    """
    Pack a payload with the tunnel header

    Args:
        command: Command type
        payload: Frame payload
        sequence: Sender sequence number

    Returns:
        Header followed by payload
    """
    length = len(payload)
    if length > MAX_FRAME_PAYLOAD:
        raise ProtocolError(f"Frame too large: {length} bytes")

    header = struct.pack("!B3sI", command & 0xFF, length.to_bytes(3, 'big'),
                         sequence & 0xFFFFFFFF)
    return header + payload


def split_frames(buffer: bytes) -> Tuple[List[Frame], bytes]:
    """
    Extract every complete frame from a receive buffer

    Returns:
        Tuple of ([(command, sequence, payload), ...], unconsumed remainder)
    """
    frames = []
    offset = 0
    while len(buffer) - offset >= HEADER_SIZE:
        command, length_bytes, sequence = struct.unpack_from("!B3sI", buffer, offset)
        length = int.from_bytes(length_bytes, 'big')

        end = offset + HEADER_SIZE + length
        if end > len(buffer):
            # Incomplete frame, wait for more data
            break

        frames.append((command, sequence, bytes(buffer[offset + HEADER_SIZE:end])))
        offset = end

    return frames, bytes(buffer[offset:])


class StaticKeyState:
    """
    Engine state, never modified after construction
    """
    def __init__(self, key: bytes, recv_buffer: bytes = b'', send_sequence: int = 0,
                 last_received: float = 0.0):
        self.key = key
        self.recv_buffer = recv_buffer
        self.send_sequence = send_sequence
        self.last_received = last_received

    def __repr__(self) -> str:
        return (f"StaticKeyState(buffered={len(self.recv_buffer)}, "
                f"send_sequence={self.send_sequence})")


def _load_key(secret) -> bytes:
    if not isinstance(secret, str):
        raise ProtocolError("no static key configured")

    # Key files may contain comment lines
    lines = [line.strip() for line in secret.splitlines()]
    text = ''.join(line for line in lines if line and not line.startswith('#'))
    try:
        key = bytes.fromhex(text)
    except ValueError as e:
        raise ProtocolError(f"static key is not hex: {e}") from e

    if len(key) != KEY_SIZE:
        raise ProtocolError(f"static key must be {KEY_SIZE} bytes, got {len(key)}")
    return key


class StaticKeyEngine(ProtocolEngine):
    """
    Protocol engine for the static-key framed tunnel

    Received sequence numbers are not checked, so there is no replay protection.
    """

    def initialize(self, config, timestamp: float, random_seed: bytes) -> InitResult:
        key = _load_key(config.get("secret"))
        hello = b"HELLO " + random_seed[:8].hex().encode()
        state = StaticKeyState(key, b'', 1, timestamp)
        return state, [pack_frame(CMD_CONTROL, hello, 0)]

    def advance(self, state: StaticKeyState, timestamp: float, data: bytes) -> AdvanceResult:
        frames, remainder = split_frames(state.recv_buffer + data)

        outputs = []
        payloads = []
        sequence = state.send_sequence

        for command, _, payload in frames:
            if command == CMD_DATA:
                try:
                    payloads.append(AESCipher.decrypt_packet(payload, state.key))
                except ValueError as e:
                    raise ProtocolError(f"cannot decrypt data frame: {e}") from e

            elif command == CMD_KEEPALIVE:
                outputs.append(pack_frame(CMD_KEEPALIVE, b'', sequence))
                sequence += 1

            elif command == CMD_CONTROL:
                logger.info(f"Received control message: {payload.decode(errors='replace')}")

            elif command == CMD_DISCONNECT:
                raise ProtocolError("server requested disconnect")

            else:
                raise ProtocolError(f"Unknown command: {command}")

        last_received = timestamp if frames else state.last_received
        new_state = StaticKeyState(state.key, remainder, sequence, last_received)
        return new_state, outputs, payloads

    def encapsulate(self, state: StaticKeyState, timestamp: float,
                    payload: bytes) -> Tuple[StaticKeyState, bytes]:
        """
        Seal an application payload into a DATA frame

        Returns:
            Tuple of (new state, frame to send)
        """
        frame = pack_frame(CMD_DATA, AESCipher.encrypt_packet(payload, state.key),
                           state.send_sequence)
        new_state = StaticKeyState(state.key, state.recv_buffer,
                                   state.send_sequence + 1, state.last_received)
        return new_state, frame
