"""
Tests for the static-key engine and the engine loader.
"""
import logging

import pytest

from tunnel_common.crypto.aes import AESCipher
from tunnel_common.engine.base import ProtocolEngine, load_engine
from tunnel_common.engine.static_key import (
    CMD_CONTROL, CMD_DATA, CMD_DISCONNECT, CMD_KEEPALIVE, HEADER_SIZE,
    StaticKeyEngine, StaticKeyState, pack_frame, split_frames
)
from tunnel_common.errors import ConfigError, ProtocolError
from tunnel_common.utils.config import ConfigManager

logger = logging.getLogger('static_key_test')

KEY_HEX = "0f" * 32
KEY = bytes.fromhex(KEY_HEX)
SEED = bytes(range(32))


def make_state(**kwargs) -> StaticKeyState:
    return StaticKeyState(KEY, **kwargs)


def test_frame_header_layout():
    frame = pack_frame(CMD_CONTROL, b'hi', 0x01020304)
    assert frame == b'\x01\x00\x00\x02\x01\x02\x03\x04hi'
    assert len(frame) == HEADER_SIZE + 2


def test_split_frames_keeps_partial_remainder():
    first = pack_frame(CMD_KEEPALIVE, b'', 1)
    second = pack_frame(CMD_CONTROL, b'status', 2)
    buffer = first + second[:5]

    frames, remainder = split_frames(buffer)

    assert frames == [(CMD_KEEPALIVE, 1, b'')]
    assert remainder == second[:5]


def test_initialize_emits_hello():
    config = ConfigManager({"secret": KEY_HEX})

    state, outputs = StaticKeyEngine().initialize(config, 100.0, SEED)

    assert state.key == KEY
    assert state.send_sequence == 1
    frames, remainder = split_frames(outputs[0])
    assert remainder == b''
    assert frames == [(CMD_CONTROL, 0, b'HELLO ' + SEED[:8].hex().encode())]


def test_initialize_accepts_key_file_with_comments():
    secret = "# static key\n" + KEY_HEX[:32] + "\n" + KEY_HEX[32:] + "\n"
    state, _ = StaticKeyEngine().initialize(ConfigManager({"secret": secret}), 0.0, SEED)
    assert state.key == KEY


@pytest.mark.parametrize("secret", [None, "zz" * 32, "00" * 16])
def test_initialize_rejects_bad_keys(secret):
    with pytest.raises(ProtocolError):
        StaticKeyEngine().initialize(ConfigManager({"secret": secret}), 0.0, SEED)


def test_data_frame_split_across_reads():
    engine = StaticKeyEngine()
    frame = pack_frame(CMD_DATA, AESCipher.encrypt_packet(b'ping', KEY), 7)
    state = make_state(send_sequence=1)

    state1, outputs, payloads = engine.advance(state, 1.0, frame[:10])
    assert (outputs, payloads) == ([], [])
    assert state1.recv_buffer == frame[:10]
    # Previous state untouched
    assert state.recv_buffer == b''

    state2, outputs, payloads = engine.advance(state1, 2.0, frame[10:])
    assert outputs == []
    assert payloads == [b'ping']
    assert state2.recv_buffer == b''
    assert state2.last_received == 2.0


def test_keepalive_is_answered():
    engine = StaticKeyEngine()
    data = pack_frame(CMD_KEEPALIVE, b'', 1) + pack_frame(CMD_KEEPALIVE, b'', 2)

    state, outputs, payloads = engine.advance(make_state(send_sequence=5), 1.0, data)

    assert outputs == [pack_frame(CMD_KEEPALIVE, b'', 5), pack_frame(CMD_KEEPALIVE, b'', 6)]
    assert payloads == []
    assert state.send_sequence == 7


def test_tampered_data_frame_is_protocol_error():
    sealed = bytearray(AESCipher.encrypt_packet(b'secret', KEY))
    sealed[-1] ^= 0xFF

    with pytest.raises(ProtocolError) as excinfo:
        StaticKeyEngine().advance(make_state(), 1.0, pack_frame(CMD_DATA, bytes(sealed), 1))

    assert "cannot decrypt" in str(excinfo.value)


@pytest.mark.parametrize("command", [CMD_DISCONNECT, 9])
def test_disconnect_and_unknown_commands_fail(command):
    with pytest.raises(ProtocolError):
        StaticKeyEngine().advance(make_state(), 1.0, pack_frame(command, b'', 1))


def test_encapsulate_round_trips_through_advance():
    engine = StaticKeyEngine()
    state, frame = engine.encapsulate(make_state(send_sequence=3), 1.0, b'payload')

    assert state.send_sequence == 4
    _, _, payloads = engine.advance(make_state(), 2.0, frame)
    assert payloads == [b'payload']


class DummyEngine(ProtocolEngine):
    pass


def build_dummy():
    return DummyEngine()


def test_load_engine_by_name_and_import_path():
    assert isinstance(load_engine("static-key"), StaticKeyEngine)
    assert isinstance(load_engine(f"{__name__}:build_dummy"), DummyEngine)


@pytest.mark.parametrize("name", ["openvpn", "no.such.module:factory",
                                  f"{__name__}:missing_factory"])
def test_load_engine_rejects_unknown(name):
    with pytest.raises(ConfigError):
        load_engine(name)


def test_base_engine_is_abstract():
    with pytest.raises(NotImplementedError):
        DummyEngine().advance(None, 0.0, b'')


def test_replayed_data_frame_is_accepted():
    """Sequence numbers are not tracked, a repeated frame decrypts again"""
    frame = pack_frame(CMD_DATA, AESCipher.encrypt_packet(b'again', KEY), 1)

    _, _, payloads = StaticKeyEngine().advance(make_state(), 1.0, frame + frame)

    assert payloads == [b'again', b'again']
