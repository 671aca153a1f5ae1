from dataclasses import dataclass, field

import pytest

from scservo.protocol import CommunicationError, Instruction
from scservo.scscl import Scscl
from scservo.scscl import ScsclRegister as R


@dataclass
class ScriptedPort:
    """Port that answers each written packet with the next scripted reply."""

    replies: list
    sent: list = field(default_factory=list)
    pending: bytearray = field(default_factory=bytearray)
    closed: bool = False

    def reset_input_buffer(self):
        self.pending.clear()

    def write(self, packet):
        self.sent.append(bytes(packet))
        if self.replies:
            self.pending.extend(self.replies.pop(0))

    def flush(self):
        pass

    def read(self, size):
        data, self.pending = bytes(self.pending[:size]), self.pending[size:]
        return data

    def close(self):
        self.closed = True


def status(servo_id, error=0, params=b""):
    body = bytes([servo_id, len(params) + 2, error, *params])
    return b"\xff\xff" + body + bytes([~sum(body) & 0xFF])


def decode(packet):
    """Split a sent packet into ID, instruction, address and parameters."""
    return packet[2], packet[4], packet[5], packet[6:-1]


def make(*replies):
    port = ScriptedPort(list(replies))
    return Scscl(port=port), port


def test_write_pos_wire_bytes():
    bus, port = make(status(1))
    bus.write_pos(1, 1000, 0, 1500)
    assert port.sent == [bytes.fromhex("ffff0109032a03e8000005dcfc")]


@pytest.mark.parametrize(
    "method, instruction",
    [("write_pos", Instruction.WRITE), ("reg_write_pos", Instruction.REG_WRITE)],
)
def test_position_commands(method, instruction):
    bus, port = make(status(3))
    getattr(bus, method)(3, 700, 25, 900)
    servo_id, inst, address, params = decode(port.sent[0])
    assert (servo_id, inst, address) == (3, instruction, R.GOAL_POSITION_L)
    assert [bus.join_word(*params[i : i + 2]) for i in (0, 2, 4)] == [700, 25, 900]


def test_sync_write_pos_defaults_times_to_zero():
    bus, port = make()
    bus.sync_write_pos([1, 2], [1000, 20], None, [1500, 1500])
    packet = port.sent[0]
    assert (packet[2], packet[4], packet[5], packet[6]) == (
        0xFE,
        Instruction.SYNC_WRITE,
        R.GOAL_POSITION_L,
        6,
    )
    blocks = packet[7:-1]
    first, second = blocks[:7], blocks[7:]
    assert (first[0], second[0]) == (1, 2)
    assert bus.join_word(first[1], first[2]) == 1000
    assert bus.join_word(second[1], second[2]) == 20
    assert bus.join_word(first[3], first[4]) == 0
    assert bus.join_word(second[5], second[6]) == 1500


def test_sync_write_pos_length_mismatch():
    bus, _ = make()
    with pytest.raises(ValueError):
        bus.sync_write_pos([1, 2], [1000], None, None)


@pytest.mark.parametrize(
    "command, address, params",
    [
        (lambda b: b.pwm_mode(1), R.MIN_ANGLE_LIMIT_L, bytes(4)),
        (lambda b: b.write_pwm(1, -500), R.GOAL_TIME_L, b"\x05\xf4"),
        (lambda b: b.enable_torque(1, True), R.TORQUE_ENABLE, b"\x01"),
        (lambda b: b.unlock_eeprom(1), R.LOCK, b"\x00"),
        (lambda b: b.lock_eeprom(1), R.LOCK, b"\x01"),
    ],
)
def test_register_writes(command, address, params):
    bus, port = make(status(1))
    command(bus)
    assert decode(port.sent[0]) == (1, Instruction.WRITE, address, params)


def test_ack_error_is_recorded():
    bus, _ = make(status(1, error=0x20))
    bus.enable_torque(1, False)
    assert bus.error == 0x20


def _memory():
    base = R.PRESENT_POSITION_L
    mem = bytearray(R.PRESENT_CURRENT_H - base + 1)
    for register, value, width in [
        (R.PRESENT_POSITION_L, 1000, 2),
        (R.PRESENT_SPEED_L, 300 | 1 << 15, 2),
        (R.PRESENT_LOAD_L, 50 | 1 << 10, 2),
        (R.PRESENT_VOLTAGE, 120, 1),
        (R.PRESENT_TEMPERATURE, 40, 1),
        (R.MOVING, 1, 1),
        (R.PRESENT_CURRENT_L, 20, 2),
    ]:
        offset = register - base
        mem[offset : offset + width] = value.to_bytes(width, "big")
    return bytes(mem)


def test_feedback_request():
    mem = _memory()
    bus, port = make(status(1, params=mem))
    assert bus.feedback(1) == mem
    _, inst, address, params = decode(port.sent[0])
    assert (inst, address, params) == (
        Instruction.READ,
        R.PRESENT_POSITION_L,
        bytes([len(mem)]),
    )


@pytest.mark.parametrize(
    "method, expected",
    [
        ("read_pos", 1000),
        ("read_speed", -300),
        ("read_load", -50),
        ("read_voltage", 120),
        ("read_temperature", 40),
        ("read_moving", 1),
        ("read_current", 20),
    ],
)
def test_cached_reads(method, expected):
    bus, _ = make(status(1, params=_memory()))
    bus.feedback(1)
    assert getattr(bus, method)() == expected


def test_cached_read_without_feedback_raises():
    bus, _ = make()
    with pytest.raises(CommunicationError):
        bus.read_pos()


def test_failed_feedback_clears_cache():
    bus, _ = make(status(1, params=_memory()))
    bus.feedback(1)
    with pytest.raises(CommunicationError):
        bus.feedback(1)
    with pytest.raises(CommunicationError):
        bus.read_voltage()


@pytest.mark.parametrize(
    "method, raw, expected, address",
    [
        ("read_speed", 200 | 1 << 15, -200, R.PRESENT_SPEED_L),
        ("read_pos", 512, 512, R.PRESENT_POSITION_L),
    ],
)
def test_reads_from_servo(method, raw, expected, address):
    bus, port = make(status(4, params=raw.to_bytes(2, "big")))
    assert getattr(bus, method)(4) == expected
    assert decode(port.sent[0])[2] == address


def test_read_timeout_raises():
    bus, _ = make()
    with pytest.raises(CommunicationError):
        bus.read_temperature(1)