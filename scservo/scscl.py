"""Application layer for the SCSCL series of serial bus servos."""

from __future__ import annotations

import enum

from .protocol import CommunicationError
from .serial_bus import SerialBus

_BAUD_CODES = {
    "BAUD_1M": 0, "BAUD_500K": 1, "BAUD_250K": 2, "BAUD_128K": 3,
    "BAUD_115200": 4, "BAUD_76800": 5, "BAUD_57600": 6, "BAUD_38400": 7,
}

# Memory table addresses that the servo families have in common.
_COMMON_REGISTERS = {
    # EEPROM, read/write
    "ID": 5, "BAUD_RATE": 6,
    "MIN_ANGLE_LIMIT_L": 9, "MIN_ANGLE_LIMIT_H": 10,
    "MAX_ANGLE_LIMIT_L": 11, "MAX_ANGLE_LIMIT_H": 12,
    "CW_DEAD": 26, "CCW_DEAD": 27,
    # SRAM, read/write
    "TORQUE_ENABLE": 40,
    "GOAL_POSITION_L": 42, "GOAL_POSITION_H": 43,
    "GOAL_TIME_L": 44, "GOAL_TIME_H": 45,
    "GOAL_SPEED_L": 46, "GOAL_SPEED_H": 47,
    # SRAM, read only
    "PRESENT_POSITION_L": 56, "PRESENT_POSITION_H": 57,
    "PRESENT_SPEED_L": 58, "PRESENT_SPEED_H": 59,
    "PRESENT_LOAD_L": 60, "PRESENT_LOAD_H": 61,
    "PRESENT_VOLTAGE": 62, "PRESENT_TEMPERATURE": 63, "MOVING": 66,
    "PRESENT_CURRENT_L": 69, "PRESENT_CURRENT_H": 70,
}

ScsclBaud = enum.IntEnum("ScsclBaud", _BAUD_CODES, module=__name__)
ScsclBaud.__doc__ = "Values of the baud rate register."

ScsclRegister = enum.IntEnum(
    "ScsclRegister",
    {"VERSION_L": 3, "VERSION_H": 4, **_COMMON_REGISTERS, "LOCK": 48},
    module=__name__,
)
ScsclRegister.__doc__ = "Addresses in the SCSCL memory table."


def _encode_signed(value: int, bit: int = 15) -> int:
    if value < 0:
        return -value | (1 << bit)
    return value


def _decode_signed(value: int, bit: int) -> int:
    if value & (1 << bit):
        return -(value & ~(1 << bit))
    return value


class _FeedbackServo(SerialBus):
    """Servo whose status block runs from present position to present current."""

    _registers = ScsclRegister
    _memory_big_endian = True

    def __init__(self, big_endian, level, port):
        super().__init__(big_endian, level, port)
        self._memory: bytes | None = None

    def _write_torque(self, servo_id, value) -> None:
        self.write_byte(servo_id, self._registers.TORQUE_ENABLE, int(value))

    def _write_lock(self, servo_id, locked) -> None:
        self.write_byte(servo_id, self._registers.LOCK, 1 if locked else 0)

    def _read_feedback(self, servo_id) -> bytes:
        first = self._registers.PRESENT_POSITION_L
        size = self._registers.PRESENT_CURRENT_H - first + 1
        self._memory = None
        self._memory = self.read(servo_id, first, size)
        return self._memory

    def _cached(self, register, width=1) -> int:
        if self._memory is None:
            raise CommunicationError("no feedback data available")
        offset = register - self._registers.PRESENT_POSITION_L
        order = "big" if self._memory_big_endian else "little"
        return int.from_bytes(self._memory[offset : offset + width], order)

    def _word(self, servo_id, register) -> int:
        if servo_id is None:
            return self._cached(register, 2)
        return self.read_word(servo_id, register)

    def _byte(self, servo_id, register) -> int:
        if servo_id is None:
            return self._cached(register)
        return self.read_byte(servo_id, register)

    def _signed_word(self, servo_id, register, bit) -> int:
        return _decode_signed(self._word(servo_id, register), bit)


class Scscl(_FeedbackServo):
    """SCSCL series servo on a serial bus.

    Reading methods take a servo ID, or ``None`` to decode the values stored
    by the last successful :meth:`feedback`.
    """

    _registers = ScsclRegister
    _memory_big_endian = True

    def __init__(self, big_endian=True, level=1, port=None):
        super().__init__(big_endian, level, port)

    def _position_block(self, position, time, speed) -> bytes:
        return bytes(
            [*self.split_word(position), *self.split_word(time), *self.split_word(speed)]
        )

    def write_pos(self, servo_id, position, time, speed=0) -> None:
        """Move one servo to ``position`` within ``time`` at ``speed``."""
        block = self._position_block(position, time, speed)
        self.gen_write(servo_id, ScsclRegister.GOAL_POSITION_L, block)

    def reg_write_pos(self, servo_id, position, time, speed=0) -> None:
        """Stage a move that starts on :meth:`reg_write_action`."""
        block = self._position_block(position, time, speed)
        self.reg_write(servo_id, ScsclRegister.GOAL_POSITION_L, block)

    def sync_write_pos(self, servo_ids, positions, times=None, speeds=None) -> None:
        """Move several servos with one broadcast packet.

        ``times`` and ``speeds`` default to zero for every servo.
        """
        ids = list(servo_ids)
        positions = list(positions)
        times = [0] * len(ids) if times is None else list(times)
        speeds = [0] * len(ids) if speeds is None else list(speeds)
        if not len(ids) == len(positions) == len(times) == len(speeds):
            raise ValueError("servo IDs and move parameters differ in length")
        data = b"".join(map(self._position_block, positions, times, speeds))
        self.sync_write(ids, ScsclRegister.GOAL_POSITION_L, data, 6)

    def pwm_mode(self, servo_id) -> None:
        """Switch the servo to PWM output mode by clearing its angle limits."""
        self.gen_write(servo_id, ScsclRegister.MIN_ANGLE_LIMIT_L, bytes(4))

    def write_pwm(self, servo_id, pwm) -> None:
        """Set the PWM output; bit 10 carries the direction."""
        word = self.split_word(_encode_signed(pwm, 10))
        self.gen_write(servo_id, ScsclRegister.GOAL_TIME_L, bytes(word))

    def enable_torque(self, servo_id, enable) -> None:
        """Switch the motor torque on or off."""
        self._write_torque(servo_id, enable)

    def unlock_eeprom(self, servo_id) -> None:
        """Allow writes to the EEPROM part of the memory table to persist."""
        self._write_lock(servo_id, False)

    def lock_eeprom(self, servo_id) -> None:
        """Protect the EEPROM part of the memory table."""
        self._write_lock(servo_id, True)

    def feedback(self, servo_id) -> bytes:
        """Read the whole status block of a servo and keep it for later reads."""
        return self._read_feedback(servo_id)

    def read_pos(self, servo_id=None) -> int:
        """Return the present position."""
        return self._word(servo_id, ScsclRegister.PRESENT_POSITION_L)

    def read_speed(self, servo_id=None) -> int:
        """Return the present speed, negative when turning backwards."""
        return self._signed_word(servo_id, ScsclRegister.PRESENT_SPEED_L, 15)

    def read_load(self, servo_id=None) -> int:
        """Return the motor drive as a signed share of full voltage (0-1000)."""
        return self._signed_word(servo_id, ScsclRegister.PRESENT_LOAD_L, 10)

    def read_voltage(self, servo_id=None) -> int:
        """Return the supply voltage."""
        return self._byte(servo_id, ScsclRegister.PRESENT_VOLTAGE)

    def read_temperature(self, servo_id=None) -> int:
        """Return the internal temperature."""
        return self._byte(servo_id, ScsclRegister.PRESENT_TEMPERATURE)

    def read_moving(self, servo_id=None) -> int:
        """Return the moving flag."""
        return self._byte(servo_id, ScsclRegister.MOVING)

    def read_current(self, servo_id=None) -> int:
        """Return the present current, negative in reverse."""
        return self._signed_word(servo_id, ScsclRegister.PRESENT_CURRENT_L, 15)