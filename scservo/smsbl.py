"""Application layer for the SMSBL series of serial bus servos."""

from __future__ import annotations

import enum

from .protocol import CommunicationError
from .serial_bus import SerialBus


class SmsblBaud(enum.IntEnum):
    """Values of the baud rate register."""

    BAUD_1M = 0
    BAUD_500K = 1
    BAUD_250K = 2
    BAUD_128K = 3
    BAUD_115200 = 4
    BAUD_76800 = 5
    BAUD_57600 = 6
    BAUD_38400 = 7


class SmsblRegister(enum.IntEnum):
    """Addresses in the SMSBL memory table."""

    # EEPROM, read only
    MODEL_L = 3
    MODEL_H = 4
    # EEPROM, read/write
    ID = 5
    BAUD_RATE = 6
    MIN_ANGLE_LIMIT_L = 9
    MIN_ANGLE_LIMIT_H = 10
    MAX_ANGLE_LIMIT_L = 11
    MAX_ANGLE_LIMIT_H = 12
    CW_DEAD = 26
    CCW_DEAD = 27
    OFS_L = 31
    OFS_H = 32
    MODE = 33
    # SRAM, read/write
    TORQUE_ENABLE = 40
    ACC = 41
    GOAL_POSITION_L = 42
    GOAL_POSITION_H = 43
    GOAL_TIME_L = 44
    GOAL_TIME_H = 45
    GOAL_SPEED_L = 46
    GOAL_SPEED_H = 47
    LOCK = 55
    # SRAM, read only
    PRESENT_POSITION_L = 56
    PRESENT_POSITION_H = 57
    PRESENT_SPEED_L = 58
    PRESENT_SPEED_H = 59
    PRESENT_LOAD_L = 60
    PRESENT_LOAD_H = 61
    PRESENT_VOLTAGE = 62
    PRESENT_TEMPERATURE = 63
    MOVING = 66
    PRESENT_CURRENT_L = 69
    PRESENT_CURRENT_H = 70


_BASE = SmsblRegister.PRESENT_POSITION_L
_FEEDBACK_SIZE = SmsblRegister.PRESENT_CURRENT_H - _BASE + 1
_SIGN_BIT = 15


def _encode_signed(value: int, bit: int = _SIGN_BIT) -> int:
    if value < 0:
        return -value | (1 << bit)
    return value


def _decode_signed(value: int, bit: int) -> int:
    if value & (1 << bit):
        return -(value & ~(1 << bit))
    return value


class Smsbl(SerialBus):
    """SMSBL series servo on a serial bus.

    Reading methods take a servo ID, or ``None`` to decode the values stored
    by the last successful :meth:`feedback`.
    """

    def __init__(self, big_endian=False, level=1, port=None):
        super().__init__(big_endian, level, port)
        self._memory: bytes | None = None

    def _position_block(self, position, speed, acc) -> bytes:
        return bytes(
            [
                acc,
                *self.split_word(_encode_signed(position)),
                *self.split_word(0),
                *self.split_word(speed),
            ]
        )

    def write_pos_ex(self, servo_id, position, speed, acc=0) -> None:
        """Move one servo to a signed ``position`` at ``speed`` and ``acc``."""
        self.gen_write(
            servo_id, SmsblRegister.ACC, self._position_block(position, speed, acc)
        )

    def reg_write_pos_ex(self, servo_id, position, speed, acc=0) -> None:
        """Stage a move that starts on :meth:`reg_write_action`."""
        self.reg_write(
            servo_id, SmsblRegister.ACC, self._position_block(position, speed, acc)
        )

    def sync_write_pos_ex(self, servo_ids, positions, speeds=None, accs=None) -> None:
        """Move several servos with one broadcast packet.

        ``speeds`` and ``accs`` default to zero for every servo.
        """
        ids = list(servo_ids)
        positions = list(positions)
        speeds = [0] * len(ids) if speeds is None else list(speeds)
        accs = [0] * len(ids) if accs is None else list(accs)
        if not len(ids) == len(positions) == len(speeds) == len(accs):
            raise ValueError("servo IDs and move parameters differ in length")
        data = b"".join(
            self._position_block(p, v, a) for p, v, a in zip(positions, speeds, accs)
        )
        self.sync_write(ids, SmsblRegister.ACC, data, 7)

    def wheel_mode(self, servo_id) -> None:
        """Switch the servo to constant-speed wheel mode."""
        self.write_byte(servo_id, SmsblRegister.MODE, 1)

    def write_speed(self, servo_id, speed, acc=0) -> None:
        """Set the acceleration, then the signed wheel-mode speed."""
        self.gen_write(servo_id, SmsblRegister.ACC, bytes([acc]))
        self.gen_write(
            servo_id,
            SmsblRegister.GOAL_SPEED_L,
            bytes(self.split_word(_encode_signed(speed))),
        )

    def enable_torque(self, servo_id, enable) -> None:
        """Switch the motor torque on or off."""
        self.write_byte(servo_id, SmsblRegister.TORQUE_ENABLE, int(enable))

    def unlock_eeprom(self, servo_id) -> None:
        """Allow writes to the EEPROM part of the memory table to persist."""
        self.write_byte(servo_id, SmsblRegister.LOCK, 0)

    def lock_eeprom(self, servo_id) -> None:
        """Protect the EEPROM part of the memory table."""
        self.write_byte(servo_id, SmsblRegister.LOCK, 1)

    def calibrate_offset(self, servo_id) -> None:
        """Take the present position as the servo's middle position."""
        self.write_byte(servo_id, SmsblRegister.TORQUE_ENABLE, 128)

    def feedback(self, servo_id) -> bytes:
        """Read the whole status block of a servo and keep it for later reads."""
        self._memory = None
        self._memory = self.read(servo_id, _BASE, _FEEDBACK_SIZE)
        return self._memory

    def _cached(self) -> bytes:
        if self._memory is None:
            raise CommunicationError("no feedback data available")
        return self._memory

    def _cached_word(self, low, high) -> int:
        memory = self._cached()
        return (memory[high - _BASE] << 8) | memory[low - _BASE]

    def _cached_byte(self, register) -> int:
        return self._cached()[register - _BASE]

    def _signed_word(self, servo_id, low, high, bit) -> int:
        if servo_id is None:
            raw = self._cached_word(low, high)
        else:
            raw = self.read_word(servo_id, low)
        return _decode_signed(raw, bit)

    def _byte(self, servo_id, register) -> int:
        if servo_id is None:
            return self._cached_byte(register)
        return self.read_byte(servo_id, register)

    def read_pos(self, servo_id=None) -> int:
        """Return the signed present position."""
        return self._signed_word(
            servo_id,
            SmsblRegister.PRESENT_POSITION_L,
            SmsblRegister.PRESENT_POSITION_H,
            15,
        )

    def read_speed(self, servo_id=None) -> int:
        """Return the present speed, negative when turning backwards."""
        return self._signed_word(
            servo_id, SmsblRegister.PRESENT_SPEED_L, SmsblRegister.PRESENT_SPEED_H, 15
        )

    def read_load(self, servo_id=None) -> int:
        """Return the motor drive as a signed share of full voltage (0-1000)."""
        return self._signed_word(
            servo_id, SmsblRegister.PRESENT_LOAD_L, SmsblRegister.PRESENT_LOAD_H, 10
        )

    def read_voltage(self, servo_id=None) -> int:
        """Return the supply voltage."""
        return self._byte(servo_id, SmsblRegister.PRESENT_VOLTAGE)

    def read_temperature(self, servo_id=None) -> int:
        """Return the internal temperature."""
        return self._byte(servo_id, SmsblRegister.PRESENT_TEMPERATURE)

    def read_moving(self, servo_id=None) -> int:
        """Return the moving flag."""
        return self._byte(servo_id, SmsblRegister.MOVING)

    def read_current(self, servo_id=None) -> int:
        """Return the present current, negative in reverse."""
        return self._signed_word(
            servo_id,
            SmsblRegister.PRESENT_CURRENT_L,
            SmsblRegister.PRESENT_CURRENT_H,
            15,
        )