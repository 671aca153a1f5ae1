"""Application layer for the SMS and STS series of serial bus servos."""

from __future__ import annotations

import enum

from .scscl import _BAUD_CODES, _COMMON_REGISTERS, _FeedbackServo, _encode_signed

SmsStsBaud = enum.IntEnum("SmsStsBaud", _BAUD_CODES, module=__name__)
SmsStsBaud.__doc__ = "Values of the baud rate register."

SmsStsRegister = enum.IntEnum(
    "SmsStsRegister",
    {
        "MODEL_L": 3,
        "MODEL_H": 4,
        **_COMMON_REGISTERS,
        "OFS_L": 31,
        "OFS_H": 32,
        "MODE": 33,
        "ACC": 41,
        "LOCK": 55,
    },
    module=__name__,
)
SmsStsRegister.__doc__ = "Addresses in the SMS/STS memory table."


class SmsSts(_FeedbackServo):
    """SMS/STS series servo on a serial bus.

    Reading methods take a servo ID, or ``None`` to decode the values stored
    by the last successful :meth:`feedback`.
    """

    _registers = SmsStsRegister
    _memory_big_endian = False

    def __init__(self, big_endian=False, level=1, port=None):
        super().__init__(big_endian, level, port)

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
        block = self._position_block(position, speed, acc)
        self.gen_write(servo_id, SmsStsRegister.ACC, block)

    def reg_write_pos_ex(self, servo_id, position, speed, acc=0) -> None:
        """Stage a move that starts on :meth:`reg_write_action`."""
        block = self._position_block(position, speed, acc)
        self.reg_write(servo_id, SmsStsRegister.ACC, block)

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
        data = b"".join(map(self._position_block, positions, speeds, accs))
        self.sync_write(ids, SmsStsRegister.ACC, data, 7)

    def wheel_mode(self, servo_id) -> None:
        """Switch the servo to constant-speed wheel mode."""
        self.write_byte(servo_id, SmsStsRegister.MODE, 1)

    def write_speed(self, servo_id, speed, acc=0) -> None:
        """Set the acceleration, then the signed wheel-mode speed."""
        self.gen_write(servo_id, SmsStsRegister.ACC, bytes([acc]))
        word = self.split_word(_encode_signed(speed))
        self.gen_write(servo_id, SmsStsRegister.GOAL_SPEED_L, bytes(word))

    def enable_torque(self, servo_id, enable) -> None:
        """Switch the motor torque on or off."""
        self._write_torque(servo_id, enable)

    def unlock_eeprom(self, servo_id) -> None:
        """Allow writes to the EEPROM part of the memory table to persist."""
        self._write_lock(servo_id, False)

    def lock_eeprom(self, servo_id) -> None:
        """Protect the EEPROM part of the memory table."""
        self._write_lock(servo_id, True)

    def calibrate_offset(self, servo_id) -> None:
        """Take the present position as the servo's middle position."""
        self.write_byte(servo_id, SmsStsRegister.TORQUE_ENABLE, 128)

    def feedback(self, servo_id) -> bytes:
        """Read the whole status block of a servo and keep it for later reads."""
        return self._read_feedback(servo_id)

    def read_pos(self, servo_id=None) -> int:
        """Return the signed present position."""
        return self._signed_word(servo_id, SmsStsRegister.PRESENT_POSITION_L, 15)

    def read_speed(self, servo_id=None) -> int:
        """Return the present speed, negative when turning backwards."""
        return self._signed_word(servo_id, SmsStsRegister.PRESENT_SPEED_L, 15)

    def read_load(self, servo_id=None) -> int:
        """Return the motor drive as a signed share of full voltage (0-1000)."""
        return self._signed_word(servo_id, SmsStsRegister.PRESENT_LOAD_L, 10)

    def read_voltage(self, servo_id=None) -> int:
        """Return the supply voltage."""
        return self._byte(servo_id, SmsStsRegister.PRESENT_VOLTAGE)

    def read_temperature(self, servo_id=None) -> int:
        """Return the internal temperature."""
        return self._byte(servo_id, SmsStsRegister.PRESENT_TEMPERATURE)

    def read_moving(self, servo_id=None) -> int:
        """Return the moving flag."""
        return self._byte(servo_id, SmsStsRegister.MOVING)

    def read_current(self, servo_id=None) -> int:
        """Return the present current, negative in reverse."""
        return self._signed_word(servo_id, SmsStsRegister.PRESENT_CURRENT_L, 15)