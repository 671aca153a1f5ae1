"""Packet layer of the serial servo bus protocol.

A packet on the wire is ``FF FF id length instruction [params...] checksum``,
where the checksum is the inverted low byte of the sum of every byte after
the two-byte header.
"""

from __future__ import annotations

import abc
import enum
from collections.abc import Iterable

BROADCAST_ID = 0xFE
HEADER = b"\xff\xff"


class CommunicationError(Exception):
    """Raised when a servo does not answer or answers with a bad packet."""


class Instruction(enum.IntEnum):
    """Instruction codes understood by the servos."""

    PING = 0x01
    READ = 0x02
    WRITE = 0x03
    REG_WRITE = 0x04
    REG_ACTION = 0x05
    SYNC_READ = 0x82
    SYNC_WRITE = 0x83


def _checksum(body: bytes) -> int:
    return ~sum(body) & 0xFF


def _split_word(value: int, big_endian: bool) -> tuple[int, int]:
    value &= 0xFFFF
    high, low = value >> 8, value & 0xFF
    return (high, low) if big_endian else (low, high)


def _join_word(first: int, second: int, big_endian: bool) -> int:
    if big_endian:
        return (first << 8) | second
    return (second << 8) | first


class SyncReadPacket:
    """Payload of one servo's reply to a sync read, decoded field by field."""

    def __init__(self, data, big_endian=False):
        self.data = bytes(data)
        self.big_endian = big_endian
        self._index = 0

    def next_byte(self) -> int:
        """Return the next byte of the payload."""
        if self._index >= len(self.data):
            raise IndexError("sync read packet exhausted")
        value = self.data[self._index]
        self._index += 1
        return value

    def next_word(self, neg_bit=0) -> int:
        """Return the next two bytes as a word.

        When ``neg_bit`` is non-zero, that bit is a sign flag and the word is
        returned as a negative magnitude when it is set.
        """
        if self._index + 1 >= len(self.data):
            raise IndexError("sync read packet exhausted")
        word = _join_word(
            self.data[self._index], self.data[self._index + 1], self.big_endian
        )
        self._index += 2
        if neg_bit and word & (1 << neg_bit):
            word = -(word & ~(1 << neg_bit))
        return word


class Protocol(abc.ABC):
    """Servo bus protocol over an abstract byte transport.

    ``big_endian`` selects the byte order of 16-bit values in the memory
    table; ``level`` is the servo reply level: when zero, only reads and
    pings are answered.
    """

    def __init__(self, big_endian=False, level=1):
        self.big_endian = bool(big_endian)
        self.level = level
        self.error = 0
        self._sync_buffer = b""
        self._sync_length = 0

    @abc.abstractmethod
    def _flush_input(self) -> None:
        """Discard any bytes waiting to be read."""

    @abc.abstractmethod
    def _send(self, packet: bytes) -> None:
        """Transmit a complete packet."""

    @abc.abstractmethod
    def _receive(self, size: int) -> bytes:
        """Read up to ``size`` bytes, returning fewer on timeout."""

    def split_word(self, value) -> tuple[int, int]:
        """Split a 16-bit value into two bytes in wire order."""
        return _split_word(value, self.big_endian)

    def join_word(self, low, high) -> int:
        """Combine two bytes in wire order into a 16-bit value."""
        return _join_word(low, high, self.big_endian)

    def _build_packet(self, servo_id, instruction, address=None, payload=b""):
        if address is None:
            body = bytes([servo_id, 2, instruction])
        else:
            body = bytes([servo_id, len(payload) + 3, instruction, address]) + bytes(
                payload
            )
        return HEADER + body + bytes([_checksum(body)])

    def _transact(self, packet: bytes) -> None:
        self._flush_input()
        self._send(packet)

    @staticmethod
    def _check_reply(reply: bytes, size: int) -> None:
        if len(reply) != size:
            raise CommunicationError(
                f"timeout: expected {size} bytes, received {len(reply)}"
            )
        if reply[:2] != HEADER:
            raise CommunicationError("reply has no packet header")
        if _checksum(reply[2:-1]) != reply[-1]:
            raise CommunicationError("reply checksum mismatch")

    def _ack(self, servo_id: int) -> None:
        self.error = 0
        if servo_id == BROADCAST_ID or not self.level:
            return
        reply = self._receive(6)
        self._check_reply(reply, 6)
        if reply[2] != servo_id:
            raise CommunicationError(
                f"reply from servo {reply[2]}, expected servo {servo_id}"
            )
        if reply[3] != 2:
            raise CommunicationError("status reply has unexpected length")
        self.error = reply[4]

    def _write_instruction(self, servo_id, address, data, instruction) -> None:
        self._transact(self._build_packet(servo_id, instruction, address, bytes(data)))
        self._ack(servo_id)

    def gen_write(self, servo_id, address, data) -> None:
        """Write ``data`` to the memory table at ``address``."""
        self._write_instruction(servo_id, address, data, Instruction.WRITE)

    def reg_write(self, servo_id, address, data) -> None:
        """Stage a write that takes effect on the next action instruction."""
        self._write_instruction(servo_id, address, data, Instruction.REG_WRITE)

    def reg_write_action(self, servo_id=BROADCAST_ID) -> None:
        """Apply the writes staged by :meth:`reg_write`."""
        self._transact(self._build_packet(servo_id, Instruction.REG_ACTION))
        self._ack(servo_id)

    def sync_write(self, servo_ids, address, data, length) -> None:
        """Write ``length`` bytes per servo in one broadcast packet.

        ``data`` holds the servos' blocks one after another, in the order of
        ``servo_ids``.
        """
        ids = bytes(servo_ids)
        data = bytes(data)
        if len(data) != len(ids) * length:
            raise ValueError(
                f"expected {len(ids) * length} data bytes, got {len(data)}"
            )
        blocks = (data[i * length : (i + 1) * length] for i in range(len(ids)))
        body = bytes(
            [
                BROADCAST_ID,
                (length + 1) * len(ids) + 4,
                Instruction.SYNC_WRITE,
                address,
                length,
            ]
        ) + b"".join(bytes([sid]) + block for sid, block in zip(ids, blocks))
        self._transact(HEADER + body + bytes([_checksum(body)]))

    def write_byte(self, servo_id, address, value) -> None:
        """Write one byte to the memory table."""
        self.gen_write(servo_id, address, bytes([value]))

    def write_word(self, servo_id, address, value) -> None:
        """Write a 16-bit value to the memory table."""
        self.gen_write(servo_id, address, bytes(self.split_word(value)))

    def read(self, servo_id, address, length) -> bytes:
        """Read ``length`` bytes of the memory table starting at ``address``."""
        self._transact(
            self._build_packet(servo_id, Instruction.READ, address, bytes([length]))
        )
        reply = self._receive(length + 6)
        self._check_reply(reply, length + 6)
        self.error = reply[4]
        return bytes(reply[5 : 5 + length])

    def read_byte(self, servo_id, address) -> int:
        """Read one byte of the memory table."""
        return self.read(servo_id, address, 1)[0]

    def read_word(self, servo_id, address) -> int:
        """Read a 16-bit value from the memory table."""
        first, second = self.read(servo_id, address, 2)
        return self.join_word(first, second)

    def ping(self, servo_id) -> int:
        """Ping a servo and return the ID it answers with."""
        self._transact(self._build_packet(servo_id, Instruction.PING))
        self.error = 0
        reply = self._receive(6)
        self._check_reply(reply, 6)
        if reply[2] != servo_id and servo_id != BROADCAST_ID:
            raise CommunicationError(
                f"reply from servo {reply[2]}, expected servo {servo_id}"
            )
        if reply[3] != 2:
            raise CommunicationError("ping reply has unexpected length")
        self.error = reply[2]
        return reply[2]

    def sync_read_tx(self, servo_ids, address, length) -> int:
        """Send a sync read and collect the replies; return the bytes received."""
        ids = bytes(servo_ids)
        body = bytes(
            [BROADCAST_ID, len(ids) + 4, Instruction.SYNC_READ, address, length]
        ) + ids
        self._transact(HEADER + body + bytes([_checksum(body)]))
        self._sync_length = length
        self._sync_buffer = bytes(self._receive(len(ids) * (length + 6)))
        return len(self._sync_buffer)

    def sync_read_rx(self, servo_id) -> SyncReadPacket:
        """Find and decode one servo's reply among the collected sync read data."""
        buf = self._sync_buffer
        size = self._sync_length
        pos = 0
        try:
            while pos + 6 + size <= len(buf):
                window = [0, 0, 0]
                while pos < len(buf):
                    window = [window[1], window[2], buf[pos]]
                    pos += 1
                    if window[0] == 0xFF and window[1] == 0xFF and window[2] != 0xFF:
                        break
                if window[2] != servo_id:
                    continue
                length_byte = buf[pos]
                pos += 1
                if length_byte != size + 2:
                    continue
                status = buf[pos]
                pos += 1
                payload = buf[pos : pos + size]
                if len(payload) != size:
                    raise IndexError("truncated payload")
                pos += size
                expected = buf[pos]
                self.error = status
                if _checksum(bytes([servo_id, size + 2, status]) + payload) != expected:
                    raise CommunicationError(
                        f"checksum mismatch in reply from servo {servo_id}"
                    )
                return SyncReadPacket(payload, self.big_endian)
        except IndexError:
            raise CommunicationError(
                f"truncated reply from servo {servo_id}"
            ) from None
        raise CommunicationError(f"no reply from servo {servo_id}")


def iter_ids(servo_ids: Iterable[int]) -> bytes:
    """Return servo IDs as bytes, checking each fits in one byte."""
    return bytes(servo_ids)