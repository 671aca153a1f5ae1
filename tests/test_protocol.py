import pytest

from scservo.protocol import (
    BROADCAST_ID,
    CommunicationError,
    Instruction,
    Protocol,
    SyncReadPacket,
)


class FakeBus(Protocol):
    def __init__(self, incoming=b"", **kwargs):
        super().__init__(**kwargs)
        self.sent = []
        self.incoming = bytearray(incoming)
        self.input_flushes = 0

    def _flush_input(self):
        self.input_flushes += 1

    def _send(self, packet):
        self.sent.append(bytes(packet))

    def _receive(self, size):
        chunk = bytes(self.incoming[:size])
        del self.incoming[:size]
        return chunk


def packet(servo_id, status, payload=b""):
    body = bytes([servo_id, len(payload) + 2, status]) + bytes(payload)
    return b"\xff\xff" + body + bytes([~sum(body) & 0xFF])


def checksum_ok(pkt):
    return (sum(pkt[2:]) & 0xFF) == 0xFF


@pytest.mark.parametrize("big_endian", [False, True])
def test_split_join_round_trip(big_endian):
    bus = FakeBus(big_endian=big_endian)
    for value in (0, 1, 0x1234, 0xFFFF, 1000):
        low, high = Protocol.split_word(bus, value)
        assert Protocol.join_word(bus, low, high) == value


def test_split_word_byte_order():
    assert Protocol.split_word(FakeBus(big_endian=False), 0x1234) == (0x34, 0x12)
    assert Protocol.split_word(FakeBus(big_endian=True), 0x1234) == (0x12, 0x34)


def test_ping_packet_and_reply():
    bus = FakeBus(packet(1, 0))
    assert Protocol.ping(bus, 1) == 1
    assert bus.sent == [bytes([0xFF, 0xFF, 0x01, 0x02, 0x01, 0xFB])]
    assert bus.input_flushes == 1


def test_ping_broadcast_accepts_any_id():
    bus = FakeBus(packet(7, 0))
    assert Protocol.ping(bus, BROADCAST_ID) == 7


def test_ping_bad_checksum_raises():
    reply = bytearray(packet(1, 0))
    reply[-1] ^= 0x01
    bus = FakeBus(bytes(reply))
    with pytest.raises(CommunicationError):
        Protocol.ping(bus, 1)


def test_ping_timeout_raises():
    bus = FakeBus(packet(1, 0)[:4])
    with pytest.raises(CommunicationError):
        Protocol.ping(bus, 1)


def test_ping_wrong_id_raises():
    bus = FakeBus(packet(2, 0))
    with pytest.raises(CommunicationError):
        Protocol.ping(bus, 1)


def test_write_byte_packet_layout_and_status():
    bus = FakeBus(packet(3, 0x20))
    Protocol.write_byte(bus, 3, 40, 1)
    sent = bus.sent[0]
    assert sent[:2] == b"\xff\xff"
    assert sent[2] == 3
    assert sent[3] == 4
    assert sent[4] == Instruction.WRITE
    assert sent[5:7] == bytes([40, 1])
    assert checksum_ok(sent)
    assert bus.error == 0x20


def test_write_word_uses_byte_order():
    bus = FakeBus(packet(1, 0), big_endian=True)
    Protocol.write_word(bus, 1, 9, 0x0102)
    assert bus.sent[0][5:8] == bytes([9, 0x01, 0x02])


def test_ack_from_wrong_servo_raises():
    bus = FakeBus(packet(4, 0))
    with pytest.raises(CommunicationError):
        Protocol.gen_write(bus, 3, 42, b"\x00\x01")


def test_broadcast_write_expects_no_ack():
    bus = FakeBus()
    Protocol.gen_write(bus, BROADCAST_ID, 42, b"\x10\x00")
    assert bus.sent[0][2] == BROADCAST_ID
    assert bus.error == 0


def test_level_zero_expects_no_ack():
    bus = FakeBus(level=0)
    Protocol.reg_write(bus, 1, 42, b"\x01\x02")
    assert bus.sent[0][4] == Instruction.REG_WRITE
    assert checksum_ok(bus.sent[0])


def test_reg_write_action_defaults_to_broadcast():
    bus = FakeBus()
    Protocol.reg_write_action(bus)
    sent = bus.sent[0]
    assert sent[2:5] == bytes([BROADCAST_ID, 2, Instruction.REG_ACTION])
    assert len(sent) == 6
    assert checksum_ok(sent)


def test_read_returns_payload_and_status():
    bus = FakeBus(packet(1, 0x08, b"\xaa\xbb\xcc"))
    assert Protocol.read(bus, 1, 56, 3) == b"\xaa\xbb\xcc"
    assert bus.error == 0x08
    assert bus.sent[0][4:7] == bytes([Instruction.READ, 56, 3])


def test_read_short_reply_raises():
    bus = FakeBus(packet(1, 0, b"\xaa"))
    with pytest.raises(CommunicationError):
        Protocol.read(bus, 1, 56, 3)


def test_read_word_and_byte():
    bus = FakeBus(packet(1, 0, b"\x34\x12") + packet(1, 0, b"\x55"))
    assert Protocol.read_word(bus, 1, 56) == 0x1234
    assert Protocol.read_byte(bus, 1, 62) == 0x55


def test_sync_write_layout():
    bus = FakeBus()
    Protocol.sync_write(bus, [1, 2], 42, b"\x01\x02\x03\x04", 2)
    sent = bus.sent[0]
    assert sent[2:7] == bytes([BROADCAST_ID, 10, Instruction.SYNC_WRITE, 42, 2])
    assert sent[7:-1] == bytes([1, 1, 2, 2, 3, 4])
    assert checksum_ok(sent)


def test_sync_write_rejects_wrong_data_length():
    bus = FakeBus()
    with pytest.raises(ValueError):
        Protocol.sync_write(bus, [1, 2], 42, b"\x01\x02\x03", 2)


def test_sync_read_round_trip():
    replies = packet(1, 0, b"\x05\x80") + packet(2, 0x04, b"\x10\x00")
    bus = FakeBus(b"\x00" + replies)
    received = Protocol.sync_read_tx(bus, [1, 2], 56, 2)
    assert received == len(replies)
    sent = bus.sent[0]
    assert sent[2:7] == bytes([BROADCAST_ID, 6, Instruction.SYNC_READ, 56, 2])
    assert sent[7:9] == bytes([1, 2])
    assert checksum_ok(sent)

    second = Protocol.sync_read_rx(bus, 2)
    assert SyncReadPacket.next_word(second) == 0x0010
    assert bus.error == 0x04

    first = Protocol.sync_read_rx(bus, 1)
    assert SyncReadPacket.next_word(first, 15) == -5


def test_sync_read_missing_servo_raises():
    bus = FakeBus(packet(1, 0, b"\x01\x02") * 2)
    Protocol.sync_read_tx(bus, [1, 2], 56, 2)
    with pytest.raises(CommunicationError):
        Protocol.sync_read_rx(bus, 9)


def test_sync_read_bad_checksum_raises():
    reply = bytearray(packet(1, 0, b"\x01\x02"))
    reply[-1] ^= 0xFF
    bus = FakeBus(bytes(reply))
    Protocol.sync_read_tx(bus, [1], 56, 2)
    with pytest.raises(CommunicationError):
        Protocol.sync_read_rx(bus, 1)


def test_sync_read_packet_bytes_then_exhausted():
    pkt = SyncReadPacket(b"\x07\x09", False)
    assert [pkt.next_byte(), pkt.next_byte()] == [7, 9]
    with pytest.raises(IndexError):
        pkt.next_byte()


def test_sync_read_packet_word_needs_two_bytes():
    pkt = SyncReadPacket(b"\x01\x02\x03", True)
    assert pkt.next_word() == 0x0102
    with pytest.raises(IndexError):
        pkt.next_word()


def test_sync_read_packet_sign_bit_clear_keeps_value():
    pkt = SyncReadPacket(b"\x05\x00", False)
    assert pkt.next_word(10) == 5