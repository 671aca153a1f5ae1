"""Servo protocol carried over a serial port."""

from __future__ import annotations

import logging

import serial

from .protocol import CommunicationError, Protocol

logger = logging.getLogger(__name__)

DEFAULT_BAUD_RATE = 115200
IO_TIMEOUT = 0.1

_OPEN_BAUD_RATES = frozenset({9600, 19200, 38400, 57600, 115200, 500000, 1000000})
_SWITCH_BAUD_RATES = frozenset({9600, 19200, 38400, 57600, 115200, 230400, 500000})


class SerialBus(Protocol):
    """Servo bus on a serial port, configured 8N1 with a 100 ms read timeout.

    ``port`` may be an already open pyserial-compatible object; otherwise
    call :meth:`open`.
    """

    def __init__(self, big_endian=False, level=1, port=None):
        super().__init__(big_endian, level)
        self.io_timeout = IO_TIMEOUT
        self.port = port

    @property
    def is_open(self) -> bool:
        return self.port is not None

    def open(self, baud_rate, device):
        """Open ``device`` at ``baud_rate``; unsupported rates fall back to 115200."""
        self.close()
        if device is None:
            raise ValueError("no serial device given")
        rate = baud_rate if baud_rate in _OPEN_BAUD_RATES else DEFAULT_BAUD_RATE
        try:
            self.port = serial.serial_for_url(
                device,
                baudrate=rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.io_timeout,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except (serial.SerialException, ValueError) as exc:
            raise CommunicationError(f"cannot open {device}: {exc}") from exc
        logger.info("serial speed %d", baud_rate)
        return self

    def set_baud_rate(self, baud_rate) -> None:
        """Change the baud rate of the open port."""
        port = self._require_port()
        if baud_rate not in _SWITCH_BAUD_RATES:
            raise ValueError(f"unsupported baud rate {baud_rate}")
        port.baudrate = baud_rate

    def close(self) -> None:
        """Close the port if it is open."""
        if self.port is not None:
            port, self.port = self.port, None
            port.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _require_port(self):
        if self.port is None:
            raise CommunicationError("serial port is not open")
        return self.port

    def _flush_input(self) -> None:
        self._require_port().reset_input_buffer()

    def _send(self, packet: bytes) -> None:
        port = self._require_port()
        port.write(packet)
        port.flush()

    def _receive(self, size: int) -> bytes:
        return bytes(self._require_port().read(size))