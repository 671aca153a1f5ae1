"""Serial bus servo protocol, serial transport and controllers for SCSCL, SMS/STS and SMSBL servos."""

__version__ = "0.1.0"

__all__ = ["cli", "protocol", "scscl", "serial_bus", "sms_sts", "smsbl"]