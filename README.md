# scservo

Drive serial bus servos from Python. The package speaks the half-duplex
servo bus protocol (ping, read, write, registered write with a later
action, sync write and sync read) and provides controllers for three
servo families:

- `scservo.scscl.Scscl` for SCSCL servos (position, time and speed; PWM mode)
- `scservo.sms_sts.SmsSts` for SMS/STS servos (signed position with acceleration; wheel mode)
- `scservo.smsbl.Smsbl` for SMSBL servos (same interface as SMS/STS)

Each controller is a `scservo.serial_bus.SerialBus`, which opens the
serial device through pyserial (8N1, 100 ms read timeout). The packet
layer itself lives in `scservo.protocol.Protocol`.

## Installation

```
pip install .
```

## Using the library

```python
from scservo.scscl import Scscl
from scservo.protocol import CommunicationError

servo = Scscl()
servo.open(1000000, "/dev/ttyUSB0")
with servo:
    try:
        print("found servo", servo.ping(1))
    except CommunicationError:
        print("no answer from servo 1")

    # Move servo 1 to position 1000 at speed 1500.
    servo.write_pos(1, 1000, 0, 1500)

    # Read back the state of servo 1.
    print("position", servo.read_pos(1))
    print("temperature", servo.read_temperature(1))
```

`SerialBus.open` accepts 9600, 19200, 38400, 57600, 115200, 500000 and
1000000 baud; any other rate opens the port at 115200.
`set_baud_rate` changes the rate of an open port and raises
`ValueError` for a rate it does not support. Closing the `with` block
closes the port.

A servo that does not answer, or answers with a bad packet, raises
`scservo.protocol.CommunicationError`. The status byte of the last reply
is kept in the controller's `error` attribute. With `level=0` the
controller does not wait for replies to writes, only to reads and pings.

### Reading the status block at once

`feedback(servo_id)` reads the whole block from present position to
present current and keeps it. Calling a reading method with no ID (or
`None`) then decodes the value from that stored block instead of asking
the servo again:

```python
servo.feedback(1)
print(servo.read_pos(), servo.read_speed(), servo.read_load())
```

### SMS/STS and SMSBL servos

For these families, positions are signed and carry an acceleration:

```python
from scservo.sms_sts import SmsSts

servo = SmsSts()
servo.open(1000000, "/dev/ttyUSB0")
with servo:
    servo.write_pos_ex(1, 4095, 2400, 50)
    servo.sync_write_pos_ex([1, 2], [2048, 2048], [2400, 2400], [50, 50])
    servo.wheel_mode(1)
    servo.write_speed(1, -1000, 50)
```

### Moving several servos together

Stage moves with `reg_write_pos` / `reg_write_pos_ex` and start them all
with `reg_write_action()`, or send one broadcast packet with
`sync_write_pos` / `sync_write_pos_ex`.

For reading several servos, `sync_read_tx(ids, address, length)` sends a
sync read and collects the replies, and `sync_read_rx(servo_id)` returns
a `SyncReadPacket` whose `next_byte()` and `next_word(neg_bit)` decode
that servo's data.

Register addresses and baud-rate register codes for each family are the
enums `ScsclRegister`, `SmsStsRegister`, `SmsblRegister` and
`ScsclBaud`, `SmsStsBaud`, `SmsblBaud`.

## Command line

The `scservo` command runs demonstration tasks for SCSCL servos:

```
scservo DEVICE [--baud RATE] [--level N] COMMAND [options]
```

Commands:

- `ping [--id N]` prints the ID the servo answers with
- `broadcast` moves every servo between positions 1000 and 20
- `write-pos [--id N]` moves one servo between positions 1000 and 20
- `reg-write-pos [--ids N ...]` stages the moves and starts them together
- `sync-write-pos [--ids N ...]` moves the servos with one packet
- `write-pwm [--id N] [--pwm P]` switches to PWM mode and cycles P, 0, -P, 0
- `program-eeprom [--id N] [--new-id M] [--min-angle A] [--max-angle B]`
  changes a servo's ID and angle limits

The moving commands take `--cycles` (0, the default, runs until
interrupted) and `--delay` (seconds after each step). Run
`scservo --help` or `scservo DEVICE COMMAND --help` for details.

## What it does not do

The command line drives SCSCL servos only; SMS/STS and SMSBL servos are
controlled through the library.

## Running the tests

```
pip install -e ".[test]"
pytest
```