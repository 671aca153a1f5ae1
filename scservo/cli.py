"""Command line demonstrations for SCSCL servos on a serial bus."""

from __future__ import annotations

import argparse
import itertools
import sys
import time

from .protocol import BROADCAST_ID, CommunicationError
from .scscl import Scscl, ScsclRegister

_HIGH_POSITION = 1000
_LOW_POSITION = 20
_SPEED = 1500
_MOVE_DELAY = 0.754
_PWM_DELAY = 2.0


def _cycles(count):
    return itertools.count() if count == 0 else range(count)


def _delay(args, default):
    return default if args.delay is None else args.delay


def _ping(servo, args) -> int:
    try:
        found = servo.ping(args.id)
    except CommunicationError:
        print("Ping servo ID error!")
        return 1
    print(f"ID:{found}")
    return 0


def _moves(servo, args, move) -> int:
    pause = _delay(args, _MOVE_DELAY)
    for _ in _cycles(args.cycles):
        for position in (_HIGH_POSITION, _LOW_POSITION):
            move(position)
            print(f"pos = {position}")
            time.sleep(pause)
    return 0


def _broadcast(servo, args) -> int:
    return _moves(
        servo, args, lambda pos: servo.write_pos(BROADCAST_ID, pos, 0, _SPEED)
    )


def _write_pos(servo, args) -> int:
    return _moves(servo, args, lambda pos: servo.write_pos(args.id, pos, 0, _SPEED))


def _reg_write_pos(servo, args) -> int:
    def move(position):
        for servo_id in args.ids:
            servo.reg_write_pos(servo_id, position, 0, _SPEED)
        servo.reg_write_action()

    return _moves(servo, args, move)


def _sync_write_pos(servo, args) -> int:
    def move(position):
        count = len(args.ids)
        servo.sync_write_pos(args.ids, [position] * count, None, [_SPEED] * count)

    return _moves(servo, args, move)


def _write_pwm(servo, args) -> int:
    pause = _delay(args, _PWM_DELAY)
    servo.pwm_mode(args.id)
    print(f"mode = {args.id}")
    for _ in _cycles(args.cycles):
        for pwm in (args.pwm, 0, -args.pwm, 0):
            servo.write_pwm(args.id, pwm)
            print(f"pwm = {pwm}")
            time.sleep(pause)
    return 0


def _program_eeprom(servo, args) -> int:
    servo.unlock_eeprom(args.id)
    print("unlock eeprom")
    servo.write_byte(args.id, ScsclRegister.ID, args.new_id)
    print(f"write ID:{args.new_id}")
    servo.write_word(args.new_id, ScsclRegister.MIN_ANGLE_LIMIT_L, args.min_angle)
    print(f"write min angle limit:{args.min_angle}")
    servo.write_word(args.new_id, ScsclRegister.MAX_ANGLE_LIMIT_L, args.max_angle)
    print(f"write max angle limit:{args.max_angle}")
    servo.lock_eeprom(args.new_id)
    print("lock eeprom")
    return 0


def _add_loop_options(parser):
    parser.add_argument(
        "--cycles", type=int, default=0, help="number of cycles, 0 runs forever"
    )
    parser.add_argument("--delay", type=float, help="seconds to wait after each step")


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the ``scservo`` command."""
    parser = argparse.ArgumentParser(
        prog="scservo", description="Drive SCSCL servos on a serial bus."
    )
    parser.add_argument("device", help="serial device or pyserial URL")
    parser.add_argument("--baud", type=int, help="baud rate of the bus")
    parser.add_argument(
        "--level", type=int, default=1, help="servo reply level (0: reads only)"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ping = commands.add_parser("ping", help="check that a servo answers")
    ping.add_argument("--id", type=int, default=1)
    ping.set_defaults(handler=_ping, default_baud=1000000)

    broadcast = commands.add_parser("broadcast", help="move every servo back and forth")
    _add_loop_options(broadcast)
    broadcast.set_defaults(handler=_broadcast, default_baud=100000)

    write_pos = commands.add_parser("write-pos", help="move one servo back and forth")
    write_pos.add_argument("--id", type=int, default=1)
    _add_loop_options(write_pos)
    write_pos.set_defaults(handler=_write_pos, default_baud=1000000)

    reg = commands.add_parser("reg-write-pos", help="stage moves and start them together")
    reg.add_argument("--ids", type=int, nargs="+", default=[1, 2])
    _add_loop_options(reg)
    reg.set_defaults(handler=_reg_write_pos, default_baud=1000000)

    sync = commands.add_parser("sync-write-pos", help="move servos with one packet")
    sync.add_argument("--ids", type=int, nargs="+", default=[1, 2])
    _add_loop_options(sync)
    sync.set_defaults(handler=_sync_write_pos, default_baud=1000000)

    pwm = commands.add_parser("write-pwm", help="drive one servo in PWM mode")
    pwm.add_argument("--id", type=int, default=1)
    pwm.add_argument("--pwm", type=int, default=500)
    _add_loop_options(pwm)
    pwm.set_defaults(handler=_write_pwm, default_baud=1000000)

    eeprom = commands.add_parser("program-eeprom", help="change ID and angle limits")
    eeprom.add_argument("--id", type=int, default=1)
    eeprom.add_argument("--new-id", type=int, default=2)
    eeprom.add_argument("--min-angle", type=int, default=20)
    eeprom.add_argument("--max-angle", type=int, default=1000)
    eeprom.set_defaults(handler=_program_eeprom, default_baud=100000)

    return parser


def main(argv=None) -> int:
    """Run the ``scservo`` command; return the exit status."""
    args = build_parser().parse_args(argv)
    print(f"serial:{args.device}")
    baud = args.default_baud if args.baud is None else args.baud
    with Scscl(level=args.level) as servo:
        try:
            servo.open(baud, args.device)
        except CommunicationError:
            print("Failed to init scscl motor!", file=sys.stderr)
            return 1
        try:
            return args.handler(servo, args)
        except CommunicationError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            return 0


if __name__ == "__main__":
    sys.exit(main())