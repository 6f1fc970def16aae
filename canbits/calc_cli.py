"""Command line front end that calculates CAN bit timing parameters."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from canbits.algorithms import algorithm_names, find_algorithm
from canbits.controllers import controller_names
from canbits.report import CalcOptions, render_calc
from canbits.timing import BitTiming, RefClock

_DESCRIPTION = "calculate CAN bit timing parameters."
_EPILOG = (
    "Or supply low level bit timing parameters to decode them with "
    "--tq, --prop-seg, --phase-seg1, --phase-seg2, --sjw, --brp, --tseg1 and --tseg2."
)


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the command."""
    parser = argparse.ArgumentParser(
        prog="can-calc-bit-timing",
        description=_DESCRIPTION,
        epilog=_EPILOG,
        add_help=False,
    )
    parser.add_argument("-?", "-h", "--help", action="help",
                        help="show this help and exit")
    parser.add_argument("-q", dest="quiet", action="store_true",
                        help="don't print header line")
    parser.add_argument("-l", dest="list", action="store_true",
                        help="list all support CAN controller names")
    parser.add_argument("-b", dest="bitrate", type=int, default=0,
                        help="arbitration bit-rate in bits/sec")
    parser.add_argument("-d", dest="data_bitrate", type=int, default=0,
                        help="data bit-rate in bits/sec")
    parser.add_argument("-s", dest="sample_point", type=int, default=0,
                        help="sample-point in one-tenth of a percent "
                             "or 0 for CIA recommended sample points")
    parser.add_argument("-c", dest="clock", type=int, default=0,
                        help="real CAN system clock in Hz")
    parser.add_argument("--alg", nargs="?", const="", default=None,
                        help="choose specified algorithm for bit-timing calculation")
    parser.add_argument("--tq", type=int, default=0, help="Time quantum in ns")
    parser.add_argument("--prop-seg", type=int, default=0,
                        help="Propagation segment in TQs")
    parser.add_argument("--phase-seg1", type=int, default=0,
                        help="Phase buffer segment 1 in TQs")
    parser.add_argument("--phase-seg2", dest="phase_seg2", type=int, default=0,
                        help="Phase buffer segment 2 in TQs")
    parser.add_argument("--sjw", type=int, default=0,
                        help="Synchronisation jump width in TQs")
    parser.add_argument("--brp", type=int, default=0, help="Bit-rate prescaler")
    parser.add_argument("--tseg1", type=int, default=None,
                        help="Time segment 1 = prop-seg + phase-seg1")
    parser.add_argument("--tseg2", dest="phase_seg2", type=int,
                        help="Time segment 2 = phase_seg2")
    parser.add_argument("name", nargs="?", default=None,
                        metavar="CAN-controller-name")
    return parser


def _print_algorithms() -> None:
    for name in algorithm_names():
        print(f"    {name}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command and return its exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.alg == "":
        print("Supported CAN calc bit timing algorithms:\n")
        _print_algorithms()
        print()
        return 0

    if args.list:
        for name in controller_names():
            print(name)
        return 0

    if args.sample_point and (args.sample_point >= 1000 or args.sample_point < 100):
        parser.print_help(sys.stdout)

    options_kwargs = {}
    if args.alg is not None:
        try:
            options_kwargs["algorithm"] = find_algorithm(args.alg)
        except KeyError:
            print(f"error: unknown CAN calc bit timing algorithm '{args.alg}', "
                  "try one of these:\n")
            _print_algorithms()
            return 1

    prop_seg = args.prop_seg
    phase_seg1 = args.phase_seg1
    if args.tseg1 is not None:
        prop_seg = args.tseg1 // 2
        phase_seg1 = args.tseg1 - prop_seg

    ref_bt = None
    if prop_seg:
        ref_bt = BitTiming(
            tq=args.tq,
            prop_seg=prop_seg,
            phase_seg1=phase_seg1,
            phase_seg2=args.phase_seg2 or 0,
            sjw=args.sjw,
            brp=args.brp,
        )

    options = CalcOptions(
        name=args.name,
        sample_point=args.sample_point,
        ref_clk=RefClock(args.clock, "cmd-line") if args.clock else None,
        bitrates=(args.bitrate,) if args.bitrate else None,
        data_bitrates=(args.data_bitrate,) if args.data_bitrate else None,
        ref_bt=ref_bt,
        quiet=args.quiet,
        **options_kwargs,
    )

    try:
        output = render_calc(options)
    except KeyError:
        print(f"error: unknown CAN controller '{args.name}', try one of these:\n")
        for name in controller_names():
            print(name)
        return 1

    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())