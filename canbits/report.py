"""Text reports of calculated or decoded bit-timing parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from canbits.algorithms import DEFAULT_ALGORITHM, Algorithm
from canbits.controllers import find_controllers
from canbits.registers import RegisterFormat
from canbits.timing import (
    BitTiming,
    BitTimingConst,
    BitTimingError,
    RefClock,
    cia_sample_point,
)

COMMON_BITRATES: tuple[int, ...] = (
    1000000, 800000, 666666, 500000, 250000, 125000,
    100000, 83333, 50000, 33333, 20000, 10000,
)

COMMON_DATA_BITRATES: tuple[int, ...] = (
    12000000, 10000000, 8000000, 5000000, 4000000, 2000000, 1000000,
)

_COLUMNS = (
    " nominal                                  real  Bitrt    nom   real  SampP\n"
    " Bitrate TQ[ns] PrS PhS1 PhS2 SJW BRP  Bitrate  Error  SampP  SampP  Error   "
)


@dataclass(frozen=True)
class CalcOptions:
    """What to calculate: controller, algorithm and optional overrides."""

    name: Optional[str] = None
    algorithm: Algorithm = DEFAULT_ALGORITHM
    sample_point: int = 0
    ref_clk: Optional[RefClock] = None
    bitrates: Optional[tuple[int, ...]] = None
    data_bitrates: Optional[tuple[int, ...]] = None
    ref_bt: Optional[BitTiming] = None
    quiet: bool = False


def _percent(error: int, nominal: int, trailer: str) -> str:
    value = 100.0 * error / nominal
    if value > 99.9:
        return "≥100%" + trailer
    return f"{value:4.1f}%" + trailer


def render_one(
    algorithm: Algorithm,
    btc: BitTimingConst,
    ref_bt: Optional[BitTiming],
    ref_clk: RefClock,
    bitrate: int,
    sample_point: int,
    register_format: RegisterFormat,
    quiet: bool,
    fd_mode: bool,
) -> str:
    """Return the report for one bitrate at one reference clock."""
    parts: list[str] = []

    if not quiet:
        clock_name = f"({ref_clk.name}) " if ref_clk.name else ""
        parts.append(
            f"{'Data ' if fd_mode else ''}Bit timing parameters for {btc.name} "
            f"with {ref_clk.clk / 1000000.0:.6f} MHz ref clock {clock_name}"
            f"using algo '{algorithm.name}'\n"
        )
        parts.append(_COLUMNS)
        parts.append(register_format.header())
        parts.append("\n")

    if ref_bt is not None:
        try:
            bt = algorithm.fixup_bittiming(ref_clk.clk, ref_bt, btc)
        except BitTimingError:
            parts.append(f"{bitrate:8d} ***parameters exceed controller's range***\n")
            return "".join(parts)
    else:
        request = BitTiming(bitrate=bitrate, sample_point=sample_point)
        try:
            bt = algorithm.calc_bittiming(ref_clk.clk, request, btc)
        except BitTimingError:
            parts.append(f"{bitrate:8d} ***bitrate not possible***\n")
            return "".join(parts)

    bitrate_error = abs(bitrate - bt.bitrate)
    sample_point_error = abs(sample_point - bt.sample_point)

    parts.append(
        f"{bitrate:8d} "
        f"{bt.tq:6d} {bt.prop_seg:3d} {bt.phase_seg1:4d} {bt.phase_seg2:4d} "
        f"{bt.sjw:3d} {bt.brp:3d} "
        f"{bt.bitrate:8d}  "
    )
    parts.append(_percent(bitrate_error, bitrate, "  "))
    parts.append(f"{sample_point / 10.0:4.1f}%  {bt.sample_point / 10.0:4.1f}%  ")
    parts.append(_percent(sample_point_error, sample_point, "   "))
    parts.append(register_format.format(bt))
    parts.append("\n")
    return "".join(parts)


def render_bittiming(
    algorithm: Algorithm,
    btc: BitTimingConst,
    ref_clks: Sequence[RefClock],
    bitrates: Iterable[int],
    sample_point: int,
    register_format: RegisterFormat,
    ref_bt: Optional[BitTiming],
    quiet: bool,
    fd_mode: bool,
) -> str:
    """Return the reports for every bitrate at every reference clock."""
    bitrates = tuple(bitrates)
    parts: list[str] = []

    if not ref_clks and not quiet:
        parts.append(
            f"Skipping bit timing parameter calculation for {btc.name}, "
            "no ref clock defined\n\n"
        )

    for ref_clk in ref_clks:
        block_quiet = quiet
        for bitrate in bitrates:
            nominal = sample_point or cia_sample_point(bitrate)
            parts.append(
                render_one(algorithm, btc, ref_bt, ref_clk, bitrate, nominal,
                           register_format, block_quiet, fd_mode)
            )
            block_quiet = True
        parts.append("\n")

    return "".join(parts)


def render_calc(options: CalcOptions) -> str:
    """Return the reports for the selected controllers.

    Raises KeyError when the controller name is unknown.
    """
    parts: list[str] = []
    for ctrl in find_controllers(options.name):
        ref_clks = (options.ref_clk,) if options.ref_clk else ctrl.ref_clks

        parts.append(
            render_bittiming(
                options.algorithm,
                ctrl.bittiming_const,
                ref_clks,
                options.bitrates or COMMON_BITRATES,
                options.sample_point,
                ctrl.register_format,
                options.ref_bt,
                options.quiet,
                False,
            )
        )

        if ctrl.data_bittiming_const is not None:
            parts.append(
                render_bittiming(
                    options.algorithm,
                    ctrl.data_bittiming_const,
                    ref_clks,
                    options.data_bitrates or options.bitrates or COMMON_DATA_BITRATES,
                    options.sample_point,
                    ctrl.data_register_format or ctrl.register_format,
                    options.ref_bt,
                    options.quiet,
                    True,
                )
            )
    return "".join(parts)