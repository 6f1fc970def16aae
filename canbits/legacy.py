"""The bit-timing algorithms of the v2.6.31 and v3.18 era."""

from __future__ import annotations

import errno
from dataclasses import replace

from canbits.timing import (
    CAN_CALC_MAX_ERROR,
    NSEC_PER_SEC,
    U32_MASK,
    BitTiming,
    BitTimingConst,
    BitTimingError,
    cia_sample_point,
)


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def update_spt(btc: BitTimingConst, sample_point: int, tseg: int) -> tuple[int, int, int]:
    """Split ``tseg`` into tseg1 and tseg2 for a nominal sample point.

    Returns ``(real_sample_point, tseg1, tseg2)``.
    """
    tseg2 = tseg + 1 - (sample_point * (tseg + 1)) // 1000
    tseg2 = min(max(tseg2, btc.tseg2_min), btc.tseg2_max)
    tseg1 = tseg - tseg2
    if tseg1 > btc.tseg1_max:
        tseg1 = btc.tseg1_max
        tseg2 = tseg - tseg1
    real = _trunc_div(1000 * (tseg + 1 - tseg2), tseg + 1)
    return real, tseg1, tseg2


def _check_clock(clock_freq: int) -> None:
    if clock_freq <= 0:
        raise BitTimingError("clock frequency must be positive", errno.EINVAL)


def _search(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> tuple[int, int, int, int]:
    """Find the best prescaler and segments; return (sample_point, tseg1, tseg2, brp)."""
    _check_clock(clock_freq)
    if bt.bitrate <= 0:
        raise BitTimingError("bitrate must be positive", errno.EINVAL)

    nominal = bt.sample_point or cia_sample_point(bt.bitrate)
    best_error = 1_000_000_000
    spt_error = 1000
    best_tseg = 0
    best_brp = 0

    start = (btc.tseg1_max + btc.tseg2_max) * 2 + 1
    stop = (btc.tseg1_min + btc.tseg2_min) * 2
    for tseg in range(start, stop - 1, -1):
        tsegall = 1 + tseg // 2
        divisor = (tsegall * bt.bitrate) & U32_MASK
        if divisor == 0:
            continue
        brp = clock_freq // divisor + tseg % 2
        brp = (brp // btc.brp_inc) * btc.brp_inc
        if brp < btc.brp_min or brp > btc.brp_max or brp == 0:
            continue
        rate = clock_freq // (brp * tsegall)
        error = abs(bt.bitrate - rate)
        if error > best_error:
            continue
        best_error = error
        if error == 0:
            spt, _, _ = update_spt(btc, nominal, tseg // 2)
            error = abs(nominal - spt)
            if error > spt_error:
                continue
            spt_error = error
        best_tseg = tseg // 2
        best_brp = brp
        if error == 0:
            break

    if best_error:
        error = (best_error * 1000) // bt.bitrate
        if error > CAN_CALC_MAX_ERROR or best_brp == 0:
            raise BitTimingError(
                f"bitrate error {error // 10}.{error % 10}% too high", errno.EDOM
            )

    sample_point, tseg1, tseg2 = update_spt(btc, nominal, best_tseg)
    return sample_point, tseg1, tseg2, best_brp


def _finish(clock_freq: int, bt: BitTiming, sample_point: int, tseg1: int,
            tseg2: int, brp: int, sjw: int) -> BitTiming:
    prop_seg = tseg1 // 2
    return replace(
        bt,
        sample_point=sample_point,
        tq=(brp * NSEC_PER_SEC // clock_freq) & U32_MASK,
        prop_seg=prop_seg,
        phase_seg1=tseg1 - prop_seg,
        phase_seg2=tseg2,
        sjw=sjw,
        brp=brp,
        bitrate=clock_freq // (brp * (tseg1 + tseg2 + 1)),
    )


def _fixup(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    _check_clock(clock_freq)
    tseg1 = bt.prop_seg + bt.phase_seg1
    sjw = bt.sjw or 1
    if (
        sjw > btc.sjw_max
        or not btc.tseg1_min <= tseg1 <= btc.tseg1_max
        or not btc.tseg2_min <= bt.phase_seg2 <= btc.tseg2_max
    ):
        raise BitTimingError("bit-timing parameters out of range", errno.ERANGE)

    brp64 = clock_freq * bt.tq
    if btc.brp_inc > 1:
        brp64 //= btc.brp_inc
    brp64 = (brp64 + 500_000_000 - 1) // NSEC_PER_SEC
    if btc.brp_inc > 1:
        brp64 *= btc.brp_inc
    brp = brp64 & U32_MASK

    if brp < btc.brp_min or brp > btc.brp_max or brp == 0:
        raise BitTimingError("resulting brp out of range", errno.EINVAL)

    alltseg = bt.prop_seg + bt.phase_seg1 + bt.phase_seg2 + 1
    return replace(
        bt,
        sjw=sjw,
        brp=brp,
        bitrate=clock_freq // (brp * alltseg),
        sample_point=((tseg1 + 1) * 1000) // alltseg,
    )


def calc_bittiming_v2_6_31(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Calculate bit timing for ``bt.bitrate``; the sjw is always 1."""
    sample_point, tseg1, tseg2, brp = _search(clock_freq, bt, btc)
    return _finish(clock_freq, bt, sample_point, tseg1, tseg2, brp, 1)


def fixup_bittiming_v2_6_31(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Check given segments and tq and derive brp, bitrate and sample point."""
    return _fixup(clock_freq, bt, btc)


def calc_bittiming_v3_18(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Calculate bit timing for ``bt.bitrate``, honouring a requested sjw."""
    sample_point, tseg1, tseg2, brp = _search(clock_freq, bt, btc)
    if not bt.sjw or not btc.sjw_max:
        sjw = 1
    else:
        sjw = min(bt.sjw, btc.sjw_max)
        if tseg2 < sjw:
            sjw = tseg2
    return _finish(clock_freq, bt, sample_point, tseg1, tseg2, brp, sjw)


def fixup_bittiming_v3_18(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Check given segments and tq and derive brp, bitrate and sample point."""
    return _fixup(clock_freq, bt, btc)