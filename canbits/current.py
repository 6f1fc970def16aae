"""The bit-timing algorithms of the v5.19 and v6.3 era.

v5.19 prefers the first segment split with a strictly better sample point.
v6.3 also picks a sensible default synchronisation jump width and checks it
against the phase segments, and rounds the time quantum to the nearest
nanosecond when decoding given parameters.
"""

from __future__ import annotations

import errno
from dataclasses import replace

from canbits.legacy import fixup_bittiming_v3_18
from canbits.modern import update_sample_point
from canbits.timing import (
    CAN_CALC_MAX_ERROR,
    CAN_SYNC_SEG,
    KILO,
    NSEC_PER_SEC,
    U32_MASK,
    BitTiming,
    BitTimingConst,
    BitTimingError,
    div_round_closest,
)


def _nominal_sample_point(bt: BitTiming) -> int:
    if bt.sample_point:
        return bt.sample_point
    if bt.bitrate > 800 * KILO:
        return 750
    if bt.bitrate > 500 * KILO:
        return 800
    return 875


def _bit_time(bt: BitTiming) -> int:
    return CAN_SYNC_SEG + bt.prop_seg + bt.phase_seg1 + bt.phase_seg2


def _search(
    clock_freq: int, bt: BitTiming, btc: BitTimingConst, error_code: int
) -> tuple[int, int, int, int]:
    """Find the best prescaler and segment split.

    Returns ``(sample_point, tseg1, tseg2, brp)``.
    """
    if clock_freq <= 0:
        raise BitTimingError("clock frequency must be positive", errno.EINVAL)
    if bt.bitrate <= 0:
        raise BitTimingError("bitrate must be positive", errno.EINVAL)

    nominal = _nominal_sample_point(bt)

    best_bitrate_error = U32_MASK
    best_sample_point_error = U32_MASK
    best_tseg = 0
    best_brp = 0
    tseg1 = 0
    tseg2 = 0

    start = (btc.tseg1_max + btc.tseg2_max) * 2 + 1
    stop = (btc.tseg1_min + btc.tseg2_min) * 2
    for tseg in range(start, stop - 1, -1):
        tsegall = CAN_SYNC_SEG + tseg // 2

        divisor = (tsegall * bt.bitrate) & U32_MASK
        if divisor == 0:
            continue
        brp = clock_freq // divisor + tseg % 2
        brp = (brp // btc.brp_inc) * btc.brp_inc
        if brp < btc.brp_min or brp > btc.brp_max or brp == 0:
            continue

        bitrate = clock_freq // (brp * tsegall)
        bitrate_error = abs(bt.bitrate - bitrate)
        if bitrate_error > best_bitrate_error:
            continue
        if bitrate_error < best_bitrate_error:
            best_sample_point_error = U32_MASK

        _, split1, split2, sample_point_error = update_sample_point(
            btc, nominal, tseg // 2
        )
        if split1 is not None:
            tseg1, tseg2 = split1, split2
        if sample_point_error >= best_sample_point_error:
            continue

        best_sample_point_error = sample_point_error
        best_bitrate_error = bitrate_error
        best_tseg = tseg // 2
        best_brp = brp

        if bitrate_error == 0 and sample_point_error == 0:
            break

    if best_bitrate_error:
        error = ((best_bitrate_error * 1000) // bt.bitrate) & U32_MASK
        if error > CAN_CALC_MAX_ERROR or best_brp == 0:
            raise BitTimingError(
                f"bitrate error {error // 10}.{error % 10}% too high", error_code
            )

    sample_point, split1, split2, _ = update_sample_point(btc, nominal, best_tseg)
    if split1 is not None:
        tseg1, tseg2 = split1, split2
    return sample_point, tseg1, tseg2, best_brp


def calc_bittiming_v5_19(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Calculate bit timing for ``bt.bitrate`` optimising the sample point too."""
    sample_point, tseg1, tseg2, brp = _search(clock_freq, bt, btc, errno.EDOM)

    if not bt.sjw or not btc.sjw_max:
        sjw = 1
    else:
        sjw = min(bt.sjw, btc.sjw_max)
        if tseg2 < sjw:
            sjw = tseg2

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
        bitrate=clock_freq // (brp * (CAN_SYNC_SEG + tseg1 + tseg2)),
    )


def fixup_bittiming_v5_19(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Check given segments and tq and derive brp, bitrate and sample point."""
    return fixup_bittiming_v3_18(clock_freq, bt, btc)


def sjw_set_default(bt: BitTiming) -> BitTiming:
    """Return ``bt`` with a default sjw of phase_seg2 / 2 (at least 1) if none is set."""
    if bt.sjw:
        return bt
    return replace(bt, sjw=max(1, min(bt.phase_seg1, bt.phase_seg2 // 2)))


def sjw_check(bt: BitTiming, btc: BitTimingConst) -> None:
    """Raise BitTimingError if the sjw exceeds the controller limit or a phase segment."""
    if bt.sjw > btc.sjw_max:
        raise BitTimingError(
            f"sjw: {bt.sjw} greater than max sjw: {btc.sjw_max}", errno.EINVAL
        )
    if bt.sjw > bt.phase_seg1:
        raise BitTimingError(
            f"sjw: {bt.sjw} greater than phase-seg1: {bt.phase_seg1}", errno.EINVAL
        )
    if bt.sjw > bt.phase_seg2:
        raise BitTimingError(
            f"sjw: {bt.sjw} greater than phase-seg2: {bt.phase_seg2}", errno.EINVAL
        )


def calc_bittiming_v6_3(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Calculate bit timing for ``bt.bitrate`` with a checked sjw."""
    sample_point, tseg1, tseg2, brp = _search(clock_freq, bt, btc, errno.EINVAL)

    prop_seg = tseg1 // 2
    result = replace(
        bt,
        sample_point=sample_point,
        tq=(brp * NSEC_PER_SEC // clock_freq) & U32_MASK,
        prop_seg=prop_seg,
        phase_seg1=tseg1 - prop_seg,
        phase_seg2=tseg2,
    )
    result = sjw_set_default(result)
    sjw_check(result, btc)

    return replace(
        result,
        brp=brp,
        bitrate=clock_freq // (brp * _bit_time(result)),
    )


def fixup_bittiming_v6_3(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Check given segments and tq and derive brp, bitrate, sample point and exact tq."""
    if clock_freq <= 0:
        raise BitTimingError("clock frequency must be positive", errno.EINVAL)

    tseg1 = bt.prop_seg + bt.phase_seg1
    if tseg1 < btc.tseg1_min:
        raise BitTimingError(
            f"prop-seg + phase-seg1: {tseg1} less than tseg1-min: {btc.tseg1_min}",
            errno.EINVAL,
        )
    if tseg1 > btc.tseg1_max:
        raise BitTimingError(
            f"prop-seg + phase-seg1: {tseg1} greater than tseg1-max: {btc.tseg1_max}",
            errno.EINVAL,
        )
    if bt.phase_seg2 < btc.tseg2_min:
        raise BitTimingError(
            f"phase-seg2: {bt.phase_seg2} less than tseg2-min: {btc.tseg2_min}",
            errno.EINVAL,
        )
    if bt.phase_seg2 > btc.tseg2_max:
        raise BitTimingError(
            f"phase-seg2: {bt.phase_seg2} greater than tseg2-max: {btc.tseg2_max}",
            errno.EINVAL,
        )

    bt = sjw_set_default(bt)
    sjw_check(bt, btc)

    brp64 = clock_freq * bt.tq
    if btc.brp_inc > 1:
        brp64 //= btc.brp_inc
    brp64 = (brp64 + 500_000_000 - 1) // NSEC_PER_SEC
    if btc.brp_inc > 1:
        brp64 *= btc.brp_inc
    brp = brp64 & U32_MASK

    if brp < btc.brp_min or brp == 0:
        raise BitTimingError(
            f"resulting brp: {brp} less than brp-min: {btc.brp_min}", errno.EINVAL
        )
    if brp > btc.brp_max:
        raise BitTimingError(
            f"resulting brp: {brp} greater than brp-max: {btc.brp_max}", errno.EINVAL
        )

    bit_time = _bit_time(bt)
    return replace(
        bt,
        brp=brp,
        bitrate=clock_freq // (brp * bit_time),
        sample_point=((CAN_SYNC_SEG + tseg1) * 1000) // bit_time,
        tq=div_round_closest(brp * NSEC_PER_SEC, clock_freq),
    )