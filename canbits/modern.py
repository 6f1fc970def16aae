"""The bit-timing algorithms of the v4.8 and v5.16 era.

Both search every time-segment length for the prescaler with the smallest
bitrate error and, among equally good prescalers, the segment split whose
sample point comes closest to the nominal one without exceeding it.
"""

from __future__ import annotations

import errno
from dataclasses import replace
from typing import Optional

from canbits.legacy import fixup_bittiming_v3_18
from canbits.timing import (
    CAN_CALC_MAX_ERROR,
    CAN_SYNC_SEG,
    NSEC_PER_SEC,
    U32_MASK,
    BitTiming,
    BitTimingConst,
    BitTimingError,
    cia_sample_point,
)


def update_sample_point(
    btc: BitTimingConst, sample_point_nominal: int, tseg: int
) -> tuple[int, Optional[int], Optional[int], int]:
    """Split ``tseg`` into tseg1 and tseg2 for a nominal sample point.

    Two splits are tried and the one whose sample point is closest to, but not
    above, the nominal one wins. Returns ``(sample_point, tseg1, tseg2, error)``.
    When neither split qualifies the sample point is 0, tseg1 and tseg2 are
    ``None`` and the error is ``U32_MASK``.
    """
    best_error = U32_MASK
    best_sample_point = 0
    best_tseg1: Optional[int] = None
    best_tseg2: Optional[int] = None

    for shift in (0, 1):
        tseg2 = (
            tseg + CAN_SYNC_SEG
            - (sample_point_nominal * (tseg + CAN_SYNC_SEG)) // 1000
            - shift
        ) & U32_MASK
        tseg2 = min(max(tseg2, btc.tseg2_min), btc.tseg2_max)
        tseg1 = (tseg - tseg2) & U32_MASK
        if tseg1 > btc.tseg1_max:
            tseg1 = btc.tseg1_max
            tseg2 = (tseg - tseg1) & U32_MASK

        numerator = (1000 * ((tseg + CAN_SYNC_SEG - tseg2) & U32_MASK)) & U32_MASK
        sample_point = numerator // (tseg + CAN_SYNC_SEG)
        error = abs(sample_point_nominal - sample_point)

        if sample_point <= sample_point_nominal and error < best_error:
            best_sample_point = sample_point
            best_error = error
            best_tseg1 = tseg1
            best_tseg2 = tseg2

    return best_sample_point, best_tseg1, best_tseg2, best_error


def _calc(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    if clock_freq <= 0:
        raise BitTimingError("clock frequency must be positive", errno.EINVAL)
    if bt.bitrate <= 0:
        raise BitTimingError("bitrate must be positive", errno.EINVAL)

    nominal = bt.sample_point or cia_sample_point(bt.bitrate)

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
        if sample_point_error > best_sample_point_error:
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
                f"bitrate error {error // 10}.{error % 10}% too high", errno.EDOM
            )

    sample_point, split1, split2, _ = update_sample_point(btc, nominal, best_tseg)
    if split1 is not None:
        tseg1, tseg2 = split1, split2

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
        tq=(best_brp * NSEC_PER_SEC // clock_freq) & U32_MASK,
        prop_seg=prop_seg,
        phase_seg1=tseg1 - prop_seg,
        phase_seg2=tseg2,
        sjw=sjw,
        brp=best_brp,
        bitrate=clock_freq // (best_brp * (CAN_SYNC_SEG + tseg1 + tseg2)),
    )


def calc_bittiming_v4_8(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Calculate bit timing for ``bt.bitrate`` optimising the sample point too."""
    return _calc(clock_freq, bt, btc)


def fixup_bittiming_v4_8(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Check given segments and tq and derive brp, bitrate and sample point."""
    return fixup_bittiming_v3_18(clock_freq, bt, btc)


def calc_bittiming_v5_16(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Calculate bit timing for ``bt.bitrate`` optimising the sample point too."""
    return _calc(clock_freq, bt, btc)


def fixup_bittiming_v5_16(clock_freq: int, bt: BitTiming, btc: BitTimingConst) -> BitTiming:
    """Check given segments and tq and derive brp, bitrate and sample point."""
    return fixup_bittiming_v3_18(clock_freq, bt, btc)