"""Data types, constants and small helpers shared by the bit-timing algorithms."""

from __future__ import annotations

import errno
from dataclasses import dataclass
from typing import Optional

CAN_SYNC_SEG = 1
"""Length of the synchronisation segment in time quanta."""

CAN_CALC_MAX_ERROR = 50
"""Largest tolerated bitrate error, in one-tenth of a percent."""

NSEC_PER_SEC = 1_000_000_000
KILO = 1000
U32_MASK = 0xFFFFFFFF


class BitTimingError(ValueError):
    """Raised when bit-timing parameters cannot be calculated or are out of range.

    ``code`` holds the errno value the calculation reports (EDOM, ERANGE or EINVAL).
    """

    def __init__(self, message: str, code: int = errno.EINVAL) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class BitTiming:
    """Bit-timing parameters of a CAN controller; all times in time quanta except tq (ns)."""

    bitrate: int = 0
    sample_point: int = 0
    tq: int = 0
    prop_seg: int = 0
    phase_seg1: int = 0
    phase_seg2: int = 0
    sjw: int = 0
    brp: int = 0


@dataclass(frozen=True)
class BitTimingConst:
    """Hardware limits of a CAN controller's bit-timing registers."""

    name: str
    tseg1_min: int
    tseg1_max: int
    tseg2_min: int
    tseg2_max: int
    sjw_max: int
    brp_min: int
    brp_max: int
    brp_inc: int = 1


@dataclass(frozen=True)
class RefClock:
    """A CAN system clock frequency in Hz with an optional description."""

    clk: int
    name: Optional[str] = None


def cia_sample_point(bitrate: int) -> int:
    """Return the CiA recommended sample point (in tenths of a percent) for a bitrate."""
    if bitrate > 800_000:
        return 750
    if bitrate > 500_000:
        return 800
    return 875


def div_round_closest(dividend: int, divisor: int) -> int:
    """Divide two non-negative integers, rounding to the nearest integer."""
    return (dividend + divisor // 2) // divisor