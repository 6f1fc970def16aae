"""The registry of bit-timing algorithms, newest first."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from canbits.current import (
    calc_bittiming_v5_19,
    calc_bittiming_v6_3,
    fixup_bittiming_v5_19,
    fixup_bittiming_v6_3,
)
from canbits.legacy import (
    calc_bittiming_v2_6_31,
    calc_bittiming_v3_18,
    fixup_bittiming_v2_6_31,
    fixup_bittiming_v3_18,
)
from canbits.modern import (
    calc_bittiming_v4_8,
    calc_bittiming_v5_16,
    fixup_bittiming_v4_8,
    fixup_bittiming_v5_16,
)
from canbits.timing import BitTiming, BitTimingConst

TimingFunction = Callable[[int, BitTiming, BitTimingConst], BitTiming]


@dataclass(frozen=True)
class Algorithm:
    """A named pair of bit-timing calculation and decoding functions."""

    name: str
    calc_bittiming: TimingFunction
    fixup_bittiming: TimingFunction


ALGORITHMS: tuple[Algorithm, ...] = (
    Algorithm("v6.3", calc_bittiming_v6_3, fixup_bittiming_v6_3),
    Algorithm("v5.19", calc_bittiming_v5_19, fixup_bittiming_v5_19),
    Algorithm("v5.16", calc_bittiming_v5_16, fixup_bittiming_v5_16),
    Algorithm("v4.8", calc_bittiming_v4_8, fixup_bittiming_v4_8),
    Algorithm("v3.18", calc_bittiming_v3_18, fixup_bittiming_v3_18),
    Algorithm("v2.6.31", calc_bittiming_v2_6_31, fixup_bittiming_v2_6_31),
)

DEFAULT_ALGORITHM = ALGORITHMS[0]


def algorithm_names() -> list[str]:
    """Return the names of all algorithms, the default first."""
    return [alg.name for alg in ALGORITHMS]


def find_algorithm(name: str) -> Algorithm:
    """Return the algorithm called ``name``; raise KeyError if there is none."""
    for alg in ALGORITHMS:
        if alg.name == name:
            return alg
    raise KeyError(f"unknown CAN calc bit timing algorithm '{name}'")