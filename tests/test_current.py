import errno

import pytest

from canbits.current import (
    calc_bittiming_v5_19,
    calc_bittiming_v6_3,
    fixup_bittiming_v5_19,
    fixup_bittiming_v6_3,
    sjw_check,
    sjw_set_default,
)
from canbits.timing import BitTiming, BitTimingConst, BitTimingError

SJA1000 = BitTimingConst("sja1000", 1, 16, 1, 8, 4, 1, 64, 1)
MCP251XFD = BitTimingConst("mcp251xfd", 2, 256, 1, 128, 128, 1, 256, 1)

CALCS = [calc_bittiming_v5_19, calc_bittiming_v6_3]


def _total(bt):
    return 1 + bt.prop_seg + bt.phase_seg1 + bt.phase_seg2


@pytest.mark.parametrize("calc", CALCS)
def test_exact_bitrate_and_cia_sample_point(calc):
    bt = calc(8_000_000, BitTiming(bitrate=500_000), SJA1000)
    assert bt.bitrate == 500_000
    assert bt.sample_point == 875
    assert bt.brp == 1


@pytest.mark.parametrize("calc", CALCS)
@pytest.mark.parametrize("bitrate", [1_000_000, 500_000, 250_000, 125_000, 50_000])
def test_bitrate_consistent_with_segments(calc, bitrate):
    clock = 40_000_000
    bt = calc(clock, BitTiming(bitrate=bitrate), MCP251XFD)
    assert bt.bitrate == clock // (bt.brp * _total(bt))
    assert bt.tq == bt.brp * 1_000_000_000 // clock
    assert MCP251XFD.brp_min <= bt.brp <= MCP251XFD.brp_max
    assert MCP251XFD.tseg2_min <= bt.phase_seg2 <= MCP251XFD.tseg2_max


@pytest.mark.parametrize("calc", CALCS)
def test_sample_point_does_not_exceed_nominal(calc):
    bt = calc(24_000_000, BitTiming(bitrate=250_000, sample_point=700), MCP251XFD)
    assert 0 < bt.sample_point <= 700


def test_v5_19_impossible_bitrate_reports_edom():
    with pytest.raises(BitTimingError) as info:
        calc_bittiming_v5_19(1000, BitTiming(bitrate=1_000_000), SJA1000)
    assert info.value.code == errno.EDOM


def test_v6_3_impossible_bitrate_reports_einval():
    with pytest.raises(BitTimingError) as info:
        calc_bittiming_v6_3(1000, BitTiming(bitrate=1_000_000), SJA1000)
    assert info.value.code == errno.EINVAL


def test_v5_19_sjw_clamped_to_limits():
    bt = calc_bittiming_v5_19(8_000_000, BitTiming(bitrate=500_000, sjw=10), SJA1000)
    assert bt.sjw <= SJA1000.sjw_max
    assert bt.sjw <= bt.phase_seg2


def test_v6_3_default_sjw_within_phase_segments():
    bt = calc_bittiming_v6_3(40_000_000, BitTiming(bitrate=500_000), MCP251XFD)
    assert 1 <= bt.sjw <= bt.phase_seg1
    assert bt.sjw <= bt.phase_seg2
    assert bt.sjw <= MCP251XFD.sjw_max


def test_v6_3_too_large_requested_sjw_raises():
    with pytest.raises(BitTimingError) as info:
        calc_bittiming_v6_3(8_000_000, BitTiming(bitrate=500_000, sjw=4), SJA1000)
    assert info.value.code == errno.EINVAL


def test_both_versions_agree_on_segments():
    a = calc_bittiming_v5_19(40_000_000, BitTiming(bitrate=500_000), MCP251XFD)
    b = calc_bittiming_v6_3(40_000_000, BitTiming(bitrate=500_000), MCP251XFD)
    assert (a.brp, a.prop_seg, a.phase_seg1, a.phase_seg2) == (
        b.brp, b.prop_seg, b.phase_seg1, b.phase_seg2
    )
    assert a.bitrate == b.bitrate


@pytest.mark.parametrize(
    "calc,fixup",
    [(calc_bittiming_v5_19, fixup_bittiming_v5_19), (calc_bittiming_v6_3, fixup_bittiming_v6_3)],
)
def test_fixup_round_trip(calc, fixup):
    clock = 40_000_000
    calculated = calc(clock, BitTiming(bitrate=250_000), MCP251XFD)
    decoded = fixup(clock, BitTiming(
        tq=calculated.tq,
        prop_seg=calculated.prop_seg,
        phase_seg1=calculated.phase_seg1,
        phase_seg2=calculated.phase_seg2,
        sjw=calculated.sjw,
    ), MCP251XFD)
    assert decoded.brp == calculated.brp
    assert decoded.bitrate == calculated.bitrate
    assert decoded.sample_point == calculated.sample_point


def test_fixup_v6_3_rounds_tq_to_nearest():
    clock = 24_000_000
    bt = fixup_bittiming_v6_3(clock, BitTiming(tq=125, prop_seg=3, phase_seg1=4,
                                               phase_seg2=4, sjw=1), MCP251XFD)
    assert bt.brp == 3
    assert abs(bt.tq * clock - bt.brp * 1_000_000_000) * 2 <= clock


def test_fixup_v6_3_tseg1_below_min():
    with pytest.raises(BitTimingError) as info:
        fixup_bittiming_v6_3(40_000_000, BitTiming(tq=100, prop_seg=0, phase_seg1=1,
                                                   phase_seg2=4), MCP251XFD)
    assert info.value.code == errno.EINVAL
    assert "tseg1-min" in str(info.value)


def test_fixup_v6_3_phase_seg2_above_max():
    with pytest.raises(BitTimingError) as info:
        fixup_bittiming_v6_3(8_000_000, BitTiming(tq=125, prop_seg=2, phase_seg1=2,
                                                  phase_seg2=9), SJA1000)
    assert "tseg2-max" in str(info.value)


def test_fixup_v6_3_brp_above_max():
    with pytest.raises(BitTimingError) as info:
        fixup_bittiming_v6_3(80_000_000, BitTiming(tq=100_000, prop_seg=2, phase_seg1=2,
                                                   phase_seg2=2, sjw=1), SJA1000)
    assert "brp-max" in str(info.value)


def test_fixup_v5_19_sjw_over_max_is_erange():
    with pytest.raises(BitTimingError) as info:
        fixup_bittiming_v5_19(8_000_000, BitTiming(tq=125, prop_seg=2, phase_seg1=2,
                                                   phase_seg2=2, sjw=5), SJA1000)
    assert info.value.code == errno.ERANGE


def test_sjw_set_default_keeps_given_value():
    bt = BitTiming(phase_seg1=5, phase_seg2=5, sjw=2)
    assert sjw_set_default(bt) == bt


def test_sjw_set_default_uses_half_phase_seg2():
    assert sjw_set_default(BitTiming(phase_seg1=7, phase_seg2=8)).sjw == 4


def test_sjw_set_default_at_least_one():
    assert sjw_set_default(BitTiming(phase_seg1=7, phase_seg2=1)).sjw == 1


def test_sjw_check_errors():
    with pytest.raises(BitTimingError, match="max sjw"):
        sjw_check(BitTiming(sjw=5, phase_seg1=8, phase_seg2=8), SJA1000)
    with pytest.raises(BitTimingError, match="phase-seg1"):
        sjw_check(BitTiming(sjw=3, phase_seg1=2, phase_seg2=8), SJA1000)
    with pytest.raises(BitTimingError, match="phase-seg2"):
        sjw_check(BitTiming(sjw=3, phase_seg1=8, phase_seg2=2), SJA1000)