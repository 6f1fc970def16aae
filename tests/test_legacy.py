import errno

import pytest

from canbits.legacy import (
    calc_bittiming_v2_6_31,
    calc_bittiming_v3_18,
    fixup_bittiming_v2_6_31,
    fixup_bittiming_v3_18,
    update_spt,
)
from canbits.timing import (
    CAN_CALC_MAX_ERROR,
    BitTiming,
    BitTimingConst,
    BitTimingError,
    cia_sample_point,
)

SJA1000 = BitTimingConst("sja1000", 1, 16, 1, 8, 4, 1, 64, 1)
AT91 = BitTimingConst("at91", 4, 16, 2, 8, 4, 2, 128, 1)
CLOCK = 8_000_000

CALCS = [calc_bittiming_v2_6_31, calc_bittiming_v3_18]
FIXUPS = [fixup_bittiming_v2_6_31, fixup_bittiming_v3_18]
PAIRS = list(zip(CALCS, FIXUPS))
COMMON = [1000000, 800000, 666666, 500000, 250000, 125000,
          100000, 83333, 50000, 33333, 20000, 10000]


def _check_limits(result, btc):
    tseg1 = result.prop_seg + result.phase_seg1
    assert btc.tseg1_min <= tseg1 <= btc.tseg1_max
    assert btc.tseg2_min <= result.phase_seg2 <= btc.tseg2_max
    assert btc.brp_min <= result.brp <= btc.brp_max
    assert 0 < result.sample_point <= 1000


@pytest.mark.parametrize("calc", CALCS)
@pytest.mark.parametrize("bitrate", COMMON)
def test_calc_invariants(calc, bitrate):
    result = calc(CLOCK, BitTiming(bitrate=bitrate), SJA1000)
    _check_limits(result, SJA1000)
    bit_tq = 1 + result.prop_seg + result.phase_seg1 + result.phase_seg2
    assert result.bitrate == CLOCK // (result.brp * bit_tq)
    assert abs(result.bitrate - bitrate) * 1000 // bitrate <= CAN_CALC_MAX_ERROR


@pytest.mark.parametrize("calc", CALCS)
@pytest.mark.parametrize("bitrate", [1000000, 500000, 125000])
def test_calc_exact_on_at91(calc, bitrate):
    result = calc(66_000_000, BitTiming(bitrate=bitrate), AT91)
    _check_limits(result, AT91)
    assert result.bitrate == bitrate


@pytest.mark.parametrize("calc", CALCS)
def test_calc_500k_worked_example(calc):
    result = calc(CLOCK, BitTiming(bitrate=500000), SJA1000)
    assert result.bitrate == 500000
    assert result.sample_point == cia_sample_point(500000)
    assert result.tq == 125
    assert (result.prop_seg, result.phase_seg1, result.phase_seg2) == (6, 7, 2)


@pytest.mark.parametrize("calc, fixup", PAIRS)
@pytest.mark.parametrize("bitrate", COMMON)
def test_fixup_round_trip(calc, fixup, bitrate):
    calc_bt = calc(CLOCK, BitTiming(bitrate=bitrate), SJA1000)
    given = BitTiming(
        tq=calc_bt.tq,
        prop_seg=calc_bt.prop_seg,
        phase_seg1=calc_bt.phase_seg1,
        phase_seg2=calc_bt.phase_seg2,
        sjw=calc_bt.sjw,
    )
    fixed = fixup(CLOCK, given, SJA1000)
    assert fixed.brp == calc_bt.brp
    assert fixed.bitrate == calc_bt.bitrate
    assert fixed.sample_point == calc_bt.sample_point


@pytest.mark.parametrize("calc", CALCS)
def test_calc_impossible_bitrate(calc):
    with pytest.raises(BitTimingError) as info:
        calc(CLOCK, BitTiming(bitrate=1000), SJA1000)
    assert info.value.code == errno.EDOM


@pytest.mark.parametrize("calc", CALCS)
def test_calc_zero_bitrate(calc):
    with pytest.raises(BitTimingError):
        calc(CLOCK, BitTiming(), SJA1000)


def test_v2_6_31_ignores_requested_sjw():
    plain = calc_bittiming_v2_6_31(CLOCK, BitTiming(bitrate=500000), SJA1000)
    asked = calc_bittiming_v2_6_31(CLOCK, BitTiming(bitrate=500000, sjw=3), SJA1000)
    assert asked.sjw == plain.sjw


def test_v3_18_honours_requested_sjw():
    result = calc_bittiming_v3_18(CLOCK, BitTiming(bitrate=500000, sjw=2), SJA1000)
    assert result.sjw == 2


def test_v3_18_default_sjw_matches_v2_6_31():
    old = calc_bittiming_v2_6_31(CLOCK, BitTiming(bitrate=250000), SJA1000)
    new = calc_bittiming_v3_18(CLOCK, BitTiming(bitrate=250000), SJA1000)
    assert new.sjw == old.sjw


def test_v3_18_caps_sjw_to_phase_seg2():
    result = calc_bittiming_v3_18(CLOCK, BitTiming(bitrate=500000, sjw=10), SJA1000)
    assert result.sjw == min(SJA1000.sjw_max, result.phase_seg2)
    assert result.sjw <= result.phase_seg2


def test_calc_does_not_modify_input():
    bt = BitTiming(bitrate=500000)
    result = calc_bittiming_v3_18(CLOCK, bt, SJA1000)
    assert bt == BitTiming(bitrate=500000)
    assert result.brp > 0


@pytest.mark.parametrize("tseg", [7, 15, 24, 30])
def test_update_spt_splits_tseg(tseg):
    spt, tseg1, tseg2 = update_spt(SJA1000, 875, tseg)
    assert tseg1 + tseg2 == tseg
    assert tseg1 <= SJA1000.tseg1_max
    assert spt <= 1000


@pytest.mark.parametrize("fixup", FIXUPS)
def test_fixup_tseg1_out_of_range(fixup):
    with pytest.raises(BitTimingError) as info:
        fixup(CLOCK, BitTiming(tq=125, prop_seg=10, phase_seg1=10, phase_seg2=2), SJA1000)
    assert info.value.code == errno.ERANGE


@pytest.mark.parametrize("fixup", FIXUPS)
def test_fixup_sjw_out_of_range(fixup):
    with pytest.raises(BitTimingError) as info:
        fixup(
            CLOCK,
            BitTiming(tq=125, prop_seg=6, phase_seg1=7, phase_seg2=2,
                      sjw=SJA1000.sjw_max + 1),
            SJA1000,
        )
    assert info.value.code == errno.ERANGE


@pytest.mark.parametrize("fixup", FIXUPS)
def test_fixup_brp_out_of_range(fixup):
    with pytest.raises(BitTimingError) as info:
        fixup(CLOCK, BitTiming(tq=1_000_000, prop_seg=6, phase_seg1=7, phase_seg2=2), SJA1000)
    assert info.value.code == errno.EINVAL


@pytest.mark.parametrize("fixup", FIXUPS)
def test_fixup_defaults_sjw(fixup):
    bt = BitTiming(tq=125, prop_seg=6, phase_seg1=7, phase_seg2=2)
    assert fixup(CLOCK, bt, SJA1000).sjw == 1