import pytest

from canbits.registers import (
    AT91,
    BXCAN,
    C_CAN,
    FLEXCAN,
    MCAN,
    MCP251X,
    MCP251XFD,
    NOP,
    RCAR_CAN,
    REGISTER_FORMATS,
    SJA1000,
    TI_HECC,
)
from canbits.timing import BitTiming

BT = BitTiming(
    bitrate=500000, sample_point=875, tq=125, prop_seg=6,
    phase_seg1=7, phase_seg2=2, sjw=1, brp=2,
)


def _ints(text):
    return [int(part, 16) for part in text.split()]


def test_nop_is_empty():
    assert NOP.header() == ""
    assert NOP.format(BT) == ""


@pytest.mark.parametrize(
    "fmt,width,title",
    [
        (RCAR_CAN, 10, "CiBCR"),
        (MCP251XFD, 10, "NBTCFG"),
        (BXCAN, 10, "CAN_BTR"),
        (AT91, 10, "CAN_BR"),
        (C_CAN, 13, "BTR BRPEXT"),
        (FLEXCAN, 10, "CAN_CTRL"),
        (MCAN, 10, "NBTP"),
        (SJA1000, 9, "BTR0 BTR1"),
        (TI_HECC, 10, "CANBTC"),
    ],
)
def test_headers_are_right_aligned(fmt, width, title):
    header = fmt.header()
    assert len(header) == width
    assert header.strip() == title


def test_mcp251x_header():
    assert MCP251X.header() == "CNF1 CNF2 CNF3"


def test_mcp251x_fields():
    cnf1, cnf2, cnf3 = _ints(MCP251X.format(BT))
    assert cnf1 >> 6 == BT.sjw - 1
    assert cnf1 & 0x3F == BT.brp - 1
    assert cnf2 & 0x80
    assert (cnf2 >> 3) & 0x7 == BT.phase_seg1 - 1
    assert cnf2 & 0x7 == BT.prop_seg - 1
    assert cnf3 == BT.phase_seg2 - 1


def test_mcp251xfd_fields():
    (value,) = _ints(MCP251XFD.format(BT))
    assert value >> 24 == BT.brp - 1
    assert (value >> 16) & 0xFF == BT.prop_seg + BT.phase_seg1 - 1
    assert (value >> 8) & 0xFF == BT.phase_seg2 - 1
    assert value & 0xFF == BT.sjw - 1


def test_sja1000_fields():
    btr0, btr1 = _ints(SJA1000.format(BT))
    assert btr0 & 0x3F == BT.brp - 1
    assert btr0 >> 6 == BT.sjw - 1
    assert btr1 & 0xF == BT.prop_seg + BT.phase_seg1 - 1
    assert btr1 >> 4 == BT.phase_seg2 - 1


def test_flexcan_fields():
    (value,) = _ints(FLEXCAN.format(BT))
    assert value >> 24 == BT.brp - 1
    assert (value >> 22) & 0x3 == BT.sjw - 1
    assert (value >> 19) & 0x7 == BT.phase_seg1 - 1
    assert (value >> 16) & 0x7 == BT.phase_seg2 - 1
    assert value & 0xFFFF == BT.prop_seg - 1


def test_at91_fields():
    (value,) = _ints(AT91.format(BT))
    assert value & 0xF == BT.phase_seg2 - 1
    assert (value >> 4) & 0xF == BT.phase_seg1 - 1
    assert (value >> 8) & 0xF == BT.prop_seg - 1
    assert (value >> 12) & 0xF == BT.sjw - 1
    assert value >> 16 == BT.brp - 1


def test_rcar_can_fields():
    (value,) = _ints(RCAR_CAN.format(BT))
    bcr = value >> 8
    assert (bcr >> 20) & 0xF == BT.phase_seg1 + BT.prop_seg - 1
    assert (bcr >> 8) & 0x3FF == BT.brp - 1
    assert (bcr >> 4) & 0x3 == BT.sjw - 1
    assert bcr & 0x7 == BT.phase_seg2 - 1
    assert value & 0xFF == 0


def test_bxcan_and_mcan_fields():
    (btr,) = _ints(BXCAN.format(BT))
    assert btr & 0x3FF == BT.brp - 1
    assert (btr >> 16) & 0xF == BT.prop_seg + BT.phase_seg1 - 1
    assert (btr >> 20) & 0x7 == BT.phase_seg2 - 1
    assert (btr >> 24) & 0x3 == BT.sjw - 1
    (nbtp,) = _ints(MCAN.format(BT))
    assert (nbtp >> 16) & 0x1FF == BT.brp - 1
    assert nbtp >> 25 == BT.sjw - 1
    assert (nbtp >> 8) & 0xFF == BT.prop_seg + BT.phase_seg1 - 1
    assert nbtp & 0x7F == BT.phase_seg2 - 1


def test_c_can_brp_extension():
    bt = BitTiming(prop_seg=1, phase_seg1=1, phase_seg2=1, sjw=1, brp=100)
    btr, brpext = _ints(C_CAN.format(bt))
    assert ((brpext << 6) | (btr & 0x3F)) + 1 == bt.brp


def test_ti_hecc_fields():
    (value,) = _ints(TI_HECC.format(BT))
    assert value & 0x7 == BT.phase_seg2 - 1
    assert (value >> 3) & 0xF == BT.phase_seg1 + BT.prop_seg - 1
    assert (value >> 8) & 0x3 == BT.sjw - 1
    assert (value >> 16) & 0xFF == BT.brp - 1


def test_zero_fields_wrap_like_unsigned():
    out = MCP251XFD.format(BitTiming())
    assert out == "0xffffffff"


def test_registry_lookup():
    fmt = REGISTER_FORMATS["sja1000"]
    assert fmt.header() == "BTR0 BTR1"
    assert _ints(fmt.format(BT)) == _ints(SJA1000.format(BT))
    assert len(REGISTER_FORMATS) == 11