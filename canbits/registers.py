"""Register encodings of bit-timing parameters for specific CAN controllers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from canbits.timing import U32_MASK, BitTiming

_U8_MASK = 0xFF


@dataclass(frozen=True)
class RegisterFormat:
    """How a controller's bit-timing registers are titled and encoded."""

    name: str
    title: str
    encode: Callable[[BitTiming], str]

    def header(self) -> str:
        """Return the column header for the register values."""
        return self.title

    def format(self, bt: BitTiming) -> str:
        """Return the register values for ``bt`` as hex text."""
        return self.encode(bt)


def _hex32(value: int) -> str:
    return f"0x{value & U32_MASK:08x}"


def _nop(bt: BitTiming) -> str:
    return ""


def _rcar_can(bt: BitTiming) -> str:
    bcr = (
        (((bt.phase_seg1 + bt.prop_seg - 1) & 0x0F) << 20)
        | (((bt.brp - 1) & 0x3FF) << 8)
        | (((bt.sjw - 1) & 0x3) << 4)
        | ((bt.phase_seg2 - 1) & 0x07)
    )
    return _hex32(bcr << 8)


def _mcp251x(bt: BitTiming) -> str:
    cnf1 = (((bt.sjw - 1) << 6) | (bt.brp - 1)) & _U8_MASK
    cnf2 = (0x80 | ((bt.phase_seg1 - 1) << 3) | (bt.prop_seg - 1)) & _U8_MASK
    cnf3 = (bt.phase_seg2 - 1) & _U8_MASK
    return f"0x{cnf1:02x} 0x{cnf2:02x} 0x{cnf3:02x}"


def _mcp251xfd(bt: BitTiming) -> str:
    nbtcfg = (
        ((bt.brp - 1) << 24)
        | ((bt.prop_seg + bt.phase_seg1 - 1) << 16)
        | ((bt.phase_seg2 - 1) << 8)
        | (bt.sjw - 1)
    )
    return _hex32(nbtcfg)


def _bxcan(bt: BitTiming) -> str:
    btr = (
        (((bt.brp - 1) & 0x3FF) << 0)
        | (((bt.prop_seg + bt.phase_seg1 - 1) & 0xF) << 16)
        | (((bt.phase_seg2 - 1) & 0x7) << 20)
        | (((bt.sjw - 1) & 0x3) << 24)
    )
    return _hex32(btr)


def _at91(bt: BitTiming) -> str:
    br = (
        (bt.phase_seg2 - 1)
        | ((bt.phase_seg1 - 1) << 4)
        | ((bt.prop_seg - 1) << 8)
        | ((bt.sjw - 1) << 12)
        | ((bt.brp - 1) << 16)
    )
    return _hex32(br)


def _c_can(bt: BitTiming) -> str:
    btr = (
        (((bt.brp - 1) & 0x3F) << 0)
        | (((bt.sjw - 1) & 0x3) << 6)
        | (((bt.prop_seg + bt.phase_seg1 - 1) & 0xF) << 8)
        | (((bt.phase_seg2 - 1) & 0x7) << 12)
    )
    brpext = (((bt.brp - 1) & U32_MASK) >> 6) & 0xF
    return f"0x{btr & U32_MASK:04x} 0x{brpext:04x}"


def _flexcan(bt: BitTiming) -> str:
    ctrl = (
        ((bt.brp - 1) << 24)
        | ((bt.sjw - 1) << 22)
        | ((bt.phase_seg1 - 1) << 19)
        | ((bt.phase_seg2 - 1) << 16)
        | ((bt.prop_seg - 1) << 0)
    )
    return _hex32(ctrl)


def _mcan(bt: BitTiming) -> str:
    nbtp = (
        (((bt.brp - 1) & 0x1FF) << 16)
        | (((bt.sjw - 1) & 0x7F) << 25)
        | (((bt.prop_seg + bt.phase_seg1 - 1) & 0xFF) << 8)
        | (((bt.phase_seg2 - 1) & 0x7F) << 0)
    )
    return _hex32(nbtp)


def _sja1000(bt: BitTiming) -> str:
    btr0 = (((bt.brp - 1) & 0x3F) | (((bt.sjw - 1) & 0x3) << 6)) & _U8_MASK
    btr1 = (
        ((bt.prop_seg + bt.phase_seg1 - 1) & 0xF) | (((bt.phase_seg2 - 1) & 0x7) << 4)
    ) & _U8_MASK
    return f"0x{btr0:02x} 0x{btr1:02x}"


def _ti_hecc(bt: BitTiming) -> str:
    can_btc = (bt.phase_seg2 - 1) & 0x7
    can_btc |= ((bt.phase_seg1 + bt.prop_seg - 1) & 0xF) << 3
    can_btc |= ((bt.sjw - 1) & 0x3) << 8
    can_btc |= ((bt.brp - 1) & 0xFF) << 16
    return _hex32(can_btc)


NOP = RegisterFormat("nop", "", _nop)
RCAR_CAN = RegisterFormat("rcar_can", f"{'CiBCR':>10}", _rcar_can)
MCP251X = RegisterFormat("mcp251x", "CNF1 CNF2 CNF3", _mcp251x)
MCP251XFD = RegisterFormat("mcp251xfd", f"{'NBTCFG':>10}", _mcp251xfd)
BXCAN = RegisterFormat("bxcan", f"{'CAN_BTR':>10}", _bxcan)
AT91 = RegisterFormat("at91", f"{'CAN_BR':>10}", _at91)
C_CAN = RegisterFormat("c_can", f"{'BTR BRPEXT':>13}", _c_can)
FLEXCAN = RegisterFormat("flexcan", f"{'CAN_CTRL':>10}", _flexcan)
MCAN = RegisterFormat("mcan", f"{'NBTP':>10}", _mcan)
SJA1000 = RegisterFormat("sja1000", f"{'BTR0 BTR1':>9}", _sja1000)
TI_HECC = RegisterFormat("ti_hecc", f"{'CANBTC':>10}", _ti_hecc)

REGISTER_FORMATS: dict[str, RegisterFormat] = {
    fmt.name: fmt
    for fmt in (
        NOP, RCAR_CAN, MCP251X, MCP251XFD, BXCAN, AT91,
        C_CAN, FLEXCAN, MCAN, SJA1000, TI_HECC,
    )
}