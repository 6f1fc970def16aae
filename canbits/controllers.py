"""Bit-timing limits and reference clocks of known CAN controllers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

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
    SJA1000,
    TI_HECC,
    RegisterFormat,
)
from canbits.timing import BitTimingConst, RefClock


@dataclass(frozen=True)
class Controller:
    """A CAN controller: arbitration limits, optional data-phase limits and clocks."""

    bittiming_const: BitTimingConst
    data_bittiming_const: Optional[BitTimingConst] = None
    ref_clks: tuple[RefClock, ...] = ()
    register_format: RegisterFormat = NOP
    data_register_format: Optional[RegisterFormat] = None


def _btc(name: str, tseg1_min: int, tseg1_max: int, tseg2_min: int, tseg2_max: int,
         sjw_max: int, brp_min: int, brp_max: int) -> BitTimingConst:
    return BitTimingConst(name, tseg1_min, tseg1_max, tseg2_min, tseg2_max,
                          sjw_max, brp_min, brp_max, 1)


_CIA = "CIA recommendation"
_CIA_CLOCKS = (RefClock(20000000, _CIA), RefClock(40000000, _CIA))


def _pucan(name: str) -> tuple[BitTimingConst, BitTimingConst]:
    return (
        _btc(name, 1, 1 << 8, 1, 1 << 7, 1 << 7, 1, 1 << 10),
        _btc(name, 1, 1 << 5, 1, 1 << 4, 1 << 4, 1, 1 << 10),
    )


_PCAN_USB_FD = _pucan("pcan_usb_fd")
_PEAK_CANFD = _pucan("peak_canfd")

CONTROLLERS: tuple[Controller, ...] = (
    Controller(_btc("rcar_can", 4, 16, 2, 8, 4, 1, 1024),
               ref_clks=(RefClock(65000000),), register_format=RCAR_CAN),
    Controller(_btc("rcar_canfd", 2, 128, 2, 32, 32, 1, 1024),
               _btc("rcar_canfd", 2, 16, 2, 8, 8, 1, 256),
               ref_clks=_CIA_CLOCKS),
    Controller(_btc("rcar_canfd (CC)", 4, 16, 2, 8, 4, 1, 1024)),
    Controller(_btc("hi311x", 2, 16, 2, 8, 4, 1, 64),
               ref_clks=(RefClock(24000000),)),
    Controller(_btc("mcp251x", 3, 16, 2, 8, 4, 1, 64),
               ref_clks=(
                   RefClock(8000000 // 2, "8 MHz OSC"),
                   RefClock(12000000 // 2, "12 MHz OSC"),
                   RefClock(16000000 // 2, "16 MHz OSC"),
                   RefClock(20000000 // 2, "20 MHz OSC"),
               ),
               register_format=MCP251X),
    Controller(_btc("mcp251xfd", 2, 256, 1, 128, 128, 1, 256),
               _btc("mcp251xfd", 1, 32, 1, 16, 16, 1, 256),
               ref_clks=_CIA_CLOCKS, register_format=MCP251XFD),
    Controller(_btc("usb_8dev", 1, 16, 1, 8, 4, 1, 1024),
               ref_clks=(RefClock(32000000),)),
    Controller(_btc("ems_usb", 1, 16, 1, 8, 4, 1, 64),
               ref_clks=(RefClock(8000000),)),
    Controller(_btc("esd_usb2", 1, 16, 1, 8, 4, 1, 1024),
               ref_clks=(RefClock(60000000, "CAN-USB/2"),
                         RefClock(36000000, "CAN-USB/Micro"))),
    Controller(_btc("bxcan", 1, 16, 1, 8, 4, 1, 1024),
               ref_clks=(RefClock(48000000),), register_format=BXCAN),
    Controller(_btc("CANtact Pro", 1, 16, 1, 8, 4, 1, 1024),
               _btc("CANtact Pro", 1, 16, 1, 8, 4, 1, 1024),
               ref_clks=(RefClock(24000000, "CANtact Pro (original)"),
                         RefClock(40000000, _CIA))),
    Controller(_btc("kvaser_usb", 1, 16, 1, 8, 4, 1, 64),
               ref_clks=(RefClock(8000000),)),
    Controller(_btc("kvaser_usb_kcan", 1, 255, 1, 32, 16, 1, 8192),
               _btc("kvaser_usb_kcan", 1, 255, 1, 32, 16, 1, 8192),
               ref_clks=(RefClock(80000000),)),
    Controller(_btc("kvaser_usb_flex", 4, 16, 2, 8, 4, 1, 256),
               ref_clks=(RefClock(24000000),)),
    Controller(_btc("pcan_usb_pro", 1, 16, 1, 8, 4, 1, 1024),
               ref_clks=(RefClock(56000000),)),
    Controller(_PCAN_USB_FD[0], _PCAN_USB_FD[1],
               ref_clks=(RefClock(80000000),)),
    Controller(_btc("softing", 1, 16, 1, 8, 4, 1, 32),
               ref_clks=(RefClock(8000000), RefClock(16000000))),
    Controller(_btc("at91", 4, 16, 2, 8, 4, 2, 128),
               ref_clks=(RefClock(66000000, "sama5d3"),
                         RefClock(99532800, "ronetix PM9263"),
                         RefClock(100000000)),
               register_format=AT91),
    Controller(_btc("cc770", 1, 16, 1, 8, 4, 1, 64),
               ref_clks=(RefClock(8000000),)),
    Controller(_btc("c_can", 2, 16, 1, 8, 4, 1, 1024),
               ref_clks=(RefClock(24000000),), register_format=C_CAN),
    Controller(_btc("flexcan", 4, 16, 2, 8, 4, 1, 256),
               ref_clks=(
                   RefClock(24000000, "mx28"),
                   RefClock(30000000, "mx6"),
                   RefClock(49875000),
                   RefClock(66000000),
                   RefClock(66500000, "mx25"),
                   RefClock(66666666),
                   RefClock(83368421, "vybrid"),
               ),
               register_format=FLEXCAN),
    Controller(_btc("flexcan-fd", 2, 96, 2, 32, 16, 1, 1024),
               _btc("flexcan-fd", 2, 39, 2, 8, 4, 1, 1024),
               ref_clks=_CIA_CLOCKS),
    Controller(_btc("grcan", 1 + 1, 15 + 1, 2, 8, 4, 0 + 1, 255 + 1)),
    Controller(_btc("ifi_canfd", 1, 256, 2, 256, 128, 2, 512),
               _btc("ifi_canfd", 1, 256, 2, 256, 128, 2, 512),
               ref_clks=_CIA_CLOCKS),
    Controller(_btc("janz-ican3", 1, 16, 1, 8, 4, 1, 64),
               ref_clks=(RefClock(8000000),)),
    Controller(_btc("kvaser_pciefd", 1, 512, 1, 32, 16, 1, 8192),
               _btc("kvaser_pciefd", 1, 512, 1, 32, 16, 1, 8192),
               ref_clks=_CIA_CLOCKS),
    Controller(_btc("mscan", 4, 16, 2, 8, 4, 1, 64),
               ref_clks=(
                   RefClock(32000000),
                   RefClock(33000000),
                   RefClock(33300000),
                   RefClock(33333333),
                   RefClock(66660000, "mpc5121"),
                   RefClock(66666666, "mpc5121"),
               )),
    Controller(_btc("mcan-v3.0", 2, 64, 1, 16, 16, 1, 1024),
               _btc("mcan-v3.0", 2, 16, 1, 8, 4, 1, 32),
               ref_clks=_CIA_CLOCKS, register_format=MCAN),
    Controller(_btc("mcan-v3.1+", 2, 256, 2, 128, 128, 1, 512),
               _btc("mcan-v3.1+", 1, 32, 1, 16, 16, 1, 32),
               ref_clks=_CIA_CLOCKS + (
                   RefClock(24000000, "stm32mp1 - ck_hse"),
                   RefClock(24573875, "stm32mp1 - pll3_q"),
                   RefClock(29700000, "stm32mp1 - pll4_q"),
                   RefClock(48000000, "stm32mp1 lxatac (new)"),
                   RefClock(60000000, "stm32mp1 ecu02.5- pll4_r"),
                   RefClock(62500000, "stm32mp1 lxatac (old) - pll4_r"),
                   RefClock(74250000, "stm32mp1 - pll4_r"),
               ),
               register_format=MCAN),
    Controller(_PEAK_CANFD[0], _PEAK_CANFD[1],
               ref_clks=tuple(RefClock(clk) for clk in (
                   20000000, 24000000, 30000000, 40000000, 60000000, 80000000))),
    Controller(_btc("sja1000", 1, 16, 1, 8, 4, 1, 64),
               ref_clks=(RefClock(16000000 // 2), RefClock(24000000 // 2, "f81601")),
               register_format=SJA1000),
    Controller(_btc("sun4i_can", 1, 16, 1, 8, 4, 1, 64)),
    Controller(_btc("ti_hecc", 1, 16, 1, 8, 4, 1, 256),
               ref_clks=(RefClock(13000000),), register_format=TI_HECC),
    Controller(_btc("xilinx_can", 1, 16, 1, 8, 4, 1, 256)),
    Controller(_btc("xilinx_can_fd", 1, 64, 1, 16, 16, 1, 256),
               _btc("xilinx_can_fd", 1, 16, 1, 8, 8, 1, 256),
               ref_clks=_CIA_CLOCKS),
    Controller(_btc("xilinx_can_fd2", 1, 256, 1, 128, 128, 2, 256),
               _btc("xilinx_can_fd2", 1, 32, 1, 16, 16, 2, 256),
               ref_clks=_CIA_CLOCKS + (RefClock(79999999, "Versal ACAP"),
                                       RefClock(80000000, "Versal ACAP"))),
)


def controller_names() -> list[str]:
    """Return the names of all known controllers in table order."""
    return [ctrl.bittiming_const.name for ctrl in CONTROLLERS]


def find_controllers(name: Optional[str]) -> list[Controller]:
    """Return the controllers whose arbitration or data limits are called ``name``.

    ``None`` selects every controller. Raises KeyError when nothing matches.
    """
    if name is None:
        return list(CONTROLLERS)
    found = [
        ctrl for ctrl in CONTROLLERS
        if ctrl.bittiming_const.name == name
        or (ctrl.data_bittiming_const is not None
            and ctrl.data_bittiming_const.name == name)
    ]
    if not found:
        raise KeyError(f"unknown CAN controller '{name}'")
    return found