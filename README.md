# canbits

Two tools for CAN buses, plus the library behind them:

* **can-calc-bit-timing** works out bit-timing parameters and register values
  for a wide range of CAN and CAN FD controllers. It can also check and decode
  low-level timing parameters that you already have.
* **bcmserver** is a small TCP server that takes plain-text commands and
  turns them into SocketCAN broadcast-manager jobs: send frames once or
  cyclically, and set up receive filters whose matches are reported back.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Calculating bit timings

List the controllers the tool knows about:

```
can-calc-bit-timing -l
```

Calculate timings for one controller at each of its reference clocks. With no
bitrate given, a common set of bitrates is used (1 Mbit/s down to 10 kbit/s,
and 12 Mbit/s down to 1 Mbit/s for the data phase of CAN FD controllers):

```
can-calc-bit-timing mcp251x
```

With no controller name, every controller is calculated. Choose a bitrate, a
sample point and a clock:

```
can-calc-bit-timing -b 500000 -s 875 -c 16000000 sja1000
```

Options:

| Option | Meaning |
| --- | --- |
| `-q` | don't print the header line |
| `-l` | list all supported controller names |
| `-b <bitrate>` | arbitration bitrate in bits/s |
| `-d <bitrate>` | data bitrate in bits/s (CAN FD) |
| `-s <samp_pt>` | sample point in tenths of a percent, 0 for the CiA recommendation |
| `-c <clock>` | real CAN system clock in Hz |
| `--alg <alg>` | choose the calculation algorithm; with no value, list all of them |
| `-?`, `-h`, `--help` | show the help text |

Each row shows the nominal bitrate, the time quantum in ns, the propagation
and phase segments, the SJW, the prescaler, the real bitrate, the bitrate
error, the nominal and real sample points and the sample-point error. For
controllers with a known register layout (rcar_can, mcp251x, mcp251xfd, bxcan,
at91, c_can, flexcan, mcan, sja1000, ti_hecc) the register values follow.
Rows that cannot be reached within 5.0 % bitrate error are shown as
`***bitrate not possible***`.

Low-level parameters can be given in place of a bitrate search. The tool then
checks them against the controller's limits and decodes them:

```
can-calc-bit-timing -c 8000000 --tq 125 --prop-seg 6 --phase-seg1 7 --phase-seg2 2 --sjw 1 sja1000
```

These options are `--tq`, `--prop-seg`, `--phase-seg1`, `--phase-seg2`,
`--sjw`, `--brp`, `--tseg1` (split into prop-seg and phase-seg1) and `--tseg2`
(the same as `--phase-seg2`). Parameters outside the controller's range are
shown as `***parameters exceed controller's range***`.

Several versions of the calculation algorithm are available: `v6.3` (the
default), `v5.19`, `v5.16`, `v4.8`, `v3.18` and `v2.6.31`. They differ in how
they choose between candidate segment splits and how they set the SJW, so
they can be used to compare what different generations of the algorithm pick.

An unknown controller or algorithm name prints the list of valid names and
exits with status 1.

### From Python

```python
from canbits.algorithms import find_algorithm
from canbits.controllers import find_controllers
from canbits.registers import REGISTER_FORMATS
from canbits.report import CalcOptions, render_calc
from canbits.timing import BitTiming, BitTimingError

sja1000 = find_controllers("sja1000")[0]
alg = find_algorithm("v6.3")

try:
    bt = alg.calc_bittiming(8_000_000, BitTiming(bitrate=500_000), sja1000.bittiming_const)
except BitTimingError as exc:
    print("not possible:", exc)
else:
    print(bt.brp, bt.prop_seg, bt.phase_seg1, bt.phase_seg2, bt.sjw, bt.sample_point)
    print(REGISTER_FORMATS["sja1000"].format(bt))

print(render_calc(CalcOptions(name="mcp251x", bitrates=(500_000,))))
```

* `canbits.timing` defines the frozen dataclasses `BitTiming`,
  `BitTimingConst` and `RefClock`, the exception `BitTimingError` (whose
  `code` is an errno value), `cia_sample_point(bitrate)` and
  `div_round_closest(dividend, divisor)`.
* `canbits.algorithms` gives `algorithm_names()` and `find_algorithm(name)`;
  each `Algorithm` has `calc_bittiming` and `fixup_bittiming`, both called as
  `(clock_freq, bt, btc)` and returning a new `BitTiming`.
* `canbits.controllers` gives `controller_names()` and
  `find_controllers(name)`; `None` selects every controller, an unknown name
  raises `KeyError`.
* `canbits.registers` gives the `RegisterFormat` of each controller family,
  with `header()` and `format(bt)`.
* `canbits.report` renders the text reports: `render_one`,
  `render_bittiming` and `render_calc(CalcOptions(...))`.

## The broadcast-manager server

```
bcmserver
```

The server listens on TCP port 28600 and serves each client in its own
thread with its own broadcast-manager socket. It needs a Linux host with
SocketCAN. Each client sends commands of this form:

```
< interface command ival_s ival_us can_id can_dlc [data]* >
```

`can_id` and the data bytes are hexadecimal; the other numbers are decimal.
The commands are:

| Command | Action |
| --- | --- |
| `A` | add a cyclic transmission |
| `U` | update the data of a cyclic transmission without touching its timers |
| `D` | delete a cyclic transmission |
| `S` | send a single frame |
| `R` | receive, reporting changes in the bytes selected by the data mask |
| `F` | receive by CAN ID, with no content filtering |
| `X` | delete a receive filter |

Examples:

```
< vcan1 A 0 20000 123 4 42 42 42 42 >   send 123#42424242 every 20 ms
< vcan1 U 0 0 123 3 11 22 33 >          update that job's data
< vcan1 D 0 0 123 0 >                   stop it
< vcan1 R 1 500000 123 8 FF 00 F8 00 00 00 00 00 >
```

Frames that match a filter come back to the client as
`< vcan1 123 4 11 22 33 44 >`, each followed by a NUL byte. Bytes outside
`< ... >` are ignored and over-long messages are dropped. A malformed message
or an unknown command letter ends the connection, and closing the connection
ends all of that client's cyclic transmissions. Commands for an interface that
does not exist are ignored.

The message handling is available on its own in `canbits.bcm`:
`parse_command(text)` returns a `BcmCommand` (with `opcode`, `flags` and
`pack()`) or raises `BcmCommandError`, `CommandAssembler.feed(data)` collects
messages from a byte stream, and `format_rx_message` / `unpack_rx_message`
handle the receive path.

## What it does not do

The calculator only prints values; it does not configure CAN interfaces or
write registers. The server takes no options and has no authentication: any
client that can reach port 28600 can send frames on the host's CAN
interfaces.