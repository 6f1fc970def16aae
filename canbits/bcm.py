"""A TCP server that turns ASCII commands into CAN broadcast manager jobs.

Clients send messages of the form::

    < interface command ival_s ival_us can_id can_dlc [data]* >

where only ``can_id`` and ``data`` are hexadecimal. The transmit commands
are ``A``dd, ``U``pdate, ``D``elete and ``S``end. The receive commands are
``R`` (receive with content filter), ``F`` (filter on the CAN id only) and
``X`` (delete a receive filter). Frames received through the filters go back
to the client as ``< interface can_id can_dlc [data]* >`` followed by a NUL
byte.
"""

from __future__ import annotations

import argparse
import re
import selectors
import socket
import struct
import sys
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Sequence

PORT = 28600
MAXLEN = 100
IFNAMSIZ = 16
CAN_MAX_DLEN = 8

SETTIMER = 0x0001
STARTTIMER = 0x0002
RX_FILTER_ID = 0x0020

_HEAD = struct.Struct("@IIIllllII")
_HEAD_SIZE = (_HEAD.size + 7) // 8 * 8
_FRAME = struct.Struct("=IBBBB8s")

_HEX = re.compile(r"[+-]?(?:0[xX])?[0-9a-fA-F]+")
_DEC = re.compile(r"\+?[0-9]+")


class BcmOpcode(IntEnum):
    """Operation codes of the CAN broadcast manager."""

    TX_SETUP = 1
    TX_DELETE = 2
    TX_READ = 3
    TX_SEND = 4
    RX_SETUP = 5
    RX_DELETE = 6
    RX_READ = 7
    TX_STATUS = 8
    TX_EXPIRED = 9
    RX_STATUS = 10
    RX_TIMEOUT = 11
    RX_CHANGED = 12


_COMMANDS: dict[str, tuple[BcmOpcode, int]] = {
    "S": (BcmOpcode.TX_SEND, 0),
    "A": (BcmOpcode.TX_SETUP, SETTIMER | STARTTIMER),
    "U": (BcmOpcode.TX_SETUP, 0),
    "D": (BcmOpcode.TX_DELETE, 0),
    "R": (BcmOpcode.RX_SETUP, SETTIMER),
    "F": (BcmOpcode.RX_SETUP, RX_FILTER_ID | SETTIMER),
    "X": (BcmOpcode.RX_DELETE, 0),
}


class BcmCommandError(ValueError):
    """Raised for a malformed client message or broadcast manager payload."""


class _UnknownCommand(BcmCommandError):
    """Raised when a well-formed message carries an unknown command letter."""


@dataclass(frozen=True)
class BcmCommand:
    """One parsed client command."""

    ifname: str
    command: str
    ival_sec: int
    ival_usec: int
    can_id: int
    data: bytes = b""

    @property
    def opcode(self) -> BcmOpcode:
        """The broadcast manager operation for this command."""
        return _COMMANDS[self.command][0]

    @property
    def flags(self) -> int:
        """The broadcast manager flags for this command."""
        return _COMMANDS[self.command][1]

    def pack(self) -> bytes:
        """Return the message head and its single CAN frame as kernel bytes."""
        head = _HEAD.pack(
            int(self.opcode), self.flags, 0,
            0, 0, self.ival_sec, self.ival_usec,
            self.can_id, 1,
        ).ljust(_HEAD_SIZE, b"\0")
        frame = _FRAME.pack(self.can_id, len(self.data), 0, 0, 0,
                            self.data.ljust(CAN_MAX_DLEN, b"\0"))
        return head + frame


def _ifname(token: str) -> Optional[str]:
    return token if len(token) <= IFNAMSIZ - 1 else None


def _char(token: str) -> Optional[str]:
    return token if len(token) == 1 else None


def _dec(token: str) -> Optional[int]:
    return int(token) if _DEC.fullmatch(token) else None


def _hex(token: str) -> Optional[int]:
    return int(token, 16) & 0xFFFFFFFF if _HEX.fullmatch(token) else None


_FIELDS: tuple[Callable[[str], object], ...] = (
    _ifname, _char, _dec, _dec, _hex, _dec, *([_hex] * CAN_MAX_DLEN)
)


def parse_command(text: str) -> BcmCommand:
    """Parse one ``< ... >`` client message.

    Raises BcmCommandError when the message is malformed or the command
    letter is unknown.
    """
    stripped = text.lstrip()
    if not stripped.startswith("<"):
        raise BcmCommandError(f"message does not start with '<': {text!r}")

    values: list[object] = []
    for parse, token in zip(_FIELDS, stripped[1:].split()):
        value = parse(token)
        if value is None:
            break
        values.append(value)

    if len(values) < 6:
        raise BcmCommandError(f"incomplete message: {text!r}")
    dlc = int(values[5]) & 0xFF
    if dlc > CAN_MAX_DLEN:
        raise BcmCommandError(f"data length {dlc} exceeds {CAN_MAX_DLEN}")
    if len(values) != 6 + dlc:
        raise BcmCommandError(
            f"data length {dlc} does not match {len(values) - 6} data bytes"
        )

    ifname, command, sec, usec, can_id = values[:5]
    data = bytes(int(byte) & 0xFF for byte in values[6:])
    if command not in _COMMANDS:
        raise _UnknownCommand(f"unknown command '{command}'.")
    return BcmCommand(str(ifname), str(command), int(sec), int(usec),
                      int(can_id), data)


class CommandAssembler:
    """Collects ``< ... >`` messages from a byte stream.

    Bytes before a ``<`` are ignored, and a message growing past the buffer
    limit is dropped.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    def feed(self, data: bytes) -> list[str]:
        """Add received bytes; return the messages completed by them."""
        messages: list[str] = []
        for byte in data:
            if not self._buf:
                if byte == ord("<"):
                    self._buf.append(byte)
                continue
            if len(self._buf) > MAXLEN - 2:
                self._buf.clear()
                continue
            self._buf.append(byte)
            if byte == ord(">"):
                messages.append(self._buf.decode("latin-1"))
                self._buf.clear()
        return messages


def format_rx_message(ifname: str, can_id: int, data: bytes) -> bytes:
    """Return the NUL-terminated report of a received CAN frame."""
    text = f"< {ifname} {can_id & 0xFFFFFFFF:03X} {len(data)} "
    text += "".join(f"{byte:02X} " for byte in data)
    return (text + ">").encode("latin-1") + b"\0"


def unpack_rx_message(payload: bytes) -> tuple[int, bytes]:
    """Return the CAN id of the message head and the data of its first frame."""
    if len(payload) < _HEAD_SIZE + _FRAME.size:
        raise BcmCommandError(f"broadcast manager message too short: {len(payload)}")
    head = _HEAD.unpack_from(payload)
    _, dlc, _, _, _, data = _FRAME.unpack_from(payload, _HEAD_SIZE)
    return head[7], data[:min(dlc, CAN_MAX_DLEN)]


def _ifname_of(address: object) -> str:
    if isinstance(address, tuple):
        return str(address[0])
    return str(address)


def _session(client: socket.socket) -> None:
    with client, socket.socket(socket.AF_CAN, socket.SOCK_DGRAM,
                               socket.CAN_BCM) as bcm:
        bcm.connect(("",))
        assembler = CommandAssembler()
        with selectors.DefaultSelector() as selector:
            selector.register(bcm, selectors.EVENT_READ)
            selector.register(client, selectors.EVENT_READ)
            while True:
                for key, _ in selector.select():
                    if key.fileobj is bcm:
                        payload, address = bcm.recvfrom(_HEAD_SIZE + _FRAME.size)
                        can_id, data = unpack_rx_message(payload)
                        client.sendall(format_rx_message(_ifname_of(address),
                                                         can_id, data))
                        continue
                    chunk = client.recv(MAXLEN)
                    if not chunk:
                        return
                    for message in assembler.feed(chunk):
                        try:
                            command = parse_command(message)
                        except _UnknownCommand as exc:
                            print(exc)
                            return
                        except BcmCommandError:
                            return
                        try:
                            bcm.sendto(command.pack(), (command.ifname,))
                        except OSError:
                            pass


def serve(port: int = PORT) -> None:
    """Accept clients on ``port`` forever, one broadcast manager socket each."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    while True:
        try:
            listener.bind(("", port))
            break
        except OSError:
            print(".", end="", flush=True)
            time.sleep(0.1)
    listener.listen(3)
    with listener:
        while True:
            client, _ = listener.accept()
            threading.Thread(target=_session, args=(client,), daemon=True).start()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the broadcast manager server."""
    parser = argparse.ArgumentParser(
        prog="bcmserver",
        description=f"serve CAN broadcast manager commands on TCP port {PORT}.",
    )
    parser.parse_args(argv)
    try:
        serve(PORT)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())