"""Client side of the GDB remote serial protocol."""

from __future__ import annotations

import socket
import string
from typing import BinaryIO, Optional, Union

_LOWER_HEX = "0123456789abcdef"
_XDIGITS = frozenset(string.hexdigits.encode("ascii"))
_RLE_BASE = 29

Chars = Union[bytes, bytearray, str]


class ConnectionClosedError(ConnectionError):
    """Raised when the peer closes the connection mid-conversation."""


def _char_code(c: Union[int, str, bytes, bytearray]) -> int:
    if isinstance(c, int):
        return c
    if isinstance(c, (bytes, bytearray)) and len(c) == 1:
        return c[0]
    if isinstance(c, str) and len(c) == 1:
        return ord(c)
    raise TypeError(f"expected a single character, got {c!r}")


def _as_bytes(data: Chars) -> bytes:
    return data.encode("latin-1") if isinstance(data, str) else bytes(data)


def hex_encode(digit: int) -> str:
    """Return the lower-case hex character for a value in 0..15."""
    if not 0 <= digit <= 15:
        raise ValueError(f"hex digit out of range: {digit}")
    return _LOWER_HEX[digit]


def decode_hex(msb, lsb) -> int:
    """Decode two hex characters (most significant first) into a byte value."""
    hi, lo = _char_code(msb), _char_code(lsb)
    if hi not in _XDIGITS or lo not in _XDIGITS:
        raise ValueError(f"invalid hex digits {chr(hi)!r}{chr(lo)!r}")
    return int(chr(hi) + chr(lo), 16)


def decode_hex_str(data: Chars) -> int:
    """Decode little-endian hex byte pairs, stopping at the first non-hex pair."""
    raw = _as_bytes(data)
    value = 0
    for index, (hi, lo) in enumerate(zip(raw[0::2], raw[1::2])):
        if hi not in _XDIGITS or lo not in _XDIGITS:
            break
        value |= decode_hex(hi, lo) << (8 * index)
    return value


def packet_checksum(payload: Chars) -> int:
    """Modulo-256 sum of the payload bytes."""
    return sum(_as_bytes(payload)) & 0xFF


def encode_packet(command: Chars) -> bytes:
    """Frame a command as ``$<payload>#<checksum>``."""
    payload = _as_bytes(command)
    return b"$" + payload + f"#{packet_checksum(payload):02X}".encode("ascii")


class _Reader:
    """Byte reader with a one-level pushback."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._pushback: list[int] = []

    def get(self) -> Optional[int]:
        if self._pushback:
            return self._pushback.pop()
        chunk = self._stream.read(1)
        return chunk[0] if chunk else None

    def unget(self, c: Optional[int]) -> None:
        if c is not None:
            self._pushback.append(c)


def decode_packet(stream: BinaryIO) -> tuple[bytes, bool]:
    """Read one packet from ``stream``; return its payload and whether the checksum matched."""
    reader = _Reader(stream)

    while True:
        c = reader.get()
        if c is None:
            raise ConnectionClosedError("recv: Connection closed")
        if c == ord("$"):
            break

    reply = bytearray()
    total = 0
    escape = False
    while (c := reader.get()) is not None:
        total += c
        if c == ord("$"):
            reply.clear()
            total = 0
            escape = False
            continue
        if c == ord("#"):
            total -= c
            msb, lsb = reader.get(), reader.get()
            if msb is None or lsb is None:
                raise ConnectionClosedError("recv: Connection closed")
            try:
                ok = (total & 0xFF) == decode_hex(msb, lsb)
            except ValueError:
                ok = False
            return bytes(reply), ok
        if c == ord("}"):
            escape = True
            continue
        if c == ord("*") and reply:
            c2 = reader.get()
            if c2 is None or c2 < _RLE_BASE or c2 > 126 or c2 in (ord("$"), ord("#")):
                reader.unget(c2)
            else:
                reply.extend(reply[-1:] * (c2 - _RLE_BASE))
                total += c2
                continue
        if escape:
            c ^= 0x20
            escape = False
        reply.append(c)

    raise ConnectionClosedError("recv: Connection closed")


class GdbConnection:
    """A GDB remote protocol session over a pair of binary streams."""

    def __init__(self, infile: BinaryIO, outfile: BinaryIO, sock: Optional[socket.socket] = None) -> None:
        self._in = infile
        self._out = outfile
        self._sock = sock
        self.ack = True
        # acknowledge any earlier input to reset the line state
        self._out.write(b"+")
        self._out.flush()

    @classmethod
    def connect(cls, addr: str, port: int) -> "GdbConnection":
        """Open a TCP connection to a gdbserver at ``addr:port``."""
        try:
            socket.inet_aton(addr)
        except OSError:
            raise ValueError(f"Invalid address: {addr}") from None
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.connect((addr, port))
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            sock.close()
            raise
        return cls(sock.makefile("rb"), sock.makefile("wb"), sock)

    def _send_packet(self, command: Chars) -> None:
        self._out.write(encode_packet(command))
        self._out.flush()

    def send(self, command: Chars) -> None:
        """Send a command, resending until the peer acknowledges it."""
        while True:
            self._send_packet(command)
            if not self.ack:
                return
            reply = self._in.read(1)
            if not reply:
                raise ConnectionClosedError("send: Connection closed")
            if reply == b"+":
                return

    def recv(self) -> bytes:
        """Receive a reply, requesting retransmission on checksum errors."""
        while True:
            payload, ok = decode_packet(self._in)
            if not self.ack:
                return payload
            self._out.write(b"+" if ok else b"-")
            self._out.flush()
            if ok:
                return payload

    def start_noack(self) -> bool:
        """Ask the peer to stop acknowledging packets; True if it agreed."""
        self.send(b"QStartNoAckMode")
        ok = self.recv() == b"OK"
        if ok:
            self.ack = False
        return ok

    def close(self) -> None:
        self._in.close()
        self._out.close()
        if self._sock is not None:
            self._sock.close()

    def __enter__(self) -> "GdbConnection":
        return self

    def __exit__(self, *args) -> None:
        self.close()