import io
import socket
import threading

import pytest

from gdbdiff.protocol import (
    ConnectionClosedError,
    GdbConnection,
    decode_hex,
    decode_hex_str,
    decode_packet,
    encode_packet,
    hex_encode,
    packet_checksum,
)


def _raw_packet(body: bytes) -> bytes:
    return b"$" + body + b"#" + format(packet_checksum(body), "02X").encode()


def test_hex_encode_all_digits():
    assert "".join(hex_encode(d) for d in range(16)) == "0123456789abcdef"


@pytest.mark.parametrize("digit", [-1, 16, 255])
def test_hex_encode_out_of_range(digit):
    with pytest.raises(ValueError):
        hex_encode(digit)


def test_decode_hex_round_trip():
    for value in range(256):
        assert decode_hex(hex_encode(value >> 4), hex_encode(value & 0xF)) == value


def test_decode_hex_is_case_insensitive_and_accepts_codes():
    assert decode_hex("F", "A") == decode_hex("f", "a")
    assert decode_hex(ord("3"), ord("c")) == decode_hex("3", "c")
    assert decode_hex(b"7", b"e") == decode_hex("7", "e")


def test_decode_hex_rejects_non_hex():
    with pytest.raises(ValueError):
        decode_hex("g", "0")
    with pytest.raises(ValueError):
        decode_hex("0", "x")


@pytest.mark.parametrize("value", [0, 1, 0x12345678, 0xDEADBEEF, 0xFFFFFFFF])
def test_decode_hex_str_little_endian_round_trip(value):
    text = value.to_bytes(4, "little").hex()
    assert decode_hex_str(text) == value
    assert decode_hex_str(text.encode()) == value


def test_decode_hex_str_stops_at_non_hex_pair():
    assert decode_hex_str("34xx12") == decode_hex_str("34")
    assert decode_hex_str("xxxxxxxx") == 0


def test_packet_checksum_is_additive_mod_256():
    a, b = b"\xff\xfe\x10", b"hello"
    assert packet_checksum(a + b) == (packet_checksum(a) + packet_checksum(b)) % 256
    assert 0 <= packet_checksum(b"\xff" * 100) < 256


def test_encode_packet_wire_format():
    assert encode_packet(b"g") == b"$g#67"
    assert encode_packet("g") == encode_packet(b"g")


def test_encode_packet_uses_upper_case_checksum():
    assert encode_packet(b"\x0a").endswith(b"#0A")


@pytest.mark.parametrize("payload", [b"", b"OK", b"vCont;s:1", b"M0x80000000,4:00112233"])
def test_decode_packet_round_trip(payload):
    assert decode_packet(io.BytesIO(encode_packet(payload))) == (payload, True)


def test_decode_packet_skips_leading_garbage():
    stream = io.BytesIO(b"+++noise" + encode_packet(b"OK"))
    assert decode_packet(stream) == (b"OK", True)


def test_decode_packet_detects_bad_checksum():
    packet = bytearray(encode_packet(b"OK"))
    packet[1] ^= 0x01
    payload, ok = decode_packet(io.BytesIO(bytes(packet)))
    assert ok is False
    assert payload == bytes(packet[1:3])


def test_decode_packet_non_hex_checksum_is_bad():
    payload, ok = decode_packet(io.BytesIO(b"$OK#zz"))
    assert (payload, ok) == (b"OK", False)


def test_decode_packet_restarts_on_new_start_marker():
    stream = io.BytesIO(b"$abc" + encode_packet(b"OK"))
    assert decode_packet(stream) == (b"OK", True)


def test_decode_packet_unescapes():
    body = b"}" + bytes([ord("#") ^ 0x20])
    assert decode_packet(io.BytesIO(_raw_packet(body))) == (b"#", True)


def test_decode_packet_run_length():
    # ' ' is the first printable count character and stands for three repeats
    assert decode_packet(io.BytesIO(_raw_packet(b"0* "))) == (b"0000", True)


def test_decode_packet_invalid_run_length_kept_literally():
    body = b"a*\x01"
    assert decode_packet(io.BytesIO(_raw_packet(body))) == (body, True)


def test_decode_packet_star_at_start_is_literal():
    assert decode_packet(io.BytesIO(_raw_packet(b"*x"))) == (b"*x", True)


@pytest.mark.parametrize("data", [b"", b"garbage", b"$abc", b"$OK#9"])
def test_decode_packet_eof_raises(data):
    with pytest.raises(ConnectionClosedError):
        decode_packet(io.BytesIO(data))


def test_connection_acks_on_open():
    out = io.BytesIO()
    conn = GdbConnection(io.BytesIO(), out)
    assert out.getvalue() == b"+"
    assert conn.ack is True


def test_send_acknowledged():
    out = io.BytesIO()
    conn = GdbConnection(io.BytesIO(b"+"), out)
    conn.send(b"g")
    assert out.getvalue() == b"+" + encode_packet(b"g")


def test_send_resends_after_nack():
    out = io.BytesIO()
    conn = GdbConnection(io.BytesIO(b"-+"), out)
    conn.send("g")
    assert out.getvalue() == b"+" + encode_packet(b"g") * 2


def test_send_without_ack_reply_raises():
    conn = GdbConnection(io.BytesIO(), io.BytesIO())
    with pytest.raises(ConnectionClosedError):
        conn.send(b"g")


def test_recv_acknowledges_good_packet():
    out = io.BytesIO()
    conn = GdbConnection(io.BytesIO(encode_packet(b"OK")), out)
    assert conn.recv() == b"OK"
    assert out.getvalue() == b"++"


def test_recv_retries_after_bad_checksum():
    out = io.BytesIO()
    conn = GdbConnection(io.BytesIO(b"$OK#00" + encode_packet(b"OK")), out)
    assert conn.recv() == b"OK"
    assert out.getvalue() == b"+-+"


def test_start_noack_success_disables_acks():
    out = io.BytesIO()
    stream = io.BytesIO(b"+" + encode_packet(b"OK") + b"$XY#00")
    conn = GdbConnection(stream, out)
    assert conn.start_noack() is True
    assert conn.ack is False
    before = out.getvalue()
    conn.send(b"g")
    assert out.getvalue() == before + encode_packet(b"g")
    assert conn.recv() == b"XY"
    assert out.getvalue() == before + encode_packet(b"g")


def test_start_noack_refused():
    conn = GdbConnection(io.BytesIO(b"+" + encode_packet(b"")), io.BytesIO())
    assert conn.start_noack() is False
    assert conn.ack is True


def test_connect_rejects_bad_address():
    with pytest.raises(ValueError):
        GdbConnection.connect("not-an-address", 1234)


def test_connect_refused_raises_oserror():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    with pytest.raises(OSError):
        GdbConnection.connect("127.0.0.1", port)


def test_connect_over_tcp():
    received = []
    with socket.socket() as server:
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        server.settimeout(5)
        port = server.getsockname()[1]

        def serve():
            peer, _ = server.accept()
            with peer:
                peer.settimeout(5)
                received.append(peer.recv(1))
                peer.sendall(b"+" + encode_packet(b"OK"))
                while peer.recv(1024):
                    pass

        thread = threading.Thread(target=serve)
        thread.start()
        with GdbConnection.connect("127.0.0.1", port) as conn:
            result = conn.start_noack()
        thread.join(timeout=5)

    assert result is True
    assert received == [b"+"]