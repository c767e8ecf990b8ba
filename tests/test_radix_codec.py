from __future__ import annotations

import random

import pytest

from safe_radix.core.alphabets import BASE62, DIGITS, HEX, URL_SAFE
from safe_radix.core.radix_codec import HEADER_SIZE, BigRadixCodec, frame, minimal_bytes
from safe_radix.errors import (
    BudgetExceeded,
    InvalidAlphabet,
    InvalidLengthPrefix,
    InvalidSymbol,
    TruncatedPayload,
)

ALPHABETS = [
    "01",
    "abc",
    DIGITS,
    HEX,
    BASE62,
    URL_SAFE,
    # non-ASCII symbols are fine, they are just characters
    "αβγδεζηθ",
]


def _payloads(rng: random.Random) -> list[bytes]:
    out = [
        b"",
        b"\x00",
        b"\x00\x00\x00",
        b"\x01",
        b"\xff",
        b"\x00\x01\xff",
        b"\x00" * 300,
        b"\xff" * 300,
        bytes(range(256)),
    ]
    for _ in range(40):
        n = rng.choice([1, 2, 3, 4, 5, 7, 16, 64, 255, 256, 257, 1000])
        b = bytes(rng.randrange(256) for _ in range(n))
        if rng.random() < 0.5:
            # leading zero run right after the header
            b = b"\x00" * rng.randrange(1, 6) + b
        out.append(b)
    return out


# ------------------------------------------------------------------ basics


def test_hex_roundtrip_payload_with_leading_zero() -> None:
    codec = BigRadixCodec(HEX)
    data = bytes([0x00, 0x01, 0xFF])
    assert codec.decode(codec.encode(data)) == data


def test_duplicate_symbol_rejected() -> None:
    with pytest.raises(InvalidAlphabet):
        BigRadixCodec("abcda")


def test_empty_alphabet_rejected() -> None:
    with pytest.raises(InvalidAlphabet):
        BigRadixCodec("")
    with pytest.raises(InvalidAlphabet):
        BigRadixCodec([])


def test_single_symbol_alphabet_rejected() -> None:
    with pytest.raises(InvalidAlphabet):
        BigRadixCodec("x")


def test_multi_char_symbol_rejected() -> None:
    with pytest.raises(InvalidAlphabet):
        BigRadixCodec(["a", "bc"])


def test_decode_unknown_symbol_in_digit_alphabet() -> None:
    codec = BigRadixCodec(DIGITS)
    with pytest.raises(InvalidSymbol) as ei:
        codec.decode("12a4z")
    assert ei.value.symbols == ("a", "z")


def test_decode_empty_string_rejected() -> None:
    with pytest.raises(InvalidSymbol):
        BigRadixCodec(HEX).decode("")


def test_empty_payload_frame_is_four_zero_bytes() -> None:
    codec = BigRadixCodec(URL_SAFE)
    assert frame(b"") == b"\x00" * HEADER_SIZE
    s = codec.encode(b"")
    assert s == URL_SAFE[0]
    assert codec.decode(s) == b""


def test_empty_payload_rejected_in_strict_mode() -> None:
    codec = BigRadixCodec(HEX, allow_empty=False)
    s = codec.encode(b"")
    with pytest.raises(InvalidLengthPrefix):
        codec.decode(s)
    # non-empty payloads are unaffected
    assert codec.decode(codec.encode(b"\x00")) == b"\x00"


# ------------------------------------------------------------------ properties


@pytest.mark.parametrize("alphabet", ALPHABETS)
def test_roundtrip_random_payloads(alphabet: str) -> None:
    rng = random.Random(0x5AFE)
    codec = BigRadixCodec(alphabet)
    for data in _payloads(rng):
        s = codec.encode(data)
        assert set(s) <= set(alphabet)
        assert codec.decode(s) == data, data.hex()


@pytest.mark.parametrize("alphabet", ALPHABETS)
def test_encode_has_no_redundant_leading_zero_symbol(alphabet: str) -> None:
    rng = random.Random(7)
    codec = BigRadixCodec(alphabet)
    for data in _payloads(rng):
        s = codec.encode(data)
        if data:
            assert s[0] != alphabet[0]
        else:
            assert s == alphabet[0]


@pytest.mark.parametrize("alphabet", [HEX, URL_SAFE, "01"])
def test_encoded_length_matches_encode(alphabet: str) -> None:
    rng = random.Random(11)
    codec = BigRadixCodec(alphabet)
    for data in _payloads(rng):
        assert codec.encoded_length(data) == len(codec.encode(data))


def test_leading_zero_symbols_are_ignored_on_decode() -> None:
    codec = BigRadixCodec(HEX)
    s = codec.encode(b"A")
    assert codec.decode("0000" + s) == b"A"


def test_instances_do_not_share_tables() -> None:
    a = BigRadixCodec("01")
    b = BigRadixCodec("10")
    data = b"\x80\x01"
    assert a.encode(data) != b.encode(data)
    assert a.decode(a.encode(data)) == data
    assert b.decode(b.encode(data)) == data


# ------------------------------------------- header/payload boundary hazard


def test_minimal_int_bytes_swallow_the_header_zeros() -> None:
    # The integer of the frame for [00 01 ff] is 0x030001ff: four bytes, so
    # padding "to at least 4 bytes" would read 0x030001ff as the length.
    raw = minimal_bytes(int.from_bytes(frame(b"\x00\x01\xff"), "big"))
    assert raw == b"\x03\x00\x01\xff"


@pytest.mark.parametrize(
    "data",
    [
        b"\x00",
        b"\x00\x00",
        b"\x00\x00\x00\x00\x00",
        b"\x00\x01",
        b"\x00\x00\x01",
        # 256-byte payload: header 00 00 01 00 has a trailing zero byte too
        b"\x00" + bytes(255),
        b"\x00\x00" + bytes(range(254)),
        # 512 zero bytes: header 00 00 02 00, zero run continues into the payload
        bytes(512),
    ],
)
def test_payload_starting_with_zero_bytes_roundtrips(data: bytes) -> None:
    for alphabet in (HEX, URL_SAFE):
        codec = BigRadixCodec(alphabet)
        assert codec.decode(codec.encode(data)) == data


def test_trailing_bytes_beyond_declared_length_are_dropped() -> None:
    codec = BigRadixCodec(HEX)
    # header says 1 byte, two follow
    assert codec.decode("1abcd") == b"\xab"


def test_truncated_payload() -> None:
    codec = BigRadixCodec(HEX)
    # header says 5 bytes, only 1 follows
    with pytest.raises(TruncatedPayload) as ei:
        codec.decode("5ab")
    assert ei.value.got < ei.value.expected


def test_short_garbage_is_truncated_not_misread() -> None:
    codec = BigRadixCodec(DIGITS)
    with pytest.raises(TruncatedPayload):
        codec.decode("999999")


# ------------------------------------------------------------------ planning


def test_estimate_encoded_size() -> None:
    assert BigRadixCodec("01").estimate_encoded_size(0) == 32
    assert BigRadixCodec(HEX).estimate_encoded_size(3) == 14
    # 66 symbols: ~6.04 bits per char
    assert BigRadixCodec(URL_SAFE).estimate_encoded_size(1000) == 1329


def test_estimate_is_an_upper_bound() -> None:
    rng = random.Random(3)
    for alphabet in ALPHABETS:
        codec = BigRadixCodec(alphabet)
        for data in _payloads(rng):
            assert len(codec.encode(data)) <= codec.estimate_encoded_size(len(data))


def test_will_fit() -> None:
    codec = BigRadixCodec(HEX)
    assert codec.will_fit(3, 14)
    assert not codec.will_fit(3, 13)


def test_validate() -> None:
    codec = BigRadixCodec(HEX)
    codec.validate("abc123", budget=6)
    with pytest.raises(InvalidSymbol):
        codec.validate("abcxyz")
    with pytest.raises(BudgetExceeded):
        codec.validate("abc123", budget=5)


def test_encode_rejects_non_bytes() -> None:
    with pytest.raises(TypeError):
        BigRadixCodec(HEX).encode("text")  # type: ignore[arg-type]
