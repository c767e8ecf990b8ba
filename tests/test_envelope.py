from __future__ import annotations

import pytest

from safe_radix.core.alphabets import URL_SAFE
from safe_radix.core.codecs import CodecRaw, CodecZlib, CodecZstd, get_codec
from safe_radix.core.envelope import dec_uvarint, enc_uvarint, envelope_tag, pack_envelope, unpack_envelope
from safe_radix.core.radix_codec import BigRadixCodec
from safe_radix.errors import CorruptPayload, UsageError

TEXT = ("FATTURA 1001\nRIGA ARTICOLO: vite M3 qty=10 prezzo=1.20\n" * 20).encode("utf-8")


@pytest.mark.parametrize("codec", [CodecRaw(), CodecZlib(), CodecZstd()], ids=lambda c: c.codec_id)
def test_envelope_roundtrip(codec) -> None:
    for data in (b"", b"\x00", TEXT):
        blob = pack_envelope(data, codec)
        assert envelope_tag(blob) == codec.codec_tag
        assert unpack_envelope(blob) == data


def test_envelope_layout_raw() -> None:
    # tag=0, ulen=3, then the bytes
    assert pack_envelope(b"abc", CodecRaw()).hex() == "0003616263"


def test_uvarint_multibyte() -> None:
    # 300 -> LEB128 0xAC 0x02
    assert enc_uvarint(300) == b"\xac\x02"
    assert dec_uvarint(b"\xac\x02", 0) == (300, 2)


def test_compressing_codecs_shorten_the_string() -> None:
    radix = BigRadixCodec(URL_SAFE)
    plain = len(radix.encode(TEXT))
    for codec in (CodecZlib(), CodecZstd()):
        assert len(radix.encode(pack_envelope(TEXT, codec))) < plain


def test_envelope_through_radix_codec() -> None:
    radix = BigRadixCodec(URL_SAFE)
    blob = pack_envelope(TEXT, CodecZstd())
    assert unpack_envelope(radix.decode(radix.encode(blob))) == TEXT


def test_envelope_errors() -> None:
    with pytest.raises(CorruptPayload, match="vuoto"):
        unpack_envelope(b"")
    with pytest.raises(CorruptPayload, match="tag sconosciuto"):
        unpack_envelope(b"\x09\x00")
    with pytest.raises(CorruptPayload, match="varint troncato"):
        unpack_envelope(b"\x00\x80")
    # raw: declared 5, got 3
    with pytest.raises(CorruptPayload):
        unpack_envelope(b"\x00\x05abc")
    # zlib: garbage stream
    with pytest.raises(CorruptPayload):
        unpack_envelope(b"\x01\x03xyz")


def test_get_codec() -> None:
    assert get_codec("ZSTD").codec_id == "zstd"
    with pytest.raises(UsageError):
        get_codec("lz4")


def test_zlib_level_range() -> None:
    with pytest.raises(ValueError):
        CodecZlib(level=10)
