from __future__ import annotations

from safe_radix.core.codecs import CodecRaw, CodecZlib, CodecZstd, PayloadCodec
from safe_radix.errors import CorruptPayload

_CODECS_BY_TAG: dict[int, type] = {c.codec_tag: c for c in (CodecRaw, CodecZlib, CodecZstd)}

# ulen sanity: the radix frame header is a u32 anyway
MAX_ULEN = (1 << 32) - 1


def enc_uvarint(x: int) -> bytes:
    if x < 0:
        raise ValueError("varint negativo non supportato")
    out = bytearray()
    while True:
        b = x & 0x7F
        x >>= 7
        if x:
            out.append(0x80 | b)
        else:
            out.append(b)
            break
    return bytes(out)


def dec_uvarint(buf: bytes, idx: int) -> tuple[int, int]:
    shift = 0
    x = 0
    while True:
        if idx >= len(buf):
            raise CorruptPayload("envelope: varint troncato")
        b = buf[idx]
        idx += 1
        x |= (b & 0x7F) << shift
        if (b & 0x80) == 0:
            break
        shift += 7
        if shift > 63:
            raise CorruptPayload("envelope: varint troppo grande")
    return x, idx


def pack_envelope(data: bytes, codec: PayloadCodec) -> bytes:
    """
    Layout:
      tag(u8) + uvarint(uncompressed_len) + compressed bytes
    """
    raw = bytes(data)
    return bytes([codec.codec_tag]) + enc_uvarint(len(raw)) + codec.compress(raw)


def envelope_tag(blob: bytes) -> int:
    if not blob:
        raise CorruptPayload("envelope: vuoto")
    return blob[0]


def unpack_envelope(blob: bytes) -> bytes:
    tag = envelope_tag(blob)
    codec_cls = _CODECS_BY_TAG.get(tag)
    if codec_cls is None:
        raise CorruptPayload(f"envelope: codec tag sconosciuto: {tag}")
    n, idx = dec_uvarint(blob, 1)
    if n > MAX_ULEN:
        raise CorruptPayload(f"envelope: uncompressed_len troppo grande: {n}")
    raw = codec_cls().decompress(blob[idx:], out_size=n)
    if len(raw) != n:
        raise CorruptPayload(f"envelope: uncompressed_len mismatch: got={len(raw)} expected={n}")
    return raw
