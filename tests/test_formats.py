from __future__ import annotations

import pytest

from safe_radix.errors import UsageError
from safe_radix.formats import get_format, reencodable, sniff_format, supported_mimes


@pytest.mark.parametrize(
    ("head", "mime"),
    [
        (b"\x89PNG\r\n\x1a\n" + b"\x00" * 8, "image/png"),
        (b"\xff\xd8\xff\xe0" + b"\x00" * 8, "image/jpeg"),
        (b"RIFF\x10\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"GIF89a" + b"\x00" * 8, "image/gif"),
        (b"BM" + b"\x00" * 12, "image/bmp"),
        (b"<svg xmlns='http://www.w3.org/2000/svg'/>", "image/svg+xml"),
        (b"<?xml version='1.0'?>\n<svg/>", "image/svg+xml"),
    ],
)
def test_sniff(head: bytes, mime: str) -> None:
    f = sniff_format(head)
    assert f is not None
    assert f.mime == mime


def test_sniff_unknown_and_short() -> None:
    assert sniff_format(b"") is None
    assert sniff_format(b"\x89PN") is None
    # RIFF without the WEBP marker (e.g. a WAV file)
    assert sniff_format(b"RIFF\x10\x00\x00\x00WAVEfmt ") is None


def test_get_format() -> None:
    assert get_format("IMAGE/JPG").mime == "image/jpeg"
    assert get_format("image/webp").extension == "webp"
    with pytest.raises(UsageError):
        get_format("image/tiff")


def test_reencodable_filter_keeps_order_and_skips_gif_svg() -> None:
    mimes = ["image/gif", "image/webp", "image/svg+xml", "image/png"]
    assert reencodable(mimes) == ["image/webp", "image/png"]


def test_catalog_mimes_unique() -> None:
    mimes = supported_mimes()
    assert len(mimes) == len(set(mimes))
