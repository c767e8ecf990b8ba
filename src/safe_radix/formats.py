"""Image format catalog.

The search treats format ids as opaque MIME strings; this module maps
them to what the renderer needs (Pillow format name, file extension) and
to the byte signatures used to recognize a decoded payload.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from safe_radix.errors import UsageError


@dataclass(frozen=True, slots=True)
class ImageFormat:
    mime: str
    pillow_name: str | None
    extension: str
    signature: bytes
    offset: int = 0
    # extra marker checked at extra_offset (webp: RIFF....WEBP)
    extra: bytes = b""
    extra_offset: int = 0
    reencodable: bool = True
    lossy: bool = False

    def matches(self, data: bytes) -> bool:
        end = self.offset + len(self.signature)
        if len(data) < end or data[self.offset : end] != self.signature:
            return False
        if self.extra:
            xend = self.extra_offset + len(self.extra)
            if len(data) < xend or data[self.extra_offset : xend] != self.extra:
                return False
        return True


# Order matters for sniffing: first match wins.
FORMATS: tuple[ImageFormat, ...] = (
    ImageFormat("image/png", "PNG", "png", b"\x89PNG\r\n\x1a\n"),
    ImageFormat("image/jpeg", "JPEG", "jpg", b"\xff\xd8\xff", lossy=True),
    ImageFormat("image/webp", "WEBP", "webp", b"RIFF", extra=b"WEBP", extra_offset=8, lossy=True),
    # may be animated: never re-encoded
    ImageFormat("image/gif", "GIF", "gif", b"GIF8", reencodable=False),
    ImageFormat("image/bmp", "BMP", "bmp", b"BM"),
    # vector: nothing to rasterize against
    ImageFormat("image/svg+xml", None, "svg", b"<svg", reencodable=False),
)

_BY_MIME: dict[str, ImageFormat] = {f.mime: f for f in FORMATS}

DEFAULT_CANDIDATES: tuple[str, ...] = ("image/webp", "image/jpeg", "image/png")


def supported_mimes() -> tuple[str, ...]:
    return tuple(f.mime for f in FORMATS)


def get_format(mime: str) -> ImageFormat:
    key = mime.strip().lower()
    if key == "image/jpg":
        key = "image/jpeg"
    try:
        return _BY_MIME[key]
    except KeyError:
        raise UsageError(
            f"unsupported format: {mime!r} (supported: {', '.join(supported_mimes())})"
        ) from None


def sniff_format(data: bytes) -> ImageFormat | None:
    head = bytes(data[:64])
    for f in FORMATS:
        if f.matches(head):
            return f
    # svg files commonly start with an XML prolog
    if head.lstrip().startswith(b"<?xml") and b"<svg" in bytes(data[:1024]):
        return _BY_MIME["image/svg+xml"]
    return None


def reencodable(mimes: Iterable[str]) -> list[str]:
    """Static filter: keep formats that can be rasterized and re-encoded, in order."""
    return [get_format(m).mime for m in mimes if get_format(m).reencodable]
