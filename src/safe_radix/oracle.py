"""Raster rendering oracle.

The search only needs one capability: render an image in a format, at a
quality in (0, 1] and a target size, and hand back the encoded bytes (or
raise EncoderFailure). ``PillowRenderer`` is the concrete one; tests use
stub oracles that satisfy the same Protocol.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Protocol

from PIL import Image, ImageOps

from safe_radix.errors import EncoderFailure, UsageError
from safe_radix.formats import ImageFormat, get_format

log = logging.getLogger(__name__)


class CompressionOracle(Protocol):
    def render(self, image: Any, fmt: str, quality: float, width: int, height: int) -> bytes:
        """Encode ``image`` at the given parameters. Deterministic for fixed inputs."""
        ...


def image_size(image: Any) -> tuple[int, int]:
    w, h = image.size
    return int(w), int(h)


def scaled_size(image: Any, scale: float) -> tuple[int, int]:
    w, h = image_size(image)
    return max(1, round(w * scale)), max(1, round(h * scale))


def load_image(source: str | Path | bytes) -> Image.Image:
    """Open an image fully into memory, upright (EXIF orientation applied), first frame only."""
    try:
        if isinstance(source, (bytes, bytearray)):
            img = Image.open(io.BytesIO(bytes(source)))
        else:
            img = Image.open(Path(source))
        img.seek(0)
        img.load()
    except (OSError, ValueError) as e:
        raise UsageError(f"cannot read image: {e}") from e
    return ImageOps.exif_transpose(img)


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)


def _prepare(img: Image.Image, f: ImageFormat) -> Image.Image:
    if f.pillow_name == "JPEG":
        if _has_alpha(img):
            # no alpha in JPEG: flatten onto white like a browser canvas export
            rgba = img.convert("RGBA")
            bg = Image.new("RGB", rgba.size, (255, 255, 255))
            bg.paste(rgba, mask=rgba.getchannel("A"))
            return bg
        return img if img.mode in ("RGB", "L") else img.convert("RGB")
    if _has_alpha(img):
        return img if img.mode == "RGBA" else img.convert("RGBA")
    return img if img.mode in ("RGB", "L") else img.convert("RGB")


class PillowRenderer:
    """CompressionOracle backed by Pillow."""

    resample = Image.Resampling.LANCZOS

    def render(self, image: Image.Image, fmt: str, quality: float, width: int, height: int) -> bytes:
        try:
            f = get_format(fmt)
        except UsageError as e:
            raise EncoderFailure(str(e)) from e
        if not f.reencodable or f.pillow_name is None:
            raise EncoderFailure(f"{f.mime} cannot be re-encoded")
        if width < 1 or height < 1:
            raise EncoderFailure(f"invalid target size {width}x{height}")
        if not (0.0 < quality <= 1.0):
            raise EncoderFailure(f"quality out of range: {quality}")

        img = _prepare(image, f)
        if img.size != (width, height):
            img = img.resize((width, height), self.resample)

        params: dict[str, Any] = {}
        if f.lossy:
            params["quality"] = max(1, min(100, round(quality * 100)))
        if f.pillow_name == "PNG":
            params["optimize"] = True

        buf = io.BytesIO()
        try:
            img.save(buf, format=f.pillow_name, **params)
        except (OSError, ValueError, KeyError) as e:
            raise EncoderFailure(f"{f.mime} encode failed at {width}x{height} q={quality:.3f}: {e}") from e
        out = buf.getvalue()
        log.debug("rendered %s %dx%d q=%.3f -> %d bytes", f.mime, width, height, quality, len(out))
        return out
