from __future__ import annotations

import io
import random

import pytest
from PIL import Image

from safe_radix.errors import EncoderFailure, UsageError
from safe_radix.formats import sniff_format
from safe_radix.oracle import PillowRenderer, load_image, scaled_size

pytestmark = pytest.mark.p1


def make_image(w: int = 96, h: int = 64, mode: str = "RGB", seed: int = 0) -> Image.Image:
    rng = random.Random(seed)
    img = Image.new(mode, (w, h))
    bands = len(mode)
    img.putdata([tuple(rng.randrange(256) for _ in range(bands)) for _ in range(w * h)])
    return img


@pytest.mark.parametrize("mime", ["image/png", "image/jpeg", "image/webp", "image/bmp"])
def test_render_produces_the_requested_format(mime: str) -> None:
    out = PillowRenderer().render(make_image(), mime, 0.8, 48, 32)
    f = sniff_format(out)
    assert f is not None and f.mime == mime
    assert Image.open(io.BytesIO(out)).size == (48, 32)


def test_render_is_deterministic() -> None:
    img = make_image()
    r = PillowRenderer()
    assert r.render(img, "image/jpeg", 0.6, 40, 30) == r.render(img, "image/jpeg", 0.6, 40, 30)


def test_lower_quality_is_smaller() -> None:
    img = make_image()
    r = PillowRenderer()
    assert len(r.render(img, "image/jpeg", 0.2, 96, 64)) < len(r.render(img, "image/jpeg", 0.95, 96, 64))


def test_alpha_flattened_for_jpeg() -> None:
    out = PillowRenderer().render(make_image(mode="RGBA"), "image/jpeg", 0.9, 20, 20)
    assert Image.open(io.BytesIO(out)).mode == "RGB"


def test_alpha_kept_for_png() -> None:
    out = PillowRenderer().render(make_image(mode="RGBA"), "image/png", 1.0, 20, 20)
    assert Image.open(io.BytesIO(out)).mode == "RGBA"


@pytest.mark.parametrize(
    ("mime", "q", "w", "h"),
    [
        ("image/gif", 0.9, 10, 10),
        ("image/svg+xml", 0.9, 10, 10),
        ("image/tiff", 0.9, 10, 10),
        ("image/jpeg", 0.0, 10, 10),
        ("image/jpeg", 1.5, 10, 10),
        ("image/jpeg", 0.9, 0, 10),
    ],
)
def test_render_rejections_are_encoder_failures(mime: str, q: float, w: int, h: int) -> None:
    with pytest.raises(EncoderFailure):
        PillowRenderer().render(make_image(), mime, q, w, h)


def test_scaled_size_never_zero() -> None:
    img = make_image(96, 64)
    assert scaled_size(img, 0.5) == (48, 32)
    assert scaled_size(img, 0.001) == (1, 1)


def test_load_image_from_bytes() -> None:
    buf = io.BytesIO()
    make_image().save(buf, format="PNG")
    img = load_image(buf.getvalue())
    assert img.size == (96, 64)
    with pytest.raises(UsageError):
        load_image(b"not an image")
