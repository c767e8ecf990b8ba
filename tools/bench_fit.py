#!/usr/bin/env python3
"""Fit benchmark over a directory of images.

Runs fit -> decode -> sniff for every image, collecting timing, trial count,
chosen parameters and peak RSS. One JSON line per image, then a summary line.

Usage example:
  python tools/bench_fit.py /path/photos --budget 2000 --alphabet url --formats image/webp,image/jpeg

Notes:
- Uses internal APIs (no subprocess). Run inside repo venv.
- Images that cannot be fit are reported with "ok": false, they do not abort the run.
"""

from __future__ import annotations

import argparse
import json
import resource
import sys
import time
from pathlib import Path
from typing import Any

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}


def _peak_rss_kb() -> int:
    # Linux: ru_maxrss is KB
    return int(resource.getrusage(resource.RUSAGE_SELF).ru_maxrss)


def _iter_images(root: Path) -> list[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)


def bench_one(path: Path, budget: int, alphabet: str, formats: tuple[str, ...]) -> dict[str, Any]:
    from safe_radix.core.alphabets import resolve_alphabet
    from safe_radix.core.radix_codec import BigRadixCodec
    from safe_radix.errors import SafeRadixError
    from safe_radix.formats import sniff_format
    from safe_radix.oracle import PillowRenderer, load_image
    from safe_radix.search import SizeConstrainedCompressor

    radix = BigRadixCodec(resolve_alphabet(alphabet))
    data = path.read_bytes()
    row: dict[str, Any] = {"file": str(path), "original_size": len(data), "budget": budget}

    t0 = time.perf_counter()
    try:
        compressor = SizeConstrainedCompressor(radix, PillowRenderer(), budget)
        result = compressor.find_fit(load_image(data), formats)
    except SafeRadixError as e:
        row.update({"ok": False, "error": f"{type(e).__name__}: {e}", "fit_sec": time.perf_counter() - t0})
        return row
    t_fit = time.perf_counter() - t0

    t1 = time.perf_counter()
    back = radix.decode(result.encoded)
    fmt = sniff_format(back)
    t_decode = time.perf_counter() - t1

    row.update(
        {
            "ok": back == result.data and fmt is not None and fmt.mime == result.params.format,
            "phase": result.phase,
            "trials": result.trials,
            "format": result.params.format,
            "quality": round(result.params.quality, 4),
            "scale": round(result.params.scale, 4),
            "rendered_size": result.rendered_size,
            "encoded_length": result.encoded_length,
            "fit_sec": t_fit,
            "decode_sec": t_decode,
            "peak_rss_kb": _peak_rss_kb(),
        }
    )
    return row


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="bench_fit.py", description="safe-radix fit benchmark")
    ap.add_argument("input_dir", type=Path)
    ap.add_argument("--budget", type=int, default=2000)
    ap.add_argument("--alphabet", default="url")
    ap.add_argument("--formats", default="image/webp,image/jpeg,image/png")
    ns = ap.parse_args(argv)

    inp = ns.input_dir.resolve()
    if not inp.is_dir():
        raise SystemExit(f"input_dir non valido: {inp}")

    formats = tuple(f.strip() for f in ns.formats.split(",") if f.strip())
    rows: list[dict[str, Any]] = []
    t0_all = time.perf_counter()

    for path in _iter_images(inp):
        row = bench_one(path, int(ns.budget), ns.alphabet, formats)
        rows.append(row)
        print(json.dumps(row, ensure_ascii=False))

    fitted = [r for r in rows if r["ok"]]
    summary = {
        "schema": "safe-radix.bench_fit.v1",
        "images": len(rows),
        "fitted": len(fitted),
        "avg_fit_sec": (sum(r["fit_sec"] for r in fitted) / len(fitted)) if fitted else 0.0,
        "avg_trials": (sum(r["trials"] for r in fitted) / len(fitted)) if fitted else 0.0,
        "wall_total_sec": time.perf_counter() - t0_all,
        "max_peak_rss_kb": _peak_rss_kb(),
    }
    print(json.dumps(summary, ensure_ascii=False))
    return 0 if len(fitted) == len(rows) else 1


if __name__ == "__main__":
    sys.exit(main())
