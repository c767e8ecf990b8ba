"""safe-radix CLI.

This is the stable CLI entrypoint (console-script: ``safe-radix``).

Commands:
  - encode / decode: any file <-> string over a safe alphabet
  - fit: re-encode an image until its string fits a character budget
  - view: decode a fit string (or link) back to an image file
  - estimate: planning helper, encoded length for N bytes
  - config-validate: check a run config (v1)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from safe_radix.config import RunConfig, load_config
from safe_radix.core.alphabets import resolve_alphabet
from safe_radix.core.codecs import CODEC_IDS
from safe_radix.core.envelope import envelope_tag, pack_envelope, unpack_envelope
from safe_radix.core.radix_codec import BigRadixCodec
from safe_radix.errors import EXIT_CORRUPT, CorruptPayload, SafeRadixError, UsageError
from safe_radix.formats import get_format, sniff_format

log = logging.getLogger("safe_radix.cli")

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _pkg_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("safe-radix")
    except PackageNotFoundError:
        # script invoked from a source tree without metadata
        return "0+unknown"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")


def _add_run_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        default=None,
        help="Run config JSON (@file.json or inline JSON). Flags override its values.",
    )
    p.add_argument(
        "--alphabet",
        default=None,
        help="Alphabet name (url, base62, hex, digits) or literal:<symbols>. Default: url",
    )


def _read_bytes(arg: str) -> bytes:
    if arg == "-":
        return sys.stdin.buffer.read()
    p = Path(arg)
    if not p.is_file():
        raise UsageError(f"file non trovato: {p}")
    return p.read_bytes()


def _read_text(arg: str) -> str:
    if arg == "-":
        return sys.stdin.read().strip()
    p = Path(arg)
    if not p.is_file():
        raise UsageError(f"file non trovato: {p}")
    return p.read_text(encoding="utf-8").strip()


def _write_text(out: Path | None, s: str) -> None:
    if out is None:
        print(s)
    else:
        out.write_text(s + "\n", encoding="utf-8")


def _resolve_config(ns: argparse.Namespace) -> RunConfig:
    """precedence: CLI flag > config file > default"""
    cfg = load_config(ns.config) if getattr(ns, "config", None) else RunConfig()
    over: dict[str, Any] = {}
    if getattr(ns, "alphabet", None):
        over["alphabet"] = ns.alphabet
    if getattr(ns, "budget", None) is not None:
        if ns.budget < 1:
            raise UsageError(f"--budget must be >= 1, got {ns.budget}")
        over["budget"] = int(ns.budget)
    if getattr(ns, "codec", None):
        over["codec"] = ns.codec
    if getattr(ns, "formats", None):
        over["formats"] = tuple(get_format(f).mime for f in ns.formats.split(",") if f.strip())
    if getattr(ns, "base_url", None):
        over["base_url"] = ns.base_url
    if not over:
        return cfg
    return replace(cfg, **over)


def _strip_link(s: str, codec: BigRadixCodec, base_url: str | None) -> str:
    """Accept a bare string or a full link; keep the trailing run of alphabet symbols."""
    if base_url and s.startswith(base_url):
        return s[len(base_url) :]
    if "%" not in codec.alphabet:
        s = unquote(s)
    alphabet = set(codec.alphabet)
    i = len(s)
    while i > 0 and s[i - 1] in alphabet:
        i -= 1
    return s[i:]


# ------------------------------------------------------------------ commands


def _cmd_encode(ns: argparse.Namespace) -> int:
    cfg = _resolve_config(ns)
    radix = cfg.radix_codec()
    data = _read_bytes(ns.input)
    codec = cfg.codec_instance()
    payload = data if codec.codec_id == "raw" else pack_envelope(data, codec)
    encoded = radix.encode(payload)
    if ns.budget is not None:
        radix.validate(encoded, budget=cfg.budget)
    log.info("%d bytes -> %d bytes payload -> %d chars (radix %d)", len(data), len(payload), len(encoded), radix.radix)
    _write_text(ns.output, encoded)
    return 0


def _cmd_decode(ns: argparse.Namespace) -> int:
    cfg = _resolve_config(ns)
    radix = cfg.radix_codec()
    payload = radix.decode(_read_text(ns.input))
    codec = cfg.codec_instance()
    if codec.codec_id == "raw":
        data = payload
    else:
        tag = envelope_tag(payload)
        if tag != codec.codec_tag:
            raise CorruptPayload(f"envelope tag {tag} does not match codec {codec.codec_id!r}")
        data = unpack_envelope(payload)
    if ns.output is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    else:
        ns.output.write_bytes(data)
    return 0


def _fit_report(cfg: RunConfig, source: Path, original_size: int, result: Any, output: str) -> dict[str, Any]:
    return {
        "schema": "safe-radix.fit-report.v1",
        "source": str(source),
        "original_size": int(original_size),
        "alphabet": cfg.alphabet,
        "budget": int(cfg.budget),
        "phase": int(result.phase),
        "trials": int(result.trials),
        "format": result.params.format,
        "quality": round(float(result.params.quality), 4),
        "scale": round(float(result.params.scale), 4),
        "rendered_size": int(result.rendered_size),
        "encoded_length": int(result.encoded_length),
        "output_length": len(output),
        "version": _pkg_version(),
    }


def _cmd_fit(ns: argparse.Namespace) -> int:
    from safe_radix.oracle import PillowRenderer, load_image
    from safe_radix.search import SizeConstrainedCompressor

    cfg = _resolve_config(ns)
    radix = cfg.radix_codec()
    budget = cfg.link_budget()
    if budget < 1:
        raise UsageError(f"base url leaves no room in budget {cfg.budget}")

    data = _read_bytes(str(ns.input))
    compressor = SizeConstrainedCompressor(radix, PillowRenderer(), budget, max_rounds=ns.max_rounds)

    result = None
    sniffed = sniff_format(data)
    if sniffed is not None and not ns.no_passthrough:
        result = compressor.fit_original(data, sniffed.mime)
    if result is None:
        if sniffed is not None:
            log.info("encoded original (%s, %d bytes) exceeds %d chars, re-encoding", sniffed.mime, len(data), budget)
        result = compressor.find_fit(load_image(data), cfg.formats)

    radix.validate(result.encoded, budget=budget)
    output = (cfg.base_url or "") + result.encoded
    _write_text(ns.output, output)

    if ns.report is not None:
        report = _fit_report(cfg, ns.input, len(data), result, output)
        ns.report.write_text(json.dumps(report, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    print(
        f"[safe-radix] {result.params.format} q={result.params.quality:.2f} "
        f"scale={result.params.scale:.2f}: {len(data)} -> {result.rendered_size} bytes, "
        f"{len(output)}/{cfg.budget} chars (phase {result.phase}, {result.trials} trials)",
        file=sys.stderr,
    )
    return 0


def _cmd_view(ns: argparse.Namespace) -> int:
    cfg = _resolve_config(ns)
    radix = cfg.radix_codec()
    raw = _read_text(ns.input)
    encoded = _strip_link(raw, radix, cfg.base_url)
    if not encoded:
        raise CorruptPayload("no encoded data found in input")
    radix.validate(encoded, budget=cfg.budget)

    data = radix.decode(encoded)
    fmt = sniff_format(data)
    if fmt is None:
        raise CorruptPayload("unable to detect a valid image format")

    out: Path = ns.output
    if out.is_dir():
        out = out / f"image.{fmt.extension}"
    out.write_bytes(data)
    print(f"Format: {fmt.mime} | Size: {len(data) / 1024:.2f}KB -> {out}")
    return 0


def _cmd_estimate(ns: argparse.Namespace) -> int:
    radix = BigRadixCodec(resolve_alphabet(ns.alphabet or "url"))
    est = radix.estimate_encoded_size(ns.n_bytes)
    if ns.budget is not None:
        print(f"{est} {'fits' if est <= ns.budget else 'exceeds'} {ns.budget}")
    else:
        print(est)
    return 0


def _cmd_config_validate(ns: argparse.Namespace) -> int:
    # load is the validation
    load_config(ns.config_arg)
    print("OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="safe-radix", description="Bytes and images as safe-alphabet strings")
    p.add_argument("--version", action="version", version=f"%(prog)s {_pkg_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_e = sub.add_parser("encode", help="Encode any file to a string")
    p_e.add_argument("input", help="Input file ('-' for stdin)")
    p_e.add_argument("-o", "--output", type=Path, default=None, help="Write string here (default: stdout)")
    p_e.add_argument("--codec", choices=CODEC_IDS, default=None, help="Pre-compress payload (default: raw)")
    p_e.add_argument("--budget", type=int, default=None, help="Fail (exit 13) if the string is longer")
    _add_run_args(p_e)
    _add_common_args(p_e)

    p_d = sub.add_parser("decode", help="Decode a string back to the original bytes")
    p_d.add_argument("input", help="File holding the string ('-' for stdin)")
    p_d.add_argument("-o", "--output", type=Path, default=None, help="Write bytes here (default: stdout)")
    p_d.add_argument("--codec", choices=CODEC_IDS, default=None, help="Codec used at encode time")
    _add_run_args(p_d)
    _add_common_args(p_d)

    p_f = sub.add_parser("fit", help="Re-encode an image until its string fits the budget")
    p_f.add_argument("input", type=Path)
    p_f.add_argument("-o", "--output", type=Path, default=None, help="Write string/link here (default: stdout)")
    p_f.add_argument("--budget", type=int, default=None, help="Character budget (default: config or 2000)")
    p_f.add_argument(
        "--formats",
        default=None,
        help="Candidate MIME types, comma-separated (e.g. image/webp,image/jpeg)",
    )
    p_f.add_argument("--base-url", default=None, help="Prefix the output with this URL (counts toward budget)")
    p_f.add_argument("--report", type=Path, default=None, help="Write a JSON fit report")
    p_f.add_argument("--max-rounds", type=int, default=8, help="Binary search round ceiling (default: 8)")
    p_f.add_argument(
        "--no-passthrough",
        action="store_true",
        help="Always re-encode, even if the original file already fits",
    )
    _add_run_args(p_f)
    _add_common_args(p_f)

    p_v = sub.add_parser("view", help="Decode a fit string or link to an image file")
    p_v.add_argument("input", help="File holding the string or link ('-' for stdin)")
    p_v.add_argument("output", type=Path, help="Output file, or directory (image.<ext>)")
    p_v.add_argument("--base-url", default=None, help="Strip this prefix before decoding")
    p_v.add_argument("--budget", type=int, default=None, help="Reject strings longer than this (default: config or 2000)")
    _add_run_args(p_v)
    _add_common_args(p_v)

    p_est = sub.add_parser("estimate", help="Estimate encoded length for N payload bytes")
    p_est.add_argument("n_bytes", type=int)
    p_est.add_argument("--alphabet", default=None)
    p_est.add_argument("--budget", type=int, default=None)
    _add_common_args(p_est)

    p_cv = sub.add_parser("config-validate", help="Validate a run config (v1)")
    p_cv.add_argument("config_arg", help="Config JSON (@file.json or inline JSON)")
    _add_common_args(p_cv)

    return p


_COMMANDS = {
    "encode": _cmd_encode,
    "decode": _cmd_decode,
    "fit": _cmd_fit,
    "view": _cmd_view,
    "estimate": _cmd_estimate,
    "config-validate": _cmd_config_validate,
}


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)

    level = logging.WARNING
    if ns.verbose == 1:
        level = logging.INFO
    elif ns.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)

    try:
        return _COMMANDS[ns.cmd](ns)
    except SystemExit:
        raise
    except SafeRadixError as e:
        if ns.debug:
            raise
        print(f"[safe-radix] {type(e).__name__}: {e}", file=sys.stderr)
        return int(e.exit_code)
    except Exception as e:
        if ns.debug:
            raise
        print(f"[safe-radix] error: {e}", file=sys.stderr)
        return EXIT_CORRUPT


if __name__ == "__main__":
    raise SystemExit(main())
