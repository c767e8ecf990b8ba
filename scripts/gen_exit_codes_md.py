#!/usr/bin/env python3
"""Write (or check) docs/exit_codes.md from the EXIT_CODES table in safe_radix.errors.

  python scripts/gen_exit_codes_md.py           # regenerate
  python scripts/gen_exit_codes_md.py --check   # CI: exit 1 if the doc is stale
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO = Path(__file__).resolve().parents[1]
DEFAULT_DOC = REPO / "docs" / "exit_codes.md"


def _render() -> str:
    sys.path.insert(0, str(REPO / "src"))
    from safe_radix.errors import render_exit_codes_markdown

    return render_exit_codes_markdown()


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="gen_exit_codes_md.py")
    ap.add_argument("--out", type=Path, default=DEFAULT_DOC, help="Target markdown file")
    ap.add_argument("--check", action="store_true", help="Do not write; fail if the file differs")
    ns = ap.parse_args(argv)

    text = _render()
    if ns.check:
        current = ns.out.read_text(encoding="utf-8") if ns.out.is_file() else None
        if current != text:
            print(f"[safe-radix] {ns.out} is stale, run scripts/gen_exit_codes_md.py", file=sys.stderr)
            return 1
        print(f"[safe-radix] {ns.out} up to date")
        return 0

    ns.out.parent.mkdir(parents=True, exist_ok=True)
    ns.out.write_text(text, encoding="utf-8")
    print(f"[safe-radix] wrote {ns.out} ({len(text.splitlines())} lines)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
