"""Typed errors for safe-radix.

Single source of truth for exit codes lives here.

Policy:
- Codec errors (bad alphabet, bad symbols, broken framing) surface immediately.
- EncoderFailure is absorbed by the search as an infeasible trial.
- CompressionExhausted is the only search failure a caller ever sees.
- docs/exit_codes.md is generated from this module (scripts/gen_exit_codes_md.py).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_CORRUPT = 10
EXIT_ENCODER_FAILURE = 11
EXIT_EXHAUSTED = 12
EXIT_BUDGET_EXCEEDED = 13


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage/config error (invalid args, invalid alphabet, invalid config)"),
    ExitCodeInfo(EXIT_CORRUPT, "CORRUPT", "Corrupt or truncated input (unknown symbol, bad length prefix)"),
    ExitCodeInfo(EXIT_ENCODER_FAILURE, "ENCODER_FAILURE", "Raster encoder rejected the requested parameters"),
    ExitCodeInfo(EXIT_EXHAUSTED, "EXHAUSTED", "No quality/scale combination met the size budget"),
    ExitCodeInfo(EXIT_BUDGET_EXCEEDED, "BUDGET_EXCEEDED", "Encoded output is longer than the configured budget"),
)

_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE, do not edit manually.\n")
    lines.append("> Source of truth: `src/safe_radix/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python scripts/gen_exit_codes_md.py`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- Every internal error extends `SafeRadixError` and carries an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append("- Unexpected exceptions map to `CORRUPT` (10).\n")
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class SafeRadixError(Exception):
    """Base error for safe-radix."""

    exit_code: int = EXIT_CORRUPT


class UsageError(SafeRadixError):
    exit_code = EXIT_USAGE


class InvalidAlphabet(UsageError):
    pass


class CorruptPayload(SafeRadixError):
    exit_code = EXIT_CORRUPT


class InvalidSymbol(CorruptPayload):
    def __init__(self, message: str, symbols: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.symbols: tuple[str, ...] = tuple(sorted(set(symbols)))


class InvalidLengthPrefix(CorruptPayload):
    pass


class TruncatedPayload(CorruptPayload):
    def __init__(self, expected: int, got: int) -> None:
        super().__init__(f"incomplete data: expected {expected} bytes but got {got}")
        self.expected = int(expected)
        self.got = int(got)


class EncoderFailure(SafeRadixError):
    exit_code = EXIT_ENCODER_FAILURE


class CompressionExhausted(SafeRadixError):
    exit_code = EXIT_EXHAUSTED


class BudgetExceeded(SafeRadixError):
    exit_code = EXIT_BUDGET_EXCEEDED

    def __init__(self, length: int, budget: int, what: str = "encoded string") -> None:
        super().__init__(f"{what} length {length} exceeds budget {budget}")
        self.length = int(length)
        self.budget = int(budget)
