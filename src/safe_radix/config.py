"""Run config (v1) for safe-radix.

Goal: make a fit reproducible and portable (CLI, CI): same alphabet, same
budget, same candidate formats, same output.

This module intentionally stays *small* and strict:
  - JSON only
  - explicit schema id
  - unknown keys are rejected
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from safe_radix.core.alphabets import resolve_alphabet
from safe_radix.core.codecs import CODEC_IDS, PayloadCodec, get_codec
from safe_radix.core.radix_codec import BigRadixCodec
from safe_radix.errors import UsageError
from safe_radix.formats import DEFAULT_CANDIDATES, get_format

SPEC_ID_V1 = "safe-radix.config.v1"

DEFAULT_ALPHABET = "url"
DEFAULT_BUDGET = 2000


class ConfigError(UsageError):
    pass


def _load_json_arg(config_arg: str) -> dict[str, Any]:
    s = config_arg.strip()
    if not s:
        raise ConfigError("config: argomento vuoto")

    if s.startswith("@"):
        p = Path(s[1:]).expanduser()
        if not p.exists() or not p.is_file():
            raise ConfigError(f"config: file non trovato: {p}")
        raw = p.read_text(encoding="utf-8")
        try:
            obj = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"config: JSON non valido in {p}: {e}") from e
        if not isinstance(obj, dict):
            raise ConfigError(f"config: il JSON in {p} deve essere un oggetto")
        return obj

    try:
        obj = json.loads(s)
    except json.JSONDecodeError as e:
        raise ConfigError(f"config: JSON inline non valido: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigError("config: il JSON inline deve essere un oggetto")
    return obj


def _optional_str(obj: dict[str, Any], key: str, default: str | None) -> str | None:
    if key not in obj or obj[key] is None:
        return default
    v = obj[key]
    if not isinstance(v, str) or not v.strip():
        raise ConfigError(f"config: campo '{key}' deve essere una stringa non vuota")
    return v


def _optional_budget(obj: dict[str, Any]) -> int:
    if "budget" not in obj:
        return DEFAULT_BUDGET
    v = obj["budget"]
    # bool is an int subclass
    if isinstance(v, bool) or not isinstance(v, int) or v < 1:
        raise ConfigError("config: campo 'budget' deve essere un intero positivo")
    return v


def _optional_formats(obj: dict[str, Any]) -> tuple[str, ...]:
    if "formats" not in obj:
        return DEFAULT_CANDIDATES
    v = obj["formats"]
    if not isinstance(v, list) or not v:
        raise ConfigError("config: 'formats' deve essere una lista non vuota di MIME type")
    out: list[str] = []
    for item in v:
        if not isinstance(item, str):
            raise ConfigError("config: 'formats' contiene un valore non-stringa")
        try:
            out.append(get_format(item).mime)
        except UsageError as e:
            raise ConfigError(f"config: {e}") from e
    return tuple(out)


@dataclass(frozen=True)
class RunConfig:
    """Alphabet + budget + candidate formats for one fit/encode run."""

    alphabet: str = DEFAULT_ALPHABET
    budget: int = DEFAULT_BUDGET
    formats: tuple[str, ...] = DEFAULT_CANDIDATES
    codec: str = "raw"
    base_url: str | None = None

    def symbols(self) -> str:
        return resolve_alphabet(self.alphabet)

    def radix_codec(self) -> BigRadixCodec:
        return BigRadixCodec(self.symbols())

    def codec_instance(self) -> PayloadCodec:
        return get_codec(self.codec)

    def link_budget(self) -> int:
        """Characters left for the encoded string once the base URL is prepended."""
        return self.budget - len(self.base_url or "")


def load_config(config_arg: str) -> RunConfig:
    """Load and validate a run config.

    config_arg:
      - '@file.json'
      - inline JSON object
    """
    obj = _load_json_arg(config_arg)

    allowed = {"spec", "alphabet", "budget", "formats", "codec", "base_url"}
    extra = sorted(set(obj.keys()) - allowed)
    if extra:
        raise ConfigError(f"config: chiavi non supportate: {', '.join(extra)}")

    spec_id = obj.get("spec")
    if spec_id != SPEC_ID_V1:
        raise ConfigError(f"config: spec non supportata: {spec_id!r} (attesa {SPEC_ID_V1!r})")

    alphabet = _optional_str(obj, "alphabet", DEFAULT_ALPHABET)
    assert alphabet is not None
    # resolving + building the codec is the validation
    try:
        BigRadixCodec(resolve_alphabet(alphabet))
    except UsageError as e:
        raise ConfigError(f"config: alphabet: {e}") from e

    codec = (_optional_str(obj, "codec", "raw") or "raw").strip().lower()
    if codec not in CODEC_IDS:
        raise ConfigError(f"config: codec non supportato: {codec!r} (attesi: {', '.join(CODEC_IDS)})")

    budget = _optional_budget(obj)
    base_url = _optional_str(obj, "base_url", None)
    if base_url is not None and len(base_url) >= budget:
        raise ConfigError(f"config: base_url ({len(base_url)} chars) leaves no room in budget {budget}")

    return RunConfig(
        alphabet=alphabet,
        budget=budget,
        formats=_optional_formats(obj),
        codec=codec,
        base_url=base_url,
    )
