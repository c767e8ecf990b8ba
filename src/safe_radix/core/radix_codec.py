from __future__ import annotations

import math
from collections.abc import Sequence

from safe_radix.errors import (
    BudgetExceeded,
    InvalidAlphabet,
    InvalidLengthPrefix,
    InvalidSymbol,
    TruncatedPayload,
)

HEADER_SIZE = 4
MAX_PAYLOAD = (1 << (8 * HEADER_SIZE)) - 1


def minimal_bytes(value: int) -> bytes:
    """Big-endian bytes of ``value`` with no leading zero byte (b"" for 0)."""
    if value < 0:
        raise ValueError("negative value not supported")
    out = bytearray()
    while value:
        out.append(value & 0xFF)
        value >>= 8
    out.reverse()
    return bytes(out)


def frame(data: bytes) -> bytes:
    """Layout: u32be(len(data)) + data."""
    if len(data) > MAX_PAYLOAD:
        raise ValueError(f"payload too large for a {HEADER_SIZE}-byte length header: {len(data)}")
    return len(data).to_bytes(HEADER_SIZE, "big") + bytes(data)


class BigRadixCodec:
    """
    Bytes <-> string over a fixed alphabet.

    The payload is framed with a 4-byte big-endian length header, the frame
    is read as one unsigned integer and written in base R = len(alphabet),
    most significant symbol first.

    Each instance owns its symbol tables; nothing is shared across
    instances and nothing mutates after __init__.
    """

    def __init__(self, alphabet: str | Sequence[str], *, allow_empty: bool = True):
        symbols = tuple(alphabet)
        if not symbols:
            raise InvalidAlphabet("alphabet is empty")
        for sym in symbols:
            if not isinstance(sym, str) or len(sym) != 1:
                raise InvalidAlphabet(f"alphabet symbols must be single characters, got {sym!r}")
        if len(set(symbols)) != len(symbols):
            dup = sorted({s for s in symbols if symbols.count(s) > 1})
            raise InvalidAlphabet(f"alphabet contains duplicate symbols: {''.join(dup)!r}")
        if len(symbols) < 2:
            raise InvalidAlphabet("alphabet needs at least 2 symbols")

        self._symbols: tuple[str, ...] = symbols
        self._index: dict[str, int] = {s: i for i, s in enumerate(symbols)}
        self._radix = len(symbols)
        self.allow_empty = bool(allow_empty)

    @property
    def alphabet(self) -> str:
        return "".join(self._symbols)

    @property
    def radix(self) -> int:
        return self._radix

    def __repr__(self) -> str:
        return f"BigRadixCodec(radix={self._radix}, alphabet={self.alphabet!r})"

    # ------------------------------------------------------------------ encode

    def encode(self, data: bytes) -> str:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("data must be bytes")
        value = int.from_bytes(frame(bytes(data)), "big")
        if value == 0:
            return self._symbols[0]

        r = self._radix
        digits: list[str] = []
        while value:
            value, rem = divmod(value, r)
            digits.append(self._symbols[rem])
        digits.reverse()
        return "".join(digits)

    def encoded_length(self, data: bytes) -> int:
        """Exact ``len(self.encode(data))`` without building the string."""
        value = int.from_bytes(frame(bytes(data)), "big")
        if value == 0:
            return 1
        r = self._radix
        # log estimate, then fix off-by-one with exact integer powers
        n = max(1, int(value.bit_length() / math.log2(r)))
        while r**n <= value:
            n += 1
        while n > 1 and r ** (n - 1) > value:
            n -= 1
        return n

    # ------------------------------------------------------------------ decode

    def decode(self, s: str) -> bytes:
        if not isinstance(s, str):
            raise TypeError("s must be str")
        if not s:
            raise InvalidSymbol("input must be a non-empty string")
        bad = [ch for ch in s if ch not in self._index]
        if bad:
            raise InvalidSymbol(f"invalid characters in input: {', '.join(sorted(set(bad)))}", bad)

        r = self._radix
        idx = self._index
        value = 0
        for ch in s:
            value = value * r + idx[ch]

        if value == 0:
            # all-zero frame: the empty payload
            if self.allow_empty:
                return b""
            raise InvalidLengthPrefix("invalid length prefix: length must be greater than 0")

        raw = minimal_bytes(value)
        first_pad = max(0, HEADER_SIZE - len(raw))

        # Leading zero bytes of the frame are lost in the integer. Restore the
        # fewest that leave room for the declared payload; len grows by one per
        # pad byte while the declared length can only shrink, so at most one
        # pad count gives an exact frame and it is the first one that fits.
        for pad in range(first_pad, HEADER_SIZE):
            buf = b"\x00" * pad + raw
            declared = int.from_bytes(buf[:HEADER_SIZE], "big")
            if len(buf) - HEADER_SIZE >= declared:
                return buf[HEADER_SIZE : HEADER_SIZE + declared]

        buf = b"\x00" * first_pad + raw
        raise TruncatedPayload(int.from_bytes(buf[:HEADER_SIZE], "big"), len(buf) - HEADER_SIZE)

    # ---------------------------------------------------------------- planning

    def estimate_encoded_size(self, n_bytes: int) -> int:
        """Upper-bound estimate of the encoded length for an n-byte payload."""
        if n_bytes < 0:
            raise ValueError("n_bytes must be >= 0")
        total_bits = (int(n_bytes) + HEADER_SIZE) * 8
        return math.ceil(total_bits / math.log2(self._radix))

    def will_fit(self, n_bytes: int, budget: int) -> bool:
        return self.estimate_encoded_size(n_bytes) <= int(budget)

    def validate(self, s: str, *, budget: int | None = None) -> None:
        """Check that ``s`` is publishable: alphabet symbols only, within budget."""
        bad = [ch for ch in s if ch not in self._index]
        if bad:
            raise InvalidSymbol(
                f"invalid characters found in encoded data: {', '.join(sorted(set(bad)))}", bad
            )
        if budget is not None and len(s) > int(budget):
            raise BudgetExceeded(len(s), int(budget))
