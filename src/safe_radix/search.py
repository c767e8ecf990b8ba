"""Size-constrained re-encoding search.

Given an image and a character budget, find (format, quality, scale) such
that the radix-encoded render fits the budget with as much fidelity as
possible. Three phases, each may short-circuit the rest:

  1. optimistic: quality 0.95, full size
  2. bounded binary search, quality and scale moving together
  3. hill-climb from the phase-2 point, pushing quality or scale back up

Every render is a blocking call into the oracle and each decision depends
on the previous outcome: trials run strictly one after another. The round
and step ceilings are the only bound on run time.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from safe_radix.core.radix_codec import BigRadixCodec
from safe_radix.errors import CompressionExhausted, EncoderFailure, UsageError
from safe_radix.formats import DEFAULT_CANDIDATES, reencodable
from safe_radix.oracle import CompressionOracle, image_size, scaled_size

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompressionParameters:
    format: str
    quality: float
    scale: float


@dataclass(frozen=True, slots=True)
class Trial:
    params: CompressionParameters
    success: bool
    # math.inf when the oracle rejected the point
    encoded_length: float
    encoded: str | None = None
    data: bytes | None = None

    @property
    def rendered_size(self) -> int:
        return len(self.data) if self.data is not None else 0


@dataclass(frozen=True)
class FitResult:
    params: CompressionParameters
    encoded: str
    rendered_size: int
    phase: int
    trials: int
    data: bytes = b""

    @property
    def encoded_length(self) -> int:
        return len(self.encoded)


@dataclass
class SearchBounds:
    q_min: float
    q_max: float
    s_min: float
    s_max: float

    def converged(self, eps: float) -> bool:
        return (self.q_max - self.q_min) < eps and (self.s_max - self.s_min) < eps

    def snapshot(self) -> tuple[float, float, float, float]:
        return (self.q_min, self.q_max, self.s_min, self.s_max)


@dataclass
class SearchState:
    """Mutable state of one find_fit call. Never shared."""

    bounds: SearchBounds
    iteration: int = 0
    trials: int = 0
    best: Trial | None = None
    history: list[tuple[float, float, float, float]] = field(default_factory=list)


class SizeConstrainedCompressor:
    START_QUALITY = 0.95
    START_SCALE = 1.0
    MIN_QUALITY = 0.1
    MAX_QUALITY = 0.95
    MIN_SCALE = 0.1
    MAX_SCALE = 1.0
    # phase 2 aims a bit under the budget when sizing the first cut
    TARGET_RATIO = 0.95
    # (oversize ratio above which, cap for both upper bounds); first match wins
    OVERSIZE_CUTS: tuple[tuple[float, float], ...] = ((4.0, 0.7), (2.0, 0.8))
    STEP_SIZES: tuple[float, ...] = (0.05, 0.10, 0.20)

    def __init__(
        self,
        codec: BigRadixCodec,
        oracle: CompressionOracle,
        budget: int,
        *,
        max_rounds: int = 8,
        convergence: float = 0.05,
        detect_format: bool = True,
    ):
        if int(budget) < 1:
            raise UsageError(f"budget must be >= 1, got {budget}")
        if max_rounds < 1:
            raise UsageError(f"max_rounds must be >= 1, got {max_rounds}")
        self.codec = codec
        self.oracle = oracle
        self.budget = int(budget)
        self.max_rounds = int(max_rounds)
        self.convergence = float(convergence)
        self.detect_format = bool(detect_format)
        self.last_state: SearchState | None = None

    # ------------------------------------------------------------------ trials

    def _trial(self, image: Any, params: CompressionParameters, state: SearchState) -> Trial:
        state.trials += 1
        w, h = scaled_size(image, params.scale)
        try:
            data = self.oracle.render(image, params.format, params.quality, w, h)
        except EncoderFailure as e:
            log.debug("trial %s rejected by encoder: %s", params, e)
            return Trial(params=params, success=False, encoded_length=math.inf)

        n = self.codec.encoded_length(data)
        if n > self.budget:
            log.debug("trial q=%.3f s=%.3f: %d > %d", params.quality, params.scale, n, self.budget)
            return Trial(params=params, success=False, encoded_length=n)

        encoded = self.codec.encode(data)
        log.debug("trial q=%.3f s=%.3f: %d <= %d fits", params.quality, params.scale, n, self.budget)
        return Trial(params=params, success=True, encoded_length=n, encoded=encoded, data=data)

    def _result(self, t: Trial, *, phase: int, state: SearchState) -> FitResult:
        assert t.success and t.encoded is not None and t.data is not None
        return FitResult(
            params=t.params,
            encoded=t.encoded,
            rendered_size=t.rendered_size,
            phase=phase,
            trials=state.trials,
            data=t.data,
        )

    # ----------------------------------------------------------------- helpers

    def fit_original(self, data: bytes, fmt: str) -> FitResult | None:
        """Phase 0: the untouched file bytes, if they already fit."""
        if self.codec.encoded_length(data) > self.budget:
            return None
        return FitResult(
            params=CompressionParameters(format=fmt, quality=1.0, scale=1.0),
            encoded=self.codec.encode(data),
            rendered_size=len(data),
            phase=0,
            trials=0,
            data=bytes(data),
        )

    def detect_optimal_format(self, image: Any, candidate_formats: Sequence[str]) -> str:
        """Render once per re-encodable candidate at high quality; smallest output wins."""
        candidates = list(candidate_formats)
        if not candidates:
            raise UsageError("no candidate formats")
        w, h = image_size(image)
        best: str | None = None
        smallest = math.inf
        for fmt in reencodable(candidates):
            try:
                size = len(self.oracle.render(image, fmt, self.START_QUALITY, w, h))
            except EncoderFailure as e:
                log.warning("format %s not usable: %s", fmt, e)
                continue
            if size < smallest:
                smallest = size
                best = fmt
        if best is None:
            usable = reencodable(candidates)
            return usable[0] if usable else candidates[0]
        log.info("optimal format: %s (%d bytes at q=%.2f)", best, smallest, self.START_QUALITY)
        return best

    # ------------------------------------------------------------------ phases

    def _initial_bounds(self, oversize: float) -> SearchBounds:
        b = SearchBounds(self.MIN_QUALITY, self.MAX_QUALITY, self.MIN_SCALE, self.MAX_SCALE)
        for threshold, cap in self.OVERSIZE_CUTS:
            if oversize > threshold:
                b.q_max = min(b.q_max, cap)
                b.s_max = min(b.s_max, cap)
                break
        return b

    def _binary_search(self, image: Any, fmt: str, state: SearchState) -> Trial:
        b = state.bounds
        while state.iteration < self.max_rounds:
            q = (b.q_min + b.q_max) / 2
            s = (b.s_min + b.s_max) / 2
            t = self._trial(image, CompressionParameters(fmt, q, s), state)
            if t.success:
                # fits: look for a less aggressive point
                state.best = t
                b.q_min, b.s_min = q, s
            else:
                b.q_max, b.s_max = q, s
            state.iteration += 1
            state.history.append(b.snapshot())
            if b.converged(self.convergence):
                break

        if state.best is None:
            raise CompressionExhausted(
                f"unable to compress image sufficiently: no point within {state.iteration} "
                f"rounds fits {self.budget} characters"
            )
        return state.best

    def _hill_climb(self, image: Any, start: Trial, state: SearchState) -> Trial:
        work = start
        for step in self.STEP_SIZES:
            while True:
                p = work.params
                by_quality: Trial | None = None
                by_scale: Trial | None = None
                if p.quality < self.MAX_QUALITY:
                    q = min(self.MAX_QUALITY, p.quality + step)
                    by_quality = self._trial(image, replace(p, quality=q), state)
                if p.scale < self.MAX_SCALE:
                    s = min(self.MAX_SCALE, p.scale + step)
                    by_scale = self._trial(image, replace(p, scale=s), state)
                # scale first: the quality step must be strictly shorter to win a tie
                feasible = [t for t in (by_scale, by_quality) if t is not None and t.success]
                if not feasible:
                    break
                work = min(feasible, key=lambda t: t.encoded_length)
                log.debug("hill-climb step %.2f -> q=%.3f s=%.3f", step, work.params.quality, work.params.scale)
        return work

    # -------------------------------------------------------------------- main

    def find_fit(self, image: Any, candidate_formats: Sequence[str] | None = None) -> FitResult:
        formats = list(candidate_formats) if candidate_formats is not None else list(DEFAULT_CANDIDATES)
        if not formats:
            raise UsageError("no candidate formats")

        state = SearchState(bounds=self._initial_bounds(0.0))
        self.last_state = state

        fmt = formats[0]
        if self.detect_format and len(formats) > 1:
            fmt = self.detect_optimal_format(image, formats)

        first = self._trial(image, CompressionParameters(fmt, self.START_QUALITY, self.START_SCALE), state)
        if first.success:
            log.info("phase 1: fits at full size (%d chars)", first.encoded_length)
            return self._result(first, phase=1, state=state)

        oversize = first.encoded_length / (self.TARGET_RATIO * self.budget)
        state.bounds = self._initial_bounds(oversize)
        log.info(
            "phase 2: %s chars over budget %d (x%.2f), bounds q=[%.2f, %.2f] s=[%.2f, %.2f]",
            first.encoded_length,
            self.budget,
            oversize,
            *state.bounds.snapshot(),
        )
        found = self._binary_search(image, fmt, state)

        log.info("phase 3: hill-climb from q=%.3f s=%.3f", found.params.quality, found.params.scale)
        best = self._hill_climb(image, found, state)
        phase = 3 if best is not found else 2
        log.info(
            "done: %s q=%.3f s=%.3f -> %d chars, %d trials",
            best.params.format,
            best.params.quality,
            best.params.scale,
            best.encoded_length,
            state.trials,
        )
        return self._result(best, phase=phase, state=state)
