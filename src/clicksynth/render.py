"""Render engine: turns an action timeline into a stereo PCM buffer.

Rendering runs in two phases. Preparation walks the classified timeline in
order and, per action, resolves a sample pool (with category/side
fallback), picks a sample, draws pitch and volume from a seedable
``numpy.random.Generator`` and resamples the sample to the output rate.
Mixing then sums the prepared instructions into a float64 buffer, either
sequentially or across worker threads that each own a disjoint time
window. Noise overlay and the normalize/clip pass run last.
"""

from __future__ import annotations

import logging
import math
import threading
import time as time_module
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from fractions import Fraction

import numpy as np
from scipy.signal import resample_poly

from .classify import ClassifiedAction, classify_timeline
from .clickpack import ClickPack, Sample
from .config import RenderConfig
from .errors import (
    EmptyTimelineError,
    ExpressionError,
    RenderCancelledError,
    RenderError,
    SampleResampleError,
)
from .expression import (
    CompiledExpression,
    ExprVariable,
    compile_expression,
    expression_variables,
)
from .normalize import Action, ActionTimeline
from .types import ActionKind, ClickCategory, Player, PlayerSide

logger = logging.getLogger(__name__)

OUTPUT_CHANNELS = 2
# Largest denominator used when turning a resampling ratio into up/down factors
MAX_RESAMPLE_DENOMINATOR = 1000


@dataclass(frozen=True)
class RenderInstruction:
    """A prepared sample placed at an output offset with a gain."""

    index: int  # action index in the timeline
    data: np.ndarray  # (frames, 2) float64 at the output rate
    offset: int
    gain: float
    lane: tuple[Player, ClickCategory]
    pitch: float = 1.0

    @property
    def end(self) -> int:
        return self.offset + self.data.shape[0]


@dataclass
class RenderStats:
    actions: int = 0
    rendered: int = 0
    skipped: int = 0
    fallbacks: int = 0
    peak: float = 0.0
    elapsed_seconds: float = 0.0


@dataclass
class RenderResult:
    samples: np.ndarray  # (frames, 2) float64
    sample_rate: int
    warnings: list[str] = field(default_factory=list)
    stats: RenderStats = field(default_factory=RenderStats)

    @property
    def duration(self) -> float:
        return self.samples.shape[0] / self.sample_rate


def to_stereo(data: np.ndarray) -> np.ndarray:
    """Mono is duplicated; channels beyond the first two are dropped."""
    if data.ndim == 1:
        data = data[:, np.newaxis]
    if data.shape[1] == 1:
        return np.repeat(data, OUTPUT_CHANNELS, axis=1)
    return data[:, :OUTPUT_CHANNELS]


def resample_ratio(source_rate: int, target_rate: int, pitch: float) -> Fraction:
    """Up/down ratio producing ``target_rate`` output sped up by ``pitch``."""
    ratio = Fraction(target_rate, source_rate) / Fraction(pitch).limit_denominator(
        1_000_000
    )
    return ratio.limit_denominator(MAX_RESAMPLE_DENOMINATOR)


def resolve_pool(
    clickpack: ClickPack,
    action: Action,
    category: ClickCategory,
    fallback: dict[ClickCategory, tuple[ClickCategory, ...]],
) -> tuple[PlayerSide, ClickCategory, tuple[Sample, ...]] | None:
    """Find the first populated pool for an action.

    Sides are tried directional first (platformer left/right), then the
    action's player, then the other player; within each side the
    categories follow the fallback order.
    """
    sides = []
    directional = PlayerSide.directional(action.player, action.button)
    if directional is not None:
        sides.append(directional)
    sides.append(PlayerSide.for_player(action.player))
    sides.append(PlayerSide.for_player(action.player.other))

    order = fallback.get(category, (category,))
    for side in sides:
        for candidate in order:
            samples = clickpack.lookup(side, candidate)
            if samples:
                return side, candidate, samples
    return None


def apply_cut(instructions: list[RenderInstruction]) -> list[RenderInstruction]:
    """Truncate each sample where the next one in its lane starts.

    Lanes are ``(player, category)``. The truncated instructions of a lane
    never overlap, so they can be summed like any other instructions.
    """
    next_onset: dict[int, int] = {}
    last_in_lane: dict[tuple[Player, ClickCategory], int] = {}
    for position, instruction in enumerate(instructions):
        previous = last_in_lane.get(instruction.lane)
        if previous is not None:
            next_onset[previous] = instruction.offset
        last_in_lane[instruction.lane] = position

    cut = []
    for position, instruction in enumerate(instructions):
        onset = next_onset.get(position)
        if onset is not None and onset < instruction.end:
            length = max(0, onset - instruction.offset)
            instruction = replace(instruction, data=instruction.data[:length])
        cut.append(instruction)
    return cut


def mix_window(
    buffer: np.ndarray,
    instructions: list[RenderInstruction],
    start: int,
    end: int,
) -> None:
    """Add every instruction's overlap with ``[start, end)`` into ``buffer``."""
    for instruction in instructions:
        lo = max(instruction.offset, start)
        hi = min(instruction.end, end)
        if lo >= hi:
            continue
        src = instruction.data[lo - instruction.offset : hi - instruction.offset]
        buffer[lo:hi] += src * instruction.gain


def finalize(buffer: np.ndarray, normalize: bool) -> float:
    """Normalize to a peak of exactly 1.0, or clip to [-1, 1]. Returns the peak."""
    if buffer.size == 0:
        return 0.0
    peak = float(np.max(np.abs(buffer)))
    if normalize:
        if peak > 0:
            buffer /= peak
            return 1.0
        return 0.0
    np.clip(buffer, -1.0, 1.0, out=buffer)
    return min(peak, 1.0)


class Renderer:
    """One render pass over a timeline.

    Holds the RNG, the resample cache and the per-pool "last pick" state;
    create a new instance per render.
    """

    def __init__(
        self,
        clickpack: ClickPack,
        config: RenderConfig,
        rng: np.random.Generator | None = None,
        cancel: threading.Event | None = None,
    ):
        self.clickpack = clickpack
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.cancel = cancel
        self.warnings: list[str] = []
        self.stats = RenderStats()
        self._cache: dict[tuple[Sample, int | None], np.ndarray] = {}
        self._last_pick: dict[tuple[PlayerSide, ClickCategory], int] = {}
        self._expression: CompiledExpression | None = None
        if config.expression.active:
            try:
                self._expression = compile_expression(config.expression.text)
            except ExpressionError as e:
                raise RenderError(str(e), stage="setup") from e

    # Preparation

    def prepare_sample(
        self, sample: Sample, step: int | None, action_index: int | None = None
    ) -> np.ndarray:
        """Resample to the output rate (and pitch), cached per sample and step."""
        key = (sample, step)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        pitch = 1.0 if step is None else step * self.config.pitch.step
        if not np.all(np.isfinite(sample.data)):
            raise SampleResampleError(
                sample.name, "sample contains non-finite values", action_index
            )

        data = to_stereo(sample.data).astype(np.float64)
        ratio = resample_ratio(sample.sample_rate, self.config.sample_rate, pitch)
        if ratio != 1:
            try:
                data = resample_poly(
                    data, ratio.numerator, ratio.denominator, axis=0
                )
            except ValueError as e:
                raise SampleResampleError(sample.name, str(e), action_index) from e

        self._cache[key] = data
        return data

    def _pick(self, side: PlayerSide, category: ClickCategory, samples) -> Sample:
        key = (side, category)
        if len(samples) == 1:
            index = 0
        else:
            previous = self._last_pick.get(key)
            if previous is None or previous >= len(samples):
                index = int(self.rng.integers(len(samples)))
            else:
                # draw from the other n-1 samples
                index = int(self.rng.integers(len(samples) - 1))
                if index >= previous:
                    index += 1
        self._last_pick[key] = index
        return samples[index]

    def _pitch_step(self) -> int | None:
        pitch = self.config.pitch
        if not pitch.enabled:
            return None
        low, high = pitch.step_range()
        return int(self.rng.integers(low, high + 1))

    def _expression_value(self, classified: ClassifiedAction, timeline) -> float:
        expression = self._expression
        rand = float(self.rng.random()) if "rand" in expression.names else 0.0
        variables = expression_variables(classified.action, timeline, rand=rand)
        try:
            return expression.evaluate(variables)
        except ExpressionError as e:
            raise RenderError(
                str(e), stage="expression", action_index=classified.index
            ) from e

    def _gain_and_offset(
        self, classified: ClassifiedAction, timeline: ActionTimeline
    ) -> tuple[float, float]:
        volume = self.config.volume
        settings = self.config.expression

        value = 0.0
        if self._expression is not None:
            value = self._expression_value(classified, timeline)

        is_release = classified.action.kind is ActionKind.RELEASE
        if is_release and not volume.change_releases_volume:
            gain = volume.global_volume
        else:
            variation = settings.variable is ExprVariable.VARIATION
            if self._expression is not None and variation:
                low, high = (-value, value) if settings.negative else (0.0, value)
            else:
                low, high = -volume.volume_var, volume.volume_var
            low, high = min(low, high), max(low, high)
            jitter = float(self.rng.uniform(low, high)) if high > low else low
            gain = volume.global_volume * (1.0 + jitter)
            gain -= classified.spam_offset * volume.global_volume

        time_offset = 0.0
        if self._expression is not None:
            if settings.variable is ExprVariable.VALUE:
                gain += value
            elif settings.variable is ExprVariable.TIME_OFFSET:
                time_offset = value

        return max(gain, 0.0), time_offset

    def prepare(self, timeline: ActionTimeline) -> list[RenderInstruction]:
        """Build render instructions for every action, in timeline order."""
        classified_actions = classify_timeline(
            timeline, self.config.timings, self.config.volume
        )
        instructions = []
        for classified in classified_actions:
            if self.cancel is not None and self.cancel.is_set():
                raise RenderCancelledError(classified.index)

            action = classified.action
            resolved = resolve_pool(
                self.clickpack, action, classified.category, self.config.fallback
            )
            if resolved is None:
                self.stats.skipped += 1
                logger.debug(
                    f"No samples for action {classified.index} "
                    f"({classified.category.value}), skipping"
                )
                continue
            side, category, samples = resolved
            if category is not classified.category or side.player is not action.player:
                self.stats.fallbacks += 1
                logger.debug(
                    f"Action {classified.index}: {classified.category.value} -> "
                    f"{side.value}/{category.value}"
                )

            sample = self._pick(side, category, samples)
            step = self._pitch_step()
            data = self.prepare_sample(sample, step, classified.index)
            gain, time_offset = self._gain_and_offset(classified, timeline)

            start = action.time + time_offset
            offset = max(0, round(start * self.config.sample_rate))
            instructions.append(
                RenderInstruction(
                    index=classified.index,
                    data=data,
                    offset=offset,
                    gain=gain,
                    lane=(action.player, category),
                    pitch=1.0 if step is None else step * self.config.pitch.step,
                )
            )
        self.stats.rendered = len(instructions)
        return instructions

    # Mixing

    def mix(self, instructions: list[RenderInstruction]) -> np.ndarray:
        length = max((i.end for i in instructions), default=0)
        buffer = np.zeros((length, OUTPUT_CHANNELS), dtype=np.float64)

        if self.config.cut_sounds:
            mix_window(buffer, apply_cut(instructions), 0, length)
            return buffer

        workers = min(self.config.workers, max(1, length))
        if workers <= 1:
            mix_window(buffer, instructions, 0, length)
            return buffer

        bounds = np.linspace(0, length, workers + 1).astype(int)
        windows = list(zip(bounds[:-1], bounds[1:]))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(mix_window, buffer, instructions, int(lo), int(hi))
                for lo, hi in windows
            ]
            for future in futures:
                future.result()
        return buffer

    def overlay_noise(self, buffer: np.ndarray) -> None:
        noise = self.config.noise
        if not noise.enabled:
            return
        sample = self.clickpack.noise_sample()
        if sample is None:
            message = "Noise is enabled but the clickpack has no noise sample"
            logger.warning(message)
            self.warnings.append(message)
            return
        data = self.prepare_sample(sample, None)
        if buffer.shape[0] == 0 or data.shape[0] == 0:
            return
        repeats = math.ceil(buffer.shape[0] / data.shape[0])
        tiled = np.tile(data, (repeats, 1))[: buffer.shape[0]]
        buffer += tiled * noise.volume

    def render(self, timeline: ActionTimeline) -> RenderResult:
        if len(timeline) == 0:
            raise EmptyTimelineError()
        if self.config.sample_rate <= 0:
            raise RenderError(
                f"invalid output sample rate {self.config.sample_rate}", stage="setup"
            )
        if not self.clickpack.has_clicks():
            raise RenderError("clickpack has no click samples", stage="setup")

        started = time_module.perf_counter()
        logger.info(
            f"Starting render: {len(timeline)} actions, "
            f"noise={self.config.noise.enabled}, cut={self.config.cut_sounds}"
        )

        self.stats.actions = len(timeline)
        instructions = self.prepare(timeline)
        buffer = self.mix(instructions)
        self.overlay_noise(buffer)
        self.stats.peak = finalize(buffer, self.config.normalize)

        if self.stats.skipped:
            self.warnings.append(
                f"{self.stats.skipped} actions had no matching samples and were skipped"
            )
        self.stats.elapsed_seconds = time_module.perf_counter() - started
        logger.info(
            f"Rendered {self.stats.rendered} actions "
            f"({buffer.shape[0] / self.config.sample_rate:.2f}s of audio) "
            f"in {self.stats.elapsed_seconds:.2f}s"
        )
        return RenderResult(
            samples=buffer,
            sample_rate=self.config.sample_rate,
            warnings=list(self.clickpack.warnings) + self.warnings,
            stats=self.stats,
        )


def render_timeline(
    timeline: ActionTimeline,
    clickpack: ClickPack,
    config: RenderConfig | None = None,
    *,
    rng: np.random.Generator | None = None,
    cancel: threading.Event | None = None,
) -> RenderResult:
    """Render a timeline with a clickpack.

    Args:
        timeline: Normalized action timeline
        clickpack: Loaded clickpack
        config: Render configuration (defaults when omitted)
        rng: Random generator; defaults to one seeded with ``config.seed``
        cancel: Set to abort the render between actions

    Raises:
        EmptyTimelineError: If the timeline has no actions
        RenderError: On an invalid sample rate, a clickpack without clicks
            or an expression that fails to evaluate
        SampleResampleError: If a sample cannot be resampled
        RenderCancelledError: If ``cancel`` is set during preparation
    """
    config = config or RenderConfig()
    return Renderer(clickpack, config, rng=rng, cancel=cancel).render(timeline)
