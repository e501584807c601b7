"""Normalization of decoded replay events into a canonical action timeline.

This module turns a decoder's ``RawReplay`` into an ``ActionTimeline`` with:
- Times in seconds (frame events divided by the resolved FPS)
- Explicit players (implicit-player events assigned, optional swap)
- Inputs before the last death discarded
- Stable time ordering
- Repeated press/release states collapsed per player and button
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass

from .config import ReplayOptions
from .errors import TimelineError
from .parser.types import PhysicsState, RawReplay
from .types import ActionKind, Button, Player

logger = logging.getLogger(__name__)

# Frame rate assumed when neither the replay nor the caller provides one
DEFAULT_FPS = 240.0

# Bounds beyond which a replay is treated as corrupt
MAX_FRAME_INDEX = 100_000_000
MAX_ACTION_TIME = 86_400.0  # one day, in seconds


@dataclass(frozen=True)
class Action:
    """One press or release of one player's button at a time in seconds."""

    player: Player
    kind: ActionKind
    time: float
    button: Button = Button.JUMP
    frame: int | None = None
    physics: PhysicsState | None = None

    @property
    def is_press(self) -> bool:
        return self.kind is ActionKind.PRESS


@dataclass(frozen=True)
class ActionTimeline:
    """Immutable, time-ordered actions plus replay-level metadata."""

    actions: tuple[Action, ...]
    fps: float
    duration: float
    last_frame: int
    format: str = ""

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self):
        return iter(self.actions)

    def for_player(self, player: Player) -> tuple[Action, ...]:
        return tuple(a for a in self.actions if a.player is player)

    def counts(self) -> dict[str, int]:
        """Action counts keyed like ``p1_press`` / ``p2_release``."""
        counter = Counter(
            f"p{int(a.player)}_{a.kind.value}" for a in self.actions
        )
        return {
            f"p{p}_{kind}": counter.get(f"p{p}_{kind}", 0)
            for p in (1, 2)
            for kind in ("press", "release")
        }


def resolve_fps(raw: RawReplay, options: ReplayOptions) -> float:
    """Pick the timeline FPS: override, then the replay's own, then default.

    Raises:
        TimelineError: If the chosen FPS is unusable and the replay has
            frame-indexed events.
    """
    if options.fps_override is not None:
        fps = options.fps_override
    elif raw.fps is not None:
        fps = raw.fps
    else:
        fps = DEFAULT_FPS

    if math.isfinite(fps) and fps > 0:
        return float(fps)
    if raw.is_frame_based:
        raise TimelineError(f"invalid fps {fps} for a frame-based replay")

    logger.warning(f"Ignoring invalid fps {fps}, using {DEFAULT_FPS}")
    return DEFAULT_FPS


def _to_action(index: int, event, fps: float, options: ReplayOptions) -> Action:
    if event.frame is not None:
        if event.frame < 0:
            raise TimelineError(f"negative frame {event.frame}", index)
        if event.frame > MAX_FRAME_INDEX:
            raise TimelineError(
                f"frame {event.frame} exceeds {MAX_FRAME_INDEX}", index
            )
        time = event.frame / fps
    else:
        time = float(event.time)

    if not math.isfinite(time) or time < 0:
        raise TimelineError(f"invalid time {time}", index)
    if time > MAX_ACTION_TIME:
        raise TimelineError(f"time {time:.1f}s exceeds {MAX_ACTION_TIME:.0f}s", index)

    player = event.player if event.player is not None else options.implicit_player
    if options.swap_players:
        player = player.other

    return Action(
        player=player,
        kind=event.kind,
        time=time,
        button=event.button,
        frame=event.frame,
        physics=event.physics,
    )


def collapse_repeated_states(actions: list[Action]) -> list[Action]:
    """Drop presses of a held button and releases of a button that is up.

    State is tracked per (player, button); every button starts up.
    """
    held: dict[tuple[Player, Button], bool] = {}
    kept = []
    for action in actions:
        key = (action.player, action.button)
        if held.get(key, False) == action.is_press:
            continue
        held[key] = action.is_press
        kept.append(action)
    return kept


def build_timeline(
    raw: RawReplay, options: ReplayOptions | None = None
) -> ActionTimeline:
    """Build the canonical action timeline for a decoded replay.

    Args:
        raw: Decoder output
        options: Normalization options (defaults apply when omitted)

    Returns:
        ActionTimeline whose per-player times are non-decreasing

    Raises:
        TimelineError: On an unusable FPS or out-of-range frame/time values
    """
    options = options or ReplayOptions()
    fps = resolve_fps(raw, options)

    actions = [
        _to_action(index, event, fps, options) for index, event in enumerate(raw.events)
    ]

    if options.discard_deaths and raw.deaths:
        last_death = max(raw.deaths)
        before = len(actions)
        actions = [
            a
            for a in actions
            if (a.frame if a.frame is not None else a.time * fps) > last_death
        ]
        logger.info(
            f"Discarded {before - len(actions)} inputs before the last death "
            f"(frame {last_death})"
        )

    if options.sort_actions:
        # sorted() is stable, so equal times keep file order
        actions = sorted(actions, key=lambda a: a.time)

    total = len(actions)
    actions = collapse_repeated_states(actions)
    if total != len(actions):
        logger.debug(f"Collapsed {total - len(actions)} repeated input states")

    duration = max((a.time for a in actions), default=0.0)
    last_frame = max(
        (a.frame if a.frame is not None else round(a.time * fps) for a in actions),
        default=0,
    )

    timeline = ActionTimeline(
        actions=tuple(actions),
        fps=fps,
        duration=duration,
        last_frame=last_frame,
        format=raw.format,
    )
    logger.info(
        f"Built timeline: {len(timeline)} actions, {duration:.2f}s at {fps:g} fps"
    )
    return timeline
