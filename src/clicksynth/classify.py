"""Click classification: timing class, sample category and spam offset."""

from __future__ import annotations

from dataclasses import dataclass

from .config import Timings, VolumeSettings
from .normalize import Action, ActionTimeline
from .types import ActionKind, ClickCategory, ClickTiming, Player


@dataclass(frozen=True)
class ClassifiedAction:
    """An action with its category and the gaps it was classified from.

    ``elapsed`` is the time since the same player's previous action of the
    same kind (None for the first of its kind); ``gap`` is the time since
    that player's previous action of either kind.
    """

    index: int
    action: Action
    timing: ClickTiming
    category: ClickCategory
    elapsed: float | None
    gap: float | None
    spam_offset: float = 0.0


def classify_timing(elapsed: float | None, timings: Timings) -> ClickTiming:
    """Map the time since the previous same-kind action to a timing class.

    The first action of its kind has nothing to compare against and is
    classified as regular.
    """
    if elapsed is None:
        return ClickTiming.REGULAR
    if elapsed >= timings.hard:
        return ClickTiming.HARD
    if elapsed >= timings.regular:
        return ClickTiming.REGULAR
    if elapsed >= timings.soft:
        return ClickTiming.SOFT
    return ClickTiming.MICRO


def spam_volume_offset(gap: float | None, volume: VolumeSettings) -> float:
    """Volume reduction for rapid inputs.

    Grows linearly as the gap shrinks below ``spam_time`` and is capped at
    ``max_spam_vol_offset``. Zero when spam handling is off or there is no
    previous input.
    """
    if not volume.spam_enabled or gap is None or gap >= volume.spam_time:
        return 0.0
    offset = volume.spam_vol_offset_factor * (volume.spam_time - gap)
    return min(offset, volume.max_spam_vol_offset)


def classify_timeline(
    timeline: ActionTimeline,
    timings: Timings,
    volume: VolumeSettings | None = None,
) -> list[ClassifiedAction]:
    """Classify every action of a timeline, in timeline order."""
    volume = volume or VolumeSettings()
    last_same_kind: dict[tuple[Player, ActionKind], float] = {}
    last_any: dict[Player, float] = {}

    classified = []
    for index, action in enumerate(timeline.actions):
        elapsed = None
        previous = last_same_kind.get((action.player, action.kind))
        if previous is not None:
            elapsed = action.time - previous

        gap = None
        previous = last_any.get(action.player)
        if previous is not None:
            gap = action.time - previous

        timing = classify_timing(elapsed, timings)
        classified.append(
            ClassifiedAction(
                index=index,
                action=action,
                timing=timing,
                category=ClickCategory.for_action(action.kind, timing),
                elapsed=elapsed,
                gap=gap,
                spam_offset=spam_volume_offset(gap, volume),
            )
        )

        last_same_kind[(action.player, action.kind)] = action.time
        last_any[action.player] = action.time

    return classified
