"""Core data types for the parser layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..types import ActionKind, Button, Player


@dataclass(frozen=True)
class PhysicsState:
    """Player physics recorded alongside an input (when the bot stores it)."""

    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    y_accel: float = 0.0


@dataclass(frozen=True)
class RawEvent:
    """A single decoded input, before normalization.

    Exactly one of ``frame`` or ``time`` is set. ``player`` is None for
    formats that only record one implicit player.
    """

    kind: ActionKind
    frame: int | None = None
    time: float | None = None  # seconds
    player: Player | None = Player.ONE
    button: Button = Button.JUMP
    physics: PhysicsState | None = None

    def __post_init__(self):
        if (self.frame is None) == (self.time is None):
            raise ValueError("RawEvent needs exactly one of frame or time")

    @property
    def is_press(self) -> bool:
        return self.kind is ActionKind.PRESS


@dataclass(frozen=True)
class RawReplay:
    """Decoder output: raw events plus the metadata needed to normalize them."""

    format: str
    events: list[RawEvent] = field(default_factory=list)
    fps: float | None = None
    deaths: list[int] = field(default_factory=list)  # frame indices
    single_player: bool = False
    quality_warnings: list[str] = field(default_factory=list)

    @property
    def is_frame_based(self) -> bool:
        return any(event.frame is not None for event in self.events)


def press(
    frame: int | None = None,
    *,
    time: float | None = None,
    player: Player | None = Player.ONE,
    button: Button = Button.JUMP,
    physics: PhysicsState | None = None,
) -> RawEvent:
    return RawEvent(ActionKind.PRESS, frame, time, player, button, physics)


def release(
    frame: int | None = None,
    *,
    time: float | None = None,
    player: Player | None = Player.ONE,
    button: Button = Button.JUMP,
    physics: PhysicsState | None = None,
) -> RawEvent:
    return RawEvent(ActionKind.RELEASE, frame, time, player, button, physics)


def event(
    down: bool,
    frame: int | None = None,
    *,
    time: float | None = None,
    player: Player | None = Player.ONE,
    button: Button = Button.JUMP,
    physics: PhysicsState | None = None,
) -> RawEvent:
    """Build a press (``down``) or release event."""
    kind = ActionKind.PRESS if down else ActionKind.RELEASE
    return RawEvent(kind, frame, time, player, button, physics)
