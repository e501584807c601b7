"""Shared enums for replay actions, click categories and clickpack sides."""

from __future__ import annotations

from enum import Enum, IntEnum


class Player(IntEnum):
    """Which player an action belongs to."""

    ONE = 1
    TWO = 2

    @property
    def other(self) -> Player:
        return Player.TWO if self is Player.ONE else Player.ONE


class ActionKind(Enum):
    PRESS = "press"
    RELEASE = "release"


class Button(IntEnum):
    """Input button; platformer replays distinguish left/right."""

    JUMP = 1
    LEFT = 2
    RIGHT = 3


class ClickTiming(Enum):
    """Timing class derived from the time since the previous same-kind action."""

    HARD = "hard"
    REGULAR = "regular"
    SOFT = "soft"
    MICRO = "micro"


class ClickCategory(Enum):
    """Sample category a classified action draws from."""

    HARDCLICK = "hardclick"
    HARDRELEASE = "hardrelease"
    CLICK = "click"
    RELEASE = "release"
    SOFTCLICK = "softclick"
    SOFTRELEASE = "softrelease"
    MICROCLICK = "microclick"
    MICRORELEASE = "microrelease"

    @classmethod
    def for_action(cls, kind: ActionKind, timing: ClickTiming) -> ClickCategory:
        return _CATEGORY_TABLE[(kind, timing)]

    @property
    def kind(self) -> ActionKind:
        if self.value.endswith("release"):
            return ActionKind.RELEASE
        return ActionKind.PRESS

    @property
    def directory(self) -> str:
        """Directory name inside a clickpack (e.g. ``hardclicks``)."""
        return self.value + "s"


_CATEGORY_TABLE: dict[tuple[ActionKind, ClickTiming], ClickCategory] = {
    (ActionKind.PRESS, ClickTiming.HARD): ClickCategory.HARDCLICK,
    (ActionKind.PRESS, ClickTiming.REGULAR): ClickCategory.CLICK,
    (ActionKind.PRESS, ClickTiming.SOFT): ClickCategory.SOFTCLICK,
    (ActionKind.PRESS, ClickTiming.MICRO): ClickCategory.MICROCLICK,
    (ActionKind.RELEASE, ClickTiming.HARD): ClickCategory.HARDRELEASE,
    (ActionKind.RELEASE, ClickTiming.REGULAR): ClickCategory.RELEASE,
    (ActionKind.RELEASE, ClickTiming.SOFT): ClickCategory.SOFTRELEASE,
    (ActionKind.RELEASE, ClickTiming.MICRO): ClickCategory.MICRORELEASE,
}


class PlayerSide(Enum):
    """Clickpack scope: a player, optionally narrowed to a direction."""

    PLAYER1 = "player1"
    PLAYER2 = "player2"
    LEFT1 = "left1"
    RIGHT1 = "right1"
    LEFT2 = "left2"
    RIGHT2 = "right2"

    @property
    def player(self) -> Player:
        return Player.ONE if self.value.endswith("1") else Player.TWO

    @classmethod
    def for_player(cls, player: Player) -> PlayerSide:
        return cls.PLAYER1 if player is Player.ONE else cls.PLAYER2

    @classmethod
    def directional(cls, player: Player, button: Button) -> PlayerSide | None:
        """Directional side for a platformer button, or None for jump."""
        if button is Button.LEFT:
            return cls.LEFT1 if player is Player.ONE else cls.LEFT2
        if button is Button.RIGHT:
            return cls.RIGHT1 if player is Player.ONE else cls.RIGHT2
        return None
