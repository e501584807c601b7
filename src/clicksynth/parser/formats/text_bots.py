"""Text macros from xBot and xdBot."""

from __future__ import annotations

from ...types import Button, Player
from ..documents import parse_number, text_lines
from ..errors import InvalidPayloadError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

XDBOT_DEFAULT_FPS = 240.0

_XBOT_STATES = {
    0: (Player.ONE, False),
    1: (Player.ONE, True),
    2: (Player.TWO, False),
    3: (Player.TWO, True),
}

_XDBOT_BUTTONS = {1: Button.JUMP, 2: Button.LEFT, 3: Button.RIGHT}


class XbotDecoder(ReplayDecoder):
    """xBot Frame macros::

        fps: 240
        frames
        1 120
        0 138

    Each input line is ``state frame`` where state 0/1 is a player 1
    release/press and 2/3 the same for player 2.
    """

    name = "xbot"
    extensions = (".xbot",)
    description = "xBot Frame macro (text)"

    def decode(self, data: bytes) -> RawReplay:
        lines = text_lines(data, self.name)
        if len(lines) < 2:
            raise InvalidPayloadError(self.name, "missing header")

        key, _, value = lines[0].partition(":")
        if key.strip().lower() != "fps" or not value:
            raise InvalidPayloadError(self.name, f"expected 'fps: N', got {lines[0]!r}")
        fps = parse_number(value.strip(), self.name, float, 1)
        if lines[1].lower() != "frames":
            raise InvalidPayloadError(
                self.name, f"only frame macros are supported, got {lines[1]!r}"
            )

        events = []
        for number, line in enumerate(lines[2:], start=3):
            fields = line.split()
            if len(fields) != 2:
                raise InvalidPayloadError(
                    self.name, f"expected 'state frame' on line {number}"
                )
            state = parse_number(fields[0], self.name, int, number)
            frame = parse_number(fields[1], self.name, int, number)
            if state not in _XBOT_STATES:
                raise InvalidPayloadError(
                    self.name, f"unknown state {state} on line {number}"
                )
            player, down = _XBOT_STATES[state]
            events.append(event(down, frame, player=player))

        return RawReplay(format=self.name, events=events, fps=fps)


class XdBotDecoder(ReplayDecoder):
    """xdBot ``.xd`` macros.

    Pipe-separated ``frame|holding|button|player1|...`` lines; trailing
    fields (position-only corrections) are ignored. Newer macros put the
    FPS alone on the first line, older ones were always recorded at 240.
    """

    name = "xdbot"
    extensions = (".xd",)
    description = "xdBot macro (text)"

    def decode(self, data: bytes) -> RawReplay:
        lines = text_lines(data, self.name)
        if not lines:
            raise InvalidPayloadError(self.name, "empty file")

        fps = XDBOT_DEFAULT_FPS
        start = 0
        if "|" not in lines[0]:
            fps = parse_number(lines[0], self.name, float, 1)
            start = 1

        events = []
        for number, line in enumerate(lines[start:], start=start + 1):
            fields = line.split("|")
            if len(fields) < 4:
                raise InvalidPayloadError(
                    self.name, f"expected at least 4 fields on line {number}"
                )
            frame, holding, button, player1 = (
                parse_number(field, self.name, int, number) for field in fields[:4]
            )
            events.append(
                event(
                    bool(holding),
                    frame,
                    player=Player.ONE if player1 else Player.TWO,
                    button=_XDBOT_BUTTONS.get(button, Button.JUMP),
                )
            )

        return RawReplay(format=self.name, events=events, fps=fps)
