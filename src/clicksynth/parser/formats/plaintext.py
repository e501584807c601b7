"""Plain-text action lists.

The first line is the FPS, then one input per line::

    240
    120 1 1
    138 1 0
    150 2 1

Fields are ``frame player down``. ``frame down`` lines leave the player
implicit. Lines starting with ``#`` are comments.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...errors import TimelineError
from ...types import ActionKind, Button, Player
from ..documents import parse_number, text_lines
from ..errors import InvalidPayloadError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

if TYPE_CHECKING:
    from ...normalize import ActionTimeline


class PlaintextDecoder(ReplayDecoder):
    name = "plaintext"
    extensions = (".txt",)
    description = "Plain-text action list"

    def decode(self, data: bytes) -> RawReplay:
        lines = [
            (number, line)
            for number, line in enumerate(text_lines(data, self.name), start=1)
            if not line.startswith("#")
        ]
        if not lines:
            raise InvalidPayloadError(self.name, "empty file")

        fps_line, fps_text = lines[0]
        fps = parse_number(fps_text, self.name, float, fps_line)

        events = []
        single_player = True
        for number, line in lines[1:]:
            fields = line.split()
            if len(fields) == 3:
                frame, player, down = (
                    parse_number(field, self.name, int, number) for field in fields
                )
                if player not in (1, 2):
                    raise InvalidPayloadError(
                        self.name, f"player must be 1 or 2 on line {number}"
                    )
                events.append(event(bool(down), frame, player=Player(player)))
                single_player = False
            elif len(fields) == 2:
                frame, down = (
                    parse_number(field, self.name, int, number) for field in fields
                )
                events.append(event(bool(down), frame, player=None))
            else:
                raise InvalidPayloadError(
                    self.name, f"expected 2 or 3 fields on line {number}, got {line!r}"
                )

        return RawReplay(
            format=self.name, events=events, fps=fps, single_player=single_player
        )


def dump_plaintext(timeline: ActionTimeline) -> str:
    """Serialize a timeline as a plaintext action list.

    Actions without a source frame are snapped to the nearest frame at the
    timeline's FPS.

    Raises:
        TimelineError: If an action uses a platformer button; the format
            only records jumps
    """
    lines = [repr(float(timeline.fps))]
    for index, action in enumerate(timeline.actions):
        if action.button is not Button.JUMP:
            raise TimelineError(
                f"plaintext cannot store {action.button.name} inputs", index
            )
        frame = action.frame
        if frame is None:
            frame = round(action.time * timeline.fps)
        down = 1 if action.kind is ActionKind.PRESS else 0
        lines.append(f"{frame} {int(action.player)} {down}")
    return "\n".join(lines) + "\n"
