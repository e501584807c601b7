"""Amethyst text macros."""

from __future__ import annotations

from ...types import Player
from ..documents import parse_number, text_lines
from ..errors import InvalidPayloadError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

# Section order in the file
_SECTIONS = (
    (Player.ONE, True),
    (Player.ONE, False),
    (Player.TWO, True),
    (Player.TWO, False),
)


class AmethystDecoder(ReplayDecoder):
    """Amethyst ``.thyst`` macros.

    Four sections (player 1 clicks, player 1 releases, player 2 clicks,
    player 2 releases), each a count line followed by that many times in
    seconds. Sections are not interleaved, so the timeline must be sorted.
    """

    name = "amethyst"
    extensions = (".thyst",)
    description = "Amethyst macro (text)"

    def decode(self, data: bytes) -> RawReplay:
        lines = text_lines(data, self.name)
        cursor = 0

        def next_line() -> tuple[int, str]:
            nonlocal cursor
            if cursor >= len(lines):
                raise InvalidPayloadError(self.name, "unexpected end of file")
            cursor += 1
            return cursor, lines[cursor - 1]

        events = []
        for player, down in _SECTIONS:
            line_no, line = next_line()
            count = parse_number(line, self.name, int, line_no)
            if count < 0:
                raise InvalidPayloadError(
                    self.name, f"negative count on line {line_no}"
                )
            for _ in range(count):
                line_no, line = next_line()
                time = parse_number(line, self.name, float, line_no)
                events.append(event(down, time=time, player=player))

        return RawReplay(format=self.name, events=events)
