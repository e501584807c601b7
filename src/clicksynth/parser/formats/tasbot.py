"""TASbot JSON macros."""

from __future__ import annotations

from ...types import Player
from ..documents import load_json
from ..interface import ReplayDecoder
from ..types import RawReplay, event

CLICK_NONE = 0
CLICK_PRESS = 1
CLICK_RELEASE = 2


class TasbotDecoder(ReplayDecoder):
    """TASbot ``.json`` macros.

    Every ``macro`` entry holds one frame with a click code per player:
    0 means no input on that frame, 1 a press and 2 a release.
    """

    name = "tasbot"
    extensions = (".json",)
    description = "TASbot macro (JSON)"

    def sniff(self, data: bytes) -> bool:
        return b'"macro"' in data[:4096]

    def decode(self, data: bytes) -> RawReplay:
        document = load_json(data, self.name, "tasbot")

        events = []
        for entry in document["macro"]:
            frame = entry["frame"]
            for key, player in (("player_1", Player.ONE), ("player_2", Player.TWO)):
                click = entry[key]["click"]
                if click == CLICK_NONE:
                    continue
                events.append(event(click == CLICK_PRESS, frame, player=player))

        return RawReplay(format=self.name, events=events, fps=float(document["fps"]))
