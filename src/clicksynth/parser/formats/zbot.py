"""zBot frame replays (``.zbf``)."""

from __future__ import annotations

import logging

from ...types import Player
from ..binary import ByteReader
from ..errors import TruncatedReplayError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

logger = logging.getLogger(__name__)

ZBOT_HEADER_SIZE = 8
ZBOT_RECORD_SIZE = 6
ZBOT_TRUE = 0x31  # ASCII '1'


class ZbotDecoder(ReplayDecoder):
    """zBot frame replays.

    Header: frame delta (f32) and speedhack (f32); fps is
    ``1 / delta / speedhack``. Records are ``frame i32, down u8, p1 u8``
    where the flags are the ASCII digit ``'1'`` when set.
    """

    name = "zbot"
    extensions = (".zbf",)
    description = "zBot frame replay"

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        delta = reader.f32()
        speedhack = reader.f32()
        if speedhack == 0.0:
            logger.warning("zbot speedhack is 0.0, defaulting to 1.0")
            speedhack = 1.0
        fps = 1.0 / delta / speedhack if delta else None

        body = len(data) - ZBOT_HEADER_SIZE
        if body % ZBOT_RECORD_SIZE:
            raise TruncatedReplayError(
                self.name,
                len(data) - body % ZBOT_RECORD_SIZE,
                ZBOT_RECORD_SIZE,
                body % ZBOT_RECORD_SIZE,
            )

        events = []
        while not reader.at_end():
            frame = reader.i32()
            down = reader.u8() == ZBOT_TRUE
            p1 = reader.u8() == ZBOT_TRUE
            events.append(event(down, frame, player=Player.ONE if p1 else Player.TWO))

        return RawReplay(format=self.name, events=events, fps=fps)
