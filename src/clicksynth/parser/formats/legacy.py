"""Fixed-record binary replays from older bots.

These bots store a small header with the FPS followed by fixed-size input
records; none of them carry a version field except ReplayBot.
"""

from __future__ import annotations

from ...types import Player
from ..binary import ByteReader
from ..errors import InvalidPayloadError, TruncatedReplayError, UnsupportedVersionError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

REPLAYBOT_MAGIC = b"RPLY"
REPLAYBOT_VERSION = 2
DDHOR_MAGIC = b"DDHR"


def _require_whole_records(reader: ByteReader, record_size: int) -> None:
    leftover = reader.remaining % record_size
    if leftover:
        raise TruncatedReplayError(
            reader.format_name, len(reader) - leftover, record_size, leftover
        )


def _read_state_records(reader: ByteReader) -> list:
    """Read ``frame, state`` records with bit 0 = down and bit 1 = player 2."""
    _require_whole_records(reader, 5)
    events = []
    while not reader.at_end():
        frame = reader.i32()
        state = reader.u8()
        player = Player.TWO if state & 0b10 else Player.ONE
        events.append(event(bool(state & 0b01), frame, player=player))
    return events


class ReplayBotDecoder(ReplayDecoder):
    """ReplayBot ``.replay`` files: ``RPLY``, version u8, fps f32, records."""

    name = "replaybot"
    extensions = (".replay",)
    description = "ReplayBot replay"
    magic = REPLAYBOT_MAGIC

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        reader.expect_magic(REPLAYBOT_MAGIC)
        version = reader.u8()
        if version != REPLAYBOT_VERSION:
            raise UnsupportedVersionError(
                self.name, version, supported=REPLAYBOT_VERSION
            )
        fps = reader.f32()
        return RawReplay(format=self.name, events=_read_state_records(reader), fps=fps)


class RushDecoder(ReplayDecoder):
    """Rush ``.rsh`` files: fps i16 then 5-byte state records."""

    name = "rush"
    extensions = (".rsh",)
    description = "Rush replay"

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        fps = float(reader.i16())
        return RawReplay(format=self.name, events=_read_state_records(reader), fps=fps)


class KdBotDecoder(ReplayDecoder):
    """KD-BOT ``.kd`` files: fps f32 then ``frame i32, down u8, p2 u8``."""

    name = "kdbot"
    extensions = (".kd",)
    description = "KD-BOT replay"

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        fps = reader.f32()
        _require_whole_records(reader, 6)

        events = []
        while not reader.at_end():
            frame = reader.i32()
            down = reader.bool8()
            player = Player.TWO if reader.bool8() else Player.ONE
            events.append(event(down, frame, player=player))
        return RawReplay(format=self.name, events=events, fps=fps)


class DdhorDecoder(ReplayDecoder):
    """DDHOR replays.

    ``DDHR`` magic, fps i16, player 1 and player 2 counts (i32), then the
    player 1 table followed by the player 2 table. Entries are
    ``frame f32, down u8``.
    """

    name = "ddhor"
    extensions = (".ddhor",)
    description = "DDHOR replay"
    magic = DDHOR_MAGIC

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        reader.expect_magic(DDHOR_MAGIC)
        fps = float(reader.i16())
        p1_count = reader.i32()
        p2_count = reader.i32()
        if p1_count < 0 or p2_count < 0:
            raise InvalidPayloadError(
                self.name, f"negative action counts ({p1_count}, {p2_count})"
            )

        events = []
        for player, count in ((Player.ONE, p1_count), (Player.TWO, p2_count)):
            for _ in range(count):
                frame = reader.f32()
                down = reader.bool8()
                if frame != frame:  # NaN
                    raise InvalidPayloadError(self.name, "NaN frame index")
                events.append(event(down, round(frame), player=player))
        return RawReplay(format=self.name, events=events, fps=fps)
