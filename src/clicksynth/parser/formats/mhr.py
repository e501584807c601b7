"""Mega Hack replays: JSON (``.mhr.json``) and binary (``.mhr``)."""

from __future__ import annotations

from ...types import Player
from ..binary import ByteReader
from ..documents import load_json
from ..interface import ReplayDecoder
from ..types import RawReplay, event

MHR_MAGIC = b"HACK"
MHR_HEADER_SIZE = 32
MHR_RECORD_SIZE = 32


class MegaHackJsonDecoder(ReplayDecoder):
    """Mega Hack JSON macros.

    Events without ``down`` carry no input and are skipped. A ``p2`` flag
    on an input decides the player of the inputs after it.
    """

    name = "mhr_json"
    extensions = (".mhr.json",)
    description = "Mega Hack replay (JSON)"

    def decode(self, data: bytes) -> RawReplay:
        document = load_json(data, self.name, "mhr_json")
        fps = float(document["meta"]["fps"])

        events = []
        next_p2 = False
        for entry in document["events"]:
            down = entry.get("down")
            if down is None:
                continue
            player = Player.TWO if next_p2 else Player.ONE
            events.append(event(down, entry["frame"], player=player))
            if "p2" in entry:
                next_p2 = bool(entry["p2"])

        return RawReplay(format=self.name, events=events, fps=fps)


class MegaHackBinaryDecoder(ReplayDecoder):
    """Mega Hack binary macros (``HACK`` magic, 32-byte frame records)."""

    name = "mhr_binary"
    extensions = (".mhr",)
    description = "Mega Hack replay (binary)"
    magic = MHR_MAGIC

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        reader.expect_magic(MHR_MAGIC)

        reader.seek(12)
        fps = float(reader.u32())
        reader.seek(28)
        count = reader.u32()

        events = []
        reader.seek(MHR_HEADER_SIZE)
        for _ in range(count):
            reader.skip(2)
            down = reader.u8() == 1
            p1 = reader.u8() == 0
            frame = reader.u32()
            reader.skip(MHR_RECORD_SIZE - 8)
            events.append(
                event(down, frame, player=Player.ONE if p1 else Player.TWO)
            )

        return RawReplay(format=self.name, events=events, fps=fps)
