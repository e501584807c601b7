"""Echo replays: binary (``META`` magic) and JSON, both using ``.echo``."""

from __future__ import annotations

from ...types import Player
from ..binary import ByteReader
from ..documents import load_json
from ..errors import InvalidPayloadError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

ECHO_MAGIC = b"META"
ECHO_DEBUG_TYPE = b"DBG\x00"
ECHO_FPS_OFFSET = 24
ECHO_ACTIONS_OFFSET = 48
ECHO_RECORD_SIZE = 6
ECHO_DEBUG_RECORD_SIZE = 24


class EchoBinaryDecoder(ReplayDecoder):
    """Echo binary replays.

    ``META`` magic, a big-endian sub-type at offset 4 and little-endian fps
    at 24. Records start at 48 as ``frame u32, down u8, p2 u8``; debug
    replays pad each record to 24 bytes.
    """

    name = "echo_binary"
    extensions = (".echo",)
    description = "Echo replay (binary)"
    magic = ECHO_MAGIC

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        reader.expect_magic(ECHO_MAGIC)
        replay_type = reader.read_bytes(4)
        if replay_type == ECHO_DEBUG_TYPE:
            record_size = ECHO_DEBUG_RECORD_SIZE
        else:
            record_size = ECHO_RECORD_SIZE

        reader.seek(ECHO_FPS_OFFSET)
        fps = reader.f32()
        reader.seek(ECHO_ACTIONS_OFFSET)

        events = []
        while reader.remaining >= record_size:
            start = reader.pos
            frame = reader.u32()
            down = reader.u8() == 1
            p1 = reader.u8() == 0
            reader.seek(start + record_size)
            events.append(event(down, frame, player=Player.ONE if p1 else Player.TWO))

        warnings = []
        if reader.remaining:
            warnings.append(f"trailing_bytes_{reader.remaining}")

        return RawReplay(
            format=self.name, events=events, fps=fps, quality_warnings=warnings
        )


class EchoJsonDecoder(ReplayDecoder):
    """Echo JSON replays.

    Two layouts exist: the current one (``fps``, ``inputs[]`` with
    ``frame``/``holding``/``player_2``) and the legacy one (``FPS``,
    ``Echo Replay[]`` with ``Frame``/``Hold``/``Player 2``).
    """

    name = "echo_json"
    extensions = (".echo",)
    description = "Echo replay (JSON)"

    def sniff(self, data: bytes) -> bool:
        return data.lstrip()[:1] == b"{"

    def decode(self, data: bytes) -> RawReplay:
        document = load_json(data, self.name, "echo_json")

        if "inputs" in document:
            fps = document["fps"]
            entries = document["inputs"]
            keys = ("frame", "holding", "player_2")
        elif "Echo Replay" in document:
            fps = document["FPS"]
            entries = document["Echo Replay"]
            keys = ("Frame", "Hold", "Player 2")
        else:
            raise InvalidPayloadError(self.name, "missing 'inputs' or 'Echo Replay'")

        frame_key, hold_key, p2_key = keys
        events = [
            event(
                bool(entry[hold_key]),
                int(entry[frame_key]),
                player=Player.TWO if entry.get(p2_key) else Player.ONE,
            )
            for entry in entries
        ]
        return RawReplay(format=self.name, events=events, fps=float(fps))
