"""yBot replays: legacy frame files (``.ybf``) and yBot 2 (``.ybot``)."""

from __future__ import annotations

from ...types import Button, Player
from ..binary import ByteReader
from ..errors import InvalidPayloadError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

YBOT2_MAGIC = b"ybot"
YBOT2_FPS_OFFSET = 24  # date i64, presses u64, frames u64, fps f32
YBOT2_DEFAULT_FPS = 240.0

_YBOT2_BUTTONS = {1: Button.JUMP, 2: Button.LEFT, 3: Button.RIGHT}


class YbotFrameDecoder(ReplayDecoder):
    """Legacy yBot frame files: ``fps f32, count i32`` then
    ``count x (frame u32, flags u32)`` with bit 1 = down and bit 0 = player 2.
    """

    name = "ybot_frame"
    extensions = (".ybf",)
    description = "yBot frame replay (legacy)"

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        fps = reader.f32()
        count = reader.i32()
        if count < 0:
            raise InvalidPayloadError(self.name, f"negative action count {count}")

        events = []
        for _ in range(count):
            frame = reader.u32()
            flags = reader.u32()
            player = Player.TWO if flags & 0b01 else Player.ONE
            events.append(event(bool(flags & 0b10), frame, player=player))

        return RawReplay(format=self.name, events=events, fps=fps)


class Ybot2Decoder(ReplayDecoder):
    """yBot 2 macros.

    Header is ``magic, version u32, meta_length u32, blob count u32``,
    followed by the meta block, length-prefixed blobs and then the action
    stream. Each action is a varint ``delta << 4 | flags``; flags ``0b1111``
    is an FPS change followed by an f32. Deltas are frames since the
    previous action at the FPS in effect, so events are emitted in seconds.
    """

    name = "ybot2"
    extensions = (".ybot",)
    description = "yBot 2 macro"
    magic = YBOT2_MAGIC

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        reader.expect_magic(YBOT2_MAGIC)
        reader.u32()  # version
        meta_length = reader.u32()
        blobs = reader.u32()

        meta_start = reader.pos
        fps = YBOT2_DEFAULT_FPS
        if meta_length >= YBOT2_FPS_OFFSET + 4:
            reader.seek(meta_start + YBOT2_FPS_OFFSET)
            fps = reader.f32()
        reader.seek(meta_start)
        reader.skip(meta_length)
        for _ in range(blobs):
            reader.skip(reader.u32())

        if not fps > 0:
            raise InvalidPayloadError(self.name, f"invalid fps {fps}")
        initial_fps = fps

        events = []
        time = 0.0
        while not reader.at_end():
            value = reader.uleb128()
            flags = value & 0b1111
            delta = value >> 4
            time += delta / fps

            button = _YBOT2_BUTTONS.get(flags >> 2)
            if button is None:
                new_fps = reader.f32()
                if not new_fps > 0:
                    raise InvalidPayloadError(
                        self.name, f"invalid fps change {new_fps}"
                    )
                fps = new_fps
                continue

            player = Player.ONE if flags & 0b01 else Player.TWO
            events.append(
                event(bool(flags & 0b10), time=time, player=player, button=button)
            )

        return RawReplay(format=self.name, events=events, fps=initial_fps)
