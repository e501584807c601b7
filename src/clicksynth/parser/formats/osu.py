"""osu! replays (``.osr``)."""

from __future__ import annotations

import logging
import lzma

from ...types import Player
from ..binary import ByteReader
from ..documents import parse_number
from ..errors import InvalidPayloadError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

logger = logging.getLogger(__name__)

OSU_STRING_PRESENT = 0x0B
# counts (6 x u16), score u32, max combo u16, perfect u8
OSU_STATS_SIZE = 19
OSU_TIMESTAMP_SIZE = 8

MOD_DOUBLE_TIME = 1 << 6
MOD_HALF_TIME = 1 << 8

KEY_M1 = 1 << 0
KEY_M2 = 1 << 1

# The last frame of a replay stores the RNG seed instead of input
SEED_FRAME_DELTA = -12345

_KEYS = ((KEY_M1, Player.ONE), (KEY_M2, Player.TWO))


def _skip_osu_string(reader: ByteReader) -> None:
    marker = reader.u8()
    if marker == OSU_STRING_PRESENT:
        reader.skip(reader.uleb128())
    elif marker != 0:
        raise InvalidPayloadError(
            reader.format_name, f"bad string marker 0x{marker:02x} at {reader.pos - 1}"
        )


def speed_multiplier(mods: int) -> float:
    if mods & MOD_DOUBLE_TIME:
        return 1.5
    if mods & MOD_HALF_TIME:
        return 0.75
    return 1.0


def _decompress(payload: bytes, format_name: str) -> str:
    try:
        raw = lzma.decompress(payload, format=lzma.FORMAT_ALONE)
    except lzma.LZMAError:
        try:
            raw = lzma.decompress(payload, format=lzma.FORMAT_AUTO)
        except lzma.LZMAError as e:
            raise InvalidPayloadError(
                format_name, f"cannot decompress frames: {e}"
            ) from e
    try:
        return raw.decode("ascii")
    except UnicodeDecodeError as e:
        raise InvalidPayloadError(format_name, f"frames are not ASCII: {e}") from e


class OsuDecoder(ReplayDecoder):
    """osu! replays.

    Input frames are ``w|x|y|keys`` entries with ``w`` the milliseconds
    since the previous frame. Mouse 1 is mapped to player one and mouse 2
    to player two. Double Time and Half Time scale game time, so frame
    times are divided by the speed multiplier to get wall-clock seconds.
    """

    name = "osu"
    extensions = (".osr",)
    description = "osu! replay"

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        reader.u8()  # game mode
        reader.i32()  # game version
        _skip_osu_string(reader)  # beatmap md5
        _skip_osu_string(reader)  # player name
        _skip_osu_string(reader)  # replay md5
        reader.skip(OSU_STATS_SIZE)
        mods = reader.i32()
        _skip_osu_string(reader)  # life bar graph
        reader.skip(OSU_TIMESTAMP_SIZE)
        length = reader.u32()
        payload = reader.read_bytes(length)

        speed = speed_multiplier(mods)
        text = _decompress(payload, self.name)

        events = []
        held = {Player.ONE: False, Player.TWO: False}
        current_ms = 0
        for index, entry in enumerate(text.split(",")):
            if not entry.strip():
                continue
            fields = entry.split("|")
            if len(fields) != 4:
                raise InvalidPayloadError(
                    self.name, f"malformed frame {index}: {entry!r}"
                )
            delta = parse_number(fields[0], self.name, int)
            if delta == SEED_FRAME_DELTA:
                continue
            keys = parse_number(fields[3], self.name, int)
            current_ms += delta
            # leading frames may step slightly below zero
            time = max(current_ms, 0) / speed / 1000.0

            for mask, player in _KEYS:
                down = bool(keys & mask)
                if down != held[player]:
                    held[player] = down
                    events.append(event(down, time=time, player=player))

        logger.debug(f"osu replay: {len(events)} inputs, speed {speed}")
        return RawReplay(format=self.name, events=events)
