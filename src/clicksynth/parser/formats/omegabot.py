"""OmegaBot 2 replays (bincode-serialized)."""

from __future__ import annotations

import logging

from ...types import Player
from ..binary import ByteReader
from ..errors import InvalidPayloadError, UnsupportedVersionError
from ..interface import ReplayDecoder
from ..types import RawReplay, event

logger = logging.getLogger(__name__)

REPLAY_TYPE_XPOS = 0
REPLAY_TYPE_FRAME = 1

LOCATION_XPOS = 0
LOCATION_FRAME = 1

CLICK_NONE = 0
CLICK_FPS_CHANGE = 1
CLICK_P1_DOWN = 2
CLICK_P1_UP = 3
CLICK_P2_DOWN = 4
CLICK_P2_UP = 5

_BUTTON_CLICKS = {
    CLICK_P1_DOWN: (Player.ONE, True),
    CLICK_P1_UP: (Player.ONE, False),
    CLICK_P2_DOWN: (Player.TWO, True),
    CLICK_P2_UP: (Player.TWO, False),
}

# bincode u64 lengths are trusted only up to what the payload could hold
_MIN_CLICK_SIZE = 12


class OmegaBotDecoder(ReplayDecoder):
    """OmegaBot 2 ``.replay`` files.

    Layout (little-endian bincode)::

        initial_fps f32, current_fps f32, replay_type u32,
        current_click u64, clicks: u64 length + [location, click_type]

    Only frame replays are supported. ``FpsChange`` clicks switch the FPS
    used for subsequent frames, so events are emitted in seconds.
    """

    name = "omegabot2"
    extensions = (".replay",)
    description = "OmegaBot 2 replay"

    def sniff(self, data: bytes) -> bool:
        if len(data) < 28:
            return False
        reader = ByteReader(data, self.name)
        fps = reader.f32()
        reader.skip(4)
        replay_type = reader.u32()
        return 0.0 < fps < 100_000.0 and replay_type in (
            REPLAY_TYPE_XPOS,
            REPLAY_TYPE_FRAME,
        )

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name)
        initial_fps = reader.f32()
        reader.f32()  # current fps at save time
        replay_type = reader.u32()
        if replay_type == REPLAY_TYPE_XPOS:
            raise UnsupportedVersionError(
                self.name, "xpos replay", supported="frame replays"
            )
        if replay_type != REPLAY_TYPE_FRAME:
            raise InvalidPayloadError(self.name, f"unknown replay type {replay_type}")
        reader.u64()  # current click
        count = reader.u64()
        if count * _MIN_CLICK_SIZE > reader.remaining:
            raise InvalidPayloadError(
                self.name, f"click count {count} exceeds payload size"
            )

        if initial_fps <= 0:
            raise InvalidPayloadError(self.name, f"invalid fps {initial_fps}")
        current_fps = initial_fps

        events = []
        warnings = []
        for index in range(count):
            location = reader.u32()
            value = reader.u32()
            click_type = reader.u32()

            if click_type == CLICK_FPS_CHANGE:
                new_fps = reader.f32()
                if new_fps > 0:
                    current_fps = new_fps
                else:
                    warnings.append(f"ignored_fps_change_{index}")
                continue
            if click_type == CLICK_NONE:
                continue
            if click_type not in _BUTTON_CLICKS:
                raise InvalidPayloadError(
                    self.name, f"unknown click type {click_type} at click {index}"
                )
            if location != LOCATION_FRAME:
                logger.warning(
                    f"omegabot2 xpos click {index} in a frame replay, skipping"
                )
                warnings.append(f"skipped_xpos_click_{index}")
                continue

            player, down = _BUTTON_CLICKS[click_type]
            events.append(event(down, time=value / current_fps, player=player))

        return RawReplay(
            format=self.name,
            events=events,
            fps=initial_fps,
            quality_warnings=warnings,
        )
