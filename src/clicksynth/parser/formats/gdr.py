"""GDReplayFormat replays: MessagePack/JSON (``.gdr``) and binary v2."""

from __future__ import annotations

import json
import logging
import math

import msgspec

from ...types import Button, Player
from ..binary import ByteReader, decode_text
from ..documents import check_schema
from ..errors import InvalidPayloadError, UnsupportedVersionError
from ..interface import ReplayDecoder
from ..types import PhysicsState, RawReplay, event

logger = logging.getLogger(__name__)

GDR_DEFAULT_FPS = 240.0

GDR2_MAGIC = b"GDR"
GDR2_VERSION = 2
GDR2_PHYSICS_TAG = "Phys"

_BUTTONS = {1: Button.JUMP, 2: Button.LEFT, 3: Button.RIGHT}


def _button(value: int, format_name: str) -> Button:
    # some recorders write 0 for jump
    if value == 0:
        return Button.JUMP
    try:
        return _BUTTONS[value]
    except KeyError:
        raise InvalidPayloadError(format_name, f"unknown button {value}") from None


class GdrDecoder(ReplayDecoder):
    """GDReplayFormat v1 documents.

    The payload is MessagePack; JSON is accepted as a fallback. Inputs may
    carry a ``correction`` object with the player's physics at that frame.
    """

    name = "gdr"
    extensions = (".gdr",)
    description = "GDReplayFormat (MessagePack or JSON)"

    def sniff(self, data: bytes) -> bool:
        return not data.startswith(GDR2_MAGIC)

    def _load(self, data: bytes) -> dict:
        try:
            document = msgspec.msgpack.decode(data)
            if isinstance(document, dict):
                return document
            logger.debug("gdr payload is not a msgpack map, trying JSON")
        except msgspec.DecodeError as e:
            logger.debug(f"failed to parse gdr as msgpack ({e}), trying JSON")

        try:
            return json.loads(decode_text(data, self.name))
        except json.JSONDecodeError as e:
            raise InvalidPayloadError(
                self.name, f"neither MessagePack nor JSON: {e}"
            ) from e

    def decode(self, data: bytes) -> RawReplay:
        document = self._load(data)
        check_schema(document, self.name, "gdr")

        fps = float(document.get("framerate", GDR_DEFAULT_FPS))
        events = []
        for entry in document.get("inputs", []):
            correction = entry.get("correction")
            physics = None
            if correction:
                physics = PhysicsState(
                    x=float(correction.get("xPos", 0.0)),
                    y=float(correction.get("yPos", 0.0)),
                    rotation=float(correction.get("rotation", 0.0)),
                    y_accel=float(correction.get("yVel", 0.0)),
                )
            events.append(
                event(
                    entry["down"],
                    entry["frame"],
                    player=Player.TWO if entry.get("2p") else Player.ONE,
                    button=_button(entry.get("btn", 1), self.name),
                    physics=physics,
                )
            )

        return RawReplay(format=self.name, events=events, fps=fps)


class Gdr2Decoder(ReplayDecoder):
    """GDReplayFormat 2 binary replays.

    Big-endian floats and LEB128 varints. Player one inputs come first,
    then player two, each delta-encoded against the previous frame of the
    same player. Platformer replays pack ``delta << 3 | button << 1 | down``;
    others pack ``delta << 1 | down``. When the input tag is ``Phys`` each
    input is followed by a sized extension holding its physics.
    """

    name = "gdr2"
    extensions = (".gdr2", ".gdr")
    description = "GDReplayFormat 2 (binary)"
    magic = GDR2_MAGIC

    def decode(self, data: bytes) -> RawReplay:
        reader = ByteReader(data, self.name, big_endian=True)
        reader.expect_magic(GDR2_MAGIC)
        version = reader.uleb128(32)
        if version != GDR2_VERSION:
            raise UnsupportedVersionError(self.name, version, supported=GDR2_VERSION)
        input_tag = reader.varstring()

        reader.varstring()  # author
        reader.varstring()  # description
        reader.f32()  # duration
        reader.uleb128(32)  # game version
        fps = reader.f64()
        reader.uleb128(32)  # seed
        reader.uleb128(32)  # coins
        reader.bool8()  # ldm
        platformer = reader.bool8()
        bot_name = reader.varstring()
        reader.uleb128(32)  # bot version
        reader.uleb128(32)  # level id
        reader.varstring()  # level name
        reader.skip(reader.uleb128(32))  # replay extension

        deaths = []
        frame = 0
        for _ in range(reader.uleb128(32)):
            frame += reader.uleb128(32)
            deaths.append(frame)

        total = reader.uleb128(32)
        p1_count = reader.uleb128(32)
        if p1_count > total:
            raise InvalidPayloadError(
                self.name, f"player 1 input count {p1_count} exceeds total {total}"
            )

        events = []
        for player, count in ((Player.ONE, p1_count), (Player.TWO, total - p1_count)):
            frame = 0
            for _ in range(count):
                packed = reader.uleb128(32)
                if platformer:
                    frame += packed >> 3
                    button = _button((packed >> 1) & 0b11, self.name)
                else:
                    frame += packed >> 1
                    button = Button.JUMP
                physics = self._read_extension(reader, input_tag) if input_tag else None
                events.append(
                    event(
                        bool(packed & 1),
                        frame,
                        player=player,
                        button=button,
                        physics=physics,
                    )
                )

        if not math.isfinite(fps) or fps <= 0:
            logger.warning(f"gdr2 replay has invalid framerate {fps}, using default")
            fps = None
        logger.debug(f"gdr2 replay recorded with {bot_name or 'unknown bot'}")
        return RawReplay(format=self.name, events=events, fps=fps, deaths=deaths)

    def _read_extension(self, reader: ByteReader, tag: str) -> PhysicsState | None:
        size = reader.uleb128(32)
        if size == 0:
            return None
        chunk = ByteReader(reader.read_bytes(size), self.name, big_endian=True)
        if tag != GDR2_PHYSICS_TAG:
            return None
        x = chunk.f32()
        y = chunk.f32()
        rotation = chunk.f32()
        chunk.f64()  # x velocity
        y_velocity = chunk.f64()
        return PhysicsState(x=x, y=y, rotation=rotation, y_accel=y_velocity)
