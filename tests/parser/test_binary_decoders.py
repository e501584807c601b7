"""Tests for the binary replay decoders against synthetic payloads."""

from __future__ import annotations

import struct

import pytest

from clicksynth.parser.errors import (
    BadMagicError,
    InvalidPayloadError,
    TruncatedReplayError,
    UnsupportedVersionError,
)
from clicksynth.parser.formats import (
    DdhorDecoder,
    EchoBinaryDecoder,
    Gdr2Decoder,
    KdBotDecoder,
    MegaHackBinaryDecoder,
    OmegaBotDecoder,
    OsuDecoder,
    ReplayBotDecoder,
    RushDecoder,
    Ybot2Decoder,
    YbotFrameDecoder,
    ZbotDecoder,
)
from clicksynth.parser.formats.osu import MOD_DOUBLE_TIME, MOD_HALF_TIME
from clicksynth.types import ActionKind, Button, Player
from fixtures.builders import (
    build_ddhor,
    build_echo_binary,
    build_gdr2,
    build_mhr_binary,
    build_omegabot,
    build_osu,
    build_replaybot,
    build_ybot2,
    build_ybot_frame,
    build_zbot,
)


def _summary(raw):
    """(frame or time, player, kind) triples for compact assertions."""
    return [
        (
            e.frame if e.frame is not None else e.time,
            e.player,
            e.kind,
        )
        for e in raw.events
    ]


PRESS = ActionKind.PRESS
RELEASE = ActionKind.RELEASE


class TestZbot:
    """Test zBot frame replays."""

    def test_decodes_records_and_fps(self):
        data = build_zbot([(100, True, True), (110, False, True), (120, True, False)])
        raw = ZbotDecoder().decode(data)

        assert raw.format == "zbot"
        assert raw.fps == pytest.approx(240.0, rel=1e-5)
        assert _summary(raw) == [
            (100, Player.ONE, PRESS),
            (110, Player.ONE, RELEASE),
            (120, Player.TWO, PRESS),
        ]

    def test_speedhack_divides_fps(self):
        raw = ZbotDecoder().decode(build_zbot([], delta=1 / 240, speedhack=2.0))
        assert raw.fps == pytest.approx(120.0, rel=1e-5)

    def test_zero_speedhack_defaults_to_one(self):
        raw = ZbotDecoder().decode(build_zbot([], delta=1 / 60, speedhack=0.0))
        assert raw.fps == pytest.approx(60.0, rel=1e-5)

    def test_zero_delta_leaves_fps_unknown(self):
        raw = ZbotDecoder().decode(build_zbot([(1, True, True)], delta=0.0))
        assert raw.fps is None

    def test_partial_record_is_truncated(self):
        data = build_zbot([(100, True, True)]) + b"\x00\x00"
        with pytest.raises(TruncatedReplayError):
            ZbotDecoder().decode(data)


class TestMegaHackBinary:
    """Test Mega Hack binary macros."""

    def test_decodes_records(self):
        data = build_mhr_binary([(10, True, True), (20, False, False)], fps=360)
        raw = MegaHackBinaryDecoder().decode(data)

        assert raw.fps == 360.0
        assert _summary(raw) == [
            (10, Player.ONE, PRESS),
            (20, Player.TWO, RELEASE),
        ]

    def test_bad_magic(self):
        data = b"NOPE" + build_mhr_binary([])[4:]
        with pytest.raises(BadMagicError):
            MegaHackBinaryDecoder().decode(data)

    def test_count_beyond_payload_is_truncated(self):
        data = build_mhr_binary([(10, True, True)])
        with pytest.raises(TruncatedReplayError):
            MegaHackBinaryDecoder().decode(data[:-8])


class TestOmegaBot:
    """Test OmegaBot 2 replays."""

    def test_fps_change_affects_following_clicks(self):
        data = build_omegabot(
            [
                (1, 120, 2),
                (1, 180, 3),
                (1, 0, 1, 120.0),
                (1, 60, 4),
                (1, 0, 0),
            ]
        )
        raw = OmegaBotDecoder().decode(data)

        assert raw.fps == 240.0
        summary = _summary(raw)
        assert [(p, k) for _, p, k in summary] == [
            (Player.ONE, PRESS),
            (Player.ONE, RELEASE),
            (Player.TWO, PRESS),
        ]
        assert [t for t, _, _ in summary] == pytest.approx([0.5, 0.75, 0.5])
        assert all(e.frame is None for e in raw.events)

    def test_xpos_replay_is_unsupported(self):
        with pytest.raises(UnsupportedVersionError):
            OmegaBotDecoder().decode(build_omegabot([], replay_type=0))

    def test_xpos_click_in_frame_replay_is_skipped(self):
        raw = OmegaBotDecoder().decode(build_omegabot([(0, 10, 2), (1, 20, 2)]))
        assert len(raw.events) == 1
        assert raw.quality_warnings == ["skipped_xpos_click_0"]

    def test_click_count_larger_than_payload(self):
        data = struct.pack("<ffIQQ", 240.0, 240.0, 1, 0, 1000)
        with pytest.raises(InvalidPayloadError, match="exceeds payload size"):
            OmegaBotDecoder().decode(data)

    def test_sniff_rejects_other_payloads(self):
        decoder = OmegaBotDecoder()
        assert decoder.sniff(build_omegabot([]))
        assert not decoder.sniff(b"RPLY\x02")
        assert not decoder.sniff(struct.pack("<ffIQQ", -1.0, 0.0, 1, 0, 0))


class TestYbot:
    """Test yBot frame files and yBot 2 macros."""

    def test_frame_file(self):
        data = build_ybot_frame([(100, True, False), (110, False, True)], fps=144.0)
        raw = YbotFrameDecoder().decode(data)

        assert raw.fps == 144.0
        assert _summary(raw) == [
            (100, Player.ONE, PRESS),
            (110, Player.TWO, RELEASE),
        ]

    def test_frame_file_negative_count(self):
        with pytest.raises(InvalidPayloadError):
            YbotFrameDecoder().decode(struct.pack("<fi", 240.0, -1))

    def test_ybot2_deltas_and_fps_change(self):
        data = build_ybot2(
            [
                (120, True, True, Button.JUMP),
                (30, False, True, Button.JUMP),
                ("fps", 0, 120.0),
                (60, True, False, Button.LEFT),
            ],
            blobs=[b"thumbnail"],
        )
        raw = Ybot2Decoder().decode(data)

        assert raw.fps == 240.0
        assert [e.time for e in raw.events] == pytest.approx([0.5, 0.625, 1.125])
        assert [e.player for e in raw.events] == [Player.ONE, Player.ONE, Player.TWO]
        assert [e.kind for e in raw.events] == [PRESS, RELEASE, PRESS]
        assert raw.events[2].button is Button.LEFT

    def test_ybot2_short_meta_uses_default_fps(self):
        raw = Ybot2Decoder().decode(build_ybot2([(240, True, True, 1)], fps=None))
        assert raw.fps == 240.0
        assert raw.events[0].time == pytest.approx(1.0)

    def test_ybot2_invalid_fps_change(self):
        data = build_ybot2([("fps", 0, 0.0)])
        with pytest.raises(InvalidPayloadError):
            Ybot2Decoder().decode(data)


class TestEchoBinary:
    """Test Echo binary replays."""

    @pytest.mark.parametrize("debug", [False, True])
    def test_decodes_both_record_sizes(self, debug):
        data = build_echo_binary([(100, True, False), (110, False, True)], debug=debug)
        raw = EchoBinaryDecoder().decode(data)

        assert raw.fps == 240.0
        assert _summary(raw) == [
            (100, Player.ONE, PRESS),
            (110, Player.TWO, RELEASE),
        ]
        assert raw.quality_warnings == []

    def test_trailing_bytes_are_reported(self):
        data = build_echo_binary([(100, True, False)], trailing=b"\x01\x02")
        raw = EchoBinaryDecoder().decode(data)
        assert len(raw.events) == 1
        assert raw.quality_warnings == ["trailing_bytes_2"]


class TestGdr2:
    """Test GDReplayFormat 2 binary replays."""

    def test_players_deaths_and_fps(self):
        data = build_gdr2([(10, True), (20, False)], [(15, True)], deaths=[5, 12])
        raw = Gdr2Decoder().decode(data)

        assert raw.fps == 240.0
        assert raw.deaths == [5, 12]
        assert _summary(raw) == [
            (10, Player.ONE, PRESS),
            (20, Player.ONE, RELEASE),
            (15, Player.TWO, PRESS),
        ]

    def test_platformer_buttons(self):
        data = build_gdr2([(10, True, 2), (12, False, 3)], platformer=True)
        raw = Gdr2Decoder().decode(data)
        assert [e.button for e in raw.events] == [Button.LEFT, Button.RIGHT]
        assert [e.frame for e in raw.events] == [10, 12]

    def test_physics_extension(self):
        data = build_gdr2(
            [(10, True), (11, False)],
            input_tag="Phys",
            physics={0: (1.0, 2.0, 3.0, 4.0, 5.0)},
        )
        raw = Gdr2Decoder().decode(data)

        physics = raw.events[0].physics
        assert (physics.x, physics.y, physics.rotation) == (1.0, 2.0, 3.0)
        assert physics.y_accel == 5.0
        assert raw.events[1].physics is None

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersionError):
            Gdr2Decoder().decode(build_gdr2([], version=3))

    def test_invalid_framerate_becomes_unknown(self):
        raw = Gdr2Decoder().decode(build_gdr2([(10, True)], fps=0.0))
        assert raw.fps is None

    def test_truncated_payload(self):
        data = build_gdr2([(10, True), (20, False)])
        with pytest.raises(TruncatedReplayError):
            Gdr2Decoder().decode(data[:-1])


class TestOsu:
    """Test osu! replays."""

    FRAMES = [(0, 0), (-1, 0), (10, 1), (5, 0), (20, 2), (10, 0)]

    def test_key_transitions_become_inputs(self):
        raw = OsuDecoder().decode(build_osu(self.FRAMES))

        assert raw.fps is None
        assert [(p, k) for _, p, k in _summary(raw)] == [
            (Player.ONE, PRESS),
            (Player.ONE, RELEASE),
            (Player.TWO, PRESS),
            (Player.TWO, RELEASE),
        ]
        assert [e.time for e in raw.events] == pytest.approx(
            [0.009, 0.014, 0.034, 0.044]
        )

    @pytest.mark.parametrize(
        "mods,speed", [(MOD_DOUBLE_TIME, 1.5), (MOD_HALF_TIME, 0.75)]
    )
    def test_speed_mods_scale_time(self, mods, speed):
        raw = OsuDecoder().decode(build_osu(self.FRAMES, mods=mods))
        assert raw.events[0].time == pytest.approx(0.009 / speed)

    def test_both_keys_held(self):
        raw = OsuDecoder().decode(build_osu([(10, 3), (10, 0)]))
        assert len(raw.events) == 4
        assert {e.player for e in raw.events} == {Player.ONE, Player.TWO}

    def test_corrupt_frame_data(self):
        data = build_osu([(10, 1)])
        # length stays valid, payload bytes become garbage
        data = data[:-10] + b"\xff" * 10
        with pytest.raises(InvalidPayloadError):
            OsuDecoder().decode(data)


class TestLegacyBinary:
    """Test ReplayBot, Rush, KD-BOT and DDHOR replays."""

    def test_replaybot(self):
        data = build_replaybot(
            [(100, True, False), (120, False, False), (130, True, True)]
        )
        raw = ReplayBotDecoder().decode(data)

        assert raw.fps == 240.0
        assert _summary(raw) == [
            (100, Player.ONE, PRESS),
            (120, Player.ONE, RELEASE),
            (130, Player.TWO, PRESS),
        ]

    def test_replaybot_version(self):
        data = bytearray(build_replaybot([]))
        data[4] = 3
        with pytest.raises(UnsupportedVersionError):
            ReplayBotDecoder().decode(bytes(data))

    def test_rush(self):
        data = struct.pack("<h", 60) + struct.pack("<iB", 30, 0b01)
        raw = RushDecoder().decode(data)
        assert raw.fps == 60.0
        assert _summary(raw) == [(30, Player.ONE, PRESS)]

    def test_rush_partial_record(self):
        data = struct.pack("<h", 60) + struct.pack("<iB", 30, 0b01) + b"\x00"
        with pytest.raises(TruncatedReplayError):
            RushDecoder().decode(data)

    def test_kdbot(self):
        data = struct.pack("<f", 240.0)
        data += struct.pack("<iBB", 50, 1, 0) + struct.pack("<iBB", 60, 0, 1)
        raw = KdBotDecoder().decode(data)
        assert _summary(raw) == [
            (50, Player.ONE, PRESS),
            (60, Player.TWO, RELEASE),
        ]

    def test_ddhor_rounds_float_frames(self):
        data = build_ddhor([(10.4, True), (20.6, False)], [(15.0, True)])
        raw = DdhorDecoder().decode(data)

        assert raw.fps == 240.0
        assert _summary(raw) == [
            (10, Player.ONE, PRESS),
            (21, Player.ONE, RELEASE),
            (15, Player.TWO, PRESS),
        ]

    def test_ddhor_negative_count(self):
        data = b"DDHR" + struct.pack("<hii", 240, -1, 0)
        with pytest.raises(InvalidPayloadError):
            DdhorDecoder().decode(data)
