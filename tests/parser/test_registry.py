"""Tests for decoder registration, format detection and decode_replay."""

from __future__ import annotations

import json

import pytest

from clicksynth.parser import (
    FormatNotFoundError,
    InvalidPayloadError,
    RawReplay,
    ReplayDecoder,
    UnknownFormatError,
    decode_replay,
    get_decoder,
    guess_format,
    list_formats,
    register_format,
    unregister_format,
)
from fixtures.builders import (
    build_echo_binary,
    build_gdr2,
    build_omegabot,
    build_replaybot,
)


class _BrokenDecoder(ReplayDecoder):
    name = "broken"
    extensions = (".broken",)

    def decode(self, data: bytes) -> RawReplay:
        return {}["missing"]


@pytest.fixture
def broken_format():
    register_format("broken", _BrokenDecoder)
    yield
    unregister_format("broken")


class TestRegistry:
    """Test the decoder registry."""

    def test_builtin_formats_are_listed(self):
        formats = list_formats()
        for name in ("mhr_json", "zbot", "omegabot2", "ybot2", "gdr", "gdr2", "osu"):
            assert name in formats

    def test_get_decoder_returns_instance(self):
        decoder = get_decoder("zbot")
        assert isinstance(decoder, ReplayDecoder)
        assert decoder.name == "zbot"

    def test_unknown_decoder(self):
        with pytest.raises(FormatNotFoundError) as exc_info:
            get_decoder("nope")
        assert "zbot" in exc_info.value.details["available_formats"]

    def test_register_rejects_duplicates_and_non_decoders(self, broken_format):
        with pytest.raises(ValueError):
            register_format("broken", _BrokenDecoder)
        with pytest.raises(TypeError):
            register_format("other", object)

    def test_unregister_is_idempotent(self):
        unregister_format("never-registered")


class TestGuessFormat:
    """Test extension and content based detection."""

    def test_longest_extension_wins(self):
        data = json.dumps({"meta": {"fps": 240}, "events": []}).encode()
        assert guess_format("macro.mhr.json", data).name == "mhr_json"

    def test_shared_replay_extension_uses_sniff(self):
        assert guess_format("a.replay", build_replaybot([])).name == "replaybot"
        assert guess_format("b.replay", build_omegabot([])).name == "omegabot2"

    def test_shared_echo_extension_uses_sniff(self):
        assert guess_format("a.echo", build_echo_binary([])).name == "echo_binary"
        assert guess_format("b.echo", b'{"fps": 240, "inputs": []}').name == (
            "echo_json"
        )

    def test_gdr_extension_prefers_binary_magic(self):
        assert guess_format("a.gdr", build_gdr2([])).name == "gdr2"
        assert guess_format("b.gdr", b'{"inputs": []}').name == "gdr"

    def test_magic_identifies_unknown_extension(self):
        assert guess_format("renamed.bin", build_gdr2([])).name == "gdr2"

    def test_extension_is_case_insensitive(self):
        assert guess_format("MACRO.ZBF", b"").name == "zbot"

    def test_unknown_format(self):
        with pytest.raises(UnknownFormatError):
            guess_format("notes.docx", b"plain words")

    def test_no_filename_without_magic(self):
        with pytest.raises(UnknownFormatError):
            guess_format(None, b"\x00\x01\x02")


class TestDecodeReplay:
    """Test the decode_replay entry point."""

    def test_detects_and_decodes(self):
        raw = decode_replay(b"240\n10 1 1\n", filename="inputs.txt")
        assert raw.format == "plaintext"
        assert len(raw.events) == 1

    def test_explicit_format_skips_detection(self):
        raw = decode_replay(
            b"240\n10 1 1\n", filename="inputs.bin", format_name="plaintext"
        )
        assert raw.format == "plaintext"

    def test_unexpected_decoder_errors_are_wrapped(self, broken_format):
        with pytest.raises(InvalidPayloadError, match="KeyError"):
            decode_replay(b"", filename="x.broken")
