"""Tests for clickpack loading."""

from __future__ import annotations

import numpy as np
import pytest

from clicksynth.clickpack import ClickPack, decode_sample, load_clickpack
from clicksynth.errors import ClickpackNotFoundError, SampleDecodeError
from clicksynth.types import ClickCategory, Player, PlayerSide
from fixtures.builders import create_test_sample, write_test_clickpack, write_test_wav

P1 = PlayerSide.PLAYER1
P2 = PlayerSide.PLAYER2


class TestDecodeSample:
    """Test single file decoding."""

    def test_decodes_to_float32_frames_by_channels(self, tmp_path):
        path = write_test_wav(tmp_path / "a.wav", frames=64, channels=2)
        sample = decode_sample(path)

        assert sample.name == "a.wav"
        assert sample.data.dtype == np.float32
        assert sample.data.shape == (64, 2)
        assert sample.sample_rate == 44100
        assert sample.duration == pytest.approx(64 / 44100)

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "broken.wav"
        path.write_bytes(b"not really a wav file")
        with pytest.raises(SampleDecodeError) as exc_info:
            decode_sample(path)
        assert exc_info.value.details["path"] == str(path)


class TestLoadClickpack:
    """Test directory layouts."""

    def test_player_folders(self, tmp_path):
        pack = load_clickpack(write_test_clickpack(tmp_path / "pack"))

        assert len(pack.lookup(P1, ClickCategory.CLICK)) == 2
        assert len(pack.lookup(P1, ClickCategory.RELEASE)) == 1
        assert len(pack.lookup(P2, ClickCategory.CLICK)) == 1
        assert pack.lookup(P1, ClickCategory.HARDCLICK) == ()
        assert pack.num_sounds() == 5
        assert not pack.has_noise()
        assert pack.warnings == []

    def test_samples_are_sorted_by_file_name(self, tmp_path):
        pack = load_clickpack(write_test_clickpack(tmp_path / "pack"))
        names = [s.name for s in pack.lookup(P1, ClickCategory.CLICK)]
        assert names == ["1.wav", "2.wav"]

    def test_root_categories_are_shared(self, tmp_path):
        root = write_test_clickpack(
            tmp_path / "pack", {"clicks": 1, "softclicks": 2}
        )
        pack = load_clickpack(root)

        assert pack.lookup(P1, ClickCategory.CLICK) == pack.lookup(
            P2, ClickCategory.CLICK
        )
        assert len(pack.lookup(P2, ClickCategory.SOFTCLICK)) == 2
        assert pack.num_sounds() == 3

    def test_loose_files_become_clicks(self, tmp_path):
        root = tmp_path / "pack"
        write_test_wav(root / "a.wav")
        write_test_wav(root / "b.flac")
        (root / "readme.txt").write_text("hello")

        pack = load_clickpack(root)
        assert len(pack.lookup(P1, ClickCategory.CLICK)) == 2
        assert len(pack.lookup(P2, ClickCategory.CLICK)) == 2

    def test_directional_folders(self, tmp_path):
        root = write_test_clickpack(
            tmp_path / "pack", {"player1/clicks": 1, "left1/clicks": 1}
        )
        pack = load_clickpack(root)

        assert len(pack.lookup(PlayerSide.LEFT1, ClickCategory.CLICK)) == 1
        assert pack.lookup(PlayerSide.RIGHT1, ClickCategory.CLICK) == ()

    def test_root_categories_with_only_directional_folders(self, tmp_path):
        root = write_test_clickpack(
            tmp_path / "pack",
            {"clicks": 1, "releases": 1, "left1/clicks": 1},
        )
        pack = load_clickpack(root)

        assert len(pack.lookup(PlayerSide.PLAYER1, ClickCategory.CLICK)) == 1
        assert len(pack.lookup(PlayerSide.PLAYER2, ClickCategory.RELEASE)) == 1
        assert len(pack.lookup(PlayerSide.LEFT1, ClickCategory.CLICK)) == 1

    def test_root_noise(self, tmp_path):
        pack = load_clickpack(write_test_clickpack(tmp_path / "pack", noise=True))

        assert pack.has_noise()
        assert pack.noise_sample().frames == 400
        assert pack.num_sounds() == 5

    def test_player_noise(self, tmp_path):
        root = write_test_clickpack(tmp_path / "pack")
        write_test_wav(root / "player2" / "whitenoise.wav", frames=10)

        pack = load_clickpack(root)
        assert pack.noise_sample(Player.TWO).frames == 10
        assert ClickPack.dir_has_noise(root)

    def test_undecodable_file_is_skipped_with_warning(self, tmp_path):
        root = write_test_clickpack(tmp_path / "pack", {"clicks": 1})
        (root / "clicks" / "2.wav").write_bytes(b"garbage")

        pack = load_clickpack(root)
        assert len(pack.lookup(P1, ClickCategory.CLICK)) == 1
        assert len(pack.warnings) == 1
        assert "2.wav" in pack.warnings[0]

    def test_empty_directory_has_no_clicks(self, tmp_path):
        root = tmp_path / "pack"
        root.mkdir()
        pack = load_clickpack(root)
        assert not pack.has_clicks()
        assert not ClickPack.dir_has_noise(root)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ClickpackNotFoundError):
            load_clickpack(tmp_path / "nope")


class TestClickPackQueries:
    """Test in-memory helpers."""

    def test_longest_sample_ignores_noise(self):
        pack = ClickPack(
            pools={(P1, ClickCategory.CLICK): (create_test_sample(frames=500),)}
        )
        pack.noise[None] = create_test_sample(frames=5000)
        assert pack.longest_sample_seconds() == pytest.approx(0.5)

    def test_noise_prefers_root_copy(self):
        pack = ClickPack()
        pack.noise[Player.ONE] = create_test_sample("p1", frames=1)
        assert pack.noise_sample(Player.TWO).name == "p1"
        pack.noise[None] = create_test_sample("root", frames=2)
        assert pack.noise_sample(Player.ONE).name == "root"
