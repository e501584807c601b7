"""Tests for writing rendered audio."""

import numpy as np
import pytest
import soundfile as sf

from clicksynth.errors import OutputWriteError
from clicksynth.output import write_wav
from clicksynth.render import RenderResult


def _result(frames=100, sample_rate=8000):
    samples = np.linspace(-1.0, 1.0, frames * 2).reshape(frames, 2)
    return RenderResult(samples=samples, sample_rate=sample_rate)


def test_write_wav_float_stereo(tmp_path):
    out_path = write_wav(_result(), tmp_path / "out.wav")

    info = sf.info(str(out_path))
    assert info.samplerate == 8000
    assert info.channels == 2
    assert info.frames == 100
    assert info.subtype == "FLOAT"

    data, _ = sf.read(str(out_path), dtype="float32")
    assert np.allclose(data, _result().samples)


def test_write_wav_creates_parent_directories(tmp_path):
    out_path = write_wav(_result(), tmp_path / "nested" / "dir" / "out.wav")
    assert out_path.exists()


def test_write_wav_replaces_existing_file(tmp_path):
    target = tmp_path / "out.wav"
    target.write_bytes(b"old")

    write_wav(_result(frames=10), target)

    assert sf.info(str(target)).frames == 10
    assert not (tmp_path / "out.wav.tmp").exists()


def test_write_wav_failure_leaves_no_temp_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")

    with pytest.raises(OutputWriteError) as exc_info:
        write_wav(_result(), blocker / "out.wav")

    assert exc_info.value.details["path"] == str(blocker / "out.wav")
    assert list(tmp_path.iterdir()) == [blocker]
