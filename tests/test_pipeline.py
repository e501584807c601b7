"""Tests for the replay-to-WAV pipeline."""

import threading

import soundfile as sf

from clicksynth.clickpack import load_clickpack
from clicksynth.config import RenderConfig
from clicksynth.pipeline import (
    RenderJobResult,
    RenderStatus,
    default_output_path,
    render_batch,
    render_replay_file,
)
from fixtures.builders import write_test_clickpack

PLAINTEXT = b"240\n0 1 1\n24 1 0\n48 2 1\n"


def _replay(tmp_path, name="macro.txt", data=PLAINTEXT):
    path = tmp_path / name
    path.write_bytes(data)
    return path


def test_default_output_path(tmp_path):
    replay = tmp_path / "replays" / "level.gdr"
    assert default_output_path(replay) == tmp_path / "replays" / "level.wav"
    out_dir = tmp_path / "out"
    assert default_output_path(replay, out_dir) == out_dir / "level.wav"


def test_render_replay_file_success(tmp_path):
    clicks = write_test_clickpack(tmp_path / "pack")
    replay = _replay(tmp_path)

    result = render_replay_file(replay, clicks, config=RenderConfig(seed=1))

    assert result.status == RenderStatus.SUCCESS
    assert result.output == tmp_path / "macro.wav"
    assert result.stats.rendered == 3
    info = sf.info(str(result.output))
    assert info.channels == 2
    assert info.samplerate == 44100
    # last onset at 0.2s plus a 100 frame sample
    assert info.frames >= round(0.2 * 44100)
    assert str(result).startswith("✓ macro.txt")


def test_render_replay_file_reports_errors(tmp_path):
    clicks = write_test_clickpack(tmp_path / "pack")
    replay = _replay(tmp_path, "notes.docx", b"hello")

    result = render_replay_file(replay, clicks)

    assert result.status == RenderStatus.ERROR
    assert "Unknown replay format" in result.error
    assert not (tmp_path / "notes.wav").exists()
    assert str(result).startswith("✗ notes.docx")


def test_render_replay_file_missing_clickpack(tmp_path):
    result = render_replay_file(_replay(tmp_path), tmp_path / "nope")
    assert result.status == RenderStatus.ERROR
    assert "Clickpack directory not found" in result.error


def test_render_replay_file_cancelled(tmp_path):
    cancel = threading.Event()
    cancel.set()
    clickpack = load_clickpack(write_test_clickpack(tmp_path / "pack"))

    result = render_replay_file(_replay(tmp_path), clickpack, cancel=cancel)

    assert result.status == RenderStatus.CANCELLED
    assert str(result) == "⊘ macro.txt (cancelled)"


def test_render_batch_reuses_clickpack(tmp_path, monkeypatch):
    clicks = write_test_clickpack(tmp_path / "pack")
    replays = [_replay(tmp_path, f"{name}.txt") for name in ("a", "b", "c")]
    loads = []
    original = load_clickpack

    def counting_load(path, **kwargs):
        loads.append(path)
        return original(path, **kwargs)

    monkeypatch.setattr("clicksynth.pipeline.load_clickpack", counting_load)
    progress = []

    results = render_batch(
        replays,
        clicks,
        tmp_path / "out",
        RenderConfig(seed=3),
        on_progress=lambda i, total, result: progress.append((i, total)),
    )

    assert len(loads) == 1
    assert [r.status for r in results] == [RenderStatus.SUCCESS] * 3
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == [
        "a.wav",
        "b.wav",
        "c.wav",
    ]
    assert progress == [(1, 3), (2, 3), (3, 3)]


def test_render_batch_continues_after_failure(tmp_path):
    clicks = write_test_clickpack(tmp_path / "pack")
    replays = [
        _replay(tmp_path, "bad.txt", b"not a number\n"),
        _replay(tmp_path, "good.txt"),
    ]

    results = render_batch(replays, clicks)

    assert [r.status for r in results] == [RenderStatus.ERROR, RenderStatus.SUCCESS]


def test_render_batch_cancel_marks_remaining(tmp_path):
    cancel = threading.Event()
    clicks = write_test_clickpack(tmp_path / "pack")
    replays = [_replay(tmp_path, f"{name}.txt") for name in ("a", "b")]

    def stop_after_first(index, total, result):
        cancel.set()

    results = render_batch(
        replays, clicks, cancel=cancel, on_progress=stop_after_first
    )

    assert [r.status for r in results] == [
        RenderStatus.SUCCESS,
        RenderStatus.CANCELLED,
    ]
    assert isinstance(results[1], RenderJobResult)
    assert results[1].output is None
