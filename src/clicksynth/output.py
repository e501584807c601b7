"""Rendered audio output."""

from __future__ import annotations

import os
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import OutputWriteError
from .render import RenderResult

OUTPUT_SUBTYPE = "FLOAT"


def write_wav(result: RenderResult, out_path: Path) -> Path:
    """Write a render result as a 32-bit float stereo WAV, atomically.

    The audio goes to a temporary file next to ``out_path`` which then
    replaces the destination, so a failed write never leaves a partial
    file behind.

    Raises:
        OutputWriteError: If the directory or file cannot be written
    """
    out_path = Path(out_path)
    temp_path = out_path.with_name(out_path.name + ".tmp")
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with sf.SoundFile(
            str(temp_path),
            mode="w",
            samplerate=result.sample_rate,
            channels=result.samples.shape[1] if result.samples.ndim == 2 else 1,
            subtype=OUTPUT_SUBTYPE,
            format="WAV",
        ) as f:
            f.write(np.asarray(result.samples, dtype=np.float32))
        with open(temp_path, "rb+") as f:
            os.fsync(f.fileno())
        os.replace(temp_path, out_path)
    except (OSError, sf.SoundFileError, RuntimeError) as e:
        raise OutputWriteError(str(out_path), e) from e
    finally:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
    return out_path
