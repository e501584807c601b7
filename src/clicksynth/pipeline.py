"""Replay-to-audio pipeline.

This module provides the complete pipeline for:
1. Reading and decoding a replay file
2. Normalizing it into an action timeline
3. Rendering the timeline with a clickpack
4. Writing the WAV output
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .clickpack import ClickPack, load_clickpack
from .config import RenderConfig
from .errors import ClickSynthError, RenderCancelledError
from .ingest import read_replay_bytes
from .normalize import build_timeline
from .output import write_wav
from .parser import decode_replay
from .render import RenderStats, render_timeline

logger = logging.getLogger(__name__)


class RenderStatus(Enum):
    """Status of a render job."""

    SUCCESS = "success"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass
class RenderJobResult:
    """Result of rendering one replay file."""

    status: RenderStatus
    path: Path
    output: Path | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    stats: RenderStats | None = None

    def __str__(self) -> str:
        if self.status == RenderStatus.SUCCESS:
            return f"✓ {self.path.name} -> {self.output}"
        elif self.status == RenderStatus.CANCELLED:
            return f"⊘ {self.path.name} (cancelled)"
        else:
            return f"✗ {self.path.name}: {self.error}"


def default_output_path(replay_path: Path, output_dir: Path | None = None) -> Path:
    """``<replay stem>.wav``, next to the replay unless a directory is given."""
    replay_path = Path(replay_path)
    directory = Path(output_dir) if output_dir is not None else replay_path.parent
    return directory / f"{replay_path.stem}.wav"


def render_replay_file(
    path: Path,
    clicks: Path | ClickPack,
    output: Path | None = None,
    config: RenderConfig | None = None,
    *,
    format_name: str | None = None,
    cancel: threading.Event | None = None,
) -> RenderJobResult:
    """Render a single replay file to a WAV file.

    Args:
        path: Replay file
        clicks: Clickpack directory, or an already loaded ClickPack
        output: Destination WAV (defaults to ``<replay stem>.wav``)
        config: Render configuration
        format_name: Explicit replay format; detected when omitted
        cancel: Set to abort the render between actions

    Returns:
        RenderJobResult with status and details
    """
    path = Path(path)
    config = config or RenderConfig()
    output = Path(output) if output is not None else default_output_path(path)

    try:
        # Step 1: Decode
        data = read_replay_bytes(path)
        raw = decode_replay(data, filename=path.name, format_name=format_name)

        # Step 2: Normalize
        timeline = build_timeline(raw, config.replay)

        # Step 3: Render
        clickpack = clicks if isinstance(clicks, ClickPack) else load_clickpack(clicks)
        result = render_timeline(timeline, clickpack, config, cancel=cancel)

        # Step 4: Write
        write_wav(result, output)
        logger.info(f"Rendered {path} -> {output}")

        return RenderJobResult(
            status=RenderStatus.SUCCESS,
            path=path,
            output=output,
            warnings=list(raw.quality_warnings) + result.warnings,
            stats=result.stats,
        )

    except RenderCancelledError as e:
        logger.info(f"Render cancelled: {path}")
        return RenderJobResult(status=RenderStatus.CANCELLED, path=path, error=str(e))

    except ClickSynthError as e:
        logger.error(f"Error rendering {path}: {e}")
        return RenderJobResult(status=RenderStatus.ERROR, path=path, error=str(e))


def render_batch(
    paths: list[Path],
    clicks: Path | ClickPack,
    output_dir: Path | None = None,
    config: RenderConfig | None = None,
    *,
    format_name: str | None = None,
    cancel: threading.Event | None = None,
    on_progress: callable | None = None,
) -> list[RenderJobResult]:
    """Render multiple replay files with one clickpack.

    The clickpack is loaded once and reused for every replay.

    Args:
        paths: Replay files
        clicks: Clickpack directory or loaded ClickPack
        output_dir: Directory for the WAV files (defaults to each replay's)
        config: Render configuration
        format_name: Explicit replay format for every file
        cancel: Set to stop the batch; remaining files are reported cancelled
        on_progress: Optional callback(index, total, result) for progress

    Returns:
        List of RenderJobResults

    Raises:
        ClickpackNotFoundError: If ``clicks`` is a missing directory
    """
    config = config or RenderConfig()
    clickpack = clicks if isinstance(clicks, ClickPack) else load_clickpack(clicks)

    results = []
    total = len(paths)

    for i, path in enumerate(paths):
        path = Path(path)
        if cancel is not None and cancel.is_set():
            result = RenderJobResult(status=RenderStatus.CANCELLED, path=path)
        else:
            result = render_replay_file(
                path,
                clickpack,
                default_output_path(path, output_dir),
                config,
                format_name=format_name,
                cancel=cancel,
            )
        results.append(result)

        if on_progress:
            on_progress(i + 1, total, result)

    return results
