"""File ingestion and inspection for bot replay files."""

from __future__ import annotations

import hashlib
from pathlib import Path

from .config import ReplayOptions
from .errors import FileTooLargeError, ReplayFileNotFoundError, ReplayIOError
from .normalize import build_timeline
from .parser import decode_replay

# Largest replay we are willing to load into memory
MAX_REPLAY_SIZE = 256 * 1024 * 1024  # 256MB


def read_replay_bytes(path: Path) -> bytes:
    """Safely read replay file with validation.

    Args:
        path: Path to the replay file

    Returns:
        Raw bytes of the replay file

    Raises:
        ReplayFileNotFoundError: If file doesn't exist
        ReplayIOError: If the path is not a file or reading fails
        FileTooLargeError: If file exceeds maximum size
    """
    path = Path(path)
    path_str = str(path)

    if not path.exists():
        raise ReplayFileNotFoundError(path_str)

    if not path.is_file():
        raise ReplayIOError(path_str, IsADirectoryError("Path is not a regular file"))

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ReplayIOError(path_str, e) from e

    if file_size > MAX_REPLAY_SIZE:
        raise FileTooLargeError(file_size, MAX_REPLAY_SIZE, path_str)

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ReplayIOError(path_str, e) from e

    return data


def file_sha256(path: Path) -> str:
    """Compute SHA256 hash of a file.

    Raises:
        ReplayFileNotFoundError: If file doesn't exist
        ReplayIOError: If there's an I/O error reading the file
    """
    path = Path(path)
    path_str = str(path)

    if not path.exists():
        raise ReplayFileNotFoundError(path_str)

    try:
        hash_sha256 = hashlib.sha256()
        with open(path, "rb") as f:
            # Read file in chunks to handle large files efficiently
            for chunk in iter(lambda: f.read(4096), b""):
                hash_sha256.update(chunk)
        return hash_sha256.hexdigest()
    except OSError as e:
        raise ReplayIOError(path_str, e) from e


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format."""
    if size_bytes < 1024:
        return f"{size_bytes} bytes"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def ingest_replay(
    path: Path,
    format_name: str | None = None,
    options: ReplayOptions | None = None,
) -> dict:
    """Read, decode and normalize a replay, returning a summary.

    Args:
        path: Path to the replay file
        format_name: Explicit decoder name; detected when omitted
        options: Normalization options

    Returns:
        Dictionary with file metadata, the detected format, fps, duration,
        action counts and any decoder warnings

    Raises:
        Ingestion, format and timeline errors from the steps above
    """
    path = Path(path)
    data = read_replay_bytes(path)
    raw = decode_replay(data, filename=path.name, format_name=format_name)
    timeline = build_timeline(raw, options)

    warnings = list(raw.quality_warnings)
    if len(timeline) == 0:
        warnings.append("Replay contains no inputs")

    return {
        "file_path": str(path),
        "sha256": file_sha256(path),
        "size_bytes": len(data),
        "size_human": format_file_size(len(data)),
        "format": raw.format,
        "fps": timeline.fps,
        "fps_from_replay": raw.fps is not None,
        "duration_seconds": round(timeline.duration, 3),
        "last_frame": timeline.last_frame,
        "raw_events": len(raw.events),
        "actions": len(timeline),
        "counts": timeline.counts(),
        "deaths": len(raw.deaths),
        "warnings": warnings,
        "status": "success" if not warnings else "degraded",
    }
