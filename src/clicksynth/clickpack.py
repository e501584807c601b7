"""Clickpack loading: decoded click samples keyed by player side and category.

Layout::

    clickpack/
      [player1/ | player2/ | left1/ | right1/ | left2/ | right2/]
        hardclicks/ hardreleases/ clicks/ releases/
        softclicks/ softreleases/ microclicks/ microreleases/
      noise.wav | whitenoise.wav

Without player folders the category folders at the root are shared by both
players. A scope with no category folders at all treats its loose audio
files as ``clicks``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import ClickpackNotFoundError, SampleDecodeError
from .types import ClickCategory, Player, PlayerSide

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = frozenset(
    {".wav", ".flac", ".ogg", ".oga", ".mp3", ".aiff", ".aif", ".aifc"}
)
NOISE_PREFIXES = ("noise", "whitenoise")

PoolKey = tuple[PlayerSide, ClickCategory]


@dataclass(frozen=True, eq=False)
class Sample:
    """Decoded PCM: float32 ``(frames, channels)`` at its own sample rate.

    Identity-hashed so resampled variants can be cached per sample.
    """

    name: str
    data: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return self.data.shape[0]

    @property
    def channels(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate


@dataclass
class ClickPack:
    """Decoded clickpack; reusable across renders."""

    path: Path | None = None
    pools: dict[PoolKey, tuple[Sample, ...]] = field(default_factory=dict)
    # None is the root noise; player keys are player-scoped copies
    noise: dict[Player | None, Sample] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def lookup(self, side: PlayerSide, category: ClickCategory) -> tuple[Sample, ...]:
        """Samples for a side and category (empty when the pool is missing)."""
        return self.pools.get((side, category), ())

    def noise_sample(self, player: Player | None = None) -> Sample | None:
        """Noise sample, preferring the root copy over a player-scoped one."""
        if None in self.noise:
            return self.noise[None]
        if player is not None and player in self.noise:
            return self.noise[player]
        return next(iter(self.noise.values()), None)

    def has_clicks(self) -> bool:
        return any(self.pools.values())

    def has_noise(self) -> bool:
        return bool(self.noise)

    def num_sounds(self) -> int:
        """Number of distinct click samples (shared pools count once)."""
        unique = {id(s) for samples in self.pools.values() for s in samples}
        return len(unique)

    def longest_sample_seconds(self) -> float:
        """Duration of the longest click sample, not counting noise."""
        return max(
            (s.duration for samples in self.pools.values() for s in samples),
            default=0.0,
        )

    @staticmethod
    def dir_has_noise(path: Path) -> bool:
        """True if a clickpack directory (or a player folder) holds noise."""
        path = Path(path)
        scopes = [path] + [path / side.value for side in PlayerSide]
        return any(
            _is_noise(f) for scope in scopes if scope.is_dir() for f in scope.iterdir()
        )


def _is_audio(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in AUDIO_EXTENSIONS


def _is_noise(path: Path) -> bool:
    return _is_audio(path) and path.name.lower().startswith(NOISE_PREFIXES)


def _audio_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if _is_audio(p) and not _is_noise(p))


def decode_sample(path: Path) -> Sample:
    """Decode one audio file with soundfile.

    Raises:
        SampleDecodeError: If the file cannot be decoded or has no frames.
    """
    try:
        data, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, OSError, ValueError) as e:
        raise SampleDecodeError(str(path), str(e)) from e
    if data.shape[0] == 0:
        raise SampleDecodeError(str(path), "file has no audio frames")
    return Sample(name=path.name, data=data, sample_rate=int(sample_rate))


def _scope_files(scope: Path) -> dict[ClickCategory, list[Path]]:
    """Category -> files for one scope (root or a player folder)."""
    files = {
        category: _audio_files(scope / category.directory)
        for category in ClickCategory
    }
    if not any(files.values()):
        loose = _audio_files(scope)
        if loose:
            logger.debug(f"No category folders in {scope}, using loose files as clicks")
            files[ClickCategory.CLICK] = loose
    return files


def load_clickpack(path: Path, *, max_workers: int | None = None) -> ClickPack:
    """Load and decode a clickpack directory.

    Files that fail to decode are skipped with a warning (recorded in
    ``ClickPack.warnings``); loading continues.

    Args:
        path: Clickpack root directory
        max_workers: Decoder threads (``None`` lets the executor decide)

    Raises:
        ClickpackNotFoundError: If ``path`` is not a directory
    """
    root = Path(path)
    if not root.is_dir():
        raise ClickpackNotFoundError(str(root))

    side_dirs = {
        side: root / side.value
        for side in PlayerSide
        if (root / side.value).is_dir()
    }
    layout: dict[PoolKey, list[Path]] = {}
    for side, directory in side_dirs.items():
        for category, files in _scope_files(directory).items():
            layout[(side, category)] = files
    if PlayerSide.PLAYER1 not in side_dirs and PlayerSide.PLAYER2 not in side_dirs:
        logger.info(f"{root} has no player folders, sharing samples between players")
        shared = _scope_files(root)
        for side in (PlayerSide.PLAYER1, PlayerSide.PLAYER2):
            for category, files in shared.items():
                layout[(side, category)] = files

    noise_files: dict[Player | None, Path] = {}
    for side in (PlayerSide.PLAYER1, PlayerSide.PLAYER2):
        directory = side_dirs.get(side)
        if directory is not None:
            found = sorted(f for f in directory.iterdir() if _is_noise(f))
            if found:
                noise_files[side.player] = found[0]
    found = sorted(f for f in root.iterdir() if _is_noise(f))
    if found:
        noise_files[None] = found[0]

    unique_paths = sorted(
        {p for files in layout.values() for p in files} | set(noise_files.values())
    )
    pack = ClickPack(path=root)
    decoded: dict[Path, Sample] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {p: executor.submit(decode_sample, p) for p in unique_paths}
        for file_path, future in futures.items():
            try:
                decoded[file_path] = future.result()
            except SampleDecodeError as e:
                logger.warning(str(e))
                pack.warnings.append(str(e))

    for key, files in layout.items():
        samples = tuple(decoded[p] for p in files if p in decoded)
        if samples:
            pack.pools[key] = samples
    for owner, file_path in noise_files.items():
        if file_path in decoded:
            pack.noise[owner] = decoded[file_path]

    logger.info(
        f"Loaded clickpack {root.name}: {pack.num_sounds()} sounds, "
        f"noise={'yes' if pack.has_noise() else 'no'}, "
        f"{len(pack.warnings)} skipped"
    )
    return pack
