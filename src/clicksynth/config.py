"""Render configuration for clicksynth."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import tomllib

from .errors import ClickSynthError, ExpressionError
from .expression import ExprVariable, compile_expression
from .schema import validate_document
from .types import ClickCategory, Player
from .version import get_config_schema_version, is_schema_compatible


class ConfigError(ClickSynthError):
    """Configuration error."""

    pass


def _category_list(*names: str) -> tuple[ClickCategory, ...]:
    return tuple(ClickCategory(name) for name in names)


# Categories tried, in order, when a clickpack has no samples for the
# classified one
DEFAULT_FALLBACK: dict[ClickCategory, tuple[ClickCategory, ...]] = {
    ClickCategory.HARDCLICK: _category_list(
        "hardclick", "click", "softclick", "microclick"
    ),
    ClickCategory.CLICK: _category_list(
        "click", "hardclick", "softclick", "microclick"
    ),
    ClickCategory.SOFTCLICK: _category_list(
        "softclick", "microclick", "click", "hardclick"
    ),
    ClickCategory.MICROCLICK: _category_list(
        "microclick", "softclick", "click", "hardclick"
    ),
    ClickCategory.HARDRELEASE: _category_list(
        "hardrelease", "release", "softrelease", "microrelease"
    ),
    ClickCategory.RELEASE: _category_list(
        "release", "hardrelease", "softrelease", "microrelease"
    ),
    ClickCategory.SOFTRELEASE: _category_list(
        "softrelease", "microrelease", "release", "hardrelease"
    ),
    ClickCategory.MICRORELEASE: _category_list(
        "microrelease", "softrelease", "release", "hardrelease"
    ),
}


@dataclass(frozen=True)
class Timings:
    """Minimum seconds since the previous same-kind action per timing class."""

    hard: float = 2.0
    regular: float = 0.15
    soft: float = 0.025


@dataclass(frozen=True)
class PitchSettings:
    enabled: bool = True
    from_: float = 0.98
    to: float = 1.02
    step: float = 0.0005

    def step_range(self) -> tuple[int, int]:
        """Smallest and largest integer k with k * step inside [from, to]."""
        # tolerance absorbs float error in e.g. 1.02 / 0.0005
        low = math.ceil(self.from_ / self.step - 1e-9)
        high = math.floor(self.to / self.step + 1e-9)
        return low, high


@dataclass(frozen=True)
class VolumeSettings:
    spam_enabled: bool = True
    spam_time: float = 0.3
    spam_vol_offset_factor: float = 0.9
    max_spam_vol_offset: float = 0.3
    change_releases_volume: bool = False
    global_volume: float = 1.0
    volume_var: float = 0.2


@dataclass(frozen=True)
class NoiseSettings:
    enabled: bool = False
    volume: float = 1.0


@dataclass(frozen=True)
class ExpressionSettings:
    text: str = ""
    variable: ExprVariable = ExprVariable.NONE
    negative: bool = True  # allow [-v, v] ranges for the variation variable

    @property
    def active(self) -> bool:
        return self.variable is not ExprVariable.NONE and bool(self.text.strip())


@dataclass(frozen=True)
class ReplayOptions:
    """How decoded events become an action timeline."""

    sort_actions: bool = True
    discard_deaths: bool = True
    swap_players: bool = False
    fps_override: float | None = None
    implicit_player: Player = Player.ONE


@dataclass(frozen=True)
class RenderConfig:
    timings: Timings = field(default_factory=Timings)
    pitch: PitchSettings = field(default_factory=PitchSettings)
    volume: VolumeSettings = field(default_factory=VolumeSettings)
    noise: NoiseSettings = field(default_factory=NoiseSettings)
    expression: ExpressionSettings = field(default_factory=ExpressionSettings)
    replay: ReplayOptions = field(default_factory=ReplayOptions)
    fallback: dict[ClickCategory, tuple[ClickCategory, ...]] = field(
        default_factory=lambda: dict(DEFAULT_FALLBACK)
    )
    sample_rate: int = 44100
    cut_sounds: bool = False
    normalize: bool = False
    seed: int | None = None
    workers: int = 1

    def validate(self) -> None:
        """Validate configuration, raising ConfigError if invalid."""
        t = self.timings
        if not (t.hard > t.regular > t.soft >= 0):
            raise ConfigError(
                "Click timings must satisfy hard > regular > soft >= 0, "
                f"got hard={t.hard}, regular={t.regular}, soft={t.soft}"
            )

        p = self.pitch
        if p.step <= 0:
            raise ConfigError(f"Pitch step must be positive, got {p.step}")
        if not 0 < p.from_ <= p.to:
            raise ConfigError(
                f"Pitch range must satisfy 0 < from <= to, got {p.from_}..{p.to}"
            )
        low, high = p.step_range()
        if p.enabled and high < low:
            raise ConfigError(
                f"Pitch range {p.from_}..{p.to} contains no multiple of step {p.step}"
            )

        v = self.volume
        spam_values = (v.spam_time, v.spam_vol_offset_factor, v.max_spam_vol_offset)
        if min(spam_values) < 0:
            raise ConfigError("Spam settings must be non-negative")
        if v.global_volume < 0:
            raise ConfigError(f"Global volume must be >= 0, got {v.global_volume}")
        if v.volume_var < 0:
            raise ConfigError(f"Volume variation must be >= 0, got {v.volume_var}")

        if self.noise.volume < 0:
            raise ConfigError(f"Noise volume must be >= 0, got {self.noise.volume}")

        if self.sample_rate <= 0:
            raise ConfigError(f"Sample rate must be positive, got {self.sample_rate}")
        if self.workers < 1:
            raise ConfigError(f"Workers must be >= 1, got {self.workers}")

        fps = self.replay.fps_override
        if fps is not None and not (math.isfinite(fps) and fps > 0):
            raise ConfigError(f"FPS override must be positive, got {fps}")

        # Validate fallback order
        for category, order in self.fallback.items():
            for candidate in order:
                if candidate.kind is not category.kind:
                    raise ConfigError(
                        f"Fallback for '{category.value}' lists '{candidate.value}', "
                        "which is a different action kind"
                    )

        if self.expression.active:
            try:
                compile_expression(self.expression.text)
            except ExpressionError as e:
                raise ConfigError(str(e)) from e


def _parse_fallback(data: dict[str, list[str]]) -> dict:
    fallback = dict(DEFAULT_FALLBACK)
    for name, order in data.items():
        fallback[ClickCategory(name)] = _category_list(*order)
    return fallback


def config_from_dict(data: dict[str, Any]) -> RenderConfig:
    """Build a RenderConfig from a (schema-valid) configuration mapping.

    Missing keys take their defaults. The result is validated.
    """
    schema_version = data.get("schema_version")
    if schema_version is not None and not is_schema_compatible(schema_version):
        raise ConfigError(
            f"Config schema version {schema_version} is not compatible with "
            f"{get_config_schema_version()}"
        )

    timings_data = data.get("timings", {})
    timings = Timings(
        hard=timings_data.get("hard", Timings.hard),
        regular=timings_data.get("regular", Timings.regular),
        soft=timings_data.get("soft", Timings.soft),
    )

    pitch_data = data.get("pitch", {})
    pitch = PitchSettings(
        enabled=pitch_data.get("enabled", PitchSettings.enabled),
        from_=pitch_data.get("from", PitchSettings.from_),
        to=pitch_data.get("to", PitchSettings.to),
        step=pitch_data.get("step", PitchSettings.step),
    )

    volume_data = data.get("volume", {})
    volume = VolumeSettings(
        spam_enabled=volume_data.get("spam", VolumeSettings.spam_enabled),
        spam_time=volume_data.get("spam_time", VolumeSettings.spam_time),
        spam_vol_offset_factor=volume_data.get(
            "spam_vol_offset_factor", VolumeSettings.spam_vol_offset_factor
        ),
        max_spam_vol_offset=volume_data.get(
            "max_spam_vol_offset", VolumeSettings.max_spam_vol_offset
        ),
        change_releases_volume=volume_data.get(
            "change_releases_volume", VolumeSettings.change_releases_volume
        ),
        global_volume=volume_data.get("global_volume", VolumeSettings.global_volume),
        volume_var=volume_data.get("volume_var", VolumeSettings.volume_var),
    )

    noise_data = data.get("noise", {})
    noise = NoiseSettings(
        enabled=noise_data.get("enabled", NoiseSettings.enabled),
        volume=noise_data.get("volume", NoiseSettings.volume),
    )

    expr_data = data.get("expression", {})
    expression = ExpressionSettings(
        text=expr_data.get("text", ""),
        variable=ExprVariable(expr_data.get("variable", "none")),
        negative=expr_data.get("negative", True),
    )

    replay_data = data.get("replay", {})
    replay = ReplayOptions(
        sort_actions=replay_data.get("sort_actions", True),
        discard_deaths=replay_data.get("discard_deaths", True),
        swap_players=replay_data.get("swap_players", False),
        fps_override=replay_data.get("fps_override"),
        implicit_player=Player(replay_data.get("implicit_player", 1)),
    )

    config = RenderConfig(
        timings=timings,
        pitch=pitch,
        volume=volume,
        noise=noise,
        expression=expression,
        replay=replay,
        fallback=_parse_fallback(data.get("fallback", {})),
        sample_rate=data.get("sample_rate", 44100),
        cut_sounds=data.get("cut_sounds", False),
        normalize=data.get("normalize", False),
        seed=data.get("seed"),
        workers=data.get("workers", 1),
    )
    config.validate()
    return config


def load_config(config_path: Path) -> RenderConfig:
    """Load render configuration from a TOML file.

    Raises:
        ConfigError: If the file is missing, is not valid TOML, violates
            the configuration schema, or fails semantic validation.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        validate_document(data, "render_config")
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e.message}") from e

    return config_from_dict(data)

