"""clicksynth: Render clicking audio from Geometry Dash bot replays."""

from .clickpack import ClickPack, load_clickpack
from .config import RenderConfig, load_config
from .normalize import ActionTimeline, build_timeline
from .parser import decode_replay
from .render import RenderResult, render_timeline
from .version import get_package_version

__version__ = get_package_version()
__author__ = "clicksynth contributors"
__description__ = "Render clicking audio from Geometry Dash bot replays"

__all__ = [
    "ActionTimeline",
    "ClickPack",
    "RenderConfig",
    "RenderResult",
    "build_timeline",
    "decode_replay",
    "load_clickpack",
    "load_config",
    "render_timeline",
]
