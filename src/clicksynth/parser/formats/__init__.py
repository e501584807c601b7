"""Replay format decoders, one module per bot family."""

from .amethyst import AmethystDecoder
from .echo import EchoBinaryDecoder, EchoJsonDecoder
from .gdr import Gdr2Decoder, GdrDecoder
from .legacy import DdhorDecoder, KdBotDecoder, ReplayBotDecoder, RushDecoder
from .mhr import MegaHackBinaryDecoder, MegaHackJsonDecoder
from .omegabot import OmegaBotDecoder
from .osu import OsuDecoder
from .plaintext import PlaintextDecoder, dump_plaintext
from .tasbot import TasbotDecoder
from .text_bots import XbotDecoder, XdBotDecoder
from .ybot import Ybot2Decoder, YbotFrameDecoder
from .zbot import ZbotDecoder

# Decoders sharing an extension are tried in this order; the ones with a
# magic number come before the ones relying on a structural sniff.
BUILTIN_DECODERS = (
    MegaHackJsonDecoder,
    MegaHackBinaryDecoder,
    TasbotDecoder,
    ZbotDecoder,
    ReplayBotDecoder,
    OmegaBotDecoder,
    YbotFrameDecoder,
    Ybot2Decoder,
    EchoBinaryDecoder,
    EchoJsonDecoder,
    AmethystDecoder,
    OsuDecoder,
    Gdr2Decoder,
    GdrDecoder,
    PlaintextDecoder,
    RushDecoder,
    KdBotDecoder,
    XbotDecoder,
    DdhorDecoder,
    XdBotDecoder,
)

__all__ = [
    "BUILTIN_DECODERS",
    "AmethystDecoder",
    "DdhorDecoder",
    "EchoBinaryDecoder",
    "EchoJsonDecoder",
    "Gdr2Decoder",
    "GdrDecoder",
    "KdBotDecoder",
    "MegaHackBinaryDecoder",
    "MegaHackJsonDecoder",
    "OmegaBotDecoder",
    "OsuDecoder",
    "PlaintextDecoder",
    "ReplayBotDecoder",
    "RushDecoder",
    "TasbotDecoder",
    "XbotDecoder",
    "XdBotDecoder",
    "Ybot2Decoder",
    "YbotFrameDecoder",
    "ZbotDecoder",
    "dump_plaintext",
]
