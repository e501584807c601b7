"""Replay decoders for the supported bot formats.

This module provides a pluggable registry of format decoders. Each decoder
turns one replay encoding into a ``RawReplay``; the normalizer then builds
the canonical action timeline from it.

Example usage:
    from clicksynth.parser import decode_replay

    raw = decode_replay(Path("macro.gdr").read_bytes(), filename="macro.gdr")
    print(raw.format, raw.fps, len(raw.events))
"""

from __future__ import annotations

import logging

from .errors import (
    BadMagicError,
    FormatError,
    FormatNotFoundError,
    InvalidPayloadError,
    TruncatedReplayError,
    UnknownFormatError,
    UnsupportedVersionError,
)
from .formats import BUILTIN_DECODERS, dump_plaintext
from .interface import ReplayDecoder
from .types import PhysicsState, RawEvent, RawReplay

logger = logging.getLogger(__name__)

# Registry of available decoders, in sniffing order
_DECODER_REGISTRY: dict[str, type[ReplayDecoder]] = {
    decoder.name: decoder for decoder in BUILTIN_DECODERS
}


def get_decoder(name: str) -> ReplayDecoder:
    """Get a replay decoder by format name.

    Raises:
        FormatNotFoundError: If no decoder is registered under ``name``
    """
    if name not in _DECODER_REGISTRY:
        available = list(_DECODER_REGISTRY.keys())
        raise FormatNotFoundError(name, available)

    return _DECODER_REGISTRY[name]()


def list_formats() -> list[str]:
    """List all registered format names."""
    return list(_DECODER_REGISTRY.keys())


def register_format(name: str, decoder_class: type[ReplayDecoder]) -> None:
    """Register a new replay decoder.

    Args:
        name: Name to register the decoder under
        decoder_class: Class that implements ReplayDecoder interface

    Raises:
        TypeError: If decoder_class doesn't implement ReplayDecoder
        ValueError: If name is already registered

    Example:
        register_format("mybot", MyBotDecoder)
        decoder = get_decoder("mybot")
    """
    if name in _DECODER_REGISTRY:
        raise ValueError(f"Format '{name}' is already registered")

    if not isinstance(decoder_class, type) or not issubclass(
        decoder_class, ReplayDecoder
    ):
        raise TypeError(
            f"Decoder class must inherit from ReplayDecoder, got {decoder_class}"
        )

    _DECODER_REGISTRY[name] = decoder_class


def unregister_format(name: str) -> None:
    """Remove a decoder added with ``register_format`` (no-op if absent)."""
    _DECODER_REGISTRY.pop(name, None)


def _extension_candidates(filename: str) -> list[ReplayDecoder]:
    lowered = filename.lower()
    best_length = 0
    candidates: list[ReplayDecoder] = []
    for decoder_class in _DECODER_REGISTRY.values():
        matched = [ext for ext in decoder_class.extensions if lowered.endswith(ext)]
        if not matched:
            continue
        length = max(len(ext) for ext in matched)
        if length > best_length:
            best_length = length
            candidates = [decoder_class()]
        elif length == best_length:
            candidates.append(decoder_class())
    return candidates


def guess_format(filename: str | None, data: bytes) -> ReplayDecoder:
    """Pick a decoder for a replay from its file name and contents.

    Extension matching uses the longest suffix, so ``.mhr.json`` wins over
    ``.json``. When several decoders share that extension, the first whose
    ``sniff`` accepts the payload is used. Payloads whose extension matches
    nothing (or whose candidates all reject them) are matched by magic
    number; failing that, the first extension candidate is returned so its
    decode error explains what is wrong.

    Raises:
        UnknownFormatError: If neither the extension nor a magic number
            identifies the format.
    """
    candidates = _extension_candidates(filename) if filename else []
    for decoder in candidates:
        if decoder.sniff(data):
            return decoder

    for decoder_class in _DECODER_REGISTRY.values():
        decoder = decoder_class()
        if decoder.magic and decoder.sniff(data):
            logger.debug(f"Detected {decoder.name} from magic bytes")
            return decoder

    if candidates:
        return candidates[0]

    raise UnknownFormatError(
        filename, "no decoder matches the file extension or magic bytes"
    )


def decode_replay(
    data: bytes,
    filename: str | None = None,
    format_name: str | None = None,
) -> RawReplay:
    """Decode a replay payload into raw events.

    Args:
        data: Replay file contents
        filename: Original file name, used for format detection
        format_name: Explicit format; skips detection when given

    Returns:
        RawReplay in file order

    Raises:
        FormatError: If the format is unknown or the payload is invalid
    """
    if format_name:
        decoder = get_decoder(format_name)
    else:
        decoder = guess_format(filename, data)

    logger.info(f"Decoding {filename or 'replay'} as {decoder.name}")
    try:
        raw = decoder.decode(data)
    except FormatError:
        raise
    except (ValueError, KeyError, TypeError, IndexError, OverflowError) as e:
        raise InvalidPayloadError(decoder.name, f"{type(e).__name__}: {e}") from e

    for warning in raw.quality_warnings:
        logger.warning(f"{decoder.name}: {warning}")
    logger.info(f"Decoded {len(raw.events)} inputs (fps={raw.fps})")
    return raw


# Export public API
__all__ = [
    # Core types
    "PhysicsState",
    "RawEvent",
    "RawReplay",
    # Interface
    "ReplayDecoder",
    # Functions
    "decode_replay",
    "dump_plaintext",
    "get_decoder",
    "guess_format",
    "list_formats",
    "register_format",
    "unregister_format",
    # Exceptions
    "FormatError",
    "BadMagicError",
    "FormatNotFoundError",
    "InvalidPayloadError",
    "TruncatedReplayError",
    "UnknownFormatError",
    "UnsupportedVersionError",
]
