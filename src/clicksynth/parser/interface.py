"""Abstract decoder interface for replay formats."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .types import RawReplay


class ReplayDecoder(ABC):
    """Abstract base class for replay format decoders.

    Each decoder owns one encoding: its byte layout, endianness and
    historical sub-versions. Decoders never normalize; they only turn a
    payload into raw events (frame- or time-indexed) plus the replay FPS
    when the format stores one.

    Several bots share a file extension (``.replay``, ``.echo``, ``.gdr``).
    ``sniff`` lets the registry pick the right decoder from the payload.
    """

    #: Registry name, e.g. ``"zbot"``.
    name: str = ""
    #: Lower-case extensions including the leading dot.
    extensions: tuple[str, ...] = ()
    #: Human-readable description shown by ``clicksynth formats``.
    description: str = ""
    #: Leading bytes every payload of this format starts with, if any.
    magic: bytes = b""

    def sniff(self, data: bytes) -> bool:
        """Return True if ``data`` plausibly belongs to this format.

        The default checks ``magic`` when the format has one and otherwise
        accepts anything; decoders sharing an extension override it with a
        structure check.
        """
        return data.startswith(self.magic)

    @abstractmethod
    def decode(self, data: bytes) -> RawReplay:
        """Decode a replay payload into raw events.

        Args:
            data: The full replay file contents

        Returns:
            RawReplay with events in file order

        Raises:
            FormatError: If the payload is not valid for this format
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
