"""Bounds-checked binary reader shared by the binary replay decoders."""

from __future__ import annotations

import struct

from .errors import BadMagicError, InvalidPayloadError, TruncatedReplayError


class ByteReader:
    """Sequential reader over a byte buffer.

    Every read is bounds-checked and raises ``TruncatedReplayError`` naming
    the decoder, so format modules never see ``struct.error``.
    """

    def __init__(self, data: bytes, format_name: str, *, big_endian: bool = False):
        self.data = data
        self.format_name = format_name
        self.pos = 0
        self._endian = ">" if big_endian else "<"

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def seek(self, pos: int) -> None:
        if pos < 0 or pos > len(self.data):
            raise TruncatedReplayError(self.format_name, pos, 0, len(self.data))
        self.pos = pos

    def skip(self, count: int) -> None:
        self._require(count)
        self.pos += count

    def _require(self, count: int) -> None:
        if count < 0 or self.pos + count > len(self.data):
            raise TruncatedReplayError(
                self.format_name, self.pos, count, max(0, len(self.data) - self.pos)
            )

    def read_bytes(self, count: int) -> bytes:
        self._require(count)
        chunk = self.data[self.pos : self.pos + count]
        self.pos += count
        return chunk

    def peek_bytes(self, count: int) -> bytes:
        return self.data[self.pos : self.pos + count]

    def _unpack(self, fmt: str, endian: str | None = None):
        code = (endian or self._endian) + fmt
        size = struct.calcsize(code)
        self._require(size)
        value = struct.unpack_from(code, self.data, self.pos)[0]
        self.pos += size
        return value

    def u8(self) -> int:
        return self._unpack("B")

    def i16(self, endian: str | None = None) -> int:
        return self._unpack("h", endian)

    def i32(self, endian: str | None = None) -> int:
        return self._unpack("i", endian)

    def u32(self, endian: str | None = None) -> int:
        return self._unpack("I", endian)

    def i64(self, endian: str | None = None) -> int:
        return self._unpack("q", endian)

    def u64(self, endian: str | None = None) -> int:
        return self._unpack("Q", endian)

    def f32(self, endian: str | None = None) -> float:
        return self._unpack("f", endian)

    def f64(self, endian: str | None = None) -> float:
        return self._unpack("d", endian)

    def bool8(self) -> bool:
        return self.u8() != 0

    def uleb128(self, max_bits: int = 64) -> int:
        """Read an unsigned LEB128 varint of at most ``max_bits`` bits."""
        result = 0
        shift = 0
        while True:
            byte = self.u8()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7
            if shift >= max_bits:
                raise InvalidPayloadError(
                    self.format_name, f"varint longer than {max_bits} bits"
                )

    def varstring(self, max_length: int = 0xFFFF) -> str:
        """Read a varint length-prefixed UTF-8 string."""
        length = self.uleb128(32)
        if length > max_length:
            raise InvalidPayloadError(self.format_name, f"string too long ({length})")
        raw = self.read_bytes(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidPayloadError(self.format_name, f"invalid UTF-8: {e}") from e

    def expect_magic(self, magic: bytes) -> None:
        found = self.peek_bytes(len(magic))
        if found != magic:
            raise BadMagicError(self.format_name, magic, found)
        self.pos += len(magic)


def decode_text(data: bytes, format_name: str) -> str:
    """Decode a text replay as UTF-8 (BOM tolerated)."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidPayloadError(format_name, f"invalid UTF-8: {e}") from e
