"""Cursor based reader and append-only writer for archive buffers.

Both classes share one set of conventions: integers are unsigned, strings
are stored as ``<u32 byte length + 1><encoded bytes><NUL>`` and arrays as
``<count><items>`` where the count is a little-endian u32 unless a custom
count reader/writer is given. Anything the cursor reads can be written back
in the same shape by the writer.
"""

from __future__ import annotations

import struct
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar

from .errors import CodecError, ErrorCategory, LocatedError
from .policy import ErrorPolicy
from .structures import CodecOptions, TranslationString

T = TypeVar("T")

U16LE = struct.Struct("<H")
U16BE = struct.Struct(">H")
U32LE = struct.Struct("<I")
U32BE = struct.Struct(">I")

CountReader = Callable[["ByteCursor"], int]
CountWriter = Callable[["ByteWriter", int], None]


def fixed_count(count: int) -> CountReader:
    """Count reader for arrays whose length is known from elsewhere."""

    return lambda _cursor: count


def no_count(_writer: "ByteWriter", _count: int) -> None:
    """Count writer for arrays whose length is not stored."""


class ByteCursor:
    """Sequential and random-access reader over an in-memory buffer."""

    def __init__(
        self,
        data: bytes,
        *,
        source: str = "<memory>",
        options: Optional[CodecOptions] = None,
        policy: Optional[ErrorPolicy] = None,
    ) -> None:
        self.data = bytes(data)
        self.source = source
        self.options = options or CodecOptions()
        self.policy = policy or ErrorPolicy()
        self._offset = 0
        self._saved: List[int] = []

    def __len__(self) -> int:
        return len(self.data)

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def is_eof(self) -> bool:
        return self._offset == len(self.data)

    @property
    def remaining(self) -> int:
        return len(self.data) - self._offset

    # --- Error helpers ----------------------------------------------------

    def error(self, message: str, offset: Optional[int] = None) -> LocatedError:
        return LocatedError(
            self.source, self._offset if offset is None else offset, message
        )

    def check(self, condition: bool, message: str = "Assertion failed") -> None:
        if not condition:
            raise self.error(message)

    def check_length(self, count: int) -> None:
        if count < 0:
            raise self.error(f"Negative read length {count}")
        self.check(self._offset + count <= len(self.data), "Unexpected end of file")

    # --- Positioning ------------------------------------------------------

    def seek(self, offset: int) -> None:
        if not 0 <= offset <= len(self.data):
            raise self.error(f"Seek to 0x{offset:x} outside buffer of {len(self.data)} bytes")
        self._offset = offset

    def skip(self, count: int = 1) -> None:
        self.check_length(count)
        self._offset += count

    def push_ptr(self, offset: Optional[int] = None) -> None:
        """Save the current offset, then optionally jump to ``offset``."""

        self._saved.append(self._offset)
        if offset is not None:
            self.seek(offset)

    def pop_ptr(self) -> int:
        """Restore the most recently saved offset and return it."""

        if not self._saved:
            raise self.error("Pointer stack is empty")
        self._offset = self._saved.pop()
        return self._offset

    @contextmanager
    def at(self, offset: int) -> Iterator["ByteCursor"]:
        """Read at an absolute offset and restore the position afterwards."""

        self.push_ptr(offset)
        try:
            yield self
        finally:
            self.pop_ptr()

    # --- Assertions -------------------------------------------------------

    def expect_byte(self, expected: int) -> None:
        self.check_length(1)
        actual = self.data[self._offset]
        self.check(actual == expected, f"Expected 0x{expected:02x} but got 0x{actual:02x}")
        self._offset += 1

    def expect(self, expected: bytes) -> None:
        self.check_length(len(expected))
        actual = self.data[self._offset:self._offset + len(expected)]
        self.check(
            actual == expected,
            f"Expected [{expected.hex(' ')}] but got [{actual.hex(' ')}]",
        )
        self._offset += len(expected)

    # --- Scalars ----------------------------------------------------------

    def _unpack(self, fmt: struct.Struct) -> int:
        self.check_length(fmt.size)
        (value,) = fmt.unpack_from(self.data, self._offset)
        self._offset += fmt.size
        return value

    def read_byte(self) -> int:
        self.check_length(1)
        value = self.data[self._offset]
        self._offset += 1
        return value

    def read_u16le(self) -> int:
        return self._unpack(U16LE)

    def read_u16be(self) -> int:
        return self._unpack(U16BE)

    def read_u32le(self) -> int:
        return self._unpack(U32LE)

    def read_u32be(self) -> int:
        return self._unpack(U32BE)

    def read_bytes(self, count: int) -> bytes:
        self.check_length(count)
        value = self.data[self._offset:self._offset + count]
        self._offset += count
        return value

    # --- Strings ----------------------------------------------------------

    def read_raw_string(self, count_reader: Optional[CountReader] = None) -> bytes:
        """Read a length-prefixed NUL-terminated string without decoding it."""

        start = self._offset
        length = count_reader(self) if count_reader else self.read_u32le()
        if length <= 0:
            raise self.error(f"Unexpected string length {length}", start)
        raw = self.read_bytes(length - 1)
        self.expect_byte(0)
        return raw

    def decode(self, raw: bytes, offset: Optional[int] = None) -> str:
        """Decode with the read codepage; undecodable bytes become U+FFFD and are reported."""

        offset = self._offset if offset is None else offset
        encoding = self.options.read_encoding
        try:
            return raw.decode(encoding)
        except LookupError as exc:
            raise CodecError(self.source, offset, str(exc)) from exc
        except UnicodeDecodeError as exc:
            self.policy.handle_error(
                ErrorCategory.DECODE,
                f"{self.source}:{offset:x} > Cannot decode string as {encoding}",
                f"{raw!r}: {exc.reason}",
            )
            return raw.decode(encoding, errors="replace")

    def read_string(self, count_reader: Optional[CountReader] = None) -> str:
        start = self._offset
        return self.decode(self.read_raw_string(count_reader), start)

    def read_tstring(self, count_reader: Optional[CountReader] = None) -> TranslationString:
        start = self._offset
        raw = self.read_raw_string(count_reader)
        return TranslationString(self.decode(raw, start), raw=raw)

    # --- Arrays -----------------------------------------------------------

    def read_array(
        self,
        item_reader: Callable[["ByteCursor"], T],
        count_reader: Optional[CountReader] = None,
    ) -> List[T]:
        count = count_reader(self) if count_reader else self.read_u32le()
        # Every stored item takes at least one byte.
        if count > len(self.data):
            raise self.error(f"Array count {count} exceeds buffer size")
        return [item_reader(self) for _ in range(count)]

    def read_byte_array(self, count_reader: Optional[CountReader] = None) -> List[int]:
        return self.read_array(ByteCursor.read_byte, count_reader)

    def read_u32_array(self, count_reader: Optional[CountReader] = None) -> List[int]:
        return self.read_array(ByteCursor.read_u32le, count_reader)

    def read_string_array(self, count_reader: Optional[CountReader] = None) -> List[str]:
        return self.read_array(lambda cursor: cursor.read_string(), count_reader)

    def read_tstring_array(
        self, count_reader: Optional[CountReader] = None
    ) -> List[TranslationString]:
        return self.read_array(lambda cursor: cursor.read_tstring(), count_reader)


class ByteWriter:
    """Append-only buffer builder mirroring :class:`ByteCursor`."""

    def __init__(
        self,
        *,
        target: str = "<memory>",
        options: Optional[CodecOptions] = None,
    ) -> None:
        self.buffer = bytearray()
        self.target = target
        self.options = options or CodecOptions()

    def __len__(self) -> int:
        return len(self.buffer)

    def getvalue(self) -> bytes:
        return bytes(self.buffer)

    def _pack(self, fmt: struct.Struct, value: int) -> None:
        try:
            self.buffer += fmt.pack(value)
        except struct.error as exc:
            raise LocatedError(self.target, len(self.buffer), f"Cannot pack {value}: {exc}") from exc

    def write_byte(self, value: int) -> None:
        self.buffer.append(value & 0xFF)

    def write_u16le(self, value: int) -> None:
        self._pack(U16LE, value)

    def write_u16be(self, value: int) -> None:
        self._pack(U16BE, value)

    def write_u32le(self, value: int) -> None:
        self._pack(U32LE, value)

    def write_u32be(self, value: int) -> None:
        self._pack(U32BE, value)

    def write_bytes(self, data: bytes) -> None:
        self.buffer += data

    def encode(self, text: str, encoding: str) -> bytes:
        try:
            return text.encode(encoding)
        except (LookupError, UnicodeEncodeError) as exc:
            raise CodecError(
                self.target, len(self.buffer), f"Cannot encode {text!r} as {encoding}: {exc}"
            ) from exc

    def write_raw_string(self, raw: bytes, count_writer: Optional[CountWriter] = None) -> None:
        if count_writer:
            count_writer(self, len(raw) + 1)
        else:
            self.write_u32le(len(raw) + 1)
        self.write_bytes(raw)
        self.write_byte(0)

    def write_string(
        self,
        text: str,
        count_writer: Optional[CountWriter] = None,
        *,
        encoding: Optional[str] = None,
    ) -> None:
        raw = self.encode(text, encoding or self.options.read_encoding)
        self.write_raw_string(raw, count_writer)

    def write_tstring(
        self, value: TranslationString, count_writer: Optional[CountWriter] = None
    ) -> None:
        """Translated text uses the write codepage, untranslated keeps its bytes."""

        if value.is_translated:
            self.write_string(value.text, count_writer, encoding=self.options.write_encoding)
        elif value.raw is not None:
            self.write_raw_string(value.raw, count_writer)
        else:
            self.write_string(value.text, count_writer)

    def write_array(
        self,
        items: Sequence[T],
        item_writer: Callable[["ByteWriter", T], None],
        count_writer: Optional[CountWriter] = None,
    ) -> None:
        if count_writer:
            count_writer(self, len(items))
        else:
            self.write_u32le(len(items))
        for item in items:
            item_writer(self, item)

    def write_byte_array(
        self, values: Sequence[int], count_writer: Optional[CountWriter] = None
    ) -> None:
        self.write_array(values, ByteWriter.write_byte, count_writer)

    def write_u32_array(
        self, values: Sequence[int], count_writer: Optional[CountWriter] = None
    ) -> None:
        self.write_array(values, ByteWriter.write_u32le, count_writer)

    def write_string_array(
        self, values: Sequence[str], count_writer: Optional[CountWriter] = None
    ) -> None:
        self.write_array(values, lambda writer, text: writer.write_string(text), count_writer)

    def write_tstring_array(
        self,
        values: Sequence[TranslationString],
        count_writer: Optional[CountWriter] = None,
    ) -> None:
        self.write_array(values, lambda writer, value: writer.write_tstring(value), count_writer)
