"""Database archives: a ``.project`` schema file paired with a ``.dat`` value file.

The project file holds type, field and datum names plus per-field metadata
whose meaning is mostly unknown and is carried through untouched. The data
file, optionally encrypted, holds for every type the layout of its fields
and then the integer and string values of each datum.
"""

from __future__ import annotations

import logging
import pathlib
from typing import List, Optional, Tuple

from .archives import ArchiveKind, BaseArchive
from .binary import ByteCursor, ByteWriter, fixed_count, no_count
from .builder import ContextBuilder
from .cipher import StreamCipher
from .constants import CTX, NAME_SEGMENT, WOLF_DAT
from .dictionary import TranslationDict
from .entry import EntryDangerLevel
from .errors import ErrorCategory
from .escaping import escape_path
from .policy import ErrorPolicy
from .structures import CodecOptions, PathResolver, TranslationString

log = logging.getLogger(__name__)


class WolfField:
    def __init__(self, name: TranslationString) -> None:
        self.name = name
        # Set from the data file; fields past the stored field count keep None.
        self.index_info: Optional[int] = None

    @property
    def has_layout(self) -> bool:
        return self.index_info is not None

    @property
    def is_string(self) -> bool:
        return self.index_info is not None and self.index_info >= WOLF_DAT.STRING_START

    @property
    def is_int(self) -> bool:
        return self.index_info is not None and not self.is_string

    @property
    def index(self) -> int:
        if self.index_info is None:
            raise ValueError(f"Field {self.name.text!r} has no data layout")
        if self.is_string:
            return self.index_info - WOLF_DAT.STRING_START
        return self.index_info - WOLF_DAT.INT_START


class WolfData:
    def __init__(self, name: TranslationString) -> None:
        self.name = name
        self.int_values: List[int] = []
        self.string_values: List[TranslationString] = []
        self.has_values = False

    def read_data(self, cursor: ByteCursor, fields: List[WolfField]) -> None:
        int_count = sum(1 for field in fields if field.is_int)
        string_count = sum(1 for field in fields if field.is_string)
        self.int_values = cursor.read_u32_array(fixed_count(int_count))
        self.string_values = cursor.read_tstring_array(fixed_count(string_count))
        self.has_values = True

    def write_data(self, writer: ByteWriter) -> None:
        writer.write_u32_array(self.int_values, no_count)
        writer.write_tstring_array(self.string_values, no_count)


class WolfType:
    """One database type: its fields, its data records and opaque field metadata."""

    def __init__(self, name: TranslationString) -> None:
        self.name = name
        self.fields: List[WolfField] = []
        self.data: List[WolfData] = []
        self.description = TranslationString("")
        self.field_types: List[int] = []
        self.field_unknown: List[TranslationString] = []
        self.string_args: List[List[TranslationString]] = []
        self.args: List[List[int]] = []
        self.default_values: List[int] = []
        self.data_unknown = 0
        self.data_field_count = 0
        self.data_count = 0

    # --- Project file -----------------------------------------------------

    @classmethod
    def read_project(cls, cursor: ByteCursor) -> "WolfType":
        wolf_type = cls(cursor.read_tstring())
        wolf_type.fields = cursor.read_array(lambda c: WolfField(c.read_tstring()))
        wolf_type.data = cursor.read_array(lambda c: WolfData(c.read_tstring()))
        wolf_type.description = cursor.read_tstring()
        wolf_type.field_types = cursor.read_byte_array()
        wolf_type.field_unknown = cursor.read_tstring_array()
        wolf_type.string_args = cursor.read_array(lambda c: c.read_tstring_array())
        wolf_type.args = cursor.read_array(lambda c: c.read_u32_array())
        wolf_type.default_values = cursor.read_u32_array()
        return wolf_type

    def write_project(self, writer: ByteWriter) -> None:
        writer.write_tstring(self.name)
        writer.write_array(self.fields, lambda w, field: w.write_tstring(field.name))
        writer.write_array(self.data, lambda w, datum: w.write_tstring(datum.name))
        writer.write_tstring(self.description)
        writer.write_byte_array(self.field_types)
        writer.write_tstring_array(self.field_unknown)
        writer.write_array(self.string_args, lambda w, values: w.write_tstring_array(values))
        writer.write_array(self.args, lambda w, values: w.write_u32_array(values))
        writer.write_u32_array(self.default_values)

    # --- Data file --------------------------------------------------------

    def read_data(self, cursor: ByteCursor) -> None:
        cursor.expect(WOLF_DAT.TYPE_SEPARATOR)
        self.data_unknown = cursor.read_u32le()
        self.data_field_count = cursor.read_u32le()
        if self.data_field_count > len(self.fields):
            raise cursor.error(
                f"Type {self.name.text!r} stores {self.data_field_count} fields "
                f"but its project declares {len(self.fields)}"
            )
        for field in self.data_fields:
            field.index_info = cursor.read_u32le()
        self.data_count = cursor.read_u32le()
        if self.data_count > len(self.data):
            raise cursor.error(
                f"Type {self.name.text!r} stores {self.data_count} records "
                f"but its project declares {len(self.data)}"
            )
        for datum in self.stored_data:
            datum.read_data(cursor, self.data_fields)

    def write_data(self, writer: ByteWriter) -> None:
        writer.write_bytes(WOLF_DAT.TYPE_SEPARATOR)
        writer.write_u32le(self.data_unknown)
        writer.write_array(self.data_fields, lambda w, field: w.write_u32le(field.index_info))
        writer.write_array(self.stored_data, lambda w, datum: datum.write_data(w))

    @property
    def data_fields(self) -> List[WolfField]:
        return self.fields[:self.data_field_count]

    @property
    def stored_data(self) -> List[WolfData]:
        return self.data[:self.data_count]

    def field_type(self, position: int) -> int:
        return self.field_types[position] if position < len(self.field_types) else 0

    def translatable_fields(self) -> List[Tuple[int, WolfField]]:
        """Return ``(position, field)`` for free-text string fields."""

        return [
            (position, field)
            for position, field in enumerate(self.data_fields)
            if field.is_string and self.field_type(position) == 0
        ]

    # --- Extraction -------------------------------------------------------

    def append_context(self, builder: ContextBuilder, dictionary: TranslationDict) -> None:
        def add(text: TranslationString, level: EntryDangerLevel) -> None:
            dictionary.add(text.text, level, builder.patch_file, builder.build(text))

        builder.enter(NAME_SEGMENT)
        add(self.name, EntryDangerLevel.CONTEXT)
        builder.leave(NAME_SEGMENT)

        fields = self.translatable_fields()
        builder.enter("fields")
        for position, field in fields:
            builder.enter(position, field.name.text)
            builder.enter(NAME_SEGMENT)
            add(field.name, EntryDangerLevel.CONTEXT)
            builder.leave(NAME_SEGMENT)
            args = self.string_args[position] if position < len(self.string_args) else []
            for arg_index, arg in enumerate(args):
                builder.enter(arg_index)
                add(arg, EntryDangerLevel.WARN)
                builder.leave(arg_index)
            builder.leave(position)
        builder.leave("fields")

        for datum_index, datum in enumerate(self.stored_data):
            builder.enter(datum_index, datum.name.text)
            builder.enter(NAME_SEGMENT)
            add(datum.name, EntryDangerLevel.CONTEXT)
            builder.leave(NAME_SEGMENT)
            for _position, field in fields:
                if field.index >= len(datum.string_values):
                    dictionary.policy.handle_error(
                        ErrorCategory.BAD_RECORD,
                        f"Type {self.name.text!r} field {field.name.text!r} points past "
                        f"the {len(datum.string_values)} strings of record {datum_index}",
                    )
                    continue
                builder.enter(field.index, field.name.text)
                add(datum.string_values[field.index], EntryDangerLevel.NORMAL)
                builder.leave(field.index)
            builder.leave(datum_index)


class WolfDatabase(BaseArchive):
    kind = ArchiveKind.DATABASE

    def __init__(
        self,
        project_path: pathlib.Path,
        data_path: pathlib.Path,
        options: Optional[CodecOptions] = None,
        policy: Optional[ErrorPolicy] = None,
    ) -> None:
        super().__init__(project_path, options, policy)
        self.project_path = project_path
        self.data_path = data_path
        self.cipher = StreamCipher(WOLF_DAT.SEED_INDICES)
        self.types: List[WolfType] = []
        self.encrypted_marker = 0
        self.project_trailer = b""
        self.data_trailer = bytes([WOLF_DAT.END])

    @property
    def source_paths(self) -> List[pathlib.Path]:
        return [self.project_path, self.data_path]

    @property
    def is_encrypted(self) -> bool:
        return self.cipher.is_encrypted

    def parse(self) -> None:
        self.parse_bytes(self.project_path.read_bytes(), self.data_path.read_bytes())

    def parse_bytes(self, project: bytes, data: bytes) -> None:
        cursor = ByteCursor(
            project, source=str(self.project_path), options=self.options, policy=self.policy
        )
        self.types = cursor.read_array(WolfType.read_project)
        self.project_trailer = cursor.read_bytes(cursor.remaining)
        if self.project_trailer:
            log.debug("%s: %d trailing bytes kept", self.project_path, len(self.project_trailer))

        payload = self.cipher.decrypt(data, str(self.data_path))
        cursor = ByteCursor(
            payload, source=str(self.data_path), options=self.options, policy=self.policy
        )
        if self.is_encrypted:
            self.encrypted_marker = cursor.read_byte()
        else:
            cursor.expect(WOLF_DAT.HEADER)
        type_count = cursor.read_u32le()
        cursor.check(
            type_count == len(self.types),
            f"Type count mismatch: dat:{type_count} != proj:{len(self.types)}",
        )
        for wolf_type in self.types:
            wolf_type.read_data(cursor)
        self.data_trailer = cursor.read_bytes(cursor.remaining)
        if self.data_trailer[:1] != bytes([WOLF_DAT.END]):
            log.info("%s: no 0x%02x found at end of data", self.data_path, WOLF_DAT.END)

    def serialize(self) -> List[bytes]:
        project = ByteWriter(target=str(self.project_path), options=self.options)
        project.write_array(self.types, lambda w, wolf_type: wolf_type.write_project(w))
        project.write_bytes(self.project_trailer)

        data = ByteWriter(target=str(self.data_path), options=self.options)
        if self.is_encrypted:
            data.write_byte(self.encrypted_marker)
        else:
            data.write_bytes(WOLF_DAT.HEADER)
        data.write_array(self.types, lambda w, wolf_type: wolf_type.write_data(w))
        data.write_bytes(self.data_trailer)
        return [project.getvalue(), self.cipher.encrypt(data.getvalue())]

    def generate_patch(self, resolver: PathResolver, dictionary: TranslationDict) -> None:
        stem = self.data_path.stem
        relative = resolver.relative_from(self.data_path.with_suffix(""))
        builder = ContextBuilder(CTX.DB, relative)
        builder.enter(stem)
        for type_index, wolf_type in enumerate(self.types):
            patch_name = escape_path(wolf_type.name.text) or str(type_index)
            builder.enter(type_index, wolf_type.name.text)
            builder.enter_patch(patch_name)
            wolf_type.append_context(builder, dictionary)
            builder.leave_patch(patch_name)
            builder.leave(type_index)
        builder.leave(stem)
