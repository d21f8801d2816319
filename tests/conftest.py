from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import pytest

from rewolftrans.binary import ByteWriter
from rewolftrans.cipher import crypt
from rewolftrans.constants import WOLF_DAT
from rewolftrans.structures import CodecOptions

STRING_FIELD = WOLF_DAT.STRING_START
INT_FIELD = WOLF_DAT.INT_START

CRYPT_HEADER = bytes([0x5A, 0x01, 0x02, 0x3C, 0x04, 0x05, 0x7E, 0x07, 0x08, 0x09])


@dataclass
class FieldSpec:
    name: str
    index_info: int
    type: int = 0
    string_args: Sequence[str] = ()


@dataclass
class TypeSpec:
    name: str
    fields: List[FieldSpec]
    # (datum name, int values, string values)
    data: List[Tuple[str, Sequence[int], Sequence[str]]] = field(default_factory=list)
    description: str = ""


def sample_types() -> List[TypeSpec]:
    return [
        TypeSpec(
            name="Items",
            fields=[
                FieldSpec("Name", STRING_FIELD),
                FieldSpec("Price", INT_FIELD),
                FieldSpec("Desc", STRING_FIELD + 1, string_args=("Short", "Long")),
                FieldSpec("Icon", STRING_FIELD + 2, type=1),
            ],
            data=[
                ("Potion", [50], ["Potion", "Heals a little", "potion.png"]),
                ("Ether", [80], ["Ether", "Restores MP", "ether.png"]),
            ],
            description="Item table",
        ),
        TypeSpec(
            name="Dialog",
            fields=[FieldSpec("Text", STRING_FIELD)],
            data=[("Q1", [], ["Yes"]), ("Q2", [], ["Yes"])],
        ),
    ]


def build_project(types: Sequence[TypeSpec], options: Optional[CodecOptions] = None) -> bytes:
    writer = ByteWriter(options=options)
    writer.write_u32le(len(types))
    for spec in types:
        writer.write_string(spec.name)
        writer.write_array(spec.fields, lambda w, f: w.write_string(f.name))
        writer.write_array(spec.data, lambda w, d: w.write_string(d[0]))
        writer.write_string(spec.description)
        writer.write_byte_array([f.type for f in spec.fields])
        writer.write_string_array(["" for _ in spec.fields])
        writer.write_array(spec.fields, lambda w, f: w.write_string_array(list(f.string_args)))
        writer.write_array(spec.fields, lambda w, _f: w.write_u32_array([]))
        writer.write_u32_array([0 for _ in spec.fields])
    return writer.getvalue()


def build_data(
    types: Sequence[TypeSpec],
    options: Optional[CodecOptions] = None,
    *,
    header: Optional[bytes] = None,
) -> bytes:
    """Build a data file; with ``header`` the payload is encrypted behind it."""

    writer = ByteWriter(options=options)
    if header is None:
        writer.write_bytes(WOLF_DAT.HEADER)
    else:
        writer.write_byte(0x00)
    writer.write_u32le(len(types))
    for spec in types:
        writer.write_bytes(WOLF_DAT.TYPE_SEPARATOR)
        writer.write_u32le(7)
        writer.write_u32_array([f.index_info for f in spec.fields])
        writer.write_u32le(len(spec.data))
        for _name, ints, strings in spec.data:
            for value in ints:
                writer.write_u32le(value)
            for text in strings:
                writer.write_string(text)
    writer.write_byte(WOLF_DAT.END)
    payload = writer.getvalue()
    if header is None:
        return payload
    return encrypt_payload(header, payload)


def encrypt_payload(header: bytes, payload: bytes) -> bytes:
    seeds = [header[index] for index in WOLF_DAT.SEED_INDICES]
    return header + bytes(crypt(bytearray(payload), seeds))


def write_game(
    root: pathlib.Path,
    types: Optional[Sequence[TypeSpec]] = None,
    *,
    header: Optional[bytes] = None,
) -> pathlib.Path:
    types = sample_types() if types is None else types
    basic = root / "Data" / "BasicData"
    basic.mkdir(parents=True, exist_ok=True)
    (basic / "DataBase.project").write_bytes(build_project(types))
    (basic / "DataBase.dat").write_bytes(build_data(types, header=header))
    # Never parsed.
    (basic / "SysDatabaseBasic.project").write_bytes(b"\xff\xff")
    (basic / "SysDatabaseBasic.dat").write_bytes(b"\xff\xff")
    return root


@pytest.fixture
def game_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return write_game(tmp_path / "game")


@pytest.fixture
def encrypted_game_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return write_game(tmp_path / "game", header=CRYPT_HEADER)
