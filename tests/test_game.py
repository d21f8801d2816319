import pathlib

import pytest

from rewolftrans.database import WolfDatabase
from rewolftrans.errors import OverwriteRefusedError
from rewolftrans.game import PatchRunner, WolfGame
from rewolftrans.structures import CodecOptions

PATCH_ROOT = ("BasicData", "DataBase")


def patch_files(patch_dir: pathlib.Path):
    return sorted(p.relative_to(patch_dir).as_posix() for p in patch_dir.rglob("*.txt"))


def snapshot(patch_dir: pathlib.Path):
    return {p: (patch_dir / p).read_bytes() for p in patch_files(patch_dir)}


def test_game_finds_database_only(game_dir):
    game = WolfGame(game_dir)
    assert [archive.data_path.name for archive in game.archives] == ["DataBase.dat"]
    assert all(archive.policy is game.policy for archive in game.archives)


def test_missing_data_dir(tmp_path):
    runner = PatchRunner(game_dir=tmp_path / "nowhere", patch_dir=tmp_path / "patch")
    with pytest.raises(FileNotFoundError):
        runner.generate()


def test_generate_layout(game_dir, tmp_path):
    patch_dir = tmp_path / "patch"
    summary = PatchRunner(game_dir=game_dir, patch_dir=patch_dir).generate()

    assert patch_files(patch_dir) == [
        "BasicData/DataBase/Dialog.txt",
        "BasicData/DataBase/Dialog_Context.txt",
        "BasicData/DataBase/Items.txt",
        "BasicData/DataBase/Items_Context.txt",
        "BasicData/DataBase/Items_Warn.txt",
    ]
    assert summary.archives == 1
    assert summary.files_written == 5
    assert summary.translated_contexts == 0

    dialog = patch_dir.joinpath(*PATCH_ROOT, "Dialog.txt").read_text(encoding="utf-8")
    assert dialog == (
        "> REWOLF TRANS PATCH FILE VERSION 1.0\n"
        "\n"
        "> BEGIN STRING\n"
        "Yes\n"
        "> CONTEXT [NEW] DB:DataBase/[1]Dialog/[0]Q1/[0]Text\n"
        "> CONTEXT [NEW] DB:DataBase/[1]Dialog/[1]Q2/[0]Text\n"
        "\n"
        "> END STRING\n"
    )


def test_generate_twice_is_stable(game_dir, tmp_path):
    patch_dir = tmp_path / "patch"
    PatchRunner(game_dir=game_dir, patch_dir=patch_dir).generate()
    first = snapshot(patch_dir)
    PatchRunner(game_dir=game_dir, patch_dir=patch_dir).generate()
    assert snapshot(patch_dir) == first


def test_generate_merges_source_translations(game_dir, tmp_path):
    source = tmp_path / "old"
    source.mkdir()
    (source / "anything.txt").write_text(
        "> REWOLF TRANS PATCH FILE VERSION 1.0\n\n"
        "> BEGIN STRING\nPotion\n> CONTEXT DB:DataBase/[0]Items/[0]Potion/[0]Name\n"
        "Trank\n> END STRING\n",
        encoding="utf-8",
    )
    patch_dir = tmp_path / "patch"
    summary = PatchRunner(game_dir=game_dir, patch_dir=patch_dir).generate([source])

    items = patch_dir.joinpath(*PATCH_ROOT, "Items.txt").read_text(encoding="utf-8")
    assert (
        "> CONTEXT DB:DataBase/[0]Items/[0]Potion/[0]Name\nTrank\n> END STRING" in items
    )
    assert summary.translated_contexts == 1


def test_apply_patches_every_occurrence(game_dir, tmp_path):
    patch_dir = tmp_path / "patch"
    PatchRunner(game_dir=game_dir, patch_dir=patch_dir).generate()
    dialog = patch_dir.joinpath(*PATCH_ROOT, "Dialog.txt")
    dialog.write_text(
        dialog.read_text(encoding="utf-8").replace("\n\n> END STRING", "\n是\n> END STRING"),
        encoding="utf-8",
    )

    output = tmp_path / "out"
    summary = PatchRunner(game_dir=game_dir, patch_dir=patch_dir).apply(output)
    assert summary.files_written == 2

    source = game_dir / "Data" / "BasicData"
    patched = WolfDatabase(
        output / "BasicData" / "DataBase.project",
        output / "BasicData" / "DataBase.dat",
        CodecOptions(read_encoding="gbk"),
    )
    patched.parse()
    answers = [datum.string_values[0].text for datum in patched.types[1].data]
    assert answers == ["是", "是"]
    assert patched.project_path.read_bytes() == (source / "DataBase.project").read_bytes()
    assert not (output / "BasicData" / "SysDatabaseBasic.dat").exists()


def test_apply_without_translations_copies_archives(encrypted_game_dir, tmp_path):
    patch_dir = tmp_path / "patch"
    PatchRunner(game_dir=encrypted_game_dir, patch_dir=patch_dir).generate()
    output = tmp_path / "out"
    PatchRunner(game_dir=encrypted_game_dir, patch_dir=patch_dir).apply(output)

    source = encrypted_game_dir / "Data" / "BasicData"
    for name in ("DataBase.project", "DataBase.dat"):
        assert (output / "BasicData" / name).read_bytes() == (source / name).read_bytes()


def test_apply_refuses_output_inside_data(game_dir, tmp_path):
    patch_dir = tmp_path / "patch"
    PatchRunner(game_dir=game_dir, patch_dir=patch_dir).generate()
    runner = PatchRunner(game_dir=game_dir, patch_dir=patch_dir)
    with pytest.raises(OverwriteRefusedError):
        runner.apply(game_dir / "Data")
    with pytest.raises(OverwriteRefusedError):
        runner.apply(game_dir / "Data" / "out")


def test_apply_requires_patch_dir(game_dir, tmp_path):
    runner = PatchRunner(game_dir=game_dir, patch_dir=tmp_path / "missing")
    with pytest.raises(FileNotFoundError):
        runner.apply(tmp_path / "out")
