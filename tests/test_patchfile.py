import pytest

from rewolftrans.errors import ErrorCategory, PatchFormatError, PatchVersionError
from rewolftrans.patchfile import (
    PatchFormat,
    compare_version,
    parse_patch_text,
    render_block,
    render_patch,
)
from rewolftrans.policy import ErrorPolicy

MODERN = """\
> REWOLF TRANS PATCH FILE VERSION 1.0

# translator notes are ignored
> BEGIN STRING
Line one
Line two\\s
> CONTEXT [NEW] DB:DataBase/[0]Items/[1]Ether/[0]Name
> CONTEXT DB:DataBase/[1]Dialog/[0]Q1/[0]Text
Ligne un
Ligne deux
> END STRING

> BEGIN STRING
Yes
> CONTEXT DB:DataBase/[1]Dialog/[1]Q2/[0]Text

> END STRING
"""


def parse(text, policy=None):
    return parse_patch_text(text, "patch.txt", policy)


def test_parse_modern_file():
    document = parse(MODERN)
    assert document.format is PatchFormat.MODERN
    assert document.version == "1.0"
    first, second = document.blocks
    assert first.original == "Line one\nLine two "
    assert first.translated == "Ligne un\nLigne deux"
    assert [(c.text, c.is_new) for c in first.contexts] == [
        ("DB:DataBase/[0]Items/[1]Ether/[0]Name", True),
        ("DB:DataBase/[1]Dialog/[0]Q1/[0]Text", False),
    ]
    assert first.line == 4
    assert second.translated == ""


def test_render_then_parse_keeps_blocks():
    block = render_block("Yes", [("DB:a/0", True), ("DB:a/1", False)], "Oui")
    text = render_patch([block])
    assert text.startswith("> REWOLF TRANS PATCH FILE VERSION 1.0\n\n> BEGIN STRING\n")
    assert text.endswith("> END STRING\n")
    (parsed,) = parse(text).blocks
    assert parsed.original == "Yes"
    assert parsed.translated == "Oui"
    assert [c.is_new for c in parsed.contexts] == [True, False]


def test_legacy_header_and_suffixes():
    text = (
        "> WOLF TRANS PATCH FILE VERSION 2.0\n"
        "\n"
        "> BEGIN STRING\n"
        "Hello\n"
        "> CONTEXT COMMONEVENT:12/5/Message < UNTRANSLATED\n"
        "Bonjour\n"
        "> END STRING\n"
    )
    document = parse(text)
    assert document.format is PatchFormat.LEGACY
    assert document.blocks[0].contexts[0].text == "COMMONEVENT:12/5/Message"


def test_non_patch_file_is_skipped():
    policy = ErrorPolicy()
    assert parse("just some notes\n", policy) is None
    assert parse("> SOMETHING ELSE\n", policy) is None
    assert policy.count(ErrorCategory.NOT_A_PATCH) == 2


def test_unknown_instruction_is_counted():
    policy = ErrorPolicy()
    text = "> REWOLF TRANS PATCH FILE VERSION 1.0\n> FROBNICATE\n"
    assert parse(text, policy) is not None
    assert policy.count(ErrorCategory.UNKNOWN_INSTRUCTION) == 1


def test_end_string_while_reading_original():
    text = "> REWOLF TRANS PATCH FILE VERSION 1.0\n\n> BEGIN STRING\nYes\n> END STRING\n"
    with pytest.raises(PatchFormatError) as excinfo:
        parse(text)
    assert excinfo.value.line == 5
    assert str(excinfo.value) == "patch.txt:5 > Unexpected END STRING in state original"


def test_context_after_translation():
    text = (
        "> REWOLF TRANS PATCH FILE VERSION 1.0\n"
        "> BEGIN STRING\n"
        "Yes\n"
        "> CONTEXT DB:a/0\n"
        "Oui\n"
        "> CONTEXT DB:a/1\n"
    )
    with pytest.raises(PatchFormatError) as excinfo:
        parse(text)
    assert excinfo.value.line == 6


def test_nested_begin_and_second_header():
    with pytest.raises(PatchFormatError):
        parse("> REWOLF TRANS PATCH FILE VERSION 1.0\n> BEGIN STRING\n> BEGIN STRING\n")
    with pytest.raises(PatchFormatError):
        parse(
            "> REWOLF TRANS PATCH FILE VERSION 1.0\n"
            "> REWOLF TRANS PATCH FILE VERSION 1.0\n"
        )


def test_unterminated_block():
    with pytest.raises(PatchFormatError):
        parse("> REWOLF TRANS PATCH FILE VERSION 1.0\n> BEGIN STRING\nYes\n")


def test_newer_version_is_rejected():
    with pytest.raises(PatchVersionError):
        parse("> REWOLF TRANS PATCH FILE VERSION 99.0\n")


def test_compare_version():
    assert compare_version("1.1.0", "1.0") == 1
    assert compare_version("1.0", "1.0.0") == 0
    assert compare_version("1.0", "1.10") == -1


def test_legacy_header_is_counted():
    policy = ErrorPolicy()
    parse("> WOLF TRANS PATCH FILE VERSION 2.0\n", policy)
    assert policy.count(ErrorCategory.LEGACY_PATCH) == 1
    assert policy.records[0].message.startswith("patch.txt:1 > Parsing legacy patch file")
