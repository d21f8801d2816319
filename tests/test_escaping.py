from rewolftrans.escaping import (
    escape_multiline,
    escape_path,
    escape_string,
    is_translatable,
    safe_join,
    safe_split,
    split_escaped,
    unescape_multiline,
    unescape_string,
)


def test_escape_string_control_characters_and_separator():
    assert escape_string("a/b\\c\n\t\r\0") == "a\\/b\\\\c\\n\\t\\r\\0"
    assert unescape_string("a\\/b\\\\c\\n\\t\\r\\0") == "a/b\\c\n\t\r\0"


def test_unknown_escape_is_kept():
    assert unescape_string("a\\qb") == "a\\qb"
    assert unescape_string("trailing\\") == "trailing\\"


def test_space_escape_only_in_multiline_mode():
    assert unescape_string("a\\s") == "a\\s"
    assert unescape_string("a\\s", space_escape=True) == "a "


def test_split_keeps_parts_escaped():
    assert split_escaped("a\\/b/c") == ["a\\/b", "c"]
    assert safe_split("a\\/b/c") == ["a/b", "c"]
    assert safe_join(["a/b", "c"]) == "a\\/b/c"


def test_multiline_trailing_runs():
    assert escape_multiline("line1\nline2\n\n") == "line1\nline2\\n\\n"
    assert escape_multiline("ab  ") == "ab\\s\\s"
    assert escape_multiline("> not an instruction") == "\\> not an instruction"
    assert escape_multiline("# not a comment") == "\\# not a comment"


def test_multiline_round_trip():
    for text in ["line1\nline2\n\n", "ab  ", "a \n", "> x\n# y", "tab\there\\"]:
        assert unescape_multiline(escape_multiline(text)) == text


def test_escape_path_drops_reserved_characters():
    assert escape_path('a/b:c?d*e|f"g<h>i%j\\k') == "abcdefghijk"


def test_is_translatable():
    assert not is_translatable("")
    assert not is_translatable("  \n\t")
    assert is_translatable(" a ")
