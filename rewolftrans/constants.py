"""Magic numbers and identifiers shared across the ReWolf Trans modules."""

from __future__ import annotations

TOOL_VERSION = "1.1.0"
PATCH_FILE_VERSION = "1.0"

PATCH_HEADER = "REWOLF TRANS PATCH FILE VERSION"
LEGACY_PATCH_HEADER = "WOLF TRANS PATCH FILE VERSION"

PATCH_SUFFIX = ".txt"
DEFAULT_READ_ENCODING = "cp932"
DEFAULT_WRITE_ENCODING = "gbk"

# Segment appended to a path when the string is the display name of the node.
NAME_SEGMENT = "@name"


class CTX:
    """Context path categories."""

    MPS = "MPS"
    DB = "DB"
    CE = "COMMONEVENT"
    DAT = "GAMEDAT"

    ALL = (MPS, DB, CE, DAT)


class WOLF_DAT:
    SEED_INDICES = (0, 3, 6)
    HEADER = bytes(
        [0x00, 0x57, 0x00, 0x00, 0x4F, 0x4C, 0x00, 0x46, 0x4D, 0x00, 0xC1]
    )
    END = 0xC1
    TYPE_SEPARATOR = bytes([0xFE, 0xFF, 0xFF, 0xFF])
    STRING_START = 0x07D0
    INT_START = 0x03E8
    CRYPT_HEADER_SIZE = 10
    DECRYPT_INTERVALS = (1, 2, 5)

