"""Multi-stream XOR cipher protecting some archive payloads.

An archive is encrypted when its first byte is nonzero. A fixed-size header
precedes the ciphertext and supplies one seed byte per keystream; each
keystream walks the payload at its own stride and XORs three bits of a
linear congruential generator into every byte it visits.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .constants import WOLF_DAT
from .errors import LocatedError


def crypt(
    data: bytearray,
    seeds: Sequence[int],
    intervals: Sequence[int] = WOLF_DAT.DECRYPT_INTERVALS,
) -> bytearray:
    """XOR ``data`` in place with one keystream per seed. Self-inverse."""

    for seed, interval in zip(seeds, intervals):
        for index in range(0, len(data), interval):
            seed = (seed * 0x343FD + 0x269EC3) & 0xFFFFFFFF
            data[index] ^= (seed >> 28) & 0x7
    return data


class StreamCipher:
    """Detects, strips and restores the cipher header of one archive."""

    def __init__(
        self,
        seed_indices: Sequence[int] = WOLF_DAT.SEED_INDICES,
        *,
        header_size: int = WOLF_DAT.CRYPT_HEADER_SIZE,
        intervals: Sequence[int] = WOLF_DAT.DECRYPT_INTERVALS,
    ) -> None:
        if len(seed_indices) > len(intervals):
            raise ValueError("Each seed needs its own stride.")
        self.seed_indices = tuple(seed_indices)
        self.header_size = header_size
        self.intervals = tuple(intervals)
        self.header: Optional[bytes] = None
        self.seeds: tuple[int, ...] = ()

    @property
    def is_encrypted(self) -> bool:
        return self.header is not None

    def decrypt(self, data: bytes, source: str = "<memory>") -> bytes:
        """Return the plaintext payload, remembering the header if present."""

        if not data or data[0] == 0:
            self.header = None
            self.seeds = ()
            return bytes(data)
        if len(data) < self.header_size:
            raise LocatedError(
                source, 0, f"Encrypted data shorter than its {self.header_size}-byte header"
            )
        self.header = bytes(data[:self.header_size])
        self.seeds = tuple(self.header[i] for i in self.seed_indices)
        payload = bytearray(data[self.header_size:])
        return bytes(crypt(payload, self.seeds, self.intervals))

    def encrypt(self, payload: bytes) -> bytes:
        """Re-apply the keystreams and prepend the original header verbatim."""

        if self.header is None:
            return bytes(payload)
        body = crypt(bytearray(payload), self.seeds, self.intervals)
        return self.header + bytes(body)
