"""
QRKit Tables — Version, Capacity & Block Structure
===================================================

Static lookup tables and the arithmetic derived from them:
  - total / data codewords per (version, level)
  - ECC block grouping, interleaving and de-interleaving
  - character-count field widths per mode and version tier
  - alignment pattern centres
  - BCH(15,5) format information and BCH(18,6) version information,
    with nearest-codeword lookup for the decoder

Table rows are indexed by version - 1, columns by ErrorCorrectionLevel
(L, M, Q, H).
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

from qrk_types import (
    MIN_VERSION, MAX_VERSION,
    FORMAT_GENERATOR, FORMAT_XOR_MASK, VERSION_GENERATOR,
    ErrorCorrectionLevel, Mode, version_size,
)

# ═══════════════════════════════════════════════════════════════
# CAPACITY TABLES
# ═══════════════════════════════════════════════════════════════

# Total error-correction codewords in the symbol
ECC_CODEWORDS_TOTAL = (
    (7, 10, 13, 17), (10, 16, 22, 28), (15, 26, 36, 44), (20, 36, 52, 64),
    (26, 48, 72, 88), (36, 64, 96, 112), (40, 72, 108, 130), (48, 88, 132, 156),
    (60, 110, 160, 192), (72, 130, 192, 224), (80, 150, 224, 264), (96, 176, 260, 308),
    (104, 198, 288, 352), (120, 216, 320, 384), (132, 240, 360, 432), (144, 280, 408, 480),
    (168, 308, 448, 532), (180, 338, 504, 588), (196, 364, 546, 650), (224, 416, 600, 700),
    (224, 442, 644, 750), (252, 476, 690, 816), (270, 504, 750, 900), (300, 560, 810, 960),
    (312, 588, 870, 1050), (336, 644, 952, 1110), (360, 700, 1020, 1200), (390, 728, 1050, 1260),
    (420, 784, 1140, 1350), (450, 812, 1200, 1440), (480, 868, 1290, 1530), (510, 924, 1350, 1620),
    (540, 980, 1440, 1710), (570, 1036, 1530, 1800), (570, 1064, 1590, 1890), (600, 1120, 1680, 1980),
    (630, 1204, 1770, 2100), (660, 1260, 1860, 2220), (720, 1316, 1950, 2310), (750, 1372, 2040, 2430),
)

# Number of independently protected ECC blocks
NUM_ERROR_CORRECTION_BLOCKS = (
    (1, 1, 1, 1), (1, 1, 1, 1), (1, 1, 2, 2), (1, 2, 2, 4), (1, 2, 4, 4),
    (2, 4, 4, 4), (2, 4, 6, 5), (2, 4, 6, 6), (2, 5, 8, 8), (4, 5, 8, 8),
    (4, 5, 8, 11), (4, 8, 10, 11), (4, 9, 12, 16), (4, 9, 16, 16), (6, 10, 12, 18),
    (6, 10, 17, 16), (6, 11, 16, 19), (6, 13, 18, 21), (7, 14, 21, 25), (8, 16, 20, 25),
    (8, 17, 23, 25), (9, 17, 23, 34), (9, 18, 25, 30), (10, 20, 27, 32), (12, 21, 29, 35),
    (12, 23, 34, 37), (12, 25, 34, 40), (13, 26, 35, 42), (14, 28, 38, 45), (15, 29, 40, 48),
    (16, 31, 43, 51), (17, 33, 45, 54), (18, 35, 48, 57), (19, 37, 51, 60), (19, 38, 53, 63),
    (20, 40, 56, 66), (21, 43, 59, 70), (22, 45, 62, 74), (24, 47, 65, 77), (25, 49, 68, 81),
)

# Character-count field width for version tiers 1-9, 10-26, 27-40
CHAR_COUNT_BITS = {
    Mode.NUMERIC:      (10, 12, 14),
    Mode.ALPHANUMERIC: (9, 11, 13),
    Mode.BYTE:         (8, 16, 16),
    Mode.KANJI:        (8, 10, 12),
}


def _check_version(version: int) -> None:
    if not MIN_VERSION <= version <= MAX_VERSION:
        raise ValueError(f"Version out of range: {version}")


def version_tier(version: int) -> int:
    """0 for versions 1-9, 1 for 10-26, 2 for 27-40."""
    _check_version(version)
    return 0 if version <= 9 else (1 if version <= 26 else 2)


def char_count_bits(mode: Mode, version: int) -> int:
    return CHAR_COUNT_BITS[mode][version_tier(version)]


@lru_cache(maxsize=None)
def num_raw_data_modules(version: int) -> int:
    """Modules left for data + ECC (incl. remainder bits) once function patterns are drawn."""
    _check_version(version)
    result = (16 * version + 128) * version + 64
    if version >= 2:
        num_align = version // 7 + 2
        result -= (25 * num_align - 10) * num_align - 55
        if version >= 7:
            result -= 36
    return result


def num_total_codewords(version: int) -> int:
    return num_raw_data_modules(version) // 8


def num_remainder_bits(version: int) -> int:
    return num_raw_data_modules(version) % 8


def num_data_codewords(version: int, ec_level: ErrorCorrectionLevel) -> int:
    return num_total_codewords(version) - ECC_CODEWORDS_TOTAL[version - 1][ec_level]


def data_capacity_bits(version: int, ec_level: ErrorCorrectionLevel) -> int:
    return num_data_codewords(version, ec_level) * 8


# ═══════════════════════════════════════════════════════════════
# BLOCK STRUCTURE
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BlockLayout:
    """
    ECC block grouping for one (version, level).

    groups is a tuple of (block_count, data_codewords_per_block); the
    second group, when present, has blocks one codeword longer.
    """
    version: int
    ec_level: ErrorCorrectionLevel
    ecc_per_block: int
    groups: Tuple[Tuple[int, int], ...]

    @property
    def num_blocks(self) -> int:
        return sum(count for count, _ in self.groups)

    def data_lengths(self) -> List[int]:
        lengths = []
        for count, length in self.groups:
            lengths.extend([length] * count)
        return lengths


@lru_cache(maxsize=None)
def block_layout(version: int, ec_level: ErrorCorrectionLevel) -> BlockLayout:
    _check_version(version)
    ec_level = ErrorCorrectionLevel(ec_level)
    num_blocks = NUM_ERROR_CORRECTION_BLOCKS[version - 1][ec_level]
    ecc_len = ECC_CODEWORDS_TOTAL[version - 1][ec_level] // num_blocks
    raw = num_total_codewords(version)
    num_short = num_blocks - raw % num_blocks
    short_data = raw // num_blocks - ecc_len

    groups = [(num_short, short_data)]
    if num_blocks > num_short:
        groups.append((num_blocks - num_short, short_data + 1))
    return BlockLayout(version=version, ec_level=ec_level,
                       ecc_per_block=ecc_len, groups=tuple(groups))


def split_blocks(data: bytes, layout: BlockLayout) -> List[bytes]:
    """Cut the data codewords into per-block chunks following the layout."""
    blocks = []
    pos = 0
    for length in layout.data_lengths():
        blocks.append(bytes(data[pos:pos + length]))
        pos += length
    if pos != len(data):
        raise ValueError(f"Layout expects {pos} data codewords, got {len(data)}")
    return blocks


def interleave(data_blocks: Sequence[bytes], ecc_blocks: Sequence[bytes]) -> bytes:
    """Column-wise interleaving: data codewords first, then ECC codewords."""
    out = bytearray()
    longest = max(len(b) for b in data_blocks)
    for i in range(longest):
        for block in data_blocks:
            if i < len(block):
                out.append(block[i])
    for i in range(len(ecc_blocks[0])):
        for block in ecc_blocks:
            out.append(block[i])
    return bytes(out)


def deinterleave(codewords: bytes, version: int,
                 ec_level: ErrorCorrectionLevel) -> List[bytes]:
    """
    Undo interleave() for a symbol's codeword sequence.

    Returns one bytes object per block, data followed by its ECC codewords,
    ready for Reed-Solomon decoding.
    """
    layout = block_layout(version, ec_level)
    lengths = layout.data_lengths()
    total = sum(lengths) + layout.ecc_per_block * len(lengths)
    if len(codewords) < total:
        raise ValueError(f"Need {total} codewords, got {len(codewords)}")

    blocks = [bytearray() for _ in lengths]
    pos = 0
    for i in range(max(lengths)):
        for block, length in zip(blocks, lengths):
            if i < length:
                block.append(codewords[pos])
                pos += 1
    for _ in range(layout.ecc_per_block):
        for block in blocks:
            block.append(codewords[pos])
            pos += 1
    return [bytes(b) for b in blocks]


# ═══════════════════════════════════════════════════════════════
# ALIGNMENT PATTERNS
# ═══════════════════════════════════════════════════════════════

@lru_cache(maxsize=None)
def alignment_pattern_positions(version: int) -> Tuple[int, ...]:
    """Row/column centres of alignment patterns, ascending."""
    _check_version(version)
    if version == 1:
        return ()
    num_align = version // 7 + 2
    step = (version * 8 + num_align * 3 + 5) // (num_align * 4 - 4) * 2
    last = version_size(version) - 7
    positions = [last - i * step for i in range(num_align - 1)] + [6]
    return tuple(reversed(positions))


# ═══════════════════════════════════════════════════════════════
# FORMAT & VERSION INFORMATION (BCH)
# ═══════════════════════════════════════════════════════════════

def format_bits(ec_level: ErrorCorrectionLevel, mask: int) -> int:
    """15-bit masked format word for a level/mask pair."""
    if not 0 <= mask <= 7:
        raise ValueError(f"Mask out of range: {mask}")
    data = (ErrorCorrectionLevel(ec_level).format_bits << 3) | mask
    rem = data
    for _ in range(10):
        rem = (rem << 1) ^ ((rem >> 9) * FORMAT_GENERATOR)
    return ((data << 10) | rem) ^ FORMAT_XOR_MASK


def version_bits(version: int) -> int:
    """18-bit version word (only written for versions >= 7)."""
    _check_version(version)
    rem = version
    for _ in range(12):
        rem = (rem << 1) ^ ((rem >> 11) * VERSION_GENERATOR)
    return (version << 12) | rem


FORMAT_CODES: Dict[int, Tuple[ErrorCorrectionLevel, int]] = {
    format_bits(level, mask): (level, mask)
    for level in ErrorCorrectionLevel for mask in range(8)
}

VERSION_CODES: Dict[int, int] = {version_bits(v): v for v in range(7, MAX_VERSION + 1)}

# Both BCH codes have minimum distance 7 and so correct 3 bit errors
MAX_BCH_CORRECTION = 3


def _hamming(a: int, b: int) -> int:
    return bin(a ^ b).count('1')


def decode_format_bits(raw: int) -> Tuple[ErrorCorrectionLevel, int, int]:
    """Nearest valid format word: (level, mask, hamming distance)."""
    code = min(FORMAT_CODES, key=lambda c: (_hamming(c, raw), c))
    level, mask = FORMAT_CODES[code]
    return level, mask, _hamming(code, raw)


def decode_version_bits(raw: int) -> Tuple[int, int]:
    """Nearest valid version word: (version, hamming distance)."""
    code = min(VERSION_CODES, key=lambda c: (_hamming(c, raw), c))
    return VERSION_CODES[code], _hamming(code, raw)
