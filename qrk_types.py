"""
QRKit Types & Constants — QR Symbol Codec
==========================================

Foundational type definitions, constants, enumerations, and error classes
for the QRKit codec. Everything here is plain data: the encoder, decoder
and image modules build on these definitions.

Reference:
  - ISO/IEC 18004 Model 2 symbols, versions 1-40
  - Error-correction levels L/M/Q/H
  - Mode indicators (numeric, alphanumeric, byte, ECI, Kanji)
"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# ═══════════════════════════════════════════════════════════════
# SYMBOL GEOMETRY
# ═══════════════════════════════════════════════════════════════

MIN_VERSION = 1
MAX_VERSION = 40

# Quiet zone required around a printed symbol (in modules)
QUIET_ZONE_MODULES = 4

# Pad codewords appended alternately after the terminator
PAD_CODEWORDS = (0xEC, 0x11)

# 45-symbol alphanumeric alphabet, index == encoded value
ALPHANUMERIC_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:"
_ALPHANUMERIC_VALUES = {ord(ch): i for i, ch in enumerate(ALPHANUMERIC_CHARSET)}

# BCH parameters for format (15,5) and version (18,6) information
FORMAT_GENERATOR = 0x537
FORMAT_XOR_MASK = 0x5412
VERSION_GENERATOR = 0x1F25


def version_size(version: int) -> int:
    """Module count along one side of a symbol of the given version."""
    return 17 + 4 * version


def version_from_size(size: int) -> int:
    """Inverse of version_size. Raises ValueError for impossible sizes."""
    if size < 21 or (size - 17) % 4 != 0:
        raise ValueError(f"{size} is not a valid QR symbol size")
    version = (size - 17) // 4
    if version > MAX_VERSION:
        raise ValueError(f"{size} exceeds the largest symbol size")
    return version


# ═══════════════════════════════════════════════════════════════
# ERROR CORRECTION LEVELS
# ═══════════════════════════════════════════════════════════════

class ErrorCorrectionLevel(IntEnum):
    """Four recovery levels. The value is the table index."""
    L = 0  # ~7% of codewords recoverable
    M = 1  # ~15%
    Q = 2  # ~25%
    H = 3  # ~30%

    @property
    def format_bits(self) -> int:
        """Two-bit value written into the format information."""
        return _FORMAT_BITS[self]

    @classmethod
    def from_format_bits(cls, bits: int) -> 'ErrorCorrectionLevel':
        for level, value in _FORMAT_BITS.items():
            if value == bits:
                return level
        raise ValueError(f"Invalid error-correction bits: {bits:#x}")

    @classmethod
    def parse(cls, value) -> 'ErrorCorrectionLevel':
        """Accept an enum member, its name ('m', 'M') or its index."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown error-correction level: {value!r}") from None
        return cls(value)


_FORMAT_BITS = {
    ErrorCorrectionLevel.L: 0b01,
    ErrorCorrectionLevel.M: 0b00,
    ErrorCorrectionLevel.Q: 0b11,
    ErrorCorrectionLevel.H: 0b10,
}


# ═══════════════════════════════════════════════════════════════
# MODES (4-bit indicators)
# ═══════════════════════════════════════════════════════════════

class Mode(IntEnum):
    """Segment mode indicators."""
    TERMINATOR        = 0x0
    NUMERIC           = 0x1
    ALPHANUMERIC      = 0x2
    STRUCTURED_APPEND = 0x3  # recognised, not supported
    BYTE              = 0x4
    ECI               = 0x7
    KANJI             = 0x8  # recognised, not supported


# Modes the planner may choose from, narrowest first
ENCODABLE_MODES = (Mode.NUMERIC, Mode.ALPHANUMERIC, Mode.BYTE)


class ModuleState(IntEnum):
    """Tri-state view of a matrix cell."""
    LIGHT    = 0
    DARK     = 1
    RESERVED = 2  # function pattern, never touched by data placement


def is_numeric_byte(b: int) -> bool:
    return 0x30 <= b <= 0x39


def is_alphanumeric_byte(b: int) -> bool:
    return b in _ALPHANUMERIC_VALUES


def alphanumeric_value(b: int) -> int:
    """Encoded value of an alphanumeric byte. KeyError if outside the alphabet."""
    return _ALPHANUMERIC_VALUES[b]


# ═══════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Segment:
    """
    A contiguous run of input bytes encoded under a single mode.

    offset is the position of the first byte within the full input,
    so a segment list covers the input as [offset, offset + len(data)).
    """
    mode: Mode
    data: bytes
    offset: int = 0

    @property
    def num_chars(self) -> int:
        return len(self.data)

    @property
    def end(self) -> int:
        return self.offset + len(self.data)


@dataclass(frozen=True)
class QRMatrix:
    """
    Immutable module matrix produced by one encode call.

    modules[r][c] is True for a dark module. reserved[r][c] is True for
    function-pattern modules (finders, separators, timing, alignment,
    format and version information, the dark module).
    """
    version: int
    ec_level: ErrorCorrectionLevel
    mask: int
    modules: Tuple[Tuple[bool, ...], ...]
    reserved: Tuple[Tuple[bool, ...], ...]
    segments: Tuple[Segment, ...] = ()

    @property
    def size(self) -> int:
        return len(self.modules)

    def is_dark(self, row: int, col: int) -> bool:
        return self.modules[row][col]

    def is_reserved(self, row: int, col: int) -> bool:
        return self.reserved[row][col]

    def state(self, row: int, col: int) -> ModuleState:
        if self.reserved[row][col]:
            return ModuleState.RESERVED
        return ModuleState.DARK if self.modules[row][col] else ModuleState.LIGHT

    def rows(self) -> List[List[bool]]:
        """Mutable copy of the module colours."""
        return [list(row) for row in self.modules]

    def to_array(self):
        """Module colours as a 2-D numpy bool array (True = dark)."""
        import numpy as np
        return np.array(self.modules, dtype=bool)

    def to_text(self, dark: str = "##", light: str = "  ", border: int = 2) -> str:
        """Terminal-friendly projection, one text line per module row."""
        blank = light * (self.size + 2 * border)
        lines = [blank] * border
        for row in self.modules:
            cells = ''.join(dark if m else light for m in row)
            lines.append(light * border + cells + light * border)
        lines.extend([blank] * border)
        return '\n'.join(lines)

    def __str__(self) -> str:
        return self.to_text()


@dataclass
class DecodeResult:
    """
    Outcome of one successful decode call.

    data holds the raw payload bytes (concatenated segments);
    errors_corrected counts codewords repaired by Reed-Solomon.
    """
    data: bytes
    ec_level: ErrorCorrectionLevel
    version: int
    mask: int
    segments: List[Segment] = field(default_factory=list)
    errors_corrected: int = 0
    eci: Optional[int] = None
    encoding: str = 'utf-8'

    @property
    def text(self) -> str:
        """Payload as text; falls back to ISO-8859-1, the QR default charset."""
        try:
            return self.data.decode(self.encoding)
        except UnicodeDecodeError:
            return self.data.decode('iso-8859-1')


# ═══════════════════════════════════════════════════════════════
# ERROR CLASSES
# ═══════════════════════════════════════════════════════════════

class QRKitError(Exception):
    """Base error for all QRKit operations."""
    pass

class EncodeError(QRKitError):
    """Input cannot be turned into a symbol."""
    pass

class CapacityExceeded(EncodeError):
    """Payload does not fit in any allowed version at the requested level."""
    pass

class UnsupportedCharacter(EncodeError):
    """Text cannot be represented in the configured byte encoding."""
    pass

class DecodeError(QRKitError):
    """Image or matrix is not a legible symbol."""
    pass

class FinderPatternNotFound(DecodeError):
    """Fewer than three usable finder patterns in the image."""
    pass

class LowQualityImage(DecodeError):
    """Contrast or finder-pattern confidence below the fixed threshold."""
    pass

class FormatInfoCorrupt(DecodeError):
    """Neither format-information copy could be recovered."""
    pass

class UncorrectableBlock(DecodeError):
    """A Reed-Solomon block holds more errors than its parity can fix."""
    pass

class MalformedSegment(DecodeError):
    """Unknown mode indicator or a length field overrunning the stream."""
    pass

class OutOfData(QRKitError):
    """Bit stream exhausted while reading."""
    pass

class GFDivisionByZero(QRKitError, ZeroDivisionError):
    """Inverse (or division) of zero in GF(256)."""
    pass

class StyleError(QRKitError, ValueError):
    """Rendering configuration rejected by validation."""
    pass
