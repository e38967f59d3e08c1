"""
QRKit Matrix — Module Grid Construction
========================================

Builds the module grid of one symbol:
  - function patterns: finders, separators, timing, alignment,
    dark module, reserved format/version areas
  - zig-zag data placement over non-function modules (shared with the
    decoder, which reads modules back in the same order)
  - the eight data masks and the N1-N4 penalty score
  - format (BCH 15,5) and version (BCH 18,6) information, two copies each

Coordinates are (row, col) with (0, 0) at the top-left module.
"""

import logging
from functools import lru_cache
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from qrk_tables import (
    alignment_pattern_positions, format_bits, version_bits, num_total_codewords,
)
from qrk_types import ErrorCorrectionLevel, QRMatrix, Segment, version_size

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════
# MASK PATTERNS
# ═══════════════════════════════════════════════════════════════

MASK_PATTERNS: Tuple[Callable[[np.ndarray, np.ndarray], np.ndarray], ...] = (
    lambda r, c: (r + c) % 2 == 0,
    lambda r, c: r % 2 == 0,
    lambda r, c: c % 3 == 0,
    lambda r, c: (r + c) % 3 == 0,
    lambda r, c: (r // 2 + c // 3) % 2 == 0,
    lambda r, c: (r * c) % 2 + (r * c) % 3 == 0,
    lambda r, c: ((r * c) % 2 + (r * c) % 3) % 2 == 0,
    lambda r, c: ((r + c) % 2 + (r * c) % 3) % 2 == 0,
)


@lru_cache(maxsize=None)
def _mask_array(size: int, mask: int) -> np.ndarray:
    rows, cols = np.indices((size, size))
    pattern = MASK_PATTERNS[mask](rows, cols)
    pattern.flags.writeable = False
    return pattern


# ═══════════════════════════════════════════════════════════════
# PENALTY RULES
# ═══════════════════════════════════════════════════════════════

PENALTY_N1 = 3
PENALTY_N2 = 3
PENALTY_N3 = 40
PENALTY_N4 = 10

_FINDER_CORE = np.array([1, 0, 1, 1, 1, 0, 1], dtype=bool)


def _penalty_runs(lines: np.ndarray) -> int:
    """N1: every run of >= 5 same-colour modules scores 3 + (length - 5)."""
    score = 0
    n = lines.shape[1]
    for line in lines:
        changes = np.flatnonzero(line[1:] != line[:-1])
        bounds = np.concatenate(([-1], changes, [n - 1]))
        runs = np.diff(bounds)
        long_runs = runs[runs >= 5]
        score += int((long_runs - 5 + PENALTY_N1).sum())
    return score


def _penalty_finder_like(lines: np.ndarray) -> int:
    """N3 occurrences: 1:1:3:1:1 with four light modules on either side."""
    n = lines.shape[1]
    core = (sliding_window_view(lines, 7, axis=1) == _FINDER_CORE).all(axis=2)
    light4 = sliding_window_view(~lines, 4, axis=1).all(axis=2)
    starts = np.arange(n - 6)

    left = np.zeros_like(core)
    ok = starts >= 4
    left[:, ok] = light4[:, starts[ok] - 4]
    right = np.zeros_like(core)
    ok = starts + 11 <= n
    right[:, ok] = light4[:, starts[ok] + 7]
    return int((core & (left | right)).sum())


def penalty_score(modules: np.ndarray) -> int:
    """Total N1-N4 penalty of a fully drawn, masked grid (True = dark)."""
    modules = np.asarray(modules, dtype=bool)
    size = modules.shape[0]

    n1 = _penalty_runs(modules) + _penalty_runs(modules.T)

    block = modules[:-1, :-1]
    same = (block == modules[1:, :-1]) & (block == modules[:-1, 1:]) & (block == modules[1:, 1:])
    n2 = PENALTY_N2 * int(same.sum())

    n3 = PENALTY_N3 * (_penalty_finder_like(modules) + _penalty_finder_like(modules.T))

    total = size * size
    dark = int(modules.sum())
    n4 = PENALTY_N4 * (abs(dark * 100 - total * 50) // (total * 5))

    return n1 + n2 + n3 + n4


# ═══════════════════════════════════════════════════════════════
# MODULE GRID
# ═══════════════════════════════════════════════════════════════

class ModuleGrid:
    """
    Mutable grid used while building one symbol.

    modules holds colours (True = dark); function marks reserved modules.
    Call freeze() to obtain the immutable QRMatrix.
    """

    def __init__(self, version: int):
        self.version = version
        self.size = version_size(version)
        self.modules = np.zeros((self.size, self.size), dtype=bool)
        self.function = np.zeros((self.size, self.size), dtype=bool)

    @classmethod
    def for_version(cls, version: int) -> 'ModuleGrid':
        """Grid with every function pattern already drawn."""
        modules, function = _function_template(version)
        grid = cls(version)
        grid.modules = modules.copy()
        grid.function = function.copy()
        return grid

    # ─── Function Patterns ────────────────────────────────────

    def _set_function(self, row: int, col: int, dark: bool) -> None:
        self.modules[row, col] = dark
        self.function[row, col] = True

    def draw_function_patterns(self) -> None:
        size = self.size

        # Timing patterns along row 6 and column 6
        for i in range(size):
            self._set_function(6, i, i % 2 == 0)
            self._set_function(i, 6, i % 2 == 0)

        # Finder patterns with their separators
        for row, col in ((3, 3), (3, size - 4), (size - 4, 3)):
            self._draw_finder(row, col)

        # Alignment patterns, skipping the three finder corners
        positions = alignment_pattern_positions(self.version)
        last = len(positions) - 1
        for i, row in enumerate(positions):
            for j, col in enumerate(positions):
                if (i, j) in ((0, 0), (0, last), (last, 0)):
                    continue
                self._draw_alignment(row, col)

        # Reserve format areas (real bits are written after masking)
        self.draw_format_bits(ErrorCorrectionLevel.M, 0)
        self.draw_version_bits()

    def _draw_finder(self, row: int, col: int) -> None:
        for dr in range(-4, 5):
            for dc in range(-4, 5):
                r, c = row + dr, col + dc
                if 0 <= r < self.size and 0 <= c < self.size:
                    dist = max(abs(dr), abs(dc))
                    self._set_function(r, c, dist not in (2, 4))

    def _draw_alignment(self, row: int, col: int) -> None:
        for dr in range(-2, 3):
            for dc in range(-2, 3):
                self._set_function(row + dr, col + dc, max(abs(dr), abs(dc)) != 1)

    def draw_format_bits(self, ec_level: ErrorCorrectionLevel, mask: int) -> None:
        """Write both format-information copies and the dark module."""
        bits = format_bits(ec_level, mask)
        for copy in format_info_positions(self.size):
            for i, (row, col) in enumerate(copy):
                self._set_function(row, col, (bits >> i) & 1 == 1)
        self._set_function(self.size - 8, 8, True)

    def draw_version_bits(self) -> None:
        if self.version < 7:
            return
        bits = version_bits(self.version)
        for copy in version_info_positions(self.size):
            for i, (row, col) in enumerate(copy):
                self._set_function(row, col, (bits >> i) & 1 == 1)

    # ─── Data Placement ───────────────────────────────────────

    def data_positions(self) -> Tuple[Tuple[int, int], ...]:
        return data_module_positions(self.version)

    def place_codewords(self, codewords: bytes) -> None:
        """Lay codeword bits along the zig-zag path; remainder bits stay light."""
        expected = num_total_codewords(self.version)
        if len(codewords) != expected:
            raise ValueError(f"Version {self.version} takes {expected} codewords, got {len(codewords)}")
        total_bits = len(codewords) * 8
        for i, (row, col) in enumerate(self.data_positions()):
            if i < total_bits:
                self.modules[row, col] = (codewords[i >> 3] >> (7 - (i & 7))) & 1 == 1
            else:
                self.modules[row, col] = False

    # ─── Masking ──────────────────────────────────────────────

    def apply_mask(self, mask: int) -> None:
        """XOR a mask into the non-function modules (self-inverse)."""
        self.modules ^= _mask_array(self.size, mask) & ~self.function

    def penalty(self) -> int:
        return penalty_score(self.modules)

    def choose_mask(self, ec_level: ErrorCorrectionLevel) -> int:
        """Lowest-penalty mask; ties go to the lowest index."""
        best_mask, best_score = 0, None
        for mask in range(8):
            self.apply_mask(mask)
            self.draw_format_bits(ec_level, mask)
            score = self.penalty()
            self.apply_mask(mask)
            if best_score is None or score < best_score:
                best_mask, best_score = mask, score
        logger.debug("Mask %d chosen with penalty %d (version %d)",
                     best_mask, best_score, self.version)
        return best_mask

    # ─── Output ───────────────────────────────────────────────

    def freeze(self, ec_level: ErrorCorrectionLevel, mask: int,
               segments: Sequence[Segment] = ()) -> QRMatrix:
        return QRMatrix(
            version=self.version,
            ec_level=ErrorCorrectionLevel(ec_level),
            mask=mask,
            modules=tuple(tuple(bool(m) for m in row) for row in self.modules),
            reserved=tuple(tuple(bool(f) for f in row) for row in self.function),
            segments=tuple(segments),
        )


Positions = Tuple[Tuple[int, int], ...]


@lru_cache(maxsize=None)
def format_info_positions(size: int) -> Tuple[Positions, Positions]:
    """
    Module of format bit i (LSB first) for both copies.

    Copy 1 wraps the top-left finder; copy 2 is split between the
    top-right (bits 0-7) and bottom-left (bits 8-14) finders.
    """
    first = ([(i, 8) for i in range(6)]
             + [(7, 8), (8, 8), (8, 7)]
             + [(8, 14 - i) for i in range(9, 15)])
    second = ([(8, size - 1 - i) for i in range(8)]
              + [(size - 15 + i, 8) for i in range(8, 15)])
    return tuple(first), tuple(second)


@lru_cache(maxsize=None)
def version_info_positions(size: int) -> Tuple[Positions, Positions]:
    """Module of version bit i: 6x3 block top-right, 3x6 block bottom-left."""
    first = tuple((i // 3, size - 11 + i % 3) for i in range(18))
    second = tuple((size - 11 + i % 3, i // 3) for i in range(18))
    return first, second


@lru_cache(maxsize=None)
def _function_template(version: int) -> Tuple[np.ndarray, np.ndarray]:
    grid = ModuleGrid(version)
    grid.draw_function_patterns()
    grid.modules.flags.writeable = False
    grid.function.flags.writeable = False
    return grid.modules, grid.function


@lru_cache(maxsize=None)
def data_module_positions(version: int) -> Tuple[Tuple[int, int], ...]:
    """
    Non-function modules in placement order.

    Column pairs are walked right to left, skipping the vertical timing
    column; direction alternates upward/downward with each pair.
    """
    _, function = _function_template(version)
    size = version_size(version)
    order = []
    right = size - 1
    while right >= 1:
        if right == 6:
            right = 5
        upward = ((right + 1) & 2) == 0
        for vert in range(size):
            row = size - 1 - vert if upward else vert
            for col in (right, right - 1):
                if not function[row, col]:
                    order.append((row, col))
        right -= 2
    return tuple(order)


def read_codewords(modules: np.ndarray, version: int, mask: Optional[int] = None) -> bytes:
    """
    Inverse of placement: unmask (when mask is given) and read the
    symbol's codewords back in zig-zag order.
    """
    modules = np.asarray(modules, dtype=bool)
    size = version_size(version)
    if modules.shape != (size, size):
        raise ValueError(f"Grid {modules.shape} does not match version {version}")
    if mask is not None:
        _, function = _function_template(version)
        modules = modules ^ (_mask_array(size, mask) & ~function)

    total = num_total_codewords(version)
    out = bytearray(total)
    for i, (row, col) in enumerate(data_module_positions(version)[:total * 8]):
        if modules[row, col]:
            out[i >> 3] |= 0x80 >> (i & 7)
    return bytes(out)
