"""
QRKit Decoder — Image or Module Grid to Payload
================================================

Decodes QR symbols back to bytes/text.

Image path:
  raster → grayscale → binarize → locate finders → perspective sample
         → module grid

Grid path (shared):
  format info (BCH, two copies) → unmask → zig-zag read
  → de-interleave → Reed-Solomon per block → segment parse

Orientation: a sampled grid is tried as-is first, then in the other
three rotations and transposed (mirrored capture). When every attempt
fails the first error is raised.
"""

import logging
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import numpy as np

from qrk_image import (
    Detection, binarize, load_grayscale, locate_symbol, sample_grid,
)
from qrk_matrix import format_info_positions, read_codewords, version_info_positions
from qrk_reedsolomon import rs_decode
from qrk_segments import parse_segments
from qrk_tables import (
    FORMAT_CODES, VERSION_CODES, MAX_BCH_CORRECTION,
    block_layout, deinterleave, decode_format_bits, decode_version_bits,
)
from qrk_types import (
    ErrorCorrectionLevel, QRMatrix, DecodeResult,
    DecodeError, FormatInfoCorrupt, LowQualityImage, UncorrectableBlock,
    version_from_size, version_size,
)

logger = logging.getLogger(__name__)

# ECI assignment number → Python codec
ECI_ENCODINGS = {
    1: 'iso-8859-1', 3: 'iso-8859-1', 4: 'iso-8859-2', 5: 'iso-8859-3',
    6: 'iso-8859-4', 7: 'iso-8859-5', 8: 'iso-8859-6', 9: 'iso-8859-7',
    10: 'iso-8859-8', 11: 'iso-8859-9', 13: 'iso-8859-11', 15: 'iso-8859-13',
    16: 'iso-8859-14', 17: 'iso-8859-15', 18: 'iso-8859-16', 20: 'shift_jis',
    21: 'cp1250', 22: 'cp1251', 23: 'cp1252', 24: 'cp1256', 25: 'utf-16-be',
    26: 'utf-8', 27: 'ascii', 28: 'big5', 29: 'gb18030', 30: 'euc-kr',
}


def _read_word(modules: np.ndarray, positions) -> int:
    word = 0
    for i, (row, col) in enumerate(positions):
        if modules[row, col]:
            word |= 1 << i
    return word


# ═══════════════════════════════════════════════════════════════
# DECODER
# ═══════════════════════════════════════════════════════════════

class QRKitDecoder:
    """
    QR symbol decoder.

    Usage:
        decoder = QRKitDecoder()
        result = decoder.decode("photo.png")
        print(result.text)           # payload text
        print(result.version, result.ec_level.name, result.errors_corrected)

    encoding is used for the payload text unless the symbol declares an
    ECI charset. try_orientations enables the rotated/mirrored retries.
    """

    def __init__(self, encoding: str = 'utf-8', try_orientations: bool = True):
        self.encoding = encoding
        self.try_orientations = try_orientations

    # ─── Main Entry Points ────────────────────────────────────

    def decode(self, image) -> DecodeResult:
        """
        Decode the symbol in an image.

        Args:
            image: PIL image, numpy array, path, or encoded image bytes.

        Raises:
            FinderPatternNotFound, LowQualityImage, FormatInfoCorrupt,
            UncorrectableBlock, MalformedSegment
        """
        binary = binarize(load_grayscale(image))
        detection = locate_symbol(binary)
        return self._decode_detection(binary, detection)

    def decode_file(self, filepath: Union[str, Path]) -> DecodeResult:
        return self.decode(Path(filepath))

    def decode_bytes(self, data: bytes) -> DecodeResult:
        """Decode encoded image bytes (PNG, JPEG, ...)."""
        return self.decode(bytes(data))

    def decode_matrix(self, grid) -> DecodeResult:
        """
        Decode an already sampled module grid.

        Args:
            grid: QRMatrix, or a square 2-D array/sequence (truthy = dark)
                  whose side is 17 + 4 * version.
        """
        modules = grid.to_array() if isinstance(grid, QRMatrix) else np.asarray(grid, dtype=bool)
        if modules.ndim != 2 or modules.shape[0] != modules.shape[1]:
            raise LowQualityImage(f"Module grid must be square, got shape {modules.shape}")
        try:
            version_from_size(modules.shape[0])
        except ValueError as e:
            raise LowQualityImage(str(e)) from e

        first_error: Optional[DecodeError] = None
        for name, candidate in self._orientations(modules):
            try:
                result = self._decode_grid(candidate)
            except DecodeError as e:
                logger.info("Orientation %s failed: %s", name, e)
                if first_error is None:
                    first_error = e
                continue
            if name != 'identity':
                logger.debug("Decoded in orientation %s", name)
            return result
        raise first_error

    # ─── Format & Version Information ─────────────────────────

    def read_format_info(self, modules: np.ndarray) -> Tuple[ErrorCorrectionLevel, int]:
        """
        (level, mask) from the two format-information copies.

        An exact codeword wins (first copy preferred); otherwise the
        nearest valid codeword within MAX_BCH_CORRECTION bits.
        """
        raws = [_read_word(modules, copy) for copy in format_info_positions(modules.shape[0])]
        for raw in raws:
            if raw in FORMAT_CODES:
                return FORMAT_CODES[raw]

        level, mask, distance = min((decode_format_bits(raw) for raw in raws),
                                    key=lambda found: found[2])
        if distance > MAX_BCH_CORRECTION:
            raise FormatInfoCorrupt(
                f"Format bits {raws[0]:015b}/{raws[1]:015b} are {distance} bits "
                f"from any valid codeword"
            )
        logger.debug("Format info corrected at distance %d: level %s, mask %d",
                     distance, level.name, mask)
        return level, mask

    def read_version_info(self, modules: np.ndarray) -> Optional[int]:
        """Version encoded in the version-information blocks, None if unreadable."""
        raws = [_read_word(modules, copy) for copy in version_info_positions(modules.shape[0])]
        for raw in raws:
            if raw in VERSION_CODES:
                return VERSION_CODES[raw]
        version, distance = min((decode_version_bits(raw) for raw in raws),
                                key=lambda found: found[1])
        return version if distance <= MAX_BCH_CORRECTION else None

    # ─── Internals ────────────────────────────────────────────

    def _reconcile_version(self, binary: np.ndarray, detection: Detection) -> Detection:
        """
        The detection to sample: rebuilt at the size the version-information
        blocks declare when they disagree with the estimated dimension.
        """
        if detection.version < 7:
            return detection
        for transform in detection.transforms():
            encoded = self.read_version_info(sample_grid(binary, transform, detection.dimension))
            if encoded is None:
                continue
            if encoded != detection.version:
                logger.info("Version info says %d, estimate was %d; resampling",
                            encoded, detection.version)
                return detection.with_dimension(binary, version_size(encoded))
            break
        return detection

    def _decode_detection(self, binary: np.ndarray, detection: Detection) -> DecodeResult:
        detection = self._reconcile_version(binary, detection)
        first_error: Optional[DecodeError] = None
        for transform in detection.transforms():
            grid = sample_grid(binary, transform, detection.dimension)
            try:
                return self.decode_matrix(grid)
            except DecodeError as e:
                logger.info("Sampling attempt failed: %s", e)
                if first_error is None:
                    first_error = e
        raise first_error

    def _orientations(self, modules: np.ndarray) -> Iterator[Tuple[str, np.ndarray]]:
        yield 'identity', modules
        if not self.try_orientations:
            return
        yield 'rot90', np.rot90(modules, 1)
        yield 'rot180', np.rot90(modules, 2)
        yield 'rot270', np.rot90(modules, 3)
        yield 'transpose', modules.T

    def _decode_grid(self, modules: np.ndarray) -> DecodeResult:
        version = version_from_size(modules.shape[0])

        # ── 1. Format info ──
        ec_level, mask = self.read_format_info(modules)

        # ── 2. Unmask and read codewords in placement order ──
        codewords = read_codewords(modules, version, mask)

        # ── 3. De-interleave and correct each block ──
        layout = block_layout(version, ec_level)
        blocks = deinterleave(codewords, version, ec_level)
        data = bytearray()
        corrected = 0
        for index, block in enumerate(blocks):
            try:
                block_data, count = rs_decode(block, layout.ecc_per_block)
            except UncorrectableBlock as e:
                raise UncorrectableBlock(
                    f"Block {index + 1}/{len(blocks)} of version {version}-{ec_level.name}: {e}"
                ) from e
            data.extend(block_data)
            corrected += count

        # ── 4. Segments ──
        segments, eci = parse_segments(bytes(data), version)
        payload = b''.join(seg.data for seg in segments)
        encoding = ECI_ENCODINGS.get(eci, self.encoding) if eci is not None else self.encoding

        logger.debug("Decoded version %d-%s, mask %d: %d bytes in %d segment(s), "
                     "%d codeword(s) corrected",
                     version, ec_level.name, mask, len(payload), len(segments), corrected)
        return DecodeResult(
            data=payload,
            ec_level=ec_level,
            version=version,
            mask=mask,
            segments=segments,
            errors_corrected=corrected,
            eci=eci,
            encoding=encoding,
        )


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def decode(image, encoding: str = 'utf-8') -> DecodeResult:
    """Convenience: decode an image in one call."""
    return QRKitDecoder(encoding=encoding).decode(image)


def decode_file(filepath: Union[str, Path], encoding: str = 'utf-8') -> DecodeResult:
    """Convenience: decode an image file in one call."""
    return QRKitDecoder(encoding=encoding).decode_file(filepath)
