"""
QRKit Encoder — Text to QR Module Matrix
=========================================

Encodes text or bytes into an immutable QRMatrix:

  payload → segment plan → data codewords → RS parity + interleave
          → zig-zag placement → mask selection → format/version info

Rendering (matrix → raster image) is a pure projection and lives here
too, together with the StyleConfig the caller validates before rendering.
"""

import io
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageColor

from qrk_matrix import ModuleGrid
from qrk_reedsolomon import rs_encode
from qrk_segments import (
    to_payload, plan_segments, segments_bit_length, encode_segments,
)
from qrk_tables import (
    block_layout, data_capacity_bits, interleave, split_blocks, version_tier,
)
from qrk_types import (
    MIN_VERSION, MAX_VERSION, QUIET_ZONE_MODULES,
    ErrorCorrectionLevel, QRMatrix, Segment,
    CapacityExceeded, StyleError,
)

logger = logging.getLogger(__name__)

Payload = Union[str, bytes, bytearray]


# ═══════════════════════════════════════════════════════════════
# ENCODER
# ═══════════════════════════════════════════════════════════════

class QRKitEncoder:
    """
    QR symbol encoder.

    Usage:
        encoder = QRKitEncoder(ec_level='M')
        matrix = encoder.encode("https://example.com")
        image = render(matrix, fg='#1f2937', bg='#ffffff')

    Version selection is automatic: the smallest version in
    [min_version, max_version] whose capacity at the requested level holds
    the optimally segmented payload.
    """

    def __init__(self,
                 ec_level: Union[str, ErrorCorrectionLevel] = ErrorCorrectionLevel.M,
                 min_version: int = MIN_VERSION,
                 max_version: int = MAX_VERSION,
                 mask: Optional[int] = None,
                 optimize_segments: bool = True,
                 encoding: str = 'utf-8'):
        self.ec_level = ErrorCorrectionLevel.parse(ec_level)
        self.min_version = min_version
        self.max_version = max_version
        self.mask = mask
        self.optimize_segments = optimize_segments
        self.encoding = encoding
        _check_version_range(min_version, max_version)
        _check_mask(mask)

    def encode(self,
               data: Payload,
               ec_level: Optional[Union[str, ErrorCorrectionLevel]] = None,
               min_version: Optional[int] = None,
               mask: Optional[int] = None) -> QRMatrix:
        """
        Encode data into a QR matrix.

        Args:
            data: Text (encoded with self.encoding) or raw bytes.
            ec_level: Error-correction level. None = encoder default.
            min_version: Smallest version to consider. None = encoder default.
            mask: Force a mask pattern 0-7. None = lowest penalty.

        Raises:
            CapacityExceeded: payload does not fit in any allowed version.
            UnsupportedCharacter: text not representable in the encoding.
        """
        # ── 1. Serialize input to bytes ──
        payload = to_payload(data, self.encoding)

        # ── 2. Resolve per-call options ──
        level = self.ec_level if ec_level is None else ErrorCorrectionLevel.parse(ec_level)
        lowest = self.min_version if min_version is None else min_version
        _check_version_range(lowest, self.max_version)
        forced_mask = self.mask if mask is None else mask
        _check_mask(forced_mask)

        # ── 3. Choose version and segment plan ──
        version, segments = self._choose_version(payload, level, lowest)

        # ── 4. Data codewords (segments + terminator + padding) ──
        data_codewords = encode_segments(segments, version, data_capacity_bits(version, level))

        # ── 5. Reed-Solomon parity + interleaving ──
        codewords = self._add_ecc_and_interleave(data_codewords, version, level)

        # ── 6. Place codewords into the function-pattern template ──
        grid = ModuleGrid.for_version(version)
        grid.place_codewords(codewords)

        # ── 7. Select and apply mask, write format info ──
        chosen = grid.choose_mask(level) if forced_mask is None else forced_mask
        grid.apply_mask(chosen)
        grid.draw_format_bits(level, chosen)

        logger.debug("Encoded %d bytes as version %d-%s, mask %d, %d segment(s)",
                     len(payload), version, level.name, chosen, len(segments))
        return grid.freeze(level, chosen, segments)

    # ─── Version Selection ────────────────────────────────────

    def _choose_version(self, payload: bytes, level: ErrorCorrectionLevel,
                        lowest: int) -> Tuple[int, List[Segment]]:
        plans: Dict[int, List[Segment]] = {}
        needed = None
        for version in range(lowest, self.max_version + 1):
            tier = version_tier(version)
            if tier not in plans:
                plans[tier] = plan_segments(payload, version, self.optimize_segments)
            segments = plans[tier]
            bits = segments_bit_length(segments, version)
            if bits is None:
                continue
            needed = bits
            if bits <= data_capacity_bits(version, level):
                return version, segments

        capacity = data_capacity_bits(self.max_version, level)
        raise CapacityExceeded(
            f"Payload of {len(payload)} bytes needs "
            f"{needed if needed is not None else 'more'} bits; version "
            f"{self.max_version}-{level.name} holds {capacity}"
        )

    # ─── Error Correction ─────────────────────────────────────

    def _add_ecc_and_interleave(self, data: bytes, version: int,
                                level: ErrorCorrectionLevel) -> bytes:
        layout = block_layout(version, level)
        data_blocks = split_blocks(data, layout)
        ecc_blocks = [rs_encode(block, layout.ecc_per_block) for block in data_blocks]
        return interleave(data_blocks, ecc_blocks)


def _check_version_range(lowest: int, highest: int) -> None:
    if not MIN_VERSION <= lowest <= highest <= MAX_VERSION:
        raise ValueError(f"Invalid version range {lowest}..{highest}")


def _check_mask(mask: Optional[int]) -> None:
    if mask is not None and not 0 <= mask <= 7:
        raise ValueError(f"Mask out of range: {mask}")


# ═══════════════════════════════════════════════════════════════
# RENDERING
# ═══════════════════════════════════════════════════════════════

def _color(value: str) -> Tuple[int, ...]:
    try:
        return ImageColor.getrgb(value)
    except ValueError as e:
        raise StyleError(f"Invalid colour {value!r}") from e


def render(matrix: QRMatrix,
           fg: str = '#000000',
           bg: str = '#ffffff',
           module_size_px: int = 10,
           margin_modules: int = QUIET_ZONE_MODULES) -> Image.Image:
    """
    Project a matrix onto a raster image.

    Each module becomes a module_size_px square; margin_modules of
    background surround the symbol. Colours are anything PIL.ImageColor
    understands ('#1f2937', 'white', 'rgb(0,0,0)').
    """
    if module_size_px < 1:
        raise StyleError(f"Module size must be positive, got {module_size_px}")
    if margin_modules < 0:
        raise StyleError(f"Margin cannot be negative, got {margin_modules}")

    fg_rgb, bg_rgb = _color(fg), _color(bg)
    channels = 4 if len(fg_rgb) == 4 or len(bg_rgb) == 4 else 3
    fg_arr = np.array((fg_rgb + (255,))[:channels], dtype=np.uint8)
    bg_arr = np.array((bg_rgb + (255,))[:channels], dtype=np.uint8)

    grid = np.pad(matrix.to_array(), margin_modules, constant_values=False)
    pixels = np.repeat(np.repeat(grid, module_size_px, axis=0), module_size_px, axis=1)
    return Image.fromarray(np.where(pixels[..., None], fg_arr, bg_arr).astype(np.uint8))


def render_png(matrix: QRMatrix, **kwargs) -> bytes:
    """render() encoded as PNG bytes."""
    buf = io.BytesIO()
    render(matrix, **kwargs).save(buf, format='PNG')
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════
# STYLE CONFIGURATION
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StyleConfig:
    """
    Caller-side rendering options.

    size is the target image width in pixels, margin the quiet zone in
    modules. Defaults follow the generator form: dark slate on white,
    300 px, margin 2, level M.
    """
    fg: str = '#1f2937'
    bg: str = '#ffffff'
    size: int = 300
    margin: int = 2
    ec_level: Union[str, ErrorCorrectionLevel] = ErrorCorrectionLevel.M

    MIN_SIZE = 200
    MAX_SIZE = 800
    MAX_MARGIN = 8

    def validated(self) -> 'StyleConfig':
        """Clamp size/margin, check colours and level. Raises StyleError."""
        _color(self.fg)
        _color(self.bg)
        try:
            level = ErrorCorrectionLevel.parse(self.ec_level)
        except ValueError as e:
            raise StyleError(str(e)) from e
        try:
            size = min(max(int(self.size), self.MIN_SIZE), self.MAX_SIZE)
            margin = min(max(int(self.margin), 0), self.MAX_MARGIN)
        except (TypeError, ValueError) as e:
            raise StyleError(f"Size and margin must be integers: {e}") from e
        return replace(self, size=size, margin=margin, ec_level=level)

    def module_size_for(self, matrix: QRMatrix) -> int:
        return max(1, self.size // (matrix.size + 2 * self.margin))

    def render(self, matrix: QRMatrix) -> Image.Image:
        """Render at an integer module size, then scale to exactly size x size."""
        image = render(matrix, fg=self.fg, bg=self.bg,
                       module_size_px=self.module_size_for(matrix),
                       margin_modules=self.margin)
        if image.width != self.size:
            image = image.resize((self.size, self.size), Image.Resampling.NEAREST)
        return image


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def encode(data: Payload,
           ec_level: Union[str, ErrorCorrectionLevel] = ErrorCorrectionLevel.M,
           min_version: int = MIN_VERSION,
           **options) -> QRMatrix:
    """Convenience: encode in one call."""
    return QRKitEncoder(ec_level=ec_level, min_version=min_version, **options).encode(data)
