"""
QRKit — QR Code Encoder / Decoder
==================================

Self-contained QR Model 2 codec (versions 1-40, levels L/M/Q/H):
text → module matrix → image, and image → module grid → text, with
Reed-Solomon error correction on the way back.
"""

from qrk_types import (
    ErrorCorrectionLevel, Mode, ModuleState, Segment, QRMatrix, DecodeResult,
    QRKitError, EncodeError, CapacityExceeded, UnsupportedCharacter,
    DecodeError, FinderPatternNotFound, LowQualityImage, FormatInfoCorrupt,
    UncorrectableBlock, MalformedSegment, OutOfData, GFDivisionByZero, StyleError,
)
from qrk_encoder import QRKitEncoder, StyleConfig, encode, render, render_png
from qrk_decoder import QRKitDecoder, decode, decode_file
from qrk_history import HistoryEntry, HistoryStore

__version__ = "1.0.0"
__all__ = [
    'QRKitEncoder', 'QRKitDecoder', 'StyleConfig', 'HistoryStore', 'HistoryEntry',
    'encode', 'render', 'render_png', 'decode', 'decode_file',
    'ErrorCorrectionLevel', 'Mode', 'ModuleState', 'Segment', 'QRMatrix', 'DecodeResult',
    'QRKitError', 'EncodeError', 'CapacityExceeded', 'UnsupportedCharacter',
    'DecodeError', 'FinderPatternNotFound', 'LowQualityImage', 'FormatInfoCorrupt',
    'UncorrectableBlock', 'MalformedSegment', 'OutOfData', 'GFDivisionByZero', 'StyleError',
]
