"""
QRKit Segments — Mode Planning, Encoding & Parsing
===================================================

Encode side:
  - classify input bytes into the narrowest mode (numeric, alphanumeric, byte)
  - minimum-cost segmentation by dynamic programming
  - bit-stream assembly: mode indicator, length field, payload,
    terminator, byte alignment and 0xEC/0x11 padding

Decode side:
  - parse mode-indicator / length / payload runs until the terminator
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

from qrk_bits import BitStream
from qrk_tables import char_count_bits
from qrk_types import (
    PAD_CODEWORDS, ALPHANUMERIC_CHARSET, ENCODABLE_MODES,
    Mode, Segment,
    CapacityExceeded, UnsupportedCharacter, MalformedSegment, OutOfData,
    is_numeric_byte, is_alphanumeric_byte, alphanumeric_value,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# INPUT NORMALISATION
# ═══════════════════════════════════════════════════════════════

def to_payload(data: Union[str, bytes, bytearray], encoding: str = 'utf-8') -> bytes:
    """Turn caller input into the byte sequence the symbol will carry."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if not isinstance(data, str):
        raise TypeError(f"Expected str or bytes, got {type(data).__name__}")
    try:
        return data.encode(encoding)
    except UnicodeEncodeError as e:
        raise UnsupportedCharacter(
            f"Character {data[e.start]!r} at position {e.start} "
            f"cannot be encoded as {encoding}"
        ) from e


def narrowest_mode(data: bytes) -> Mode:
    """Single mode able to represent every byte of data."""
    if all(is_numeric_byte(b) for b in data):
        return Mode.NUMERIC
    if all(is_alphanumeric_byte(b) for b in data):
        return Mode.ALPHANUMERIC
    return Mode.BYTE


def payload_bit_length(mode: Mode, num_chars: int) -> int:
    if mode == Mode.NUMERIC:
        return 10 * (num_chars // 3) + (0, 4, 7)[num_chars % 3]
    if mode == Mode.ALPHANUMERIC:
        return 11 * (num_chars // 2) + 6 * (num_chars % 2)
    if mode == Mode.BYTE:
        return 8 * num_chars
    raise ValueError(f"No payload length rule for mode {mode.name}")


def segments_bit_length(segments: Sequence[Segment], version: int) -> Optional[int]:
    """Total encoded length, or None if a length field overflows at this version."""
    total = 0
    for seg in segments:
        cc_bits = char_count_bits(seg.mode, version)
        if seg.num_chars >= 1 << cc_bits:
            return None
        total += 4 + cc_bits + payload_bit_length(seg.mode, seg.num_chars)
    return total


# ═══════════════════════════════════════════════════════════════
# SEGMENT PLANNER
# ═══════════════════════════════════════════════════════════════

# Cost of one character in 1/6 bit units
_CHAR_COST = {
    Mode.NUMERIC: 20,       # 10 bits / 3 digits
    Mode.ALPHANUMERIC: 33,  # 11 bits / 2 chars
    Mode.BYTE: 48,          # 8 bits
}


def _fits_mode(mode: Mode, b: int) -> bool:
    if mode == Mode.NUMERIC:
        return is_numeric_byte(b)
    if mode == Mode.ALPHANUMERIC:
        return is_alphanumeric_byte(b)
    return True


def _compute_char_modes(data: bytes, version: int) -> List[Mode]:
    """
    Per-byte mode assignment minimising total bit length.

    costs[j] is the cheapest encoding of the prefix so far ending in
    mode j; switching into mode j pays its header (indicator + count)
    after rounding the previous segment up to whole bits.
    """
    modes = ENCODABLE_MODES
    head_costs = [(4 + char_count_bits(m, version)) * 6 for m in modes]
    prev_costs = list(head_costs)
    back: List[List[Optional[Mode]]] = []

    for b in data:
        cur_costs = [0] * len(modes)
        choice: List[Optional[Mode]] = [None] * len(modes)
        for j, mode in enumerate(modes):
            if _fits_mode(mode, b):
                cur_costs[j] = prev_costs[j] + _CHAR_COST[mode]
                choice[j] = mode
        direct_costs = list(cur_costs)
        direct = list(choice)
        for j in range(len(modes)):
            for k in range(len(modes)):
                if direct[k] is None:
                    continue
                switched = (direct_costs[k] + 5) // 6 * 6 + head_costs[j]
                if choice[j] is None or switched < cur_costs[j]:
                    cur_costs[j] = switched
                    choice[j] = modes[k]
        back.append(choice)
        prev_costs = cur_costs

    result: List[Mode] = [Mode.BYTE] * len(data)
    current = modes[min(range(len(modes)), key=lambda j: prev_costs[j])]
    for i in range(len(data) - 1, -1, -1):
        current = back[i][modes.index(current)]
        result[i] = current
    return result


def plan_segments(data: bytes, version: int, optimize: bool = True) -> List[Segment]:
    """
    Cover data with an ordered, non-overlapping segment list.

    With optimize=False the whole input becomes one segment in its
    narrowest mode.
    """
    if not data:
        return []
    if not optimize:
        return [Segment(narrowest_mode(data), bytes(data), 0)]

    char_modes = _compute_char_modes(data, version)
    segments = []
    start = 0
    for i in range(1, len(data) + 1):
        if i == len(data) or char_modes[i] != char_modes[start]:
            segments.append(Segment(char_modes[start], bytes(data[start:i]), start))
            start = i
    return segments


# ═══════════════════════════════════════════════════════════════
# BIT STREAM ASSEMBLY
# ═══════════════════════════════════════════════════════════════

def _write_payload(stream: BitStream, seg: Segment) -> None:
    data = seg.data
    if seg.mode == Mode.NUMERIC:
        for i in range(0, len(data), 3):
            chunk = data[i:i + 3]
            stream.write_bits(int(chunk.decode('ascii')), len(chunk) * 3 + 1)
    elif seg.mode == Mode.ALPHANUMERIC:
        for i in range(0, len(data) - 1, 2):
            value = alphanumeric_value(data[i]) * 45 + alphanumeric_value(data[i + 1])
            stream.write_bits(value, 11)
        if len(data) % 2:
            stream.write_bits(alphanumeric_value(data[-1]), 6)
    elif seg.mode == Mode.BYTE:
        stream.write_bytes(data)
    else:
        raise UnsupportedCharacter(f"Mode {seg.mode.name} cannot be encoded")


def encode_segments(segments: Sequence[Segment], version: int,
                    capacity_bits: int) -> bytes:
    """
    Serialise segments into exactly capacity_bits // 8 data codewords.

    Raises:
        CapacityExceeded if the segments do not fit.
        UnsupportedCharacter if a segment holds bytes outside its mode.
    """
    stream = BitStream()
    for seg in segments:
        bad = next((b for b in seg.data if not _fits_mode(seg.mode, b)), None)
        if bad is not None:
            raise UnsupportedCharacter(f"Byte {bad:#04x} not allowed in {seg.mode.name} mode")
        cc_bits = char_count_bits(seg.mode, version)
        if seg.num_chars >= 1 << cc_bits:
            raise CapacityExceeded(
                f"{seg.num_chars} characters overflow the {cc_bits}-bit "
                f"length field of version {version}"
            )
        stream.write_bits(int(seg.mode), 4)
        stream.write_bits(seg.num_chars, cc_bits)
        _write_payload(stream, seg)

    if len(stream) > capacity_bits:
        raise CapacityExceeded(
            f"Data needs {len(stream)} bits, version {version} holds {capacity_bits}"
        )

    # ── Terminator, byte alignment, pad codewords ──
    stream.write_bits(0, min(4, capacity_bits - len(stream)))
    stream.write_bits(0, (-len(stream)) % 8)
    codewords = bytearray(stream.to_bytes())
    pad_index = 0
    while len(codewords) < capacity_bits // 8:
        codewords.append(PAD_CODEWORDS[pad_index % 2])
        pad_index += 1
    return bytes(codewords)


# ═══════════════════════════════════════════════════════════════
# SEGMENT PARSER (decode path)
# ═══════════════════════════════════════════════════════════════

def _read_eci(stream: BitStream) -> int:
    first = stream.read_bits(8)
    if first & 0x80 == 0:
        return first
    if first & 0xC0 == 0x80:
        return ((first & 0x3F) << 8) | stream.read_bits(8)
    if first & 0xE0 == 0xC0:
        return ((first & 0x1F) << 16) | stream.read_bits(16)
    raise MalformedSegment(f"Invalid ECI designator byte {first:#04x}")


def _read_payload(stream: BitStream, mode: Mode, count: int) -> bytes:
    out = bytearray()
    if mode == Mode.NUMERIC:
        remaining = count
        while remaining > 0:
            digits = min(3, remaining)
            value = stream.read_bits(digits * 3 + 1)
            if value >= 10 ** digits:
                raise MalformedSegment(f"Numeric group {value} exceeds {digits} digits")
            out.extend(str(value).zfill(digits).encode('ascii'))
            remaining -= digits
    elif mode == Mode.ALPHANUMERIC:
        remaining = count
        while remaining >= 2:
            value = stream.read_bits(11)
            if value >= 45 * 45:
                raise MalformedSegment(f"Alphanumeric pair value {value} out of range")
            out.extend(ALPHANUMERIC_CHARSET[value // 45].encode('ascii'))
            out.extend(ALPHANUMERIC_CHARSET[value % 45].encode('ascii'))
            remaining -= 2
        if remaining:
            value = stream.read_bits(6)
            if value >= 45:
                raise MalformedSegment(f"Alphanumeric value {value} out of range")
            out.extend(ALPHANUMERIC_CHARSET[value].encode('ascii'))
    else:
        for _ in range(count):
            out.append(stream.read_bits(8))
    return bytes(out)


def parse_segments(data: bytes, version: int) -> Tuple[List[Segment], Optional[int]]:
    """
    Parse corrected data codewords back into segments.

    Returns:
        (segments, ECI designator or None)

    Raises:
        MalformedSegment on unknown/unsupported modes or overrunning lengths.
    """
    stream = BitStream.from_bytes(data)
    segments: List[Segment] = []
    eci = None
    offset = 0

    while stream.bits_remaining >= 4:
        indicator = stream.read_bits(4)
        if indicator == Mode.TERMINATOR:
            break
        try:
            mode = Mode(indicator)
        except ValueError:
            raise MalformedSegment(
                f"Unknown mode indicator {indicator:#06b} at bit {stream.position - 4}"
            ) from None
        try:
            if mode == Mode.ECI:
                eci = _read_eci(stream)
                logger.debug("ECI designator %d", eci)
                continue
            if mode in (Mode.KANJI, Mode.STRUCTURED_APPEND):
                raise MalformedSegment(f"{mode.name} mode is not supported")
            count = stream.read_bits(char_count_bits(mode, version))
            needed = payload_bit_length(mode, count)
            if needed > stream.bits_remaining:
                raise MalformedSegment(
                    f"{mode.name} segment of {count} characters needs {needed} bits, "
                    f"{stream.bits_remaining} remain"
                )
            payload = _read_payload(stream, mode, count)
        except OutOfData as e:
            raise MalformedSegment(f"Segment truncated: {e}") from e
        segments.append(Segment(mode, payload, offset))
        offset += len(payload)

    return segments, eci
