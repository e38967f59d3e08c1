"""
QRKit — Test Harness & Demonstration
=====================================

Verifies the codec end to end:
  1. Bit stream and GF(256) arithmetic
  2. Reed-Solomon encoding, correction bound and failure reporting
  3. Capacity tables, block layout, alignment positions, BCH codes
  4. Segment planning, assembly and parsing
  5. Matrix construction, masking and penalty scoring
  6. Encode → render → decode round trips (rotations, styles, versions)
  7. Cross-check against the `qrcode` library
  8. Damaged symbols, error reporting
  9. History store, style configuration, CLI

Run: python test_qrkit.py   (or: pytest)
"""

import os
import random
import sys
import tempfile

import numpy as np
import qrcode
from PIL import Image

import qrk_decoder
from conftest import run_test, raises, grid_image
from qrk_bits import BitStream, gf_mul, gf_div, gf_inverse, GF_EXP
from qrk_reedsolomon import rs_encode, rs_decode, rs_syndromes
from qrk_tables import (
    block_layout, num_total_codewords, num_data_codewords, interleave, deinterleave,
    split_blocks, alignment_pattern_positions, format_bits, version_bits,
    decode_format_bits, decode_version_bits,
)
from qrk_segments import plan_segments, encode_segments, parse_segments
from qrk_matrix import penalty_score, data_module_positions, format_info_positions
from qrk_encoder import QRKitEncoder, StyleConfig, encode, render, render_png
from qrk_decoder import QRKitDecoder, decode
from qrk_image import (
    Detection, FinderPattern, PerspectiveTransform,
    binarize, find_finder_patterns, load_grayscale, select_finder_triple,
)
from qrk_history import HistoryStore
from qrk_cli import main as cli_main
from qrk_types import (
    ErrorCorrectionLevel, Mode, ModuleState, Segment,
    CapacityExceeded, UnsupportedCharacter, FinderPatternNotFound, LowQualityImage,
    FormatInfoCorrupt, UncorrectableBlock, MalformedSegment, OutOfData,
    GFDivisionByZero, StyleError,
)

L, M, Q, H = (ErrorCorrectionLevel.L, ErrorCorrectionLevel.M,
              ErrorCorrectionLevel.Q, ErrorCorrectionLevel.H)

# "HELLO WORLD" at 1-M: data and parity codewords of the classic worked example
HELLO_WORLD_DATA = bytes([32, 91, 11, 120, 209, 114, 220, 77, 67, 64, 236, 17, 236, 17, 236, 17])
HELLO_WORLD_ECC = bytes([196, 35, 39, 119, 235, 215, 231, 226, 93, 23])


# ═══════════════════════════════════════════════════════════════
# TESTS
# ═══════════════════════════════════════════════════════════════

def test_bitstream(r):
    """Write/read round trip, zero padding, exhaustion and overflow."""
    stream = BitStream()
    stream.write_bits(0b101, 3)
    stream.write_bits(0x3FF, 10)
    assert len(stream) == 13
    assert stream.to_bytes() == bytes([0b10111111, 0b11111000])

    reader = BitStream.from_bytes(b'\xA5\x0F')
    assert reader.read_bits(4) == 0xA
    assert reader.read_bits(8) == 0x50
    assert reader.bits_remaining == 4
    raises(OutOfData, reader.read_bits, 5)
    raises(ValueError, stream.write_bits, 8, 3)


def test_gf_arithmetic(r):
    """GF(256) over 0x11D: reduction, inverses, division by zero."""
    assert gf_mul(2, 128) == 0x1D
    assert GF_EXP[8] == 0x1D
    for a in range(1, 256):
        assert gf_mul(a, gf_inverse(a)) == 1, f"inverse of {a}"
    assert gf_div(gf_mul(57, 200), 200) == 57
    e = raises(GFDivisionByZero, gf_inverse, 0)
    assert isinstance(e, ZeroDivisionError)


def test_rs_known_vector(r):
    """Parity of the HELLO WORLD 1-M data block."""
    assert rs_encode(HELLO_WORLD_DATA, 10) == HELLO_WORLD_ECC
    block = HELLO_WORLD_DATA + HELLO_WORLD_ECC
    assert not any(rs_syndromes(block, 10))
    data, corrected = rs_decode(block, 10)
    assert data == HELLO_WORLD_DATA and corrected == 0


def test_rs_correction_bound(r):
    """floor(r/2) errors are repaired; one more is reported or miscorrected."""
    rng = random.Random(1804)
    parity = 16
    for trial in range(20):
        data = bytes(rng.randrange(256) for _ in range(40))
        block = bytearray(data + rs_encode(data, parity))

        damaged = bytearray(block)
        for pos in rng.sample(range(len(block)), parity // 2):
            damaged[pos] ^= rng.randrange(1, 256)
        fixed, count = rs_decode(damaged, parity)
        assert fixed == data, f"trial {trial}: correction failed"
        assert count == parity // 2

        for pos in rng.sample(range(len(block)), parity // 2 + 1):
            block[pos] ^= rng.randrange(1, 256)
        try:
            fixed, _ = rs_decode(block, parity)
        except UncorrectableBlock:
            continue
        assert fixed != data, f"trial {trial}: beyond the bound yet original returned"
    r.message = "20 trials at and beyond the bound"


def test_block_layout(r):
    """Block grouping and interleave order."""
    layout = block_layout(5, Q)
    assert layout.groups == ((2, 15), (2, 16))
    assert layout.ecc_per_block == 18
    assert block_layout(1, L).groups == ((1, 19),)
    assert num_total_codewords(1) == 26
    assert num_total_codewords(40) == 3706
    assert num_data_codewords(40, L) == 2956

    data = bytes(range(num_data_codewords(5, Q)))
    blocks = split_blocks(data, layout)
    ecc = [rs_encode(b, layout.ecc_per_block) for b in blocks]
    codewords = interleave(blocks, ecc)
    assert len(codewords) == num_total_codewords(5)
    assert codewords[:5] == bytes([0, 15, 30, 46, 1])
    # Only the long blocks contribute a 16th data codeword
    assert codewords[60:62] == bytes([45, 61])
    assert deinterleave(codewords, 5, Q) == [b + e for b, e in zip(blocks, ecc)]


def test_alignment_positions(r):
    assert alignment_pattern_positions(1) == ()
    assert alignment_pattern_positions(2) == (6, 18)
    assert alignment_pattern_positions(7) == (6, 22, 38)
    assert alignment_pattern_positions(32) == (6, 34, 60, 86, 112, 138)
    assert alignment_pattern_positions(40) == (6, 30, 58, 86, 114, 142, 170)


def test_bch_codes(r):
    """Format/version words and nearest-codeword recovery."""
    assert format_bits(M, 0) == 0x5412
    assert format_bits(L, 0) == 0x77C4
    assert version_bits(7) == 0x07C94

    for level in ErrorCorrectionLevel:
        for mask in range(8):
            word = format_bits(level, mask) ^ 0b100100000000001
            assert decode_format_bits(word) == (level, mask, 3)
    assert decode_version_bits(version_bits(21) ^ 0b111) == (21, 3)


def test_segment_planning(r):
    """Narrowest modes and mixed-mode splitting."""
    segs = plan_segments(b"0123456789", 1)
    assert [s.mode for s in segs] == [Mode.NUMERIC]
    assert plan_segments(b"HELLO WORLD", 1)[0].mode == Mode.ALPHANUMERIC
    assert plan_segments(b"hello", 1)[0].mode == Mode.BYTE
    assert plan_segments(b"", 1) == []

    mixed = plan_segments(b"abc" + b"1" * 30, 1)
    assert [s.mode for s in mixed] == [Mode.BYTE, Mode.NUMERIC]
    assert mixed[1].offset == 3 and mixed[1].num_chars == 30

    naive = plan_segments(b"abc" + b"1" * 30, 1, optimize=False)
    assert [s.mode for s in naive] == [Mode.BYTE]


def test_segment_codec(r):
    """Bit-stream assembly of a known payload and parsing it back."""
    seg = Segment(Mode.ALPHANUMERIC, b"HELLO WORLD")
    assert encode_segments([seg], 1, 128) == HELLO_WORLD_DATA

    segments, eci = parse_segments(HELLO_WORLD_DATA, 1)
    assert eci is None
    assert segments == [Segment(Mode.ALPHANUMERIC, b"HELLO WORLD", 0)]

    raises(CapacityExceeded, encode_segments, [seg], 1, 64)
    raises(UnsupportedCharacter, encode_segments, [Segment(Mode.NUMERIC, b"12a")], 1, 128)
    raises(MalformedSegment, parse_segments, b'\x90\x00', 1)     # unknown indicator 1001
    raises(MalformedSegment, parse_segments, b'\x80\x10\x00', 1)  # Kanji
    raises(MalformedSegment, parse_segments, b'\x40\xff\x00', 1)  # byte count overruns


def test_penalty_score(r):
    """All-light 21x21 grid: long runs, 2x2 blocks and full imbalance."""
    blank = np.zeros((21, 21), dtype=bool)
    # N1 2 * 21 * 19, N2 400 * 3, N3 none, N4 10 * 10
    assert penalty_score(blank) == 798 + 1200 + 0 + 100


def test_matrix_structure(r):
    """Function patterns, reserved flags and format info of an encoded symbol."""
    matrix = encode("HELLO WORLD", M, mask=2)
    assert matrix.size == 21 and matrix.version == 1 and matrix.mask == 2
    # Finder centres dark, separators light, dark module set
    assert matrix.is_dark(3, 3) and matrix.is_dark(3, 17) and matrix.is_dark(17, 3)
    assert not matrix.is_dark(7, 7)
    assert matrix.is_dark(13, 8) and matrix.is_reserved(13, 8)
    assert [matrix.is_dark(6, c) for c in range(8, 13)] == [True, False, True, False, True]
    assert matrix.state(0, 0) == ModuleState.RESERVED

    data_cells = len(data_module_positions(1))
    assert data_cells == 26 * 8
    reserved = sum(matrix.is_reserved(i, j) for i in range(21) for j in range(21))
    assert reserved + data_cells == 21 * 21

    word = 0
    for i, (row, col) in enumerate(format_info_positions(21)[0]):
        word |= matrix.is_dark(row, col) << i
    assert word == format_bits(M, 2)


def test_qrcode_library_crosscheck(r):
    """Same version, level and mask as the qrcode library → identical modules."""
    for text, level, qr_level in (("HELLO WORLD", M, qrcode.constants.ERROR_CORRECT_M),
                                  ("0123456789012345", H, qrcode.constants.ERROR_CORRECT_H)):
        for mask in (0, 5):
            ref = qrcode.QRCode(version=1, error_correction=qr_level, border=0, mask_pattern=mask)
            ref.add_data(text)
            ref.make(fit=False)
            ours = QRKitEncoder(ec_level=level).encode(text, mask=mask)
            assert ours.to_array().tolist() == [list(row) for row in ref.get_matrix()], \
                f"{text!r} mask {mask} differs"

    # Decoder reads symbols it did not produce
    ref = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_Q, border=4)
    ref.add_data("https://github.com/lincolnloop/python-qrcode")
    ref.make(fit=True)
    result = decode(grid_image(ref.get_matrix(), border=0))
    assert result.text == "https://github.com/lincolnloop/python-qrcode"
    assert result.ec_level == Q


def test_hello_roundtrip(r):
    """encode('HELLO', L) → render → decode."""
    matrix = encode("HELLO", L)
    result = decode(render(matrix))
    assert result.text == "HELLO"
    assert result.version == 1
    assert result.ec_level == L
    assert result.segments[0].mode == Mode.ALPHANUMERIC


def test_roundtrip_levels_and_versions(r):
    """Round trips across levels, mixed modes, UTF-8 and larger versions."""
    cases = [
        ("https://example.com/path?q=1", M, 1),
        ("Call 0800 1234567 now / ÅÄÖ €", Q, 1),
        ("ACCOUNT 12345678901234567890 REF abc", H, 1),
        ("x" * 120, L, 7),      # version info blocks
        ("QRKit " * 60, M, 10),
    ]
    for text, level, min_version in cases:
        matrix = encode(text, level, min_version=min_version)
        result = decode(render(matrix, module_size_px=6))
        assert result.text == text, f"{text[:20]!r} at {level.name}"
        assert result.version == matrix.version and result.mask == matrix.mask
    r.message = f"{len(cases)} symbols, up to version {matrix.version}"


def test_rotations(r):
    """90/180/270 degree and mirrored captures decode to the same text."""
    text = "rotate me 90 degrees"
    image = render(encode(text, M))
    for angle in (90, 180, 270):
        assert decode(image.rotate(angle, expand=True)).text == text, f"{angle} degrees"
    mirrored = image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    assert decode(mirrored).text == text

    # Rotated module grid without the image path
    grid = np.rot90(encode(text, M).to_array())
    assert QRKitDecoder().decode_matrix(grid).text == text


def test_style_render(r):
    """StyleConfig defaults: slate on white, 300 px, margin 2."""
    style = StyleConfig().validated()
    matrix = QRKitEncoder(ec_level=style.ec_level).encode("https://example.com")
    image = style.render(matrix)
    assert image.size == (300, 300)
    assert image.getpixel((0, 0)) == (255, 255, 255)
    assert QRKitDecoder().decode(image).text == "https://example.com"

    png = render_png(matrix, fg='navy', bg='#fafafa')
    assert png[:8] == b'\x89PNG\r\n\x1a\n'
    assert QRKitDecoder().decode_bytes(png).text == "https://example.com"


def test_capacity_boundary(r):
    """Exactly the 40-L capacity fits; one more byte does not."""
    full = b'\xff' * 2953
    matrix = encode(full, L)
    assert matrix.version == 40
    assert QRKitDecoder(try_orientations=False).decode_matrix(matrix).data == full
    raises(CapacityExceeded, encode, full + b'\xff', L)

    assert encode("7" * 7089, L).version == 40
    raises(CapacityExceeded, encode, "7" * 7090, L)
    raises(CapacityExceeded, QRKitEncoder(max_version=2).encode, "x" * 40)


def test_determinism_and_options(r):
    """Identical input → identical matrix; forced mask and minimum version honoured."""
    a = encode("determinism", Q)
    b = encode("determinism", Q)
    assert a.modules == b.modules and a.mask == b.mask

    forced = encode("determinism", Q, mask=6)
    assert forced.mask == 6
    assert QRKitDecoder().decode_matrix(forced).mask == 6
    assert encode("determinism", Q, min_version=4).version == 4

    raises(ValueError, QRKitEncoder, mask=8)
    raises(UnsupportedCharacter, QRKitEncoder(encoding='ascii').encode, "café")
    latin = QRKitEncoder(encoding='iso-8859-1').encode("café")
    assert QRKitDecoder(encoding='iso-8859-1').decode_matrix(latin).text == "café"


def test_damaged_symbol(r):
    """Flipped data modules are repaired and counted."""
    text = "damaged but readable"
    matrix = encode(text, H)
    grid = matrix.to_array()
    for row, col in data_module_positions(matrix.version)[:40]:
        grid[row, col] = not grid[row, col]
    result = QRKitDecoder().decode_matrix(grid)
    assert result.text == text
    assert result.errors_corrected >= 5
    r.message = f"{result.errors_corrected} codewords corrected"

    # Render, then paint over a stripe of the data area
    image = render(encode(text, H), module_size_px=8)
    pixels = np.array(image)
    pixels[100:116, 90:140] = 0
    assert decode(Image.fromarray(pixels)).text == text

    # Far beyond the correction capacity
    for row, col in data_module_positions(matrix.version)[:400]:
        grid[row, col] = not grid[row, col]
    raises(UncorrectableBlock, QRKitDecoder(try_orientations=False).decode_matrix, grid)


def test_decode_errors(r):
    """Typed failures for unusable input."""
    raises(LowQualityImage, decode, Image.new('L', (200, 200), 255))

    halves = np.full((200, 200), 255, dtype=np.uint8)
    halves[:, 100:] = 0
    raises(FinderPatternNotFound, decode, halves)

    grid = encode("format", M).to_array()
    unreadable = next(w for w in range(1 << 15) if decode_format_bits(w)[2] > 3)
    for copy in format_info_positions(grid.shape[0]):
        for i, (row, col) in enumerate(copy):
            grid[row, col] = (unreadable >> i) & 1 == 1
    raises(FormatInfoCorrupt, QRKitDecoder(try_orientations=False).decode_matrix, grid)
    raises(LowQualityImage, QRKitDecoder().decode_matrix, np.zeros((22, 22), dtype=bool))


def test_history_store(r):
    """Newest first, bounded at capacity, persisted as JSON."""
    history = HistoryStore()
    entries = [history.add(f"https://example.com/{i}") for i in range(12)]
    assert len(history) == 10
    listed = list(history)
    assert listed[0].input_text == "https://example.com/11"
    assert listed[-1].input_text == "https://example.com/2"
    assert history.get(entries[0].id) is None
    assert history.get(entries[5].id) == entries[5]

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "history.json")
        history.save(path)
        restored = HistoryStore.load(path)
        assert [e.id for e in restored] == [e.id for e in history]
        assert restored.entries()[0].timestamp == listed[0].timestamp
        assert len(HistoryStore.load(os.path.join(tmpdir, "missing.json"))) == 0

    history.clear()
    assert len(history) == 0
    raises(ValueError, HistoryStore, 0)


def test_style_validation(r):
    """Clamping and rejection of invalid style input."""
    assert StyleConfig(size=100).validated().size == 200
    assert StyleConfig(size=5000).validated().size == 800
    assert StyleConfig(margin=-3).validated().margin == 0
    assert StyleConfig(margin=20).validated().margin == 8
    assert StyleConfig(ec_level='h').validated().ec_level == H
    raises(StyleError, StyleConfig(fg='not-a-colour').validated)
    raises(StyleError, StyleConfig(ec_level='X').validated)
    raises(StyleError, render, encode("x"), module_size_px=0)


def test_cli(r):
    """encode → decode through the command line, with history."""
    with tempfile.TemporaryDirectory() as tmpdir:
        png = os.path.join(tmpdir, "hello.png")
        hist = os.path.join(tmpdir, "history.json")
        assert cli_main(['--history', hist, 'encode', 'HELLO CLI', '-o', png, '--ec', 'Q']) == 0
        assert os.path.exists(png)
        assert cli_main(['--history', hist, 'decode', png]) == 0
        assert cli_main(['decode', os.path.join(tmpdir, "missing.png")]) == 1
        e = raises(SystemExit, cli_main, ['encode', 'x', '--min-version', '41'])
        assert e.code == 2

        entries = HistoryStore.load(hist).entries()
        assert [e.input_text for e in entries] == ['HELLO CLI', 'HELLO CLI']
        assert entries[0].image_ref == png
        assert cli_main(['--history', hist, 'history', '--clear']) == 0
        assert len(HistoryStore.load(hist)) == 0



def _keystone(image, inset):
    """Perspective tilt: the top edge pulled in by inset x width on each side."""
    gray = image.convert('L')
    w, h = gray.size
    # Output pixel → source pixel, the direction Image.transform expects
    tilt = PerspectiveTransform.quad_to_quad(
        [(inset * w, 0), ((1 - inset) * w, 0), (w, h), (0, h)],
        [(0, 0), (w, 0), (w, h), (0, h)],
    )
    coeffs = tilt.matrix.ravel()[:8].tolist()
    return gray.transform((w, h), Image.Transform.PERSPECTIVE, coeffs,
                          Image.Resampling.BILINEAR, fillcolor=255)


def test_keystone(r):
    """Tilted captures: the alignment pattern anchors the fourth corner."""
    for text, version in (("keystone " * 4, 5), ("tilted capture " * 20, 15)):
        matrix = encode(text, M, min_version=version)
        assert matrix.version == version
        image = render(matrix, module_size_px=8)
        for inset in (0.025, 0.05):
            result = decode(_keystone(image, inset))
            assert result.text == text, f"version {version}, inset {inset}"
            assert result.version == version
    r.message = "versions 5 and 15, top edge 5% and 10% narrower"


def test_version_info_resample(r):
    """Version blocks override a wrong dimension; each transform is resampled."""
    text = "version info decides " * 8
    matrix = encode(text, M, min_version=20)
    size, px, border = matrix.size, 6, 4
    binary = binarize(load_grayscale(render(matrix, module_size_px=px, margin_modules=border)))

    def finder(mx, my):
        return FinderPattern((border + mx) * px, (border + my) * px, px)

    tl, tr, bl = finder(3.5, 3.5), finder(size - 3.5, 3.5), finder(3.5, size - 3.5)
    wrong = Detection(tl, tr, bl, px, size + 4, 1.0).with_dimension(binary, size + 4)

    decoder = QRKitDecoder(try_orientations=False)
    resized = decoder._reconcile_version(binary, wrong)
    assert resized.dimension == size
    assert resized.alignment is not None and len(resized.transforms()) == 2
    assert decoder._decode_detection(binary, wrong).text == text

    class Rejecting(QRKitDecoder):
        def decode_matrix(self, grid):
            raise UncorrectableBlock("rejected")

    sampled = []
    original = qrk_decoder.sample_grid

    def recording(binary, transform, dimension):
        sampled.append((transform, dimension))
        return original(binary, transform, dimension)

    qrk_decoder.sample_grid = recording
    try:
        raises(UncorrectableBlock, Rejecting()._decode_detection, binary, wrong)
    finally:
        qrk_decoder.sample_grid = original
    resampled = [t for t, dimension in sampled if dimension == size]
    assert len(resampled) == 2 and resampled[0] is not resampled[1]


def test_format_copy_damaged(r):
    """One damaged format copy falls back to the other; nearest codeword otherwise."""
    text = "one format copy"
    grid = encode(text, Q, mask=3).to_array()
    first, second = format_info_positions(grid.shape[0])
    for row, col in first[:5]:
        grid[row, col] = not grid[row, col]

    decoder = QRKitDecoder(try_orientations=False)
    assert decoder.read_format_info(grid) == (Q, 3)
    result = decoder.decode_matrix(grid)
    assert result.text == text and result.mask == 3

    # Copy 2 one bit off: nearest valid codeword
    row, col = second[0]
    grid[row, col] = not grid[row, col]
    assert decoder.read_format_info(grid) == (Q, 3)


def test_segment_value_ranges(r):
    """Numeric groups above their digit count and alphanumeric pairs >= 45*45."""
    def stream(*fields):
        bits = BitStream()
        for value, length in fields:
            bits.write_bits(value, length)
        return bits.to_bytes()

    e = raises(MalformedSegment, parse_segments, stream((0b0001, 4), (3, 10), (1000, 10)), 1)
    assert "1000" in str(e)
    raises(MalformedSegment, parse_segments, stream((0b0001, 4), (2, 10), (100, 7)), 1)
    e = raises(MalformedSegment, parse_segments, stream((0b0010, 4), (2, 9), (2025, 11)), 1)
    assert "2025" in str(e)

    segments, _ = parse_segments(stream((0b0001, 4), (3, 10), (999, 10)), 1)
    assert segments[0].data == b"999"
    segments, _ = parse_segments(stream((0b0010, 4), (2, 9), (2024, 11)), 1)
    assert segments[0].data == b"::"


def test_low_finder_confidence(r):
    """Three finders in a row are found but cannot frame a symbol."""
    grid = np.zeros((7, 39), dtype=bool)
    for left in (0, 16, 32):
        grid[:, left:left + 7] = True
        grid[1:6, left + 1:left + 6] = False
        grid[2:5, left + 2:left + 5] = True
    image = grid_image(grid)

    assert len(find_finder_patterns(binarize(load_grayscale(image)))) == 3
    e = raises(LowQualityImage, decode, image)
    assert "confidence" in str(e)

    collinear = [FinderPattern(40.0 + 100 * i, 40.0, 4.0) for i in range(3)]
    raises(LowQualityImage, select_finder_triple, collinear)


# ═══════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════

def main():
    tests = [
        ("Bit Stream", test_bitstream),
        ("GF(256) Arithmetic", test_gf_arithmetic),
        ("Reed-Solomon Known Vector", test_rs_known_vector),
        ("Reed-Solomon Correction Bound", test_rs_correction_bound),
        ("Block Layout & Interleaving", test_block_layout),
        ("Alignment Pattern Positions", test_alignment_positions),
        ("BCH Format/Version Codes", test_bch_codes),
        ("Segment Planning", test_segment_planning),
        ("Segment Codec", test_segment_codec),
        ("Penalty Score", test_penalty_score),
        ("Matrix Structure", test_matrix_structure),
        ("qrcode Library Cross-Check", test_qrcode_library_crosscheck),
        ("HELLO Round-Trip", test_hello_roundtrip),
        ("Levels & Versions Round-Trip", test_roundtrip_levels_and_versions),
        ("Rotations", test_rotations),
        ("Keystone Tilt", test_keystone),
        ("Version Info Resample", test_version_info_resample),
        ("Format Copy Damaged", test_format_copy_damaged),
        ("Segment Value Ranges", test_segment_value_ranges),
        ("Low Finder Confidence", test_low_finder_confidence),
        ("Style Rendering", test_style_render),
        ("Capacity Boundary", test_capacity_boundary),
        ("Determinism & Options", test_determinism_and_options),
        ("Damaged Symbol", test_damaged_symbol),
        ("Decode Errors", test_decode_errors),
        ("History Store", test_history_store),
        ("Style Validation", test_style_validation),
        ("CLI", test_cli),
    ]

    print("=" * 72)
    print("  QRKit — Test Suite")
    print("  QR Model 2 Encoder/Decoder")
    print("=" * 72)
    print()

    results = []
    for name, func in tests:
        result = run_test(name, func)
        results.append(result)
        print(result)

    print()
    print("-" * 72)
    passed = sum(1 for r in results if r.passed)
    failed = sum(1 for r in results if not r.passed)
    total_ms = sum(r.elapsed for r in results)

    print(f"  Results: {passed} passed, {failed} failed, "
          f"{len(results)} total ({total_ms:.0f}ms)")

    if failed > 0:
        print()
        print("  FAILED TESTS:")
        for r in results:
            if not r.passed:
                print(f"    • {r.name}: {r.message}")

    print("=" * 72)

    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
