"""
QRKit Bits — Bit Stream & GF(256) Arithmetic
=============================================

Primitive layer shared by the encoder and decoder:
  - BitStream: MSB-first bit packing (append) and unpacking (cursor read)
  - GF(2^8) arithmetic under the QR primitive polynomial
    x^8 + x^4 + x^3 + x^2 + 1 (0x11D) with generator alpha = 2
  - Small polynomial helpers used by Reed-Solomon

Polynomials are lists of coefficients, highest degree first.
"""

from typing import Iterable, List, Sequence

from qrk_types import OutOfData, GFDivisionByZero

# ═══════════════════════════════════════════════════════════════
# BIT STREAM
# ═══════════════════════════════════════════════════════════════

class BitStream:
    """
    Ordered sequence of bits.

    Writers append with write_bits(); readers consume from a cursor with
    read_bits(). A stream belongs to the encode/decode call that made it.
    """

    def __init__(self, bits: Iterable[int] = ()):
        self._bits: List[int] = [1 if b else 0 for b in bits]
        self._cursor = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BitStream':
        stream = cls()
        stream.write_bytes(data)
        return stream

    def __len__(self) -> int:
        return len(self._bits)

    def __iter__(self):
        return iter(self._bits)

    def __repr__(self) -> str:
        return f"BitStream(len={len(self._bits)}, cursor={self._cursor})"

    # ─── Writing ──────────────────────────────────────────────

    def write_bits(self, value: int, n: int) -> None:
        """Append the n low bits of value, most significant first."""
        if n < 0 or value < 0 or value >> n != 0:
            raise ValueError(f"Value {value} does not fit in {n} bits")
        for i in range(n - 1, -1, -1):
            self._bits.append((value >> i) & 1)

    def write_bytes(self, data: bytes) -> None:
        for b in data:
            self.write_bits(b, 8)

    def extend(self, other: 'BitStream') -> None:
        self._bits.extend(other._bits)

    # ─── Reading ──────────────────────────────────────────────

    @property
    def bits_remaining(self) -> int:
        return len(self._bits) - self._cursor

    @property
    def position(self) -> int:
        return self._cursor

    def read_bits(self, n: int) -> int:
        """Consume n bits and return them as an unsigned integer."""
        if n > self.bits_remaining:
            raise OutOfData(
                f"Requested {n} bits at position {self._cursor}, "
                f"only {self.bits_remaining} remain"
            )
        value = 0
        for bit in self._bits[self._cursor:self._cursor + n]:
            value = (value << 1) | bit
        self._cursor += n
        return value

    # ─── Conversion ───────────────────────────────────────────

    def to_bytes(self) -> bytes:
        """Pack into bytes; a partial final byte is padded with zero bits."""
        out = bytearray((len(self._bits) + 7) // 8)
        for i, bit in enumerate(self._bits):
            if bit:
                out[i >> 3] |= 0x80 >> (i & 7)
        return bytes(out)


# ═══════════════════════════════════════════════════════════════
# GALOIS FIELD GF(256)
# ═══════════════════════════════════════════════════════════════

PRIMITIVE_POLY = 0x11D

# exp table is doubled so products of two logs never need a modulo
GF_EXP = [0] * 512
GF_LOG = [0] * 256


def _build_tables() -> None:
    x = 1
    for i in range(255):
        GF_EXP[i] = x
        GF_LOG[x] = i
        x <<= 1
        if x & 0x100:
            x ^= PRIMITIVE_POLY
    for i in range(255, 512):
        GF_EXP[i] = GF_EXP[i - 255]


_build_tables()


def gf_mul(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return GF_EXP[GF_LOG[a] + GF_LOG[b]]


def gf_div(a: int, b: int) -> int:
    if b == 0:
        raise GFDivisionByZero("Division by zero in GF(256)")
    if a == 0:
        return 0
    return GF_EXP[(GF_LOG[a] - GF_LOG[b]) % 255]


def gf_pow(a: int, n: int) -> int:
    """a raised to the integer power n (negative n allowed for a != 0)."""
    if a == 0:
        if n < 0:
            raise GFDivisionByZero("Negative power of zero in GF(256)")
        return 0 if n > 0 else 1
    return GF_EXP[(GF_LOG[a] * n) % 255]


def gf_inverse(a: int) -> int:
    if a == 0:
        raise GFDivisionByZero("Zero has no inverse in GF(256)")
    return GF_EXP[255 - GF_LOG[a]]


# ═══════════════════════════════════════════════════════════════
# POLYNOMIALS OVER GF(256)
# ═══════════════════════════════════════════════════════════════

def poly_scale(p: Sequence[int], x: int) -> List[int]:
    return [gf_mul(c, x) for c in p]


def poly_add(p: Sequence[int], q: Sequence[int]) -> List[int]:
    """Sum of two polynomials, aligned on their constant terms."""
    size = max(len(p), len(q))
    out = [0] * size
    for i, c in enumerate(p):
        out[i + size - len(p)] = c
    for i, c in enumerate(q):
        out[i + size - len(q)] ^= c
    return out


def poly_mul(p: Sequence[int], q: Sequence[int]) -> List[int]:
    out = [0] * (len(p) + len(q) - 1)
    for j, b in enumerate(q):
        if b == 0:
            continue
        for i, a in enumerate(p):
            out[i + j] ^= gf_mul(a, b)
    return out


def poly_eval(p: Sequence[int], x: int) -> int:
    """Horner evaluation."""
    y = 0
    for c in p:
        y = gf_mul(y, x) ^ c
    return y
