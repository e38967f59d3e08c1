"""
QRKit Reed-Solomon — GF(256) Error Correction
==============================================

Encoder and decoder for the QR flavour of Reed-Solomon:
  - generator polynomial with consecutive roots alpha^0 .. alpha^(r-1)
  - systematic encoding (parity appended after the data)
  - decoding via syndromes, Berlekamp-Massey, Chien search and Forney

A block of k data and r parity codewords corrects up to floor(r/2)
erroneous codewords. Beyond that bound the decoder raises
UncorrectableBlock; it may also (rarely) land on a different valid
codeword, which is the expected non-uniqueness of any RS code.
"""

import logging
from functools import lru_cache
from typing import List, Sequence, Tuple

from qrk_bits import GF_EXP, gf_mul, gf_div, poly_mul, poly_eval
from qrk_types import UncorrectableBlock

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# ENCODING
# ═══════════════════════════════════════════════════════════════

@lru_cache(maxsize=None)
def rs_generator_poly(r: int) -> Tuple[int, ...]:
    """Degree-r generator (x - a^0)(x - a^1)...(x - a^(r-1)), highest first."""
    if not 1 <= r <= 255:
        raise ValueError(f"Parity length out of range: {r}")
    g = [1]
    for i in range(r):
        g = poly_mul(g, [1, GF_EXP[i]])
    return tuple(g)


def rs_encode(data: Sequence[int], r: int) -> bytes:
    """Return the r parity codewords for data (remainder of data * x^r / g)."""
    gen = rs_generator_poly(r)
    rem = [0] * r
    for b in data:
        factor = b ^ rem[0]
        rem = rem[1:] + [0]
        if factor:
            for i in range(r):
                rem[i] ^= gf_mul(gen[i + 1], factor)
    return bytes(rem)


# ═══════════════════════════════════════════════════════════════
# DECODING
# ═══════════════════════════════════════════════════════════════

def rs_syndromes(block: Sequence[int], r: int) -> List[int]:
    return [poly_eval(block, GF_EXP[i]) for i in range(r)]


def _eval_ascending(p: Sequence[int], x: int) -> int:
    """Evaluate a polynomial stored lowest degree first."""
    y = 0
    for c in reversed(p):
        y = gf_mul(y, x) ^ c
    return y


def _berlekamp_massey(synd: Sequence[int]) -> List[int]:
    """Error locator Lambda(x), lowest degree first, Lambda(0) = 1."""
    r = len(synd)
    locator = [1] + [0] * r
    prev = [1] + [0] * r
    length = 0
    shift = 1
    prev_disc = 1
    for n in range(r):
        disc = synd[n]
        for i in range(1, length + 1):
            disc ^= gf_mul(locator[i], synd[n - i])
        if disc == 0:
            shift += 1
            continue
        coef = gf_div(disc, prev_disc)
        if 2 * length <= n:
            saved = locator[:]
            for i in range(r + 1 - shift):
                locator[i + shift] ^= gf_mul(coef, prev[i])
            length = n + 1 - length
            prev = saved
            prev_disc = disc
            shift = 1
        else:
            for i in range(r + 1 - shift):
                locator[i + shift] ^= gf_mul(coef, prev[i])
            shift += 1
    return locator[:length + 1]


def _chien_search(locator: Sequence[int], n: int) -> List[int]:
    """Powers i (coefficient of x^i) for which Lambda(a^-i) == 0."""
    return [i for i in range(n)
            if _eval_ascending(locator, GF_EXP[(255 - i) % 255]) == 0]


def rs_decode(block: Sequence[int], r: int) -> Tuple[bytes, int]:
    """
    Correct a received block of k + r codewords.

    Returns:
        (data codewords, number of corrected codewords)

    Raises:
        UncorrectableBlock when the errors exceed what r parity bytes fix.
    """
    msg = list(block)
    n = len(msg)
    if r >= n:
        raise ValueError(f"Block of {n} codewords cannot carry {r} parity codewords")

    synd = rs_syndromes(msg, r)
    if not any(synd):
        return bytes(msg[:n - r]), 0

    # ── 1. Error locator ──
    locator = _berlekamp_massey(synd)
    num_errors = len(locator) - 1
    if 2 * num_errors > r:
        raise UncorrectableBlock(
            f"{num_errors} errors exceed correction capacity {r // 2}"
        )

    # ── 2. Error positions ──
    positions = _chien_search(locator, n)
    if len(positions) != num_errors:
        raise UncorrectableBlock(
            f"Locator of degree {num_errors} has {len(positions)} roots in block"
        )

    # ── 3. Error magnitudes (Forney, first consecutive root a^0) ──
    evaluator = [0] * r
    for k in range(r):
        acc = 0
        for j in range(min(k, num_errors) + 1):
            acc ^= gf_mul(locator[j], synd[k - j])
        evaluator[k] = acc
    derivative = [locator[j] if j % 2 == 1 else 0 for j in range(1, len(locator))]

    for i in positions:
        x = GF_EXP[i]
        x_inv = GF_EXP[(255 - i) % 255]
        denominator = _eval_ascending(derivative, x_inv)
        if denominator == 0:
            raise UncorrectableBlock(f"Degenerate locator derivative at position {i}")
        magnitude = gf_mul(x, gf_div(_eval_ascending(evaluator, x_inv), denominator))
        if magnitude == 0:
            raise UncorrectableBlock(f"Zero error magnitude at position {i}")
        msg[n - 1 - i] ^= magnitude

    if any(rs_syndromes(msg, r)):
        raise UncorrectableBlock("Residual syndromes after correction")

    logger.debug("Corrected %d codewords in block of %d", num_errors, n)
    return bytes(msg[:n - r]), num_errors
