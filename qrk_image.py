"""
QRKit Image — Binarization, Finder Location & Perspective Sampling
===================================================================

Decode-side image processing, from an arbitrary raster to a square
grid of module colours:

  1. grayscale (alpha composited on white)
  2. adaptive threshold: local mean from an integral image, global Otsu
     threshold where the neighbourhood is flat
  3. run-length scan for the 1:1:3:1:1 finder signature, cross-checked
     vertically and horizontally, candidates merged
  4. triple selection (right-isosceles geometry, consistent module size)
     and top-left / top-right / bottom-left ordering
  5. dimension estimate refined with the timing patterns
  6. projective transform (alignment pattern or derived fourth corner)
     and module-centre sampling

Image coordinates are continuous: pixel (row i, col j) covers
[j, j + 1) x [i, i + 1). Module coordinates likewise.
"""

import io
import logging
import os
from dataclasses import dataclass, replace
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from qrk_types import (
    MIN_VERSION, MAX_VERSION,
    FinderPatternNotFound, LowQualityImage, version_size,
)

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════
# THRESHOLDS
# ═══════════════════════════════════════════════════════════════

# Grey levels between the darkest and brightest pixel
MIN_CONTRAST = 32

# Below this local standard deviation the global threshold is used
MIN_LOCAL_STDDEV = 8.0

# Allowed deviation of a run from its expected width, as a fraction
FINDER_VARIANCE = 0.5

# Geometric confidence (0-1) a finder triple must reach
MIN_PATTERN_CONFIDENCE = 0.5

# Finder candidates considered when forming triples
MAX_TRIPLE_CANDIDATES = 12

# Of the 25 modules of an alignment pattern, how many must read as expected
ALIGNMENT_MIN_MATCHES = 23

# Alignment search radii, in modules, tried in turn
ALIGNMENT_SEARCH_ALLOWANCES = (4, 8, 16)

# Timing score a neighbouring dimension needs above the estimate to replace it
TIMING_MARGIN = 0.1

FINDER_RATIOS = (1, 1, 3, 1, 1)


# ═══════════════════════════════════════════════════════════════
# LOADING & BINARIZATION
# ═══════════════════════════════════════════════════════════════

def _flatten_alpha(img: Image.Image) -> Image.Image:
    if img.mode in ('RGBA', 'LA', 'PA') or (img.mode == 'P' and 'transparency' in img.info):
        rgba = img.convert('RGBA')
        background = Image.new('RGBA', rgba.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, rgba)
    return img


def load_grayscale(source) -> np.ndarray:
    """
    Grey levels (0-255, float) of an image.

    Accepts a PIL image, a numpy array (2-D grey or 3-D RGB/RGBA),
    a filesystem path, or encoded image bytes.
    """
    if isinstance(source, np.ndarray):
        if source.ndim == 2:
            return source.astype(np.float64)
        img = Image.fromarray(source.astype(np.uint8))
    elif isinstance(source, Image.Image):
        img = source
    elif isinstance(source, (bytes, bytearray, memoryview)):
        img = Image.open(io.BytesIO(bytes(source)))
    elif isinstance(source, (str, os.PathLike)):
        img = Image.open(source)
    else:
        raise TypeError(f"Unsupported image source: {type(source).__name__}")
    img = _flatten_alpha(img)
    return np.asarray(img.convert('L'), dtype=np.float64)


def otsu_threshold(gray: np.ndarray) -> float:
    """Global threshold maximising between-class variance."""
    levels = np.clip(gray, 0, 255).astype(np.uint8).ravel()
    hist = np.bincount(levels, minlength=256).astype(np.float64)
    total = hist.sum()
    weight0 = np.cumsum(hist)
    weight1 = total - weight0
    cum_mean = np.cumsum(hist * np.arange(256))
    mean_total = cum_mean[-1] / total
    with np.errstate(divide='ignore', invalid='ignore'):
        between = (mean_total * weight0 - cum_mean) ** 2 / (weight0 * weight1)
    between[(weight0 == 0) | (weight1 == 0)] = -1
    return float(np.argmax(between)) + 0.5


def _box_mean(values: np.ndarray, window: int) -> np.ndarray:
    pad = window // 2
    padded = np.pad(values, pad, mode='edge')
    integral = np.pad(padded.cumsum(axis=0).cumsum(axis=1), ((1, 0), (1, 0)))
    sums = (integral[window:, window:] - integral[:-window, window:]
            - integral[window:, :-window] + integral[:-window, :-window])
    return sums / (window * window)


def binarize(gray: np.ndarray) -> np.ndarray:
    """
    Adaptive threshold. Returns a bool array, True = dark.

    Raises:
        LowQualityImage when the whole image lacks contrast.
    """
    gray = np.asarray(gray, dtype=np.float64)
    if gray.ndim != 2 or min(gray.shape) < 21:
        raise LowQualityImage(f"Image of shape {gray.shape} is too small to hold a symbol")
    contrast = float(gray.max() - gray.min())
    if contrast < MIN_CONTRAST:
        raise LowQualityImage(f"Contrast {contrast:.0f} below minimum {MIN_CONTRAST}")

    window = max(15, (min(gray.shape) // 8) | 1)
    mean = _box_mean(gray, window)
    variance = np.maximum(_box_mean(gray * gray, window) - mean * mean, 0.0)
    global_threshold = otsu_threshold(gray)

    flat = np.sqrt(variance) < MIN_LOCAL_STDDEV
    return np.where(flat, gray < global_threshold, gray < mean)


# ═══════════════════════════════════════════════════════════════
# RUN-LENGTH PATTERN MATCHING
# ═══════════════════════════════════════════════════════════════

def _runs(line: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(start, length, is_dark) of each run of equal values."""
    n = len(line)
    changes = np.flatnonzero(line[1:] != line[:-1]) + 1
    starts = np.concatenate(([0], changes))
    lengths = np.diff(np.concatenate((starts, [n])))
    return starts, lengths, line[starts]


def _matches_ratios(counts: Sequence[float], ratios: Sequence[int]) -> bool:
    total = sum(counts)
    if total < sum(ratios):
        return False
    unit = total / sum(ratios)
    return all(abs(c - r * unit) < r * unit * FINDER_VARIANCE
               for c, r in zip(counts, ratios))


def _cross_check(line: np.ndarray, center: int, ratios: Sequence[int],
                 expected_total: float) -> Optional[Tuple[float, int]]:
    """
    Re-measure a dark/light/dark/light/dark pattern through center along
    a single line. Returns (refined centre, total width) or None.
    """
    n = len(line)
    if not 0 <= center < n or not line[center]:
        return None
    limit = int(expected_total * 1.5) + 2
    counts = [0] * 5

    i = center
    for idx, dark in ((2, True), (1, False), (0, True)):
        while i >= 0 and line[i] == dark and counts[idx] <= limit:
            counts[idx] += 1
            i -= 1
    j = center + 1
    for idx, dark in ((2, True), (3, False), (4, True)):
        while j < n and line[j] == dark and counts[idx] <= limit:
            counts[idx] += 1
            j += 1

    if min(counts) == 0 or max(counts) > limit:
        return None
    total = sum(counts)
    if 5 * abs(total - expected_total) >= 2 * expected_total:
        return None
    if not _matches_ratios(counts, ratios):
        return None
    refined = j - counts[4] - counts[3] - counts[2] / 2.0
    return refined, total


# ═══════════════════════════════════════════════════════════════
# FINDER PATTERNS
# ═══════════════════════════════════════════════════════════════

@dataclass
class FinderPattern:
    """Centre (pixel coordinates), estimated module size, and sighting count."""
    x: float
    y: float
    module_size: float
    count: int = 1

    def about_equals(self, x: float, y: float, module_size: float) -> bool:
        if abs(y - self.y) <= self.module_size and abs(x - self.x) <= self.module_size:
            diff = abs(module_size - self.module_size)
            return diff <= 1.0 or diff <= self.module_size
        return False

    def combine(self, x: float, y: float, module_size: float) -> 'FinderPattern':
        n = self.count
        return FinderPattern(
            x=(n * self.x + x) / (n + 1),
            y=(n * self.y + y) / (n + 1),
            module_size=(n * self.module_size + module_size) / (n + 1),
            count=n + 1,
        )


def _distance(a: FinderPattern, b: FinderPattern) -> float:
    return float(np.hypot(a.x - b.x, a.y - b.y))


def find_finder_patterns(binary: np.ndarray) -> List[FinderPattern]:
    """
    All plausible finder-pattern centres, most frequently sighted first.

    Raises:
        FinderPatternNotFound when fewer than three candidates survive.
    """
    height, width = binary.shape
    step = max(1, height // 600)
    candidates: List[FinderPattern] = []

    for y in range(0, height, step):
        starts, lengths, dark = _runs(binary[y])
        for k in range(len(lengths) - 4):
            if not dark[k]:
                continue
            counts = lengths[k:k + 5]
            if not _matches_ratios(counts, FINDER_RATIOS):
                continue
            total = int(counts.sum())
            cx = starts[k + 2] + counts[2] / 2.0

            vertical = _cross_check(binary[:, int(cx)], y, FINDER_RATIOS, total)
            if vertical is None:
                continue
            cy, total_v = vertical
            horizontal = _cross_check(binary[int(cy)], int(cx), FINDER_RATIOS, total)
            if horizontal is None:
                continue
            cx, total_h = horizontal
            module_size = (total_v + total_h) / 14.0

            for idx, existing in enumerate(candidates):
                if existing.about_equals(cx, cy, module_size):
                    candidates[idx] = existing.combine(cx, cy, module_size)
                    break
            else:
                candidates.append(FinderPattern(cx, cy, module_size))

    confirmed = [c for c in candidates if c.count >= 2]
    if len(confirmed) >= 3:
        candidates = confirmed
    candidates.sort(key=lambda c: -c.count)
    logger.debug("Finder candidates: %s", [(round(c.x), round(c.y), c.count) for c in candidates])
    if len(candidates) < 3:
        raise FinderPatternNotFound(f"Found {len(candidates)} finder pattern(s), need 3")
    return candidates


def _triple_confidence(a: FinderPattern, b: FinderPattern,
                       c: FinderPattern) -> Tuple[float, Tuple[FinderPattern, ...]]:
    """
    How well three centres form the corners of a square symbol.
    Returns (confidence 0-1, (top_left, top_right, bottom_left)).
    """
    sides = sorted(((_distance(b, c), a, b, c),
                    (_distance(a, c), b, a, c),
                    (_distance(a, b), c, a, b)), key=lambda s: s[0])
    (leg1, _, _, _), (leg2, _, _, _), (hyp, top_left, p, q) = sides
    if leg1 <= 0:
        return 0.0, (a, b, c)

    sizes = [a.module_size, b.module_size, c.module_size]
    size_score = min(sizes) / max(sizes)
    leg_score = leg1 / leg2
    right_angle_score = 1.0 - min(1.0, abs(hyp * hyp - (leg1 * leg1 + leg2 * leg2))
                                  / (leg1 * leg1 + leg2 * leg2))
    module = sum(sizes) / 3.0
    if (leg1 + leg2) / 2.0 / module + 7 < version_size(MIN_VERSION) - 4:
        return 0.0, (a, b, c)

    # Top-right lies clockwise from bottom-left as seen from top-left
    cross = (p.x - top_left.x) * (q.y - top_left.y) - (p.y - top_left.y) * (q.x - top_left.x)
    ordered = (top_left, p, q) if cross > 0 else (top_left, q, p)
    return size_score * leg_score * right_angle_score, ordered


def select_finder_triple(candidates: Sequence[FinderPattern]
                         ) -> Tuple[FinderPattern, FinderPattern, FinderPattern, float]:
    """
    Pick and order the top-left, top-right and bottom-left finders.

    Raises:
        FinderPatternNotFound for fewer than three candidates.
        LowQualityImage when no triple reaches MIN_PATTERN_CONFIDENCE.
    """
    if len(candidates) < 3:
        raise FinderPatternNotFound(f"Found {len(candidates)} finder pattern(s), need 3")
    best_score, best = -1.0, None
    for triple in combinations(candidates[:MAX_TRIPLE_CANDIDATES], 3):
        score, ordered = _triple_confidence(*triple)
        if score > best_score:
            best_score, best = score, ordered
    if best is None or best_score < MIN_PATTERN_CONFIDENCE:
        raise LowQualityImage(
            f"Finder pattern confidence {max(best_score, 0.0):.2f} "
            f"below {MIN_PATTERN_CONFIDENCE}"
        )
    return best[0], best[1], best[2], best_score


def estimate_dimension(top_left: FinderPattern, top_right: FinderPattern,
                       bottom_left: FinderPattern) -> int:
    """
    Modules per side from finder spacing, snapped to 17 + 4v.

    Each spacing is measured in the module size of the two finders it
    joins, which stays close under perspective tilt.
    """
    across = _distance(top_left, top_right) / ((top_left.module_size + top_right.module_size) / 2.0)
    down = _distance(top_left, bottom_left) / ((top_left.module_size + bottom_left.module_size) / 2.0)
    raw = (across + down) / 2.0 + 7
    version = int(round((raw - 17) / 4.0))
    return version_size(min(max(version, MIN_VERSION), MAX_VERSION))


# ═══════════════════════════════════════════════════════════════
# PERSPECTIVE TRANSFORM
# ═══════════════════════════════════════════════════════════════

class PerspectiveTransform:
    """Projective map from module space (x = col, y = row) to pixel space."""

    def __init__(self, matrix: np.ndarray):
        self.matrix = matrix

    @classmethod
    def quad_to_quad(cls, src: Sequence[Tuple[float, float]],
                     dst: Sequence[Tuple[float, float]]) -> 'PerspectiveTransform':
        rows, rhs = [], []
        for (u, v), (x, y) in zip(src, dst):
            rows.append([u, v, 1, 0, 0, 0, -u * x, -v * x])
            rows.append([0, 0, 0, u, v, 1, -u * y, -v * y])
            rhs.extend([x, y])
        try:
            h = np.linalg.solve(np.array(rows, dtype=np.float64), np.array(rhs, dtype=np.float64))
        except np.linalg.LinAlgError as e:
            raise LowQualityImage(f"Degenerate symbol geometry: {e}") from e
        return cls(np.append(h, 1.0).reshape(3, 3))

    def apply(self, xs, ys) -> Tuple[np.ndarray, np.ndarray]:
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        m = self.matrix
        w = m[2, 0] * xs + m[2, 1] * ys + m[2, 2]
        px = (m[0, 0] * xs + m[0, 1] * ys + m[0, 2]) / w
        py = (m[1, 0] * xs + m[1, 1] * ys + m[1, 2]) / w
        return px, py


def _affine_point(top_left: FinderPattern, top_right: FinderPattern,
                  bottom_left: FinderPattern, dimension: int,
                  mx: float, my: float) -> Tuple[float, float]:
    """Pixel position of module point (mx, my) using the three finders only."""
    span = dimension - 7.0
    fx, fy = (mx - 3.5) / span, (my - 3.5) / span
    x = top_left.x + fx * (top_right.x - top_left.x) + fy * (bottom_left.x - top_left.x)
    y = top_left.y + fx * (top_right.y - top_left.y) + fy * (bottom_left.y - top_left.y)
    return x, y


def _is_alignment_signature(widths: Sequence[float], module_size: float) -> bool:
    """dark/light/dark/light/dark widths of one line through an alignment pattern."""
    outer_left, light_left, core, light_right, outer_right = widths
    inner = (light_left, core, light_right)
    if not _matches_ratios(inner, (1, 1, 1)):
        return False
    unit = sum(inner) / 3.0
    if abs(unit - module_size) > module_size * FINDER_VARIANCE:
        return False
    return min(outer_left, outer_right) >= unit * (1 - FINDER_VARIANCE)


def _alignment_cross_check(line: np.ndarray, center: int, module_size: float) -> Optional[float]:
    """
    Re-measure the alignment signature through center along a single
    line. Returns the refined centre or None.

    The outer dark ring may merge with neighbouring dark modules, so it
    is measured only up to the run limit.
    """
    n = len(line)
    if not 0 <= center < n or not line[center]:
        return None
    limit = module_size * (1 + FINDER_VARIANCE)
    i = center
    while i >= 0 and line[i]:
        i -= 1
    start = i + 1
    j = center
    while j < n and line[j]:
        j += 1

    widths = [0, 0, j - start, 0, 0]
    for idx, dark in ((1, False), (0, True)):
        while i >= 0 and line[i] == dark and widths[idx] <= limit:
            widths[idx] += 1
            i -= 1
    k = j
    for idx, dark in ((3, False), (4, True)):
        while k < n and line[k] == dark and widths[idx] <= limit:
            widths[idx] += 1
            k += 1
    if not _is_alignment_signature(widths, module_size):
        return None
    return (start + j) / 2.0


def _matches_alignment_grid(binary: np.ndarray, cx: float, cy: float,
                            axes: Tuple[Tuple[float, float], Tuple[float, float]]) -> bool:
    """Whether the 5x5 modules around (cx, cy) follow the alignment layout."""
    (ux, uy), (vx, vy) = axes
    offsets = np.arange(-2, 3)
    dx, dy = np.meshgrid(offsets, offsets)
    px = np.floor(cx + dx * ux + dy * vx).astype(int)
    py = np.floor(cy + dx * uy + dy * vy).astype(int)
    height, width = binary.shape
    if px.min() < 0 or py.min() < 0 or px.max() >= width or py.max() >= height:
        return False
    # Dark centre and outer ring, light ring between
    expected = np.maximum(np.abs(dx), np.abs(dy)) != 1
    return int((binary[py, px] == expected).sum()) >= ALIGNMENT_MIN_MATCHES


def find_alignment_pattern(binary: np.ndarray, x: float, y: float,
                           module_size: float, radius: float,
                           axes: Optional[Tuple[Tuple[float, float], Tuple[float, float]]] = None
                           ) -> Optional[Tuple[float, float]]:
    """
    Alignment-pattern centre closest to (x, y) within radius pixels, if any.

    A hit must show the dark/light/dark/light/dark signature horizontally
    and vertically. With axes (pixel offset of one module step along a
    row and down a column) the full 5x5 layout is checked as well.
    """
    height = binary.shape[0]
    top, bottom = max(0, int(y - radius)), min(height, int(y + radius) + 1)
    cap = module_size * (1 + FINDER_VARIANCE)
    best, best_dist = None, None

    for row in range(top, bottom):
        starts, lengths, dark = _runs(binary[row])
        for k in range(2, len(lengths) - 2):
            if not dark[k]:
                continue
            widths = [min(lengths[k - 2], cap), lengths[k - 1], lengths[k],
                      lengths[k + 1], min(lengths[k + 2], cap)]
            if not _is_alignment_signature(widths, module_size):
                continue
            cx = starts[k] + lengths[k] / 2.0
            if abs(cx - x) > radius:
                continue
            cy = _alignment_cross_check(binary[:, int(cx)], row, module_size)
            if cy is None:
                continue
            cx = _alignment_cross_check(binary[int(cy)], int(cx), module_size)
            if cx is None:
                continue
            dist = np.hypot(cx - x, cy - y)
            if dist > radius or (best_dist is not None and dist >= best_dist):
                continue
            if axes is not None and not _matches_alignment_grid(binary, cx, cy, axes):
                continue
            best, best_dist = (cx, cy), dist
    return best


@dataclass
class Detection:
    """Located symbol: ordered finders, grid dimension and module-to-pixel map."""
    top_left: FinderPattern
    top_right: FinderPattern
    bottom_left: FinderPattern
    module_size: float
    dimension: int
    confidence: float
    transform: Optional[PerspectiveTransform] = None
    fallback_transform: Optional[PerspectiveTransform] = None
    alignment: Optional[Tuple[float, float]] = None

    @property
    def version(self) -> int:
        return (self.dimension - 17) // 4

    def transforms(self) -> List[PerspectiveTransform]:
        return [t for t in (self.transform, self.fallback_transform) if t is not None]

    def with_dimension(self, binary: np.ndarray, dimension: int) -> 'Detection':
        """Same finders, transforms rebuilt for another grid dimension."""
        detection = replace(self, dimension=dimension)
        detection._build_transforms(binary)
        return detection

    def _build_transforms(self, binary: np.ndarray) -> None:
        dim = self.dimension
        tl, tr, bl = self.top_left, self.top_right, self.bottom_left
        src = [(3.5, 3.5), (dim - 3.5, 3.5), (3.5, dim - 3.5)]
        dst = [(tl.x, tl.y), (tr.x, tr.y), (bl.x, bl.y)]

        # Derived fourth corner: parallelogram completion
        derived = PerspectiveTransform.quad_to_quad(
            src + [(dim - 3.5, dim - 3.5)],
            dst + [(tr.x + bl.x - tl.x, tr.y + bl.y - tl.y)],
        )
        self.transform, self.fallback_transform, self.alignment = derived, None, None

        if self.version >= 2:
            ex, ey = _affine_point(tl, tr, bl, dim, dim - 6.5, dim - 6.5)
            span = dim - 7.0
            axes = (((tr.x - tl.x) / span, (tr.y - tl.y) / span),
                    ((bl.x - tl.x) / span, (bl.y - tl.y) / span))
            # The bottom-right pattern sits between the two outer finders
            local_size = (tr.module_size + bl.module_size) / 2.0
            found = None
            for allowance in ALIGNMENT_SEARCH_ALLOWANCES:
                found = find_alignment_pattern(binary, ex, ey, local_size,
                                               radius=local_size * allowance, axes=axes)
                if found is not None:
                    break
            if found is not None:
                self.alignment = found
                self.transform = PerspectiveTransform.quad_to_quad(
                    src + [(dim - 6.5, dim - 6.5)], dst + [found])
                self.fallback_transform = derived
                logger.debug("Alignment pattern at (%.1f, %.1f), expected (%.1f, %.1f)",
                             found[0], found[1], ex, ey)


# ═══════════════════════════════════════════════════════════════
# SAMPLING
# ═══════════════════════════════════════════════════════════════

def sample_grid(binary: np.ndarray, transform: PerspectiveTransform,
                dimension: int) -> np.ndarray:
    """Colour at each module centre; points outside the image read light."""
    centres = np.arange(dimension) + 0.5
    mx, my = np.meshgrid(centres, centres)
    px, py = transform.apply(mx, my)
    cols = np.floor(px).astype(int)
    rows = np.floor(py).astype(int)
    height, width = binary.shape
    inside = (rows >= 0) & (rows < height) & (cols >= 0) & (cols < width)
    grid = np.zeros((dimension, dimension), dtype=bool)
    grid[inside] = binary[rows[inside], cols[inside]]
    return grid


def timing_score(grid: np.ndarray) -> float:
    """Fraction of timing-pattern modules (row/column 6) that alternate correctly."""
    size = grid.shape[0]
    idx = np.arange(8, size - 8)
    expected = idx % 2 == 0
    hits = (grid[6, idx] == expected).sum() + (grid[idx, 6] == expected).sum()
    return float(hits) / (2 * len(idx))


def locate_symbol(binary: np.ndarray) -> Detection:
    """
    Find the symbol in a binarized image.

    The dimension estimated from finder spacing is checked against its
    neighbours (+/- one version). A neighbour replaces the estimate only
    when its sampled timing patterns alternate better by TIMING_MARGIN.
    """
    candidates = find_finder_patterns(binary)
    top_left, top_right, bottom_left, confidence = select_finder_triple(candidates)
    module_size = (top_left.module_size + top_right.module_size + bottom_left.module_size) / 3.0
    estimate = estimate_dimension(top_left, top_right, bottom_left)

    base = Detection(top_left, top_right, bottom_left, module_size, estimate, confidence)
    scored = []
    for dimension in (estimate, estimate - 4, estimate + 4):
        if not version_size(MIN_VERSION) <= dimension <= version_size(MAX_VERSION):
            continue
        detection = base.with_dimension(binary, dimension)
        score = max(timing_score(sample_grid(binary, transform, dimension))
                    for transform in detection.transforms())
        scored.append((detection, score))

    best, best_score = scored[0]
    estimate_score = best_score
    for detection, score in scored[1:]:
        if score >= estimate_score + TIMING_MARGIN and score > best_score:
            best, best_score = detection, score

    logger.debug("Symbol at TL(%.1f, %.1f) TR(%.1f, %.1f) BL(%.1f, %.1f), "
                 "module %.2f px, dimension %d (estimate %d, timing %.2f)",
                 top_left.x, top_left.y, top_right.x, top_right.y,
                 bottom_left.x, bottom_left.y, module_size,
                 best.dimension, estimate, best_score)
    return best
