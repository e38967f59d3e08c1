"""
QRKit — Test Infrastructure
============================

Shared by pytest (the `r` fixture) and by `python test_qrkit.py`
(`run_test` / `CaseResult`).
"""

import time

import numpy as np
import pytest
from PIL import Image


class CaseResult:
    def __init__(self, name):
        self.name = name
        self.passed = False
        self.message = ""
        self.elapsed = 0.0

    def __repr__(self):
        status = "PASS" if self.passed else "FAIL"
        return f"  [{status}] {self.name} ({self.elapsed:.1f}ms){': ' + self.message if self.message else ''}"


def run_test(name, func):
    """Run a single test, catching exceptions."""
    result = CaseResult(name)
    start = time.time()
    try:
        func(result)
        result.passed = True
    except AssertionError as e:
        result.message = str(e) or "Assertion failed"
    except Exception as e:
        result.message = f"{type(e).__name__}: {e}"
    result.elapsed = (time.time() - start) * 1000
    return result


def raises(exc_type, func, *args, **kwargs):
    """Call func and return the exc_type it raised; fail if it did not raise."""
    try:
        func(*args, **kwargs)
    except exc_type as e:
        return e
    raise AssertionError(f"{func.__name__} did not raise {exc_type.__name__}")


def grid_image(grid, module_px=8, border=4):
    """Black-on-white PIL image of a boolean module grid."""
    arr = np.pad(np.asarray(grid, dtype=bool), border, constant_values=False)
    arr = np.repeat(np.repeat(arr, module_px, axis=0), module_px, axis=1)
    return Image.fromarray(np.where(arr, 0, 255).astype(np.uint8))


@pytest.fixture
def r(request):
    return CaseResult(request.node.name)
