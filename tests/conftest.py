"""Test fixtures for the nlcemu test suite.

Provides:
- A small synthetic coefficient table with analytically known surfaces
- Fast PrecisionParams and a fiducial Cosmology
- The real coefficient file and golden reference values, when present
  (tests that need them skip otherwise)
- --fast flag for quick regression checks
"""

import json
import os

import jax
jax.config.update("jax_enable_x64", True)

import numpy as np
import pytest

from nlcemu.cosmology import Cosmology
from nlcemu.io import CoefficientTable
from nlcemu.params import CosmoParams, PrecisionParams
from nlcemu.settings import get_settings

# Path to reference data
REFERENCE_DIR = os.path.join(os.path.dirname(__file__), '..', 'reference_data')
GOLDEN_FILE = os.path.join(REFERENCE_DIR, 'ee2_golden.json')

# Synthetic table layout: 3 components on a 12 x 101 grid
SYN_NK = 12
SYN_NZ = 101
SYN_PCE_LENGTHS = (3, 2)


def pytest_addoption(parser):
    parser.addoption(
        "--fast", action="store_true", default=False,
        help="Use the fast precision preset everywhere"
    )


@pytest.fixture
def fast_mode(request):
    return request.config.getoption("--fast")


def synthetic_surfaces(logk, step):
    """Bilinear surfaces in (log k, step); bicubic interpolation is exact on them."""
    return np.stack([
        1.0 + 0.1 * logk + 0.002 * step,
        0.05 * logk * step / 100.0,
        0.3 - 0.01 * step + 0.02 * logk,
    ])


def make_synthetic_table(coefficients=None):
    """Synthetic CoefficientTable.

    PCE 1: w_1 = c0 + c1 * sqrt(3) x_Omega_m + c2 * sqrt(5) P_2(x_h)
    PCE 2: w_2 = c0 + c1 * sqrt(3) x_Omega_b * sqrt(3) x_n_s
    """
    k = np.logspace(-2, 1, SYN_NK)
    logk = np.log(k)
    step = np.arange(SYN_NZ, dtype=float)
    L, S = np.meshgrid(logk, step, indexing='ij')
    pcs = synthetic_surfaces(L, S)

    if coefficients is None:
        coefficients = (np.array([0.5, 0.2, -0.1]), np.array([-0.3, 0.4]))
    multi_indices = (
        np.array([
            [0, 0, 0, 0, 0, 0, 0, 0],
            [0, 1, 0, 0, 0, 0, 0, 0],
            [0, 0, 0, 0, 2, 0, 0, 0],
        ], dtype=float),
        np.array([
            [0, 0, 0, 0, 0, 0, 0, 0],
            [1, 0, 0, 1, 0, 0, 0, 0],
        ], dtype=float),
    )
    return CoefficientTable(pcs, tuple(coefficients), multi_indices, k)


@pytest.fixture(scope="session")
def synthetic_table():
    return make_synthetic_table()


@pytest.fixture(scope="session")
def fast_prec():
    return PrecisionParams.fast()


@pytest.fixture(scope="session")
def fiducial_cosmology(fast_prec):
    """Fiducial cosmology, built once per session."""
    return Cosmology(CosmoParams(), fast_prec)


@pytest.fixture(scope="session")
def data_file():
    """Path to the real coefficient file (NLCEMU_DATA_FILE); skips if absent."""
    path = get_settings().data_file
    if not os.path.isfile(path):
        pytest.skip(f"coefficient file not found: {path}")
    return path


@pytest.fixture(scope="session")
def golden():
    """Golden reference values from scripts/generate_golden_reference.py."""
    if not os.path.isfile(GOLDEN_FILE):
        pytest.skip(f"golden reference not found: {GOLDEN_FILE}")
    with open(GOLDEN_FILE) as f:
        return json.load(f)


def relative_error(computed, reference, eps=1e-30):
    """Compute relative error, avoiding division by zero."""
    return np.abs(computed - reference) / (np.abs(reference) + eps)


def max_relative_error(computed, reference, eps=1e-30):
    """Return (max_rel_err, index_of_max) over the flattened arrays."""
    rel = np.ravel(relative_error(np.asarray(computed), np.asarray(reference), eps))
    idx = np.argmax(rel)
    return float(rel[idx]), int(idx)


def assert_close(computed, reference, rtol, name="quantity", coordinate=None):
    """Assert computed matches reference within rtol, with a clear error message."""
    computed = np.ravel(np.asarray(computed, dtype=float))
    reference = np.ravel(np.asarray(reference, dtype=float))
    max_err, idx = max_relative_error(computed, reference)
    if max_err > rtol:
        coord_str = f" at index {idx}"
        if coordinate is not None:
            coord_str = f" at {np.ravel(coordinate)[idx]:.6g}"
        msg = (
            f"{name}: max rel error {max_err:.4%}{coord_str}"
            f" (expected {reference[idx]:.6e}, got {computed[idx]:.6e})"
            f" -- tolerance {rtol:.4%}"
        )
        raise AssertionError(msg)
