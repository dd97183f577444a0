"""Coefficient table: value object and binary loader.

File layout (flat little-endian float64):
    1. n_pc principal-component grids of NK x NZ values each, component 0
       being the PCA mean, stored step-major: value (ik, iz) at ik + iz * NK
    2. n_pc - 1 PCE coefficient vectors (lengths PCE_LENGTHS)
    3. n_pc - 1 multi-index tables, N_PARAMS values per coefficient,
       row-major by coefficient then parameter
    4. the NK wavenumbers in h/Mpc
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import numpy as np

from nlcemu import constants as const
from nlcemu.errors import LoadError
from nlcemu.log import get_logger

log = get_logger()


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class CoefficientTable:
    """Parsed, validated coefficient table. Immutable.

    Attributes:
        principal_components: (n_pc, NK, NZ), [p, ik, iz]
        pce_coefficients: n_pc - 1 float vectors
        pce_multi_indices: n_pc - 1 int arrays of shape (n_coeffs, N_PARAMS)
        k: (NK,) wavenumbers, strictly increasing and positive

    Raises:
        LoadError: if shapes are inconsistent or values invalid.
    """

    principal_components: np.ndarray
    pce_coefficients: tuple
    pce_multi_indices: tuple
    k: np.ndarray

    def __post_init__(self):
        pcs = np.array(self.principal_components, dtype=np.float64)
        k = np.array(self.k, dtype=np.float64)
        coeffs = tuple(np.array(c, dtype=np.float64) for c in self.pce_coefficients)
        mis = tuple(_as_multi_index(m, i) for i, m in enumerate(self.pce_multi_indices))

        if pcs.ndim != 3:
            raise LoadError(f"principal components must be 3-D (n_pc, NK, NZ), got shape {pcs.shape}")
        n_pc, nk, nz = pcs.shape
        if nk < 2 or nz < 2:
            raise LoadError(f"PC grid must be at least 2 x 2, got {nk} x {nz}")
        if k.shape != (nk,):
            raise LoadError(f"expected {nk} wavenumbers, got shape {k.shape}")
        if not (np.all(k > 0.0) and np.all(np.diff(k) > 0.0)):
            raise LoadError("wavenumbers must be positive and strictly increasing")
        if len(coeffs) != n_pc - 1 or len(mis) != n_pc - 1:
            raise LoadError(
                f"{n_pc} principal components need {n_pc - 1} PCE expansions, "
                f"got {len(coeffs)} coefficient vectors and {len(mis)} multi-index tables"
            )
        for i, (c, m) in enumerate(zip(coeffs, mis)):
            if c.ndim != 1 or m.shape[0] != c.shape[0]:
                raise LoadError(
                    f"PCE {i + 1}: {c.shape} coefficients vs multi-index shape {m.shape}"
                )
        if not (np.all(np.isfinite(pcs)) and all(np.all(np.isfinite(c)) for c in coeffs)):
            raise LoadError("coefficient table contains non-finite values")

        object.__setattr__(self, "principal_components", _readonly(pcs))
        object.__setattr__(self, "k", _readonly(k))
        object.__setattr__(self, "pce_coefficients", tuple(_readonly(c) for c in coeffs))
        object.__setattr__(self, "pce_multi_indices", tuple(_readonly(m) for m in mis))

    @property
    def n_pc(self) -> int:
        return self.principal_components.shape[0]

    @property
    def nk(self) -> int:
        return self.principal_components.shape[1]

    @property
    def nz(self) -> int:
        return self.principal_components.shape[2]

    @property
    def pce_lengths(self) -> tuple[int, ...]:
        return tuple(c.shape[0] for c in self.pce_coefficients)

    @property
    def max_degree(self) -> int:
        """Largest Legendre degree in any multi-index."""
        return max((int(m.max()) for m in self.pce_multi_indices if m.size), default=0)

    @classmethod
    def from_flat(cls, data, nk: int = const.NK, nz: int = const.NZ,
                  pce_lengths=const.PCE_LENGTHS) -> CoefficientTable:
        """Parse the flat float64 sequence described in the module docstring."""
        data = np.asarray(data, dtype=np.float64).ravel()
        n_pc = len(pce_lengths) + 1
        expected = expected_size(nk, nz, pce_lengths)
        if data.size != expected:
            raise LoadError(f"expected {expected} float64 values, got {data.size}")

        offset = 0
        pcs = np.empty((n_pc, nk, nz))
        for p in range(n_pc):
            block = data[offset:offset + nk * nz]
            pcs[p] = block.reshape(nz, nk).T
            offset += nk * nz

        coeffs = []
        for length in pce_lengths:
            coeffs.append(data[offset:offset + length])
            offset += length

        mis = []
        for length in pce_lengths:
            mis.append(data[offset:offset + length * const.N_PARAMS].reshape(length, const.N_PARAMS))
            offset += length * const.N_PARAMS

        k = data[offset:offset + nk]
        return cls(pcs, tuple(coeffs), tuple(mis), k)

    def to_flat(self) -> np.ndarray:
        """Inverse of from_flat: the flat float64 file contents."""
        parts = [pc.T.ravel() for pc in self.principal_components]
        parts.extend(self.pce_coefficients)
        parts.extend(m.astype(np.float64).ravel() for m in self.pce_multi_indices)
        parts.append(self.k)
        return np.concatenate(parts)


def _as_multi_index(m, i: int) -> np.ndarray:
    """Convert a multi-index table stored as doubles to non-negative ints."""
    m = np.asarray(m)
    if m.ndim != 2 or m.shape[1] != const.N_PARAMS:
        raise LoadError(f"PCE {i + 1}: multi-index table must have shape (n, {const.N_PARAMS}), got {m.shape}")
    if not np.issubdtype(m.dtype, np.integer):
        if not np.all(np.isfinite(m)) or np.any(m != np.round(m)):
            raise LoadError(f"PCE {i + 1}: multi-indices must be integers")
    if np.any(m < 0):
        raise LoadError(f"PCE {i + 1}: multi-indices must be non-negative")
    return m.astype(np.int64)


def expected_size(nk: int = const.NK, nz: int = const.NZ, pce_lengths=const.PCE_LENGTHS) -> int:
    """Number of float64 values in a table file with this layout."""
    n_pc = len(pce_lengths) + 1
    return n_pc * nk * nz + sum(pce_lengths) * (1 + const.N_PARAMS) + nk


def load_coefficient_table(path, nk: int = const.NK, nz: int = const.NZ,
                           pce_lengths=const.PCE_LENGTHS) -> CoefficientTable:
    """Load and validate a binary coefficient file.

    Raises:
        LoadError: if the file is missing, unreadable, of the wrong size or
            inconsistent.
    """
    path = os.fspath(path)
    expected = expected_size(nk, nz, pce_lengths)
    try:
        size = os.path.getsize(path)
    except OSError as e:
        raise LoadError(f"cannot open coefficient file '{path}': {e}") from e
    if size != expected * 8:
        raise LoadError(
            f"coefficient file '{path}' has {size} bytes, expected {expected * 8} "
            f"({expected} float64 values)"
        )

    try:
        data = np.fromfile(path, dtype="<f8")
    except OSError as e:
        raise LoadError(f"cannot read coefficient file '{path}': {e}") from e

    table = CoefficientTable.from_flat(data, nk=nk, nz=nz, pce_lengths=pce_lengths)
    log.debug("loaded coefficient table '{}': {} PCs on {} x {} grid", path, table.n_pc, nk, nz)
    return table
