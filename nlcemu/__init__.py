"""nlcemu: nonlinear correction emulator for the matter power spectrum, in JAX.

Usage:
    import nlcemu

    params = nlcemu.CosmoParams(Omega_m=0.31, h=0.68)
    B = nlcemu.compute_nlc(params, redshifts=[0.0, 1.0], k=[0.1, 1.0])

    # Reuse the emulator and cosmology across calls
    emu = nlcemu.Emulator.from_file("ee2_bindata.dat")
    cosmo = nlcemu.Cosmology(params)
    B = emu.compute_nlc(cosmo, [0.0, 0.5], k)
"""

import jax
jax.config.update("jax_enable_x64", True)

from nlcemu.errors import (  # noqa: F401
    NLCEmuError, ParameterOutOfRange, IntegrationFailure, SplineDomainError, LoadError,
)
from nlcemu.params import CosmoParams, PrecisionParams  # noqa: F401
from nlcemu.background import background_solve, BackgroundResult  # noqa: F401
from nlcemu.cosmology import Cosmology  # noqa: F401
from nlcemu.io import CoefficientTable, load_coefficient_table  # noqa: F401
from nlcemu.emulator import Emulator  # noqa: F401
from nlcemu.settings import NLCEmuSettings, get_settings  # noqa: F401

import numpy as np


def compute_nlc(params, redshifts, k, emulator=None, prec=None) -> np.ndarray:
    """Nonlinear correction B(k, z) for one cosmology.

    Args:
        params: CosmoParams or ordered 8-sequence
        redshifts: redshifts in [0, 10]
        k: wavenumbers in h/Mpc
        emulator: Emulator to use; if None, one is loaded from the configured
            data file (NLCEMU_DATA_FILE)
        prec: precision parameters; defaults to the configured preset

    Returns:
        Array of shape (len(redshifts), len(k)).
    """
    settings = get_settings()
    if prec is None:
        prec = settings.precision_params()
    if emulator is None:
        emulator = Emulator.from_file(settings.data_file, prec)
    return emulator.compute_nlc(Cosmology(params, prec), redshifts, k)
