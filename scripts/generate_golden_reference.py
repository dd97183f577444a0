#!/usr/bin/env python3
"""Generate golden B(k, z) reference values for the nlcemu test suite.

Requires the binary coefficient file (ee2_bindata.dat). Its path is taken
from the first argument, else from NLCEMU_DATA_FILE, else ./ee2_bindata.dat.

Writes reference_data/ee2_golden.json, which tests/test_emulator.py compares
against. The values are produced by this package at default precision, so
they guard against regressions, not against a bias shared with the
implementation. The file records the package version and data file it was
made from. Regenerate after any intentional change to the numerics, and
record why in the commit.

Cases:
    fiducial        Omega_b=0.05, Omega_m=0.32, Sum_m_nu=0, n_s=0.96, h=0.67,
                    w_0=-1, w_a=0, A_s=2.1e-9, at z=0, k=0.1 h/Mpc
    scenario_3x3    fiducial cosmology on z in [0, 1, 2], k in [0.01, 0.1, 1]
    cpl_massive_nu  off-centre cosmology, so every PCE term contributes

Usage:
    python scripts/generate_golden_reference.py [path/to/ee2_bindata.dat]
"""

import json
import os
import sys
from importlib.metadata import version

import nlcemu
from nlcemu import Cosmology, CosmoParams, Emulator, PrecisionParams
from nlcemu.log import init_logging

GOLDEN_CASES = {
    'fiducial': (CosmoParams(), [0.0], [0.1]),
    'scenario_3x3': (CosmoParams(), [0.0, 1.0, 2.0], [0.01, 0.1, 1.0]),
    'cpl_massive_nu': (
        CosmoParams(Omega_b=0.049, Omega_m=0.319, Sum_m_nu=0.058, n_s=0.96,
                    h=0.67, w_0=-0.95, w_a=0.1, A_s=2.1e-9),
        [0.0, 0.5, 1.0, 2.0, 5.0],
        [0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    ),
}


def main():
    init_logging("INFO")
    path = sys.argv[1] if len(sys.argv) > 1 else nlcemu.get_settings().data_file
    outdir = os.path.join(os.path.dirname(__file__), '..', 'reference_data')
    os.makedirs(outdir, exist_ok=True)

    prec = PrecisionParams()
    emu = Emulator.from_file(path, prec)

    cases = {}
    for name, (params, redshifts, k) in GOLDEN_CASES.items():
        cosmo = Cosmology(params, prec)
        nlc = emu.compute_nlc(cosmo, redshifts, k)
        cases[name] = {
            'params': list(params.as_tuple()),
            'redshifts': redshifts,
            'k': k,
            'step_numbers': cosmo.compute_step_numbers(redshifts).tolist(),
            'pce_weights': emu.pce_weights(cosmo).tolist(),
            'nlc': nlc.tolist(),
        }
        print(f"  {name}: {nlc.shape[0]} redshifts x {nlc.shape[1]} k-points")

    out = {
        'source': {
            'generator': 'scripts/generate_golden_reference.py',
            'nlcemu_version': version('nlcemu'),
            'data_file': os.path.basename(path),
            'precision': 'default',
        },
        'cases': cases,
    }
    outfile = os.path.join(outdir, 'ee2_golden.json')
    with open(outfile, 'w') as f:
        json.dump(out, f, indent=2)

    print(f"  data file: {path}")
    print(f"  fiducial B(k=0.1, z=0) = {cases['fiducial']['nlc'][0][0]:.10f}")
    print(f"Wrote {outfile}")


if __name__ == '__main__':
    main()
