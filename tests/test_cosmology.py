"""Test the Cosmology wrapper and the step-number clock."""

import numpy as np
import pytest

from nlcemu.cosmology import Cosmology
from nlcemu.errors import ParameterOutOfRange, SplineDomainError
from nlcemu.params import CosmoParams

class TestConstruction:

    def test_from_sequence(self, fast_prec):
        cosmo = Cosmology([0.05, 0.32, 0.0, 0.96, 0.67, -1.0, 0.0, 2.1e-9], fast_prec)
        assert cosmo.params == CosmoParams()

    def test_invalid_params_rejected(self, fast_prec):
        with pytest.raises(ParameterOutOfRange):
            Cosmology([0.05, 0.5, 0.0, 0.96, 0.67, -1.0, 0.0, 2.1e-9], fast_prec)

    def test_repr(self, fiducial_cosmology):
        assert repr(fiducial_cosmology).startswith("Cosmology(Omega_b=0.05")

class TestStepNumber:

    def test_endpoints(self, fiducial_cosmology):
        """z = z_max is step 0, z = 0 is step n_steps."""
        cosmo = fiducial_cosmology
        assert abs(cosmo.compute_step_number(10.0)) < 1e-9
        assert abs(cosmo.compute_step_number(0.0) - 100.0) < 1e-9

    def test_monotone_in_redshift(self, fiducial_cosmology):
        z = np.linspace(0.0, 10.0, 301)
        steps = fiducial_cosmology.compute_step_numbers(z)
        assert np.all(np.diff(steps) < 0), "step number must decrease with redshift"
        assert np.all((steps >= 0.0) & (steps <= 100.0))

    @pytest.mark.parametrize("params", [
        CosmoParams(),
        CosmoParams(Sum_m_nu=0.15, w_0=-0.9, w_a=0.3),
    ], ids=["fiducial", "massive_nu_cpl"])
    def test_linear_in_time(self, fast_prec, params):
        """step(z) = (t(z) - t_start) / Delta_t to roundoff, off the table knots too."""
        cosmo = Cosmology(params, fast_prec)
        z = np.linspace(0.0, 10.0, 997)
        t = cosmo.cosmic_time(z)
        expected = (t - cosmo.t_start) / cosmo.Delta_t
        steps = cosmo.compute_step_numbers(z)
        err = np.abs(steps - expected)
        assert err.max() < 1e-8, f"max step error {err.max():.3e} at z = {z[err.argmax()]:.3f}"

    def test_query_independent(self, fiducial_cosmology):
        """A redshift's step number does not depend on the other redshifts requested."""
        alone = fiducial_cosmology.compute_step_number(9.45)
        batch = fiducial_cosmology.compute_step_numbers([0.2, 9.45, 3.0])
        assert abs(batch[1] - alone) < 1e-12

    def test_scenario_redshifts_strictly_ordered(self, fiducial_cosmology):
        steps = fiducial_cosmology.compute_step_numbers([0.0, 1.0, 2.0])
        assert np.all(np.diff(steps) < 0)

    def test_scalar_and_vector_agree(self, fiducial_cosmology):
        z = np.array([0.0, 0.5, 2.0])
        vec = fiducial_cosmology.compute_step_numbers(z)
        scalars = [fiducial_cosmology.compute_step_number(zi) for zi in z]
        assert np.allclose(vec, scalars, rtol=0, atol=1e-12)

    @pytest.mark.parametrize("z", [-0.01, 10.5, np.nan])
    def test_out_of_range(self, fiducial_cosmology, z):
        with pytest.raises(SplineDomainError):
            fiducial_cosmology.compute_step_number(z)

    def test_idempotent(self, fiducial_cosmology):
        first = fiducial_cosmology.compute_step_number(1.0)
        second = fiducial_cosmology.compute_step_number(1.0)
        assert first == second

class TestCosmicTime:

    def test_a2t_unsorted_and_repeated(self, fiducial_cosmology):
        a = np.array([0.5, 0.1, 0.5, 1.0])
        t = fiducial_cosmology.a2t(a)
        assert t.shape == (4,)
        assert t[0] == t[2]
        assert t[1] < t[0] < t[3]
        assert abs(t[3] - fiducial_cosmology.t_0) < 1e-6 * fiducial_cosmology.t_0

    def test_a2t_out_of_range(self, fiducial_cosmology):
        with pytest.raises(ValueError):
            fiducial_cosmology.a2t(1.5)

    def test_age(self, fiducial_cosmology):
        assert 13.4 < fiducial_cosmology.age_Gyr < 14.0

    def test_dark_energy_changes_clock(self, fast_prec, fiducial_cosmology):
        """A different expansion history maps z = 1 to a different step."""
        other = Cosmology(CosmoParams(w_0=-0.8, w_a=0.5), fast_prec)
        assert abs(other.compute_step_number(1.0) - fiducial_cosmology.compute_step_number(1.0)) > 0.1
