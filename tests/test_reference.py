"""
Test suite validating the hand-written recurrences against heyoka.

heyoka differentiates the same equations of motion symbolically, so its
Taylor coefficients and propagated states are an independent oracle.
"""

import pytest
import numpy as np
from dromos import (
    ReferenceSystem, SpacecraftState, TaylorSettings,
    taylor_coefficients, propagate_taylor_j2, earth_j2, EARTH
)

STATE = np.array([1.1, 0.2, 0.3, -0.1, 0.9, 0.2, 1.0])
THRUST = np.array([0.01, -0.02, 0.005])
MU, VEFF, J2RG2 = 1.0, 2.0, 1e-3


@pytest.fixture(scope="module")
def reference():
    return ReferenceSystem()


class TestCoefficients:
    """Taylor coefficients agree order by order."""

    def test_perturbed_coefficients(self, reference):
        order = 10
        expected = reference.taylor_coefficients(STATE, THRUST, order, MU, VEFF, J2RG2)
        computed = taylor_coefficients(STATE, THRUST, order, MU, VEFF, J2RG2)
        np.testing.assert_allclose(computed, expected, rtol=1e-10, atol=1e-14)

    def test_keplerian_coefficients(self, reference):
        order = 10
        expected = reference.taylor_coefficients(STATE, np.zeros(3), order, MU, VEFF, 0.0)
        computed = taylor_coefficients(STATE, np.zeros(3), order, MU, VEFF, 0.0)
        np.testing.assert_allclose(computed, expected, rtol=1e-10, atol=1e-14)

    def test_order_too_high(self, reference):
        with pytest.raises(ValueError):
            reference.taylor_coefficients(STATE, THRUST, 10000, MU, VEFF, J2RG2)


class TestPropagation:
    """Final states agree after propagation."""

    def test_canonical_units(self, reference):
        expected = reference.propagate(STATE, THRUST, 5.0, MU, VEFF, J2RG2)
        state = STATE.copy()
        propagate_taylor_j2(state, THRUST, 5.0, MU, VEFF, J2RG2)
        np.testing.assert_allclose(state, expected, atol=1e-8)

    def test_backward(self, reference):
        expected = reference.propagate(STATE, THRUST, -4.0, MU, VEFF, J2RG2)
        state = STATE.copy()
        propagate_taylor_j2(state, THRUST, -4.0, MU, VEFF, J2RG2)
        np.testing.assert_allclose(state, expected, atol=1e-8)

    def test_tight_tolerance(self, reference):
        expected = reference.propagate(STATE, THRUST, 5.0, MU, VEFF, J2RG2)
        state = STATE.copy()
        settings = TaylorSettings(abs_tol_exponent=-14, rel_tol_exponent=-14)
        propagate_taylor_j2(state, THRUST, 5.0, MU, VEFF, J2RG2, settings)
        np.testing.assert_allclose(state, expected, atol=1e-11)

    def test_earth_leo(self, reference):
        """Dimensional LEO orbit with Earth's J2 and a small thrust."""
        r = 7000.0
        v = np.sqrt(EARTH.mu / r)
        initial = SpacecraftState([r, 0.0, 0.0], [0.0, v * np.cos(0.9), v * np.sin(0.9)], 500.0)
        thrust = np.array([0.0, 1e-4, 0.0])
        veff = 3000 * 9.80665e-3
        prop = earth_j2(veff)

        expected = reference.propagate(initial.data, thrust, 3000.0, EARTH.mu,
                                       veff, EARTH.J2RG2)
        state = initial.copy()
        prop.propagate(state, thrust, 3000.0)

        np.testing.assert_allclose(state.position, expected[0:3], rtol=0, atol=1e-3)
        np.testing.assert_allclose(state.velocity, expected[3:6], rtol=0, atol=1e-6)
        assert state.mass == pytest.approx(expected[6], rel=1e-13)


class TestReferenceSystem:

    def test_lazy_compile(self):
        ref = ReferenceSystem(compile=False)
        assert not ref.is_compiled
        assert len(ref.cached_eom) == 7
        assert "not compiled" in repr(ref)

    def test_compile_chaining(self, reference):
        assert reference.compile() is reference
        assert reference.is_compiled

    def test_bad_state_shape(self, reference):
        with pytest.raises(ValueError):
            reference.propagate(np.zeros(6), THRUST, 1.0, MU, VEFF)
