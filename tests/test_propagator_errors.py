"""
Test suite for propagator edge cases and error handling.

Tests cover:
- Order and iteration budgets
- Invalid states and thrust vectors
- Strict and relaxed validation of physical parameters
- Collision with the central body
"""

import warnings
import pytest
import numpy as np
from dromos import (
    SpacecraftState, TaylorSettings, TaylorPropagator, propagate_taylor_j2,
    OrderExceededError, IterationLimitExceededError, PropagationError,
    StepCollapseError,
    temp_config, canonical
)


def circular_array():
    return np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0])


class TestBudgets:
    """Order and iteration limits are hard failures."""

    def test_order_exceeded(self):
        """max_order below the tolerance's order fails immediately."""
        state = circular_array()
        settings = TaylorSettings(max_order=10)

        with pytest.raises(OrderExceededError) as excinfo:
            propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0, settings)

        assert excinfo.value.order == 13
        assert excinfo.value.max_order == 10
        np.testing.assert_array_equal(state, circular_array())

    def test_order_at_limit_is_allowed(self):
        state = circular_array()
        settings = TaylorSettings(max_order=13)
        propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0, settings)

    def test_tighter_tolerance_exceeds_order(self):
        """The same cap fails once the tolerance is tightened."""
        state = circular_array()
        settings = TaylorSettings(abs_tol_exponent=-16, rel_tol_exponent=-16,
                                  max_order=15)
        with pytest.raises(OrderExceededError):
            propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0, settings)

    def test_iteration_limit(self):
        """Too few iterations for the duration fails."""
        state = circular_array()
        settings = TaylorSettings(max_iterations=3)

        with pytest.raises(IterationLimitExceededError) as excinfo:
            propagate_taylor_j2(state, np.zeros(3), 100.0, 1.0, 1.0, 0.0, settings)

        assert excinfo.value.iterations == 3
        assert 0 < excinfo.value.remaining < 100.0

    def test_iteration_limit_keeps_partial_state(self):
        """The state holds the last computed step after the failure."""
        state = circular_array()
        settings = TaylorSettings(max_iterations=2)

        with pytest.raises(IterationLimitExceededError) as excinfo:
            propagate_taylor_j2(state, np.zeros(3), 100.0, 1.0, 1.0, 0.0, settings)

        elapsed = 100.0 - excinfo.value.remaining
        np.testing.assert_allclose(state[0:2], [np.cos(elapsed), np.sin(elapsed)],
                                   atol=1e-9)

    def test_errors_share_base_class(self):
        settings = TaylorSettings(max_iterations=1)
        with pytest.raises(PropagationError):
            propagate_taylor_j2(circular_array(), np.zeros(3), 100.0,
                                1.0, 1.0, 0.0, settings)

    def test_propagator_uses_settings(self):
        prop = TaylorPropagator(1.0, 1.0, settings=TaylorSettings(max_order=5))
        with pytest.raises(OrderExceededError):
            prop.propagate(circular_array(), np.zeros(3), 1.0)


class TestInvalidInputs:
    """Malformed inputs are rejected before propagating."""

    def test_list_state_rejected(self):
        """Lists cannot be updated in place."""
        with pytest.raises(TypeError):
            propagate_taylor_j2([1, 0, 0, 0, 1, 0, 1], np.zeros(3), 1.0,
                                1.0, 1.0, 0.0)

    def test_wrong_state_shape(self):
        with pytest.raises(ValueError):
            propagate_taylor_j2(np.zeros(6), np.zeros(3), 1.0, 1.0, 1.0, 0.0)

    def test_integer_state_rejected(self):
        with pytest.raises(ValueError):
            propagate_taylor_j2(np.array([1, 0, 0, 0, 1, 0, 1]), np.zeros(3),
                                1.0, 1.0, 1.0, 0.0)

    def test_read_only_state_rejected(self):
        state = circular_array()
        state.flags.writeable = False
        with pytest.raises(ValueError):
            propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0)

    def test_nan_in_state(self):
        state = circular_array()
        state[3] = np.nan
        with pytest.raises(ValueError, match="NaN or Inf"):
            propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0)

    def test_inf_in_thrust(self):
        with pytest.raises(ValueError, match="NaN or Inf"):
            propagate_taylor_j2(circular_array(), [np.inf, 0, 0], 1.0,
                                1.0, 1.0, 0.0)

    def test_wrong_thrust_shape(self):
        with pytest.raises(ValueError):
            propagate_taylor_j2(circular_array(), [0.0, 0.0], 1.0, 1.0, 1.0, 0.0)


class TestPhysicalValidation:
    """Non-physical parameters raise or warn depending on configuration."""

    def test_zero_mass_raises(self):
        state = circular_array()
        state[6] = 0.0
        with pytest.raises(ValueError, match="Mass must be positive"):
            propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0)

    def test_negative_mu_raises(self):
        with pytest.raises(ValueError, match="Gravitational parameter"):
            propagate_taylor_j2(circular_array(), np.zeros(3), 1.0, -1.0, 1.0, 0.0)

    def test_zero_veff_with_thrust_raises(self):
        with pytest.raises(ValueError, match="exhaust velocity"):
            propagate_taylor_j2(circular_array(), [0.1, 0, 0], 1.0, 1.0, 0.0, 0.0)

    def test_zero_veff_without_thrust_allowed(self):
        state = circular_array()
        propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 0.0, 0.0)
        assert state[6] == 1.0

    def test_relaxed_validation_warns(self):
        """With STRICT_VALIDATION off the propagation proceeds."""
        state = circular_array()
        state[6] = -1.0
        with temp_config(STRICT_VALIDATION=False):
            with pytest.warns(UserWarning, match="Mass must be positive"):
                propagate_taylor_j2(state, np.zeros(3), 0.5, 1.0, 1.0, 0.0)
        assert state[6] == -1.0


class TestCollision:
    """Passing through the central body is reported."""

    def test_radial_infall_through_origin(self):
        """Starting at the centre collapses the step at once."""
        state = np.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 1.0])
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            with pytest.raises(StepCollapseError) as excinfo:
                propagate_taylor_j2(state, np.zeros(3), 1.0, 1.0, 1.0, 0.0)

        assert excinfo.value.iterations == 1
        assert excinfo.value.remaining == 1.0
        assert "central body" in str(excinfo.value)

    def test_collapse_is_an_iteration_failure(self):
        """Callers handling the iteration limit also see the collapse."""
        state = np.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 1.0])
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            with pytest.raises(IterationLimitExceededError):
                propagate_taylor_j2(state.copy(), np.zeros(3), 1.0, 1.0, 1.0, 0.0)
            with pytest.raises(PropagationError):
                canonical().propagate(state.copy(), np.zeros(3), -1.0)

    def test_trajectory_failure_does_not_touch_input(self):
        """propagate_trajectory works on a copy of the initial state."""
        prop = canonical()
        initial = SpacecraftState([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], 1.0)
        prop_limited = TaylorPropagator(1.0, 1.0,
                                        settings=TaylorSettings(max_iterations=1))
        with pytest.raises(IterationLimitExceededError):
            prop_limited.propagate_trajectory(initial, np.zeros(3), 0.0, 50.0)
        np.testing.assert_array_equal(initial.data, circular_array())
        assert prop.propagate_trajectory(initial, np.zeros(3), 0.0, 1.0).n_steps >= 1
