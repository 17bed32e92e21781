"""
Adaptive Taylor propagation of a thrusting spacecraft around an oblate body.

Each step follows Jorba & Zou, "A software package for the numerical
integration of ODEs by means of high-order Taylor methods" (2005):

1. the tolerance and the size of the state select the polynomial order,
2. the Taylor coefficients are generated up to that order,
3. the two highest-order coefficients estimate the radius of convergence,
   which divided by e^2 gives the step,
4. the truncated series is summed to advance the state.

Steps repeat until the requested duration has been consumed.
"""

import math
import threading
import numpy as np
from typing import Callable, Optional, Union, TYPE_CHECKING

from .config import TaylorSettings
from .state import BodyParams, SpacecraftState
from .taylor import TaylorBuffers, taylor_coefficients, STATE_SIZE
from .utils import (
    infinity_norm, validation_error,
    OrderExceededError, IterationLimitExceededError, StepCollapseError
)
if TYPE_CHECKING:
    from .trajectory import Trajectory

# Safety factor dividing the estimated radius of convergence
STEP_SAFETY_FACTOR = math.e * math.e

# Called after every step with (elapsed, step, order, coefficients)
StepCallback = Callable[[float, float, int, np.ndarray], None]


# ========== STEP CONTROL ==========
def select_order(xm: float, eps_abs: float, eps_rel: float) -> int:
    """
    Polynomial order needed to reach the tolerance.

    Parameters
    ----------
    xm : float
        Infinity norm of the current state
    eps_abs, eps_rel : float
        Absolute and relative tolerances

    Returns
    -------
    int
        ceil(-0.5 ln(eps) + 1) with eps the tolerance in force
    """
    eps_m = eps_abs if eps_rel * xm < eps_abs else eps_rel
    return int(math.ceil(-0.5 * math.log(eps_m) + 1.0))


def _root(numerator: float, denominator: float, degree: int) -> float:
    if denominator == 0.0:
        return math.inf
    return math.pow(numerator / denominator, 1.0 / degree)


def estimate_step(coefficients: np.ndarray, order: int, xm: float,
                  eps_abs: float, eps_rel: float, remaining: float) -> float:
    """
    Jorba's step size estimate clamped to the remaining duration.

    Parameters
    ----------
    coefficients : np.ndarray
        Taylor coefficient table of shape (order + 1, 7)
    order : int
        Order of the table (>= 2)
    xm : float
        Infinity norm of the state the table was built from
    eps_abs, eps_rel : float
        Absolute and relative tolerances
    remaining : float
        Signed duration left to propagate

    Returns
    -------
    float
        Step with the sign of ``remaining`` and magnitude not above it
    """
    xm_n = infinity_norm(coefficients[order])
    xm_n1 = infinity_norm(coefficients[order - 1])

    # Absolute tolerance regime measures the coefficients against 1
    scale = 1.0 if eps_rel * xm < eps_abs else xm
    rho_m = min(_root(scale, xm_n, order), _root(scale, xm_n1, order - 1))
    step = rho_m / STEP_SAFETY_FACTOR

    if remaining < 0:
        step = -step
    if abs(step) > abs(remaining):
        step = remaining
    return step


def sum_series(state: np.ndarray, coefficients: np.ndarray, order: int,
               step: float):
    """Advance ``state`` in place by the truncated series evaluated at ``step``."""
    powers = np.cumprod(np.full(order, step))
    state += powers @ coefficients[1:order + 1]


def taylor_step(state: np.ndarray, thrust, remaining: float, order: int,
                mu: float, veff: float, J2RG2: float, xm: float,
                eps_abs: float, eps_rel: float,
                buffers: Optional[TaylorBuffers] = None) -> float:
    """
    Perform a single Taylor step in place.

    Parameters
    ----------
    state : np.ndarray
        Writeable state [x, y, z, vx, vy, vz, m], updated in place
    thrust : array_like
        Constant thrust vector
    remaining : float
        Signed duration left; the step never exceeds it
    order : int
        Polynomial order (>= 2)
    mu, veff, J2RG2 : float
        Dynamics parameters, see ``taylor_coefficients``
    xm : float
        Infinity norm of ``state``
    eps_abs, eps_rel : float
        Absolute and relative tolerances
    buffers : TaylorBuffers, optional
        Scratch storage; after the call it holds the coefficients used

    Returns
    -------
    float
        The step taken
    """
    if order < 2:
        raise ValueError(f"Step control needs order >= 2, got {order}")
    coefficients = taylor_coefficients(state, thrust, order, mu, veff, J2RG2,
                                       buffers)
    step = estimate_step(coefficients, order, xm, eps_abs, eps_rel, remaining)
    sum_series(state, coefficients, order, step)
    return step


def _propagate(state: np.ndarray, thrust, duration: float, mu: float,
               veff: float, J2RG2: float, settings: TaylorSettings,
               buffers: TaylorBuffers,
               on_step: Optional[StepCallback] = None) -> float:
    """Step loop shared by every public entry point."""
    eps_abs = settings.eps_abs
    eps_rel = settings.eps_rel
    remaining = duration

    for iteration in range(settings.max_iterations):
        xm = infinity_norm(state)
        order = select_order(xm, eps_abs, eps_rel)
        if order > settings.max_order:
            raise OrderExceededError(order, settings.max_order)

        step = taylor_step(state, thrust, remaining, order, mu, veff, J2RG2,
                           xm, eps_abs, eps_rel, buffers)

        if not np.all(np.isfinite(state)):
            raise StepCollapseError(iteration + 1, remaining, state)
        if on_step is not None:
            on_step(duration - remaining, step, order,
                    buffers.coefficients(order))

        if abs(step) >= abs(remaining):
            return step
        remaining -= step

    raise IterationLimitExceededError(settings.max_iterations, remaining)


# ========== INPUT VALIDATION ==========
def _state_array(state) -> np.ndarray:
    """Return the writeable float array that backs ``state``."""
    if isinstance(state, SpacecraftState):
        array = state.data
    elif isinstance(state, np.ndarray):
        array = state
    else:
        raise TypeError(
            f"State must be a SpacecraftState or a numpy array so it can be "
            f"updated in place, got {type(state).__name__}"
        )
    if array.shape != (STATE_SIZE,):
        raise ValueError(f"State must have 7 components, got shape {array.shape}")
    if array.dtype != np.float64:
        raise ValueError(f"State array must be float64, got {array.dtype}")
    if not array.flags.writeable:
        raise ValueError("State array must be writeable")
    if not np.all(np.isfinite(array)):
        raise ValueError(f"State contains NaN or Inf values: {array}")
    return array


def _thrust_array(thrust) -> np.ndarray:
    thrust = np.asarray(thrust, dtype=float)
    if thrust.shape != (3,):
        raise ValueError(f"Thrust must have 3 components, got shape {thrust.shape}")
    if not np.all(np.isfinite(thrust)):
        raise ValueError(f"Thrust contains NaN or Inf values: {thrust}")
    return thrust


def _check_parameters(array: np.ndarray, thrust: np.ndarray, mu: float,
                      veff: float):
    if array[6] <= 0:
        validation_error(f"Mass must be positive, got {array[6]}")
    if mu <= 0:
        validation_error(f"Gravitational parameter must be positive, got {mu}")
    if veff <= 0 and np.any(thrust != 0.0):
        validation_error(
            f"Effective exhaust velocity must be positive when thrusting, got {veff}"
        )


# ========== PUBLIC INTERFACE ==========
def propagate_taylor_j2(state: Union[SpacecraftState, np.ndarray], thrust,
                        duration: float, mu: float, veff: float, J2RG2: float,
                        settings: Optional[TaylorSettings] = None,
                        buffers: Optional[TaylorBuffers] = None) -> float:
    """
    Propagate a state in place under gravity, J2 and a constant thrust.

    Parameters
    ----------
    state : SpacecraftState or np.ndarray
        Initial state [x, y, z, vx, vy, vz, m]. On output contains the
        propagated state.
    thrust : array_like
        Inertially constant thrust vector [Tx, Ty, Tz]
    duration : float
        Propagation time, can be negative
    mu : float
        Central body gravitational parameter
    veff : float
        Effective exhaust velocity (Isp * g0)
    J2RG2 : float
        J2 times the body radius squared, zero for Keplerian gravity
    settings : TaylorSettings, optional
        Tolerances and budgets. ``TaylorSettings()`` if omitted.
    buffers : TaylorBuffers, optional
        Scratch storage to reuse across calls

    Returns
    -------
    float
        Length of the last step taken

    Raises
    ------
    OrderExceededError
        If the tolerances need an order above ``settings.max_order``
    IterationLimitExceededError
        If the duration is not consumed within ``settings.max_iterations``
        steps. ``state`` then holds the last computed state.
    StepCollapseError
        If the state stops being finite, e.g. when the trajectory passes
        through the central body
    """
    if settings is None:
        settings = TaylorSettings()
    array = _state_array(state)
    thrust = _thrust_array(thrust)
    _check_parameters(array, thrust, mu, veff)
    if buffers is None:
        buffers = TaylorBuffers()
    return _propagate(array, thrust, float(duration), float(mu), float(veff),
                      float(J2RG2), settings, buffers)


class TaylorPropagator:
    """
    Reusable propagator for one central body and engine.

    Holds the dynamics parameters, the settings and one scratch buffer per
    calling thread, reserved up to ``settings.max_order`` so repeated
    propagations do not reallocate. Concurrent calls from different threads
    never share scratch storage.

    Parameters
    ----------
    mu : float
        Central body gravitational parameter
    veff : float
        Effective exhaust velocity (Isp * g0), must be positive whenever a
        propagation thrusts
    J2RG2 : float, optional
        J2 times the body radius squared (default: 0, no oblateness)
    settings : TaylorSettings, optional
        Tolerances and budgets (default: ``TaylorSettings()``)
    name : str, optional
        Label used in plots and representations
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, mu: float, veff: float, J2RG2: float = 0.0,
                 settings: Optional[TaylorSettings] = None,
                 name: Optional[str] = None):
        if mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {mu}")
        self._mu = float(mu)
        self._veff = float(veff)
        self._J2RG2 = float(J2RG2)
        self._settings = settings if settings is not None else TaylorSettings()
        self._name = name
        self._local = threading.local()

    @classmethod
    def from_body(cls, body: BodyParams, veff: float,
                  perturbations: tuple = ('J2',),
                  settings: Optional[TaylorSettings] = None) -> "TaylorPropagator":
        """
        Build a propagator around a predefined body.

        Parameters
        ----------
        body : BodyParams
            Central body
        veff : float
            Effective exhaust velocity
        perturbations : tuple of str, optional
            ``('J2',)`` (default) or ``()`` for point-mass gravity
        settings : TaylorSettings, optional
            Tolerances and budgets
        """
        for pert in perturbations:
            if pert != 'J2':
                raise ValueError(
                    f"Unknown perturbation '{pert}'. Valid options: ('J2',)"
                )
        J2RG2 = 0.0
        if 'J2' in perturbations:
            if body.J2 is None:
                raise ValueError("J2 perturbation requested but body.J2 is None")
            J2RG2 = body.J2RG2
        return cls(body.mu, veff, J2RG2, settings=settings, name=body.name)

    # ========== PROPERTY ACCESS ==========
    @property
    def mu(self) -> float:
        return self._mu

    @property
    def veff(self) -> float:
        return self._veff

    @property
    def J2RG2(self) -> float:
        return self._J2RG2

    @property
    def settings(self) -> TaylorSettings:
        return self._settings

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def buffers(self) -> TaylorBuffers:
        """Scratch storage of the calling thread; holds its last step"""
        buffers = getattr(self._local, "buffers", None)
        if buffers is None:
            buffers = TaylorBuffers(self._settings.max_order)
            self._local.buffers = buffers
        return buffers

    # ========== PROPAGATION ==========
    def propagate(self, state: Union[SpacecraftState, np.ndarray], thrust,
                  duration: float) -> float:
        """
        Propagate ``state`` in place for ``duration``.

        Returns
        -------
        float
            Length of the last step taken
        """
        return propagate_taylor_j2(state, thrust, duration, self._mu,
                                   self._veff, self._J2RG2,
                                   settings=self._settings,
                                   buffers=self.buffers)

    def propagate_trajectory(self, initial_state, thrust, t_start: float,
                             t_end: float) -> "Trajectory":
        """
        Propagate from t_start to t_end, recording every step.

        The initial state is not modified.

        Parameters
        ----------
        initial_state : SpacecraftState or array_like
            State [x, y, z, vx, vy, vz, m] at t_start
        thrust : array_like
            Constant thrust vector
        t_start, t_end : float
            Start and end times; t_end < t_start propagates backward

        Returns
        -------
        Trajectory
            Step record with dense output over [t_start, t_end]
        """
        from .trajectory import Trajectory

        if isinstance(initial_state, SpacecraftState):
            array = initial_state.to_array()
        else:
            array = np.array(initial_state, dtype=float)
        array = _state_array(array)
        thrust = _thrust_array(thrust)
        _check_parameters(array, thrust, self._mu, self._veff)

        t_start = float(t_start)
        t_end = float(t_end)
        trajectory = Trajectory(self, thrust, t_start)
        _propagate(array, thrust, t_end - t_start, self._mu, self._veff,
                   self._J2RG2, self._settings, self.buffers,
                   on_step=trajectory._record_step)
        trajectory._finalize(t_end, array)
        return trajectory

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        parts = [f"TaylorPropagator(mu={self._mu:.6e}", f"veff={self._veff:.6e}"]
        if self._J2RG2 != 0.0:
            parts.append(f"J2RG2={self._J2RG2:.6e}")
        if self._name:
            parts.append(f"name='{self._name}'")
        return ", ".join(parts) + ")"
