"""
Reference integrator built with heyoka.

The same equations of motion as ``dromos.taylor`` are written symbolically
and handed to heyoka's adaptive Taylor integrator, which differentiates
them automatically and compiles them with LLVM. Results from the two
implementations must agree to within the integration tolerances, which
makes this class the oracle for the hand-written recurrences.
"""

import math
import numpy as np
from typing import Optional
import heyoka as hy

# Runtime parameter layout of the compiled integrator
_PARAM_NAMES = ('Tx', 'Ty', 'Tz', 'mu', 'J2RG2', 'mass_rate')


class ReferenceSystem:
    """
    heyoka integrator of the thrusting J2 problem.

    Dynamics parameters (thrust, mu, J2RG2, mass flow) are runtime
    parameters, so a single compiled integrator serves every call.

    Parameters
    ----------
    compile : bool, optional
        Compile the integrator immediately (default: True). Compilation
        takes a few seconds.
    tol : float, optional
        Integration tolerance, heyoka's default (machine epsilon) if None
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, compile: bool = True, tol: Optional[float] = None):
        self._tol = tol
        self._cached_integrator = None
        self._cached_eom = self._build_eom()
        if compile:
            self._compile_integrator()

    def _build_eom(self):
        """
        Build symbolic equations of motion.

        Returns
        -------
        list of (var, rhs) tuples
            ODE system for ``hy.taylor_adaptive``, state order
            [x, y, z, vx, vy, vz, m]
        """
        x, y, z, vx, vy, vz, m = hy.make_vars("x", "y", "z", "vx", "vy", "vz", "m")
        Tx, Ty, Tz = hy.par[0], hy.par[1], hy.par[2]
        mu, J2RG2, mass_rate = hy.par[3], hy.par[4], hy.par[5]

        r2 = x**2 + y**2 + z**2
        r3 = r2 * hy.sqrt(r2)

        # J2 correction factors
        j2_term = 1.5 * J2RG2 / r2
        z2_r2 = z**2 / r2
        scale_xy = 1.0 + j2_term * (1.0 - 5.0 * z2_r2)
        scale_z = 1.0 + j2_term * (3.0 - 5.0 * z2_r2)

        return [
            (x, vx),
            (y, vy),
            (z, vz),
            (vx, -mu * x / r3 * scale_xy + Tx / m),
            (vy, -mu * y / r3 * scale_xy + Ty / m),
            (vz, -mu * z / r3 * scale_z + Tz / m),
            (m, mass_rate),
        ]

    def _compile_integrator(self):
        """Compile heyoka integrator (expensive operation)."""
        if self._cached_integrator is not None:
            return

        print("Compiling reference integrator...")
        kwargs = {}
        if self._tol is not None:
            kwargs['tol'] = self._tol
        self._cached_integrator = hy.taylor_adaptive(
            sys=self._cached_eom,
            state=[0.0] * 7,
            pars=[0.0] * len(_PARAM_NAMES),
            **kwargs
        )
        print("✓ Compilation complete")

    def compile(self):
        """
        Explicitly compile integrator if not already compiled.

        Returns
        -------
        self
            Returns self for method chaining
        """
        self._compile_integrator()
        return self

    # ========== PROPERTY ACCESS ==========
    @property
    def is_compiled(self) -> bool:
        return self._cached_integrator is not None

    @property
    def cached_eom(self):
        """Cached set of symbolic equations of motion"""
        return self._cached_eom

    # ========== PROPAGATION ==========
    def _load(self, state, thrust, mu, veff, J2RG2):
        """Compile if needed and load initial conditions and parameters."""
        if not self.is_compiled:
            self._compile_integrator()
        ta = self._cached_integrator
        assert ta is not None, "Integrator should be compiled"

        state = np.asarray(state, dtype=float)
        thrust = np.asarray(thrust, dtype=float)
        if state.shape != (7,):
            raise ValueError(f"State must have 7 components, got shape {state.shape}")
        if thrust.shape != (3,):
            raise ValueError(f"Thrust must have 3 components, got shape {thrust.shape}")

        thrust_norm = math.sqrt(float(thrust @ thrust))
        mass_rate = -thrust_norm / veff if thrust_norm > 0.0 else 0.0

        ta.time = 0.0
        ta.state[:] = state
        ta.pars[:] = [thrust[0], thrust[1], thrust[2], mu, J2RG2, mass_rate]
        return ta

    def propagate(self, state, thrust, duration: float, mu: float, veff: float,
                  J2RG2: float = 0.0) -> np.ndarray:
        """
        Propagate a state for ``duration`` and return the final state.

        Parameters
        ----------
        state : array_like
            Initial state [x, y, z, vx, vy, vz, m]
        thrust : array_like
            Constant thrust vector
        duration : float
            Propagation time, can be negative
        mu, veff, J2RG2 : float
            Dynamics parameters

        Returns
        -------
        np.ndarray
            Final state, shape (7,)
        """
        ta = self._load(state, thrust, mu, veff, J2RG2)
        ta.propagate_until(float(duration))

        if not np.all(np.isfinite(ta.state)):
            raise ValueError(
                f"Integration failed: state became invalid during propagation.\n"
                f"Initial state: {state}\n"
                f"Final time: {ta.time}\n"
                f"Final state: {ta.state}"
            )
        return ta.state.copy()

    def taylor_coefficients(self, state, thrust, order: int, mu: float,
                            veff: float, J2RG2: float = 0.0) -> np.ndarray:
        """
        Normalised Taylor coefficients of the state computed by heyoka.

        Returns
        -------
        np.ndarray
            Shape (order + 1, 7), row k is the k-th derivative divided by k!

        Raises
        ------
        ValueError
            If ``order`` exceeds the order of the compiled integrator
        """
        ta = self._load(state, thrust, mu, veff, J2RG2)
        if order > ta.order:
            raise ValueError(
                f"Requested order {order} exceeds integrator order {ta.order}"
            )
        ta.step(write_tc=True)
        return ta.tc[:, :order + 1].T.copy()

    def __repr__(self):
        status = "compiled" if self.is_compiled else "not compiled"
        return f"ReferenceSystem({status})"
