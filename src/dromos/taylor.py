"""
Taylor coefficient generation by automatic differentiation.

The equations of motion of a spacecraft around an oblate body under a
constant inertial thrust,

    r'    = v
    vx,y' = -mu (x, y) / r^3 * (1 + 3/2 J2 R^2 / r^2 * (1 - 5 z^2 / r^2)) + Tx,y / m
    vz'   = -mu z / r^3 * (1 + 3/2 J2 R^2 / r^2 * (3 - 5 z^2 / r^2)) + Tz / m
    m'    = -|T| / veff

are decomposed into elementary products, sums and powers. Each of those
obeys a recurrence that yields its order-n Taylor coefficient from the
coefficients of its arguments up to order n, so the whole series of the
state can be built order by order without symbolic manipulation.

State vector layout: [x, y, z, vx, vy, vz, m]
"""

import math
import numpy as np

# Exponents of the power recurrences
_ALPHA_INV_R3 = -1.5   # (r^2)^(-3/2)
_BETA_INV = -1.0       # 1/m and 1/r^2

STATE_SIZE = 7


class AuxiliaryTable:
    """
    Named per-order intermediate quantities of the recurrence.

    Every field is a 1-D array indexed by order. A field at order ``n`` is
    computed only from fields at orders ``<= n``, in the order listed in
    ``FIELDS``.

    Parameters
    ----------
    capacity : int
        Number of orders that can be stored
    """
    FIELDS = (
        'x2', 'y2', 'z2',               # squared coordinates
        'rho2', 'r2',                   # x^2 + y^2, x^2 + y^2 + z^2
        'inv_r3',                       # 1/r^3
        'mu_inv_r3',                    # -mu/r^3
        'grav_x', 'grav_y', 'grav_z',   # -mu/r^3 * (x, y, z)
        'inv_m',                        # 1/m
        'unit',                         # the constant 1
        'inv_r2',                       # 1/r^2
        'j2_inv_r2',                    # 3/2 J2 R^2 / r^2
        'z2_r2',                        # z^2 / r^2
        'lat_xy', 'lat_z',              # 1 - 5 z^2/r^2, 3 - 5 z^2/r^2
        'j2_xy', 'j2_z',                # j2_inv_r2 * lat_xy, j2_inv_r2 * lat_z
        'scale_xy', 'scale_z',          # 1 + j2_xy, 1 + j2_z
        'pert_x', 'pert_y', 'pert_z',   # gravity with J2 correction
        'acc_x', 'acc_y', 'acc_z',      # total acceleration incl. thrust
    )

    def __init__(self, capacity: int):
        self._storage = np.zeros((len(self.FIELDS), capacity))
        self._bind()

    def _bind(self):
        for index, name in enumerate(self.FIELDS):
            setattr(self, name, self._storage[index])

    @property
    def capacity(self) -> int:
        return self._storage.shape[1]

    def resize(self, capacity: int):
        """Grow storage to ``capacity`` orders, keeping existing values."""
        if capacity <= self.capacity:
            return
        storage = np.zeros((len(self.FIELDS), capacity))
        storage[:, :self.capacity] = self._storage
        self._storage = storage
        self._bind()

    def clear(self, order: int):
        """Zero orders ``0..order-1``."""
        self._storage[:, :order] = 0.0

    def as_dict(self, order: int) -> dict:
        """Copy of orders ``0..order-1`` of every field keyed by name."""
        return {name: getattr(self, name)[:order].copy() for name in self.FIELDS}


class TaylorBuffers:
    """
    Reusable coefficient and auxiliary tables.

    The coefficient table has one 7-component row per order ``0..capacity``,
    the auxiliary table one entry per order ``0..capacity-1``. Storage only
    grows; ``prepare`` zeroes the part that a step at a given order uses.

    Parameters
    ----------
    capacity : int, optional
        Highest order to reserve storage for (default: 32)
    """
    def __init__(self, capacity: int = 32):
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self._coefficients = np.zeros((capacity + 1, STATE_SIZE))
        self._aux = AuxiliaryTable(capacity)

    @property
    def capacity(self) -> int:
        """Highest order currently storable without reallocation"""
        return self._aux.capacity

    @property
    def aux(self) -> AuxiliaryTable:
        return self._aux

    def reserve(self, order: int):
        """Make room for a step at ``order``, growing geometrically."""
        if order <= self.capacity:
            return
        capacity = max(order, 2 * self.capacity)
        coefficients = np.zeros((capacity + 1, STATE_SIZE))
        coefficients[:self._coefficients.shape[0]] = self._coefficients
        self._coefficients = coefficients
        self._aux.resize(capacity)

    def prepare(self, order: int):
        """Reserve and zero the rows used by a step at ``order``."""
        self.reserve(order)
        self._coefficients[:order + 1] = 0.0
        self._aux.clear(order)

    def coefficients(self, order: int) -> np.ndarray:
        """View of coefficient rows ``0..order``."""
        return self._coefficients[:order + 1]


def _cauchy(a, b, n):
    """Order-n coefficient of the product of two series."""
    return np.dot(a[:n + 1], b[n::-1])


def _power(base, result, n, exponent):
    """
    Order-n coefficient (n > 0) of ``base**exponent``.

    ``result`` holds the coefficients of the power for orders ``0..n-1``.
    """
    j = np.arange(n)
    weights = exponent * n - j * (exponent + 1.0)
    return np.dot(weights * base[n:0:-1], result[:n]) / (n * base[0])


def taylor_coefficients(state, thrust, order: int, mu: float, veff: float,
                        J2RG2: float, buffers: TaylorBuffers | None = None
                        ) -> np.ndarray:
    """
    Compute the Taylor coefficients of the state up to ``order``.

    Parameters
    ----------
    state : array_like
        Current state [x, y, z, vx, vy, vz, m], mass must be positive
    thrust : array_like
        Constant thrust vector [Tx, Ty, Tz]
    order : int
        Highest coefficient to compute (>= 1)
    mu : float
        Central body gravitational parameter
    veff : float
        Effective exhaust velocity (Isp * g0)
    J2RG2 : float
        J2 times the body radius squared
    buffers : TaylorBuffers, optional
        Storage to fill. A new one sized to ``order`` is created if omitted.

    Returns
    -------
    np.ndarray
        View of shape (order + 1, 7) into the buffer; row k is the k-th
        derivative of the state divided by k!. Row 0 is the state itself.

    Notes
    -----
    No check is done on the mass or radius; a zero value makes the
    coefficients infinite.
    """
    if order < 1:
        raise ValueError(f"Order must be at least 1, got {order}")
    if buffers is None:
        buffers = TaylorBuffers(order)
    buffers.prepare(order)

    x = buffers.coefficients(order)
    a = buffers.aux
    x[0] = state

    tx, ty, tz = (float(component) for component in thrust)
    thrust_norm = math.sqrt(tx * tx + ty * ty + tz * tz)
    mass_rate = -thrust_norm / veff if thrust_norm > 0.0 else 0.0

    # Column views of the coefficient table
    px, py, pz = x[:, 0], x[:, 1], x[:, 2]
    mass = x[:, 6]

    for n in range(order):
        a.x2[n] = _cauchy(px, px, n)
        a.y2[n] = _cauchy(py, py, n)
        a.z2[n] = _cauchy(pz, pz, n)
        a.rho2[n] = a.x2[n] + a.y2[n]
        a.r2[n] = a.rho2[n] + a.z2[n]

        if n == 0:
            a.inv_r3[0] = math.sqrt(1.0 / (a.r2[0] * a.r2[0] * a.r2[0]))
            a.inv_m[0] = 1.0 / mass[0]
            a.inv_r2[0] = 1.0 / a.r2[0]
            a.unit[0] = 1.0
        else:
            a.inv_r3[n] = _power(a.r2, a.inv_r3, n, _ALPHA_INV_R3)
            a.inv_m[n] = _power(mass, a.inv_m, n, _BETA_INV)
            a.inv_r2[n] = _power(a.r2, a.inv_r2, n, _BETA_INV)
            a.unit[n] = 0.0

        a.mu_inv_r3[n] = -mu * a.inv_r3[n]
        a.grav_x[n] = _cauchy(px, a.mu_inv_r3, n)
        a.grav_y[n] = _cauchy(py, a.mu_inv_r3, n)
        a.grav_z[n] = _cauchy(pz, a.mu_inv_r3, n)

        # Oblateness correction
        a.j2_inv_r2[n] = 1.5 * J2RG2 * a.inv_r2[n]
        a.z2_r2[n] = _cauchy(a.z2, a.inv_r2, n)
        a.lat_xy[n] = a.unit[n] - 5.0 * a.z2_r2[n]
        a.lat_z[n] = 3.0 * a.unit[n] - 5.0 * a.z2_r2[n]
        a.j2_xy[n] = _cauchy(a.j2_inv_r2, a.lat_xy, n)
        a.j2_z[n] = _cauchy(a.j2_inv_r2, a.lat_z, n)
        a.scale_xy[n] = a.unit[n] + a.j2_xy[n]
        a.scale_z[n] = a.unit[n] + a.j2_z[n]
        a.pert_x[n] = _cauchy(a.grav_x, a.scale_xy, n)
        a.pert_y[n] = _cauchy(a.grav_y, a.scale_xy, n)
        a.pert_z[n] = _cauchy(a.grav_z, a.scale_z, n)

        a.acc_x[n] = a.pert_x[n] + a.inv_m[n] * tx
        a.acc_y[n] = a.pert_y[n] + a.inv_m[n] * ty
        a.acc_z[n] = a.pert_z[n] + a.inv_m[n] * tz

        # Integrate once: order n of the derivative is order n+1 of the state
        scale = 1.0 / (n + 1)
        x[n + 1, 0:3] = x[n, 3:6] * scale
        x[n + 1, 3] = a.acc_x[n] * scale
        x[n + 1, 4] = a.acc_y[n] * scale
        x[n + 1, 5] = a.acc_z[n] * scale
        x[n + 1, 6] = mass_rate if n == 0 else 0.0

    return x
