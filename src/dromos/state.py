"""
State and body parameter containers.

``SpacecraftState`` owns the 7-component vector [x, y, z, vx, vy, vz, m]
that the propagator mutates in place. ``BodyParams`` is the immutable
description of a central body used by the convenience constructors.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional
from .config import config


@dataclass(frozen=True)
class BodyParams:
    """
    Immutable parameters for a central body.

    Attributes
    ----------
    mu : float
        Gravitational parameter [km³/s²]
    radius : float
        Equatorial radius [km]
    J2 : float, optional
        J2 zonal harmonic coefficient [dimensionless]
        Required if J2 perturbations are enabled
    name : str, optional
        Body identifier
    """
    mu: float
    radius: float
    J2: Optional[float] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {self.mu}")
        if self.radius <= 0:
            raise ValueError(f"Radius must be positive, got {self.radius}")
        if self.J2 is not None and abs(self.J2) > 1:
            raise ValueError(f"J2 coefficient seems unrealistic: {self.J2}")

    @property
    def J2RG2(self) -> float:
        """J2 times the equatorial radius squared [km²], zero without J2"""
        if self.J2 is None:
            return 0.0
        return self.J2 * self.radius**2


class SpacecraftState:
    """
    Position, velocity and mass of a spacecraft.

    The state is stored in a single writeable float array of length 7 which
    the propagator updates in place. ``position`` and ``velocity`` are views
    into that array, so writes through them change the state.

    Parameters
    ----------
    position : array_like
        Position vector [x, y, z]
    velocity : array_like
        Velocity vector [vx, vy, vz]
    mass : float
        Spacecraft mass
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, position, velocity, mass: float):
        position = np.asarray(position, dtype=float)
        velocity = np.asarray(velocity, dtype=float)
        if position.shape != (3,):
            raise ValueError(f"Position must have 3 components, got shape {position.shape}")
        if velocity.shape != (3,):
            raise ValueError(f"Velocity must have 3 components, got shape {velocity.shape}")

        self._data = np.empty(7)
        self._data[0:3] = position
        self._data[3:6] = velocity
        self._data[6] = float(mass)

    @classmethod
    def from_array(cls, array) -> "SpacecraftState":
        """Build a state from a 7-element array [x, y, z, vx, vy, vz, m]."""
        array = np.asarray(array, dtype=float)
        if array.shape != (7,):
            raise ValueError(f"State array must have 7 components, got shape {array.shape}")
        return cls(array[0:3], array[3:6], array[6])

    # ========== PROPERTY ACCESS ==========
    @property
    def data(self) -> np.ndarray:
        """Underlying writeable array [x, y, z, vx, vy, vz, m]"""
        return self._data

    @property
    def position(self) -> np.ndarray:
        """Position view [x, y, z]"""
        return self._data[0:3]

    @position.setter
    def position(self, value):
        self._data[0:3] = value

    @property
    def velocity(self) -> np.ndarray:
        """Velocity view [vx, vy, vz]"""
        return self._data[3:6]

    @velocity.setter
    def velocity(self, value):
        self._data[3:6] = value

    @property
    def mass(self) -> float:
        """Spacecraft mass"""
        return float(self._data[6])

    @mass.setter
    def mass(self, value: float):
        self._data[6] = value

    @property
    def radius(self) -> float:
        """Distance from the central body"""
        return float(np.linalg.norm(self._data[0:3]))

    # ========== UTILITY METHODS ==========
    def copy(self) -> "SpacecraftState":
        """Independent copy of this state."""
        return SpacecraftState.from_array(self._data)

    def to_array(self) -> np.ndarray:
        """Copy of the state as a 7-element array."""
        return self._data.copy()

    # ========== SPECIAL METHODS ==========
    def __repr__(self) -> str:
        r = np.array2string(self.position, precision=6)
        v = np.array2string(self.velocity, precision=6)
        return f"SpacecraftState(r={r}, v={v}, m={self.mass:.6g})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, SpacecraftState):
            return NotImplemented
        return bool(np.allclose(self._data, other._data,
                                rtol=config.EQUALITY_RTOL,
                                atol=config.EQUALITY_ATOL))

    __hash__ = None
