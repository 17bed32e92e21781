"""
Global Configuration for Dromos Package
=======================================

This module provides package-wide configuration settings that users can modify
to control input validation and default plotting options, together with the
immutable ``TaylorSettings`` value that every propagation call receives.

Examples
--------
View current configuration:

>>> import dromos
>>> print(dromos.config)

Modify settings:

>>> dromos.config.STRICT_VALIDATION = False  # Warn instead of raising
>>> dromos.config.DEFAULT_PLOT_POINTS = 2000  # More detailed plots

Reset to defaults:

>>> dromos.config.reset()

Temporarily modify settings:

>>> with dromos.temp_config(STRICT_VALIDATION=False):
...     # Validation failures only warn inside this block
...     dromos.propagate_taylor_j2(state, thrust, 1.0, mu=1.0, veff=1.0, J2RG2=0.0)

Notes
-----
The package configuration never changes the numerical result of a
propagation. Tolerances and budgets travel with each call through
``TaylorSettings``.
"""

from dataclasses import dataclass
from contextlib import contextmanager
import math


@dataclass(frozen=True)
class TaylorSettings:
    """
    Accuracy and budget parameters for one Taylor propagation.

    Attributes
    ----------
    abs_tol_exponent : int
        Base-10 exponent of the absolute tolerance. Default: -10
    rel_tol_exponent : int
        Base-10 exponent of the relative tolerance. Default: -10
    max_iterations : int
        Maximum number of steps before giving up. Default: 100000
    max_order : int
        Maximum polynomial order the tolerances may request. Default: 3000
    """
    abs_tol_exponent: int = -10
    rel_tol_exponent: int = -10
    max_iterations: int = 100000
    max_order: int = 3000

    def __post_init__(self):
        if self.abs_tol_exponent >= 0:
            raise ValueError(
                f"abs_tol_exponent must be negative, got {self.abs_tol_exponent}"
            )
        if self.rel_tol_exponent >= 0:
            raise ValueError(
                f"rel_tol_exponent must be negative, got {self.rel_tol_exponent}"
            )
        if self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be at least 1, got {self.max_iterations}"
            )
        if self.max_order < 1:
            raise ValueError(f"max_order must be at least 1, got {self.max_order}")

    @property
    def eps_abs(self) -> float:
        """Absolute tolerance, 10**abs_tol_exponent"""
        return math.pow(10.0, self.abs_tol_exponent)

    @property
    def eps_rel(self) -> float:
        """Relative tolerance, 10**rel_tol_exponent"""
        return math.pow(10.0, self.rel_tol_exponent)


@dataclass
class DromosConfig:
    """
    Global configuration for Dromos package.

    Attributes
    ----------
    EQUALITY_RTOL : float
        Relative tolerance for floating-point equality comparisons.
        Default: 1e-12
    EQUALITY_ATOL : float
        Absolute tolerance for floating-point equality comparisons.
        Default: 1e-14
    STRICT_VALIDATION : bool
        If True, validation failures raise exceptions.
        If False, validation failures issue warnings.
        Default: True
    DEFAULT_PLOT_POINTS : int
        Default number of points for trajectory plotting.
        Default: 1000
    DEFAULT_BODY_COLOR : str
        Default color for the central body in plots.
        Default: 'lightblue'
    DEFAULT_TRAJ_COLOR : str
        Default color for trajectory lines in plots.
        Default: 'red'
    DEFAULT_TRAJ_COLOR_ADD : str
        Default color for trajectories added to an existing plot.
        Default: 'blue'
    DEFAULT_BODY_OPACITY : float
        Default opacity for the central body sphere (0.0 to 1.0).
        Default: 0.6
    """

    # Numerical tolerance for equality comparisons
    EQUALITY_RTOL: float = 1e-12
    EQUALITY_ATOL: float = 1e-14

    # Validation behavior
    STRICT_VALIDATION: bool = True

    # Plotting defaults
    DEFAULT_PLOT_POINTS: int = 1000
    DEFAULT_BODY_COLOR: str = 'lightblue'
    DEFAULT_TRAJ_COLOR: str = 'red'
    DEFAULT_TRAJ_COLOR_ADD: str = 'blue'
    DEFAULT_BODY_OPACITY: float = 0.6

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import dromos
        >>> dromos.config.STRICT_VALIDATION = False  # Modify
        >>> dromos.config.reset()  # Back to defaults
        >>> dromos.config.STRICT_VALIDATION
        True
        """
        defaults = DromosConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["DromosConfig:"]
        lines.append("  Numerical Tolerances:")
        lines.append(f"    EQUALITY_RTOL = {self.EQUALITY_RTOL}")
        lines.append(f"    EQUALITY_ATOL = {self.EQUALITY_ATOL}")
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        lines.append("  Plotting:")
        lines.append(f"    DEFAULT_PLOT_POINTS = {self.DEFAULT_PLOT_POINTS}")
        lines.append(f"    DEFAULT_BODY_COLOR = '{self.DEFAULT_BODY_COLOR}'")
        lines.append(f"    DEFAULT_TRAJ_COLOR = '{self.DEFAULT_TRAJ_COLOR}'")
        lines.append(f"    DEFAULT_TRAJ_COLOR_ADD = '{self.DEFAULT_TRAJ_COLOR_ADD}'")
        lines.append(f"    DEFAULT_BODY_OPACITY = {self.DEFAULT_BODY_OPACITY}")
        return "\n".join(lines)


# Global configuration instance
config = DromosConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    old_values = {}
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise AttributeError(
                f"DromosConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )
        old_values[key] = getattr(config, key)
        setattr(config, key, value)

    try:
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
