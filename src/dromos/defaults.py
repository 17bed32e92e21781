"""
Default Bodies and Propagator Configurations
============================================

Predefined central bodies and factory functions for commonly-used
propagators.

Examples
--------
>>> from dromos.defaults import earth_j2
>>> prop = earth_j2(veff=3000 * 9.80665e-3)  # Isp = 3000 s, km/s
"""
from .state import BodyParams
from .propagator import TaylorPropagator

"""
Predefined Solar System bodies
Values taken from Vallado, Fundamentals of Astrodynamics, Fifth Edition, 2022, Appendix D
Units referenced to km (i.e. mu = km^3/s^2)
"""
EARTH = BodyParams(
    mu=3.986004415e5,
    radius=6378.1363,
    J2=1.0826269e-3,
    name='Earth'
)

MOON = BodyParams(
    mu=4.902799e3,
    radius=1738.0,
    J2=2.027e-4,
    name='Moon'
)

MARS = BodyParams(
    mu=4.305e4,
    radius=3397.2,
    J2=1.964e-3,
    name='Mars'
)

SUN = BodyParams(
    mu=1.32712428e11,
    radius=6.96e5,
    J2=None,
    name='Sun'
)

# Nondimensional body: mu = 1, unit radius
CANONICAL = BodyParams(
    mu=1.0,
    radius=1.0,
    J2=None,
    name='Canonical'
)

# Standard gravity [km/s^2] for Isp conversions
G0 = 9.80665e-3


def earth_2body(veff, settings=None):
    """
    Create a point-mass Earth propagator.

    Parameters
    ----------
    veff : float
        Effective exhaust velocity [km/s]
    settings : TaylorSettings, optional
        Tolerances and budgets

    Returns
    -------
    TaylorPropagator
    """
    return TaylorPropagator.from_body(EARTH, veff, perturbations=(),
                                      settings=settings)


def earth_j2(veff, settings=None):
    """
    Create an Earth propagator with J2 oblateness.

    Parameters
    ----------
    veff : float
        Effective exhaust velocity [km/s]
    settings : TaylorSettings, optional
        Tolerances and budgets

    Returns
    -------
    TaylorPropagator
    """
    return TaylorPropagator.from_body(EARTH, veff, settings=settings)


def mars_j2(veff, settings=None):
    """Create a Mars propagator with J2 oblateness."""
    return TaylorPropagator.from_body(MARS, veff, settings=settings)


def canonical(veff=1.0, settings=None):
    """
    Create a propagator in canonical units (mu = 1, no oblateness).

    A circular orbit of unit radius has unit speed and period 2π.
    """
    return TaylorPropagator.from_body(CANONICAL, veff, perturbations=(),
                                      settings=settings)
