"""
Dromos: Taylor Series Propagation of Low-Thrust Spacecraft

A Python package propagating spacecraft under two-body gravity, J2
oblateness and a constant thrust with an adaptive high-order Taylor method
built on automatic differentiation.
"""

# Configuration
from .config import config, temp_config, TaylorSettings, DromosConfig

# Core classes and functions
from .state import SpacecraftState, BodyParams
from .taylor import TaylorBuffers, AuxiliaryTable, taylor_coefficients
from .propagator import (
    TaylorPropagator, propagate_taylor_j2, taylor_step,
    select_order, estimate_step, sum_series
)
from .trajectory import Trajectory
from .reference import ReferenceSystem
from .utils import (
    PropagationError, OrderExceededError, IterationLimitExceededError,
    StepCollapseError, Timer
)

# Commonly-used bodies and factories
from .defaults import EARTH, MOON, MARS, SUN, CANONICAL, G0
from .defaults import earth_2body, earth_j2, mars_j2, canonical

# Package metadata
__version__ = "0.1.0"

# Define what gets imported with "from dromos import *"
__all__ = [
    # Configuration
    "config",
    "temp_config",
    "TaylorSettings",
    "DromosConfig",
    # Classes
    "SpacecraftState",
    "BodyParams",
    "TaylorBuffers",
    "AuxiliaryTable",
    "TaylorPropagator",
    "Trajectory",
    "ReferenceSystem",
    "Timer",
    # Functions
    "taylor_coefficients",
    "propagate_taylor_j2",
    "taylor_step",
    "select_order",
    "estimate_step",
    "sum_series",
    # Errors
    "PropagationError",
    "OrderExceededError",
    "IterationLimitExceededError",
    "StepCollapseError",
    # Constants
    "EARTH",
    "MOON",
    "MARS",
    "SUN",
    "CANONICAL",
    "G0",
    # Factories
    "earth_2body",
    "earth_j2",
    "mars_j2",
    "canonical",
]
