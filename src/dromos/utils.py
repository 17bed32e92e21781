"""
Utility functions, classes and exceptions for the Dromos package.
"""

from time import perf_counter
import warnings
from typing import Optional, Type
import numpy as np
from .config import config


class PropagationError(Exception):
    """Base class for failures of the Taylor propagator."""


class OrderExceededError(PropagationError, ValueError):
    """
    The requested tolerance needs a polynomial order above ``max_order``.

    Attributes
    ----------
    order : int
        Order the tolerance would have required
    max_order : int
        Configured upper bound
    """
    def __init__(self, order: int, max_order: int):
        self.order = order
        self.max_order = max_order
        super().__init__(
            f"Polynomial order {order} required by the tolerances exceeds "
            f"max_order={max_order}. Raise max_order or loosen the tolerances."
        )


class IterationLimitExceededError(PropagationError, RuntimeError):
    """
    The propagation did not consume the requested duration within
    ``max_iterations`` steps.

    The state handed to the propagator holds the last computed state.

    Attributes
    ----------
    iterations : int
        Number of steps taken
    remaining : float
        Signed duration that was still left to propagate
    """
    def __init__(self, iterations: int, remaining: float,
                 message: Optional[str] = None):
        self.iterations = iterations
        self.remaining = remaining
        if message is None:
            message = (
                f"Maximum number of iterations ({iterations}) reached with "
                f"{remaining:.6e} of the requested duration left to propagate"
            )
        super().__init__(message)


class StepCollapseError(IterationLimitExceededError):
    """
    The state stopped being finite, so no further step can make progress.

    Raised as soon as it happens instead of spinning until
    ``max_iterations``. The state handed to the propagator holds the
    non-finite values of the failed step.
    """
    def __init__(self, iterations: int, remaining: float, state: np.ndarray):
        super().__init__(
            iterations, remaining,
            f"Propagation failed: state became invalid after "
            f"{iterations} steps with {remaining:.6e} left to propagate.\n"
            f"Final state: {state}\n"
            f"Likely causes:\n"
            f"  - Trajectory passed through the central body\n"
            f"  - Spacecraft mass depleted"
        )


class Timer:
    """
    Context manager for timing code execution.

    Examples
    --------
    >>> from dromos.utils import Timer
    >>> with Timer("Propagation"):
    ...     propagate_taylor_j2(state, thrust, 10.0, mu=1.0, veff=1.0, J2RG2=0.0)
    Propagation: 0.012345 s

    >>> with Timer(verbose=False) as t:
    ...     # ... code ...
    >>> print(f"Took {t.elapsed:.6f} seconds")
    """
    def __init__(self, name="Operation", verbose=True):
        """
        Parameters
        ----------
        name : str, optional
            Name to display when timing completes (default: "Operation")
        verbose : bool, optional
            Whether to print timing automatically (default: True)
        """
        self.name = name
        self.verbose = verbose
        self.elapsed = None

    def __enter__(self):
        self.start = perf_counter()
        return self

    def __exit__(self, *args):
        self.end = perf_counter()
        self.elapsed = self.end - self.start
        if self.verbose:
            print(f"{self.name}: {self.elapsed:.6f} s")


def infinity_norm(values) -> float:
    """Largest absolute component of a vector."""
    return float(np.max(np.abs(values)))


def validation_error(message: str, error_class: Type[Exception] = ValueError):
    """
    Raise error or warn based on config.STRICT_VALIDATION.

    When STRICT_VALIDATION is True (default), raises the specified exception.
    When False, issues a UserWarning instead.

    Parameters
    ----------
    message : str
        Validation error message
    error_class : Type[Exception], optional
        Exception class to raise if STRICT_VALIDATION is True.
        Default: ValueError

    Raises
    ------
    Exception (of type error_class)
        If config.STRICT_VALIDATION is True

    Warns
    -----
    UserWarning
        If config.STRICT_VALIDATION is False
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    else:
        warnings.warn(message, UserWarning, stacklevel=2)
