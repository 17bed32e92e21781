"""
Step record of a Taylor propagation with dense output.

Every step keeps the coefficient table it was summed with, so the state at
any time inside a step is the same truncated series evaluated at a shorter
interval.
"""

import numpy as np
import pandas as pd
from typing import Union, Optional, TYPE_CHECKING
import plotly.graph_objects as go
from numpy.polynomial import polynomial as P
from .config import config
from .state import SpacecraftState
if TYPE_CHECKING:
    from .propagator import TaylorPropagator

_STATE_COLUMNS = ['x', 'y', 'z', 'vx', 'vy', 'vz', 'm']


class Trajectory:
    """
    A propagated segment with continuous-time state access.

    Built by ``TaylorPropagator.propagate_trajectory``.

    Attributes:
        propagator: Propagator that produced the segment
        thrust: Constant thrust vector used
        t0: Start time
        tf: End time
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, propagator: "TaylorPropagator", thrust: np.ndarray,
                 t0: float):
        self._propagator = propagator
        self._thrust = np.array(thrust, dtype=float)
        self._thrust.flags.writeable = False
        self._t0 = t0
        self._tf = t0
        self._step_starts = []
        self._steps = []
        self._orders = []
        self._coefficients = []
        self._final_state = None

    def _record_step(self, elapsed: float, step: float, order: int,
                     coefficients: np.ndarray):
        """Store one step; called by the propagator after each step."""
        self._step_starts.append(self._t0 + elapsed)
        self._steps.append(step)
        self._orders.append(order)
        self._coefficients.append(coefficients.copy())

    def _finalize(self, tf: float, final_state: np.ndarray):
        self._tf = tf
        self._final_state = final_state.copy()
        self._final_state.flags.writeable = False
        # Step start times ordered increasingly, used to locate steps
        self._direction = 1.0 if tf >= self._t0 else -1.0
        self._keys = self._direction * np.array(self._step_starts)

    # ========== PROPERTY ACCESS ==========
    @property
    def propagator(self) -> "TaylorPropagator":
        return self._propagator

    @property
    def thrust(self) -> np.ndarray:
        return self._thrust

    @property
    def t0(self):
        return self._t0

    @property
    def tf(self):
        return self._tf

    @property
    def duration(self):
        """Trajectory duration."""
        return self.tf - self.t0

    @property
    def n_steps(self) -> int:
        return len(self._steps)

    @property
    def steps(self) -> np.ndarray:
        """Signed length of every step taken"""
        return np.array(self._steps)

    @property
    def orders(self) -> np.ndarray:
        """Polynomial order of every step"""
        return np.array(self._orders, dtype=int)

    @property
    def last_step(self) -> float:
        """Length of the final step"""
        return self._steps[-1]

    @property
    def node_times(self) -> np.ndarray:
        """Times of the step boundaries, from t0 to tf"""
        return np.append(self._step_starts, self.tf)

    @property
    def final_state(self) -> SpacecraftState:
        """State at tf as summed by the propagator"""
        return SpacecraftState.from_array(self._final_state)

    # ========== UTILITY METHODS ==========
    def state_at_raw(self, t: float) -> np.ndarray:
        """Get raw state array [x, y, z, vx, vy, vz, m] at time t"""
        self._validate_time(t)
        if t == self.tf:
            return self._final_state.copy()
        index = self._step_index(t)
        dt = float(t) - self._step_starts[index]
        return P.polyval(dt, self._coefficients[index])

    def state_at(self, t: float) -> SpacecraftState:
        """
        Get spacecraft state at specified time.

        Parameters:
            t: Time to query (must be in [t0, tf])
        """
        return SpacecraftState.from_array(self.state_at_raw(t))

    def evaluate_raw(self, times: Union[float, np.ndarray, list]) -> np.ndarray:
        """
        Evaluate at one or more times, returning raw arrays.

        Parameters:
            times: Single time or array of times

        Returns:
            State array of shape (7,) if times is scalar,
            Array of shape (n_times, 7) if times is array-like
        """
        if isinstance(times, (int, float)):
            return self.state_at_raw(times)

        times = np.asarray(times, dtype=float)
        return np.array([self.state_at_raw(t) for t in times]).reshape(-1, 7)

    def evaluate(self, times: Union[float, np.ndarray, list]
                 ) -> Union[SpacecraftState, list[SpacecraftState]]:
        """
        Evaluate trajectory at one or more times.

        Returns:
            Single SpacecraftState if times is scalar,
            list of SpacecraftState if times is array-like
        """
        if isinstance(times, (int, float)):
            return self.state_at(times)
        return [SpacecraftState.from_array(row) for row in self.evaluate_raw(times)]

    def sample_raw(self, n_points: int = 100) -> np.ndarray:
        """
        Uniformly sample trajectory in time, returning raw arrays.

        Parameters:
            n_points: Number of points to sample (default: 100)

        Returns:
            Array of shape (n_points, 7) with uniformly spaced states
        """
        if n_points < 2:
            raise ValueError("n_points must be at least 2, use .state_at_raw()")
        return self.evaluate_raw(self.get_times(n_points))

    def sample(self, n_points: int = 100) -> list[SpacecraftState]:
        """Uniformly sample trajectory in time."""
        return [SpacecraftState.from_array(row) for row in self.sample_raw(n_points)]

    def node_states_raw(self) -> np.ndarray:
        """States at the step boundaries, shape (n_steps + 1, 7)."""
        starts = np.array([c[0] for c in self._coefficients])
        return np.vstack((starts, self._final_state))

    def _step_index(self, t: float) -> int:
        """Index of the step whose interval contains t."""
        key = self._direction * float(t)
        index = int(np.searchsorted(self._keys, key, side='right')) - 1
        return min(max(index, 0), self.n_steps - 1)

    def _validate_time(self, t: float):
        """Validate that time is within trajectory bounds."""
        t_min = min(self.t0, self.tf)
        t_max = max(self.t0, self.tf)

        if not (t_min <= t <= t_max):
            raise ValueError(
                f"Time {t} outside trajectory bounds [{self.t0}, {self.tf}]"
            )

    def contains_time(self, t: float) -> bool:
        """Check if time is within trajectory bounds."""
        return min(self.t0, self.tf) <= t <= max(self.t0, self.tf)

    def get_times(self, n_points: int = 100) -> np.ndarray:
        """Generate uniform time array spanning trajectory."""
        return np.linspace(self.t0, self.tf, n_points)

    def to_dataframe(self,
                     times: Optional[np.ndarray] = None,
                     n_points: int = 1000) -> pd.DataFrame:
        """
        Export trajectory to pandas DataFrame.

        Parameters:
            times: Specific times to evaluate. If None, uses uniform sampling.
            n_points: Number of uniform samples if times not provided (default: 1000)

        Returns:
            DataFrame with columns for time and state components
        """
        if times is None:
            times = self.get_times(n_points)
        else:
            times = np.asarray(times, dtype=float)

        states = self.evaluate_raw(times)

        data = {'time': times}
        for index, name in enumerate(_STATE_COLUMNS):
            data[name] = states[:, index]
        return pd.DataFrame(data)

    def steps_dataframe(self) -> pd.DataFrame:
        """
        One row per step: start time, step length, order and the state at
        the start of the step.
        """
        starts = np.array([c[0] for c in self._coefficients]).reshape(-1, 7)
        data = {
            'time': np.array(self._step_starts),
            'step': self.steps,
            'order': self.orders,
        }
        for index, name in enumerate(_STATE_COLUMNS):
            data[name] = starts[:, index]
        return pd.DataFrame(data)

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        return (f"Trajectory(propagator={self.propagator.name}, "
                f"t0={self.t0}, tf={self.tf}, steps={self.n_steps})")

    def __str__(self):
        name = self.propagator.name or "central body"
        return f"Trajectory around {name}: t ∈ [{self.t0}, {self.tf}]"

    def __call__(self, t: float) -> SpacecraftState:
        """
        Evaluate trajectory at time t.
        Syntactic sugar for .state_at(t). Allows traj(t) syntax.
        """
        return self.state_at(t)

    def __len__(self):
        return self.n_steps

    # ========== PLOTTING ==========
    def plot_3d(self, n_points: Optional[int] = None,
                body_radius: Optional[float] = None,
                body_color: Optional[str] = None,
                traj_color: Optional[str] = None,
                body_opacity: Optional[float] = None,
                show_nodes: bool = False) -> go.Figure:
        """
        Create 3D plot of trajectory with optional central body.

        Parameters:
            n_points: Number of points to sample trajectory
                      (default: config.DEFAULT_PLOT_POINTS)
            body_radius: Radius of a central body sphere, not drawn if None
            body_color: Color of central body (default: config.DEFAULT_BODY_COLOR)
            traj_color: Color of trajectory line (default: config.DEFAULT_TRAJ_COLOR)
            body_opacity: Opacity of central body (default: config.DEFAULT_BODY_OPACITY)
            show_nodes: Mark the step boundaries (default: False)

        Returns:
            Plotly Figure object
        """
        n_points = n_points or config.DEFAULT_PLOT_POINTS
        body_color = body_color or config.DEFAULT_BODY_COLOR
        traj_color = traj_color or config.DEFAULT_TRAJ_COLOR
        if body_opacity is None:
            body_opacity = config.DEFAULT_BODY_OPACITY

        positions = self.sample_raw(n_points=n_points)[:, 0:3]

        fig = go.Figure()

        if body_radius is not None:
            self._add_sphere_to_plot(
                fig,
                center=(0, 0, 0),
                radius=body_radius,
                color=body_color,
                opacity=body_opacity,
                name=self.propagator.name or "Central Body"
            )

        fig.add_trace(go.Scatter3d(
            x=positions[:, 0],
            y=positions[:, 1],
            z=positions[:, 2],
            mode='lines',
            line=dict(color=traj_color, width=3),
            name='Trajectory',
            hovertemplate='x: %{x:.6f}<br>y: %{y:.6f}<br>z: %{z:.6f}<extra></extra>'
        ))

        if show_nodes:
            nodes = self.node_states_raw()
            fig.add_trace(go.Scatter3d(
                x=nodes[:, 0],
                y=nodes[:, 1],
                z=nodes[:, 2],
                mode='markers',
                marker=dict(color=traj_color, size=3),
                name='Steps'
            ))

        fig.update_layout(
            scene=dict(
                xaxis_title='X',
                yaxis_title='Y',
                zaxis_title='Z',
                aspectmode='data'
            ),
            title='Taylor Propagated Trajectory',
            showlegend=True
        )

        return fig

    def _add_sphere_to_plot(self, fig, center, radius, color, opacity, name):
        """Helper to add a sphere to the plot at specified center."""
        u = np.linspace(0, 2 * np.pi, 30)
        v = np.linspace(0, np.pi, 20)

        x = center[0] + radius * np.outer(np.cos(u), np.sin(v))
        y = center[1] + radius * np.outer(np.sin(u), np.sin(v))
        z = center[2] + radius * np.outer(np.ones(np.size(u)), np.cos(v))

        fig.add_trace(go.Surface(
            x=x, y=y, z=z,
            colorscale=[[0, color], [1, color]],
            showscale=False,
            opacity=opacity,
            name=name,
            hoverinfo='name'
        ))

    def add_to_plot(self, fig: go.Figure,
                    n_points: Optional[int] = None, color: Optional[str] = None,
                    name: Optional[str] = None, **kwargs) -> go.Figure:
        """
        Add this trajectory to an existing Plotly figure.

        Parameters:
            fig: Existing Plotly Figure object
            n_points: Number of points to sample trajectory
            color: Color of trajectory line (default: config.DEFAULT_TRAJ_COLOR_ADD)
            name: Legend name for this trajectory (default: 'Trajectory N')
            **kwargs: Additional arguments passed to Scatter3d

        Returns:
            Updated Plotly Figure object (same object, modified in place)
        """
        n_points = n_points or config.DEFAULT_PLOT_POINTS
        color = color or config.DEFAULT_TRAJ_COLOR_ADD
        positions = self.sample_raw(n_points=n_points)[:, 0:3]

        if name is None:
            n_existing = sum(1 for trace in fig.data if isinstance(trace, go.Scatter3d))
            name = f'Trajectory {n_existing + 1}'

        fig.add_trace(go.Scatter3d(
            x=positions[:, 0],
            y=positions[:, 1],
            z=positions[:, 2],
            mode='lines',
            line=dict(color=color, width=3),
            name=name,
            hovertemplate='x: %{x:.6f}<br>y: %{y:.6f}<br>z: %{z:.6f}<extra></extra>',
            **kwargs
        ))

        return fig
