"""
Test suite for package configuration and per-call settings.
"""

import math
import pytest
import numpy as np
import dromos
from dromos import config, temp_config, TaylorSettings, DromosConfig


class TestTaylorSettings:
    """Immutable per-call settings."""

    def test_defaults(self):
        settings = TaylorSettings()
        assert settings.abs_tol_exponent == -10
        assert settings.rel_tol_exponent == -10
        assert settings.max_iterations == 100000
        assert settings.max_order == 3000

    def test_tolerances(self):
        settings = TaylorSettings(abs_tol_exponent=-8, rel_tol_exponent=-12)
        assert settings.eps_abs == pytest.approx(1e-8)
        assert settings.eps_rel == pytest.approx(1e-12)

    def test_frozen(self):
        settings = TaylorSettings()
        with pytest.raises(AttributeError):
            settings.max_order = 10

    @pytest.mark.parametrize("kwargs", [
        {'abs_tol_exponent': 0},
        {'rel_tol_exponent': 3},
        {'max_iterations': 0},
        {'max_order': 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            TaylorSettings(**kwargs)


class TestGlobalConfig:
    """Mutable package configuration."""

    def test_reset(self):
        config.STRICT_VALIDATION = False
        config.DEFAULT_PLOT_POINTS = 5
        config.reset()
        assert config.STRICT_VALIDATION is True
        assert config.DEFAULT_PLOT_POINTS == 1000

    def test_temp_config_restores(self):
        with temp_config(STRICT_VALIDATION=False, DEFAULT_TRAJ_COLOR='green'):
            assert config.STRICT_VALIDATION is False
            assert config.DEFAULT_TRAJ_COLOR == 'green'
        assert config.STRICT_VALIDATION is True
        assert config.DEFAULT_TRAJ_COLOR == 'red'

    def test_temp_config_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with temp_config(STRICT_VALIDATION=False):
                raise RuntimeError("boom")
        assert config.STRICT_VALIDATION is True

    def test_temp_config_unknown_key(self):
        with pytest.raises(AttributeError, match="no attribute"):
            with temp_config(NOT_A_SETTING=1):
                pass

    def test_repr(self):
        text = repr(DromosConfig())
        assert "STRICT_VALIDATION = True" in text

    def test_package_exposes_config(self):
        assert dromos.config is config


class TestTimer:
    """Timing helper."""

    def test_prints_elapsed(self, capsys):
        with dromos.Timer("Work") as t:
            math.factorial(50)
        assert t.elapsed >= 0
        assert "Work:" in capsys.readouterr().out

    def test_quiet(self, capsys):
        with dromos.Timer(verbose=False) as t:
            pass
        assert t.elapsed is not None
        assert capsys.readouterr().out == ""


class TestDocumentedUsage:
    """The calls shown in the module documentation run as written."""

    def test_relaxed_block_with_keyword_parameters(self):
        state = np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0])
        thrust = np.zeros(3)
        with dromos.temp_config(STRICT_VALIDATION=False):
            dromos.propagate_taylor_j2(state, thrust, 1.0, mu=1.0, veff=1.0, J2RG2=0.0)
        assert state[0] == pytest.approx(math.cos(1.0), abs=1e-10)

    def test_timed_propagation(self, capsys):
        state = np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0])
        with dromos.Timer("Propagation"):
            dromos.propagate_taylor_j2(state, [0.01, 0.0, 0.0], 10.0,
                                       mu=1.0, veff=1.0, J2RG2=0.0)
        assert "Propagation:" in capsys.readouterr().out
        assert state[6] == pytest.approx(0.9, rel=1e-12)
