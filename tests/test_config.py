"""Tests for configuration."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from asyncval import ContextKind, RuntimeConfig, get_config, init
from asyncval._config import MAX_WORKERS, reset_config


class TestContextKind:
    """Tests for the ContextKind enum."""

    def test_values(self) -> None:
        """Test ContextKind enum values."""
        assert ContextKind.IMMEDIATE.value == 'immediate'
        assert ContextKind.SINGLE.value == 'single'
        assert ContextKind.POOL.value == 'pool'


class TestRuntimeConfig:
    """Tests for the RuntimeConfig dataclass."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = RuntimeConfig()
        assert config.default_context is ContextKind.IMMEDIATE
        assert config.workers == 1
        assert config.log_level is None
        assert config.await_timeout is None

    def test_frozen(self) -> None:
        """Test that RuntimeConfig is immutable."""
        config = RuntimeConfig()
        with pytest.raises(AttributeError):
            config.workers = 4  # type: ignore[misc]


class TestInit:
    """Tests for init()."""

    def test_explicit_values(self) -> None:
        """Explicit arguments win."""
        config = init(default_context=ContextKind.POOL, workers=3, await_timeout=2.5)
        assert config.default_context is ContextKind.POOL
        assert config.workers == 3
        assert config.await_timeout == 2.5
        assert get_config() is config

    def test_string_context(self) -> None:
        """Context kinds may be given by name."""
        assert init(default_context='SINGLE').default_context is ContextKind.SINGLE

    def test_invalid_string_context(self) -> None:
        """An unknown context name is rejected."""
        with pytest.raises(ValueError):
            init(default_context='cluster')

    def test_workers_clamped(self) -> None:
        """Worker counts are clamped to [1, MAX_WORKERS]."""
        assert init(workers=0).workers == 1
        assert init(workers=MAX_WORKERS + 10).workers == MAX_WORKERS

    def test_context_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """ASYNCVAL_CONTEXT selects the default context."""
        monkeypatch.setenv('ASYNCVAL_CONTEXT', 'single')
        assert init().default_context is ContextKind.SINGLE

    def test_unknown_env_context(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unknown ASYNCVAL_CONTEXT falls back to immediate."""
        monkeypatch.setenv('ASYNCVAL_CONTEXT', 'cluster')
        assert init().default_context is ContextKind.IMMEDIATE

    def test_workers_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """ASYNCVAL_WORKERS sets the pool size."""
        monkeypatch.setenv('ASYNCVAL_WORKERS', '6')
        assert init(default_context='pool').workers == 6

    def test_invalid_env_workers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unparsable ASYNCVAL_WORKERS is ignored."""
        monkeypatch.setenv('ASYNCVAL_WORKERS', 'many')
        assert init(default_context='single').workers == 1

    def test_pool_workers_from_physical_cores(self) -> None:
        """The pool is sized by physical cores when nothing is configured."""
        with patch('asyncval._config.psutil.cpu_count', return_value=6):
            assert init(default_context='pool').workers == 6

    def test_pool_workers_fall_back_to_logical_cores(self) -> None:
        """Logical cores are used when physical cores are unknown."""
        with patch('asyncval._config.psutil.cpu_count', side_effect=[None, 12]):
            assert init(default_context='pool').workers == 12

    def test_non_pool_kinds_use_one_worker(self) -> None:
        """Without a pool the worker count defaults to 1."""
        assert init(default_context='single').workers == 1

    def test_log_level_configures_logging(self) -> None:
        """Passing a log level configures logging."""
        with patch('asyncval._config.configure_logging') as configure:
            config = init(log_level='DEBUG')
        configure.assert_called_once_with('DEBUG')
        assert config.log_level == 'DEBUG'

    def test_log_level_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """ASYNCVAL_LOG_LEVEL is used when no level is passed."""
        monkeypatch.setenv('ASYNCVAL_LOG_LEVEL', 'WARNING')
        with patch('asyncval._config.configure_logging') as configure:
            assert init().log_level == 'WARNING'
        configure.assert_called_once_with('WARNING')

    def test_logging_untouched_without_level(self) -> None:
        """Logging is not configured when no level is set."""
        with patch('asyncval._config.configure_logging') as configure:
            init()
        configure.assert_not_called()


class TestGetConfig:
    """Tests for get_config()."""

    def test_initializes_on_first_use(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """get_config() reads the environment when init() was never called."""
        reset_config()
        monkeypatch.setenv('ASYNCVAL_CONTEXT', 'single')
        config = get_config()
        assert config.default_context is ContextKind.SINGLE
        assert get_config() is config
