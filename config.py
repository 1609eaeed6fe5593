"""
config.py - System Configuration Settings
==========================================
Central configuration for the strip nesting optimizer: default values in
the `Config` class and the immutable typed configs handed to each phase.
"""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Any, Optional, Union

from shrink_decay import ShrinkDecay, FailureBasedDecay, parse_shrink_decay


class ConfigurationError(ValueError):
    """Raised for configuration that can never lead to a valid run."""
    pass


class Config:
    """System-wide default settings."""

    # ============================================================================
    # COLLISION CONFIGURATION
    # ============================================================================

    COLLISION = {
        # Overlap / boundary areas below this fraction of the mean item area count as zero
        'relative_area_tolerance': 1e-5,
        'poly_simplification_tolerance': 0.001,
    }

    # ============================================================================
    # CONSTRUCTION CONFIGURATION
    # ============================================================================

    BUILDER = {
        'initial_density': 0.5,
        'n_container_samples': 64,
        'n_focused_samples': 0,
        'focus_radius': 0.0,
    }

    # ============================================================================
    # SEPARATOR CONFIGURATION
    # ============================================================================

    SEPARATOR = {
        'n_workers': 1,
        'samples_per_worker': 24,
        'focused_ratio': 0.5,
        'perturbation': 0.15,
        'rotation_perturbation': 15.0,  # degrees, continuous rotation only
        'item_selection': 'overlap_weighted',
        'acceptance': 'greedy',
        'escape_probability': 0.0,
        'coord_descent_evals': 128,
        'coord_descent_init_step': 0.1,
        'coord_descent_min_step': 1e-6,
    }

    # ============================================================================
    # PHASE CONFIGURATION
    # ============================================================================

    EXPLORATION = {
        'time_limit': 480.0,  # seconds
        'max_conseq_failed_attempts': None,
        'attempt_steps': 200,
        'shrink_step': 0.001,
        'backoff_ratio': 0.01,
        'pool_bias': 2.0,
        'pool_size': 64,
    }

    COMPRESSION = {
        'time_limit': 120.0,  # seconds
        'shrink_step': 0.005,
        'min_shrink_step': 0.0001,
        'shrink_decay': {'type': 'time_based', 'max_step': 0.005, 'min_step': 0.0001},
        'attempt_time_limit': 2.0,
        'attempt_steps': 400,
    }

    TIME_SPLIT = {
        'explore_ratio': 0.8,
        'compress_ratio': 0.2,
    }

    EARLY_TERMINATION = {
        'max_conseq_failed_attempts': 20,
        'fail_decay_ratio': 0.9,
    }

    # ============================================================================
    # LOGGING CONFIGURATION
    # ============================================================================

    LOGGING = {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'file': None,
        'max_bytes': 10 * 1024 * 1024,  # 10 MB
        'backup_count': 5,
        'console_output': True
    }

    # ============================================================================
    # EXPORT CONFIGURATION
    # ============================================================================

    EXPORT = {
        'figure_width': 12,
        'dpi': 100,
        'item_color': '#7fa8d1',
        'item_edge_color': '#1f3b57',
        'strip_color': '#d9d9d9',
        'infeasible_color': '#d17f7f',
        'benchmark_csv': 'benchmark_results.csv',
    }

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        keys = key.split('.')
        value = cls

        for k in keys:
            if hasattr(value, k):
                value = getattr(value, k)
            elif isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value


# ============================================================================
# TYPED CONFIGS
# ============================================================================

@dataclass(frozen=True)
class SampleConfig:
    """How many candidate poses to draw for one item, and where."""
    n_container_samples: int = Config.BUILDER['n_container_samples']
    n_focused_samples: int = Config.BUILDER['n_focused_samples']
    focus_radius: float = Config.BUILDER['focus_radius']
    rotation_radius: float = Config.SEPARATOR['rotation_perturbation']

    def __post_init__(self):
        if self.n_container_samples < 0 or self.n_focused_samples < 0:
            raise ConfigurationError("Sample counts must be non-negative")
        if self.n_container_samples + self.n_focused_samples == 0:
            raise ConfigurationError("At least one candidate sample is required")

    @property
    def n_samples(self) -> int:
        return self.n_container_samples + self.n_focused_samples


@dataclass(frozen=True)
class SeparatorConfig:
    """Local search parameters of one Separator."""
    n_workers: int = Config.SEPARATOR['n_workers']
    samples_per_worker: int = Config.SEPARATOR['samples_per_worker']
    focused_ratio: float = Config.SEPARATOR['focused_ratio']
    perturbation: float = Config.SEPARATOR['perturbation']
    rotation_perturbation: float = Config.SEPARATOR['rotation_perturbation']
    item_selection: str = Config.SEPARATOR['item_selection']
    acceptance: str = Config.SEPARATOR['acceptance']
    escape_probability: float = Config.SEPARATOR['escape_probability']
    coord_descent_evals: int = Config.SEPARATOR['coord_descent_evals']
    coord_descent_init_step: float = Config.SEPARATOR['coord_descent_init_step']
    coord_descent_min_step: float = Config.SEPARATOR['coord_descent_min_step']

    def __post_init__(self):
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.samples_per_worker < 1:
            raise ConfigurationError(f"samples_per_worker must be >= 1, got {self.samples_per_worker}")
        if not 0.0 <= self.focused_ratio <= 1.0:
            raise ConfigurationError(f"focused_ratio must be in [0, 1], got {self.focused_ratio}")
        if not 0.0 <= self.escape_probability < 1.0:
            raise ConfigurationError(f"escape_probability must be in [0, 1), got {self.escape_probability}")
        if self.item_selection not in ('round_robin', 'overlap_weighted'):
            raise ConfigurationError(f"Unknown item selection policy: {self.item_selection}")
        if self.acceptance not in ('greedy', 'escape'):
            raise ConfigurationError(f"Unknown acceptance policy: {self.acceptance}")
        if self.coord_descent_evals < 0:
            raise ConfigurationError("coord_descent_evals must be non-negative")

    @property
    def n_candidates(self) -> int:
        """Candidates drawn per step, tied to the worker count."""
        return self.n_workers * self.samples_per_worker

    @property
    def sample_config(self) -> SampleConfig:
        n_focused = int(round(self.n_candidates * self.focused_ratio))
        return SampleConfig(
            n_container_samples=self.n_candidates - n_focused,
            n_focused_samples=n_focused,
            focus_radius=self.perturbation,
            rotation_radius=self.rotation_perturbation
        )


@dataclass(frozen=True)
class ExplorationConfig:
    """Exploration phase parameters."""
    time_limit: float = Config.EXPLORATION['time_limit']
    max_conseq_failed_attempts: Optional[int] = Config.EXPLORATION['max_conseq_failed_attempts']
    attempt_steps: int = Config.EXPLORATION['attempt_steps']
    shrink_step: float = Config.EXPLORATION['shrink_step']
    backoff_ratio: float = Config.EXPLORATION['backoff_ratio']
    pool_bias: float = Config.EXPLORATION['pool_bias']
    pool_size: int = Config.EXPLORATION['pool_size']
    separator_config: SeparatorConfig = field(default_factory=SeparatorConfig)

    def __post_init__(self):
        if self.time_limit < 0:
            raise ConfigurationError(f"Exploration time_limit must be >= 0, got {self.time_limit}")
        if self.max_conseq_failed_attempts is not None and self.max_conseq_failed_attempts < 0:
            raise ConfigurationError("max_conseq_failed_attempts must be >= 0 or unset")
        if self.attempt_steps < 1:
            raise ConfigurationError("attempt_steps must be >= 1")
        if not 0.0 < self.shrink_step < 1.0:
            raise ConfigurationError(f"Exploration shrink_step must be in (0, 1), got {self.shrink_step}")
        if self.backoff_ratio <= 0.0:
            raise ConfigurationError(f"backoff_ratio must be > 0, got {self.backoff_ratio}")
        if self.pool_bias <= 0.0:
            raise ConfigurationError(f"pool_bias must be > 0, got {self.pool_bias}")
        if self.pool_size < 1:
            raise ConfigurationError(f"pool_size must be >= 1, got {self.pool_size}")


@dataclass(frozen=True)
class CompressionConfig:
    """Compression phase parameters."""
    time_limit: float = Config.COMPRESSION['time_limit']
    shrink_step: float = Config.COMPRESSION['shrink_step']
    min_shrink_step: float = Config.COMPRESSION['min_shrink_step']
    shrink_decay: ShrinkDecay = field(
        default_factory=lambda: parse_shrink_decay(Config.COMPRESSION['shrink_decay'])
    )
    attempt_time_limit: float = Config.COMPRESSION['attempt_time_limit']
    attempt_steps: Optional[int] = Config.COMPRESSION['attempt_steps']
    separator_config: SeparatorConfig = field(default_factory=SeparatorConfig)

    def __post_init__(self):
        if self.time_limit < 0:
            raise ConfigurationError(f"Compression time_limit must be >= 0, got {self.time_limit}")
        if not 0.0 < self.shrink_step < 1.0:
            raise ConfigurationError(f"Compression shrink_step must be in (0, 1), got {self.shrink_step}")
        if self.min_shrink_step <= 0.0:
            raise ConfigurationError("min_shrink_step must be > 0")
        if self.attempt_time_limit <= 0.0:
            raise ConfigurationError("attempt_time_limit must be > 0")
        if self.attempt_steps is not None and self.attempt_steps < 1:
            raise ConfigurationError("attempt_steps must be >= 1 or unset")
        if not isinstance(self.shrink_decay, ShrinkDecay):
            raise ConfigurationError(f"shrink_decay must be a ShrinkDecay, got {self.shrink_decay!r}")


@dataclass(frozen=True)
class OptimizerConfig:
    """Everything a single run needs; loaded once and never mutated."""
    exploration: ExplorationConfig = field(default_factory=ExplorationConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    builder_samples: SampleConfig = field(default_factory=SampleConfig)
    initial_density: float = Config.BUILDER['initial_density']
    relative_area_tolerance: float = Config.COLLISION['relative_area_tolerance']
    rng_seed: Optional[int] = None

    def __post_init__(self):
        if not 0.0 < self.initial_density <= 1.0:
            raise ConfigurationError(f"initial_density must be in (0, 1], got {self.initial_density}")
        if self.relative_area_tolerance < 0.0:
            raise ConfigurationError("relative_area_tolerance must be >= 0")

    def with_time_limit(self, total: float) -> 'OptimizerConfig':
        """Split a total time budget between exploration and compression."""
        return replace(
            self,
            exploration=replace(self.exploration, time_limit=total * Config.TIME_SPLIT['explore_ratio']),
            compression=replace(self.compression, time_limit=total * Config.TIME_SPLIT['compress_ratio'])
        )

    def with_early_termination(self) -> 'OptimizerConfig':
        """Benchmark preset: bounded failed attempts and failure-based shrink decay."""
        preset = Config.EARLY_TERMINATION
        return replace(
            self,
            exploration=replace(
                self.exploration,
                max_conseq_failed_attempts=preset['max_conseq_failed_attempts']
            ),
            compression=replace(
                self.compression,
                shrink_decay=FailureBasedDecay(preset['fail_decay_ratio'])
            )
        )

    def with_workers(self, n_workers: int) -> 'OptimizerConfig':
        return replace(
            self,
            exploration=replace(
                self.exploration,
                separator_config=replace(self.exploration.separator_config, n_workers=n_workers)
            ),
            compression=replace(
                self.compression,
                separator_config=replace(self.compression.separator_config, n_workers=n_workers)
            )
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OptimizerConfig':
        """Build a config from nested dicts; missing keys keep their defaults."""
        data = dict(data)
        try:
            exploration = dict(data.pop('exploration', {}))
            if 'separator_config' in exploration:
                exploration['separator_config'] = SeparatorConfig(**exploration['separator_config'])

            compression = dict(data.pop('compression', {}))
            if 'separator_config' in compression:
                compression['separator_config'] = SeparatorConfig(**compression['separator_config'])
            if 'shrink_decay' in compression:
                compression['shrink_decay'] = parse_shrink_decay(compression['shrink_decay'])

            builder_samples = data.pop('builder_samples', None)

            return cls(
                exploration=ExplorationConfig(**exploration),
                compression=CompressionConfig(**compression),
                builder_samples=SampleConfig(**builder_samples) if builder_samples else SampleConfig(),
                **data
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        except ValueError as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> 'OptimizerConfig':
        """Load configuration from a JSON or YAML file."""
        filepath = str(filepath)

        with open(filepath, 'r') as f:
            if filepath.endswith('.json'):
                config_data = json.load(f)
            elif filepath.endswith(('.yml', '.yaml')):
                import yaml
                config_data = yaml.safe_load(f) or {}
            else:
                raise ConfigurationError(f"Unsupported config file format: {filepath}")

        return cls.from_dict(config_data)


DEFAULT_OPTIMIZER_CONFIG = OptimizerConfig()
