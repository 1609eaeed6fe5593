"""
Test Configuration Loading
==========================
Typed configs, file loading, presets and shrink decay policies.
"""

import json

import pytest

from config import (
    CompressionConfig,
    Config,
    ConfigurationError,
    ExplorationConfig,
    OptimizerConfig,
    SeparatorConfig,
)
from shrink_decay import FailureBasedDecay, TimeBasedDecay, parse_shrink_decay


def test_dotted_lookup():
    assert Config.get('SEPARATOR.n_workers') == 1
    assert Config.get('SEPARATOR.missing', 'fallback') == 'fallback'


def test_time_limit_split():
    config = OptimizerConfig().with_time_limit(100.0)
    assert config.exploration.time_limit == pytest.approx(80.0)
    assert config.compression.time_limit == pytest.approx(20.0)


def test_early_termination_preset():
    config = OptimizerConfig().with_early_termination()
    assert config.exploration.max_conseq_failed_attempts == Config.EARLY_TERMINATION['max_conseq_failed_attempts']
    assert config.compression.shrink_decay == FailureBasedDecay(Config.EARLY_TERMINATION['fail_decay_ratio'])


def test_with_workers_updates_both_phases():
    config = OptimizerConfig().with_workers(4)
    assert config.exploration.separator_config.n_workers == 4
    assert config.compression.separator_config.n_workers == 4
    assert config.exploration.separator_config.n_candidates == 4 * Config.SEPARATOR['samples_per_worker']


def test_sample_config_split():
    sample = SeparatorConfig(n_workers=2, samples_per_worker=10, focused_ratio=0.25).sample_config
    assert sample.n_samples == 20
    assert sample.n_focused_samples == 5


def test_from_dict_nested():
    config = OptimizerConfig.from_dict({
        'rng_seed': 5,
        'exploration': {'time_limit': 10, 'separator_config': {'n_workers': 3}},
        'compression': {'shrink_decay': {'type': 'failure_based', 'ratio': 0.5}},
        'builder_samples': {'n_container_samples': 8},
    })
    assert config.rng_seed == 5
    assert config.exploration.time_limit == 10
    assert config.exploration.separator_config.n_workers == 3
    assert config.compression.shrink_decay == FailureBasedDecay(0.5)
    assert config.builder_samples.n_container_samples == 8


@pytest.mark.parametrize("data", [
    {'exploration': {'unknown_key': 1}},
    {'exploration': {'separator_config': {'n_workers': 0}}},
    {'compression': {'shrink_decay': {'type': 'failure_based', 'ratio': 1.5}}},
    {'compression': {'shrink_decay': {'type': 'bisection'}}},
    {'exploration': {'time_limit': -1}},
])
def test_invalid_config_rejected(data):
    with pytest.raises(ConfigurationError):
        OptimizerConfig.from_dict(data)


def test_from_yaml_and_json_files(tmp_path):
    yaml_path = tmp_path / "config.yaml"
    yaml_path.write_text("exploration:\n  max_conseq_failed_attempts: 7\nrng_seed: 11\n")
    config = OptimizerConfig.from_file(yaml_path)
    assert config.exploration.max_conseq_failed_attempts == 7
    assert config.rng_seed == 11

    json_path = tmp_path / "config.json"
    json_path.write_text(json.dumps({'compression': {'attempt_steps': 50}}))
    assert OptimizerConfig.from_file(json_path).compression.attempt_steps == 50

    with pytest.raises(ConfigurationError):
        OptimizerConfig.from_file(_touch(tmp_path / "config.ini"))


def _touch(path):
    path.write_text("")
    return path


def test_phase_config_validation():
    with pytest.raises(ConfigurationError):
        ExplorationConfig(shrink_step=0.0)
    with pytest.raises(ConfigurationError):
        CompressionConfig(min_shrink_step=0.0)
    with pytest.raises(ConfigurationError):
        SeparatorConfig(acceptance='annealing')


def test_failure_based_decay():
    decay = FailureBasedDecay(0.5)
    assert decay.initial_step(0.1) == 0.1
    assert decay.next_step(0.1, success=True, progress=0.9) == 0.1
    assert decay.next_step(0.1, success=False, progress=0.0) == pytest.approx(0.05)
    with pytest.raises(ValueError):
        FailureBasedDecay(1.0)


def test_time_based_decay():
    decay = TimeBasedDecay(max_step=0.01, min_step=0.001)
    assert decay.initial_step(0.5) == 0.01
    assert decay.next_step(0.01, success=False, progress=0.5) == pytest.approx(0.0055)
    assert decay.next_step(0.01, success=True, progress=2.0) == pytest.approx(0.001)


def test_parse_shrink_decay_passthrough():
    decay = TimeBasedDecay()
    assert parse_shrink_decay(decay) is decay
    assert isinstance(parse_shrink_decay({'type': 'time_based'}), TimeBasedDecay)
