"""
Test Command Line Interface
===========================
"""

import csv
import json
import logging
import signal

import pytest

from config import Config, ConfigurationError
from main import build_config, build_parser, main


@pytest.fixture
def instance_file(tmp_path):
    data = {
        "name": "cli",
        "strip_height": 2.0,
        "items": [
            {"id": 0, "demand": 2, "allowed_orientations": [0.0, 90.0],
             "shape": {"type": "simple_polygon", "data": [[0, 0], [1, 0], [1, 1], [0, 1]]}},
            {"id": 1, "demand": 1, "allowed_orientations": [0.0],
             "shape": {"type": "simple_polygon", "data": [[0, 0], [2, 0], [0, 1]]}},
        ]
    }
    path = tmp_path / "cli.json"
    path.write_text(json.dumps(data))
    return path


@pytest.fixture(autouse=True)
def isolate_process_state(monkeypatch):
    """The CLI installs a Ctrl-C handler and root log handlers; keep the test process's own."""
    monkeypatch.setattr(signal, "signal", lambda signum, handler: None)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_config_from_arguments():
    args = build_parser().parse_args(["x.json", "--time-limit", "10", "--workers", "2", "-e"])
    config = build_config(args)
    assert config.exploration.time_limit == pytest.approx(8.0)
    assert config.compression.time_limit == pytest.approx(2.0)
    assert config.exploration.separator_config.n_workers == 2
    assert config.exploration.max_conseq_failed_attempts is not None


def test_exclusive_svg_modes_rejected():
    args = build_parser().parse_args(["x.json", "--live-svg", "--only-final-svg"])
    with pytest.raises(ConfigurationError):
        build_config(args)


def test_missing_instance_fails(tmp_path):
    assert main([str(tmp_path / "missing.json"), "--output", str(tmp_path)]) == 1


def test_end_to_end(tmp_path, instance_file):
    output = tmp_path / "out"
    code = main([str(instance_file), "--time-limit", "1", "--seed", "5", "--runs", "2",
                 "--only-final-svg", "--benchmark", "--output", str(output)])

    assert code == 0
    assert (output / "final_cli_0.svg").exists()
    assert (output / "final_cli_1.svg").exists()
    assert not (output / "sols_cli_0").exists()

    report = json.loads((output / "report_cli.json").read_text())
    assert report['summary']['runs'] == 2
    assert all(run['seed'] == 5 for run in report['runs'])
    assert (output / "benchmark_results.csv").read_text().startswith("Timestamp;CPU;")


def test_phase_time_limits_from_config_file(tmp_path):
    config_file = tmp_path / "phases.json"
    config_file.write_text(json.dumps({
        "exploration": {"time_limit": 5.0},
        "compression": {"time_limit": 1.0}
    }))

    config = build_config(build_parser().parse_args(["x.json", "--config", str(config_file)]))
    assert config.exploration.time_limit == 5.0
    assert config.compression.time_limit == 1.0

    # An explicit total still overrides the file
    args = build_parser().parse_args(["x.json", "--config", str(config_file), "--time-limit", "10"])
    assert build_config(args).exploration.time_limit == pytest.approx(8.0)


def test_default_time_limits_without_overrides():
    config = build_config(build_parser().parse_args(["x.json"]))
    assert config.exploration.time_limit == Config.EXPLORATION['time_limit']
    assert config.compression.time_limit == Config.COMPRESSION['time_limit']


def test_negative_seed_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["x.json", "--seed", "-1"])


def test_benchmark_row_records_drawn_seed(tmp_path, instance_file):
    """Without --seed the CSV row carries the seed that was actually used."""
    output = tmp_path / "out"
    code = main([str(instance_file), "--time-limit", "0.5", "--only-final-svg",
                 "--benchmark", "--output", str(output)])
    assert code == 0

    report = json.loads((output / "report_cli.json").read_text())
    with open(output / "benchmark_results.csv", newline="") as f:
        header, row = list(csv.reader(f, delimiter=";"))
    assert int(row[header.index("Seed")]) == report['runs'][0]['seed']
