"""Tests for loading batch settings from YAML / JSON files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from simbatch.settings import load_config, load_settings, settings_from_dict

MINIMAL = {
    "matrix": {"count": [20, 40], "algorithm": ["grid"], "seed": [1]},
    "constants": {"tx_dimension": [10, 10], "rx_dimension": [12, 12], "grid_density": 35},
}


def _write_yaml(path: Path, data: dict) -> str:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return str(path)


def test_minimal_yaml_uses_defaults(tmp_path: Path) -> None:
    settings = load_settings(_write_yaml(tmp_path / "batch.yaml", MINIMAL))
    assert [a.name for a in settings.matrix.axes()] == ["count", "algorithm", "seed"]
    assert len(settings.matrix) == 2
    assert settings.constants.tx_dimension == (10, 10)
    assert settings.constants.beta == 0.65
    assert settings.simulator.jar == "jun-sim.jar"
    assert settings.simulator.niceness is None
    assert settings.runner.keep_going is False
    assert settings.runner.workers == 1
    assert settings.workdir == Path(".")
    assert settings.log_level == "INFO"


def test_full_yaml(tmp_path: Path) -> None:
    data = dict(MINIMAL)
    data.update(
        {
            "log_level": "DEBUG",
            "workdir": str(tmp_path / "runs"),
            "layout": {"receivers_file": "rx-{name}.ssv"},
            "simulator": {"max_heap": "32g", "niceness": 10, "jvm_args": "-Xss4m -server"},
            "runner": {"keep_going": True, "workers": 4, "timeout_s": 60, "summary_csv": "s.csv"},
        }
    )
    settings = load_settings(_write_yaml(tmp_path / "batch.yml", data))
    assert settings.log_level == "DEBUG"
    assert settings.workdir == tmp_path / "runs"
    assert settings.layout.receivers_file == "rx-{name}.ssv"
    assert settings.simulator.jvm_args == ("-Xss4m", "-server")
    assert settings.simulator.argv("x.xml") == [
        "nice", "-n", "10", "java", "-mx32g", "-Xss4m", "-server", "-jar", "jun-sim.jar", "x.xml"
    ]
    assert settings.runner.workers == 4
    assert settings.runner.timeout_s == 60
    assert settings.runner.summary_csv == "s.csv"


def test_matrix_order_follows_file_order(tmp_path: Path) -> None:
    text = (
        "matrix:\n"
        "  seed: [1, 2]\n"
        "  distribution: ['uniform', 'sine 4']\n"
        "  count: [100]\n"
        "  algorithm: [recursive]\n"
        "constants: {tx_dimension: [10, 10], rx_dimension: [12, 12], grid_density: 35}\n"
    )
    path = tmp_path / "order.yaml"
    path.write_text(text, encoding="utf-8")
    settings = load_settings(str(path))
    first = next(settings.matrix.tuples())
    assert first.names() == ("seed", "distribution", "count", "algorithm")
    assert first["distribution"] == "uniform"


def test_json_config(tmp_path: Path) -> None:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps(MINIMAL), encoding="utf-8")
    assert load_config(str(path))["constants"]["grid_density"] == 35
    assert len(load_settings(str(path)).matrix) == 2


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "absent.yaml"))


@pytest.mark.parametrize(
    "patch, message",
    [
        ({"matrix": None}, "matrix"),
        ({"matrix": {"count": 20}}, "matrix.count"),
        ({"constants": {"tx_dimension": [10, 10], "rx_dimension": [12, 12]}}, "grid_density"),
        ({"simulator": {"jar": "a.jar", "heap": "4g"}}, "heap"),
        ({"runner": {"workers": 0}}, "workers"),
        ({"runners": {}}, "runners"),
        ({"layout": ["x"]}, "layout"),
        ({"runner": {"keep_going": "false"}}, "keep_going"),
        ({"runner": {"workers": 2.5}}, "workers"),
        ({"runner": {"timeout_s": 0}}, "timeout_s"),
        ({"simulator": {"max_heap": 32}}, "max_heap"),
        ({"simulator": {"max_heap": "32"}}, "max_heap"),
        ({"simulator": {"niceness": "10"}}, "niceness"),
        ({"matrix": {"count": [20], "seed": [1, "1"]}}, "seed"),
    ],
)
def test_invalid_settings(patch: dict, message: str) -> None:
    data = dict(MINIMAL)
    data.update(patch)
    with pytest.raises(ValueError, match=message):
        settings_from_dict(data)


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))
