"""Batch configuration loaded from a YAML (or JSON) file.

Example::

    log_level: INFO
    workdir: runs
    matrix:                 # outer -> inner axis
      count: [100]
      algorithm: [recursive]
      seed: [1234]
      distribution: ['2-holes .65', 'uniform']
    constants:
      tx_dimension: [10, 10]
      rx_dimension: [12, 12]
      grid_density: 35
    simulator:
      jar: jun-sim.jar
      max_heap: 32g
      niceness: 10
    runner:
      keep_going: false

Every section except ``matrix`` and ``constants`` is optional. Unknown keys
are rejected so a typo never silently falls back to a default.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from simbatch.experiments.command import SimulatorCommand
from simbatch.matrix import ParameterMatrix
from simbatch.models import DocumentLayout, RenderConstants

REQUIRED_CONSTANTS = ("tx_dimension", "rx_dimension", "grid_density")
TOP_LEVEL_KEYS = {"log_level", "workdir", "matrix", "constants", "layout", "simulator", "runner"}


@dataclass
class RunnerOptions:
    keep_going: bool = False
    workers: int = 1
    timeout_s: Optional[float] = None
    summary_csv: Optional[str] = None

    def __post_init__(self) -> None:
        # Quoted YAML scalars arrive as strings ("false" is truthy)
        if not isinstance(self.keep_going, bool):
            raise ValueError(f"runner.keep_going must be true or false, got {self.keep_going!r}")
        if isinstance(self.workers, bool) or not isinstance(self.workers, int) or self.workers < 1:
            raise ValueError(f"runner.workers must be an integer >= 1, got {self.workers!r}")
        if self.timeout_s is not None and (
            isinstance(self.timeout_s, bool)
            or not isinstance(self.timeout_s, (int, float))
            or self.timeout_s <= 0
        ):
            raise ValueError(f"runner.timeout_s must be a positive number, got {self.timeout_s!r}")
        if self.summary_csv is not None and (
            not isinstance(self.summary_csv, str) or not self.summary_csv
        ):
            raise ValueError(f"runner.summary_csv must be a file path, got {self.summary_csv!r}")


@dataclass
class BatchSettings:
    matrix: ParameterMatrix
    constants: RenderConstants
    layout: DocumentLayout = field(default_factory=DocumentLayout)
    simulator: SimulatorCommand = field(default_factory=SimulatorCommand)
    runner: RunnerOptions = field(default_factory=RunnerOptions)
    workdir: Path = Path(".")
    log_level: str = "INFO"


def load_config(config_file: str) -> Dict[str, Any]:
    """Read a YAML or JSON file (chosen by extension) into a dict."""
    if not os.path.isfile(config_file):
        raise FileNotFoundError(f"Config file not found: {config_file}")
    with open(config_file, "r", encoding="utf-8") as f:
        text = f.read()
    if config_file.endswith((".yml", ".yaml")):
        cfg = yaml.safe_load(text) or {}
    else:
        cfg = json.loads(text)
    if not isinstance(cfg, dict):
        raise ValueError(f"{config_file}: top level must be a mapping")
    return cfg


def _section(cfg: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = cfg.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping")
    return value


def _build(cls, key: str, values: Dict[str, Any]):
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{key}': {', '.join(unknown)}")
    return cls(**values)


def _parse_matrix(raw: Any) -> ParameterMatrix:
    if not isinstance(raw, dict) or not raw:
        raise ValueError("'matrix' must be a non-empty mapping of axis name -> list of values")
    for name, values in raw.items():
        if not isinstance(values, list):
            raise ValueError(f"matrix.{name} must be a list of values")
    return ParameterMatrix(raw)


def settings_from_dict(cfg: Dict[str, Any]) -> BatchSettings:
    unknown = sorted(set(cfg) - TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"Unknown top-level key(s): {', '.join(unknown)}")

    matrix = _parse_matrix(cfg.get("matrix"))

    constants_cfg = _section(cfg, "constants")
    missing = [k for k in REQUIRED_CONSTANTS if constants_cfg.get(k) is None]
    if missing:
        raise ValueError(
            "Missing required constant(s): " + ", ".join(f"constants.{k}" for k in missing)
        )
    constants = _build(RenderConstants, "constants", constants_cfg)

    layout = _build(DocumentLayout, "layout", _section(cfg, "layout"))

    sim_cfg = dict(_section(cfg, "simulator"))
    for key in ("jvm_args", "command"):
        if isinstance(sim_cfg.get(key), str):
            sim_cfg[key] = sim_cfg[key].split()
    simulator = _build(SimulatorCommand, "simulator", sim_cfg)

    runner = _build(RunnerOptions, "runner", _section(cfg, "runner"))

    return BatchSettings(
        matrix=matrix,
        constants=constants,
        layout=layout,
        simulator=simulator,
        runner=runner,
        workdir=Path(str(cfg.get("workdir") or ".")),
        log_level=str(cfg.get("log_level", "INFO")),
    )


def load_settings(config_file: str) -> BatchSettings:
    return settings_from_dict(load_config(config_file))
