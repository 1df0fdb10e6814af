"""Batch driver for jun-sim experiments.

Exports the parameter matrix, the config renderer and the experiment runner.
"""

from simbatch.experiments.runner import ExperimentRunner  # noqa: F401
from simbatch.matrix import ParameterMatrix  # noqa: F401
from simbatch.models import Axis, ExperimentPoint, RenderConstants  # noqa: F401
from simbatch.render import ConfigRenderer  # noqa: F401

__all__ = [
    "Axis",
    "ConfigRenderer",
    "ExperimentPoint",
    "ExperimentRunner",
    "ParameterMatrix",
    "RenderConstants",
]
