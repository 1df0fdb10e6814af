"""Core data structures for batch experiment runs.

This module defines:
    Axis            -- one named, ordered list of parameter values.
    ExperimentPoint -- one combination of values (one per axis).
    RenderConstants -- values shared by every rendered simulator config.
    DocumentLayout  -- file-path templates embedded in the config.
    RunResult       -- outcome of a single simulator invocation.
    BatchReport     -- ordered outcomes of a whole batch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from simbatch.errors import RenderError

Scalar = Union[int, float, str, bool]

DEFAULT_ROOT_TAG = "edu.rutgers.winlab.junsim.Config"

# RunResult.status values
SUCCEEDED = "succeeded"
FAILED = "failed"
TIMED_OUT = "timeout"
LAUNCH_ERROR = "launch_error"
WRITTEN = "written"  # dry run: config written, simulator not invoked


def scalar_text(value: Any) -> str:
    """Text written into names and configs; booleans use XML spelling."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _same_value(a: Any, b: Any) -> bool:
    return type(a) is type(b) and a == b


@dataclass(frozen=True)
class Axis:
    """Immutable experiment axis.

    Attributes:
        name: Axis identifier (``count``, ``algorithm``, ``seed``, ...).
        values: Values in iteration order.
    """

    name: str
    values: Tuple[Scalar, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError(f"Axis name must be a non-empty string, got {self.name!r}")
        if isinstance(self.values, (str, bytes)):
            raise ValueError(f"Axis {self.name!r} values must be a sequence, not a string")
        object.__setattr__(self, "values", tuple(self.values))
        # Names and file paths are built from the text form, so two different
        # values must not share one (e.g. 1 and "1"). Exact repeats are allowed.
        seen: Dict[str, Any] = {}
        for value in self.values:
            text = scalar_text(value)
            if text in seen and not _same_value(seen[text], value):
                raise ValueError(
                    f"Axis {self.name!r} values {seen[text]!r} and {value!r} "
                    f"both render as {text!r}"
                )
            seen.setdefault(text, value)

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class ExperimentPoint:
    """One point of the parameter matrix: ``(axis name, value)`` pairs in axis order."""

    items: Tuple[Tuple[str, Scalar], ...]

    def __getitem__(self, name: str) -> Scalar:
        for key, value in self.items:
            if key == name:
                return value
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self.items)

    def __iter__(self) -> Iterator[Tuple[str, Scalar]]:
        return iter(self.items)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def names(self) -> Tuple[str, ...]:
        return tuple(key for key, _ in self.items)

    def as_dict(self) -> Dict[str, Scalar]:
        return dict(self.items)


@dataclass(frozen=True)
class RenderConstants:
    """Values written into every config regardless of the matrix point.

    The rectangle sizes and grid density have no sensible default and must be
    given; the radio/experiment constants default to the values used for the
    published capture-disk runs.

    Attributes:
        tx_dimension: ``(width, height)`` of the inner (transmitter) rectangle.
        rx_dimension: ``(width, height)`` of the outer (receiver) rectangle.
        grid_density: Points per unit (grid) or over the whole area (recursive).
        beta: Capture-disk constant.
        num_receivers: Receivers placed per experiment.
        radio_power: Radio power scaling factor.
        radio_alpha: Signal propagation exponent.
        num_trials: Trials per simulator run.
        num_threads: Worker threads inside the simulator.
        max_range_meters: Maximum radio range.
        randomized: Whether the simulator randomizes placement itself.
        render_config: Rendering config file read by the simulator.
    """

    tx_dimension: Tuple[Scalar, Scalar]
    rx_dimension: Tuple[Scalar, Scalar]
    grid_density: Scalar
    beta: float = 0.65
    num_receivers: int = 3
    radio_power: float = 2.0
    radio_alpha: float = 2.68
    num_trials: int = 1
    num_threads: int = 2
    max_range_meters: Scalar = 40
    randomized: bool = False
    render_config: str = "graphics.xml"

    def __post_init__(self) -> None:
        for attr in ("tx_dimension", "rx_dimension"):
            dims = getattr(self, attr)
            if dims is None or isinstance(dims, (str, bytes)) or len(tuple(dims)) != 2:
                raise RenderError(f"{attr} must be a (width, height) pair, got {dims!r}")
            object.__setattr__(self, attr, tuple(dims))
        if self.grid_density is None or self.grid_density == "":
            raise RenderError("grid_density is required")


@dataclass(frozen=True)
class DocumentLayout:
    """Path templates embedded in each config.

    Templates are ``str.format`` strings with the fields ``name``, ``count``,
    ``algorithm``, ``seed`` and ``distribution``. When ``transmitters_file``
    is left unset the placement file is keyed by count, plus distribution
    for points that carry one.
    """

    root_tag: str = DEFAULT_ROOT_TAG
    transmitters_file: Optional[str] = None
    receivers_file: str = "{name}_rcv.ssv"
    output_file: str = "{name}.csv"
    output_base_path: str = "{name}"

    def transmitters_template(self, with_distribution: bool) -> str:
        if self.transmitters_file is not None:
            return self.transmitters_file
        if with_distribution:
            return "../transmitters-{count}-{distribution}.ssv"
        return "../transmitters-{count}.ssv"


@dataclass
class RunResult:
    experiment: str
    config_file: Path
    status: str
    returncode: Optional[int] = None
    elapsed_s: float = 0.0
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (SUCCEEDED, WRITTEN)

    def to_row(self) -> List[Any]:
        return [
            self.experiment,
            str(self.config_file),
            "" if self.returncode is None else self.returncode,
            f"{self.elapsed_s:.3f}",
            self.status,
        ]


@dataclass
class BatchReport:
    """Outcomes of one batch in matrix order.

    ``status`` is ``pending`` while running, then ``completed`` (every run
    succeeded), ``failed`` (keep-going mode, some runs failed) or ``aborted``
    (stopped at ``aborted_at``).
    """

    results: List[RunResult] = field(default_factory=list)
    status: str = "pending"
    aborted_at: Optional[str] = None

    @property
    def succeeded(self) -> List[RunResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[RunResult]:
        return [r for r in self.results if not r.ok]
