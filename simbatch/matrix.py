"""Parameter matrix: the Cartesian product of ordered experiment axes.

Axes are listed outer to inner, so the first axis varies slowest, exactly
like hand-written nested ``for`` loops. The run order of a batch follows this
order, so reordering axes changes which experiment runs first.
"""
from __future__ import annotations

import itertools
from math import prod
from typing import Iterable, Iterator, List, Mapping, Sequence, Tuple, Union

from simbatch.models import Axis, ExperimentPoint, Scalar

AxisSpec = Union[Axis, Tuple[str, Sequence[Scalar]]]


class ParameterMatrix:
    """Ordered set of axes whose product defines the experiments of a batch."""

    def __init__(self, axes: Union[Iterable[AxisSpec], Mapping[str, Sequence[Scalar]]]):
        if isinstance(axes, Mapping):
            axes = list(axes.items())
        built: List[Axis] = []
        seen = set()
        for spec in axes:
            axis = spec if isinstance(spec, Axis) else Axis(spec[0], tuple(spec[1]))
            if axis.name in seen:
                raise ValueError(f"Duplicate axis name: {axis.name}")
            seen.add(axis.name)
            built.append(axis)
        self._axes: Tuple[Axis, ...] = tuple(built)

    def axes(self) -> List[Axis]:
        return list(self._axes)

    def tuples(self) -> Iterator[ExperimentPoint]:
        """Yield every point in nested-loop order (outer axis slowest).

        Each call returns a fresh iterator. A matrix without axes yields
        nothing rather than a single empty point.
        """
        if not self._axes:
            return iter(())
        names = [axis.name for axis in self._axes]
        return (
            ExperimentPoint(tuple(zip(names, combo)))
            for combo in itertools.product(*(axis.values for axis in self._axes))
        )

    def __iter__(self) -> Iterator[ExperimentPoint]:
        return self.tuples()

    def __len__(self) -> int:
        if not self._axes:
            return 0
        return prod(len(axis) for axis in self._axes)

    def __repr__(self) -> str:
        shape = " x ".join(f"{a.name}[{len(a)}]" for a in self._axes)
        return f"ParameterMatrix({shape or 'empty'})"
