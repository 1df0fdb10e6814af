"""Exception hierarchy for batch runs.

Every error raised while driving a batch derives from :class:`BatchError` so
callers (the CLI in particular) can stop the run with a single ``except``
clause and still tell a bad template value apart from a crashed simulator.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from simbatch.models import BatchReport


class BatchError(Exception):
    """Base class; ``experiment`` names the run that failed (if known)."""

    def __init__(self, message: str, experiment: Optional[str] = None) -> None:
        super().__init__(message)
        self.experiment = experiment
        # Filled in by the runner with the partial report of an aborted batch
        self.report: Optional["BatchReport"] = None


class RenderError(BatchError, ValueError):
    """A required parameter is missing or cannot be written into a config."""


class ConfigWriteError(BatchError):
    """The rendered config could not be written to disk."""


class SimulatorLaunchError(BatchError):
    """The simulator process could not be started at all."""


class ExperimentFailedError(BatchError):
    """The simulator ran but exited with a nonzero status."""

    def __init__(
        self, message: str, experiment: Optional[str] = None, returncode: Optional[int] = None
    ) -> None:
        super().__init__(message, experiment)
        self.returncode = returncode


class SimulatorTimeoutError(ExperimentFailedError):
    """The simulator was killed after exceeding the configured timeout."""
