from __future__ import annotations

import logging
import os
import subprocess
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from simbatch.errors import (
    BatchError,
    ConfigWriteError,
    ExperimentFailedError,
    SimulatorLaunchError,
    SimulatorTimeoutError,
)
from simbatch.experiments.command import SimulatorCommand
from simbatch.models import (
    FAILED,
    LAUNCH_ERROR,
    SUCCEEDED,
    TIMED_OUT,
    WRITTEN,
    BatchReport,
    ExperimentPoint,
    RunResult,
)
from simbatch.render import ConfigRenderer

logger = logging.getLogger("simbatch.runner")

# launcher(argv, cwd, timeout_s) -> exit status
Launcher = Callable[[List[str], Path, Optional[float]], int]


def subprocess_launcher(argv: List[str], cwd: Path, timeout_s: Optional[float]) -> int:
    """Run the simulator and block until it exits.

    ``OSError`` (missing executable, permissions) and
    ``subprocess.TimeoutExpired`` propagate to the caller; on timeout the child
    has already been killed by :func:`subprocess.run`.
    """
    completed = subprocess.run(argv, cwd=cwd, timeout=timeout_s, check=False)
    return completed.returncode


class ExperimentRunner:
    """Drives matrix points through render -> write -> invoke -> check.

    By default points run one at a time in the given order and the first
    failure aborts the batch: the error is raised with the partial
    :class:`BatchReport` attached as ``error.report`` and no later point is
    attempted. Config files already written are left in place.

    ``keep_going`` collects simulator failures instead of aborting (render and
    write failures still abort). ``workers > 1`` runs points on a thread pool;
    results are still reported in matrix order and, without ``keep_going``,
    pending points are cancelled after the first failure.
    """

    def __init__(
        self,
        renderer: ConfigRenderer,
        command: Optional[SimulatorCommand] = None,
        workdir: Union[str, Path] = ".",
        launcher: Optional[Launcher] = None,
        keep_going: bool = False,
        workers: int = 1,
        timeout_s: Optional[float] = None,
        dry_run: bool = False,
    ):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.renderer = renderer
        self.command = command or SimulatorCommand()
        self.workdir = Path(workdir)
        self.workdir.mkdir(parents=True, exist_ok=True)
        self.launcher = launcher or subprocess_launcher
        self.keep_going = keep_going
        self.workers = workers
        self.timeout_s = timeout_s
        self.dry_run = dry_run

    def config_path(self, name: str) -> Path:
        return self.workdir / f"{name}.xml"

    def write_config(self, name: str, text: str) -> Path:
        """Write ``text`` to ``<workdir>/<name>.xml``, replacing any old file.

        The document goes to a temporary sibling first, so a failed write never
        leaves a truncated config under the final name.
        """
        path = self.config_path(name)
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, path)
        except OSError as e:
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass
            raise ConfigWriteError(f"Cannot write config {path}: {e}", name) from e
        return path

    def run(self, points: Iterable[ExperimentPoint]) -> BatchReport:
        points = list(points)
        report = BatchReport()
        if self.workers > 1 and len(points) > 1:
            self._run_parallel(points, report)
        else:
            for idx, point in enumerate(points, start=1):
                try:
                    result = self._run_single(point, idx, len(points))
                except BatchError as e:
                    raise self._abort(report, e, point)
                report.results.append(result)
                if not result.ok:
                    self._on_failure(report, result)
        report.status = "completed" if not report.failed else "failed"
        logger.info(
            "Batch %s: %d/%d experiments succeeded",
            report.status,
            len(report.succeeded),
            len(points),
        )
        return report

    def _run_single(self, point: ExperimentPoint, idx: int, total: int) -> RunResult:
        name = self.renderer.experiment_name(point)
        text = self.renderer.render(point)
        path = self.write_config(name, text)
        if self.dry_run:
            logger.info("(%d/%d) Wrote %s", idx, total, path)
            return RunResult(name, path, WRITTEN)

        logger.info("(%d/%d) Performing %s", idx, total, name)
        argv = self.command.argv(path.name)
        logger.debug("Command: %s", argv)
        t0 = time.perf_counter()
        try:
            returncode = self.launcher(argv, self.workdir, self.timeout_s)
        except subprocess.TimeoutExpired:
            return RunResult(
                name,
                path,
                TIMED_OUT,
                elapsed_s=time.perf_counter() - t0,
                detail=f"timed out after {self.timeout_s}s",
            )
        except OSError as e:
            return RunResult(
                name, path, LAUNCH_ERROR, elapsed_s=time.perf_counter() - t0, detail=str(e)
            )
        elapsed = time.perf_counter() - t0
        status = SUCCEEDED if returncode == 0 else FAILED
        return RunResult(name, path, status, returncode=returncode, elapsed_s=elapsed)

    def _log_failure(self, result: RunResult) -> None:
        if result.status == LAUNCH_ERROR:
            logger.error("Cannot launch simulator for %s: %s", result.experiment, result.detail)
        elif result.status == TIMED_OUT:
            logger.error("Execution timed out for %s (%s)", result.experiment, result.detail)
        else:
            logger.error(
                "Execution failed for %s (exit status %s)", result.experiment, result.returncode
            )

    def _on_failure(self, report: BatchReport, result: RunResult) -> None:
        self._log_failure(result)
        if not self.keep_going:
            raise self._abort(report, _error_for(result))

    def _abort(
        self,
        report: BatchReport,
        error: BatchError,
        point: Optional[ExperimentPoint] = None,
    ) -> BatchError:
        """Mark ``report`` aborted, attach it to ``error`` and return the error to raise."""
        report.status = "aborted"
        if error.experiment is not None:
            report.aborted_at = error.experiment
        elif point is not None:
            report.aborted_at = repr(point.as_dict())
        error.report = report
        return error

    def _run_parallel(self, points: List[ExperimentPoint], report: BatchReport) -> None:
        total = len(points)
        pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="simbatch")
        futures: List[Future] = []
        try:
            for idx, point in enumerate(points, start=1):
                futures.append(pool.submit(self._run_single, point, idx, total))
            for fut in as_completed(futures):
                if fut.cancelled():
                    continue
                exc = fut.exception()
                failed = exc is not None or not fut.result().ok
                if failed and (exc is not None or not self.keep_going):
                    for other in futures:
                        other.cancel()
                    break
        finally:
            # On Ctrl-C (or any error) queued points are dropped; running ones finish
            pool.shutdown(wait=True, cancel_futures=True)

        # Everything not cancelled has finished; report in matrix order
        first_error: Optional[BatchError] = None
        first_point: Optional[ExperimentPoint] = None
        for point, fut in zip(points, futures):
            if fut.cancelled():
                continue
            exc = fut.exception()
            if exc is not None:
                if not isinstance(exc, BatchError):
                    raise exc
                if first_error is None:
                    first_error, first_point = exc, point
                continue
            result = fut.result()
            report.results.append(result)
            if not result.ok:
                self._log_failure(result)
                if first_error is None and not self.keep_going:
                    first_error, first_point = _error_for(result), point
        if first_error is not None:
            raise self._abort(report, first_error, first_point)


def _error_for(result: RunResult) -> BatchError:
    if result.status == LAUNCH_ERROR:
        return SimulatorLaunchError(
            f"Cannot launch simulator for {result.experiment}: {result.detail}", result.experiment
        )
    if result.status == TIMED_OUT:
        return SimulatorTimeoutError(
            f"Execution timed out for {result.experiment}", result.experiment
        )
    return ExperimentFailedError(
        f"Execution failed for {result.experiment}", result.experiment, result.returncode
    )
