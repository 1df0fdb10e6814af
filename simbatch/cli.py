"""Command-line entry point: ``simbatch --config config.yaml``."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from simbatch.errors import BatchError
from simbatch.experiments.runner import ExperimentRunner
from simbatch.experiments.summary import write_summary_csv
from simbatch.models import BatchReport
from simbatch.render import ConfigRenderer
from simbatch.settings import BatchSettings, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

logger = logging.getLogger("simbatch.cli")


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simbatch",
        description="Render one simulator config per parameter combination and run the simulator",
    )
    parser.add_argument("--config", required=True, help="Path to the YAML/JSON batch config")
    parser.add_argument("--workdir", help="Directory for config files (overrides 'workdir')")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write the config files but do not start the simulator",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print experiment names in run order and exit",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Continue after a failed experiment and report all failures at the end",
    )
    parser.add_argument("--workers", type=int, help="Parallel simulator processes (default 1)")
    parser.add_argument("--log-level", help="Logging level (overrides 'log_level')")
    return parser


def run_batch(settings: BatchSettings, dry_run: bool = False) -> BatchReport:
    """Run the configured matrix; the summary CSV is written even on abort."""
    renderer = ConfigRenderer(settings.constants, settings.layout)
    runner = ExperimentRunner(
        renderer,
        command=settings.simulator,
        workdir=settings.workdir,
        keep_going=settings.runner.keep_going,
        workers=int(settings.runner.workers),
        timeout_s=settings.runner.timeout_s,
        dry_run=dry_run,
    )
    logger.info(
        "Running %d experiment(s) from %r in %s",
        len(settings.matrix),
        settings.matrix,
        runner.workdir,
    )
    summary = settings.runner.summary_csv
    try:
        report = runner.run(settings.matrix.tuples())
    except BatchError as e:
        if summary and e.report is not None:
            write_summary_csv(e.report.results, summary)
        raise
    if summary:
        write_summary_csv(report.results, summary)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=_level(args.log_level or "INFO"), format=LOG_FORMAT)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        logger.error("Invalid configuration %s: %s", args.config, e)
        return EXIT_CONFIG
    if not args.log_level:
        logging.getLogger().setLevel(_level(settings.log_level))

    if args.workdir:
        settings.workdir = Path(args.workdir)
    if args.keep_going:
        settings.runner.keep_going = True
    if args.workers is not None:
        if args.workers < 1:
            logger.error("--workers must be >= 1")
            return EXIT_CONFIG
        settings.runner.workers = args.workers

    if args.list:
        renderer = ConfigRenderer(settings.constants, settings.layout)
        try:
            for point in settings.matrix.tuples():
                print(renderer.experiment_name(point))
        except BatchError as e:
            logger.error("%s", e)
            return EXIT_CONFIG
        return EXIT_OK

    try:
        report = run_batch(settings, dry_run=args.dry_run)
    except BatchError as e:
        logger.error("ERROR: %s; remaining experiments were not run", e)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED
    return EXIT_OK if report.status == "completed" else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
