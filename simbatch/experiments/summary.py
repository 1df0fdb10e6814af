from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Union

from simbatch.models import RunResult

logger = logging.getLogger("simbatch.summary")

COLUMNS = ["experiment", "config_file", "returncode", "elapsed_s", "status"]


def write_summary_csv(results: Iterable[RunResult], out_path: Union[str, Path]) -> Path:
    """Write one row per run outcome (matrix order) and return the path."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        for result in results:
            writer.writerow(result.to_row())
            count += 1
    logger.info("Summary written: %s (%d rows)", out_path, count)
    return out_path
