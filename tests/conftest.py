"""Pytest configuration, shared fixtures & custom summary hook.

Also ensures the project root is on sys.path so ``import simbatch`` works
without installing the package.
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import List, Optional

import pytest

_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from simbatch.models import RenderConstants  # noqa: E402
from simbatch.render import ConfigRenderer  # noqa: E402


class FakeLauncher:
    """Stands in for the simulator: records every call, returns scripted codes.

    ``exit_codes`` maps the config file name (``<experiment>.xml``) to the
    status returned for it; everything else exits 0.
    """

    def __init__(self, exit_codes: Optional[dict] = None):
        self.exit_codes = exit_codes or {}
        self.calls: List[List[str]] = []
        self.cwds: List[Path] = []
        self._lock = threading.Lock()

    def __call__(self, argv: List[str], cwd: Path, timeout_s: Optional[float]) -> int:
        with self._lock:
            self.calls.append(list(argv))
            self.cwds.append(cwd)
        return self.exit_codes.get(argv[-1], 0)

    @property
    def config_names(self) -> List[str]:
        return [argv[-1] for argv in self.calls]


@pytest.fixture
def constants() -> RenderConstants:
    return RenderConstants(tx_dimension=(10, 10), rx_dimension=(12, 12), grid_density=35)


@pytest.fixture
def renderer(constants: RenderConstants) -> ConfigRenderer:
    return ConfigRenderer(constants)


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
    exitstatus: int,
    config: pytest.Config,
) -> None:  # noqa: D401
    """Append a compact custom summary at the end of test session."""
    stats = terminalreporter.stats
    passed = len(stats.get("passed", []))
    failed = len(stats.get("failed", []))
    errors = len(stats.get("error", []))
    skipped = len(stats.get("skipped", []))

    terminalreporter.section("simbatch summary", sep="=")
    terminalreporter.write_line(
        f"Passed: {passed} | Failed: {failed} | Errors: {errors} | Skipped: {skipped}"
    )
    if failed:
        terminalreporter.write_line("Failed tests:")
        for rep in stats["failed"]:
            terminalreporter.write_line(f"  - {rep.nodeid}")
