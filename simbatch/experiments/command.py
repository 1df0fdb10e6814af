"""Command line used to launch the simulator for one config file."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

_HEAP_RE = re.compile(r"^[1-9][0-9]*[kKmMgGtT]$")


@dataclass(frozen=True)
class SimulatorCommand:
    """Builds ``[nice -n N] java [-mx<heap>] [jvm args] -jar <jar> <config>``.

    ``niceness`` and ``max_heap`` are deployment knobs (lower scheduling
    priority, bigger JVM heap) and are left out when ``None``. A non-empty
    ``command`` replaces the whole java launcher; the config path is still
    appended as the only positional argument.
    """

    jar: str = "jun-sim.jar"
    java: str = "java"
    max_heap: Optional[str] = None
    niceness: Optional[int] = None
    jvm_args: Tuple[str, ...] = ()
    command: Tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        # The JVM reads a bare number as bytes, so a unit is required
        if self.max_heap is not None and (
            not isinstance(self.max_heap, str) or not _HEAP_RE.match(self.max_heap)
        ):
            raise ValueError(
                f"max_heap needs a unit such as '32g' or '512m', got {self.max_heap!r}"
            )
        if self.niceness is not None and (
            isinstance(self.niceness, bool) or not isinstance(self.niceness, int)
        ):
            raise ValueError(f"niceness must be an integer, got {self.niceness!r}")
        for attr in ("jar", "java"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{attr} must be a non-empty string, got {value!r}")
        object.__setattr__(self, "jvm_args", tuple(str(a) for a in self.jvm_args))
        object.__setattr__(self, "command", tuple(str(a) for a in self.command))

    def argv(self, config_path: Union[str, Path]) -> List[str]:
        if self.command:
            args = list(self.command)
        else:
            args = [self.java]
            if self.max_heap:
                args.append(f"-mx{self.max_heap}")
            args.extend(self.jvm_args)
            args.extend(["-jar", self.jar])
        if self.niceness is not None:
            args = ["nice", "-n", str(self.niceness)] + args
        args.append(str(config_path))
        return args
