#!/usr/bin/env python3
"""Run the batch described by a config file.

    python main.py --config config.yaml
    python main.py --config configs/algorithms.yaml --dry-run
"""

import sys

from simbatch.cli import main

if __name__ == "__main__":
    sys.exit(main())
