#!/usr/bin/env python3
"""
Command line entry point with environment configuration support.
"""

import sys

from trip_planner.cli import main

if __name__ == "__main__":
    sys.exit(main())
